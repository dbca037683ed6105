"""Base adapter shared by the feed and pool adapters.

An adapter is created for exactly one query, bound to the immutable
config and to a pinned external state. Token decimals are looked up at
most once per query: adapters of the same query share one asset cache.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from ..Asset import Asset

if TYPE_CHECKING:
    from ..ExternalState import ExternalState
    from ..OracleConfig import OracleConfig

logger = logging.getLogger(__name__)


class BaseAdapter:
    """Common state of all price adapters.

    :cvar name: Identifier used in logs and failure messages.
    :ivar config: Deployment configuration.
    :ivar state: External state pinned for the current query.
    """

    name: ClassVar[str] = ""

    def __init__(
        self,
        config: OracleConfig,
        state: ExternalState,
        assets: dict[str, Asset] | None = None,
    ) -> None:
        """Initialize the adapter.

        :param config: Deployment configuration.
        :param state: External state pinned for the current query.
        :param assets: Asset cache shared by the adapters of one query.
        """
        self.config = config
        self.state = state
        self._assets = assets if assets is not None else {}

    def asset(self, token: str) -> Asset:
        """Resolve a token address to an :class:`Asset` with its decimals.

        :param token: Token address.
        :returns: Asset with decimals read from the external state.
        """
        if token not in self._assets:
            self._assets[token] = Asset(token, self.state.decimals(token))
        return self._assets[token]

    @property
    def native(self) -> Asset:
        """The configured native asset, used as routing base by pool adapters."""
        return self.asset(self.config.native_asset)
