"""MultipriceOracle: Stateless query entrypoints.

Each call pins the external state once, builds fresh adapters bound to
that view, computes its answer and discards them. The only thing shared
between calls is the immutable :class:`OracleConfig`.

Architecture:
    MultipriceOracle -> Selector -> Router -> {FeedAdapter | ClPoolAdapter |
    CpPoolAdapter} -> DecimalNormalizer

.. code-block:: python

    >>> oracle = MultipriceOracle.from_network("mainnet")
    >>> usdc = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
    >>> weth = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
    >>> result = oracle.combined_quote(weth, 10 * 10**18, usdc, 0, 1800, Inclusion.ALL)
    >>> result.source, result.value
    (<SourceId.CP_SPOT_A: 'cp_spot_a'>, 28490000000)
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from web3 import Web3

from .adapters import ClPoolAdapter, CpPoolAdapter, FeedAdapter
from .Asset import Asset
from .ContractUtility import ContractUtility
from .errors import InvalidParameter
from .ExternalState import ExternalState
from .ExternalStateWeb3 import ExternalStateWeb3
from .OracleConfig import DEFAULT_DEPLOYMENTS, OracleConfig
from .Selector import AggregateResult, Inclusion, Selector

logger = logging.getLogger(__name__)

# Default trailing window for TWAP quotes (30 minutes).
DEFAULT_TWAP_PERIOD = 1800


class _Session(NamedTuple):
    feed: FeedAdapter
    cl_pool: ClPoolAdapter
    cp_pool: CpPoolAdapter


def _checksum(token: str, name: str) -> str:
    try:
        return Web3.to_checksum_address(token)
    except (TypeError, ValueError) as e:
        raise InvalidParameter("invalid address", f"{name}={token!r}") from e


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidParameter("invalid amount", f"amount must be a non-negative integer, got {amount!r}")


class MultipriceOracle:
    """Conservative multi-source exchange-rate oracle.

    :ivar config: Immutable deployment configuration.
    :ivar state: External state reader, pinned once per query.
    :ivar strict: Whether enabled sources that cannot be computed fail
        combined queries (default) or are dropped.
    """

    def __init__(self, config: OracleConfig, state: ExternalState, strict: bool = True) -> None:
        """Initialize the oracle.

        :param config: Deployment configuration.
        :param state: External state reader.
        :param strict: Failure policy for combined queries.
        """
        self.config = config
        self.state = state
        self.strict = strict

    @classmethod
    def from_network(
        cls,
        network_name: str,
        config: OracleConfig | None = None,
        rpc_url: str | None = None,
        strict: bool = True,
    ) -> MultipriceOracle:
        """Create an oracle reading from a live chain.

        :param network_name: Network name (e.g., "mainnet") or RPC URL.
        :param config: Deployment configuration (default: known deployment).
        :param rpc_url: Optional explicit RPC URL.
        :param strict: Failure policy for combined queries.
        :returns: Configured oracle.
        :raises ValueError: If no config is given and the network is unknown.
        """
        if config is None:
            config = DEFAULT_DEPLOYMENTS.get(network_name)
        if config is None:
            raise ValueError(f"No deployment configured for network {network_name}")

        w3 = ContractUtility(network_name, rpc_url=rpc_url).w3
        return cls(config, ExternalStateWeb3(w3, config.registry), strict=strict)

    # Configuration accessors

    @property
    def registry(self) -> str:
        """Feed registry address."""
        return self.config.registry

    @property
    def cl_factory(self) -> str:
        """Concentrated-liquidity pool factory address."""
        return self.config.cl_factory

    @property
    def cl_pool_fee(self) -> int:
        """Canonical concentrated-liquidity fee tier."""
        return self.config.cl_pool_fee

    @property
    def cp_factories(self) -> tuple[str, str]:
        """Constant-product factory addresses, in candidate order (A, B)."""
        return self.config.cp_factories

    @property
    def native_asset(self) -> str:
        """Native base asset address."""
        return self.config.native_asset

    @property
    def usd_equivalents(self) -> frozenset[str]:
        """USD-equivalent stable token addresses."""
        return self.config.usd_equivalents

    def is_usd_equivalent(self, token: str) -> bool:
        """Check membership in the USD-equivalent set.

        :param token: Token address.
        :returns: True if the token is USD-equivalent.
        """
        return self.config.is_usd_equivalent(token)

    def asset(self, token: str) -> Asset:
        """Resolve a token address to an asset with its precision.

        :param token: Token address.
        :returns: Asset with on-chain decimals.
        :raises InvalidParameter: If the address is malformed.
        """
        token = _checksum(token, "token")
        return Asset(token, self.state.decimals(token))

    # Queries

    def _session(self) -> _Session:
        state = self.state.pinned()
        assets: dict[str, Asset] = {}
        return _Session(
            feed=FeedAdapter(self.config, state, assets),
            cl_pool=ClPoolAdapter(self.config, state, assets),
            cp_pool=CpPoolAdapter(self.config, state, assets),
        )

    def feed_quote(self, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote from the feed registry.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: Raw output amount.
        :raises SourceUnavailable: If either leg's feed is missing.
        """
        _check_amount(amount_in)
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        return self._session().feed.quote(token_in, amount_in, token_out)

    def buffered_feed_quote(self, token_in: str, amount_in: int, token_out: str, buffer: int) -> int:
        """Quote from the feed registry, discounted by ``buffer``.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param buffer: Discount as a fraction of 10**18.
        :returns: Raw output amount.
        :raises InvalidParameter: If the buffer is out of range.
        :raises SourceUnavailable: If either leg's feed is missing.
        """
        _check_amount(amount_in)
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        return self._session().feed.buffered_quote(token_in, amount_in, token_out, buffer)

    def cl_pool_spot_quote(self, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote at concentrated-liquidity spot prices.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: Raw output amount.
        :raises SourceUnavailable: If no direct or routed pool exists.
        """
        _check_amount(amount_in)
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        return self._session().cl_pool.spot_quote(token_in, amount_in, token_out)

    def cl_pool_twap_quote(
        self, token_in: str, amount_in: int, token_out: str, window: int = DEFAULT_TWAP_PERIOD
    ) -> int:
        """Quote at concentrated-liquidity time-weighted average prices.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param window: Trailing window in seconds (default: 1800).
        :returns: Raw output amount.
        :raises InvalidParameter: If the window is zero.
        :raises InsufficientHistory: If pool history is shorter than the window.
        :raises SourceUnavailable: If no direct or routed pool exists.
        """
        _check_amount(amount_in)
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        return self._session().cl_pool.twap_quote(token_in, amount_in, token_out, window)

    def cp_pool_spot_quote(self, factory: str, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote at constant-product reserve ratios of ``factory``'s pairs.

        :param factory: Pair factory address.
        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: Raw output amount.
        :raises SourceUnavailable: If no direct or routed pair exists.
        """
        _check_amount(amount_in)
        factory = _checksum(factory, "factory")
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        return self._session().cp_pool.spot_quote(factory, token_in, amount_in, token_out)

    def combined_quote(
        self,
        token_in: str,
        amount_in: int,
        token_out: str,
        buffer: int = 0,
        window: int = DEFAULT_TWAP_PERIOD,
        inclusion: int = Inclusion.ALL,
        strict: bool | None = None,
    ) -> AggregateResult:
        """Quote from every enabled source and select the lowest amount.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param buffer: Registry discount as a fraction of 10**18 (default: 0).
        :param window: TWAP window in seconds (default: 1800).
        :param inclusion: Inclusion mask (default: all sources).
        :param strict: Override the oracle's failure policy for this query.
        :returns: Selected value, winning source and every candidate.
        :raises InvalidParameter: On an invalid mask, buffer, window or amount.
        :raises SourceUnavailable: If an enabled source cannot be priced.
        :raises InsufficientHistory: If an enabled TWAP lacks pool history.
        """
        _check_amount(amount_in)
        token_in, token_out = _checksum(token_in, "token_in"), _checksum(token_out, "token_out")
        session = self._session()
        selector = Selector(
            feed=session.feed,
            cl_pool=session.cl_pool,
            cp_pool=session.cp_pool,
            strict=self.strict if strict is None else strict,
        )
        return selector.combined_quote(token_in, amount_in, token_out, buffer, window, inclusion)
