"""Router: Direct-or-via-base routing shared by every adapter family.

An adapter supplies a single-hop quote function that returns ``None`` when
no direct market (feed or pool) exists for a pair. :func:`route` tries the
direct hop first, then composes two hops through each candidate base
asset in order.

Legs are composed by feeding the first leg's output amount into the
second hop, so decimal rebasing happens inside each hop and the final
amount is always expressed in the output asset's precision.

.. code-block:: python

    >>> quote = route(hop, wbtc, wbtc.to_amount(10), usdc, bases=[weth])
    >>> quote.route
    Route(via=Asset(address='0xC02a...', decimals=18))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .Asset import Asset
from .DecimalNormalizer import rescale
from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

# (asset_in, amount_in, asset_out) -> amount_out, or None if no direct market
HopFn = Callable[[Asset, int, Asset], Optional[int]]


@dataclass(frozen=True)
class Route:
    """Path a quote took.

    :ivar via: Base asset of a two-hop route, or None for a direct quote.
    """

    via: Asset | None = None

    @property
    def is_direct(self) -> bool:
        """Check whether the quote used a single direct market."""
        return self.via is None

    def __str__(self) -> str:
        """Return a short description of the route."""
        return "direct" if self.via is None else f"via {self.via.address}"


@dataclass(frozen=True)
class RoutedQuote:
    """Output amount together with the route that produced it.

    :ivar amount: Output amount in the output asset's precision.
    :ivar route: Route used.
    """

    amount: int
    route: Route


def route(
    hop: HopFn,
    asset_in: Asset,
    amount_in: int,
    asset_out: Asset,
    bases: Sequence[Asset],
    *,
    source: str = "source",
) -> RoutedQuote:
    """Quote ``amount_in`` of ``asset_in`` in ``asset_out``.

    :param hop: Single-hop quote function.
    :param asset_in: Asset being converted.
    :param amount_in: Raw input amount.
    :param asset_out: Asset to convert into.
    :param bases: Intermediate assets to try, in order, when no direct
        market exists.
    :param source: Source name used in failure messages.
    :returns: Output amount and the route taken.
    :raises SourceUnavailable: If neither a direct nor a routed market exists.
    """
    if asset_in.address == asset_out.address:
        amount_out = rescale(amount_in, asset_in.decimals, asset_out.decimals)
        return RoutedQuote(amount=amount_out, route=Route())

    direct = hop(asset_in, amount_in, asset_out)
    if direct is not None:
        logger.debug(f"[{source}] {asset_in} -> {asset_out}: direct")
        return RoutedQuote(amount=direct, route=Route())

    for base in bases:
        if base.address in (asset_in.address, asset_out.address):
            continue
        leg = hop(asset_in, amount_in, base)
        if leg is None:
            continue
        amount_out = hop(base, leg, asset_out)
        if amount_out is None:
            continue
        logger.debug(f"[{source}] {asset_in} -> {asset_out}: via {base}")
        return RoutedQuote(amount=amount_out, route=Route(via=base))

    raise SourceUnavailable(
        "rate not available",
        f"{source} has no direct or routed market for {asset_in} -> {asset_out}",
    )
