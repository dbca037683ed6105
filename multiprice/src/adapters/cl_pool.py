"""Concentrated-liquidity pool adapter (spot and TWAP).

Pools are located at the configured canonical fee tier. Pairs without a
pool are routed through the native asset. Spot quotes use the pool's
current sqrt price; TWAP quotes use the arithmetic mean tick of the
pool's observations over the trailing window.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..Asset import Asset
from ..errors import InvalidParameter
from ..Router import route
from ..tick_math import get_quote_at_sqrt_ratio, get_sqrt_ratio_at_tick, mean_tick
from .base import BaseAdapter

logger = logging.getLogger(__name__)


class ClPoolAdapter(BaseAdapter):
    """Quotes pairs from concentrated-liquidity pools."""

    name = "cl_pool"

    def _quote(
        self,
        token_in: str,
        amount_in: int,
        token_out: str,
        sqrt_price: Callable[[str], int],
        source: str,
    ) -> int:
        def hop(asset_in: Asset, amount: int, asset_out: Asset) -> int | None:
            pool = self.state.cl_pool(
                self.config.cl_factory,
                asset_in.address,
                asset_out.address,
                self.config.cl_pool_fee,
            )
            if pool is None:
                return None
            return get_quote_at_sqrt_ratio(
                sqrt_price(pool), amount, asset_in.address, asset_out.address
            )

        quote = route(
            hop,
            self.asset(token_in),
            amount_in,
            self.asset(token_out),
            bases=(self.native,),
            source=source,
        )
        logger.debug(f"[{source}] {token_in} -> {token_out} ({quote.route}): {quote.amount}")
        return quote.amount

    def spot_quote(self, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote at the pools' current prices.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: Raw output amount.
        :raises SourceUnavailable: If no direct or routed pool exists.
        """
        return self._quote(token_in, amount_in, token_out, self.state.cl_sqrt_price, "cl_spot")

    def twap_quote(self, token_in: str, amount_in: int, token_out: str, window: int) -> int:
        """Quote at the pools' time-weighted average prices.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param window: Trailing window in seconds.
        :returns: Raw output amount.
        :raises InvalidParameter: If the window is not positive.
        :raises InsufficientHistory: If a pool's history is shorter than the window.
        :raises SourceUnavailable: If no direct or routed pool exists.
        """
        if window <= 0:
            raise InvalidParameter("bad period", f"window must be positive, got {window}")

        def twap_sqrt_price(pool: str) -> int:
            tick = mean_tick(self.state.cl_observe(pool, [window, 0]), window)
            return get_sqrt_ratio_at_tick(tick)

        return self._quote(token_in, amount_in, token_out, twap_sqrt_price, "cl_twap")
