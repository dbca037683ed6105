"""Constant-product pool adapter.

The factory is a parameter, so the same logic serves every deployment
that shares the pair-lookup scheme. Pairs without a pool (or with an
empty input reserve) are routed through the native asset.
"""

from __future__ import annotations

import logging

from web3 import Web3

from ..Asset import Asset, sort_tokens
from ..DecimalNormalizer import mul_div
from ..Router import route
from .base import BaseAdapter

logger = logging.getLogger(__name__)


class CpPoolAdapter(BaseAdapter):
    """Quotes pairs from constant-product pools."""

    name = "cp_pool"

    def spot_quote(self, factory: str, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote at the reserve ratio of the factory's pools.

        :param factory: Pair factory address.
        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: ``floor(amount_in * reserve_out / reserve_in)``, per hop.
        :raises SourceUnavailable: If no direct or routed pair exists.
        """
        factory = Web3.to_checksum_address(factory)

        def hop(asset_in: Asset, amount: int, asset_out: Asset) -> int | None:
            pair = self.state.cp_pair(factory, asset_in.address, asset_out.address)
            if pair is None:
                return None
            reserve0, reserve1 = self.state.cp_reserves(pair)
            token0, _ = sort_tokens(asset_in.address, asset_out.address)
            if asset_in.address == token0:
                reserve_in, reserve_out = reserve0, reserve1
            else:
                reserve_in, reserve_out = reserve1, reserve0
            if reserve_in == 0:
                logger.debug(f"[{self.name}] Pair {pair} has no {asset_in} reserve")
                return None
            return mul_div(amount, reserve_out, reserve_in)

        quote = route(
            hop,
            self.asset(token_in),
            amount_in,
            self.asset(token_out),
            bases=(self.native,),
            source=f"{self.name}@{factory}",
        )
        logger.debug(f"[{self.name}] {token_in} -> {token_out} ({quote.route}): {quote.amount}")
        return quote.amount
