"""Registry feed adapter.

Prices come from an aggregated feed registry keyed by ``(base, quote)``
addresses. The native asset is priced as the ETH denomination and
USD-equivalent tokens as the USD denomination, so for example USDC -> WETH
is a single inverse lookup of the ETH/USD feed.

Pairs without a direct (or inverse) feed are composed through reference
units, USD first and ETH second: ``asset_in -> USD -> asset_out``.
Intermediate reference amounts carry 18 decimals.
"""

from __future__ import annotations

import logging

from ..Asset import Asset
from ..DecimalNormalizer import mul_div
from ..errors import InvalidParameter
from ..ExternalState import FeedAnswer
from ..OracleConfig import DENOMINATION_ETH, DENOMINATION_USD
from ..Router import route
from .base import BaseAdapter

logger = logging.getLogger(__name__)

# Buffer fractions are expressed with 18 decimals (10**18 == 100%).
BUFFER_SCALE = 10**18

# Precision of intermediate amounts denominated in a reference unit.
REFERENCE_DECIMALS = 18

USD_REFERENCE = Asset(DENOMINATION_USD, REFERENCE_DECIMALS)
ETH_REFERENCE = Asset(DENOMINATION_ETH, REFERENCE_DECIMALS)


def check_buffer(buffer: int) -> None:
    """Validate a buffer fraction.

    :param buffer: Discount as a fraction of ``BUFFER_SCALE``.
    :raises InvalidParameter: If the buffer is outside ``[0, BUFFER_SCALE]``.
    """
    if not 0 <= buffer <= BUFFER_SCALE:
        raise InvalidParameter("buffer out of range", f"{buffer} not in [0, {BUFFER_SCALE}]")


def apply_buffer(amount: int, buffer: int) -> int:
    """Discount an amount by a buffer fraction.

    :param amount: Amount to discount.
    :param buffer: Discount as a fraction of ``BUFFER_SCALE``.
    :returns: ``floor(amount * (1 - buffer))``; strictly lower than
        ``amount`` whenever both are positive.
    :raises InvalidParameter: If the buffer is out of range.

    .. code-block:: python

        >>> apply_buffer(402_500_000000, 10**16)  # 1%
        398475000000
    """
    check_buffer(buffer)
    return mul_div(amount, BUFFER_SCALE - buffer, BUFFER_SCALE)


class FeedAdapter(BaseAdapter):
    """Quotes pairs from the feed registry."""

    name = "registry"

    def _feed_asset(self, token: str) -> Asset:
        # Registry key of the token, with the token's own precision
        asset = self.asset(token)
        return Asset(self.config.feed_key(asset.address), asset.decimals)

    def _answer(self, base: str, quote: str) -> FeedAnswer | None:
        feed = self.state.latest_feed_answer(base, quote)
        if feed is None:
            return None
        if feed.answer <= 0:
            logger.debug(f"[{self.name}] Ignoring non-positive answer for {base}/{quote}: {feed.answer}")
            return None
        return feed

    def _hop(self, asset_in: Asset, amount_in: int, asset_out: Asset) -> int | None:
        feed = self._answer(asset_in.address, asset_out.address)
        if feed is not None:
            return mul_div(
                amount_in * feed.answer,
                10**asset_out.decimals,
                10 ** (feed.decimals + asset_in.decimals),
            )

        inverse = self._answer(asset_out.address, asset_in.address)
        if inverse is not None:
            return mul_div(
                amount_in * 10**inverse.decimals,
                10**asset_out.decimals,
                inverse.answer * 10**asset_in.decimals,
            )

        return None

    def quote(self, token_in: str, amount_in: int, token_out: str) -> int:
        """Quote ``amount_in`` of ``token_in`` in ``token_out``.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :returns: Raw output amount.
        :raises SourceUnavailable: If no feed or feed composition prices the pair.
        """
        asset_in = self._feed_asset(token_in)
        asset_out = self._feed_asset(token_out)
        quote = route(
            self._hop,
            asset_in,
            amount_in,
            asset_out,
            bases=(USD_REFERENCE, ETH_REFERENCE),
            source=self.name,
        )
        logger.debug(f"[{self.name}] {token_in} -> {token_out} ({quote.route}): {quote.amount}")
        return quote.amount

    def buffered_quote(self, token_in: str, amount_in: int, token_out: str, buffer: int) -> int:
        """Quote with a conservative discount applied.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param buffer: Discount as a fraction of ``BUFFER_SCALE``.
        :returns: Buffered raw output amount, never above :meth:`quote`.
        :raises InvalidParameter: If the buffer is out of range.
        :raises SourceUnavailable: If the pair cannot be priced.
        """
        check_buffer(buffer)
        return apply_buffer(self.quote(token_in, amount_in, token_out), buffer)
