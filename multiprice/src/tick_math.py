"""Tick and sqrt-price math for concentrated-liquidity pools.

Integer ports of the Uniswap V3 ``TickMath.getSqrtRatioAtTick`` and
``OracleLibrary.getQuoteAtTick`` routines, so that quotes computed here
agree bit-for-bit with what the pool contracts themselves would compute.
"""

from __future__ import annotations

import math

MIN_TICK = -887272
MAX_TICK = 887272

Q64 = 1 << 64
Q96 = 1 << 96
Q128 = 1 << 128
Q192 = 1 << 192
MAX_UINT128 = (1 << 128) - 1
MAX_UINT256 = (1 << 256) - 1

# Bit -> multiplier (Q128) applied when that bit of |tick| is set.
_TICK_RATIOS: tuple[tuple[int, int], ...] = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Calculate ``sqrt(1.0001^tick) * 2^96`` as a Q64.96 integer.

    :param tick: Tick index within ``[MIN_TICK, MAX_TICK]``.
    :returns: The sqrt price, rounded up.
    :raises ValueError: If the tick is out of range.
    """
    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise ValueError(f"tick {tick} out of range")

    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else Q128
    for bit, multiplier in _TICK_RATIOS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_quote_at_sqrt_ratio(
    sqrt_ratio_x96: int, base_amount: int, base_token: str, quote_token: str
) -> int:
    """Convert ``base_amount`` of ``base_token`` into ``quote_token``.

    The sqrt ratio is always token1/token0, where token0 is the token with
    the numerically lower address.

    :param sqrt_ratio_x96: Pool sqrt price as a Q64.96 integer.
    :param base_amount: Amount of the base token, in its raw units.
    :param base_token: Address of the token being converted.
    :param quote_token: Address of the token to convert into.
    :returns: Amount of quote token, in its raw units, floored.
    """
    base_is_token0 = int(base_token, 16) < int(quote_token, 16)

    if sqrt_ratio_x96 <= MAX_UINT128:
        ratio_x192 = sqrt_ratio_x96 * sqrt_ratio_x96
        if base_is_token0:
            return ratio_x192 * base_amount // Q192
        return Q192 * base_amount // ratio_x192

    ratio_x128 = sqrt_ratio_x96 * sqrt_ratio_x96 // Q64
    if base_is_token0:
        return ratio_x128 * base_amount // Q128
    return Q128 * base_amount // ratio_x128


def get_quote_at_tick(tick: int, base_amount: int, base_token: str, quote_token: str) -> int:
    """Convert an amount at the price implied by ``tick``.

    :param tick: Tick whose price is used.
    :param base_amount: Amount of the base token.
    :param base_token: Address of the token being converted.
    :param quote_token: Address of the token to convert into.
    :returns: Amount of quote token.
    """
    return get_quote_at_sqrt_ratio(
        get_sqrt_ratio_at_tick(tick), base_amount, base_token, quote_token
    )


def mean_tick(tick_cumulatives: list[int], window: int) -> int:
    """Arithmetic mean tick between two cumulative-tick observations.

    The division rounds toward negative infinity, like the on-chain oracle
    library.

    :param tick_cumulatives: ``[cumulative at now - window, cumulative at now]``.
    :param window: Seconds elapsed between both observations.
    :returns: Mean tick over the window.
    """
    delta = tick_cumulatives[1] - tick_cumulatives[0]
    return delta // window


def price_to_tick(ratio: float) -> int:
    """Greatest tick whose price does not exceed ``ratio``.

    Float precision is sufficient for building pool states; it is never
    used on the quoting path.

    :param ratio: Raw token1/token0 price (already including decimals).
    :returns: Tick index.
    """
    if ratio <= 0:
        raise ValueError("ratio must be positive")
    tick = math.floor(math.log(ratio) / math.log(1.0001))
    return max(MIN_TICK, min(MAX_TICK, tick))
