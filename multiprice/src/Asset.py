"""Asset: Token identity and fixed-point amount helpers.

.. code-block:: python

    >>> usdc = Asset("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6)
    >>> usdc.to_amount("10000")
    10000000000
    >>> usdc.format_amount(28_490_000_000)
    Decimal('28490.000000')
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext

from web3 import Web3

# Enough digits for any uint256 amount
_PRECISION = 80


@dataclass(frozen=True)
class Asset:
    """A token identified by address, with its decimal precision.

    :ivar address: Checksummed token address (or a registry denomination).
    :ivar decimals: Number of fractional digits in the token's raw amounts.
    """

    address: str
    decimals: int

    def __post_init__(self) -> None:
        """Checksum the address and validate the precision."""
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {self.decimals}")
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))

    def __str__(self) -> str:
        """Return the address."""
        return self.address

    def to_amount(self, value: Decimal | int | str) -> int:
        """Convert a human-readable value into a raw integer amount (floored).

        :param value: Value in whole token units (e.g., "1.5").
        :returns: Raw amount scaled by ``10**decimals``.
        """
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return int(Decimal(value).scaleb(self.decimals))

    def format_amount(self, amount: int) -> Decimal:
        """Convert a raw integer amount into whole token units.

        :param amount: Raw amount.
        :returns: Exact decimal value in token units.
        """
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return Decimal(amount).scaleb(-self.decimals)


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Order two token addresses the way AMM factories do (token0 < token1).

    :param token_a: First token address.
    :param token_b: Second token address.
    :returns: ``(token0, token1)``.
    """
    if int(token_a, 16) < int(token_b, 16):
        return token_a, token_b
    return token_b, token_a
