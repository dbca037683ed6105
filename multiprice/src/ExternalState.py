"""ExternalState: Abstract read interface over feeds, pools and tokens.

The engine never talks to a chain directly. Every value it needs comes
through one of these methods, evaluated against a single consistent view
obtained from :meth:`ExternalState.pinned` at the start of each query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FeedAnswer:
    """Latest answer of a registry feed.

    :ivar answer: Price of one base unit in quote units, scaled by ``decimals``.
    :ivar decimals: Fixed-point precision of ``answer``.
    :ivar updated_at: Unix timestamp of the answer.
    """

    answer: int
    decimals: int
    updated_at: int = 0


class ExternalState(ABC):
    """Abstract base class for external state readers.

    Implementations must return values from one consistent view of the
    world for the lifetime of the object returned by :meth:`pinned`.
    """

    def pinned(self) -> ExternalState:
        """Return a reader bound to a single consistent view.

        The default implementation returns ``self``, which is correct for
        readers that are already immutable snapshots.

        :returns: State reader to use for exactly one query.
        """
        return self

    @abstractmethod
    def decimals(self, token: str) -> int:
        """Fetch the decimal precision of a token.

        :param token: Token address.
        :returns: Number of decimals.
        """
        pass

    @abstractmethod
    def latest_feed_answer(self, base: str, quote: str) -> FeedAnswer | None:
        """Fetch the latest registry answer for ``base`` priced in ``quote``.

        :param base: Base asset or denomination address.
        :param quote: Quote asset or denomination address.
        :returns: Latest answer, or None if the registry has no such feed.
        """
        pass

    @abstractmethod
    def cl_pool(self, factory: str, token_a: str, token_b: str, fee: int) -> str | None:
        """Look up a concentrated-liquidity pool.

        :param factory: Pool factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :param fee: Fee tier.
        :returns: Pool address, or None if no pool exists.
        """
        pass

    @abstractmethod
    def cl_sqrt_price(self, pool: str) -> int:
        """Fetch the current sqrt price (Q64.96, token1/token0) of a pool.

        :param pool: Pool address.
        :returns: ``sqrtPriceX96``.
        """
        pass

    @abstractmethod
    def cl_observe(self, pool: str, seconds_agos: list[int]) -> list[int]:
        """Fetch cumulative ticks at each ``now - seconds_ago``.

        :param pool: Pool address.
        :param seconds_agos: Offsets in seconds from the current time.
        :returns: Tick cumulatives, one per offset.
        :raises InsufficientHistory: If an offset predates the oldest observation.
        """
        pass

    @abstractmethod
    def cp_pair(self, factory: str, token_a: str, token_b: str) -> str | None:
        """Look up a constant-product pair.

        :param factory: Pair factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :returns: Pair address, or None if no pair exists.
        """
        pass

    @abstractmethod
    def cp_reserves(self, pair: str) -> tuple[int, int]:
        """Fetch the reserves of a constant-product pair.

        :param pair: Pair address.
        :returns: ``(reserve0, reserve1)`` ordered by token address.
        """
        pass
