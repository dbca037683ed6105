"""ExternalStateSnapshot: In-memory external state for offline replay and tests.

Concentrated-liquidity pools keep an observation buffer that behaves like
the on-chain oracle: ``observe`` extrapolates the newest observation to
the snapshot time with the current tick, interpolates between stored
observations, and refuses targets older than the oldest observation.

.. code-block:: python

    >>> snapshot = ExternalStateSnapshot(timestamp=1_700_000_000)
    >>> snapshot.add_token(WETH, 18)
    >>> snapshot.add_token(USDC, 6)
    >>> snapshot.add_feed(ETH_DENOMINATION, USD_DENOMINATION, 2850_00000000)
    >>> snapshot.add_cl_pool(FACTORY, WETH, USDC, 3000, price=Decimal("2850"))
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from web3 import Web3

from .Asset import sort_tokens
from .errors import InsufficientHistory
from .ExternalState import ExternalState, FeedAnswer
from .tick_math import get_sqrt_ratio_at_tick, price_to_tick

logger = logging.getLogger(__name__)

# Default length of recorded pool history (one day).
DEFAULT_HISTORY_SECONDS = 86400


@dataclass(frozen=True)
class Observation:
    """A stored cumulative-tick observation.

    :ivar timestamp: Unix timestamp of the observation.
    :ivar tick_cumulative: Sum of tick * seconds up to ``timestamp``.
    """

    timestamp: int
    tick_cumulative: int


@dataclass
class SnapshotClPool:
    """State of one concentrated-liquidity pool.

    :ivar token0: Lower-address token.
    :ivar token1: Higher-address token.
    :ivar fee: Fee tier.
    :ivar sqrt_price_x96: Current sqrt price.
    :ivar tick: Current tick.
    :ivar observations: Observations sorted by timestamp, oldest first.
    """

    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int
    tick: int
    observations: list[Observation] = field(default_factory=list)

    def observe_single(self, now: int, seconds_ago: int) -> int:
        """Cumulative tick at ``now - seconds_ago``.

        :param now: Snapshot time.
        :param seconds_ago: Offset from ``now``.
        :returns: Tick cumulative at the target time.
        :raises InsufficientHistory: If the target predates the oldest observation.
        """
        target = now - seconds_ago
        oldest = self.observations[0]
        newest = self.observations[-1]

        if target < oldest.timestamp:
            raise InsufficientHistory(
                "old observation",
                f"target {target} precedes oldest observation at {oldest.timestamp}",
            )

        if target >= newest.timestamp:
            return newest.tick_cumulative + self.tick * (target - newest.timestamp)

        timestamps = [o.timestamp for o in self.observations]
        index = bisect.bisect_right(timestamps, target)
        before = self.observations[index - 1]
        if before.timestamp == target:
            return before.tick_cumulative
        after = self.observations[index]

        # Truncating integer division, as in the on-chain oracle
        step = after.tick_cumulative - before.tick_cumulative
        elapsed = after.timestamp - before.timestamp
        per_second = abs(step) // elapsed * (1 if step >= 0 else -1)
        return before.tick_cumulative + per_second * (target - before.timestamp)


class ExternalStateSnapshot(ExternalState):
    """Immutable-by-convention view of feeds, pools and tokens held in memory.

    :ivar timestamp: Time at which the snapshot was taken.
    """

    def __init__(self, timestamp: int) -> None:
        """Initialize an empty snapshot.

        :param timestamp: Unix timestamp the snapshot represents.
        """
        self.timestamp = timestamp
        self._decimals: dict[str, int] = {}
        self._feeds: dict[tuple[str, str], FeedAnswer] = {}
        self._cl_pools: dict[str, SnapshotClPool] = {}
        self._cl_index: dict[tuple[str, str, str, int], str] = {}
        self._cp_reserves: dict[str, tuple[int, int]] = {}
        self._cp_index: dict[tuple[str, str, str], str] = {}

    @staticmethod
    def _key(address: str) -> str:
        return Web3.to_checksum_address(address)

    @staticmethod
    def derive_address(*parts: str | int) -> str:
        """Derive a deterministic pseudo-address from its identifying parts.

        :param parts: Addresses and integers identifying a pool or pair.
        :returns: Checksummed address.
        """
        types = ["address" if isinstance(p, str) else "uint256" for p in parts]
        values = [Web3.to_checksum_address(p) if isinstance(p, str) else p for p in parts]
        digest = Web3.solidity_keccak(types, values)
        return Web3.to_checksum_address(digest[-20:])

    def add_token(self, token: str, decimals: int) -> None:
        """Register a token's decimals.

        :param token: Token address.
        :param decimals: Token precision.
        """
        self._decimals[self._key(token)] = decimals

    def add_feed(
        self,
        base: str,
        quote: str,
        answer: int,
        decimals: int = 8,
        updated_at: int | None = None,
    ) -> None:
        """Register a registry feed.

        :param base: Base asset or denomination.
        :param quote: Quote asset or denomination.
        :param answer: Scaled price of one base unit in quote units.
        :param decimals: Precision of ``answer`` (default: 8).
        :param updated_at: Answer timestamp (default: snapshot time).
        """
        self._feeds[(self._key(base), self._key(quote))] = FeedAnswer(
            answer=answer,
            decimals=decimals,
            updated_at=self.timestamp if updated_at is None else updated_at,
        )

    def add_cl_pool(
        self,
        factory: str,
        token_a: str,
        token_b: str,
        fee: int,
        price: Decimal,
        twap_price: Decimal | None = None,
        history_seconds: int = DEFAULT_HISTORY_SECONDS,
    ) -> str:
        """Register a concentrated-liquidity pool with a flat tick history.

        Both tokens must already be registered with :meth:`add_token`.

        :param factory: Pool factory address.
        :param token_a: Token the prices are quoted for.
        :param token_b: Token the prices are quoted in.
        :param fee: Fee tier.
        :param price: Current price, whole ``token_b`` per whole ``token_a``.
        :param twap_price: Price held over the recorded history
            (default: ``price``).
        :param history_seconds: How far back the pool has observations.
        :returns: Derived pool address.
        """
        token_a, token_b = self._key(token_a), self._key(token_b)
        token0, token1 = sort_tokens(token_a, token_b)
        tick = self._tick_for(token_a, token_b, price)
        history_tick = tick if twap_price is None else self._tick_for(token_a, token_b, twap_price)

        start = self.timestamp - history_seconds
        pool = SnapshotClPool(
            token0=token0,
            token1=token1,
            fee=fee,
            sqrt_price_x96=get_sqrt_ratio_at_tick(tick),
            tick=tick,
            observations=[
                Observation(timestamp=start, tick_cumulative=0),
                Observation(timestamp=self.timestamp, tick_cumulative=history_tick * history_seconds),
            ],
        )
        address = self.derive_address(self._key(factory), token0, token1, fee)
        self._cl_pools[address] = pool
        self._cl_index[(self._key(factory), token0, token1, fee)] = address
        logger.debug(f"Snapshot CL pool {address}: {token0}/{token1} fee={fee} tick={tick}")
        return address

    def _tick_for(self, token_a: str, token_b: str, price: Decimal) -> int:
        # Raw token1/token0 ratio implied by a whole-unit price of token_a in token_b
        raw = Decimal(price) * Decimal(10) ** (self._decimals[token_b] - self._decimals[token_a])
        token0, _ = sort_tokens(token_a, token_b)
        ratio = raw if token0 == token_a else 1 / raw
        return price_to_tick(float(ratio))

    def add_cp_pair(
        self,
        factory: str,
        token_a: str,
        reserve_a: int,
        token_b: str,
        reserve_b: int,
    ) -> str:
        """Register a constant-product pair with its reserves.

        :param factory: Pair factory address.
        :param token_a: First token.
        :param reserve_a: Raw reserve of ``token_a``.
        :param token_b: Second token.
        :param reserve_b: Raw reserve of ``token_b``.
        :returns: Derived pair address.
        """
        token_a, token_b = self._key(token_a), self._key(token_b)
        token0, token1 = sort_tokens(token_a, token_b)
        reserves = (reserve_a, reserve_b) if token0 == token_a else (reserve_b, reserve_a)

        address = self.derive_address(self._key(factory), token0, token1)
        self._cp_reserves[address] = reserves
        self._cp_index[(self._key(factory), token0, token1)] = address
        return address

    def decimals(self, token: str) -> int:
        """Return registered token decimals.

        :param token: Token address.
        :returns: Number of decimals.
        :raises KeyError: If the token was never registered.
        """
        return self._decimals[self._key(token)]

    def latest_feed_answer(self, base: str, quote: str) -> FeedAnswer | None:
        """Return a registered feed answer.

        :param base: Base asset or denomination.
        :param quote: Quote asset or denomination.
        :returns: Feed answer, or None if not registered.
        """
        return self._feeds.get((self._key(base), self._key(quote)))

    def cl_pool(self, factory: str, token_a: str, token_b: str, fee: int) -> str | None:
        """Look up a registered pool.

        :param factory: Pool factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :param fee: Fee tier.
        :returns: Pool address, or None.
        """
        token0, token1 = sort_tokens(self._key(token_a), self._key(token_b))
        return self._cl_index.get((self._key(factory), token0, token1, fee))

    def cl_sqrt_price(self, pool: str) -> int:
        """Return a pool's current sqrt price.

        :param pool: Pool address.
        :returns: ``sqrtPriceX96``.
        """
        return self._cl_pools[self._key(pool)].sqrt_price_x96

    def cl_observe(self, pool: str, seconds_agos: list[int]) -> list[int]:
        """Return cumulative ticks at each offset.

        :param pool: Pool address.
        :param seconds_agos: Offsets in seconds from the snapshot time.
        :returns: Tick cumulatives.
        :raises InsufficientHistory: If an offset predates the pool's history.
        """
        state = self._cl_pools[self._key(pool)]
        return [state.observe_single(self.timestamp, s) for s in seconds_agos]

    def cp_pair(self, factory: str, token_a: str, token_b: str) -> str | None:
        """Look up a registered pair.

        :param factory: Pair factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :returns: Pair address, or None.
        """
        token0, token1 = sort_tokens(self._key(token_a), self._key(token_b))
        return self._cp_index.get((self._key(factory), token0, token1))

    def cp_reserves(self, pair: str) -> tuple[int, int]:
        """Return a pair's reserves.

        :param pair: Pair address.
        :returns: ``(reserve0, reserve1)``.
        """
        return self._cp_reserves[self._key(pair)]
