"""Unit tests for ExternalStateSnapshot."""

from decimal import Decimal

import pytest
from web3 import Web3

from multiprice.src.errors import InsufficientHistory
from multiprice.src.ExternalStateSnapshot import ExternalStateSnapshot, Observation, SnapshotClPool
from multiprice.src.tick_math import get_quote_at_sqrt_ratio

FACTORY = "0x" + "ab" * 20


class TestSnapshotBasics:
    """Test token, feed and pair registration."""

    def test_decimals(self, empty_snapshot, tokens) -> None:
        """Decimals are looked up by checksummed address."""
        assert empty_snapshot.decimals(tokens.USDC.lower()) == 6
        with pytest.raises(KeyError):
            empty_snapshot.decimals("0x" + "12" * 20)

    def test_feed_defaults(self, empty_snapshot, tokens) -> None:
        """Feeds default to 8 decimals at the snapshot time."""
        empty_snapshot.add_feed(tokens.ETH, tokens.USD, 2850_00000000)
        answer = empty_snapshot.latest_feed_answer(tokens.ETH, tokens.USD)
        assert answer.answer == 2850_00000000
        assert answer.decimals == 8
        assert answer.updated_at == empty_snapshot.timestamp
        assert empty_snapshot.latest_feed_answer(tokens.USD, tokens.ETH) is None

    def test_pinned_is_self(self, empty_snapshot) -> None:
        """A snapshot is its own pinned view."""
        assert empty_snapshot.pinned() is empty_snapshot

    def test_derive_address(self, tokens) -> None:
        """Derived addresses are deterministic and independent of input casing."""
        a = ExternalStateSnapshot.derive_address(FACTORY, tokens.USDC, tokens.WETH, 3000)
        b = ExternalStateSnapshot.derive_address(FACTORY, tokens.USDC, tokens.WETH, 500)
        assert a == Web3.to_checksum_address(a)
        assert a == ExternalStateSnapshot.derive_address(FACTORY, tokens.USDC, tokens.WETH, 3000)
        assert a == ExternalStateSnapshot.derive_address(
            Web3.to_checksum_address(FACTORY), tokens.USDC.lower(), tokens.WETH, 3000
        )
        assert a != b

    def test_cp_pair_orientation(self, empty_snapshot, tokens) -> None:
        """Reserves are returned in token0/token1 order regardless of input order."""
        pair = empty_snapshot.add_cp_pair(FACTORY, tokens.WETH, 10, tokens.USDC, 20)
        assert empty_snapshot.cp_pair(FACTORY, tokens.USDC, tokens.WETH) == pair
        assert empty_snapshot.cp_pair(FACTORY, tokens.WETH, tokens.USDC) == pair
        assert empty_snapshot.cp_reserves(pair) == (20, 10)
        assert empty_snapshot.cp_pair("0x" + "cd" * 20, tokens.WETH, tokens.USDC) is None


class TestSnapshotClPool:
    """Test concentrated-liquidity pool state."""

    def test_lookup(self, empty_snapshot, tokens) -> None:
        """Pools are found for either token order at their fee tier."""
        pool = empty_snapshot.add_cl_pool(FACTORY, tokens.WETH, tokens.USDC, 3000, price=Decimal("2849.5"))
        assert empty_snapshot.cl_pool(FACTORY, tokens.USDC, tokens.WETH, 3000) == pool
        assert empty_snapshot.cl_pool(FACTORY, tokens.USDC, tokens.WETH, 500) is None

    def test_sqrt_price_encodes_price(self, empty_snapshot, tokens) -> None:
        """The stored sqrt price encodes the requested price."""
        pool = empty_snapshot.add_cl_pool(FACTORY, tokens.WETH, tokens.USDC, 3000, price=Decimal("2849.5"))
        sqrt_price = empty_snapshot.cl_sqrt_price(pool)
        amount = get_quote_at_sqrt_ratio(sqrt_price, 10**18, tokens.WETH, tokens.USDC)
        assert amount == pytest.approx(2849.5 * 10**6, rel=2e-4)

    def test_flat_history(self, empty_snapshot, tokens) -> None:
        """A flat history yields the same mean tick over any window."""
        pool = empty_snapshot.add_cl_pool(
            FACTORY, tokens.WBTC, tokens.WETH, 3000, price=Decimal("14"), history_seconds=3600
        )
        start, end = empty_snapshot.cl_observe(pool, [1800, 0])
        first, _ = empty_snapshot.cl_observe(pool, [3600, 0])
        assert (end - start) % 1800 == 0
        assert (end - start) // 1800 == (end - first) // 3600

    def test_history_bound(self, empty_snapshot, tokens) -> None:
        """Observations older than the history raise an error."""
        pool = empty_snapshot.add_cl_pool(
            FACTORY, tokens.WBTC, tokens.WETH, 3000, price=Decimal("14"), history_seconds=600
        )
        with pytest.raises(InsufficientHistory, match="old observation"):
            empty_snapshot.cl_observe(pool, [601, 0])


class TestObserveSingle:
    """Test cumulative-tick lookups on an observation buffer."""

    @pytest.fixture
    def pool(self) -> SnapshotClPool:
        return SnapshotClPool(
            token0="0x" + "01" * 20,
            token1="0x" + "02" * 20,
            fee=3000,
            sqrt_price_x96=0,
            tick=50,
            observations=[
                Observation(timestamp=0, tick_cumulative=0),
                Observation(timestamp=10, tick_cumulative=100),
                Observation(timestamp=20, tick_cumulative=300),
            ],
        )

    def test_extrapolates_with_current_tick(self, pool) -> None:
        """Targets after the newest observation use the current tick."""
        assert pool.observe_single(30, 0) == 300 + 50 * 10

    def test_exact_observation(self, pool) -> None:
        """Targets on an observation return it as stored."""
        assert pool.observe_single(30, 20) == 100
        assert pool.observe_single(30, 30) == 0

    def test_interpolates(self, pool) -> None:
        """Targets between observations are interpolated."""
        assert pool.observe_single(30, 25) == 50
        assert pool.observe_single(30, 15) == 200

    def test_interpolation_truncates_toward_zero(self) -> None:
        """Interpolated cumulatives truncate toward zero."""
        pool = SnapshotClPool(
            token0="0x" + "01" * 20,
            token1="0x" + "02" * 20,
            fee=3000,
            sqrt_price_x96=0,
            tick=0,
            observations=[Observation(0, 0), Observation(3, -10)],
        )
        assert pool.observe_single(3, 2) == -3

    def test_too_old(self, pool) -> None:
        """Targets before the oldest observation raise an error."""
        with pytest.raises(InsufficientHistory):
            pool.observe_single(30, 31)
