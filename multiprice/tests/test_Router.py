"""Unit tests for Router."""

import pytest

from multiprice.src.Asset import Asset
from multiprice.src.errors import SourceUnavailable
from multiprice.src.Router import Route, route

A = Asset("0x" + "aa" * 20, 18)
B = Asset("0x" + "bb" * 20, 6)
BASE1 = Asset("0x" + "01" * 20, 18)
BASE2 = Asset("0x" + "02" * 20, 18)


def make_hop(rates: dict[tuple[str, str], tuple[int, int]], calls: list | None = None):
    """Build a hop function from ``(in, out) -> (numerator, denominator)`` rates."""

    def hop(asset_in: Asset, amount: int, asset_out: Asset) -> int | None:
        if calls is not None:
            calls.append((asset_in.address, asset_out.address))
        rate = rates.get((asset_in.address, asset_out.address))
        if rate is None:
            return None
        return amount * rate[0] // rate[1]

    return hop


class TestRoute:
    """Test direct-or-via-base routing."""

    def test_direct(self) -> None:
        """A direct rate is used when available."""
        hop = make_hop({(A.address, B.address): (3, 1)})
        quote = route(hop, A, 100, B, bases=[BASE1])
        assert quote.amount == 300
        assert quote.route.is_direct
        assert str(quote.route) == "direct"

    def test_direct_preferred_over_base(self) -> None:
        """The direct rate wins over any base route."""
        hop = make_hop(
            {
                (A.address, B.address): (3, 1),
                (A.address, BASE1.address): (1, 1),
                (BASE1.address, B.address): (1, 1),
            }
        )
        assert route(hop, A, 100, B, bases=[BASE1]).amount == 300

    def test_via_base(self) -> None:
        """Without a direct rate the amount goes through a base."""
        hop = make_hop(
            {
                (A.address, BASE1.address): (2, 1),
                (BASE1.address, B.address): (5, 1),
            }
        )
        quote = route(hop, A, 100, B, bases=[BASE1])
        assert quote.amount == 1000
        assert quote.route == Route(via=BASE1)
        assert str(quote.route) == f"via {BASE1.address}"

    def test_second_leg_uses_first_leg_output(self) -> None:
        """Each leg floors, and the second leg consumes the floored amount."""
        hop = make_hop(
            {
                (A.address, BASE1.address): (1, 3),
                (BASE1.address, B.address): (3, 1),
            }
        )
        assert route(hop, A, 10, B, bases=[BASE1]).amount == 9

    def test_bases_tried_in_order(self) -> None:
        """Bases are tried in the given order."""
        hop = make_hop(
            {
                (A.address, BASE1.address): (1, 1),
                (A.address, BASE2.address): (1, 1),
                (BASE2.address, B.address): (7, 1),
            }
        )
        quote = route(hop, A, 10, B, bases=[BASE1, BASE2])
        assert quote.amount == 70
        assert quote.route.via == BASE2

    def test_base_equal_to_endpoint_skipped(self) -> None:
        """A base equal to either endpoint is not used."""
        calls: list = []
        hop = make_hop({}, calls)
        with pytest.raises(SourceUnavailable):
            route(hop, A, 10, BASE1, bases=[BASE1])
        assert calls == [(A.address, BASE1.address)]

    def test_same_asset_rescales(self) -> None:
        """Same address with different precisions only rescales."""
        hop = make_hop({})
        usd6 = Asset(A.address, 6)
        quote = route(hop, usd6, 1_500_000, A, bases=[])
        assert quote.amount == 1_500_000_000_000_000_000
        assert quote.route.is_direct

    def test_unavailable(self) -> None:
        """No route raises SourceUnavailable."""
        hop = make_hop({(A.address, BASE1.address): (1, 1)})
        with pytest.raises(SourceUnavailable, match="rate not available") as exc_info:
            route(hop, A, 10, B, bases=[BASE1], source="cp_pool")
        assert exc_info.value.reason == "rate not available"
        assert "cp_pool" in str(exc_info.value)
