"""Selector: Combined quote across the enabled source families.

Algorithm:
    1. Validate the inclusion mask (5 bits, 0..31)
    2. Invoke every enabled family; the registry family also yields its
       buffered variant
    3. Collect candidates in canonical order: registry, registry_buffered,
       cl_twap, cl_spot, cp_spot_a, cp_spot_b
    4. Pick the minimum; ties go to the earliest candidate in canonical order
    5. Return the value, the winning source and every candidate

An enabled family that cannot be computed fails the whole query in
strict mode. In lenient mode a ``SourceUnavailable`` or
``InsufficientHistory`` failure only drops that family; invalid
parameters always fail.

.. code-block:: python

    >>> result = selector.combined_quote(weth, 10 * 10**18, usdc, 0, 1800, Inclusion.ALL)
    >>> result.source
    <SourceId.CP_SPOT_A: 'cp_spot_a'>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import TYPE_CHECKING, Callable, Mapping

from .adapters.feed import apply_buffer, check_buffer
from .errors import InsufficientHistory, InvalidParameter, SourceUnavailable

if TYPE_CHECKING:
    from .adapters import ClPoolAdapter, CpPoolAdapter, FeedAdapter

logger = logging.getLogger(__name__)


class SourceId(str, Enum):
    """Named price candidates, declared in canonical evaluation order."""

    REGISTRY = "registry"
    REGISTRY_BUFFERED = "registry_buffered"
    CL_TWAP = "cl_twap"
    CL_SPOT = "cl_spot"
    CP_SPOT_A = "cp_spot_a"
    CP_SPOT_B = "cp_spot_b"


CANONICAL_ORDER: tuple[SourceId, ...] = tuple(SourceId)


class Inclusion(IntFlag):
    """Inclusion mask bits, one per source family."""

    REGISTRY = 0b00001
    CL_TWAP = 0b00010
    CL_SPOT = 0b00100
    CP_SPOT_A = 0b01000
    CP_SPOT_B = 0b10000
    ALL = 0b11111


def validate_inclusion(mask: int) -> Inclusion:
    """Validate a raw inclusion mask.

    :param mask: Integer mask.
    :returns: The mask as :class:`Inclusion` flags.
    :raises InvalidParameter: If the mask is not an integer within ``0..31``.
    """
    if isinstance(mask, bool) or not isinstance(mask, int) or not 0 <= mask <= Inclusion.ALL:
        raise InvalidParameter("inclusion bitmap invalid", f"{mask!r} not in [0, {int(Inclusion.ALL)}]")
    return Inclusion(mask)


@dataclass(frozen=True)
class AggregateResult:
    """Result of a combined quote.

    :ivar value: Selected output amount.
    :ivar source: Candidate the value was taken from.
    :ivar decimals: Precision of the output asset.
    :ivar candidates: Every candidate amount; ``0`` for families not computed.
    """

    value: int
    source: SourceId
    decimals: int
    candidates: Mapping[SourceId, int] = field(default_factory=dict)

    def get(self, source: SourceId | str) -> int:
        """Return the amount computed by one candidate.

        :param source: Candidate identifier.
        :returns: Candidate amount, or ``0`` if it was not computed.
        """
        return self.candidates.get(SourceId(source), 0)

    def as_dict(self) -> dict[str, int | str]:
        """Flatten the result for logging or serialization."""
        flat: dict[str, int | str] = {"value": self.value, "source": self.source.value}
        flat.update({s.value: self.get(s) for s in CANONICAL_ORDER})
        return flat


def select(candidates: Mapping[SourceId, int]) -> tuple[SourceId, int]:
    """Pick the lowest candidate, breaking ties by canonical order.

    :param candidates: Computed candidates.
    :returns: ``(source, value)`` of the winner.
    :raises SourceUnavailable: If there are no candidates.
    """
    ordered = [(s, candidates[s]) for s in CANONICAL_ORDER if s in candidates]
    if not ordered:
        raise SourceUnavailable("no price source available")
    # min() keeps the first of equal elements
    return min(ordered, key=lambda item: item[1])


class Selector:
    """Runs the enabled adapters and selects the conservative quote.

    :ivar strict: Whether an enabled but uncomputable source fails the query.
    """

    def __init__(
        self,
        feed: FeedAdapter,
        cl_pool: ClPoolAdapter,
        cp_pool: CpPoolAdapter,
        strict: bool = True,
    ) -> None:
        """Initialize the selector for one query.

        :param feed: Registry adapter.
        :param cl_pool: Concentrated-liquidity adapter.
        :param cp_pool: Constant-product adapter.
        :param strict: Fail on any enabled source failure (default: True).
        """
        self.feed = feed
        self.cl_pool = cl_pool
        self.cp_pool = cp_pool
        self.strict = strict

    def _families(
        self,
        token_in: str,
        amount_in: int,
        token_out: str,
        buffer: int,
        window: int,
    ) -> list[tuple[Inclusion, Callable[[], dict[SourceId, int]]]]:
        config = self.feed.config

        def registry() -> dict[SourceId, int]:
            value = self.feed.quote(token_in, amount_in, token_out)
            buffered = apply_buffer(value, buffer)
            return {SourceId.REGISTRY: value, SourceId.REGISTRY_BUFFERED: buffered}

        return [
            (Inclusion.REGISTRY, registry),
            (
                Inclusion.CL_TWAP,
                lambda: {SourceId.CL_TWAP: self.cl_pool.twap_quote(token_in, amount_in, token_out, window)},
            ),
            (
                Inclusion.CL_SPOT,
                lambda: {SourceId.CL_SPOT: self.cl_pool.spot_quote(token_in, amount_in, token_out)},
            ),
            (
                Inclusion.CP_SPOT_A,
                lambda: {
                    SourceId.CP_SPOT_A: self.cp_pool.spot_quote(
                        config.cp_factory_a, token_in, amount_in, token_out
                    )
                },
            ),
            (
                Inclusion.CP_SPOT_B,
                lambda: {
                    SourceId.CP_SPOT_B: self.cp_pool.spot_quote(
                        config.cp_factory_b, token_in, amount_in, token_out
                    )
                },
            ),
        ]

    def combined_quote(
        self,
        token_in: str,
        amount_in: int,
        token_out: str,
        buffer: int,
        window: int,
        inclusion: int,
    ) -> AggregateResult:
        """Quote from every enabled family and select the lowest amount.

        :param token_in: Input token address.
        :param amount_in: Raw input amount.
        :param token_out: Output token address.
        :param buffer: Registry discount as a fraction of 10**18.
        :param window: TWAP window in seconds.
        :param inclusion: Inclusion mask (see :class:`Inclusion`).
        :returns: Selected value, winning source and all candidates.
        :raises InvalidParameter: On an invalid mask, buffer or window.
        :raises SourceUnavailable: If an enabled source cannot be priced
            (strict mode) or no candidate remains.
        :raises InsufficientHistory: If an enabled TWAP lacks history (strict mode).
        """
        mask = validate_inclusion(inclusion)
        check_buffer(buffer)

        computed: dict[SourceId, int] = {}
        for flag, compute in self._families(token_in, amount_in, token_out, buffer, window):
            if flag not in mask:
                continue
            try:
                computed.update(compute())
            except (SourceUnavailable, InsufficientHistory) as e:
                if self.strict:
                    raise
                logger.warning(f"Dropping {flag.name} from combined quote: {e}")

        source, value = select(computed)
        decimals = self.feed.asset(token_out).decimals
        logger.info(
            f"Combined quote {token_in} -> {token_out}: {value} from {source.value} "
            f"({len(computed)} candidates)"
        )
        return AggregateResult(
            value=value,
            source=source,
            decimals=decimals,
            candidates={s: computed.get(s, 0) for s in CANONICAL_ORDER},
        )

