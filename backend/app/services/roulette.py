"""
Roulette Selector
─────────────────
Picks one movie-night candidate uniformly at random and derives the wheel
rotation that lands the pointer on it.

The winner and the rotation come out of the same call, from the same drawn
index. Presentation code animates `rotation_degrees` as-is and must never
recompute an angle from the index on its own.

Wheel geometry:
  • The pointer sits at 0° (top); the wheel turns clockwise.
  • Sector i covers [i/N, (i+1)/N) of a turn, in candidate order.
  • rotation = base_rotations·360 + (360 − i·w − w/2), with w = 360/N,
    which parks the pointer on the middle of sector i.

Nothing here touches the database; night_service persists the outcome.
"""
import random
from collections.abc import Sequence
from dataclasses import dataclass

FULL_TURN_DEGREES = 360.0
BASE_ROTATIONS = 4          # Minimum whole turns before the wheel settles
MIN_BASE_ROTATIONS = 3
MIN_CANDIDATES = 2


# ── Declines ──────────────────────────────────────────────────────────────────

class SpinDeclinedError(Exception):
    """
    Base for every reason a spin is refused.

    These are ordinary user-facing declines (nothing was drawn, nothing
    changed). *code* is the machine-readable reason used in API envelopes.
    """

    code = "SPIN_DECLINED"


class InsufficientCandidatesError(SpinDeclinedError):
    code = "INSUFFICIENT_CANDIDATES"

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Add at least {MIN_CANDIDATES} candidates to spin (currently {count})"
        )


class DrawInProgressError(SpinDeclinedError):
    code = "DRAW_IN_PROGRESS"

    def __init__(self) -> None:
        super().__init__("The wheel is already spinning")


# ── Value types ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Candidate:
    id: str
    title: str


@dataclass(frozen=True)
class SelectionOutcome:
    winner_index: int
    winner_id: str
    rotation_degrees: float
    sector_degrees: float


# ── Geometry ──────────────────────────────────────────────────────────────────

def sector_width(count: int) -> float:
    """Angular width of one sector on a wheel with *count* sectors."""
    if count < 1:
        raise ValueError("A wheel needs at least one sector")
    return FULL_TURN_DEGREES / count


def rotation_for(winner_index: int, count: int, base_rotations: int = BASE_ROTATIONS) -> float:
    """
    Total clockwise rotation that leaves the pointer centred on *winner_index*.

    Always within [base_rotations·360, (base_rotations + 1)·360).
    """
    if not 0 <= winner_index < count:
        raise ValueError(f"winner_index {winner_index} out of range for {count} sectors")
    if base_rotations < MIN_BASE_ROTATIONS:
        raise ValueError(f"base_rotations must be at least {MIN_BASE_ROTATIONS}")

    # Expressed through the centre fraction (i + 0.5) / N so no boundary is reachable
    centre_fraction = (winner_index + 0.5) / count
    offset = FULL_TURN_DEGREES * (1.0 - centre_fraction)
    return base_rotations * FULL_TURN_DEGREES + offset


def sector_under_pointer(rotation_degrees: float, count: int) -> int:
    """Index of the sector the pointer rests on after turning *rotation_degrees*."""
    landing = (FULL_TURN_DEGREES - rotation_degrees % FULL_TURN_DEGREES) % FULL_TURN_DEGREES
    index = int(landing // sector_width(count))
    return min(index, count - 1)


# ── Selector ──────────────────────────────────────────────────────────────────

class RouletteSelector:
    """
    Draws a winner from an ordered candidate list.

    *rng* defaults to a SystemRandom instance (OS entropy); tests inject a
    seeded random.Random or pass *drawn_index* directly.
    """

    def __init__(
        self,
        base_rotations: int = BASE_ROTATIONS,
        rng: random.Random | None = None,
    ) -> None:
        if base_rotations < MIN_BASE_ROTATIONS:
            raise ValueError(f"base_rotations must be at least {MIN_BASE_ROTATIONS}")
        self.base_rotations = base_rotations
        self.rng = rng or random.SystemRandom()

    def draw(
        self,
        candidates: Sequence[Candidate],
        *,
        in_progress: bool = False,
        drawn_index: int | None = None,
    ) -> SelectionOutcome:
        """
        Pick one winner.

        Raises:
            DrawInProgressError: *in_progress* is set; nothing is drawn.
            InsufficientCandidatesError: fewer than two candidates.
        """
        if in_progress:
            raise DrawInProgressError()

        count = len(candidates)
        if count < MIN_CANDIDATES:
            raise InsufficientCandidatesError(count)

        if drawn_index is None:
            drawn_index = self.rng.randrange(count)
        return self.outcome_for(candidates, drawn_index)

    def outcome_for(self, candidates: Sequence[Candidate], winner_index: int) -> SelectionOutcome:
        """Deterministic half of *draw*: map a drawn index to the full outcome."""
        count = len(candidates)
        rotation = rotation_for(winner_index, count, self.base_rotations)
        return SelectionOutcome(
            winner_index=winner_index,
            winner_id=candidates[winner_index].id,
            rotation_degrees=rotation,
            sector_degrees=sector_width(count),
        )
