"""
Movie-night lifecycle rules.

Pure checks shared by night_service and watched_service. They take plain
values (statuses, timestamps, flags) so they can be unit tested without a
database session.
"""
from datetime import datetime, timedelta

from app.db.models import NightStatusEnum
from app.services.roulette import SpinDeclinedError

STATUS_ORDER: dict[NightStatusEnum, int] = {
    NightStatusEnum.UPCOMING: 0,
    NightStatusEnum.ACTIVE: 1,
    NightStatusEnum.DONE: 2,
}


class NightNotFoundError(Exception):
    pass


class InvalidStatusTransitionError(Exception):
    """Raised when a status change would move a night backwards or nowhere."""

    def __init__(self, current: NightStatusEnum, target: NightStatusEnum) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move a night from '{current.value}' to '{target.value}'")


class InvalidRatingError(Exception):
    """Raised when a score falls outside the configured bounds."""


class NightFinishedError(SpinDeclinedError):
    code = "NIGHT_FINISHED"

    def __init__(self) -> None:
        super().__init__("This night is over; its pick can no longer change")


class PickLockedError(SpinDeclinedError):
    code = "PICK_LOCKED"

    def __init__(self) -> None:
        super().__init__("A movie has already been picked for this night")


def check_transition(current: NightStatusEnum, target: NightStatusEnum) -> None:
    """Allow only strictly forward moves (skipping a step is fine)."""
    if STATUS_ORDER[target] <= STATUS_ORDER[current]:
        raise InvalidStatusTransitionError(current, target)


def is_spin_in_progress(
    spin_started_at: datetime | None,
    now: datetime,
    timeout_seconds: int,
) -> bool:
    """True while an unsettled spin is younger than *timeout_seconds*."""
    if spin_started_at is None:
        return False
    return now - spin_started_at < timedelta(seconds=timeout_seconds)


def ensure_spin_allowed(
    status: NightStatusEnum,
    has_pick: bool,
    allow_repick: bool,
) -> None:
    """
    Refuse spins on finished nights, and on already-picked nights when
    re-picking is switched off.
    """
    if status == NightStatusEnum.DONE:
        raise NightFinishedError()
    if has_pick and not allow_repick:
        raise PickLockedError()


def validate_score(score: int, minimum: int, maximum: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidRatingError("Score must be a whole number")
    if not minimum <= score <= maximum:
        raise InvalidRatingError(f"Score must be between {minimum} and {maximum}")
    return score
