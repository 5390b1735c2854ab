import unittest
from datetime import datetime, timedelta, timezone

from app.db.models import NightStatusEnum
from app.services.night_rules import (
    InvalidRatingError,
    InvalidStatusTransitionError,
    NightFinishedError,
    PickLockedError,
    check_transition,
    ensure_spin_allowed,
    is_spin_in_progress,
    validate_score,
)

UPCOMING = NightStatusEnum.UPCOMING
ACTIVE = NightStatusEnum.ACTIVE
DONE = NightStatusEnum.DONE


class TestStatusTransitions(unittest.TestCase):
    def test_forward_moves_allowed(self) -> None:
        for current, target in [(UPCOMING, ACTIVE), (ACTIVE, DONE), (UPCOMING, DONE)]:
            with self.subTest(current=current, target=target):
                check_transition(current, target)

    def test_backward_and_same_state_moves_rejected(self) -> None:
        for current, target in [
            (ACTIVE, UPCOMING),
            (DONE, ACTIVE),
            (DONE, UPCOMING),
            (UPCOMING, UPCOMING),
            (DONE, DONE),
        ]:
            with self.subTest(current=current, target=target):
                with self.assertRaises(InvalidStatusTransitionError):
                    check_transition(current, target)


class TestSpinInProgress(unittest.TestCase):
    def setUp(self) -> None:
        self.now = datetime(2026, 10, 17, 20, 0, tzinfo=timezone.utc)

    def test_idle_wheel(self) -> None:
        self.assertFalse(is_spin_in_progress(None, self.now, 30))

    def test_recent_spin_is_live(self) -> None:
        self.assertTrue(is_spin_in_progress(self.now - timedelta(seconds=5), self.now, 30))

    def test_stale_spin_expires(self) -> None:
        self.assertFalse(is_spin_in_progress(self.now - timedelta(seconds=30), self.now, 30))
        self.assertFalse(is_spin_in_progress(self.now - timedelta(minutes=5), self.now, 30))


class TestSpinPolicy(unittest.TestCase):
    def test_done_night_refuses_spin_regardless_of_policy(self) -> None:
        for allow_repick in (True, False):
            with self.subTest(allow_repick=allow_repick):
                with self.assertRaises(NightFinishedError):
                    ensure_spin_allowed(DONE, has_pick=False, allow_repick=allow_repick)

    def test_repick_allowed(self) -> None:
        ensure_spin_allowed(UPCOMING, has_pick=True, allow_repick=True)
        ensure_spin_allowed(ACTIVE, has_pick=True, allow_repick=True)

    def test_repick_blocked(self) -> None:
        with self.assertRaises(PickLockedError) as ctx:
            ensure_spin_allowed(ACTIVE, has_pick=True, allow_repick=False)
        self.assertEqual(ctx.exception.code, "PICK_LOCKED")

    def test_first_pick_allowed_with_repick_blocked(self) -> None:
        ensure_spin_allowed(UPCOMING, has_pick=False, allow_repick=False)


class TestValidateScore(unittest.TestCase):
    def test_bounds_inclusive(self) -> None:
        self.assertEqual(validate_score(1, 1, 10), 1)
        self.assertEqual(validate_score(10, 1, 10), 10)

    def test_out_of_range(self) -> None:
        for score in (0, 11, -3):
            with self.subTest(score=score):
                with self.assertRaises(InvalidRatingError):
                    validate_score(score, 1, 10)

    def test_non_integer_rejected(self) -> None:
        for score in (7.5, True, "8"):
            with self.subTest(score=score):
                with self.assertRaises(InvalidRatingError):
                    validate_score(score, 1, 10)
