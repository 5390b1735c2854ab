import random
import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

from app.db.models import NightStatusEnum
from app.services.night_rules import (
    InvalidStatusTransitionError,
    NightFinishedError,
    PickLockedError,
)
from app.db.models import NightCandidate, WatchedEntry
from app.services.movie_service import MovieNotFoundError
from app.services.night_service import (
    CandidateAlreadyExistsError,
    NightNotFoundError,
    NoPendingSpinError,
    NoPickError,
    NotSpinnerError,
    add_candidate,
    cancel_spin,
    complete_night,
    join_night,
    settle_spin,
    spin,
)
from app.services.roulette import (
    BASE_ROTATIONS,
    DrawInProgressError,
    InsufficientCandidatesError,
    RouletteSelector,
)

NOW = datetime(2026, 10, 17, 20, 0, tzinfo=timezone.utc)


class _FixedRandom(random.Random):
    def __init__(self, value: int) -> None:
        super().__init__(0)
        self.value = value

    def randrange(self, *args, **kwargs) -> int:
        return self.value


def _movie(title: str) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), title=title, poster="", release_year=2001, imdb_rating=None)


def _night(titles: list[str], **overrides) -> SimpleNamespace:
    movies = [_movie(title) for title in titles]
    candidates = [
        SimpleNamespace(movie_id=movie.id, movie=movie, position=position, added_at=NOW)
        for position, movie in enumerate(movies)
    ]
    host_id = uuid4()
    night = SimpleNamespace(
        id=uuid4(),
        title="Friday",
        date=NOW,
        host_id=host_id,
        host=SimpleNamespace(username="host"),
        status=NightStatusEnum.UPCOMING,
        attendees=[],
        candidates=candidates,
        picked_movie=None,
        picked_movie_id=None,
        picked_by=None,
        picked_at=None,
        spin_started_at=None,
        spin_started_by=None,
        pending_movie_id=None,
        pending_rotation=None,
        pending_movie=None,
        created_at=NOW,
    )
    for key, value in overrides.items():
        setattr(night, key, value)
    return night


def _db_returning(night) -> MagicMock:
    db = MagicMock()
    db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = night
    db.query.return_value.filter.return_value.first.return_value = night
    return db


class TestSpin(unittest.TestCase):
    def test_spin_parks_drawn_winner_as_pending(self) -> None:
        night = _night(["A", "B", "C", "D"])
        db = _db_returning(night)
        spinner = uuid4()

        result = spin(db, night.id, spinner, RouletteSelector(rng=_FixedRandom(2)), now=NOW)

        winner = night.candidates[2]
        self.assertEqual(result["winner_index"], 2)
        self.assertEqual(result["winner_id"], winner.movie_id)
        self.assertEqual(result["winner"]["title"], "C")
        self.assertAlmostEqual(result["rotation_degrees"], BASE_ROTATIONS * 360 + 135)
        self.assertGreater(result["spin_expires_at"], NOW)

        self.assertEqual(night.pending_movie_id, winner.movie_id)
        self.assertEqual(night.spin_started_by, spinner)
        self.assertEqual(night.spin_started_at, NOW)
        self.assertIsNone(night.picked_movie_id)
        self.assertEqual(night.status, NightStatusEnum.UPCOMING)
        db.commit.assert_called_once()

    def test_second_spin_while_live_is_declined_and_changes_nothing(self) -> None:
        pending = uuid4()
        night = _night(
            ["A", "B", "C"],
            spin_started_at=NOW - timedelta(seconds=3),
            spin_started_by=uuid4(),
            pending_movie_id=pending,
            pending_rotation=1500.0,
        )
        db = _db_returning(night)

        with self.assertRaises(DrawInProgressError):
            spin(db, night.id, uuid4(), RouletteSelector(rng=_FixedRandom(0)), now=NOW)

        self.assertEqual(night.pending_movie_id, pending)
        self.assertEqual(night.pending_rotation, 1500.0)
        db.commit.assert_not_called()

    def test_stale_spin_no_longer_blocks(self) -> None:
        night = _night(
            ["A", "B"],
            spin_started_at=NOW - timedelta(minutes=10),
            spin_started_by=uuid4(),
            pending_movie_id=uuid4(),
        )
        db = _db_returning(night)

        result = spin(db, night.id, uuid4(), RouletteSelector(rng=_FixedRandom(1)), now=NOW)

        self.assertEqual(result["winner_index"], 1)
        self.assertEqual(night.pending_movie_id, night.candidates[1].movie_id)

    def test_single_candidate_declined(self) -> None:
        night = _night(["A"])
        db = _db_returning(night)

        with self.assertRaises(InsufficientCandidatesError):
            spin(db, night.id, uuid4(), RouletteSelector(), now=NOW)

        self.assertIsNone(night.pending_movie_id)
        db.commit.assert_not_called()

    def test_done_night_declined(self) -> None:
        night = _night(["A", "B"], status=NightStatusEnum.DONE)
        db = _db_returning(night)

        with self.assertRaises(NightFinishedError):
            spin(db, night.id, uuid4(), RouletteSelector(), now=NOW)
        db.commit.assert_not_called()

    def test_repick_follows_policy(self) -> None:
        previous = uuid4()
        locked = _night(["A", "B"], picked_movie_id=previous)
        with self.assertRaises(PickLockedError):
            spin(_db_returning(locked), locked.id, uuid4(), RouletteSelector(), allow_repick=False, now=NOW)
        self.assertIsNone(locked.pending_movie_id)

        open_night = _night(["A", "B"], picked_movie_id=previous)
        spin(
            _db_returning(open_night),
            open_night.id,
            uuid4(),
            RouletteSelector(rng=_FixedRandom(0)),
            allow_repick=True,
            now=NOW,
        )
        self.assertEqual(open_night.pending_movie_id, open_night.candidates[0].movie_id)
        # Prior pick stays until the new draw is settled
        self.assertEqual(open_night.picked_movie_id, previous)

    def test_unknown_night(self) -> None:
        with self.assertRaises(NightNotFoundError):
            spin(_db_returning(None), uuid4(), uuid4(), RouletteSelector(), now=NOW)


class TestSettleAndCancel(unittest.TestCase):
    def setUp(self) -> None:
        self.spinner = uuid4()
        self.night = _night(["A", "B", "C"])
        self.night.spin_started_at = NOW - timedelta(seconds=5)
        self.night.spin_started_by = self.spinner
        self.night.pending_movie_id = self.night.candidates[1].movie_id
        self.night.pending_rotation = 1560.0
        self.db = _db_returning(self.night)

    def test_settle_commits_pending_pick(self) -> None:
        winner = self.night.pending_movie_id

        result = settle_spin(self.db, self.night.id, self.spinner, now=NOW)

        self.assertEqual(self.night.picked_movie_id, winner)
        self.assertEqual(self.night.picked_by, self.spinner)
        self.assertEqual(self.night.picked_at, NOW)
        self.assertIsNone(self.night.pending_movie_id)
        self.assertIsNone(self.night.spin_started_at)
        self.assertFalse(result["is_spinning"])
        self.db.commit.assert_called_once()

    def test_only_spinner_settles(self) -> None:
        with self.assertRaises(NotSpinnerError):
            settle_spin(self.db, self.night.id, uuid4(), now=NOW)
        self.assertIsNone(self.night.picked_movie_id)

    def test_expired_spin_cannot_be_settled(self) -> None:
        with self.assertRaises(NoPendingSpinError):
            settle_spin(self.db, self.night.id, self.spinner, now=NOW + timedelta(minutes=5))

    def test_cancel_by_host_clears_pending_only(self) -> None:
        previous = uuid4()
        self.night.picked_movie_id = previous

        cancel_spin(self.db, self.night.id, self.night.host_id, now=NOW)

        self.assertIsNone(self.night.pending_movie_id)
        self.assertIsNone(self.night.spin_started_by)
        self.assertEqual(self.night.picked_movie_id, previous)

    def test_cancel_by_bystander_refused(self) -> None:
        with self.assertRaises(NotSpinnerError):
            cancel_spin(self.db, self.night.id, uuid4(), now=NOW)

    def test_cancel_without_spin(self) -> None:
        night = _night(["A", "B"])
        with self.assertRaises(NoPendingSpinError):
            cancel_spin(_db_returning(night), night.id, night.host_id, now=NOW)


class TestCompleteNight(unittest.TestCase):
    def test_requires_pick(self) -> None:
        night = _night(["A", "B"], status=NightStatusEnum.ACTIVE)
        with self.assertRaises(NoPickError):
            complete_night(_db_returning(night), night.id, uuid4(), now=NOW)
        self.assertEqual(night.status, NightStatusEnum.ACTIVE)

    def test_done_night_cannot_complete_again(self) -> None:
        night = _night(["A", "B"], status=NightStatusEnum.DONE, picked_movie_id=uuid4())
        with self.assertRaises(InvalidStatusTransitionError):
            complete_night(_db_returning(night), night.id, uuid4(), now=NOW)

    def test_logs_watch_and_rating_in_one_commit(self) -> None:
        picked = uuid4()
        picker = uuid4()
        rater = uuid4()
        night = _night(["A", "B"], status=NightStatusEnum.ACTIVE, picked_movie_id=picked, picked_by=picker)
        db = _db_returning(night)
        entry = SimpleNamespace(id=uuid4())

        with patch(
            "app.services.night_service.log_night_viewing", return_value=entry
        ) as log_viewing, patch("app.services.night_service.set_rating") as set_rating:
            result = complete_night(db, night.id, rater, score=8, note="great", now=NOW)

        self.assertEqual(night.status, NightStatusEnum.DONE)
        self.assertEqual(result["watched_entry_id"], entry.id)
        log_viewing.assert_called_once_with(db, night, NOW)
        set_rating.assert_called_once_with(db, entry.id, rater, 8, "great")
        db.commit.assert_called_once()

    def test_completion_without_score_skips_rating(self) -> None:
        night = _night(["A", "B"], picked_movie_id=uuid4())
        db = _db_returning(night)

        with patch(
            "app.services.night_service.log_night_viewing",
            return_value=SimpleNamespace(id=uuid4()),
        ), patch("app.services.night_service.set_rating") as set_rating:
            complete_night(db, night.id, uuid4(), now=NOW)

        set_rating.assert_not_called()
        self.assertEqual(night.status, NightStatusEnum.DONE)

    def test_reuses_entry_already_logged_for_night(self) -> None:
        night = _night(["A", "B"], status=NightStatusEnum.ACTIVE, picked_movie_id=uuid4())
        existing = SimpleNamespace(id=uuid4())
        db = MagicMock()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = night
        db.query.return_value.filter.return_value.first.return_value = existing

        result = complete_night(db, night.id, uuid4(), now=NOW)

        self.assertEqual(result["watched_entry_id"], existing.id)
        self.assertEqual(night.status, NightStatusEnum.DONE)
        db.flush.assert_not_called()
        db.commit.assert_called_once()

    def test_logs_picked_movie_when_night_has_no_entry(self) -> None:
        picked = uuid4()
        picker = uuid4()
        night = _night(["A", "B"], status=NightStatusEnum.ACTIVE, picked_movie_id=picked, picked_by=picker)
        db = MagicMock()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = night
        db.query.return_value.filter.return_value.first.return_value = None

        complete_night(db, night.id, uuid4(), now=NOW)

        added = [call.args[0] for call in db.add.call_args_list if isinstance(call.args[0], WatchedEntry)]
        self.assertEqual(len(added), 1)
        self.assertEqual(
            (added[0].movie_id, added[0].night_id, added[0].picked_by, added[0].watched_at),
            (picked, night.id, picker, NOW),
        )
        db.flush.assert_called_once()


def _candidate_db(night, first_results, last_position=None) -> MagicMock:
    db = MagicMock()
    db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = night
    db.query.return_value.filter.return_value.first.side_effect = first_results
    db.query.return_value.filter.return_value.scalar.return_value = last_position
    return db


class TestAddCandidate(unittest.TestCase):
    def test_first_candidate_takes_position_zero(self) -> None:
        night = _night([])
        movie = _movie("Alien")
        db = _candidate_db(night, [movie, None], last_position=None)

        result = add_candidate(db, night.id, uuid4(), movie.id)

        candidate = db.add.call_args.args[0]
        self.assertIsInstance(candidate, NightCandidate)
        self.assertEqual(candidate.position, 0)
        self.assertEqual(candidate.movie_id, movie.id)
        self.assertEqual(result["position"], 0)
        self.assertEqual(result["movie"]["title"], "Alien")
        db.commit.assert_called_once()

    def test_next_candidate_appends_after_highest_position(self) -> None:
        night = _night(["A", "B", "C"])
        movie = _movie("Aliens")
        db = _candidate_db(night, [movie, None], last_position=2)

        result = add_candidate(db, night.id, uuid4(), movie.id)

        self.assertEqual(db.add.call_args.args[0].position, 3)
        self.assertEqual(result["position"], 3)

    def test_duplicate_movie_rejected(self) -> None:
        night = _night(["A"])
        movie = night.candidates[0].movie
        db = _candidate_db(night, [movie, night.candidates[0]])

        with self.assertRaises(CandidateAlreadyExistsError):
            add_candidate(db, night.id, uuid4(), movie.id)

        db.add.assert_not_called()
        db.commit.assert_not_called()

    def test_done_night_refuses_candidates(self) -> None:
        night = _night(["A"], status=NightStatusEnum.DONE)
        db = _candidate_db(night, [])

        with self.assertRaises(NightFinishedError):
            add_candidate(db, night.id, uuid4(), uuid4())
        db.add.assert_not_called()

    def test_unknown_movie(self) -> None:
        night = _night([])
        db = _candidate_db(night, [None])

        with self.assertRaises(MovieNotFoundError):
            add_candidate(db, night.id, uuid4(), uuid4())


class TestPendingSpinInNightPayload(unittest.TestCase):
    def test_live_spin_exposes_pending_winner(self) -> None:
        started = datetime.now(timezone.utc) - timedelta(seconds=2)
        night = _night(["A", "B", "C", "D"], spin_started_at=started, pending_rotation=1575.0)
        night.spin_started_by = uuid4()
        night.pending_movie_id = night.candidates[2].movie_id
        night.pending_movie = night.candidates[2].movie

        result = join_night(_db_returning(night), night.id, uuid4())

        self.assertTrue(result["is_spinning"])
        self.assertEqual(result["pending_movie"]["title"], "C")
        self.assertEqual(result["pending_rotation"], 1575.0)
        self.assertEqual(result["spin_started_by"], night.spin_started_by)

    def test_stale_spin_hides_pending_winner(self) -> None:
        started = datetime.now(timezone.utc) - timedelta(hours=1)
        night = _night(["A", "B"], spin_started_at=started, pending_rotation=1530.0)
        night.pending_movie = night.candidates[0].movie

        result = join_night(_db_returning(night), night.id, uuid4())

        self.assertFalse(result["is_spinning"])
        self.assertIsNone(result["pending_movie"])
        self.assertIsNone(result["pending_rotation"])
