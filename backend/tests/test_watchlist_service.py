import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

from app.db.models import WatchlistUpvote
from app.services.watchlist_service import (
    WatchlistEntryNotFoundError,
    list_watchlist,
    toggle_upvote,
)


def _movie(title: str) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), title=title, poster="", release_year=2000, imdb_rating=None)


def _entry(upvotes: int) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        added_by=uuid4(),
        note=None,
        upvote_count=upvotes,
        added_at=datetime.now(timezone.utc),
    )


class TestToggleUpvote(unittest.TestCase):
    def test_first_toggle_adds_upvote(self) -> None:
        entry = _entry(upvotes=2)
        user_id = uuid4()
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [entry, None]

        result = toggle_upvote(db, entry.id, user_id)

        self.assertEqual(result, {"entry_id": entry.id, "upvote_count": 3, "viewer_has_upvoted": True})
        upvote = db.add.call_args_list[0].args[0]
        self.assertIsInstance(upvote, WatchlistUpvote)
        self.assertEqual((upvote.entry_id, upvote.user_id), (entry.id, user_id))
        db.commit.assert_called_once()

    def test_second_toggle_takes_it_back(self) -> None:
        entry = _entry(upvotes=1)
        existing = SimpleNamespace(entry_id=entry.id)
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [entry, existing]

        result = toggle_upvote(db, entry.id, uuid4())

        self.assertEqual(result["upvote_count"], 0)
        self.assertFalse(result["viewer_has_upvoted"])
        db.delete.assert_called_once_with(existing)

    def test_count_never_goes_negative(self) -> None:
        entry = _entry(upvotes=0)
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [entry, SimpleNamespace()]

        self.assertEqual(toggle_upvote(db, entry.id, uuid4())["upvote_count"], 0)

    def test_unknown_entry(self) -> None:
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = None

        with self.assertRaises(WatchlistEntryNotFoundError):
            toggle_upvote(db, uuid4(), uuid4())


class TestListWatchlist(unittest.TestCase):
    def test_sorted_by_upvotes_then_newest(self) -> None:
        db = MagicMock()
        ordered = db.query.return_value.join.return_value.outerjoin.return_value.order_by
        ordered.return_value.all.return_value = []
        db.query.return_value.filter.return_value.all.return_value = []

        list_watchlist(db, uuid4())

        clauses = [str(clause) for clause in ordered.call_args.args]
        self.assertEqual(
            clauses,
            ["watchlist_entries.upvote_count DESC", "watchlist_entries.added_at DESC"],
        )

    def test_marks_viewer_upvotes_and_keeps_row_order(self) -> None:
        popular, fresh = _entry(upvotes=5), _entry(upvotes=0)
        adder = SimpleNamespace(username="curator")
        db = MagicMock()
        db.query.return_value.join.return_value.outerjoin.return_value.order_by.return_value.all.return_value = [
            (popular, _movie("Ran"), adder),
            (fresh, _movie("Ikiru"), None),
        ]
        db.query.return_value.filter.return_value.all.return_value = [SimpleNamespace(entry_id=popular.id)]

        result = list_watchlist(db, uuid4())

        self.assertEqual([row["movie"]["title"] for row in result], ["Ran", "Ikiru"])
        self.assertEqual([row["viewer_has_upvoted"] for row in result], [True, False])
        self.assertEqual(result[1]["added_by_username"], "unknown")
