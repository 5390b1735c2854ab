import unittest
from pathlib import Path

from app.db.models import MovieNight, NightCandidate, WatchedEntry, WatchedRating

MIGRATION = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "0001_initial_schema.py"


class TestSchemaContracts(unittest.TestCase):
    def setUp(self) -> None:
        self.migration = MIGRATION.read_text(encoding="utf-8")

    def test_migration_declares_night_constraints(self) -> None:
        for name in (
            "uq_night_candidate_movie",
            "uq_night_candidate_position",
            "chk_night_candidate_position",
            "chk_movie_night_title",
            "uq_watched_night",
            "chk_watched_rating_score",
            "uq_watchlist_movie",
        ):
            with self.subTest(name=name):
                self.assertIn(name, self.migration)

    def test_night_status_enum_values(self) -> None:
        self.assertIn('ENUM("upcoming", "active", "done", name="night_status"', self.migration)

    def test_spin_state_columns_exist(self) -> None:
        columns = set(MovieNight.__table__.columns.keys())
        for column in ("spin_started_at", "spin_started_by", "pending_movie_id", "pending_rotation"):
            with self.subTest(column=column):
                self.assertIn(column, columns)
                self.assertIn(f'"{column}"', self.migration)

    def test_rating_primary_key_is_entry_and_user(self) -> None:
        self.assertEqual(
            [column.name for column in WatchedRating.__table__.primary_key.columns],
            ["watched_entry_id", "user_id"],
        )

    def test_model_constraint_names_match_migration(self) -> None:
        for model in (NightCandidate, WatchedEntry, WatchedRating, MovieNight):
            for constraint in model.__table__.constraints:
                if constraint.name and not constraint.name.endswith("_pkey"):
                    with self.subTest(constraint=constraint.name):
                        self.assertIn(constraint.name, self.migration)
