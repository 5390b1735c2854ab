import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from app.core.security import create_access_token, decode_access_token
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.main import app
from app.services.auth_service import DuplicateUserError, update_profile


def _user(**overrides) -> SimpleNamespace:
    now = datetime.now(timezone.utc)
    user = SimpleNamespace(
        id=uuid4(),
        username="reel_talk",
        email="reel@example.com",
        display_name="Reel Talk",
        avatar_url=None,
        is_active=True,
        created_at=now,
    )
    for key, value in overrides.items():
        setattr(user, key, value)
    return user


class TestAuthApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)
        app.dependency_overrides[get_db] = lambda: iter([object()])

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_signup_success(self) -> None:
        with patch("app.api.auth.create_user", return_value=_user()):
            response = self.client.post(
                "/auth/signup",
                json={"username": "reel_talk", "email": "reel@example.com", "password": "popcorn123"},
            )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["username"], "reel_talk")

    def test_signup_duplicate(self) -> None:
        with patch("app.api.auth.create_user", side_effect=DuplicateUserError("taken")):
            response = self.client.post(
                "/auth/signup",
                json={"username": "reel_talk", "email": "reel@example.com", "password": "popcorn123"},
            )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["error"]["code"], "DUPLICATE_USER")

    def test_login_bad_credentials(self) -> None:
        with patch("app.api.auth.authenticate_user", return_value=None):
            response = self.client.post(
                "/auth/login",
                data={"username": "reel_talk", "password": "wrong"},
            )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"]["error"]["code"], "INVALID_CREDENTIALS")

    def test_me_requires_auth(self) -> None:
        response = self.client.get("/auth/me")
        self.assertEqual(response.status_code, 401)

    def _bearer(self, user_id) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    def test_me_with_valid_token(self) -> None:
        user = _user()
        db = MagicMock()
        db.get.return_value = user
        app.dependency_overrides[get_db] = lambda: db

        response = self.client.get("/auth/me", headers=self._bearer(user.id))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "reel@example.com")

    def test_token_for_unknown_user(self) -> None:
        db = MagicMock()
        db.get.return_value = None
        app.dependency_overrides[get_db] = lambda: db

        response = self.client.get("/auth/me", headers=self._bearer(uuid4()))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"]["error"]["code"], "INVALID_TOKEN")

    def test_deactivated_account(self) -> None:
        user = _user(is_active=False)
        db = MagicMock()
        db.get.return_value = user
        app.dependency_overrides[get_db] = lambda: db

        response = self.client.get("/auth/me", headers=self._bearer(user.id))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"]["error"]["code"], "ACCOUNT_DISABLED")

    def test_signup_rejects_bad_username(self) -> None:
        for username in ("ab", "has space", "x" * 33):
            with self.subTest(username=username):
                response = self.client.post(
                    "/auth/signup",
                    json={"username": username, "email": "reel@example.com", "password": "popcorn123"},
                )
                self.assertEqual(response.status_code, 422)

    def test_edit_profile_passes_only_sent_fields(self) -> None:
        user = _user()
        app.dependency_overrides[get_current_user] = lambda: user

        with patch("app.api.auth.update_profile", return_value=_user(avatar_url="https://img/a.png")) as update:
            response = self.client.patch("/auth/me", json={"avatar_url": "https://img/a.png"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["avatar_url"], "https://img/a.png")
        self.assertEqual(update.call_args.args[2], {"avatar_url": "https://img/a.png"})


class TestTokens(unittest.TestCase):
    def test_token_round_trip(self) -> None:
        user_id = uuid4()
        self.assertEqual(decode_access_token(create_access_token(user_id)), user_id)

    def test_garbage_token(self) -> None:
        self.assertIsNone(decode_access_token("not-a-jwt"))


class TestUpdateProfile(unittest.TestCase):
    def test_blank_avatar_clears_it_and_display_name_is_trimmed(self) -> None:
        user = _user(avatar_url="https://img/old.png")
        db = MagicMock()

        update_profile(db, user, {"display_name": "  Reel  ", "avatar_url": "  "})

        self.assertEqual(user.display_name, "Reel")
        self.assertIsNone(user.avatar_url)
        db.commit.assert_called_once()

    def test_untouched_fields_stay(self) -> None:
        user = _user(avatar_url="https://img/keep.png")

        update_profile(MagicMock(), user, {"display_name": "New Name"})

        self.assertEqual(user.avatar_url, "https://img/keep.png")
