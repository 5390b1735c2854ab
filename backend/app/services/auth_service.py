"""
Auth business logic — signup, login, token issuance.

All DB writes go through this layer (not directly in routes).
"""
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import create_access_token, hash_password, verify_password
from app.db.models import User

logger = structlog.get_logger(__name__)


# ── Custom exceptions ────────────────────────────────────────────────────────


class DuplicateUserError(Exception):
    """Raised when signup conflicts with an existing username or email."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"A user with that {field} already exists")


# ── Service functions ────────────────────────────────────────────────────────


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
) -> User:
    """
    Register a new group member.

    - Normalises username and email (lowercase strip).
    - Hashes the password with bcrypt.
    - Raises DuplicateUserError on unique-constraint violation.
    """
    normalised_username = username.strip().lower()
    normalised_email = email.strip().lower()

    user = User(
        username=normalised_username,
        email=normalised_email,
        display_name=(display_name or "").strip() or normalised_username,
        password_hash=hash_password(password),
    )

    db.add(user)

    try:
        db.flush()  # trigger INSERT; raises on duplicate
    except IntegrityError as exc:
        db.rollback()
        error_str = str(exc.orig).lower()
        if "username" in error_str:
            raise DuplicateUserError("username") from exc
        if "email" in error_str:
            raise DuplicateUserError("email") from exc
        raise DuplicateUserError("username or email") from exc

    db.commit()
    db.refresh(user)
    logger.info("user_signed_up", user_id=str(user.id), username=user.username)
    return user


def authenticate_user(
    db: Session,
    username: str,
    password: str,
) -> User | None:
    """Verify credentials and return the active User, or None on failure."""
    user = (
        db.query(User)
        .filter(User.username == username.strip().lower())
        .first()
    )
    if user is None or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        logger.info("login_rejected", username=user.username)
        return None

    return user


def issue_access_token(user: User) -> str:
    return create_access_token(user.id)


def update_profile(db: Session, user: User, changes: dict) -> User:
    """Apply display_name / avatar_url edits. A blank avatar clears it."""
    if "display_name" in changes and changes["display_name"] is not None:
        user.display_name = changes["display_name"].strip() or user.username
    if "avatar_url" in changes:
        avatar = (changes["avatar_url"] or "").strip()
        user.avatar_url = avatar or None

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("profile_updated", user_id=str(user.id), fields=sorted(changes))
    return user
