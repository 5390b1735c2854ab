"""
Members API — /users
─────────────────────
Endpoints:
  GET /users                 — List group members
  GET /users/{user_id}       — One member's public profile
  GET /users/{user_id}/stats — Watched count and rating stats
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.users import MemberResponse, MemberStatsResponse
from app.services.user_service import (
    UserNotFoundError,
    get_member,
    get_member_stats,
    list_members,
)

router = APIRouter()


@router.get("", response_model=list[MemberResponse])
def list_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[User]:
    return list_members(db)


@router.get("/{user_id}", response_model=MemberResponse)
def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    try:
        return get_member(db, user_id)
    except UserNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", exc) from exc


@router.get("/{user_id}/stats", response_model=MemberStatsResponse)
def get_user_stats(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return get_member_stats(db, user_id)
    except UserNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", exc) from exc
