"""
Auth API — /auth
─────────────────
Endpoints:
  POST  /auth/signup   — Register a member (201), returns their profile
  POST  /auth/login    — OAuth2 password form in, bearer JWT out
  GET   /auth/me       — The signed-in member
  PATCH /auth/me       — Change display name / avatar
"""
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.auth import MeResponse, ProfileUpdateRequest, SignupRequest, TokenResponse
from app.services.auth_service import (
    DuplicateUserError,
    authenticate_user,
    create_user,
    issue_access_token,
    update_profile,
)

router = APIRouter()


@router.post("/signup", response_model=MeResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> User:
    try:
        return create_user(
            db,
            username=payload.username,
            email=payload.email,
            password=payload.password,
            display_name=payload.display_name,
        )
    except DuplicateUserError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "DUPLICATE_USER", exc) from exc


@router.post("/login", response_model=TokenResponse)
def login(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> dict:
    user = authenticate_user(db, username=form.username, password=form.password)
    if user is None:
        error = api_error(
            status.HTTP_401_UNAUTHORIZED,
            "INVALID_CREDENTIALS",
            "Incorrect username or password",
        )
        error.headers = {"WWW-Authenticate": "Bearer"}
        raise error
    return {"access_token": issue_access_token(user)}


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.patch("/me", response_model=MeResponse)
def edit_me(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    return update_profile(db, current_user, payload.model_dump(exclude_unset=True))
