"""
Bearer-token dependency for protected routes.

Failures answer 401 in the shared error envelope, with INVALID_TOKEN for
anything wrong with the token or its subject and ACCOUNT_DISABLED for a
deactivated member.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.api.errors import error_detail
from app.core.security import decode_access_token
from app.db.models import User
from app.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error_detail(code, message),
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user_id = decode_access_token(token)
    user = db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired token")
    if not user.is_active:
        raise _unauthorized("ACCOUNT_DISABLED", "This account has been deactivated")
    return user
