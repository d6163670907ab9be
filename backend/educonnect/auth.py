"""Authentication helpers and FastAPI security dependencies.

`get_current_user` validates the bearer token and returns the `User`
row; `get_optional_user` does the same but yields `None` for anonymous
requests, so public list endpoints can still resolve per-user flags.
Token problems raise `AuthError`, which the central handlers turn into
401 responses.
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .database import get_session
from .errors import AuthError
from .services import decode_token

bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("app.auth")


def _user_from_token(token: str, session: Session) -> models.User:
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthError("Your session has expired. Please log in again.", error="Token expired")
    except jwt.InvalidTokenError as exc:
        logger.info("rejected bearer token: %s", exc)
        raise AuthError("The provided token is invalid.", error="Invalid token")
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthError("invalid token payload", error="Invalid token")
    user = repositories.UserRepository(session).get(user_id)
    if not user:
        raise AuthError("user not found", error="Invalid token")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user or raises 401."""
    if credentials is None:
        raise AuthError("Access token required")
    return _user_from_token(credentials.credentials, session)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[models.User]:
    """Like `get_current_user` but returns `None` when no token is sent.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, session)
