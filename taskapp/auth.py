from __future__ import annotations

import base64
import hashlib
import logging
from typing import Optional

import bcrypt
from fastapi import Depends, Request

from .errors import Unauthorized
from .models import UserResponse
from .store import RedisUserStore

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
SESSION_USER_KEY = "user_id"


def _pw_prehash(password: str) -> bytes:
    """SHA-256 first so passwords past bcrypt's 72-byte limit still count in full."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_pw_prehash(password), salt).decode("utf-8")


def verify_password(stored_password: str, provided_password: str) -> bool:
    if not stored_password:
        return False
    try:
        return bcrypt.checkpw(_pw_prehash(provided_password), stored_password.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


class SessionAuth:
    """Resolves the signed session cookie to a user, or None."""

    def __init__(self, users: RedisUserStore):
        self.users = users

    def current_user(self, request: Request) -> Optional[UserResponse]:
        user_id = request.session.get(SESSION_USER_KEY)
        if not user_id:
            return None
        user = self.users.get(user_id)
        if user is None:
            logger.info("session refers to missing user %s", user_id)
            request.session.clear()
        return user

    def authenticate(self, email: str, password: str) -> Optional[UserResponse]:
        creds = self.users.find_credentials(email)
        if creds is None:
            return None
        user_id, password_hash = creds
        if not verify_password(password_hash, password):
            return None
        return self.users.get(user_id)

    def login(self, request: Request, user: UserResponse) -> None:
        request.session.clear()
        request.session[SESSION_USER_KEY] = user.id

    def logout(self, request: Request) -> None:
        request.session.clear()


def get_session_auth(request: Request) -> SessionAuth:
    return request.app.state.session_auth


def current_user(
    request: Request,
    auth: SessionAuth = Depends(get_session_auth),
) -> UserResponse:
    user = auth.current_user(request)
    if user is None:
        raise Unauthorized()
    return user
