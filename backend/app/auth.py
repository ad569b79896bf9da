# auth.py
# Credential check, login sessions and user provisioning over the in-memory
# user collection. Functions never mutate the list they receive; callers
# persist the result.

import logging
import secrets
from typing import Dict, List, Optional, Tuple

from .errors import AuthError, ConfirmationRequired, DuplicateEmailError, ProtectedUserError, ValidationFailed
from .models import User, UserCreate
from .storage import BOOTSTRAP_ADMIN_ID

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# session id -> user id; process-local, so a restart logs everyone out
_sessions: Dict[str, str] = {}


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == "admin"


def find_user(users: List[User], user_id: str) -> Optional[User]:
    return next((u for u in users if u.id == user_id), None)


def login(users: List[User], email: str, password: str) -> User:
    """Return the first user whose login and password both match exactly.

    Unknown login and wrong password raise the same AuthError so callers
    cannot tell which one failed.
    """
    user = next((u for u in users if u.email == email and u.password == password), None)
    if user is None:
        logger.info("Rejected login attempt")
        raise AuthError()
    logger.info("User %s logged in", user.id)
    return user


def start_session(user: User) -> str:
    """Issue an opaque session id for a user who just logged in."""
    session_id = secrets.token_urlsafe(32)
    _sessions[session_id] = user.id
    return session_id


def session_user(users: List[User], session_id: Optional[str]) -> Optional[User]:
    """The user behind a session id, or None for unknown ids and removed users."""
    user_id = _sessions.get(session_id) if session_id else None
    return find_user(users, user_id) if user_id else None


def end_session(session_id: Optional[str]):
    if session_id and _sessions.pop(session_id, None):
        logger.info("Session closed")


def add_user(users: List[User], draft: UserCreate) -> Tuple[List[User], User]:
    if not draft.email.strip() or not draft.password or not draft.name.strip():
        raise ValidationFailed("Todos os campos são obrigatórios para habilitar um novo perfil.")
    if len(draft.password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed("Por segurança, a senha deve conter no mínimo 6 caracteres.")

    email = draft.email.strip().lower()
    if any(u.email.lower() == email for u in users):
        raise DuplicateEmailError()

    user = User(**draft.model_dump())
    logger.info("Created user %s (%s)", user.id, user.role)
    return [*users, user], user


def delete_user(users: List[User], user_id: str, confirmed: bool = False) -> List[User]:
    if user_id == BOOTSTRAP_ADMIN_ID:
        raise ProtectedUserError()
    if not confirmed:
        raise ConfirmationRequired()
    remaining = [u for u in users if u.id != user_id]
    if len(remaining) != len(users):
        logger.info("Deleted user %s", user_id)
    return remaining
