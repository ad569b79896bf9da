# storage.py
# JSON file storage for the two persisted collections (users, projects).
# Every save rewrites the whole collection; last writer wins.

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from . import config
from .models import AnalysisProject, User

logger = logging.getLogger(__name__)

USERS_KEY = "govtech_users"
PROJECTS_KEY = "govtech_projects"

BOOTSTRAP_ADMIN_ID = "admin-1"


def bootstrap_admin() -> User:
    return User(
        id=BOOTSTRAP_ADMIN_ID,
        name="Administrador Master",
        email="admin",
        password="123456",
        role="admin",
    )


def _path(key: str) -> Path:
    return Path(config.DATA_DIR) / f"{key}.json"


def read_json(key: str) -> Optional[Any]:
    """Return the decoded entry, or None when it does not exist yet."""
    p = _path(key)
    if not p.exists():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def write_json(key: str, obj: Any):
    p = _path(key)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(obj, indent=2, ensure_ascii=False, default=str), encoding="utf-8")


def quarantine(key: str):
    """Move an unreadable entry aside so the next save cannot overwrite it."""
    p = _path(key)
    if not p.exists():
        return
    target = p.with_name(p.name + ".corrupt")
    try:
        p.replace(target)
    except OSError:
        logger.exception("Could not move %s aside", p)
        return
    logger.warning("Moved unreadable %s to %s", p.name, target.name)


def save_users(users: List[User]):
    write_json(USERS_KEY, [u.model_dump(mode="json") for u in users])


def save_projects(projects: List[AnalysisProject]):
    write_json(PROJECTS_KEY, [p.model_dump(mode="json") for p in projects])


def load_users() -> List[User]:
    try:
        raw = read_json(USERS_KEY)
        if raw is not None:
            if not isinstance(raw, list):
                raise ValueError(f"expected a list, got {type(raw).__name__}")
            users = [User.model_validate(u) for u in raw]
            if not any(u.id == BOOTSTRAP_ADMIN_ID for u in users):
                logger.warning("Bootstrap admin missing from stored users; restoring it")
                users = [bootstrap_admin()] + users
                save_users(users)
            return users
        logger.info("No users stored yet; seeding bootstrap admin")
    except (OSError, ValueError, ValidationError):
        logger.exception("Failed to load users; reseeding bootstrap admin")
        quarantine(USERS_KEY)
    users = [bootstrap_admin()]
    save_users(users)
    return users


def load_projects() -> List[AnalysisProject]:
    try:
        raw = read_json(PROJECTS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ValueError(f"expected a list, got {type(raw).__name__}")
        # dates come back as ISO strings; validation revives them
        return [AnalysisProject.model_validate(p) for p in raw]
    except (OSError, ValueError, ValidationError):
        logger.exception("Failed to load projects; starting with an empty collection")
        quarantine(PROJECTS_KEY)
        return []


def load() -> Tuple[List[User], List[AnalysisProject]]:
    return load_users(), load_projects()
