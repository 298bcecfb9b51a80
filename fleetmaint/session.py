"""
Design (session.py)
- Purpose: Hold the logged-in user, resolved from a fixed credential table, and keep it across
           restarts in the `currentUser` blob.
- Inputs: email/password on login; BlobStore for persistence.
- Outputs: bool from login(); current_user.
- Side effects: Writes/removes the `currentUser` blob.
- Thread-safety: Main (UI) thread only.

No hashing, lockout or rate limit: this is a convenience gate, not a security boundary.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import CURRENT_USER_KEY
from .models import Role, User
from .storage import BlobStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    email: str
    password: str
    user: User


CREDENTIALS: Tuple[Credential, ...] = (
    Credential("admin@entnt.in", "admin123",
               User(id="1", role=Role.ADMIN, email="admin@entnt.in", name="Admin User")),
    Credential("inspector@entnt.in", "inspect123",
               User(id="2", role=Role.INSPECTOR, email="inspector@entnt.in", name="John Inspector")),
    Credential("engineer@entnt.in", "engine123",
               User(id="3", role=Role.ENGINEER, email="engineer@entnt.in", name="Mike Engineer")),
)


def engineers() -> List[User]:
    """Users a job may be assigned to."""
    return [c.user for c in CREDENTIALS if c.user.role is Role.ENGINEER]


def find_user(user_id: str) -> Optional[User]:
    return next((c.user for c in CREDENTIALS if c.user.id == user_id), None)


class Session:
    """
    Design (Session)
    - State:
        _user: User or None
        _blobs: where `currentUser` is kept
    """

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs
        self._user: Optional[User] = self._restore()

    def _restore(self) -> Optional[User]:
        try:
            data = self._blobs.get_json(CURRENT_USER_KEY)
        except json.JSONDecodeError as exc:
            log.warning("ignoring unreadable saved session: %s", exc)
            return None
        if data is None:
            return None
        try:
            user = User.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("ignoring malformed saved session: %s", exc)
            return None
        log.info("restored session for %s", user.email)
        return user

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def login(self, email: str, password: str) -> bool:
        """
        Purpose: Authenticate against CREDENTIALS (exact match on both fields).
        Outputs: True and the user is persisted; False otherwise (no hint which field was wrong).
        Raises: StorageError if the session cannot be saved.
        """
        match = next((c for c in CREDENTIALS if c.email == email and c.password == password), None)
        if match is None:
            log.info("login failed for %r", email)
            return False
        self._blobs.set_json(CURRENT_USER_KEY, match.user.to_dict())
        self._user = match.user
        log.info("login: %s (%s)", match.user.email, match.user.role.value)
        return True

    def logout(self) -> None:
        if self._user is not None:
            log.info("logout: %s", self._user.email)
        self._blobs.remove(CURRENT_USER_KEY)
        self._user = None
