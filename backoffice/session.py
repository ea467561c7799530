"""Session provider: the logged-in staff user and their bearer token.

A ``SessionProvider`` is created once per process (or per browser session)
and handed to whatever needs it. The persisted record is read once by
``restore()`` and cleared on ``logout()`` or when the API answers ``401``.
"""

from __future__ import annotations

import json
from collections.abc import Callable, MutableMapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from . import get_logger
from .models import AuthUser

logger = get_logger(__name__)

SESSION_KEY = "backoffice.session"
VIEW_STATE_PREFIXES = ("backoffice.controller.", "backoffice.modal.", "backoffice.view.")


class SessionStore(Protocol):
    def load(self) -> dict[str, Any] | None: ...

    def save(self, record: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class FileSessionStore:
    """Keeps the session record in a JSON file readable only by its owner."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        with self.path.open(encoding="utf-8") as handle:
            return json.load(handle)

    def save(self, record: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(record, handle)
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class MappingSessionStore:
    """Keeps the session record under one key of a mutable mapping.

    ``st.session_state`` is the intended mapping in the browser app. The
    record then lives as long as the browser tab's Streamlit session: it
    survives reruns and page switches, not a full reload.
    """

    def __init__(self, mapping: MutableMapping[str, Any], key: str = SESSION_KEY):
        self.mapping = mapping
        self.key = key

    def load(self) -> dict[str, Any] | None:
        record = self.mapping.get(self.key)
        return dict(record) if record else None

    def save(self, record: dict[str, Any]) -> None:
        self.mapping[self.key] = dict(record)

    def clear(self) -> None:
        self.mapping.pop(self.key, None)


def clear_view_state(
    mapping: MutableMapping[str, Any], prefixes: tuple[str, ...] = VIEW_STATE_PREFIXES
) -> list[str]:
    """Drop the per-user view state kept next to the session record.

    Returns the removed keys. The session record itself is left to the store.
    """
    removed = [key for key in list(mapping) if isinstance(key, str) and key.startswith(prefixes)]
    for key in removed:
        mapping.pop(key, None)
    if removed:
        logger.debug("Cleared %s view state entries", len(removed))
    return removed


class SessionProvider:
    def __init__(self, store: SessionStore):
        self.store = store
        self.user: AuthUser | None = None
        self.expired = False
        self._teardown_listeners: list[Callable[[], None]] = []

    @property
    def token(self) -> str | None:
        return self.user.token if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> str | None:
        return self.user.role if self.user else None

    def on_teardown(self, listener: Callable[[], None]) -> None:
        """Register a callback run after an expired session is cleared."""
        self._teardown_listeners.append(listener)

    def restore(self) -> AuthUser | None:
        """Load the persisted record; unreadable or partial records are discarded."""
        try:
            record = self.store.load()
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable session record: %s", exc)
            self.store.clear()
            return None

        if not record:
            return None

        try:
            self.user = AuthUser.model_validate(record)
        except ValidationError as exc:
            logger.warning("Discarding invalid session record: %s", exc.errors()[0]["msg"])
            self.store.clear()
            return None

        logger.info("Restored session for %s (%s)", self.user.username, self.user.role)
        return self.user

    def login(self, user: AuthUser) -> None:
        self.user = user
        self.expired = False
        self.store.save(user.model_dump(by_alias=True))
        logger.info("Logged in as %s (%s)", user.username, user.role)

    def logout(self) -> None:
        if self.user is not None:
            logger.info("Logged out %s", self.user.username)
        self.user = None
        self.store.clear()

    def expire(self) -> None:
        """Tear the session down after the API rejected its token."""
        was_authenticated = self.is_authenticated
        self.user = None
        self.expired = True
        self.store.clear()
        if was_authenticated:
            logger.warning("Session expired; redirecting to login")
        for listener in self._teardown_listeners:
            listener()
