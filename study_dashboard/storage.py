"""Key-value store adapter.

Each browser client owns one namespace of the ``StorageEntry`` table and
sees it as a plain synchronous string store: ``get``/``set``/``remove``.
Writes made inside ``transaction()`` are committed together.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlmodel import Session

from study_dashboard.logging_config import get_logger, log_with_context
from study_dashboard.models import StorageEntry

USERS_KEY = "usersDB"
CURRENT_USER_KEY = "currentUser"
MODULES_KEY = "modulesDB"
ANNOUNCEMENTS_KEY = "announcementsDB"

# Application-wide values; client ids never take this form
APP_NAMESPACE = "__app__"
SESSION_SECRET_KEY = "sessionSecret"

logger = get_logger("storage")


class KeyValueStore:
    """String key-value store scoped to one client namespace."""

    def __init__(self, engine, namespace: str):
        self.engine = engine
        self.namespace = namespace
        self._session: Optional[Session] = None

    @contextmanager
    def _use_session(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        with Session(self.engine) as session:
            yield session
            session.commit()

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """Group writes so they commit (or roll back) as one unit."""
        if self._session is not None:
            # Nested: the outer transaction commits
            yield self
            return
        with Session(self.engine) as session:
            self._session = session
            try:
                yield self
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                self._session = None

    def get(self, key: str) -> Optional[str]:
        with self._use_session() as session:
            entry = session.get(StorageEntry, (self.namespace, key))
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self._use_session() as session:
            entry = session.get(StorageEntry, (self.namespace, key))
            if entry is None:
                entry = StorageEntry(namespace=self.namespace, key=key, value=value)
            else:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            session.add(entry)
            session.flush()
        log_with_context(logger, "DEBUG", f"Stored {key}",
                         context={"key": key}, extra_data={"size": len(value)})

    def remove(self, key: str) -> None:
        with self._use_session() as session:
            entry = session.get(StorageEntry, (self.namespace, key))
            if entry is not None:
                session.delete(entry)
                session.flush()
        log_with_context(logger, "DEBUG", f"Removed {key}", context={"key": key})
