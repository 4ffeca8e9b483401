# sourcing/storage/credential_store.py

"""Credential repositories: one authoritative OAuth credential per app.

``save`` is an upsert-by-existence: when any row exists it is
overwritten in place, otherwise a new row is inserted.  ``revoke_all``
removes every row so the next authorisation starts from scratch.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from sourcing.config.settings import Settings
from sourcing.models.credential import Credential

logger = logging.getLogger("product_sourcing.credentials")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS oauth_credentials (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id           TEXT,
    access_token       TEXT NOT NULL,
    refresh_token      TEXT,
    token_type         TEXT NOT NULL DEFAULT 'Bearer',
    expires_at         TEXT NOT NULL,
    refresh_expires_at TEXT,
    updated_at         TEXT NOT NULL
);
"""


class CredentialRepository(ABC):
    """Storage seam for the credential lifecycle manager."""

    @abstractmethod
    def load_latest(self) -> Credential | None:
        """Return the most recently written credential, if any."""
        ...

    @abstractmethod
    def save(self, credential: Credential) -> None:
        """Persist *credential*, replacing any existing row."""
        ...

    @abstractmethod
    def revoke_all(self) -> int:
        """Delete every stored credential and return how many were removed."""
        ...

    def close(self) -> None:
        """Release any held resources; stores without any need nothing."""


class InMemoryCredentialStore(CredentialRepository):
    """Process-local store, used by tests and one-shot scripts."""

    def __init__(self, initial: Credential | None = None) -> None:
        self._current: Credential | None = initial
        self._lock = threading.Lock()
        self.save_count = 0

    def load_latest(self) -> Credential | None:
        with self._lock:
            return self._current

    def save(self, credential: Credential) -> None:
        with self._lock:
            self._current = credential
            self.save_count += 1

    def revoke_all(self) -> int:
        with self._lock:
            removed = 0 if self._current is None else 1
            self._current = None
            return removed


class SQLiteCredentialStore(CredentialRepository):
    """SQLite-backed single-row credential table."""

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.CREDENTIAL_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        logger.debug("SQLiteCredentialStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def load_latest(self) -> Credential | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT access_token, refresh_token, token_type, "
                "       expires_at, owner_id, refresh_expires_at "
                "FROM oauth_credentials "
                "ORDER BY updated_at DESC, id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return Credential(
            access_token=row[0],
            refresh_token=row[1],
            token_type=row[2],
            expires_at=datetime.fromisoformat(row[3]),
            owner_id=row[4],
            refresh_expires_at=(
                datetime.fromisoformat(row[5]) if row[5] else None
            ),
        )

    def save(self, credential: Credential) -> None:
        values = (
            credential.owner_id,
            credential.access_token,
            credential.refresh_token,
            credential.token_type,
            credential.expires_at.isoformat(),
            (
                credential.refresh_expires_at.isoformat()
                if credential.refresh_expires_at
                else None
            ),
            datetime.now().isoformat(),
        )
        with self._lock:
            existing = self._conn.execute(
                "SELECT id FROM oauth_credentials LIMIT 1"
            ).fetchone()
            if existing:
                self._conn.execute(
                    "UPDATE oauth_credentials SET owner_id = ?, "
                    "access_token = ?, refresh_token = ?, "
                    "token_type = ?, expires_at = ?, "
                    "refresh_expires_at = ?, updated_at = ? "
                    "WHERE id = ?",
                    (*values, existing[0]),
                )
                logger.info("Credential updated in place")
            else:
                self._conn.execute(
                    "INSERT INTO oauth_credentials (owner_id, "
                    "access_token, refresh_token, token_type, "
                    "expires_at, refresh_expires_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    values,
                )
                logger.info("Credential created")
            self._conn.commit()

    def revoke_all(self) -> int:
        with self._lock:
            cur = self._conn.execute("DELETE FROM oauth_credentials")
            self._conn.commit()
        logger.info("Revoked %d stored credential(s)", cur.rowcount)
        return cur.rowcount
