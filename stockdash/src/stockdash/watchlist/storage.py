import sqlite3
import logging
from typing import Dict, Optional, Protocol

from ..errors import StorageError

logger = logging.getLogger(__name__)


class StoragePort(Protocol):
    """
    Minimal string key-value interface the watchlist persists through.
    Implementations raise StorageError when the backend is unavailable.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class SQLiteStorage:
    """
    Key-value storage backed by SQLite.
    Schema: storage(key TEXT PRIMARY KEY, value TEXT, updated_at TIMESTAMP)
    """
    def __init__(self, db_path: str = "stockdash.db"):
        self.db_path = db_path
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Storage unavailable at {self.db_path}: {e}", {"db_path": self.db_path})

        if not self._initialized:
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS storage (
                        key TEXT PRIMARY KEY,
                        value TEXT,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
            except sqlite3.Error as e:
                conn.close()
                raise StorageError(f"Storage unavailable at {self.db_path}: {e}", {"db_path": self.db_path})
            self._initialized = True
        return conn

    def get(self, key: str) -> Optional[str]:
        """Return the raw stored string, or None when the key is absent."""
        conn = self._connect()
        try:
            with conn:
                row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Storage get failed for {key}: {e}")
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    INSERT OR REPLACE INTO storage (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                """, (key, value))
        except sqlite3.Error as e:
            raise StorageError(f"Storage set failed for {key}: {e}")
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM storage WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Storage remove failed for {key}: {e}")
        finally:
            conn.close()


class MemoryStorage:
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
