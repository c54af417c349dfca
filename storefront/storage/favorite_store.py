# storefront/storage/favorite_store.py

"""Persistent set of favorite product ids."""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from storefront.config.settings import Settings
from storefront.models.errors import PersistenceError

logger = logging.getLogger("storefront.favorite_store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS favorite_products (
    product_id TEXT PRIMARY KEY
);
"""


class FavoriteStore(ABC):
    """Set of favorite product ids; add and remove are idempotent."""

    @abstractmethod
    def add(self, product_id: str) -> None:
        """Insert *product_id*; already present is a no-op."""
        ...

    @abstractmethod
    def remove(self, product_id: str) -> None:
        """Delete *product_id*; absent is a no-op."""
        ...

    @abstractmethod
    def load_all(self) -> set[str]:
        """Return every favorite id."""
        ...


class SQLiteFavoriteStore(FavoriteStore):
    """SQLite-backed :class:`FavoriteStore`."""

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.STORE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                str(path), check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not open favorite store at {path}: {exc}"
            ) from exc
        logger.debug("SQLiteFavoriteStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def add(self, product_id: str) -> None:
        self._write(
            "INSERT OR IGNORE INTO favorite_products (product_id) "
            "VALUES (?)",
            product_id,
            "add",
        )

    def remove(self, product_id: str) -> None:
        self._write(
            "DELETE FROM favorite_products WHERE product_id = ?",
            product_id,
            "remove",
        )

    def load_all(self) -> set[str]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT product_id FROM favorite_products",
                ).fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(
                    f"Could not load favorites: {exc}"
                ) from exc
        return {r[0] for r in rows}

    def _write(self, sql: str, product_id: str, action: str) -> None:
        """Run a single-id write statement and commit."""
        with self._lock:
            try:
                self._conn.execute(sql, (product_id,))
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(
                    f"Could not {action} favorite {product_id}: {exc}"
                ) from exc
        logger.info("Favorite %s: %s", action, product_id)
