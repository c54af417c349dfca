# storefront/storage/cart_store.py

"""Persistent cart: one line per product id, quantities always >= 1."""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from storefront.config.settings import Settings
from storefront.models.errors import PersistenceError
from storefront.models.product import CartLine, Product

logger = logging.getLogger("storefront.cart_store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS cart_items (
    product_id TEXT    PRIMARY KEY,
    name       TEXT    NOT NULL,
    price      TEXT    NOT NULL,
    image_ref  TEXT    NOT NULL DEFAULT '',
    quantity   INTEGER NOT NULL CHECK (quantity >= 1)
);
"""


class CartStore(ABC):
    """Keyed store of cart lines.

    Stores never publish change events; the caller does that after a
    successful mutation.  Every failure surfaces as
    :class:`PersistenceError`.
    """

    @abstractmethod
    def add_or_increment(self, product: Product, qty: int = 1) -> CartLine:
        """Create the line for *product* or add *qty* to it."""
        ...

    @abstractmethod
    def set_quantity(self, product_id: str, qty: int) -> bool:
        """Overwrite a line's quantity; ``qty < 1`` removes the line.

        Returns ``False`` when no line exists for *product_id*.
        """
        ...

    @abstractmethod
    def remove(self, product_id: str) -> None:
        """Delete a line; absent ids are fine."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every line."""
        ...

    @abstractmethod
    def load_all(self) -> list[CartLine]:
        """Return all lines in insertion order."""
        ...


class SQLiteCartStore(CartStore):
    """SQLite-backed :class:`CartStore`."""

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
                f"Could not open cart store at {path}: {exc}"
            ) from exc
        logger.debug("SQLiteCartStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Mutations ────────────────────────────────────────

    def add_or_increment(self, product: Product, qty: int = 1) -> CartLine:
        if qty < 1:
            msg = f"Quantity to add must be >= 1, got {qty}"
            raise ValueError(msg)
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO cart_items "
                    "(product_id, name, price, image_ref, quantity) "
                    "VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT(product_id) DO UPDATE SET "
                    "quantity = quantity + excluded.quantity",
                    (
                        product.id,
                        product.name,
                        product.price,
                        product.image_ref,
                        qty,
                    ),
                )
                self._conn.commit()
                row = self._conn.execute(
                    "SELECT product_id, name, price, image_ref, quantity "
                    "FROM cart_items WHERE product_id = ?",
                    (product.id,),
                ).fetchone()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(
                    f"Could not add {product.id} to cart: {exc}"
                ) from exc
        line = _row_to_line(row)
        logger.info(
            "Cart line %s now has quantity %d",
            line.product_id,
            line.quantity,
        )
        return line

    def set_quantity(self, product_id: str, qty: int) -> bool:
        if qty < 1:
            logger.debug(
                "Quantity %d for %s treated as removal", qty, product_id
            )
            existed = self._exists(product_id)
            self.remove(product_id)
            return existed
        with self._lock:
            try:
                cur = self._conn.execute(
                    "UPDATE cart_items SET quantity = ? "
                    "WHERE product_id = ?",
                    (qty, product_id),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(
                    f"Could not update {product_id}: {exc}"
                ) from exc
        if cur.rowcount == 0:
            logger.warning(
                "set_quantity on missing cart line %s ignored", product_id
            )
            return False
        return True

    def remove(self, product_id: str) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    "DELETE FROM cart_items WHERE product_id = ?",
                    (product_id,),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(
                    f"Could not remove {product_id}: {exc}"
                ) from exc
        logger.info("Removed cart line %s", product_id)

    def clear(self) -> None:
        with self._lock:
            try:
                cur = self._conn.execute("DELETE FROM cart_items")
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(
                    f"Could not clear cart: {exc}"
                ) from exc
        logger.info("Cart cleared (%d lines removed)", cur.rowcount)

    # ── Queries ──────────────────────────────────────────

    def load_all(self) -> list[CartLine]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT product_id, name, price, image_ref, quantity "
                    "FROM cart_items ORDER BY rowid ASC",
                ).fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(
                    f"Could not load cart: {exc}"
                ) from exc
        return [_row_to_line(r) for r in rows]

    def _exists(self, product_id: str) -> bool:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT 1 FROM cart_items WHERE product_id = ?",
                    (product_id,),
                ).fetchone()
            except sqlite3.Error as exc:
                raise PersistenceError(
                    f"Could not read {product_id}: {exc}"
                ) from exc
        return row is not None


def _row_to_line(row: tuple[str, str, str, str, int]) -> CartLine:
    """Rebuild a cart line from its persisted snapshot columns."""
    return CartLine(
        product=Product(
            id=row[0], name=row[1], price=row[2], image_ref=row[3],
        ),
        quantity=int(row[4]),
    )
