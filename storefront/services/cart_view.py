# storefront/services/cart_view.py

"""Cart screen state: lines, quantity steps and the running total."""

import asyncio
import logging
from collections.abc import Callable

from storefront.filters.price_parser import parse_price
from storefront.models.errors import CatalogError
from storefront.models.product import CartLine
from storefront.services.event_bus import CATALOG_MUTATED, EventBus
from storefront.storage.cart_store import CartStore

logger = logging.getLogger("storefront.cart_view")


def line_total(line: CartLine) -> float:
    """Parsed unit price times quantity."""
    return parse_price(line.product.price) * line.quantity


class CartView:
    """Loads the cart and applies quantity changes.

    Every successful mutation publishes ``"catalog mutated"`` so badge
    counters and other screens reload.  Failures leave :attr:`lines`
    untouched and are reported through :attr:`on_error`.
    """

    def __init__(self, cart_store: CartStore, event_bus: EventBus) -> None:
        self._store = cart_store
        self._bus = event_bus
        self.lines: list[CartLine] = []
        self.on_change: Callable[[list[CartLine]], None] | None = None
        self.on_error: Callable[[CatalogError], None] | None = None
        self._subscription: int | None = self._bus.subscribe(
            CATALOG_MUTATED, self._on_catalog_mutated
        )

    def close(self) -> None:
        """Stop listening for catalog mutations."""
        if self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
            self._subscription = None

    @property
    def total_price(self) -> float:
        """Sum of every line total, rounded to cents."""
        return round(sum(line_total(line) for line in self.lines), 2)

    @property
    def total_quantity(self) -> int:
        """Sum of all line quantities."""
        return sum(line.quantity for line in self.lines)

    def quantity_of(self, product_id: str) -> int:
        """Quantity in the cart for *product_id*, ``0`` when absent."""
        line = self._find(product_id)
        return line.quantity if line else 0

    # ── Store round trips ────────────────────────────────

    async def load(self) -> list[CartLine]:
        """Reload every line from the store."""
        try:
            lines = await asyncio.to_thread(self._store.load_all)
        except CatalogError as exc:
            self._fail("load", exc)
            return list(self.lines)
        self.lines = list(lines)
        logger.debug(
            "Cart loaded: %d lines, %d items",
            len(self.lines),
            self.total_quantity,
        )
        self._changed()
        return list(self.lines)

    async def increase(self, product_id: str) -> bool:
        """Add one unit to an existing line."""
        line = self._find(product_id)
        if line is None:
            return False
        return await self._set_quantity(line, line.quantity + 1)

    async def decrease(self, product_id: str) -> bool:
        """Remove one unit; the last unit removes the whole line."""
        line = self._find(product_id)
        if line is None:
            return False
        if line.quantity <= 1:
            return await self.remove(product_id)
        return await self._set_quantity(line, line.quantity - 1)

    async def remove(self, product_id: str) -> bool:
        """Delete the line for *product_id*."""
        try:
            await asyncio.to_thread(self._store.remove, product_id)
        except CatalogError as exc:
            self._fail("remove", exc)
            return False
        self.lines = [
            existing
            for existing in self.lines
            if existing.product_id != product_id
        ]
        await self._committed()
        return True

    async def clear(self) -> bool:
        """Empty the cart."""
        try:
            await asyncio.to_thread(self._store.clear)
        except CatalogError as exc:
            self._fail("clear", exc)
            return False
        self.lines = []
        await self._committed()
        return True

    # ── Internals ────────────────────────────────────────

    async def _set_quantity(self, line: CartLine, quantity: int) -> bool:
        try:
            updated = await asyncio.to_thread(
                self._store.set_quantity, line.product_id, quantity
            )
        except CatalogError as exc:
            self._fail("update", exc)
            return False
        if not updated:
            # Line vanished underneath us (another screen removed it)
            await self.load()
            return False
        new_line = CartLine(product=line.product, quantity=quantity)
        self.lines = [
            new_line if existing.product_id == line.product_id else existing
            for existing in self.lines
        ]
        await self._committed()
        return True

    async def _committed(self) -> None:
        self._changed()
        await self._bus.publish(CATALOG_MUTATED)

    async def _on_catalog_mutated(self, _topic: str) -> None:
        await self.load()

    def _find(self, product_id: str) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(list(self.lines))

    def _fail(self, action: str, exc: CatalogError) -> None:
        logger.error("Cart %s failed: %s", action, exc)
        if self.on_error is not None:
            self.on_error(exc)
