# storefront/services/favorites_view.py

"""Favorites screen state resolved against the full catalog."""

import asyncio
import logging
from collections.abc import Callable

from storefront.filters.filter_sort import display_status, search_by_name
from storefront.models.errors import CatalogError
from storefront.models.product import CartLine, Product
from storefront.services.event_bus import CATALOG_MUTATED, EventBus
from storefront.storage.cart_store import CartStore
from storefront.storage.catalog_cache import AllProductsCache
from storefront.storage.favorite_store import FavoriteStore

logger = logging.getLogger("storefront.favorites_view")


class FavoritesView:
    """Lists favorite products with name search.

    Favorite ids come from the store; product details come from the
    shared :class:`AllProductsCache`.  Mutations announced on the bus by
    any screen trigger a reload.  Store failures are logged and reported
    through :attr:`on_error`.
    """

    def __init__(
        self,
        favorite_store: FavoriteStore,
        cart_store: CartStore,
        catalog_cache: AllProductsCache,
        event_bus: EventBus,
    ) -> None:
        self._favorites = favorite_store
        self._cart = cart_store
        self._cache = catalog_cache
        self._bus = event_bus
        self.status = "idle"
        self.favorite_ids: set[str] = set()
        self.favorite_products: list[Product] = []
        self.filtered_products: list[Product] = []
        self.last_error: CatalogError | None = None
        self.on_state_change: Callable[[str], None] | None = None
        self.on_error: Callable[[CatalogError], None] | None = None
        self._search_text = ""
        self._subscription: int | None = self._bus.subscribe(
            CATALOG_MUTATED, self._on_catalog_mutated
        )

    def close(self) -> None:
        """Stop listening for catalog mutations."""
        if self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
            self._subscription = None

    def is_favorite(self, product_id: str) -> bool:
        """Membership test against the in-memory favorite set."""
        return product_id in self.favorite_ids

    async def load_ids(self) -> bool:
        """Refresh :attr:`favorite_ids` from the store.

        An unreadable store counts as no favorites.
        """
        try:
            ids = await asyncio.to_thread(self._favorites.load_all)
        except CatalogError as exc:
            logger.error("Could not load favorite ids: %s", exc)
            self.favorite_ids = set()
            return False
        self.favorite_ids = set(ids)
        return True

    async def load(self) -> None:
        """Read favorite ids, then resolve them through the catalog cache."""
        self._set_status("loading")
        await self.load_ids()
        if not self.favorite_ids:
            self.favorite_products = []
            self._apply_search()
            return

        catalog = await self._cache.ensure_cached()
        if catalog is None:
            self.last_error = self._cache.last_error
            self._set_status("error")
            return
        self.last_error = None
        self.favorite_products = [
            p for p in catalog if p.id in self.favorite_ids
        ]
        self._apply_search()

    async def retry(self) -> bool:
        """Reload when the last failure is retryable."""
        if self.last_error is None or not self.last_error.can_retry:
            return False
        await self.load()
        return True

    def set_search_text(self, text: str) -> None:
        """Filter the favorite list by product name."""
        self._search_text = text
        self._apply_search()

    def clear_search(self) -> None:
        """Show every favorite again."""
        self.set_search_text("")

    async def toggle_favorite(
        self,
        product: Product,
        completion: Callable[[], None] | None = None,
    ) -> bool:
        """Add or remove *product*; un-favorited products leave the list."""
        member = self.is_favorite(product.id)
        action = self._favorites.remove if member else self._favorites.add
        try:
            await asyncio.to_thread(action, product.id)
        except CatalogError as exc:
            self._fail(f"toggle of {product.id}", exc)
            return False

        if member:
            self.favorite_ids.discard(product.id)
            self.favorite_products = [
                p for p in self.favorite_products if p.id != product.id
            ]
            self._apply_search()
        else:
            self.favorite_ids.add(product.id)
        await self._bus.publish(CATALOG_MUTATED)
        if completion is not None:
            completion()
        return True

    async def add_to_cart(
        self, product: Product, qty: int = 1,
    ) -> CartLine | None:
        """Add *product* to the cart from the favorites list."""
        try:
            line = await asyncio.to_thread(
                self._cart.add_or_increment, product, qty
            )
        except CatalogError as exc:
            self._fail(f"add to cart of {product.id}", exc)
            return None
        await self._bus.publish(CATALOG_MUTATED)
        return line

    async def _on_catalog_mutated(self, _topic: str) -> None:
        # Never-loaded screens only track ids
        if self.status == "idle":
            await self.load_ids()
        else:
            await self.load()

    def _fail(self, action: str, exc: CatalogError) -> None:
        logger.error("Favorites %s failed: %s", action, exc)
        if self.on_error is not None:
            self.on_error(exc)

    def _apply_search(self) -> None:
        self.filtered_products = search_by_name(
            self.favorite_products, self._search_text
        )
        self._set_status(display_status(self.filtered_products))

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.on_state_change is not None:
            self.on_state_change(status)
