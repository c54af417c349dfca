# storefront/services/catalog_view.py

"""Observable catalog screen state combining paging, caching and filters."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from storefront.clients.catalog_client import CatalogSource
from storefront.config.settings import Settings
from storefront.filters.filter_sort import (
    available_brands,
    available_models,
    choose_source,
    compute_display_list,
    display_status,
)
from storefront.models.errors import CatalogError, ErrorKind
from storefront.models.filter_criteria import FilterCriteria
from storefront.models.product import CartLine, Product
from storefront.services.event_bus import CATALOG_MUTATED, EventBus
from storefront.services.paginator import CatalogPaginator
from storefront.storage.cart_store import CartStore
from storefront.storage.catalog_cache import AllProductsCache
from storefront.storage.favorite_store import FavoriteStore

logger = logging.getLogger("storefront.catalog_view")

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_ERROR = "error"

_REQUEST_FIRST_PAGE = "first_page"
_REQUEST_NEXT_PAGE = "next_page"
_REQUEST_ALL_PRODUCTS = "all_products"


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything a presentation layer reads from the catalog screen."""

    status: str = STATUS_IDLE
    products: tuple[Product, ...] = ()
    is_fetching: bool = False
    is_last_page: bool = False
    is_filtering: bool = False
    cart_total_quantity: int = 0
    favorite_ids: frozenset[str] = field(
        default_factory=lambda: frozenset[str]()
    )
    last_error: ErrorKind | None = None


@dataclass(frozen=True)
class FilterOptions:
    """Brand and model choices offered by the filter sheet."""

    brands: list[str]
    models: list[str]


StateListener = Callable[[CatalogSnapshot], None]


class CatalogViewState:
    """Drives the catalog list screen.

    All mutations happen on the event loop that awaits these coroutines.
    Remote and store I/O runs in worker threads via ``asyncio.to_thread``.
    """

    def __init__(
        self,
        client: CatalogSource,
        cart_store: CartStore,
        favorite_store: FavoriteStore,
        event_bus: EventBus,
        *,
        page_limit: int | None = None,
        search_debounce: float | None = None,
    ) -> None:
        self._cart_store = cart_store
        self._favorite_store = favorite_store
        self._bus = event_bus
        self._paginator = CatalogPaginator(
            client, page_limit=page_limit, on_change=self._emit
        )
        self._cache = AllProductsCache(client)
        self._debounce = (
            Settings.SEARCH_DEBOUNCE
            if search_debounce is None
            else search_debounce
        )

        self.criteria = FilterCriteria()
        self._listeners: list[StateListener] = []
        self._search_task: asyncio.Task[None] | None = None
        self._subscription: int | None = None
        self._cart_total = 0
        self._favorite_ids: set[str] = set()
        self._cache_error: CatalogError | None = None
        self._page_request = _REQUEST_FIRST_PAGE
        self._started = False
        self.snapshot = CatalogSnapshot()

    # ── Observation ──────────────────────────────────────

    def add_listener(self, listener: StateListener) -> None:
        """Call *listener* with every new snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        """Stop notifying *listener*; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def paged_products(self) -> list[Product]:
        """Copy of the products paged in so far."""
        return self._paginator.products

    @property
    def is_cache_ready(self) -> bool:
        """True when the full catalog is available for filtering."""
        return self._cache.is_cached

    @property
    def fetch_count(self) -> int:
        """Number of page requests issued so far."""
        return self._paginator.fetch_count

    # ── Lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        """Subscribe to mutations, load local state and the first page."""
        if not self._started:
            self._subscription = self._bus.subscribe(
                CATALOG_MUTATED, self._on_catalog_mutated
            )
            self._started = True
        await self.reload_local_state()
        await self.reset_and_fetch_first_page()

    def close(self) -> None:
        """Unsubscribe and cancel any pending debounced search."""
        if self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
            self._subscription = None
        self._started = False
        self._cancel_pending_search()

    # ── Paging ───────────────────────────────────────────

    async def reset_and_fetch_first_page(self) -> None:
        """Drop paged and cached data and fetch page 1."""
        self._page_request = _REQUEST_FIRST_PAGE
        self._cache.invalidate()
        self._cache_error = None
        await self._paginator.reset_and_fetch_first_page()
        if self.criteria.is_active:
            await self._load_cache_and_recompute()

    async def refresh(self) -> None:
        """User-triggered pull to refresh."""
        logger.info("Catalog refresh requested")
        await self.reset_and_fetch_first_page()

    async def fetch_next_page(self) -> None:
        """Load more products, unless the list is served from the cache."""
        if self._cache.is_cached and self.criteria.is_active:
            logger.debug("fetch_next_page skipped while filtering cache")
            return
        self._page_request = _REQUEST_NEXT_PAGE
        await self._paginator.fetch_next_page()

    async def retry(self) -> bool:
        """Re-issue the failed request when its error is retryable.

        A page failure is retried before a full-catalog failure, matching
        the error shown on the snapshot.  Returns ``False`` when there is
        nothing retryable to re-issue.
        """
        request, error = self._failed_request()
        if error is None or not error.can_retry:
            logger.info(
                "Retry refused (error=%s)",
                error.kind.value if error else None,
            )
            return False
        logger.info("Retrying %s after %s", request, error.kind.value)
        if request == _REQUEST_ALL_PRODUCTS:
            self._cache_error = None
            await self._load_cache_and_recompute()
        elif request == _REQUEST_NEXT_PAGE:
            await self._paginator.fetch_next_page()
        else:
            await self.reset_and_fetch_first_page()
        return True

    # ── Search & filters ─────────────────────────────────

    def set_search_text(self, text: str) -> None:
        """Debounce a keystroke; only the last text in the window applies."""
        self._cancel_pending_search()
        self._search_task = asyncio.ensure_future(
            self._debounced_search(text)
        )

    async def wait_for_search(self) -> None:
        """Await the pending debounced search, if any."""
        task = self._search_task
        if task is not None and not task.done():
            await task

    async def apply_filter(self, criteria: FilterCriteria) -> None:
        """Replace the criteria and recompute the displayed list."""
        self.criteria = criteria
        logger.info(
            "Filter applied: sort=%s brands=%d models=%d search=%r",
            criteria.sort_option.name,
            len(criteria.selected_brands),
            len(criteria.selected_models),
            criteria.search_text,
        )
        self._emit()
        if criteria.is_active and not self._cache.is_cached:
            await self._load_cache_and_recompute()

    async def clear_filters(self) -> None:
        """Reset search, selections and sort order."""
        self._cancel_pending_search()
        await self.apply_filter(self.criteria.cleared())

    def filter_options(self) -> FilterOptions:
        """Brands and models present in the authoritative source.

        With the full catalog cached every brand is offered, even while no
        filter is active yet.
        """
        if self._cache.is_cached:
            source = list(self._cache.view().cached_products)
        else:
            source = choose_source(
                self.criteria, self.paged_products, self._cache.view()
            )
        return FilterOptions(
            brands=available_brands(source),
            models=available_models(source),
        )

    # ── Cart & favorites ─────────────────────────────────

    def is_favorite(self, product_id: str) -> bool:
        """Membership test against the in-memory favorite set."""
        return product_id in self._favorite_ids

    @property
    def cart_total_quantity(self) -> int:
        """Sum of all cart line quantities, for the badge counter."""
        return self._cart_total

    async def add_to_cart(
        self,
        product: Product,
        qty: int = 1,
        on_error: Callable[[CatalogError], None] | None = None,
    ) -> CartLine | None:
        """Add *qty* of *product* and announce the mutation.

        Returns the stored line, or ``None`` when persistence failed.
        """
        try:
            line = await asyncio.to_thread(
                self._cart_store.add_or_increment, product, qty
            )
        except CatalogError as exc:
            logger.error("Add to cart failed for %s: %s", product.id, exc)
            if on_error is not None:
                on_error(exc)
            return None
        await self._bus.publish(CATALOG_MUTATED)
        return line

    async def toggle_favorite(
        self,
        product: Product,
        completion: Callable[[bool], None] | None = None,
        on_error: Callable[[CatalogError], None] | None = None,
    ) -> bool | None:
        """Flip favorite membership of *product*.

        The in-memory set changes only after the store call succeeds.
        Returns the new membership, or ``None`` on failure.
        """
        was_favorite = self.is_favorite(product.id)
        action = (
            self._favorite_store.remove
            if was_favorite
            else self._favorite_store.add
        )
        try:
            await asyncio.to_thread(action, product.id)
        except CatalogError as exc:
            logger.error(
                "Favorite toggle failed for %s: %s", product.id, exc
            )
            if on_error is not None:
                on_error(exc)
            return None

        if was_favorite:
            self._favorite_ids.discard(product.id)
        else:
            self._favorite_ids.add(product.id)
        self._emit()
        await self._bus.publish(CATALOG_MUTATED)
        if completion is not None:
            completion(not was_favorite)
        return not was_favorite

    async def reload_local_state(self) -> None:
        """Re-read cart total and favorite ids from the stores."""
        try:
            lines = await asyncio.to_thread(self._cart_store.load_all)
            self._cart_total = sum(line.quantity for line in lines)
        except CatalogError as exc:
            logger.error("Could not reload cart total: %s", exc)
        try:
            ids = await asyncio.to_thread(self._favorite_store.load_all)
            self._favorite_ids = set(ids)
        except CatalogError as exc:
            logger.error("Could not reload favorites: %s", exc)
        self._emit()

    # ── Internals ────────────────────────────────────────

    async def _on_catalog_mutated(self, _topic: str) -> None:
        await self.reload_local_state()

    async def _debounced_search(self, text: str) -> None:
        await asyncio.sleep(self._debounce)
        await self.apply_filter(self.criteria.with_search(text))

    def _cancel_pending_search(self) -> None:
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = None

    async def _load_cache_and_recompute(self) -> None:
        result = await self._cache.ensure_cached()
        if result is None and self._cache.last_error is not None:
            self._cache_error = self._cache.last_error
        else:
            self._cache_error = None
        self._emit()

    def _failed_request(self) -> tuple[str, CatalogError | None]:
        page_error = self._paginator.state.last_error
        if page_error is not None:
            return self._page_request, page_error
        return _REQUEST_ALL_PRODUCTS, self._cache_error

    def _build_snapshot(self) -> CatalogSnapshot:
        page_state = self._paginator.state
        products = compute_display_list(
            self.criteria, page_state.paged_products, self._cache.view()
        )
        error = page_state.last_error
        if error is not None:
            status = STATUS_ERROR
        elif page_state.is_fetching:
            status = STATUS_LOADING
        else:
            status = display_status(products)
        visible_error = error or self._cache_error
        return CatalogSnapshot(
            status=status,
            products=tuple(products),
            is_fetching=page_state.is_fetching,
            is_last_page=page_state.is_last_page,
            is_filtering=self.criteria.is_active,
            cart_total_quantity=self._cart_total,
            favorite_ids=frozenset(self._favorite_ids),
            last_error=visible_error.kind if visible_error else None,
        )

    def _emit(self) -> None:
        self.snapshot = self._build_snapshot()
        for listener in list(self._listeners):
            try:
                listener(self.snapshot)
            except Exception:
                logger.error("State listener failed", exc_info=True)

