# storefront/services/paginator.py

"""Incremental page fetching into an append-only product list."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from storefront.clients.catalog_client import CatalogSource
from storefront.config.settings import Settings
from storefront.models.errors import CatalogError, classify_error
from storefront.models.product import Product

logger = logging.getLogger("storefront.paginator")


@dataclass
class CatalogPageState:
    """Cursor and accumulated products of the current paging session."""

    page_limit: int
    current_page: int = 1
    is_last_page: bool = False
    is_fetching: bool = False
    generation: int = 0
    paged_products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    last_error: CatalogError | None = None


class CatalogPaginator:
    """Fetches catalog pages one at a time and appends them in order.

    *on_change* is invoked after every state transition (fetch started,
    page landed, empty page, failure) so observers can re-render.
    """

    def __init__(
        self,
        source: CatalogSource,
        page_limit: int | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._source = source
        self.state = CatalogPageState(
            page_limit=page_limit or Settings.PAGE_LIMIT
        )
        self._on_change = on_change
        self.fetch_count = 0

    @property
    def products(self) -> list[Product]:
        """Copy of the paged products."""
        return list(self.state.paged_products)

    async def reset_and_fetch_first_page(self) -> None:
        """Start a new session and fetch page 1.

        Responses still in flight from the previous session are dropped.
        """
        state = self.state
        state.generation += 1
        state.paged_products = []
        state.current_page = 1
        state.is_last_page = False
        state.is_fetching = False
        state.last_error = None
        logger.info(
            "Paging session reset (generation %d)", state.generation
        )
        await self._fetch()

    async def fetch_next_page(self) -> None:
        """Fetch the page after the cursor.

        Ignored while a fetch is in flight or after the last page.
        """
        state = self.state
        if state.is_fetching or state.is_last_page:
            logger.debug(
                "fetch_next_page ignored (fetching=%s, last=%s)",
                state.is_fetching,
                state.is_last_page,
            )
            return
        state.current_page += 1
        await self._fetch()

    async def _fetch(self) -> None:
        state = self.state
        generation = state.generation
        page = state.current_page
        state.is_fetching = True
        state.last_error = None
        self.fetch_count += 1
        self._notify()

        try:
            products = await asyncio.to_thread(
                self._source.fetch_page, page, state.page_limit
            )
        except Exception as exc:
            if generation != state.generation:
                logger.debug(
                    "Ignoring failure of stale page %d (generation %d)",
                    page,
                    generation,
                )
                return
            error = classify_error(exc)
            state.is_fetching = False
            state.last_error = error
            # Step back so a retry requests the same page again
            if page > 1:
                state.current_page = page - 1
            logger.error(
                "Page %d fetch failed (%s): %s",
                page,
                error.kind.value,
                error,
            )
            self._notify()
            return

        if generation != state.generation:
            logger.debug(
                "Discarding page %d from stale generation %d",
                page,
                generation,
            )
            return

        state.is_fetching = False
        if products:
            state.paged_products.extend(products)
            logger.info(
                "Page %d appended %d products (total %d)",
                page,
                len(products),
                len(state.paged_products),
            )
        else:
            state.is_last_page = True
            logger.info("Page %d empty, reached end of catalog", page)
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
