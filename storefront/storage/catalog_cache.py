# storefront/storage/catalog_cache.py

"""Lazily loaded, memoized snapshot of the entire remote catalog."""

import asyncio
import logging

from storefront.clients.catalog_client import CatalogSource
from storefront.filters.filter_sort import CacheView
from storefront.models.errors import CatalogError, classify_error
from storefront.models.product import Product

logger = logging.getLogger("storefront.cache")


class AllProductsCache:
    """One-shot cache of ``CatalogSource.fetch_all()``.

    The first :meth:`ensure_cached` call fetches; later calls return the
    memoized list without touching the network until :meth:`invalidate`.
    Concurrent callers share a single in-flight load.  A load that was
    started before an invalidation is discarded when it lands.
    """

    def __init__(self, source: CatalogSource) -> None:
        self._source = source
        self._products: list[Product] = []
        self._is_cached = False
        self._generation = 0
        self._inflight: asyncio.Task[list[Product] | None] | None = None
        self.last_error: CatalogError | None = None

    @property
    def is_cached(self) -> bool:
        """True once a full-catalog fetch has been stored."""
        return self._is_cached

    @property
    def is_loading(self) -> bool:
        """True while a fetch is in flight."""
        return self._inflight is not None and not self._inflight.done()

    def view(self) -> CacheView:
        """Immutable snapshot for the filter/sort engine."""
        return CacheView(
            is_cached=self._is_cached,
            cached_products=tuple(self._products),
        )

    async def ensure_cached(self) -> list[Product] | None:
        """Return the full catalog, fetching it on first use.

        Returns a fresh copy of the cached list, or ``None`` when the
        fetch failed; callers then fall back to the paged products.
        """
        if self._is_cached:
            return list(self._products)
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(
                self._load(self._generation)
            )
        return await asyncio.shield(self._inflight)

    def invalidate(self) -> int:
        """Drop the cached catalog.

        Returns the number of products that were removed.
        """
        count = len(self._products)
        self._products = []
        self._is_cached = False
        self._generation += 1
        self._inflight = None
        self.last_error = None
        logger.info("Catalog cache invalidated (%d products dropped)", count)
        return count

    async def _load(self, generation: int) -> list[Product] | None:
        try:
            products = await asyncio.to_thread(self._source.fetch_all)
        except Exception as exc:
            error = classify_error(exc)
            if generation == self._generation:
                self.last_error = error
            logger.warning(
                "Full catalog fetch failed (%s), filtering stays on "
                "paged products: %s",
                error.kind.value,
                error,
            )
            return None

        if generation != self._generation:
            logger.debug(
                "Discarding full catalog from stale generation %d",
                generation,
            )
            return None

        self._products = list(products)
        self._is_cached = True
        self.last_error = None
        logger.info("Cached full catalog: %d products", len(products))
        return list(self._products)
