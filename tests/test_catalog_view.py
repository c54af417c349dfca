# tests/test_catalog_view.py

"""Tests for the catalog screen view state."""

import unittest
from unittest.mock import MagicMock, patch

from fakes import (
    FakeCartStore,
    FakeCatalog,
    FakeFavoriteStore,
    make_product,
)

from storefront.models.errors import (
    ErrorKind,
    InvalidDataError,
    NetworkUnavailableError,
    ServerError,
)
from storefront.models.filter_criteria import FilterCriteria, SortOption
from storefront.services.catalog_view import (
    STATUS_ERROR,
    STATUS_LOADING,
    CatalogSnapshot,
    CatalogViewState,
)
from storefront.services.event_bus import CATALOG_MUTATED, EventBus


def _catalog() -> list:
    """Eight products; even ids are Apple, odd ids are Samsung."""
    return [
        make_product(
            str(i),
            brand="Apple" if i % 2 == 0 else "Samsung",
            price=f"{i * 10}.00",
        )
        for i in range(1, 9)
    ]


class _ViewTestCase(unittest.IsolatedAsyncioTestCase):
    """Shared wiring: fake catalog, stores and a started view."""

    async def asyncSetUp(self) -> None:
        """Start a view over two pages of four products."""
        catalog = _catalog()
        self.source = FakeCatalog(
            pages={1: catalog[:4], 2: catalog[4:]}, all_products=catalog,
        )
        self.cart = FakeCartStore()
        self.favorites = FakeFavoriteStore()
        self.bus = EventBus()
        self.snapshots: list[CatalogSnapshot] = []
        self.view = self._make_view()
        self.view.add_listener(self.snapshots.append)
        await self.view.start()

    async def asyncTearDown(self) -> None:
        """Cancel pending searches and drop the subscription."""
        self.view.close()

    def _make_view(self) -> CatalogViewState:
        return CatalogViewState(
            self.source,
            self.cart,
            self.favorites,
            self.bus,
            page_limit=4,
            search_debounce=0.01,
        )

    def _ids(self) -> list[str]:
        return [p.id for p in self.view.snapshot.products]


class TestCatalogPaging(_ViewTestCase):
    """Start, paging and snapshot emission."""

    async def test_start_loads_first_page(self) -> None:
        """The first page is displayed after start()."""
        self.assertEqual(self._ids(), ["1", "2", "3", "4"])
        self.assertEqual(self.view.snapshot.status, "loaded")

    async def test_fetching_state_is_emitted(self) -> None:
        """Listeners see a loading snapshot before the page lands."""
        loading = [s for s in self.snapshots if s.status == STATUS_LOADING]
        self.assertTrue(loading)
        self.assertTrue(all(s.is_fetching for s in loading))
        self.assertFalse(self.snapshots[-1].is_fetching)

    async def test_next_page_appends(self) -> None:
        """fetch_next_page grows the displayed list to eight."""
        await self.view.fetch_next_page()
        self.assertEqual(len(self._ids()), 8)

    async def test_end_of_catalog(self) -> None:
        """An empty third page flags the last page."""
        await self.view.fetch_next_page()
        await self.view.fetch_next_page()
        self.assertTrue(self.view.snapshot.is_last_page)
        count = self.view.fetch_count
        await self.view.fetch_next_page()
        self.assertEqual(self.view.fetch_count, count)

    async def test_refresh_starts_over(self) -> None:
        """refresh() drops paged products and refetches page 1."""
        await self.view.fetch_next_page()
        await self.view.refresh()
        self.assertEqual(self._ids(), ["1", "2", "3", "4"])

    async def test_listener_errors_are_isolated(self) -> None:
        """A raising listener does not break emission."""
        broken = MagicMock(side_effect=RuntimeError("ui bug"))
        self.view.add_listener(broken)
        with self.assertLogs("storefront.catalog_view", level="ERROR"):
            await self.view.refresh()
        self.assertEqual(len(self._ids()), 4)

    async def test_remove_listener(self) -> None:
        """Removed listeners receive nothing further."""
        self.view.remove_listener(self.snapshots.append)
        before = len(self.snapshots)
        await self.view.refresh()
        self.assertEqual(len(self.snapshots), before)


class TestCatalogFiltering(_ViewTestCase):
    """Filter promotion to the full-catalog cache."""

    async def test_brand_filter_uses_full_catalog(self) -> None:
        """Filtering reaches products that were never paged."""
        await self.view.apply_filter(
            FilterCriteria(selected_brands=frozenset({"Apple"}))
        )
        self.assertEqual(self._ids(), ["2", "4", "6", "8"])
        self.assertTrue(self.view.snapshot.is_filtering)
        self.assertTrue(self.view.is_cache_ready)
        self.assertEqual(self.source.all_calls, 1)

    async def test_next_page_skipped_while_filtering_cache(self) -> None:
        """Paging is pointless once the full catalog is displayed."""
        await self.view.apply_filter(FilterCriteria(search_text="Product"))
        calls = len(self.source.page_calls)
        await self.view.fetch_next_page()
        self.assertEqual(len(self.source.page_calls), calls)

    async def test_sort_only_stays_on_paged_list(self) -> None:
        """A sort order alone neither loads the cache nor filters."""
        await self.view.apply_filter(
            FilterCriteria(sort_option=SortOption.PRICE_HIGH_TO_LOW)
        )
        self.assertEqual(self._ids(), ["4", "3", "2", "1"])
        self.assertEqual(self.source.all_calls, 0)

    async def test_cache_failure_falls_back_to_paged(self) -> None:
        """Without the cache the paged subset is filtered."""
        self.source.all_error = NetworkUnavailableError("offline")
        await self.view.apply_filter(
            FilterCriteria(selected_brands=frozenset({"Apple"}))
        )
        self.assertEqual(self._ids(), ["2", "4"])
        self.assertIs(
            self.view.snapshot.last_error, ErrorKind.NETWORK_UNAVAILABLE
        )

    async def test_retry_after_cache_failure(self) -> None:
        """retry() reloads the cache and shows the full result."""
        self.source.all_error = NetworkUnavailableError("offline")
        await self.view.apply_filter(
            FilterCriteria(selected_brands=frozenset({"Apple"}))
        )
        self.source.all_error = None

        self.assertTrue(await self.view.retry())

        self.assertEqual(self._ids(), ["2", "4", "6", "8"])
        self.assertIsNone(self.view.snapshot.last_error)

    async def test_retry_targets_cache_after_later_page_success(self) -> None:
        """A successful page fetch does not steal the cache retry."""
        self.source.all_error = NetworkUnavailableError("offline")
        await self.view.apply_filter(
            FilterCriteria(selected_brands=frozenset({"Apple"}))
        )
        await self.view.fetch_next_page()
        self.source.all_error = None
        page_calls = len(self.source.page_calls)

        self.assertTrue(await self.view.retry())

        self.assertEqual(self.source.all_calls, 2)
        self.assertEqual(len(self.source.page_calls), page_calls)
        self.assertTrue(self.view.is_cache_ready)
        self.assertIsNone(self.view.snapshot.last_error)
        self.assertEqual(self._ids(), ["2", "4", "6", "8"])

    async def test_refresh_while_filtering_reloads_cache(self) -> None:
        """A refresh invalidates and refetches the full catalog."""
        await self.view.apply_filter(
            FilterCriteria(selected_brands=frozenset({"Apple"}))
        )
        await self.view.refresh()
        self.assertEqual(self.source.all_calls, 2)
        self.assertEqual(self._ids(), ["2", "4", "6", "8"])

    async def test_clear_filters(self) -> None:
        """Clearing returns to the paged list in default order."""
        await self.view.apply_filter(
            FilterCriteria(
                sort_option=SortOption.NEW_TO_OLD,
                selected_brands=frozenset({"Apple"}),
            )
        )
        await self.view.clear_filters()
        self.assertEqual(self.view.criteria, FilterCriteria())
        self.assertEqual(self._ids(), ["1", "2", "3", "4"])
        self.assertFalse(self.view.snapshot.is_filtering)

    async def test_filter_options_from_cache(self) -> None:
        """Once cached, every catalog brand is offered."""
        options = self.view.filter_options()
        self.assertEqual(options.brands, ["Apple", "Samsung"])
        await self.view.apply_filter(FilterCriteria(search_text="x"))
        self.assertEqual(
            self.view.filter_options().brands, ["Apple", "Samsung"]
        )

    async def test_search_is_debounced(self) -> None:
        """Only the last keystroke in the window is applied."""
        with patch.object(
            self.view, "apply_filter", wraps=self.view.apply_filter
        ) as spy:
            self.view.set_search_text("P")
            self.view.set_search_text("Pro")
            self.view.set_search_text("Product 7")
            await self.view.wait_for_search()

        spy.assert_awaited_once()
        self.assertEqual(self.view.criteria.search_text, "Product 7")
        self.assertEqual(self._ids(), ["7"])


class TestCatalogErrors(_ViewTestCase):
    """Error display and retry policy."""

    async def test_page_failure_shows_error(self) -> None:
        """A failed first page puts the screen in the error state."""
        self.source.page_error = ServerError("HTTP 500")
        await self.view.refresh()
        self.assertEqual(self.view.snapshot.status, STATUS_ERROR)
        self.assertIs(self.view.snapshot.last_error, ErrorKind.SERVER_ERROR)

    async def test_retry_first_page(self) -> None:
        """retry() re-requests the failed first page."""
        self.source.page_error = ServerError("HTTP 500")
        await self.view.refresh()
        self.source.page_error = None

        self.assertTrue(await self.view.retry())
        self.assertEqual(self._ids(), ["1", "2", "3", "4"])

    async def test_retry_next_page(self) -> None:
        """retry() after a failed next page requests page 2 again."""
        self.source.page_error = NetworkUnavailableError("offline")
        await self.view.fetch_next_page()
        self.source.page_error = None

        self.assertTrue(await self.view.retry())

        self.assertEqual(self.source.page_calls[-1], (2, 4))
        self.assertEqual(len(self._ids()), 8)

    async def test_retry_refused_without_error(self) -> None:
        """Nothing to retry returns False."""
        self.assertFalse(await self.view.retry())

    async def test_retry_refused_for_invalid_data(self) -> None:
        """Decoding failures are not retryable."""
        self.source.page_error = InvalidDataError("bad json")
        await self.view.refresh()
        calls = len(self.source.page_calls)
        self.assertFalse(await self.view.retry())
        self.assertEqual(len(self.source.page_calls), calls)


class TestCatalogCartAndFavorites(_ViewTestCase):
    """Cart badge and favorite toggling."""

    async def test_add_to_cart_updates_badge(self) -> None:
        """Adding publishes a mutation and the badge reloads."""
        line = await self.view.add_to_cart(make_product("1"), 2)
        assert line is not None
        self.assertEqual(line.quantity, 2)
        self.assertEqual(self.view.cart_total_quantity, 2)
        self.assertEqual(self.view.snapshot.cart_total_quantity, 2)

    async def test_add_to_cart_failure_publishes_nothing(self) -> None:
        """A store failure reports the error and stays silent on the bus."""
        published: list[str] = []
        self.bus.subscribe(CATALOG_MUTATED, published.append)
        self.cart.fail = True
        errors: list[Exception] = []

        line = await self.view.add_to_cart(
            make_product("1"), on_error=errors.append
        )

        self.assertIsNone(line)
        self.assertEqual(published, [])
        self.assertIs(errors[0].kind, ErrorKind.PERSISTENCE_FAILURE)

    async def test_toggle_favorite_twice_restores(self) -> None:
        """Two toggles leave membership unchanged."""
        product = make_product("3")
        states: list[bool] = []

        self.assertTrue(
            await self.view.toggle_favorite(product, states.append)
        )
        self.assertIn("3", self.favorites.ids)
        self.assertIn("3", self.view.snapshot.favorite_ids)

        self.assertFalse(
            await self.view.toggle_favorite(product, states.append)
        )
        self.assertEqual(self.favorites.ids, set())
        self.assertFalse(self.view.is_favorite("3"))
        self.assertEqual(states, [True, False])

    async def test_toggle_failure_keeps_state(self) -> None:
        """Membership changes only after the store succeeds."""
        self.favorites.fail = True
        errors: list[Exception] = []
        completion = MagicMock()

        result = await self.view.toggle_favorite(
            make_product("3"), completion, errors.append
        )

        self.assertIsNone(result)
        self.assertFalse(self.view.is_favorite("3"))
        completion.assert_not_called()
        self.assertEqual(len(errors), 1)

    async def test_sibling_view_sees_mutation(self) -> None:
        """Another view on the same bus reloads its local state."""
        sibling = self._make_view()
        await sibling.start()
        try:
            await self.view.toggle_favorite(make_product("5"))
            await self.view.add_to_cart(make_product("5"), 3)
            self.assertTrue(sibling.is_favorite("5"))
            self.assertEqual(sibling.cart_total_quantity, 3)
        finally:
            sibling.close()

    async def test_close_unsubscribes(self) -> None:
        """A closed view stops listening to the bus."""
        self.assertEqual(self.bus.subscriber_count(CATALOG_MUTATED), 1)
        self.view.close()
        self.assertEqual(self.bus.subscriber_count(CATALOG_MUTATED), 0)

    async def test_reload_survives_store_failure(self) -> None:
        """Unreadable stores keep the previous local state."""
        await self.view.add_to_cart(make_product("1"))
        self.cart.fail = True
        with self.assertLogs("storefront.catalog_view", level="ERROR"):
            await self.view.reload_local_state()
        self.assertEqual(self.view.cart_total_quantity, 1)


if __name__ == "__main__":
    unittest.main()
