# storefront/cli/runner.py

"""Headless CLI over the catalog, cart and favorites view states."""

import json
import logging
import sys
from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table

from storefront.clients.catalog_client import CatalogSource, CurlCatalogClient
from storefront.filters.filter_sort import match_options
from storefront.models.errors import describe_error
from storefront.models.filter_criteria import FilterCriteria, SortOption
from storefront.models.product import CartLine, Product
from storefront.services.cart_view import CartView, line_total
from storefront.services.catalog_view import (
    STATUS_ERROR,
    CatalogSnapshot,
    CatalogViewState,
)
from storefront.services.event_bus import EventBus
from storefront.services.favorites_view import FavoritesView
from storefront.storage.cart_store import CartStore, SQLiteCartStore
from storefront.storage.catalog_cache import AllProductsCache
from storefront.storage.favorite_store import (
    FavoriteStore,
    SQLiteFavoriteStore,
)

logger = logging.getLogger("storefront.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

SORT_CHOICES: dict[str, SortOption] = {
    option.name.lower(): option for option in SortOption
}


@dataclass
class CatalogRequest:
    """Parsed CLI options for a catalog listing."""

    pages: int = 1
    search: str = ""
    brands: list[str] = field(default_factory=lambda: list[str]())
    models: list[str] = field(default_factory=lambda: list[str]())
    sort: str = "old_to_new"
    output_format: str = "table"

    def criteria(self) -> FilterCriteria:
        """Translate the options into filter criteria."""
        return FilterCriteria(
            sort_option=SORT_CHOICES[self.sort],
            selected_brands=frozenset(self.brands),
            selected_models=frozenset(self.models),
            search_text=self.search,
        )


@dataclass
class Services:
    """Collaborators shared by every command of one CLI run."""

    client: CatalogSource
    cart_store: CartStore
    favorite_store: FavoriteStore
    bus: EventBus = field(default_factory=EventBus)

    @classmethod
    def create(cls) -> "Services":
        """Wire the HTTP client and the SQLite stores from Settings."""
        return cls(
            client=CurlCatalogClient(),
            cart_store=SQLiteCartStore(),
            favorite_store=SQLiteFavoriteStore(),
        )


def _products_to_dicts(
    products: tuple[Product, ...] | list[Product],
    favorite_ids: frozenset[str] | set[str] = frozenset(),
) -> list[dict[str, object]]:
    """Serialise a product list to plain dicts for JSON output."""
    return [
        {
            "id": p.id,
            "name": p.name,
            "price": p.price,
            "brand": p.brand,
            "model": p.model,
            "createdAt": p.created_at,
            "favorite": p.id in favorite_ids,
        }
        for p in products
    ]


def _print_products(snapshot: CatalogSnapshot) -> None:
    """Render a Rich table of the displayed products to stdout."""
    table = Table(
        title="Catalog",
        show_lines=True,
        title_style="bold cyan",
        caption=(
            f"cart: {snapshot.cart_total_quantity} items"
            f"{'  (end of catalog)' if snapshot.is_last_page else ''}"
        ),
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="dim")
    table.add_column("Name", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Brand", style="magenta")
    table.add_column("Model")
    table.add_column("Fav", justify="center")

    for idx, p in enumerate(snapshot.products, 1):
        table.add_row(
            str(idx),
            p.id,
            p.name[:50],
            p.price,
            p.brand,
            p.model,
            "★" if p.id in snapshot.favorite_ids else "",
        )

    Console().print(table)


def _print_cart(lines: list[CartLine], total: float) -> None:
    """Render the cart as a Rich table to stdout."""
    table = Table(
        title="Cart",
        show_lines=True,
        title_style="bold cyan",
        caption=f"total: {total:,.2f}",
    )
    table.add_column("ID", style="dim")
    table.add_column("Name", max_width=50)
    table.add_column("Unit price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Line total", justify="right", style="green")
    for line in lines:
        table.add_row(
            line.product_id,
            line.product.name[:50],
            line.product.price,
            str(line.quantity),
            f"{line_total(line):,.2f}",
        )
    Console().print(table)


async def _load_view(
    services: Services, request: CatalogRequest,
) -> CatalogViewState:
    """Start a catalog view, page it and apply the requested criteria."""
    view = CatalogViewState(
        services.client,
        services.cart_store,
        services.favorite_store,
        services.bus,
    )
    try:
        await view.start()
        for _ in range(max(request.pages, 1) - 1):
            snapshot = view.snapshot
            if snapshot.is_last_page or snapshot.status == STATUS_ERROR:
                break
            await view.fetch_next_page()

        criteria = request.criteria()
        if criteria != view.criteria:
            await view.apply_filter(criteria)
    finally:
        view.close()
    return view


async def list_catalog(services: Services, request: CatalogRequest) -> int:
    """Page through the catalog, filter it, and print the result."""
    view = await _load_view(services, request)

    snapshot = view.snapshot
    if snapshot.last_error is not None:
        kind = snapshot.last_error
        _err.print(f"[red]{kind.title}: {kind.message}[/red]")
        if snapshot.status == STATUS_ERROR:
            return 1

    if not snapshot.products:
        _err.print("[yellow]No products found.[/yellow]")
        return 1

    _err.print(
        f"[green]✓ {len(snapshot.products)} products"
        f" ({len(view.paged_products)} paged"
        f"{', full catalog' if view.is_cache_ready else ''})[/green]"
    )
    if request.output_format == "table":
        _print_products(snapshot)
    else:
        json.dump(
            _products_to_dicts(snapshot.products, snapshot.favorite_ids),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


async def _find_product(
    cache: AllProductsCache, product_id: str,
) -> Product | None:
    catalog = await cache.ensure_cached()
    if catalog is None:
        if cache.last_error is not None:
            _err.print(f"[red]{describe_error(cache.last_error)}[/red]")
        return None
    for product in catalog:
        if product.id == product_id:
            return product
    _err.print(f"[red]Unknown product id: {product_id}[/red]")
    return None


async def add_to_cart(
    services: Services, product_id: str, qty: int,
) -> int:
    """Add a catalog product to the persistent cart."""
    cache = AllProductsCache(services.client)
    product = await _find_product(cache, product_id)
    if product is None:
        return 1
    view = CatalogViewState(
        services.client,
        services.cart_store,
        services.favorite_store,
        services.bus,
    )
    line = await view.add_to_cart(product, qty)
    if line is None:
        _err.print("[red]Could not update the cart.[/red]")
        return 1
    _err.print(
        f"[green]✓ {line.product.name} × {line.quantity} in cart[/green]"
    )
    return 0


async def toggle_favorite(services: Services, product_id: str) -> int:
    """Flip favorite membership of a catalog product."""
    cache = AllProductsCache(services.client)
    product = await _find_product(cache, product_id)
    if product is None:
        return 1
    view = FavoritesView(
        services.favorite_store, services.cart_store, cache, services.bus,
    )
    try:
        await view.load_ids()
        was_favorite = view.is_favorite(product.id)
        toggled = await view.toggle_favorite(product)
    finally:
        view.close()
    if not toggled:
        _err.print("[red]Could not update favorites.[/red]")
        return 1
    verb = "removed from" if was_favorite else "added to"
    _err.print(f"[green]✓ {product.name} {verb} favorites[/green]")
    return 0


async def show_cart(services: Services, output_format: str) -> int:
    """Print the cart lines and total."""
    cart = CartView(services.cart_store, services.bus)
    try:
        errors: list[str] = []
        cart.on_error = lambda exc: errors.append(describe_error(exc))
        lines = await cart.load()
    finally:
        cart.close()
    if errors:
        _err.print(f"[red]{errors[0]}[/red]")
        return 1
    if not lines:
        _err.print("[yellow]Cart is empty.[/yellow]")
        return 0
    if output_format == "table":
        _print_cart(lines, cart.total_price)
    else:
        json.dump(
            {
                "lines": [
                    {
                        "id": line.product_id,
                        "name": line.product.name,
                        "price": line.product.price,
                        "quantity": line.quantity,
                    }
                    for line in lines
                ],
                "total_quantity": cart.total_quantity,
                "total_price": cart.total_price,
            },
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


async def show_favorites(services: Services, output_format: str) -> int:
    """Print the favorite products."""
    view = FavoritesView(
        services.favorite_store,
        services.cart_store,
        AllProductsCache(services.client),
        services.bus,
    )
    try:
        await view.load()
    finally:
        view.close()
    if view.status == STATUS_ERROR and view.last_error is not None:
        _err.print(f"[red]{describe_error(view.last_error)}[/red]")
        return 1
    if not view.filtered_products:
        _err.print("[yellow]No favorites yet.[/yellow]")
        return 0
    if output_format == "table":
        _print_products(
            CatalogSnapshot(
                status=view.status,
                products=tuple(view.filtered_products),
                favorite_ids=frozenset(view.favorite_ids),
            )
        )
    else:
        json.dump(
            _products_to_dicts(view.filtered_products, view.favorite_ids),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


async def list_options(
    services: Services, request: CatalogRequest, match_text: str = "",
) -> int:
    """Print the brand and model choices of the filter sheet.

    With active criteria the choices cover the full catalog, otherwise
    only the loaded pages.  *match_text* narrows both lists.
    """
    view = await _load_view(services, request)
    if view.snapshot.status == STATUS_ERROR:
        kind = view.snapshot.last_error
        if kind is not None:
            _err.print(f"[red]{kind.title}: {kind.message}[/red]")
        return 1

    options = view.filter_options()
    brands = match_options(options.brands, match_text)
    models = match_options(options.models, match_text)
    if request.output_format == "table":
        table = Table(title="Filter options", title_style="bold cyan")
        table.add_column("Brands", style="magenta")
        table.add_column("Models")
        for idx in range(max(len(brands), len(models))):
            table.add_row(
                brands[idx] if idx < len(brands) else "",
                models[idx] if idx < len(models) else "",
            )
        Console().print(table)
    else:
        json.dump(
            {"brands": brands, "models": models},
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0
