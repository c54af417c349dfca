# storefront/filters/filter_sort.py

"""Derive the displayable product list from paged or cached catalog data.

Everything here is a pure function of its arguments: same inputs, same
list, same order.  Returned lists are always fresh copies.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from storefront.filters.price_parser import parse_price
from storefront.models.filter_criteria import FilterCriteria, SortOption
from storefront.models.product import Product

logger = logging.getLogger("storefront.filters")

STATUS_LOADED = "loaded"
STATUS_EMPTY = "empty"


@dataclass(frozen=True)
class CacheView:
    """Read-only view of the full-catalog cache handed to the engine."""

    is_cached: bool = False
    cached_products: tuple[Product, ...] = field(
        default_factory=lambda: tuple[Product, ...]()
    )


def choose_source(
    criteria: FilterCriteria,
    paged_products: Sequence[Product],
    cache: CacheView,
) -> list[Product]:
    """Pick the authoritative product list for *criteria*.

    Filtering and searching run over the full catalog once it is cached;
    until then (or with no active criteria) the paged list is used.
    """
    if cache.is_cached and criteria.is_active:
        return list(cache.cached_products)
    return list(paged_products)


def search_by_name(
    products: Iterable[Product], search_text: str,
) -> list[Product]:
    """Keep products whose name contains *search_text*, ignoring case."""
    if not search_text.strip():
        return list(products)
    needle = search_text.lower()
    return [p for p in products if needle in p.name.lower()]


def filter_by_values(
    products: Iterable[Product],
    brands: frozenset[str],
    models: frozenset[str],
) -> list[Product]:
    """Apply the brand and model selections (empty set = no constraint)."""
    kept = list(products)
    if brands:
        kept = [p for p in kept if p.brand in brands]
    if models:
        kept = [p for p in kept if p.model in models]
    return kept


def sort_products(
    products: Iterable[Product], option: SortOption,
) -> list[Product]:
    """Order products per *option*; ties keep their incoming order."""
    items = list(products)
    if option is SortOption.OLD_TO_NEW:
        return sorted(items, key=lambda p: p.created_at)
    if option is SortOption.NEW_TO_OLD:
        return sorted(items, key=lambda p: p.created_at, reverse=True)
    if option is SortOption.PRICE_HIGH_TO_LOW:
        return sorted(items, key=lambda p: parse_price(p.price), reverse=True)
    return sorted(items, key=lambda p: parse_price(p.price))


def compute_display_list(
    criteria: FilterCriteria,
    paged_products: Sequence[Product],
    cache: CacheView,
) -> list[Product]:
    """Search, filter and sort the authoritative source for display."""
    source = choose_source(criteria, paged_products, cache)
    matched = search_by_name(source, criteria.search_text)
    matched = filter_by_values(
        matched, criteria.selected_brands, criteria.selected_models
    )
    result = sort_products(matched, criteria.sort_option)

    excluded = len(source) - len(result)
    if excluded:
        logger.debug(
            "Filtered out %d of %d products (search=%r)",
            excluded,
            len(source),
            criteria.search_text,
        )
    return result


def display_status(products: Sequence[Product]) -> str:
    """``"empty"`` for an empty list, ``"loaded"`` otherwise."""
    return STATUS_LOADED if products else STATUS_EMPTY


# ── Filter sheet options ─────────────────────────────


def available_brands(products: Iterable[Product]) -> list[str]:
    """Sorted unique non-empty brands."""
    return sorted({p.brand for p in products if p.brand})


def available_models(products: Iterable[Product]) -> list[str]:
    """Sorted unique non-empty models."""
    return sorted({p.model for p in products if p.model})


def match_options(options: Iterable[str], search_text: str) -> list[str]:
    """Narrow a picker's options by case-insensitive substring."""
    needle = search_text.strip().lower()
    if not needle:
        return list(options)
    return [o for o in options if needle in o.lower()]
