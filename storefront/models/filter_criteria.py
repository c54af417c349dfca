# storefront/models/filter_criteria.py

"""Sort options and the transient filter criteria of a catalog session."""

from dataclasses import dataclass, field, replace
from enum import Enum


class SortOption(Enum):
    """Ordering applied to the displayed product list."""

    OLD_TO_NEW = "Old to new"
    NEW_TO_OLD = "New to old"
    PRICE_HIGH_TO_LOW = "Price high to low"
    PRICE_LOW_TO_HIGH = "Price low to high"

    @property
    def label(self) -> str:
        """Human readable label shown in sort pickers."""
        return self.value


@dataclass(frozen=True)
class FilterCriteria:
    """Search text, brand/model selections and sort order."""

    sort_option: SortOption = SortOption.OLD_TO_NEW
    selected_brands: frozenset[str] = field(
        default_factory=lambda: frozenset[str]()
    )
    selected_models: frozenset[str] = field(
        default_factory=lambda: frozenset[str]()
    )
    search_text: str = ""

    @property
    def has_active_filter(self) -> bool:
        """True when any brand or model constraint is selected."""
        return bool(self.selected_brands or self.selected_models)

    @property
    def has_search(self) -> bool:
        """True when the search text is not blank."""
        return bool(self.search_text.strip())

    @property
    def is_active(self) -> bool:
        """True when the list needs the full catalog to be complete."""
        return self.has_active_filter or self.has_search

    def with_search(self, text: str) -> "FilterCriteria":
        """Return a copy with *text* as the search text."""
        return replace(self, search_text=text)

    def cleared(self) -> "FilterCriteria":
        """Return default criteria: no search, no selections, oldest first."""
        return FilterCriteria()
