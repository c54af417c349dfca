# storefront/models/product.py

"""Catalog product and cart line models."""

from dataclasses import dataclass
from typing import Any

from storefront.models.errors import InvalidDataError

_REQUIRED_FIELDS = ("id", "name", "price")


@dataclass(frozen=True)
class Product:
    """A single catalog record as served by the remote catalog."""

    id: str
    name: str
    price: str
    created_at: str = ""
    image_ref: str = ""
    description: str = ""
    model: str = ""
    brand: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> "Product":
        """Decode one catalog API object.

        Raises :class:`InvalidDataError` when the payload is not an object
        or lacks a string ``id``, ``name`` or ``price``.
        """
        if not isinstance(raw, dict):
            raise InvalidDataError(
                f"Expected product object, got {type(raw).__name__}"
            )
        for key in _REQUIRED_FIELDS:
            if not isinstance(raw.get(key), str):
                raise InvalidDataError(
                    f"Product payload missing string field '{key}'"
                )
        return cls(
            id=raw["id"],
            name=raw["name"],
            price=raw["price"],
            created_at=str(raw.get("createdAt") or ""),
            image_ref=str(raw.get("image") or ""),
            description=str(raw.get("description") or ""),
            model=str(raw.get("model") or ""),
            brand=str(raw.get("brand") or ""),
        )


@dataclass(frozen=True)
class CartLine:
    """A persisted cart entry: a product snapshot plus its quantity.

    Only ``id``, ``name``, ``price`` and ``image_ref`` of the snapshot are
    persisted; the remaining product fields are empty on reload.
    """

    product: Product
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            msg = f"Cart line quantity must be >= 1, got {self.quantity}"
            raise ValueError(msg)

    @property
    def product_id(self) -> str:
        """Key of the line inside the cart store."""
        return self.product.id
