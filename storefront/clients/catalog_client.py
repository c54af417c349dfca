# storefront/clients/catalog_client.py

"""Remote catalog access: the source interface and its HTTP client."""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from curl_cffi import requests as curl_requests

from storefront.config.settings import Settings
from storefront.models.errors import (
    CatalogError,
    InvalidDataError,
    ServerError,
    classify_error,
)
from storefront.models.product import Product


class CatalogSource(ABC):
    """Read access to the remote product catalog.

    Implementations block; callers run them off the event loop.
    """

    @abstractmethod
    def fetch_page(self, page: int, limit: int) -> list[Product]:
        """Return one page of products (1-based), empty past the end."""
        ...

    @abstractmethod
    def fetch_all(self) -> list[Product]:
        """Return the entire catalog in a single request."""
        ...


class CurlCatalogClient(CatalogSource):
    """Catalog client over the JSON products endpoint using curl_cffi."""

    def __init__(self, base_url: str | None = None) -> None:
        self.logger = logging.getLogger("storefront.client")
        self.settings = Settings()
        self.base_url = base_url or self.settings.CATALOG_API_URL
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    # ── Public API ───────────────────────────────────────

    def fetch_page(self, page: int, limit: int) -> list[Product]:
        """GET ``?page=&limit=`` and decode the product array."""
        params = {"page": str(page), "limit": str(limit)}
        payload = self._fetch_json(params)
        products = self._decode_products(payload)
        self.logger.info(
            "Fetched page %d (limit %d): %d products",
            page,
            limit,
            len(products),
        )
        return products

    def fetch_all(self) -> list[Product]:
        """GET the bare endpoint, which returns every product."""
        payload = self._fetch_json(None)
        products = self._decode_products(payload)
        self.logger.info(
            "Fetched full catalog: %d products", len(products)
        )
        return products

    # ── Private helpers ──────────────────────────────────

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _fetch_json(self, params: dict[str, str] | None) -> Any:
        """GET with retries and adaptive delay, returning parsed JSON.

        Raises a categorized :class:`CatalogError` once retries are
        exhausted.  Decoding failures are not retried.
        """
        last_error: CatalogError = ServerError("No attempt made")
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    self.base_url,
                    params=params,
                    headers=self.settings.DEFAULT_HEADERS,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                last_error = classify_error(exc)
                self.logger.warning(
                    "Request error on attempt %d: %s",
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
                continue

            if resp.status_code == 200:
                self._current_delay = self.settings.REQUEST_DELAY
                try:
                    return json.loads(resp.text)
                except json.JSONDecodeError as exc:
                    raise classify_error(exc) from exc

            self.logger.warning(
                "HTTP %d on attempt %d",
                resp.status_code,
                attempt + 1,
            )
            last_error = ServerError(f"HTTP {resp.status_code}")
            if resp.status_code == 429 or resp.status_code >= 500:
                self._escalate_delay()
                time.sleep(self._current_delay)
            else:
                break

        self.logger.error(
            "Catalog request failed (%s): %s",
            last_error.kind.value,
            last_error,
        )
        raise last_error

    @staticmethod
    def _decode_products(payload: Any) -> list[Product]:
        """Decode a JSON array of product objects."""
        if not isinstance(payload, list):
            raise InvalidDataError(
                f"Expected a product array, got {type(payload).__name__}"
            )
        return [Product.from_dict(item) for item in payload]
