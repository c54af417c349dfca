# storefront/config/settings.py

"""Central configuration for the storefront data layer."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the storefront data layer."""

    # --- Remote catalog ---
    CATALOG_API_URL: str = os.getenv(
        "STOREFRONT_API_URL",
        "https://5fc9346b2af77700165ae514.mockapi.io/products",
    )
    REQUEST_DELAY: float = 1.0          # Base seconds between retries
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff

    # --- Pagination / view ---
    PAGE_LIMIT: int = 4                 # Products per catalog page
    SEARCH_DEBOUNCE: float = 0.5        # Seconds of idle typing before search

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    STORE_DB_PATH: Path = Path(
        os.getenv("STOREFRONT_DB_PATH", str(DATA_DIR / "storefront.db"))
    )
    LOGS_DIR: Path = Path(
        os.getenv("STOREFRONT_LOGS_DIR", str(BASE_DIR / "logs"))
    )
