"""Shared constants used across bookwatch modules."""

from __future__ import annotations

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "app.db"
DEFAULT_CHANNELS_PATH = DATA_DIR / "channels.json"

GOOGLE_BOOKS_API_URL = "https://www.googleapis.com/books/v1/volumes"
GOOGLE_BOOKS_SOURCE = "google_books"
GOOGLE_BOOKS_PAGE_CAP = 40
AMAZON_SEARCH_URL = "https://www.amazon.co.jp/s"

API_KEY_ENV = "GOOGLE_BOOKS_API_KEY"
DAILY_LIMIT_ENV = "DAILY_QUERY_LIMIT"
TIMEZONE_ENV = "APP_TZ"
DB_PATH_ENV = "BOOKWATCH_DB"

DEFAULT_DAILY_LIMIT = 95
DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_MAX_PER_RUN = 20
DEFAULT_MAIL_LIMIT = 10
DEFAULT_PRINT_TYPE = "books"
DEFAULT_LANG_RESTRICT = "ja"
COMBINED_CHANNEL = "combined"
DUE_INTERVAL_SECONDS = 3 * 60 * 60

ISBN13_PREFIX = "978"

DB_TIMEOUT_SECONDS = 30
DB_RETRY_ATTEMPTS = 6
DB_RETRY_BASE_DELAY = 0.5
HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRIES = 2
SQLITE_INT_MAX = (1 << 63) - 1
SQLITE_INT_MIN = -(1 << 63)
