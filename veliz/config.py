# veliz/config.py

import logging
import os

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

# --------------------------------------------------
# Paths
# --------------------------------------------------

BASE_DIR = os.path.dirname(__file__)
DATA_DIR = os.getenv("VELIZ_DATA_DIR", os.path.join(BASE_DIR, "data"))

# Pricing settings (one row per key) and the add-on catalog
PRICING_SETTINGS_CSV = os.getenv(
    "VELIZ_PRICING_SETTINGS_CSV",
    os.path.join(DATA_DIR, "pricing_settings.csv"),
)
ADDON_CATALOG_CSV = os.getenv(
    "VELIZ_ADDON_CATALOG_CSV",
    os.path.join(DATA_DIR, "addon_catalog.csv"),
)

# Catalog rows are edited by admins, so keep the cache short
ADDON_CATALOG_TTL_SECONDS = float(os.getenv("VELIZ_ADDON_CATALOG_TTL", "300"))

# --------------------------------------------------
# Content generation service
# --------------------------------------------------

CONTENT_API_URL = os.getenv("VELIZ_CONTENT_API_URL", "https://api.openai.com/v1/chat/completions")
CONTENT_API_KEY = os.getenv("VELIZ_CONTENT_API_KEY")
CONTENT_MODEL = os.getenv("VELIZ_CONTENT_MODEL", "gpt-4o-mini")
CONTENT_TIMEOUT_SECONDS = float(os.getenv("VELIZ_CONTENT_TIMEOUT", "60"))

# --------------------------------------------------
# Logging
# --------------------------------------------------

LOG_LEVEL = os.getenv("VELIZ_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    """
    Basic process-wide logging setup. Called once from the FastAPI startup hook.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
