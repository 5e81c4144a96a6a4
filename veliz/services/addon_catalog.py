# veliz/services/addon_catalog.py

import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd
from pydantic import ValidationError

from .. import config
from ..schemas.pricing import AddonCatalogEntry
from .cache import TTLCache

logger = logging.getLogger(__name__)

# frequency_options are stored pipe-separated: "monthly|quarterly"
OPTION_SEPARATOR = "|"

BOOL_COLUMNS = ("amortize_to_monthly", "active", "show_in_proposals")
_TRUE = {"true", "t", "yes", "y", "1"}
_FALSE = {"false", "f", "no", "n", "0"}


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _parse_bool(value) -> Any:
    if isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    # let validation reject it
    return value


def _row_to_payload(row: pd.Series) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for column, value in row.items():
        if _is_blank(value):
            continue
        if column in BOOL_COLUMNS:
            value = _parse_bool(value)
        elif column == "frequency_options":
            value = [opt.strip() for opt in str(value).split(OPTION_SEPARATOR) if opt.strip()]
        elif isinstance(value, str):
            value = value.strip()
        payload[column] = value
    return payload


def entries_from_frame(df: pd.DataFrame) -> List[AddonCatalogEntry]:
    """
    Validate each catalog row; invalid rows and repeated SKUs are skipped with a warning.
    """
    entries: List[AddonCatalogEntry] = []
    seen = set()

    for idx, row in df.iterrows():
        payload = _row_to_payload(row)
        try:
            entry = AddonCatalogEntry.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "add-on catalog row %s (%s) is invalid; skipped: %s",
                idx,
                payload.get("sku", "?"),
                e,
            )
            continue

        if entry.sku in seen:
            logger.warning("duplicate add-on sku %r in row %s; skipped", entry.sku, idx)
            continue

        seen.add(entry.sku)
        entries.append(entry)

    return entries


def load_addon_catalog(path: Optional[str] = None) -> List[AddonCatalogEntry]:
    path = path or config.ADDON_CATALOG_CSV

    try:
        # strings throughout; pydantic does the typing
        df = pd.read_csv(path, dtype=str)
    except (OSError, ValueError) as e:
        logger.warning("could not load add-on catalog from %s: %s", path, e)
        return []

    # Normalize column names just in case
    df.columns = [str(c).strip().lower() for c in df.columns]

    if "sku" not in df.columns:
        logger.warning(
            "add-on catalog %s has no 'sku' column. Columns: %s",
            path,
            df.columns.tolist(),
        )
        return []

    return entries_from_frame(df)


def filter_entries(
    entries: Iterable[AddonCatalogEntry],
    active_only: bool = True,
    proposals_only: bool = False,
    category: Optional[str] = None,
) -> List[AddonCatalogEntry]:
    selected = []
    for entry in entries:
        if active_only and not entry.active:
            continue
        if proposals_only and not entry.show_in_proposals:
            continue
        if category and entry.category != category:
            continue
        selected.append(entry)
    return selected


class AddonCatalog:
    """
    Add-on catalog read from CSV and kept for a short TTL, so admin edits
    show up without a restart.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = path or config.ADDON_CATALOG_CSV
        self._cache: TTLCache[List[AddonCatalogEntry]] = TTLCache(
            ttl_seconds or config.ADDON_CATALOG_TTL_SECONDS,
            clock=clock,
        )

    def entries(self) -> List[AddonCatalogEntry]:
        cached = self._cache.get()
        if cached is None:
            cached = load_addon_catalog(self.path)
            self._cache.set(cached)
            logger.debug("add-on catalog loaded from %s (%d entries)", self.path, len(cached))
        return cached

    def select(
        self,
        active_only: bool = True,
        proposals_only: bool = False,
        category: Optional[str] = None,
    ) -> List[AddonCatalogEntry]:
        return filter_entries(self.entries(), active_only, proposals_only, category)

    def get(self, sku: str) -> Optional[AddonCatalogEntry]:
        key = (sku or "").strip().lower()
        for entry in self.entries():
            if entry.sku == key:
                return entry
        return None

    def invalidate(self) -> None:
        self._cache.invalidate()
