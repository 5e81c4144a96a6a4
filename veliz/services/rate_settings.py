# veliz/services/rate_settings.py

import logging
import math
from functools import lru_cache
from typing import Dict, Optional

import pandas as pd
from pydantic import ValidationError

from .. import config
from ..engine.normalize import normalize_frequency
from ..schemas.pricing import RateTable

logger = logging.getLogger(__name__)

# Long format, one value per row:
#
#   setting,key,value
#   service_type_rate,commercial,0.12
#   frequency_multiplier,weekly,0.9
#   labor_rate,,35
#
REQUIRED_COLUMNS = {"setting", "key", "value"}

SCALAR_SETTINGS = ("labor_rate", "overhead_percentage", "margin_percentage")


def _safe_float(value, default: Optional[float] = None) -> Optional[float]:
    """
    Convert value to float; NaN, inf or anything unparsable -> default.
    """
    try:
        x = float(value)
    except (TypeError, ValueError):
        return default

    if math.isnan(x) or math.isinf(x):
        return default

    return x


def _clean_key(value) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip().lower()


def rate_table_from_frame(df: pd.DataFrame) -> RateTable:
    """
    Build a RateTable from settings rows. Keys the rows leave out keep
    their default values; unreadable rows are skipped with a warning.
    """
    defaults = RateTable()
    service_rates: Dict[str, float] = dict(defaults.service_type_rates)
    multipliers: Dict[str, float] = dict(defaults.frequency_multipliers)
    scalars: Dict[str, float] = {}

    for idx, row in df.iterrows():
        setting = _clean_key(row.get("setting"))
        key = _clean_key(row.get("key"))
        value = _safe_float(row.get("value"))

        if value is None:
            logger.warning("pricing settings row %s (%s) has no numeric value; skipped", idx, setting)
            continue

        if setting == "service_type_rate" and key:
            service_rates[key] = value
        elif setting == "frequency_multiplier" and key:
            multipliers[normalize_frequency(key)] = value
        elif setting in SCALAR_SETTINGS:
            scalars[setting] = value
        else:
            logger.warning("unknown pricing setting %r (key %r) in row %s; skipped", setting, key, idx)

    return RateTable(
        service_type_rates=service_rates,
        frequency_multipliers=multipliers,
        **scalars,
    )


def load_rate_table(path: Optional[str] = None) -> RateTable:
    """
    Read the pricing settings CSV. Any failure (missing file, missing columns,
    out-of-range values) falls back to the default rate table with a warning.
    """
    path = path or config.PRICING_SETTINGS_CSV

    try:
        df = pd.read_csv(path)
    except (OSError, ValueError) as e:
        logger.warning("could not load pricing settings from %s: %s", path, e)
        return RateTable()

    # Normalize column names just in case
    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        logger.warning(
            "pricing settings %s missing columns %s. Columns: %s",
            path,
            sorted(missing),
            df.columns.tolist(),
        )
        return RateTable()

    try:
        return rate_table_from_frame(df)
    except ValidationError as e:
        logger.warning("pricing settings %s rejected, using defaults: %s", path, e)
        return RateTable()


@lru_cache(maxsize=8)
def get_rate_table(path: Optional[str] = None) -> RateTable:
    """
    Cached load_rate_table(); settings change rarely, call cache_clear() after edits.
    """
    return load_rate_table(path)
