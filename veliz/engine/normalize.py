# veliz/engine/normalize.py

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s_-]+")

# Legacy form keys -> canonical frequency keys
_FREQUENCY_ALIASES = {
    "onetime": "one_time",
    "once": "one_time",
    "1xmonth": "monthly",
    "biweekly": "bi_weekly",
    "annually": "annual",
    "yearly": "annual",
}


def normalize_frequency(value: Optional[str]) -> str:
    """
    Normalize any frequency key coming from forms or settings rows,
    e.g. 'one-time' -> 'one_time', 'Bi Weekly' -> 'bi_weekly', '1x-month' -> 'monthly'.

    Unknown values are returned lowercased with separators collapsed to '_'.
    """
    if value is None:
        return ""
    raw = str(value).strip().lower()
    if not raw:
        return ""

    compact = _SEPARATORS.sub("", raw)
    if compact in _FREQUENCY_ALIASES:
        return _FREQUENCY_ALIASES[compact]

    return _SEPARATORS.sub("_", raw).strip("_")


def is_one_time_frequency(value: Optional[str]) -> bool:
    return normalize_frequency(value) == "one_time"


def normalize_title(value: Optional[str]) -> str:
    """
    'Scope of Service:', '  scope of service ' -> 'scope of service'
    """
    if value is None:
        return ""
    raw = str(value).strip().lower()
    if raw.endswith(":"):
        raw = raw[:-1]
    return raw.strip()
