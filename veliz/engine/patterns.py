# veliz/engine/patterns.py
#
# Line patterns used to recognize structure in generated proposal markdown.
# The add-ons / notes markers are heuristics for content that the generator
# sometimes nests inside another section instead of giving it a heading.

import re
from typing import Optional

SCOPE_TABLE_TAG = "veliz_scope_table"
PRICING_TABLE_TAG = "veliz_pricing_table"

# Section boundaries: '#', '##', '###'
HEADING = re.compile(r"^(#{1,3})\s+(.+?)\s*$")
HEADING_PREFIX = re.compile(r"^#{1,3}\s+")

FENCE = re.compile(r"^```")
BULLET = re.compile(r"^[-*]\s+")

# "A. Customer agrees ..." / "B) ..."
LETTER_BULLET = re.compile(r"^([A-Z]\s*[.)])\s+(.*)$")

# Bare add-ons marker lines: "Add-ons", "Addons:", "Additional services to be invoiced (Optional)"
ADDONS_MARKER = re.compile(
    r"^(?:add-ons|addons|add ons|additional services(?:\s+to be invoiced.*)?):?$",
    re.IGNORECASE,
)
ADDONS_INVOICED = re.compile(r"additional services to be invoiced", re.IGNORECASE)
# Any heading that mentions add-ons
ADDONS_HEADING_WORDS = re.compile(r"add[-\s]?ons|additional services", re.IGNORECASE)

NOTES_MARKER = re.compile(r"^(?:#{1,3}\s*notes\s*|notes:?\s*)$", re.IGNORECASE)

END_OF_PROPOSAL = "<END_OF_PROPOSAL>"


def is_heading(line: str) -> bool:
    return bool(HEADING_PREFIX.match(line.strip()))


def is_fence(line: str) -> bool:
    return bool(FENCE.match(line.strip()))


def is_bullet(line: str) -> bool:
    return bool(BULLET.match(line.strip()))


def is_fence_open(line: str, tag: str) -> bool:
    stripped = line.strip()
    return bool(FENCE.match(stripped)) and tag in stripped.lower()


def strip_bullet(line: str) -> str:
    return BULLET.sub("", line.strip(), count=1)


def heading_title(line: str) -> Optional[str]:
    """
    '## Scope of Service:' -> 'Scope of Service'; None when the line is not a heading.
    """
    m = HEADING.match(line.strip())
    if not m:
        return None
    title = m.group(2).strip()
    if title.endswith(":"):
        title = title[:-1].rstrip()
    return title


def is_addons_marker(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if is_heading(stripped):
        return bool(ADDONS_HEADING_WORDS.search(stripped))
    return bool(ADDONS_MARKER.match(stripped) or ADDONS_INVOICED.search(stripped))


def is_notes_marker(line: str) -> bool:
    return bool(NOTES_MARKER.match(line.strip()))


def marker_title(line: str, default: str) -> str:
    """
    Title for a synthetic section built from a marker line: '### Add-ons:' -> 'Add-ons'.
    """
    title = HEADING_PREFIX.sub("", line.strip()).strip()
    if title.endswith(":"):
        title = title[:-1].rstrip()
    return title or default
