# veliz/engine/splitter.py

import json
import logging
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

from pydantic import ValidationError

from ..schemas.content import PricingRow, PricingTable, ScopeRow, ScopeTable, Section
from .normalize import normalize_title
from .patterns import (
    PRICING_TABLE_TAG,
    SCOPE_TABLE_TAG,
    heading_title,
    is_addons_marker,
    is_bullet,
    is_fence,
    is_fence_open,
    is_heading,
    is_notes_marker,
    marker_title,
    strip_bullet,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

OVERVIEW_TITLE = "Overview"

SYNTHETIC_ADDONS_ID = "synthetic-addons"
SYNTHETIC_NOTES_ID = "synthetic-notes"

DEFAULT_FIRST_PAGE_ROWS = 12  # first page also carries title + description
DEFAULT_CONTINUATION_ROWS = 14

# Used when a section holds nothing but its table
DEFAULT_DESCRIPTIONS = {
    SCOPE_TABLE_TAG: (
        "Below is a representative scope structured for automation. "
        "Adjust tasks and frequencies per site. This table should expand/collapse "
        "cleanly based on selected areas and add-ons."
    ),
}


# --------------------------------------------------
# Line helpers
# --------------------------------------------------

def _unclosed_fence(lines: Sequence[str]) -> Optional[int]:
    """
    Index of a fence line that is opened and never closed, if any.
    """
    open_idx: Optional[int] = None
    for idx, line in enumerate(lines):
        if is_fence(line):
            open_idx = idx if open_idx is None else None
    return open_idx


def _outside_fences(lines: Sequence[str]) -> Iterator[Tuple[int, str]]:
    """
    Yield (index, line) for lines that are neither fence markers nor inside a fenced block.
    A fence left open at the end is treated as plain text.
    """
    stray = _unclosed_fence(lines)
    in_fence = False
    for idx, line in enumerate(lines):
        if is_fence(line) and idx != stray:
            in_fence = not in_fence
            continue
        if not in_fence:
            yield idx, line


def _collect_items(lines: Sequence[str], start: int) -> List[str]:
    """
    Non-blank lines from `start` up to the next heading or fence, bullet markers removed.
    """
    items: List[str] = []
    for line in lines[start:]:
        stripped = line.strip()
        if not stripped:
            continue
        if is_heading(stripped) or is_fence(stripped):
            break
        items.append(strip_bullet(stripped))
    return items


def _as_bullets(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


# --------------------------------------------------
# Sections
# --------------------------------------------------

def split_into_sections(document: Optional[str]) -> List[Section]:
    """
    Split generated markdown into sections at '#', '##' and '###' headings.

    Text before the first heading becomes an "Overview" section. Fenced blocks
    belong to the section they appear in, even if they contain '#' lines. A
    fence that is never closed does not hide the headings after it.
    """
    if not document or not document.strip():
        return []

    lines = document.splitlines()
    stray = _unclosed_fence(lines)

    sections: List[Section] = []
    title: Optional[str] = None
    body: List[str] = []
    in_fence = False

    def flush() -> None:
        content = "\n".join(body).strip()
        if title is None and not content:
            return
        sections.append(
            Section(
                id=str(len(sections) + 1),
                title=title if title is not None else OVERVIEW_TITLE,
                content=content,
            )
        )

    for idx, line in enumerate(lines):
        if in_fence:
            body.append(line)
            if is_fence(line):
                in_fence = False
            continue

        if is_fence(line) and idx != stray:
            in_fence = True
            body.append(line)
            continue

        heading = heading_title(line)
        if heading is not None:
            flush()
            title = heading
            body = []
            continue

        body.append(line)

    flush()
    return sections


def lookup_by_title(
    sections: Sequence[Section],
    candidate_titles: Iterable[str],
) -> Optional[Section]:
    """
    First section whose title matches one of the candidates (case/whitespace-insensitive).
    Candidates are tried in order, so historical spellings can be listed after the current one.
    """
    for candidate in candidate_titles:
        key = normalize_title(candidate)
        if not key:
            continue
        for section in sections:
            if normalize_title(section.title) == key:
                return section
    return None


# --------------------------------------------------
# Recovery of sections bundled into scope / pricing
# --------------------------------------------------

def _strip_addons_blocks(lines: Sequence[str]) -> str:
    stray = _unclosed_fence(lines)
    out: List[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]

        if is_fence(line) and i != stray:
            # fenced blocks are copied verbatim
            out.append(line)
            i += 1
            while i < len(lines) and not is_fence(lines[i]):
                out.append(lines[i])
                i += 1
            if i < len(lines):
                out.append(lines[i])
                i += 1
            continue

        if is_addons_marker(line):
            i += 1
            while i < len(lines) and not (is_heading(lines[i]) or is_fence(lines[i])):
                i += 1
            continue

        out.append(line)
        i += 1

    return "\n".join(out).strip()


def split_scope_addons(scope: Section) -> Tuple[Section, Optional[Section]]:
    """
    Separate an add-ons list nested in the scope section.

    Returns (scope without the add-ons block, synthetic add-ons section or None).
    """
    lines = scope.content.split("\n")

    addons: Optional[Section] = None
    for idx, line in _outside_fences(lines):
        if not is_addons_marker(line):
            continue
        items = _collect_items(lines, idx + 1)
        if items:
            addons = Section(
                id=SYNTHETIC_ADDONS_ID,
                title=marker_title(line, "Add-ons"),
                content=_as_bullets(items),
            )
        break

    cleaned = scope.model_copy(update={"content": _strip_addons_blocks(lines)})
    return cleaned, addons


def recover_embedded_addons(scope: Optional[Section]) -> Optional[Section]:
    if scope is None or not scope.content:
        return None
    return split_scope_addons(scope)[1]


def split_pricing_notes(pricing: Section) -> Tuple[Section, Optional[Section]]:
    """
    Separate a Notes block that follows the pricing table.

    Returns (pricing truncated before the notes, synthetic notes section or None).
    """
    lines = pricing.content.split("\n")

    open_idx = next(
        (i for i, line in enumerate(lines) if is_fence_open(line, PRICING_TABLE_TAG)),
        None,
    )
    boundary = -1
    if open_idx is not None:
        boundary = open_idx
        for j in range(open_idx + 1, len(lines)):
            if is_fence(lines[j]):
                boundary = j
                break

    notes_idx = next(
        (i for i in range(boundary + 1, len(lines)) if is_notes_marker(lines[i])),
        None,
    )
    if notes_idx is None:
        return pricing, None

    notes = Section(
        id=SYNTHETIC_NOTES_ID,
        title=marker_title(lines[notes_idx], "Notes"),
        content=_as_bullets(_collect_items(lines, notes_idx + 1)),
    )
    head = pricing.model_copy(update={"content": "\n".join(lines[:notes_idx]).strip()})
    return head, notes


def recover_embedded_notes(pricing: Optional[Section]) -> Optional[Section]:
    if pricing is None or not pricing.content:
        return None
    return split_pricing_notes(pricing)[1]


# --------------------------------------------------
# Descriptions
# --------------------------------------------------

def _is_text(line: str) -> bool:
    return bool(line) and not is_heading(line) and not is_bullet(line)


def extract_description(section: Optional[Section], fence_tag: str) -> str:
    """
    Free text shown above a section's table:
      1. text lines before the table fence, joined with spaces
      2. otherwise the first text line anywhere outside fences
      3. otherwise, for a table-only scope section, a fixed default
    """
    if section is None:
        return ""

    lines = [line.strip() for line in section.content.split("\n")]
    open_idx = next(
        (i for i, line in enumerate(lines) if is_fence_open(line, fence_tag)),
        None,
    )

    if open_idx:
        before = [
            line for _, line in _outside_fences(lines[:open_idx]) if _is_text(line)
        ]
        if before:
            return " ".join(before)

    for _, line in _outside_fences(lines):
        if _is_text(line):
            return line

    if open_idx is not None:
        return DEFAULT_DESCRIPTIONS.get(fence_tag, "")
    return ""


def with_description(section: Optional[Section], fence_tag: str) -> Optional[Section]:
    if section is None:
        return None
    return section.model_copy(update={"description": extract_description(section, fence_tag)})


# --------------------------------------------------
# Fenced tables
# --------------------------------------------------

def _load_fenced_json(content: Optional[str], tag: str) -> Any:
    if not content:
        return None

    lines = [line.strip() for line in content.split("\n")]
    for i, line in enumerate(lines):
        if not is_fence_open(line, tag):
            continue
        body: List[str] = []
        for nxt in lines[i + 1:]:
            if is_fence(nxt):
                break
            body.append(nxt)
        try:
            return json.loads("\n".join(body))
        except (ValueError, RecursionError) as e:
            logger.debug("malformed %s block ignored: %s", tag, e)
            return None

    return None


def _validate_table(model, row_model, data: Any, label: str):
    """
    Validate a fenced table payload. When the whole payload fails, retry with
    only the rows that validate on their own; None if nothing usable remains.
    """
    try:
        return model.model_validate(data)
    except (ValidationError, RecursionError) as e:
        logger.debug("%s table has unexpected shape: %s", label, e)

    rows = data.get("rows") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        return None

    kept = []
    for row in rows:
        try:
            kept.append(row_model.model_validate(row))
        except (ValidationError, RecursionError):
            continue
    logger.debug("%s table: kept %d of %d rows", label, len(kept), len(rows))

    try:
        return model.model_validate({**data, "rows": kept})
    except (ValidationError, RecursionError) as e:
        logger.debug("%s table unusable: %s", label, e)
        return None


def parse_scope_table(content: Optional[str]) -> Optional[ScopeTable]:
    """
    Rows of the first veliz_scope_table block, or None when absent or malformed.
    Rows that do not fit the table shape are dropped individually.
    """
    data = _load_fenced_json(content, SCOPE_TABLE_TAG)
    if data is None:
        return None
    return _validate_table(ScopeTable, ScopeRow, data, "scope")


def parse_pricing_table(content: Optional[str]) -> Optional[PricingTable]:
    data = _load_fenced_json(content, PRICING_TABLE_TAG)
    if data is None:
        return None
    return _validate_table(PricingTable, PricingRow, data, "pricing")


# --------------------------------------------------
# Pagination
# --------------------------------------------------

def paginate_rows(
    rows: Union[Sequence[T], ScopeTable, None],
    first_page_limit: int = DEFAULT_FIRST_PAGE_ROWS,
    continuation_limit: int = DEFAULT_CONTINUATION_ROWS,
) -> List[List[T]]:
    """
    Split table rows into page-sized chunks: `first_page_limit` rows on the
    first page, then `continuation_limit` per page. No rows -> no chunks.
    Limits below 1 are treated as 1.
    """
    first_page_limit = max(1, first_page_limit)
    continuation_limit = max(1, continuation_limit)

    if rows is None:
        return []
    if isinstance(rows, ScopeTable):
        rows = rows.rows

    rows = list(rows)
    if not rows:
        return []
    if len(rows) <= first_page_limit:
        return [rows]

    chunks = [rows[:first_page_limit]]
    for start in range(first_page_limit, len(rows), continuation_limit):
        chunks.append(rows[start:start + continuation_limit])
    return chunks


def scope_row_chunks(
    content: Optional[str],
    first_page_limit: int = DEFAULT_FIRST_PAGE_ROWS,
    continuation_limit: int = DEFAULT_CONTINUATION_ROWS,
) -> list:
    return paginate_rows(parse_scope_table(content), first_page_limit, continuation_limit)
