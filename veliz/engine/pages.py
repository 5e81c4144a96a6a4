# veliz/engine/pages.py

from typing import List, Optional, Sequence

from ..schemas.content import ProposalSections, Section, SplitResponse, TemplateType
from .patterns import LETTER_BULLET, PRICING_TABLE_TAG, SCOPE_TABLE_TAG
from .splitter import (
    lookup_by_title,
    split_into_sections,
    split_pricing_notes,
    split_scope_addons,
    with_description,
)

BASIC_PAGE_COUNT = 3
PREMIUM_PAGE_COUNT = 3

# Title spellings the generator has used over time, current one first
ABOUT_TITLES = ["About Our Company", "About our company"]
COMMITMENT_TITLES = ["Our Commitment", "Commitment"]
WHY_US_TITLES = ["Why Choose Us", "Why choose us"]
SCOPE_TITLES = ["Scope of service", "Scope"]
ADDONS_TITLES = [
    "Add-ons",
    "Additional services",
    "Additional services to be invoiced",
    "Add ons",
    "Addons",
]
PRICING_TITLES = ["Service Quote & Pricing", "Pricing"]
NOTES_TITLES = ["Notes"]

# Basic template
COVER_TITLES = ["Cover letter"]
LEGAL_TITLES = ["Legal responsibility"]
BASIC_PRICING_TITLES = ["Pricing"]
ADDITIONAL_SERVICES_TITLES = [
    "Additional services to be invoiced (Optional)",
    "Additional services to be invoiced",
]


def detect_template_type(
    name: Optional[str] = None,
    template_type: Optional[str] = None,
) -> TemplateType:
    """
    Map a stored template (display name + type column) to a layout.
    Name keywords win over the type column; anything unknown is executive_premium.
    """
    n = (name or "").lower()
    if "executive" in n or "premium" in n:
        return "executive_premium"
    if "modern" in n or "corporate" in n:
        return "modern_corporate"
    if "luxury" in n or "elite" in n:
        return "luxury_elite"
    if (template_type or "").strip().lower() == "basic":
        return "basic"
    return "executive_premium"


def _block(section: Section, trailing: str = "\n") -> str:
    return f"# {section.title}\n\n{section.content.strip()}{trailing}"


def _first_pricing_line(pricing: Section) -> str:
    lines = [line.strip() for line in pricing.content.strip().splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return ""

    first = lines[0]
    m = LETTER_BULLET.match(first)
    if not m:
        return first

    # "A ." -> "A."; the rest of the line is kept whole (amounts contain dots)
    bullet = "".join(m.group(1).split())
    return f"**{bullet}** {m.group(2).strip()}"


def assemble_basic_pages(sections: Sequence[Section]) -> List[str]:
    """
    The basic template is always three pages:
      1. cover letter
      2. scope of service, legal responsibility and the first pricing line
      3. additional services
    A page whose sections are missing is an empty string.
    """
    cover = lookup_by_title(sections, COVER_TITLES)
    scope = lookup_by_title(sections, SCOPE_TITLES[:1])
    legal = lookup_by_title(sections, LEGAL_TITLES)
    pricing = lookup_by_title(sections, BASIC_PRICING_TITLES)
    additional = lookup_by_title(sections, ADDITIONAL_SERVICES_TITLES)

    pages = [_block(cover) if cover else ""]

    page2 = ""
    if scope:
        page2 += _block(scope, "\n\n")
    if legal:
        page2 += _block(legal, "\n\n")
    if pricing:
        rendered = _first_pricing_line(pricing)
        if rendered:
            page2 += f"# {pricing.title}\n\n{rendered}\n\n"
    pages.append(page2)

    pages.append(_block(additional) if additional else "")
    return pages[:BASIC_PAGE_COUNT]


def chunk_sections_into_pages(sections: Sequence[Section], page_count: int) -> List[str]:
    """
    Distribute sections over `page_count` pages, aiming for equal content length.
    Sections are never split; the last page takes whatever is left.
    """
    if page_count < 1:
        raise ValueError("page_count must be positive")

    total_length = sum(len(s.content) for s in sections)
    target = max(1, total_length // page_count)

    pages: List[str] = []
    current = ""

    for s in sections:
        heading = f"# {s.title}\n\n" if s.title else ""
        block = f"{heading}{s.content.strip()}\n\n"
        if len(current) + len(block) > target and len(pages) < page_count - 1:
            if current.strip():
                pages.append(current)
            current = ""
        current += block

    if current.strip():
        pages.append(current)

    pages.extend([""] * (page_count - len(pages)))
    return pages[:page_count]


def resolve_proposal_sections(sections: Sequence[Section]) -> ProposalSections:
    """
    Pick the named sections a premium template renders.

    Add-ons bundled into the scope and notes bundled after the pricing table are
    recovered into their own sections when no explicit section exists. The scope
    is always returned without its embedded add-ons block. Scope and pricing get
    the description shown above their tables.
    """
    scope = lookup_by_title(sections, SCOPE_TITLES)
    addons = lookup_by_title(sections, ADDONS_TITLES)
    pricing = lookup_by_title(sections, PRICING_TITLES)
    notes = lookup_by_title(sections, NOTES_TITLES)

    if scope is not None:
        scope, embedded_addons = split_scope_addons(scope)
        if addons is None:
            addons = embedded_addons

    if pricing is not None and notes is None:
        pricing, notes = split_pricing_notes(pricing)

    return ProposalSections(
        about=lookup_by_title(sections, ABOUT_TITLES),
        commitment=lookup_by_title(sections, COMMITMENT_TITLES),
        why_us=lookup_by_title(sections, WHY_US_TITLES),
        scope=with_description(scope, SCOPE_TABLE_TAG),
        addons=addons,
        pricing=with_description(pricing, PRICING_TABLE_TAG),
        notes=notes,
    )


def split_document(
    document: Optional[str],
    template_name: Optional[str] = None,
    template_type: Optional[str] = None,
) -> SplitResponse:
    """
    Sections + template pages for a generated proposal.
    An empty document yields no sections and no pages on the basic layout.
    """
    if not document or not document.strip():
        return SplitResponse(
            sections=[],
            pages=[],
            template_type="basic",
            named=ProposalSections(),
        )

    layout = detect_template_type(template_name, template_type)
    sections = split_into_sections(document)

    if layout == "basic":
        pages = assemble_basic_pages(sections)
    else:
        pages = chunk_sections_into_pages(sections, PREMIUM_PAGE_COUNT)

    return SplitResponse(
        sections=sections,
        pages=pages,
        template_type=layout,
        named=resolve_proposal_sections(sections),
    )
