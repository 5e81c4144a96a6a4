# veliz/engine/tables.py
#
# Builders for the fenced JSON tables embedded in generated proposals.
# The splitter reads these blocks back with parse_scope_table / parse_pricing_table.

from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..schemas.content import PricingRow, PricingTable, PricingTableSummary, ScopeRow, ScopeTable
from ..schemas.pricing import AddonLine
from .normalize import normalize_frequency
from .pricing import round_currency

BASE_SERVICE_LABEL = "Standard Janitorial Service"
NO_AREA = "—"

# Average visits in a month for each service frequency
VISITS_PER_MONTH = {
    "one_time": 1.0,
    "monthly": 1.0,
    "bi_weekly": 2.17,
    "weekly": 4.33,
    "2x_week": 8.66,
    "3x_week": 13.0,
    "5x_week": 21.67,
    "daily": 30.0,
}

FREQUENCY_LABELS = {
    "one_time": "One-time",
    "monthly": "Monthly",
    "bi_weekly": "Bi-weekly",
    "weekly": "Weekly",
    "2x_week": "2x weekly",
    "3x_week": "3x weekly",
    "5x_week": "5x weekly",
    "daily": "Daily",
    "quarterly": "Quarterly",
    "annual": "Annual",
}


def visits_per_month(frequency: Optional[str]) -> float:
    return VISITS_PER_MONTH.get(normalize_frequency(frequency), 1.0)


def frequency_label(frequency: Optional[str]) -> str:
    """
    'bi-weekly' -> 'Bi-weekly'. Unknown keys are shown as given.
    """
    return FREQUENCY_LABELS.get(normalize_frequency(frequency), frequency or "")


def format_money(amount: Optional[float]) -> str:
    return f"${round_currency(amount or 0.0):.2f}"


def scope_costs(
    monthly_total: Optional[float],
    frequency: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """
    (cost per visit, monthly cost) as display strings; both None when there is no price yet.
    """
    if not monthly_total or monthly_total <= 0:
        return None, None
    return format_money(monthly_total / visits_per_month(frequency)), format_money(monthly_total)


def build_scope_table(
    areas: Optional[Sequence[str]],
    frequency: Optional[str],
    cost_per_visit: Optional[str] = None,
    monthly_cost: Optional[str] = None,
    note: Optional[str] = None,
    per_area: bool = False,
) -> ScopeTable:
    """
    Scope table payload.

    By default a single row lists all areas with the visit/monthly costs (basic layout).
    With per_area=True there is one row per area carrying the note instead (premium layouts).
    """
    label = frequency_label(frequency)
    areas = [a.strip() for a in (areas or []) if a and a.strip()]

    if per_area and areas:
        return ScopeTable(
            rows=[ScopeRow(area=area, frequency=label, note=note) for area in areas]
        )

    return ScopeTable(
        rows=[
            ScopeRow(
                area=", ".join(areas) or NO_AREA,
                frequency=label,
                cost_per_visit=cost_per_visit,
                monthly_cost=monthly_cost,
                note=note,
            )
        ]
    )


def build_pricing_table(
    base_monthly: float,
    frequency: Optional[str],
    addon_lines: Iterable[AddonLine] = (),
    tax_rate: float = 0.0,
) -> PricingTable:
    """
    Pricing table payload: the base service row, one row per add-on, and a summary.

    Only monthly amounts are summed; one-time add-ons are listed without a monthly price.
    """
    if tax_rate < 0:
        raise ValueError("tax_rate must not be negative")

    rows: List[PricingRow] = [
        PricingRow(
            service=BASE_SERVICE_LABEL,
            frequency=frequency_label(frequency),
            price_per_month=format_money(base_monthly),
        )
    ]
    subtotal = round_currency(base_monthly or 0.0)

    for line in addon_lines:
        monthly = line.monthly_amount
        rows.append(
            PricingRow(
                service=line.label,
                frequency=frequency_label(line.frequency),
                price_per_month=format_money(monthly) if monthly is not None else None,
            )
        )
        if monthly is not None:
            subtotal += round_currency(monthly)

    tax = subtotal * tax_rate
    return PricingTable(
        rows=rows,
        summary=PricingTableSummary(
            subtotal=format_money(subtotal),
            tax=format_money(tax),
            total=format_money(subtotal + tax),
        ),
    )


def fence(tag: str, payload: BaseModel) -> str:
    """
    Fenced block as embedded in the generation prompt, JSON keys in camelCase.
    """
    return f"```{tag}\n{payload.model_dump_json(by_alias=True)}\n```"
