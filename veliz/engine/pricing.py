# veliz/engine/pricing.py

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from ..schemas.pricing import (
    SERVICE_DETAILS_MODELS,
    AddonCatalogEntry,
    AddonLine,
    HoursEstimate,
    MonthlySummary,
    PriceRange,
    PricingAssumptions,
    PricingBreakdown,
    PricingError,
    PricingInput,
    PricingResult,
    ProductionRate,
    RateTable,
    ServiceDetails,
)
from .normalize import normalize_frequency

logger = logging.getLogger(__name__)

# Production rates behind the hours estimate
WINDOWS_PER_HOUR = 10
SQFT_PER_HOUR = 1000

# Price range is a fixed band around the computed total
PRICE_BAND_LOW = 0.9
PRICE_BAND_HIGH = 1.1

HOURS_MAX_FACTOR = 1.5

# Shown to the client as the assumed crew production rate
PRODUCTION_RATE_MIN = 50.0
PRODUCTION_RATE_MAX = 100.0

# Months a charge is spread across when amortized to a monthly figure
AMORTIZATION_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "annual": 12,
}

_CENT = Decimal("0.01")


class AddonSelectionError(ValueError):
    """A catalog entry cannot be turned into a proposal line as requested."""


def round_currency(amount: float) -> float:
    """
    Half-up rounding to cents (8.335 -> 8.34), unlike the banker's rounding of round().
    """
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


# --------------------------------------------------
# Validation
# --------------------------------------------------

def _missing_size(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value) or value <= 0


def _details_error(exc: ValidationError) -> PricingError:
    first = exc.errors()[0]
    loc = first.get("loc") or ("service_specific_data",)
    label = str(loc[0]).replace("_", " ")
    if first.get("type") == "missing":
        message = f"{label} required"
    else:
        message = f"{label} invalid"
    return PricingError(field="service_specific_data", message=message)


def validate_pricing_input(inputs: PricingInput) -> Union[ServiceDetails, PricingError]:
    """
    Check the form inputs in a fixed order and return the parsed
    service details, or the first failure as a PricingError.

    Order: facility size, frequency, service details (presence, then per-type schema).
    """
    if _missing_size(inputs.facility_size):
        return PricingError(field="facility_size", message="facility size required")

    if not (inputs.service_frequency or "").strip():
        return PricingError(field="service_frequency", message="frequency required")

    if not inputs.service_specific_data:
        return PricingError(field="service_specific_data", message="service details required")

    details_model = SERVICE_DETAILS_MODELS[inputs.service_type]
    try:
        return details_model.model_validate(inputs.service_specific_data)
    except ValidationError as exc:
        return _details_error(exc)


# --------------------------------------------------
# Calculator
# --------------------------------------------------

def calculate(
    inputs: PricingInput,
    rate_table: Optional[RateTable] = None,
) -> Union[PricingResult, PricingError]:
    """
    Price a proposal from facility size, service type and frequency.

      - windows are priced per window, everything else per sq ft
      - labor hours use fixed production rates (10 windows/h, 1000 sq ft/h)
      - overhead and margin are percentages of the frequency-adjusted price
      - the result is a +/-10% band around the total

    Validation failures are returned as PricingError, never raised.
    """
    checked = validate_pricing_input(inputs)
    if isinstance(checked, PricingError):
        logger.debug("pricing input rejected: %s (%s)", checked.message, checked.field)
        return checked

    rates = rate_table or RateTable()

    if inputs.service_type == "window":
        units = float(checked.window_count)
        unit_type = "windows"
        labor_hours = math.ceil(units / WINDOWS_PER_HOUR)
    else:
        units = float(inputs.facility_size)
        unit_type = "square feet"
        labor_hours = math.ceil(units / SQFT_PER_HOUR)

    base_price = units * rates.service_rate(inputs.service_type)
    frequency_multiplier = rates.frequency_multiplier(inputs.service_frequency)
    adjusted_price = base_price * frequency_multiplier

    labor_cost = labor_hours * rates.labor_rate
    overhead = adjusted_price * rates.overhead_percentage / 100
    margin = adjusted_price * rates.margin_percentage / 100

    total = adjusted_price + labor_cost + overhead + margin

    return PricingResult(
        price_range=PriceRange(
            low=total * PRICE_BAND_LOW,
            high=total * PRICE_BAND_HIGH,
        ),
        hours_estimate=HoursEstimate(
            min=labor_hours,
            max=math.ceil(labor_hours * HOURS_MAX_FACTOR),
        ),
        assumptions=PricingAssumptions(
            labor_rate=rates.labor_rate,
            overhead_percentage=rates.overhead_percentage,
            margin_percentage=rates.margin_percentage,
            production_rate=ProductionRate(min=PRODUCTION_RATE_MIN, max=PRODUCTION_RATE_MAX),
        ),
        breakdown=PricingBreakdown(
            base_price=base_price,
            unit_type=unit_type,
            units=units,
            frequency_multiplier=frequency_multiplier,
            adjusted_price=adjusted_price,
            labor_hours=labor_hours,
            labor_cost=labor_cost,
            overhead=overhead,
            margin=margin,
            total=total,
        ),
    )


def quick_estimate(
    service_type: str,
    facility_size: float,
    frequency: Optional[str] = "one_time",
    rate_table: Optional[RateTable] = None,
) -> float:
    """
    Square-footage-only estimate for previews: no labor, no service details.
    """
    rates = rate_table or RateTable()
    base = facility_size * rates.service_rate(service_type) * rates.frequency_multiplier(frequency)
    overhead = base * rates.overhead_percentage / 100
    margin = base * rates.margin_percentage / 100
    return round_currency(base + overhead + margin)


# --------------------------------------------------
# Add-ons and monthly totals
# --------------------------------------------------

def amortize_addon(subtotal: float, frequency: str, amortize: bool) -> Optional[float]:
    """
    Monthly equivalent of an add-on charge, or None when it is not amortized.

    One-time charges never get a monthly figure, whatever the flag says.
    """
    if not amortize:
        return None

    months = AMORTIZATION_MONTHS.get(normalize_frequency(frequency))
    if months is None:
        return None
    if months == 1:
        return subtotal

    monthly = Decimal(str(subtotal)) / Decimal(months)
    return float(monthly.quantize(_CENT, rounding=ROUND_HALF_UP))


def build_addon_line(
    entry: AddonCatalogEntry,
    qty: Optional[float] = None,
    frequency: Optional[str] = None,
) -> AddonLine:
    """
    Turn a catalog entry plus the user's quantity/frequency into a proposal line.
    Quantity defaults to the entry's minimum, frequency to its default.
    """
    if not entry.active:
        raise AddonSelectionError(f"add-on '{entry.sku}' is not active")

    qty = entry.min_qty if qty is None else qty
    if not math.isfinite(qty) or qty < 0 or qty < entry.min_qty:
        raise AddonSelectionError(
            f"quantity for '{entry.sku}' must be at least {entry.min_qty:g}"
        )

    freq = entry.default_frequency if frequency is None else normalize_frequency(frequency)
    if freq not in entry.frequency_options:
        raise AddonSelectionError(
            f"frequency '{freq}' is not offered for '{entry.sku}' "
            f"(options: {', '.join(entry.frequency_options)})"
        )

    subtotal = qty * entry.rate

    return AddonLine(
        sku=entry.sku,
        label=entry.label,
        unit_type=entry.unit_type,
        rate=entry.rate,
        qty=qty,
        frequency=freq,
        subtotal=subtotal,
        monthly_amount=amortize_addon(subtotal, freq, entry.amortize_to_monthly),
    )


def reprice_addon_line(
    line: AddonLine,
    entry: AddonCatalogEntry,
    qty: Optional[float] = None,
    frequency: Optional[str] = None,
) -> AddonLine:
    """
    New line reflecting a quantity/frequency edit. The given line is left as is.
    """
    if entry.sku != line.sku:
        raise AddonSelectionError(f"catalog entry '{entry.sku}' does not match line '{line.sku}'")

    return build_addon_line(
        entry,
        qty=line.qty if qty is None else qty,
        frequency=line.frequency if frequency is None else frequency,
    )


def base_midpoint(base_pricing: Union[PricingResult, PriceRange, None]) -> float:
    """
    Midpoint of a price range; a lone bound is used as is, no bounds -> 0.
    """
    if base_pricing is None:
        return 0.0
    if isinstance(base_pricing, PricingResult):
        base_pricing = base_pricing.price_range

    low, high = base_pricing.low, base_pricing.high
    if low is not None and high is not None:
        return (low + high) / 2
    if low is not None:
        return low
    if high is not None:
        return high
    return 0.0


def summarize_monthly(
    base_pricing: Union[PricingResult, PriceRange, None],
    addon_lines: Iterable[AddonLine],
) -> MonthlySummary:
    """
    Recurring monthly total (base midpoint + amortized add-ons), with
    non-amortized lines reported separately as one-time charges.
    """
    recurring = []
    one_time = []
    for line in addon_lines:
        if line.monthly_amount is None:
            one_time.append(line)
        else:
            recurring.append(line)

    base_monthly = base_midpoint(base_pricing)
    addons_monthly = sum(line.monthly_amount for line in recurring)

    return MonthlySummary(
        base_monthly=base_monthly,
        addons_monthly=addons_monthly,
        total_monthly=base_monthly + addons_monthly,
        one_time_charges=one_time,
        one_time_total=sum(line.subtotal for line in one_time),
    )


def total_monthly(
    base_pricing: Union[PricingResult, PriceRange, None],
    addon_lines: Iterable[AddonLine],
) -> float:
    return summarize_monthly(base_pricing, addon_lines).total_monthly
