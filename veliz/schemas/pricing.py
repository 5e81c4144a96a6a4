# veliz/schemas/pricing.py

from typing import Annotated, Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..engine.normalize import normalize_frequency

ServiceType = Literal["residential", "commercial", "carpet", "window", "floor"]
AddonFrequency = Literal["one_time", "monthly", "quarterly", "annual"]
UnitType = Literal["sqft", "pane", "visit", "hour", "flat"]
AddonCategory = Literal["cleaning", "maintenance", "specialty", "seasonal", "other"]

NonNegative = Annotated[float, Field(ge=0, allow_inf_nan=False)]
Percentage = Annotated[float, Field(ge=0, le=100, allow_inf_nan=False)]


# --------------------------------------------------
# Default rate table (used for any key a settings row leaves out)
# --------------------------------------------------

DEFAULT_SERVICE_TYPE_RATES: Dict[str, float] = {
    "residential": 0.15,  # per sq ft
    "commercial": 0.12,
    "carpet": 0.25,
    "window": 8.0,  # per window
    "floor": 0.20,
}

DEFAULT_FREQUENCY_MULTIPLIERS: Dict[str, float] = {
    "one_time": 1.0,
    "weekly": 0.9,
    "bi_weekly": 0.95,
    "monthly": 1.0,
    "quarterly": 1.1,
}

DEFAULT_LABOR_RATE = 35.0
DEFAULT_OVERHEAD_PERCENTAGE = 15.0
DEFAULT_MARGIN_PERCENTAGE = 25.0


class RateTable(BaseModel):
    service_type_rates: Dict[str, NonNegative] = Field(
        default_factory=lambda: dict(DEFAULT_SERVICE_TYPE_RATES)
    )
    frequency_multipliers: Dict[str, NonNegative] = Field(
        default_factory=lambda: dict(DEFAULT_FREQUENCY_MULTIPLIERS)
    )
    labor_rate: NonNegative = DEFAULT_LABOR_RATE  # $/hour
    overhead_percentage: Percentage = DEFAULT_OVERHEAD_PERCENTAGE
    margin_percentage: Percentage = DEFAULT_MARGIN_PERCENTAGE

    @field_validator("frequency_multipliers")
    @classmethod
    def _canonical_frequency_keys(cls, value: Dict[str, float]) -> Dict[str, float]:
        return {normalize_frequency(k): v for k, v in value.items()}

    def service_rate(self, service_type: str) -> float:
        rate = self.service_type_rates.get(service_type)
        if rate is None:
            return DEFAULT_SERVICE_TYPE_RATES.get(service_type, 0.0)
        return rate

    def frequency_multiplier(self, frequency: Optional[str]) -> float:
        """
        Table value, then the default table, then 1.0 for unknown frequencies.
        """
        key = normalize_frequency(frequency)
        if key in self.frequency_multipliers:
            return self.frequency_multipliers[key]
        return DEFAULT_FREQUENCY_MULTIPLIERS.get(key, 1.0)


# --------------------------------------------------
# Service-specific form data, keyed by service_type
# --------------------------------------------------

class ServiceDetails(BaseModel):
    # Form payloads carry extra keys we only pass through
    model_config = ConfigDict(extra="allow")


class ResidentialDetails(ServiceDetails):
    home_type: Optional[str] = None
    bedrooms: Optional[int] = Field(None, ge=1)
    bathrooms: Optional[float] = Field(None, ge=1)
    pets: bool = False
    cleaning_supplies_provided: bool = False


class CommercialDetails(ServiceDetails):
    business_type: Optional[str] = None
    operating_hours: Optional[str] = None
    employee_count: Optional[int] = Field(None, ge=1)
    cleaning_schedule_preference: Optional[
        Literal["before_hours", "after_hours", "during_hours"]
    ] = None


class CarpetDetails(ServiceDetails):
    carpet_type: Optional[str] = None
    carpet_age: Optional[str] = None
    pet_odors: bool = False
    protection_treatment: bool = False


class WindowDetails(ServiceDetails):
    window_count: int = Field(..., ge=1)
    story_height: Optional[Literal["single", "two", "three_plus"]] = None
    screen_cleaning: bool = False
    sill_cleaning: bool = False


class FloorDetails(ServiceDetails):
    floor_types: List[str] = Field(default_factory=list)
    floor_condition: Optional[Literal["excellent", "good", "fair", "poor"]] = None
    furniture_moving: bool = False


SERVICE_DETAILS_MODELS: Dict[str, Type[ServiceDetails]] = {
    "residential": ResidentialDetails,
    "commercial": CommercialDetails,
    "carpet": CarpetDetails,
    "window": WindowDetails,
    "floor": FloorDetails,
}


class PricingInput(BaseModel):
    service_type: ServiceType
    facility_size: Optional[float] = None  # sq ft
    service_frequency: Optional[str] = None
    service_specific_data: Optional[Dict[str, Any]] = None


# --------------------------------------------------
# Pricing result
# --------------------------------------------------

class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    low: Optional[float] = None
    high: Optional[float] = None


class HoursEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int
    max: int


class ProductionRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float


class PricingAssumptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    labor_rate: float
    overhead_percentage: float
    margin_percentage: float
    production_rate: ProductionRate


class PricingBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: float
    unit_type: str  # "square feet" or "windows"
    units: float
    frequency_multiplier: float
    adjusted_price: float
    labor_hours: int
    labor_cost: float
    overhead: float
    margin: float
    total: float


class PricingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    price_range: PriceRange
    hours_estimate: HoursEstimate
    assumptions: PricingAssumptions
    breakdown: PricingBreakdown


class PricingError(BaseModel):
    """
    Validation failure returned by the calculator instead of a result.
    """
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


# --------------------------------------------------
# Add-ons
# --------------------------------------------------

class AddonCatalogEntry(BaseModel):
    sku: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9_-]+$")
    label: str = Field(..., min_length=3, max_length=100)
    category: Optional[AddonCategory] = None
    unit_type: UnitType
    rate: float = Field(..., gt=0, allow_inf_nan=False)
    min_qty: float = Field(0, ge=0, allow_inf_nan=False)
    default_frequency: AddonFrequency
    frequency_options: List[AddonFrequency] = Field(..., min_length=1)
    amortize_to_monthly: bool = False
    default_qty_source: str = "manual"
    active: bool = True
    show_in_proposals: bool = True
    description: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _default_frequency_offered(self) -> "AddonCatalogEntry":
        if self.default_frequency not in self.frequency_options:
            raise ValueError("default frequency must be one of the frequency options")
        return self


class AddonLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    sku: str
    label: str
    unit_type: UnitType
    rate: float
    qty: float
    frequency: AddonFrequency
    subtotal: float  # qty * rate
    monthly_amount: Optional[float] = None  # None for one-time / non-amortized


class MonthlySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_monthly: float
    addons_monthly: float
    total_monthly: float
    one_time_charges: List[AddonLine]
    one_time_total: float
