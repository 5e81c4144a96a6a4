# veliz/schemas/content.py

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TemplateType = Literal["basic", "executive_premium", "modern_corporate", "luxury_elite"]


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    content: str = ""


# --------------------------------------------------
# Fenced JSON tables embedded in generated content
# --------------------------------------------------

class TableModel(BaseModel):
    # JSON keys are camelCase; numbers are accepted where strings are expected
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class ScopeRow(TableModel):
    area: str = ""
    frequency: str = ""
    cost_per_visit: Optional[str] = Field(None, alias="costPerVisit")
    monthly_cost: Optional[str] = Field(None, alias="monthlyCost")
    note: Optional[str] = None

    @field_validator("area", "frequency", mode="before")
    @classmethod
    def _null_as_blank(cls, v):
        return "" if v is None else v


class ScopeTable(TableModel):
    rows: List[ScopeRow] = Field(default_factory=list)


class PricingRow(TableModel):
    service: str = ""
    frequency: str = ""
    price_per_month: Optional[str] = Field(None, alias="pricePerMonth")

    @field_validator("service", "frequency", mode="before")
    @classmethod
    def _null_as_blank(cls, v):
        return "" if v is None else v


class PricingTableSummary(TableModel):
    subtotal: Optional[str] = None
    tax: Optional[str] = None
    total: Optional[str] = None


class PricingTable(TableModel):
    rows: List[PricingRow] = Field(default_factory=list)
    summary: Optional[PricingTableSummary] = None


# --------------------------------------------------
# Split output consumed by the template renderers
# --------------------------------------------------

class ProposalSections(BaseModel):
    """
    Named sections a premium template renders, after recovery of
    add-ons/notes that were bundled into scope/pricing.
    """
    about: Optional[Section] = None
    commitment: Optional[Section] = None
    why_us: Optional[Section] = None
    scope: Optional[Section] = None
    addons: Optional[Section] = None
    pricing: Optional[Section] = None
    notes: Optional[Section] = None


class SplitResponse(BaseModel):
    sections: List[Section]
    pages: List[str]
    template_type: TemplateType
    named: ProposalSections
