from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from . import config
from .engine.pages import split_document
from .engine.patterns import PRICING_TABLE_TAG, SCOPE_TABLE_TAG
from .engine.pricing import (
    AddonSelectionError,
    amortize_addon,
    base_midpoint,
    build_addon_line,
    calculate,
    quick_estimate,
    summarize_monthly,
)
from .engine.splitter import DEFAULT_CONTINUATION_ROWS, DEFAULT_FIRST_PAGE_ROWS, scope_row_chunks
from .engine.tables import build_pricing_table, build_scope_table, fence, scope_costs
from .schemas.content import ScopeRow, SplitResponse
from .schemas.pricing import (
    AddonCatalogEntry,
    AddonFrequency,
    AddonLine,
    MonthlySummary,
    PriceRange,
    PricingError,
    PricingInput,
    PricingResult,
    RateTable,
    ServiceType,
)
from .services.addon_catalog import AddonCatalog
from .services.content_client import generate_proposal_content
from .services.rate_settings import get_rate_table


# =======================================================
# Request / response models
# =======================================================

class AmortizeRequest(BaseModel):
    subtotal: float = Field(..., ge=0)
    frequency: AddonFrequency
    amortize: bool = True


class AddonLineRequest(BaseModel):
    sku: str
    qty: Optional[float] = None
    frequency: Optional[str] = None


class MonthlyRequest(BaseModel):
    price_range: Optional[PriceRange] = None
    addon_lines: List[AddonLine] = Field(default_factory=list)


class SplitRequest(BaseModel):
    content: Optional[str] = None
    template_name: Optional[str] = None
    template_type: Optional[str] = None


class ScopeChunksRequest(BaseModel):
    content: Optional[str] = None
    first_page_limit: int = Field(DEFAULT_FIRST_PAGE_ROWS, ge=1)
    continuation_limit: int = Field(DEFAULT_CONTINUATION_ROWS, ge=1)


class TablesRequest(BaseModel):
    """
    Inputs for the fenced tables embedded in the generation prompt.
    """
    service_frequency: str
    price_range: Optional[PriceRange] = None
    areas: List[str] = Field(default_factory=list)
    note: Optional[str] = None
    per_area: bool = False
    addon_lines: List[AddonLine] = Field(default_factory=list)
    tax_rate: float = Field(0.0, ge=0)


class TablesResponse(BaseModel):
    scope_table: str
    pricing_table: str


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    template_name: Optional[str] = None
    template_type: Optional[str] = None
    regenerate: bool = False


class GenerateResponse(BaseModel):
    content: str
    split: SplitResponse


# =======================================================
# Dependencies
# =======================================================

_catalog = AddonCatalog()


def get_catalog() -> AddonCatalog:
    return _catalog


def get_rates() -> RateTable:
    return get_rate_table()


# =======================================================
# FastAPI app
# =======================================================

app = FastAPI(title="Veliz Proposal API", version="1.0")


@app.on_event("startup")
def on_startup() -> None:
    config.configure_logging()


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Veliz proposal API running (pricing + content splitting)",
    }


# =======================================================
# Pricing
# =======================================================

@app.post("/pricing/calculate", response_model=PricingResult)
def pricing_calculate(inputs: PricingInput, rates: RateTable = Depends(get_rates)):
    """
    Price estimate for the proposal form. Validation failures come back as
    400 with {"field", "message"} so the form can highlight the input.
    """
    result = calculate(inputs, rates)

    if isinstance(result, PricingError):
        raise HTTPException(status_code=400, detail=result.model_dump())

    return result


@app.get("/pricing/quick_estimate")
def pricing_quick_estimate(
    service_type: ServiceType = Query(..., description="residential, commercial, carpet, window or floor"),
    facility_size: float = Query(..., gt=0, description="Square feet"),
    frequency: str = Query("one_time", description="e.g. weekly, bi-weekly, one-time"),
    rates: RateTable = Depends(get_rates),
):
    return {
        "service_type": service_type,
        "facility_size": facility_size,
        "frequency": frequency,
        "estimate": quick_estimate(service_type, facility_size, frequency, rates),
    }


@app.post("/pricing/monthly", response_model=MonthlySummary)
def pricing_monthly(req: MonthlyRequest):
    return summarize_monthly(req.price_range, req.addon_lines)


# =======================================================
# Add-ons
# =======================================================

@app.get("/addons", response_model=List[AddonCatalogEntry])
def list_addons(
    active_only: bool = Query(True),
    proposals_only: bool = Query(False, description="Only add-ons shown in proposals"),
    category: Optional[str] = Query(None),
    catalog: AddonCatalog = Depends(get_catalog),
):
    return catalog.select(active_only=active_only, proposals_only=proposals_only, category=category)


@app.post("/addons/amortize")
def addons_amortize(req: AmortizeRequest):
    return {"monthly_amount": amortize_addon(req.subtotal, req.frequency, req.amortize)}


@app.post("/addons/lines", response_model=AddonLine)
def addons_line(req: AddonLineRequest, catalog: AddonCatalog = Depends(get_catalog)):
    entry = catalog.get(req.sku)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown add-on '{req.sku}'")

    try:
        return build_addon_line(entry, qty=req.qty, frequency=req.frequency)
    except AddonSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =======================================================
# Proposal content
# =======================================================

@app.post("/proposals/tables", response_model=TablesResponse)
def proposal_tables(req: TablesRequest):
    """
    Fenced scope + pricing tables to embed in the generation prompt.
    """
    base_monthly = base_midpoint(req.price_range)
    cost_per_visit, monthly_cost = scope_costs(base_monthly, req.service_frequency)

    scope = build_scope_table(
        req.areas,
        req.service_frequency,
        cost_per_visit=cost_per_visit,
        monthly_cost=monthly_cost,
        note=req.note,
        per_area=req.per_area,
    )
    pricing = build_pricing_table(base_monthly, req.service_frequency, req.addon_lines, req.tax_rate)

    return TablesResponse(
        scope_table=fence(SCOPE_TABLE_TAG, scope),
        pricing_table=fence(PRICING_TABLE_TAG, pricing),
    )


@app.post("/proposals/split", response_model=SplitResponse)
def proposal_split(req: SplitRequest):
    return split_document(req.content, req.template_name, req.template_type)


@app.post("/proposals/scope_chunks", response_model=List[List[ScopeRow]])
def proposal_scope_chunks(req: ScopeChunksRequest):
    """
    Scope table rows grouped per rendered page. No table (or a malformed one) -> [].
    """
    return scope_row_chunks(req.content, req.first_page_limit, req.continuation_limit)


@app.post("/proposals/generate", response_model=GenerateResponse)
def proposal_generate(req: GenerateRequest):
    content = generate_proposal_content(req.prompt, regenerate=req.regenerate)

    if not content:
        raise HTTPException(status_code=502, detail="Content generation failed")

    return GenerateResponse(
        content=content,
        split=split_document(content, req.template_name, req.template_type),
    )
