"""Pytest fixtures shared by the pricing, splitter and API tests."""

import pytest

from veliz.schemas.pricing import AddonCatalogEntry, PricingInput, RateTable

SCOPE_FENCE = "```veliz_scope_table"
PRICING_FENCE = "```veliz_pricing_table"


@pytest.fixture
def rate_table() -> RateTable:
    return RateTable()


@pytest.fixture
def commercial_input() -> PricingInput:
    """5,000 sq ft office cleaned weekly."""
    return PricingInput(
        service_type="commercial",
        facility_size=5000,
        service_frequency="weekly",
        service_specific_data={"business_type": "office", "employee_count": 40},
    )


@pytest.fixture
def window_input() -> PricingInput:
    """50 windows, one-time job."""
    return PricingInput(
        service_type="window",
        facility_size=2000,
        service_frequency="one_time",
        service_specific_data={"window_count": 50, "story_height": "two"},
    )


@pytest.fixture
def window_entry() -> AddonCatalogEntry:
    return AddonCatalogEntry(
        sku="window_interior",
        label="Interior window cleaning",
        category="cleaning",
        unit_type="pane",
        rate=4.5,
        min_qty=10,
        default_frequency="quarterly",
        frequency_options=["monthly", "quarterly", "annual", "one_time"],
        amortize_to_monthly=True,
    )


@pytest.fixture
def one_time_entry() -> AddonCatalogEntry:
    return AddonCatalogEntry(
        sku="post_construction",
        label="Post-construction cleanup",
        category="specialty",
        unit_type="flat",
        rate=850,
        min_qty=1,
        default_frequency="one_time",
        frequency_options=["one_time"],
        amortize_to_monthly=False,
    )


@pytest.fixture
def scope_rows_json():
    """Build the JSON body of a scope table with `n` rows."""

    def _build(n: int) -> str:
        rows = ",".join(
            f'{{"area": "Area {i}", "frequency": "Weekly", "costPerVisit": "$10.00"}}'
            for i in range(1, n + 1)
        )
        return f'{{"rows": [{rows}]}}'

    return _build


@pytest.fixture
def premium_document() -> str:
    return "\n".join(
        [
            "Prepared for Acme Offices.",
            "",
            "# About Our Company",
            "Family owned since 2004.",
            "",
            "## Scope of service",
            "Nightly janitorial service for all office floors.",
            SCOPE_FENCE,
            '{"rows": [{"area": "Lobby", "frequency": "Weekly", "costPerVisit": "$50.00", "monthlyCost": "$216.50"}]}',
            "```",
            "Add-ons:",
            "- Carpet extraction",
            "- Window washing",
            "",
            "## Service Quote & Pricing",
            "Pricing covers the scope above.",
            PRICING_FENCE,
            '{"rows": [{"service": "Standard Janitorial Service", "frequency": "Weekly", "pricePerMonth": "$216.50"}],'
            ' "summary": {"subtotal": "$216.50", "tax": "$0.00", "total": "$216.50"}}',
            "```",
            "Notes:",
            "- Prices valid for 30 days",
            "- Supplies included",
        ]
    )


@pytest.fixture
def basic_document() -> str:
    return "\n".join(
        [
            "## Cover letter",
            "Dear Ms. Lee,",
            "",
            "## Scope of service",
            "Nightly cleaning of offices and restrooms.",
            "",
            "## Legal responsibility",
            "Contractor carries full liability insurance.",
            "",
            "## Pricing",
            "A . Customer agrees to pay contractor $1,250.50 monthly cost.",
            "B. Accounts are considered delinquent after net 30 days.",
            "",
            "## Additional services to be invoiced (Optional)",
            "- Carpet shampoo",
        ]
    )
