"""Operating expense arithmetic independent from the database layer."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, Field

DAYS_PER_MONTH = 30
WEEKS_PER_MONTH = 4
MONTHS_PER_YEAR = 12

OPEX_FREQUENCIES: List[Dict[str, str]] = [
    {"value": "daily", "label": "Daily"},
    {"value": "weekly", "label": "Weekly"},
    {"value": "monthly", "label": "Monthly"},
    {"value": "yearly", "label": "Yearly"},
]

OPEX_CATEGORIES: List[Dict[str, str]] = [
    {"value": "rent", "label": "Rent"},
    {"value": "utilities", "label": "Utilities (power/water/gas)"},
    {"value": "salary", "label": "Salaries"},
    {"value": "marketing", "label": "Marketing"},
    {"value": "supplies", "label": "Supplies"},
    {"value": "maintenance", "label": "Maintenance"},
    {"value": "insurance", "label": "Insurance"},
    {"value": "license", "label": "Permits & licenses"},
    {"value": "other", "label": "Other"},
]


class OpexSummary(BaseModel):
    """Monthly view over a business' recurring costs."""

    total_monthly: float = 0.0
    by_category: Dict[str, float] = Field(default_factory=dict)
    items: List[Dict[str, Any]] = Field(default_factory=list)


def normalize_to_monthly(amount: float, frequency: str) -> float:
    """Return the monthly equivalent of ``amount`` paid at ``frequency``.

    Unknown frequency tags are treated as monthly.
    """

    if frequency == "daily":
        return amount * DAYS_PER_MONTH
    if frequency == "weekly":
        return amount * WEEKS_PER_MONTH
    if frequency == "yearly":
        return amount / MONTHS_PER_YEAR
    return amount


def calculate_monthly_opex(items: Iterable[Any]) -> float:
    """Sum the monthly equivalents of heterogeneous-frequency OPEX items."""

    total = 0.0
    for item in items:
        total += normalize_to_monthly(_amount(item), _field(item, "frequency"))
    return total


def calculate_opex_per_unit(monthly_opex: float, monthly_sales: float) -> float:
    """Spread the monthly OPEX over the units sold; 0 when nothing is sold."""

    if monthly_sales <= 0:
        return 0
    return monthly_opex / monthly_sales


def summarize_opex(items: Iterable[Dict[str, Any]]) -> OpexSummary:
    """Aggregate active OPEX rows into a monthly total and per-category totals."""

    rows = list(items)
    by_category: Dict[str, float] = {}
    total_monthly = 0.0
    for row in rows:
        if row.get("is_active", True) is False:
            continue
        monthly = normalize_to_monthly(_amount(row), row.get("frequency"))
        total_monthly += monthly
        category = row.get("category") or "other"
        by_category[category] = by_category.get(category, 0.0) + monthly
    return OpexSummary(total_monthly=total_monthly, by_category=by_category, items=rows)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _amount(item: Any) -> float:
    value = _field(item, "amount")
    if value is None:
        return 0.0
    return float(value)


__all__ = [
    "OPEX_CATEGORIES",
    "OPEX_FREQUENCIES",
    "OpexSummary",
    "calculate_monthly_opex",
    "calculate_opex_per_unit",
    "normalize_to_monthly",
    "summarize_opex",
]
