"""
TTB Form 5120.17 calculations (hard cider, 27 CFR 24).

Volumes are U.S. wine gallons. Tax figures are in dollars.
"""

import calendar
from datetime import date
from typing import Literal, Optional, Tuple

from core.units import round_half_up

PeriodType = Literal["monthly", "quarterly", "annual"]

LITERS_PER_WINE_GALLON = 3.78541
WINE_GALLONS_PER_LITER = 0.264172

HARD_CIDER_TAX_RATE = 0.226
SMALL_PRODUCER_CREDIT_PER_GALLON = 0.056
SMALL_PRODUCER_CREDIT_LIMIT_GALLONS = 30000
EFFECTIVE_TAX_RATE = 0.17

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def liters_to_wine_gallons(liters: float) -> float:
    if liters is None or liters < 0:
        return 0.0
    return liters * WINE_GALLONS_PER_LITER


def ml_to_wine_gallons(ml: float) -> float:
    return liters_to_wine_gallons((ml or 0) / 1000)


def wine_gallons_to_liters(gallons: float) -> float:
    if gallons is None or gallons < 0:
        return 0.0
    return gallons * LITERS_PER_WINE_GALLON


def round_gallons(gallons: float) -> float:
    return round_half_up(gallons, 3)


def calculate_hard_cider_tax(taxable_gallons: float, credit_used_ytd: float = 0.0) -> dict:
    """Gross tax, small producer credit and net tax for tax-paid removals.

    The credit applies to the first 30,000 gallons removed in the calendar
    year, so ``credit_used_ytd`` shrinks what is still eligible.
    """
    if taxable_gallons <= 0:
        return {
            "gross_tax": 0.0,
            "small_producer_credit": 0.0,
            "net_tax_owed": 0.0,
            "effective_tax_rate": 0.0,
        }

    gross = taxable_gallons * HARD_CIDER_TAX_RATE
    remaining = max(0.0, SMALL_PRODUCER_CREDIT_LIMIT_GALLONS - credit_used_ytd)
    eligible = min(taxable_gallons, remaining)
    credit = eligible * SMALL_PRODUCER_CREDIT_PER_GALLON
    net = gross - credit

    return {
        "gross_tax": round_half_up(gross, 2),
        "small_producer_credit": round_half_up(credit, 2),
        "net_tax_owed": round_half_up(net, 2),
        "effective_tax_rate": round_half_up(net / taxable_gallons, 4),
    }


def calculate_period_tax(taxable_gallons: float, credit_used_ytd: float = 0.0) -> dict:
    return calculate_hard_cider_tax(taxable_gallons, credit_used_ytd)


def calculate_reconciliation(
    beginning_inventory: float,
    wine_produced: float,
    receipts: float,
    tax_paid_removals: float,
    other_removals: float,
    ending_inventory: float,
) -> dict:
    available = beginning_inventory + wine_produced + receipts
    accounted = tax_paid_removals + other_removals + ending_inventory
    variance = round_gallons(available - accounted)
    return {
        "total_available": round_gallons(available),
        "total_accounted_for": round_gallons(accounted),
        "variance": variance,
        "balanced": abs(variance) < 0.1,
    }


def _check_period(period_type: str, period_number: Optional[int]) -> int:
    n = period_number or 1
    if period_type == "monthly":
        if not 1 <= n <= 12:
            raise ValueError("Month must be between 1 and 12")
    elif period_type == "quarterly":
        if not 1 <= n <= 4:
            raise ValueError("Quarter must be between 1 and 4")
    elif period_type != "annual":
        raise ValueError(f"Unknown period type: {period_type}")
    return n


def get_period_date_range(period_type: PeriodType, year: int, period_number: Optional[int] = None) -> Tuple[date, date]:
    n = _check_period(period_type, period_number)
    if period_type == "monthly":
        last = calendar.monthrange(year, n)[1]
        return date(year, n, 1), date(year, n, last)
    if period_type == "quarterly":
        start_month = (n - 1) * 3 + 1
        end_month = start_month + 2
        last = calendar.monthrange(year, end_month)[1]
        return date(year, start_month, 1), date(year, end_month, last)
    return date(year, 1, 1), date(year, 12, 31)


def format_period_label(period_type: PeriodType, year: int, period_number: Optional[int] = None) -> str:
    n = _check_period(period_type, period_number)
    if period_type == "monthly":
        return f"{MONTH_NAMES[n - 1]} {year}"
    if period_type == "quarterly":
        return f"Q{n} {year}"
    return f"{year}"
