"""
Point-in-time year-over-year windows

Every YoY metric compares "this year through as_of" with "last year
through the same calendar date", never with the whole prior year. The
prior-year date is clamped to the last valid day of its month, so
Feb 29 compares against Feb 28.
"""
from datetime import date
from typing import Optional, Tuple

from merchops.schemas.analytics import YoYValue
from merchops.services.classification import last_day_of_month


def same_date_prior_year(as_of: date) -> date:
    prior_year = as_of.year - 1
    day = min(as_of.day, last_day_of_month(prior_year, as_of.month))
    return date(prior_year, as_of.month, day)


def ytd_window(as_of: date) -> Tuple[date, date]:
    return date(as_of.year, 1, 1), as_of


def prior_ytd_window(as_of: date) -> Tuple[date, date]:
    comparison = same_date_prior_year(as_of)
    return date(comparison.year, 1, 1), comparison


def change_pct(current: float, prior: float) -> Optional[float]:
    if not prior:
        return None
    return round((current - prior) / prior * 100, 1)


def yoy(current, prior) -> YoYValue:
    current = int(current or 0)
    prior = int(prior or 0)
    return YoYValue(current=current, prior=prior, change_pct=change_pct(current, prior))


def pct(numerator, denominator) -> Optional[float]:
    """numerator / denominator as a 0-100 percentage, None on an empty denominator."""
    if not denominator:
        return None
    return round(numerator / denominator * 100, 1)
