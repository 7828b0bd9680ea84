"""Reporting window helpers for query parameters.

WHAT:
    Resolves the optional start/end query parameters every computed view
    accepts into a concrete inclusive window.

WHY:
    Dashboards open on the current year; routers share one default and one
    422 for reversed windows instead of each rolling their own.
"""

from datetime import date
from typing import Optional, Tuple

from fastapi import HTTPException


def resolve_window(
    start_date: Optional[date],
    end_date: Optional[date],
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Reporting window for a query, defaulting to the current calendar year.

    Raises:
        HTTPException 422: start_date after end_date
    """
    year = (today or date.today()).year
    start = start_date or date(year, 1, 1)
    end = end_date or date(year, 12, 31)
    if start > end:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")
    return start, end
