"""Helpers shared by the report routines."""

import asyncio
from collections.abc import Awaitable, Iterable
from datetime import date, timedelta
from typing import TypeVar

from odoo_dashboard.exceptions import ValidationError

MISSING_DATES_MESSAGE = "date_from y date_to son obligatorios"

MONTH_LABELS = ("Ene", "Feb", "Mar", "Abr", "May", "Jun",
                "Jul", "Ago", "Sep", "Oct", "Nov", "Dic")

CHART_COLORS = (
    "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6",
    "#06b6d4", "#ec4899", "#f97316", "#14b8a6", "#6366f1",
)

# Upper bound on simultaneous per-month queries sent to Odoo
MAX_CONCURRENT_QUERIES = 4

T = TypeVar("T")


def parse_date_range(date_from: str | None, date_to: str | None) -> tuple[date, date]:
    """Validate a required ISO date range.

    Args:
        date_from: Start date (YYYY-MM-DD).
        date_to: End date (YYYY-MM-DD).

    Returns:
        Tuple of (start, end) dates.

    Raises:
        ValidationError: If a date is missing or malformed, or if the range
            is inverted.
    """
    if not date_from or not date_to:
        raise ValidationError(MISSING_DATES_MESSAGE)

    try:
        start = date.fromisoformat(date_from)
        end = date.fromisoformat(date_to)
    except ValueError as e:
        raise ValidationError(
            f"Formato de fecha inválido: {e}", "Use ISO format: YYYY-MM-DD"
        ) from e

    if start > end:
        raise ValidationError("date_from debe ser anterior o igual a date_to")
    return start, end


def period_label(start: date, end: date) -> str:
    return f"{start.isoformat()} a {end.isoformat()}"


def month_label(day: date) -> str:
    """Short chart label, e.g. "Ene 25"."""
    return f"{MONTH_LABELS[day.month - 1]} {day.year % 100:02d}"


def month_ends(start: date, end: date) -> list[tuple[str, date]]:
    """List the months touched by a range with their last day.

    The last day is not clamped to ``end``: a chart point shows the state
    at the close of its month.

    Args:
        start: First day of the range.
        end: Last day of the range.

    Returns:
        List of (label, month_end) tuples in chronological order.
    """
    months: list[tuple[str, date]] = []
    current = date(start.year, start.month, 1)
    while current <= end:
        # Get last day of month
        if current.month == 12:
            month_end = date(current.year, 12, 31)
            following = date(current.year + 1, 1, 1)
        else:
            following = date(current.year, current.month + 1, 1)
            month_end = following - timedelta(days=1)

        months.append((month_label(current), month_end))
        current = following

    return months


def chart_color(index: int, palette: tuple[str, ...] = CHART_COLORS) -> str:
    return palette[index % len(palette)]


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


async def gather_limited(
    awaitables: Iterable[Awaitable[T]],
    limit: int = MAX_CONCURRENT_QUERIES,
) -> list[T]:
    """Await all items with at most ``limit`` running at once.

    Args:
        awaitables: Coroutines to run. They are not started before a slot
            is free.
        limit: Maximum number of concurrently running items.

    Returns:
        Results in input order. The first failure propagates.
    """
    semaphore = asyncio.Semaphore(limit)

    async def run(awaitable: Awaitable[T]) -> T:
        async with semaphore:
            return await awaitable

    return list(await asyncio.gather(*(run(a) for a in awaitables)))
