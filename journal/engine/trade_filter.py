"""Trade selection — account scoping, analytics time windows and search."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar

from journal.engine.stats_engine import local_time
from journal.models.journal import Trade

ALL_ACCOUNTS = "all"

_R = TypeVar("_R")


class TimeFilter(str, Enum):
    ALL = "ALL"
    THIS_WEEK = "THIS_WEEK"
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    LAST_7_DAYS = "LAST_7_DAYS"
    LAST_30_DAYS = "LAST_30_DAYS"


def filter_by_account(items: Iterable[_R], account_id: str | None) -> list[_R]:
    """Keep records whose ``account_id`` matches; ``"all"``/None keeps everything."""
    if not account_id or account_id == ALL_ACCOUNTS:
        return list(items)
    return [i for i in items if getattr(i, "account_id", None) == account_id]


def closed_only(trades: Iterable[Trade]) -> list[Trade]:
    return [t for t in trades if t.status == "CLOSED"]


def window_for(
    time_filter: TimeFilter | str, now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Return the ``[start, end)`` local-time window for a filter (None = open)."""
    tf = TimeFilter(time_filter)
    now = local_time(now) if now else datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if tf is TimeFilter.THIS_WEEK:
        # weeks start on Sunday
        days_since_sunday = (now.weekday() + 1) % 7
        return midnight - timedelta(days=days_since_sunday), None
    if tf is TimeFilter.THIS_MONTH:
        return midnight.replace(day=1), None
    if tf is TimeFilter.LAST_MONTH:
        this_month = midnight.replace(day=1)
        last_month = (this_month - timedelta(days=1)).replace(day=1)
        return last_month, this_month
    if tf is TimeFilter.LAST_7_DAYS:
        return now - timedelta(days=7), None
    if tf is TimeFilter.LAST_30_DAYS:
        return now - timedelta(days=30), None
    return None, None


def filter_by_time(
    trades: Iterable[Trade],
    time_filter: TimeFilter | str = TimeFilter.ALL,
    now: datetime | None = None,
) -> list[Trade]:
    """Keep trades whose entry date falls inside the filter window."""
    start, end = window_for(time_filter, now)
    selected = []
    for t in trades:
        entry = local_time(t.entry_date)
        if start is not None and entry < start:
            continue
        if end is not None and entry >= end:
            continue
        selected.append(t)
    return selected


def search_trades(trades: Iterable[Trade], term: str = "") -> list[Trade]:
    """Case-insensitive match on symbol or setup, newest entry first."""
    needle = term.strip().lower()
    matched = [
        t for t in trades
        if not needle
        or needle in t.symbol.lower()
        or (t.setup and needle in t.setup.lower())
    ]
    return sorted(matched, key=lambda t: t.entry_date.timestamp(), reverse=True)
