"""Stats Engine — pure reductions over trade and withdrawal records.

Every function here is side-effect free and safe to call repeatedly.
Empty or degenerate inputs resolve to zero-valued defaults; no function
raises on an empty collection and every division is guarded.

Hour, weekday and calendar bucketing use the observer's local clock:
timezone-aware timestamps are converted with ``astimezone()`` and naive
timestamps are taken as already local.  No per-trade zone is stored.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Literal

from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.journal import Trade, Withdrawal
from journal.models.stats import (
    BacktestStats,
    CalendarDay,
    DayStats,
    EquityPoint,
    HourBucket,
    SeriesPoint,
    Summary,
    SymbolCount,
    WeekdayBucket,
)

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

Interval = Literal["DAY", "WEEK", "MONTH"]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def local_time(ts: datetime) -> datetime:
    """Return ``ts`` on the observer's local wall clock (naive)."""
    if ts.tzinfo is not None:
        return ts.astimezone().replace(tzinfo=None)
    return ts


def _sort_key(ts: datetime) -> float:
    # naive datetimes are interpreted as local time by timestamp()
    return ts.timestamp()


def _js_weekday(ts: datetime) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (local_time(ts).weekday() + 1) % 7


def _safe_div(num: float, den: float) -> float:
    if not den:
        return 0.0
    result = num / den
    return result if math.isfinite(result) else 0.0


def _closed(trades: Iterable[Trade]) -> list[Trade]:
    return [t for t in trades if t.status == "CLOSED"]


def _win_rate(trades: list[Trade]) -> float:
    if not trades:
        return 0.0
    wins = sum(1 for t in trades if t.pnl > 0)
    return wins / len(trades) * 100


# ------------------------------------------------------------------
# Summary
# ------------------------------------------------------------------


def compute_summary(
    trades: Iterable[Trade],
    withdrawals: Iterable[Withdrawal],
    initial_balance: float,
) -> Summary:
    """Aggregate P&L metrics over the CLOSED trades in ``trades``.

    A trade with ``pnl == 0`` counts as a loss.  When there is no gross loss
    the profit factor denominator is 1, so an all-wins selection reports its
    gross profit as the profit factor.
    """
    closed = _closed(trades)
    winners = [t for t in closed if t.pnl > 0]
    losers = [t for t in closed if t.pnl <= 0]

    net_pnl = sum(t.pnl for t in closed)
    gross_profit = sum(t.pnl for t in winners)
    gross_loss = sum(t.pnl for t in losers)

    win_rate = _win_rate(closed)
    profit_factor = abs(_safe_div(gross_profit, gross_loss or 1))

    avg_win = _safe_div(gross_profit, len(winners))
    avg_loss = _safe_div(gross_loss, len(losers))

    total_withdrawn = sum(w.amount for w in withdrawals)

    return Summary(
        initial_balance=initial_balance,
        current_balance=initial_balance + net_pnl - total_withdrawn,
        net_pnl=net_pnl,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        win_rate=win_rate,
        loss_rate=100 - win_rate,
        profit_factor=profit_factor,
        avg_win=avg_win,
        avg_loss=avg_loss,
        best_trade=max((t.pnl for t in closed), default=0.0),
        worst_trade=min((t.pnl for t in closed), default=0.0),
        total_trades=len(closed),
        win_count=len(winners),
        loss_count=len(losers),
        total_lots=sum(t.quantity or 0 for t in closed),
        avg_rrr=abs(_safe_div(avg_win, avg_loss or 1)),
        long_win_rate=_win_rate([t for t in closed if t.direction == "LONG"]),
        short_win_rate=_win_rate([t for t in closed if t.direction == "SHORT"]),
        total_withdrawn=total_withdrawn,
    )


def current_balance(
    trades: Iterable[Trade],
    withdrawals: Iterable[Withdrawal],
    initial_balance: float,
) -> float:
    """Initial funding + realized P&L of closed trades − all withdrawals."""
    net = sum(t.pnl for t in _closed(trades))
    return initial_balance + net - sum(w.amount for w in withdrawals)


# ------------------------------------------------------------------
# Time buckets
# ------------------------------------------------------------------


def bucket_by_weekday(trades: Iterable[Trade]) -> list[WeekdayBucket]:
    """Sum closed-trade pnl per entry weekday. Always 7 buckets, Sunday first."""
    totals = [0.0] * 7
    for t in _closed(trades):
        totals[_js_weekday(t.entry_date)] += t.pnl
    return [
        WeekdayBucket(day=label, index=i, pnl=totals[i])
        for i, label in enumerate(WEEKDAY_LABELS)
    ]


def bucket_by_hour(trades: Iterable[Trade]) -> list[HourBucket]:
    """Sum closed-trade pnl per entry hour (local clock). Always 24 buckets."""
    totals = [0.0] * 24
    for t in _closed(trades):
        totals[local_time(t.entry_date).hour] += t.pnl
    return [HourBucket(hour=f"{h}:00", index=h, pnl=totals[h]) for h in range(24)]


def bucket_by_symbol(trades: Iterable[Trade]) -> list[SymbolCount]:
    """Count trades per exact symbol string, in order of first occurrence."""
    counts: dict[str, int] = {}
    for t in trades:
        counts[t.symbol] = counts.get(t.symbol, 0) + 1
    return [SymbolCount(symbol=s, count=c) for s, c in counts.items()]


# ------------------------------------------------------------------
# Curves & series
# ------------------------------------------------------------------


def equity_curve(trades: Iterable[Trade], starting_balance: float) -> list[EquityPoint]:
    """Running balance after each closed trade, oldest first.

    A synthetic ``start`` point carrying ``starting_balance`` always leads.
    """
    ordered = sorted(_closed(trades), key=lambda t: _sort_key(t.entry_date))
    points = [EquityPoint(label="start", balance=starting_balance)]
    balance = starting_balance
    for t in ordered:
        balance += t.pnl
        points.append(
            EquityPoint(label=t.entry_date.isoformat(), timestamp=t.entry_date, balance=balance)
        )
    return points


def _period_key(ts: datetime, interval: Interval) -> str:
    local = local_time(ts)
    if interval == "WEEK":
        monday = local.date() - timedelta(days=local.weekday())
        return monday.isoformat()
    if interval == "MONTH":
        return f"{calendar.month_abbr[local.month]} {local.year}"
    return local.date().isoformat()


def pnl_series(trades: Iterable[Trade], interval: Interval = "DAY") -> list[SeriesPoint]:
    """Dashboard chart data: pnl per period plus a running total from zero.

    DAY yields one point per closed trade; WEEK groups by the Monday of the
    entry week; MONTH groups by ``"Mon YYYY"``.
    """
    ordered = sorted(_closed(trades), key=lambda t: _sort_key(t.entry_date))
    running = 0.0

    if interval == "DAY":
        series = []
        for t in ordered:
            running += t.pnl
            series.append(
                SeriesPoint(
                    label=_period_key(t.entry_date, "DAY"),
                    pnl=t.pnl,
                    balance=running,
                    trades=1,
                )
            )
        return series

    grouped: dict[str, list[float]] = {}
    for t in ordered:
        grouped.setdefault(_period_key(t.entry_date, interval), []).append(t.pnl)

    series = []
    for label, pnls in grouped.items():
        running += sum(pnls)
        series.append(SeriesPoint(label=label, pnl=sum(pnls), balance=running, trades=len(pnls)))
    return series


# ------------------------------------------------------------------
# Calendar
# ------------------------------------------------------------------


def daily_stats(trades: Iterable[Trade]) -> list[DayStats]:
    """Per-calendar-date pnl, trade count, wins and losses (closed trades)."""
    days: dict[date, DayStats] = {}
    for t in sorted(_closed(trades), key=lambda t: _sort_key(t.entry_date)):
        d = local_time(t.entry_date).date()
        stats = days.setdefault(d, DayStats(date=d))
        stats.pnl += t.pnl
        stats.trades += 1
        if t.pnl > 0:
            stats.wins += 1
        else:
            stats.losses += 1
    return list(days.values())


def calendar_month(trades: Iterable[Trade], year: int, month: int) -> list[CalendarDay | None]:
    """Month grid for the calendar view.

    Leading ``None`` entries pad the first week (Sunday-first), followed by
    one CalendarDay per day of the month.
    """
    first_weekday = (date(year, month, 1).weekday() + 1) % 7
    days_in_month = calendar.monthrange(year, month)[1]

    by_day: dict[int, list[Trade]] = {}
    for t in _closed(trades):
        local = local_time(t.entry_date)
        if local.year == year and local.month == month:
            by_day.setdefault(local.day, []).append(t)

    grid: list[CalendarDay | None] = [None] * first_weekday
    for day in range(1, days_in_month + 1):
        day_trades = by_day.get(day, [])
        top = max(day_trades, key=lambda t: abs(t.pnl)).symbol if day_trades else ""
        grid.append(
            CalendarDay(
                day=day,
                date=date(year, month, day),
                pnl=sum(t.pnl for t in day_trades),
                trade_count=len(day_trades),
                has_trades=bool(day_trades),
                top_symbol=top,
                trade_ids=[t.id for t in day_trades],
            )
        )
    return grid


# ------------------------------------------------------------------
# Backtests
# ------------------------------------------------------------------


def backtest_stats(session: BacktestSession, trades: Iterable[BacktestTrade]) -> BacktestStats:
    """Totals and equity curve for one backtest session, in logged order."""
    session_trades = [t for t in trades if t.session_id == session.id]
    total_pnl = sum(t.pnl for t in session_trades)
    wins = sum(1 for t in session_trades if t.result == "WIN")

    curve = [EquityPoint(label="start", balance=session.initial_balance)]
    balance = session.initial_balance
    for t in session_trades:
        balance += t.pnl
        curve.append(EquityPoint(label=t.date.date().isoformat(), timestamp=t.date, balance=balance))

    return BacktestStats(
        session_id=session.id,
        total_pnl=total_pnl,
        total_trades=len(session_trades),
        wins=wins,
        win_rate=_safe_div(wins, len(session_trades)) * 100,
        avg_r=_safe_div(sum(t.r_multiple for t in session_trades), len(session_trades)),
        final_balance=balance,
        equity_curve=curve,
    )
