"""Tests for the pure statistics engine."""

from __future__ import annotations

import math
from datetime import date, datetime

from helpers import make_trade, make_withdrawal

from journal.engine import stats_engine
from journal.models.backtest import BacktestSession, BacktestTrade


# ══════════════════════════════════════════════════════════════════════
# 1.  Summary
# ══════════════════════════════════════════════════════════════════════


class TestComputeSummary:
    """Headline metrics over closed trades."""

    def test_open_trade_is_excluded(self):
        trades = [
            make_trade(100),
            make_trade(-40),
            make_trade(50, status="OPEN"),
        ]
        s = stats_engine.compute_summary(trades, [], 1000)
        assert s.net_pnl == 60
        assert s.win_rate == 50
        assert s.gross_profit == 100
        assert s.gross_loss == -40
        assert s.profit_factor == 2.5
        assert s.current_balance == 1060
        assert s.total_trades == 2

    def test_withdrawals_reduce_balance(self):
        trades = [make_trade(100), make_trade(-40)]
        s = stats_engine.compute_summary(trades, [make_withdrawal(200)], 1000)
        assert s.net_pnl == 60
        assert s.current_balance == 860
        assert s.total_withdrawn == 200

    def test_empty_collection(self):
        s = stats_engine.compute_summary([], [], 1000)
        assert s.net_pnl == 0
        assert s.win_rate == 0
        assert s.loss_rate == 100
        assert math.isfinite(s.profit_factor)
        assert s.profit_factor == 0
        assert s.current_balance == 1000
        assert s.best_trade == 0
        assert s.worst_trade == 0
        assert s.avg_win == 0
        assert s.avg_loss == 0

    def test_all_winners_profit_factor_is_gross_profit(self):
        s = stats_engine.compute_summary([make_trade(30), make_trade(70)], [], 0)
        assert s.gross_loss == 0
        assert s.profit_factor == 100

    def test_breakeven_counts_as_loss(self):
        s = stats_engine.compute_summary([make_trade(0), make_trade(10)], [], 0)
        assert s.win_count == 1
        assert s.loss_count == 1
        assert s.win_rate == 50

    def test_win_and_loss_rate_sum_to_100(self):
        trades = [make_trade(p) for p in (5, -3, 8, -1, 2, -9, 4)]
        s = stats_engine.compute_summary(trades, [], 0)
        assert s.win_rate + s.loss_rate == 100

    def test_profit_factor_non_negative(self):
        for pnls in ([-10], [-10, -5], [0], [3, -7]):
            s = stats_engine.compute_summary([make_trade(p) for p in pnls], [], 0)
            assert s.profit_factor >= 0
            assert math.isfinite(s.profit_factor)

    def test_idempotent(self):
        trades = [make_trade(12.5), make_trade(-7.25), make_trade(3)]
        first = stats_engine.compute_summary(trades, [], 500)
        second = stats_engine.compute_summary(trades, [], 500)
        assert first == second

    def test_averages_and_extremes(self):
        trades = [make_trade(100), make_trade(50), make_trade(-30), make_trade(-10)]
        s = stats_engine.compute_summary(trades, [], 0)
        assert s.avg_win == 75
        assert s.avg_loss == -20
        assert s.best_trade == 100
        assert s.worst_trade == -30
        assert s.avg_rrr == 3.75

    def test_direction_win_rates(self):
        trades = [
            make_trade(10, direction="LONG"),
            make_trade(-10, direction="LONG"),
            make_trade(10, direction="SHORT"),
        ]
        s = stats_engine.compute_summary(trades, [], 0)
        assert s.long_win_rate == 50
        assert s.short_win_rate == 100

    def test_current_balance_helper(self):
        trades = [make_trade(100), make_trade(50, status="OPEN")]
        assert stats_engine.current_balance(trades, [make_withdrawal(30)], 1000) == 1070


# ══════════════════════════════════════════════════════════════════════
# 2.  Buckets
# ══════════════════════════════════════════════════════════════════════


class TestBuckets:
    """Weekday, hour and symbol breakdowns."""

    def test_weekday_always_seven(self):
        assert len(stats_engine.bucket_by_weekday([])) == 7
        trades = [make_trade(1, entry_date=f"2024-01-{d:02d}T10:00:00") for d in range(1, 20)]
        buckets = stats_engine.bucket_by_weekday(trades)
        assert len(buckets) == 7
        assert [b.day for b in buckets] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

    def test_weekday_sums_closed_pnl(self):
        # 2024-01-01 is a Monday, 2024-01-07 a Sunday
        trades = [
            make_trade(40, entry_date="2024-01-01T10:00:00"),
            make_trade(-15, entry_date="2024-01-01T14:00:00"),
            make_trade(25, entry_date="2024-01-07T10:00:00"),
            make_trade(99, entry_date="2024-01-07T10:00:00", status="OPEN"),
        ]
        buckets = stats_engine.bucket_by_weekday(trades)
        assert buckets[1].pnl == 25  # Monday
        assert buckets[0].pnl == 25  # Sunday, open trade ignored
        assert buckets[3].pnl == 0

    def test_hour_always_twenty_four(self):
        buckets = stats_engine.bucket_by_hour([make_trade(10, entry_date="2024-01-01T09:15:00")])
        assert len(buckets) == 24
        assert buckets[9].pnl == 10
        assert buckets[9].hour == "9:00"
        assert buckets[0].hour == "0:00"

    def test_symbol_counts_in_first_seen_order(self):
        trades = [
            make_trade(1, symbol="EURUSD"),
            make_trade(1, symbol="XAUUSD"),
            make_trade(1, symbol="EURUSD"),
            make_trade(1, symbol="eurusd"),
        ]
        counts = stats_engine.bucket_by_symbol(trades)
        assert [(c.symbol, c.count) for c in counts] == [
            ("EURUSD", 2), ("XAUUSD", 1), ("eurusd", 1),
        ]


# ══════════════════════════════════════════════════════════════════════
# 3.  Equity curve & series
# ══════════════════════════════════════════════════════════════════════


class TestCurves:

    def test_equity_curve_starts_with_baseline(self):
        curve = stats_engine.equity_curve([], 5000)
        assert len(curve) == 1
        assert curve[0].label == "start"
        assert curve[0].balance == 5000

    def test_equity_curve_ends_at_start_plus_total(self):
        trades = [
            make_trade(100, entry_date="2024-01-03T10:00:00"),
            make_trade(-30, entry_date="2024-01-01T10:00:00"),
            make_trade(45.5, entry_date="2024-01-02T10:00:00"),
        ]
        curve = stats_engine.equity_curve(trades, 1000)
        assert len(curve) == 4
        assert curve[-1].balance == 1000 + 100 - 30 + 45.5
        # oldest first
        assert [p.balance for p in curve] == [1000, 970, 1015.5, 1115.5]

    def test_equity_curve_skips_open(self):
        trades = [make_trade(100), make_trade(500, status="OPEN")]
        curve = stats_engine.equity_curve(trades, 0)
        assert curve[-1].balance == 100

    def test_series_by_day(self):
        trades = [
            make_trade(10, entry_date="2024-01-01T10:00:00"),
            make_trade(-4, entry_date="2024-01-01T12:00:00"),
        ]
        series = stats_engine.pnl_series(trades, "DAY")
        assert [p.pnl for p in series] == [10, -4]
        assert [p.balance for p in series] == [10, 6]
        assert series[0].label == "2024-01-01"

    def test_series_by_week_groups_on_monday(self):
        trades = [
            make_trade(10, entry_date="2024-01-02T10:00:00"),  # Tue
            make_trade(5, entry_date="2024-01-05T10:00:00"),   # Fri, same week
            make_trade(-3, entry_date="2024-01-09T10:00:00"),  # next week
        ]
        series = stats_engine.pnl_series(trades, "WEEK")
        assert [(p.label, p.pnl, p.trades) for p in series] == [
            ("2024-01-01", 15, 2),
            ("2024-01-08", -3, 1),
        ]
        assert series[-1].balance == 12

    def test_series_by_month(self):
        trades = [
            make_trade(10, entry_date="2024-01-15T10:00:00"),
            make_trade(20, entry_date="2024-02-15T10:00:00"),
        ]
        series = stats_engine.pnl_series(trades, "MONTH")
        assert [p.label for p in series] == ["Jan 2024", "Feb 2024"]
        assert series[-1].balance == 30


# ══════════════════════════════════════════════════════════════════════
# 4.  Calendar
# ══════════════════════════════════════════════════════════════════════


class TestCalendar:

    def test_month_grid_padding(self):
        # March 2024 starts on a Friday: five leading blanks with Sunday first
        grid = stats_engine.calendar_month([], 2024, 3)
        assert grid[:5] == [None] * 5
        assert grid[5].day == 1
        assert len(grid) == 5 + 31

    def test_day_totals_and_top_symbol(self):
        trades = [
            make_trade(20, entry_date="2024-03-12T10:00:00", symbol="EURUSD", trade_id="a"),
            make_trade(-80, entry_date="2024-03-12T15:00:00", symbol="XAUUSD", trade_id="b"),
            make_trade(5, entry_date="2024-04-12T10:00:00"),
        ]
        grid = stats_engine.calendar_month(trades, 2024, 3)
        day = next(d for d in grid if d is not None and d.day == 12)
        assert day.pnl == -60
        assert day.trade_count == 2
        assert day.has_trades
        assert day.top_symbol == "XAUUSD"
        assert day.trade_ids == ["a", "b"]
        assert day.date == date(2024, 3, 12)

    def test_daily_stats(self):
        trades = [
            make_trade(20, entry_date="2024-03-12T10:00:00"),
            make_trade(-5, entry_date="2024-03-12T11:00:00"),
            make_trade(7, entry_date="2024-03-13T11:00:00"),
        ]
        days = stats_engine.daily_stats(trades)
        assert len(days) == 2
        assert days[0].date == date(2024, 3, 12)
        assert days[0].pnl == 15
        assert (days[0].wins, days[0].losses) == (1, 1)


# ══════════════════════════════════════════════════════════════════════
# 5.  Backtests
# ══════════════════════════════════════════════════════════════════════


class TestBacktestStats:

    def test_session_totals(self):
        session = BacktestSession(id="s1", name="Test", symbol="EURUSD", initial_balance=1000)
        trades = [
            BacktestTrade(id="1", session_id="s1", date="2024-01-01", pnl=100, r_multiple=2, result="WIN"),
            BacktestTrade(id="2", session_id="s1", date="2024-01-02", pnl=-50, r_multiple=-1, result="LOSS"),
            BacktestTrade(id="3", session_id="other", date="2024-01-02", pnl=999, result="WIN"),
        ]
        stats = stats_engine.backtest_stats(session, trades)
        assert stats.total_trades == 2
        assert stats.total_pnl == 50
        assert stats.win_rate == 50
        assert stats.avg_r == 0.5
        assert stats.final_balance == 1050
        assert [p.balance for p in stats.equity_curve] == [1000, 1100, 1050]

    def test_empty_session(self):
        session = BacktestSession(id="s1", name="Test", symbol="EURUSD", initial_balance=1000)
        stats = stats_engine.backtest_stats(session, [])
        assert stats.win_rate == 0
        assert stats.final_balance == 1000


class TestLocalTime:

    def test_naive_is_unchanged(self):
        ts = datetime(2024, 1, 1, 10, 0)
        assert stats_engine.local_time(ts) == ts

    def test_aware_becomes_naive_local(self):
        from datetime import timezone
        ts = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        local = stats_engine.local_time(ts)
        assert local.tzinfo is None
        assert local == ts.astimezone().replace(tzinfo=None)
