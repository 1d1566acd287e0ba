"""Derived statistics models — output of the stats engine, never persisted."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class Summary(BaseModel):
    """Aggregate P&L metrics over the closed trades of a selection."""

    initial_balance: float = 0.0
    current_balance: float = 0.0
    net_pnl: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0  # sum of losing pnl, <= 0
    win_rate: float = 0.0  # percent
    loss_rate: float = 0.0  # percent, always 100 - win_rate
    profit_factor: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    total_trades: int = 0
    win_count: int = 0
    loss_count: int = 0
    total_lots: float = 0.0
    avg_rrr: float = 0.0
    long_win_rate: float = 0.0
    short_win_rate: float = 0.0
    total_withdrawn: float = 0.0


class WeekdayBucket(BaseModel):
    day: str  # Sun..Sat
    index: int  # 0 = Sunday
    pnl: float = 0.0


class HourBucket(BaseModel):
    hour: str  # "14:00"
    index: int
    pnl: float = 0.0


class SymbolCount(BaseModel):
    symbol: str
    count: int


class EquityPoint(BaseModel):
    """One point of the equity curve. The first point is the synthetic "start"."""

    label: str
    timestamp: Optional[datetime] = None
    balance: float


class SeriesPoint(BaseModel):
    """Dashboard chart point: period pnl plus running total from zero."""

    label: str
    pnl: float
    balance: float
    trades: int = 0


class DayStats(BaseModel):
    date: date
    pnl: float = 0.0
    trades: int = 0
    wins: int = 0
    losses: int = 0


class CalendarDay(BaseModel):
    day: int
    date: date
    pnl: float = 0.0
    trade_count: int = 0
    has_trades: bool = False
    top_symbol: str = ""
    trade_ids: list[str] = Field(default_factory=list)


class BacktestStats(BaseModel):
    session_id: str
    total_pnl: float = 0.0
    total_trades: int = 0
    wins: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0
    final_balance: float = 0.0
    equity_curve: list[EquityPoint] = Field(default_factory=list)
