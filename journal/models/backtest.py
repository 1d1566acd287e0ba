"""Backtest models — simulated sessions and their hand-logged trades."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from journal.models.base import JournalRecord, coerce_date_only


class BacktestSession(JournalRecord):
    """A named replay session with its own starting balance."""

    id: str
    name: str
    symbol: str
    initial_balance: float
    strategy: str = ""
    timeframe: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class BacktestTrade(JournalRecord):
    """One simulated trade inside a BacktestSession."""

    id: str
    session_id: str
    date: datetime
    pnl: float
    r_multiple: float = 0.0
    result: Literal["WIN", "LOSS", "BE"]
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _accept_date_only(cls, v: object) -> object:
        return coerce_date_only(v)
