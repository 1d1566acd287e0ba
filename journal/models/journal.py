"""Journal models — Trade, Account, Withdrawal and the full JournalSnapshot.

Stored and exported with the camelCase keys the journal has always used
(``accountId``, ``entryDate`` ...); Python code uses snake_case attributes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.base import JournalRecord, coerce_date_only


class Trade(JournalRecord):
    """A single position record. ``pnl`` is authoritative, never derived."""

    id: str
    account_id: str
    symbol: str
    direction: Literal["LONG", "SHORT"]
    entry_date: datetime
    exit_date: Optional[datetime] = None
    entry_price: float
    exit_price: Optional[float] = None
    quantity: float
    pnl: float = 0.0
    status: Literal["OPEN", "CLOSED", "PENDING"]
    setup: Optional[str] = None
    notes: Optional[str] = None
    screenshot: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    fees: Optional[float] = None
    sl: Optional[float] = None  # stop-loss price level
    tp: Optional[float] = None  # take-profit price level

    @field_validator("entry_date", "exit_date", mode="before")
    @classmethod
    def _accept_date_only(cls, v: object) -> object:
        return coerce_date_only(v)

    @property
    def is_closed(self) -> bool:
        return self.status == "CLOSED"


class Account(JournalRecord):
    """A capital pool. ``balance`` is the initial funding, never the live balance."""

    id: str
    name: str
    currency: str = "USD"
    balance: float = 0.0


class Withdrawal(JournalRecord):
    """A capital removal. Always reduces the computed balance, whatever its status."""

    id: str
    account_id: str
    amount: float = Field(gt=0)
    date: datetime
    method: str = "Bank Transfer"
    status: Literal["COMPLETED", "PENDING"] = "COMPLETED"
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _accept_date_only(cls, v: object) -> object:
        return coerce_date_only(v)


class JournalSnapshot(BaseModel):
    """The full logical state handed to the persistence layer."""

    trades: list[Trade] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    withdrawals: list[Withdrawal] = Field(default_factory=list)
    backtest_sessions: list[BacktestSession] = Field(default_factory=list)
    backtest_trades: list[BacktestTrade] = Field(default_factory=list)

    def copy_deep(self) -> JournalSnapshot:
        return self.model_copy(deep=True)


class RemoteBackup(BaseModel):
    """Contents of the remote backup row: trades and accounts only."""

    trades: list[Trade] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
