"""Local Store — JSON arrays under fixed keys in the DuckDB kv_store table.

Loading never fails: a missing key, invalid JSON, a non-list document or a
record that does not validate all yield an empty collection.  Saving
propagates database errors to the caller.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from journal.database import get_db
from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.base import JournalRecord
from journal.models.journal import Account, JournalSnapshot, Trade, Withdrawal
from journal.utils.logger import logger

TRADES_KEY = "journal_trades"
ACCOUNTS_KEY = "journal_accounts"
WITHDRAWALS_KEY = "journal_withdrawals"
BACKTEST_SESSIONS_KEY = "journal_backtest_sessions"
BACKTEST_TRADES_KEY = "journal_backtest_trades"

ALL_KEYS = (
    TRADES_KEY,
    ACCOUNTS_KEY,
    WITHDRAWALS_KEY,
    BACKTEST_SESSIONS_KEY,
    BACKTEST_TRADES_KEY,
)

_M = TypeVar("_M", bound=BaseModel)


class LocalStore:
    """Durable local persistence for every journal collection."""

    # ------------------------------------------------------------------
    # Raw key/value access
    # ------------------------------------------------------------------

    def get_raw(self, key: str) -> str | None:
        row = get_db().execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    def set_raw(self, key: str, value: str) -> None:
        get_db().execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            [key, value, datetime.now()],
        )

    def _load(self, key: str, model: type[_M]) -> list[_M]:
        raw = self.get_raw(key)
        if raw is None:
            return []
        try:
            return TypeAdapter(list[model]).validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "[LocalStore] Discarding malformed %s (%d errors)", key, exc.error_count(),
            )
            return []

    def _save(self, key: str, records: list[JournalRecord]) -> None:
        self.set_raw(key, json.dumps([r.to_json_dict() for r in records]))

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def load_trades(self) -> list[Trade]:
        return self._load(TRADES_KEY, Trade)

    def save_trades(self, trades: list[Trade]) -> None:
        self._save(TRADES_KEY, trades)

    def load_accounts(self) -> list[Account]:
        return self._load(ACCOUNTS_KEY, Account)

    def save_accounts(self, accounts: list[Account]) -> None:
        self._save(ACCOUNTS_KEY, accounts)

    def load_withdrawals(self) -> list[Withdrawal]:
        return self._load(WITHDRAWALS_KEY, Withdrawal)

    def save_withdrawals(self, withdrawals: list[Withdrawal]) -> None:
        self._save(WITHDRAWALS_KEY, withdrawals)

    def load_backtest_sessions(self) -> list[BacktestSession]:
        return self._load(BACKTEST_SESSIONS_KEY, BacktestSession)

    def save_backtest_sessions(self, sessions: list[BacktestSession]) -> None:
        self._save(BACKTEST_SESSIONS_KEY, sessions)

    def load_backtest_trades(self) -> list[BacktestTrade]:
        return self._load(BACKTEST_TRADES_KEY, BacktestTrade)

    def save_backtest_trades(self, trades: list[BacktestTrade]) -> None:
        self._save(BACKTEST_TRADES_KEY, trades)

    # ------------------------------------------------------------------
    # Whole state
    # ------------------------------------------------------------------

    def load_snapshot(self) -> JournalSnapshot:
        return JournalSnapshot(
            trades=self.load_trades(),
            accounts=self.load_accounts(),
            withdrawals=self.load_withdrawals(),
            backtest_sessions=self.load_backtest_sessions(),
            backtest_trades=self.load_backtest_trades(),
        )

    def save_snapshot(self, snapshot: JournalSnapshot) -> None:
        self.save_trades(snapshot.trades)
        self.save_accounts(snapshot.accounts)
        self.save_withdrawals(snapshot.withdrawals)
        self.save_backtest_sessions(snapshot.backtest_sessions)
        self.save_backtest_trades(snapshot.backtest_trades)

    def clear(self) -> None:
        get_db().execute("DELETE FROM kv_store")
        logger.info("[LocalStore] Cleared all keys")
