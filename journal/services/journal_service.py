"""Journal Service — the single owner of the in-memory journal state.

Holds trades, accounts, withdrawals and backtests.  Every mutation hands a
deep-copied snapshot to the SyncCoordinator (local write now, remote write
debounced).  Read-side queries go straight to the pure stats engine.
"""

from __future__ import annotations

import json
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from journal.engine import stats_engine
from journal.engine.trade_filter import (
    ALL_ACCOUNTS,
    TimeFilter,
    closed_only,
    filter_by_account,
    filter_by_time,
    search_trades,
)
from journal.errors import ImportMalformedError, JournalError
from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.journal import Account, JournalSnapshot, Trade, Withdrawal
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
from journal.services.csv_importer import parse_csv
from journal.services.local_store import LocalStore
from journal.services.remote_store import RemoteStore
from journal.services.sync_coordinator import SyncCoordinator, default_account
from journal.utils.logger import logger


def _find(items: list, item_id: str) -> int:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return -1


class JournalService:
    """Explicit state owner for one journal."""

    def __init__(self, coordinator: SyncCoordinator | None = None) -> None:
        self._sync = coordinator or SyncCoordinator(LocalStore(), RemoteStore.from_settings())
        self.trades: list[Trade] = []
        self.accounts: list[Account] = [default_account()]
        self.withdrawals: list[Withdrawal] = []
        self.backtest_sessions: list[BacktestSession] = []
        self.backtest_trades: list[BacktestTrade] = []

    @property
    def sync(self) -> SyncCoordinator:
        return self._sync

    async def start(self) -> None:
        """Load persisted state (local, then remote pull if configured)."""
        self._adopt(await self._sync.load_initial())
        logger.info(
            "[Journal] Loaded %d trades, %d accounts, %d withdrawals (sync=%s)",
            len(self.trades), len(self.accounts), len(self.withdrawals),
            self._sync.status.value,
        )

    def _adopt(self, snapshot: JournalSnapshot) -> None:
        self.trades = list(snapshot.trades)
        self.accounts = list(snapshot.accounts) or [default_account()]
        self.withdrawals = list(snapshot.withdrawals)
        self.backtest_sessions = list(snapshot.backtest_sessions)
        self.backtest_trades = list(snapshot.backtest_trades)

    def snapshot(self) -> JournalSnapshot:
        """Deep copy of the current state."""
        return JournalSnapshot(
            trades=self.trades,
            accounts=self.accounts,
            withdrawals=self.withdrawals,
            backtest_sessions=self.backtest_sessions,
            backtest_trades=self.backtest_trades,
        ).copy_deep()

    def _commit(self) -> None:
        self._sync.notify(self.snapshot())

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def add_trade(self, trade: Trade) -> Trade:
        """Add a new trade at the top of the log."""
        if _find(self.trades, trade.id) >= 0:
            raise JournalError(f"Trade {trade.id} already exists")
        self.trades.insert(0, trade)
        self._commit()
        logger.info("[Journal] Added trade %s %s %s", trade.id, trade.direction, trade.symbol)
        return trade

    def update_trade(self, trade: Trade) -> Trade:
        """Replace the trade with the same id."""
        idx = _find(self.trades, trade.id)
        if idx < 0:
            raise JournalError(f"Trade {trade.id} not found", not_found=True)
        self.trades[idx] = trade
        self._commit()
        return trade

    def delete_trade(self, trade_id: str) -> None:
        idx = _find(self.trades, trade_id)
        if idx < 0:
            raise JournalError(f"Trade {trade_id} not found", not_found=True)
        del self.trades[idx]
        self._commit()
        logger.info("[Journal] Deleted trade %s", trade_id)

    def get_trade(self, trade_id: str) -> Trade:
        idx = _find(self.trades, trade_id)
        if idx < 0:
            raise JournalError(f"Trade {trade_id} not found", not_found=True)
        return self.trades[idx]

    def list_trades(self, account_id: str = ALL_ACCOUNTS, search: str = "") -> list[Trade]:
        """Trades of one account (or all), filtered by search term, newest first."""
        return search_trades(filter_by_account(self.trades, account_id), search)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        if _find(self.accounts, account.id) >= 0:
            raise JournalError(f"Account {account.id} already exists")
        self.accounts.append(account)
        self._commit()
        logger.info("[Journal] Added account %s (%s)", account.id, account.name)
        return account

    def delete_account(self, account_id: str) -> None:
        """Remove an account. The last remaining account cannot be deleted."""
        idx = _find(self.accounts, account_id)
        if idx < 0:
            raise JournalError(f"Account {account_id} not found", not_found=True)
        if len(self.accounts) <= 1:
            raise JournalError("You must have at least one account.")
        del self.accounts[idx]
        self._commit()
        logger.info("[Journal] Deleted account %s", account_id)

    def get_account(self, account_id: str) -> Account:
        idx = _find(self.accounts, account_id)
        if idx < 0:
            raise JournalError(f"Account {account_id} not found", not_found=True)
        return self.accounts[idx]

    def list_accounts(self) -> list[Account]:
        return list(self.accounts)

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    def add_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        if _find(self.withdrawals, withdrawal.id) >= 0:
            raise JournalError(f"Withdrawal {withdrawal.id} already exists")
        self.withdrawals.insert(0, withdrawal)
        self._commit()
        logger.info(
            "[Journal] Logged withdrawal %s: %.2f from account %s",
            withdrawal.id, withdrawal.amount, withdrawal.account_id,
        )
        return withdrawal

    def delete_withdrawal(self, withdrawal_id: str) -> None:
        idx = _find(self.withdrawals, withdrawal_id)
        if idx < 0:
            raise JournalError(f"Withdrawal {withdrawal_id} not found", not_found=True)
        del self.withdrawals[idx]
        self._commit()

    def list_withdrawals(self, account_id: str = ALL_ACCOUNTS) -> list[Withdrawal]:
        return filter_by_account(self.withdrawals, account_id)

    # ------------------------------------------------------------------
    # Backtests
    # ------------------------------------------------------------------

    def add_backtest_session(self, session: BacktestSession) -> BacktestSession:
        if _find(self.backtest_sessions, session.id) >= 0:
            raise JournalError(f"Backtest session {session.id} already exists")
        self.backtest_sessions.append(session)
        self._commit()
        return session

    def delete_backtest_session(self, session_id: str) -> None:
        """Remove a session together with its simulated trades."""
        idx = _find(self.backtest_sessions, session_id)
        if idx < 0:
            raise JournalError(f"Backtest session {session_id} not found", not_found=True)
        del self.backtest_sessions[idx]
        self.backtest_trades = [t for t in self.backtest_trades if t.session_id != session_id]
        self._commit()

    def list_backtest_sessions(self) -> list[BacktestSession]:
        return list(self.backtest_sessions)

    def add_backtest_trade(self, trade: BacktestTrade) -> BacktestTrade:
        if _find(self.backtest_sessions, trade.session_id) < 0:
            raise JournalError(
                f"Backtest session {trade.session_id} not found", not_found=True,
            )
        if _find(self.backtest_trades, trade.id) >= 0:
            raise JournalError(f"Backtest trade {trade.id} already exists")
        self.backtest_trades.append(trade)
        self._commit()
        return trade

    def delete_backtest_trade(self, trade_id: str) -> None:
        idx = _find(self.backtest_trades, trade_id)
        if idx < 0:
            raise JournalError(f"Backtest trade {trade_id} not found", not_found=True)
        del self.backtest_trades[idx]
        self._commit()

    def list_backtest_trades(self, session_id: str) -> list[BacktestTrade]:
        return [t for t in self.backtest_trades if t.session_id == session_id]

    def backtest_stats(self, session_id: str) -> BacktestStats:
        idx = _find(self.backtest_sessions, session_id)
        if idx < 0:
            raise JournalError(f"Backtest session {session_id} not found", not_found=True)
        return stats_engine.backtest_stats(self.backtest_sessions[idx], self.backtest_trades)

    # ------------------------------------------------------------------
    # Balances & statistics
    # ------------------------------------------------------------------

    def initial_balance(self, account_id: str = ALL_ACCOUNTS) -> float:
        """One account's funding, or the sum of all accounts for ``"all"``."""
        if account_id == ALL_ACCOUNTS:
            return sum(a.balance for a in self.accounts)
        return self.get_account(account_id).balance

    def balances(self, account_id: str = ALL_ACCOUNTS) -> dict[str, float]:
        """Initial and current balance over every closed trade of the selection."""
        initial = self.initial_balance(account_id)
        current = stats_engine.current_balance(
            filter_by_account(self.trades, account_id),
            filter_by_account(self.withdrawals, account_id),
            initial,
        )
        return {"initial": initial, "current": current}

    def _analytics_trades(
        self, account_id: str, time_filter: TimeFilter | str, now: datetime | None = None,
    ) -> list[Trade]:
        return filter_by_time(
            closed_only(filter_by_account(self.trades, account_id)), time_filter, now,
        )

    def summary(
        self,
        account_id: str = ALL_ACCOUNTS,
        time_filter: TimeFilter | str = TimeFilter.ALL,
        now: datetime | None = None,
    ) -> Summary:
        """Period metrics; ``current_balance`` always reflects the whole account."""
        trades = self._analytics_trades(account_id, time_filter, now)
        balances = self.balances(account_id)
        summary = stats_engine.compute_summary(
            trades, filter_by_account(self.withdrawals, account_id), balances["initial"],
        )
        return summary.model_copy(update={"current_balance": balances["current"]})

    def weekday_breakdown(
        self, account_id: str = ALL_ACCOUNTS, time_filter: TimeFilter | str = TimeFilter.ALL,
    ) -> list[WeekdayBucket]:
        return stats_engine.bucket_by_weekday(self._analytics_trades(account_id, time_filter))

    def hour_breakdown(
        self, account_id: str = ALL_ACCOUNTS, time_filter: TimeFilter | str = TimeFilter.ALL,
    ) -> list[HourBucket]:
        return stats_engine.bucket_by_hour(self._analytics_trades(account_id, time_filter))

    def symbol_breakdown(
        self, account_id: str = ALL_ACCOUNTS, time_filter: TimeFilter | str = TimeFilter.ALL,
    ) -> list[SymbolCount]:
        return stats_engine.bucket_by_symbol(self._analytics_trades(account_id, time_filter))

    def equity_curve(self, account_id: str = ALL_ACCOUNTS) -> list[EquityPoint]:
        return stats_engine.equity_curve(
            filter_by_account(self.trades, account_id), self.initial_balance(account_id),
        )

    def pnl_series(self, account_id: str = ALL_ACCOUNTS, interval: str = "DAY") -> list[SeriesPoint]:
        return stats_engine.pnl_series(filter_by_account(self.trades, account_id), interval)

    def calendar(self, year: int, month: int, account_id: str = ALL_ACCOUNTS) -> list[CalendarDay | None]:
        return stats_engine.calendar_month(filter_by_account(self.trades, account_id), year, month)

    def daily_stats(self, account_id: str = ALL_ACCOUNTS) -> list[DayStats]:
        return stats_engine.daily_stats(filter_by_account(self.trades, account_id))

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def import_csv(self, csv_text: str, account_id: str = ALL_ACCOUNTS) -> dict[str, int]:
        """Merge a broker CSV export into the journal by trade id.

        Existing trades are updated field by field; unseen ids are added.
        The log is re-sorted newest first.
        """
        if account_id == ALL_ACCOUNTS:
            target = self.accounts[0].id if self.accounts else "1"
        else:
            target = account_id

        parsed = parse_csv(csv_text, target)
        merged = {t.id: t for t in self.trades}
        added = updated = 0
        for t in parsed.trades:
            existing = merged.get(t.id)
            if existing is not None:
                merged[t.id] = existing.model_copy(update=t.model_dump(exclude_unset=True))
                updated += 1
            else:
                merged[t.id] = t
                added += 1

        self.trades = sorted(
            merged.values(), key=lambda t: t.entry_date.timestamp(), reverse=True,
        )
        self._commit()
        logger.info(
            "[Journal] CSV import into %s: %d added, %d updated, %d skipped",
            target, added, updated, parsed.skipped,
        )
        return {"added": added, "updated": updated, "skipped": parsed.skipped}

    def import_json(self, json_text: str) -> int:
        """Replace all trades with a JSON array export. Nothing changes on failure."""
        try:
            data = json.loads(json_text)
        except json.JSONDecodeError as exc:
            raise ImportMalformedError(f"Invalid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise ImportMalformedError("Expected a JSON array of trades")
        try:
            trades = TypeAdapter(list[Trade]).validate_python(data)
        except ValidationError as exc:
            raise ImportMalformedError(
                f"Trade records failed validation ({exc.error_count()} errors)"
            ) from exc

        self.trades = trades
        self._commit()
        logger.info("[Journal] JSON import replaced trades (%d records)", len(trades))
        return len(trades)

    def export_json(self) -> str:
        """All trades as a JSON array in the import/export format."""
        return json.dumps([t.to_json_dict() for t in self.trades], indent=2)

    def clear_data(self) -> None:
        """Reset to a fresh journal with the default account only."""
        self.trades = []
        self.accounts = [default_account()]
        self.withdrawals = []
        self.backtest_sessions = []
        self.backtest_trades = []
        self._commit()
        logger.info("[Journal] Journal reset")
