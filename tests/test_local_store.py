"""Tests for the DuckDB-backed local store."""

from __future__ import annotations

import json

from helpers import make_account, make_trade, make_withdrawal

from journal.database import get_db
from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.journal import JournalSnapshot
from journal.services.local_store import ACCOUNTS_KEY, TRADES_KEY, LocalStore


class TestLocalStore:

    def test_missing_keys_load_empty(self):
        store = LocalStore()
        snap = store.load_snapshot()
        assert snap.trades == []
        assert snap.accounts == []
        assert snap.withdrawals == []

    def test_snapshot_persists(self):
        store = LocalStore()
        snap = JournalSnapshot(
            trades=[make_trade(25, trade_id="t1"), make_trade(-5, trade_id="t2")],
            accounts=[make_account()],
            withdrawals=[make_withdrawal(100)],
            backtest_sessions=[
                BacktestSession(id="s1", name="Asia", symbol="USDJPY", initial_balance=1000),
            ],
            backtest_trades=[
                BacktestTrade(id="b1", session_id="s1", date="2024-01-01", pnl=10, result="WIN"),
            ],
        )
        store.save_snapshot(snap)

        loaded = LocalStore().load_snapshot()
        assert [t.id for t in loaded.trades] == ["t1", "t2"]
        assert loaded.trades[0].pnl == 25
        assert loaded.accounts[0].balance == 10000
        assert loaded.withdrawals[0].amount == 100
        assert loaded.backtest_sessions[0].symbol == "USDJPY"
        assert loaded.backtest_trades[0].result == "WIN"

    def test_stored_as_camel_case_json(self):
        store = LocalStore()
        store.save_trades([make_trade(1, trade_id="t1")])
        raw = json.loads(store.get_raw(TRADES_KEY))
        assert raw[0]["accountId"] == "1"
        assert "entryDate" in raw[0]

    def test_save_overwrites(self):
        store = LocalStore()
        store.save_trades([make_trade(1, trade_id="a")])
        store.save_trades([make_trade(1, trade_id="b")])
        assert [t.id for t in store.load_trades()] == ["b"]
        count = get_db().execute(
            "SELECT COUNT(*) FROM kv_store WHERE key = ?", [TRADES_KEY]
        ).fetchone()[0]
        assert count == 1

    def test_invalid_json_loads_empty(self):
        store = LocalStore()
        store.set_raw(TRADES_KEY, "{not json")
        assert store.load_trades() == []

    def test_non_list_loads_empty(self):
        store = LocalStore()
        store.set_raw(ACCOUNTS_KEY, json.dumps({"id": "1", "name": "Main"}))
        assert store.load_accounts() == []

    def test_invalid_record_loads_empty(self):
        store = LocalStore()
        store.set_raw(TRADES_KEY, json.dumps([{"id": "x", "symbol": "EURUSD"}]))
        assert store.load_trades() == []

    def test_clear(self):
        store = LocalStore()
        store.save_accounts([make_account()])
        store.clear()
        assert store.load_accounts() == []
