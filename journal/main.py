"""FastAPI application — JSON API over the trade journal."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from journal.config import settings
from journal.engine import calculator
from journal.engine.trade_filter import ALL_ACCOUNTS, TimeFilter
from journal.errors import CalculatorError, ImportMalformedError, JournalError
from journal.models.backtest import BacktestSession, BacktestTrade
from journal.models.journal import Account, Trade, Withdrawal
from journal.services.journal_service import JournalService
from journal.services.remote_store import RemoteStore
from journal.utils.logger import logger

# ── Singleton services ──────────────────────────────────────────────
_journal = JournalService()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await _journal.start()
    yield
    await _journal.sync.shutdown()


app = FastAPI(
    title="Trade Journal",
    description="Trade log, account analytics and cloud backup sync",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Models ──────────────────────────────────────────────────────────
class CloudConfigRequest(BaseModel):
    url: str | None = None
    key: str | None = None
    sync_id: str | None = None


class PositionSizeRequest(BaseModel):
    balance: float
    risk_percent: float = 1.0
    stop_loss_pips: float = 20.0
    pip_value: float | None = None
    instrument: str = "EURUSD"


class PnlRequest(BaseModel):
    direction: str = "BUY"
    entry_price: float
    exit_price: float
    lots: float = 1.0
    pip_value: float | None = None
    instrument: str = "EURUSD"


class CsvImportRequest(BaseModel):
    csv_text: str
    account_id: str = ALL_ACCOUNTS


# ── Helpers ─────────────────────────────────────────────────────────
def _http_error(exc: JournalError) -> HTTPException:
    return HTTPException(status_code=404 if exc.not_found else 400, detail=str(exc))


def _with_id(payload: dict[str, Any]) -> dict[str, Any]:
    """Assign a fresh UUID when the client did not supply an id."""
    if not payload.get("id"):
        payload = {**payload, "id": str(uuid.uuid4())}
    return payload


def _validate(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        ) from e


def _pip_value(explicit: float | None, instrument: str) -> float:
    if explicit is not None:
        return explicit
    try:
        return calculator.pip_value_for(instrument)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


# ══════════════════════════════════════════════════════════════════════
# HEALTH & SYNC
# ══════════════════════════════════════════════════════════════════════


@app.get("/api/health")
async def health() -> dict:
    return {
        "api": "ok",
        "trades": len(_journal.trades),
        "accounts": len(_journal.accounts),
        "sync": _journal.sync.get_status(),
    }


@app.get("/api/sync/status")
async def get_sync_status() -> dict:
    return _journal.sync.get_status()


@app.post("/api/sync/flush")
async def flush_sync() -> dict:
    """Push the pending snapshot now instead of waiting out the debounce."""
    await _journal.sync.flush()
    return _journal.sync.get_status()


@app.get("/api/cloud-config")
async def get_cloud_config() -> dict:
    return settings.get_cloud_config()


@app.put("/api/cloud-config")
async def update_cloud_config(req: CloudConfigRequest) -> dict:
    """Save new cloud credentials and point the coordinator at them."""
    data = {k: v for k, v in req.model_dump().items() if v is not None}
    merged = settings.update_cloud_config(data)
    await _journal.sync.configure_remote(RemoteStore.from_settings())
    logger.info("Cloud config updated: configured=%s", settings.cloud_configured)
    return {"status": "updated", "config": merged, "sync": _journal.sync.get_status()}


# ══════════════════════════════════════════════════════════════════════
# TRADES
# ══════════════════════════════════════════════════════════════════════


@app.get("/api/trades")
async def list_trades(
    account_id: str = Query(default=ALL_ACCOUNTS),
    search: str = Query(default=""),
) -> dict:
    trades = _journal.list_trades(account_id, search)
    return {"count": len(trades), "trades": [t.to_json_dict() for t in trades]}


@app.post("/api/trades")
async def add_trade(payload: dict[str, Any] = Body(...)) -> dict:
    trade = _validate(Trade, _with_id(payload))
    try:
        _journal.add_trade(trade)
    except JournalError as e:
        raise _http_error(e) from e
    return trade.to_json_dict()


@app.get("/api/trades/{trade_id}")
async def get_trade(trade_id: str) -> dict:
    try:
        return _journal.get_trade(trade_id).to_json_dict()
    except JournalError as e:
        raise _http_error(e) from e


@app.put("/api/trades/{trade_id}")
async def update_trade(trade_id: str, payload: dict[str, Any] = Body(...)) -> dict:
    trade = _validate(Trade, {**payload, "id": trade_id})
    try:
        _journal.update_trade(trade)
    except JournalError as e:
        raise _http_error(e) from e
    return trade.to_json_dict()


@app.delete("/api/trades/{trade_id}")
async def delete_trade(trade_id: str) -> dict:
    try:
        _journal.delete_trade(trade_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": trade_id}


# ══════════════════════════════════════════════════════════════════════
# ACCOUNTS & WITHDRAWALS
# ══════════════════════════════════════════════════════════════════════


@app.get("/api/accounts")
async def list_accounts() -> dict:
    accounts = _journal.list_accounts()
    return {
        "count": len(accounts),
        "accounts": [
            {**a.to_json_dict(), "currentBalance": _journal.balances(a.id)["current"]}
            for a in accounts
        ],
    }


@app.post("/api/accounts")
async def add_account(payload: dict[str, Any] = Body(...)) -> dict:
    account = _validate(Account, _with_id(payload))
    try:
        _journal.add_account(account)
    except JournalError as e:
        raise _http_error(e) from e
    return account.to_json_dict()


@app.delete("/api/accounts/{account_id}")
async def delete_account(account_id: str) -> dict:
    try:
        _journal.delete_account(account_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": account_id}


@app.get("/api/withdrawals")
async def list_withdrawals(account_id: str = Query(default=ALL_ACCOUNTS)) -> dict:
    withdrawals = _journal.list_withdrawals(account_id)
    return {
        "count": len(withdrawals),
        "total_paid_out": sum(w.amount for w in withdrawals),
        "withdrawals": [w.to_json_dict() for w in withdrawals],
    }


@app.post("/api/withdrawals")
async def add_withdrawal(payload: dict[str, Any] = Body(...)) -> dict:
    withdrawal = _validate(Withdrawal, _with_id(payload))
    try:
        _journal.add_withdrawal(withdrawal)
    except JournalError as e:
        raise _http_error(e) from e
    return withdrawal.to_json_dict()


@app.delete("/api/withdrawals/{withdrawal_id}")
async def delete_withdrawal(withdrawal_id: str) -> dict:
    try:
        _journal.delete_withdrawal(withdrawal_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": withdrawal_id}


# ══════════════════════════════════════════════════════════════════════
# STATISTICS
# ══════════════════════════════════════════════════════════════════════


@app.get("/api/stats/summary")
async def stats_summary(
    account_id: str = Query(default=ALL_ACCOUNTS),
    time_filter: TimeFilter = Query(default=TimeFilter.ALL),
) -> dict:
    try:
        summary = _journal.summary(account_id, time_filter)
    except JournalError as e:
        raise _http_error(e) from e
    return summary.model_dump(mode="json")


@app.get("/api/stats/weekday")
async def stats_weekday(
    account_id: str = Query(default=ALL_ACCOUNTS),
    time_filter: TimeFilter = Query(default=TimeFilter.ALL),
) -> list[dict]:
    return [b.model_dump() for b in _journal.weekday_breakdown(account_id, time_filter)]


@app.get("/api/stats/hour")
async def stats_hour(
    account_id: str = Query(default=ALL_ACCOUNTS),
    time_filter: TimeFilter = Query(default=TimeFilter.ALL),
) -> list[dict]:
    return [b.model_dump() for b in _journal.hour_breakdown(account_id, time_filter)]


@app.get("/api/stats/symbols")
async def stats_symbols(
    account_id: str = Query(default=ALL_ACCOUNTS),
    time_filter: TimeFilter = Query(default=TimeFilter.ALL),
) -> list[dict]:
    return [s.model_dump() for s in _journal.symbol_breakdown(account_id, time_filter)]


@app.get("/api/stats/equity")
async def stats_equity(account_id: str = Query(default=ALL_ACCOUNTS)) -> list[dict]:
    try:
        curve = _journal.equity_curve(account_id)
    except JournalError as e:
        raise _http_error(e) from e
    return [p.model_dump(mode="json") for p in curve]


@app.get("/api/stats/series")
async def stats_series(
    account_id: str = Query(default=ALL_ACCOUNTS),
    interval: str = Query(default="DAY", pattern="^(DAY|WEEK|MONTH)$"),
) -> list[dict]:
    return [p.model_dump() for p in _journal.pnl_series(account_id, interval)]


@app.get("/api/stats/daily")
async def stats_daily(account_id: str = Query(default=ALL_ACCOUNTS)) -> list[dict]:
    return [d.model_dump(mode="json") for d in _journal.daily_stats(account_id)]


@app.get("/api/stats/calendar")
async def stats_calendar(
    year: int | None = Query(default=None, ge=1970, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    account_id: str = Query(default=ALL_ACCOUNTS),
) -> dict:
    today = date.today()
    year = year or today.year
    month = month or today.month
    grid = _journal.calendar(year, month, account_id)
    return {
        "year": year,
        "month": month,
        "days": [d.model_dump(mode="json") if d else None for d in grid],
    }


# ══════════════════════════════════════════════════════════════════════
# CALCULATOR
# ══════════════════════════════════════════════════════════════════════


@app.post("/api/calculator/position-size")
async def calc_position_size(req: PositionSizeRequest) -> dict:
    pip_value = _pip_value(req.pip_value, req.instrument)
    try:
        result = calculator.position_size(
            req.balance, req.risk_percent, req.stop_loss_pips, pip_value,
        )
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {**result.model_dump(), "pip_value": pip_value}


@app.post("/api/calculator/pnl")
async def calc_pnl(req: PnlRequest) -> dict:
    pip_value = _pip_value(req.pip_value, req.instrument)
    try:
        result = calculator.pnl_projection(
            req.direction, req.entry_price, req.exit_price, req.lots, pip_value,
        )
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {**result.model_dump(), "pip_value": pip_value}


# ══════════════════════════════════════════════════════════════════════
# IMPORT / EXPORT
# ══════════════════════════════════════════════════════════════════════


@app.post("/api/import/csv")
async def import_csv(req: CsvImportRequest) -> dict:
    try:
        counts = _journal.import_csv(req.csv_text, req.account_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "imported", **counts}


@app.post("/api/import/json")
async def import_json(request: Request) -> dict:
    """Replace all trades with an exported JSON array (raw request body)."""
    body = await request.body()
    try:
        count = _journal.import_json(body.decode("utf-8", errors="replace"))
    except ImportMalformedError as e:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file format. Please upload a valid JSON or CSV. ({e})",
        ) from e
    return {"status": "imported", "trades": count}


@app.get("/api/export/json", response_class=PlainTextResponse)
async def export_json() -> PlainTextResponse:
    return PlainTextResponse(
        _journal.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="trades_export.json"'},
    )


@app.post("/api/data/clear")
async def clear_data() -> dict:
    _journal.clear_data()
    return {"status": "cleared"}


# ══════════════════════════════════════════════════════════════════════
# BACKTESTS
# ══════════════════════════════════════════════════════════════════════


@app.get("/api/backtests")
async def list_backtests() -> dict:
    sessions = _journal.list_backtest_sessions()
    return {"count": len(sessions), "sessions": [s.to_json_dict() for s in sessions]}


@app.post("/api/backtests")
async def add_backtest(payload: dict[str, Any] = Body(...)) -> dict:
    session = _validate(BacktestSession, _with_id(payload))
    try:
        _journal.add_backtest_session(session)
    except JournalError as e:
        raise _http_error(e) from e
    return session.to_json_dict()


@app.delete("/api/backtests/{session_id}")
async def delete_backtest(session_id: str) -> dict:
    try:
        _journal.delete_backtest_session(session_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": session_id}


@app.post("/api/backtests/{session_id}/trades")
async def add_backtest_trade(session_id: str, payload: dict[str, Any] = Body(...)) -> dict:
    trade = _validate(BacktestTrade, {**_with_id(payload), "sessionId": session_id})
    try:
        _journal.add_backtest_trade(trade)
    except JournalError as e:
        raise _http_error(e) from e
    return trade.to_json_dict()


@app.get("/api/backtests/{session_id}/trades")
async def list_backtest_trades(session_id: str) -> dict:
    trades = _journal.list_backtest_trades(session_id)
    return {"count": len(trades), "trades": [t.to_json_dict() for t in trades]}


@app.delete("/api/backtests/{session_id}/trades/{trade_id}")
async def delete_backtest_trade(session_id: str, trade_id: str) -> dict:
    try:
        _journal.delete_backtest_trade(trade_id)
    except JournalError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": trade_id, "session_id": session_id}


@app.get("/api/backtests/{session_id}/stats")
async def get_backtest_stats(session_id: str) -> dict:
    try:
        stats = _journal.backtest_stats(session_id)
    except JournalError as e:
        raise _http_error(e) from e
    return stats.model_dump(mode="json")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("journal.main:app", host=settings.HOST, port=settings.PORT)
