"""Trading calculators — position sizing from risk, and projected P&L.

Pip values are per standard lot in USD and are approximations for the
crosses and indices.
"""

from __future__ import annotations

from pydantic import BaseModel

from journal.errors import CalculatorError

PIP_VALUES: dict[str, float] = {
    "EURUSD": 10.0,
    "GBPUSD": 10.0,
    "AUDUSD": 10.0,
    "NZDUSD": 10.0,
    "USDCAD": 7.35,
    "USDCHF": 11.1,
    "USDJPY": 6.7,
    "EURGBP": 12.7,
    "EURJPY": 6.7,
    "GBPJPY": 6.7,
    "XAUUSD": 10.0,
    "US30": 1.0,
    "NAS100": 1.0,
    "BTCUSD": 1.0,
}

# Entry prices above this are quoted in 2-decimal pips (JPY crosses, gold)
_TWO_DECIMAL_THRESHOLD = 50.0


class PositionSize(BaseModel):
    risk_amount: float
    standard_lots: float
    mini_lots: float
    micro_lots: float


class PnlProjection(BaseModel):
    pips: float
    profit: float


def pip_value_for(symbol: str) -> float:
    """Look up the standard-lot pip value for a known instrument."""
    key = symbol.strip().upper()
    if key not in PIP_VALUES:
        raise CalculatorError(f"No pip value known for {symbol!r}; pass pip_value explicitly")
    return PIP_VALUES[key]


def position_size(
    balance: float,
    risk_percent: float,
    stop_loss_pips: float,
    pip_value: float,
) -> PositionSize:
    """Lots such that hitting the stop loses ``risk_percent`` of ``balance``.

    Returns zero lots when the stop distance or pip value is not positive.
    """
    if balance < 0 or risk_percent < 0:
        raise CalculatorError("balance and risk_percent must not be negative")

    risk_amount = balance * risk_percent / 100
    if pip_value > 0 and stop_loss_pips > 0:
        lots = risk_amount / (stop_loss_pips * pip_value)
    else:
        lots = 0.0
    return PositionSize(
        risk_amount=risk_amount,
        standard_lots=lots,
        mini_lots=lots * 10,
        micro_lots=lots * 100,
    )


def pnl_projection(
    direction: str,
    entry_price: float,
    exit_price: float,
    lots: float,
    pip_value: float,
) -> PnlProjection:
    """Projected pips and profit for a move from ``entry_price`` to ``exit_price``."""
    side = direction.strip().upper()
    if side in ("BUY", "LONG"):
        diff = exit_price - entry_price
    elif side in ("SELL", "SHORT"):
        diff = entry_price - exit_price
    else:
        raise CalculatorError(f"Unknown direction: {direction!r}")

    multiplier = 100 if entry_price > _TWO_DECIMAL_THRESHOLD else 10000
    pips = diff * multiplier
    return PnlProjection(pips=pips, profit=pips * lots * pip_value)
