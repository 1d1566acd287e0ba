"""Record builders shared by the test modules."""

from __future__ import annotations

from datetime import datetime

from journal.models.journal import Account, Trade, Withdrawal

_counter = 0


def make_trade(
    pnl: float = 0.0,
    *,
    status: str = "CLOSED",
    entry_date: datetime | str = "2024-01-01T10:00:00",
    symbol: str = "EURUSD",
    direction: str = "LONG",
    account_id: str = "1",
    trade_id: str | None = None,
    **extra,
) -> Trade:
    global _counter
    _counter += 1
    return Trade(
        id=trade_id or f"t{_counter}",
        account_id=account_id,
        symbol=symbol,
        direction=direction,
        entry_date=entry_date,
        entry_price=1.1,
        quantity=1.0,
        pnl=pnl,
        status=status,
        **extra,
    )


def make_account(account_id: str = "1", balance: float = 10000.0, name: str = "Main") -> Account:
    return Account(id=account_id, name=name, balance=balance)


def make_withdrawal(
    amount: float, *, account_id: str = "1", withdrawal_id: str = "w1",
) -> Withdrawal:
    return Withdrawal(
        id=withdrawal_id, account_id=account_id, amount=amount, date="2024-02-01",
    )
