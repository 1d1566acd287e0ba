"""CSV Importer — broker trade-history exports into Trade records.

Expected header (skipped):
    Ticket ID,Open Time,Open Price,Close Time,Close Price,Profit,Lots,
    Commission,Swap,Symbol,Type,SL,TP,Pips,Reason,Volume

Columns are positional and split on bare commas; quoting is not supported.
Timestamps like ``2025.12.15 15:57:53`` are turned into ISO strings by
character substitution before parsing.  A bad row is skipped and counted,
it never aborts the batch.
"""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from journal.models.journal import Trade
from journal.utils.logger import logger

MIN_COLUMNS = 10

# Brokers write the epoch for a position that is still open
_OPEN_CLOSE_TIME = "1970-01-01T00:00:00"


class CsvImportResult(BaseModel):
    trades: list[Trade] = Field(default_factory=list)
    skipped: int = 0


def _num(raw: str | None) -> float:
    """Parse a numeric cell; blanks and junk become 0."""
    if raw is None:
        return 0.0
    try:
        val = float(raw.strip())
    except ValueError:
        return 0.0
    return val if math.isfinite(val) else 0.0


def _cell(cols: list[str], idx: int) -> str:
    return cols[idx].strip() if idx < len(cols) else ""


def to_iso(raw: str) -> str:
    """``2025.12.15 15:57:53`` → ``2025-12-15T15:57:53`` (literal substitution)."""
    return raw.strip().replace(".", "-").replace(" ", "T", 1)


def parse_row(cols: list[str], account_id: str) -> Trade:
    """Convert one split CSV row to a Trade. Raises on a malformed row."""
    ticket_id = cols[0].strip()
    entry_date = datetime.fromisoformat(to_iso(cols[1]))

    close_iso = to_iso(cols[3]) if len(cols) > 3 else ""
    exit_date = (
        datetime.fromisoformat(close_iso)
        if close_iso and close_iso != _OPEN_CLOSE_TIME
        else None
    )

    gross_profit = _num(_cell(cols, 5))
    commission = _num(_cell(cols, 7))
    swap = _num(_cell(cols, 8))

    # Type column is required; a row without it is malformed
    type_str = cols[10].strip().lower()
    reason = _cell(cols, 14)

    return Trade(
        id=ticket_id,
        account_id=account_id,
        symbol=cols[9].strip().upper(),
        direction="LONG" if "buy" in type_str else "SHORT",
        entry_date=entry_date,
        exit_date=exit_date,
        entry_price=_num(_cell(cols, 2)),
        exit_price=_num(_cell(cols, 4)),
        quantity=_num(_cell(cols, 6)),
        pnl=gross_profit + commission + swap,
        fees=commission + swap,
        sl=_num(_cell(cols, 11)),
        tp=_num(_cell(cols, 12)),
        status="CLOSED" if exit_date else "OPEN",
        notes=f"Imported: {reason}" if reason else "Imported via CSV",
    )


def parse_csv(csv_text: str, account_id: str) -> CsvImportResult:
    """Parse a full export. Short rows and rows that fail conversion are skipped."""
    lines = csv_text.strip().splitlines()
    result = CsvImportResult()

    for line_no, raw_line in enumerate(lines[1:], start=1):
        line = raw_line.strip()
        if not line:
            continue

        cols = line.split(",")
        if len(cols) < MIN_COLUMNS:
            result.skipped += 1
            continue

        try:
            result.trades.append(parse_row(cols, account_id))
        except (IndexError, ValueError, ValidationError) as exc:
            logger.warning("[CsvImporter] Skipping line %d (%s): %s", line_no, exc, line)
            result.skipped += 1

    logger.info(
        "[CsvImporter] Parsed %d trades (%d rows skipped)",
        len(result.trades), result.skipped,
    )
    return result
