"""
export.py - CSV export of the filtered expense view

Columns: id, date, category, amount (two-decimal string), description.
Fields containing a comma, quote or newline are quoted with interior quotes
doubled (csv.QUOTE_MINIMAL via pandas).
"""

import csv
import datetime
from typing import Iterable

import pandas as pd

from expense_ledger.models import Expense, cents_to_decimal_string

CSV_COLUMNS = ["id", "date", "category", "amount", "description"]


def expenses_frame(view: Iterable[Expense]) -> pd.DataFrame:
    """Build the export table; every column is text so values are written verbatim."""
    rows = [
        {
            "id": e.id,
            "date": e.date,
            "category": e.category,
            "amount": cents_to_decimal_string(e.amount_cents),
            "description": e.description or "",
        }
        for e in view
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS, dtype=str)


def expenses_to_csv(view: Iterable[Expense]) -> str:
    return expenses_frame(view).to_csv(
        index=False,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )


def csv_filename(today: datetime.date) -> str:
    return f"expenses_{today.isoformat()}.csv"
