"""
models.py - Data model definitions

This file defines the Expense dataclass used across the tracker and UI, plus
the small helpers that sit at the boundary between raw data and records:

  - decode_expense: validate a decoded JSON item, Result-style (never raises)
  - parse_amount_to_cents: user/currency input -> integer cents or None
  - validate_expense_input: form values -> ExpenseInput or an error message
  - generate_id / format_cents

Expenses are serialized to/from plain dicts so they can be persisted as a JSON
array under the expenses key of the key-value store.
"""

import datetime
import random
import re
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, NamedTuple, Optional, Tuple

# fixed category set; order is the display order of tables and charts
CATEGORIES = ["Food", "Transport", "Entertainment", "Bills", "Shopping", "Other"]

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class Expense:
    """
    Represents a single recorded expense. Records are never edited; the only
    mutation the ledger supports is deletion.

    Fields:
      - id: opaque unique string assigned by the tracker (see generate_id)
      - amount_cents: positive integer amount in minor units
      - category: one of CATEGORIES
      - date: ISO date string "YYYY-MM-DD"
      - description: optional free text
    """
    id: str
    amount_cents: int
    category: str
    date: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a plain dict suitable for JSON serialization.
        Keys keep the camelCase names used by the persisted format.
        """
        return {
            "id": self.id,
            "amountCents": self.amount_cents,
            "category": self.category,
            "date": self.date,
            "description": self.description,
        }


@dataclass
class ExpenseInput:
    """Validated form input that has not been assigned an id yet."""
    amount_cents: int
    category: str
    date: str  # ISO date string
    description: str = ""


class DecodeResult(NamedTuple):
    """Either a validated expense or the reason the item was rejected."""
    expense: Optional[Expense]
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.expense is not None


def is_iso_date(value: Any) -> bool:
    """True for "YYYY-MM-DD" strings naming a real calendar date."""
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        return False
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _as_cents(value: Any) -> Optional[int]:
    # bool is an int subclass; JSON true must not count as 1 cent
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def decode_expense(obj: Any) -> DecodeResult:
    """
    Validate one item of the persisted expenses array.
    Returns DecodeResult(expense, "") or DecodeResult(None, reason).
    """
    if not isinstance(obj, dict):
        return DecodeResult(None, "not an object")
    exp_id = obj.get("id")
    if not isinstance(exp_id, str):
        return DecodeResult(None, "missing or non-string id")
    cents = _as_cents(obj.get("amountCents"))
    if cents is None or cents <= 0:
        return DecodeResult(None, "amountCents must be a positive integer")
    category = obj.get("category")
    if category not in CATEGORIES:
        return DecodeResult(None, f"unknown category {category!r}")
    date = obj.get("date")
    if not is_iso_date(date):
        return DecodeResult(None, f"malformed date {date!r}")
    description = obj.get("description")
    if not isinstance(description, str):
        return DecodeResult(None, "missing or non-string description")
    return DecodeResult(Expense(id=exp_id, amount_cents=cents, category=category,
                                date=date, description=description))


def parse_amount_to_cents(value: Any) -> Optional[int]:
    """
    Parse a currency amount ("12.50", 12.5, " 3 ") into integer cents,
    rounding half up. Returns None for non-numeric, non-finite or
    non-positive input, and for amounts that round to 0 cents.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or amount <= 0:
            return None
        # quantize raises InvalidOperation past the context precision (28 digits)
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return None
    return cents if cents > 0 else None


def cents_to_decimal_string(cents: int) -> str:
    """12345 -> "123.45" (no currency symbol, no grouping)."""
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def format_cents(cents: int) -> str:
    """Display formatting in dollars: 123456 -> "$1,234.56", -300 -> "-$3.00"."""
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}${cents // 100:,}.{cents % 100:02d}"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id(now: Optional[float] = None) -> str:
    """
    Build an id like "exp_<millis>_<random>", both parts in base 36.
    The time part keeps ids roughly ordered; the random part avoids
    collisions between ids generated in the same millisecond.
    """
    millis = int((time.time() if now is None else now) * 1000)
    return f"exp_{_to_base36(millis)}_{_to_base36(random.randrange(10 ** 9))}"


def _date_to_iso(value: Any) -> Any:
    # st.date_input hands back datetime.date objects
    if isinstance(value, datetime.date):
        return value.isoformat()
    return value


def validate_expense_input(
    amount: Any,
    category: Any,
    date: Any,
    description: Any,
    today: datetime.date,
) -> Tuple[Optional[ExpenseInput], Optional[str]]:
    """
    Check raw form values before any mutation happens.
    Returns (ExpenseInput, None) on success or (None, message) on failure;
    messages are meant to be shown to the user as-is.
    """
    cents = parse_amount_to_cents(amount)
    if cents is None:
        return None, "Please enter a valid positive amount."
    if category not in CATEGORIES:
        return None, "Please choose a category."
    date_iso = _date_to_iso(date)
    if not is_iso_date(date_iso):
        return None, "Please choose a valid date."
    if date_iso > today.isoformat():
        return None, "Date cannot be in the future."
    text = str(description or "").strip()
    return ExpenseInput(amount_cents=cents, category=category, date=date_iso, description=text), None
