"""
tracker.py - the ledger: in-memory expenses + budget, persisted after every change

Responsibilities:
 - keep an in-memory list of Expense objects and the monthly budget
 - load/save both through an injected key-value store (see storage.py)
 - provide the mutations consumed by the UI:
     add_expense (validated form input), delete_record,
     set_budget / clear_budget

Read-side queries (filtering, totals, budget status) live in aggregation.py
and take tracker.snapshot() as input.
"""

import datetime
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, List, Optional, Tuple

from expense_ledger import aggregation
from expense_ledger.config import configure_logging
from expense_ledger.models import (
    Expense,
    ExpenseInput,
    decode_expense,
    generate_id,
    parse_amount_to_cents,
    validate_expense_input,
)
from expense_ledger.storage import BUDGET_KEY, EXPENSES_KEY

configure_logging()
logger = logging.getLogger(__name__)

BUDGET_SAVE_ERROR = "Could not save the budget. Check the server logs for details."


@dataclass
class AddOutcome:
    """Result of ExpenseTracker.add_expense; exactly one of expense/error is set."""
    expense: Optional[Expense] = None
    error: Optional[str] = None
    alert: Optional[aggregation.BudgetAlert] = None

    @property
    def ok(self) -> bool:
        return self.expense is not None


class ExpenseTracker:
    """
    Owns the expense list and the budget for one session. The UI creates one
    ExpenseTracker(store) and goes through its methods for every change.
    """

    def __init__(self, store, today: Callable[[], datetime.date] = datetime.date.today):
        self.store = store
        self.today = today
        # in-memory list of Expense objects
        self.expenses: List[Expense] = []
        # 0 means no budget set
        self.monthly_budget_cents = 0
        self.expenses = self.load()
        self.monthly_budget_cents = self.load_budget()

    def storage_status(self) -> Tuple[str, str]:
        """Return current storage backend and a short diagnostic message for the UI."""
        name = getattr(self.store, "name", self.store.__class__.__name__)
        describe = getattr(self.store, "describe", None)
        return name, describe() if describe else f"Using {name} storage."

    def snapshot(self) -> Tuple[Expense, ...]:
        """Immutable copy of the current expenses for aggregation."""
        return tuple(self.expenses)

    # -----------------------
    # Persistence
    # -----------------------
    def load(self) -> List[Expense]:
        """
        Read the expenses array from the store.
        Missing, corrupt or non-array data gives an empty list; invalid items
        are dropped one by one so a single bad record does not lose the rest.
        Never raises.
        """
        try:
            raw = self.store.get(EXPENSES_KEY)
        except Exception:
            logger.exception("Error reading expenses from storage")
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored expenses are not valid JSON; starting empty")
            return []
        if not isinstance(data, list):
            logger.warning("Stored expenses are not a JSON array; starting empty")
            return []

        out: List[Expense] = []
        dropped = 0
        for item in data:
            result = decode_expense(item)
            if result.ok:
                out.append(result.expense)
            else:
                dropped += 1
                logger.debug("Dropping stored expense: %s", result.reason)
        if dropped:
            logger.warning("Dropped %d invalid stored expense(s)", dropped)
        logger.info("Loaded %d expense(s)", len(out))
        return out

    def save(self, records: Optional[List[Expense]] = None):
        """
        Serialize the full list and overwrite the stored value.
        Errors from the store are logged and re-raised.
        """
        records = self.expenses if records is None else records
        payload = json.dumps([e.to_dict() for e in records])
        try:
            self.store.set(EXPENSES_KEY, payload)
        except Exception:
            logger.exception("Failed to save expenses")
            raise
        logger.info("Saved %d expense(s)", len(records))

    def load_budget(self) -> int:
        """Stored budget as non-negative integer cents; anything unusable is 0."""
        try:
            raw = self.store.get(BUDGET_KEY)
        except Exception:
            logger.exception("Error reading budget from storage")
            return 0
        return coerce_budget(raw)

    def save_budget(self, cents: int):
        try:
            self.store.set(BUDGET_KEY, str(int(cents)))
        except Exception:
            logger.exception("Failed to save budget")
            raise

    # -----------------------
    # Mutations
    # -----------------------
    def add_record(self, entry: ExpenseInput) -> Expense:
        """
        Assign a fresh id, append and persist. If persisting fails the
        in-memory list is restored and the error propagates.
        """
        exp = Expense(
            id=generate_id(),
            amount_cents=entry.amount_cents,
            category=entry.category,
            date=entry.date,
            description=entry.description,
        )
        self.expenses.append(exp)
        try:
            self.save()
        except Exception:
            self.expenses.pop()
            raise
        logger.info("Added expense id=%s (category=%s, amount_cents=%d)", exp.id, exp.category, exp.amount_cents)
        return exp

    def add_expense(self, amount: Any, category: Any, date: Any, description: Any = "") -> AddOutcome:
        """
        Validate form values, add the expense and check the budget.

        The budget alert is only evaluated when the new expense falls in the
        current month, since the budget applies to this month's spend only.
        """
        today = self.today()
        entry, error = validate_expense_input(amount, category, date, description, today=today)
        if error:
            return AddOutcome(error=error)

        previous_spend = aggregation.month_to_date_spend(self.expenses, today)
        try:
            exp = self.add_record(entry)
        except Exception:
            return AddOutcome(error="Could not save the expense. Check the server logs for details.")

        alert = None
        if exp.date.startswith(aggregation.month_prefix(today) + "-"):
            alert = aggregation.budget_transition_alert(
                previous_spend, previous_spend + exp.amount_cents, self.monthly_budget_cents
            )
        return AddOutcome(expense=exp, alert=alert)

    def delete_record(self, expense_id: str) -> bool:
        """
        Remove expense by id. Returns True if deleted, False if not found or
        if the change could not be persisted (the record is restored then).
        """
        for i, e in enumerate(self.expenses):
            if e.id == expense_id:
                removed = self.expenses.pop(i)
                try:
                    self.save()
                except Exception:
                    logger.exception("Error saving after delete")
                    self.expenses.insert(i, removed)
                    return False
                logger.info("Deleted expense id=%s. Remaining expenses=%d.", expense_id, len(self.expenses))
                return True
        logger.info("Expense id=%s not found", expense_id)
        return False

    def set_budget(self, amount: Any) -> Optional[str]:
        """
        Parse and persist a monthly budget. Returns an error message or None;
        the in-memory budget only changes once the store accepted it.
        """
        cents = parse_amount_to_cents(amount)
        if cents is None:
            return "Please enter a valid budget amount."
        try:
            self.save_budget(cents)
        except Exception:
            return BUDGET_SAVE_ERROR
        self.monthly_budget_cents = cents
        logger.info("Monthly budget set to %d cents", cents)
        return None

    def clear_budget(self) -> Optional[str]:
        """Persist "no budget". Returns an error message or None."""
        try:
            self.save_budget(0)
        except Exception:
            return BUDGET_SAVE_ERROR
        self.monthly_budget_cents = 0
        logger.info("Monthly budget cleared")
        return None


def coerce_budget(raw: Optional[str]) -> int:
    """
    "12345" -> 12345, "99.5" -> 100 (half up). Absent, blank, negative,
    non-finite or unparseable values give 0.
    """
    if raw is None:
        return 0
    text = str(raw).strip()
    if not text:
        return 0
    try:
        value = Decimal(text)
        if not value.is_finite() or value < 0:
            return 0
        # quantize raises InvalidOperation past the context precision (28 digits)
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return 0
