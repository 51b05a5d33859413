import json

import pytest

from expense_ledger import aggregation
from expense_ledger.models import ExpenseInput
from expense_ledger.storage import BUDGET_KEY, EXPENSES_KEY, MemoryStore
from expense_ledger.tracker import BUDGET_SAVE_ERROR, ExpenseTracker, coerce_budget

from conftest import TODAY, FlakyStore


def _valid(id_, cents=100, category="Food", date="2024-03-01", description=""):
    return {"id": id_, "amountCents": cents, "category": category, "date": date, "description": description}


def test_add_expense(tracker, store):
    outcome = tracker.add_expense("12.50", "Food", TODAY.isoformat(), "Coffee")
    assert outcome.ok
    assert outcome.error is None
    assert len(tracker.expenses) == 1
    exp = tracker.expenses[0]
    assert exp.amount_cents == 1250
    assert exp.description == "Coffee"
    assert exp.id.startswith("exp_")

    view = aggregation.filtered_view(tracker.snapshot(), aggregation.FilterSpec())
    assert aggregation.totals(view) == 1250
    breakdown = aggregation.category_breakdown(view)
    assert breakdown["Food"] == 1250
    assert all(v == 0 for k, v in breakdown.items() if k != "Food")

    # persisted immediately
    stored = json.loads(store.get(EXPENSES_KEY))
    assert stored == [exp.to_dict()]


def test_add_expense_accepts_date_objects_and_trims_description(tracker):
    outcome = tracker.add_expense(3, "Bills", TODAY, "  rent  ")
    assert outcome.ok
    assert outcome.expense.date == "2024-03-15"
    assert outcome.expense.description == "rent"


@pytest.mark.parametrize(
    "amount, category, date, message",
    [
        ("abc", "Food", "2024-03-01", "Please enter a valid positive amount."),
        ("-5", "Food", "2024-03-01", "Please enter a valid positive amount."),
        ("0", "Food", "2024-03-01", "Please enter a valid positive amount."),
        ("10", "Groceries", "2024-03-01", "Please choose a category."),
        ("10", None, "2024-03-01", "Please choose a category."),
        ("10", "Food", "2024-13-01", "Please choose a valid date."),
        ("10", "Food", "03/01/2024", "Please choose a valid date."),
        ("10", "Food", "2024-03-16", "Date cannot be in the future."),
        ("1e30", "Food", "2024-03-01", "Please enter a valid positive amount."),
    ],
)
def test_add_expense_rejects_invalid_input(tracker, store, amount, category, date, message):
    outcome = tracker.add_expense(amount, category, date, "x")
    assert not outcome.ok
    assert outcome.error == message
    assert tracker.expenses == []
    assert store.get(EXPENSES_KEY) is None


def test_load_expenses_round_trip(tracker, store):
    tracker.add_expense("10", "Food", "2024-03-01", "Dinner")
    tracker.add_expense("5.25", "Transport", "2024-02-28", 'Taxi, "late"')
    new_tracker = ExpenseTracker(store, today=lambda: TODAY)
    assert new_tracker.expenses == tracker.expenses


def test_save_then_load_returns_same_records(tracker):
    tracker.add_expense("1", "Other", "2024-01-01")
    records = list(tracker.expenses)
    tracker.save(records)
    assert tracker.load() == records


def test_load_drops_invalid_records():
    items = [
        _valid("a"),
        _valid("b", cents=0),
        _valid("c", cents=-5),
        _valid("d", category="Groceries"),
        _valid("e", date="2024-3-1"),
        {"id": "f", "amountCents": 100, "category": "Food", "date": "2024-03-01"},
        "not a record",
        _valid("g", cents=250, category="Shopping"),
    ]
    store = MemoryStore({EXPENSES_KEY: json.dumps(items)})
    tracker = ExpenseTracker(store, today=lambda: TODAY)
    assert [e.id for e in tracker.expenses] == ["a", "g"]


@pytest.mark.parametrize("raw", [None, "", "not json", "{\"a\": 1}", "42", "null"])
def test_load_missing_or_corrupt_data_is_empty(raw):
    store = MemoryStore({} if raw is None else {EXPENSES_KEY: raw})
    tracker = ExpenseTracker(store, today=lambda: TODAY)
    assert tracker.expenses == []


def test_load_never_raises_when_store_read_fails():
    class BrokenStore(MemoryStore):
        def get(self, key):
            raise OSError("unavailable")

    tracker = ExpenseTracker(BrokenStore(), today=lambda: TODAY)
    assert tracker.expenses == []
    assert tracker.monthly_budget_cents == 0


def test_delete_record(tracker, store):
    first = tracker.add_expense("10", "Food", "2024-03-01").expense
    second = tracker.add_expense("20", "Bills", "2024-03-02").expense
    assert tracker.delete_record(first.id) is True
    assert tracker.expenses == [second]
    assert [d["id"] for d in json.loads(store.get(EXPENSES_KEY))] == [second.id]


def test_delete_unknown_id_is_ignored(tracker):
    tracker.add_expense("10", "Food", "2024-03-01")
    assert tracker.delete_record("exp_missing") is False
    assert len(tracker.expenses) == 1


def test_delete_restores_record_when_save_fails():
    store = FlakyStore()
    tracker = ExpenseTracker(store, today=lambda: TODAY)
    exp = tracker.add_expense("10", "Food", "2024-03-01").expense
    store.fail = True
    assert tracker.delete_record(exp.id) is False
    assert tracker.expenses == [exp]


def test_add_record_rolls_back_when_save_fails():
    store = FlakyStore()
    tracker = ExpenseTracker(store, today=lambda: TODAY)
    store.fail = True
    with pytest.raises(OSError):
        tracker.add_record(ExpenseInput(amount_cents=100, category="Food", date="2024-03-01"))
    assert tracker.expenses == []

    outcome = tracker.add_expense("1", "Food", "2024-03-01")
    assert not outcome.ok
    assert outcome.error.startswith("Could not save the expense")
    assert tracker.expenses == []


def test_budget_set_load_and_clear(tracker, store):
    assert tracker.monthly_budget_cents == 0
    assert tracker.set_budget("100") is None
    assert tracker.monthly_budget_cents == 10000
    assert store.get(BUDGET_KEY) == "10000"
    assert ExpenseTracker(store, today=lambda: TODAY).monthly_budget_cents == 10000

    assert tracker.clear_budget() is None
    assert tracker.monthly_budget_cents == 0
    assert store.get(BUDGET_KEY) == "0"


@pytest.mark.parametrize("value", ["", "abc", "0", "-20"])
def test_set_budget_rejects_invalid_amount(tracker, store, value):
    assert tracker.set_budget(value) == "Please enter a valid budget amount."
    assert store.get(BUDGET_KEY) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 0),
        ("", 0),
        ("  ", 0),
        ("abc", 0),
        ("-5", 0),
        ("NaN", 0),
        ("Infinity", 0),
        ("12345", 12345),
        (" 250 ", 250),
        ("99.5", 100),
        ("99.4", 99),
        ("9" * 40, 0),
        ("1e40", 0),
    ],
)
def test_coerce_budget(raw, expected):
    assert coerce_budget(raw) == expected


def test_add_expense_budget_alerts_fire_once_per_threshold(tracker):
    tracker.set_budget("100.00")
    assert tracker.add_expense("79.00", "Food", "2024-03-01").alert is None

    warning = tracker.add_expense("2.00", "Food", "2024-03-02").alert
    assert warning.severity == "warning"
    assert warning.message == "You've used 80% of your monthly budget. You have $19.00 remaining."

    exceeded = tracker.add_expense("20.00", "Bills", "2024-03-03").alert
    assert exceeded.severity == "exceeded"
    assert exceeded.message == "You've exceeded your monthly budget by $1.00. Consider reviewing your spending."

    assert tracker.add_expense("4.00", "Other", "2024-03-04").alert is None


def test_add_expense_outside_current_month_does_not_alert(tracker):
    tracker.set_budget("100")
    outcome = tracker.add_expense("150", "Shopping", "2024-02-10")
    assert outcome.ok
    assert outcome.alert is None


def test_add_expense_without_budget_does_not_alert(tracker):
    assert tracker.add_expense("500", "Shopping", "2024-03-10").alert is None


def test_storage_status(tracker):
    assert tracker.storage_status() == ("memory", "In-memory storage (not persisted).")


def test_budget_changes_report_store_failures():
    store = FlakyStore()
    tracker = ExpenseTracker(store, today=lambda: TODAY)
    assert tracker.set_budget("100") is None

    store.fail = True
    assert tracker.set_budget("250") == BUDGET_SAVE_ERROR
    assert tracker.monthly_budget_cents == 10000
    assert tracker.clear_budget() == BUDGET_SAVE_ERROR
    assert tracker.monthly_budget_cents == 10000
    assert store.get(BUDGET_KEY) == "10000"


def test_oversized_stored_budget_loads_as_zero():
    tracker = ExpenseTracker(MemoryStore({BUDGET_KEY: "9" * 40}), today=lambda: TODAY)
    assert tracker.monthly_budget_cents == 0
