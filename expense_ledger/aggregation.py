"""
aggregation.py - read-only queries over a snapshot of expenses

Nothing here mutates its input or touches storage. The dashboard calls:
  - filtered_view(records, FilterSpec) for the table, stats and CSV export
  - totals / category_breakdown / top_categories over that view
  - month_to_date_spend + budget_status for the budget panel
  - budget_transition_alert after an expense is added
"""

import datetime
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

from expense_ledger.models import CATEGORIES, Expense, format_cents

ALL_CATEGORIES = "all"
WARNING_RATIO = 0.8

STATE_NO_BUDGET = "no-budget"
STATE_OK = "ok"
STATE_WARNING = "warning"
STATE_EXCEEDED = "exceeded"

LEVEL_NORMAL = "normal"
LEVEL_WARNING = "warning"
LEVEL_DANGER = "danger"


@dataclass(frozen=True)
class FilterSpec:
    """
    Table filter. Empty date bounds are open; both bounds are inclusive.
    Use FilterSpec() for the cleared state.
    """
    category: str = ALL_CATEGORIES
    from_date: str = ""
    to_date: str = ""

    def normalized(self) -> "FilterSpec":
        """Swap the bounds when both are set and entered out of order."""
        if self.from_date and self.to_date and self.from_date > self.to_date:
            return replace(self, from_date=self.to_date, to_date=self.from_date)
        return self


class BudgetStatus(NamedTuple):
    remaining: int
    ratio: float
    state: str


class BudgetAlert(NamedTuple):
    severity: str
    message: str


def filtered_view(records: Iterable[Expense], spec: Optional[FilterSpec] = None) -> List[Expense]:
    """
    Apply category and date-range filters, newest first.

    Expenses sharing a date are ordered by descending id. Ids are not
    insertion-ordered, so this is only a stable, reproducible tie-break.
    """
    spec = (spec or FilterSpec()).normalized()
    out = list(records)
    if spec.category and spec.category != ALL_CATEGORIES:
        out = [e for e in out if e.category == spec.category]
    if spec.from_date:
        out = [e for e in out if e.date >= spec.from_date]
    if spec.to_date:
        out = [e for e in out if e.date <= spec.to_date]
    # ISO dates compare correctly as strings
    out.sort(key=lambda e: (e.date, e.id), reverse=True)
    return out


def totals(view: Iterable[Expense]) -> int:
    return sum(e.amount_cents for e in view)


def category_breakdown(view: Iterable[Expense]) -> Dict[str, int]:
    """Sum per category. All categories are present, zero when unused."""
    breakdown = {c: 0 for c in CATEGORIES}
    for e in view:
        breakdown[e.category] = breakdown.get(e.category, 0) + e.amount_cents
    return breakdown


def top_categories(breakdown: Dict[str, int]) -> List[Tuple[str, int]]:
    """Non-zero categories, largest first (ties keep category order)."""
    items = [(cat, cents) for cat, cents in breakdown.items() if cents > 0]
    return sorted(items, key=lambda item: item[1], reverse=True)


def month_prefix(reference_date: Union[datetime.date, str]) -> str:
    """Return "YYYY-MM" for a date or an ISO date string."""
    if isinstance(reference_date, datetime.date):
        return f"{reference_date.year:04d}-{reference_date.month:02d}"
    return str(reference_date)[:7]


def month_to_date_spend(records: Iterable[Expense], reference_date: Union[datetime.date, str]) -> int:
    """Total spent in the calendar month containing reference_date."""
    prefix = month_prefix(reference_date) + "-"
    return sum(e.amount_cents for e in records if e.date.startswith(prefix))


def budget_status(month_spend: int, budget_cents: int) -> BudgetStatus:
    """
    Compare this month's spend with the budget.

    ratio is spend / budget and is not clamped; the progress bar does that.
    """
    if budget_cents <= 0:
        return BudgetStatus(remaining=0, ratio=0.0, state=STATE_NO_BUDGET)
    remaining = budget_cents - month_spend
    ratio = month_spend / budget_cents
    if month_spend > budget_cents:
        state = STATE_EXCEEDED
    elif month_spend > budget_cents * WARNING_RATIO:
        state = STATE_WARNING
    else:
        state = STATE_OK
    return BudgetStatus(remaining=remaining, ratio=ratio, state=state)


def budget_transition_alert(previous_spend: int, new_spend: int, budget_cents: int) -> Optional[BudgetAlert]:
    """
    Alert only when this mutation crosses a threshold: the 100% line first,
    then the 80% line. Spend that was already above a line stays quiet.
    """
    if budget_cents <= 0:
        return None
    warning_threshold = budget_cents * WARNING_RATIO
    if previous_spend <= budget_cents < new_spend:
        over = format_cents(new_spend - budget_cents)
        return BudgetAlert(
            STATE_EXCEEDED,
            f"You've exceeded your monthly budget by {over}. Consider reviewing your spending.",
        )
    if previous_spend <= warning_threshold < new_spend:
        remaining = format_cents(budget_cents - new_spend)
        return BudgetAlert(
            STATE_WARNING,
            f"You've used 80% of your monthly budget. You have {remaining} remaining.",
        )
    return None


def remaining_level(remaining: int, budget_cents: int) -> str:
    """Colour cue for the remaining-budget figure: danger below 0, warning under 20% of the budget."""
    if budget_cents <= 0:
        return LEVEL_NORMAL
    if remaining < 0:
        return LEVEL_DANGER
    # remaining < 20% of the budget, in integer cents
    if remaining * 5 < budget_cents:
        return LEVEL_WARNING
    return LEVEL_NORMAL


def budget_progress_text(month_spend: int, budget_cents: int) -> str:
    """Caption under the budget progress bar."""
    status = budget_status(month_spend, budget_cents)
    if status.state == STATE_NO_BUDGET:
        return ""
    if status.state == STATE_EXCEEDED:
        return f"Over budget by {format_cents(month_spend - budget_cents)}"
    return f"{min(100.0, status.ratio * 100):.1f}% of budget used"
