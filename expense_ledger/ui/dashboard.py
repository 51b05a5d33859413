"""
dashboard.py - Streamlit UI entrypoint and orchestration

This module wires the UI components (expense_ledger.ui.components) with the
ledger (expense_ledger.tracker) and the read-side queries
(expense_ledger.aggregation).

Design notes:
 - Forms are rendered before any display so a submitted mutation is already
   reflected in the table and stats of the same run.
 - All persistence and business rules live outside the UI package.
"""

import streamlit as st

from expense_ledger import aggregation
from expense_ledger.storage import build_store
from expense_ledger.tracker import ExpenseTracker
from expense_ledger.ui import components


@st.cache_resource
def _get_store():
    # one store per server process; Google Sheets auth is not repeated on every rerun
    return build_store()


def main():
    """
    Single page:
      - sidebar: storage status and monthly budget controls
      - add expense form
      - filters, stats, budget progress, category chart
      - expense table, delete control, CSV export
    """
    st.title("Expense Tracker")
    tracker = ExpenseTracker(_get_store())
    today = tracker.today()

    backend_name, backend_msg = tracker.storage_status()
    if backend_name == "google_sheets":
        st.sidebar.success(backend_msg)
    else:
        st.sidebar.warning(backend_msg)
        st.sidebar.caption(
            "For cloud persistence, set GOOGLE_SHEET_ID and "
            "GOOGLE_SERVICE_ACCOUNT_JSON in Streamlit app Secrets."
        )

    components.display_budget_form(tracker.set_budget, tracker.clear_budget, tracker.monthly_budget_cents)
    components.display_expense_form(tracker.add_expense, today)

    st.header("Overview")
    spec = components.display_filters(today)
    records = tracker.snapshot()
    view = aggregation.filtered_view(records, spec)
    month_spend = aggregation.month_to_date_spend(records, today)

    components.display_stats(view, tracker.monthly_budget_cents, month_spend)
    components.display_budget_status(month_spend, tracker.monthly_budget_cents)
    components.display_category_chart(aggregation.category_breakdown(view))

    components.display_expense_list(view)
    components.display_delete_expense(view, tracker.delete_record)
    components.display_csv_download(view, today)


if __name__ == "__main__":
    main()
