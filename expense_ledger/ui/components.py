"""
components.py - reusable Streamlit components / forms / displays

Pure-UI helpers used by the dashboard. None of them hold ledger state:
forms hand raw values to a callback and display whatever message comes back,
displays render values computed in expense_ledger.aggregation.

 - display_expense_form(on_submit, today)
 - display_budget_form(on_set, on_clear)
 - display_filters() -> FilterSpec
 - display_stats / display_budget_status / display_category_chart
 - display_expense_list / display_delete_expense / display_csv_download
 - show_budget_alert
"""

import datetime
from typing import Any, Callable, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from expense_ledger import aggregation
from expense_ledger.aggregation import ALL_CATEGORIES, BudgetAlert, FilterSpec
from expense_ledger.export import csv_filename, expenses_to_csv
from expense_ledger.models import CATEGORIES, Expense, format_cents

# session_state keys for the filter widgets
FILTER_CATEGORY_KEY = "filter_category"
FILTER_FROM_KEY = "filter_from"
FILTER_TO_KEY = "filter_to"

PALETTE = ["#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd", "#8c564b"]


def display_expense_form(on_submit: Callable[..., Any], today: datetime.date):
    """
    Display the 'Add Expense' form.

    on_submit(amount, category, date, description) must return an object with
    .error and .alert (tracker.AddOutcome); validation happens there.
    """
    st.header("Add Expense")
    with st.form(key="expense_form", clear_on_submit=True):
        # text, not number_input, so malformed amounts reach validation
        amount = st.text_input("Amount", placeholder="0.00")
        category = st.selectbox("Category", options=CATEGORIES, index=None, placeholder="Select a category")
        date_val = st.date_input("Date", value=today, max_value=today)
        description = st.text_input("Description (optional)")
        submit_button = st.form_submit_button("Add Expense")

    if not submit_button:
        return None
    outcome = on_submit(amount, category, date_val, description)
    if outcome.error:
        st.error(outcome.error)
        return outcome
    st.success("Expense added.")
    if outcome.alert:
        show_budget_alert(outcome.alert)
    return outcome


def display_budget_form(
    on_set: Callable[[str], Optional[str]],
    on_clear: Callable[[], Optional[str]],
    budget_cents: int,
):
    """
    Sidebar budget controls. Both callbacks return an error message or None;
    on success the script reruns so every budget display shows the new value.
    """
    st.sidebar.subheader("Monthly budget")
    st.sidebar.write(f"Current: {format_cents(budget_cents)}" if budget_cents > 0 else "No budget set.")
    with st.sidebar.form(key="budget_form", clear_on_submit=True):
        budget_input = st.text_input("Budget amount", placeholder="0.00")
        set_clicked = st.form_submit_button("Set budget")
    if set_clicked:
        error = on_set(budget_input)
        if error:
            st.sidebar.error(error)
        else:
            st.rerun()
    if budget_cents > 0 and st.sidebar.button("Clear budget"):
        error = on_clear()
        if error:
            st.sidebar.error(error)
        else:
            st.rerun()


def show_budget_alert(alert: BudgetAlert):
    if alert.severity == aggregation.STATE_EXCEEDED:
        st.error(f"**Budget Exceeded!** {alert.message}")
    else:
        st.warning(f"**Budget Warning** {alert.message}")


def _normalize_filter_dates():
    # widget callbacks run before the next script run, so swapping keys is allowed here
    start = st.session_state.get(FILTER_FROM_KEY)
    end = st.session_state.get(FILTER_TO_KEY)
    if start and end and start > end:
        st.session_state[FILTER_FROM_KEY] = end
        st.session_state[FILTER_TO_KEY] = start


def _clear_filters():
    st.session_state[FILTER_CATEGORY_KEY] = ALL_CATEGORIES
    st.session_state[FILTER_FROM_KEY] = None
    st.session_state[FILTER_TO_KEY] = None


def display_filters(today: datetime.date) -> FilterSpec:
    """Category and date-range filters; returns the normalized FilterSpec."""
    col1, col2, col3, col4 = st.columns([2, 2, 2, 1])
    with col1:
        category = st.selectbox(
            "Category",
            options=[ALL_CATEGORIES] + CATEGORIES,
            format_func=lambda c: "All" if c == ALL_CATEGORIES else c,
            key=FILTER_CATEGORY_KEY,
        )
    with col2:
        start = st.date_input("From", value=None, max_value=today, key=FILTER_FROM_KEY,
                              on_change=_normalize_filter_dates)
    with col3:
        end = st.date_input("To", value=None, max_value=today, key=FILTER_TO_KEY,
                            on_change=_normalize_filter_dates)
    with col4:
        st.button("Clear filters", on_click=_clear_filters)
    spec = FilterSpec(
        category=category or ALL_CATEGORIES,
        from_date=start.isoformat() if start else "",
        to_date=end.isoformat() if end else "",
    )
    return spec.normalized()


def display_stats(view: List[Expense], budget_cents: int, month_spend: int):
    """Headline numbers: total of the view, count, budget and what is left of it."""
    status = aggregation.budget_status(month_spend, budget_cents)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total spent", format_cents(aggregation.totals(view)))
    col2.metric("Transactions", str(len(view)))
    col3.metric("Monthly budget", format_cents(budget_cents))
    if status.state == aggregation.STATE_NO_BUDGET:
        col4.metric("Remaining", "—")
        return
    col4.metric("Remaining", format_cents(status.remaining))
    level = aggregation.remaining_level(status.remaining, budget_cents)
    if level == aggregation.LEVEL_DANGER:
        col4.error("Over budget")
    elif level == aggregation.LEVEL_WARNING:
        col4.warning("Less than 20% left")


def display_budget_status(month_spend: int, budget_cents: int):
    status = aggregation.budget_status(month_spend, budget_cents)
    if status.state == aggregation.STATE_NO_BUDGET:
        return
    st.progress(min(1.0, status.ratio))
    text = aggregation.budget_progress_text(month_spend, budget_cents)
    if status.state == aggregation.STATE_EXCEEDED:
        st.error(text)
    elif status.state == aggregation.STATE_WARNING:
        st.warning(text)
    else:
        st.caption(text)


def display_category_chart(breakdown: Dict[str, int]):
    """
    Horizontal bars for every category (zero bars included) followed by the
    non-empty categories sorted by amount.
    """
    st.subheader("Spending by category")
    df = pd.DataFrame(
        [{"category": cat, "amount": cents / 100, "label": format_cents(cents)} for cat, cents in breakdown.items()]
    )
    color_scale = alt.Scale(domain=CATEGORIES, range=PALETTE)
    chart = alt.Chart(df).mark_bar().encode(
        x=alt.X("amount:Q", title="Amount ($)"),
        y=alt.Y("category:N", sort=CATEGORIES, title=None),
        color=alt.Color("category:N", scale=color_scale, legend=None),
        tooltip=[
            alt.Tooltip("category:N", title="Category"),
            alt.Tooltip("label:N", title="Amount"),
        ],
    ).properties(height=220)
    st.altair_chart(chart, use_container_width=True)

    items = aggregation.top_categories(breakdown)
    if not items:
        st.write("— $0.00")
        return
    for cat, cents in items:
        st.write(f"- {cat}: {format_cents(cents)}")


def display_expense_list(view: List[Expense]):
    """Render the filtered expenses as a table, newest first."""
    st.header("Expenses")
    if not view:
        st.write("No expenses found.")
        return
    df = pd.DataFrame(
        [
            {
                "date": e.date,
                "category": e.category,
                "amount": format_cents(e.amount_cents),
                "description": e.description,
            }
            for e in view
        ],
        columns=["date", "category", "amount", "description"],
    )
    st.dataframe(df, use_container_width=True, hide_index=True)


def display_delete_expense(view: List[Expense], on_delete: Callable[[str], bool]):
    """Select one of the listed expenses and delete it (separate to avoid accidental deletes)."""
    if not view:
        return
    st.markdown("---")
    labels = {e.id: f"{e.date} {e.category} {format_cents(e.amount_cents)} {e.description}".strip() for e in view}
    expense_id = st.selectbox("Delete an expense", options=list(labels.keys()), format_func=labels.get)
    if st.button("Delete expense"):
        if on_delete(expense_id):
            st.success("Expense deleted.")
            st.rerun()
        else:
            st.error("Failed to delete expense. Check the server logs for details.")


def display_csv_download(view: List[Expense], today: datetime.date):
    st.download_button(
        label="Export CSV",
        data=expenses_to_csv(view),
        file_name=csv_filename(today),
        mime="text/csv",
    )
