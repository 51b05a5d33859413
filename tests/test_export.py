import datetime

from expense_ledger.export import csv_filename, expenses_frame, expenses_to_csv
from expense_ledger.models import Expense


def test_empty_export_has_header_only():
    assert expenses_to_csv([]) == "id,date,category,amount,description\n"


def test_export_rows_and_amount_formatting():
    view = [
        Expense("exp_2", 305, "Transport", "2024-03-02", ""),
        Expense("exp_1", 1250, "Food", "2024-03-01", "Coffee"),
    ]
    lines = expenses_to_csv(view).splitlines()
    assert lines == [
        "id,date,category,amount,description",
        "exp_2,2024-03-02,Transport,3.05,",
        "exp_1,2024-03-01,Food,12.50,Coffee",
    ]


def test_export_quotes_comma_and_quote():
    view = [Expense("exp_1", 1250, "Food", "2024-03-01", 'Lunch, "extra"')]
    lines = expenses_to_csv(view).split("\n")
    assert lines[1] == 'exp_1,2024-03-01,Food,12.50,"Lunch, ""extra"""'


def test_export_quotes_newlines():
    view = [Expense("exp_1", 100, "Other", "2024-03-01", "line one\nline two")]
    csv_text = expenses_to_csv(view)
    assert '"line one\nline two"' in csv_text


def test_expenses_frame_keeps_text_columns():
    df = expenses_frame([Expense("exp_1", 100000, "Bills", "2024-03-01", "Rent")])
    assert list(df.columns) == ["id", "date", "category", "amount", "description"]
    assert df.loc[0, "amount"] == "1000.00"


def test_csv_filename():
    assert csv_filename(datetime.date(2024, 3, 5)) == "expenses_2024-03-05.csv"
