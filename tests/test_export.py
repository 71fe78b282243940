from datetime import date

from finance_tracker.models.expense import ExpenseCategory
from finance_tracker.utils.export import CSV_HEADER, expense_csv_row, expenses_to_csv, format_amount


def test_row_quotes_description():
    expense = {
        "date": "2024-03-01",
        "title": "Rent",
        "category": "Rent",
        "amount": 500,
        "description": 'He said "hi"',
    }
    assert expense_csv_row(expense) == '3/1/2024,"Rent",Rent,500,"He said ""hi"""'


def test_row_without_description():
    expense = {"date": date(2024, 1, 15), "title": "Coffee", "category": ExpenseCategory.FOOD, "amount": 3.5}
    assert expense_csv_row(expense) == '1/15/2024,"Coffee",Food,3.5,'


def test_row_escapes_quotes_in_title():
    expense = {"date": "2024-12-31", "title": 'The "big" shop', "category": "Shopping", "amount": 80.0}
    assert expense_csv_row(expense) == '12/31/2024,"The ""big"" shop",Shopping,80,'


def test_format_amount():
    assert format_amount(500.0) == "500"
    assert format_amount(12.25) == "12.25"
    assert format_amount(None) == "0"


def test_expenses_to_csv():
    expenses = [
        {"date": "2024-03-02", "title": "Bus", "category": "Transportation", "amount": 2.75},
        {"date": "2024-03-01", "title": "Rent", "category": "Rent", "amount": 500},
    ]
    lines = expenses_to_csv(expenses).split("\n")
    assert lines[0] == CSV_HEADER == "Date,Title,Category,Amount,Description"
    assert lines[1:] == ['3/2/2024,"Bus",Transportation,2.75,', '3/1/2024,"Rent",Rent,500,']


def test_expenses_to_csv_header_only():
    assert expenses_to_csv([]) == CSV_HEADER + "\n"
