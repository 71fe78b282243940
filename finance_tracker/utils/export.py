from enum import Enum
from typing import Any, Iterable, Mapping

from finance_tracker.utils.analyzer import as_date

CSV_HEADER = "Date,Title,Category,Amount,Description"


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def format_amount(amount: Any) -> str:
    value = float(amount or 0)
    if value.is_integer():
        return str(int(value))
    return str(value)


def expense_csv_row(expense: Mapping[str, Any]) -> str:
    """
    One CSV line: ``M/D/YYYY,"Title",Category,Amount,"Description"``.
    The description column is empty when there is no description.
    """
    d = as_date(expense["date"])
    category = expense["category"]
    if isinstance(category, Enum):
        category = category.value
    description = expense.get("description")
    return ",".join(
        [
            f"{d.month}/{d.day}/{d.year}",
            _quote(str(expense.get("title", ""))),
            str(category),
            format_amount(expense.get("amount")),
            _quote(description) if description else "",
        ]
    )


def expenses_to_csv(expenses: Iterable[Mapping[str, Any]]) -> str:
    rows = [expense_csv_row(expense) for expense in expenses]
    return CSV_HEADER + "\n" + "\n".join(rows)
