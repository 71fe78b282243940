"""
Record store interface.

Routers only talk to this interface so the DynamoDB implementation can be
swapped for an in-memory one in tests. Records go in and come out as plain
dicts with JSON-compatible values (ISO date strings, int/float numbers).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

Record = Dict[str, Any]


class RecordStore(ABC):

    def close(self) -> None:
        """Release client resources. Called once on application shutdown."""

    # Users

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[Record]:
        pass

    @abstractmethod
    def get_user_by_id(self, user_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    def put_user(self, user_item: Record) -> None:
        """
        Insert a user.

        Raises:
            DuplicateRecordError: the email address is already registered
        """

    @abstractmethod
    def update_user_preferences(self, user_id: str, preferences: Record) -> Optional[Record]:
        pass

    # Expenses

    @abstractmethod
    def put_expense(self, expense_item: Record) -> None:
        pass

    @abstractmethod
    def get_expense(self, user_id: str, expense_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    def list_expenses(
        self,
        user_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Record]:
        """
        All of a user's expenses, optionally limited to an inclusive
        ``YYYY-MM-DD`` date range and/or a category. Order is unspecified.
        """

    @abstractmethod
    def update_expense(self, user_id: str, expense_id: str, updates: Record) -> Optional[Record]:
        """Apply a partial update; None if the expense does not exist."""

    @abstractmethod
    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        pass

    # Salaries

    @abstractmethod
    def create_salary(self, salary_item: Record) -> None:
        """
        Insert a salary record.

        Raises:
            DuplicateRecordError: the user already has a salary for that period
        """

    @abstractmethod
    def list_salaries(self, user_id: str) -> List[Record]:
        """A user's salaries, newest period first."""

    @abstractmethod
    def get_salary(self, user_id: str, salary_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    def get_salary_for_period(self, user_id: str, year: int, month: int) -> Optional[Record]:
        pass

    @abstractmethod
    def replace_salary(self, salary_item: Record, previous_period: str) -> Record:
        """
        Overwrite an existing salary, moving it if its period changed.

        Raises:
            DuplicateRecordError: the new period is taken by another record
        """

    @abstractmethod
    def delete_salary(self, user_id: str, salary_id: str) -> bool:
        pass

    # Health

    @abstractmethod
    def table_status(self) -> Dict[str, Record]:
        """Reachability of each backing table, keyed by logical name."""
