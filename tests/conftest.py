import copy
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from finance_tracker.core.errors import DuplicateRecordError
from finance_tracker.core.security import create_access_token
from finance_tracker.db.base import Record, RecordStore
from finance_tracker.main import create_app
from finance_tracker.models.salary import period_key


class InMemoryStore(RecordStore):
    """Dict-backed RecordStore with the same key rules as the DynamoDB tables."""

    def __init__(self):
        self.users: Dict[str, Record] = {}
        self.expenses: Dict[tuple, Record] = {}
        self.salaries: Dict[tuple, Record] = {}

    def get_user_by_email(self, email):
        for user in self.users.values():
            if user["email"] == email:
                return copy.deepcopy(user)
        return None

    def get_user_by_id(self, user_id):
        return copy.deepcopy(self.users.get(user_id))

    def put_user(self, user_item):
        if user_item["user_id"] in self.users or self.get_user_by_email(user_item["email"]):
            raise DuplicateRecordError("User already exists", key=user_item["user_id"])
        self.users[user_item["user_id"]] = copy.deepcopy(user_item)

    def update_user_preferences(self, user_id, preferences):
        if user_id not in self.users:
            return None
        self.users[user_id]["preferences"] = copy.deepcopy(preferences)
        return copy.deepcopy(self.users[user_id])

    def put_expense(self, expense_item):
        self.expenses[(expense_item["user_id"], expense_item["expense_id"])] = copy.deepcopy(expense_item)

    def get_expense(self, user_id, expense_id):
        return copy.deepcopy(self.expenses.get((user_id, expense_id)))

    def list_expenses(self, user_id, start=None, end=None, category=None) -> List[Record]:
        return [
            copy.deepcopy(e)
            for (owner, _), e in self.expenses.items()
            if owner == user_id
            and (start is None or e["date"] >= start)
            and (end is None or e["date"] <= end)
            and (category is None or e["category"] == category)
        ]

    def update_expense(self, user_id, expense_id, updates):
        key = (user_id, expense_id)
        if not updates or key not in self.expenses:
            return None
        self.expenses[key].update(copy.deepcopy(updates))
        return copy.deepcopy(self.expenses[key])

    def delete_expense(self, user_id, expense_id):
        return self.expenses.pop((user_id, expense_id), None) is not None

    def create_salary(self, salary_item):
        key = (salary_item["user_id"], period_key(salary_item["year"], salary_item["month"]))
        if key in self.salaries:
            raise DuplicateRecordError("Salary record for this month already exists", key=key[1])
        self.salaries[key] = copy.deepcopy(salary_item)

    def list_salaries(self, user_id):
        owned = [(period, s) for (owner, period), s in self.salaries.items() if owner == user_id]
        return [copy.deepcopy(s) for _, s in sorted(owned, key=lambda pair: pair[0], reverse=True)]

    def get_salary(self, user_id, salary_id) -> Optional[Record]:
        for (owner, _), s in self.salaries.items():
            if owner == user_id and s["salary_id"] == salary_id:
                return copy.deepcopy(s)
        return None

    def get_salary_for_period(self, user_id, year, month):
        return copy.deepcopy(self.salaries.get((user_id, period_key(year, month))))

    def replace_salary(self, salary_item, previous_period):
        user_id = salary_item["user_id"]
        new_key = (user_id, period_key(salary_item["year"], salary_item["month"]))
        if new_key[1] != previous_period:
            if new_key in self.salaries:
                raise DuplicateRecordError("Salary record for this month already exists", key=new_key[1])
            self.salaries.pop((user_id, previous_period), None)
        self.salaries[new_key] = copy.deepcopy(salary_item)
        return copy.deepcopy(salary_item)

    def delete_salary(self, user_id, salary_id):
        for key, s in list(self.salaries.items()):
            if key[0] == user_id and s["salary_id"] == salary_id:
                del self.salaries[key]
                return True
        return False

    def table_status(self):
        return {
            name: {"name": name, "status": "accessible"}
            for name in ("users", "expenses", "salaries")
        }


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as test_client:
        yield test_client


def bearer(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def auth_headers():
    return bearer("user-1")


@pytest.fixture
def other_headers():
    return bearer("user-2")
