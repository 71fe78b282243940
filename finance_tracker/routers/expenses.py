import logging
import math
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from finance_tracker.core.config import settings
from finance_tracker.db.base import RecordStore
from finance_tracker.models.expense import (
    ExpenseCategory,
    ExpenseCreate,
    ExpenseInDB,
    ExpenseList,
    ExpensePublic,
    ExpenseUpdate,
)
from finance_tracker.routers.deps import get_current_user_id, get_store
from finance_tracker.utils.analyzer import month_bounds

router = APIRouter()
logger = logging.getLogger(__name__)

# Fields that may be cleared with an explicit null
NULLABLE_FIELDS = {"description"}


def newest_first(expenses):
    return sorted(expenses, key=lambda e: (e["date"], e.get("created_at", "")), reverse=True)


@router.get("/", response_model=ExpenseList)
def list_expenses(
    category: Optional[ExpenseCategory] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    month + year selects a whole calendar month and takes precedence over
    start_date / end_date.
    """
    if month and year:
        first, last = month_bounds(year, month)
        start, end = first.isoformat(), last.isoformat()
    else:
        start = start_date.isoformat() if start_date else None
        end = end_date.isoformat() if end_date else None

    expenses = newest_first(
        store.list_expenses(user_id, start=start, end=end, category=category.value if category else None)
    )
    total = len(expenses)
    offset = (page - 1) * limit

    return ExpenseList(
        expenses=[ExpensePublic(**e) for e in expenses[offset:offset + limit]],
        total_pages=math.ceil(total / limit),
        current_page=page,
        total_expenses=total,
    )


@router.get("/{expense_id}", response_model=ExpensePublic)
def get_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    expense = store.get_expense(user_id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return ExpensePublic(**expense)


@router.post("/", response_model=ExpensePublic, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    expense_db = ExpenseInDB(user_id=user_id, **expense.model_dump())
    store.put_expense(expense_db.model_dump(mode="json"))
    logger.info(f"Created expense {expense_db.expense_id} for user {user_id}")
    return ExpensePublic(**expense_db.model_dump())


@router.put("/{expense_id}", response_model=ExpensePublic)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    mutable_fields = {
        k: v
        for k, v in expense_update.model_dump(exclude_unset=True, mode="json").items()
        if v is not None or k in NULLABLE_FIELDS
    }
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    mutable_fields["updated_at"] = datetime.utcnow().isoformat()
    updated = store.update_expense(user_id, expense_id, mutable_fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Expense not found")

    return ExpensePublic(**updated)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    deleted = store.delete_expense(user_id, expense_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Expense not found")
    return None
