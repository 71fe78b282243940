import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from finance_tracker.core.config import settings
from finance_tracker.db.base import RecordStore
from finance_tracker.models.expense import ExpensePublic
from finance_tracker.routers.deps import get_current_user_id, get_store
from finance_tracker.routers.expenses import newest_first
from finance_tracker.utils.analyzer import FinanceAnalyzer
from finance_tracker.utils.export import expenses_to_csv

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = FinanceAnalyzer(
    category_thresholds=settings.CATEGORY_THRESHOLDS,
    recent_limit=settings.RECENT_EXPENSES_LIMIT,
)


@router.get("/summary")
def dashboard_summary(
    year: Optional[int] = Query(None, ge=1900),
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
) -> Dict:
    """
    Monthly totals for ``year`` (default: this year), this month's category
    and weekly breakdown, and the latest expenses.
    """
    year = year or date.today().year
    expenses = store.list_expenses(user_id)
    summary = finance_analyzer.dashboard_summary(expenses, year)
    summary["recent_expenses"] = [
        ExpensePublic(**e).model_dump(mode="json") for e in summary["recent_expenses"]
    ]
    return summary


@router.get("/export")
def export_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    expenses = newest_first(
        store.list_expenses(
            user_id,
            start=start_date.isoformat() if start_date else None,
            end=end_date.isoformat() if end_date else None,
        )
    )
    logger.info(f"Exporting {len(expenses)} expenses for user {user_id}")
    return Response(
        content=expenses_to_csv(expenses),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=expenses.csv"},
    )
