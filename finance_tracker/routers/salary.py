import logging
from datetime import datetime
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from finance_tracker.core.config import settings
from finance_tracker.core.errors import DuplicateRecordError
from finance_tracker.db.base import RecordStore
from finance_tracker.models.salary import SalaryCreate, SalaryInDB, SalaryPublic, SalaryUpdate, period_key
from finance_tracker.routers.deps import get_current_user_id, get_store
from finance_tracker.utils.analyzer import FinanceAnalyzer, compute_gross_net, month_bounds

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = FinanceAnalyzer(
    category_thresholds=settings.CATEGORY_THRESHOLDS,
    trend_window=settings.TREND_WINDOW,
)


def with_derived_totals(salary: SalaryInDB) -> SalaryInDB:
    """Recompute gross and net salary; call before every write."""
    gross, net = compute_gross_net(salary.model_dump())
    return salary.model_copy(update={"gross_salary": gross, "net_salary": net})


@router.get("/", response_model=List[SalaryPublic])
def list_salaries(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return [SalaryPublic(**s) for s in store.list_salaries(user_id)]


@router.get("/analytics")
def salary_analytics(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
) -> Dict:
    """
    Monthly salary vs expense trends (oldest to newest), the latest month's
    position, window totals and savings suggestions.
    """
    salaries = store.list_salaries(user_id)
    if not salaries:
        logger.info(f"No salary records for user {user_id}, returning empty analytics")
        return finance_analyzer.salary_overview([], [])

    window = salaries[: settings.TREND_WINDOW]
    oldest, newest = window[-1], window[0]
    start, _ = month_bounds(oldest["year"], oldest["month"])
    _, end = month_bounds(newest["year"], newest["month"])
    expenses = store.list_expenses(user_id, start=start.isoformat(), end=end.isoformat())

    return finance_analyzer.salary_overview(salaries, expenses)


@router.get("/analytics/{year}/{month}")
def salary_month_analytics(
    year: int = Path(..., ge=2020),
    month: int = Path(..., ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
) -> Dict:
    salary = store.get_salary_for_period(user_id, year, month)
    if not salary:
        raise HTTPException(status_code=404, detail="Salary record not found for this month")

    start, end = month_bounds(year, month)
    expenses = store.list_expenses(user_id, start=start.isoformat(), end=end.isoformat())
    return finance_analyzer.month_comparison(salary, expenses)


@router.get("/{year}/{month}", response_model=SalaryPublic)
def get_salary_for_month(
    year: int = Path(..., ge=2020),
    month: int = Path(..., ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    salary = store.get_salary_for_period(user_id, year, month)
    if not salary:
        raise HTTPException(status_code=404, detail="Salary record not found")
    return SalaryPublic(**salary)


@router.post("/", response_model=SalaryPublic, status_code=status.HTTP_201_CREATED)
def create_salary(
    salary: SalaryCreate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    salary_db = with_derived_totals(SalaryInDB(user_id=user_id, **salary.model_dump()))
    try:
        store.create_salary(salary_db.model_dump(mode="json"))
    except DuplicateRecordError:
        logger.warning(f"Duplicate salary {salary_db.period} for user {user_id}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Salary record for this month already exists")

    logger.info(f"Created salary {salary_db.salary_id} ({salary_db.period}) for user {user_id}")
    return SalaryPublic(**salary_db.model_dump())


@router.put("/{salary_id}", response_model=SalaryPublic)
def update_salary(
    salary_id: str,
    salary_update: SalaryUpdate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    changes = salary_update.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k == "notes"}
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    existing = store.get_salary(user_id, salary_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Salary record not found")

    merged = SalaryInDB(**{**existing, **changes, "updated_at": datetime.utcnow().isoformat()})
    salary_db = with_derived_totals(merged)

    try:
        saved = store.replace_salary(
            salary_db.model_dump(mode="json"),
            previous_period=period_key(existing["year"], existing["month"]),
        )
    except DuplicateRecordError:
        logger.warning(f"Salary {salary_id} cannot move to taken period {salary_db.period}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Salary record for this month already exists")

    return SalaryPublic(**saved)


@router.delete("/{salary_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_salary(
    salary_id: str,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    deleted = store.delete_salary(user_id, salary_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Salary record not found")
    return None
