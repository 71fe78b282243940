from __future__ import annotations

import calendar
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

ALLOWANCE_FIELDS = ("housing", "transport", "food", "other")
DEDUCTION_FIELDS = ("tax", "insurance", "pension", "other")

# Percent of net salary a category may take before it earns its own suggestion
DEFAULT_CATEGORY_THRESHOLDS: Dict[str, float] = {
    "Food": 15.0,
    "Transportation": 10.0,
    "Shopping": 5.0,
}
IDEAL_SAVINGS_RATIO = 0.2

CATEGORY_ADVICE: Dict[str, Tuple[str, str, str]] = {
    # category: (priority, message template, recommendation)
    "Food": (
        "medium",
        "Food expenses ({pct}%) are high.",
        "Consider meal planning and cooking at home more often.",
    ),
    "Transportation": (
        "medium",
        "Transportation costs ({pct}%) are above recommended.",
        "Look into public transport or carpooling options.",
    ),
    "Shopping": (
        "low",
        "Shopping expenses ({pct}%) could be reduced.",
        "Create a shopping list and avoid impulse purchases.",
    ),
}

Record = Mapping[str, Any]
ExpenseLookup = Callable[[date, date], Iterable[Record]]


@dataclass
class MonthlyTotal:
    month: int
    total: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WeeklyTotal:
    week: int
    total: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryTotal:
    category: str
    total: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MonthlyTrend:
    """Net salary against spending for one salary period."""

    month: int
    year: int
    salary: float
    expenses: float
    savings: float
    savings_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Suggestion:
    type: str
    priority: str
    message: str
    recommendation: str
    category: Optional[str] = None
    percentage: Optional[float] = None
    shortfall: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}


def round_half_up(value: float, places: int) -> Decimal:
    """Round the way people do on paper: 2.25 -> 2.3, not banker's 2.2."""
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _amount(record: Record) -> float:
    return float(record.get("amount") or 0)


def _label(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _accumulate(pairs: Iterable[Tuple[Any, float]]) -> Dict[Any, List[float]]:
    """Group (key, amount) pairs into key -> [total, count], first-seen order."""
    buckets: Dict[Any, List[float]] = {}
    for key, amount in pairs:
        bucket = buckets.setdefault(key, [0.0, 0])
        bucket[0] += amount
        bucket[1] += 1
    return buckets


def expenses_between(expenses: Iterable[Record], start: date, end: date) -> List[Record]:
    return [exp for exp in expenses if start <= as_date(exp["date"]) <= end]


def monthly_totals(
    expenses: Iterable[Record],
    year: int,
    fill_gaps: bool = False,
) -> List[MonthlyTotal]:
    """
    Spend per calendar month of ``year``, ascending by month.

    Months without expenses are left out unless ``fill_gaps`` is set, in
    which case all twelve months are returned.
    """
    dated = ((as_date(exp["date"]), _amount(exp)) for exp in expenses)
    buckets = _accumulate((d.month, amount) for d, amount in dated if d.year == year)
    months = range(1, 13) if fill_gaps else sorted(buckets)
    empty = [0.0, 0]
    return [
        MonthlyTotal(month=m, total=buckets.get(m, empty)[0], count=int(buckets.get(m, empty)[1]))
        for m in months
    ]


def weekly_breakdown(expenses: Iterable[Record]) -> List[WeeklyTotal]:
    """Spend per Sunday-based week of the year (``%U``), ascending."""
    buckets = _accumulate((int(as_date(exp["date"]).strftime("%U")), _amount(exp)) for exp in expenses)
    return [
        WeeklyTotal(week=week, total=buckets[week][0], count=int(buckets[week][1]))
        for week in sorted(buckets)
    ]


def category_breakdown(expenses: Iterable[Record]) -> List[CategoryTotal]:
    """Spend per category, largest first; equal totals keep first-seen order."""
    buckets = _accumulate((_label(exp["category"]), _amount(exp)) for exp in expenses)
    totals = [
        CategoryTotal(category=category, total=total, count=int(count))
        for category, (total, count) in buckets.items()
    ]
    # list.sort is stable, reverse=True included
    totals.sort(key=lambda item: item.total, reverse=True)
    return totals


def current_month_total(breakdown: Iterable[CategoryTotal]) -> float:
    return sum((item.total for item in breakdown), 0.0)


def compute_gross_net(salary: Record) -> Tuple[float, float]:
    """
    Gross is basic salary plus allowances, net is gross minus deductions.
    Missing components count as zero. A negative net is returned unchanged.
    """
    allowances = salary.get("allowances") or {}
    deductions = salary.get("deductions") or {}
    gross = float(salary.get("basic_salary") or 0) + sum(
        float(allowances.get(name) or 0) for name in ALLOWANCE_FIELDS
    )
    net = gross - sum(float(deductions.get(name) or 0) for name in DEDUCTION_FIELDS)
    return gross, net


def net_salary_of(salary: Record) -> float:
    if salary.get("net_salary") is not None:
        return float(salary["net_salary"])
    return compute_gross_net(salary)[1]


def savings_rate(net_salary: float, total_expenses: float) -> float:
    """Percent of net salary left after expenses; 0 when there is no positive income."""
    if net_salary > 0:
        return (net_salary - total_expenses) / net_salary * 100
    return 0.0


def _newest_first(salaries: Iterable[Record]) -> List[Record]:
    return sorted(salaries, key=lambda s: (int(s["year"]), int(s["month"])), reverse=True)


def monthly_trends(
    salaries: Iterable[Record],
    expense_lookup: ExpenseLookup,
    window: int = 12,
) -> List[MonthlyTrend]:
    """
    Pair each of the ``window`` most recent salaries with the spending of its
    month. ``expense_lookup(first_day, last_day)`` returns that month's
    expenses. Output runs oldest to newest.
    """
    trends = []
    for salary in _newest_first(salaries)[:window]:
        year, month = int(salary["year"]), int(salary["month"])
        spent = sum((_amount(exp) for exp in expense_lookup(*month_bounds(year, month))), 0.0)
        net = net_salary_of(salary)
        trends.append(
            MonthlyTrend(
                month=month,
                year=year,
                salary=net,
                expenses=spent,
                savings=net - spent,
                savings_rate=savings_rate(net, spent),
            )
        )
    trends.reverse()
    return trends


def generate_suggestions(
    net_salary: float,
    category_expenses: Mapping[Any, float],
    current_savings: float,
    thresholds: Optional[Mapping[str, float]] = None,
) -> List[Suggestion]:
    """
    Savings advice for one month, in a fixed order: exactly one overall
    verdict (critical, improvement or success), then one entry per category
    whose share of net salary is above its threshold.
    """
    thresholds = DEFAULT_CATEGORY_THRESHOLDS if thresholds is None else thresholds
    suggestions: List[Suggestion] = []

    ideal_savings = net_salary * IDEAL_SAVINGS_RATIO
    if current_savings < 0:
        suggestions.append(
            Suggestion(
                type="critical",
                priority="high",
                message="You are spending more than you earn! Immediate action required.",
                recommendation="Review all expenses and cut non-essential spending immediately.",
            )
        )
    elif current_savings < ideal_savings:
        shortfall = round_half_up(ideal_savings - current_savings, 2)
        suggestions.append(
            Suggestion(
                type="improvement",
                priority="medium",
                message=f"Try to save {shortfall} more to reach the ideal 20% savings rate.",
                recommendation="Look for areas to reduce spending in your top expense categories.",
                shortfall=float(shortfall),
            )
        )
    else:
        suggestions.append(
            Suggestion(
                type="success",
                priority="low",
                message="Great job! You are saving well.",
                recommendation="Consider investing your surplus savings for better returns.",
            )
        )

    if net_salary > 0:
        for raw_category, amount in category_expenses.items():
            category = _label(raw_category)
            threshold = thresholds.get(category)
            if threshold is None:
                continue
            percentage = float(amount) / net_salary * 100
            if percentage <= threshold:
                continue
            pct = round_half_up(percentage, 1)
            priority, template, recommendation = CATEGORY_ADVICE.get(
                category,
                (
                    "medium",
                    f"{category} expenses ({{pct}}%) are above the recommended {threshold:g}%.",
                    f"Set a monthly limit for {category} and track it weekly.",
                ),
            )
            suggestions.append(
                Suggestion(
                    type="category",
                    priority=priority,
                    message=template.format(pct=pct),
                    recommendation=recommendation,
                    category=category,
                    percentage=float(pct),
                )
            )

    if not suggestions:
        suggestions.append(
            Suggestion(
                type="success",
                priority="low",
                message="Great job! Your financial habits look healthy. Keep up the good work!",
                recommendation="Keep tracking your expenses every month.",
            )
        )
    return suggestions


class FinanceAnalyzer:
    """
    Builds the dashboard and salary analytics payloads served by the API.
    Holds only configuration; every method is a pure function of its inputs.
    """

    def __init__(
        self,
        category_thresholds: Optional[Mapping[str, float]] = None,
        trend_window: int = 12,
        recent_limit: int = 10,
    ) -> None:
        self._thresholds = dict(
            DEFAULT_CATEGORY_THRESHOLDS if category_thresholds is None else category_thresholds
        )
        self._trend_window = trend_window
        self._recent_limit = recent_limit

    @property
    def thresholds(self) -> Dict[str, float]:
        return dict(self._thresholds)

    def suggestions(
        self,
        net_salary: float,
        category_expenses: Mapping[Any, float],
        current_savings: float,
    ) -> List[Dict[str, Any]]:
        return [
            s.to_dict()
            for s in generate_suggestions(net_salary, category_expenses, current_savings, self._thresholds)
        ]

    def dashboard_summary(
        self,
        expenses: List[Record],
        year: int,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        today = today or date.today()
        this_month = expenses_between(expenses, *month_bounds(today.year, today.month))
        breakdown = category_breakdown(this_month)
        recent = sorted(
            expenses,
            key=lambda exp: (as_date(exp["date"]), str(exp.get("created_at", ""))),
            reverse=True,
        )[: self._recent_limit]

        return {
            "monthly_totals": [t.to_dict() for t in monthly_totals(expenses, year)],
            "category_breakdown": [c.to_dict() for c in breakdown],
            "recent_expenses": recent,
            "current_month_total": current_month_total(breakdown),
            "weekly_breakdown": [w.to_dict() for w in weekly_breakdown(this_month)],
            "year": year,
        }

    def salary_overview(self, salaries: List[Record], expenses: List[Record]) -> Dict[str, Any]:
        if not salaries:
            return {
                "monthly_trends": [],
                "current_month": None,
                "summary": {
                    "total_salary": 0.0,
                    "total_expenses": 0.0,
                    "total_savings": 0.0,
                    "average_savings_rate": 0.0,
                },
                "expenses_by_category": {},
                "expense_change": None,
                "suggestions": [],
            }

        trends = monthly_trends(
            salaries,
            lambda start, end: expenses_between(expenses, start, end),
            self._trend_window,
        )

        latest = _newest_first(salaries)[0]
        current_expenses = expenses_between(
            expenses, *month_bounds(int(latest["year"]), int(latest["month"]))
        )
        current_total = sum((_amount(exp) for exp in current_expenses), 0.0)
        net = net_salary_of(latest)
        current_savings = net - current_total
        by_category = {c.category: c.total for c in category_breakdown(current_expenses)}

        total_salary = sum((t.salary for t in trends), 0.0)
        total_expenses = sum((t.expenses for t in trends), 0.0)

        expense_change = None
        if len(trends) > 1 and trends[-2].expenses > 0:
            previous, current = trends[-2].expenses, trends[-1].expenses
            expense_change = (current - previous) / previous * 100

        return {
            "monthly_trends": [t.to_dict() for t in trends],
            "current_month": {
                "month": int(latest["month"]),
                "year": int(latest["year"]),
                "salary": net,
                "expenses": current_total,
                "savings": current_savings,
                "savings_rate": savings_rate(net, current_total),
            },
            "summary": {
                "total_salary": total_salary,
                "total_expenses": total_expenses,
                "total_savings": total_salary - total_expenses,
                "average_savings_rate": sum(t.savings_rate for t in trends) / len(trends),
            },
            "expenses_by_category": by_category,
            "expense_change": expense_change,
            "suggestions": self.suggestions(net, by_category, current_savings),
        }

    def month_comparison(self, salary: Record, expenses: List[Record]) -> Dict[str, Any]:
        month_expenses = expenses_between(
            expenses, *month_bounds(int(salary["year"]), int(salary["month"]))
        )
        total = sum((_amount(exp) for exp in month_expenses), 0.0)
        by_category = {c.category: c.total for c in category_breakdown(month_expenses)}
        gross, net = compute_gross_net(salary)
        savings = net - total

        return {
            "salary": {
                "gross": gross,
                "net": net,
                "basic_salary": float(salary.get("basic_salary") or 0),
                "allowances": dict(salary.get("allowances") or {}),
                "deductions": dict(salary.get("deductions") or {}),
            },
            "expenses": {
                "total": total,
                "by_category": by_category,
                "count": len(month_expenses),
            },
            "savings": {
                "amount": savings,
                "percentage": float(round_half_up(savings_rate(net, total), 2)),
            },
            "suggestions": self.suggestions(net, by_category, savings),
        }
