from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class Allowances(BaseModel):
    housing: float = Field(default=0, ge=0)
    transport: float = Field(default=0, ge=0)
    food: float = Field(default=0, ge=0)
    other: float = Field(default=0, ge=0)


class Deductions(BaseModel):
    tax: float = Field(default=0, ge=0)
    insurance: float = Field(default=0, ge=0)
    pension: float = Field(default=0, ge=0)
    other: float = Field(default=0, ge=0)


class SalaryCreate(BaseModel):
    basic_salary: float = Field(..., ge=0)
    allowances: Allowances = Field(default_factory=Allowances)
    deductions: Deductions = Field(default_factory=Deductions)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020)
    pay_date: date
    notes: Optional[str] = None


class SalaryUpdate(BaseModel):
    basic_salary: Optional[float] = Field(default=None, ge=0)
    allowances: Optional[Allowances] = None
    deductions: Optional[Deductions] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2020)
    pay_date: Optional[date] = None
    notes: Optional[str] = None


def period_key(year: int, month: int) -> str:
    """Sort key of a salary record; one record per user per period."""
    return f"{year:04d}-{month:02d}"


class SalaryInDB(BaseModel):
    user_id: str
    salary_id: str = Field(default_factory=lambda: str(uuid4()))
    basic_salary: float
    allowances: Allowances
    deductions: Deductions
    month: int
    year: int
    pay_date: date
    gross_salary: float = 0
    net_salary: float = 0
    notes: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def period(self) -> str:
        return period_key(self.year, self.month)


class SalaryPublic(BaseModel):
    salary_id: str
    basic_salary: float
    allowances: Allowances
    deductions: Deductions
    month: int
    year: int
    pay_date: date
    gross_salary: float
    net_salary: float
    notes: Optional[str] = None
    created_at: str
    updated_at: str
