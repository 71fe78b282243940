import datetime as dt
from enum import Enum
from typing import Annotated, List, Optional
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, Field, StringConstraints


class ExpenseCategory(str, Enum):
    """The one category list shared by validation, analytics and responses."""

    RENT = "Rent"
    GAS = "Gas"
    WATER = "Water"
    ELECTRIC = "Electric"
    FOOD = "Food"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    MONEY_TRANSFER = "MoneyTransfer"
    CREDIT_CARD = "CreditCard"
    OTHERS = "Others"


def _strip_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title is required")
    return value


Title = Annotated[str, StringConstraints(max_length=100), AfterValidator(_strip_title)]


class ExpenseCreate(BaseModel):
    title: Title
    amount: float = Field(..., ge=0)
    category: ExpenseCategory
    date: dt.date = Field(default_factory=dt.date.today)
    description: Optional[str] = Field(default=None, max_length=500)


class ExpenseUpdate(BaseModel):
    title: Optional[Title] = None
    amount: Optional[float] = Field(default=None, ge=0)
    category: Optional[ExpenseCategory] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)


class ExpenseInDB(BaseModel):
    user_id: str
    expense_id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    amount: float
    category: ExpenseCategory
    date: dt.date
    description: Optional[str] = None
    created_at: str = Field(default_factory=lambda: dt.datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: dt.datetime.utcnow().isoformat())


class ExpensePublic(BaseModel):
    expense_id: str
    title: str
    amount: float
    category: ExpenseCategory
    date: dt.date
    description: Optional[str] = None
    created_at: str
    updated_at: str


class ExpenseList(BaseModel):
    expenses: List[ExpensePublic]
    total_pages: int
    current_page: int
    total_expenses: int
