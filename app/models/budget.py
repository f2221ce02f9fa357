from datetime import datetime
from typing import Literal, Optional
from uuid import uuid4

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field, model_validator

from app.core.config import settings
from app.models.base import UTCDateTime
from app.utils.date_ranges import ONE_MS, start_of_day, utcnow

BudgetPeriod = Literal["weekly", "monthly", "yearly"]
BudgetStatus = Literal["good", "warning", "exceeded"]

PERIOD_DELTAS = {
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}


def default_end_date(start_date: datetime, period: str) -> datetime:
    return start_date + PERIOD_DELTAS[period] - ONE_MS


def percent_used(spent: float, amount: float) -> float:
    if amount <= 0:
        return 0.0
    return round(spent / amount * 100, 2)


def budget_status(spent: float, amount: float, alert_threshold: float = settings.BUDGET_WARNING_THRESHOLD) -> str:
    """Decided from the unrounded ratio; only the displayed percentage is rounded."""
    if spent >= amount:
        return "exceeded"
    if amount > 0 and spent / amount * 100 >= alert_threshold:
        return "warning"
    return "good"


class BudgetCreate(BaseModel):
    name: str = Field(default="", max_length=100)
    category: str = Field(min_length=1, max_length=50)
    amount: float = Field(gt=0)
    period: BudgetPeriod = "monthly"
    start_date: UTCDateTime = Field(default_factory=lambda: start_of_day(utcnow()))
    end_date: Optional[UTCDateTime] = None
    alert_threshold: float = Field(default=settings.BUDGET_WARNING_THRESHOLD, ge=0, le=100)
    notes: str = Field(default="", max_length=500)

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_date is None:
            self.end_date = default_end_date(self.start_date, self.period)
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class BudgetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    amount: Optional[float] = Field(default=None, gt=0)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    alert_threshold: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class BudgetInDB(BudgetCreate):
    user_id: str
    budget_id: str = Field(default_factory=lambda: uuid4().hex)
    spent: float = Field(default=0.0, ge=0)
    is_active: bool = True
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def remaining(self) -> float:
        return round(self.amount - self.spent, 2)

    @property
    def percent_used(self) -> float:
        return percent_used(self.spent, self.amount)

    @property
    def status(self) -> str:
        return budget_status(self.spent, self.amount, self.alert_threshold)

    def is_exceeded(self) -> bool:
        return self.spent >= self.amount

    def should_alert(self) -> bool:
        return self.spent / self.amount * 100 >= self.alert_threshold

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.end_date


class BudgetPublic(BaseModel):
    budget_id: str
    name: str
    category: str
    amount: float
    spent: float
    remaining: float
    percent_used: float
    status: BudgetStatus
    period: BudgetPeriod
    start_date: UTCDateTime
    end_date: UTCDateTime
    alert_threshold: float
    is_active: bool
    notes: str = ""

    @classmethod
    def from_budget(cls, budget: BudgetInDB) -> "BudgetPublic":
        return cls(
            **budget.model_dump(exclude={"user_id", "created_at"}),
            remaining=budget.remaining,
            percent_used=budget.percent_used,
            status=budget.status,
        )
