import math
from datetime import datetime
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from app.models.base import UTCDateTime
from app.utils.date_ranges import utcnow

GoalStatus = Literal["active", "completed", "cancelled"]
GoalPriority = Literal["low", "medium", "high"]
GoalCategory = Literal["Savings", "Education", "Travel", "Health", "Home", "Other"]


def goal_progress(current_amount: float, target_amount: float) -> float:
    if target_amount <= 0:
        return 0.0
    return round(min(current_amount / target_amount * 100, 100.0), 2)


def days_remaining(target_date: datetime, now: Optional[datetime] = None) -> int:
    delta = target_date - (now or utcnow())
    return math.ceil(delta.total_seconds() / 86400)


class GoalCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    target_date: UTCDateTime
    category: GoalCategory = "Other"
    priority: GoalPriority = "medium"


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    target_amount: Optional[float] = Field(default=None, gt=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    target_date: Optional[UTCDateTime] = None
    category: Optional[GoalCategory] = None
    priority: Optional[GoalPriority] = None
    status: Optional[GoalStatus] = None


class GoalContribution(BaseModel):
    amount: float = Field(gt=0)


class GoalInDB(GoalCreate):
    user_id: str
    goal_id: str = Field(default_factory=lambda: uuid4().hex)
    status: GoalStatus = "active"
    progress: float = 0.0
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _sync_progress(self):
        self.refresh_progress()
        return self

    def refresh_progress(self) -> None:
        """Recompute progress; reaching the target completes an open goal."""
        self.progress = goal_progress(self.current_amount, self.target_amount)
        if self.status == "cancelled":
            return
        if self.current_amount >= self.target_amount:
            self.status = "completed"
        elif self.status == "completed":
            self.status = "active"

    def contribute(self, amount: float) -> None:
        self.current_amount = round(self.current_amount + amount, 2)
        self.refresh_progress()


class GoalPublic(BaseModel):
    goal_id: str
    name: str
    description: str = ""
    target_amount: float
    current_amount: float
    target_date: UTCDateTime
    category: GoalCategory
    priority: GoalPriority
    status: GoalStatus
    progress: float
    days_remaining: int

    @classmethod
    def from_goal(cls, goal: GoalInDB, now: Optional[datetime] = None) -> "GoalPublic":
        return cls(
            **goal.model_dump(exclude={"user_id", "created_at"}),
            days_remaining=days_remaining(goal.target_date, now),
        )
