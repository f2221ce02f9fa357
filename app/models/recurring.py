from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from app.models.base import UTCDateTime
from app.models.transaction import TransactionType
from app.utils.date_ranges import utcnow

Frequency = Literal["daily", "weekly", "biweekly", "monthly", "quarterly", "yearly"]
PaymentMethod = Literal["cash", "credit_card", "debit_card", "bank_transfer", "other"]


class RecurringCreate(BaseModel):
    description: str = Field(min_length=1, max_length=200)
    amount: float = Field(gt=0)
    type: TransactionType
    category: str = Field(min_length=1, max_length=50)
    frequency: Frequency
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    next_occurrence: Optional[UTCDateTime] = None
    auto_process: bool = True
    payment_method: Optional[PaymentMethod] = None
    notes: str = ""

    @model_validator(mode="after")
    def _default_next_occurrence(self):
        if self.next_occurrence is None:
            self.next_occurrence = self.start_date
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class RecurringUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    frequency: Optional[Frequency] = None
    end_date: Optional[UTCDateTime] = None
    next_occurrence: Optional[UTCDateTime] = None
    auto_process: Optional[bool] = None
    is_active: Optional[bool] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class RecurringInDB(RecurringCreate):
    user_id: str
    recurring_id: str = Field(default_factory=lambda: uuid4().hex)
    last_processed: Optional[UTCDateTime] = None
    is_active: bool = True
    created_at: UTCDateTime = Field(default_factory=utcnow)
