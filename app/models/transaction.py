from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from app.models.base import UTCDateTime
from app.utils.date_ranges import to_iso, utcnow

TransactionType = Literal["income", "expense"]


class TransactionCreate(BaseModel):
    type: TransactionType
    amount: float = Field(gt=0)
    category: str = Field(min_length=1, max_length=50)
    date: UTCDateTime = Field(default_factory=utcnow)
    description: str = Field(default="", max_length=200)
    payment_method: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: str = Field(default="", max_length=500)


class TransactionUpdate(BaseModel):
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    date: Optional[UTCDateTime] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class TransactionInDB(TransactionCreate):
    user_id: str
    # Sort key: "<ISO date>#<suffix>", so date-range queries are key conditions.
    transaction_id: str = ""
    recurring_id: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _assign_id(self):
        if not self.transaction_id:
            self.transaction_id = f"{to_iso(self.date)}#{uuid4().hex[:8]}"
        return self


class TransactionPublic(BaseModel):
    transaction_id: str
    type: TransactionType
    amount: float
    category: str
    date: UTCDateTime
    description: str = ""
    payment_method: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    recurring_id: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    transaction_ids: List[str] = Field(min_length=1)
