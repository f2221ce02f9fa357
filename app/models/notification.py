from typing import Any, Dict, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from app.models.base import UTCDateTime
from app.utils.date_ranges import to_iso, utcnow

NotificationType = Literal[
    "budget_alert",
    "budget_exceeded",
    "goal_achieved",
    "goal_reminder",
    "recurring_processed",
    "recurring_failed",
    "report_generated",
    "unusual_spending",
    "low_balance",
    "bill_reminder",
    "system",
]
NotificationPriority = Literal["low", "medium", "high", "urgent"]
EntityType = Literal["transaction", "budget", "goal", "recurring", "report"]


class RelatedEntity(BaseModel):
    entity_type: EntityType
    entity_id: str


class NotificationCreate(BaseModel):
    type: NotificationType = "system"
    priority: NotificationPriority = "medium"
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    related_entity: Optional[RelatedEntity] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class NotificationInDB(NotificationCreate):
    user_id: str
    # Sort key: "<ISO created_at>#<suffix>", newest last.
    notification_id: str = ""
    is_read: bool = False
    read_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _assign_id(self):
        if not self.notification_id:
            self.notification_id = f"{to_iso(self.created_at)}#{uuid4().hex[:8]}"
        return self

    @property
    def dedup_key(self):
        entity_id = self.related_entity.entity_id if self.related_entity else None
        return self.user_id, self.type, entity_id
