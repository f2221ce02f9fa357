from typing import Any, Dict, Literal, Optional, get_args

from pydantic import BaseModel, Field

from app.models.base import UTCDateTime
from app.models.budget import BudgetPeriod
from app.models.goal import GoalPriority
from app.utils.date_ranges import utcnow

Currency = Literal["USD", "EUR", "GBP", "JPY", "CAD", "AUD", "INR", "CNY", "BRL", "MXN"]
Language = Literal["en", "es", "fr", "de", "it", "pt", "ja", "zh", "hi", "ar"]
DateFormat = Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"]
NumberFormat = Literal["1,234.56", "1.234,56", "1 234.56"]
Theme = Literal["light", "dark", "auto"]
ProfileVisibility = Literal["public", "private"]
Frequency = Literal["daily", "weekly", "monthly", "never"]
TransactionView = Literal["list", "grid", "calendar"]
TransactionSort = Literal["date_desc", "date_asc", "amount_desc", "amount_asc"]
ExportFormat = Literal["csv", "pdf", "json"]


class DisplayPreferences(BaseModel):
    currency: Currency = "USD"
    language: Language = "en"
    timezone: str = "UTC"
    date_format: DateFormat = "MM/DD/YYYY"
    number_format: NumberFormat = "1,234.56"
    theme: Theme = "light"


class NotificationPreferences(BaseModel):
    enabled: bool = True
    budget_alerts: bool = True
    goal_reminders: bool = True
    unusual_spending: bool = True
    recurring_reminders: bool = True
    realtime: bool = True
    sound: bool = True

    def allows(self, notification_type: str) -> bool:
        """Whether a generated notification of this type should be kept."""
        if not self.enabled:
            return False
        toggles = {
            "budget_alert": self.budget_alerts,
            "budget_exceeded": self.budget_alerts,
            "goal_reminder": self.goal_reminders,
            "unusual_spending": self.unusual_spending,
            "recurring_processed": self.recurring_reminders,
        }
        return toggles.get(notification_type, True)


class DataSharing(BaseModel):
    analytics: bool = True
    improvements: bool = True
    third_party: bool = False


class PrivacyPreferences(BaseModel):
    profile_visibility: ProfileVisibility = "private"
    data_sharing: DataSharing = Field(default_factory=DataSharing)


class BudgetPreferences(BaseModel):
    default_period: BudgetPeriod = "monthly"
    alert_threshold: float = Field(default=90, ge=50, le=100)
    rollover_unspent: bool = False


class GoalPreferences(BaseModel):
    default_priority: GoalPriority = "medium"
    reminder_frequency: Frequency = "weekly"
    celebrate_achievements: bool = True


class TransactionPreferences(BaseModel):
    default_view: TransactionView = "list"
    default_sort: TransactionSort = "date_desc"
    quick_add_enabled: bool = True


class AIPreferences(BaseModel):
    enabled: bool = True
    auto_analysis: bool = True
    suggestion_frequency: Frequency = "weekly"
    personalized_recommendations: bool = True


class ExportPreferences(BaseModel):
    default_format: ExportFormat = "csv"
    include_charts: bool = True
    include_notes: bool = True


PreferenceSection = Literal["display", "notifications", "privacy", "budgets", "goals", "transactions", "ai", "export"]


class PreferencesBase(BaseModel):
    display: DisplayPreferences = Field(default_factory=DisplayPreferences)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)
    budgets: BudgetPreferences = Field(default_factory=BudgetPreferences)
    goals: GoalPreferences = Field(default_factory=GoalPreferences)
    transactions: TransactionPreferences = Field(default_factory=TransactionPreferences)
    ai: AIPreferences = Field(default_factory=AIPreferences)
    export: ExportPreferences = Field(default_factory=ExportPreferences)


class PreferencesInDB(PreferencesBase):
    user_id: str
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    def merged(self, changes: Dict[str, Any]) -> "PreferencesInDB":
        """
        Apply a nested partial update. Sections not named in ``changes`` are
        kept, and inside a section only the given fields change. The result
        is re-validated, so a bad value raises ``pydantic.ValidationError``.
        """
        data = self.model_dump()
        for section, values in changes.items():
            if isinstance(values, dict) and isinstance(data.get(section), dict):
                data[section] = _deep_merge(data[section], values)
            else:
                data[section] = values
        data["updated_at"] = utcnow()
        return PreferencesInDB.model_validate(data)


class PreferencesPublic(PreferencesBase):
    updated_at: Optional[UTCDateTime] = None


def _deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def preference_options() -> Dict[str, Any]:
    """Allowed values for every enumerated preference, for settings forms."""
    return {
        "currencies": list(get_args(Currency)),
        "languages": list(get_args(Language)),
        "date_formats": list(get_args(DateFormat)),
        "number_formats": list(get_args(NumberFormat)),
        "themes": list(get_args(Theme)),
        "profile_visibility": list(get_args(ProfileVisibility)),
        "budget_periods": list(get_args(BudgetPeriod)),
        "goal_priorities": list(get_args(GoalPriority)),
        "frequencies": list(get_args(Frequency)),
        "transaction_views": list(get_args(TransactionView)),
        "transaction_sorts": list(get_args(TransactionSort)),
        "export_formats": list(get_args(ExportFormat)),
        "sections": list(get_args(PreferenceSection)),
    }
