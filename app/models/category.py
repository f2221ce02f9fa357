"""
Categories come in two shapes: shared defaults owned by the system, and
user-owned categories. Rights are resolved with ``can_modify`` instead of
checking for a missing owner.
"""
from typing import Annotated, Any, Dict, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter

CategoryType = Literal["income", "expense"]

DEFAULT_OWNER_ID = "SYSTEM_DEFAULT"
DEFAULT_ICON = "💰"
DEFAULT_COLOR = "#6b7280"

DEFAULT_CATEGORIES = {
    "income": [
        ("Salary", "💰", "#10b981"),
        ("Freelance", "💼", "#3b82f6"),
        ("Business", "🏢", "#8b5cf6"),
        ("Investment", "📈", "#06b6d4"),
        ("Gift", "🎁", "#ec4899"),
        ("Other Income", "💵", "#6b7280"),
    ],
    "expense": [
        ("Food & Dining", "🍔", "#ef4444"),
        ("Transportation", "🚗", "#f59e0b"),
        ("Shopping", "🛍️", "#ec4899"),
        ("Entertainment", "🎬", "#8b5cf6"),
        ("Bills & Utilities", "📱", "#06b6d4"),
        ("Healthcare", "🏥", "#10b981"),
        ("Education", "📚", "#3b82f6"),
        ("Travel", "✈️", "#14b8a6"),
        ("Housing", "🏠", "#f97316"),
        ("Insurance", "🛡️", "#6366f1"),
        ("Personal Care", "💅", "#ec4899"),
        ("Fitness", "💪", "#10b981"),
        ("Gifts & Donations", "🎁", "#f43f5e"),
        ("Other Expense", "💳", "#6b7280"),
    ],
}


class _CategoryFields(BaseModel):
    category_id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(min_length=1, max_length=50)
    type: CategoryType
    icon: str = DEFAULT_ICON
    color: str = DEFAULT_COLOR


class DefaultCategory(_CategoryFields):
    kind: Literal["default"] = "default"

    @property
    def owner_id(self) -> str:
        return DEFAULT_OWNER_ID

    def can_modify(self, user_id: str) -> bool:
        return False


class UserCategory(_CategoryFields):
    kind: Literal["user"] = "user"
    user_id: str

    @property
    def owner_id(self) -> str:
        return self.user_id

    def can_modify(self, user_id: str) -> bool:
        return user_id == self.user_id


Category = Annotated[Union[DefaultCategory, UserCategory], Field(discriminator="kind")]
_category_adapter = TypeAdapter(Category)


def category_from_record(record: Dict[str, Any]) -> Union[DefaultCategory, UserCategory]:
    return _category_adapter.validate_python(record)


def category_to_record(category: Union[DefaultCategory, UserCategory]) -> Dict[str, Any]:
    record = category.model_dump(mode="json")
    record["owner_id"] = category.owner_id
    return record


def default_categories():
    return [
        DefaultCategory(category_id=f"default-{cat_type}-{index}", name=name, type=cat_type, icon=icon, color=color)
        for cat_type, entries in DEFAULT_CATEGORIES.items()
        for index, (name, icon, color) in enumerate(entries)
    ]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    type: CategoryType
    icon: Optional[str] = None
    color: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = None
    color: Optional[str] = None
