import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, status

from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.category import (
    DEFAULT_COLOR,
    DEFAULT_ICON,
    DEFAULT_OWNER_ID,
    CategoryCreate,
    CategoryType,
    CategoryUpdate,
    DefaultCategory,
    UserCategory,
    category_from_record,
    category_to_record,
)
from app.routers.deps import get_current_user_id, get_store, ok

router = APIRouter()
logger = logging.getLogger(__name__)


def _resolve(store, user_id: str, category_id: str) -> Union[DefaultCategory, UserCategory]:
    record = store.get_category(user_id, category_id) or store.get_category(DEFAULT_OWNER_ID, category_id)
    if not record:
        raise NotFoundError("Category not found")
    return category_from_record(record)


def _resolve_modifiable(store, user_id: str, category_id: str) -> UserCategory:
    category = _resolve(store, user_id, category_id)
    if not category.can_modify(user_id):
        raise AuthorizationError("Default categories cannot be modified")
    return category


def _public(category: Union[DefaultCategory, UserCategory]) -> dict:
    return category.model_dump(mode="json", exclude={"user_id"})


@router.get("/")
def list_categories(
    type: Optional[CategoryType] = None,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    records = store.list_categories(DEFAULT_OWNER_ID) + store.list_categories(user_id)
    categories = [category_from_record(r) for r in records]
    if type:
        categories = [c for c in categories if c.type == type]
    categories.sort(key=lambda c: (c.type, c.kind, c.name))
    return ok([_public(c) for c in categories])


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_category(
    category: CategoryCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    visible = store.list_categories(DEFAULT_OWNER_ID) + store.list_categories(user_id)
    if any(c["name"].lower() == category.name.lower() and c["type"] == category.type for c in visible):
        raise ConflictError(f"A {category.type} category named {category.name} already exists")

    user_category = UserCategory(
        user_id=user_id,
        name=category.name,
        type=category.type,
        icon=category.icon or DEFAULT_ICON,
        color=category.color or DEFAULT_COLOR,
    )
    store.put_category(category_to_record(user_category))
    return ok(_public(user_category), "Category created successfully")


@router.get("/{category_id}")
def get_category(
    category_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    return ok(_public(_resolve(store, user_id, category_id)))


@router.put("/{category_id}")
def update_category(
    category_id: str,
    category_update: CategoryUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    updates = category_update.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise ValidationError("No fields to update")

    _resolve_modifiable(store, user_id, category_id)
    updated = store.update_category(user_id, category_id, updates)
    if not updated:
        raise NotFoundError("Category not found")
    return ok(_public(category_from_record(updated)), "Category updated successfully")


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    category = _resolve_modifiable(store, user_id, category_id)
    in_use = store.count_transactions(user_id, category=category.name)
    if in_use:
        raise ConflictError(f"Category is used by {in_use} transactions")

    store.delete_category(user_id, category_id)
    logger.info(f"Deleted category {category_id} for user {user_id}")
    return ok(message="Category deleted successfully")
