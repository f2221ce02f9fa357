"""
Preferences Router
Per-user display, notification, budget, goal, transaction, AI and export preferences
"""
import logging
from typing import Any, Dict

import pydantic
from fastapi import APIRouter, Body, Depends

from app.core.errors import ValidationError
from app.models.preferences import (
    PreferenceSection,
    PreferencesInDB,
    PreferencesPublic,
    preference_options,
)
from app.routers.deps import get_current_user_id, get_store, ok

router = APIRouter()
logger = logging.getLogger(__name__)

SECTIONS = set(PreferencesPublic.model_fields) - {"updated_at"}


def _public(preferences: PreferencesInDB) -> dict:
    return PreferencesPublic(**preferences.model_dump(exclude={"user_id"})).model_dump(mode="json")


def _load_or_create(store, user_id: str) -> PreferencesInDB:
    """The stored preferences, creating the defaults on first access."""
    record = store.get_preferences(user_id)
    if record:
        return PreferencesInDB(**record)
    preferences = PreferencesInDB(user_id=user_id)
    store.put_preferences(preferences.model_dump(mode="json"))
    logger.info(f"Created default preferences for user {user_id}")
    return preferences


def _apply(store, user_id: str, changes: Dict[str, Any]) -> PreferencesInDB:
    unknown = set(changes) - SECTIONS
    if unknown:
        raise ValidationError(f"Unknown preference section: {', '.join(sorted(unknown))}")
    try:
        preferences = _load_or_create(store, user_id).merged(changes)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationError(f"Invalid preference {field}: {error['msg']}")
    store.put_preferences(preferences.model_dump(mode="json"))
    return preferences


@router.get("/")
def get_preferences(user_id: str = Depends(get_current_user_id), store=Depends(get_store)):
    return ok(_public(_load_or_create(store, user_id)))


@router.put("/")
def update_preferences(
    changes: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Partial update across sections; fields not given keep their values."""
    if not changes:
        raise ValidationError("No fields to update")
    preferences = _apply(store, user_id, changes)
    logger.info(f"Updated preferences ({', '.join(sorted(changes))}) for user {user_id}")
    return ok(_public(preferences), "Preferences updated successfully")


@router.get("/options")
def get_preference_options(user_id: str = Depends(get_current_user_id)):
    return ok(preference_options())


@router.post("/reset")
def reset_preferences(user_id: str = Depends(get_current_user_id), store=Depends(get_store)):
    preferences = PreferencesInDB(user_id=user_id)
    store.put_preferences(preferences.model_dump(mode="json"))
    logger.info(f"Reset preferences for user {user_id}")
    return ok(_public(preferences), "Preferences reset to defaults")


@router.patch("/{section}")
def update_preference_section(
    section: PreferenceSection,
    values: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not values:
        raise ValidationError("No fields to update")
    preferences = _apply(store, user_id, {section: values})
    return ok(_public(preferences), f"{section.capitalize()} preferences updated successfully")
