# flowzone/preference_routes.py

import logging
from typing import Optional, Tuple

from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import ValidationError

from flowzone.database import PREFERENCES_CONTAINER, find_by_id, get_container, strip_system_fields
from flowzone.models import UserPreference, utcnow

logger = logging.getLogger(__name__)

EDITABLE_PREFERENCE_FIELDS = ["theme", "workHours", "workDays", "focusTime", "breakTime", "notifications"]
NESTED_FIELDS = {"workHours", "notifications"}


def load_user_preferences(user_id: str) -> Optional[UserPreference]:
    """Stored preferences, or None. Raises CosmosHttpResponseError."""
    doc = find_by_id(get_container(PREFERENCES_CONTAINER), user_id)
    if doc is None:
        return None
    return UserPreference.model_validate(doc)


def effective_preferences(user_id: str) -> UserPreference:
    """Stored preferences, falling back to the defaults without persisting them."""
    return load_user_preferences(user_id) or UserPreference(userId=user_id)


def create_default_user_preferences(user_id: str) -> UserPreference:
    """
    Writes the default preferences for a user: light theme, 09:00-17:00
    Monday to Friday, 25/5 minute focus and break, every notification on.
    """
    prefs = UserPreference(userId=user_id)
    item = prefs.model_dump(mode="json")
    item["id"] = user_id  # one preference document per user
    get_container(PREFERENCES_CONTAINER).upsert_item(item)
    logger.info("Default preferences created for user '%s'", user_id)
    return prefs


def get_user_preferences(user_id: str) -> Tuple[dict, int]:
    logger.info("Fetching preferences for user '%s'", user_id)
    try:
        prefs = load_user_preferences(user_id)
        if prefs is None:
            prefs = create_default_user_preferences(user_id)
        return {"preferences": prefs.model_dump(mode="json")}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching preferences for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def update_user_preferences(user_id: str, updates: dict) -> Tuple[dict, int]:
    """
    Partially updates preferences. Nested workHours / notifications objects
    are merged key by key rather than replaced.
    """
    logger.info("User '%s' updating preferences: %s", user_id, sorted(updates))

    changes = {k: v for k, v in updates.items() if k in EDITABLE_PREFERENCE_FIELDS}
    if not changes:
        return {"error": "No valid fields to update"}, 400

    try:
        doc = find_by_id(get_container(PREFERENCES_CONTAINER), user_id)
        if doc is None:
            doc = create_default_user_preferences(user_id).model_dump(mode="json")
        merged = strip_system_fields(doc)

        for key, value in changes.items():
            if key in NESTED_FIELDS and isinstance(value, dict):
                merged[key] = {**merged.get(key, {}), **value}
            else:
                merged[key] = value
        merged["updatedAt"] = utcnow()

        prefs = UserPreference.model_validate(merged)
        item = prefs.model_dump(mode="json")
        item["id"] = user_id
        get_container(PREFERENCES_CONTAINER).upsert_item(item)
        logger.info("Preferences updated for user '%s'", user_id)

        return {"message": "Preferences updated successfully", "preferences": prefs.model_dump(mode="json")}, 200

    except ValidationError as ve:
        logger.warning("Invalid preferences for user '%s': %s", user_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error updating preferences for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500
