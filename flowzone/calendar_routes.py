# flowzone/calendar_routes.py

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

import requests
from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import ValidationError

from flowzone.config import settings
from flowzone.database import EVENTS_CONTAINER, find_by_id, get_container, query, strip_system_fields
from flowzone.models import CalendarEvent, to_iso, utcnow

logger = logging.getLogger(__name__)

EDITABLE_EVENT_FIELDS = [
    "title", "description", "startTime", "endTime", "location",
    "isAllDay", "recurrence", "attendees", "taskId", "googleEventId"
]


def _as_datetime(value) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def has_time_conflict(existing_events: list, new_start: datetime, new_end: datetime) -> bool:
    """
    True when [new_start, new_end) shares time with a stored event.
    Back-to-back events do not conflict; events missing a time are ignored.
    """
    for event in existing_events:
        start, end = event.get("startTime"), event.get("endTime")
        if not (start and end):
            continue
        if _as_datetime(start) < new_end and new_start < _as_datetime(end):
            return True
    return False


def _fetch_owned_event(event_id: str, user_id: str):
    doc = find_by_id(get_container(EVENTS_CONTAINER), event_id)
    if doc is None:
        return None, ({"error": "Event not found"}, 404)
    if doc.get("userId") != user_id:
        logger.warning("User '%s' does not own event '%s'", user_id, event_id)
        return None, ({"error": "Not allowed to access this event"}, 403)
    return doc, None


def _query_events(user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[dict]:
    container = get_container(EVENTS_CONTAINER)
    if start is not None and end is not None:
        return query(
            container,
            "SELECT * FROM c WHERE c.userId = @userId AND c.startTime >= @start "
            "AND c.startTime < @end ORDER BY c.startTime ASC",
            userId=user_id, start=to_iso(start), end=to_iso(end)
        )
    return query(
        container,
        "SELECT * FROM c WHERE c.userId = @userId ORDER BY c.startTime ASC",
        userId=user_id
    )


def create_calendar_event(user_id: str, event_data: dict) -> Tuple[dict, int]:
    logger.info("Creating calendar event for user '%s'", user_id)
    try:
        fields = {k: v for k, v in event_data.items() if k in EDITABLE_EVENT_FIELDS}
        event = CalendarEvent(userId=user_id, **fields)

        # Double-booking is allowed; the overlap is reported back to the caller.
        earlier = query(
            get_container(EVENTS_CONTAINER),
            "SELECT * FROM c WHERE c.userId = @userId AND c.startTime < @end",
            userId=user_id, end=to_iso(event.endTime)
        )
        conflict = has_time_conflict(earlier, event.startTime, event.endTime)
        if conflict:
            logger.info("Event '%s' overlaps an existing event for user '%s'", event.title, user_id)

        item = event.model_dump(mode="json")
        get_container(EVENTS_CONTAINER).create_item(item)
        logger.info("Event '%s' created for user '%s'", event.id, user_id)
        return {"message": "Event created successfully", "event": item, "conflict": conflict}, 201

    except ValidationError as ve:
        logger.warning("Validation error for event of user '%s': %s", user_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error while creating event: %s", str(e))
        return {"error": str(e)}, 500


def get_user_events(user_id: str, start: Optional[datetime] = None,
                    end: Optional[datetime] = None) -> Tuple[dict, int]:
    """
    Events ordered by start time. With a range, only events starting inside
    [start, end) are returned.
    """
    if (start is None) != (end is None):
        return {"error": "Both start and end are required for a range"}, 400
    if start is not None and end <= start:
        return {"error": "end must be after start"}, 400

    try:
        docs = _query_events(user_id, start, end)
        return {"events": [strip_system_fields(doc) for doc in docs]}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching events for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def update_calendar_event(event_id: str, user_id: str, updated_data: dict) -> Tuple[dict, int]:
    logger.info("Updating event '%s' by user '%s'", event_id, user_id)

    changes = {k: v for k, v in updated_data.items() if k in EDITABLE_EVENT_FIELDS}
    if not changes:
        return {"error": "No valid fields to update"}, 400

    try:
        doc, error = _fetch_owned_event(event_id, user_id)
        if error:
            return error
        merged = {**strip_system_fields(doc), **changes, "updatedAt": utcnow()}
        event = CalendarEvent.model_validate(merged)
        item = event.model_dump(mode="json")
        get_container(EVENTS_CONTAINER).upsert_item(item)
        logger.info("Event '%s' updated successfully", event_id)
        return {"message": "Event updated successfully", "event": item}, 200

    except ValidationError as ve:
        logger.warning("Validation error updating event '%s': %s", event_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error updating event '%s': %s", event_id, str(e))
        return {"error": str(e)}, 500


def delete_calendar_event(event_id: str, user_id: str) -> Tuple[dict, int]:
    logger.info("Deleting event '%s' by user '%s'", event_id, user_id)
    try:
        doc, error = _fetch_owned_event(event_id, user_id)
        if error:
            return error
        get_container(EVENTS_CONTAINER).delete_item(item=doc["id"], partition_key=user_id)
        logger.info("Event '%s' deleted successfully", event_id)
        return {"message": "Event deleted successfully", "eventId": event_id}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error deleting event '%s': %s", event_id, str(e))
        return {"error": str(e)}, 500


# Google Calendar sync

def fetch_google_events(access_token: str) -> List[dict]:
    """Fetches every event on the user's primary Google calendar, following pages."""
    url = f"{settings.GOOGLE_CALENDAR_API_URL}/calendars/primary/events"
    headers = {"Authorization": f"Bearer {access_token}"}
    items = []
    params = {}
    while True:
        response = requests.get(url, headers=headers, params=params, timeout=settings.GOOGLE_API_TIMEOUT)
        response.raise_for_status()
        data = response.json()
        items.extend(data.get("items", []))
        page_token = data.get("nextPageToken")
        if not page_token:
            return items
        params = {"pageToken": page_token}


def _google_time(value: dict) -> datetime:
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
    return datetime.combine(date.fromisoformat(value["date"]), datetime.min.time())


def map_google_event(user_id: str, item: dict) -> dict:
    """Maps a Google Calendar API event resource onto CalendarEvent fields."""
    start = item.get("start", {})
    end = item.get("end", {})
    is_all_day = not start.get("dateTime")
    start_time = _google_time(start)
    end_time = _google_time(end) if end else start_time
    if is_all_day and end_time.date() > start_time.date():
        # Google's all-day end date is exclusive
        end_time -= timedelta(days=1)

    return {
        "userId": user_id,
        "googleEventId": item["id"],
        "title": item.get("summary") or "(No title)",
        "description": item.get("description") or "",
        "startTime": start_time,
        "endTime": end_time,
        "location": item.get("location") or "",
        "isAllDay": is_all_day,
        "recurrence": ",".join(item["recurrence"]) if item.get("recurrence") else None,
        "attendees": [a["email"] for a in item.get("attendees", []) if a.get("email")],
    }


def sync_with_google_calendar(user_id: str, access_token: str) -> Tuple[dict, int]:
    """
    Pulls the user's primary Google calendar and upserts each event, matched
    on (userId, googleEventId).
    """
    logger.info("Syncing Google Calendar for user '%s'", user_id)
    try:
        items = fetch_google_events(access_token)
    except requests.RequestException as e:
        logger.warning("Failed to fetch events from Google Calendar for user '%s': %s", user_id, str(e))
        return {"error": "Failed to fetch events from Google Calendar"}, 502

    container = get_container(EVENTS_CONTAINER)
    created = updated = skipped = 0
    try:
        for item in items:
            if item.get("status") == "cancelled" or not item.get("id"):
                skipped += 1
                continue
            try:
                mapped = map_google_event(user_id, item)
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed Google event '%s': %s", item.get("id"), str(e))
                skipped += 1
                continue

            existing = query(
                container,
                "SELECT * FROM c WHERE c.userId = @userId AND c.googleEventId = @googleEventId",
                userId=user_id, googleEventId=mapped["googleEventId"]
            )
            try:
                if existing:
                    doc = strip_system_fields(existing[0])
                    event = CalendarEvent.model_validate({**doc, **mapped, "updatedAt": utcnow()})
                    container.upsert_item(event.model_dump(mode="json"))
                    updated += 1
                else:
                    event = CalendarEvent(**mapped)
                    container.create_item(event.model_dump(mode="json"))
                    created += 1
            except ValidationError as ve:
                logger.warning("Skipping invalid Google event '%s': %s", mapped["googleEventId"], ve)
                skipped += 1

        logger.info("Google sync for user '%s': %d created, %d updated, %d skipped",
                    user_id, created, updated, skipped)
        return {
            "message": "Google Calendar synced",
            "created": created,
            "updated": updated,
            "skipped": skipped
        }, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error storing synced events for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500
