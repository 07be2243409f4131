# flowzone/main.py

import logging
from datetime import datetime, timezone

from azure.functions import HttpRequest, HttpResponse

from flowzone.auth import token_required
from flowzone.calendar_routes import (
    create_calendar_event, delete_calendar_event, get_user_events,
    sync_with_google_calendar, update_calendar_event
)
from flowzone.calendar_views import view_range
from flowzone.chat_routes import (
    converse, create_chat_session, get_chat_messages, get_chat_session,
    get_user_chat_sessions, send_message, update_chat_session_title
)
from flowzone.models import to_iso
from flowzone.notification_routes import (
    check_tasks_for_notifications, create_notification, delete_notification,
    get_user_notifications, mark_all_notifications_as_read, mark_notification_as_read
)
from flowzone.preference_routes import get_user_preferences, update_user_preferences
from flowzone.task_routes import (
    complete_task, create_sub_task, create_task, delete_sub_task, delete_task,
    get_task, get_task_sub_tasks, get_user_tasks, record_focus_session,
    update_sub_task, update_task
)
from flowzone.user_routes import (
    get_user_profile, google_login, login_user, register_user, update_user_profile
)
from flowzone.utils import error_response, get_json_body, json_response, parse_date, parse_datetime

logger = logging.getLogger(__name__)

INVALID_BODY = "Request body must be a JSON object"


def _respond(result) -> HttpResponse:
    body, status_code = result
    return json_response(body, status_code)


# -----------------------
# Auth & profile
# -----------------------
def register(req: HttpRequest) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(register_user(body.get("email"), body.get("password"), body.get("displayName", "")))
    except Exception as e:
        logger.exception("Error in register endpoint: %s", str(e))
        return error_response(str(e), 500)


def login(req: HttpRequest) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        email = body.get("email")
        password = body.get("password")
        if not email or not password:
            return error_response("Missing credentials", 400)
        return _respond(login_user(email, password))
    except Exception as e:
        logger.exception("Error in login endpoint: %s", str(e))
        return error_response(str(e), 500)


def google_auth(req: HttpRequest) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(google_login(body.get("idToken")))
    except Exception as e:
        logger.exception("Error in Google login endpoint: %s", str(e))
        return error_response(str(e), 500)


@token_required
def get_profile_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_user_profile(user_id))
    except Exception as e:
        logger.exception("Error in get_profile_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def update_profile_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_user_profile(user_id, body))
    except Exception as e:
        logger.exception("Error in update_profile_handler: %s", str(e))
        return error_response(str(e), 500)


# -----------------------
# Tasks
# -----------------------
@token_required
def list_tasks_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """GET /tasks?status=<pending|in-progress|completed>"""
    try:
        return _respond(get_user_tasks(user_id, req.params.get("status")))
    except Exception as e:
        logger.exception("Error in list_tasks_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def create_task_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(create_task(user_id, body))
    except Exception as e:
        logger.exception("Error in create_task_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def get_task_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_task(req.route_params.get("task_id"), user_id))
    except Exception as e:
        logger.exception("Error in get_task_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def update_task_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_task(req.route_params.get("task_id"), user_id, body))
    except Exception as e:
        logger.exception("Error in update_task_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def delete_task_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(delete_task(req.route_params.get("task_id"), user_id))
    except Exception as e:
        logger.exception("Error in delete_task_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def complete_task_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(complete_task(req.route_params.get("task_id"), user_id, body.get("actualTime")))
    except Exception as e:
        logger.exception("Error in complete_task_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def focus_session_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """Expects {"elapsedSeconds": <int>} for a finished focus period."""
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(record_focus_session(req.route_params.get("task_id"), user_id, body.get("elapsedSeconds")))
    except Exception as e:
        logger.exception("Error in focus_session_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def list_subtasks_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_task_sub_tasks(req.route_params.get("task_id"), user_id))
    except Exception as e:
        logger.exception("Error in list_subtasks_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def create_subtask_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(create_sub_task(req.route_params.get("task_id"), user_id, body.get("title")))
    except Exception as e:
        logger.exception("Error in create_subtask_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def update_subtask_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_sub_task(req.route_params.get("subtask_id"), user_id, body))
    except Exception as e:
        logger.exception("Error in update_subtask_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def delete_subtask_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(delete_sub_task(req.route_params.get("subtask_id"), user_id))
    except Exception as e:
        logger.exception("Error in delete_subtask_handler: %s", str(e))
        return error_response(str(e), 500)


# -----------------------
# Calendar events
# -----------------------
@token_required
def list_events_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """
    GET /events
      ?view=day|week|month&date=YYYY-MM-DD   events of that calendar view
      ?start=<iso>&end=<iso>                 events starting in [start, end)
      (no parameters)                        every event
    """
    try:
        view = req.params.get("view")
        start = req.params.get("start")
        end = req.params.get("end")
        try:
            if view:
                raw_date = req.params.get("date")
                day = parse_date(raw_date) if raw_date else datetime.now(timezone.utc).date()
                range_start, range_end = view_range(view, day)
            elif start or end:
                range_start = parse_datetime(start) if start else None
                range_end = parse_datetime(end) if end else None
            else:
                range_start = range_end = None
        except ValueError as ve:
            logger.warning("Bad event range query: %s", str(ve))
            return error_response(str(ve), 400)

        body, status_code = get_user_events(user_id, range_start, range_end)
        if status_code == 200 and range_start is not None and range_end is not None:
            body["range"] = {"start": to_iso(range_start), "end": to_iso(range_end)}
        return json_response(body, status_code)
    except Exception as e:
        logger.exception("Error in list_events_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def create_event_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(create_calendar_event(user_id, body))
    except Exception as e:
        logger.exception("Error in create_event_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def update_event_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_calendar_event(req.route_params.get("event_id"), user_id, body))
    except Exception as e:
        logger.exception("Error in update_event_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def delete_event_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(delete_calendar_event(req.route_params.get("event_id"), user_id))
    except Exception as e:
        logger.exception("Error in delete_event_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def google_sync_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """Expects {"accessToken": <Google OAuth access token>}."""
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        access_token = body.get("accessToken")
        if not access_token:
            return error_response("accessToken is required", 400)
        return _respond(sync_with_google_calendar(user_id, access_token))
    except Exception as e:
        logger.exception("Error in google_sync_handler: %s", str(e))
        return error_response(str(e), 500)


# -----------------------
# Chat
# -----------------------
@token_required
def list_chat_sessions_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_user_chat_sessions(user_id))
    except Exception as e:
        logger.exception("Error in list_chat_sessions_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def create_chat_session_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(create_chat_session(user_id, body.get("title")))
    except Exception as e:
        logger.exception("Error in create_chat_session_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def get_chat_session_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_chat_session(req.route_params.get("session_id"), user_id))
    except Exception as e:
        logger.exception("Error in get_chat_session_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def rename_chat_session_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_chat_session_title(req.route_params.get("session_id"), user_id, body.get("title")))
    except Exception as e:
        logger.exception("Error in rename_chat_session_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def list_chat_messages_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_chat_messages(req.route_params.get("session_id"), user_id))
    except Exception as e:
        logger.exception("Error in list_chat_messages_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def send_chat_message_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        is_user = body.get("isUser", True)
        if not isinstance(is_user, bool):
            return error_response("isUser must be a boolean", 400)
        return _respond(send_message(
            req.route_params.get("session_id"), user_id, body.get("content"), is_user
        ))
    except Exception as e:
        logger.exception("Error in send_chat_message_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def converse_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """Expects {"content": <text>, "sessionId": <optional>}."""
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(converse(user_id, body.get("content"), body.get("sessionId")))
    except Exception as e:
        logger.exception("Error in converse_handler: %s", str(e))
        return error_response(str(e), 500)


# -----------------------
# Notifications
# -----------------------
@token_required
def list_notifications_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """GET /notifications?unread=true"""
    try:
        unread_only = (req.params.get("unread") or "").lower() in ("1", "true", "yes")
        return _respond(get_user_notifications(user_id, unread_only))
    except Exception as e:
        logger.exception("Error in list_notifications_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def create_notification_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(create_notification(
            user_id,
            body.get("title"),
            body.get("message", ""),
            body.get("type", "system"),
            body.get("relatedItemId")
        ))
    except Exception as e:
        logger.exception("Error in create_notification_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def mark_notification_read_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(mark_notification_as_read(req.route_params.get("notification_id"), user_id))
    except Exception as e:
        logger.exception("Error in mark_notification_read_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def mark_all_notifications_read_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(mark_all_notifications_as_read(user_id))
    except Exception as e:
        logger.exception("Error in mark_all_notifications_read_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def delete_notification_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(delete_notification(req.route_params.get("notification_id"), user_id))
    except Exception as e:
        logger.exception("Error in delete_notification_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def check_tasks_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(check_tasks_for_notifications(user_id))
    except Exception as e:
        logger.exception("Error in check_tasks_handler: %s", str(e))
        return error_response(str(e), 500)


# -----------------------
# Preferences
# -----------------------
@token_required
def get_preferences_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        return _respond(get_user_preferences(user_id))
    except Exception as e:
        logger.exception("Error in get_preferences_handler: %s", str(e))
        return error_response(str(e), 500)


@token_required
def update_preferences_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        body = get_json_body(req)
        if body is None:
            return error_response(INVALID_BODY, 400)
        return _respond(update_user_preferences(user_id, body))
    except Exception as e:
        logger.exception("Error in update_preferences_handler: %s", str(e))
        return error_response(str(e), 500)
