# function_app.py

import azure.functions as func
import logging

from flowzone.config import settings
from flowzone.main import (
    register, login, google_auth,
    get_profile_handler, update_profile_handler,
    list_tasks_handler, create_task_handler, get_task_handler,
    update_task_handler, delete_task_handler,
    complete_task_handler, focus_session_handler,
    list_subtasks_handler, create_subtask_handler,
    update_subtask_handler, delete_subtask_handler,
    list_events_handler, create_event_handler,
    update_event_handler, delete_event_handler, google_sync_handler,
    list_chat_sessions_handler, create_chat_session_handler,
    get_chat_session_handler, rename_chat_session_handler,
    list_chat_messages_handler, send_chat_message_handler, converse_handler,
    list_notifications_handler, create_notification_handler,
    mark_notification_read_handler, mark_all_notifications_read_handler,
    delete_notification_handler, check_tasks_handler,
    get_preferences_handler, update_preferences_handler
)
from flowzone.utils import json_response


logger = logging.getLogger("flowzone")
logger.setLevel(settings.LOG_LEVEL)

# Ensure that handlers are added only once
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

# Callers authenticate with a FlowZone bearer token, checked per handler
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)


# Auth & profile

@app.route(route="auth/register", methods=["POST"])
def register_function(req: func.HttpRequest) -> func.HttpResponse:
    return register(req)


@app.route(route="auth/login", methods=["POST"])
def login_function(req: func.HttpRequest) -> func.HttpResponse:
    return login(req)


@app.route(route="auth/google", methods=["POST"])
def google_login_function(req: func.HttpRequest) -> func.HttpResponse:
    return google_auth(req)


@app.route(route="me", methods=["GET"])
def get_profile_function(req: func.HttpRequest) -> func.HttpResponse:
    return get_profile_handler(req)


@app.route(route="me", methods=["PUT"])
def update_profile_function(req: func.HttpRequest) -> func.HttpResponse:
    return update_profile_handler(req)


# Tasks

@app.route(route="tasks", methods=["GET"])
def list_tasks_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_tasks_handler(req)


@app.route(route="tasks", methods=["POST"])
def create_task_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_task_handler(req)


@app.route(route="tasks/{task_id}", methods=["GET"])
def get_task_function(req: func.HttpRequest) -> func.HttpResponse:
    return get_task_handler(req)


@app.route(route="tasks/{task_id}", methods=["PUT"])
def update_task_function(req: func.HttpRequest) -> func.HttpResponse:
    return update_task_handler(req)


@app.route(route="tasks/{task_id}", methods=["DELETE"])
def delete_task_function(req: func.HttpRequest) -> func.HttpResponse:
    return delete_task_handler(req)


@app.route(route="tasks/{task_id}/complete", methods=["POST"])
def complete_task_function(req: func.HttpRequest) -> func.HttpResponse:
    return complete_task_handler(req)


@app.route(route="tasks/{task_id}/focus-session", methods=["POST"])
def focus_session_function(req: func.HttpRequest) -> func.HttpResponse:
    return focus_session_handler(req)


@app.route(route="tasks/{task_id}/subtasks", methods=["GET"])
def list_subtasks_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_subtasks_handler(req)


@app.route(route="tasks/{task_id}/subtasks", methods=["POST"])
def create_subtask_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_subtask_handler(req)


@app.route(route="subtasks/{subtask_id}", methods=["PUT"])
def update_subtask_function(req: func.HttpRequest) -> func.HttpResponse:
    return update_subtask_handler(req)


@app.route(route="subtasks/{subtask_id}", methods=["DELETE"])
def delete_subtask_function(req: func.HttpRequest) -> func.HttpResponse:
    return delete_subtask_handler(req)


# Calendar events

@app.route(route="events", methods=["GET"])
def list_events_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_events_handler(req)


@app.route(route="events", methods=["POST"])
def create_event_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_event_handler(req)


@app.route(route="events/google-sync", methods=["POST"])
def google_sync_function(req: func.HttpRequest) -> func.HttpResponse:
    return google_sync_handler(req)


@app.route(route="events/{event_id}", methods=["PUT"])
def update_event_function(req: func.HttpRequest) -> func.HttpResponse:
    return update_event_handler(req)


@app.route(route="events/{event_id}", methods=["DELETE"])
def delete_event_function(req: func.HttpRequest) -> func.HttpResponse:
    return delete_event_handler(req)


# Chat

@app.route(route="chat/sessions", methods=["GET"])
def list_chat_sessions_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_chat_sessions_handler(req)


@app.route(route="chat/sessions", methods=["POST"])
def create_chat_session_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_chat_session_handler(req)


@app.route(route="chat/sessions/{session_id}", methods=["GET"])
def get_chat_session_function(req: func.HttpRequest) -> func.HttpResponse:
    return get_chat_session_handler(req)


@app.route(route="chat/sessions/{session_id}", methods=["PUT"])
def rename_chat_session_function(req: func.HttpRequest) -> func.HttpResponse:
    return rename_chat_session_handler(req)


@app.route(route="chat/sessions/{session_id}/messages", methods=["GET"])
def list_chat_messages_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_chat_messages_handler(req)


@app.route(route="chat/sessions/{session_id}/messages", methods=["POST"])
def send_chat_message_function(req: func.HttpRequest) -> func.HttpResponse:
    return send_chat_message_handler(req)


@app.route(route="chat/converse", methods=["POST"])
def converse_function(req: func.HttpRequest) -> func.HttpResponse:
    return converse_handler(req)


# Notifications

@app.route(route="notifications", methods=["GET"])
def list_notifications_function(req: func.HttpRequest) -> func.HttpResponse:
    return list_notifications_handler(req)


@app.route(route="notifications", methods=["POST"])
def create_notification_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_notification_handler(req)


@app.route(route="notifications/read-all", methods=["POST"])
def mark_all_notifications_read_function(req: func.HttpRequest) -> func.HttpResponse:
    return mark_all_notifications_read_handler(req)


@app.route(route="notifications/check-tasks", methods=["POST"])
def check_tasks_function(req: func.HttpRequest) -> func.HttpResponse:
    return check_tasks_handler(req)


@app.route(route="notifications/{notification_id}/read", methods=["POST"])
def mark_notification_read_function(req: func.HttpRequest) -> func.HttpResponse:
    return mark_notification_read_handler(req)


@app.route(route="notifications/{notification_id}", methods=["DELETE"])
def delete_notification_function(req: func.HttpRequest) -> func.HttpResponse:
    return delete_notification_handler(req)


# Preferences

@app.route(route="preferences", methods=["GET"])
def get_preferences_function(req: func.HttpRequest) -> func.HttpResponse:
    return get_preferences_handler(req)


@app.route(route="preferences", methods=["PUT"])
def update_preferences_function(req: func.HttpRequest) -> func.HttpResponse:
    return update_preferences_handler(req)


@app.route(route="health", methods=["GET"])
def health_function(req: func.HttpRequest) -> func.HttpResponse:
    return json_response({"status": "ok"})
