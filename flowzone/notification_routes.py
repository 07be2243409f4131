# flowzone/notification_routes.py

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import ValidationError

from flowzone.database import (
    NOTIFICATIONS_CONTAINER, TASKS_CONTAINER, USERS_CONTAINER,
    find_by_id, get_container, query, strip_system_fields
)
from flowzone.mailer import send_notification_email
from flowzone.models import Notification, NotificationType, Task, TaskStatus, normalise_datetime, utcnow
from flowzone.preference_routes import effective_preferences

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW = timedelta(hours=24)


def _mail_copy(user_id: str, notification: Notification) -> None:
    """Mails the notification when the user has email notifications on."""
    prefs = effective_preferences(user_id)
    if not prefs.notifications.email:
        return
    user_doc = find_by_id(get_container(USERS_CONTAINER), user_id)
    if user_doc is None:
        logger.warning("No user record for '%s'; notification not mailed", user_id)
        return
    send_notification_email(
        user_doc.get("email"),
        user_doc.get("displayName") or user_doc.get("email"),
        notification.title,
        notification.message
    )


def create_notification(user_id: str, title: str, message: str,
                        notification_type: str = "system", related_item_id: Optional[str] = None) -> Tuple[dict, int]:
    logger.info("Creating '%s' notification for user '%s': %s", notification_type, user_id, title)
    try:
        notification = Notification(
            userId=user_id,
            title=title,
            message=message,
            type=notification_type,
            relatedItemId=related_item_id
        )
        get_container(NOTIFICATIONS_CONTAINER).create_item(notification.model_dump(mode="json"))

        try:
            _mail_copy(user_id, notification)
        except CosmosHttpResponseError as e:
            logger.exception("Notification '%s' stored but not mailed: %s", notification.id, str(e))

        return {"message": "Notification created", "notification": notification.model_dump(mode="json")}, 201

    except ValidationError as ve:
        logger.warning("Invalid notification for user '%s': %s", user_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error creating notification for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def get_user_notifications(user_id: str, unread_only: bool = False) -> Tuple[dict, int]:
    """Newest first, with the number of unread notifications alongside."""
    try:
        container = get_container(NOTIFICATIONS_CONTAINER)
        if unread_only:
            docs = query(
                container,
                "SELECT * FROM c WHERE c.userId = @userId AND c.read = @read ORDER BY c.createdAt DESC",
                userId=user_id, read=False
            )
        else:
            docs = query(
                container,
                "SELECT * FROM c WHERE c.userId = @userId ORDER BY c.createdAt DESC",
                userId=user_id
            )
        notifications = [strip_system_fields(doc) for doc in docs]
        unread = sum(1 for doc in notifications if not doc.get("read"))
        return {"notifications": notifications, "unreadCount": unread}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error fetching notifications for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def _fetch_owned(notification_id: str, user_id: str):
    doc = find_by_id(get_container(NOTIFICATIONS_CONTAINER), notification_id)
    if doc is None:
        return None, ({"error": "Notification not found"}, 404)
    if doc.get("userId") != user_id:
        logger.warning("User '%s' does not own notification '%s'", user_id, notification_id)
        return None, ({"error": "Not allowed to access this notification"}, 403)
    return doc, None


def mark_notification_as_read(notification_id: str, user_id: str) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned(notification_id, user_id)
        if error:
            return error
        doc["read"] = True
        get_container(NOTIFICATIONS_CONTAINER).upsert_item(strip_system_fields(doc))
        logger.info("Notification '%s' marked as read", notification_id)
        return {"message": "Notification marked as read"}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error marking notification '%s' as read: %s", notification_id, str(e))
        return {"error": str(e)}, 500


def mark_all_notifications_as_read(user_id: str) -> Tuple[dict, int]:
    try:
        container = get_container(NOTIFICATIONS_CONTAINER)
        unread = query(
            container,
            "SELECT * FROM c WHERE c.userId = @userId AND c.read = @read",
            userId=user_id, read=False
        )
        for doc in unread:
            doc["read"] = True
            container.upsert_item(strip_system_fields(doc))
        logger.info("Marked %d notification(s) as read for user '%s'", len(unread), user_id)
        return {"message": "All notifications marked as read", "updated": len(unread)}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error marking notifications as read for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def delete_notification(notification_id: str, user_id: str) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned(notification_id, user_id)
        if error:
            return error
        get_container(NOTIFICATIONS_CONTAINER).delete_item(item=doc["id"], partition_key=user_id)
        logger.info("Notification '%s' deleted", notification_id)
        return {"message": "Notification deleted"}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error deleting notification '%s': %s", notification_id, str(e))
        return {"error": str(e)}, 500


def tasks_due_soon(tasks: list, now: datetime) -> list:
    """Open tasks due after `now` and no more than 24 hours away."""
    due = []
    for task in tasks:
        if task.dueDate is None or task.status == TaskStatus.completed:
            continue
        remaining = task.dueDate - now
        if timedelta(0) < remaining <= DUE_SOON_WINDOW:
            due.append(task)
    return due


def check_tasks_for_notifications(user_id: str, now: Optional[datetime] = None) -> Tuple[dict, int]:
    """Creates a "Task Due Soon" notification for each task due in the next 24 hours."""
    now = normalise_datetime(now) if now else utcnow()
    try:
        if not effective_preferences(user_id).notifications.taskReminders:
            logger.info("Task reminders are off for user '%s'", user_id)
            return {"message": "Task reminders are disabled", "created": 0}, 200

        docs = query(
            get_container(TASKS_CONTAINER),
            "SELECT * FROM c WHERE c.userId = @userId",
            userId=user_id
        )
        tasks = []
        for doc in docs:
            try:
                tasks.append(Task.model_validate(doc))
            except ValidationError as ve:
                logger.warning("Skipping unreadable task '%s' for user '%s': %s", doc.get("id"), user_id, ve)

        created = 0
        for task in tasks_due_soon(tasks, now):
            formatted = task.dueDate.strftime("%Y-%m-%d %H:%M UTC")
            _, status = create_notification(
                user_id,
                "Task Due Soon",
                f'"{task.title}" is due on {formatted}',
                NotificationType.task.value,
                related_item_id=task.id
            )
            if status == 201:
                created += 1

        return {"message": f"{created} task reminder(s) created", "created": created}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error checking tasks for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500
