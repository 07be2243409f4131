# flowzone/task_routes.py

import logging
from typing import Optional, Tuple

from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import ValidationError

from flowzone.database import (
    SUBTASKS_CONTAINER, TASKS_CONTAINER,
    find_by_id, get_container, query, strip_system_fields
)
from flowzone.models import NotificationType, SubTask, Task, TaskStatus, utcnow
from flowzone.notification_routes import create_notification
from flowzone.preference_routes import effective_preferences
from flowzone.timer import FocusTimer, TimerMode, format_time, whole_minutes

logger = logging.getLogger(__name__)

EDITABLE_TASK_FIELDS = [
    "title", "description", "status", "priority",
    "dueDate", "estimatedTime", "actualTime", "tags"
]
EDITABLE_SUBTASK_FIELDS = ["title", "completed"]


def _fetch_owned_task(task_id: str, user_id: str):
    """
    Returns (task_doc, None) when the caller owns the task, otherwise
    (None, (error_body, status)).
    """
    doc = find_by_id(get_container(TASKS_CONTAINER), task_id)
    if doc is None:
        return None, ({"error": "Task not found"}, 404)
    if doc.get("userId") != user_id:
        logger.warning("User '%s' does not own task '%s'", user_id, task_id)
        return None, ({"error": "Not allowed to access this task"}, 403)
    return doc, None


def _save_task(doc: dict, changes: dict) -> dict:
    """Validates the merged task, bumps updatedAt and upserts it."""
    merged = {**strip_system_fields(doc), **changes, "updatedAt": utcnow()}
    task = Task.model_validate(merged)
    item = task.model_dump(mode="json")
    get_container(TASKS_CONTAINER).upsert_item(item)
    return item


def create_task(user_id: str, task_data: dict) -> Tuple[dict, int]:
    """
    Creates a task owned by user_id. New tasks always start with no tracked
    time; status defaults to pending.
    """
    logger.info("Creating task for user '%s'", user_id)
    try:
        fields = {k: v for k, v in task_data.items() if k in EDITABLE_TASK_FIELDS}
        fields["actualTime"] = 0
        task = Task(userId=user_id, **fields)
        item = task.model_dump(mode="json")
        get_container(TASKS_CONTAINER).create_item(item)
        logger.info("Task '%s' created for user '%s'", task.id, user_id)
        return {"message": "Task created successfully", "task": item}, 201

    except ValidationError as ve:
        logger.warning("Validation error creating task for user '%s': %s", user_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error while creating task: %s", str(e))
        return {"error": str(e)}, 500


def get_user_tasks(user_id: str, status: Optional[str] = None) -> Tuple[dict, int]:
    """All of a user's tasks, newest first, optionally narrowed to one status."""
    if status is not None and status not in {s.value for s in TaskStatus}:
        return {"error": f"Invalid status '{status}'"}, 400

    try:
        container = get_container(TASKS_CONTAINER)
        if status:
            docs = query(
                container,
                "SELECT * FROM c WHERE c.userId = @userId AND c.status = @status ORDER BY c.createdAt DESC",
                userId=user_id, status=status
            )
        else:
            docs = query(
                container,
                "SELECT * FROM c WHERE c.userId = @userId ORDER BY c.createdAt DESC",
                userId=user_id
            )
        return {"tasks": [strip_system_fields(doc) for doc in docs]}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error fetching tasks for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def get_task(task_id: str, user_id: str) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        return {"task": strip_system_fields(doc)}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def update_task(task_id: str, user_id: str, updated_data: dict) -> Tuple[dict, int]:
    logger.info("Updating task '%s' by user '%s'", task_id, user_id)

    changes = {k: v for k, v in updated_data.items() if k in EDITABLE_TASK_FIELDS}
    if not changes:
        return {"error": "No valid fields to update"}, 400

    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        item = _save_task(doc, changes)
        logger.info("Task '%s' updated successfully", task_id)
        return {"message": "Task updated successfully", "task": item}, 200

    except ValidationError as ve:
        logger.warning("Validation error updating task '%s': %s", task_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error updating task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def delete_task(task_id: str, user_id: str) -> Tuple[dict, int]:
    """Deletes a task together with all of its subtasks."""
    logger.info("User '%s' deleting task '%s'", user_id, task_id)

    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error

        get_container(TASKS_CONTAINER).delete_item(item=doc["id"], partition_key=user_id)

        subtasks_container = get_container(SUBTASKS_CONTAINER)
        subtasks = query(subtasks_container, "SELECT * FROM c WHERE c.taskId = @taskId", taskId=task_id)
        for sub in subtasks:
            subtasks_container.delete_item(item=sub["id"], partition_key=sub["userId"])
        logger.info("Task '%s' and %d subtask(s) deleted", task_id, len(subtasks))

        return {"message": "Task deleted successfully", "taskId": task_id}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error deleting task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def log_task_time(task_id: str, user_id: str, minutes: int) -> Tuple[dict, int]:
    """Adds whole minutes of tracked work to a task's actualTime."""
    if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes < 0:
        return {"error": "minutes must be a non-negative integer"}, 400

    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        total = (doc.get("actualTime") or 0) + minutes
        item = _save_task(doc, {"actualTime": total})
        logger.info("Logged %d minute(s) on task '%s' (total %d)", minutes, task_id, total)
        return {"message": "Time logged", "task": item}, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error logging time on task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def complete_task(task_id: str, user_id: str, actual_time: Optional[int] = None) -> Tuple[dict, int]:
    changes = {"status": TaskStatus.completed.value}
    if actual_time is not None:
        changes["actualTime"] = actual_time

    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        item = _save_task(doc, changes)
        logger.info("Task '%s' marked as completed", task_id)
        return {"message": "Task marked as completed", "task": item}, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error completing task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def record_focus_session(task_id: str, user_id: str, elapsed_seconds: int) -> Tuple[dict, int]:
    """
    Credits a finished focus period to a task: whole minutes are added to
    actualTime and a "Focus time complete!" notification is raised. The
    response tells the client how long the following break should run.
    """
    if not isinstance(elapsed_seconds, int) or isinstance(elapsed_seconds, bool) or elapsed_seconds < 0:
        return {"error": "elapsedSeconds must be a non-negative integer"}, 400

    try:
        doc, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error

        timer = FocusTimer.from_preferences(effective_preferences(user_id))
        minutes = whole_minutes(elapsed_seconds)
        item = _save_task(doc, {"actualTime": (doc.get("actualTime") or 0) + minutes})
        logger.info("Focus session of %s on task '%s' credited %d minute(s)",
                    format_time(elapsed_seconds), task_id, minutes)

        create_notification(
            user_id,
            "Focus time complete!",
            f"You've completed a focus session for \"{item['title']}\"",
            NotificationType.task.value,
            related_item_id=task_id
        )

        return {
            "message": "Focus session recorded",
            "task": item,
            "minutesLogged": minutes,
            "nextMode": TimerMode.rest.value,
            "breakSeconds": timer.break_seconds,
        }, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error recording focus session on task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


# Subtasks

def create_sub_task(task_id: str, user_id: str, title: str) -> Tuple[dict, int]:
    try:
        _, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        sub = SubTask(taskId=task_id, userId=user_id, title=title or "")
        item = sub.model_dump(mode="json")
        get_container(SUBTASKS_CONTAINER).create_item(item)
        logger.info("Subtask '%s' added to task '%s'", sub.id, task_id)
        return {"message": "Subtask created successfully", "subtask": item}, 201

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error creating subtask for task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def get_task_sub_tasks(task_id: str, user_id: str) -> Tuple[dict, int]:
    """Subtasks in the order they were created."""
    try:
        _, error = _fetch_owned_task(task_id, user_id)
        if error:
            return error
        docs = query(
            get_container(SUBTASKS_CONTAINER),
            "SELECT * FROM c WHERE c.taskId = @taskId ORDER BY c.createdAt ASC",
            taskId=task_id
        )
        return {"subtasks": [strip_system_fields(doc) for doc in docs]}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error fetching subtasks for task '%s': %s", task_id, str(e))
        return {"error": str(e)}, 500


def _fetch_owned_sub_task(subtask_id: str, user_id: str):
    doc = find_by_id(get_container(SUBTASKS_CONTAINER), subtask_id)
    if doc is None:
        return None, ({"error": "Subtask not found"}, 404)
    if doc.get("userId") != user_id:
        logger.warning("User '%s' does not own subtask '%s'", user_id, subtask_id)
        return None, ({"error": "Not allowed to access this subtask"}, 403)
    return doc, None


def update_sub_task(subtask_id: str, user_id: str, updated_data: dict) -> Tuple[dict, int]:
    changes = {k: v for k, v in updated_data.items() if k in EDITABLE_SUBTASK_FIELDS}
    if not changes:
        return {"error": "No valid fields to update"}, 400

    try:
        doc, error = _fetch_owned_sub_task(subtask_id, user_id)
        if error:
            return error
        sub = SubTask.model_validate({**strip_system_fields(doc), **changes})
        item = sub.model_dump(mode="json")
        get_container(SUBTASKS_CONTAINER).upsert_item(item)
        logger.info("Subtask '%s' updated", subtask_id)
        return {"message": "Subtask updated successfully", "subtask": item}, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error updating subtask '%s': %s", subtask_id, str(e))
        return {"error": str(e)}, 500


def delete_sub_task(subtask_id: str, user_id: str) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned_sub_task(subtask_id, user_id)
        if error:
            return error
        get_container(SUBTASKS_CONTAINER).delete_item(item=doc["id"], partition_key=user_id)
        logger.info("Subtask '%s' deleted", subtask_id)
        return {"message": "Subtask deleted successfully", "subtaskId": subtask_id}, 200

    except CosmosHttpResponseError as e:
        logger.exception("Error deleting subtask '%s': %s", subtask_id, str(e))
        return {"error": str(e)}, 500
