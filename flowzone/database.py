# flowzone/database.py

import logging

from azure.cosmos import CosmosClient

from flowzone.config import settings

logger = logging.getLogger(__name__)

USERS_CONTAINER = "Users"
TASKS_CONTAINER = "Tasks"
SUBTASKS_CONTAINER = "SubTasks"
EVENTS_CONTAINER = "CalendarEvents"
CHAT_SESSIONS_CONTAINER = "ChatSessions"
CHAT_MESSAGES_CONTAINER = "ChatMessages"
NOTIFICATIONS_CONTAINER = "Notifications"
PREFERENCES_CONTAINER = "UserPreferences"

_database = None


def get_database():
    """Gets the Cosmos DB database client, connecting on first use."""
    global _database
    if _database is None:
        if not settings.COSMOS_CONNECTION_STRING:
            raise RuntimeError("COSMOS_CONNECTION_STRING is not configured")
        client = CosmosClient.from_connection_string(settings.COSMOS_CONNECTION_STRING)
        _database = client.get_database_client(settings.COSMOS_DATABASE_NAME)
        logger.info("Connected to Cosmos database '%s'", settings.COSMOS_DATABASE_NAME)
    return _database


def get_container(name: str):
    return get_database().get_container_client(name)


def query(container, sql: str, **params) -> list:
    """Runs a parameterised query; keyword arguments become @-parameters."""
    parameters = [{"name": f"@{key}", "value": value} for key, value in params.items()]
    return list(container.query_items(
        query=sql,
        parameters=parameters,
        enable_cross_partition_query=True
    ))


def find_by_id(container, item_id: str):
    items = query(container, "SELECT * FROM c WHERE c.id = @id", id=item_id)
    return items[0] if items else None


def strip_system_fields(doc: dict) -> dict:
    """Drops Cosmos bookkeeping properties (_rid, _etag, _ts, ...)."""
    return {key: value for key, value in doc.items() if not key.startswith("_")}
