# flowzone/chat_routes.py

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import ValidationError

from flowzone.assistant import generate_ai_response
from flowzone.database import (
    CHAT_MESSAGES_CONTAINER, CHAT_SESSIONS_CONTAINER,
    find_by_id, get_container, query, strip_system_fields
)
from flowzone.models import ChatMessage, ChatSession, utcnow

logger = logging.getLogger(__name__)


def _fetch_owned_session(session_id: str, user_id: str):
    doc = find_by_id(get_container(CHAT_SESSIONS_CONTAINER), session_id)
    if doc is None:
        return None, ({"error": "Chat session not found"}, 404)
    if doc.get("userId") != user_id:
        logger.warning("User '%s' does not own chat session '%s'", user_id, session_id)
        return None, ({"error": "Not allowed to access this chat session"}, 403)
    return doc, None


def _store_message(session_doc: dict, user_id: str, content: str, is_user: bool,
                   timestamp: Optional[datetime] = None) -> dict:
    """Writes a message and moves the session's lastMessageTimestamp up to it."""
    message = ChatMessage(
        sessionId=session_doc["id"],
        userId=user_id,
        content=content,
        isUser=is_user,
        timestamp=timestamp or utcnow()
    )
    item = message.model_dump(mode="json")
    get_container(CHAT_MESSAGES_CONTAINER).create_item(item)

    session = ChatSession.model_validate(
        {**strip_system_fields(session_doc), "lastMessageTimestamp": message.timestamp}
    )
    session_item = session.model_dump(mode="json")
    get_container(CHAT_SESSIONS_CONTAINER).upsert_item(session_item)
    session_doc.update(session_item)
    return item


def create_chat_session(user_id: str, title: Optional[str] = None) -> Tuple[dict, int]:
    logger.info("Creating chat session for user '%s'", user_id)
    try:
        session = ChatSession(userId=user_id, title=title) if title is not None else ChatSession(userId=user_id)
        item = session.model_dump(mode="json")
        get_container(CHAT_SESSIONS_CONTAINER).create_item(item)
        return {"message": "Chat session created", "session": item}, 201

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error creating chat session for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def get_user_chat_sessions(user_id: str) -> Tuple[dict, int]:
    """Sessions with the most recent activity first."""
    try:
        docs = query(
            get_container(CHAT_SESSIONS_CONTAINER),
            "SELECT * FROM c WHERE c.userId = @userId ORDER BY c.lastMessageTimestamp DESC",
            userId=user_id
        )
        return {"sessions": [strip_system_fields(doc) for doc in docs]}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching chat sessions for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def get_chat_session(session_id: str, user_id: str) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned_session(session_id, user_id)
        if error:
            return error
        return {"session": strip_system_fields(doc)}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching chat session '%s': %s", session_id, str(e))
        return {"error": str(e)}, 500


def update_chat_session_title(session_id: str, user_id: str, title: str) -> Tuple[dict, int]:
    if not isinstance(title, str) or not title.strip():
        return {"error": "Title is required"}, 400

    try:
        doc, error = _fetch_owned_session(session_id, user_id)
        if error:
            return error
        session = ChatSession.model_validate({**strip_system_fields(doc), "title": title})
        item = session.model_dump(mode="json")
        get_container(CHAT_SESSIONS_CONTAINER).upsert_item(item)
        logger.info("Chat session '%s' renamed", session_id)
        return {"message": "Chat session updated", "session": item}, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error renaming chat session '%s': %s", session_id, str(e))
        return {"error": str(e)}, 500


def send_message(session_id: str, user_id: str, content: str, is_user: bool = True) -> Tuple[dict, int]:
    try:
        doc, error = _fetch_owned_session(session_id, user_id)
        if error:
            return error
        item = _store_message(doc, user_id, content, is_user)
        return {"message": "Message sent", "chatMessage": item}, 201

    except ValidationError as ve:
        logger.warning("Rejected chat message in session '%s': %s", session_id, ve)
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error sending message to session '%s': %s", session_id, str(e))
        return {"error": str(e)}, 500


def get_chat_messages(session_id: str, user_id: str) -> Tuple[dict, int]:
    """Messages of a session, oldest first."""
    try:
        _, error = _fetch_owned_session(session_id, user_id)
        if error:
            return error
        docs = query(
            get_container(CHAT_MESSAGES_CONTAINER),
            "SELECT * FROM c WHERE c.sessionId = @sessionId ORDER BY c.timestamp ASC",
            sessionId=session_id
        )
        return {"messages": [strip_system_fields(doc) for doc in docs]}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching messages for session '%s': %s", session_id, str(e))
        return {"error": str(e)}, 500


def converse(user_id: str, content: str, session_id: Optional[str] = None) -> Tuple[dict, int]:
    """
    One turn of the chat interface: stores the user's message, answers it
    with the assistant and stores the reply. A new session is opened when
    no session_id is given.
    """
    if not isinstance(content, str) or not content.strip():
        return {"error": "Message content is required"}, 400

    try:
        if session_id:
            session_doc, error = _fetch_owned_session(session_id, user_id)
            if error:
                return error
        else:
            session_doc = ChatSession(userId=user_id).model_dump(mode="json")
            get_container(CHAT_SESSIONS_CONTAINER).create_item(session_doc)
            logger.info("Opened chat session '%s' for user '%s'", session_doc["id"], user_id)

        user_item = _store_message(session_doc, user_id, content, True)

        reply = generate_ai_response(content)
        # Replies sort strictly after the message they answer
        sent_at = datetime.fromisoformat(user_item["timestamp"].replace("Z", "+00:00"))
        reply_item = _store_message(
            session_doc, user_id, reply, False,
            timestamp=max(utcnow(), sent_at + timedelta(seconds=1))
        )

        return {
            "sessionId": session_doc["id"],
            "userMessage": user_item,
            "assistantMessage": reply_item
        }, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Error during chat for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500
