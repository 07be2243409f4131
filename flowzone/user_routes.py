# flowzone/user_routes.py

import logging
from typing import Tuple

from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceExistsError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from pydantic import ValidationError

from flowzone.auth import BCRYPT_MAX_BYTES, check_password, create_access_token, fits_bcrypt, hash_password
from flowzone.config import settings
from flowzone.database import USERS_CONTAINER, find_by_id, get_container, query
from flowzone.mailer import send_profile_updated_email, send_welcome_email
from flowzone.models import NotificationType, User
from flowzone.notification_routes import create_notification
from flowzone.preference_routes import create_default_user_preferences

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64
PASSWORD_LENGTH_ERROR = (
    f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
    f" and at most {BCRYPT_MAX_BYTES} bytes"
)
PROFILE_FIELDS = ["displayName", "email", "password"]


def _public_user(doc: dict) -> dict:
    """The user document without its password hash or Cosmos fields."""
    return {
        "userId": doc["userId"],
        "email": doc.get("email"),
        "displayName": doc.get("displayName", ""),
        "googleId": doc.get("googleId"),
        "createdAt": doc.get("createdAt"),
    }


def _find_user_by_email(email: str):
    users = query(
        get_container(USERS_CONTAINER),
        "SELECT * FROM c WHERE c.email = @email",
        email=email.strip().lower()
    )
    return users[0] if users else None


def _check_password_length(password) -> bool:
    if not isinstance(password, str):
        return False
    return PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH and fits_bcrypt(password)


def _store_new_user(user: User) -> dict:
    item = user.model_dump(mode="json")
    item["id"] = user.userId  # Ensure 'id' is set for Cosmos DB
    get_container(USERS_CONTAINER).create_item(body=item)
    create_default_user_preferences(user.userId)
    return item


def register_user(email: str, password: str, display_name: str = "") -> Tuple[dict, int]:
    """
    Registers a new user with default preferences and sends a welcome email.

    Args:
        email (str): Login email, unique across users.
        password (str): Plain-text password, 8 to 64 characters, at most 72 bytes in UTF-8.
        display_name (str): Name shown in the app and in emails.

    Returns:
        tuple: A tuple containing the response dictionary and HTTP status code.
    """
    logger.info("Received request to register user: %s", email)

    if not email or not isinstance(email, str):
        return {"error": "Email is required"}, 400
    if not _check_password_length(password):
        return {"error": PASSWORD_LENGTH_ERROR}, 400

    try:
        user = User(email=email, displayName=(display_name or "").strip(), password=hash_password(password))

        if _find_user_by_email(user.email):
            logger.warning("Registration rejected: email '%s' already registered", user.email)
            return {"error": "Email is already registered"}, 409

        item = _store_new_user(user)
        send_welcome_email(user.email, user.displayName or user.email)

        return {
            "message": "User registered successfully",
            "userId": user.userId,
            "token": create_access_token(user.userId),
            "user": _public_user(item)
        }, 201

    except ValidationError as ve:
        logger.warning("Invalid registration for '%s': %s", email, ve)
        return {"error": str(ve)}, 422
    except CosmosResourceExistsError:
        return {"error": "User already exists"}, 409
    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error registering '%s': %s", email, str(e))
        return {"error": str(e)}, 500


def _login_response(user_doc: dict, message: str) -> Tuple[dict, int]:
    create_notification(
        user_doc["userId"],
        "Welcome to FlowZone",
        "Start managing your tasks and schedule efficiently!",
        NotificationType.system.value
    )
    return {
        "message": message,
        "userId": user_doc["userId"],
        "token": create_access_token(user_doc["userId"]),
        "user": _public_user(user_doc)
    }, 200


def login_user(email: str, password: str) -> Tuple[dict, int]:
    logger.info("Received login request for: %s", email)
    if not email or not password:
        return {"error": "Email and password are required"}, 400

    try:
        user_doc = _find_user_by_email(email)
        if user_doc is None:
            logger.warning("Login failed: user '%s' not found", email)
            return {"error": "User not found"}, 404

        if not check_password(password, user_doc.get("password", "")):
            logger.warning("Invalid credentials for user '%s'", email)
            return {"error": "Invalid credentials"}, 401

        logger.info("User '%s' logged in successfully", email)
        return _login_response(user_doc, "Login successful")

    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error during login for '%s': %s", email, str(e))
        return {"error": str(e)}, 500


def verify_google_token(token: str) -> dict:
    """Verifies a Google ID token; raises ValueError when it is not valid."""
    return id_token.verify_oauth2_token(token, google_requests.Request(), settings.GOOGLE_CLIENT_ID)


def google_login(token: str) -> Tuple[dict, int]:
    """
    Signs in with a Google ID token. The user is matched on googleId, then on
    email; when neither matches a password-less account is registered.
    """
    if not token:
        return {"error": "Google ID token is required"}, 400

    try:
        idinfo = verify_google_token(token)
    except ValueError as e:
        logger.warning("Rejected Google ID token: %s", str(e))
        return {"error": "Invalid Google token"}, 401

    google_id = idinfo.get("sub")
    email = idinfo.get("email")
    if not email or not google_id:
        return {"error": "Invalid Google token: missing email or sub"}, 400

    try:
        container = get_container(USERS_CONTAINER)
        matches = query(container, "SELECT * FROM c WHERE c.googleId = @googleId", googleId=google_id)
        user_doc = matches[0] if matches else _find_user_by_email(email)

        if user_doc is not None:
            if not user_doc.get("googleId"):
                user_doc["googleId"] = google_id
                container.upsert_item(body=user_doc)
                logger.info("Linked Google account to user '%s'", user_doc["userId"])
            return _login_response(user_doc, "Login successful (Google OAuth)")

        user = User(email=email, displayName=idinfo.get("name", ""), password="", googleId=google_id)
        item = _store_new_user(user)
        logger.info("Registered user '%s' through Google sign-in", user.userId)
        send_welcome_email(user.email, user.displayName or user.email)
        return _login_response(item, "User registered with Google")

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error during Google login for '%s': %s", email, str(e))
        return {"error": str(e)}, 500


def get_user_profile(user_id: str) -> Tuple[dict, int]:
    try:
        user_doc = find_by_id(get_container(USERS_CONTAINER), user_id)
        if user_doc is None:
            return {"error": "User not found"}, 404
        return {"user": _public_user(user_doc)}, 200
    except CosmosHttpResponseError as e:
        logger.exception("Error fetching profile for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500


def update_user_profile(user_id: str, updates: dict) -> Tuple[dict, int]:
    """
    Updates displayName, email or password, then sends a profile-updated
    email to the (new) address.

    Returns:
        tuple: A tuple containing the response dictionary and HTTP status code.
    """
    logger.info("User '%s' requested profile update.", user_id)

    changes = {k: v for k, v in updates.items() if k in PROFILE_FIELDS}
    if not changes:
        return {"error": "No valid fields to update"}, 400
    if "password" in changes and not _check_password_length(changes["password"]):
        return {"error": PASSWORD_LENGTH_ERROR}, 400

    try:
        container = get_container(USERS_CONTAINER)
        user_doc = find_by_id(container, user_id)
        if user_doc is None:
            return {"error": "User not found"}, 404

        if "password" in changes:
            changes["password"] = hash_password(changes["password"])

        merged = {**user_doc, **changes}
        user = User.model_validate(merged)

        if user.email != user_doc.get("email"):
            existing = _find_user_by_email(user.email)
            if existing and existing["userId"] != user_id:
                return {"error": "Email is already registered"}, 409

        item = user.model_dump(mode="json")
        item["id"] = user_id
        container.upsert_item(body=item)
        logger.info("Profile updated for user '%s': %s", user_id, sorted(changes))

        send_profile_updated_email(user.email, user.displayName or user.email)
        return {"message": "User updated successfully", "user": _public_user(item)}, 200

    except ValidationError as ve:
        return {"error": str(ve)}, 422
    except CosmosHttpResponseError as e:
        logger.exception("Cosmos HTTP error during profile update for user '%s': %s", user_id, str(e))
        return {"error": str(e)}, 500
