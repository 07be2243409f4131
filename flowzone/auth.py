# flowzone/auth.py

import datetime
import json
import logging
from functools import wraps

import bcrypt
import jwt
from azure.functions import HttpRequest, HttpResponse

from flowzone.config import settings

logger = logging.getLogger(__name__)


# bcrypt only accepts secrets up to this many bytes
BCRYPT_MAX_BYTES = 72


def fits_bcrypt(password: str) -> bool:
    return len(password.encode("utf-8")) <= BCRYPT_MAX_BYTES


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    if not hashed:
        # Google-only accounts have no password to match
        return False
    if not fits_bcrypt(password):
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(user_id: str) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + datetime.timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Returns the userId claim; raises jwt.InvalidTokenError subclasses."""
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    user_id = payload.get("userId")
    if not user_id:
        raise jwt.InvalidTokenError("userId missing in token")
    return user_id


def _unauthorized(message: str) -> HttpResponse:
    return HttpResponse(
        json.dumps({"error": message}),
        status_code=401,
        mimetype="application/json"
    )


def token_required(func):
    @wraps(func)
    def wrapper(req: HttpRequest, *args, **kwargs):
        auth_header = req.headers.get("Authorization")
        if not auth_header:
            logger.warning("Authorization header missing")
            return _unauthorized("Authorization header missing")

        try:
            token_type, token = auth_header.split(" ")
            if token_type.lower() != "bearer":
                raise ValueError("Invalid token type")
        except ValueError:
            logger.warning("Invalid Authorization header format")
            return _unauthorized("Invalid Authorization header format")

        try:
            user_id = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return _unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token: %s", str(e))
            return _unauthorized("Invalid token")

        # Pass user_id as a keyword argument
        return func(req, *args, user_id=user_id, **kwargs)
    return wrapper
