# flowzone/utils.py

import json
import logging
from datetime import date, datetime
from typing import Optional

from azure.functions import HttpRequest, HttpResponse

from flowzone.models import normalise_datetime

logger = logging.getLogger(__name__)


def json_response(body, status_code: int = 200) -> HttpResponse:
    return HttpResponse(
        json.dumps(body),
        status_code=status_code,
        mimetype="application/json"
    )


def error_response(message: str, status_code: int) -> HttpResponse:
    return json_response({"error": message}, status_code)


def get_json_body(req: HttpRequest) -> Optional[dict]:
    """
    Returns the request body as a dict. An empty body counts as {};
    a body that is not a JSON object yields None.
    """
    if not req.get_body():
        return {}
    try:
        body = req.get_json()
    except ValueError:
        logger.warning("Request body is not valid JSON")
        return None
    if not isinstance(body, dict):
        return None
    return body


def parse_datetime(value: str) -> datetime:
    """Parses an ISO-8601 query parameter into an aware UTC datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return normalise_datetime(datetime.fromisoformat(value))


def parse_date(value: str) -> date:
    return date.fromisoformat(value.strip()[:10])
