import json
import unittest
from unittest.mock import patch

import azure.functions as func

from flowzone.database import CHAT_MESSAGES_CONTAINER, CHAT_SESSIONS_CONTAINER, EVENTS_CONTAINER, TASKS_CONTAINER
from flowzone.main import (
    converse_handler, create_task_handler, get_task_handler, list_events_handler,
    list_notifications_handler, list_tasks_handler, login, register,
    send_chat_message_handler, update_preferences_handler
)
from tests.fakes import CosmosTestCase


def make_request(method, url, body=None, headers=None, params=None, route_params=None):
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    return func.HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        params=params or {},
        route_params=route_params or {},
        body=body or b""
    )


def read_json(response):
    return json.loads(response.get_body())


class TestHandlers(CosmosTestCase):

    def test_01_register_then_login(self):
        response = register(make_request("POST", "/api/auth/register", {
            "email": "ada@example.com", "password": "AdaPass123", "displayName": "Ada"
        }))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.mimetype, "application/json")

        response = login(make_request("POST", "/api/auth/login", {
            "email": "ada@example.com", "password": "AdaPass123"
        }))
        self.assertEqual(response.status_code, 200)
        self.assertIn("token", read_json(response))

    def test_02_login_missing_credentials(self):
        response = login(make_request("POST", "/api/auth/login", {"email": "ada@example.com"}))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(read_json(response)["error"], "Missing credentials")

    def test_03_malformed_body(self):
        response = create_task_handler(make_request("POST", "/api/tasks", b"{not json", headers=self.auth_headers()))
        self.assertEqual(response.status_code, 400)
        response = create_task_handler(make_request("POST", "/api/tasks", [1, 2], headers=self.auth_headers()))
        self.assertEqual(response.status_code, 400)

    def test_04_protected_route_requires_token(self):
        response = list_tasks_handler(make_request("GET", "/api/tasks"))
        self.assertEqual(response.status_code, 401)

    def test_05_task_round_trip(self):
        response = create_task_handler(make_request(
            "POST", "/api/tasks", {"title": "Ship it", "priority": "high"}, headers=self.auth_headers()
        ))
        self.assertEqual(response.status_code, 201)
        task_id = read_json(response)["task"]["id"]

        response = get_task_handler(make_request(
            "GET", f"/api/tasks/{task_id}", headers=self.auth_headers(), route_params={"task_id": task_id}
        ))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(read_json(response)["task"]["priority"], "high")

        response = get_task_handler(make_request(
            "GET", f"/api/tasks/{task_id}",
            headers=self.auth_headers(self.OTHER_USER_ID), route_params={"task_id": task_id}
        ))
        self.assertEqual(response.status_code, 403)

        response = list_tasks_handler(make_request(
            "GET", "/api/tasks", headers=self.auth_headers(), params={"status": "pending"}
        ))
        self.assertEqual([t["id"] for t in read_json(response)["tasks"]], [task_id])

    def test_06_events_by_week_view(self):
        events = self.container(EVENTS_CONTAINER)
        for event_id, start in (("in", "2026-10-19T09:00:00Z"), ("out", "2026-10-26T09:00:00Z")):
            events.seed({"id": event_id, "userId": self.USER_ID, "title": event_id,
                         "startTime": start, "endTime": start})

        response = list_events_handler(make_request(
            "GET", "/api/events", headers=self.auth_headers(), params={"view": "week", "date": "2026-10-21"}
        ))
        self.assertEqual(response.status_code, 200)
        body = read_json(response)
        self.assertEqual([e["id"] for e in body["events"]], ["in"])
        self.assertEqual(body["range"], {"start": "2026-10-18T00:00:00Z", "end": "2026-10-25T00:00:00Z"})

    def test_07_events_by_explicit_range(self):
        response = list_events_handler(make_request(
            "GET", "/api/events", headers=self.auth_headers(),
            params={"start": "2026-10-20T00:00:00Z", "end": "2026-10-21T00:00:00Z"}
        ))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(read_json(response)["events"], [])

    def test_08_events_bad_query(self):
        for params in ({"view": "year"}, {"view": "day", "date": "soon"}, {"start": "yesterday", "end": "today"}):
            with self.subTest(params=params):
                response = list_events_handler(make_request(
                    "GET", "/api/events", headers=self.auth_headers(), params=params
                ))
                self.assertEqual(response.status_code, 400)

    def test_09_converse(self):
        response = converse_handler(make_request(
            "POST", "/api/chat/converse", {"content": "help"}, headers=self.auth_headers()
        ))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(read_json(response)["assistantMessage"]["isUser"])

    def test_10_unread_notifications_filter(self):
        with patch("flowzone.main.get_user_notifications", return_value=({"notifications": [], "unreadCount": 0}, 200)) as mock_list:
            list_notifications_handler(make_request(
                "GET", "/api/notifications", headers=self.auth_headers(), params={"unread": "true"}
            ))
        mock_list.assert_called_once_with(self.USER_ID, True)

    def test_11_preferences_update(self):
        response = update_preferences_handler(make_request(
            "PUT", "/api/preferences", {"theme": "dark"}, headers=self.auth_headers()
        ))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(read_json(response)["preferences"]["theme"], "dark")

    def test_12_unexpected_error_returns_500(self):
        with patch("flowzone.main.get_user_tasks", side_effect=RuntimeError("boom")):
            response = list_tasks_handler(make_request("GET", "/api/tasks", headers=self.auth_headers()))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(read_json(response)["error"], "boom")

    def test_13_store_failure_returns_500(self):
        self.container(TASKS_CONTAINER).fail = True
        response = list_tasks_handler(make_request("GET", "/api/tasks", headers=self.auth_headers()))
        self.assertEqual(response.status_code, 500)

    def test_14_chat_message_is_user_must_be_boolean(self):
        """A string such as "false" is refused instead of being read as truthy"""
        self.container(CHAT_SESSIONS_CONTAINER).seed({
            "id": "s1", "userId": self.USER_ID, "title": "New Conversation",
            "lastMessageTimestamp": "2026-10-01T00:00:00Z", "createdAt": "2026-10-01T00:00:00Z"
        })

        def post(body):
            return send_chat_message_handler(make_request(
                "POST", "/api/chat/sessions/s1/messages", body,
                headers=self.auth_headers(), route_params={"session_id": "s1"}
            ))

        for value in ("false", 0, None):
            with self.subTest(isUser=value):
                response = post({"content": "Noted", "isUser": value})
                self.assertEqual(response.status_code, 400)
                self.assertEqual(read_json(response)["error"], "isUser must be a boolean")
        self.assertEqual(self.container(CHAT_MESSAGES_CONTAINER).items, {})

        response = post({"content": "Noted", "isUser": False})
        self.assertEqual(response.status_code, 201)
        self.assertFalse(read_json(response)["chatMessage"]["isUser"])

        response = post({"content": "Hi"})
        self.assertTrue(read_json(response)["chatMessage"]["isUser"])


if __name__ == "__main__":
    unittest.main()
