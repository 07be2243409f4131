import datetime
import json
import unittest
from unittest.mock import patch

import azure.functions as func
import jwt

from flowzone.auth import (
    check_password, create_access_token, decode_access_token, hash_password, token_required
)
from flowzone.config import settings
from flowzone.database import NOTIFICATIONS_CONTAINER, PREFERENCES_CONTAINER, USERS_CONTAINER
from flowzone.user_routes import (
    get_user_profile, google_login, login_user, register_user, update_user_profile
)
from tests.fakes import CosmosTestCase


class TestRegisterAndLogin(CosmosTestCase):

    def setUp(self):
        super().setUp()
        self.users = self.container(USERS_CONTAINER)
        self.test_user = {
            "email": "ada@example.com",
            "password": "AdaPass123",
            "display_name": "Ada"
        }

    def register(self, **overrides):
        data = {**self.test_user, **overrides}
        return register_user(data["email"], data["password"], data["display_name"])

    # 1) Registration
    @patch("flowzone.user_routes.send_welcome_email")
    def test_01_register_success(self, mock_welcome):
        """Registering stores a hashed password, default preferences and returns a token"""
        body, status = self.register()
        self.assertEqual(status, 201)
        user_id = body["userId"]
        self.assertEqual(decode_access_token(body["token"]), user_id)
        self.assertNotIn("password", body["user"])

        stored = self.users.items[user_id]
        self.assertNotEqual(stored["password"], "AdaPass123")
        self.assertTrue(check_password("AdaPass123", stored["password"]))
        self.assertIn(user_id, self.container(PREFERENCES_CONTAINER).items)
        mock_welcome.assert_called_once_with("ada@example.com", "Ada")

    def test_02_register_duplicate_email(self):
        self.register()
        body, status = self.register(email="ADA@example.com ")
        self.assertEqual(status, 409)
        self.assertEqual(body["error"], "Email is already registered")
        self.assertEqual(len(self.users.items), 1)

    def test_03_register_password_length(self):
        self.assertEqual(self.register(password="short")[1], 400)
        self.assertEqual(self.register(password="x" * 65)[1], 400)
        self.assertEqual(self.users.items, {})

    def test_04_register_invalid_email(self):
        self.assertEqual(self.register(email="not-an-email")[1], 422)
        self.assertEqual(self.register(email="")[1], 400)

    # 2) Login
    def test_05_login_success(self):
        user_id = self.register()[0]["userId"]
        body, status = login_user("ada@example.com", "AdaPass123")
        self.assertEqual(status, 200)
        self.assertEqual(body["userId"], user_id)
        self.assertEqual(decode_access_token(body["token"]), user_id)

        welcome = self.container(NOTIFICATIONS_CONTAINER).docs()
        self.assertEqual(len(welcome), 1)
        self.assertEqual(welcome[0]["title"], "Welcome to FlowZone")
        self.assertEqual(welcome[0]["type"], "system")

    def test_06_login_wrong_password(self):
        self.register()
        body, status = login_user("ada@example.com", "WrongPass123")
        self.assertEqual(status, 401)
        self.assertEqual(body["error"], "Invalid credentials")
        self.assertEqual(self.container(NOTIFICATIONS_CONTAINER).items, {})

    def test_07_login_unknown_user(self):
        self.assertEqual(login_user("nobody@example.com", "whatever123")[1], 404)

    def test_08_login_google_only_account(self):
        self.users.seed({"id": "g", "userId": "g", "email": "g@example.com", "password": "", "googleId": "g-1"})
        self.assertEqual(login_user("g@example.com", "anything123")[1], 401)

    # 3) bcrypt reads at most 72 bytes of a password
    def test_09_register_password_over_byte_limit(self):
        """Forty accented characters fit the character limit but not the 72-byte one"""
        body, status = self.register(password="\u00e9" * 40)
        self.assertEqual(status, 400)
        self.assertIn("72 bytes", body["error"])
        self.assertEqual(self.users.items, {})

        # 36 two-byte characters are exactly 72 bytes
        self.assertEqual(self.register(password="\u00e9" * 36)[1], 201)

    def test_10_login_long_wrong_password(self):
        """An over-long wrong password is a plain credential failure"""
        self.register()
        for password in ("x" * 100, "\u00e9" * 40):
            with self.subTest(password=password):
                body, status = login_user("ada.com", password)
                self.assertEqual(status, 401)
                self.assertEqual(body["error"], "Invalid credentials")

    def test_11_check_password_rejects_long_input(self):
        hashed = hash_password("AdaPass123")
        self.assertFalse(check_password("AdaPass123" + "x" * 80, hashed))
        self.assertFalse(check_password("\u00e9" * 40, hashed))
        self.assertTrue(check_password("AdaPass123", hashed))


class TestGoogleLogin(CosmosTestCase):

    IDINFO = {"sub": "google-1", "email": "grace@example.com", "name": "Grace"}

    def setUp(self):
        super().setUp()
        self.users = self.container(USERS_CONTAINER)

    @patch("flowzone.user_routes.verify_google_token")
    def test_01_first_login_registers(self, mock_verify):
        mock_verify.return_value = self.IDINFO
        body, status = google_login("id-token")
        self.assertEqual(status, 200)
        self.assertEqual(body["message"], "User registered with Google")
        stored = self.users.items[body["userId"]]
        self.assertEqual(stored["googleId"], "google-1")
        self.assertEqual(stored["password"], "")
        self.assertIn(body["userId"], self.container(PREFERENCES_CONTAINER).items)

    @patch("flowzone.user_routes.verify_google_token")
    def test_02_second_login_finds_user(self, mock_verify):
        mock_verify.return_value = self.IDINFO
        first = google_login("id-token")[0]
        body, status = google_login("id-token")
        self.assertEqual(status, 200)
        self.assertEqual(body["userId"], first["userId"])
        self.assertEqual(len(self.users.items), 1)

    @patch("flowzone.user_routes.verify_google_token")
    def test_03_links_existing_email_account(self, mock_verify):
        mock_verify.return_value = self.IDINFO
        self.users.seed({"id": "u-1", "userId": "u-1", "email": "grace@example.com", "password": "hash"})
        body, status = google_login("id-token")
        self.assertEqual(status, 200)
        self.assertEqual(body["userId"], "u-1")
        self.assertEqual(self.users.items["u-1"]["googleId"], "google-1")

    @patch("flowzone.user_routes.verify_google_token")
    def test_04_invalid_token(self, mock_verify):
        mock_verify.side_effect = ValueError("Token expired")
        self.assertEqual(google_login("bad")[1], 401)
        self.assertEqual(google_login("")[1], 400)

    @patch("flowzone.user_routes.verify_google_token")
    def test_05_token_without_email(self, mock_verify):
        mock_verify.return_value = {"sub": "google-1"}
        self.assertEqual(google_login("id-token")[1], 400)


class TestProfile(CosmosTestCase):

    def setUp(self):
        super().setUp()
        self.users = self.container(USERS_CONTAINER)
        self.user_id = register_user("ada@example.com", "AdaPass123", "Ada")[0]["userId"]

    def test_01_get_profile(self):
        body, status = get_user_profile(self.user_id)
        self.assertEqual(status, 200)
        self.assertEqual(body["user"]["email"], "ada@example.com")
        self.assertNotIn("password", body["user"])
        self.assertEqual(get_user_profile("missing")[1], 404)

    @patch("flowzone.user_routes.send_profile_updated_email")
    def test_02_update_display_name(self, mock_mail):
        body, status = update_user_profile(self.user_id, {"displayName": "Countess"})
        self.assertEqual(status, 200)
        self.assertEqual(body["user"]["displayName"], "Countess")
        self.assertEqual(self.users.items[self.user_id]["displayName"], "Countess")
        mock_mail.assert_called_once_with("ada@example.com", "Countess")

    def test_03_update_password_rehashes(self):
        update_user_profile(self.user_id, {"password": "NewPass456"})
        stored = self.users.items[self.user_id]["password"]
        self.assertTrue(check_password("NewPass456", stored))
        self.assertEqual(login_user("ada@example.com", "NewPass456")[1], 200)

    def test_04_update_email_conflict(self):
        register_user("grace@example.com", "GracePass1", "Grace")
        body, status = update_user_profile(self.user_id, {"email": "grace@example.com"})
        self.assertEqual(status, 409)
        self.assertEqual(self.users.items[self.user_id]["email"], "ada@example.com")

    def test_05_update_validation(self):
        self.assertEqual(update_user_profile(self.user_id, {"username": "ada"})[1], 400)
        self.assertEqual(update_user_profile(self.user_id, {"password": "short"})[1], 400)
        self.assertEqual(update_user_profile(self.user_id, {"email": "nope"})[1], 422)
        self.assertEqual(update_user_profile("missing", {"displayName": "x"})[1], 404)

    def test_06_update_password_over_byte_limit(self):
        """The byte limit applies to a new password too; the old one keeps working"""
        old_hash = self.users.items[self.user_id]["password"]
        body, status = update_user_profile(self.user_id, {"password": "\u00e9" * 40})
        self.assertEqual(status, 400)
        self.assertIn("72 bytes", body["error"])
        self.assertEqual(self.users.items[self.user_id]["password"], old_hash)
        self.assertEqual(login_user("ada.com", "AdaPass123")[1], 200)


class TestTokenRequired(unittest.TestCase):

    def setUp(self):
        @token_required
        def handler(req, user_id):
            return func.HttpResponse(json.dumps({"userId": user_id}), status_code=200)

        self.handler = handler

    def call(self, headers):
        req = func.HttpRequest(method="GET", url="/api/me", headers=headers, body=b"")
        return self.handler(req)

    def assert_unauthorized(self, response, message):
        self.assertEqual(response.status_code, 401)
        self.assertEqual(json.loads(response.get_body())["error"], message)

    def test_valid_token(self):
        response = self.call({"Authorization": f"Bearer {create_access_token('user-1')}"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.get_body())["userId"], "user-1")

    def test_missing_header(self):
        self.assert_unauthorized(self.call({}), "Authorization header missing")

    def test_malformed_header(self):
        self.assert_unauthorized(self.call({"Authorization": "Token"}), "Invalid Authorization header format")
        self.assert_unauthorized(self.call({"Authorization": "Basic abc"}), "Invalid Authorization header format")

    def test_expired_token(self):
        past = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(hours=1)
        token = jwt.encode({"userId": "user-1", "exp": past}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        self.assert_unauthorized(self.call({"Authorization": f"Bearer {token}"}), "Token has expired")

    def test_forged_token(self):
        token = jwt.encode({"userId": "user-1"}, "some-other-secret", algorithm="HS256")
        self.assert_unauthorized(self.call({"Authorization": f"Bearer {token}"}), "Invalid token")

    def test_token_without_user(self):
        token = jwt.encode({"sub": "x"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        self.assert_unauthorized(self.call({"Authorization": f"Bearer {token}"}), "Invalid token")


if __name__ == "__main__":
    unittest.main()
