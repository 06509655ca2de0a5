"""End-to-end tests for /auth: sign-up, sign-in and sign-out with the session cookie."""

from app.core.security import decode_access_token
from tests.helpers import API, COOKIE_NAME, ApiTestCase, session_cookie


class TestSignUp(ApiTestCase):
    def test_sign_up_returns_user_without_password_and_sets_cookie(self) -> None:
        response = self.client.post(
            f"{API}/auth/sign-up",
            json={"name": "Alice", "email": "a@x.com", "password": "pw123456"},
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["message"], "User registered")
        self.assertEqual(data["user"]["email"], "a@x.com")
        self.assertEqual(data["user"]["role"], "user")
        self.assertNotIn("password", data["user"])
        self.assertNotIn("password_hash", data["user"])

        claims = decode_access_token(response.cookies[COOKIE_NAME])
        self.assertEqual(claims.id, data["user"]["id"])
        set_cookie = response.headers["set-cookie"].lower()
        self.assertIn("httponly", set_cookie)
        self.assertIn("samesite=strict", set_cookie)

    def test_duplicate_email_conflicts(self) -> None:
        self.create_user(email="a@x.com")
        response = self.client.post(
            f"{API}/auth/sign-up",
            json={"name": "Alice", "email": "A@X.com", "password": "pw123456"},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"error": "Email already exists"})

    def test_admin_role_requires_admin_session(self) -> None:
        member = self.create_user(email="member@example.com")
        payload = {"name": "Mallory", "email": "m@x.com", "password": "pw123456", "role": "admin"}
        for headers in ({}, session_cookie(member)):
            with self.subTest(headers=headers):
                response = self.client.post(f"{API}/auth/sign-up", json=payload, headers=headers)
                self.assertEqual(response.status_code, 403)
                self.assertEqual(
                    response.json(), {"error": "Forbidden: Only admins can create admin accounts"}
                )

        admin = self.create_user(email="root@example.com", role="admin")
        response = self.client.post(
            f"{API}/auth/sign-up", json=payload, headers=session_cookie(admin)
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["role"], "admin")

    def test_invalid_payload_is_itemized(self) -> None:
        response = self.client.post(
            f"{API}/auth/sign-up",
            json={"name": "A", "email": "nope", "password": "1"},
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "Validation failed")
        self.assertEqual(
            {d["field"] for d in body["details"]}, {"name", "email", "password"}
        )

    def test_malformed_json_is_rejected(self) -> None:
        response = self.client.post(
            f"{API}/auth/sign-up",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"][0]["field"], "body")

    def test_deeply_nested_json_is_rejected(self) -> None:
        response = self.client.post(
            f"{API}/auth/sign-up",
            content=b"[" * 100000 + b"]" * 100000,
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"][0]["field"], "body")


class TestSignIn(ApiTestCase):
    def test_register_then_login_then_wrong_password(self) -> None:
        signed_up = self.client.post(
            f"{API}/auth/sign-up",
            json={"name": "Alice", "email": "a@x.com", "password": "pw123456"},
        )
        self.assertEqual(signed_up.status_code, 201)
        self.client.cookies.clear()

        response = self.client.post(
            f"{API}/auth/sign-in", json={"email": "a@x.com", "password": "pw123456"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["user"],
            {"id": signed_up.json()["user"]["id"], "name": "Alice", "email": "a@x.com", "role": "user"},
        )
        self.assertIn(COOKIE_NAME, response.cookies)

        wrong = self.client.post(
            f"{API}/auth/sign-in", json={"email": "a@x.com", "password": "wrong"}
        )
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), {"error": "Invalid credentials"})

    def test_unknown_email_looks_like_wrong_password(self) -> None:
        response = self.client.post(
            f"{API}/auth/sign-in", json={"email": "nobody@x.com", "password": "pw123456"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid credentials"})

    def test_session_cookie_authorizes_follow_up_requests(self) -> None:
        user = self.create_user(email="a@x.com", password="pw123456")
        self.client.post(f"{API}/auth/sign-in", json={"email": "a@x.com", "password": "pw123456"})
        response = self.client.patch(f"{API}/users/{user.id}", json={"name": "Alicia"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["name"], "Alicia")


class TestSignOut(ApiTestCase):
    def test_sign_out_clears_cookie(self) -> None:
        response = self.client.post(f"{API}/auth/sign-out")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "User signed out successfully"})
        set_cookie = response.headers["set-cookie"]
        self.assertIn(f"{COOKIE_NAME}=", set_cookie)
        self.assertIn("Max-Age=0", set_cookie)
