"""Unit tests for app.core.validation and the users/auth schemas."""

import unittest

from app.core.errors import ValidationFailedError
from app.core.validation import validate
from app.schemas.auth import SignInRequest, SignUpRequest
from app.schemas.users import UserIdParams, UserUpdate


class TestUserIdParams(unittest.TestCase):
    def test_accepts_digits(self) -> None:
        result = validate(UserIdParams, {"id": "42"})
        self.assertTrue(result.ok)
        self.assertEqual(result.data.user_id, 42)

    def test_rejects_non_numeric_and_negative(self) -> None:
        for raw in ("abc", "-1", "", "4.2", " 42", "٤٢"):
            with self.subTest(raw=raw):
                result = validate(UserIdParams, {"id": raw})
                self.assertFalse(result.ok)
                self.assertEqual(
                    result.issues, [{"field": "id", "message": "ID must be a valid integer"}]
                )

    def test_accepts_id_beyond_integer_column(self) -> None:
        result = validate(UserIdParams, {"id": "99999999999"})
        self.assertTrue(result.ok)
        self.assertEqual(result.data.user_id, 99999999999)


class TestUserUpdate(unittest.TestCase):
    def test_empty_update_is_valid(self) -> None:
        result = validate(UserUpdate, {})
        self.assertTrue(result.ok)
        self.assertEqual(result.data.model_dump(exclude_unset=True), {})

    def test_rejects_unknown_role(self) -> None:
        result = validate(UserUpdate, {"role": "superadmin"})
        self.assertFalse(result.ok)
        self.assertEqual(result.issues[0]["field"], "role")

    def test_normalizes_name_and_email(self) -> None:
        result = validate(UserUpdate, {"name": "  Bob  ", "email": "  Bob@Example.COM "})
        self.assertTrue(result.ok)
        self.assertEqual(
            result.data.model_dump(exclude_unset=True),
            {"name": "Bob", "email": "bob@example.com"},
        )

    def test_rejects_blank_name_and_bad_email(self) -> None:
        result = validate(UserUpdate, {"name": "   ", "email": "not-an-email"})
        self.assertFalse(result.ok)
        self.assertEqual({issue["field"] for issue in result.issues}, {"name", "email"})

    def test_rejects_overlong_email(self) -> None:
        result = validate(UserUpdate, {"email": "a" * 250 + "@x.com"})
        self.assertFalse(result.ok)
        self.assertIn("255", result.issues[0]["message"])

    def test_rejects_unknown_fields_and_nulls(self) -> None:
        result = validate(UserUpdate, {"password": "x", "name": None})
        self.assertFalse(result.ok)
        fields = {issue["field"] for issue in result.issues}
        self.assertEqual(fields, {"password", "name"})

    def test_rejects_non_object_body(self) -> None:
        self.assertFalse(validate(UserUpdate, ["name"]).ok)


class TestAuthSchemas(unittest.TestCase):
    def test_sign_up_defaults_role_to_user(self) -> None:
        result = validate(
            SignUpRequest, {"name": "Alice", "email": "A@X.com", "password": "pw1234"}
        )
        self.assertTrue(result.ok)
        self.assertEqual(result.data.role, "user")
        self.assertEqual(result.data.email, "a@x.com")

    def test_sign_up_rejects_short_password(self) -> None:
        result = validate(SignUpRequest, {"name": "Alice", "email": "a@x.com", "password": "pw"})
        self.assertFalse(result.ok)
        self.assertEqual(result.issues[0]["field"], "password")

    def test_sign_in_requires_both_fields(self) -> None:
        result = validate(SignInRequest, {"email": "a@x.com"})
        self.assertFalse(result.ok)
        self.assertEqual(result.issues, [{"field": "password", "message": "Field required"}])


class TestValidationResult(unittest.TestCase):
    def test_unwrap_raises_with_itemized_details(self) -> None:
        result = validate(UserIdParams, {"id": "abc"})
        with self.assertRaises(ValidationFailedError) as ctx:
            result.unwrap()
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(
            ctx.exception.to_body(),
            {
                "error": "Validation failed",
                "details": [{"field": "id", "message": "ID must be a valid integer"}],
            },
        )
