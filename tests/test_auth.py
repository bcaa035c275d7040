import os
from datetime import timedelta
from uuid import uuid4

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

from app.core.config import settings
from app.core.security import create_jwt, decode_jwt, read_session_token
from app.models.user import User
from tests.base import API, ApiTestCase


class AuthTests(ApiTestCase):
    def test_login_returns_user_token_and_session_cookie(self):
        user = self.create_user(email="owner@example.com", password="secret-pass", name="Owner")

        response = self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret-pass"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["user"]["id"], str(user.id))
        self.assertEqual(body["user"]["email"], "owner@example.com")
        self.assertEqual(body["user"]["name"], "Owner")
        self.assertEqual(body["user"]["role"], "admin")
        self.assertNotIn("passwordHash", body["user"])

        claims = decode_jwt(body["token"], settings.JWT_SECRET)
        self.assertEqual(claims["userId"], str(user.id))
        self.assertEqual(claims["email"], "owner@example.com")
        self.assertEqual(claims["name"], "Owner")
        self.assertEqual(claims["exp"] - claims["iat"], 7 * 24 * 3600)

        set_cookie = response.headers.get("set-cookie", "")
        self.assertIn(f"{settings.AUTH_COOKIE_NAME}=", set_cookie)
        self.assertIn("HttpOnly", set_cookie)
        self.assertIn("SameSite=strict", set_cookie)
        self.assertIn(f"Max-Age={7 * 24 * 3600}", set_cookie)
        self.assertNotIn("Secure", set_cookie)

    def test_login_cookie_is_secure_in_production(self):
        self.create_user()
        settings.APP_ENV = "production"
        response = self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret-pass"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Secure", response.headers.get("set-cookie", ""))

    def test_login_email_is_case_insensitive(self):
        self.create_user(email="owner@example.com")
        response = self.client.post(f"{API}/auth/login", json={"email": "  Owner@Example.com ", "password": "secret-pass"})
        self.assertEqual(response.status_code, 200)

    def test_login_requires_email_and_password(self):
        for payload in ({}, {"email": "owner@example.com"}, {"password": "secret-pass"}, {"email": "", "password": ""}):
            response = self.client.post(f"{API}/auth/login", json=payload)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "Email and password are required"})

    def test_login_rejects_bad_credentials_with_same_message(self):
        self.create_user()
        wrong_password = self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "nope-nope"})
        unknown_user = self.client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": "secret-pass"})
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_user.status_code, 401)
        self.assertEqual(wrong_password.json(), unknown_user.json())
        self.assertEqual(wrong_password.json()["error"], "Invalid email or password")

    def test_login_rejects_deactivated_user(self):
        user = self.create_user()
        with self.SessionLocal() as db:
            db.get(User, user.id).is_active = False
            db.commit()
        response = self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret-pass"})
        self.assertEqual(response.status_code, 401)

    def test_me_with_bearer_token(self):
        user = self.create_user()
        response = self.client.get(f"{API}/auth/me", headers=self.auth_headers(user))
        self.assertEqual(response.status_code, 200)
        body = response.json()["user"]
        self.assertEqual(body["id"], str(user.id))
        self.assertEqual(body["email"], user.email)
        self.assertIn("createdAt", body)

    def test_me_with_session_cookie_from_login(self):
        self.create_user()
        login = self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret-pass"})
        self.assertEqual(login.status_code, 200)

        response = self.client.get(f"{API}/auth/me")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["email"], "owner@example.com")

    def test_me_requires_valid_session(self):
        response = self.client.get(f"{API}/auth/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Unauthorized"})

        forged = create_jwt({"userId": str(uuid4()), "email": "x@example.com", "name": "X"}, "other-secret", timedelta(days=1))
        response = self.client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {forged}"})
        self.assertEqual(response.status_code, 401)

        response = self.client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(response.status_code, 401)

    def test_me_for_removed_user_is_not_found(self):
        user = self.create_user()
        headers = self.auth_headers(user)
        with self.SessionLocal() as db:
            db.delete(db.get(User, user.id))
            db.commit()
        response = self.client.get(f"{API}/auth/me", headers=headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "User not found"})

    def test_expired_token_is_rejected(self):
        user = self.create_user()
        expired = create_jwt(
            {"userId": str(user.id), "email": user.email, "name": user.name},
            settings.JWT_SECRET,
            timedelta(seconds=-10),
        )
        self.assertIsNone(read_session_token(expired))
        response = self.client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {expired}"})
        self.assertEqual(response.status_code, 401)

    def test_register_creates_user_and_starts_session(self):
        response = self.client.post(
            f"{API}/auth/register",
            json={"email": "New@Example.com", "password": "long-enough", "name": "New Admin"},
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["user"]["email"], "new@example.com")
        self.assertEqual(body["user"]["role"], "admin")
        self.assertTrue(read_session_token(body["token"]))

        login = self.client.post(f"{API}/auth/login", json={"email": "new@example.com", "password": "long-enough"})
        self.assertEqual(login.status_code, 200)

    def test_register_rejects_duplicates_and_weak_passwords(self):
        self.create_user(email="taken@example.com")
        duplicate = self.client.post(
            f"{API}/auth/register", json={"email": "TAKEN@example.com", "password": "long-enough"}
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json(), {"error": "User already exists"})

        weak = self.client.post(f"{API}/auth/register", json={"email": "fresh@example.com", "password": "short"})
        self.assertEqual(weak.status_code, 400)

        missing = self.client.post(f"{API}/auth/register", json={"email": "fresh@example.com"})
        self.assertEqual(missing.status_code, 400)

    def test_register_can_be_disabled(self):
        settings.REGISTRATION_ENABLED = False
        response = self.client.post(
            f"{API}/auth/register", json={"email": "new@example.com", "password": "long-enough"}
        )
        self.assertEqual(response.status_code, 404)
        with self.SessionLocal() as db:
            self.assertEqual(db.query(User).count(), 0)

    def test_logout_clears_session_cookie(self):
        self.create_user()
        self.client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret-pass"})
        self.assertEqual(self.client.get(f"{API}/auth/me").status_code, 200)

        response = self.client.post(f"{API}/auth/logout")
        self.assertEqual(response.status_code, 200)
        self.assertIn(f'{settings.AUTH_COOKIE_NAME}=""', response.headers.get("set-cookie", ""))
        self.assertEqual(self.client.get(f"{API}/auth/me").status_code, 401)
