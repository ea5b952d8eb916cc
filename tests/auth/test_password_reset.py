"""Tests for the forgot/reset password flow."""

import hashlib
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select, update

from checklist.db.base import utcnow
from checklist.db.models import User

GENERIC = "If an account with that email exists, a password reset link has been sent."


def _token_from_email(mock_email_service) -> str:
    url = mock_email_service.send_template.call_args.kwargs["context"]["reset_url"]
    return parse_qs(urlparse(url).query)["token"][0]


class TestForgotPassword:
    async def test_unknown_email_gets_generic_message(self, client, mock_email_service):
        response = await client.post("/api/password/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == GENERIC
        mock_email_service.send_template.assert_not_called()

    async def test_known_email_stores_only_hash(self, client, make_user, mock_email_service, db_session):
        user = await make_user("frank")
        response = await client.post("/api/password/forgot-password", json={"email": user["email"]})
        assert response.status_code == 200
        assert response.json()["message"] == GENERIC

        token = _token_from_email(mock_email_service)
        stored, expires_at = (
            await db_session.execute(
                select(User.reset_token_hash, User.reset_token_expires_at).where(User.id == user["id"])
            )
        ).one()
        assert stored == hashlib.sha256(token.encode()).hexdigest()
        assert timedelta(minutes=59) < expires_at - utcnow() <= timedelta(hours=1)

    async def test_send_failure_is_500(self, client, make_user, mock_email_service):
        user = await make_user("gina")
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/password/forgot-password", json={"email": user["email"]})
        assert response.status_code == 500

    async def test_link_and_expiry_follow_app_settings(self, make_app, make_user, mock_email_service, db_session):
        user = await make_user("hana")
        app = make_app(password_reset_token_ttl_minutes=15, frontend_base_url="https://checklist.example")
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/api/password/forgot-password", json={"email": user["email"]})
        assert response.status_code == 200

        context = mock_email_service.send_template.call_args.kwargs["context"]
        assert context["reset_url"].startswith("https://checklist.example/reset-password?token=")
        assert context["expires_minutes"] == 15
        expires_at = (
            await db_session.execute(select(User.reset_token_expires_at).where(User.id == user["id"]))
        ).scalar_one()
        assert expires_at - utcnow() <= timedelta(minutes=15)


class TestResetPassword:
    async def test_reset_then_login_and_token_is_single_use(self, client, make_user, mock_email_service):
        user = await make_user("hank")
        await client.post("/api/password/forgot-password", json={"email": user["email"]})
        token = _token_from_email(mock_email_service)

        check = await client.get(f"/api/password/verify-reset-token/{token}")
        assert check.json() == {"valid": True}

        response = await client.post(
            "/api/password/reset-password", json={"token": token, "new_password": "BrandNew@123"}
        )
        assert response.status_code == 200

        login = await client.post(
            "/api/auth/login", json={"email_or_username": "hank", "password": "BrandNew@123"}
        )
        assert login.status_code == 200
        old = await client.post("/api/auth/login", json={"email_or_username": "hank", "password": user["password"]})
        assert old.status_code == 401

        again = await client.post(
            "/api/password/reset-password", json={"token": token, "new_password": "Another@123"}
        )
        assert again.status_code == 400
        assert again.json()["error"]["message"] == "Invalid or expired reset token"

        check = await client.get(f"/api/password/verify-reset-token/{token}")
        assert check.status_code == 400

    async def test_weak_new_password(self, client, make_user, mock_email_service):
        user = await make_user("ivy")
        await client.post("/api/password/forgot-password", json={"email": user["email"]})
        token = _token_from_email(mock_email_service)

        response = await client.post("/api/password/reset-password", json={"token": token, "new_password": "weak"})
        assert response.status_code == 400
        assert "at least 8" in response.json()["error"]["message"]

    async def test_expired_token(self, client, make_user, mock_email_service, db_session):
        user = await make_user("jack")
        await client.post("/api/password/forgot-password", json={"email": user["email"]})
        token = _token_from_email(mock_email_service)
        await db_session.execute(
            update(User).where(User.id == user["id"]).values(reset_token_expires_at=utcnow() - timedelta(minutes=1))
        )
        await db_session.commit()

        response = await client.post(
            "/api/password/reset-password", json={"token": token, "new_password": "BrandNew@123"}
        )
        assert response.status_code == 400

    async def test_unknown_token(self, client):
        response = await client.post(
            "/api/password/reset-password", json={"token": "deadbeef", "new_password": "BrandNew@123"}
        )
        assert response.status_code == 400
