"""Tests for signup, email verification and login."""

from datetime import timedelta

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from checklist.db.base import utcnow
from checklist.db.models import User

SIGNUP = {"email": "newuser@example.com", "username": "new_user", "password": "SecureP@ss1"}


def _sent_code(mock_email_service) -> str:
    return mock_email_service.send_template.call_args.kwargs["context"]["code"]


class TestSignup:
    async def test_signup_creates_unverified_user(self, client, mock_email_service, db_session):
        response = await client.post("/api/auth/signup", json=SIGNUP)
        assert response.status_code == 201
        data = response.json()
        assert data["requires_verification"] is True
        assert data["email"] == "newuser@example.com"

        verified, otp_hash = (
            await db_session.execute(select(User.email_verified, User.otp_hash).where(User.username == "new_user"))
        ).one()
        assert verified is False
        assert otp_hash is not None

        mock_email_service.send_template.assert_called_once()
        assert mock_email_service.send_template.call_args.kwargs["template_name"] == "verification_code"
        code = _sent_code(mock_email_service)
        assert len(code) == 6 and code.isdigit()
        assert otp_hash != code

    async def test_email_failure_does_not_fail_signup(self, client, mock_email_service):
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/auth/signup", json=SIGNUP)
        assert response.status_code == 201

    async def test_duplicate_email_rejected(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        response = await client.post("/api/auth/signup", json={**SIGNUP, "username": "other_name"})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email or username already exists"

    async def test_duplicate_username_rejected(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        response = await client.post("/api/auth/signup", json={**SIGNUP, "email": "other@example.com"})
        assert response.status_code == 400

    async def test_disposable_email_rejected(self, client, mock_email_service):
        response = await client.post("/api/auth/signup", json={**SIGNUP, "email": "someone@mailinator.com"})
        assert response.status_code == 400
        assert "Disposable" in response.json()["error"]["message"]

    async def test_weak_password_rejected(self, client, mock_email_service):
        response = await client.post("/api/auth/signup", json={**SIGNUP, "password": "password"})
        assert response.status_code == 400
        assert response.json()["error"]["status"] == 400

    async def test_bad_username_rejected(self, client, mock_email_service):
        response = await client.post("/api/auth/signup", json={**SIGNUP, "username": "no spaces!"})
        assert response.status_code == 400
        assert "Username must be 3-20 characters" in response.json()["error"]["message"]
        mock_email_service.send_template.assert_not_called()


class TestVerifyEmail:
    async def test_correct_code_verifies_and_logs_in(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        code = _sent_code(mock_email_service)

        response = await client.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": code})
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email_verified"] is True

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200

    async def test_wrong_code_counts_attempts(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        code = _sent_code(mock_email_service)
        wrong = "000000" if code != "000000" else "111111"

        remaining = []
        for _ in range(3):
            response = await client.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": wrong})
            assert response.status_code == 400
            remaining.append(response.json()["error"]["attempts_remaining"])
        assert remaining == [2, 1, 0]

        # The budget is spent: even the right code is refused now
        response = await client.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": code})
        assert response.status_code == 429

    async def test_resend_resets_attempts(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        first = _sent_code(mock_email_service)
        wrong = "000000" if first != "000000" else "111111"
        for _ in range(3):
            await client.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": wrong})

        response = await client.post("/api/auth/resend-otp", json={"email": SIGNUP["email"]})
        assert response.status_code == 200
        fresh = _sent_code(mock_email_service)

        response = await client.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": fresh})
        assert response.status_code == 200

    async def test_already_verified(self, client, make_user, mock_email_service):
        user = await make_user("carol")
        response = await client.post("/api/auth/verify-email", json={"email": user["email"], "otp": "123456"})
        assert response.status_code == 400
        assert "already verified" in response.json()["error"]["message"]

        response = await client.post("/api/auth/resend-otp", json={"email": user["email"]})
        assert response.status_code == 400

    async def test_unknown_email(self, client):
        response = await client.post("/api/auth/verify-email", json={"email": "ghost@example.com", "otp": "123456"})
        assert response.status_code == 404

    async def test_malformed_code(self, client):
        response = await client.post("/api/auth/verify-email", json={"email": "ghost@example.com", "otp": "12ab"})
        assert response.status_code == 400

    async def test_resend_send_failure(self, client, mock_email_service):
        await client.post("/api/auth/signup", json=SIGNUP)
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/auth/resend-otp", json={"email": SIGNUP["email"]})
        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Failed to send verification email"


class TestConfiguredVerification:
    async def test_attempt_budget_and_ttl_follow_app_settings(self, make_app, mock_email_service, db_session):
        app = make_app(otp_max_attempts=5, otp_ttl_minutes=30)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            await ac.post("/api/auth/signup", json=SIGNUP)
            context = mock_email_service.send_template.call_args.kwargs["context"]
            assert context["expires_minutes"] == 30
            code = context["code"]
            wrong = "000000" if code != "000000" else "111111"

            remaining = []
            for _ in range(4):
                response = await ac.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": wrong})
                assert response.status_code == 400
                remaining.append(response.json()["error"]["attempts_remaining"])
            assert remaining == [4, 3, 2, 1]

            expires_at = (
                await db_session.execute(select(User.otp_expires_at).where(User.username == "new_user"))
            ).scalar_one()
            assert expires_at > utcnow() + timedelta(minutes=25)

            response = await ac.post("/api/auth/verify-email", json={"email": SIGNUP["email"], "otp": code})
            assert response.status_code == 200


class TestLogin:
    async def test_login_with_username_or_email(self, client, make_user):
        user = await make_user("dave")
        for identifier in ("dave", "dave@example.com", "DAVE@example.com"):
            response = await client.post(
                "/api/auth/login", json={"email_or_username": identifier, "password": user["password"]}
            )
            assert response.status_code == 200, identifier
            assert response.json()["user"]["username"] == "dave"
            assert response.json()["token"]

    async def test_wrong_password(self, client, make_user):
        await make_user("erin")
        response = await client.post("/api/auth/login", json={"email_or_username": "erin", "password": "Wrong@123"})
        assert response.status_code == 401
        assert response.json() == {"error": {"message": "Invalid credentials", "status": 401}}

    async def test_unknown_user(self, client):
        response = await client.post("/api/auth/login", json={"email_or_username": "nobody", "password": "Wrong@123"})
        assert response.status_code == 401

    async def test_logout(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200
