from datetime import timedelta

from conftest import bearer
from shopeasy.auth.service import create_access_token
from shopeasy.core.rate_limiter import limiter
from shopeasy.users.models import User

SIGNUP = {
    "name": "Jane Doe",
    "email": "Jane@Example.com",
    "password": "Secret123",
    "country": "Egypt",
    "contact": "+20 123 456 7890",
}


def _signup(client, **overrides):
    return client.post("/api/auth/signup", json={**SIGNUP, **overrides})


def _error_code(response):
    return response.json()["error"]["code"]


# --- Signup and OTP verification ---

def test_signup_buffers_registration_without_creating_user(client, db_session, notifier, pending_cache):
    response = _signup(client)

    assert response.status_code == 200
    assert response.json()["email"] == "jane@example.com"
    assert db_session.query(User).count() == 0
    assert len(pending_cache) == 1
    otp = notifier.last("otp")
    assert otp["email"] == "jane@example.com"
    assert len(otp["code"]) == 6


def test_verify_creates_exactly_one_user(client, db_session, notifier):
    _signup(client)
    code = notifier.last("otp")["code"]

    response = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": code})

    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["user"]["email"] == "jane@example.com"
    assert body["user"]["email_verified"] is True
    assert body["user"]["contact"] == "+201234567890"
    assert "password_hash" not in body["user"]
    assert db_session.query(User).count() == 1
    assert notifier.last("welcome")["email"] == "jane@example.com"

    again = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": code})
    assert again.status_code == 404
    assert _error_code(again) == "PENDING_REGISTRATION_NOT_FOUND"
    assert db_session.query(User).count() == 1


def test_verified_user_can_log_in_with_signup_password(client, notifier):
    _signup(client)
    client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": notifier.last("otp")["code"]})

    response = client.post("/api/auth/login", json={"email": "JANE@example.com", "password": "Secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["last_login"] is not None


def test_verify_after_ttl_fails_even_with_right_code(client, clock, notifier, pending_cache):
    _signup(client)
    code = notifier.last("otp")["code"]
    clock.advance(minutes=11)

    response = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": code})

    assert response.status_code == 400
    assert _error_code(response) == "OTP_EXPIRED"
    assert len(pending_cache) == 0


def test_wrong_otp_keeps_pending_entry(client, notifier, pending_cache):
    _signup(client)
    code = notifier.last("otp")["code"]
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": wrong})

    assert response.status_code == 400
    assert _error_code(response) == "INVALID_OTP"
    assert len(pending_cache) == 1
    ok = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": code})
    assert ok.status_code == 200


def test_otp_guessing_is_rate_limited(client, mocker, notifier):
    mocker.patch.object(limiter, "enabled", True)
    limiter.reset()
    _signup(client)
    code = notifier.last("otp")["code"]
    wrong = "000000" if code != "000000" else "111111"

    statuses = [
        client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": wrong}).status_code
        for _ in range(11)
    ]

    assert statuses[:10] == [400] * 10
    assert statuses[10] == 429
    limiter.reset()


def test_signup_requires_every_field(client):
    response = client.post("/api/auth/signup", json={"email": "jane@example.com"})
    assert response.status_code == 400
    assert _error_code(response) == "MISSING_REQUIRED_FIELD"
    assert set(response.json()["error"]["context"]["missing_fields"]) == {"name", "password", "country", "contact"}


def test_signup_rejects_short_password(client):
    response = _signup(client, password="12345")
    assert response.status_code == 400
    assert _error_code(response) == "WEAK_PASSWORD"


def test_signup_rejects_registered_email(client, make_user):
    make_user(email="jane@example.com")
    response = _signup(client)
    assert response.status_code == 409
    assert _error_code(response) == "EMAIL_ALREADY_REGISTERED"


def test_signup_rejects_bad_contact(client):
    response = _signup(client, contact="12")
    assert response.status_code == 400


def test_failed_otp_delivery_removes_pending_entry(client, notifier, pending_cache):
    notifier.failing.add("otp")

    response = _signup(client)

    assert response.status_code == 502
    assert _error_code(response) == "EMAIL_DELIVERY_FAILED"
    assert len(pending_cache) == 0


def test_failed_welcome_email_does_not_block_verification(client, db_session, notifier):
    _signup(client)
    notifier.failing.add("welcome")

    response = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": notifier.last("otp")["code"]})

    assert response.status_code == 200
    assert db_session.query(User).count() == 1


def test_resend_issues_new_code(client, notifier):
    _signup(client)
    response = client.post("/api/auth/resend", json={"email": "jane@example.com"})

    assert response.status_code == 200
    assert len(notifier.of_kind("otp")) == 2
    latest = notifier.last("otp")["code"]
    ok = client.post("/api/auth/verify", json={"email": "jane@example.com", "otp": latest})
    assert ok.status_code == 200


def test_resend_without_signup_is_not_found(client):
    response = client.post("/api/auth/resend", json={"email": "ghost@example.com"})
    assert response.status_code == 404


def test_failed_resend_keeps_entry_for_next_attempt(client, notifier, pending_cache):
    _signup(client)
    notifier.failing.add("otp")
    failed = client.post("/api/auth/resend", json={"email": "jane@example.com"})
    assert failed.status_code == 502
    assert len(pending_cache) == 1

    notifier.failing.clear()
    retried = client.post("/api/auth/resend", json={"email": "jane@example.com"})
    assert retried.status_code == 200


# --- Login ---

def test_login_wrong_password(client, test_user):
    response = client.post("/api/auth/login", json={"email": test_user.email, "password": "nope-nope"})
    assert response.status_code == 401
    assert _error_code(response) == "INVALID_CREDENTIALS"


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Secret123"})
    assert response.status_code == 404
    assert _error_code(response) == "USER_NOT_FOUND"


def test_login_deactivated_account(client, make_user):
    user = make_user(is_active=False)
    response = client.post("/api/auth/login", json={"email": user.email, "password": "Secret123"})
    assert response.status_code == 403
    assert _error_code(response) == "ACCOUNT_DEACTIVATED"


# --- Session tokens ---

def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert _error_code(response) == "TOKEN_MISSING"


def test_garbage_token_is_invalid(client):
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert _error_code(response) == "TOKEN_INVALID"


def test_expired_token(client, test_user):
    token = create_access_token(test_user, expires_delta=timedelta(seconds=-30))
    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert _error_code(response) == "TOKEN_EXPIRED"


def test_token_for_deleted_user_is_invalid(client, db_session, make_user):
    user = make_user()
    headers = bearer(user)
    db_session.delete(user)
    db_session.commit()

    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 401
    assert _error_code(response) == "TOKEN_INVALID"


def test_deactivated_user_token_is_forbidden(client, db_session, test_user, auth_headers):
    test_user.is_active = False
    db_session.commit()

    response = client.get("/api/auth/profile", headers=auth_headers)
    assert response.status_code == 403
    assert _error_code(response) == "ACCOUNT_DEACTIVATED"


def test_logout_revokes_token(client, fake_redis, auth_headers):
    assert client.get("/api/auth/profile", headers=auth_headers).status_code == 200

    response = client.post("/api/auth/logout", headers=auth_headers)
    assert response.status_code == 200
    assert any(key.startswith("denylist:") for key in fake_redis.store)

    after = client.get("/api/auth/profile", headers=auth_headers)
    assert after.status_code == 401
    assert _error_code(after) == "TOKEN_REVOKED"


def test_non_admin_on_admin_route(client, auth_headers):
    response = client.get("/api/admin/stats", headers=auth_headers)
    assert response.status_code == 403
    assert _error_code(response) == "ADMIN_REQUIRED"


# --- Profile ---

def test_update_profile(client, auth_headers):
    response = client.patch(
        "/api/auth/profile",
        headers=auth_headers,
        json={"name": "  Renamed  ", "contact": "020-1234-56789"},
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["name"] == "Renamed"
    assert user["contact"] == "020123456789"


def test_update_profile_rejects_bad_contact(client, auth_headers):
    response = client.patch("/api/auth/profile", headers=auth_headers, json={"contact": "123"})
    assert response.status_code == 422
