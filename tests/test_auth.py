from datetime import timedelta

from pg_finder.models.base import utcnow
from pg_finder.models.otp import OneTimeCode, OtpPurpose
from pg_finder.models.user import User


def send_registration(client, email="alice@example.com", password="Secret123", name="Alice", **extra):
    response = client.post("/api/auth/send-otp", json={"email": email, "name": name, "password": password, **extra})
    assert response.status_code == 200, response.text
    return response.json()["data"]["tempData"]


# --- Registration ---

def test_registration_end_to_end(client, notifier, db_session):
    response = client.post(
        "/api/auth/send-otp",
        json={"email": "alice@example.com", "name": "Alice", "password": "Secret123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "alice@example.com"
    temp_data = body["data"]["tempData"]

    # nothing persisted until the code is verified
    assert db_session.query(User).count() == 0
    assert notifier.sent[-1]["template"] == "registration_otp"
    assert notifier.sent[-1]["context"]["code"] == "482193"

    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "alice@example.com", "otp": "482193", "tempData": temp_data},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["email"] == "alice@example.com"
    assert data["user"]["role"] == "seeker"
    assert data["user"]["isVerified"] is True
    assert "hashed_password" not in data["user"]
    assert "welcome" in notifier.templates()

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["user"]["id"] == data["user"]["id"]


def test_registration_bundle_does_not_expose_password(client):
    temp_data = send_registration(client, password="Secret123")
    assert "Secret123" not in temp_data


def test_email_is_normalised(client, register_user):
    user, _ = register_user(email="Bob@Example.COM", name="Bob")
    assert user["email"] == "bob@example.com"

    response = client.post("/api/auth/login", json={"email": "BOB@example.com", "password": "Secret123"})
    assert response.status_code == 200


def test_owner_role_can_be_requested(register_user):
    user, _ = register_user(role="owner")
    assert user["role"] == "owner"


def test_send_otp_for_existing_email_is_conflict(client, register_user):
    register_user()
    response = client.post(
        "/api/auth/send-otp",
        json={"email": "alice@example.com", "name": "Alice Again", "password": "Secret123"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"
    assert response.json()["message"] == "User with this email already exists"


def test_send_otp_validation_errors(client):
    response = client.post("/api/auth/send-otp", json={"email": "not-an-email", "name": "A", "password": "123"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "ValidationError"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "name", "password"} <= fields


def test_verify_with_wrong_code_fails(client, db_session):
    temp_data = send_registration(client)
    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "alice@example.com", "otp": "000000", "tempData": temp_data},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidOrExpiredCode"
    assert db_session.query(User).count() == 0


def test_expired_registration_code_is_rejected(client, db_session):
    temp_data = send_registration(client)
    db_session.query(OneTimeCode).update({OneTimeCode.expires_at: utcnow() - timedelta(minutes=1)})
    db_session.commit()

    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "alice@example.com", "otp": "482193", "tempData": temp_data},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"
    assert db_session.query(User).count() == 0


def test_registration_code_cannot_be_used_twice(client):
    temp_data = send_registration(client)
    payload = {"email": "alice@example.com", "otp": "482193", "tempData": temp_data}

    assert client.post("/api/auth/verify-otp", json=payload).status_code == 201
    second = client.post("/api/auth/verify-otp", json=payload)
    assert second.status_code == 400
    assert second.json()["error"] == "InvalidOrExpiredCode"


def test_second_verification_for_same_email_is_conflict(client, otp_codes, db_session):
    otp_codes.queue.extend(["111111", "222222"])
    first = send_registration(client)
    second = send_registration(client)

    ok = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "111111", "tempData": first})
    assert ok.status_code == 201

    late = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "222222", "tempData": second})
    assert late.status_code == 400
    assert late.json()["error"] == "Conflict"
    assert db_session.query(User).count() == 1


def test_tampered_registration_bundle_is_rejected(client):
    temp_data = send_registration(client)
    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "alice@example.com", "otp": "482193", "tempData": temp_data[:-4] + "abcd"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_registration_bundle_is_bound_to_its_email(client):
    temp_data = send_registration(client)
    send_registration(client, email="mallory@example.com", name="Mallory")
    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "mallory@example.com", "otp": "482193", "tempData": temp_data},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_resend_invalidates_previous_code(client, otp_codes, notifier):
    otp_codes.queue.extend(["111111", "222222"])
    temp_data = send_registration(client)

    resent = client.post("/api/auth/resend-otp", json={"email": "alice@example.com", "tempData": temp_data})
    assert resent.status_code == 200
    assert notifier.sent[-1]["context"]["code"] == "222222"

    stale = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "111111", "tempData": temp_data})
    assert stale.status_code == 400

    fresh = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "222222", "tempData": temp_data})
    assert fresh.status_code == 201


def test_registration_code_delivery_failure(client, notifier):
    notifier.fail_templates.add("registration_otp")
    response = client.post(
        "/api/auth/send-otp",
        json={"email": "alice@example.com", "name": "Alice", "password": "Secret123"},
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to send OTP email", "error": "DeliveryFailed"}


def test_welcome_email_failure_does_not_block_registration(notifier, register_user):
    notifier.fail_templates.add("welcome")
    user, _ = register_user()
    assert user["email"] == "alice@example.com"


# --- Login and session ---

def test_login_success(client, register_user):
    register_user()
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["email"] == "alice@example.com"
    assert data["token"]


def test_login_errors_do_not_reveal_which_part_was_wrong(client, register_user):
    register_user()
    wrong_password = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope123"})
    unknown_email = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Secret123"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["message"] == "Invalid email or password"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "No token, authorization denied"


def test_me_rejects_invalid_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["message"] == "Could not validate credentials"


def test_registration_bundle_is_not_a_session_token(client):
    temp_data = send_registration(client)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {temp_data}"})
    assert response.status_code == 401


def test_logout(client):
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json()["success"] is True


# --- Role elevation ---

def test_become_owner_once(client, register_user):
    _, headers = register_user()

    response = client.post("/api/auth/become-owner", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "owner"

    again = client.post("/api/auth/become-owner", headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "User is already an owner"


# --- Password reset ---

def test_forgot_password_for_unknown_email(client, db_session, notifier):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 404
    assert response.json()["message"] == "User with this email does not exist"
    assert db_session.query(OneTimeCode).filter(OneTimeCode.email == "nobody@example.com").count() == 0
    assert notifier.sent == []


def test_reset_password_directly_with_code(client, register_user, otp_codes, notifier):
    register_user()
    otp_codes.queue.append("777777")
    assert client.post("/api/auth/forgot-password", json={"email": "alice@example.com"}).status_code == 200
    assert notifier.sent[-1]["template"] == "password_reset_otp"

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "NewSecret456"},
    )
    assert response.status_code == 200
    assert "password_reset_confirmation" in notifier.templates()

    old = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"})
    new = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "NewSecret456"})
    assert old.status_code == 401
    assert new.status_code == 200

    reused = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "Another789"},
    )
    assert reused.status_code == 400


def test_verify_then_reset_within_grace_window(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})

    verified = client.post("/api/auth/verify-reset-otp", json={"email": "alice@example.com", "otp": "777777"})
    assert verified.status_code == 200

    record = db_session.query(OneTimeCode).filter(OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value).one()
    assert record.is_used is True
    assert record.verified_at is not None

    # verification consumed the code
    again = client.post("/api/auth/verify-reset-otp", json={"email": "alice@example.com", "otp": "777777"})
    assert again.status_code == 400

    reset = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "NewSecret456"},
    )
    assert reset.status_code == 200

    twice = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "Another789"},
    )
    assert twice.status_code == 400
    assert twice.json()["error"] == "InvalidOrExpiredCode"


def test_reset_after_grace_window_fails(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    client.post("/api/auth/verify-reset-otp", json={"email": "alice@example.com", "otp": "777777"})

    db_session.query(OneTimeCode).filter(OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value).update(
        {OneTimeCode.verified_at: utcnow() - timedelta(minutes=11)}
    )
    db_session.commit()

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "NewSecret456"},
    )
    assert response.status_code == 400


def test_verify_otp_without_bundle_checks_reset_code(client, register_user, otp_codes):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})

    response = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "777777"})
    assert response.status_code == 200
    assert "reset your password" in response.json()["message"]


def test_registration_code_cannot_reset_password(client, register_user):
    register_user()
    # 482193 was issued for registration, not for a reset
    response = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "482193", "newPassword": "NewSecret456"},
    )
    assert response.status_code == 400


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def test_registration_purpose_without_bundle_leaves_reset_code_alone(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})

    response = client.post(
        "/api/auth/verify-otp",
        json={"email": "alice@example.com", "otp": "777777", "purpose": "registration"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"

    record = db_session.query(OneTimeCode).filter(OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value).one()
    assert record.is_used is False
    assert record.verified_at is None


def expire_reset_codes(db_session):
    db_session.query(OneTimeCode).filter(OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value).update(
        {OneTimeCode.expires_at: utcnow() - timedelta(seconds=1)}
    )
    db_session.commit()


def test_expired_reset_code_is_rejected_by_verify(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    expire_reset_codes(db_session)

    response = client.post("/api/auth/verify-reset-otp", json={"email": "alice@example.com", "otp": "777777"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidOrExpiredCode"


def test_expired_reset_code_is_rejected_by_reset(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    expire_reset_codes(db_session)

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "NewSecret456"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidOrExpiredCode"

    old = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"})
    new = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "NewSecret456"})
    assert old.status_code == 200
    assert new.status_code == 401


def test_code_verified_before_expiry_stays_redeemable_for_grace_window(client, register_user, otp_codes, db_session):
    register_user()
    otp_codes.queue.append("777777")
    client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert client.post("/api/auth/verify-reset-otp", json={"email": "alice@example.com", "otp": "777777"}).status_code == 200

    # verified one minute before expiry, now nine minutes past it
    now = utcnow()
    db_session.query(OneTimeCode).filter(OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value).update({
        OneTimeCode.verified_at: now - timedelta(minutes=9, seconds=30),
        OneTimeCode.expires_at: now - timedelta(minutes=8, seconds=30),
    })
    db_session.commit()

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "alice@example.com", "otp": "777777", "newPassword": "NewSecret456"},
    )
    assert response.status_code == 200
