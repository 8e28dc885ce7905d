"""
Tests for login, the owner OTP step, password changes and token checks.

Covers both AuthService directly and the /api/auth routes.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from test_fixtures import (
    CUSTOMER_PASSWORD,
    OWNER_PASSWORD,
    auth_headers,
    client,
    db_session,
    fixed_otp,
    make_customer,
    make_owner,
    sms,
)
from app.exceptions import (
    ForbiddenError,
    ServiceUnavailableError,
    ServiceValidationError,
    UnauthorizedError,
)
from services import security
from services.auth_service import AuthService


# =============================================================================
# LOGIN
# =============================================================================


def test_customer_login_with_user_code_returns_token(db_session: Session):
    """
    Verifies:
    - Customers log in with their CUST#### code
    - A token is issued without an OTP step
    """
    customer = make_customer(db_session)

    result = AuthService.login(db_session, customer.user_code, CUSTOMER_PASSWORD)

    assert result["requires_otp"] is False
    assert result["user"].id == customer.id
    payload = security.decode_access_token(result["token"])
    assert payload["sub"] == str(customer.id)
    assert payload["role"] == "customer"


def test_customer_login_with_mobile(db_session: Session):
    customer = make_customer(db_session)

    result = AuthService.login(db_session, customer.mobile, CUSTOMER_PASSWORD)

    assert result["user"].user_code == "CUST1001"


def test_login_wrong_password_is_invalid_credentials(db_session: Session):
    customer = make_customer(db_session)

    with pytest.raises(UnauthorizedError) as exc_info:
        AuthService.login(db_session, customer.user_code, "wrong-password")

    assert exc_info.value.message == "Invalid credentials"


def test_login_unknown_user_is_invalid_credentials(db_session: Session):
    with pytest.raises(UnauthorizedError):
        AuthService.login(db_session, "CUST9999", CUSTOMER_PASSWORD)


def test_login_inactive_customer_forbidden(db_session: Session):
    customer = make_customer(db_session, is_active=False)

    with pytest.raises(ForbiddenError):
        AuthService.login(db_session, customer.user_code, CUSTOMER_PASSWORD)


def test_login_deleted_customer_forbidden(db_session: Session):
    customer = make_customer(db_session)
    customer.deleted_at = datetime.utcnow()
    db_session.commit()

    with pytest.raises(ForbiddenError):
        AuthService.login(db_session, customer.user_code, CUSTOMER_PASSWORD)


def test_login_prefers_live_account_over_deleted_one_with_same_mobile(db_session: Session):
    """
    Verifies:
    - A mobile freed by a soft delete can belong to a new customer
    - Login by that mobile finds the live account
    """
    old = make_customer(db_session, name="Old Account")
    old.deleted_at = datetime.utcnow()
    old.is_active = False
    db_session.commit()
    new = make_customer(db_session, name="New Account", mobile=old.mobile)

    result = AuthService.login(db_session, new.mobile, CUSTOMER_PASSWORD)

    assert result["user"].id == new.id


# =============================================================================
# OWNER OTP
# =============================================================================


def test_owner_login_requires_otp(db_session: Session, sms, fixed_otp):
    """
    Verifies:
    - Owner login returns an OTP challenge with a masked mobile
    - The OTP goes out by SMS and only its hash is stored
    """
    owner = make_owner(db_session)

    result = AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)

    assert result["requires_otp"] is True
    assert result["user_id"] == owner.id
    assert result["mobile"] == "******0001"
    assert any(fixed_otp in text for text in sms.to(owner.mobile))

    db_session.refresh(owner)
    assert owner.otp_hash and owner.otp_hash != fixed_otp
    assert owner.otp_attempts == 0
    assert owner.otp_expires_at > datetime.utcnow() + timedelta(minutes=4)


def test_owner_login_sms_failure_clears_otp(db_session: Session, sms):
    owner = make_owner(db_session)
    sms.fail = True

    with pytest.raises(ServiceUnavailableError):
        AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)

    db_session.refresh(owner)
    assert owner.otp_hash is None
    assert owner.otp_expires_at is None


def test_verify_otp_success_issues_token_and_clears_state(db_session: Session, sms, fixed_otp):
    owner = make_owner(db_session)
    AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)

    result = AuthService.verify_otp(db_session, owner.id, fixed_otp)

    assert result["token"]
    assert owner.otp_hash is None
    assert owner.otp_attempts == 0


def test_verify_otp_wrong_code_counts_attempts(db_session: Session, sms, fixed_otp):
    """
    Verifies:
    - Each wrong OTP increments the attempt counter
    - attempts_remaining is reported
    - After three failures even the right OTP is refused
    """
    owner = make_owner(db_session)
    AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)

    with pytest.raises(ServiceValidationError) as first:
        AuthService.verify_otp(db_session, owner.id, "000000")
    assert first.value.message == "Invalid OTP"
    assert first.value.details == {"attempts_remaining": 2}

    for _ in range(2):
        with pytest.raises(ServiceValidationError):
            AuthService.verify_otp(db_session, owner.id, "000000")

    with pytest.raises(ServiceValidationError) as locked:
        AuthService.verify_otp(db_session, owner.id, fixed_otp)
    assert locked.value.message == "Maximum OTP attempts exceeded"


def test_verify_otp_expired(db_session: Session, sms, fixed_otp):
    owner = make_owner(db_session)
    AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)
    owner.otp_expires_at = datetime.utcnow() - timedelta(seconds=1)
    db_session.commit()

    with pytest.raises(ServiceValidationError) as exc_info:
        AuthService.verify_otp(db_session, owner.id, fixed_otp)

    assert exc_info.value.message == "OTP expired"


def test_verify_otp_without_login(db_session: Session):
    owner = make_owner(db_session)

    with pytest.raises(ServiceValidationError) as exc_info:
        AuthService.verify_otp(db_session, owner.id, "123456")

    assert exc_info.value.message == "No OTP generated"


def test_verify_otp_for_customer_forbidden(db_session: Session):
    customer = make_customer(db_session)

    with pytest.raises(ForbiddenError):
        AuthService.verify_otp(db_session, customer.id, "123456")


def test_resend_otp_replaces_code(db_session: Session, sms, monkeypatch):
    owner = make_owner(db_session)
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(security, "generate_otp", lambda length=None: next(codes))
    AuthService.login(db_session, owner.user_code, OWNER_PASSWORD)

    AuthService.resend_otp(db_session, owner.id)

    with pytest.raises(ServiceValidationError):
        AuthService.verify_otp(db_session, owner.id, "111111")
    assert AuthService.verify_otp(db_session, owner.id, "222222")["token"]


# =============================================================================
# PASSWORDS AND TOKENS
# =============================================================================


@pytest.mark.parametrize(
    "new_password, message",
    [
        ("Ab1", "Password must be at least 8 characters long"),
        ("ABCDEFG1", "Password must contain at least one lowercase letter"),
        ("abcdefg1", "Password must contain at least one uppercase letter"),
        ("Abcdefgh", "Password must contain at least one number"),
        ("Aa1" + "x" * 80, "Password must be at most 72 bytes long"),
        ("Aa1" + "\u00e9" * 40, "Password must be at most 72 bytes long"),
    ],
)
def test_change_password_policy(db_session: Session, new_password, message):
    customer = make_customer(db_session)

    with pytest.raises(ServiceValidationError) as exc_info:
        AuthService.change_password(db_session, customer, CUSTOMER_PASSWORD, new_password)

    assert exc_info.value.message == message


def test_change_password_clears_force_flag(db_session: Session):
    customer = make_customer(db_session)
    customer.force_password_change = True
    customer.is_password_changed = False
    db_session.commit()

    AuthService.change_password(db_session, customer, CUSTOMER_PASSWORD, "NewTiffin2025")

    assert customer.is_password_changed is True
    assert customer.force_password_change is False
    assert AuthService.login(db_session, customer.user_code, "NewTiffin2025")["token"]


def test_change_password_wrong_current(db_session: Session):
    customer = make_customer(db_session)

    with pytest.raises(UnauthorizedError):
        AuthService.change_password(db_session, customer, "nope", "NewTiffin2025")


def test_change_password_must_differ(db_session: Session):
    customer = make_customer(db_session, password="Tiffin2025")

    with pytest.raises(ServiceValidationError):
        AuthService.change_password(db_session, customer, "Tiffin2025", "Tiffin2025")


def test_token_for_deleted_user_rejected(db_session: Session):
    customer = make_customer(db_session)
    token = security.create_access_token(customer.id, "customer")
    customer.deleted_at = datetime.utcnow()
    db_session.commit()

    with pytest.raises(UnauthorizedError):
        AuthService.authenticate_token(db_session, token)


def test_expired_token_rejected(db_session: Session):
    customer = make_customer(db_session)
    token = security.create_access_token(customer.id, "customer", timedelta(seconds=-1))

    with pytest.raises(UnauthorizedError) as exc_info:
        AuthService.authenticate_token(db_session, token)

    assert exc_info.value.code == "TOKEN_EXPIRED"


# =============================================================================
# ROUTES
# =============================================================================


def test_login_route_and_me(client, db_session: Session):
    customer = make_customer(db_session)

    response = client.post(
        "/api/auth/login",
        json={"identifier": customer.user_code, "password": CUSTOMER_PASSWORD},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    token = body["data"]["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["user_code"] == customer.user_code
    assert "password_hash" not in me.json()["data"]


def test_login_route_invalid_credentials_error_shape(client, db_session: Session):
    make_customer(db_session)

    response = client.post(
        "/api/auth/login", json={"identifier": "CUST1001", "password": "bad"}
    )

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_CREDENTIALS"
    assert body["error"]["message"] == "Invalid credentials"


def test_owner_login_route_then_verify(client, db_session: Session, sms, fixed_otp):
    owner = make_owner(db_session)

    challenge = client.post(
        "/api/auth/login", json={"identifier": owner.user_code, "password": OWNER_PASSWORD}
    )
    assert challenge.status_code == 200
    data = challenge.json()["data"]
    assert data["requires_otp"] is True

    verified = client.post(
        "/api/auth/verify-otp", json={"user_id": data["user_id"], "otp": fixed_otp}
    )
    assert verified.status_code == 200
    assert verified.json()["data"]["user"]["role"] == "owner"


def test_change_password_route_rejects_unknown_fields(client, db_session: Session):
    customer = make_customer(db_session)

    response = client.post(
        "/api/auth/change-password",
        json={
            "current_password": CUSTOMER_PASSWORD,
            "new_password": "NewTiffin2025",
            "is_admin": True,
        },
        headers=auth_headers(customer),
    )

    assert response.status_code == 422


def test_change_password_route_rejects_overlong_password(client, db_session: Session):
    customer = make_customer(db_session)

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": CUSTOMER_PASSWORD, "new_password": "Aa1" + "x" * 80},
        headers=auth_headers(customer),
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    db_session.refresh(customer)
    assert AuthService.login(db_session, customer.user_code, CUSTOMER_PASSWORD)["token"]


def test_protected_route_without_token(client, db_session: Session):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_MISSING"


def test_customer_cannot_reach_owner_routes(client, db_session: Session):
    customer = make_customer(db_session)

    response = client.get("/api/users", headers=auth_headers(customer))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_ROLE"
