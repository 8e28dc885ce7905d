"""
Tests for access requests, customer onboarding and sales leads.
"""

import uuid

import pytest
from sqlalchemy.orm import Session

from test_fixtures import (
    auth_headers,
    client,
    db_session,
    make_customer,
    make_owner,
    make_plan,
    make_subscription,
    sms,
)
from app.exceptions import ConflictError, NotFoundError, ServiceValidationError
from domain.enums import (
    AccessRequestStatus,
    DurationType,
    LeadSource,
    LeadStatus,
    MealType,
    SubscriptionStatus,
)
from domain.models import AppNotification, Lead, MealOrder
from services.access_request_service import AccessRequestService
from services.auth_service import AuthService
from services.lead_service import LeadService
from services.user_service import UserService


# =============================================================================
# ACCESS REQUESTS
# =============================================================================


def test_submit_access_request_notifies_owner(db_session: Session):
    request = AccessRequestService.submit(
        db_session, "  Kavya Nair ", "9988776655", DurationType.WEEKLY, True, True
    )

    assert request.name == "Kavya Nair"
    assert request.status == AccessRequestStatus.PENDING
    feed = db_session.query(AppNotification).filter_by(type="access_request").one()
    assert "weekly plan with lunch & dinner" in feed.message


def test_submit_requires_a_meal(db_session: Session):
    with pytest.raises(ServiceValidationError):
        AccessRequestService.submit(db_session, "Kavya Nair", "9988776655", wants_lunch=False)


def test_submit_rejects_registered_or_pending_mobile(db_session: Session):
    customer = make_customer(db_session)
    with pytest.raises(ConflictError) as registered:
        AccessRequestService.submit(db_session, "Someone", customer.mobile)
    assert registered.value.code == "MOBILE_EXISTS"

    AccessRequestService.submit(db_session, "Kavya Nair", "9988776655")
    with pytest.raises(ConflictError) as pending:
        AccessRequestService.submit(db_session, "Kavya Nair", "9988776655")
    assert pending.value.code == "REQUEST_PENDING"


def test_approve_creates_customer_with_temporary_password(db_session: Session, sms):
    """
    Verifies:
    - Approval creates an active customer with the next CUST code
    - The customer must change the temporary password
    - Credentials are sent by SMS and work for login
    """
    owner = make_owner(db_session)
    request = AccessRequestService.submit(db_session, "Kavya Nair", "9988776655")

    result = AccessRequestService.approve(db_session, request.id, owner)

    user = result["user"]
    assert user.user_code == "CUST1001"
    assert user.is_active is True
    assert user.force_password_change is True
    assert request.status == AccessRequestStatus.APPROVED
    assert request.user_id == user.id
    assert result["sms_sent"] is True
    assert any(user.user_code in text for text in sms.to("9988776655"))

    login = AuthService.login(db_session, user.user_code, result["temporary_password"])
    assert login["force_password_change"] is True


def test_reject_access_request(db_session: Session, sms):
    owner = make_owner(db_session)
    request = AccessRequestService.submit(db_session, "Kavya Nair", "9988776655")

    AccessRequestService.reject(db_session, request.id, owner, "Outside delivery area")

    assert request.status == AccessRequestStatus.REJECTED
    assert any("Outside delivery area" in text for text in sms.to("9988776655"))
    with pytest.raises(ServiceValidationError):
        AccessRequestService.approve(db_session, request.id, owner)


# =============================================================================
# CUSTOMERS
# =============================================================================


def test_owner_creates_customer_on_plan(db_session: Session, sms):
    owner = make_owner(db_session)
    plan = make_plan(db_session, duration_type=DurationType.WEEKLY, duration_days=7)

    result = UserService.create_customer(
        db_session,
        owner,
        name="Meera Iyer",
        mobile="9812345678",
        address={"street": "4 Boring Road", "city": "Patna", "pincode": "800001"},
        plan_id=plan.id,
    )

    assert result["user"].created_by == owner.id
    assert result["subscription"].status == SubscriptionStatus.ACTIVE
    assert result["subscription"].total_days == 7
    assert len(result["temporary_password"]) == 6
    assert sms.to("9812345678")


def test_duplicate_mobile_rejected(db_session: Session):
    owner = make_owner(db_session)
    customer = make_customer(db_session)

    with pytest.raises(ConflictError):
        UserService.create_customer(db_session, owner, name="Copy", mobile=customer.mobile)


def test_soft_delete_frees_mobile_and_clears_orders(db_session: Session, sms):
    """
    Verifies:
    - Deleted customers keep their row but lose access
    - Live subscriptions are disabled, orders removed
    - The mobile number can be registered again
    """
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    db_session.add(
        MealOrder(
            user_id=customer.id,
            subscription_id=subscription.id,
            delivery_date=subscription.start_date,
            meal_type=MealType.LUNCH,
            meal_name="DAL",
            created_by="customer",
        )
    )
    db_session.commit()

    UserService.delete_customer(db_session, customer.id)
    db_session.expire_all()

    assert customer.deleted_at is not None
    assert customer.is_active is False
    assert subscription.status == SubscriptionStatus.DISABLED
    assert db_session.query(MealOrder).count() == 0
    with pytest.raises(NotFoundError):
        UserService.get_customer(db_session, customer.id)

    again = UserService.create_customer(db_session, owner, name="Priya Sharma", mobile=customer.mobile)
    assert again["user"].user_code == "CUST1002"


def test_toggle_active(db_session: Session):
    customer = make_customer(db_session)

    assert UserService.toggle_active(db_session, customer.id).is_active is False
    assert UserService.toggle_active(db_session, customer.id).is_active is True


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"name": "A"}, "Name must be between 2 and 50 characters"),
        ({"address": {"street": "Rd"}}, "Street must be between 5 and 200 characters"),
    ],
)
def test_profile_validation(db_session: Session, changes, message):
    customer = make_customer(db_session)

    with pytest.raises(ServiceValidationError) as exc_info:
        UserService.update_profile(db_session, customer, changes)

    assert exc_info.value.message == message


# =============================================================================
# LEADS
# =============================================================================


def test_lead_submit_and_dedupe_by_phone(db_session: Session):
    first = LeadService.submit(
        db_session,
        {"name": "Arjun Mehta", "phone": "9090909090", "area": "Kankarbagh", "source": LeadSource.APP},
    )
    second = LeadService.submit(
        db_session,
        {"name": "Arjun Mehta", "phone": "9090909090", "message": "Need dinner only"},
    )

    assert first.id == second.id
    assert db_session.query(Lead).count() == 1
    assert second.area == "Kankarbagh"
    assert second.message == "Need dinner only"
    assert second.notification_sent is True
    titles = [n.title for n in db_session.query(AppNotification).filter_by(type="lead")]
    assert sorted(titles) == ["Lead Updated", "New Lead"]


def test_lead_update_and_stats(db_session: Session):
    lead = LeadService.submit(db_session, {"name": "Arjun Mehta", "phone": "9090909090"})

    LeadService.update(db_session, lead.id, {"status": LeadStatus.CONTACTED, "notes": "Call back Monday"})

    stats = LeadService.stats(db_session)
    assert stats["total"] == 1
    assert stats["by_status"]["contacted"] == 1
    assert stats["by_status"]["new"] == 0
    with pytest.raises(NotFoundError):
        LeadService.update(db_session, uuid.uuid4(), {"status": LeadStatus.CLOSED})


# =============================================================================
# ROUTES
# =============================================================================


def test_public_access_request_route(client, db_session: Session, sms):
    owner = make_owner(db_session)

    created = client.post(
        "/api/access-requests",
        json={"name": "Kavya Nair", "mobile": "9988776655", "plan_type": "monthly"},
    )
    assert created.status_code == 201
    request_id = created.json()["data"]["id"]

    approved = client.post(
        f"/api/access-requests/{request_id}/approve", headers=auth_headers(owner)
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["user"]["user_code"] == "CUST1001"


def test_access_request_invalid_mobile(client, db_session: Session):
    response = client.post(
        "/api/access-requests", json={"name": "Kavya Nair", "mobile": "12345"}
    )

    assert response.status_code == 422


def test_public_lead_route(client, db_session: Session):
    owner = make_owner(db_session)

    created = client.post(
        "/api/leads",
        json={
            "name": "Arjun Mehta",
            "phone": "9090909090",
            "location": {"latitude": 25.61, "longitude": 85.14, "distance": 2.5},
        },
    )
    assert created.status_code == 201

    listed = client.get("/api/leads", headers=auth_headers(owner))
    assert listed.json()["data"][0]["location"]["distance"] == 2.5
