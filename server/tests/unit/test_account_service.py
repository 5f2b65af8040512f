"""Unit tests for account service."""

from datetime import timedelta

import pytest

from tourism_portal.core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from tourism_portal.core.security import decode_access_token, verify_password
from tourism_portal.core.time_utils import utcnow
from tourism_portal.models.account import Role
from tourism_portal.schemas.account import CreateUserRequest, RegisterRequest
from tourism_portal.services.account_service import AccountService


def _register_request(**overrides) -> RegisterRequest:
    data = {
        "first_name": "Neema",
        "last_name": "Kweka",
        "email": "Neema.Kweka@Example.com",
        "password": "karibu123",
    }
    data.update(overrides)
    return RegisterRequest(**data)


@pytest.mark.asyncio
async def test_register_creates_customer_with_hashed_password(test_session):
    account, token = await AccountService(test_session).register(_register_request())

    assert account.role == Role.CUSTOMER.value
    assert account.email == "neema.kweka@example.com"
    assert account.password_hash != "karibu123"
    assert verify_password("karibu123", account.password_hash)
    assert decode_access_token(token)["sub"] == account.id


@pytest.mark.asyncio
async def test_register_duplicate_email_is_case_insensitive(test_session):
    service = AccountService(test_session)
    await service.register(_register_request())

    with pytest.raises(ConflictError) as exc_info:
        await service.register(_register_request(email="NEEMA.kweka@example.com"))

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "User already exists with this email"


@pytest.mark.asyncio
async def test_login_failures_share_one_message(test_session, customer, test_password):
    service = AccountService(test_session)

    with pytest.raises(AuthenticationError) as unknown:
        await service.authenticate("nobody@example.com", test_password)
    with pytest.raises(AuthenticationError) as wrong:
        await service.authenticate(customer.email, "wrong-password")

    assert unknown.value.status_code == wrong.value.status_code == 400
    assert unknown.value.message == wrong.value.message == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_updates_last_login(test_session, customer, test_password):
    assert customer.last_login is None

    account, token = await AccountService(test_session).authenticate(customer.email.upper(), test_password)

    assert account.last_login is not None
    assert token


@pytest.mark.asyncio
async def test_login_refused_for_deactivated_account(test_session, make_account, test_password):
    account = await make_account(Role.CUSTOMER, is_active=False)

    with pytest.raises(AuthenticationError) as exc_info:
        await AccountService(test_session).authenticate(account.email, test_password)

    assert exc_info.value.message == "Account is deactivated"


@pytest.mark.asyncio
async def test_profile_update_rejects_unknown_fields_atomically(test_session, customer):
    service = AccountService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.update_profile(customer, {"first_name": "Changed", "role": "admin"})

    assert exc_info.value.message == "Invalid updates"
    await test_session.refresh(customer)
    assert customer.first_name == "Test"
    assert customer.role == Role.CUSTOMER.value


@pytest.mark.asyncio
async def test_profile_update_merges_sub_documents(test_session, customer):
    service = AccountService(test_session)

    account = await service.update_profile(customer, {
        "first_name": "  Zawadi ",
        "preferences": {"language": "sw"},
        "profile": {"nationality": "Tanzanian"},
    })

    assert account.first_name == "Zawadi"
    assert account.preferences["language"] == "sw"
    assert account.preferences["currency"] == "USD"
    assert account.preferences["notifications"] == {"email": True, "sms": False}
    assert account.profile["nationality"] == "Tanzanian"


@pytest.mark.asyncio
async def test_password_reset_round_trip(test_session, customer, notifier):
    service = AccountService(test_session, notifier=notifier)

    await service.request_password_reset(customer.email)

    assert notifier.pending == 1
    queued = notifier._queue[0]
    assert queued.template == "password_reset"
    token = queued.email.text.split("token=")[1].split()[0]

    await service.reset_password(token, "brand-new-pass")

    await test_session.refresh(customer)
    assert verify_password("brand-new-pass", customer.password_hash)
    assert customer.reset_password_token is None


@pytest.mark.asyncio
async def test_password_reset_for_unknown_email_is_silent(test_session, notifier):
    await AccountService(test_session, notifier=notifier).request_password_reset("ghost@example.com")

    assert notifier.pending == 0


@pytest.mark.asyncio
async def test_expired_reset_token_is_rejected(test_session, customer, notifier):
    service = AccountService(test_session, notifier=notifier)
    await service.request_password_reset(customer.email)
    token = notifier._queue[0].email.text.split("token=")[1].split()[0]

    customer.reset_password_expires = utcnow() - timedelta(minutes=1)
    await test_session.commit()

    with pytest.raises(ValidationError):
        await service.reset_password(token, "brand-new-pass")


@pytest.mark.asyncio
async def test_staff_can_create_any_role(test_session):
    account = await AccountService(test_session).create_user(CreateUserRequest(
        first_name="Baraka",
        last_name="Mollel",
        email="baraka@example.com",
        password="agent-pass",
        role=Role.AGENT,
    ))

    assert account.role == Role.AGENT.value


@pytest.mark.asyncio
async def test_update_user_checks_email_uniqueness(test_session, make_account):
    first = await make_account(Role.AGENT)
    second = await make_account(Role.AGENT)

    with pytest.raises(ConflictError):
        await AccountService(test_session).update_user(second.id, {"email": first.email})


@pytest.mark.asyncio
async def test_update_user_changes_role(test_session, make_account):
    account = await make_account(Role.CUSTOMER)

    updated = await AccountService(test_session).update_user(account.id, {"role": "marketing"})

    assert updated.role == Role.MARKETING.value


@pytest.mark.asyncio
async def test_get_missing_account_raises(test_session):
    from uuid import uuid4

    with pytest.raises(NotFoundError):
        await AccountService(test_session).get_account(uuid4())


@pytest.mark.asyncio
async def test_list_users_filters_and_paginates(test_session, make_account):
    for _ in range(3):
        await make_account(Role.AGENT)
    await make_account(Role.CUSTOMER)

    users, total = await AccountService(test_session).list_users(role=Role.AGENT, page=1, limit=2)

    assert total == 3
    assert len(users) == 2
    assert all(user.role == "agent" for user in users)


@pytest.mark.asyncio
async def test_user_stats_breakdown(test_session, make_account):
    await make_account(Role.AGENT)
    await make_account(Role.AGENT, is_active=False)
    await make_account(Role.CUSTOMER)

    stats = await AccountService(test_session).user_stats()

    assert stats["total_users"] == 3
    assert stats["active_users"] == 2
    assert stats["inactive_users"] == 1
    agents = next(row for row in stats["role_breakdown"] if row["role"] == "agent")
    assert agents == {"role": "agent", "count": 2, "active": 1, "inactive": 1}
