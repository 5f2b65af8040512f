"""Unit tests for booking service."""

import re
from datetime import timedelta
from uuid import uuid4

import pytest

from tourism_portal.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from tourism_portal.models.account import Role
from tourism_portal.models.booking import BookingStatus, ImmutableReferenceError, PaymentStatus
from tourism_portal.schemas.booking import BookingFilters, CreateBookingRequest, RecordPaymentRequest
from tourism_portal.services.booking_service import BookingService, derive_payment_status
from tourism_portal.services.tour_service import TourService


@pytest.fixture
def book(test_session, sample_booking_data, notifier):
    """Create a booking for ``customer`` on ``tour`` through the service."""

    async def factory(customer, tour, adults=2, children=0, **overrides):
        request = CreateBookingRequest(**sample_booking_data(tour.id, adults=adults, children=children, **overrides))
        return await BookingService(test_session, notifier=notifier).create_booking(customer, request)

    return factory


@pytest.mark.asyncio
async def test_create_booking_freezes_pricing(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)

    booking = await book(customer, tour, adults=3, children=1)

    assert booking.base_amount == 4000
    assert booking.total_amount == 3600
    assert booking.discounts == [{"type": "group", "amount": 400.0, "description": "Group discount for 4 travelers"}]
    assert booking.status == BookingStatus.PENDING.value
    assert booking.payment_status == PaymentStatus.PENDING.value
    assert booking.customer.id == customer.id
    assert booking.tour_package.id == tour.id
    assert booking.assigned_agent is None


@pytest.mark.asyncio
async def test_create_booking_reference_and_return_date(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)

    booking = await book(customer, tour)

    assert re.fullmatch(r"EA\d{6}[A-Z0-9]{4}", booking.booking_reference)
    assert booking.return_date == booking.departure_date + timedelta(days=5)


@pytest.mark.asyncio
async def test_booking_reference_cannot_be_changed(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)

    with pytest.raises(ImmutableReferenceError):
        booking.booking_reference = "EA000000ZZZZ"


@pytest.mark.asyncio
async def test_price_change_does_not_touch_existing_booking(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)

    await TourService(test_session).update_tour(tour.id, {"pricing": {"base_price": 5000}})

    reloaded = await BookingService(test_session).get_booking_or_raise(booking.id)
    assert reloaded.total_amount == 2000
    assert reloaded.base_amount == 2000


@pytest.mark.asyncio
async def test_create_booking_queues_confirmation(test_session, admin, customer, make_tour, book, notifier):
    tour = await make_tour(admin)

    booking = await book(customer, tour)

    assert notifier.pending == 1
    queued = notifier._queue[0]
    assert queued.template == "booking_confirmation"
    assert queued.email.to == customer.email
    assert booking.booking_reference in queued.email.subject


@pytest.mark.asyncio
async def test_create_booking_for_inactive_package(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    await TourService(test_session).deactivate_tour(tour.id)

    with pytest.raises(NotFoundError) as exc_info:
        await book(customer, tour)

    assert exc_info.value.message == "Tour package not found or not available"


@pytest.mark.asyncio
async def test_deactivated_package_still_joined_on_existing_booking(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)

    await TourService(test_session).deactivate_tour(tour.id)

    reloaded = await BookingService(test_session).get_booking(booking.id, customer)
    assert reloaded.tour_package.name == "Serengeti Migration Safari"


@pytest.mark.asyncio
async def test_customer_source_is_always_website(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)

    booking = await book(customer, tour, source="ota", ota_reference="BKG-1")

    assert booking.source == "website"


@pytest.mark.asyncio
async def test_staff_may_record_source(test_session, admin, make_account, make_tour, book):
    tour = await make_tour(admin)
    agent = await make_account(Role.AGENT)

    booking = await book(agent, tour, source="phone")

    assert booking.source == "phone"


@pytest.mark.asyncio
async def test_update_status_validates_before_lookup(test_session, admin):
    with pytest.raises(ValidationError) as exc_info:
        await BookingService(test_session).update_status(uuid4(), "shipped", admin)

    assert exc_info.value.message == "Invalid status"


@pytest.mark.asyncio
async def test_update_status_missing_booking(test_session, admin):
    with pytest.raises(NotFoundError):
        await BookingService(test_session).update_status(uuid4(), "confirmed", admin)


@pytest.mark.asyncio
async def test_unassigned_agent_cannot_update_status(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    agent = await make_account(Role.AGENT)

    with pytest.raises(AuthorizationError):
        await BookingService(test_session).update_status(booking.id, "confirmed", agent)


@pytest.mark.asyncio
async def test_assigned_agent_updates_status(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    agent = await make_account(Role.AGENT)
    service = BookingService(test_session)
    await service.assign_agent(booking.id, agent.id, admin)

    updated = await service.update_status(booking.id, "confirmed", agent)

    assert updated.status == "confirmed"
    assert updated.assigned_agent.id == agent.id


@pytest.mark.asyncio
async def test_any_status_may_follow_any_other(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    service = BookingService(test_session)

    await service.update_status(booking.id, "cancelled", admin)
    updated = await service.update_status(booking.id, "confirmed", admin)

    assert updated.status == "confirmed"


@pytest.mark.asyncio
async def test_assign_requires_active_agent(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    retired = await make_account(Role.AGENT, is_active=False)
    service = BookingService(test_session)

    with pytest.raises(ValidationError):
        await service.assign_agent(booking.id, customer.id, admin)
    with pytest.raises(ValidationError):
        await service.assign_agent(booking.id, retired.id, admin)


@pytest.mark.asyncio
async def test_notes_are_append_only(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    manager = await make_account(Role.MANAGER)
    service = BookingService(test_session)

    await service.append_note(booking.id, "Called to confirm flights", admin)
    notes = await service.append_note(booking.id, "Vegetarian meals requested", manager)

    assert [note["note"] for note in notes] == ["Called to confirm flights", "Vegetarian meals requested"]
    assert notes[0]["added_by"]["id"] == str(admin.id)
    assert notes[1]["added_by"]["first_name"] == manager.first_name
    assert notes[0]["date"] <= notes[1]["date"]


@pytest.mark.asyncio
async def test_unassigned_agent_cannot_add_note(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    agent = await make_account(Role.AGENT)

    with pytest.raises(AuthorizationError):
        await BookingService(test_session).append_note(booking.id, "Hello", agent)


@pytest.mark.asyncio
async def test_listing_is_scoped_by_role(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    other = await make_account(Role.CUSTOMER)
    agent = await make_account(Role.AGENT)
    mine = await book(customer, tour)
    theirs = await book(other, tour)
    service = BookingService(test_session)
    await service.assign_agent(theirs.id, agent.id, admin)

    customer_view, customer_total = await service.list_bookings(customer, BookingFilters())
    agent_view, _ = await service.list_bookings(agent, BookingFilters())
    admin_view, admin_total = await service.list_bookings(admin, BookingFilters())

    assert [b.id for b in customer_view] == [mine.id] and customer_total == 1
    assert [b.id for b in agent_view] == [theirs.id]
    assert admin_total == 2
    with pytest.raises(NotFoundError):
        await service.get_booking(theirs.id, customer)


@pytest.mark.asyncio
async def test_list_filters(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    first = await book(customer, tour)
    second = await book(customer, tour)
    service = BookingService(test_session)
    await service.update_status(second.id, "confirmed", admin)

    confirmed, total = await service.list_bookings(admin, BookingFilters(status="confirmed"))
    assert total == 1 and confirmed[0].id == second.id

    by_reference, _ = await service.list_bookings(admin, BookingFilters(search=first.booking_reference))
    assert [b.id for b in by_reference] == [first.id]

    by_traveler, total = await service.list_bookings(admin, BookingFilters(search="Mushi"))
    assert total == 2


@pytest.mark.asyncio
async def test_search_matches_traveler_names_only(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour, travelers=[{
        "first_name": "José",
        "last_name": "Muñoz",
        "nationality": "Tanzania",
        "passport_number": "TZ123",
        "date_of_birth": "1990-04-12",
    }])
    service = BookingService(test_session)

    assert booking.traveler_names == "josé muñoz"
    for term in ("josé", "MUÑOZ", "José Muñoz"):
        found, total = await service.list_bookings(admin, BookingFilters(search=term))
        assert total == 1 and found[0].id == booking.id, term

    for term in ("TZ123", "Tanzania", "1990-04-12"):
        _, total = await service.list_bookings(admin, BookingFilters(search=term))
        assert total == 0, term


@pytest.mark.asyncio
async def test_my_bookings_newest_first(test_session, admin, customer, make_tour, book):
    tour = await make_tour(admin)
    first = await book(customer, tour)
    second = await book(customer, tour)

    bookings = await BookingService(test_session).list_my_bookings(customer)

    assert {b.id for b in bookings} == {first.id, second.id}
    assert bookings[0].created_at >= bookings[1].created_at


@pytest.mark.asyncio
async def test_record_payment_updates_status(test_session, admin, customer, make_account, make_tour, book):
    tour = await make_tour(admin)
    booking = await book(customer, tour)
    finance = await make_account(Role.FINANCE)
    service = BookingService(test_session)

    partial = await service.record_payment(booking.id, RecordPaymentRequest(amount=500, method="card"), finance)
    assert partial.payment_status == "partial"
    assert partial.total_amount == 2000

    paid = await service.record_payment(booking.id, RecordPaymentRequest(amount=1500, method="mpesa"), finance)
    assert paid.payment_status == "paid"
    assert paid.payment_method == "mpesa"
    assert len(paid.transactions) == 2


def test_derive_payment_status():
    assert derive_payment_status([], 100, "pending") == "pending"
    assert derive_payment_status([{"status": "failed", "amount": 100}], 100, "pending") == "pending"
    assert derive_payment_status([{"status": "completed", "amount": 100}], 100, "pending") == "paid"
    assert derive_payment_status([
        {"status": "completed", "amount": 100},
        {"status": "refunded", "amount": 100},
    ], 100, "paid") == "refunded"
