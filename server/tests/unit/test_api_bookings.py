"""Integration tests for booking endpoints."""

import re
from datetime import date, timedelta
from uuid import uuid4

import pytest

from tourism_portal.models.account import Role


@pytest.mark.asyncio
async def test_create_booking(test_client, admin, customer, auth_headers, make_tour, sample_booking_data, notifier):
    tour = await make_tour(admin)

    response = await test_client.post(
        "/api/bookings",
        json=sample_booking_data(tour.id, adults=4, children=1),
        headers=auth_headers(customer),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Booking created successfully"
    booking = data["booking"]
    assert re.fullmatch(r"EA\d{6}[A-Z0-9]{4}", booking["booking_reference"])
    assert booking["pricing"]["base_amount"] == 5000
    assert booking["pricing"]["total_amount"] == 4500
    assert booking["pricing"]["discounts"][0]["amount"] == 500
    assert booking["booking_details"]["total_travelers"] == 5
    departure = date.fromisoformat(booking["booking_details"]["departure_date"])
    assert booking["booking_details"]["return_date"] == (departure + timedelta(days=5)).isoformat()
    assert booking["customer"]["id"] == str(customer.id)
    assert booking["tour_package"]["name"] == "Serengeti Migration Safari"
    assert booking["status"] == "pending"
    assert booking["payment"]["status"] == "pending"
    assert notifier.pending == 1


@pytest.mark.asyncio
async def test_create_booking_requires_auth(test_client, admin, make_tour, sample_booking_data):
    tour = await make_tour(admin)

    response = await test_client.post("/api/bookings", json=sample_booking_data(tour.id))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_validation(test_client, admin, customer, auth_headers, make_tour, sample_booking_data):
    tour = await make_tour(admin)
    payload = sample_booking_data(tour.id, adults=0)
    payload["booking_details"]["departure_date"] = (date.today() - timedelta(days=1)).isoformat()

    response = await test_client.post("/api/bookings", json=payload, headers=auth_headers(customer))

    assert response.status_code == 400
    fields = {detail["field"] for detail in response.json()["details"]}
    assert {"booking_details.adults", "booking_details.departure_date"} <= fields


@pytest.mark.asyncio
async def test_create_booking_unknown_package(test_client, customer, auth_headers, sample_booking_data):
    response = await test_client.post(
        "/api/bookings",
        json=sample_booking_data(uuid4()),
        headers=auth_headers(customer),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Tour package not found or not available"


@pytest.mark.asyncio
async def test_my_bookings(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    other = await make_account(Role.CUSTOMER)
    mine = await seed_booking(customer, tour)
    await seed_booking(other, tour)

    response = await test_client.get("/api/bookings/my-bookings", headers=auth_headers(customer))

    assert response.status_code == 200
    assert [booking["id"] for booking in response.json()] == [str(mine.id)]


@pytest.mark.asyncio
async def test_list_bookings_roles(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    await seed_booking(customer, tour)
    await seed_booking(customer, tour, status="confirmed")
    finance = await make_account(Role.FINANCE)
    marketer = await make_account(Role.MARKETING)

    as_customer = await test_client.get("/api/bookings", headers=auth_headers(customer))
    as_marketer = await test_client.get("/api/bookings", headers=auth_headers(marketer))
    as_finance = await test_client.get("/api/bookings", params={"status": "confirmed"}, headers=auth_headers(finance))

    assert as_customer.status_code == 403
    assert as_marketer.status_code == 403
    assert as_finance.status_code == 200
    data = as_finance.json()
    assert data["pagination"] == {"current": 1, "pages": 1, "total": 1}
    assert data["bookings"][0]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_agent_sees_only_assigned(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    agent = await make_account(Role.AGENT)
    assigned = await seed_booking(customer, tour)
    other = await seed_booking(customer, tour)

    assign = await test_client.patch(
        f"/api/bookings/{assigned.id}/assign",
        json={"agent_id": str(agent.id)},
        headers=auth_headers(admin),
    )
    listing = await test_client.get("/api/bookings", headers=auth_headers(agent))
    hidden = await test_client.get(f"/api/bookings/{other.id}", headers=auth_headers(agent))

    assert assign.status_code == 200
    assert assign.json()["booking"]["assigned_agent"]["id"] == str(agent.id)
    assert [booking["id"] for booking in listing.json()["bookings"]] == [str(assigned.id)]
    assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_customer_cannot_read_foreign_booking(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    other = await make_account(Role.CUSTOMER)
    booking = await seed_booking(other, tour)

    mine = await test_client.get(f"/api/bookings/{booking.id}", headers=auth_headers(other))
    foreign = await test_client.get(f"/api/bookings/{booking.id}", headers=auth_headers(customer))

    assert mine.status_code == 200
    assert foreign.status_code == 404


@pytest.mark.asyncio
async def test_update_status(test_client, admin, customer, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    booking = await seed_booking(customer, tour)

    response = await test_client.patch(
        f"/api/bookings/{booking.id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Booking status updated successfully"
    assert response.json()["booking"]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_update_status_invalid_value(test_client, admin, auth_headers):
    response = await test_client.patch(
        f"/api/bookings/{uuid4()}/status",
        json={"status": "teleported"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid status"


@pytest.mark.asyncio
async def test_update_status_forbidden_for_customer(test_client, admin, customer, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    booking = await seed_booking(customer, tour)

    response = await test_client.patch(
        f"/api/bookings/{booking.id}/status",
        json={"status": "cancelled"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unassigned_agent_status_update_forbidden(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    booking = await seed_booking(customer, tour)
    agent = await make_account(Role.AGENT)

    response = await test_client.patch(
        f"/api/bookings/{booking.id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(agent),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to update this booking"


@pytest.mark.asyncio
async def test_add_notes(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    booking = await seed_booking(customer, tour)
    manager = await make_account(Role.MANAGER)

    await test_client.post(f"/api/bookings/{booking.id}/notes", json={"note": "First call"}, headers=auth_headers(admin))
    response = await test_client.post(
        f"/api/bookings/{booking.id}/notes",
        json={"note": "Second call"},
        headers=auth_headers(manager),
    )

    assert response.status_code == 200
    notes = response.json()["notes"]
    assert [note["note"] for note in notes] == ["First call", "Second call"]
    assert notes[1]["added_by"]["id"] == str(manager.id)
    assert notes[1]["added_by"]["last_name"] == manager.last_name

    detail = await test_client.get(f"/api/bookings/{booking.id}", headers=auth_headers(admin))
    assert len(detail.json()["internal_notes"]) == 2


@pytest.mark.asyncio
async def test_record_payment(test_client, admin, customer, make_account, auth_headers, make_tour, seed_booking):
    tour = await make_tour(admin)
    booking = await seed_booking(customer, tour, amount=1000)
    finance = await make_account(Role.FINANCE)

    as_customer = await test_client.post(
        f"/api/bookings/{booking.id}/payments",
        json={"amount": 1000, "method": "card"},
        headers=auth_headers(customer),
    )
    response = await test_client.post(
        f"/api/bookings/{booking.id}/payments",
        json={"amount": 1000, "method": "card", "reference": "PSP-77"},
        headers=auth_headers(finance),
    )

    assert as_customer.status_code == 403
    assert response.status_code == 200
    payment = response.json()["booking"]["payment"]
    assert payment["status"] == "paid"
    assert payment["transactions"][0]["reference"] == "PSP-77"
    assert response.json()["booking"]["pricing"]["total_amount"] == 1000
