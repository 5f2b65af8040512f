"""Unit tests for tour package service."""

from uuid import uuid4

import pytest

from tourism_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from tourism_portal.models.account import Role
from tourism_portal.models.tour_package import slugify
from tourism_portal.schemas.tour_package import CreateTourPackageRequest, TourSearchParams
from tourism_portal.services.tour_service import TourService


def test_slugify_derives_from_name():
    assert slugify("Serengeti Migration Safari") == "serengeti-migration-safari"
    assert slugify("Kilimanjaro: Machame Route!") == "kilimanjaro-machame-route"


@pytest.mark.asyncio
async def test_create_tour_success(test_session, admin, sample_tour_data):
    service = TourService(test_session)

    tour = await service.create_tour(CreateTourPackageRequest(**sample_tour_data), admin)

    assert tour.id is not None
    assert tour.slug == "serengeti-migration-safari"
    assert tour.base_price == 1000
    assert tour.duration_days == 5
    assert tour.group_discounts == [{"min_size": 4, "discount": 10}, {"min_size": 8, "discount": 15}]
    assert tour.created_by.id == admin.id
    assert tour.is_active is True


@pytest.mark.asyncio
async def test_create_tour_duplicate_slug(test_session, admin, make_tour):
    await make_tour(admin)

    with pytest.raises(ConflictError) as exc_info:
        await make_tour(admin)

    assert "serengeti-migration-safari" in exc_info.value.message


@pytest.mark.asyncio
async def test_create_tour_with_explicit_slug(test_session, admin, make_tour):
    tour = await make_tour(admin, seo={"slug": "great-migration", "keywords": ["migration"]})

    assert tour.slug == "great-migration"
    assert tour.seo == {"meta_title": None, "meta_description": None, "keywords": ["migration"]}


@pytest.mark.asyncio
async def test_rename_keeps_slug(test_session, admin, make_tour):
    tour = await make_tour(admin)

    updated = await TourService(test_session).update_tour(tour.id, {"name": "Grand Serengeti Safari"})

    assert updated.name == "Grand Serengeti Safari"
    assert updated.slug == "serengeti-migration-safari"


@pytest.mark.asyncio
async def test_update_rejects_unknown_field_atomically(test_session, admin, make_tour):
    tour = await make_tour(admin)

    with pytest.raises(ValidationError) as exc_info:
        await TourService(test_session).update_tour(tour.id, {"name": "Renamed Safari", "average_rating": 5})

    assert exc_info.value.message == "Invalid updates"
    assert exc_info.value.details == [{"field": "average_rating", "message": "Field cannot be updated"}]
    reloaded = await TourService(test_session).get_tour_by_id(tour.id)
    assert reloaded.name == "Serengeti Migration Safari"


@pytest.mark.asyncio
async def test_update_rejects_invalid_value(test_session, admin, make_tour):
    tour = await make_tour(admin)

    with pytest.raises(ValidationError):
        await TourService(test_session).update_tour(tour.id, {"duration": {"days": 0, "nights": 0}})


@pytest.mark.asyncio
async def test_update_pricing_replaces_discount_tiers(test_session, admin, make_tour):
    tour = await make_tour(admin)

    updated = await TourService(test_session).update_tour(tour.id, {
        "pricing": {"base_price": 1500, "currency": "usd", "group_discounts": [{"min_size": 6, "discount": 12}]},
    })

    assert updated.base_price == 1500
    assert updated.currency == "USD"
    assert updated.group_discounts == [{"min_size": 6, "discount": 12}]


@pytest.mark.asyncio
async def test_slug_change_conflict(test_session, admin, make_tour):
    await make_tour(admin, name="Zanzibar Spice Island Escape", category="beach", circuit="zanzibar")
    tour = await make_tour(admin)

    with pytest.raises(ConflictError):
        await TourService(test_session).update_tour(tour.id, {"seo": {"slug": "zanzibar-spice-island-escape"}})


@pytest.mark.asyncio
async def test_update_missing_tour(test_session):
    with pytest.raises(NotFoundError):
        await TourService(test_session).update_tour(uuid4(), {"name": "Nowhere Safari"})


@pytest.mark.asyncio
async def test_deactivated_tour_hidden_from_catalog(test_session, admin, make_tour):
    tour = await make_tour(admin)
    service = TourService(test_session)

    await service.deactivate_tour(tour.id)

    assert await service.get_tour_by_id(tour.id) is None
    assert (await service.get_tour_by_id(tour.id, include_inactive=True)).is_active is False
    tours, total = await service.list_tours(TourSearchParams())
    assert tours == [] and total == 0
    with pytest.raises(NotFoundError):
        await service.get_tour_by_id_or_raise(tour.id)


@pytest.mark.asyncio
async def test_list_tours_filters(test_session, admin, make_tour):
    await make_tour(admin)
    await make_tour(
        admin,
        name="Zanzibar Spice Island Escape",
        category="beach",
        circuit="zanzibar",
        destinations=[
            {"name": "Stone Town", "description": "Spice markets and carved doors", "duration": 1},
            {"name": "Nungwi", "description": "Northern beaches", "duration": 2},
        ],
        pricing={"base_price": 600},
        duration={"days": 3, "nights": 2},
        is_featured=True,
    )
    service = TourService(test_session)

    beach, total = await service.list_tours(TourSearchParams(category="beach"))
    assert total == 1 and beach[0].circuit == "zanzibar"

    cheap, _ = await service.list_tours(TourSearchParams(max_price=800))
    assert [tour.name for tour in cheap] == ["Zanzibar Spice Island Escape"]

    by_destination, _ = await service.list_tours(TourSearchParams(search="ngorongoro"))
    assert [tour.name for tour in by_destination] == ["Serengeti Migration Safari"]

    island, _ = await service.list_tours(TourSearchParams(search="STONE town"))
    assert [tour.name for tour in island] == ["Zanzibar Spice Island Escape"]

    by_price, _ = await service.list_tours(TourSearchParams(sort="-price"))
    assert [tour.base_price for tour in by_price] == [1000, 600]

    featured = await service.list_featured()
    assert [tour.name for tour in featured] == ["Zanzibar Spice Island Escape"]


@pytest.mark.asyncio
async def test_search_matches_destination_names_not_details(test_session, admin, make_tour):
    tour = await make_tour(admin)
    service = TourService(test_session)

    # "Crater floor wildlife" is a destination description
    _, total = await service.list_tours(TourSearchParams(search="crater"))
    assert total == 0

    await service.update_tour(tour.id, {"destinations": [{"name": "Lake Manyara", "description": "Tree-climbing lions"}]})

    renamed, _ = await service.list_tours(TourSearchParams(search="manyara"))
    gone, _ = await service.list_tours(TourSearchParams(search="ngorongoro"))
    assert [t.id for t in renamed] == [tour.id]
    assert gone == []


@pytest.mark.asyncio
async def test_list_tours_pagination(test_session, make_account, make_tour):
    manager = await make_account(Role.MANAGER)
    for n in range(15):
        await make_tour(manager, name=f"Northern Circuit Tour {n:02d}")

    tours, total = await TourService(test_session).list_tours(TourSearchParams(page=2, limit=10))

    assert total == 15
    assert len(tours) == 5
