"""Tour package router for the public catalog and staff management."""

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_roles
from ..models.account import Account, Role
from ..models.tour_package import TourPackage as TourPackageModel
from ..schemas.common import Pagination
from ..schemas.tour_package import (
    CreateTourPackageRequest,
    Duration,
    Pricing,
    TourListResponse,
    TourMessageResponse,
    TourPackage,
    TourPackageSummary,
    TourSearchParams,
)
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tours", tags=["tours"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
SEARCH_QUERY = Query()
UPDATES_BODY = Body(..., description="Fields to change")
STAFF_EDITOR = Depends(require_roles(Role.ADMIN, Role.MANAGER))
ADMIN_ONLY = Depends(require_roles(Role.ADMIN))


def _pricing(tour: TourPackageModel) -> Pricing:
    return Pricing(
        base_price=tour.base_price,
        currency=tour.currency,
        price_includes=tour.price_includes,
        price_excludes=tour.price_excludes,
        seasonal_pricing=tour.seasonal_pricing,
        group_discounts=tour.group_discounts,
    )


def tour_to_schema(tour: TourPackageModel) -> TourPackage:
    """Convert tour package model to schema; ``created_by`` must be loaded."""
    return TourPackage(
        id=tour.id,
        name=tour.name,
        description=tour.description,
        short_description=tour.short_description,
        category=tour.category,
        circuit=tour.circuit,
        destinations=tour.destinations,
        duration=Duration(days=tour.duration_days, nights=tour.duration_nights),
        pricing=_pricing(tour),
        availability=tour.availability,
        inclusions=tour.inclusions,
        itinerary=tour.itinerary,
        media=tour.media,
        requirements=tour.requirements,
        reviews={"average_rating": tour.average_rating, "total_reviews": tour.total_reviews},
        seo={"slug": tour.slug, **(tour.seo or {})},
        is_active=tour.is_active,
        is_featured=tour.is_featured,
        created_by=tour.created_by,
        created_at=tour.created_at,
        updated_at=tour.updated_at,
    )


def tour_to_summary(tour: TourPackageModel) -> TourPackageSummary:
    """Package fields shown on bookings."""
    return TourPackageSummary(
        id=tour.id,
        name=tour.name,
        category=tour.category,
        circuit=tour.circuit,
        duration=Duration(days=tour.duration_days, nights=tour.duration_nights),
        pricing=_pricing(tour),
    )


@router.get("", response_model=TourListResponse)
async def list_tours(
    params: TourSearchParams = SEARCH_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
) -> TourListResponse:
    """
    Search the active catalog.

    Sort by created_at (default), name, price, duration or rating; prefix
    the key with ``-`` for descending order.
    """
    tours, total = await TourService(db).list_tours(params)
    return TourListResponse(
        tours=[tour_to_schema(tour) for tour in tours],
        pagination=Pagination.build(params.page, params.limit, total),
    )


@router.get("/featured/list", response_model=list[TourPackage])
async def list_featured_tours(db: AsyncSession = DB_DEPENDENCY) -> list[TourPackage]:
    tours = await TourService(db).list_featured()
    return [tour_to_schema(tour) for tour in tours]


@router.get("/{tour_id}", response_model=TourPackage)
async def get_tour(tour_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> TourPackage:
    """Get an active tour package; inactive packages answer 404."""
    tour = await TourService(db).get_tour_by_id_or_raise(tour_id)
    return tour_to_schema(tour)


@router.post("", response_model=TourMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_tour(
    request: CreateTourPackageRequest,
    account: Account = STAFF_EDITOR,
    db: AsyncSession = DB_DEPENDENCY,
) -> TourMessageResponse:
    tour = await TourService(db).create_tour(request, account)
    return TourMessageResponse(message="Tour package created successfully", tour=tour_to_schema(tour))


@router.put("/{tour_id}", response_model=TourMessageResponse)
async def update_tour(
    tour_id: UUID,
    updates: Dict[str, Any] = UPDATES_BODY,
    account: Account = STAFF_EDITOR,
    db: AsyncSession = DB_DEPENDENCY,
) -> TourMessageResponse:
    """
    Apply a partial update.

    Unknown keys reject the whole request with "Invalid updates".
    """
    tour = await TourService(db).update_tour(tour_id, updates)
    logger.debug("Tour update requested", extra={"tour_id": str(tour_id), "actor_id": str(account.id)})
    return TourMessageResponse(message="Tour package updated successfully", tour=tour_to_schema(tour))


@router.delete("/{tour_id}", response_model=TourMessageResponse)
async def delete_tour(
    tour_id: UUID,
    account: Account = ADMIN_ONLY,
    db: AsyncSession = DB_DEPENDENCY,
) -> TourMessageResponse:
    """Soft-delete a package; bookings that reference it keep working."""
    tour = await TourService(db).deactivate_tour(tour_id)
    return TourMessageResponse(message="Tour package deleted successfully", tour=tour_to_schema(tour))
