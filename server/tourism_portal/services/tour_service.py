"""Tour package service for catalog operations."""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ConflictError, NotFoundError
from ..models.account import Account
from ..models.tour_package import TourPackage, slugify
from ..schemas.tour_package import CreateTourPackageRequest, TourSearchParams, UpdateTourPackageRequest
from .updates import validate_update

logger = logging.getLogger(__name__)

TOUR_UPDATE_FIELDS = frozenset({
    "name", "description", "short_description", "category", "circuit",
    "destinations", "duration", "pricing", "availability", "inclusions",
    "itinerary", "media", "requirements", "seo", "is_active", "is_featured",
})

SORT_COLUMNS = {
    "created_at": TourPackage.created_at,
    "name": TourPackage.name,
    "price": TourPackage.base_price,
    "duration": TourPackage.duration_days,
    "rating": TourPackage.average_rating,
}

FEATURED_LIMIT = 8


def _dump_list(items) -> list:
    return [item.model_dump(mode="json") for item in items]


def _apply_pricing(tour: TourPackage, pricing) -> None:
    tour.base_price = pricing.base_price
    tour.currency = pricing.currency.upper()
    tour.price_includes = list(pricing.price_includes)
    tour.price_excludes = list(pricing.price_excludes)
    tour.seasonal_pricing = _dump_list(pricing.seasonal_pricing)
    tour.group_discounts = _dump_list(pricing.group_discounts)


def _seo_document(seo) -> dict:
    return seo.model_dump(mode="json", exclude={"slug"})


class TourService:
    """Service for tour package operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tour_by_slug(self, slug: str) -> Optional[TourPackage]:
        result = await self.db.execute(select(TourPackage).where(TourPackage.slug == slug))
        return result.scalar_one_or_none()

    async def _ensure_slug_available(self, slug: str, exclude_id: Optional[UUID] = None) -> None:
        existing = await self.get_tour_by_slug(slug)
        if existing and existing.id != exclude_id:
            logger.warning(
                "Tour package slug already exists",
                extra={"slug": slug, "existing_tour_id": str(existing.id)}
            )
            raise ConflictError(
                f"Tour package with slug '{slug}' already exists",
                conflicting_resource={"id": str(existing.id), "slug": existing.slug, "name": existing.name},
            )

    async def get_tour_by_id(self, tour_id: UUID, include_inactive: bool = False) -> Optional[TourPackage]:
        """
        Get a tour package by ID with its creator loaded.

        Args:
            tour_id: Tour package ID
            include_inactive: Also return soft-deleted packages

        Returns:
            TourPackage if found, None otherwise
        """
        stmt = (
            select(TourPackage)
            .options(selectinload(TourPackage.created_by))
            .where(TourPackage.id == tour_id)
            .execution_options(populate_existing=True)
        )
        if not include_inactive:
            stmt = stmt.where(TourPackage.is_active.is_(True))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_id_or_raise(self, tour_id: UUID, include_inactive: bool = False) -> TourPackage:
        """
        Get a tour package by ID or raise NotFoundError.

        Inactive packages are reported as missing on the public catalog.

        Raises:
            NotFoundError: If the package does not exist or is inactive
        """
        tour = await self.get_tour_by_id(tour_id, include_inactive=include_inactive)
        if not tour:
            logger.info("Tour package not found", extra={"tour_id": str(tour_id)})
            raise NotFoundError("Tour package", str(tour_id))
        return tour

    async def create_tour(self, request: CreateTourPackageRequest, creator: Account) -> TourPackage:
        """
        Create a new tour package.

        The slug comes from ``seo.slug`` or is derived from the name once,
        here; later renames keep it.

        Args:
            request: Tour package creation request
            creator: Staff account creating the package

        Returns:
            Created tour package

        Raises:
            ConflictError: If a package with the same slug already exists
        """
        slug = request.seo.slug or slugify(request.name)
        await self._ensure_slug_available(slug)

        tour = TourPackage(
            name=request.name,
            description=request.description,
            short_description=request.short_description,
            category=request.category.value,
            circuit=request.circuit.value,
            destinations=_dump_list(request.destinations),
            duration_days=request.duration.days,
            duration_nights=request.duration.nights,
            availability=request.availability.model_dump(mode="json"),
            inclusions=request.inclusions.model_dump(mode="json"),
            itinerary=_dump_list(request.itinerary),
            media=request.media.model_dump(mode="json"),
            requirements=request.requirements.model_dump(mode="json"),
            slug=slug,
            seo=_seo_document(request.seo),
            is_active=request.is_active,
            is_featured=request.is_featured,
            created_by_id=creator.id,
        )
        _apply_pricing(tour, request.pricing)

        try:
            self.db.add(tour)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Tour package creation failed due to integrity constraint",
                extra={"slug": slug, "error": str(e)}
            )
            raise ConflictError(f"Tour package with slug '{slug}' already exists")

        logger.info(
            "Tour package created",
            extra={"tour_id": str(tour.id), "slug": slug, "created_by": str(creator.id)}
        )

        return await self.get_tour_by_id_or_raise(tour.id, include_inactive=True)

    async def update_tour(self, tour_id: UUID, updates: Dict[str, Any]) -> TourPackage:
        """
        Apply a whitelisted partial update.

        Unknown fields or invalid values reject the whole update before the
        package is touched.

        Raises:
            ValidationError: "Invalid updates" or a value validation failure
            NotFoundError: If the package does not exist
            ConflictError: If a new slug is already taken
        """
        request = validate_update(UpdateTourPackageRequest, updates, TOUR_UPDATE_FIELDS)
        tour = await self.get_tour_by_id_or_raise(tour_id, include_inactive=True)
        changes = request.model_dump(exclude_unset=True)

        if request.seo is not None and request.seo.slug and request.seo.slug != tour.slug:
            await self._ensure_slug_available(request.seo.slug, exclude_id=tour.id)

        for name in ("name", "description", "short_description", "is_active", "is_featured"):
            if changes.get(name) is not None:
                setattr(tour, name, changes[name])
        if request.category is not None:
            tour.category = request.category.value
        if request.circuit is not None:
            tour.circuit = request.circuit.value
        if request.duration is not None:
            tour.duration_days = request.duration.days
            tour.duration_nights = request.duration.nights
        if request.pricing is not None:
            _apply_pricing(tour, request.pricing)
        if request.destinations is not None:
            tour.destinations = _dump_list(request.destinations)
        if request.itinerary is not None:
            tour.itinerary = _dump_list(request.itinerary)
        for name in ("availability", "inclusions", "media", "requirements"):
            value = getattr(request, name)
            if value is not None:
                setattr(tour, name, value.model_dump(mode="json"))
        if request.seo is not None:
            if request.seo.slug:
                tour.slug = request.seo.slug
            tour.seo = _seo_document(request.seo)

        await self.db.commit()

        logger.info(
            "Tour package updated",
            extra={"tour_id": str(tour.id), "fields": sorted(updates)}
        )

        return await self.get_tour_by_id_or_raise(tour.id, include_inactive=True)

    async def deactivate_tour(self, tour_id: UUID) -> TourPackage:
        """
        Soft-delete a package.

        It disappears from the public catalog but stays joinable from the
        bookings that reference it.
        """
        tour = await self.get_tour_by_id_or_raise(tour_id, include_inactive=True)
        tour.is_active = False
        await self.db.commit()

        logger.info("Tour package deactivated", extra={"tour_id": str(tour.id)})
        return tour

    async def list_tours(self, params: TourSearchParams) -> Tuple[List[TourPackage], int]:
        """
        List active packages matching the catalog filters.

        Returns:
            The requested page of packages and the total matching count
        """
        conditions = [TourPackage.is_active.is_(True)]
        if params.category is not None:
            conditions.append(TourPackage.category == params.category.value)
        if params.circuit is not None:
            conditions.append(TourPackage.circuit == params.circuit.value)
        if params.min_price is not None:
            conditions.append(TourPackage.base_price >= params.min_price)
        if params.max_price is not None:
            conditions.append(TourPackage.base_price <= params.max_price)
        if params.duration is not None:
            conditions.append(TourPackage.duration_days == params.duration)
        if params.featured is not None:
            conditions.append(TourPackage.is_featured.is_(params.featured))
        if params.search:
            pattern = f"%{params.search}%"
            conditions.append(or_(
                TourPackage.name.ilike(pattern),
                TourPackage.description.ilike(pattern),
                TourPackage.short_description.ilike(pattern),
                TourPackage.destination_names.like(f"%{params.search.strip().casefold()}%"),
            ))

        descending = params.sort.startswith("-")
        column = SORT_COLUMNS[params.sort.lstrip("-")]
        order = column.desc() if descending else column.asc()

        total = await self.db.scalar(select(func.count()).select_from(TourPackage).where(*conditions))

        result = await self.db.execute(
            select(TourPackage)
            .options(selectinload(TourPackage.created_by))
            .where(*conditions)
            .order_by(order, TourPackage.id)
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_featured(self, limit: int = FEATURED_LIMIT) -> List[TourPackage]:
        """Active featured packages, newest first."""
        result = await self.db.execute(
            select(TourPackage)
            .options(selectinload(TourPackage.created_by))
            .where(TourPackage.is_active.is_(True), TourPackage.is_featured.is_(True))
            .order_by(TourPackage.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
