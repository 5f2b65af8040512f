"""CRM router for customer views, notes, segments and campaigns."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_roles
from ..models.account import Account, Role
from ..schemas.common import NotesResponse, PageParams, Pagination
from ..schemas.crm import (
    AddCustomerNoteRequest,
    Campaign,
    CampaignListResponse,
    CampaignResponse,
    CreateCampaignRequest,
    CustomerDetailResponse,
    CustomerFilters,
    CustomerListResponse,
    CustomerRow,
    SegmentsResponse,
)
from ..services.crm_service import CRMService
from .auth import account_to_schema
from .bookings import booking_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/crm", tags=["crm"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
FILTERS_QUERY = Query()
PAGE_QUERY = Query()
CUSTOMER_STAFF = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.MARKETING, Role.AGENT))
MARKETING_STAFF = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.MARKETING))


@router.get("/customers", response_model=CustomerListResponse)
async def list_customers(
    filters: CustomerFilters = FILTERS_QUERY,
    account: Account = CUSTOMER_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> CustomerListResponse:
    """Customer accounts with lifetime booking totals, newest first."""
    rows, total = await CRMService(db).list_customers(filters)
    customers = [
        CustomerRow(
            **account_to_schema(row["account"]).model_dump(),
            total_bookings=row["total_bookings"],
            total_spent=row["total_spent"],
            last_booking_date=row["last_booking_date"],
        )
        for row in rows
    ]
    return CustomerListResponse(
        customers=customers,
        pagination=Pagination.build(filters.page, filters.limit, total),
    )


@router.get("/customers/{customer_id}", response_model=CustomerDetailResponse)
async def get_customer(
    customer_id: UUID,
    account: Account = CUSTOMER_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> CustomerDetailResponse:
    detail = await CRMService(db).customer_detail(customer_id)
    return CustomerDetailResponse(
        customer=account_to_schema(detail["customer"]),
        statistics=detail["statistics"],
        recent_bookings=[booking_to_schema(booking) for booking in detail["recent_bookings"]],
    )


@router.post("/customers/{customer_id}/notes", response_model=NotesResponse)
async def add_customer_note(
    customer_id: UUID,
    request: AddCustomerNoteRequest,
    account: Account = CUSTOMER_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> NotesResponse:
    notes = await CRMService(db).add_customer_note(customer_id, request.note, request.type, account)
    return NotesResponse(notes=notes)


@router.get("/segments/overview", response_model=SegmentsResponse)
async def segments_overview(
    account: Account = MARKETING_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> SegmentsResponse:
    return SegmentsResponse(**await CRMService(db).segments_overview())


@router.post("/campaigns", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    request: CreateCampaignRequest,
    account: Account = MARKETING_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> CampaignResponse:
    """Schedule a campaign; delivery happens outside this service."""
    campaign = await CRMService(db).create_campaign(request, account)
    return CampaignResponse(campaign=Campaign.model_validate(campaign))


@router.get("/campaigns", response_model=CampaignListResponse)
async def list_campaigns(
    page: PageParams = PAGE_QUERY,
    account: Account = MARKETING_STAFF,
    db: AsyncSession = DB_DEPENDENCY,
) -> CampaignListResponse:
    campaigns, total = await CRMService(db).list_campaigns(page.page, page.limit)
    return CampaignListResponse(
        campaigns=[Campaign.model_validate(campaign) for campaign in campaigns],
        pagination=Pagination.build(page.page, page.limit, total),
    )
