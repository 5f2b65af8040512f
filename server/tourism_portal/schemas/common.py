"""Common Pydantic schemas."""

import math
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Message(BaseModel):
    """Plain acknowledgement response."""

    message: str = Field(..., description="Human-readable outcome")


class FieldViolation(BaseModel):
    """Validation error detail."""

    field: str = Field(..., description="Dotted path to the invalid field")
    message: str = Field(..., description="Validation error message")


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    message: str = Field(..., description="Short human-readable summary")
    details: Optional[Any] = Field(None, description="Problem-specific information")


class Pagination(BaseModel):
    """Offset pagination metadata."""

    current: int = Field(..., ge=1, description="Current page number")
    pages: int = Field(..., ge=0, description="Total number of pages")
    total: int = Field(..., ge=0, description="Total number of matching records")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(current=page, pages=math.ceil(total / limit) if limit else 0, total=total)


class PageParams(BaseModel):
    """Page/limit query parameters."""

    page: int = Field(1, ge=1, description="Page number (1-based)")
    limit: int = Field(20, ge=1, le=100, description="Results per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class AccountSummary(BaseModel):
    """Minimal account representation used when joining references."""

    id: UUID = Field(..., description="Account ID")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    email: Optional[str] = Field(None, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")

    model_config = {"from_attributes": True}


class NamedAccount(BaseModel):
    """Author reference on notes."""

    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class NoteEntry(BaseModel):
    """Append-only note attributed to an actor."""

    note: str
    type: Optional[str] = None
    added_by: Optional[NamedAccount] = None
    date: Any


class NotesResponse(BaseModel):
    message: str = "Note added successfully"
    notes: List[NoteEntry]
