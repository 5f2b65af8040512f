"""Helpers for whitelisted partial updates."""

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def check_whitelist(updates: Dict[str, Any], allowed: frozenset) -> None:
    """
    Reject an update that names any field outside ``allowed``.

    Raises:
        ValidationError: "Invalid updates", listing the offending fields
    """
    invalid = sorted(set(updates) - allowed)
    if invalid:
        raise ValidationError(
            "Invalid updates",
            details=[{"field": name, "message": "Field cannot be updated"} for name in invalid],
        )


def validate_update(schema: Type[SchemaT], updates: Dict[str, Any], allowed: frozenset) -> SchemaT:
    """
    Check the whitelist, then validate the values against ``schema``.

    Both checks run before the caller touches any row, so a bad update
    changes nothing.
    """
    check_whitelist(updates, allowed)
    try:
        return schema.model_validate(updates)
    except PydanticValidationError as e:
        raise ValidationError(details=[
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ])


def merge_document(current: Optional[dict], changes: Dict[str, Any]) -> dict:
    """Shallow merge: top-level keys in ``changes`` replace those in ``current``."""
    merged = dict(current or {})
    merged.update(changes)
    return merged
