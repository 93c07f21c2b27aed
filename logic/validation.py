"""Pydantic schemas for validating recommendation requests."""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from models.records import RecommendationRequest
from outfit_app.errors import ValidationError


class RecommendationInput(BaseModel):
    """Inbound request envelope shared by the HTTP, CLI and library paths."""

    user_input: str = Field(min_length=1)
    preference: str = ""
    location: str = ""

    @field_validator("user_input")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("user question is required")
        return value

    @field_validator("preference", "location")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


def validate_request(
    user_input: str | None,
    preference: str | None = None,
    location: str | None = None,
    *,
    default_preference: str = "casual",
    default_location: str = "",
) -> RecommendationRequest:
    """Validate caller input and apply defaults for blank optional fields."""

    try:
        parsed = RecommendationInput(
            user_input=user_input or "",
            preference=preference or "",
            location=location or "",
        )
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        raise ValidationError(first.get("msg", "user question is required")) from exc

    return RecommendationRequest(
        user_input=parsed.user_input,
        preference=parsed.preference or default_preference,
        location=parsed.location or default_location,
    )


__all__ = ["RecommendationInput", "validate_request"]
