"""
Pydantic schemas for input validation at the ingestion boundary.

Scores are rejected here when they fall outside the 1..5 scale, so stored
rows and the aggregator only ever see well-formed answers.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

UserRole = Literal["admin", "leader", "manager"]
SubmissionRole = Literal["Self", "Manager"]


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
        "use_enum_values": True,
    }

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Strip markup and control characters from free-text input."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


class ScoreSubmissionInput(BaseValidationSchema):
    """One answer: a question id and a 1-5 rating."""

    question_id: int = Field(..., gt=0)
    score: int = Field(..., ge=1, le=5, description="1 = Strongly Disagree, 5 = Strongly Agree")

    @field_validator("score", mode="before")
    def reject_booleans(cls, v):
        if isinstance(v, bool):
            raise ValueError("Score must be an integer between 1 and 5")
        return v


class AssessmentSubmissionInput(BaseValidationSchema):
    """A full self or manager submission for one leader."""

    leader_id: int = Field(..., gt=0)
    manager_id: int | None = Field(None, gt=0)
    role: SubmissionRole = "Self"
    responses: dict[int, Any] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_roles(self):
        """Manager submissions need a manager who is not the leader."""
        if self.role == "Manager":
            if self.manager_id is None:
                raise ValueError("manager_id is required for a manager assessment")
            if self.manager_id == self.leader_id:
                raise ValueError("A leader cannot submit their own manager assessment")
        return self


class UserCreationInput(BaseValidationSchema):
    """Validation schema for creating users."""

    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = "leader"
    project: str | None = Field(None, max_length=255)

    @field_validator("email")
    def validate_email(cls, v):
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email address is not valid")
        return v.lower()

    @field_validator("name")
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("project")
    def validate_optional_fields(cls, v):
        if v is not None and len(v.strip()) == 0:
            return None
        return v


class AssessmentRequestInput(BaseValidationSchema):
    """A leader asking for a manager assessment."""

    leader_id: int = Field(..., gt=0)
    manager_id: int | None = Field(None, gt=0)

    @model_validator(mode="after")
    def validate_distinct(self):
        if self.manager_id is not None and self.manager_id == self.leader_id:
            raise ValueError("A leader cannot be their own manager")
        return self


class SessionDeletionInput(BaseValidationSchema):
    """Entries of one assessment session to clear."""

    leader_id: int = Field(..., gt=0)
    entry_ids: list[int] = Field(..., min_length=1)
    session_type: SubmissionRole

    @field_validator("entry_ids")
    def validate_entry_ids(cls, v):
        if any(eid <= 0 for eid in v):
            raise ValueError("All entry IDs must be positive integers")
        return sorted(set(v))


class ExportFormat(BaseValidationSchema):
    """Validation schema for export formats."""

    format_type: str = Field(..., pattern=r"^(json|xlsx)$")


class ValidationErrorDetail(BaseModel):
    """Schema for validation error details."""

    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    """Schema for validation responses."""

    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Args:
        schema_class: Pydantic model class to use for validation
        data: Input data to validate

    Returns:
        ValidationResponse with success status and any errors

    Example:
        >>> result = validate_input(ScoreSubmissionInput, {"question_id": 1, "score": 6})
        >>> result.success
        False
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):  # Pydantic validation errors
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
