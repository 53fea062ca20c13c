"""Structured responses built from a ValidationResult.

A failed validation becomes a problem-details style payload: blocking
errors grouped as field -> messages, with warnings and infos delivered
alongside. A successful validation still carries its warnings and infos.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fieldcheck.types import Severity, ValidationError, ValidationResult

PROBLEM_TYPE = "https://tools.ietf.org/html/rfc7231#section-6.5.1"
PROBLEM_TITLE = "One or more validation errors occurred."


@dataclass
class ValidationResponse:
    """Response for a validated request."""

    success: bool
    status_code: int
    errors: dict[str, list[str]] = field(default_factory=dict)
    warnings: dict[str, list[str]] = field(default_factory=dict)
    infos: dict[str, list[str]] = field(default_factory=dict)
    data: Any = None
    model_type: str | None = None
    correlation_id: str | None = None
    duration_ms: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}

        if not self.success:
            result["type"] = PROBLEM_TYPE
            result["title"] = PROBLEM_TITLE
            result["status"] = self.status_code
            result["errors"] = self.errors

        if self.data is not None:
            result["data"] = self.data

        if self.warnings:
            result["warnings"] = self.warnings

        if self.infos:
            result["infos"] = self.infos

        if self.correlation_id is not None:
            result["correlationId"] = self.correlation_id

        if self.model_type is not None:
            result["modelType"] = self.model_type

        if self.duration_ms is not None:
            result["validationDurationMs"] = round(self.duration_ms, 3)

        result["timestamp"] = self.timestamp.isoformat()
        return result


def group_messages(entries: Iterable[ValidationError]) -> dict[str, list[str]]:
    """Field -> messages, fields in first-seen order."""
    grouped: dict[str, list[str]] = {}
    for entry in entries:
        grouped.setdefault(entry.field, []).append(entry.message)
    return grouped


def errors_by_field(
    result: ValidationResult, severity: Severity = Severity.ERROR
) -> dict[str, list[str]]:
    return group_messages(result.with_severity(severity))


def create_error_response(
    result: ValidationResult,
    model_type: str | None = None,
    correlation_id: str | None = None,
    duration_ms: float | None = None,
) -> ValidationResponse:
    """Create a 400 problem-details response for a failed validation."""
    return ValidationResponse(
        success=False,
        status_code=400,
        errors=errors_by_field(result, Severity.ERROR),
        warnings=errors_by_field(result, Severity.WARNING),
        infos=errors_by_field(result, Severity.INFO),
        model_type=model_type,
        correlation_id=correlation_id or str(uuid.uuid4()),
        duration_ms=duration_ms,
    )


def create_success_response(
    result: ValidationResult | None = None,
    data: Any = None,
    status_code: int = 200,
) -> ValidationResponse:
    """Create a success response; warnings and infos are passed through."""
    result = result or ValidationResult.success()
    return ValidationResponse(
        success=True,
        status_code=status_code,
        warnings=errors_by_field(result, Severity.WARNING),
        infos=errors_by_field(result, Severity.INFO),
        data=data,
    )


def create_response(
    result: ValidationResult,
    data: Any = None,
    **kwargs: Any,
) -> ValidationResponse:
    """Error response when any entry blocks, success response otherwise."""
    if result.is_valid:
        return create_success_response(result, data)
    return create_error_response(result, **kwargs)
