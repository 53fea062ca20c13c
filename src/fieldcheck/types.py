"""Core types for the fieldcheck validation engine.

This module defines the per-call types that flow through a validation pass:
- Severity: Error blocks, Warning and Info are informational
- ValidationError / ValidationResult: the aggregated outcome
- ModelViolation: an entry produced by a model-level hook
- CancellationToken / ValidationContext: the per-call bundle
"""

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from fieldcheck.exceptions import ValidationCancelledError


class Severity(Enum):
    """Validation result severity.

    ERROR: Makes the result invalid
    WARNING: Delivered to the caller, never blocks
    INFO: Delivered to the caller, never blocks
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def parse(cls, value: "Severity | str") -> "Severity":
        """Accept a Severity or its case-insensitive name/value."""
        if isinstance(value, Severity):
            return value
        return cls(str(value).lower())


@dataclass(frozen=True)
class ValidationError:
    """A single validation finding.

    Attributes:
        field: Field path the entry relates to ("" for model-level entries)
        message: Human-readable, fully formatted message
        severity: ERROR affects validity, WARNING/INFO do not
        rule: Rule-kind tag that produced the entry (e.g. "required", "custom")
    """

    field: str
    message: str
    severity: Severity = Severity.ERROR
    rule: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
            "rule": self.rule,
        }


@dataclass
class ValidationResult:
    """Aggregated outcome of one validation pass.

    Entries are kept in insertion order, which is evaluation order:
    fields in declaration order, rules in declaration order within a field,
    then model-level entries. Validity is computed from the entries, never
    stored.
    """

    errors: list[ValidationError] = field(default_factory=list)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @property
    def is_valid(self) -> bool:
        """True if no entry has ERROR severity."""
        return not any(e.severity is Severity.ERROR for e in self.errors)

    def add(
        self,
        field: str,
        message: str,
        severity: Severity = Severity.ERROR,
        rule: str = "",
    ) -> None:
        self.errors.append(ValidationError(field, message, severity, rule))

    def extend(self, entries: Iterable[ValidationError]) -> None:
        self.errors.extend(entries)

    def merge(self, other: "ValidationResult", prefix: str | None = None) -> None:
        """Append the entries of a nested result.

        With a prefix, each entry is re-keyed to ``prefix.member``; an entry
        without a member is keyed by the prefix alone.

        Args:
            other: The nested result (e.g. returned by a custom rule)
            prefix: Field path of the owner of the nested result
        """
        for entry in other.errors:
            if prefix:
                path = f"{prefix}.{entry.field}" if entry.field else prefix
            else:
                path = entry.field
            self.errors.append(
                ValidationError(path, entry.message, entry.severity, entry.rule)
            )

    def with_severity(self, severity: Severity) -> list[ValidationError]:
        return [e for e in self.errors if e.severity is severity]

    @property
    def blocking(self) -> list[ValidationError]:
        return self.with_severity(Severity.ERROR)

    @property
    def warnings(self) -> list[ValidationError]:
        return self.with_severity(Severity.WARNING)

    @property
    def infos(self) -> list[ValidationError]:
        return self.with_severity(Severity.INFO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class ModelViolation:
    """A cross-field finding reported by a model-level hook.

    Attributes:
        field: Field path the finding relates to ("" for the whole model)
        message: Human-readable message
        severity: Defaults to ERROR
    """

    field: str
    message: str
    severity: Severity = Severity.ERROR


class CancellationToken:
    """Cooperative cancellation signal threaded through a validation call.

    Safe to cancel from another thread while a pass is running.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ValidationCancelledError("Validation was cancelled")


@dataclass
class ValidationContext:
    """Per-call context handed to the evaluator, custom rules and model hooks.

    Attributes:
        instance: The model instance being validated (owned by this call)
        services: Service locator: a mapping or a callable taking a key
        group: Active validation group; group-tagged rules run only on an exact match
        cancellation: Cancellation signal for the call
        items: Side-channel key/value bag shared by rules during the call
        culture: Culture used to resolve localized messages (None = engine default)
    """

    instance: Any
    services: Any = None
    group: str | None = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    items: dict[Any, Any] = field(default_factory=dict)
    culture: str | None = None

    def get_service(self, key: Any, default: Any = None) -> Any:
        """Resolve a dependency from the service locator."""
        if self.services is None:
            return default
        if isinstance(self.services, Mapping):
            return self.services.get(key, default)
        if callable(self.services):
            service = self.services(key)
            return default if service is None else service
        return getattr(self.services, str(key), default)


@runtime_checkable
class HasModelLevelRules(Protocol):
    """Capability of a model type that contributes cross-field checks.

    The hook runs once per validation call, after all field rules, whether
    or not those rules failed. It yields ModelViolation entries or
    ``(field_path, message[, severity])`` tuples.
    """

    def validate(self, context: ValidationContext) -> Iterable[Any]:
        ...
