"""Model-level (cross-field) hooks.

A hook is resolved once per type when its rule table is compiled: an
explicit ``TypeRuleSet.model_hook`` wins, otherwise a model type that
implements the HasModelLevelRules capability contributes its own
``validate(context)``. The hook always runs once per call, after every
field rule, regardless of earlier failures.
"""

import inspect
from collections.abc import Iterable
from typing import Any

from fieldcheck.exceptions import AsyncRuleInSyncContextError
from fieldcheck.rules import ModelHook, TypeRuleSet
from fieldcheck.types import (
    HasModelLevelRules,
    ModelViolation,
    Severity,
    ValidationContext,
    ValidationError,
    ValidationResult,
)

MODEL_RULE_TAG = "model"


def _capability_hook(instance: Any, context: ValidationContext) -> Any:
    return instance.validate(context)


def resolve_model_hook(rule_set: TypeRuleSet) -> ModelHook | None:
    """Pick the cross-field hook for a rule table, if any."""
    if rule_set.model_hook is not None:
        return rule_set.model_hook

    model_type = rule_set.model_type
    if isinstance(model_type, type) and issubclass(model_type, HasModelLevelRules):
        return _capability_hook
    return None


def to_validation_error(entry: Any) -> ValidationError:
    """Normalize one hook entry.

    Accepted shapes: ModelViolation, ValidationError, or a tuple
    ``(field_path, message)`` / ``(field_path, message, severity)``.
    """
    if isinstance(entry, ValidationError):
        return entry
    if isinstance(entry, ModelViolation):
        return ValidationError(entry.field or "", entry.message, entry.severity, MODEL_RULE_TAG)
    if isinstance(entry, tuple) and len(entry) in (2, 3):
        field_path, message = entry[0], entry[1]
        severity = Severity.parse(entry[2]) if len(entry) == 3 else Severity.ERROR
        return ValidationError(field_path or "", str(message), severity, MODEL_RULE_TAG)
    raise TypeError(
        "Model-level hooks must yield ModelViolation, ValidationError or "
        f"(field_path, message[, severity]) tuples, got {entry!r}"
    )


def collect(entries: Iterable[Any] | None, result: ValidationResult) -> None:
    if entries is None:
        return
    result.extend(to_validation_error(entry) for entry in entries)


async def run_model_hook(
    hook: ModelHook,
    instance: Any,
    context: ValidationContext,
    result: ValidationResult,
) -> None:
    entries = hook(instance, context)
    if inspect.isawaitable(entries):
        entries = await entries
    collect(entries, result)


def run_model_hook_sync(
    hook: ModelHook,
    instance: Any,
    context: ValidationContext,
    result: ValidationResult,
) -> None:
    entries = hook(instance, context)
    if inspect.isawaitable(entries):
        if inspect.iscoroutine(entries):
            entries.close()
        raise AsyncRuleInSyncContextError(
            "Model-level hook is asynchronous; use validate() instead of validate_sync()"
        )
    collect(entries, result)
