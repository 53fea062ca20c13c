"""Validation engine.

Ties the pieces of one validation pass together:

    registry lookup -> sanitize -> evaluate fields (custom rules awaited
    in place) -> model-level hook -> ValidationResult

Usage:
    engine = ValidationEngine(registry)
    engine.register(customer_rules)

    result = await engine.validate(customer, group="Registration")
    if not result.is_valid:
        ...
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any

from fieldcheck.config import EngineSettings
from fieldcheck.custom import CustomRuleInvoker, CustomRuleRegistry
from fieldcheck.evaluator import RuleEvaluator
from fieldcheck.exceptions import (
    AsyncRuleInSyncContextError,
    RegistryMissError,
    ValidationCancelledError,
)
from fieldcheck.hooks import resolve_model_hook, run_model_hook, run_model_hook_sync
from fieldcheck.messages import MessageCatalog, MessageFormatter
from fieldcheck.metrics import Outcome, ValidationEvent, ValidationMetrics
from fieldcheck.registry import ValidatorFn, ValidatorRegistry, get_registry
from fieldcheck.rules import TypeRuleSet
from fieldcheck.sanitizer import Sanitizer
from fieldcheck.types import CancellationToken, ValidationContext, ValidationResult

logger = logging.getLogger(__name__)


# =============================================================================
# Compiled Validator
# =============================================================================


class CompiledValidator:
    """Evaluator function for one type, built from its rule table.

    Holds only read-only collaborators, so one instance is shared by all
    concurrent validation calls for the type.
    """

    def __init__(
        self,
        rule_set: TypeRuleSet,
        evaluator: RuleEvaluator,
        sanitizer: Sanitizer | None = None,
    ):
        self.rule_set = rule_set
        self.evaluator = evaluator
        self.sanitizer = sanitizer or Sanitizer()
        self.model_hook = resolve_model_hook(rule_set)

    async def __call__(self, context: ValidationContext) -> ValidationResult:
        instance = context.instance
        result = ValidationResult()
        context.cancellation.raise_if_cancelled()

        self.sanitizer.sanitize(instance, self.rule_set)
        await self.evaluator.evaluate(instance, self.rule_set, context, result)

        if self.model_hook is not None:
            await run_model_hook(self.model_hook, instance, context, result)
        return result

    def run_sync(self, context: ValidationContext) -> ValidationResult:
        instance = context.instance
        result = ValidationResult()
        context.cancellation.raise_if_cancelled()

        self.sanitizer.sanitize(instance, self.rule_set)
        self.evaluator.evaluate_sync(instance, self.rule_set, context, result)

        if self.model_hook is not None:
            run_model_hook_sync(self.model_hook, instance, context, result)
        return result

    def __repr__(self) -> str:
        return f"CompiledValidator({self.rule_set.name})"


# =============================================================================
# Engine
# =============================================================================


class ValidationEngine:
    """Entry point for validating instances against registered rule tables.

    A registry miss is a silent pass-through (the instance is treated as
    having no rules) unless strict mode is enabled.
    """

    def __init__(
        self,
        registry: ValidatorRegistry | None = None,
        *,
        custom_rules: CustomRuleRegistry | None = None,
        catalog: MessageCatalog | None = None,
        settings: EngineSettings | None = None,
        metrics: ValidationMetrics | None = None,
        strict: bool | None = None,
        default_culture: str | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.registry = registry if registry is not None else get_registry()
        self.custom_rules = custom_rules if custom_rules is not None else CustomRuleRegistry()
        self.metrics = metrics if metrics is not None else ValidationMetrics()
        self.strict = self.settings.strict if strict is None else strict

        self.catalog = catalog if catalog is not None else MessageCatalog()
        if self.settings.messages_path is not None:
            self.catalog.load_yaml(self.settings.messages_path)

        self.formatter = MessageFormatter(
            self.catalog, default_culture or self.settings.default_culture
        )
        self.invoker = CustomRuleInvoker(self.custom_rules, self.formatter)
        self.evaluator = RuleEvaluator(self.formatter, self.invoker)
        self.sanitizer = Sanitizer()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def compile(self, rule_set: TypeRuleSet) -> CompiledValidator:
        return CompiledValidator(rule_set, self.evaluator, self.sanitizer)

    def register(self, rule_set: TypeRuleSet) -> CompiledValidator:
        """Compile a rule table and register it under its model type."""
        compiled = self.compile(rule_set)
        self.registry.register(rule_set.model_type, compiled)
        return compiled

    def register_validator(self, type_id: Any, validator: ValidatorFn) -> None:
        """Register a handwritten evaluator function."""
        self.registry.register(type_id, validator)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def validate(
        self,
        instance: Any,
        context: ValidationContext | None = None,
        *,
        type_id: Any = None,
        group: str | None = None,
        services: Any = None,
        items: Mapping[Any, Any] | None = None,
        cancellation: CancellationToken | None = None,
        culture: str | None = None,
    ) -> ValidationResult:
        """Validate an instance.

        Args:
            instance: The model instance; sanitized in place
            context: A prepared context; when given, the per-call options
                (group, services, items, cancellation, culture) are ignored
            type_id: Registry key; defaults to ``type(instance)``. Required for
                mapping records registered under a string id.
            group: Active validation group
            services: Service locator handed to custom rules and hooks
            items: Initial side-channel items
            cancellation: Cancellation signal for the call
            culture: Culture for localized messages

        Returns:
            ValidationResult with entries in evaluation order

        Raises:
            RegistryMissError: Strict mode only, when nothing is registered
            ValidationCancelledError: The call was cancelled
        """
        context = self._context_for(
            instance, context, group, services, items, cancellation, culture
        )
        type_id = type(instance) if type_id is None else type_id
        started = time.perf_counter()
        validator = self._lookup(type_id, started, context)
        if validator is None:
            return ValidationResult.success()

        outcome = Outcome.FAULTED
        result = None
        try:
            result = validator(context)
            if inspect.isawaitable(result):
                result = await result
            outcome = Outcome.VALID if result.is_valid else Outcome.INVALID
            return result
        except (ValidationCancelledError, asyncio.CancelledError):
            outcome = Outcome.CANCELLED
            raise
        finally:
            self._record(type_id, started, outcome, result, context)

    def validate_sync(
        self,
        instance: Any,
        context: ValidationContext | None = None,
        *,
        type_id: Any = None,
        group: str | None = None,
        services: Any = None,
        items: Mapping[Any, Any] | None = None,
        cancellation: CancellationToken | None = None,
        culture: str | None = None,
    ) -> ValidationResult:
        """Synchronous variant of validate().

        Raises:
            AsyncRuleInSyncContextError: An asynchronous custom rule, hook or
                evaluator was reached
        """
        context = self._context_for(
            instance, context, group, services, items, cancellation, culture
        )
        type_id = type(instance) if type_id is None else type_id
        started = time.perf_counter()
        validator = self._lookup(type_id, started, context)
        if validator is None:
            return ValidationResult.success()

        outcome = Outcome.FAULTED
        result = None
        try:
            if isinstance(validator, CompiledValidator):
                result = validator.run_sync(context)
            else:
                result = validator(context)
                if inspect.isawaitable(result):
                    if inspect.iscoroutine(result):
                        result.close()
                    result = None
                    raise AsyncRuleInSyncContextError(
                        f"Validator for '{_type_name(type_id)}' is asynchronous; "
                        "use validate() instead of validate_sync()"
                    )
            outcome = Outcome.VALID if result.is_valid else Outcome.INVALID
            return result
        except ValidationCancelledError:
            outcome = Outcome.CANCELLED
            raise
        finally:
            self._record(type_id, started, outcome, result, context)

    def _context_for(
        self,
        instance: Any,
        context: ValidationContext | None,
        group: str | None,
        services: Any,
        items: Mapping[Any, Any] | None,
        cancellation: CancellationToken | None,
        culture: str | None,
    ) -> ValidationContext:
        if context is None:
            return ValidationContext(
                instance=instance,
                services=services,
                group=group,
                cancellation=cancellation or CancellationToken(),
                items=dict(items or {}),
                culture=culture,
            )
        if context.instance is not instance:
            raise ValueError("context.instance must be the instance being validated")
        return context

    def _lookup(
        self, type_id: Any, started: float, context: ValidationContext
    ) -> ValidatorFn | None:
        """Registered evaluator, or None. A miss is recorded as UNREGISTERED."""
        validator = self.registry.try_get(type_id)
        if validator is None:
            self._record(type_id, started, Outcome.UNREGISTERED, None, context)
            if self.strict:
                raise RegistryMissError(_type_name(type_id))
            logger.debug("No validator registered for %s; treating as valid", _type_name(type_id))
        return validator

    def _record(
        self,
        type_id: Any,
        started: float,
        outcome: Outcome,
        result: ValidationResult | None,
        context: ValidationContext,
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        counts = {"errors": 0, "warnings": 0, "infos": 0}
        if isinstance(result, ValidationResult):
            counts = {
                "errors": len(result.blocking),
                "warnings": len(result.warnings),
                "infos": len(result.infos),
            }
        self.metrics.record(
            ValidationEvent(
                type_name=_type_name(type_id),
                outcome=outcome,
                duration_ms=duration_ms,
                group=context.group,
                **counts,
            )
        )


def _type_name(type_id: Any) -> str:
    return getattr(type_id, "__name__", None) or str(type_id)
