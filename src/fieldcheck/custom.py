"""Custom rule registration and invocation.

A custom rule is an external predicate ``(value, context) -> ValidationResult``,
synchronous or asynchronous. Its entries are merged into the aggregate
under the owning field's key. Exceptions raised by a predicate are not
caught here: they reach the caller of ``validate()`` unchanged.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fieldcheck.exceptions import AsyncRuleInSyncContextError, UnknownCustomRuleError
from fieldcheck.messages import MessageFormatter
from fieldcheck.rules import Custom, FieldRules
from fieldcheck.types import Severity, ValidationContext, ValidationError, ValidationResult

logger = logging.getLogger(__name__)

CustomRuleFn = Callable[
    [Any, ValidationContext],
    "ValidationResult | None | Awaitable[ValidationResult | None]",
]


class CustomRuleRegistry:
    """Named custom predicates referenced from rule tables.

    Example:
        rules = CustomRuleRegistry()

        @rules.rule("uniqueUsername")
        async def unique_username(value, ctx):
            ...
    """

    def __init__(self) -> None:
        self._rules: dict[str, CustomRuleFn] = {}

    def register(self, name: str, fn: CustomRuleFn) -> None:
        """Register a predicate by name. Re-registering replaces the prior entry."""
        if name in self._rules:
            logger.debug("Replacing custom rule '%s'", name)
        self._rules[name] = fn

    def rule(self, name: str) -> Callable[[CustomRuleFn], CustomRuleFn]:
        """Decorator form of register()."""

        def decorator(fn: CustomRuleFn) -> CustomRuleFn:
            self.register(name, fn)
            return fn

        return decorator

    def get(self, name: str) -> CustomRuleFn:
        if name not in self._rules:
            raise UnknownCustomRuleError(
                f"Custom rule '{name}' is not registered. "
                "Custom rules must be registered before validation runs."
            )
        return self._rules[name]

    def is_registered(self, name: str) -> bool:
        return name in self._rules

    def list_registered(self) -> list[str]:
        return sorted(self._rules)

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._rules.clear()


class CustomRuleInvoker:
    """Runs Custom specs and folds their results into the aggregate."""

    def __init__(
        self,
        registry: CustomRuleRegistry | None = None,
        formatter: MessageFormatter | None = None,
    ):
        self.registry = registry or CustomRuleRegistry()
        self.formatter = formatter or MessageFormatter()

    def resolve(self, rule: Custom) -> CustomRuleFn:
        if callable(rule.invoker):
            return rule.invoker
        return self.registry.get(rule.invoker)

    async def invoke(
        self,
        rule: Custom,
        field_rules: FieldRules,
        value: Any,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        """Call the predicate, awaiting it in place when it is asynchronous."""
        fn = self.resolve(rule)
        context.cancellation.raise_if_cancelled()

        outcome = fn(value, context)
        if inspect.isawaitable(outcome):
            outcome = await outcome

        # A result produced after cancellation is partial; never report it
        context.cancellation.raise_if_cancelled()
        self._merge(rule, field_rules, outcome, context, result)

    def invoke_sync(
        self,
        rule: Custom,
        field_rules: FieldRules,
        value: Any,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        """Call a synchronous predicate. Asynchronous ones are rejected."""
        if rule.is_async:
            raise AsyncRuleInSyncContextError(
                f"Custom rule '{rule.invoker_name}' on '{field_rules.name}' is "
                "asynchronous; use validate() instead of validate_sync()"
            )
        fn = self.resolve(rule)
        context.cancellation.raise_if_cancelled()

        outcome = fn(value, context)
        if inspect.isawaitable(outcome):
            if inspect.iscoroutine(outcome):
                outcome.close()
            raise AsyncRuleInSyncContextError(
                f"Custom rule '{rule.invoker_name}' on '{field_rules.name}' returned "
                "an awaitable; use validate() instead of validate_sync()"
            )

        context.cancellation.raise_if_cancelled()
        self._merge(rule, field_rules, outcome, context, result)

    def _merge(
        self,
        rule: Custom,
        field_rules: FieldRules,
        outcome: Any,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        if outcome is None:
            return
        if not isinstance(outcome, ValidationResult):
            raise TypeError(
                f"Custom rule '{rule.invoker_name}' must return a ValidationResult "
                f"or None, got {type(outcome).__name__}"
            )

        adjusted = ValidationResult()
        for entry in outcome.errors:
            severity = entry.severity
            if severity is Severity.ERROR and rule.severity is not Severity.ERROR:
                severity = rule.severity
            message = entry.message or self.formatter.format(
                rule, field_rules.descriptor.label, context.culture
            )
            adjusted.errors.append(
                ValidationError(entry.field, message, severity, entry.rule or rule.tag)
            )

        result.merge(adjusted, prefix=field_rules.name)
