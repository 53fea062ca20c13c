"""Rule evaluator (core engine).

Walks a TypeRuleSet field by field, rule by rule, in declaration order.
Group-tagged rules are skipped unless the active group matches exactly.
Built-in rules are checked inline; Custom rules go through the
CustomRuleInvoker and are awaited in place, one at a time, so the error
order is identical for sync and async predicates.
"""

import numbers
import re
from collections.abc import Callable, Iterator
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fieldcheck.custom import CustomRuleInvoker
from fieldcheck.messages import MessageFormatter
from fieldcheck.rules import (
    AllowedValues,
    ConditionalRange,
    ConditionalRequired,
    Custom,
    FieldDescriptor,
    FieldRules,
    FileExtensions,
    Length,
    Pattern,
    PatternKind,
    Range,
    RuleKind,
    RuleSpec,
    TypeRuleSet,
    ValueKind,
)
from fieldcheck.types import ValidationContext, ValidationResult


# =============================================================================
# Fixed Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# 13-19 characters made of digits, dashes and spaces
CREDIT_CARD_PATTERN = re.compile(r"^[\d\- ]{13,19}$")

URL_PATTERN = re.compile(r"^https?://")

PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")

PATTERNS: dict[PatternKind, re.Pattern] = {
    PatternKind.EMAIL: EMAIL_PATTERN,
    PatternKind.CREDIT_CARD: CREDIT_CARD_PATTERN,
    PatternKind.URL: URL_PATTERN,
    PatternKind.PHONE: PHONE_PATTERN,
}


# =============================================================================
# Value Helpers
# =============================================================================


def is_number(value: Any) -> bool:
    """int, float, Decimal, Fraction, ... but not bool."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (numbers.Real, Decimal))


def values_equal(left: Any, right: Any) -> bool:
    """Exact equality for conditional targets; booleans never equal numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def is_missing(value: Any, descriptor: FieldDescriptor) -> bool:
    """Required semantics.

    Value kinds that cannot represent absence (non-nullable numeric, boolean
    and date fields) are never missing.
    """
    if not descriptor.is_nullable and descriptor.kind is not ValueKind.STRING:
        return False
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def in_range(value: Any, minimum: Any, maximum: Any) -> bool:
    if value is None:
        return True
    if not is_number(value):
        return False
    return minimum <= value <= maximum


def is_future(value: Any) -> bool:
    if isinstance(value, datetime):
        now = datetime.now(value.tzinfo) if value.tzinfo else datetime.now()
        return value > now
    if isinstance(value, date):
        return value > date.today()
    return False


# =============================================================================
# Evaluator
# =============================================================================


Check = Callable[[RuleSpec, Any, FieldRules, Any, TypeRuleSet], bool]


class RuleEvaluator:
    """Evaluates field rules against an already-sanitized instance.

    The evaluator keeps no state between calls and only reads the rule
    table, so one instance can serve concurrent validation calls.
    """

    def __init__(
        self,
        formatter: MessageFormatter | None = None,
        invoker: CustomRuleInvoker | None = None,
    ):
        self.formatter = formatter or MessageFormatter()
        self.invoker = invoker or CustomRuleInvoker(formatter=self.formatter)
        self._checks: dict[RuleKind, Check] = {
            RuleKind.REQUIRED: self._check_required,
            RuleKind.LENGTH: self._check_length,
            RuleKind.RANGE: self._check_range,
            RuleKind.PATTERN: self._check_pattern,
            RuleKind.FILE_EXTENSIONS: self._check_file_extensions,
            RuleKind.ALLOWED_VALUES: self._check_allowed_values,
            RuleKind.CONDITIONAL_REQUIRED: self._check_conditional_required,
            RuleKind.CONDITIONAL_RANGE: self._check_conditional_range,
            RuleKind.FUTURE_DATE: self._check_future_date,
        }

    def active_rules(
        self, rule_set: TypeRuleSet, context: ValidationContext
    ) -> Iterator[tuple[FieldRules, RuleSpec]]:
        """Yield (field, rule) pairs that apply to this call, in order."""
        for field_rules in rule_set.fields:
            for rule in field_rules.validators:
                if rule.applies_to(context.group):
                    yield field_rules, rule

    async def evaluate(
        self,
        instance: Any,
        rule_set: TypeRuleSet,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        for field_rules, rule in self.active_rules(rule_set, context):
            value = field_rules.accessor.get(instance)
            if isinstance(rule, Custom):
                await self.invoker.invoke(rule, field_rules, value, context, result)
            else:
                self._apply(rule, value, field_rules, instance, rule_set, context, result)

    def evaluate_sync(
        self,
        instance: Any,
        rule_set: TypeRuleSet,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        for field_rules, rule in self.active_rules(rule_set, context):
            value = field_rules.accessor.get(instance)
            if isinstance(rule, Custom):
                self.invoker.invoke_sync(rule, field_rules, value, context, result)
            else:
                self._apply(rule, value, field_rules, instance, rule_set, context, result)

    def check(
        self,
        rule: RuleSpec,
        value: Any,
        field_rules: FieldRules,
        instance: Any,
        rule_set: TypeRuleSet,
    ) -> bool:
        """Return True if the built-in rule passes."""
        try:
            check = self._checks[rule.kind]
        except KeyError:
            raise ValueError(f"No built-in check for rule kind '{rule.tag}'") from None
        return check(rule, value, field_rules, instance, rule_set)

    def _apply(
        self,
        rule: RuleSpec,
        value: Any,
        field_rules: FieldRules,
        instance: Any,
        rule_set: TypeRuleSet,
        context: ValidationContext,
        result: ValidationResult,
    ) -> None:
        if self.check(rule, value, field_rules, instance, rule_set):
            return
        message = self.formatter.format(rule, field_rules.descriptor.label, context.culture)
        result.add(field_rules.name, message, rule.severity, rule.tag)

    # -------------------------------------------------------------------------
    # Built-in checks
    # -------------------------------------------------------------------------

    def _check_required(self, rule, value, field_rules, instance, rule_set) -> bool:
        return not is_missing(value, field_rules.descriptor)

    def _check_length(self, rule: Length, value, field_rules, instance, rule_set) -> bool:
        if not isinstance(value, str):
            return True
        if len(value) < rule.min:
            return False
        return rule.max is None or len(value) <= rule.max

    def _check_range(self, rule: Range, value, field_rules, instance, rule_set) -> bool:
        return in_range(value, rule.min, rule.max)

    def _check_pattern(self, rule: Pattern, value, field_rules, instance, rule_set) -> bool:
        if value is None:
            return True
        return PATTERNS[rule.pattern].match(str(value)) is not None

    def _check_file_extensions(
        self, rule: FileExtensions, value, field_rules, instance, rule_set
    ) -> bool:
        if value is None:
            return True
        lowered = str(value).lower()
        return any(lowered.endswith(f".{ext}") for ext in rule.extensions)

    def _check_allowed_values(
        self, rule: AllowedValues, value, field_rules, instance, rule_set
    ) -> bool:
        if value is None:
            return True
        return any(values_equal(value, member) for member in rule.values)

    def _condition_holds(self, rule, instance, rule_set: TypeRuleSet) -> bool:
        # Read fresh on every call; the other field may have been sanitized
        other = rule_set.accessor(rule.other_field).get(instance)
        return values_equal(other, rule.target)

    def _check_conditional_required(
        self, rule: ConditionalRequired, value, field_rules, instance, rule_set
    ) -> bool:
        if not self._condition_holds(rule, instance, rule_set):
            return True
        return not is_missing(value, field_rules.descriptor)

    def _check_conditional_range(
        self, rule: ConditionalRange, value, field_rules, instance, rule_set
    ) -> bool:
        if not self._condition_holds(rule, instance, rule_set):
            return True
        return in_range(value, rule.min, rule.max)

    def _check_future_date(self, rule, value, field_rules, instance, rule_set) -> bool:
        if value is None:
            return True
        return is_future(value)
