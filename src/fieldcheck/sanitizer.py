"""Pre-validation sanitization.

For every field carrying Sanitize specs, the specs run in declared order
and the result is written back onto the instance before any rule reads it.
Only string values are touched; None and non-strings are left alone.
"""

from typing import Any

from fieldcheck.rules import Sanitize, TypeRuleSet


def sanitize_value(value: str, spec: Sanitize) -> str:
    """Apply one Sanitize spec: trim, then upper, then lower."""
    if spec.trim:
        value = value.strip()
    if spec.to_upper:
        value = value.upper()
    if spec.to_lower:
        value = value.lower()
    return value


class Sanitizer:
    """Mutates string fields of an instance in place."""

    def sanitize(self, instance: Any, rule_set: TypeRuleSet) -> None:
        for field_rules in rule_set.fields:
            if not field_rules.sanitizers:
                continue

            accessor = field_rules.accessor
            value = accessor.get(instance)
            if not isinstance(value, str):
                continue

            sanitized = value
            for spec in field_rules.sanitizers:
                sanitized = sanitize_value(sanitized, spec)

            if sanitized != value:
                accessor.set(instance, sanitized)
