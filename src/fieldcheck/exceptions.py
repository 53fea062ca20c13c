"""Exceptions raised by the fieldcheck engine.

Rule violations are never raised; they are reported through
ValidationResult. The classes here cover configuration mistakes,
strict-mode registry misses and cancellation.
"""


class FieldCheckError(Exception):
    """Base class for all fieldcheck errors."""
    pass


class RuleConfigurationError(FieldCheckError, ValueError):
    """A rule table is malformed or references something that does not exist."""
    pass


class UnknownCustomRuleError(RuleConfigurationError):
    """A Custom rule names an invoker that was never registered."""
    pass


class AsyncRuleInSyncContextError(RuleConfigurationError):
    """An asynchronous rule, hook or evaluator was reached through validate_sync()."""
    pass


class RegistryMissError(FieldCheckError, LookupError):
    """No evaluator is registered for a type (strict mode only)."""

    def __init__(self, type_id: object):
        self.type_id = type_id
        super().__init__(f"No validator registered for '{type_id}'")


class ValidationCancelledError(FieldCheckError):
    """The validation pass was cancelled before it produced a result."""
    pass
