"""Validator registry for fieldcheck.

Maps a type identity to the evaluator function that validates instances
of that type. The registry is filled once at startup and then only read,
so concurrent validation calls look it up without locking.

Example:
    def setup(registry: ValidatorRegistry) -> None:
        registry.register(Customer, engine.compile(customer_rules))

    initialize_registry(setup)
"""

import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from fieldcheck.types import ValidationContext, ValidationResult

logger = logging.getLogger(__name__)

# context -> ValidationResult, or an awaitable of one
ValidatorFn = Callable[
    [ValidationContext], "ValidationResult | Awaitable[ValidationResult]"
]


class ValidatorRegistry:
    """Type identity -> evaluator function.

    Registration overwrites any prior entry for the same type (last write
    wins). A lookup miss is not an error: callers treat the instance as
    having no rules.
    """

    def __init__(self) -> None:
        self._validators: dict[Any, ValidatorFn] = {}

    def register(self, type_id: Any, validator: ValidatorFn) -> None:
        """Register the evaluator for a type.

        Args:
            type_id: A class, or a string id for untyped (mapping) records
            validator: Evaluator taking a ValidationContext
        """
        if type_id in self._validators:
            logger.debug("Replacing validator for %s", _describe(type_id))
        else:
            logger.debug("Registered validator for %s", _describe(type_id))
        self._validators[type_id] = validator

    def try_get(self, type_id: Any) -> ValidatorFn | None:
        """O(1) lookup; None on a miss."""
        return self._validators.get(type_id)

    def is_registered(self, type_id: Any) -> bool:
        return type_id in self._validators

    def list_registered(self) -> list[str]:
        return sorted(_describe(t) for t in self._validators)

    def __len__(self) -> int:
        return len(self._validators)

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._validators.clear()


def _describe(type_id: Any) -> str:
    return getattr(type_id, "__qualname__", None) or str(type_id)


# =============================================================================
# One-time Initialization
# =============================================================================

_registry: ValidatorRegistry | None = None
_init_lock = threading.Lock()


def initialize_registry(
    setup: Callable[[ValidatorRegistry], None] | None = None,
) -> ValidatorRegistry:
    """Create the process-wide registry and run ``setup`` on it exactly once.

    Later calls return the already-initialized registry; a setup passed
    to a later call is ignored.
    """
    global _registry
    with _init_lock:
        if _registry is None:
            registry = ValidatorRegistry()
            if setup is not None:
                setup(registry)
            _registry = registry
            logger.debug("Validator registry initialized with %d type(s)", len(registry))
        elif setup is not None:
            logger.warning(
                "Validator registry already initialized; ignoring setup %r", setup
            )
        return _registry


def get_registry() -> ValidatorRegistry:
    """Return the process-wide registry, initializing an empty one if needed."""
    if _registry is not None:
        return _registry
    return initialize_registry()


def reset_registry() -> None:
    """Drop the process-wide registry. Primarily for testing."""
    global _registry
    with _init_lock:
        _registry = None
