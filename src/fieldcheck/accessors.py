"""Typed field accessors.

A rule table carries one accessor per field id. Accessors are closures
built once at registration time, so the engine never inspects a model's
structure while validating.
"""

import inspect
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from operator import attrgetter
from typing import Any


Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], None]


@dataclass(frozen=True)
class FieldAccessor:
    """Getter/setter pair for one field.

    Attributes:
        get: Returns the field's current value from an instance
        set: Stores a new value on an instance (None for read-only fields)
    """

    get: Getter
    set: Setter | None = None

    @property
    def writable(self) -> bool:
        return self.set is not None


def attribute_accessor(name: str, read_only: bool = False) -> FieldAccessor:
    """Accessor for a plain attribute (dataclasses, slotted classes, ...)."""
    getter = attrgetter(name)

    def setter(instance: Any, value: Any) -> None:
        setattr(instance, name, value)

    return FieldAccessor(get=getter, set=None if read_only else setter)


def mapping_accessor(key: str, read_only: bool = False) -> FieldAccessor:
    """Accessor for dict-like records. A missing key reads as None."""

    def getter(record: Any) -> Any:
        return record.get(key)

    def setter(record: MutableMapping[str, Any], value: Any) -> None:
        record[key] = value

    return FieldAccessor(get=getter, set=None if read_only else setter)


def is_writable_attribute(model_type: Any, name: str) -> bool:
    """False for fields of frozen dataclasses and getter-only properties."""
    if not isinstance(model_type, type):
        return True
    params = getattr(model_type, "__dataclass_params__", None)
    if params is not None and params.frozen:
        return False
    declared = inspect.getattr_static(model_type, name, None)
    if isinstance(declared, property):
        return declared.fset is not None
    return True


def default_accessor(name: str, mapping: bool, model_type: Any = None) -> FieldAccessor:
    if mapping:
        return mapping_accessor(name)
    return attribute_accessor(name, read_only=not is_writable_attribute(model_type, name))
