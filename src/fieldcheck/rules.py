"""Declarative rule model.

A rule table is plain, immutable data:
- FieldDescriptor: name, value kind, optional display name
- RuleSpec: one tagged constraint attached to a field (Required, Length, ...)
- FieldRules: a field's descriptor, accessor and ordered rule list
- TypeRuleSet: the ordered FieldRules of one model type

Tables are built once at startup and never mutated; the engine interprets
them, it does not generate code per type.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar

from fieldcheck.accessors import FieldAccessor, default_accessor
from fieldcheck.exceptions import RuleConfigurationError
from fieldcheck.types import Severity


# =============================================================================
# Enumerations
# =============================================================================


class RuleKind(Enum):
    """Tag of each RuleSpec variant. Values double as manifest/YAML names."""

    REQUIRED = "required"
    LENGTH = "length"
    RANGE = "range"
    PATTERN = "pattern"
    FILE_EXTENSIONS = "fileExtensions"
    ALLOWED_VALUES = "allowedValues"
    CONDITIONAL_REQUIRED = "requiredIf"
    CONDITIONAL_RANGE = "rangeIf"
    FUTURE_DATE = "futureDate"
    SANITIZE = "sanitize"
    CUSTOM = "custom"


class PatternKind(Enum):
    """Fixed formats checked by the Pattern rule."""

    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    CREDIT_CARD = "creditCard"


class ValueKind(Enum):
    """Declared value kind of a field."""

    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    DATE = "date"
    REFERENCE = "reference"


DEFAULT_FILE_EXTENSIONS = ("png", "jpg", "jpeg", "gif")


# =============================================================================
# Field Descriptor
# =============================================================================


@dataclass(frozen=True)
class FieldDescriptor:
    """Describes one field of a model type.

    Attributes:
        name: Field identifier, used as the error key
        kind: Declared value kind
        display_name: Replaces the identifier in every message for this field
        nullable: Whether the field can represent absence. Defaults to False
            for numeric and boolean fields and True otherwise.
    """

    name: str
    kind: ValueKind = ValueKind.STRING
    display_name: str | None = None
    nullable: bool | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def is_nullable(self) -> bool:
        if self.nullable is not None:
            return self.nullable
        return self.kind not in (ValueKind.NUMERIC, ValueKind.BOOLEAN)


# =============================================================================
# Rule Specs
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class RuleSpec:
    """Base of every rule variant.

    Attributes:
        message: Literal message template; wins over any resource
        resource_key: Localized resource key (used with resource_type)
        resource_type: Localized resource bundle name
        severity: ERROR (default), WARNING or INFO
        group: When set, the rule runs only if the active group equals it
    """

    kind: ClassVar[RuleKind]

    message: str | None = None
    resource_key: str | None = None
    resource_type: str | None = None
    severity: Severity = Severity.ERROR
    group: str | None = None

    @property
    def tag(self) -> str:
        return self.kind.value

    def applies_to(self, active_group: str | None) -> bool:
        """Untagged rules always apply; tagged rules need an exact group match."""
        return self.group is None or self.group == active_group

    def template_args(self) -> tuple[Any, ...]:
        """Values substituted for {1}, {2}, ... in the message template."""
        return ()

    def default_message_key(self) -> str:
        return self.kind.value

    def parameters(self) -> dict[str, Any]:
        """Rule parameters, as exported in the rule manifest."""
        return {}


@dataclass(frozen=True)
class Required(RuleSpec):
    kind: ClassVar[RuleKind] = RuleKind.REQUIRED


@dataclass(frozen=True)
class Length(RuleSpec):
    """String length bounds. ``max=None`` leaves the upper bound open."""

    kind: ClassVar[RuleKind] = RuleKind.LENGTH

    min: int = 0
    max: int | None = None

    def __post_init__(self) -> None:
        if self.min < 0:
            raise RuleConfigurationError(f"Length min must be >= 0, got {self.min}")
        if self.max is not None and self.max < self.min:
            raise RuleConfigurationError(
                f"Length max ({self.max}) is smaller than min ({self.min})"
            )

    def template_args(self) -> tuple[Any, ...]:
        return (self.max, self.min)

    def default_message_key(self) -> str:
        if self.max is None:
            return "lengthMin"
        return "lengthRange" if self.min > 0 else "length"

    def parameters(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class Range(RuleSpec):
    """Inclusive numeric bounds."""

    kind: ClassVar[RuleKind] = RuleKind.RANGE

    min: Any
    max: Any

    def __post_init__(self) -> None:
        _check_bounds(self.min, self.max)

    def template_args(self) -> tuple[Any, ...]:
        return (self.min, self.max)

    def parameters(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class Pattern(RuleSpec):
    kind: ClassVar[RuleKind] = RuleKind.PATTERN

    pattern: PatternKind

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, PatternKind):
            try:
                object.__setattr__(self, "pattern", PatternKind(self.pattern))
            except ValueError:
                raise RuleConfigurationError(
                    f"Unknown pattern '{self.pattern}'. "
                    "Available: " + ", ".join(p.value for p in PatternKind)
                ) from None

    def default_message_key(self) -> str:
        return self.pattern.value

    def parameters(self) -> dict[str, Any]:
        return {"pattern": self.pattern.value}


@dataclass(frozen=True)
class FileExtensions(RuleSpec):
    """Value must end with one of the extensions (case-insensitive)."""

    kind: ClassVar[RuleKind] = RuleKind.FILE_EXTENSIONS

    extensions: tuple[str, ...] = DEFAULT_FILE_EXTENSIONS

    def __post_init__(self) -> None:
        raw = self.extensions
        if isinstance(raw, str):
            raw = raw.split(",")
        normalized = tuple(
            e.strip().lower().lstrip(".") for e in raw if e and e.strip()
        )
        object.__setattr__(self, "extensions", normalized or DEFAULT_FILE_EXTENSIONS)

    def template_args(self) -> tuple[Any, ...]:
        return (", ".join(f".{e}" for e in self.extensions),)

    def parameters(self) -> dict[str, Any]:
        return {"extensions": list(self.extensions)}


@dataclass(frozen=True)
class AllowedValues(RuleSpec):
    """Value must equal one of the members exactly (case-sensitive)."""

    kind: ClassVar[RuleKind] = RuleKind.ALLOWED_VALUES

    values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def template_args(self) -> tuple[Any, ...]:
        return (", ".join(str(v) for v in self.values),)

    def parameters(self) -> dict[str, Any]:
        return {"values": list(self.values)}


@dataclass(frozen=True)
class ConditionalRequired(RuleSpec):
    """Required, but only while ``other_field`` equals ``target``."""

    kind: ClassVar[RuleKind] = RuleKind.CONDITIONAL_REQUIRED

    other_field: str
    target: Any

    def default_message_key(self) -> str:
        return RuleKind.REQUIRED.value

    def parameters(self) -> dict[str, Any]:
        return {"otherField": self.other_field, "target": self.target}


@dataclass(frozen=True)
class ConditionalRange(RuleSpec):
    """Range, but only while ``other_field`` equals ``target``."""

    kind: ClassVar[RuleKind] = RuleKind.CONDITIONAL_RANGE

    other_field: str
    target: Any
    min: Any
    max: Any

    def __post_init__(self) -> None:
        _check_bounds(self.min, self.max)

    def template_args(self) -> tuple[Any, ...]:
        return (self.min, self.max)

    def default_message_key(self) -> str:
        return RuleKind.RANGE.value

    def parameters(self) -> dict[str, Any]:
        return {
            "otherField": self.other_field,
            "target": self.target,
            "min": self.min,
            "max": self.max,
        }


@dataclass(frozen=True)
class FutureDate(RuleSpec):
    kind: ClassVar[RuleKind] = RuleKind.FUTURE_DATE


@dataclass(frozen=True)
class Sanitize(RuleSpec):
    """Pre-validation mutation of a string field.

    Steps run in the order trim, upper, lower; with both case flags set
    the value ends up lowercase.
    """

    kind: ClassVar[RuleKind] = RuleKind.SANITIZE

    trim: bool = False
    to_upper: bool = False
    to_lower: bool = False

    def parameters(self) -> dict[str, Any]:
        return {"trim": self.trim, "toUpper": self.to_upper, "toLower": self.to_lower}


@dataclass(frozen=True)
class Custom(RuleSpec):
    """Delegates to an external predicate ``(value, context) -> ValidationResult``.

    Attributes:
        invoker: Registered custom rule name, or the callable itself
        is_async: Declares the predicate as asynchronous
    """

    kind: ClassVar[RuleKind] = RuleKind.CUSTOM

    invoker: str | Callable[..., Any]
    is_async: bool = False

    @property
    def invoker_name(self) -> str:
        if isinstance(self.invoker, str):
            return self.invoker
        return getattr(self.invoker, "__qualname__", repr(self.invoker))

    def parameters(self) -> dict[str, Any]:
        return {"invoker": self.invoker_name, "async": self.is_async}


def _check_bounds(minimum: Any, maximum: Any) -> None:
    try:
        inverted = minimum > maximum
    except TypeError:
        raise RuleConfigurationError(
            f"Range bounds must be comparable numbers, got {minimum!r} and {maximum!r}"
        ) from None
    if inverted:
        raise RuleConfigurationError(
            f"Range min ({minimum}) is greater than max ({maximum})"
        )


# =============================================================================
# Rule Tables
# =============================================================================


# (instance, context) -> iterable of ModelViolation/tuples, or an awaitable of one
ModelHook = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class FieldRules:
    """The ordered rules of one field, plus the accessor to reach it."""

    descriptor: FieldDescriptor
    rules: tuple[RuleSpec, ...]
    accessor: FieldAccessor
    sanitizers: tuple[Sanitize, ...] = field(init=False, repr=False)
    validators: tuple[RuleSpec, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        object.__setattr__(self, "rules", rules)
        object.__setattr__(
            self, "sanitizers", tuple(r for r in rules if isinstance(r, Sanitize))
        )
        object.__setattr__(
            self, "validators", tuple(r for r in rules if not isinstance(r, Sanitize))
        )

    @property
    def name(self) -> str:
        return self.descriptor.name


@dataclass(frozen=True)
class TypeRuleSet:
    """Complete, immutable rule table for one model type.

    Attributes:
        model_type: Type identity (a class, or a string id for mapping records)
        fields: FieldRules in declaration order
        accessors: Accessor for every field id the engine may read, including
            fields referenced only by conditional rules
        model_hook: Optional cross-field hook; when None and model_type
            implements ``validate(context)``, that method is used
    """

    model_type: Any
    fields: tuple[FieldRules, ...]
    accessors: Mapping[str, FieldAccessor] = field(default_factory=dict)
    model_hook: ModelHook | None = None

    def __post_init__(self) -> None:
        fields = tuple(self.fields)
        names = [f.name for f in fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise RuleConfigurationError(
                f"Duplicate field(s) in rule table for '{self.name}': {', '.join(duplicates)}"
            )

        accessors = dict(self.accessors)
        for field_rules in fields:
            accessors.setdefault(field_rules.name, field_rules.accessor)

        for field_rules in fields:
            for rule in field_rules.rules:
                other = getattr(rule, "other_field", None)
                if other is not None and other not in accessors:
                    raise RuleConfigurationError(
                        f"{self.name}.{field_rules.name}: conditional rule references "
                        f"unknown field '{other}'"
                    )
            if field_rules.sanitizers and not field_rules.accessor.writable:
                raise RuleConfigurationError(
                    f"{self.name}.{field_rules.name}: sanitize requires a writable field"
                )

        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "accessors", MappingProxyType(accessors))

    @classmethod
    def create(
        cls,
        model_type: Any,
        fields: Iterable[tuple[FieldDescriptor, Sequence[RuleSpec]]],
        *,
        mapping: bool = False,
        extra_fields: Iterable[str] = (),
        model_hook: ModelHook | None = None,
    ) -> "TypeRuleSet":
        """Build a table with default accessors.

        Args:
            model_type: Type identity
            fields: (descriptor, rules) pairs in declaration order
            mapping: Records are dict-like (item access) instead of objects
            extra_fields: Field ids read by conditional rules but carrying no rules
            model_hook: Optional cross-field hook
        """
        field_rules = tuple(
            FieldRules(
                descriptor=descriptor,
                rules=tuple(rules),
                accessor=default_accessor(descriptor.name, mapping, model_type),
            )
            for descriptor, rules in fields
        )
        accessors = {name: default_accessor(name, mapping, model_type) for name in extra_fields}
        return cls(
            model_type=model_type,
            fields=field_rules,
            accessors=accessors,
            model_hook=model_hook,
        )

    @property
    def name(self) -> str:
        return getattr(self.model_type, "__name__", str(self.model_type))

    def field(self, name: str) -> FieldRules:
        for field_rules in self.fields:
            if field_rules.name == name:
                return field_rules
        raise KeyError(name)

    def accessor(self, name: str) -> FieldAccessor:
        return self.accessors[name]

    def __iter__(self) -> Iterator[FieldRules]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)
