"""Fluent rule-table builder.

Example:
    rules = (
        RuleSetBuilder(Customer)
        .field("username", display_name="User Name")
            .sanitize(trim=True, to_upper=True)
            .required()
            .length(min=3, max=20)
        .field("email").email().with_severity(Severity.WARNING)
        .field("zip_code").required_if("country", "USA")
        .build()
    )
"""

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from fieldcheck.rules import (
    DEFAULT_FILE_EXTENSIONS,
    AllowedValues,
    ConditionalRange,
    ConditionalRequired,
    Custom,
    FieldDescriptor,
    FileExtensions,
    FutureDate,
    Length,
    ModelHook,
    Pattern,
    PatternKind,
    Range,
    Required,
    RuleSpec,
    Sanitize,
    TypeRuleSet,
    ValueKind,
)
from fieldcheck.types import Severity


class FieldRuleBuilder:
    """Collects the ordered rules of one field.

    Modifiers (``with_message``, ``with_severity``, ``in_group``,
    ``with_resource``) apply to the most recently added rule.
    """

    def __init__(self, parent: "RuleSetBuilder", descriptor: FieldDescriptor):
        self._parent = parent
        self.descriptor = descriptor
        self.rules: list[RuleSpec] = []

    def add(self, rule: RuleSpec) -> "FieldRuleBuilder":
        self.rules.append(rule)
        return self

    # Rules

    def required(self) -> "FieldRuleBuilder":
        return self.add(Required())

    def length(self, min: int = 0, max: int | None = None) -> "FieldRuleBuilder":
        return self.add(Length(min=min, max=max))

    def range(self, min: Any, max: Any) -> "FieldRuleBuilder":
        return self.add(Range(min=min, max=max))

    def email(self) -> "FieldRuleBuilder":
        return self.add(Pattern(PatternKind.EMAIL))

    def url(self) -> "FieldRuleBuilder":
        return self.add(Pattern(PatternKind.URL))

    def phone(self) -> "FieldRuleBuilder":
        return self.add(Pattern(PatternKind.PHONE))

    def credit_card(self) -> "FieldRuleBuilder":
        return self.add(Pattern(PatternKind.CREDIT_CARD))

    def file_extensions(self, *extensions: str) -> "FieldRuleBuilder":
        return self.add(FileExtensions(extensions=extensions or DEFAULT_FILE_EXTENSIONS))

    def allowed_values(self, *values: Any) -> "FieldRuleBuilder":
        return self.add(AllowedValues(values=values))

    def required_if(self, other_field: str, target: Any) -> "FieldRuleBuilder":
        return self.add(ConditionalRequired(other_field=other_field, target=target))

    def range_if(
        self, other_field: str, target: Any, min: Any, max: Any
    ) -> "FieldRuleBuilder":
        return self.add(
            ConditionalRange(other_field=other_field, target=target, min=min, max=max)
        )

    def future_date(self) -> "FieldRuleBuilder":
        return self.add(FutureDate())

    def sanitize(
        self, trim: bool = False, to_upper: bool = False, to_lower: bool = False
    ) -> "FieldRuleBuilder":
        return self.add(Sanitize(trim=trim, to_upper=to_upper, to_lower=to_lower))

    def custom(self, invoker: Any, is_async: bool = False) -> "FieldRuleBuilder":
        return self.add(Custom(invoker=invoker, is_async=is_async))

    # Modifiers

    def with_message(self, message: str) -> "FieldRuleBuilder":
        return self._modify(message=message)

    def with_severity(self, severity: Severity | str) -> "FieldRuleBuilder":
        return self._modify(severity=Severity.parse(severity))

    def in_group(self, group: str) -> "FieldRuleBuilder":
        return self._modify(group=group)

    def with_resource(self, resource_type: str, resource_key: str) -> "FieldRuleBuilder":
        return self._modify(resource_type=resource_type, resource_key=resource_key)

    def _modify(self, **changes: Any) -> "FieldRuleBuilder":
        if not self.rules:
            raise ValueError(
                f"Field '{self.descriptor.name}' has no rule to modify; add a rule first"
            )
        self.rules[-1] = replace(self.rules[-1], **changes)
        return self

    # Back to the table

    def field(self, name: str, **kwargs: Any) -> "FieldRuleBuilder":
        return self._parent.field(name, **kwargs)

    def model_rule(self, hook: ModelHook) -> "RuleSetBuilder":
        return self._parent.model_rule(hook)

    def build(self) -> TypeRuleSet:
        return self._parent.build()


class RuleSetBuilder:
    """Builds an immutable TypeRuleSet field by field."""

    def __init__(self, model_type: Any, mapping: bool = False):
        self.model_type = model_type
        self.mapping = mapping
        self._fields: list[FieldRuleBuilder] = []
        self._model_hook: ModelHook | None = None

    def field(
        self,
        name: str,
        kind: ValueKind | str = ValueKind.STRING,
        display_name: str | None = None,
        nullable: bool | None = None,
    ) -> FieldRuleBuilder:
        """Start (or continue) the rule list of a field."""
        for existing in self._fields:
            if existing.descriptor.name == name:
                return existing

        descriptor = FieldDescriptor(
            name=name,
            kind=ValueKind(kind),
            display_name=display_name,
            nullable=nullable,
        )
        builder = FieldRuleBuilder(self, descriptor)
        self._fields.append(builder)
        return builder

    def model_rule(self, hook: ModelHook) -> "RuleSetBuilder":
        self._model_hook = hook
        return self

    def build(self) -> TypeRuleSet:
        declared = {f.descriptor.name for f in self._fields}
        return TypeRuleSet.create(
            self.model_type,
            [(f.descriptor, f.rules) for f in self._fields],
            mapping=self.mapping,
            extra_fields=_referenced_fields(self._fields, declared),
            model_hook=self._model_hook,
        )


def _referenced_fields(
    fields: Iterable[FieldRuleBuilder], declared: set[str]
) -> list[str]:
    extra: list[str] = []
    for builder in fields:
        for rule in builder.rules:
            other = getattr(rule, "other_field", None)
            if other and other not in declared and other not in extra:
                extra.append(other)
    return extra
