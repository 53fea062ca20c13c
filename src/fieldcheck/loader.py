"""YAML rule tables.

Reads one rule table per ``*.yaml`` file, checks it against the bundled
JSON Schema and builds a TypeRuleSet.

Example file::

    model: Customer
    fields:
      - name: username
        displayName: User Name
        rules:
          - sanitize: {trim: true, toUpper: true}
          - required
          - length: {min: 3, max: 20}
      - name: email
        rules:
          - pattern: {format: email, severity: warning}
      - name: zip_code
        rules:
          - requiredIf: {field: country, value: USA}

A model name found in ``model_types`` is bound to that class (attribute
access); any other model is validated as a mapping record registered
under its name.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaError

from fieldcheck.exceptions import RuleConfigurationError
from fieldcheck.rules import (
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
    Range,
    Required,
    RuleKind,
    RuleSpec,
    Sanitize,
    TypeRuleSet,
    ValueKind,
)
from fieldcheck.types import Severity

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "ruleset.schema.json"


def _load_schema() -> dict[str, Any]:
    with _SCHEMA_PATH.open() as fh:
        return json.load(fh)


def _json_path(error: SchemaError) -> str:
    """Convert a jsonschema error path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


# =============================================================================
# Rule construction
# =============================================================================


def _options(params: Mapping[str, Any]) -> dict[str, Any]:
    """Options shared by every rule kind."""
    options: dict[str, Any] = {}
    if "message" in params:
        options["message"] = params["message"]
    if "resourceKey" in params:
        options["resource_key"] = params["resourceKey"]
        options["resource_type"] = params["resourceType"]
    if "severity" in params:
        options["severity"] = Severity.parse(params["severity"])
    if "group" in params:
        options["group"] = params["group"]
    return options


def build_rule(kind: str, params: Any) -> RuleSpec:
    """Build one RuleSpec from its YAML form ``{kind: params}``."""
    try:
        rule_kind = RuleKind(kind)
    except ValueError:
        raise RuleConfigurationError(f"Unknown rule kind '{kind}'") from None

    if rule_kind is RuleKind.PATTERN and isinstance(params, str):
        return Pattern(params)
    if rule_kind is RuleKind.FILE_EXTENSIONS and isinstance(params, list):
        return FileExtensions(extensions=tuple(params))
    if rule_kind is RuleKind.ALLOWED_VALUES and isinstance(params, list):
        return AllowedValues(values=params)
    if rule_kind is RuleKind.CUSTOM and isinstance(params, str):
        return Custom(invoker=params)

    params = params or {}
    options = _options(params)

    if rule_kind is RuleKind.REQUIRED:
        return Required(**options)
    if rule_kind is RuleKind.LENGTH:
        return Length(min=params.get("min", 0), max=params.get("max"), **options)
    if rule_kind is RuleKind.RANGE:
        return Range(min=params["min"], max=params["max"], **options)
    if rule_kind is RuleKind.PATTERN:
        return Pattern(params["format"], **options)
    if rule_kind is RuleKind.FILE_EXTENSIONS:
        return FileExtensions(extensions=tuple(params.get("extensions", ())), **options)
    if rule_kind is RuleKind.ALLOWED_VALUES:
        return AllowedValues(values=params["values"], **options)
    if rule_kind is RuleKind.CONDITIONAL_REQUIRED:
        return ConditionalRequired(
            other_field=params["field"], target=params["value"], **options
        )
    if rule_kind is RuleKind.CONDITIONAL_RANGE:
        return ConditionalRange(
            other_field=params["field"],
            target=params["value"],
            min=params["min"],
            max=params["max"],
            **options,
        )
    if rule_kind is RuleKind.FUTURE_DATE:
        return FutureDate(**options)
    if rule_kind is RuleKind.SANITIZE:
        return Sanitize(
            trim=params.get("trim", False),
            to_upper=params.get("toUpper", False),
            to_lower=params.get("toLower", False),
        )
    return Custom(
        invoker=params["name"], is_async=params.get("async", False), **options
    )


def _parse_rule(entry: Any) -> RuleSpec:
    if isinstance(entry, str):
        return build_rule(entry, None)
    ((kind, params),) = entry.items()
    return build_rule(kind, params)


# =============================================================================
# Loader
# =============================================================================


class RuleSetLoader:
    """Loads rule tables from a directory of YAML files."""

    def __init__(
        self,
        rules_path: Path,
        model_types: Mapping[str, type] | None = None,
        model_hooks: Mapping[str, ModelHook] | None = None,
    ):
        self.rules_path = Path(rules_path)
        self.model_types = dict(model_types or {})
        self.model_hooks = dict(model_hooks or {})
        self.rule_sets: dict[str, TypeRuleSet] = {}
        self._validator = Draft202012Validator(_load_schema())

    def load_all(self) -> dict[str, TypeRuleSet]:
        """Load every ``*.yaml`` / ``*.yml`` file under rules_path."""
        paths = sorted(
            [*self.rules_path.glob("*.yaml"), *self.rules_path.glob("*.yml")]
        )
        for yaml_file in paths:
            rule_set = self.load_file(yaml_file)
            if rule_set.name in self.rule_sets:
                raise RuleConfigurationError(
                    f"{yaml_file}: model '{rule_set.name}' is defined more than once"
                )
            self.rule_sets[rule_set.name] = rule_set
        logger.debug("Loaded %d rule table(s) from %s", len(self.rule_sets), self.rules_path)
        return self.rule_sets

    def load_file(self, path: Path) -> TypeRuleSet:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise RuleConfigurationError(f"{path}: YAML parse error: {exc}") from exc
        return self.parse(data, source=str(path))

    def parse(self, data: Any, source: str = "<string>") -> TypeRuleSet:
        """Check a parsed document against the schema and build its table."""
        if data is None:
            raise RuleConfigurationError(f"{source}: file is empty")

        errors = sorted(
            self._validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]
        )
        issues = [f"{_json_path(error) or '<root>'}: {error.message}" for error in errors]
        if issues:
            raise RuleConfigurationError(f"{source}: " + "; ".join(issues))

        name = data["model"]
        model_type = self.model_types.get(name, name)
        mapping = data.get("mapping", name not in self.model_types)

        fields = []
        for field_data in data["fields"]:
            descriptor = FieldDescriptor(
                name=field_data["name"],
                kind=ValueKind(field_data.get("kind", "string")),
                display_name=field_data.get("displayName"),
                nullable=field_data.get("nullable"),
            )
            rules = [_parse_rule(entry) for entry in field_data.get("rules", [])]
            fields.append((descriptor, rules))

        declared = {descriptor.name for descriptor, _ in fields}
        extra_fields = list(data.get("extraFields", []))
        for _, rules in fields:
            for rule in rules:
                other = getattr(rule, "other_field", None)
                if other and other not in declared and other not in extra_fields:
                    extra_fields.append(other)

        return TypeRuleSet.create(
            model_type,
            fields,
            mapping=mapping,
            extra_fields=extra_fields,
            model_hook=self.model_hooks.get(name),
        )

    def get(self, name: str) -> TypeRuleSet | None:
        return self.rule_sets.get(name)

    def list_models(self) -> list[str]:
        return sorted(self.rule_sets)
