"""Rule-manifest export.

Enumerates a rule table for external generators:
- export_manifest: each field's ordered rule list with kind and parameters
- export_client_rules: the camelCase rule map consumed by client-side validators
- dump_manifest: serialize manifests for several tables as JSON or YAML
"""

import json
import re
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import yaml

from fieldcheck.rules import (
    AllowedValues,
    ConditionalRange,
    ConditionalRequired,
    FileExtensions,
    FutureDate,
    Length,
    Pattern,
    PatternKind,
    Range,
    Required,
    RuleSpec,
    TypeRuleSet,
)


def to_camel_case(name: str) -> str:
    """``zip_code`` -> ``zipCode``, ``ZipCode`` -> ``zipCode``."""
    if not name:
        return name
    head, *rest = re.split(r"_+", name)
    camel = head + "".join(part[:1].upper() + part[1:] for part in rest)
    return camel[:1].lower() + camel[1:]


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def export_rule(rule: RuleSpec) -> dict[str, Any]:
    entry: dict[str, Any] = {"kind": rule.tag}
    entry.update({k: _plain(v) for k, v in rule.parameters().items()})
    entry["severity"] = rule.severity.value
    if rule.group is not None:
        entry["group"] = rule.group
    if rule.message is not None:
        entry["message"] = rule.message
    if rule.resource_key is not None:
        entry["resourceKey"] = rule.resource_key
        entry["resourceType"] = rule.resource_type
    return entry


def export_manifest(rule_set: TypeRuleSet) -> dict[str, Any]:
    """Ordered per-field rule list for one table."""
    return {
        "model": rule_set.name,
        "fields": [
            {
                "name": field_rules.name,
                "kind": field_rules.descriptor.kind.value,
                "displayName": field_rules.descriptor.label,
                "rules": [export_rule(rule) for rule in field_rules.rules],
            }
            for field_rules in rule_set.fields
        ],
    }


def export_client_rules(rule_set: TypeRuleSet) -> dict[str, dict[str, Any]]:
    """camelCase field -> client rule map.

    Sanitize and Custom rules run server-side only and are not exported;
    fields left without client rules are omitted.
    """
    client: dict[str, dict[str, Any]] = {}
    for field_rules in rule_set.fields:
        entry: dict[str, Any] = {}
        for rule in field_rules.validators:
            _client_entry(rule, entry)
        if entry:
            client[to_camel_case(field_rules.name)] = entry
    return client


def _client_entry(rule: RuleSpec, entry: dict[str, Any]) -> None:
    if isinstance(rule, Required):
        entry["required"] = True
    elif isinstance(rule, Length):
        if rule.min > 0:
            entry["minLength"] = rule.min
        if rule.max is not None:
            entry["maxLength"] = rule.max
    elif isinstance(rule, Range):
        entry["min"] = _plain(rule.min)
        entry["max"] = _plain(rule.max)
    elif isinstance(rule, Pattern):
        key = {
            PatternKind.EMAIL: "email",
            PatternKind.URL: "url",
            PatternKind.PHONE: "phone",
            PatternKind.CREDIT_CARD: "creditCard",
        }[rule.pattern]
        entry[key] = True
    elif isinstance(rule, FileExtensions):
        entry["fileExtensions"] = list(rule.extensions)
    elif isinstance(rule, AllowedValues):
        entry["allowedValues"] = _plain(rule.values)
    elif isinstance(rule, FutureDate):
        entry["futureDate"] = True
    elif isinstance(rule, ConditionalRequired):
        entry["requiredIf"] = {
            "conditionProperty": to_camel_case(rule.other_field),
            "conditionValue": _plain(rule.target),
        }
    elif isinstance(rule, ConditionalRange):
        entry["minRange"] = _plain(rule.min)
        entry["maxRange"] = _plain(rule.max)
        entry["conditionProperty"] = to_camel_case(rule.other_field)
        entry["conditionValue"] = _plain(rule.target)


def dump_manifest(rule_sets: Iterable[TypeRuleSet], fmt: str = "json") -> str:
    """Serialize the manifests of several tables.

    Args:
        rule_sets: Tables to export, in output order
        fmt: "json" or "yaml"
    """
    manifests = [export_manifest(rule_set) for rule_set in rule_sets]
    if fmt == "json":
        return json.dumps(manifests, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(manifests, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unknown manifest format '{fmt}'. Available: json, yaml")
