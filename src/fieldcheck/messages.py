"""Message construction and localization.

Resolution order for a rule's message template:
1. The rule's literal ``message``
2. A localized resource (``resource_type`` + ``resource_key``) for the
   active culture, then its neutral parent, then invariant entries
3. The built-in default template for the rule

Templates use positional placeholders: ``{0}`` is the field's display
name, ``{1}``, ``{2}``, ... are the rule parameters (bounds, extensions).
Parameters are rendered culture-invariantly.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from fieldcheck.rules import RuleSpec

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATES: dict[str, str] = {
    "required": "{0} is required.",
    "length": "The field {0} must be a string with a maximum length of {1}.",
    "lengthRange": (
        "The field {0} must be a string with a minimum length of {2} "
        "and a maximum length of {1}."
    ),
    "lengthMin": "The field {0} must be a string with a minimum length of {2}.",
    "range": "The field {0} must be between {1} and {2}.",
    "email": "The {0} field is not a valid e-mail address.",
    "creditCard": "The {0} field is not a valid credit card number.",
    "url": "The {0} field is not a valid URL.",
    "phone": "The {0} field is not a valid phone number.",
    "fileExtensions": "The {0} field must have one of the following extensions: {1}.",
    "allowedValues": "The {0} field must be one of the following values: {1}.",
    "futureDate": "The {0} field must be a date in the future.",
    "custom": "The {0} field is invalid.",
}

INVARIANT_CULTURE = ""

# {0}, {1}, ... ; anything else (including unknown indexes) is left as-is
PLACEHOLDER = re.compile(r"\{(\d+)\}")


def format_param(value: Any) -> str:
    """Render a template parameter independent of any culture."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def format_template(template: str, display_name: str, args: tuple[Any, ...]) -> str:
    """Substitute positional placeholders in a template."""
    values = (display_name,) + tuple(format_param(a) for a in args)

    def replace(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(values):
            return values[index]
        return match.group(0)

    return PLACEHOLDER.sub(replace, template)


def parent_culture(culture: str) -> str | None:
    """``es-ES`` -> ``es``; neutral cultures have no parent."""
    if "-" in culture:
        return culture.rsplit("-", 1)[0]
    return None


class MessageCatalog:
    """Localized message resources.

    Resources are grouped by resource type (a bundle name), then culture,
    then key. Entries added without a culture are invariant and serve as
    the last fallback before the built-in default.

    YAML layout::

        ValidationMessages:
          "":                      # invariant
            NameRequired: "{0} is required"
          es:
            NameRequired: "El campo {0} es obligatorio"
    """

    def __init__(self) -> None:
        self._resources: dict[str, dict[str, dict[str, str]]] = {}

    def add(
        self,
        resource_type: str,
        key: str,
        template: str,
        culture: str | None = None,
    ) -> None:
        cultures = self._resources.setdefault(resource_type, {})
        cultures.setdefault(culture or INVARIANT_CULTURE, {})[key] = template

    def update(self, data: Mapping[str, Mapping[str, Mapping[str, str]]]) -> None:
        """Merge a ``{resource_type: {culture: {key: template}}}`` mapping."""
        for resource_type, cultures in data.items():
            for culture, entries in (cultures or {}).items():
                for key, template in (entries or {}).items():
                    self.add(resource_type, key, str(template), culture or None)

    def lookup(self, resource_type: str, key: str, culture: str | None) -> str | None:
        """Find a template, walking from the culture to invariant entries."""
        cultures = self._resources.get(resource_type)
        if not cultures:
            return None

        candidate = culture
        while candidate:
            template = cultures.get(candidate, {}).get(key)
            if template is not None:
                return template
            candidate = parent_culture(candidate)

        return cultures.get(INVARIANT_CULTURE, {}).get(key)

    def resource_types(self) -> list[str]:
        return sorted(self._resources)

    @classmethod
    def from_yaml(cls, path: Path) -> "MessageCatalog":
        catalog = cls()
        catalog.load_yaml(path)
        return catalog

    def load_yaml(self, path: Path) -> None:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Message catalog {path} must be a mapping")
        self.update(data)
        logger.debug("Loaded message catalog %s (%d resource types)", path, len(data))


class MessageFormatter:
    """Builds the final message for a failed rule."""

    def __init__(
        self,
        catalog: MessageCatalog | None = None,
        default_culture: str | None = None,
        defaults: Mapping[str, str] | None = None,
    ):
        self.catalog = catalog or MessageCatalog()
        self.default_culture = default_culture
        self.defaults = dict(DEFAULT_TEMPLATES)
        if defaults:
            self.defaults.update(defaults)

    def template_for(self, rule: RuleSpec, culture: str | None = None) -> str:
        if rule.message:
            return rule.message

        default = self.defaults.get(rule.default_message_key(), "{0} is invalid.")

        if rule.resource_type and rule.resource_key:
            localized = self.catalog.lookup(
                rule.resource_type,
                rule.resource_key,
                culture or self.default_culture,
            )
            if localized is not None:
                return localized
            logger.debug(
                "No resource %s.%s for culture %r, using default template",
                rule.resource_type,
                rule.resource_key,
                culture or self.default_culture,
            )

        return default

    def format(self, rule: RuleSpec, display_name: str, culture: str | None = None) -> str:
        return format_template(
            self.template_for(rule, culture), display_name, rule.template_args()
        )
