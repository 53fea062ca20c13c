"""Tests for message templates, localization and formatting."""

from datetime import date
from decimal import Decimal

import pytest

from fieldcheck.messages import (
    DEFAULT_TEMPLATES,
    MessageCatalog,
    MessageFormatter,
    format_param,
    format_template,
    parent_culture,
)
from fieldcheck.rules import Custom, FileExtensions, Length, Pattern, PatternKind, Range, Required


# =============================================================================
# Formatting helpers
# =============================================================================


class TestFormatTemplate:
    def test_positional_placeholders(self):
        assert format_template("{0} between {1} and {2}", "Age", (18, 120)) == "Age between 18 and 120"

    def test_unknown_index_left_as_is(self):
        assert format_template("{0} {5}", "Age", ()) == "Age {5}"

    def test_named_braces_left_as_is(self):
        assert format_template("{name} {0}", "Age", ()) == "{name} Age"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            (True, "true"),
            (10.0, "10"),
            (2.5, "2.5"),
            (Decimal("1.50"), "1.5"),
            (Decimal("1E+2"), "100"),
            (date(2026, 1, 31), "2026-01-31"),
            ("x", "x"),
        ],
    )
    def test_format_param(self, value, expected):
        assert format_param(value) == expected

    def test_parent_culture(self):
        assert parent_culture("es-ES") == "es"
        assert parent_culture("zh-Hant-TW") == "zh-Hant"
        assert parent_culture("es") is None


# =============================================================================
# MessageCatalog
# =============================================================================


@pytest.fixture
def catalog():
    catalog = MessageCatalog()
    catalog.add("Messages", "NameRequired", "{0} is mandatory")
    catalog.add("Messages", "NameRequired", "{0} es obligatorio", culture="es")
    catalog.add("Messages", "NameRequired", "{0} es obligatorio (ES)", culture="es-ES")
    return catalog


class TestMessageCatalog:
    def test_exact_culture(self, catalog):
        assert catalog.lookup("Messages", "NameRequired", "es-ES") == "{0} es obligatorio (ES)"

    def test_parent_culture_fallback(self, catalog):
        assert catalog.lookup("Messages", "NameRequired", "es-MX") == "{0} es obligatorio"

    def test_invariant_fallback(self, catalog):
        assert catalog.lookup("Messages", "NameRequired", "fr") == "{0} is mandatory"
        assert catalog.lookup("Messages", "NameRequired", None) == "{0} is mandatory"

    def test_miss(self, catalog):
        assert catalog.lookup("Messages", "Other", "es") is None
        assert catalog.lookup("Unknown", "NameRequired", "es") is None

    def test_update_from_mapping(self):
        catalog = MessageCatalog()
        catalog.update({"Messages": {"": {"A": "a"}, "de": {"A": "ä"}}})
        assert catalog.lookup("Messages", "A", "de-AT") == "ä"
        assert catalog.lookup("Messages", "A", "it") == "a"
        assert catalog.resource_types() == ["Messages"]

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text(
            "Messages:\n"
            "  '':\n"
            "    NameRequired: '{0} is required!'\n"
            "  es:\n"
            "    NameRequired: '{0} es obligatorio'\n"
        )
        catalog = MessageCatalog.from_yaml(path)
        assert catalog.lookup("Messages", "NameRequired", "es") == "{0} es obligatorio"
        assert catalog.lookup("Messages", "NameRequired", "en") == "{0} is required!"

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            MessageCatalog.from_yaml(path)


# =============================================================================
# MessageFormatter
# =============================================================================


class TestMessageFormatter:
    def test_literal_wins(self, catalog):
        formatter = MessageFormatter(catalog)
        rule = Required(message="Fill in {0}", resource_type="Messages", resource_key="NameRequired")
        assert formatter.format(rule, "Name", "es") == "Fill in Name"

    def test_localized_resource(self, catalog):
        formatter = MessageFormatter(catalog)
        rule = Required(resource_type="Messages", resource_key="NameRequired")
        assert formatter.format(rule, "Nombre", "es") == "Nombre es obligatorio"

    def test_default_culture_used_when_call_sets_none(self, catalog):
        formatter = MessageFormatter(catalog, default_culture="es-ES")
        rule = Required(resource_type="Messages", resource_key="NameRequired")
        assert formatter.format(rule, "Nombre") == "Nombre es obligatorio (ES)"

    def test_missing_resource_falls_back_to_default(self, catalog):
        formatter = MessageFormatter(catalog)
        rule = Required(resource_type="Messages", resource_key="Missing")
        assert formatter.format(rule, "Name", "es") == "Name is required."

    def test_default_templates(self):
        formatter = MessageFormatter()
        assert formatter.format(Range(1, 5), "Qty") == "The field Qty must be between 1 and 5."
        assert formatter.format(Pattern(PatternKind.CREDIT_CARD), "Card") == (
            "The Card field is not a valid credit card number."
        )
        assert formatter.format(FileExtensions(extensions=("png", "jpg")), "Photo") == (
            "The Photo field must have one of the following extensions: .png, .jpg."
        )
        assert formatter.format(Length(min=2), "Code") == (
            "The field Code must be a string with a minimum length of 2."
        )
        assert formatter.format(Custom(invoker="x"), "Code") == "The Code field is invalid."

    def test_override_defaults(self):
        formatter = MessageFormatter(defaults={"required": "{0} cannot be blank"})
        assert formatter.format(Required(), "Name") == "{0} cannot be blank".format("Name")
        assert DEFAULT_TEMPLATES["required"] == "{0} is required."
