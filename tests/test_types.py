"""Tests for the core result and context types."""

import pytest

from fieldcheck.exceptions import ValidationCancelledError
from fieldcheck.types import (
    CancellationToken,
    ModelViolation,
    Severity,
    ValidationContext,
    ValidationError,
    ValidationResult,
)


# =============================================================================
# Severity
# =============================================================================


class TestSeverity:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Severity.WARNING, Severity.WARNING),
            ("error", Severity.ERROR),
            ("Warning", Severity.WARNING),
            ("INFO", Severity.INFO),
        ],
    )
    def test_parse(self, value, expected):
        assert Severity.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Severity.parse("fatal")


# =============================================================================
# ValidationResult
# =============================================================================


class TestIsValid:
    @pytest.mark.parametrize(
        "severities,expected",
        [
            ([], True),
            ([Severity.WARNING], True),
            ([Severity.INFO, Severity.WARNING], True),
            ([Severity.ERROR], False),
            ([Severity.WARNING, Severity.ERROR, Severity.INFO], False),
            ([Severity.INFO, Severity.INFO, Severity.ERROR], False),
        ],
    )
    def test_valid_only_without_error_entries(self, severities, expected):
        result = ValidationResult()
        for i, severity in enumerate(severities):
            result.add(f"f{i}", "msg", severity)
        assert result.is_valid is expected

    def test_success_is_empty_and_valid(self):
        result = ValidationResult.success()
        assert result.errors == []
        assert result.is_valid

    def test_validity_follows_entries(self):
        result = ValidationResult()
        result.add("name", "hmm", Severity.WARNING)
        assert result.is_valid
        result.extend([ValidationError("name", "bad")])
        assert not result.is_valid


class TestMerge:
    @pytest.fixture
    def nested(self):
        nested = ValidationResult()
        nested.add("street", "street is required.", Severity.ERROR, "required")
        nested.add("", "Address looks odd", Severity.WARNING, "custom")
        return nested

    def test_prefix_rekeys_members(self, nested):
        result = ValidationResult()
        result.merge(nested, "address")

        assert [e.field for e in result.errors] == ["address.street", "address"]
        assert result.errors[0].message == "street is required."
        assert result.errors[1].severity is Severity.WARNING
        assert result.errors[1].rule == "custom"

    @pytest.mark.parametrize("prefix", [None, ""])
    def test_without_prefix_keeps_fields(self, nested, prefix):
        result = ValidationResult()
        result.merge(nested, prefix)
        assert [e.field for e in result.errors] == ["street", ""]

    def test_appends_after_existing_entries(self, nested):
        result = ValidationResult()
        result.add("name", "name is required.")
        result.merge(nested, "address")
        assert [e.field for e in result.errors] == ["name", "address.street", "address"]

    def test_nested_prefixes_compose(self, nested):
        middle = ValidationResult()
        middle.merge(nested, "address")
        outer = ValidationResult()
        outer.merge(middle, "customer")
        assert [e.field for e in outer.errors] == ["customer.address.street", "customer.address"]

    def test_source_left_untouched(self, nested):
        ValidationResult().merge(nested, "address")
        assert [e.field for e in nested.errors] == ["street", ""]


class TestSeverityViews:
    def test_views_split_by_severity(self):
        result = ValidationResult()
        result.add("a", "e1")
        result.add("b", "w1", Severity.WARNING)
        result.add("c", "i1", Severity.INFO)
        result.add("d", "e2")

        assert [e.message for e in result.blocking] == ["e1", "e2"]
        assert [e.message for e in result.warnings] == ["w1"]
        assert [e.message for e in result.infos] == ["i1"]


class TestToDict:
    def test_error_to_dict(self):
        entry = ValidationError("email", "Invalid", Severity.WARNING, "pattern")
        assert entry.to_dict() == {
            "field": "email",
            "message": "Invalid",
            "severity": "warning",
            "rule": "pattern",
        }

    def test_result_to_dict(self):
        result = ValidationResult()
        result.add("name", "name is required.", rule="required")
        result.add("", "Looks new", Severity.INFO)

        assert result.to_dict() == {
            "valid": False,
            "errors": [
                {"field": "name", "message": "name is required.", "severity": "error", "rule": "required"},
                {"field": "", "message": "Looks new", "severity": "info", "rule": ""},
            ],
        }


# =============================================================================
# ModelViolation / CancellationToken
# =============================================================================


class TestModelViolation:
    def test_defaults_to_error(self):
        assert ModelViolation("end", "End before start").severity is Severity.ERROR


class TestCancellationToken:
    def test_not_cancelled_by_default(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled
        with pytest.raises(ValidationCancelledError):
            token.raise_if_cancelled()


# =============================================================================
# ValidationContext
# =============================================================================


class Services:
    clock = "system-clock"


class TestGetService:
    def test_no_locator(self):
        context = ValidationContext(instance=object())
        assert context.get_service("db") is None
        assert context.get_service("db", "fallback") == "fallback"

    def test_mapping_locator(self):
        context = ValidationContext(instance=object(), services={"db": "conn"})
        assert context.get_service("db") == "conn"
        assert context.get_service("cache", "none") == "none"

    def test_callable_locator(self):
        lookup = {"db": "conn"}.get
        context = ValidationContext(instance=object(), services=lookup)
        assert context.get_service("db") == "conn"
        assert context.get_service("cache", "fallback") == "fallback"

    def test_attribute_locator(self):
        context = ValidationContext(instance=object(), services=Services())
        assert context.get_service("clock") == "system-clock"
        assert context.get_service("mailer", "fallback") == "fallback"

    def test_defaults(self):
        context = ValidationContext(instance=object())
        assert context.group is None
        assert context.culture is None
        assert context.items == {}
        assert not context.cancellation.is_cancelled
