"""Tests for the pre-validation sanitizer."""

from dataclasses import dataclass

import pytest

from fieldcheck.accessors import FieldAccessor
from fieldcheck.rules import FieldDescriptor, FieldRules, Sanitize, TypeRuleSet, ValueKind
from fieldcheck.sanitizer import Sanitizer, sanitize_value


@dataclass
class Signup:
    username: str | None = None
    code: str | None = None
    age: int = 0


def make_rule_set(**specs):
    return TypeRuleSet.create(
        Signup,
        [(FieldDescriptor(name), [spec]) for name, spec in specs.items()],
    )


class TestSanitizeValue:
    @pytest.mark.parametrize(
        "spec,value,expected",
        [
            (Sanitize(trim=True), "  ab  ", "ab"),
            (Sanitize(to_upper=True), "ab", "AB"),
            (Sanitize(to_lower=True), "AB", "ab"),
            (Sanitize(trim=True, to_upper=True), "  ab  ", "AB"),
            (Sanitize(), "  Ab  ", "  Ab  "),
        ],
    )
    def test_steps(self, spec, value, expected):
        assert sanitize_value(value, spec) == expected

    def test_lower_applied_after_upper(self):
        spec = Sanitize(trim=True, to_upper=True, to_lower=True)
        assert sanitize_value("  MiXeD ", spec) == "mixed"

    @pytest.mark.parametrize("value", ["  bob  ", "BOB", "", "   ", "a b"])
    def test_idempotent(self, value):
        spec = Sanitize(trim=True, to_upper=True)
        once = sanitize_value(value, spec)
        assert sanitize_value(once, spec) == once


class TestSanitizer:
    def test_writes_back_in_place(self):
        signup = Signup(username="  bob  ")
        Sanitizer().sanitize(signup, make_rule_set(username=Sanitize(trim=True, to_upper=True)))
        assert signup.username == "BOB"

    def test_none_left_alone(self):
        signup = Signup(username=None)
        Sanitizer().sanitize(signup, make_rule_set(username=Sanitize(trim=True)))
        assert signup.username is None

    def test_non_string_left_alone(self):
        signup = Signup(age=5)
        rule_set = TypeRuleSet.create(
            Signup,
            [(FieldDescriptor("age", kind=ValueKind.NUMERIC), [Sanitize(trim=True)])],
        )
        Sanitizer().sanitize(signup, rule_set)
        assert signup.age == 5

    def test_multiple_specs_run_in_declared_order(self):
        signup = Signup(code="  abc ")
        rule_set = TypeRuleSet.create(
            Signup,
            [(FieldDescriptor("code"), [Sanitize(to_upper=True), Sanitize(trim=True)])],
        )
        Sanitizer().sanitize(signup, rule_set)
        assert signup.code == "ABC"

    def test_unchanged_value_not_written(self):
        writes = []
        accessor = FieldAccessor(
            get=lambda obj: obj.username,
            set=lambda obj, value: writes.append(value),
        )
        rule_set = TypeRuleSet(
            model_type=Signup,
            fields=[FieldRules(FieldDescriptor("username"), [Sanitize(trim=True)], accessor)],
        )
        Sanitizer().sanitize(Signup(username="bob"), rule_set)
        assert writes == []

    def test_mapping_records(self):
        record = {"username": "  Alice "}
        rule_set = TypeRuleSet.create(
            "Signup",
            [(FieldDescriptor("username"), [Sanitize(trim=True, to_lower=True)])],
            mapping=True,
        )
        Sanitizer().sanitize(record, rule_set)
        assert record == {"username": "alice"}
