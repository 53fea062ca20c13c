"""Tests for the declarative rule model."""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from fieldcheck.accessors import attribute_accessor, mapping_accessor
from fieldcheck.exceptions import RuleConfigurationError
from fieldcheck.rules import (
    DEFAULT_FILE_EXTENSIONS,
    AllowedValues,
    ConditionalRange,
    ConditionalRequired,
    Custom,
    FieldDescriptor,
    FieldRules,
    FileExtensions,
    Length,
    Pattern,
    PatternKind,
    Range,
    Required,
    RuleKind,
    Sanitize,
    TypeRuleSet,
    ValueKind,
)
from fieldcheck.types import Severity


@dataclass
class Address:
    street: str | None = None
    country: str | None = None
    zip_code: str | None = None


@dataclass(frozen=True)
class PostalCode:
    code: str | None = None


class Account:
    def __init__(self, handle):
        self._handle = handle

    @property
    def handle(self):
        return self._handle

    @property
    def nickname(self):
        return self._handle

    @nickname.setter
    def nickname(self, value):
        self._handle = value


# =============================================================================
# FieldDescriptor
# =============================================================================


class TestFieldDescriptor:
    def test_label_defaults_to_name(self):
        assert FieldDescriptor("zip_code").label == "zip_code"

    def test_display_name_overrides_label(self):
        assert FieldDescriptor("zip_code", display_name="ZIP Code").label == "ZIP Code"

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ValueKind.STRING, True),
            (ValueKind.NUMERIC, False),
            (ValueKind.BOOLEAN, False),
            (ValueKind.DATE, True),
            (ValueKind.REFERENCE, True),
        ],
    )
    def test_nullable_defaults_by_kind(self, kind, expected):
        assert FieldDescriptor("f", kind=kind).is_nullable is expected

    def test_explicit_nullable_wins(self):
        assert FieldDescriptor("age", kind=ValueKind.NUMERIC, nullable=True).is_nullable


# =============================================================================
# RuleSpec variants
# =============================================================================


class TestRuleSpecs:
    def test_defaults(self):
        rule = Required()
        assert rule.severity is Severity.ERROR
        assert rule.group is None
        assert rule.message is None
        assert rule.tag == "required"

    def test_specs_are_immutable(self):
        rule = Required()
        with pytest.raises(FrozenInstanceError):
            rule.group = "Reg"

    def test_applies_to_untagged_rule(self):
        assert Required().applies_to(None)
        assert Required().applies_to("Reg")

    def test_applies_to_requires_exact_group(self):
        rule = Required(group="Reg")
        assert rule.applies_to("Reg")
        assert not rule.applies_to(None)
        assert not rule.applies_to("reg")
        assert not rule.applies_to("Registration")

    def test_length_rejects_negative_min(self):
        with pytest.raises(RuleConfigurationError, match="min must be >= 0"):
            Length(min=-1)

    def test_length_rejects_inverted_bounds(self):
        with pytest.raises(RuleConfigurationError, match="smaller than min"):
            Length(min=5, max=2)

    def test_length_message_key_depends_on_bounds(self):
        assert Length(max=10).default_message_key() == "length"
        assert Length(min=2, max=10).default_message_key() == "lengthRange"
        assert Length(min=2).default_message_key() == "lengthMin"

    def test_length_template_args_are_max_then_min(self):
        assert Length(min=2, max=10).template_args() == (10, 2)

    def test_range_rejects_inverted_bounds(self):
        with pytest.raises(RuleConfigurationError, match="greater than max"):
            Range(10, 1)

    def test_range_rejects_incomparable_bounds(self):
        with pytest.raises(RuleConfigurationError, match="comparable"):
            Range("a", 1)

    def test_pattern_accepts_name(self):
        assert Pattern("creditCard").pattern is PatternKind.CREDIT_CARD

    def test_pattern_rejects_unknown_name(self):
        with pytest.raises(RuleConfigurationError, match="Unknown pattern 'zip'"):
            Pattern("zip")

    def test_pattern_message_key_is_pattern_name(self):
        assert Pattern(PatternKind.EMAIL).default_message_key() == "email"

    def test_file_extensions_normalized(self):
        rule = FileExtensions(extensions=(".PDF", " docx "))
        assert rule.extensions == ("pdf", "docx")

    def test_file_extensions_from_comma_string(self):
        assert FileExtensions(extensions="pdf, .Doc").extensions == ("pdf", "doc")

    def test_file_extensions_default_set(self):
        assert FileExtensions().extensions == DEFAULT_FILE_EXTENSIONS
        assert FileExtensions(extensions=()).extensions == DEFAULT_FILE_EXTENSIONS

    def test_file_extensions_template_arg(self):
        assert FileExtensions(extensions=("png", "jpg")).template_args() == (".png, .jpg",)

    def test_allowed_values_stored_as_tuple(self):
        assert AllowedValues(values=["a", "b"]).values == ("a", "b")

    def test_conditional_rules_reuse_base_messages(self):
        assert ConditionalRequired(other_field="x", target=1).default_message_key() == "required"
        assert (
            ConditionalRange(other_field="x", target=1, min=0, max=5).default_message_key()
            == "range"
        )

    def test_custom_invoker_name(self):
        def unique_username(value, ctx):
            return None

        assert Custom(invoker="uniqueUsername").invoker_name == "uniqueUsername"
        assert Custom(invoker=unique_username).invoker_name.endswith("unique_username")

    def test_parameters(self):
        assert Range(1, 5).parameters() == {"min": 1, "max": 5}
        assert Sanitize(trim=True).parameters() == {
            "trim": True,
            "toUpper": False,
            "toLower": False,
        }
        assert Custom(invoker="x", is_async=True).parameters() == {
            "invoker": "x",
            "async": True,
        }

    def test_kind_tags(self):
        assert ConditionalRequired.kind is RuleKind.CONDITIONAL_REQUIRED
        assert ConditionalRequired(other_field="a", target=1).tag == "requiredIf"


# =============================================================================
# FieldRules / TypeRuleSet
# =============================================================================


class TestFieldRules:
    def test_splits_sanitizers_from_validators(self):
        sanitize = Sanitize(trim=True)
        required = Required()
        field_rules = FieldRules(
            FieldDescriptor("street"), [sanitize, required], attribute_accessor("street")
        )
        assert field_rules.sanitizers == (sanitize,)
        assert field_rules.validators == (required,)
        assert field_rules.rules == (sanitize, required)


class TestTypeRuleSet:
    def test_create_preserves_declaration_order(self):
        rule_set = TypeRuleSet.create(
            Address,
            [
                (FieldDescriptor("street"), [Required()]),
                (FieldDescriptor("country"), [Required()]),
            ],
        )
        assert [f.name for f in rule_set] == ["street", "country"]
        assert len(rule_set) == 2
        assert rule_set.name == "Address"

    def test_field_lookup(self):
        rule_set = TypeRuleSet.create(Address, [(FieldDescriptor("street"), [Required()])])
        assert rule_set.field("street").name == "street"
        with pytest.raises(KeyError):
            rule_set.field("missing")

    def test_rejects_duplicate_fields(self):
        with pytest.raises(RuleConfigurationError, match="Duplicate field"):
            TypeRuleSet.create(
                Address,
                [
                    (FieldDescriptor("street"), [Required()]),
                    (FieldDescriptor("street"), [Length(max=5)]),
                ],
            )

    def test_rejects_unknown_conditional_field(self):
        with pytest.raises(RuleConfigurationError, match="unknown field 'country'"):
            TypeRuleSet.create(
                Address,
                [(FieldDescriptor("zip_code"), [ConditionalRequired(other_field="country", target="USA")])],
            )

    def test_extra_fields_supply_conditional_accessors(self):
        rule_set = TypeRuleSet.create(
            Address,
            [(FieldDescriptor("zip_code"), [ConditionalRequired(other_field="country", target="USA")])],
            extra_fields=["country"],
        )
        assert rule_set.accessor("country").get(Address(country="USA")) == "USA"

    def test_rejects_sanitize_on_read_only_field(self):
        field_rules = FieldRules(
            FieldDescriptor("street"),
            [Sanitize(trim=True)],
            attribute_accessor("street", read_only=True),
        )
        with pytest.raises(RuleConfigurationError, match="writable"):
            TypeRuleSet(model_type=Address, fields=[field_rules])

    def test_rejects_sanitize_on_frozen_dataclass(self):
        with pytest.raises(RuleConfigurationError, match="PostalCode.code: sanitize requires a writable"):
            TypeRuleSet.create(PostalCode, [(FieldDescriptor("code"), [Sanitize(trim=True)])])

    def test_frozen_dataclass_without_sanitize_is_accepted(self):
        rule_set = TypeRuleSet.create(PostalCode, [(FieldDescriptor("code"), [Required()])])
        assert not rule_set.accessor("code").writable

    def test_rejects_sanitize_on_getter_only_property(self):
        with pytest.raises(RuleConfigurationError, match="Account.handle"):
            TypeRuleSet.create(Account, [(FieldDescriptor("handle"), [Sanitize(trim=True)])])

    def test_property_with_setter_is_writable(self):
        rule_set = TypeRuleSet.create(Account, [(FieldDescriptor("nickname"), [Sanitize(trim=True)])])
        account = Account(" ann ")
        rule_set.accessor("nickname").set(account, "ann")
        assert account.handle == "ann"

    def test_mapping_records(self):
        rule_set = TypeRuleSet.create(
            "Address", [(FieldDescriptor("street"), [Required()])], mapping=True
        )
        assert rule_set.name == "Address"
        assert rule_set.accessor("street").get({"street": "Main"}) == "Main"
        assert rule_set.accessor("street").get({}) is None

    def test_accessors_are_read_only_view(self):
        rule_set = TypeRuleSet.create(Address, [(FieldDescriptor("street"), [Required()])])
        with pytest.raises(TypeError):
            rule_set.accessors["country"] = mapping_accessor("country")
