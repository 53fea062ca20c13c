"""fieldcheck rule evaluation engine.

Validates structured records against declarative, per-field rule tables:
- Sanitization: trim / case normalization, applied before any rule runs
- Field rules: required, length, range, pattern, file extensions,
  allowed values, conditional required/range, future date
- Custom rules: synchronous or asynchronous predicates
- Model-level hooks: cross-field checks run after the field rules

Usage:
    from fieldcheck import RuleSetBuilder, ValidationEngine, ValidatorRegistry

    registry = ValidatorRegistry()
    engine = ValidationEngine(registry)
    engine.register(
        RuleSetBuilder(Customer)
        .field("name").required()
        .field("age", kind="numeric").range(18, 120)
        .build()
    )

    result = await engine.validate(customer)
"""

from fieldcheck.builder import FieldRuleBuilder, RuleSetBuilder
from fieldcheck.config import EngineSettings
from fieldcheck.custom import CustomRuleInvoker, CustomRuleRegistry
from fieldcheck.engine import CompiledValidator, ValidationEngine
from fieldcheck.evaluator import RuleEvaluator
from fieldcheck.exceptions import (
    AsyncRuleInSyncContextError,
    FieldCheckError,
    RegistryMissError,
    RuleConfigurationError,
    UnknownCustomRuleError,
    ValidationCancelledError,
)
from fieldcheck.loader import RuleSetLoader
from fieldcheck.manifest import dump_manifest, export_client_rules, export_manifest
from fieldcheck.messages import MessageCatalog, MessageFormatter
from fieldcheck.metrics import Outcome, ValidationEvent, ValidationListener, ValidationMetrics
from fieldcheck.registry import (
    ValidatorRegistry,
    get_registry,
    initialize_registry,
)
from fieldcheck.responses import (
    ValidationResponse,
    create_error_response,
    create_response,
    create_success_response,
)
from fieldcheck.rules import (
    AllowedValues,
    ConditionalRange,
    ConditionalRequired,
    Custom,
    FieldDescriptor,
    FieldRules,
    FileExtensions,
    FutureDate,
    Length,
    Pattern,
    PatternKind,
    Range,
    Required,
    RuleKind,
    RuleSpec,
    Sanitize,
    TypeRuleSet,
    ValueKind,
)
from fieldcheck.sanitizer import Sanitizer
from fieldcheck.types import (
    CancellationToken,
    HasModelLevelRules,
    ModelViolation,
    Severity,
    ValidationContext,
    ValidationError,
    ValidationResult,
)

__all__ = [
    # Types
    "CancellationToken",
    "HasModelLevelRules",
    "ModelViolation",
    "Severity",
    "ValidationContext",
    "ValidationError",
    "ValidationResult",
    # Rules
    "AllowedValues",
    "ConditionalRange",
    "ConditionalRequired",
    "Custom",
    "FieldDescriptor",
    "FieldRules",
    "FileExtensions",
    "FutureDate",
    "Length",
    "Pattern",
    "PatternKind",
    "Range",
    "Required",
    "RuleKind",
    "RuleSpec",
    "Sanitize",
    "TypeRuleSet",
    "ValueKind",
    # Building and loading
    "FieldRuleBuilder",
    "RuleSetBuilder",
    "RuleSetLoader",
    # Engine
    "CompiledValidator",
    "CustomRuleInvoker",
    "CustomRuleRegistry",
    "EngineSettings",
    "MessageCatalog",
    "MessageFormatter",
    "RuleEvaluator",
    "Sanitizer",
    "ValidationEngine",
    "ValidatorRegistry",
    "get_registry",
    "initialize_registry",
    # Responses and export
    "ValidationResponse",
    "create_error_response",
    "create_response",
    "create_success_response",
    "dump_manifest",
    "export_client_rules",
    "export_manifest",
    # Metrics
    "Outcome",
    "ValidationEvent",
    "ValidationListener",
    "ValidationMetrics",
    # Exceptions
    "AsyncRuleInSyncContextError",
    "FieldCheckError",
    "RegistryMissError",
    "RuleConfigurationError",
    "UnknownCustomRuleError",
    "ValidationCancelledError",
]
