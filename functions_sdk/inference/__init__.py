"""
Inference Module - derives a functions schema from type annotations

Supports:
- Scalars (bool, str, int, float), lists and nullable unions
- TypedDicts, dataclasses and NamedTuples, including recursive ones
- Qualified names for types declared in other local modules
- Per-function error and warning reports
"""

from .function_derivation import DeriveFunctionSchemaResult, derive_function_schema
from .name_qualifier import qualify_type_name, sanitize_name
from .schema_assembler import SchemaDerivationResult, derive_schema, derive_schema_from_functions
from .type_classifier import TypeForm, classify_type
from .type_derivation import (
    MAX_TYPE_DERIVATION_RECURSION,
    TypeDerivationContext,
    TypeDerivationFailure,
    TypeDerivationSuccess,
    derive_schema_type,
)

__all__ = [
    "DeriveFunctionSchemaResult",
    "derive_function_schema",
    "qualify_type_name",
    "sanitize_name",
    "SchemaDerivationResult",
    "derive_schema",
    "derive_schema_from_functions",
    "TypeForm",
    "classify_type",
    "MAX_TYPE_DERIVATION_RECURSION",
    "TypeDerivationContext",
    "TypeDerivationFailure",
    "TypeDerivationSuccess",
    "derive_schema_type",
]
