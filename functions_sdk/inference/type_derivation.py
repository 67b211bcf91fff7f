"""
Type Derivation Engine - converts type handles into schema type definitions.

The walk is depth first and dispatches on the form given by
`classify_type`. Structured types are registered in the derivation
context under their qualified name before their properties are derived,
so self-referencing types resolve to the in-progress entry instead of
recursing forever. Lists and nullable unions have no such guard and are
bounded by MAX_TYPE_DERIVATION_RECURSION.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Sequence, Union

from functions_sdk.checker.diagnostics import SchemaDerivationError, UnsupportedTypeLocation
from functions_sdk.checker.type_checker import TypeChecker
from functions_sdk.checker.types import ObjectType, TypeHandle
from functions_sdk.schema.models import (
    ArrayType,
    NamedType,
    NullableType,
    ObjectPropertyDefinition,
    ObjectTypeDefinition,
    ScalarTypeDefinition,
    TypeDefinition,
    TypeKind,
)

from .name_qualifier import qualify_type_name
from .type_classifier import (
    TypeForm,
    classify_type,
    get_array_element_type,
    get_scalar_type_name,
    unwrap_nullable_type,
)
from .type_path import ArraySegment, ObjectProperty, TypePathSegment, type_path_to_string

logger = logging.getLogger(__name__)

# Nesting limit along one derivation path
MAX_TYPE_DERIVATION_RECURSION = 20


@dataclass
class TypeDerivationContext:
    """State shared by every derivation in one pass over a functions file."""

    type_checker: TypeChecker
    functions_file_path: str
    object_type_definitions: Dict[str, ObjectTypeDefinition] = field(default_factory=dict)
    scalar_type_definitions: Dict[str, ScalarTypeDefinition] = field(default_factory=dict)
    # Registry name -> identity of the type registered under it
    object_type_identities: Dict[str, tuple] = field(default_factory=dict)


@dataclass
class TypeDerivationSuccess:
    type_definition: TypeDefinition
    warnings: List[str] = field(default_factory=list)


@dataclass
class TypeDerivationFailure:
    errors: List[str]


DeriveSchemaTypeResult = Union[TypeDerivationSuccess, TypeDerivationFailure]

_UNSUPPORTED_FORM_MESSAGES = {
    TypeForm.AWAITABLE: "Awaitable types are not supported, but '{type}' was encountered in {path}",
    TypeForm.CLASS_INSTANCE: "Class types are not supported, but '{type}' was encountered in {path}",
    TypeForm.VOID: "The void type is not supported, but '{type}' was encountered in {path}",
    TypeForm.UNSUPPORTED: "The type '{type}' is not supported, but it was encountered in {path}",
}


def derive_schema_type(
    type_handle: TypeHandle,
    type_path: Sequence[TypePathSegment],
    context: TypeDerivationContext,
    recursion_depth: int = 0,
) -> DeriveSchemaTypeResult:
    """
    Derive the schema type definition of a type

    Args:
        type_handle: Type to derive
        type_path: Traversal path to this type, for messages and naming
        context: Pass-scoped derivation context (registry is mutated)
        recursion_depth: Nesting level along the current path

    Returns:
        TypeDerivationSuccess, or TypeDerivationFailure listing every error

    Raises:
        SchemaDerivationError: If the nesting exceeds MAX_TYPE_DERIVATION_RECURSION
    """
    checker = context.type_checker
    type_handle = checker.get_apparent_type(type_handle)
    type_path = tuple(type_path)

    if recursion_depth > MAX_TYPE_DERIVATION_RECURSION:
        raise SchemaDerivationError(
            f"Schema inference validation exceeded depth {MAX_TYPE_DERIVATION_RECURSION} "
            f"for type {checker.type_to_string(type_handle)}"
        )

    type_form = classify_type(type_handle, checker)
    handler = _TYPE_HANDLERS.get(type_form)
    if handler is not None:
        return handler(type_handle, type_path, context, recursion_depth)

    message = _UNSUPPORTED_FORM_MESSAGES[type_form]
    return TypeDerivationFailure(
        [message.format(type=checker.type_to_string(type_handle), path=type_path_to_string(type_path))]
    )


def _derive_array_type(type_handle, type_path, context, recursion_depth) -> DeriveSchemaTypeResult:
    element_type = get_array_element_type(type_handle, context.type_checker)
    element_result = derive_schema_type(element_type, (*type_path, ArraySegment()), context, recursion_depth + 1)
    if isinstance(element_result, TypeDerivationFailure):
        return element_result
    return TypeDerivationSuccess(ArrayType(element_result.type_definition), element_result.warnings)


def _derive_scalar_type(type_handle, type_path, context, recursion_depth) -> DeriveSchemaTypeResult:
    scalar_name = get_scalar_type_name(type_handle)
    context.scalar_type_definitions[scalar_name] = ScalarTypeDefinition()
    return TypeDerivationSuccess(NamedType(scalar_name, TypeKind.SCALAR), [])


def _derive_nullable_type(type_handle, type_path, context, recursion_depth) -> DeriveSchemaTypeResult:
    not_nullable_type, null_or_undefinability = unwrap_nullable_type(type_handle)
    result = derive_schema_type(not_nullable_type, type_path, context, recursion_depth + 1)
    if isinstance(result, TypeDerivationFailure):
        return result
    return TypeDerivationSuccess(NullableType(result.type_definition, null_or_undefinability), result.warnings)


def get_object_type_name(
    type_handle: ObjectType,
    type_path: Sequence[TypePathSegment],
    context: TypeDerivationContext,
) -> str:
    """Registry name of a structured type; anonymous types are named from their path."""
    checker = context.type_checker
    declared_name = None
    if not type_handle.is_anonymous() or type_handle.alias_name is not None:
        declared_name = checker.type_to_string(type_handle)
    return qualify_type_name(type_handle, type_path, declared_name, context.functions_file_path, checker)


def _derive_object_type(type_handle, type_path, context, recursion_depth) -> DeriveSchemaTypeResult:
    checker = context.type_checker
    try:
        type_name = get_object_type_name(type_handle, type_path, context)
    except UnsupportedTypeLocation as e:
        return TypeDerivationFailure([f"{e}, encountered in {type_path_to_string(type_path)}"])

    registry = context.object_type_definitions
    identities = context.object_type_identities
    identity = checker.type_identity(type_handle)

    # Repeated reference, or a cycle back to a type still being derived
    if type_name in registry:
        if identities.get(type_name) != identity:
            return TypeDerivationFailure(
                [
                    f"Type '{checker.type_to_string(type_handle)}' would be named '{type_name}', "
                    f"which is already used by another type, encountered in {type_path_to_string(type_path)}"
                ]
            )
        return TypeDerivationSuccess(NamedType(type_name, TypeKind.OBJECT), [])

    registered_before = set(registry)
    registry[type_name] = ObjectTypeDefinition()  # placeholder until the properties are derived
    identities[type_name] = identity

    errors: List[str] = []
    warnings: List[str] = []
    properties: List[ObjectPropertyDefinition] = []
    members = checker.get_properties(type_handle)

    for property_name, property_type in members.items():
        property_path = (*type_path, ObjectProperty(type_name, property_name))
        result = derive_schema_type(property_type, property_path, context, recursion_depth + 1)
        if isinstance(result, TypeDerivationFailure):
            errors.extend(result.errors)
        else:
            warnings.extend(result.warnings)
            properties.append(ObjectPropertyDefinition(property_name, result.type_definition))

    if errors:
        # Anything registered since the placeholder may point at it
        evicted = [name for name in registry if name not in registered_before]
        for name in evicted:
            del registry[name]
            identities.pop(name, None)
        logger.debug(f"Discarded object type '{type_name}' and {len(evicted) - 1} dependent type(s)")
        return TypeDerivationFailure(errors)

    if not members:
        warnings.append(f"Type '{type_name}' has no properties, encountered in {type_path_to_string(type_path)}")

    registry[type_name] = ObjectTypeDefinition(properties)
    return TypeDerivationSuccess(NamedType(type_name, TypeKind.OBJECT), warnings)


_TYPE_HANDLERS: Mapping[TypeForm, Callable[..., DeriveSchemaTypeResult]] = {
    TypeForm.ARRAY: _derive_array_type,
    TypeForm.SCALAR: _derive_scalar_type,
    TypeForm.NULLABLE: _derive_nullable_type,
    TypeForm.OBJECT: _derive_object_type,
}
