"""
Type Classifier - predicates over type handles.

Classification order matters: unsupported forms (awaitables, class
instances, void) are checked first, then array > scalar > nullable union
> structured object. Anything else is unsupported.
"""

from enum import Enum
from typing import Optional, Tuple

from functions_sdk.checker.type_checker import TypeChecker
from functions_sdk.checker.types import (
    AwaitableType,
    ClassInstanceType,
    IntrinsicKind,
    IntrinsicType,
    ObjectType,
    TypeHandle,
    VoidType,
)
from functions_sdk.schema.models import NullOrUndefinability


class TypeForm(str, Enum):
    """The category a type handle falls into."""

    AWAITABLE = "awaitable"
    CLASS_INSTANCE = "class_instance"
    VOID = "void"
    ARRAY = "array"
    SCALAR = "scalar"
    NULLABLE = "nullable"
    OBJECT = "object"
    UNSUPPORTED = "unsupported"


SCALAR_TYPE_NAMES = {
    IntrinsicKind.BOOL: "Boolean",
    IntrinsicKind.STR: "String",
    IntrinsicKind.INT: "Int",
    IntrinsicKind.FLOAT: "Float",
}


def unwrap_awaitable_type(type_handle: TypeHandle, checker: TypeChecker) -> Optional[TypeHandle]:
    """Return the awaited type, or None if this is not an asynchronous wrapper."""
    if not isinstance(type_handle, AwaitableType):
        return None
    type_args = checker.get_type_arguments(type_handle)
    # Not a real awaitable without exactly one result type
    return type_args[0] if len(type_args) == 1 else None


def is_class_instance_type(type_handle: TypeHandle) -> bool:
    return isinstance(type_handle, ClassInstanceType)


def is_void_type(type_handle: TypeHandle) -> bool:
    return isinstance(type_handle, VoidType)


def get_array_element_type(type_handle: TypeHandle, checker: TypeChecker) -> Optional[TypeHandle]:
    """Return the element type of a list type."""
    if checker.is_array_type(type_handle):
        type_args = checker.get_type_arguments(type_handle)
        if len(type_args) == 1:
            return type_args[0]
    return None


def get_scalar_type_name(type_handle: TypeHandle) -> Optional[str]:
    """Return the schema scalar name for a primitive type."""
    if isinstance(type_handle, IntrinsicType):
        return SCALAR_TYPE_NAMES.get(type_handle.kind)
    return None


def is_null_type(type_handle: TypeHandle) -> bool:
    return isinstance(type_handle, IntrinsicType) and type_handle.kind == IntrinsicKind.NONE


def is_undefined_type(type_handle: TypeHandle) -> bool:
    return isinstance(type_handle, IntrinsicType) and type_handle.kind == IntrinsicKind.MISSING


def unwrap_nullable_type(type_handle: TypeHandle) -> Optional[Tuple[TypeHandle, NullOrUndefinability]]:
    """
    Split a nullable union into its single underlying type and acceptance

    Returns:
        (underlying type, null-or-undefinability), or None when the type is
        not a union of exactly one type with None and/or Missing
    """
    if not type_handle.is_union():
        return None

    members = type_handle.members
    is_nullable = any(is_null_type(m) for m in members)
    is_undefined = any(is_undefined_type(m) for m in members)

    if is_nullable and is_undefined:
        null_or_undefinability = NullOrUndefinability.ACCEPTS_EITHER
    elif is_nullable:
        null_or_undefinability = NullOrUndefinability.ACCEPTS_NULL_ONLY
    elif is_undefined:
        null_or_undefinability = NullOrUndefinability.ACCEPTS_UNDEFINED_ONLY
    else:
        return None

    remaining = [m for m in members if not is_null_type(m) and not is_undefined_type(m)]
    if len(remaining) != 1:
        return None
    return remaining[0], null_or_undefinability


def is_object_type(type_handle: TypeHandle) -> bool:
    return isinstance(type_handle, ObjectType)


def classify_type(type_handle: TypeHandle, checker: TypeChecker) -> TypeForm:
    """Place a type handle in exactly one category, in priority order."""
    if unwrap_awaitable_type(type_handle, checker) is not None:
        return TypeForm.AWAITABLE
    if is_class_instance_type(type_handle):
        return TypeForm.CLASS_INSTANCE
    if is_void_type(type_handle):
        return TypeForm.VOID
    if get_array_element_type(type_handle, checker) is not None:
        return TypeForm.ARRAY
    if get_scalar_type_name(type_handle) is not None:
        return TypeForm.SCALAR
    if unwrap_nullable_type(type_handle) is not None:
        return TypeForm.NULLABLE
    if is_object_type(type_handle):
        return TypeForm.OBJECT
    return TypeForm.UNSUPPORTED
