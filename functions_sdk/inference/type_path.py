"""Type paths: the traversal steps from a function signature to a type."""
from dataclasses import dataclass
from typing import Sequence, Tuple, Union


@dataclass(frozen=True)
class FunctionParameter:
    function_name: str
    parameter_name: str


@dataclass(frozen=True)
class FunctionReturn:
    function_name: str


@dataclass(frozen=True)
class ObjectProperty:
    type_name: str
    property_name: str


@dataclass(frozen=True)
class ArraySegment:
    pass


TypePathSegment = Union[FunctionParameter, FunctionReturn, ObjectProperty, ArraySegment]
TypePath = Tuple[TypePathSegment, ...]


def type_path_segment_to_string(segment: TypePathSegment) -> str:
    if isinstance(segment, FunctionParameter):
        return f"function '{segment.function_name}' parameter '{segment.parameter_name}'"
    if isinstance(segment, FunctionReturn):
        return f"function '{segment.function_name}' return value"
    if isinstance(segment, ObjectProperty):
        return f"type '{segment.type_name}' property '{segment.property_name}'"
    if isinstance(segment, ArraySegment):
        return "array type"
    raise TypeError(f"Unknown type path segment: {segment!r}")


def type_path_to_string(type_path: Sequence[TypePathSegment]) -> str:
    """Human readable path, used in error messages."""
    return ", ".join(type_path_segment_to_string(segment) for segment in type_path)


def generate_type_name_from_type_path(type_path: Sequence[TypePathSegment]) -> str:
    """Synthesize a type name for a type that has no declared name."""
    parts = []
    for segment in type_path:
        if isinstance(segment, FunctionParameter):
            parts.append(f"{segment.function_name}_arguments_{segment.parameter_name}")
        elif isinstance(segment, FunctionReturn):
            parts.append(f"{segment.function_name}_output")
        elif isinstance(segment, ObjectProperty):
            parts.append(f"field_{segment.property_name}")
        elif isinstance(segment, ArraySegment):
            parts.append("array")
        else:
            raise TypeError(f"Unknown type path segment: {segment!r}")
    return "_".join(parts)
