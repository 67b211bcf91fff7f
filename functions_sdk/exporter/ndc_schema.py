"""Translate a functions schema into a data connector schema response."""
from typing import Any, Dict

from functions_sdk.schema.models import (
    ArgumentDefinition,
    ArrayType,
    FunctionDefinition,
    FunctionKind,
    FunctionsSchema,
    NamedType,
    NullableType,
    TypeDefinition,
)


def convert_type(type_definition: TypeDefinition) -> Dict[str, Any]:
    """Connector representation of a type definition."""
    if isinstance(type_definition, NamedType):
        return {"type": "named", "name": type_definition.name}
    if isinstance(type_definition, NullableType):
        return {"type": "nullable", "underlying_type": convert_type(type_definition.underlying_type)}
    if isinstance(type_definition, ArrayType):
        return {"type": "array", "element_type": convert_type(type_definition.element_type)}
    raise TypeError(f"Unknown type definition: {type_definition!r}")


def _convert_arguments(arguments: list[ArgumentDefinition]) -> Dict[str, Any]:
    converted = {}
    for argument in arguments:
        entry: Dict[str, Any] = {"type": convert_type(argument.type)}
        if argument.description:
            entry["description"] = argument.description
        converted[argument.name] = entry
    return converted


def _convert_function(name: str, definition: FunctionDefinition) -> Dict[str, Any]:
    converted: Dict[str, Any] = {
        "name": name,
        "arguments": _convert_arguments(definition.arguments),
        "result_type": convert_type(definition.result_type),
    }
    if definition.description:
        converted["description"] = definition.description
    return converted


def get_ndc_schema(functions_schema: FunctionsSchema) -> Dict[str, Any]:
    """
    Build the schema response served by the connector

    Queries (pure functions) are exposed as functions, mutations as
    procedures.
    """
    functions = []
    procedures = []
    for name, definition in functions_schema.functions.items():
        converted = _convert_function(name, definition)
        if definition.kind == FunctionKind.QUERY:
            functions.append(converted)
        else:
            procedures.append(converted)

    object_types = {
        name: {
            "fields": {prop.name: {"type": convert_type(prop.type)} for prop in object_type.properties},
        }
        for name, object_type in functions_schema.object_types.items()
    }

    scalar_types = {
        name: {"aggregate_functions": {}, "comparison_operators": {}}
        for name in functions_schema.scalar_types
    }

    return {
        "scalar_types": scalar_types,
        "object_types": object_types,
        "collections": [],
        "functions": functions,
        "procedures": procedures,
    }
