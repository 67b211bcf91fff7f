"""Function Derivation - the schema of one exported function."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from functions_sdk.checker.diagnostics import SchemaDerivationError
from functions_sdk.checker.type_checker import FunctionDeclaration, ParameterKind
from functions_sdk.schema.models import ArgumentDefinition, FunctionDefinition, FunctionKind

from .type_derivation import TypeDerivationContext, TypeDerivationFailure, derive_schema_type
from .type_path import FunctionParameter, FunctionReturn

logger = logging.getLogger(__name__)

PURE_TAG = "pure"
VARIADIC_KINDS = (ParameterKind.VAR_POSITIONAL, ParameterKind.VAR_KEYWORD)


@dataclass
class DeriveFunctionSchemaResult:
    """
    Outcome of deriving one function

    A function can fail to produce a definition (the errors are in
    issues), or produce one and still carry warnings in issues.
    """

    name: str
    definition: Optional[FunctionDefinition] = None
    issues: List[str] = field(default_factory=list)


def derive_function_schema(function: FunctionDeclaration, context: TypeDerivationContext) -> DeriveFunctionSchemaResult:
    """
    Derive the schema definition of an exported function

    Args:
        function: Function declaration from the type checker
        context: Pass-scoped derivation context

    Returns:
        DeriveFunctionSchemaResult; definition is None if the function is broken
    """
    checker = context.type_checker
    function_is_broken = False
    issues: List[str] = []

    function_name = function.name
    if not function_name:
        raise SchemaDerivationError("Function didn't have an identifier")

    function_description = checker.get_documentation(function).strip()
    marked_pure = PURE_TAG in checker.get_tags(function)
    parameter_docs = checker.get_parameter_documentation(function)
    signature = checker.get_signature(function)

    arguments: List[ArgumentDefinition] = []
    for parameter in signature.parameters:
        if parameter.kind in VARIADIC_KINDS:
            marker = "*" if parameter.kind == ParameterKind.VAR_POSITIONAL else "**"
            issues.append(
                f"Variadic parameters are not supported, but '{marker}{parameter.name}' was declared by function '{function_name}'"
            )
            function_is_broken = True
            continue

        param_path = (FunctionParameter(function_name, parameter.name),)
        result = derive_schema_type(parameter.type, param_path, context)
        if isinstance(result, TypeDerivationFailure):
            # Drop the parameter; the whole function is discarded at the end
            issues.extend(result.errors)
            function_is_broken = True
            continue

        issues.extend(result.warnings)
        description = (parameter_docs.get(parameter.name) or "").strip()
        arguments.append(
            ArgumentDefinition(
                name=parameter.name,
                description=description or None,
                type=result.type_definition,
            )
        )

    declared_names = {p.name for p in signature.parameters}
    for documented_name in parameter_docs:
        if documented_name not in declared_names:
            issues.append(
                f"Documentation describes parameter '{documented_name}' which function '{function_name}' does not declare"
            )

    function_definition: Optional[FunctionDefinition] = None
    return_result = derive_schema_type(signature.return_type, (FunctionReturn(function_name),), context)
    if isinstance(return_result, TypeDerivationFailure):
        issues.extend(return_result.errors)
        function_is_broken = True
    else:
        issues.extend(return_result.warnings)
        function_definition = FunctionDefinition(
            description=function_description or None,
            kind=FunctionKind.QUERY if marked_pure else FunctionKind.MUTATION,
            arguments=arguments,
            result_type=return_result.type_definition,
        )

    if function_is_broken:
        logger.debug(f"Function '{function_name}' is broken: {len(issues)} issue(s)")
    else:
        logger.debug(f"Derived function '{function_name}' with {len(arguments)} argument(s)")

    return DeriveFunctionSchemaResult(
        name=function_name,
        definition=None if function_is_broken else function_definition,
        issues=issues,
    )
