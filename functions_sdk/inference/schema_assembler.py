"""
Schema Assembler - derives the schema of every exported function in a file.

Usage:
```python
result = derive_schema("functions/main.py")
print(f"Derived {len(result.functions_schema.functions)} functions")
for name, issues in result.function_issues.items():
    print(name, issues)
```
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from functions_sdk.checker.diagnostics import CompilerError, Diagnostic
from functions_sdk.checker.program import SourceFile, create_program
from functions_sdk.checker.project_config import ProjectConfig, load_project_config
from functions_sdk.checker.type_checker import TypeChecker
from functions_sdk.schema.models import FunctionsSchema

from .function_derivation import derive_function_schema
from .type_derivation import TypeDerivationContext

logger = logging.getLogger(__name__)

FunctionIssues = Dict[str, List[str]]


@dataclass
class SchemaDerivationResult:
    """The derived schema and the issues found per function."""

    functions_schema: FunctionsSchema
    function_issues: FunctionIssues = field(default_factory=dict)

    def has_broken_functions(self) -> bool:
        """Whether any function with issues was left out of the schema."""
        return any(name not in self.functions_schema.functions for name in self.function_issues)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary representation"""
        return {
            "schema": self.functions_schema.to_dict(),
            "function_issues": {name: list(issues) for name, issues in self.function_issues.items()},
        }


def derive_schema(functions_file_path, defaults: Optional[ProjectConfig] = None) -> SchemaDerivationResult:
    """
    Derive the functions schema of a Python functions file

    Args:
        functions_file_path: Path to the functions file
        defaults: Checker options used when the project does not set them

    Returns:
        SchemaDerivationResult

    Raises:
        CompilerError: If the project configuration cannot be read, the file
            cannot be found, or the source does not check
    """
    functions_file_path = Path(functions_file_path).resolve()
    options = load_project_config(functions_file_path.parent, defaults)
    program = create_program(functions_file_path, options)

    diagnostics = program.get_pre_emit_diagnostics()
    if diagnostics:
        logger.info(f"{functions_file_path} has {len(diagnostics)} compiler error(s)")
        raise CompilerError(diagnostics, "Compiler errors")

    source_file = program.get_source_file(functions_file_path)
    if source_file is None:
        raise CompilerError(
            [Diagnostic(message=f"'{functions_file_path}' not returned as a source file", file_name=str(functions_file_path))],
            "Functions file not found",
        )

    return derive_schema_from_functions(source_file, program.get_type_checker())


def derive_schema_from_functions(source_file: SourceFile, type_checker: TypeChecker) -> SchemaDerivationResult:
    """Run function derivation over the exported functions of a source file."""
    context = TypeDerivationContext(
        type_checker=type_checker,
        functions_file_path=source_file.file_name,
    )
    schema_functions = {}
    function_issues: FunctionIssues = {}

    functions = type_checker.get_exported_functions(source_file)
    logger.info(f"Deriving schema for {len(functions)} exported function(s) in {source_file.file_name}")

    for function in functions:
        result = derive_function_schema(function, context)
        if result.issues:
            function_issues[result.name] = result.issues
        if result.definition is not None:
            schema_functions[result.name] = result.definition

    logger.info(
        f"Derived {len(schema_functions)} function(s), {len(context.object_type_definitions)} object type(s); "
        f"{len(function_issues)} function(s) with issues"
    )
    return SchemaDerivationResult(
        functions_schema=FunctionsSchema(
            functions=schema_functions,
            object_types=context.object_type_definitions,
            scalar_types=context.scalar_type_definitions,
        ),
        function_issues=function_issues,
    )
