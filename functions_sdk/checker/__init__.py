"""
Checker Module - static type information for a Python functions file

Parses the functions file and the modules it imports with `ast` (nothing
is imported or executed) and answers the type questions the inference
engine asks:
- Exported functions, their docstrings, tags and signatures
- Classification data for annotation types (lists, unions, scalars)
- Properties and declaring locations of structured types
- Compile diagnostics for files that do not check
"""

from .diagnostics import CompilerError, Diagnostic, SchemaDerivationError, UnsupportedTypeLocation
from .program import Program, SourceFile, create_program
from .project_config import ProjectConfig, load_project_config
from .type_checker import FunctionDeclaration, Parameter, ParameterKind, Signature, TypeChecker

__all__ = [
    "CompilerError",
    "Diagnostic",
    "SchemaDerivationError",
    "UnsupportedTypeLocation",
    "Program",
    "SourceFile",
    "create_program",
    "ProjectConfig",
    "load_project_config",
    "FunctionDeclaration",
    "Parameter",
    "ParameterKind",
    "Signature",
    "TypeChecker",
]
