"""Compile diagnostics and the errors raised when a program cannot be checked."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class DiagnosticCategory(str, Enum):
    """Category of a compile diagnostic."""

    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A problem found while parsing or checking a source file."""

    message: str
    file_name: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    category: DiagnosticCategory = DiagnosticCategory.ERROR

    def location(self) -> str:
        """Render the location as file:line:column."""
        if self.file_name is None:
            return "<unknown>"
        if self.line is None:
            return self.file_name
        if self.column is None:
            return f"{self.file_name}:{self.line}"
        return f"{self.file_name}:{self.line}:{self.column}"

    def __str__(self) -> str:
        return f"{self.location()} - {self.category.value}: {self.message}"


class CompilerError(Exception):
    """Raised when the functions file cannot be loaded or does not check."""

    def __init__(self, diagnostics: Sequence[Diagnostic], message: str = "Compiler errors"):
        super().__init__(message)
        self.diagnostics: List[Diagnostic] = list(diagnostics)


class SchemaDerivationError(RuntimeError):
    """Internal error that aborts a derivation pass."""


class UnsupportedTypeLocation(Exception):
    """A structured type is declared outside the functions file's directory tree."""

    def __init__(self, type_name: str, file_name: str):
        super().__init__(f"Unsupported location for type {type_name} in {file_name}")
        self.type_name = type_name
        self.file_name = file_name
