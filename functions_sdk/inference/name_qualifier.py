"""
Name Qualifier - unique schema identifiers for structured types.

Types declared in the functions file keep their names; types declared in
other modules under the functions file's directory are prefixed with the
module's relative path, so two modules can both declare a `User`.
"""

import re
from pathlib import Path
from typing import Optional, Sequence

from functions_sdk.checker.diagnostics import SchemaDerivationError, UnsupportedTypeLocation
from functions_sdk.checker.type_checker import TypeChecker
from functions_sdk.checker.types import TypeHandle

from .type_path import TypePathSegment, generate_type_name_from_type_path, type_path_to_string

_INVALID_LEADING_CHARS = re.compile(r"^[^A-Za-z_]+")
_INVALID_CHARS = re.compile(r"[^0-9A-Za-z_]")


def sanitize_name(name: str) -> str:
    """Make a name valid as a schema identifier (`[_A-Za-z][_0-9A-Za-z]*`)."""
    return _INVALID_CHARS.sub("_", _INVALID_LEADING_CHARS.sub("", name))


def module_prefix(declaration_file: Path, root_dir: Path) -> str:
    """Relative module path of a file under root_dir, e.g. "models/user"."""
    relative = declaration_file.relative_to(root_dir).with_suffix("")
    parts = list(relative.parts)
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return "/".join(parts)


def qualify_type_name(
    type_handle: TypeHandle,
    type_path: Sequence[TypePathSegment],
    name: Optional[str],
    functions_file_path: str,
    checker: TypeChecker,
) -> str:
    """
    Produce the registry name of a structured type

    Args:
        type_handle: The structured type
        type_path: Where the type was reached from
        name: Declared or alias name, None for anonymous types
        functions_file_path: Path of the functions file
        checker: Type checker of the program

    Returns:
        Sanitized, globally unique type name

    Raises:
        UnsupportedTypeLocation: If the type is declared outside the
            functions file's directory tree
        SchemaDerivationError: If the type has no symbol or declaration
    """
    symbol = checker.get_symbol(type_handle)
    if symbol is None and type_handle.is_union():
        symbol = checker.get_symbol(type_handle.members[0])
    if symbol is None:
        raise SchemaDerivationError(f"Couldn't find symbol for type at {type_path_to_string(type_path)}")

    name_or_generated_name = name or generate_type_name_from_type_path(type_path)
    entry_file = Path(functions_file_path).resolve()
    root_dir = entry_file.parent

    for declaration in symbol.declarations:
        where = Path(declaration.file_name).resolve()
        if where == entry_file:
            return sanitize_name(name_or_generated_name)
        if where.is_relative_to(root_dir):
            return sanitize_name(f"{module_prefix(where, root_dir)}_{name_or_generated_name}")
        raise UnsupportedTypeLocation(name_or_generated_name, str(where))

    raise SchemaDerivationError(f"Couldn't find any declarations for type {name_or_generated_name}")
