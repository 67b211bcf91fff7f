"""Shared fixtures: small functions projects written into tmp_path."""

import textwrap
from pathlib import Path

import pytest

from functions_sdk.checker.program import create_program
from functions_sdk.inference.type_derivation import TypeDerivationContext


@pytest.fixture
def write_source(tmp_path):
    """Write a dedented source file under tmp_path and return its path."""

    def _write(relative_path: str, source: str) -> Path:
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def load_program(write_source):
    """Write functions.py and return (program, checker, source_file)."""

    def _load(source: str, file_name: str = "functions.py"):
        path = write_source(file_name, source)
        program = create_program(path)
        return program, program.get_type_checker(), program.get_source_file(path)

    return _load


@pytest.fixture
def derivation_context(load_program):
    """Build a fresh derivation context over a functions file."""

    def _context(source: str):
        program, checker, source_file = load_program(source)
        context = TypeDerivationContext(type_checker=checker, functions_file_path=source_file.file_name)
        return context, checker, source_file

    return _context


@pytest.fixture
def function_named():
    """Look up an exported function declaration by name."""

    def _find(checker, source_file, name):
        for function in checker.get_exported_functions(source_file):
            if function.name == name:
                return function
        raise LookupError(name)

    return _find
