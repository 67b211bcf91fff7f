"""
Unit tests for the Name Qualifier

Tests:
- Name sanitization
- Qualification by declaring module
- Generated names for anonymous types
- Unsupported locations and missing declarations
"""

import pytest

from functions_sdk.checker.diagnostics import SchemaDerivationError, UnsupportedTypeLocation
from functions_sdk.checker.program import create_program
from functions_sdk.checker.project_config import ProjectConfig
from functions_sdk.checker.types import OpaqueType, Symbol
from functions_sdk.inference.name_qualifier import module_prefix, qualify_type_name, sanitize_name
from functions_sdk.inference.type_path import (
    ArraySegment,
    FunctionParameter,
    FunctionReturn,
    ObjectProperty,
    generate_type_name_from_type_path,
    type_path_to_string,
)


# ============================================================================
# SANITIZATION AND PATHS
# ============================================================================


class TestSanitizeName:
    """Test identifier sanitization"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("User", "User"),
            ("Box[int]", "Box_int_"),
            ("models/user_User", "models_user_User"),
            ("123abc", "abc"),
            ("__private", "__private"),
            ("Pair[str, int]", "Pair_str__int_"),
        ],
    )
    def test_sanitize(self, name, expected):
        """Invalid characters become underscores, invalid leading characters are dropped"""
        assert sanitize_name(name) == expected

    def test_module_prefix(self, tmp_path):
        """Packages drop their __init__ component"""
        assert module_prefix(tmp_path / "models" / "user.py", tmp_path) == "models/user"
        assert module_prefix(tmp_path / "models" / "__init__.py", tmp_path) == "models"


class TestTypePaths:
    """Test type path rendering and generated names"""

    def test_generated_name(self):
        """Each segment contributes to the generated name"""
        path = (FunctionParameter("f", "p"), ObjectProperty("T", "items"), ArraySegment())

        assert generate_type_name_from_type_path(path) == "f_arguments_p_field_items_array"
        assert generate_type_name_from_type_path((FunctionReturn("f"),)) == "f_output"

    def test_path_to_string(self):
        """Paths render as a readable trail"""
        path = (FunctionParameter("f", "p"), ObjectProperty("T", "x"), ArraySegment())

        assert type_path_to_string(path) == "function 'f' parameter 'p', type 'T' property 'x', array type"
        assert type_path_to_string((FunctionReturn("f"),)) == "function 'f' return value"


# ============================================================================
# QUALIFICATION
# ============================================================================


class TestQualifyTypeName:
    """Test qualification by declaring location"""

    def _first_param(self, program, source_path, function_name="f"):
        checker = program.get_type_checker()
        source_file = program.get_source_file(source_path)
        function = next(f for f in checker.get_exported_functions(source_file) if f.name == function_name)
        return checker, checker.get_signature(function).parameters[0].type

    def test_declared_in_functions_file(self, write_source):
        """Types declared in the functions file keep their name"""
        path = write_source(
            "functions.py",
            """
            from typing import TypedDict

            class User(TypedDict):
                id: int

            def f(user: User) -> int:
                return 0
            """,
        )
        program = create_program(path)
        checker, user = self._first_param(program, path)

        name = qualify_type_name(user, (FunctionParameter("f", "user"),), "User", str(path), checker)

        assert name == "User"

    def test_declared_in_sibling_module(self, write_source):
        """Types from other local modules carry the module path"""
        write_source(
            "models/user.py",
            """
            from typing import TypedDict

            class User(TypedDict):
                id: int
            """,
        )
        path = write_source(
            "functions.py",
            """
            from models.user import User

            def f(user: User) -> int:
                return 0
            """,
        )
        program = create_program(path)
        checker, user = self._first_param(program, path)

        name = qualify_type_name(user, (FunctionParameter("f", "user"),), "User", str(path), checker)

        assert name == "models_user_User"

    def test_anonymous_type_gets_generated_name(self, write_source):
        """Without a declared name the type path names the type"""
        path = write_source(
            "functions.py",
            """
            from typing import TypedDict

            def f(point: TypedDict[{"x": int}]) -> int:
                return 0
            """,
        )
        program = create_program(path)
        checker, point = self._first_param(program, path)

        name = qualify_type_name(point, (FunctionParameter("f", "point"),), None, str(path), checker)

        assert name == "f_arguments_point"

    def test_declared_outside_functions_directory(self, tmp_path, write_source):
        """Types declared outside the functions directory are rejected"""
        write_source(
            "shared/records.py",
            """
            from typing import TypedDict

            class Record(TypedDict):
                id: int
            """,
        )
        path = write_source(
            "app/functions.py",
            """
            from records import Record

            def f(record: Record) -> int:
                return 0
            """,
        )
        program = create_program(path, ProjectConfig(search_paths=[str(tmp_path / "shared")]))
        checker, record = self._first_param(program, path)

        with pytest.raises(UnsupportedTypeLocation) as exc_info:
            qualify_type_name(record, (FunctionParameter("f", "record"),), "Record", str(path), checker)

        assert exc_info.value.type_name == "Record"
        assert str(exc_info.value).startswith("Unsupported location for type Record in ")

    def test_missing_symbol(self, load_program):
        """A type without a symbol cannot be named"""
        program, checker, source_file = load_program("")

        with pytest.raises(SchemaDerivationError, match="Couldn't find symbol"):
            qualify_type_name(OpaqueType("x"), (FunctionReturn("f"),), "X", source_file.file_name, checker)

    def test_symbol_without_declarations(self, load_program):
        """A symbol with no declarations cannot be located"""
        program, checker, source_file = load_program("")
        handle = OpaqueType("x", Symbol("X"))

        with pytest.raises(SchemaDerivationError, match="Couldn't find any declarations for type X"):
            qualify_type_name(handle, (FunctionReturn("f"),), "X", source_file.file_name, checker)
