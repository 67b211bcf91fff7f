"""
Tests for the connector entry points and the command line interface

Tests:
- Configuration validation, schema and capabilities
- Loading the functions module into runtime state
- derive, schema and check commands via CliRunner
"""

import json

import pytest
from click.testing import CliRunner

from functions_sdk.connector.connector import RAW_CONFIGURATION_SCHEMA, Connector
from main import cli


GOOD_FUNCTIONS = """
from typing import TypedDict

from functions_sdk.markers import pure


class Greeting(TypedDict):
    text: str
    excited: bool


@pure
def greet(name: str) -> Greeting:
    return {"text": f"Hello {name}", "excited": True}


def record(message: str) -> bool:
    return True
"""

BROKEN_FUNCTIONS = """
def ok(value: int) -> int:
    return value


def broken(*values: int) -> int:
    return sum(values)
"""


@pytest.fixture
def good_file(write_source):
    return write_source("functions.py", GOOD_FUNCTIONS)


@pytest.fixture
def broken_file(write_source):
    return write_source("functions.py", BROKEN_FUNCTIONS)


@pytest.fixture
def uncompilable_file(write_source):
    return write_source("functions.py", "def f(user: User) -> int:\n    return 0\n")


# ============================================================================
# CONNECTOR
# ============================================================================


class TestConnector:
    """Test connector entry points"""

    def test_configuration_helpers(self, good_file):
        """The raw configuration is empty"""
        connector = Connector(good_file)

        assert connector.get_raw_configuration_schema() == RAW_CONFIGURATION_SCHEMA
        assert connector.make_empty_configuration() == {}
        assert connector.update_configuration({"anything": 1}) == {}

    def test_validate_and_get_schema(self, good_file):
        """Validation derives the schema served by get_schema"""
        connector = Connector(good_file)

        configuration = connector.validate_raw_configuration({})
        schema = connector.get_schema(configuration)

        assert list(configuration.functions_schema.functions) == ["greet", "record"]
        assert [f["name"] for f in schema["functions"]] == ["greet"]
        assert [p["name"] for p in schema["procedures"]] == ["record"]
        assert "Greeting" in schema["object_types"]

    def test_compiler_errors_yield_empty_schema(self, uncompilable_file, capsys):
        """Compiler errors are printed and nothing is exposed"""
        connector = Connector(uncompilable_file)

        configuration = connector.validate_raw_configuration({})

        assert configuration.functions_schema.functions == {}
        assert "Cannot find name 'User'" in capsys.readouterr().err

    def test_function_issues_printed(self, broken_file, capsys):
        """Function issues are reported during validation"""
        configuration = Connector(broken_file).validate_raw_configuration({})

        assert list(configuration.functions_schema.functions) == ["ok"]
        assert "'*values'" in capsys.readouterr().err

    def test_init_state_loads_functions(self, good_file):
        """Runtime state holds the callables named in the schema"""
        connector = Connector(good_file)
        configuration = connector.validate_raw_configuration({})

        state = connector.try_init_state(configuration)

        assert sorted(state.functions) == ["greet", "record"]
        assert state.functions["greet"]("Ada") == {"text": "Hello Ada", "excited": True}

    def test_init_state_without_functions(self, uncompilable_file):
        """Nothing is loaded when there is nothing to serve"""
        connector = Connector(uncompilable_file)

        state = connector.try_init_state(connector.validate_raw_configuration({}))

        assert state.functions == {}

    def test_capabilities_and_unimplemented_requests(self, good_file):
        """Request handling is not available"""
        connector = Connector(good_file)
        configuration = connector.validate_raw_configuration({})
        state = connector.try_init_state(configuration)

        assert connector.get_capabilities(configuration)["capabilities"] == {"query": {}}
        assert connector.health_check(configuration, state) is None
        with pytest.raises(NotImplementedError):
            connector.query(configuration, state, {})
        with pytest.raises(NotImplementedError):
            connector.mutation(configuration, state, {})
        with pytest.raises(NotImplementedError):
            connector.explain(configuration, state, {})


# ============================================================================
# CLI
# ============================================================================


class TestCli:
    """Test the command line interface"""

    def test_derive_prints_json(self, good_file):
        """derive prints the export document"""
        result = CliRunner().invoke(cli, ["derive", str(good_file)])

        assert result.exit_code == 0
        document = json.loads(result.stdout)
        assert set(document["schema"]["functions"]) == {"greet", "record"}
        assert document["metadata"]["broken_functions"] == []

    def test_derive_writes_output_file(self, good_file, tmp_path):
        """derive --output writes the export to a file"""
        output = tmp_path / "out" / "schema.json"

        result = CliRunner().invoke(cli, ["--log-level", "DEBUG", "derive", str(good_file), "--output", str(output)])

        assert result.exit_code == 0
        with open(output) as f:
            assert "Greeting" in json.load(f)["schema"]["object_types"]

    def test_schema_command(self, good_file):
        """schema prints the connector schema response"""
        result = CliRunner().invoke(cli, ["schema", str(good_file)])

        assert result.exit_code == 0
        schema = json.loads(result.stdout)
        assert [f["name"] for f in schema["functions"]] == ["greet"]

    def test_check_passes(self, good_file):
        """check succeeds when every function derives"""
        result = CliRunner().invoke(cli, ["check", str(good_file)])

        assert result.exit_code == 0
        assert "2 function(s) OK" in result.stdout

    def test_check_fails_on_broken_function(self, broken_file):
        """check exits 1 when a function is broken"""
        result = CliRunner().invoke(cli, ["check", str(broken_file)])

        assert result.exit_code == 1
        assert "broken" in result.stderr

    def test_compiler_errors_exit_1(self, uncompilable_file):
        """Compiler errors exit 1 and are printed"""
        result = CliRunner().invoke(cli, ["derive", str(uncompilable_file)])

        assert result.exit_code == 1
        assert "Cannot find name 'User'" in result.stderr
