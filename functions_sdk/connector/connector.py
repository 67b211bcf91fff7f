"""Connector entry points backed by a derived functions schema."""
import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from functions_sdk.checker.diagnostics import CompilerError
from functions_sdk.checker.project_config import ProjectConfig
from functions_sdk.cli.reporting import print_compiler_diagnostics, print_function_issues
from functions_sdk.exporter.ndc_schema import get_ndc_schema
from functions_sdk.inference.schema_assembler import derive_schema
from functions_sdk.schema.models import FunctionsSchema

logger = logging.getLogger(__name__)

RAW_CONFIGURATION_SCHEMA: Dict[str, Any] = {
    "description": "Python Functions SDK Connector Configuration",
    "type": "object",
    "required": [],
    "properties": {},
}

NDC_VERSION = "^0.1.0"


@dataclass
class Configuration:
    """Validated connector configuration."""

    functions_schema: FunctionsSchema


@dataclass
class State:
    """Runtime state: the callables of the loaded functions module."""

    functions: Dict[str, Callable[..., Any]] = field(default_factory=dict)


class Connector:
    """Connector for a single functions file."""

    def __init__(self, functions_file, defaults: Optional[ProjectConfig] = None):
        """Initialize connector."""
        self.functions_file = Path(functions_file).resolve()
        self.defaults = defaults

    def get_raw_configuration_schema(self) -> Dict[str, Any]:
        return RAW_CONFIGURATION_SCHEMA

    def make_empty_configuration(self) -> Dict[str, Any]:
        return {}

    def update_configuration(self, raw_configuration: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def validate_raw_configuration(self, raw_configuration: Dict[str, Any]) -> Configuration:
        """
        Derive the functions schema and report what was found

        Compiler errors are printed and yield an empty schema.
        """
        try:
            result = derive_schema(self.functions_file, self.defaults)
        except CompilerError as e:
            logger.error(f"Schema derivation failed for {self.functions_file}: {e}")
            print_compiler_diagnostics(e.diagnostics)
            return Configuration(functions_schema=FunctionsSchema())

        print_function_issues(result.function_issues)
        return Configuration(functions_schema=result.functions_schema)

    def try_init_state(self, configuration: Configuration) -> State:
        """Load the functions module, unless there is nothing to serve."""
        if not configuration.functions_schema.functions:
            return State()

        module_spec = importlib.util.spec_from_file_location(self.functions_file.stem, self.functions_file)
        if module_spec is None or module_spec.loader is None:
            raise ImportError(f"Cannot load functions from {self.functions_file}")
        module = importlib.util.module_from_spec(module_spec)
        module_spec.loader.exec_module(module)

        return State(
            functions={name: getattr(module, name) for name in configuration.functions_schema.functions}
        )

    def get_capabilities(self, configuration: Configuration) -> Dict[str, Any]:
        return {
            "versions": NDC_VERSION,
            "capabilities": {
                "query": {},
            },
        }

    def get_schema(self, configuration: Configuration) -> Dict[str, Any]:
        return get_ndc_schema(configuration.functions_schema)

    def query(self, configuration: Configuration, state: State, request: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError("Function not implemented.")

    def mutation(self, configuration: Configuration, state: State, request: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError("Function not implemented.")

    def explain(self, configuration: Configuration, state: State, request: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError("Function not implemented.")

    def health_check(self, configuration: Configuration, state: State) -> None:
        return None

    def fetch_metrics(self, configuration: Configuration, state: State) -> None:
        return None
