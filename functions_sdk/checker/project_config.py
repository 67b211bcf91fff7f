"""Project-level checker configuration read from pyproject.toml."""
import logging
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple

from .diagnostics import CompilerError, Diagnostic

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "pyproject.toml"
CONFIG_TABLE = "functions-sdk"


@dataclass
class ProjectConfig:
    """Options that control how a functions file is parsed and resolved."""

    python_version: Optional[Tuple[int, int]] = None
    search_paths: List[str] = field(default_factory=list)
    config_path: Optional[Path] = None


def parse_python_version(value: str) -> Tuple[int, int]:
    """Parse a "3.11" style version string."""
    parts = str(value).strip().split(".")
    if len(parts) < 2 or not all(p.isdigit() for p in parts[:2]):
        raise ValueError(f"Invalid python version: {value!r}")
    return int(parts[0]), int(parts[1])


def find_config_file(start_dir: Path) -> Optional[Path]:
    """Find the nearest pyproject.toml at or above start_dir."""
    current = start_dir.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_project_config(functions_dir: Path, defaults: Optional[ProjectConfig] = None) -> ProjectConfig:
    """
    Load checker options for the project containing functions_dir

    Args:
        functions_dir: Directory of the functions file
        defaults: Options used when the project does not set them

    Returns:
        ProjectConfig merged over the defaults

    Raises:
        CompilerError: If the configuration file exists but cannot be read
    """
    config = replace(defaults) if defaults else ProjectConfig()
    config_path = find_config_file(functions_dir)
    if config_path is None:
        logger.debug(f"No {CONFIG_FILE_NAME} found above {functions_dir}, using defaults")
        return config

    try:
        with open(config_path, "rb") as f:
            document = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise CompilerError(
            [Diagnostic(message=str(e), file_name=str(config_path))],
            f"Error loading project configuration ({CONFIG_FILE_NAME})",
        ) from e

    table = document.get("tool", {}).get(CONFIG_TABLE, {})
    config.config_path = config_path
    if not table:
        return config

    try:
        if "python-version" in table:
            config.python_version = parse_python_version(table["python-version"])
        if "search-paths" in table:
            paths = table["search-paths"]
            if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
                raise ValueError("'search-paths' must be a list of strings")
            config.search_paths = [str((config_path.parent / p).resolve()) for p in paths]
    except ValueError as e:
        raise CompilerError(
            [Diagnostic(message=str(e), file_name=str(config_path))],
            f"Error loading project configuration ({CONFIG_FILE_NAME})",
        ) from e

    logger.debug(f"Loaded project configuration from {config_path}")
    return config
