"""Application configuration."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from functions_sdk.checker.project_config import ProjectConfig, parse_python_version


@dataclass
class InferenceConfig:
    """Checker defaults used when the analyzed project does not set them."""

    python_version: Optional[str] = None
    search_paths: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "InferenceConfig":
        """Load config from environment variables."""
        search_paths = os.getenv("FUNCTIONS_SDK_SEARCH_PATHS", "")
        return cls(
            python_version=os.getenv("FUNCTIONS_SDK_PYTHON_VERSION") or None,
            search_paths=[p for p in search_paths.split(os.pathsep) if p],
        )

    def to_project_config(self) -> ProjectConfig:
        """Defaults for load_project_config."""
        return ProjectConfig(
            python_version=parse_python_version(self.python_version) if self.python_version else None,
            search_paths=[str(Path(p).resolve()) for p in self.search_paths],
        )


@dataclass
class AppConfig:
    """Application configuration."""

    functions_file: str = "./functions.py"
    output_dir: str = "./output"
    log_level: str = "WARNING"
    inference: InferenceConfig = None

    def __post_init__(self):
        """Initialize default values."""
        if self.inference is None:
            self.inference = InferenceConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            functions_file=os.getenv("FUNCTIONS_SDK_FUNCTIONS", "./functions.py"),
            output_dir=os.getenv("FUNCTIONS_SDK_OUTPUT_DIR", "./output"),
            log_level=os.getenv("FUNCTIONS_SDK_LOG_LEVEL", "WARNING"),
            inference=InferenceConfig.from_env(),
        )


# Global instance
app_config = AppConfig.from_env()
