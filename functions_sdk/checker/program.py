"""
Program - the set of Python source files reachable from a functions file.

Files are parsed with `ast`, never imported. Imported modules are loaded
lazily, the first time the type checker needs one of their names.
"""

import ast
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .diagnostics import Diagnostic
from .project_config import ProjectConfig

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class SourceFile:
    """A parsed Python source file."""

    file_name: str
    module_name: str
    tree: Optional[ast.Module] = None
    is_package: bool = False
    syntax_diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def path(self) -> Path:
        return Path(self.file_name)


class ModuleResolver:
    """Finds the source file of a module without importing it."""

    def __init__(self, root_dir: Path, search_paths: Optional[List[str]] = None):
        self.root_dir = root_dir
        self.search_dirs: List[Path] = [root_dir]
        for entry in [*(search_paths or []), *sys.path]:
            directory = Path(entry or ".").resolve()
            if directory.is_dir() and directory not in self.search_dirs:
                self.search_dirs.append(directory)

    @staticmethod
    def find_in(base: Path, parts: List[str]) -> Optional[Path]:
        if not parts:
            init = base / "__init__.py"
            return init if init.is_file() else None
        package_init = base.joinpath(*parts) / "__init__.py"
        if package_init.is_file():
            return package_init
        module_file = base.joinpath(*parts[:-1]) / f"{parts[-1]}.py"
        if module_file.is_file():
            return module_file
        stub_file = base.joinpath(*parts[:-1]) / f"{parts[-1]}.pyi"
        if stub_file.is_file():
            return stub_file
        return None

    def find_module(self, module_name: str) -> Optional[Path]:
        """Find an absolute module on the search path."""
        parts = module_name.split(".")
        for directory in self.search_dirs:
            found = self.find_in(directory, parts)
            if found is not None:
                return found
        return None

    def find_relative(self, from_file: Path, module_name: Optional[str], level: int) -> Optional[Path]:
        """Find a module imported relative to from_file (`from ..pkg import x`)."""
        base = from_file.parent
        for _ in range(level - 1):
            base = base.parent
        parts = module_name.split(".") if module_name else []
        return self.find_in(base, parts)


class Program:
    """Parsed functions file plus every module loaded while checking it."""

    def __init__(self, functions_file_path: Path, options: Optional[ProjectConfig] = None):
        self.options = options or ProjectConfig()
        self.functions_file_path = functions_file_path.resolve()
        self.root_dir = self.functions_file_path.parent
        self.resolver = ModuleResolver(self.root_dir, self.options.search_paths)
        self._files: Dict[Path, SourceFile] = {}
        self._checker = None

        if self.functions_file_path.is_file():
            self.load_file(self.functions_file_path)
        else:
            logger.error(f"Functions file not found: {self.functions_file_path}")

    def get_source_file(self, path) -> Optional[SourceFile]:
        """Return a loaded source file by path."""
        return self._files.get(Path(path).resolve())

    def get_source_files(self) -> List[SourceFile]:
        """All source files loaded so far."""
        return list(self._files.values())

    def is_local(self, source_file: SourceFile) -> bool:
        """Whether the file lives under the functions file's directory."""
        return source_file.path.is_relative_to(self.root_dir)

    def _module_name_for(self, path: Path) -> str:
        for directory in self.resolver.search_dirs:
            if path.is_relative_to(directory):
                relative = path.relative_to(directory).with_suffix("")
                parts = list(relative.parts)
                if parts and parts[-1] == "__init__":
                    parts = parts[:-1]
                return ".".join(parts)
        return path.stem

    def load_file(self, path: Path) -> SourceFile:
        """Parse a file, or return it if already loaded."""
        path = path.resolve()
        if path in self._files:
            return self._files[path]

        source_file = SourceFile(
            file_name=str(path),
            module_name=self._module_name_for(path),
            is_package=path.name in ("__init__.py", "__init__.pyi"),
        )
        # Registered before parsing; import cycles find the entry
        self._files[path] = source_file

        try:
            text = path.read_text(encoding="utf-8")
            source_file.tree = ast.parse(
                text,
                filename=str(path),
                feature_version=self.options.python_version,
            )
        except SyntaxError as e:
            source_file.syntax_diagnostics.append(
                Diagnostic(
                    message=e.msg or "invalid syntax",
                    file_name=str(path),
                    line=e.lineno,
                    column=e.offset,
                )
            )
        except (OSError, UnicodeDecodeError, ValueError) as e:
            source_file.syntax_diagnostics.append(Diagnostic(message=str(e), file_name=str(path)))

        logger.debug(f"Loaded {source_file.module_name} from {path}")
        return source_file

    def resolve_import(self, from_file: SourceFile, module_name: Optional[str], level: int = 0) -> Optional[SourceFile]:
        """Load the module named by an import statement in from_file."""
        if level > 0:
            found = self.resolver.find_relative(from_file.path, module_name, level)
        elif module_name:
            found = self.resolver.find_module(module_name)
        else:
            found = None
        return self.load_file(found) if found is not None else None

    def resolve_submodule(self, package: SourceFile, name: str) -> Optional[SourceFile]:
        """Load `package.name` when package is a package."""
        if not package.is_package:
            return None
        found = self.resolver.find_in(package.path.parent, [name])
        return self.load_file(found) if found is not None else None

    def get_type_checker(self):
        """Return the type checker for this program."""
        if self._checker is None:
            from .type_checker import TypeChecker

            self._checker = TypeChecker(self)
        return self._checker

    def get_pre_emit_diagnostics(self) -> List[Diagnostic]:
        """
        Check the functions file and the local modules it reaches

        Returns:
            Every syntax and name-resolution error found, in load order
        """
        if self.get_source_file(self.functions_file_path) is None:
            return [Diagnostic(message=f"File '{self.functions_file_path}' not found", file_name=str(self.functions_file_path))]

        checker = self.get_type_checker()
        diagnostics: List[Diagnostic] = []
        checked = set()
        while True:
            pending = [sf for sf in self.get_source_files() if self.is_local(sf) and sf.file_name not in checked]
            if not pending:
                break
            for source_file in pending:
                checked.add(source_file.file_name)
                diagnostics.extend(source_file.syntax_diagnostics)
                if source_file.tree is not None:
                    diagnostics.extend(checker.check_source_file(source_file))
        return diagnostics


def create_program(functions_file_path, options: Optional[ProjectConfig] = None) -> Program:
    """Create a program rooted at the functions file."""
    return Program(Path(functions_file_path), options)
