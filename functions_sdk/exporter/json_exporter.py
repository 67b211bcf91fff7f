"""JSON exporter."""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from functions_sdk.inference.schema_assembler import SchemaDerivationResult


class JsonExporter:
    """Export a derived functions schema to JSON."""

    def build(self, functions_file: Path, result: SchemaDerivationResult) -> Dict[str, Any]:
        """Build the exported document."""
        schema = result.functions_schema
        return {
            "metadata": {
                "created_at": datetime.now().isoformat(),
                "functions_file": str(functions_file),
                "total_functions": len(schema.functions),
                "total_object_types": len(schema.object_types),
                "broken_functions": sorted(
                    name for name in result.function_issues if name not in schema.functions
                ),
            },
            "schema": schema.to_dict(),
            "function_issues": {name: list(issues) for name, issues in result.function_issues.items()},
        }

    def export(self, output_file: Path, functions_file: Path, result: SchemaDerivationResult) -> None:
        """Export to JSON file."""
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, "w") as f:
            json.dump(self.build(functions_file, result), f, indent=2, default=str)
