"""
Docstring parsing for function documentation.

Supports:
- Summary and long description (everything before the first section)
- Google style `Args:` sections
- reST field lists (`:param name: text`) and bare tags (`:pure:`)
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

SECTION_HEADERS = {
    "args",
    "arguments",
    "parameters",
    "params",
    "returns",
    "return",
    "yields",
    "raises",
    "examples",
    "example",
    "note",
    "notes",
    "usage",
    "see also",
}

PARAM_SECTIONS = {"args", "arguments", "parameters", "params"}

# Field names that describe the signature rather than tag the function
SIGNATURE_FIELDS = {"param", "parameter", "arg", "argument", "type", "rtype", "returns", "return", "raises", "raise"}

_FIELD_RE = re.compile(r"^:(?P<name>[A-Za-z_][\w-]*)(?:\s+(?P<arg>[^:]+))?:\s*(?P<text>.*)$")
_ARG_RE = re.compile(r"^(?P<name>\*{0,2}[A-Za-z_]\w*)\s*(?:\([^)]*\))?\s*:\s*(?P<text>.*)$")


@dataclass
class ParsedDocstring:
    """Structured view of a docstring."""

    description: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)


def _is_section_header(line: str) -> bool:
    stripped = line.strip()
    return stripped.endswith(":") and stripped[:-1].strip().lower() in SECTION_HEADERS and line == line.lstrip()


def parse_docstring(docstring: Optional[str]) -> ParsedDocstring:
    """
    Parse a cleaned docstring (as returned by `ast.get_docstring`)

    Args:
        docstring: Docstring text, or None

    Returns:
        ParsedDocstring with description, parameter docs and tags
    """
    parsed = ParsedDocstring()
    if not docstring:
        return parsed

    description_lines: List[str] = []
    section: Optional[str] = None
    current_param: Optional[str] = None
    param_indent = 0

    for line in docstring.splitlines():
        stripped = line.strip()

        field_match = _FIELD_RE.match(stripped) if line == line.lstrip() else None
        if field_match:
            section = None
            name = field_match.group("name").lower()
            arg = (field_match.group("arg") or "").strip()
            text = field_match.group("text").strip()
            if name in ("param", "parameter", "arg", "argument") and arg:
                # ":param int x:" puts the type before the name
                current_param = arg.split()[-1]
                parsed.params[current_param] = text
            elif name not in SIGNATURE_FIELDS:
                parsed.tags[name] = text
                current_param = None
            else:
                current_param = None
            continue

        if _is_section_header(line):
            section = stripped[:-1].strip().lower()
            current_param = None
            continue

        if section is None:
            if current_param is not None and stripped and line != line.lstrip():
                parsed.params[current_param] = f"{parsed.params[current_param]} {stripped}".strip()
                continue
            current_param = None
            description_lines.append(line)
            continue

        if section in PARAM_SECTIONS:
            if not stripped:
                current_param = None
                continue
            indent = len(line) - len(line.lstrip())
            arg_match = _ARG_RE.match(stripped)
            if arg_match and (current_param is None or indent <= param_indent):
                current_param = arg_match.group("name").lstrip("*")
                param_indent = indent
                parsed.params[current_param] = arg_match.group("text").strip()
            elif current_param is not None:
                parsed.params[current_param] = f"{parsed.params[current_param]} {stripped}".strip()

    parsed.description = "\n".join(description_lines).strip()
    return parsed
