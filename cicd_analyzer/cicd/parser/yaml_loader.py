"""YAML loading for pipeline configurations using ruamel.yaml."""

from __future__ import annotations

from io import StringIO
from typing import Any

from ruamel.yaml import YAML, YAMLError


class ParseError(Exception):
    """Malformed YAML. ``line`` and ``column`` are 1-based when known."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


def parse(raw_text: str) -> Any:
    """Parse *raw_text* into plain dicts, lists and scalars.

    The safe loader follows YAML 1.2, so a bare ``on`` key stays the string
    ``"on"``. Blank input yields ``None``.
    """
    yaml = YAML(typ="safe", pure=True)
    try:
        return yaml.load(StringIO(raw_text))
    except YAMLError as e:
        line = column = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1  # 0-indexed to 1-indexed
            column = mark.column + 1
        problem = getattr(e, "problem", None) or str(e)
        raise ParseError(f"Invalid YAML: {problem}", line, column) from e
