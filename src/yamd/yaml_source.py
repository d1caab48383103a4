"""YAML deserialization: source text to a generic value."""

from __future__ import annotations

from dataclasses import dataclass

import yaml

from yamd.types import GenericValue


@dataclass(frozen=True, slots=True)
class YamlParseError:
    """Deserializer failure with the parser's own position, when known."""

    message: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


@dataclass(frozen=True, slots=True)
class YamlParseResult:
    value: GenericValue = None
    error: YamlParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_yaml_source(text: str) -> YamlParseResult:
    """Deserialize one YAMD document with `yaml.safe_load`.

    Mapping order is preserved since PyYAML builds plain dicts in document order.
    """

    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        problem = getattr(exc, "problem", None) or str(exc)
        if mark is None:
            return YamlParseResult(error=YamlParseError(message=str(problem)))
        return YamlParseResult(
            error=YamlParseError(
                message=str(problem),
                line=mark.line + 1,
                column=mark.column + 1,
            ),
        )
    return YamlParseResult(value=value)
