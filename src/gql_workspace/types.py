"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias

from graphql import DocumentNode

SchemaTag: TypeAlias = str
FieldStats: TypeAlias = dict[str, dict[str, float]]

DEFAULT_SCHEMA_TAG: SchemaTag = "current"


@dataclass(slots=True, frozen=True)
class Position:
    """Zero-based line/character position inside a file."""

    line: int
    character: int


@dataclass(slots=True, frozen=True)
class SourceRange:
    start: Position
    end: Position


@dataclass(slots=True, frozen=True)
class PositionedError:
    """A single syntax or validation problem located in a file."""

    message: str
    range: SourceRange
    severity: str = "error"
    source: str = "GraphQL: Validation"


@dataclass(slots=True)
class TrackedDocument:
    """A parsed GraphQL source file under project management.

    `ast` is None when the file failed to parse; `syntax_errors` then holds the
    reasons. Documents are replaced wholesale on every edit.
    """

    uri: str
    text: str
    ast: DocumentNode | None
    syntax_errors: list[PositionedError] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """All problems reported for one file in one validation pass."""

    uri: str
    diagnostics: list[PositionedError]


@dataclass(slots=True, frozen=True)
class Decoration:
    """An informational overlay attached to a source range."""

    uri: str
    message: str
    range: SourceRange
