"""Turning file contents into tracked documents and AST nodes into ranges."""

from __future__ import annotations

import logging
from pathlib import Path

from graphql import GraphQLError, GraphQLSyntaxError, Node, Source, parse

from gql_workspace.errors import DocumentParseError
from gql_workspace.types import Position, PositionedError, SourceRange, TrackedDocument

logger = logging.getLogger(__name__)

_ORIGIN = SourceRange(start=Position(0, 0), end=Position(0, 0))
_SYNTAX_SOURCE = "GraphQL: Syntax"


def load_document(path: Path) -> TrackedDocument:
    """Read and parse a file. A file that cannot be read is tracked with the read error."""

    uri = path.as_uri()
    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as exc:
        error = DocumentParseError(uri, f"Could not read file: {exc}")
        logger.warning("Tracking unreadable document %s", error)
        return TrackedDocument(
            uri=uri,
            text="",
            ast=None,
            syntax_errors=[
                PositionedError(message=str(error), range=_ORIGIN, source=_SYNTAX_SOURCE)
            ],
        )
    return parse_document(uri, text)


def parse_document(uri: str, text: str) -> TrackedDocument:
    """Parse one file. Syntax errors are captured on the document, not raised."""

    try:
        ast = parse(Source(text, uri))
    except GraphQLSyntaxError as error:
        return TrackedDocument(
            uri=uri,
            text=text,
            ast=None,
            syntax_errors=[
                PositionedError(
                    message=error.message,
                    range=range_for_error(error),
                    source=_SYNTAX_SOURCE,
                )
            ],
        )
    return TrackedDocument(uri=uri, text=text, ast=ast)


def range_for_ast_node(node: Node) -> SourceRange:
    loc = node.loc
    if loc is None:
        return _ORIGIN
    start = loc.source.get_location(loc.start)
    end = loc.source.get_location(loc.end)
    return SourceRange(
        start=Position(start.line - 1, start.column - 1),
        end=Position(end.line - 1, end.column - 1),
    )


def range_for_error(error: GraphQLError) -> SourceRange:
    """Best range for an error: its first located node, else its first location."""

    for node in error.nodes or ():
        if node.loc is not None:
            return range_for_ast_node(node)
    if error.locations:
        location = error.locations[0]
        point = Position(location.line - 1, location.column - 1)
        return SourceRange(start=point, end=point)
    return _ORIGIN
