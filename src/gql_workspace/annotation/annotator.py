"""Overlay field statistics on tracked documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from graphql import (
    FieldNode,
    GraphQLSchema,
    TypeInfo,
    TypeInfoVisitor,
    Visitor,
    visit,
)

from gql_workspace.documents.source import range_for_ast_node
from gql_workspace.format import format_ms
from gql_workspace.types import Decoration, FieldStats, TrackedDocument

logger = logging.getLogger(__name__)


class _FieldStatsVisitor(Visitor):
    def __init__(self, uri: str, type_info: TypeInfo, field_stats: FieldStats) -> None:
        super().__init__()
        self.uri = uri
        self.type_info = type_info
        self.field_stats = field_stats
        self.decorations: list[Decoration] = []

    def enter_field(self, node: FieldNode, *_args: object) -> None:
        parent_type = self.type_info.get_parent_type()
        if parent_type is None:
            return
        stat = self.field_stats.get(parent_type.name, {}).get(node.name.value)
        if stat is None:
            return
        self.decorations.append(
            Decoration(
                uri=self.uri,
                message=f"p95: {format_ms(stat, 3)}",
                range=range_for_ast_node(node),
            )
        )


def annotate(
    schema: GraphQLSchema | None,
    documents: Iterable[TrackedDocument],
    field_stats: FieldStats | None,
) -> list[Decoration] | None:
    """Decorate every field with known statistics.

    Returns None when there is no schema or no stats table, so callers keep
    whatever decorations they already show. An empty table returns an empty
    list, clearing them.
    """

    if schema is None or field_stats is None:
        return None

    decorations: list[Decoration] = []
    for document in documents:
        if document.ast is None:
            continue
        type_info = TypeInfo(schema)
        visitor = _FieldStatsVisitor(document.uri, type_info, field_stats)
        try:
            visit(document.ast, TypeInfoVisitor(type_info, visitor))
        except Exception:
            logger.exception("Annotating %s failed", document.uri)
            continue
        decorations.extend(visitor.decorations)
    return decorations
