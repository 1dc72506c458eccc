"""Combine a service schema with the client extension document."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import quote

from graphql import (
    DocumentNode,
    GraphQLError,
    GraphQLSchema,
    Source,
    build_schema,
    extend_schema,
    is_type_system_definition_node,
    is_type_system_extension_node,
    print_schema,
    validate_schema,
)

from gql_workspace.errors import MergeError
from gql_workspace.types import TrackedDocument

logger = logging.getLogger(__name__)

SCHEMA_SOURCE_PREFIX = "graphql-schema:/schema.graphql?"

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~".
_URI_COMPONENT_SAFE = "!*'()"


def schema_has_ast_nodes(schema: GraphQLSchema | None) -> bool:
    query_type = schema.query_type if schema is not None else None
    return bool(query_type and query_type.ast_node)


def reconstitute_schema(schema: GraphQLSchema) -> GraphQLSchema:
    """Rebuild `schema` from its printed SDL so its types carry AST nodes.

    Schemas built from introspection results have no AST metadata. The printed
    text is kept as the source name so the origin can be loaded as an
    in-memory file.
    """

    schema_source = print_schema(schema)
    return build_schema(
        Source(
            schema_source,
            SCHEMA_SOURCE_PREFIX + quote(schema_source, safe=_URI_COMPONENT_SAFE),
        )
    )


def client_extension_document(documents: Iterable[TrackedDocument]) -> DocumentNode:
    """Collect every type-system definition and extension from tracked files."""

    definitions = []
    for document in documents:
        if document.ast is None:
            continue
        definitions.extend(
            definition
            for definition in document.ast.definitions
            if is_type_system_definition_node(definition)
            or is_type_system_extension_node(definition)
        )
    return DocumentNode(definitions=tuple(definitions))


def merge(service_schema: GraphQLSchema, client_document: DocumentNode) -> GraphQLSchema:
    """Extend `service_schema` with `client_document`.

    Raises:
        MergeError: the extensions do not apply to the service schema, or the
            result is not a valid schema.
    """

    if not schema_has_ast_nodes(service_schema):
        logger.debug("Service schema has no AST nodes, rebuilding from printed SDL")
        service_schema = reconstitute_schema(service_schema)

    if not client_document.definitions:
        return service_schema

    try:
        merged = extend_schema(service_schema, client_document)
    except (GraphQLError, TypeError) as exc:
        raise MergeError(str(exc)) from exc

    errors = validate_schema(merged)
    if errors:
        raise MergeError("\n\n".join(error.message for error in errors))
    return merged
