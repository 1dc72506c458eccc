from urllib.parse import unquote

import pytest
from graphql import (
    DocumentNode,
    build_client_schema,
    build_schema,
    introspection_from_schema,
    parse,
    print_schema,
)

from gql_workspace.documents.source import parse_document
from gql_workspace.errors import MergeError
from gql_workspace.schema.merger import (
    SCHEMA_SOURCE_PREFIX,
    client_extension_document,
    merge,
    reconstitute_schema,
    schema_has_ast_nodes,
)

SERVICE_SDL = """
type Query {
  me: User
  launches(first: Int = 10): [Launch!]!
}

type User {
  id: ID!
  name: String
}

type Launch {
  id: ID!
  site: String
}
"""


def test_merge_with_empty_client_document_keeps_service_schema() -> None:
    service = build_schema(SERVICE_SDL)

    merged = merge(service, DocumentNode(definitions=()))

    assert print_schema(merged) == print_schema(service)


def test_merge_applies_client_extensions() -> None:
    service = build_schema(SERVICE_SDL)
    extensions = parse(
        """
        extend type User { isLoggedIn: Boolean! }
        directive @client on FIELD
        """
    )

    merged = merge(service, extensions)

    assert "isLoggedIn" in merged.get_type("User").fields
    assert merged.get_directive("client") is not None
    assert "isLoggedIn" not in service.get_type("User").fields


def test_merge_rejects_extension_of_unknown_type() -> None:
    service = build_schema(SERVICE_SDL)

    with pytest.raises(MergeError) as excinfo:
        merge(service, parse("extend type Rocket { name: String }"))

    assert "Rocket" in str(excinfo.value)


def test_schema_from_introspection_is_reconstituted_before_merge() -> None:
    service = build_client_schema(introspection_from_schema(build_schema(SERVICE_SDL)))
    assert not schema_has_ast_nodes(service)

    merged = merge(service, parse("extend type Launch { isBooked: Boolean }"))

    assert schema_has_ast_nodes(merged)
    assert "isBooked" in merged.get_type("Launch").fields


def test_reconstituted_schema_round_trips_and_names_its_source() -> None:
    service = build_client_schema(introspection_from_schema(build_schema(SERVICE_SDL)))
    printed = print_schema(service)

    rebuilt = reconstitute_schema(service)

    assert schema_has_ast_nodes(rebuilt)
    assert print_schema(rebuilt) == printed
    source_name = rebuilt.query_type.ast_node.loc.source.name
    assert source_name.startswith(SCHEMA_SOURCE_PREFIX)
    assert unquote(source_name[len(SCHEMA_SOURCE_PREFIX) :]) == printed
    assert " " not in source_name


def test_client_extension_document_skips_operations_and_broken_files() -> None:
    documents = [
        parse_document(
            "file:///a.graphql",
            "extend type Query { cartItems: [ID!]! }\nquery Me { me { id } }",
        ),
        parse_document("file:///b.graphql", "type CartItem { id: ID! }"),
        parse_document("file:///c.graphql", "query {"),
    ]

    document = client_extension_document(documents)

    kinds = [definition.kind for definition in document.definitions]
    assert kinds == ["object_type_extension", "object_type_definition"]
