from graphql import FieldNode, GraphQLError, ValidationRule, build_schema

from gql_workspace.documents.fragments import build_index
from gql_workspace.documents.source import parse_document
from gql_workspace.types import Position, SourceRange
from gql_workspace.validation.validator import validate

SCHEMA = build_schema(
    """
    type Query { me: User launches: [Launch!]! }
    type User { id: ID! name: String }
    type Launch { id: ID! site: String }
    """
)


def _validate(documents, **kwargs):
    return validate(SCHEMA, documents, build_index(documents), **kwargs)


def test_one_batch_per_file_including_empty_ones() -> None:
    documents = [
        parse_document("file:///ok.graphql", "query A { me { id } }"),
        parse_document("file:///bad.graphql", "query B { me { bogus } }"),
        parse_document("file:///broken.graphql", "query C { me {"),
        parse_document("file:///local.graphql", "extend type User { isLoggedIn: Boolean }"),
    ]

    batches = _validate(documents)

    assert [batch.uri for batch in batches] == [document.uri for document in documents]
    by_uri = {batch.uri: batch.diagnostics for batch in batches}
    assert by_uri["file:///ok.graphql"] == []
    assert by_uri["file:///local.graphql"] == []

    (unknown_field,) = by_uri["file:///bad.graphql"]
    assert "bogus" in unknown_field.message
    assert unknown_field.range == SourceRange(Position(0, 15), Position(0, 20))
    assert unknown_field.source == "GraphQL: Validation"

    (syntax_error,) = by_uri["file:///broken.graphql"]
    assert syntax_error.source == "GraphQL: Syntax"


def test_fragments_from_other_files_resolve() -> None:
    documents = [
        parse_document("file:///query.graphql", "query A { me { ...UserParts } }"),
        parse_document("file:///fragments.graphql", "fragment UserParts on User { id name }"),
    ]

    batches = _validate(documents)

    assert [batch.diagnostics for batch in batches] == [[], []]


def test_errors_in_foreign_fragments_are_reported_on_their_own_file() -> None:
    documents = [
        parse_document("file:///query.graphql", "query Q { me { ...Broken } }"),
        parse_document("file:///fragments.graphql", "fragment Broken on User { nope }"),
    ]

    query_batch, fragment_batch = _validate(documents)

    assert query_batch.diagnostics == []
    assert len(fragment_batch.diagnostics) == 1
    assert "nope" in fragment_batch.diagnostics[0].message


def test_unknown_fragment_is_reported() -> None:
    documents = [parse_document("file:///query.graphql", "query Q { me { ...Missing } }")]

    (batch,) = _validate(documents)

    assert len(batch.diagnostics) == 1
    assert "Missing" in batch.diagnostics[0].message


class _ExplodingRule(ValidationRule):
    def enter_field(self, node: FieldNode, *_args: object) -> None:
        if node.name.value == "explode":
            raise RuntimeError("rule crashed")
        self.report_error(GraphQLError(f"seen {node.name.value}", node))


def test_failure_in_one_document_does_not_block_others() -> None:
    documents = [
        parse_document("file:///crash.graphql", "{ explode }"),
        parse_document("file:///fine.graphql", "{ me }"),
    ]

    crash_batch, fine_batch = _validate(documents, rules=[_ExplodingRule])

    assert crash_batch.diagnostics == []
    assert [error.message for error in fine_batch.diagnostics] == ["seen me"]
