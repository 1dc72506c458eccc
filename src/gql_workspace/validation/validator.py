"""Validate tracked documents against the merged schema."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from graphql import (
    ASTValidationRule,
    DocumentNode,
    GraphQLError,
    GraphQLSchema,
    NoUnusedFragmentsRule,
    is_executable_definition_node,
    specified_rules,
)
from graphql import validate as validate_document

from gql_workspace.documents.fragments import FragmentIndex, referenced_fragments
from gql_workspace.documents.source import range_for_error
from gql_workspace.types import Diagnostic, PositionedError, TrackedDocument

logger = logging.getLogger(__name__)

# Fragment files define fragments that are only spread from other files.
DEFAULT_VALIDATION_RULES: tuple[type[ASTValidationRule], ...] = tuple(
    rule for rule in specified_rules if rule is not NoUnusedFragmentsRule
)


def validate(
    schema: GraphQLSchema,
    documents: Iterable[TrackedDocument],
    fragment_index: FragmentIndex,
    *,
    rules: Collection[type[ASTValidationRule]] = DEFAULT_VALIDATION_RULES,
) -> list[Diagnostic]:
    """Produce exactly one diagnostic batch per document, empty ones included."""

    batches: list[Diagnostic] = []
    for document in documents:
        try:
            errors = collect_document_errors(schema, document, fragment_index, rules=rules)
        except Exception:
            logger.exception("Validation of %s failed", document.uri)
            errors = []
        batches.append(Diagnostic(uri=document.uri, diagnostics=errors))
    return batches


def collect_document_errors(
    schema: GraphQLSchema,
    document: TrackedDocument,
    fragment_index: FragmentIndex,
    *,
    rules: Collection[type[ASTValidationRule]] = DEFAULT_VALIDATION_RULES,
) -> list[PositionedError]:
    """Syntax errors for unparsable files, validation errors otherwise.

    Fragments spread in the document but defined in other files are pulled in
    from the index. Errors located inside those foreign fragments are dropped;
    they are reported on the file that defines them.
    """

    if document.ast is None:
        return list(document.syntax_errors)

    executable = [
        definition
        for definition in document.ast.definitions
        if is_executable_definition_node(definition)
    ]
    if not executable:
        return []

    local = DocumentNode(definitions=tuple(executable), loc=document.ast.loc)
    local_names = {
        definition.name.value
        for definition in executable
        if definition.name is not None
    }
    foreign = [
        fragment
        for fragment in referenced_fragments(local, fragment_index)
        if fragment.name.value not in local_names
    ]
    combined = DocumentNode(definitions=tuple(executable + foreign), loc=document.ast.loc)

    return [
        PositionedError(message=error.message, range=range_for_error(error))
        for error in validate_document(schema, combined, rules)
        if _located_in(error, document)
    ]


def _located_in(error: GraphQLError, document: TrackedDocument) -> bool:
    source = error.source
    if source is None or document.ast is None or document.ast.loc is None:
        return True
    return source is document.ast.loc.source
