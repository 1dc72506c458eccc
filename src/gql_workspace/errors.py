"""Error taxonomy for schema composition and document processing."""

from __future__ import annotations


class GraphQLWorkspaceError(Exception):
    """Base class for all errors raised by gql_workspace."""


class SchemaFetchError(GraphQLWorkspaceError):
    """The schema provider could not produce a schema for a tag."""

    def __init__(self, message: str, *, tag: str | None = None) -> None:
        super().__init__(message)
        self.tag = tag


class MergeError(GraphQLWorkspaceError):
    """Client extensions are structurally incompatible with the service schema."""


class DocumentParseError(GraphQLWorkspaceError):
    """A tracked file is not valid GraphQL."""

    def __init__(self, uri: str, message: str) -> None:
        super().__init__(f"{uri}: {message}")
        self.uri = uri


class OperationCancelledError(GraphQLWorkspaceError):
    """A loading operation was cancelled through its handler."""


class MissingCredentialsError(GraphQLWorkspaceError):
    """No engine API key is configured, so field statistics are unavailable."""
