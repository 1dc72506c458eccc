"""Fetch, merge and publish the project schema."""

from __future__ import annotations

import enum
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from graphql import DocumentNode, GraphQLSchema, print_ast

from gql_workspace.errors import MergeError, OperationCancelledError, SchemaFetchError
from gql_workspace.obs.loading import LoadingHandler
from gql_workspace.schema.merger import merge, reconstitute_schema, schema_has_ast_nodes
from gql_workspace.schema.provider import SchemaProvider
from gql_workspace.types import DEFAULT_SCHEMA_TAG, SchemaTag

logger = logging.getLogger(__name__)


class RefreshState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class SchemaSnapshot:
    """Immutable published schema state.

    `schema` is what documents are validated against; `service_schema` is the
    fetched schema it was merged from. `client_source` is the printed client
    extension document applied to produce `schema`. `last_error` holds the
    most recent merge failure message, if the client extensions could not be
    applied.
    """

    service_schema: GraphQLSchema
    schema: GraphQLSchema
    tag: SchemaTag
    version: int
    request_id: int
    client_source: str = ""
    last_error: str | None = None


class SchemaRefreshController:
    """Owns the lifecycle of the published schema.

    Refreshes may overlap. Each call takes a request number when it starts and
    a result is only published if no later request has published already.
    """

    def __init__(
        self,
        *,
        provider: SchemaProvider,
        loading_handler: LoadingHandler,
        client_document: Callable[[], DocumentNode],
        display_name: str = "<Unnamed>",
        on_published: Callable[[SchemaSnapshot], None] | None = None,
    ) -> None:
        self._provider = provider
        self._loading_handler = loading_handler
        self._client_document = client_document
        self._display_name = display_name
        self._on_published = on_published
        self._requests = itertools.count(1)
        self._snapshot: SchemaSnapshot | None = None
        self._state = RefreshState.IDLE
        self._active_tag: SchemaTag = DEFAULT_SCHEMA_TAG

    @property
    def snapshot(self) -> SchemaSnapshot | None:
        return self._snapshot

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def active_tag(self) -> SchemaTag:
        return self._active_tag

    def set_on_published(self, callback: Callable[[SchemaSnapshot], None] | None) -> None:
        self._on_published = callback

    async def refresh(self, tag: SchemaTag | None = None) -> SchemaSnapshot | None:
        """Fetch the schema for `tag`, merge client extensions and publish it.

        Returns the published snapshot, or None when fetching failed, the
        operation was cancelled or a newer refresh has already published. The
        previously published snapshot stays in place whenever None is returned.
        """

        if tag is not None:
            self._active_tag = tag
        requested_tag = self._active_tag
        request_id = next(self._requests)

        try:
            loaded = await self._loading_handler.handle(
                f"Loading schema for {self._display_name}",
                self._load(requested_tag, request_id),
            )
        except (SchemaFetchError, OperationCancelledError) as exc:
            # A fetch failure has already been shown by the loading handler.
            if not self._is_stale(request_id):
                self._state = RefreshState.FAILED
            logger.debug("Schema request %d for tag %s ended: %s", request_id, requested_tag, exc)
            return None

        if loaded is None or self._is_stale(request_id):
            logger.debug(
                "Discarding schema for tag %s from stale request %d", requested_tag, request_id
            )
            return None

        service_schema, schema, client_source, last_error = loaded
        previous_version = self._snapshot.version if self._snapshot else 0
        snapshot = SchemaSnapshot(
            service_schema=service_schema,
            schema=schema,
            tag=requested_tag,
            version=previous_version + 1,
            request_id=request_id,
            client_source=client_source,
            last_error=last_error,
        )
        self._publish(snapshot)
        return snapshot

    def remerge(self, client_document: DocumentNode) -> SchemaSnapshot | None:
        """Re-apply client extensions to the current service schema.

        Nothing changes when `client_document` prints the same as the document
        already applied. On a merge failure the unmerged service schema is
        published and `last_error` records why.
        """

        current = self._snapshot
        if current is None:
            return None
        client_source = print_ast(client_document)
        if client_source == current.client_source:
            return current

        last_error = None
        try:
            merged = merge(current.service_schema, client_document)
        except MergeError as exc:
            logger.warning("Client schema extensions could not be applied: %s", exc)
            merged = current.service_schema
            last_error = str(exc)
        self._snapshot = replace(
            current,
            schema=merged,
            version=current.version + 1,
            client_source=client_source,
            last_error=last_error,
        )
        return self._snapshot

    async def _load(
        self, tag: SchemaTag, request_id: int
    ) -> tuple[GraphQLSchema, GraphQLSchema, str, str | None] | None:
        self._state = RefreshState.FETCHING
        service_schema = await self._provider.resolve_schema(tag)
        if self._is_stale(request_id):
            return None

        self._state = RefreshState.MERGING
        if not schema_has_ast_nodes(service_schema):
            service_schema = reconstitute_schema(service_schema)

        client_document = self._client_document()
        last_error = None
        try:
            schema = merge(service_schema, client_document)
        except MergeError as exc:
            logger.warning("Client schema extensions could not be applied: %s", exc)
            schema = service_schema
            last_error = str(exc)

        return service_schema, schema, print_ast(client_document), last_error

    def _is_stale(self, request_id: int) -> bool:
        return self._snapshot is not None and self._snapshot.request_id > request_id

    def _publish(self, snapshot: SchemaSnapshot) -> None:
        self._snapshot = snapshot
        self._state = RefreshState.PUBLISHED
        if self._on_published is not None:
            self._on_published(snapshot)
