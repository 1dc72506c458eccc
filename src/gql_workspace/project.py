"""Client project: tracked documents, merged schema, diagnostics and decorations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from graphql import DocumentNode, FragmentSpreadNode, GraphQLSchema

from gql_workspace.annotation.annotator import annotate
from gql_workspace.config import ProjectConfig
from gql_workspace.documents.fileset import FileSet
from gql_workspace.documents.fragments import FragmentIndex, build_index, fragment_spreads_for
from gql_workspace.documents.source import load_document, parse_document
from gql_workspace.engine import EngineClient, create_engine_client
from gql_workspace.errors import MissingCredentialsError
from gql_workspace.obs.loading import LoadingHandler
from gql_workspace.schema.controller import SchemaRefreshController, SchemaSnapshot
from gql_workspace.schema.merger import client_extension_document
from gql_workspace.schema.provider import SchemaProvider
from gql_workspace.types import (
    Decoration,
    Diagnostic,
    FieldStats,
    SchemaTag,
    TrackedDocument,
)
from gql_workspace.validation.validator import validate as validate_documents

logger = logging.getLogger(__name__)

DiagnosticsSink = Callable[[Diagnostic], None]
DecorationsSink = Callable[[list[Decoration]], None]
SchemaTagsSink = Callable[[tuple[str, list[SchemaTag]]], None]


@runtime_checkable
class SchemaProject(Protocol):
    """What the validation and annotation passes need from a project."""

    @property
    def schema(self) -> GraphQLSchema | None: ...

    @property
    def documents(self) -> list[TrackedDocument]: ...

    @property
    def fragments(self) -> FragmentIndex: ...


def supports_client_features(project: object) -> bool:
    return isinstance(project, SchemaProject)


class ClientProject:
    """Keeps a client project's schema and documents consistent.

    A schema refresh publishes a new merged schema and re-validates every
    document. Validation is followed by an annotation pass, as is every
    statistics load. Both passes re-run over the full document set.
    """

    def __init__(
        self,
        config: ProjectConfig,
        *,
        schema_provider: SchemaProvider,
        loading_handler: LoadingHandler | None = None,
        engine_client: EngineClient | None = None,
        engine_client_factory: Callable[[str, str], EngineClient] | None = None,
    ) -> None:
        self.config = config
        self.loading_handler = loading_handler or LoadingHandler()
        self.file_set = FileSet(
            config.root_path,
            includes=config.client.includes,
            excludes=config.client.excludes,
        )
        self._documents: dict[str, TrackedDocument] = {}
        self._field_stats: FieldStats | None = None
        self._on_diagnostics: DiagnosticsSink | None = None
        self._on_decorations: DecorationsSink | None = None
        self._on_schema_tags: SchemaTagsSink | None = None

        self.controller = SchemaRefreshController(
            provider=schema_provider,
            loading_handler=self.loading_handler,
            client_document=self.client_document,
            display_name=self.display_name,
            on_published=self._schema_published,
        )

        self.engine_client = engine_client
        if self.engine_client is None:
            try:
                self.engine_client = create_engine_client(config.engine, engine_client_factory)
            except MissingCredentialsError as exc:
                self.loading_handler.show_warning(f"{exc} Field statistics are disabled.")

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def service_id(self) -> str | None:
        return self.config.client.service

    @property
    def schema(self) -> GraphQLSchema | None:
        snapshot = self.controller.snapshot
        return snapshot.schema if snapshot is not None else None

    @property
    def documents(self) -> list[TrackedDocument]:
        return list(self._documents.values())

    @property
    def fragments(self) -> FragmentIndex:
        return build_index(self._documents.values())

    @property
    def field_stats(self) -> FieldStats | None:
        return self._field_stats

    def client_document(self) -> DocumentNode:
        return client_extension_document(self._documents.values())

    def on_diagnostics(self, handler: DiagnosticsSink | None) -> None:
        self._on_diagnostics = handler

    def on_decorations(self, handler: DecorationsSink | None) -> None:
        self._on_decorations = handler

    def on_schema_tags(self, handler: SchemaTagsSink | None) -> None:
        self._on_schema_tags = handler

    async def initialize(self) -> None:
        """Scan included files, then load the schema and field statistics."""

        self.scan_all_included_files(revalidate=False)
        await asyncio.gather(
            self.controller.refresh(self.config.client.tag),
            self.load_engine_data(),
        )

    async def update_schema_tag(self, tag: SchemaTag) -> SchemaSnapshot | None:
        return await self.controller.refresh(tag)

    def scan_all_included_files(self, *, revalidate: bool = True) -> list[str]:
        """Track every included file and forget files that no longer match."""

        seen: set[str] = set()
        for path in self.file_set.all_files():
            uri = path.as_uri()
            seen.add(uri)
            self._documents[uri] = load_document(path)
        for uri in [uri for uri in self._documents if uri not in seen]:
            del self._documents[uri]
        if revalidate:
            self.validate()
        return sorted(seen)

    def document_did_change(self, uri: str, text: str) -> TrackedDocument:
        document = parse_document(uri, text)
        self._documents[uri] = document
        self.validate()
        return document

    def document_did_remove(self, uri: str) -> bool:
        if self._documents.pop(uri, None) is None:
            return False
        self.validate()
        return True

    def includes_path(self, path: str | Path) -> bool:
        return self.file_set.includes_file(path)

    def validate(self) -> list[Diagnostic]:
        """Re-merge client extensions and emit one diagnostic batch per file."""

        if self._on_diagnostics is None:
            return []
        snapshot = self.controller.remerge(self.client_document())
        if snapshot is None:
            return []

        batches = validate_documents(snapshot.schema, self.documents, self.fragments)
        for batch in batches:
            self._on_diagnostics(batch)
        self.generate_decorations()
        return batches

    async def load_engine_data(self) -> None:
        engine_client = self.engine_client
        service_id = self.service_id
        if engine_client is None or not service_id:
            return

        try:
            schema_tags, field_stats = await self.loading_handler.handle(
                f"Loading Engine data for {self.display_name}",
                engine_client.load_schema_tags_and_field_stats(service_id),
            )
        except Exception:
            # Already reported to the user by the loading handler.
            logger.debug("Engine data for %s unavailable", service_id, exc_info=True)
            return

        if self._on_schema_tags is not None:
            self._on_schema_tags((service_id, schema_tags))
        self._field_stats = field_stats
        self.generate_decorations()

    def set_field_stats(self, field_stats: FieldStats | None) -> None:
        self._field_stats = field_stats
        self.generate_decorations()

    def generate_decorations(self) -> list[Decoration] | None:
        if self._on_decorations is None:
            return None
        decorations = annotate(self.schema, self.documents, self._field_stats)
        if decorations is None:
            return None
        self._on_decorations(decorations)
        return decorations

    def fragment_spreads_for_fragment(self, fragment_name: str) -> list[FragmentSpreadNode]:
        return fragment_spreads_for(fragment_name, self._documents.values())

    def _schema_published(self, snapshot: SchemaSnapshot) -> None:
        logger.debug(
            "Published schema version %d for tag %s", snapshot.version, snapshot.tag
        )
        self.validate()
