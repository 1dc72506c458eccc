"""FastAPI entrypoint exposing one client project's schema, diagnostics and overlays."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from graphql import print_schema
from pydantic import BaseModel, Field

from gql_workspace.config import EngineConfig, ProjectConfig
from gql_workspace.documents.source import range_for_ast_node
from gql_workspace.project import ClientProject
from gql_workspace.schema.provider import FileSchemaProvider, SchemaProvider, StaticSchemaProvider
from gql_workspace.types import Decoration, Diagnostic, SchemaTag


class RefreshRequest(BaseModel):
    tag: str | None = Field(default=None, min_length=1)


class DocumentRequest(BaseModel):
    uri: str = Field(min_length=1)
    text: str


class PublishedState:
    """Latest diagnostics, decorations and schema tags pushed by the project."""

    def __init__(self) -> None:
        self.diagnostics: dict[str, Diagnostic] = {}
        self.decorations: list[Decoration] = []
        self.schema_tags: dict[str, list[SchemaTag]] = {}

    def attach(self, project: ClientProject) -> None:
        project.on_diagnostics(self._store_diagnostics)
        project.on_decorations(self._store_decorations)
        project.on_schema_tags(self._store_schema_tags)

    def _store_diagnostics(self, batch: Diagnostic) -> None:
        self.diagnostics[batch.uri] = batch

    def _store_decorations(self, decorations: list[Decoration]) -> None:
        self.decorations = decorations

    def _store_schema_tags(self, payload: tuple[str, list[SchemaTag]]) -> None:
        service_id, tags = payload
        self.schema_tags[service_id] = tags


def _create_project() -> ClientProject:
    config_path = os.getenv("GQL_PROJECT_CONFIG")
    if config_path:
        config = ProjectConfig.from_file(config_path)
    else:
        config = ProjectConfig(engine=EngineConfig.from_env())

    schema_path = os.getenv("GQL_SCHEMA_PATH")
    provider: SchemaProvider = (
        FileSchemaProvider(schema_path) if schema_path else StaticSchemaProvider({})
    )
    return ClientProject(config, schema_provider=provider)


def create_app(project: ClientProject | None = None) -> FastAPI:
    project = project or _create_project()
    state = PublishedState()
    state.attach(project)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await project.initialize()
        yield

    app = FastAPI(title="GraphQL Client Workspace", version="0.1.0", lifespan=lifespan)

    @app.get("/health")
    def health() -> dict[str, Any]:
        snapshot = project.controller.snapshot
        return {
            "status": "ok",
            "project": project.display_name,
            "schema_state": project.controller.state.value,
            "schema_version": snapshot.version if snapshot else None,
            "active_tag": project.controller.active_tag,
            "document_count": len(project.documents),
            "stats_enabled": project.engine_client is not None,
        }

    @app.get("/schema")
    def schema() -> dict[str, Any]:
        snapshot = project.controller.snapshot
        if snapshot is None:
            raise HTTPException(status_code=404, detail="No schema has been published yet")
        return {
            "tag": snapshot.tag,
            "version": snapshot.version,
            "last_error": snapshot.last_error,
            "sdl": print_schema(snapshot.schema),
        }

    @app.post("/schema/refresh")
    async def refresh(request: RefreshRequest) -> dict[str, Any]:
        snapshot = await project.update_schema_tag(request.tag or project.controller.active_tag)
        if snapshot is None:
            messages = project.loading_handler.messages()
            detail = messages[-1].text if messages else "Schema refresh was superseded"
            raise HTTPException(status_code=502, detail=detail)
        return {"tag": snapshot.tag, "version": snapshot.version, "last_error": snapshot.last_error}

    @app.put("/documents")
    def put_document(request: DocumentRequest) -> dict[str, Any]:
        document = project.document_did_change(request.uri, request.text)
        batch = state.diagnostics.get(document.uri)
        return {
            "uri": document.uri,
            "parsed": document.ast is not None,
            "diagnostics": [asdict(error) for error in batch.diagnostics] if batch else [],
        }

    @app.delete("/documents")
    def delete_document(uri: str) -> dict[str, Any]:
        if not project.document_did_remove(uri):
            raise HTTPException(status_code=404, detail=f"Document not tracked: {uri}")
        state.diagnostics.pop(uri, None)
        return {"uri": uri, "removed": True}

    @app.post("/documents/scan")
    def scan_documents() -> dict[str, Any]:
        try:
            uris = project.scan_all_included_files()
        except OSError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        for uri in [uri for uri in state.diagnostics if uri not in uris]:
            del state.diagnostics[uri]
        return {"uris": uris}

    @app.get("/diagnostics")
    def diagnostics(uri: str | None = None) -> dict[str, Any]:
        batches = list(state.diagnostics.values())
        if uri is not None:
            batches = [batch for batch in batches if batch.uri == uri]
        return {"items": [asdict(batch) for batch in batches]}

    @app.get("/decorations")
    def decorations() -> dict[str, Any]:
        return {"items": [asdict(decoration) for decoration in state.decorations]}

    @app.get("/schema/tags")
    def schema_tags() -> dict[str, Any]:
        return {"items": state.schema_tags}

    @app.get("/fragments/{name}/spreads")
    def fragment_spreads(name: str) -> dict[str, Any]:
        spreads = project.fragment_spreads_for_fragment(name)
        return {
            "items": [
                {
                    "uri": spread.loc.source.name if spread.loc else None,
                    "range": asdict(range_for_ast_node(spread)),
                }
                for spread in spreads
            ]
        }

    @app.get("/loading")
    def loading() -> dict[str, Any]:
        handler = project.loading_handler
        return {
            "operations": [
                {
                    "token": operation.token,
                    "message": operation.message,
                    "status": operation.status,
                    "latency_ms": operation.latency_ms,
                    "error": operation.error,
                }
                for operation in handler.operations()
            ],
            "messages": [asdict(message) for message in handler.messages()],
        }

    return app


app = create_app()
