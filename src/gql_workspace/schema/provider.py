"""Schema provider contract and concrete providers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from graphql import GraphQLError, GraphQLSchema, Source, build_client_schema, build_schema

from gql_workspace.errors import SchemaFetchError
from gql_workspace.types import SchemaTag


class SchemaProvider(Protocol):
    """Resolves the service schema published under a tag."""

    async def resolve_schema(self, tag: SchemaTag) -> GraphQLSchema:
        """Return the schema for `tag` or raise `SchemaFetchError`."""


class StaticSchemaProvider:
    """Serves schemas from SDL strings keyed by tag.

    Useful for tests and for projects whose schema is vendored in the repo.
    """

    def __init__(self, sdl_by_tag: Mapping[SchemaTag, str]) -> None:
        self._sdl_by_tag = dict(sdl_by_tag)

    def publish(self, tag: SchemaTag, sdl: str) -> None:
        self._sdl_by_tag[tag] = sdl

    async def resolve_schema(self, tag: SchemaTag) -> GraphQLSchema:
        sdl = self._sdl_by_tag.get(tag)
        if sdl is None:
            raise SchemaFetchError(f"No schema published for tag: {tag}", tag=tag)
        try:
            return build_schema(Source(sdl, f"schema:{tag}"))
        except (GraphQLError, TypeError) as exc:
            raise SchemaFetchError(f"Invalid schema for tag {tag}: {exc}", tag=tag) from exc


class IntrospectionSchemaProvider:
    """Serves schemas built from introspection query results keyed by tag.

    Schemas built this way carry no AST nodes, which is what a remote
    registry or endpoint returns.
    """

    def __init__(self, results_by_tag: Mapping[SchemaTag, Mapping[str, Any]]) -> None:
        self._results_by_tag = dict(results_by_tag)

    def publish(self, tag: SchemaTag, introspection: Mapping[str, Any]) -> None:
        self._results_by_tag[tag] = introspection

    async def resolve_schema(self, tag: SchemaTag) -> GraphQLSchema:
        result = self._results_by_tag.get(tag)
        if result is None:
            raise SchemaFetchError(f"No schema published for tag: {tag}", tag=tag)
        return _schema_from_introspection(result, tag=tag)


class FileSchemaProvider:
    """Reads an SDL (`.graphql`/`.gql`) or introspection (`.json`) file.

    Local files have no variants, so the tag is ignored.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def resolve_schema(self, tag: SchemaTag) -> GraphQLSchema:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SchemaFetchError(f"Cannot read schema file {self.path}: {exc}", tag=tag) from exc

        if self.path.suffix.lower() == ".json":
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as exc:
                raise SchemaFetchError(f"Invalid JSON in {self.path}: {exc}", tag=tag) from exc
            return _schema_from_introspection(payload, tag=tag)

        try:
            return build_schema(Source(text, str(self.path)))
        except (GraphQLError, TypeError) as exc:
            raise SchemaFetchError(f"Invalid schema in {self.path}: {exc}", tag=tag) from exc


def _schema_from_introspection(payload: Mapping[str, Any], *, tag: SchemaTag) -> GraphQLSchema:
    # Accept both a raw `{"__schema": ...}` result and a `{"data": {...}}` response.
    if not isinstance(payload, Mapping):
        raise SchemaFetchError("Introspection result must be a JSON object", tag=tag)
    data = payload.get("data", payload)
    if not isinstance(data, Mapping) or "__schema" not in data:
        raise SchemaFetchError("Introspection result has no __schema field", tag=tag)
    try:
        return build_client_schema(data)
    except (GraphQLError, TypeError) as exc:
        raise SchemaFetchError(f"Invalid introspection result for tag {tag}: {exc}", tag=tag) from exc
