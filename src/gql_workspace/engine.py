"""Field statistics client contract."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Protocol

from gql_workspace.config import EngineConfig
from gql_workspace.errors import MissingCredentialsError
from gql_workspace.types import FieldStats, SchemaTag


class EngineClient(Protocol):
    """Loads schema variants and per-field latency statistics for a service."""

    async def load_schema_tags_and_field_stats(
        self, service_id: str
    ) -> tuple[list[SchemaTag], FieldStats]:
        """Return the service's schema tags and its p95 field latencies in ms."""


class InMemoryEngineClient:
    """Deterministic engine client used for tests and offline development."""

    def __init__(
        self,
        *,
        schema_tags: Mapping[str, Sequence[SchemaTag]] | None = None,
        field_stats: Mapping[str, FieldStats] | None = None,
    ) -> None:
        self._schema_tags = {key: list(value) for key, value in (schema_tags or {}).items()}
        self._field_stats = dict(field_stats or {})

    def set_field_stats(self, service_id: str, field_stats: FieldStats) -> None:
        self._field_stats[service_id] = field_stats

    async def load_schema_tags_and_field_stats(
        self, service_id: str
    ) -> tuple[list[SchemaTag], FieldStats]:
        stats = self._field_stats.get(service_id, {})
        return (
            list(self._schema_tags.get(service_id, [])),
            {parent: dict(fields) for parent, fields in stats.items()},
        )


def create_engine_client(
    config: EngineConfig,
    factory: Callable[[str, str], EngineClient] | None = None,
) -> EngineClient | None:
    """Build an engine client, refusing to do so without an API key.

    Returns None when credentials exist but no transport factory is given.
    """

    if not config.api_key:
        raise MissingCredentialsError(
            "Failed to load Engine stats. No ENGINE_API_KEY configured."
        )
    if factory is None:
        return None
    return factory(config.api_key, config.endpoint)
