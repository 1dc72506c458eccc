"""Configuration models for a GraphQL client project."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_ENGINE_ENDPOINT = "https://engine-graphql.apollographql.com/api/graphql"


class ClientConfig(BaseModel):
    """Which files belong to the client project and which schema it targets."""

    service: str | None = None
    includes: list[str] = Field(default_factory=lambda: ["**/*.graphql", "**/*.gql"])
    excludes: list[str] = Field(
        default_factory=lambda: ["**/node_modules/**", "**/__tests__/**"]
    )
    tag: str = Field(default="current", min_length=1)


class EngineConfig(BaseModel):
    """Credentials for the field-statistics service."""

    api_key: str | None = None
    endpoint: str = DEFAULT_ENGINE_ENDPOINT

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            api_key=os.getenv("ENGINE_API_KEY") or None,
            endpoint=os.getenv("ENGINE_ENDPOINT", DEFAULT_ENGINE_ENDPOINT),
        )


class ProjectConfig(BaseModel):
    """Top-level project configuration."""

    root_path: Path = Field(default_factory=Path.cwd)
    client: ClientConfig = Field(default_factory=ClientConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    @property
    def display_name(self) -> str:
        return self.client.service or "<Unnamed>"

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectConfig":
        config_path = Path(path)
        config = cls.model_validate_json(config_path.read_text(encoding="utf-8"))
        if not config.root_path.is_absolute():
            config.root_path = (config_path.parent / config.root_path).resolve()
        return config
