"""GraphQL client workspace package."""

from .config import ClientConfig, EngineConfig, ProjectConfig
from .project import ClientProject

__all__ = ["ClientConfig", "ClientProject", "EngineConfig", "ProjectConfig"]
