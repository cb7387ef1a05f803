"""Package unpacking and artifact directory management."""

from .paths import PathResolver
from .service import ArtifactManager

__all__ = ["ArtifactManager", "PathResolver"]
