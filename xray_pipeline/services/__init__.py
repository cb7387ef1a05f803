"""Services package for xray-pipeline."""

from .artifacts import ArtifactManager, PathResolver
from .attribution import AttributionClient

__all__ = [
    "ArtifactManager",
    "PathResolver",
    "AttributionClient",
]
