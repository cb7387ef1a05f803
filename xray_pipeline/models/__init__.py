"""Data models for xray-pipeline."""

from .app import App, HostRecord, Permission
from .mapping import (
    CompanyMapping,
    GeoLocation,
    HostFailure,
    MappingRequest,
    MappingRunReport,
)

__all__ = [
    "App",
    "HostRecord",
    "Permission",
    "CompanyMapping",
    "GeoLocation",
    "HostFailure",
    "MappingRequest",
    "MappingRunReport",
]
