"""
Custom exception hierarchy for xray-pipeline.

All exceptions inherit from XrayError so that the orchestration boundary can
decide, per failure kind, whether to skip the current item or halt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure kinds reported in logs and run reports."""

    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"
    FILESYSTEM = "filesystem"
    EXTERNAL_TOOL = "external_tool"
    NETWORK = "network"
    STATUS = "status"
    DECODE = "decode"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class XrayError(Exception):
    """Base exception for all xray-pipeline errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    kind = ErrorKind.UNKNOWN

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ConfigurationError(XrayError):
    """Raised when configuration is missing or invalid at startup."""

    kind = ErrorKind.CONFIGURATION


@dataclass
class ServiceError(XrayError):
    """Raised when a service operation fails."""

    service_name: str = ""
    operation: str = ""
    retryable: bool = False

    def __str__(self) -> str:
        base = super().__str__()
        retry_hint = " (retryable)" if self.retryable else " (non-retryable)"
        return f"[{self.service_name}.{self.operation}]{retry_hint}: {base}"


@dataclass
class ArtifactError(ServiceError):
    """Base for package unpack and cleanup failures."""

    package_path: str = ""

    def __post_init__(self) -> None:
        self.service_name = "artifacts"


@dataclass
class PackageNotFoundError(ArtifactError):
    """Raised when the package file does not exist."""

    kind = ErrorKind.NOT_FOUND


@dataclass
class PackageUnreadableError(ArtifactError):
    """Raised when the package file exists but cannot be read."""

    kind = ErrorKind.UNREADABLE


@dataclass
class ArtifactFilesystemError(ArtifactError):
    """Raised when an artifact directory cannot be created or touched."""

    kind = ErrorKind.FILESYSTEM


@dataclass
class DisassemblerError(ArtifactError):
    """Raised when the disassembler exits non-zero.

    Carries the combined stdout/stderr of the run so the failure can be
    diagnosed without re-running it.
    """

    returncode: int = 0
    output: str = ""

    kind = ErrorKind.EXTERNAL_TOOL

    def __post_init__(self) -> None:
        super().__post_init__()
        self.retryable = True

    def __str__(self) -> str:
        return f"{super().__str__()} (exit {self.returncode}); output below:\n{self.output}"


@dataclass
class ToolNotFoundError(XrayError):
    """Raised when a required external tool is not available."""

    tool_name: str = ""
    expected_path: str = ""
    install_hint: str = ""

    kind = ErrorKind.EXTERNAL_TOOL

    def __str__(self) -> str:
        hint = f" Install hint: {self.install_hint}" if self.install_hint else ""
        return f"Tool '{self.tool_name}' not found at '{self.expected_path}'.{hint}"


@dataclass
class AttributionError(ServiceError):
    """Base for failures talking to the attribution or geolocation services."""

    url: str = ""

    kind = ErrorKind.NETWORK

    def __post_init__(self) -> None:
        if not self.service_name:
            self.service_name = "attribution"


@dataclass
class AttributionNetworkError(AttributionError):
    """Raised on connection failures and timeouts."""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.retryable = True


@dataclass
class AttributionStatusError(AttributionError):
    """Raised when the service answers with a non-2xx status."""

    status_code: int = 0

    kind = ErrorKind.STATUS


@dataclass
class AttributionDecodeError(AttributionError):
    """Raised when the response body cannot be decoded."""

    kind = ErrorKind.DECODE


@dataclass
class GeoLookupError(AttributionError):
    """Raised when a hostname cannot be resolved at all."""

    host: str = ""

    def __post_init__(self) -> None:
        self.service_name = "geoip"


@dataclass
class StorageError(ServiceError):
    """Raised when the storage collaborator fails."""

    kind = ErrorKind.STORAGE

    def __post_init__(self) -> None:
        self.service_name = "storage"
