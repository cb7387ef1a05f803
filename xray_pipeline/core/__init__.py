"""Core infrastructure components for xray-pipeline."""

from .config import Config, load_config, validate_directories
from .exceptions import (
    ConfigurationError,
    ErrorKind,
    ServiceError,
    StorageError,
    XrayError,
)
from .logging import get_logger, log_context, setup_logging
from .sets import combine, dedup, to_set, unique_union

__all__ = [
    "Config",
    "load_config",
    "validate_directories",
    "ConfigurationError",
    "ErrorKind",
    "ServiceError",
    "StorageError",
    "XrayError",
    "get_logger",
    "log_context",
    "setup_logging",
    "combine",
    "dedup",
    "to_set",
    "unique_union",
]
