"""
Logging

Module de logging structuré avec:
- Format JSON structuré
- Champs obligatoires (timestamp, level, correlation_id, component, message)
- Timestamp ISO 8601 UTC
- Masquage des mots de passe et tokens
"""

from .interfaces import (
    # Enums
    LogLevel,
    # Dataclasses
    LogEntry,
    LogConfig,
    # Interfaces
    IStructuredLogger,
    ISensitiveMasker,
)
from .sensitive_masker import (
    SensitiveMasker,
)
from .structured_logger import (
    StructuredLogger,
    ContextualLogger,
    parse_level,
    # Exceptions
    MissingRequiredFieldError,
    InvalidLogLevelError,
)

__all__ = [
    # Enums
    "LogLevel",
    # Dataclasses
    "LogEntry",
    "LogConfig",
    # Interfaces
    "IStructuredLogger",
    "ISensitiveMasker",
    # Implementations
    "SensitiveMasker",
    "StructuredLogger",
    "ContextualLogger",
    "parse_level",
    # Exceptions
    "MissingRequiredFieldError",
    "InvalidLogLevelError",
]
