"""
Utilidades del Sistema

Módulo que exporta todas las utilidades:
- Logger: Logging estructurado con contexto
- Errors: Manejo centralizado de errores
- Cache: Caché TTL en memoria
"""

# Logger
from farmtech.utils.logger import (
    get_logger,
    setup_logging,
    new_correlation_id,
    get_correlation_id,
    LogContext,
    log_exception,
)

# Errors
from farmtech.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    AnalyticsError,
    ValidationError,
    RangeError,
    StorageError,
    wrap_storage_error,
    ErrorRegistry,
    error_registry,
)

# Cache
from farmtech.utils.cache import CacheEntry, TTLCache

__all__ = [
    # Logger
    "get_logger",
    "setup_logging",
    "new_correlation_id",
    "get_correlation_id",
    "LogContext",
    "log_exception",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorContext",
    "AnalyticsError",
    "ValidationError",
    "RangeError",
    "StorageError",
    "wrap_storage_error",
    "ErrorRegistry",
    "error_registry",
    # Cache
    "CacheEntry",
    "TTLCache",
]
