"""
Sistema Centralizado de Manejo de Errores

Proporciona:
- Tipos de error categorizados (AnalyticsError, ValidationError, etc.)
- Correlation IDs para seguimiento en logs
- Utilidades para envolver errores de almacenamiento
- Registro de errores para el health check
"""

from enum import Enum
from typing import Optional, Any, Dict, List
from dataclasses import dataclass

from farmtech.utils.logger import (
    get_logger,
    new_correlation_id,
    get_correlation_id,
)

logger = get_logger(__name__)


# ============================================================================
# ERROR CATEGORIES
# ============================================================================

class ErrorCategory(str, Enum):
    """Categorías de error para clasificación."""
    VALIDATION = "VALIDATION"
    RANGE = "RANGE"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"


class ErrorSeverity(str, Enum):
    """Severidad del error para priorización."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ============================================================================
# ERROR CONTEXT
# ============================================================================

@dataclass
class ErrorContext:
    """Contexto adicional para un error."""
    operation: Optional[str] = None
    metric_type: Optional[str] = None
    storage_key: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class AnalyticsError(Exception):
    """
    Excepción base del pipeline de analítica.

    Incluye categoría, severidad, contexto y el error original
    cuando envuelve una excepción de una librería.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.original_error = original_error
        self.correlation_id = get_correlation_id() or new_correlation_id()

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error a diccionario para logging."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "correlation_id": self.correlation_id,
            "context": {
                "operation": self.context.operation,
                "metric_type": self.context.metric_type,
                "storage_key": self.context.storage_key,
                "extra": self.context.extra,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


class ValidationError(AnalyticsError):
    """Registro de métrica mal formado."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs
    ):
        self.field = field
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


class RangeError(AnalyticsError):
    """Rango de fechas inválido (inicio > fin, demasiado largo o no parseable)."""

    def __init__(
        self,
        message: str,
        max_days: Optional[int] = None,
        **kwargs
    ):
        self.max_days = max_days
        super().__init__(
            message=message,
            category=ErrorCategory.RANGE,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


class StorageError(AnalyticsError):
    """Fallo de lectura o escritura en el backend de almacenamiento."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


# ============================================================================
# ERROR CONVERSION UTILITIES
# ============================================================================

def wrap_storage_error(
    error: Exception,
    operation: Optional[str] = None,
    storage_key: Optional[str] = None
) -> StorageError:
    """Envuelve un error de backend (IO, SQLAlchemy, JSON) en StorageError."""
    return StorageError(
        message=f"Error de almacenamiento: {str(error)}",
        original_error=error,
        context=ErrorContext(
            operation=operation,
            storage_key=storage_key
        )
    )


# ============================================================================
# ERROR REGISTRY (para health check)
# ============================================================================

class ErrorRegistry:
    """
    Registro de errores para métricas y análisis.

    Cuenta errores por categoría y severidad y guarda los más recientes.
    """

    def __init__(self, max_recent: int = 100):
        self._counts: Dict[str, int] = {}
        self._recent_errors: List[Dict[str, Any]] = []
        self._max_recent = max_recent

    def record(self, error: AnalyticsError) -> None:
        """Registra un error en el registry."""
        key = f"{error.category.value}:{error.severity.value}"
        self._counts[key] = self._counts.get(key, 0) + 1

        self._recent_errors.append({
            "correlation_id": error.correlation_id,
            "category": error.category.value,
            "message": error.message[:100],
        })
        if len(self._recent_errors) > self._max_recent:
            self._recent_errors.pop(0)

    def get_counts(self) -> Dict[str, int]:
        """Obtiene conteo de errores por categoría:severidad."""
        return self._counts.copy()

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Obtiene los errores más recientes."""
        return self._recent_errors[-limit:]

    def reset(self) -> None:
        """Resetea los contadores."""
        self._counts.clear()
        self._recent_errors.clear()


# Instancia global del registry
error_registry = ErrorRegistry()


__all__ = [
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
]
