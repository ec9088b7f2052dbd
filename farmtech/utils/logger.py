"""
Sistema de Logging Estructurado

Configura el logging para toda la aplicación con:
- Salida a consola (colores en desarrollo, JSON en producción)
- Archivo rotativo para logs generales y para errores (opcional)
- Soporte para contexto (correlation ID, admin_id, acción)
"""

import logging
import json
import uuid
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar

# Context variables para información de contexto
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
admin_id_var: ContextVar[Optional[str]] = ContextVar('admin_id', default=None)
action_var: ContextVar[Optional[str]] = ContextVar('action', default=None)


# ============================================================================
# FORMATTERS
# ============================================================================

class ColoredFormatter(logging.Formatter):
    """
    Formatter con colores para desarrollo.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = correlation_id_var.get() or '-'
        record.admin_id = admin_id_var.get() or '-'

        # Copia para no contaminar el levelname de otros handlers
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        colored.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """
    Formatter JSON para producción.

    Genera logs estructurados fáciles de procesar por herramientas
    como ELK Stack, Datadog, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        admin_id = admin_id_var.get()
        if admin_id:
            log_data["admin_id"] = admin_id

        action = action_var.get()
        if action:
            log_data["action"] = action

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        # Campos extra
        if hasattr(record, 'extra_data'):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

_configured = False


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_dir: str = "logs",
    log_to_file: bool = True,
    max_size_mb: int = 50,
    backup_count: int = 10,
) -> None:
    """
    Configura el sistema de logging según el entorno.

    Args:
        environment: Entorno (development, staging, production)
        log_level: Nivel de log (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directorio para archivos de log
        log_to_file: Si se escriben archivos rotativos además de consola
        max_size_mb: Tamaño máximo de cada archivo
        backup_count: Archivos rotados a conservar
    """
    global _configured

    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if environment == "production":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%H:%M:%S'
        ))

    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)

        # Archivo general (siempre JSON para procesamiento)
        file_handler = RotatingFileHandler(
            logs_path / "app.log",
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

        error_handler = RotatingFileHandler(
            logs_path / "errors.log",
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(error_handler)

    _configured = True

    root_logger.info(
        f"Logging configurado: environment={environment}, level={log_level}, "
        f"archivos={'sí' if log_to_file else 'no'}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Obtiene un logger configurado para el módulo especificado.

    Args:
        name: Nombre del módulo (típicamente __name__)

    Returns:
        Logger configurado
    """
    if not _configured:
        try:
            from config.settings import settings
            setup_logging(
                environment=settings.ENVIRONMENT.value,
                log_level=settings.LOG_LEVEL,
                log_dir=settings.LOG_DIR,
                log_to_file=settings.LOG_TO_FILE,
                max_size_mb=settings.LOG_MAX_SIZE_MB,
                backup_count=settings.LOG_BACKUP_COUNT,
            )
        except Exception:
            # Configuración por defecto si falla la carga de settings
            setup_logging(log_to_file=False)

    return logging.getLogger(name)


# ============================================================================
# CONTEXT MANAGEMENT
# ============================================================================

def new_correlation_id() -> str:
    """
    Genera y establece un nuevo correlation ID.

    Returns:
        El correlation ID generado
    """
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    """Obtiene el correlation ID actual."""
    return correlation_id_var.get()


class LogContext:
    """
    Context manager para establecer contexto de logging temporalmente.

    Uso:
        with LogContext(admin_id="admin-1", action="export_analytics"):
            logger.info("Este log incluirá el contexto")
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        admin_id: Optional[str] = None,
        action: Optional[str] = None,
        auto_correlation: bool = True
    ):
        self.correlation_id = correlation_id
        self.admin_id = admin_id
        self.action = action
        self.auto_correlation = auto_correlation
        self._tokens = []

    def __enter__(self):
        if self.correlation_id:
            self._tokens.append(correlation_id_var.set(self.correlation_id))
        elif self.auto_correlation and not correlation_id_var.get():
            self._tokens.append(correlation_id_var.set(str(uuid.uuid4())))

        if self.admin_id:
            self._tokens.append(admin_id_var.set(self.admin_id))
        if self.action:
            self._tokens.append(action_var.set(self.action))

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restaurar en orden inverso
        for token in reversed(self._tokens):
            token.var.reset(token)
        self._tokens = []
        return False


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def log_exception(logger: logging.Logger, message: str, exc: Exception) -> None:
    """
    Loggea una excepción con contexto completo.

    Args:
        logger: Logger a usar
        message: Mensaje descriptivo
        exc: Excepción a loggear
    """
    logger.error(
        f"{message}: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={
            "extra_data": {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
            }
        }
    )
