"""
Configuración centralizada del sistema

Carga variables de entorno y proporciona acceso a configuración
en todo el proyecto.

Uso:
    from config.settings import settings

    ttl = settings.ANALYTICS_CACHE_TTL_SECONDS
    batch = settings.ANALYTICS_BATCH_SIZE
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional

from config.constants import StorageBackendType
from config.environments import Environment, get_config


class Settings(BaseSettings):
    """
    Configuración del sistema con soporte multi-entorno.

    Todas las configuraciones se cargan desde variables de entorno
    o archivo .env, con valores por defecto sensatos para desarrollo.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # ENTORNO
    # =========================================================================
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False

    # =========================================================================
    # INFORMACIÓN DEL PROYECTO
    # =========================================================================
    PROJECT_NAME: str = "FarmTech Analytics"
    VERSION: str = "1.0.0"

    # =========================================================================
    # LOGGING
    # =========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True
    LOG_MAX_SIZE_MB: int = 50
    LOG_BACKUP_COUNT: int = 10

    # =========================================================================
    # ALMACENAMIENTO
    # =========================================================================
    ANALYTICS_STORAGE_BACKEND: StorageBackendType = StorageBackendType.FILE
    ANALYTICS_STORAGE_KEY: str = "farmtech_analytics"
    ANALYTICS_STORAGE_DIR: str = "data"

    # Solo para el backend "database"
    DATABASE_URL: str = "sqlite+aiosqlite:///farmtech_analytics.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 1800  # Reciclar conexiones cada 30 min

    # =========================================================================
    # CACHE Y CONSULTAS
    # =========================================================================
    ANALYTICS_CACHE_TTL_SECONDS: int = 300  # 5 minutos
    ANALYTICS_MAX_RANGE_DAYS: int = 365
    ANALYTICS_DEFAULT_RANGE_DAYS: int = 30

    # =========================================================================
    # INGESTA
    # =========================================================================
    ANALYTICS_BATCH_SIZE: int = 10
    ANALYTICS_FLUSH_INTERVAL_SECONDS: float = 30.0
    ANALYTICS_MAX_BUFFER_SIZE: int = 10000

    # =========================================================================
    # DATOS DE EJEMPLO
    # =========================================================================
    ANALYTICS_SEED_SAMPLE_DATA: bool = True
    ANALYTICS_SAMPLE_DAYS: int = 30
    ANALYTICS_SAMPLE_SEED: Optional[int] = None

    @field_validator("ANALYTICS_BATCH_SIZE", "ANALYTICS_MAX_BUFFER_SIZE")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Los tamaños de lote y buffer deben ser positivos"""
        if v < 1:
            raise ValueError("El valor debe ser mayor o igual a 1")
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str, info) -> str:
        """Valida que no se use SQLite en producción con backend de BD"""
        values = info.data
        if (
            values.get("ENVIRONMENT") == Environment.PRODUCTION
            and values.get("ANALYTICS_STORAGE_BACKEND") == StorageBackendType.DATABASE
            and "sqlite" in v.lower()
        ):
            raise ValueError("SQLite no está permitido en producción. Use PostgreSQL.")
        return v

    def get_async_database_url(self) -> str:
        """Retorna la URL de base de datos para async"""
        url = self.DATABASE_URL

        # Convertir URL sync a async si es necesario
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://")
        elif url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///")

        return url


# Instancia única de configuración
settings = Settings()

# Aplicar configuración del entorno (solo valores no definidos explícitamente)
env_config = get_config(settings.ENVIRONMENT)
if not settings.DEBUG:
    settings.DEBUG = env_config.DEBUG

for _name in (
    "LOG_LEVEL",
    "ANALYTICS_SEED_SAMPLE_DATA",
    "ANALYTICS_CACHE_TTL_SECONDS",
    "ANALYTICS_BATCH_SIZE",
    "ANALYTICS_FLUSH_INTERVAL_SECONDS",
):
    if _name not in settings.model_fields_set:
        setattr(settings, _name, getattr(env_config, _name))
