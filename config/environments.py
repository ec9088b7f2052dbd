"""
Configuración Multi-Entorno

Define perfiles de configuración para development, staging y production.
"""

from enum import Enum
from typing import Dict, Type


class Environment(str, Enum):
    """Entornos disponibles"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class BaseConfig:
    """Configuración base compartida"""
    PROJECT_NAME: str = "FarmTech Analytics"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    LOG_LEVEL: str = "INFO"
    ANALYTICS_SEED_SAMPLE_DATA: bool = True

    # Cache de lectura
    ANALYTICS_CACHE_TTL_SECONDS: int = 300

    # Cola de ingesta
    ANALYTICS_BATCH_SIZE: int = 10
    ANALYTICS_FLUSH_INTERVAL_SECONDS: float = 30.0


class DevelopmentConfig(BaseConfig):
    """Configuración para desarrollo"""
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

    # Datos de ejemplo para que el dashboard nunca esté vacío
    ANALYTICS_SEED_SAMPLE_DATA: bool = True


class StagingConfig(BaseConfig):
    """Configuración para staging"""
    LOG_LEVEL: str = "INFO"
    ANALYTICS_SEED_SAMPLE_DATA: bool = True


class ProductionConfig(BaseConfig):
    """
    Configuración para producción.

    Sin datos sintéticos y con flush más frecuente para
    reducir la ventana de eventos en memoria.
    """
    LOG_LEVEL: str = "WARNING"
    ANALYTICS_SEED_SAMPLE_DATA: bool = False
    ANALYTICS_FLUSH_INTERVAL_SECONDS: float = 15.0


def get_config(env: Environment) -> Type[BaseConfig]:
    """
    Obtiene la configuración según el entorno.

    Args:
        env: Entorno seleccionado

    Returns:
        Clase de configuración correspondiente
    """
    configs: Dict[Environment, Type[BaseConfig]] = {
        Environment.DEVELOPMENT: DevelopmentConfig,
        Environment.STAGING: StagingConfig,
        Environment.PRODUCTION: ProductionConfig,
    }
    return configs.get(env, DevelopmentConfig)
