"""
Backends de Almacenamiento

Contrato clave/valor sobre JSON serializado y sus implementaciones:
- InMemoryStorage: diccionario en proceso (tests, desarrollo)
- JSONFileStorage: un archivo JSON por clave
- SQLStorage: tabla analytics_blobs vía SQLAlchemy async
"""

from typing import Optional

from config.constants import StorageBackendType
from farmtech.storage.protocols import StorageBackend
from farmtech.storage.memory import InMemoryStorage
from farmtech.storage.file import JSONFileStorage
from farmtech.storage.database import SQLStorage
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)


def create_storage(config=None, backend: Optional[StorageBackendType] = None) -> StorageBackend:
    """
    Crea el backend configurado.

    Args:
        config: Settings (por defecto la instancia global)
        backend: Fuerza un tipo de backend distinto al configurado

    Returns:
        Instancia que cumple StorageBackend
    """
    if config is None:
        from config.settings import settings as config

    backend = StorageBackendType(backend or config.ANALYTICS_STORAGE_BACKEND)

    if backend == StorageBackendType.MEMORY:
        storage = InMemoryStorage()
    elif backend == StorageBackendType.FILE:
        storage = JSONFileStorage(config.ANALYTICS_STORAGE_DIR)
    else:
        storage = SQLStorage(config.DATABASE_URL)

    logger.info(f"Backend de almacenamiento: {backend.value}")
    return storage


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "JSONFileStorage",
    "SQLStorage",
    "create_storage",
]
