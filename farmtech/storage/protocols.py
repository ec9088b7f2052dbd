"""
Protocolo de Almacenamiento

Define la interfaz que MetricStore espera de cualquier backend.
Python usa typing.Protocol para duck typing estructural.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """
    Almacén clave/valor de strings JSON.

    Las implementaciones lanzan StorageError cuando el medio falla.
    """

    async def read(self, key: str) -> Optional[str]:
        """
        Lee el payload guardado bajo una clave.

        Returns:
            El string guardado, o None si la clave no existe
        """
        ...

    async def write(self, key: str, payload: str) -> bool:
        """
        Reemplaza el payload de una clave.

        Returns:
            True si se guardó
        """
        ...
