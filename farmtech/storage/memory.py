"""
Almacenamiento en Memoria

Backend para tests y desarrollo local; los datos viven mientras
viva el proceso.
"""

from typing import Dict, Optional


class InMemoryStorage:
    """Diccionario clave -> payload JSON."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self.reads = 0
        self.writes = 0

    async def read(self, key: str) -> Optional[str]:
        self.reads += 1
        return self._data.get(key)

    async def write(self, key: str, payload: str) -> bool:
        self.writes += 1
        self._data[key] = payload
        return True

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data
