"""
Almacenamiento en Archivos JSON

Guarda cada clave en <directorio>/<clave>.json. La escritura es
atómica (archivo temporal + os.replace) y el IO se ejecuta fuera
del event loop con asyncio.to_thread.
"""

import asyncio
import os
import re
from pathlib import Path
from typing import Optional, Union

from farmtech.utils.errors import wrap_storage_error
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JSONFileStorage:
    """Backend de un archivo JSON por clave."""

    def __init__(self, directory: Union[str, Path] = "data"):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        """Ruta del archivo para una clave (caracteres no seguros -> '_')."""
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    async def read(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_sync, self.path_for(key))
        except OSError as e:
            raise wrap_storage_error(e, operation="read", storage_key=key) from e

    async def write(self, key: str, payload: str) -> bool:
        try:
            await asyncio.to_thread(self._write_sync, self.path_for(key), payload)
        except OSError as e:
            raise wrap_storage_error(e, operation="write", storage_key=key) from e
        return True

    @staticmethod
    def _read_sync(path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    @staticmethod
    def _write_sync(path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
        logger.debug(f"Escritos {len(payload)} bytes en {path}")
