"""
Almacenamiento en Base de Datos

Backend sobre la tabla analytics_blobs usando SQLAlchemy async
(SQLite con aiosqlite o PostgreSQL con asyncpg).
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from farmtech.database.connection import DatabaseProvider
from farmtech.database.models import AnalyticsBlob
from farmtech.utils.errors import wrap_storage_error
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)


class SQLStorage:
    """Backend clave/valor respaldado por SQL."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        provider: Optional[DatabaseProvider] = None
    ):
        self.provider = provider or DatabaseProvider(database_url)

    async def initialize(self) -> None:
        """Crea engine y tablas (idempotente)."""
        await self.provider.initialize()

    async def read(self, key: str) -> Optional[str]:
        try:
            async with self.provider.get_session() as session:
                blob = await session.get(AnalyticsBlob, key)
                return blob.payload if blob is not None else None
        except SQLAlchemyError as e:
            raise wrap_storage_error(e, operation="read", storage_key=key) from e

    async def write(self, key: str, payload: str) -> bool:
        try:
            async with self.provider.get_session() as session:
                blob = await session.get(AnalyticsBlob, key)
                if blob is None:
                    session.add(AnalyticsBlob(key=key, payload=payload))
                else:
                    blob.payload = payload
        except SQLAlchemyError as e:
            raise wrap_storage_error(e, operation="write", storage_key=key) from e
        return True

    async def close(self) -> None:
        await self.provider.close()
