"""
Conexión a Base de Datos

Gestiona conexiones async a SQLite (desarrollo) o PostgreSQL (producción)
para el backend de almacenamiento "database".
Incluye connection pooling y context managers.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from farmtech.utils.logger import get_logger

logger = get_logger(__name__)

# Base para los modelos
Base = declarative_base()


def to_async_url(database_url: str) -> str:
    """Convierte una URL sync al driver async correspondiente."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


def build_async_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
) -> AsyncEngine:
    """
    Crea el engine async para la URL dada.

    Para SQLite asegura que el directorio del archivo exista.
    """
    database_url = to_async_url(database_url)

    if "aiosqlite" in database_url:
        db_path = database_url.replace("sqlite+aiosqlite:///", "")
        if db_path and not db_path.startswith(":memory:"):
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False}
        )

    # PostgreSQL async con connection pooling
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
        pool_pre_ping=True
    )


class DatabaseProvider:
    """
    Proveedor de base de datos para dependency injection.

    Uso:
        db_provider = DatabaseProvider("sqlite+aiosqlite:///data/analytics.db")
        await db_provider.initialize()
        async with db_provider.get_session() as session:
            ...
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        from config.settings import settings

        self.database_url = to_async_url(database_url or settings.get_async_database_url())
        self._echo = settings.DATABASE_ECHO if echo is None else echo
        self._pool_size = settings.DATABASE_POOL_SIZE
        self._max_overflow = settings.DATABASE_MAX_OVERFLOW
        self._pool_recycle = settings.DATABASE_POOL_RECYCLE
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """Crea el engine y las tablas si no existen."""
        if self._engine is not None:
            return

        self._engine = build_async_engine(
            self.database_url,
            echo=self._echo,
            pool_size=self._pool_size,
            max_overflow=self._max_overflow,
            pool_recycle=self._pool_recycle,
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

        # Importar modelos para registrarlos
        from farmtech.database import models  # noqa

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(f"Base de datos inicializada: {self._engine.url.render_as_string(hide_password=True)}")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager asincrónico para sesiones de base de datos.

        Hace commit al salir y rollback si hay excepción.
        """
        if self._session_factory is None:
            await self.initialize()

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """Cierra las conexiones."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Conexiones de base de datos cerradas")
