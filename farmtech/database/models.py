"""
Modelos de Base de Datos

Tabla clave/valor donde el backend SQL guarda la colección de métricas
serializada como JSON (un registro por clave de almacenamiento).
"""

from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime, timezone

from farmtech.database.connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsBlob(Base):
    """
    Payload serializado de analítica.

    La columna payload contiene el JSON {"data": [...], "lastUpdated": ...}
    tal como lo escribe MetricStore.
    """
    __tablename__ = "analytics_blobs"

    key = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<AnalyticsBlob(key={self.key}, size={len(self.payload or '')})>"
