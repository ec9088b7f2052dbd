"""
Base Factory Configuration

Proporciona la configuración base para todas las factories.
Los registros de métricas se construyen como diccionarios JSON;
no hay modelos ORM que persistir.
"""

import factory
from datetime import datetime, timedelta
from typing import Optional

from farmtech.models.metric import utc_now


class DictFactory(factory.Factory):
    """
    Factory base para crear diccionarios.

    Útil para tests que no necesitan persistencia en BD.
    """

    class Meta:
        abstract = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Retorna un diccionario en lugar de una instancia."""
        return dict(**kwargs)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Instante UTC de hace N días."""
    return (now or utc_now()) - timedelta(days=days)
