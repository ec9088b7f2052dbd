"""
Pytest Configuration and Fixtures

Configuración global de pytest y fixtures compartidos.
"""

import os
import sys
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import List, Optional

# Entorno de test antes de importar settings
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ANALYTICS_STORAGE_BACKEND", "memory")
os.environ.setdefault("ANALYTICS_SEED_SAMPLE_DATA", "false")

import pytest

# Agregar el directorio raíz al path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from farmtech.core.context import AppContext
from farmtech.metrics.ingestion import IngestionQueue
from farmtech.metrics.store import MetricStore
from farmtech.metrics.summary import SummaryCalculator
from farmtech.metrics.tracker import EventTracker
from farmtech.models.metric import MetricRecord
from farmtech.storage.memory import InMemoryStorage
from farmtech.utils.cache import TTLCache
from farmtech.utils.errors import StorageError, error_registry


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Configuración de pytest."""
    config.addinivalue_line(
        "markers", "integration: pruebas contra backends reales (archivo, SQLite)"
    )


@pytest.fixture(autouse=True)
def reset_error_registry():
    """Cada test arranca con el registry de errores vacío."""
    error_registry.reset()
    yield
    error_registry.reset()


# ============================================================================
# RELOJES
# ============================================================================

# Sábado; la semana (domingo) empieza el 2024-06-09
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Reloj monótono controlable para el caché."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


# ============================================================================
# STORAGE FIXTURES
# ============================================================================

class FlakyStorage(InMemoryStorage):
    """
    InMemoryStorage que puede fallar a pedido.

    fail_writes / fail_reads hacen que la operación lance StorageError;
    reject_writes hace que write retorne False.
    """

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False
        self.fail_reads = False
        self.reject_writes = False

    async def read(self, key: str) -> Optional[str]:
        if self.fail_reads:
            self.reads += 1
            raise StorageError(f"Lectura simulada fallida: {key}")
        return await super().read(key)

    async def write(self, key: str, payload: str) -> bool:
        if self.fail_writes:
            self.writes += 1
            raise StorageError(f"Escritura simulada fallida: {key}")
        if self.reject_writes:
            self.writes += 1
            return False
        return await super().write(key, payload)


@pytest.fixture
def memory_storage() -> FlakyStorage:
    """Backend en memoria (con fallos desactivados)."""
    return FlakyStorage()


# ============================================================================
# COMPONENT FIXTURES
# ============================================================================

@pytest.fixture
def store(memory_storage, fake_clock) -> MetricStore:
    """MetricStore sin datos de ejemplo y con reloj de caché controlable."""
    return MetricStore(
        memory_storage,
        storage_key="test_analytics",
        cache=TTLCache(ttl_seconds=300, clock=fake_clock),
        seed_sample_data=False,
    )


@pytest.fixture
def summary(store, fixed_now) -> SummaryCalculator:
    return SummaryCalculator(store, default_range_days=30, clock=lambda: fixed_now)


@pytest.fixture
async def queue(store):
    """Cola con lotes de 5 y timer largo; se cierra al terminar el test."""
    queue = IngestionQueue(store, batch_size=5, flush_interval=60, max_buffer_size=100)
    yield queue
    await queue.shutdown()


@pytest.fixture
def tracker(queue, store) -> EventTracker:
    return EventTracker(queue, store).for_user("farmer-1", "farmer")


@pytest.fixture
async def context(memory_storage, fixed_now):
    """AppContext de testing sobre el backend en memoria."""
    ctx = AppContext.create_for_testing(
        storage=memory_storage,
        storage_key="test_analytics",
        batch_size=5,
        flush_interval=60,
        clock=lambda: fixed_now,
    )
    await ctx.initialize()
    yield ctx
    await ctx.shutdown()


# ============================================================================
# SAMPLE DATA FIXTURES
# ============================================================================

@pytest.fixture
def make_record():
    """Construye un MetricRecord validado desde la factory."""
    from tests.factories import MetricRecordFactory

    def _make(**kwargs) -> MetricRecord:
        return MetricRecord.from_dict(MetricRecordFactory(**kwargs))

    return _make


@pytest.fixture
def week_of_records(make_record, fixed_now) -> List[MetricRecord]:
    """Un registro diario de revenue, pedidos y usuarios activos por 7 días."""
    records = []
    for offset in range(7):
        ts = fixed_now - timedelta(days=offset)
        records.append(make_record(metricType="revenue", value=1000.0 + offset, timestamp=ts))
        records.append(make_record(metricType="orders_count", value=5, timestamp=ts))
        records.append(make_record(metricType="active_users", value=20 + offset, timestamp=ts))
    return records
