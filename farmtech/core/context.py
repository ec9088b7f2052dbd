"""
Application Context

Contenedor de dependencias del pipeline de analítica.

El backend de almacenamiento se construye una sola vez por proceso y
se pasa explícitamente a MetricStore, AggregationEngine, la cola de
ingesta y el servicio. No hay instancia global.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from config.settings import settings, Settings
from farmtech.metrics.aggregators import AggregationEngine
from farmtech.metrics.ingestion import IngestionQueue
from farmtech.metrics.service import AnalyticsService
from farmtech.metrics.store import MetricStore
from farmtech.metrics.summary import SummaryCalculator
from farmtech.metrics.tracker import EventTracker
from farmtech.storage import InMemoryStorage, StorageBackend, create_storage
from farmtech.utils.cache import TTLCache
from farmtech.utils.logger import get_logger


# ============================================================================
# APPLICATION CONTEXT
# ============================================================================

@dataclass
class AppContext:
    """
    Contenedor de contexto de aplicación.

    Uso:
        ctx = AppContext.create()
        await ctx.initialize()

        ctx.tracker.track_page_view("dashboard")
        summary = await ctx.analytics.generate_dashboard_summary()

        await ctx.shutdown()
    """

    config: Settings
    storage: StorageBackend
    store: MetricStore
    aggregator: AggregationEngine
    summary: SummaryCalculator
    queue: IngestionQueue
    tracker: EventTracker
    analytics: AnalyticsService
    _logger: Any = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=False)

    @property
    def logger(self):
        """Logger con lazy initialization."""
        if self._logger is None:
            self._logger = get_logger("app")
        return self._logger

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Prepara el backend y carga la colección."""
        if self._initialized:
            return

        initialize = getattr(self.storage, "initialize", None)
        if initialize is not None:
            await initialize()

        await self.analytics.initialize()
        self._initialized = True
        self.logger.info("AppContext inicializado")

    async def shutdown(self) -> None:
        """Vacía la cola y cierra el backend."""
        await self.analytics.shutdown()
        self._initialized = False
        self.logger.info("AppContext cerrado")

    async def __aenter__(self) -> "AppContext":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(
        cls,
        config: Optional[Settings] = None,
        storage: Optional[StorageBackend] = None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
        **overrides,
    ) -> "AppContext":
        """
        Factory method para crear el contexto.

        Args:
            config: Settings a usar (por defecto la instancia global)
            storage: Backend ya construido; si no, se crea según config
            cache: Caché para MetricStore
            clock: Reloj de SummaryCalculator
            **overrides: Parámetros de MetricStore / IngestionQueue
                (storage_key, cache_ttl_seconds, seed_sample_data,
                sample_days, sample_seed, batch_size, flush_interval,
                max_buffer_size)

        Returns:
            Instancia de AppContext configurada
        """
        config = config or settings
        storage = storage if storage is not None else create_storage(config)

        store = MetricStore(
            storage,
            storage_key=overrides.get("storage_key", config.ANALYTICS_STORAGE_KEY),
            cache=cache,
            cache_ttl_seconds=overrides.get("cache_ttl_seconds", config.ANALYTICS_CACHE_TTL_SECONDS),
            seed_sample_data=overrides.get("seed_sample_data", config.ANALYTICS_SEED_SAMPLE_DATA),
            sample_days=overrides.get("sample_days", config.ANALYTICS_SAMPLE_DAYS),
            sample_seed=overrides.get("sample_seed", config.ANALYTICS_SAMPLE_SEED),
            max_range_days=overrides.get("max_range_days", config.ANALYTICS_MAX_RANGE_DAYS),
        )
        aggregator = AggregationEngine(store)
        summary = SummaryCalculator(
            store,
            default_range_days=config.ANALYTICS_DEFAULT_RANGE_DAYS,
            clock=clock,
        )
        queue = IngestionQueue(
            store,
            batch_size=overrides.get("batch_size", config.ANALYTICS_BATCH_SIZE),
            flush_interval=overrides.get("flush_interval", config.ANALYTICS_FLUSH_INTERVAL_SECONDS),
            max_buffer_size=overrides.get("max_buffer_size", config.ANALYTICS_MAX_BUFFER_SIZE),
        )

        return cls(
            config=config,
            storage=storage,
            store=store,
            aggregator=aggregator,
            summary=summary,
            queue=queue,
            tracker=EventTracker(queue, store),
            analytics=AnalyticsService(store, aggregator, summary, queue),
        )

    @classmethod
    def create_for_testing(
        cls,
        storage: Optional[StorageBackend] = None,
        **overrides,
    ) -> "AppContext":
        """
        Factory method para testing.

        Usa almacenamiento en memoria y no siembra datos de ejemplo
        salvo que se pida.

        Returns:
            Instancia de AppContext aislada
        """
        overrides.setdefault("seed_sample_data", False)
        return cls.create(
            storage=storage if storage is not None else InMemoryStorage(),
            **overrides,
        )
