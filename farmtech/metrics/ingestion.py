"""
Ingestion Queue

Recibe eventos de los productores sin bloquearlos y los persiste en
lotes a través de MetricStore.

Flujo:
    track_event() -> buffer en memoria
                  -> flush inmediato al llegar a batch_size
                  -> o flush por timer tras flush_interval segundos

Un lote que falla vuelve completo al frente del buffer y se reintenta
antes que los eventos nuevos; los ids ya guardados no se duplican.
"""

import asyncio
from enum import Enum
from typing import Dict, Any, Optional, Set, Union
from dataclasses import dataclass, asdict

from config.constants import AggregationType, MetricType, category_for
from farmtech.metrics.buffer import EventBuffer
from farmtech.models.metric import MetricRecord
from farmtech.utils.errors import AnalyticsError, StorageError
from farmtech.utils.logger import get_logger, log_exception

logger = get_logger(__name__)


# ============================================================================
# ENUMS Y DATA CLASSES
# ============================================================================

class QueueState(str, Enum):
    """Estado de la cola de ingesta."""

    IDLE = "idle"
    BUFFERING = "buffering"
    FLUSHING = "flushing"


@dataclass
class IngestionStats:
    """Contadores de la cola."""

    tracked: int = 0
    flushed: int = 0
    failed_flushes: int = 0
    requeued: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


# ============================================================================
# QUEUE
# ============================================================================

class IngestionQueue:
    """
    Cola de eventos con flush por tamaño o por tiempo.

    track_event es síncrono y nunca suspende; los flushes corren como
    tareas del event loop y se serializan con un asyncio.Lock.
    """

    def __init__(
        self,
        store,
        batch_size: Optional[int] = None,
        flush_interval: Optional[float] = None,
        max_buffer_size: Optional[int] = None,
    ):
        from config.settings import settings

        self.store = store
        self.batch_size = batch_size or settings.ANALYTICS_BATCH_SIZE
        self.flush_interval = (
            settings.ANALYTICS_FLUSH_INTERVAL_SECONDS if flush_interval is None else flush_interval
        )
        self._buffer: EventBuffer[MetricRecord] = EventBuffer(
            max_buffer_size or settings.ANALYTICS_MAX_BUFFER_SIZE
        )

        self._lock = asyncio.Lock()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._flush_scheduled = False
        self._closed = False
        self._stats = IngestionStats()

        logger.info(
            f"IngestionQueue inicializada "
            f"(batch_size={self.batch_size}, flush_interval={self.flush_interval}s)"
        )

    # =========================================================================
    # ESTADO
    # =========================================================================

    @property
    def state(self) -> QueueState:
        if self._lock.locked():
            return QueueState.FLUSHING
        if self._buffer:
            return QueueState.BUFFERING
        return QueueState.IDLE

    @property
    def pending(self) -> int:
        """Eventos en el buffer."""
        return len(self._buffer)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def is_active(self) -> bool:
        return not self._closed

    def stats(self) -> Dict[str, Any]:
        data = self._stats.to_dict()
        data.update({
            "pending": len(self._buffer),
            "dropped": self._buffer.dropped,
            "state": self.state.value,
            "in_flight": len(self._tasks),
        })
        return data

    # =========================================================================
    # PRODUCTOR
    # =========================================================================

    def track_event(
        self,
        metric_type: Union[MetricType, str],
        value: float = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MetricRecord:
        """
        Encola un evento (no suspende).

        Returns:
            El registro creado

        Raises:
            ValidationError: Si el evento no es válido
        """
        record = MetricRecord.create(
            metric_type=metric_type,
            value=value,
            metadata=metadata if metadata is not None else {},
            aggregation_type=AggregationType.DAILY,
            category=category_for(metric_type),
        )

        self._buffer.append(record)
        self._stats.tracked += 1

        if self._closed:
            logger.warning(
                f"Evento {record.metric_type.value} encolado con la cola cerrada; "
                "queda pendiente hasta un flush manual"
            )
            return record

        if len(self._buffer) >= self.batch_size:
            self._schedule_flush()
        else:
            self._arm_timer()

        return record

    # =========================================================================
    # FLUSH
    # =========================================================================

    async def flush(self) -> int:
        """
        Persiste hasta batch_size eventos.

        Returns:
            Cantidad persistida (0 si el lote falló y fue reencolado)
        """
        async with self._lock:
            self._flush_scheduled = False

            batch = self._buffer.drain(self.batch_size)
            if not batch:
                return 0

            try:
                for record in batch:
                    if await self.store.add(record) is None:
                        raise StorageError(
                            f"No se pudo persistir el registro {record.id}"
                        )
            except AnalyticsError as e:
                self._buffer.requeue_front(batch)
                self._stats.failed_flushes += 1
                self._stats.requeued += len(batch)
                logger.error(
                    f"Flush fallido; {len(batch)} eventos reencolados "
                    f"(pendientes: {len(self._buffer)}): {e.message}"
                )
                if not self._closed:
                    self._arm_timer()
                return 0
            except Exception:
                self._buffer.requeue_front(batch)
                self._stats.failed_flushes += 1
                self._stats.requeued += len(batch)
                if not self._closed:
                    self._arm_timer()
                raise

            self._stats.flushed += len(batch)
            logger.info(f"Flushed {len(batch)} eventos de analítica")

            self._cancel_timer()
            if self._buffer and not self._closed:
                if len(self._buffer) >= self.batch_size:
                    self._schedule_flush()
                else:
                    self._arm_timer()

            return len(batch)

    async def join(self) -> None:
        """Espera a que terminen los flushes en curso."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> int:
        """
        Detiene el timer y vacía el buffer.

        Se detiene al primer flush fallido.

        Returns:
            Total de eventos persistidos durante el cierre
        """
        self._closed = True
        self._cancel_timer()
        await self.join()

        total = 0
        while self._buffer:
            persisted = await self.flush()
            if persisted == 0:
                break
            total += persisted

        if self._buffer:
            logger.warning(f"Cierre con {len(self._buffer)} eventos sin persistir")
        logger.info(f"IngestionQueue cerrada ({total} eventos persistidos al cerrar)")
        return total

    # =========================================================================
    # PROGRAMACIÓN
    # =========================================================================

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return

        loop = _running_loop()
        if loop is None:
            logger.debug("Sin event loop activo; el flush queda pendiente")
            return

        self._flush_scheduled = True
        task = loop.create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _arm_timer(self) -> None:
        if self._timer is not None:
            return

        loop = _running_loop()
        if loop is None:
            return

        self._timer = loop.call_later(self.flush_interval, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._buffer:
            self._schedule_flush()

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_exception(logger, "Error inesperado en flush de analítica", exc)
