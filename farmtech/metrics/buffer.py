"""
Buffer de Eventos

Cola FIFO acotada en memoria para los registros pendientes de persistir.
"""

from collections import deque
from typing import Deque, Generic, Iterable, List, TypeVar

from farmtech.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class EventBuffer(Generic[T]):
    """
    FIFO acotado.

    Al agregar con el buffer lleno se descarta el elemento más antiguo.
    requeue_front ignora el límite para no perder reintentos.
    """

    def __init__(self, max_size: int = 10000):
        if max_size < 1:
            raise ValueError("max_size debe ser >= 1")
        self.max_size = max_size
        self._items: Deque[T] = deque()
        self.dropped = 0

    def append(self, item: T) -> None:
        if len(self._items) >= self.max_size:
            self._items.popleft()
            self.dropped += 1
            logger.warning(
                f"Buffer lleno ({self.max_size}); descartado el evento más antiguo "
                f"(total descartados: {self.dropped})"
            )
        self._items.append(item)

    def drain(self, n: int) -> List[T]:
        """Extrae hasta n elementos del frente."""
        count = min(n, len(self._items))
        return [self._items.popleft() for _ in range(count)]

    def requeue_front(self, items: Iterable[T]) -> None:
        """Devuelve elementos al frente conservando su orden."""
        self._items.extendleft(reversed(list(items)))

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self):
        return iter(list(self._items))
