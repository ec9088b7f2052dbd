"""
Event Tracker

Interface simplificada para trackear eventos de negocio desde cualquier
parte de la aplicación. Cada método arma la metadata del evento y lo
encola en IngestionQueue.

Los errores del productor se loggean y nunca se propagan: trackear
un evento no debe romper la operación que lo origina.
"""

import time
from datetime import datetime
from typing import Dict, Any, Optional, Sequence, Union

from config.constants import MetricType
from farmtech.models.metric import MetricRecord, utc_now
from farmtech.utils.errors import AnalyticsError
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)


class EventTracker:
    """
    Tracker de eventos con API simplificada.

    Uso:
        tracker = ctx.tracker.for_user("farmer-42", "farmer")

        tracker.track_order_created(order_id="ord-1", total_amount=1250.0, items=[...])
        tracker.track_page_view("materials")

        await tracker.track_conversion_rate()
    """

    def __init__(
        self,
        queue,
        store=None,
        user_id: Optional[str] = None,
        user_role: Optional[str] = None,
    ):
        self._queue = queue
        self._store = store or queue.store
        self.user_id = user_id
        self.user_role = user_role

    def for_user(self, user_id: Optional[str], user_role: Optional[str] = None) -> "EventTracker":
        """Tracker que agrega el contexto de un usuario a cada evento."""
        return EventTracker(self._queue, self._store, user_id=user_id, user_role=user_role)

    def track_event(
        self,
        metric_type: Union[MetricType, str],
        value: float = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[MetricRecord]:
        """
        Encola un evento con el contexto del usuario.

        Returns:
            El registro encolado, o None si el evento fue rechazado
        """
        enriched = {
            **(metadata or {}),
            "userId": self.user_id,
            "userRole": self.user_role,
            "timestamp": int(time.time() * 1000),
        }
        try:
            return self._queue.track_event(metric_type, value, enriched)
        except AnalyticsError as e:
            logger.error(
                f"Evento de analítica descartado ({metric_type}): {e.message}",
                extra={"extra_data": e.to_dict()},
            )
            return None

    # =========================================================================
    # USUARIOS
    # =========================================================================

    def track_page_view(self, page_name: str, **additional: Any) -> Optional[MetricRecord]:
        """Una vista de página cuenta como actividad de usuario."""
        return self.track_event(MetricType.ACTIVE_USERS, 1, {"page": page_name, **additional})

    def track_user_registration(
        self,
        role: Optional[str] = None,
        method: str = "form",
    ) -> Optional[MetricRecord]:
        """Trackea un registro de usuario."""
        return self.track_event(MetricType.USER_REGISTRATIONS, 1, {
            "userRole": role,
            "registrationMethod": method or "form",
        })

    # =========================================================================
    # PEDIDOS Y MATERIALES
    # =========================================================================

    def track_order_created(
        self,
        order_id: Optional[str] = None,
        total_amount: Optional[float] = None,
        items: Optional[Sequence[Any]] = None,
    ) -> Optional[MetricRecord]:
        """
        Trackea un pedido: conteo de pedidos y, si hay total, su valor.

        Returns:
            El registro de conteo
        """
        record = self.track_event(MetricType.ORDERS_COUNT, 1, {
            "orderId": order_id,
            "orderValue": total_amount,
            "itemCount": len(items) if items else 0,
        })

        if total_amount:
            self.track_event(MetricType.ORDERS_VALUE, total_amount, {"orderId": order_id})

        return record

    def track_material_purchase(
        self,
        material_id: Optional[str] = None,
        name: Optional[str] = None,
        category: Optional[str] = None,
        price: Optional[float] = None,
        quantity: Optional[float] = None,
        revenue: Optional[float] = None,
    ) -> Optional[MetricRecord]:
        """Trackea unidades vendidas de un material y, si hay, su ingreso."""
        record = self.track_event(MetricType.MATERIALS_SOLD, quantity or 1, {
            "materialId": material_id,
            "materialName": name,
            "category": category,
            "unitPrice": price,
        })

        if revenue:
            self.track_event(MetricType.MATERIALS_REVENUE, revenue, {
                "materialId": material_id,
                "materialName": name,
            })

        return record

    def track_revenue(
        self,
        amount: float,
        source: str = "general",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[MetricRecord]:
        return self.track_event(MetricType.REVENUE, amount, {"source": source, **(metadata or {})})

    # =========================================================================
    # UPLOADS
    # =========================================================================

    def track_upload_submission(
        self,
        upload_id: Optional[str] = None,
        crop_type: Optional[str] = None,
        file_size: Optional[int] = None,
        file_type: Optional[str] = None,
    ) -> Optional[MetricRecord]:
        return self.track_event(MetricType.UPLOADS_COUNT, 1, {
            "uploadId": upload_id,
            "cropType": crop_type,
            "fileSize": file_size,
            "fileType": file_type,
        })

    def track_upload_approval(
        self,
        upload_id: Optional[str] = None,
        crop_type: Optional[str] = None,
        reviewed_by: Optional[str] = None,
    ) -> Optional[MetricRecord]:
        return self.track_event(MetricType.UPLOADS_APPROVED, 1, {
            "uploadId": upload_id,
            "cropType": crop_type,
            "reviewedBy": reviewed_by,
        })

    # =========================================================================
    # PAGOS
    # =========================================================================

    def track_payment_submission(
        self,
        payment_id: Optional[str] = None,
        amount: Optional[float] = None,
        payment_method: Optional[str] = None,
    ) -> Optional[MetricRecord]:
        return self.track_event(MetricType.PAYMENT_SUBMISSIONS, 1, {
            "paymentId": payment_id,
            "amount": amount,
            "paymentMethod": payment_method,
        })

    def track_payment_approval(
        self,
        payment_id: Optional[str] = None,
        amount: Optional[float] = None,
        reviewed_by: Optional[str] = None,
    ) -> Optional[MetricRecord]:
        return self.track_event(MetricType.PAYMENT_APPROVALS, 1, {
            "paymentId": payment_id,
            "amount": amount,
            "reviewedBy": reviewed_by,
        })

    # =========================================================================
    # DERIVADAS
    # =========================================================================

    async def track_conversion_rate(self, now: Optional[datetime] = None) -> Optional[MetricRecord]:
        """
        Calcula pedidos / usuarios activos de hoy (UTC) y lo registra.

        No registra nada si no hay pedidos o usuarios activos hoy.
        """
        try:
            totals = await self._today_totals(
                [MetricType.ACTIVE_USERS, MetricType.ORDERS_COUNT], now
            )
        except AnalyticsError as e:
            logger.error(f"Error calculando tasa de conversión: {e.message}")
            return None

        active_users = totals.get(MetricType.ACTIVE_USERS)
        orders = totals.get(MetricType.ORDERS_COUNT)
        if not active_users or orders is None:
            return None

        return self.track_event(MetricType.CONVERSION_RATE, (orders / active_users) * 100)

    async def track_average_order_value(self, now: Optional[datetime] = None) -> Optional[MetricRecord]:
        """Calcula valor de pedidos / cantidad de pedidos de hoy y lo registra."""
        try:
            totals = await self._today_totals(
                [MetricType.ORDERS_COUNT, MetricType.ORDERS_VALUE], now
            )
        except AnalyticsError as e:
            logger.error(f"Error calculando valor promedio de pedido: {e.message}")
            return None

        orders_count = totals.get(MetricType.ORDERS_COUNT)
        orders_value = totals.get(MetricType.ORDERS_VALUE)
        if not orders_count or orders_value is None:
            return None

        return self.track_event(MetricType.AVERAGE_ORDER_VALUE, orders_value / orders_count)

    async def _today_totals(self, metric_types, now: Optional[datetime] = None) -> Dict[MetricType, float]:
        """Suma por tipo de los registros persistidos hoy (UTC)."""
        end = now or utc_now()
        start = end.replace(hour=0, minute=0, second=0, microsecond=0)
        records = await self._store.get_by_date_range(start, end, metric_types)

        totals: Dict[MetricType, float] = {}
        for record in records:
            totals[record.metric_type] = totals.get(record.metric_type, 0.0) + record.value
        return totals
