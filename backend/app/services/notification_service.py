"""
Notification Service.

Fire-and-forget publisher for workflow events. Dashboards subscribe to the
Redis channel; delivery and fan-out are theirs to handle.
"""

import json
import logging
from typing import Any, Dict, Optional

from backend.app.core.config import settings
from backend.app.core.reliability import notification_circuit_breaker, CircuitOpenError


logger = logging.getLogger("drivenow.notifications")


class NotificationEvent:
    """Standardized event names."""
    VEHICLE_UPDATED = "VehicleUpdated"
    VEHICLE_LIST_UPDATED = "VehicleListUpdated"
    RENTAL_ORDER_UPDATED = "RentalOrderUpdated"
    INVOICE_UPDATED = "InvoiceUpdated"
    PAYMENT_RECORDED = "PaymentRecorded"


class NotificationService:
    
    @staticmethod
    async def publish(
        redis,
        event: str,
        payload: Optional[Dict[str, Any]] = None,
        channel: Optional[str] = None
    ) -> bool:
        """
        Publish an event after the workflow transaction has committed.
        
        Never raises: a broken channel must not fail a committed operation.
        
        Returns:
            True if the event was handed to Redis, False otherwise
        """
        message = json.dumps({"event": event, "payload": payload or {}}, default=str)
        
        try:
            await notification_circuit_breaker.call(
                redis.publish, channel or settings.notification_channel, message
            )
        except CircuitOpenError:
            logger.warning("Notification circuit open, dropped event %s", event)
            return False
        except Exception:
            logger.warning("Failed to publish event %s", event, exc_info=True)
            return False
        
        logger.debug("Published event %s", event)
        return True

    @staticmethod
    async def vehicle_changed(redis, vehicle) -> None:
        """Notify subscribers of a vehicle's new status and location."""
        await NotificationService.publish(redis, NotificationEvent.VEHICLE_UPDATED, {
            "vehicle_id": vehicle.id,
            "status": vehicle.status.value,
            "current_location": vehicle.current_location
        })
        await NotificationService.publish(redis, NotificationEvent.VEHICLE_LIST_UPDATED)

    @staticmethod
    async def rental_order_changed(redis, order) -> None:
        await NotificationService.publish(redis, NotificationEvent.RENTAL_ORDER_UPDATED, {
            "rental_order_id": order.id,
            "order_number": order.order_number,
            "status": order.status.value
        })

    @staticmethod
    async def invoice_changed(redis, invoice) -> None:
        await NotificationService.publish(redis, NotificationEvent.INVOICE_UPDATED, {
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "status": invoice.status.value,
            "remaining_amount": invoice.remaining_amount
        })

    @staticmethod
    async def payment_recorded(redis, payment, invoice) -> None:
        await NotificationService.publish(redis, NotificationEvent.PAYMENT_RECORDED, {
            "payment_id": payment.id,
            "payment_number": payment.payment_number,
            "invoice_id": invoice.id,
            "amount": payment.amount
        })
        await NotificationService.invoice_changed(redis, invoice)
