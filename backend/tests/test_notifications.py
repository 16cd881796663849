"""
Notification sink and circuit breaker tests.

Publishing must never fail a committed workflow operation.
"""

import json
import pytest

from backend.app.core.config import settings
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, notification_circuit_breaker
from backend.app.services.notification_service import NotificationService, NotificationEvent


async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


async def test_circuit_breaker_half_open_recovers():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=0)

    async def failing_func():
        raise ValueError("Boom")

    async def ok_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    cb.last_failure_time -= 1
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"


async def test_publish_sends_json_event(mock_redis):
    delivered = await NotificationService.publish(
        mock_redis, NotificationEvent.RENTAL_ORDER_UPDATED, {"rental_order_id": 7}
    )

    assert delivered is True
    channel, message = mock_redis.published[0]
    assert channel == settings.notification_channel
    assert json.loads(message) == {"event": "RentalOrderUpdated", "payload": {"rental_order_id": 7}}


async def test_publish_failure_is_swallowed(mock_redis):
    mock_redis.fail = True

    assert await NotificationService.publish(mock_redis, NotificationEvent.VEHICLE_LIST_UPDATED) is False


async def test_open_circuit_stops_calling_redis(mock_redis, mocker):
    mock_redis.fail = True
    for _ in range(settings.notification_failure_threshold):
        await NotificationService.publish(mock_redis, NotificationEvent.INVOICE_UPDATED)
    assert notification_circuit_breaker.state == "OPEN"

    spy = mocker.spy(mock_redis, "publish")
    assert await NotificationService.publish(mock_redis, NotificationEvent.INVOICE_UPDATED) is False
    spy.assert_not_called()
