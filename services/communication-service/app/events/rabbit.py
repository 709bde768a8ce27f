# services/communication-service/app/events/rabbit.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aio_pika
from aio_pika import ExchangeType, Message

from app.config import settings
from app.events.schemas import EventEnvelope, rk

logger = logging.getLogger("app.events")

SERVICE = "communication"


class RabbitBus:
    """
    Minimal async publisher using aio-pika, mirroring other services.
    """
    def __init__(self, uri: Optional[str] = None) -> None:
        self._uri = uri if uri is not None else settings.rabbitmq_uri
        self._conn: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self._chan: Optional[aio_pika.abc.AbstractChannel] = None
        self._ex: Optional[aio_pika.abc.AbstractExchange] = None
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self._uri)

    @property
    def connection(self) -> Optional[aio_pika.abc.AbstractRobustConnection]:
        return self._conn

    async def connect(self) -> "RabbitBus":
        async with self._lock:
            if self._conn and not self._conn.is_closed:
                return self
            logger.info("Rabbit: connecting...")
            self._conn = await aio_pika.connect_robust(self._uri, client_properties={"connection_name": settings.service_name})
            self._chan = await self._conn.channel(publisher_confirms=False)
            self._ex = await self._chan.declare_exchange(
                settings.rabbitmq_exchange, ExchangeType.TOPIC, durable=True
            )
            logger.info("Rabbit: connected; exchange declared (%s)", settings.rabbitmq_exchange)
        return self

    async def close(self) -> None:
        if self._conn and not self._conn.is_closed:
            await self._conn.close()
            logger.info("Rabbit: connection closed")

    async def publish(
        self,
        *,
        event: str,
        payload: Dict[str, Any],
        tenant_id: Optional[str] = None,
        by: Optional[str] = None,
        correlation_id: Optional[str] = None,
        version: str = "v1",
    ) -> None:
        if not self._ex:
            await self.connect()

        envelope = EventEnvelope(
            event=event,
            service=SERVICE,
            org=settings.events_org,
            version=version,
            tenant_id=tenant_id,
            by=by,
            correlation_id=correlation_id,
            payload=payload,
        )
        routing_key = rk(settings.events_org, SERVICE, event, version)
        body = envelope.model_dump_json().encode("utf-8")
        headers: Dict[str, Any] = {"x-service": settings.service_name}
        if tenant_id:
            headers["x-tenant-id"] = tenant_id
        if correlation_id:
            headers["x-correlation-id"] = correlation_id
        message = Message(
            body=body,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            content_type="application/json",
            headers=headers,
        )
        await self._ex.publish(message, routing_key=routing_key)  # type: ignore[union-attr]
        logger.info("Rabbit: published %s (%d bytes)", routing_key, len(body))


class EventPublisher:
    """
    Fire-and-forget domain events. A missing or failing bus never fails the
    operation that triggered the event.
    """
    def __init__(self, bus: Optional[RabbitBus] = None) -> None:
        self.bus = bus if bus is not None else get_bus()

    async def emit(self, event: str, payload: Dict[str, Any], **meta: Any) -> bool:
        if not self.bus.enabled:
            logger.debug("Rabbit disabled; event %s not published", event)
            return False
        try:
            await self.bus.publish(event=event, payload=payload, **meta)
            return True
        except Exception:
            logger.warning("Event %s not published (bus unavailable)", event, exc_info=True)
            return False


_bus: Optional[RabbitBus] = None

def get_bus() -> RabbitBus:
    global _bus
    if _bus is None:
        _bus = RabbitBus()
    return _bus
