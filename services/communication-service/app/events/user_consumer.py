# services/communication-service/app/events/user_consumer.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import aio_pika
from aio_pika import ExchangeType
from pydantic import ValidationError

from app.config import settings
from app.dal.user_dal import UserDAL
from app.models import CrmUserEventData, MirroredUser

logger = logging.getLogger("app.events.users")

ROUTING_KEYS = ("user.crm.created.v1", "user.crm.updated.v1")
QUEUE_MESSAGE_TTL_MS = 3_600_000


async def handle_crm_user_event(payload: Dict[str, Any], *, users: UserDAL) -> bool:
    """
    Upsert the mirrored user for a created/updated CRM event.
    Returns False when the event lacks userId or tenantId (dropped).
    """
    try:
        data = CrmUserEventData.model_validate((payload or {}).get("data") or {})
    except ValidationError:
        logger.warning("Invalid CRM user event: unparsable data block")
        return False
    if not data.user_id or not data.tenant_id:
        logger.warning("Invalid CRM user event: missing userId or tenantId")
        return False

    await users.upsert(
        MirroredUser(
            tenant_id=data.tenant_id,
            user_id=data.user_id,
            user_email=data.user_email,
            user_full_name=data.user_full_name,
        )
    )
    logger.info("CRM user mirrored user_id=%s tenant_id=%s", data.user_id, data.tenant_id)
    return True


class UserEventsConsumer:
    """
    Mirrors CRM users into the local 'users' collection.
    Queue 'communication.user.events' bound to 'user.events' topic exchange.
    """
    def __init__(self, connection: aio_pika.abc.AbstractRobustConnection, users: Optional[UserDAL] = None) -> None:
        self._conn = connection
        self._users = users
        self._chan: Optional[aio_pika.abc.AbstractChannel] = None
        self._consumer_tag: Optional[str] = None
        self._queue: Optional[aio_pika.abc.AbstractQueue] = None

    async def start(self) -> None:
        self._chan = await self._conn.channel()
        await self._chan.set_qos(prefetch_count=settings.user_events_prefetch)
        exchange = await self._chan.declare_exchange(
            settings.user_events_exchange, ExchangeType.TOPIC, durable=True
        )
        self._queue = await self._chan.declare_queue(
            settings.user_events_queue,
            durable=True,
            arguments={"x-message-ttl": QUEUE_MESSAGE_TTL_MS},
        )
        for key in ROUTING_KEYS:
            await self._queue.bind(exchange, routing_key=key)
        self._consumer_tag = await self._queue.consume(self._on_message)
        logger.info("CRM user events consumer ready (queue=%s)", settings.user_events_queue)

    async def _on_message(self, message: aio_pika.abc.AbstractIncomingMessage) -> None:
        # reject without requeue on handler failure; the message would only fail again
        async with message.process(requeue=False):
            try:
                payload = json.loads(message.body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.warning("CRM user event dropped: body is not JSON (rk=%s)", message.routing_key)
                return
            users = self._users or UserDAL()
            try:
                await handle_crm_user_event(payload, users=users)
            except Exception:
                logger.exception("Error handling CRM user event (rk=%s)", message.routing_key)
                raise

    async def stop(self) -> None:
        if self._queue is not None and self._consumer_tag:
            await self._queue.cancel(self._consumer_tag)
        if self._chan is not None and not self._chan.is_closed:
            await self._chan.close()
        logger.info("CRM user events consumer stopped")
