from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import socketio

from src.app.ports.output import ISubscriberGateway

if TYPE_CHECKING:
    from src.app.services.distributor import Distributor

logger = logging.getLogger(__name__)

UPDATE_EVENT = "fleetUpdate"
DETAIL_LEVEL_EVENT = "detailLevel"


@dataclass(slots=True)
class SocketIoSubscriberGateway(ISubscriberGateway):
    """Delivers payloads to one Socket.IO connection (sid) at a time."""

    sio: socketio.AsyncServer
    event: str = UPDATE_EVENT

    async def send(self, subscriber_id: str, payload: Mapping[str, Any]) -> None:
        await self.sio.emit(self.event, dict(payload), to=subscriber_id)


def parse_detail_level(raw: Any) -> int | None:
    # bool is an int subclass; a stray true/false must not become level 1/0.
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float) and not math.isfinite(raw):
        return None
    return math.floor(raw)


def register_subscription_handlers(
    sio: socketio.AsyncServer, distributor: Distributor
) -> None:
    """Wire connect / detail-level / disconnect events to the registry."""

    async def on_connect(sid: str, environ: Mapping[str, Any], auth: Any = None):
        distributor.registry.add(sid)
        logger.info("Client connected: %s", sid)

    async def on_detail_level(sid: str, data: Any) -> None:
        level = parse_detail_level(data)
        if level is None:
            logger.warning("Ignoring invalid detail level from %s: %r", sid, data)
            return
        if distributor.registry.update_detail_level(sid, level) is None:
            return
        await distributor.send_current(sid)

    async def on_disconnect(sid: str, reason: Any = None) -> None:
        distributor.registry.remove(sid)
        logger.info("Client disconnected: %s", sid)

    sio.on("connect", on_connect)
    sio.on(DETAIL_LEVEL_EVENT, on_detail_level)
    sio.on("disconnect", on_disconnect)
