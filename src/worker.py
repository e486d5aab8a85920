"""Headless pipeline runner.

Runs the fetch/reconcile/match/persist cycle without the HTTP API. Socket.IO
delivery is a no-op here since no client can connect.
"""

from __future__ import annotations

import asyncio
import logging
import signal

import socketio

from src.adapters.api.dependencies import build_runtime
from src.adapters.realtime.socketio_subscriber_gateway import (
    SocketIoSubscriberGateway,
)
from src.adapters.settings import configure_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    runtime = build_runtime(SocketIoSubscriberGateway(sio=socketio.AsyncServer()))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass

    await runtime.scheduler.start()
    try:
        await stop.wait()
    finally:
        logger.info("Shutdown requested")
        await runtime.scheduler.stop()


def main() -> None:
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
