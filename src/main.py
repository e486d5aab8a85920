from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import socketio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.fleet import router as fleet_router
from src.adapters.api.dependencies import build_runtime
from src.adapters.realtime.socketio_subscriber_gateway import (
    SocketIoSubscriberGateway,
    register_subscription_handlers,
)
from src.adapters.settings import configure_logging

configure_logging()

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime = build_runtime(SocketIoSubscriberGateway(sio=sio))
    register_subscription_handlers(sio, runtime.distributor)
    app.state.runtime = runtime

    await runtime.scheduler.start()
    try:
        yield
    finally:
        await runtime.scheduler.stop()


app = FastAPI(title="BusWatch", lifespan=lifespan)
app.include_router(fleet_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so dashboard clients can display them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    reveal = (os.getenv("BUSWATCH_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (FileNotFoundError, RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Entry point for uvicorn: serves Socket.IO on /socket.io and FastAPI otherwise.
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)
