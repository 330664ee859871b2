"""FastAPI application: REST routes plus the browser session WebSocket."""

import logging
import time
from collections import defaultdict

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from fluency_trainer.api.routes import router
from fluency_trainer.api.websocket import handle_browser_websocket
from fluency_trainer.config import Settings, get_settings


def configure_logging(production: bool) -> None:
    """JSON lines in production, coloured console output during development."""
    renderer = structlog.processors.JSONRenderer() if production else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if production else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


class ConnectionRateLimiter:
    """Sliding one-minute window of session connections per client address."""

    window_seconds = 60.0

    def __init__(self, per_minute: int):
        self.per_minute = per_minute
        self._opened: dict[str, list[float]] = defaultdict(list)

    def allow(self, client: str, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        recent = [t for t in self._opened[client] if now - t < self.window_seconds]
        self._opened[client] = recent
        if len(recent) >= self.per_minute:
            return False
        recent.append(now)
        return True


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(title="Fluency Trainer", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    limiter = ConnectionRateLimiter(settings.ws_connections_per_minute)

    @app.websocket("/ws")
    async def session_socket(websocket: WebSocket) -> None:
        client = websocket.client.host if websocket.client else "unknown"
        if not limiter.allow(client):
            structlog.get_logger().warning("session_connection_rejected", client=client)
            await websocket.close(code=1008, reason="Too many connections")
            return
        await handle_browser_websocket(websocket, settings)

    return app


settings = get_settings()
configure_logging(settings.env.lower() == "production")
app = create_app(settings)


def main() -> None:
    """Run the application."""
    uvicorn.run(
        "fluency_trainer.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
