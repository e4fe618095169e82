"""HTTP control surface: introspection, manual control and event intake."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from .config import TimerConfig
from .events import normalize_event
from .runtime import NotReadyError

if TYPE_CHECKING:
    from .runtime import SubathonRuntime

logger = logging.getLogger("Subathon.Control")


class ControlServer:
    """HTTP control server"""

    def __init__(self, runtime: "SubathonRuntime", host: str = "127.0.0.1", port: int = 4344):
        self.runtime = runtime
        self.host = host
        self.port = port
        self.app = web.Application(middlewares=[self._not_ready_middleware])
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes"""
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/state", self.handle_state)
        self.app.router.add_post("/add", self.handle_add)
        self.app.router.add_post("/reset", self.handle_reset)
        self.app.router.add_post("/toggle", self.handle_toggle)
        self.app.router.add_post("/events", self.handle_event)
        self.app.router.add_post("/load", self.handle_load)

    @web.middleware
    async def _not_ready_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        try:
            return await handler(request)
        except NotReadyError as e:
            return web.json_response({"error": str(e)}, status=503)

    @staticmethod
    async def _json_body(request: web.Request) -> dict[str, Any]:
        if not request.can_read_body:
            return {}
        try:
            body = await request.json()
        except ValueError:
            raise web.HTTPBadRequest(
                text='{"error": "invalid JSON body"}', content_type="application/json"
            )
        if not isinstance(body, dict):
            raise web.HTTPBadRequest(
                text='{"error": "expected a JSON object"}', content_type="application/json"
            )
        return body

    async def handle_root(self, request: web.Request) -> web.Response:
        """Root endpoint - minimal service info"""
        return web.json_response({"service": "subathon-timer", "status": "running"})

    async def handle_health(self, request: web.Request) -> web.Response:
        """Liveness plus initialization state"""
        return web.json_response(
            {
                "status": "healthy" if self.runtime.ready else "starting",
                "state": self.runtime.state.value,
                "uptime_seconds": int(time.time() - self._start_time),
            }
        )

    async def handle_state(self, request: web.Request) -> web.Response:
        return web.json_response(self.runtime.snapshot())

    async def handle_add(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        added = self.runtime.add_seconds(body.get("seconds"))
        if not added:
            return web.json_response({"error": "seconds must be a positive number"}, status=400)
        logger.info(f"Manual add: {body.get('seconds')}s")
        return web.json_response(self.runtime.snapshot())

    async def handle_reset(self, request: web.Request) -> web.Response:
        self.runtime.reset()
        logger.info("Manual reset")
        return web.json_response(self.runtime.snapshot())

    async def handle_toggle(self, request: web.Request) -> web.Response:
        self.runtime.toggle_pause()
        return web.json_response(self.runtime.snapshot())

    async def handle_event(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        channel = self.runtime.engine.config.channel if self.runtime.engine else None
        event = normalize_event(body, channel=channel)
        if event is None:
            return web.json_response({"handled": False})
        feedback = self.runtime.dispatch(event)
        return web.json_response(
            {
                "handled": self.runtime.ready,
                "event": type(event).__name__,
                "feedback": feedback,
            }
        )

    async def handle_load(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        field_data = body.get("fieldData", body)
        if not isinstance(field_data, dict):
            field_data = {}
        await self.runtime.load(TimerConfig.from_field_data(field_data))
        return web.json_response(self.runtime.snapshot())

    async def start(self) -> None:
        """Start control server"""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            logger.info(f"Control server started on {self.host}:{self.port}")
            logger.info(f"  GET  http://{self.host}:{self.port}/state - Timer state")
            logger.info(f"  POST http://{self.host}:{self.port}/events - Event intake")
        except Exception as e:
            logger.exception(f"Failed to start control server: {e}")
            raise

    async def stop(self) -> None:
        """Stop control server"""
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Control server stopped")
            except Exception as e:
                logger.exception(f"Error stopping control server: {e}")
