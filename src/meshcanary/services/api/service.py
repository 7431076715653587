"""HTTP query surface for peer connectivity via FastAPI.

Exposes the [Canary][meshcanary.core.canary.Canary] query contract:

- ``GET /peers``: current status of every peer.
- ``GET /peers/{id}``: status of one peer.
- ``GET /peers/{id}/ping``: probe one peer now.
- ``POST /peers/ping``: probe a mesh address, optionally with a ping kind.
- ``POST /peers/ping-all``: run a full probe round.
- ``GET /machines``: directory passthrough.
- ``GET /diagnostics``: identity of the local node.
- ``GET /health``: liveness.

The HTTP server runs as a background ``asyncio.Task`` alongside the
standard ``run_forever()`` cycle.  Each ``run()`` cycle refreshes the
cached report (unless reads refresh it themselves) and logs request
statistics.

Engine errors map to status codes: an unreadable directory is ``503``,
an unknown peer ``404``, a malformed target ``400`` and an exceeded
``request_timeout`` ``504``.  Every error body is ``{"error": ...}``.
Rounds and pings are bounded below ``request_timeout``, so slow peers show
up as a partial report or a failed ping rather than a ``504``.

See Also:
    [ApiConfig][meshcanary.services.api.ApiConfig]: Service configuration.
    [BaseService][meshcanary.core.base_service.BaseService]: Abstract
        base class providing lifecycle and metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from meshcanary.core.base_service import BaseService
from meshcanary.core.exceptions import (
    DirectoryUnavailableError,
    InvalidTargetError,
    PeerNotFoundError,
)
from meshcanary.models.constants import PingType, ServiceName

from .configs import ApiConfig


if TYPE_CHECKING:
    from types import TracebackType

    from meshcanary.core.canary import Canary
    from meshcanary.models.status import StatusReport

_HTTP_ERROR_THRESHOLD = 400

# Share of request_timeout given to rounds and pings so that a slow peer
# yields a partial answer before the request itself times out.
_ROUND_BUDGET = 0.9


class PingRequest(BaseModel):
    """Body of ``POST /peers/ping``."""

    ip: str = Field(min_length=1)
    type: PingType | None = None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


class Api(BaseService[ApiConfig]):
    """HTTP service exposing connectivity reports.

    Lifecycle:
        1. ``__aenter__``: build the FastAPI app, start uvicorn.
        2. ``run()``: refresh the cached report, log request statistics.
        3. ``__aexit__``: cancel the HTTP server task.

    Note:
        Authentication is left to the mesh itself: bind to the mesh
        address or to localhost.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.API
    CONFIG_CLASS: ClassVar[type[ApiConfig]] = ApiConfig

    def __init__(self, canary: Canary, config: ApiConfig | None = None) -> None:
        super().__init__(canary, config)
        self._server_task: asyncio.Task[None] | None = None
        self._requests_total = 0
        self._requests_failed = 0

    async def __aenter__(self) -> Api:
        await super().__aenter__()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "http_server_started",
            host=self._config.host,
            port=self._config.port,
            refresh_on_read=self._config.refresh_on_read,
        )

        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
        self._logger.info("http_server_stopped")
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def run(self) -> None:
        """Refresh the cached report and log request stats."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        if not self._config.refresh_on_read:
            try:
                await self._canary.refresh(stop_event=self._shutdown_event)
            except DirectoryUnavailableError as e:
                # Reads keep serving the previous report.
                self._logger.warning("background_refresh_failed", error=str(e))
                self.inc_counter("refresh_failed")

        # Snapshot and reset per-cycle counters
        total = self._requests_total
        failed = self._requests_failed
        self._requests_total = 0
        self._requests_failed = 0

        peers = len(self._canary.statuses())
        self._logger.info(
            "cycle_stats",
            requests_total=total,
            requests_failed=failed,
            peers_cached=peers,
        )
        self.inc_counter("requests_total", total)
        self.inc_counter("requests_failed", failed)
        self.set_gauge("peers_cached", peers)

    async def _current_report(self) -> StatusReport:
        """The report to serve: a fresh one when configured or none exists yet."""
        report = self._canary.report()
        if self._config.refresh_on_read or report is None:
            report = await self._canary.refresh(
                deadline=self._config.request_timeout * _ROUND_BUDGET
            )
        return report

    def _build_app(self) -> FastAPI:  # noqa: C901
        """Construct the FastAPI application with all routes."""
        app = FastAPI(title="meshcanary")
        timeout = self._config.request_timeout
        budget = timeout * _ROUND_BUDGET

        if self._config.cors_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self._config.cors_origins,
                allow_methods=["GET", "POST"],
                allow_headers=["*"],
            )

        # Request logging middleware
        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            try:
                response: Response = await call_next(request)
            except Exception as e:  # Intentionally broad: HTTP error boundary
                self._logger.error(
                    "request_error",
                    method=request.method,
                    path=request.url.path,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                response = _error("internal server error", 500)
            duration_ms = (time.monotonic() - start) * 1000
            self._requests_total += 1
            if response.status_code >= _HTTP_ERROR_THRESHOLD:
                self._requests_failed += 1
                self._logger.warning(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            else:
                self._logger.info(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            return response

        # Error mapping
        @app.exception_handler(DirectoryUnavailableError)
        async def directory_unavailable(_request: Request, exc: Exception) -> JSONResponse:
            return _error(str(exc), 503)

        @app.exception_handler(PeerNotFoundError)
        async def peer_not_found(_request: Request, exc: Exception) -> JSONResponse:
            return _error(str(exc), 404)

        @app.exception_handler(InvalidTargetError)
        async def invalid_target(_request: Request, exc: Exception) -> JSONResponse:
            return _error(str(exc), 400)

        @app.exception_handler(RequestValidationError)
        async def invalid_request(_request: Request, exc: Exception) -> JSONResponse:
            errors = exc.errors() if isinstance(exc, RequestValidationError) else []
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
                for err in errors
            )
            return _error(detail or "invalid request", 400)

        @app.exception_handler(TimeoutError)
        async def request_timeout(_request: Request, _exc: Exception) -> JSONResponse:
            return _error(f"request timed out after {timeout:g}s", 504)

        # Health endpoint
        @app.get("/health")
        async def health() -> dict[str, str]:
            return {"status": "ok"}

        # Status endpoints
        @app.get("/peers")
        async def list_peers() -> JSONResponse:
            report = await asyncio.wait_for(self._current_report(), timeout=timeout)
            return JSONResponse(report.to_dict())

        @app.get("/peers/{peer_id}")
        async def get_peer(peer_id: str) -> JSONResponse:
            report = await asyncio.wait_for(self._current_report(), timeout=timeout)
            status = report.find(peer_id)
            if status is None:
                raise PeerNotFoundError(peer_id)
            return JSONResponse(status.to_dict())

        # Probe endpoints
        @app.get("/peers/{peer_id}/ping")
        async def ping_peer(peer_id: str) -> JSONResponse:
            result = await asyncio.wait_for(
                self._canary.ping(peer_id, timeout=budget), timeout=timeout
            )
            return JSONResponse(result.to_dict())

        @app.post("/peers/ping")
        async def ping_ip(body: PingRequest) -> JSONResponse:
            try:
                result = await asyncio.wait_for(
                    self._canary.ping_ip(body.ip, body.type, timeout=budget), timeout=timeout
                )
            except ValueError as e:
                return _error(str(e), 400)
            return JSONResponse(result.to_dict())

        @app.post("/peers/ping-all")
        async def ping_all() -> JSONResponse:
            report = await self._canary.ping_all(deadline=budget)
            return JSONResponse(report.to_dict())

        # Directory endpoints
        @app.get("/machines")
        async def machines(all: bool = False) -> JSONResponse:  # noqa: A002
            snapshot = await asyncio.wait_for(self._canary.snapshot(), timeout=timeout)
            ssh_only = self._config.machines_ssh_only and not all
            return JSONResponse(snapshot.to_machines_dict(ssh_only=ssh_only))

        @app.get("/diagnostics")
        async def diagnostics() -> JSONResponse:
            snapshot = await asyncio.wait_for(self._canary.snapshot(), timeout=timeout)
            local = snapshot.self_peer
            if local is None:
                return _error("local node not reported by the directory", 503)
            data: dict[str, Any] = {
                "hostName": local.host_name,
                "meshIP": local.address,
                "dnsName": local.dns_name,
                "os": local.os,
                "online": local.online,
                "magicDnsSuffix": snapshot.magic_dns_suffix,
            }
            if snapshot.exit_node_id:
                data["exitNodeId"] = snapshot.exit_node_id
            return JSONResponse(data)

        return app

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        await server.serve()
