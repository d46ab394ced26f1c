"""HTTP query service exposing the correlation engine via FastAPI.

``GET /query.json?ip=<address>&timestamp=<YYYY-MM-DD>`` answers one lookup:

- input problems return 400 with ``{"error": ..., "outcome": ...}``;
- a storage failure returns 500 with ``{"error": "Database error."}``;
- every other outcome returns 200 with the response document and an
  ``X-Query-Outcome`` header naming the outcome.

The HTTP server runs as a background ``asyncio.Task`` alongside the
standard ``run_forever()`` cycle. Each ``run()`` cycle logs request
statistics and updates Prometheus counters.

See Also:
    [lookup][relaytrace.services.query.lookup]: The engine behind
        ``/query.json``.
    [BaseService][relaytrace.core.base_service.BaseService]: Abstract
        base class providing lifecycle and metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import Counter
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relaytrace.core.base_service import BaseService
from relaytrace.core.metrics import QUERY_DURATION_SECONDS
from relaytrace.models import QueryOutcome, QueryResult
from relaytrace.models.constants import ServiceName
from relaytrace.services.query import lookup

from .configs import ApiConfig


if TYPE_CHECKING:
    from types import TracebackType

    from relaytrace.core.store import Store

_HTTP_ERROR_THRESHOLD = 400

OUTCOME_HEADER = "X-Query-Outcome"

INPUT_ERRORS: dict[QueryOutcome, str] = {
    QueryOutcome.NO_ADDRESS: "Missing ip parameter.",
    QueryOutcome.NO_DATE: "Missing timestamp parameter.",
    QueryOutcome.INVALID_ADDRESS: "Invalid ip parameter.",
    QueryOutcome.INVALID_DATE: "Invalid timestamp parameter.",
    QueryOutcome.DATE_TOO_RECENT: "Timestamp too recent.",
}


def render_result(result: QueryResult) -> JSONResponse:
    """Map a lookup result to its HTTP response."""
    outcome = result.outcome
    if outcome in INPUT_ERRORS:
        return JSONResponse(
            {"error": INPUT_ERRORS[outcome], "outcome": outcome.value},
            status_code=400,
        )
    if outcome is QueryOutcome.SERVER_PROBLEM or result.response is None:
        return JSONResponse(
            {"error": "Database error.", "outcome": QueryOutcome.SERVER_PROBLEM.value},
            status_code=500,
        )
    return JSONResponse(
        result.response.to_dict(),
        headers={OUTCOME_HEADER: outcome.value},
    )


class Api(BaseService[ApiConfig]):
    """HTTP service answering address/date lookups.

    Lifecycle:
        1. ``__aenter__``: build the FastAPI app and start uvicorn.
        2. ``run()``: log statistics and update Prometheus counters.
        3. ``__aexit__``: cancel the HTTP server task.

    Note:
        Rate limiting is left to the reverse proxy in front of the service.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.API
    CONFIG_CLASS: ClassVar[type[ApiConfig]] = ApiConfig

    def __init__(self, store: Store, config: ApiConfig | None = None) -> None:
        super().__init__(store=store, config=config)
        self._config: ApiConfig
        self._server_task: asyncio.Task[None] | None = None
        self._requests_total = 0
        self._requests_failed = 0
        self._outcomes: Counter[QueryOutcome] = Counter()

    async def __aenter__(self) -> Api:
        await super().__aenter__()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "http_server_started",
            host=self._config.host,
            port=self._config.port,
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
        """Log request stats and update Prometheus counters."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        # Snapshot and reset per-cycle counters
        total = self._requests_total
        failed = self._requests_failed
        outcomes = self._outcomes
        self._requests_total = 0
        self._requests_failed = 0
        self._outcomes = Counter()

        self._logger.info(
            "cycle_stats",
            requests_total=total,
            requests_failed=failed,
            **{f"outcome_{outcome.value}": count for outcome, count in sorted(outcomes.items())},
        )
        self.inc_counter("requests_total", total)
        self.inc_counter("requests_failed", failed)
        for outcome, count in outcomes.items():
            self.inc_counter(f"outcome_{outcome.value}", count)

    async def _query(self, ip: str | None, timestamp: str | None) -> Response:
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(
                lookup(self._store, ip, timestamp),
                timeout=self._config.request_timeout,
            )
        except TimeoutError:
            self._logger.warning("query_timeout", ip=ip, timestamp=timestamp)
            return JSONResponse({"error": "Query timeout."}, status_code=504)

        duration = time.monotonic() - start
        self._outcomes[result.outcome] += 1
        if self._config.metrics.enabled:
            QUERY_DURATION_SECONDS.labels(outcome=result.outcome.value).observe(duration)
        self._logger.debug(
            "query_completed",
            outcome=result.outcome,
            matches=len(result.response.matches) if result.response else 0,
            duration_ms=round(duration * 1000, 1),
        )
        return render_result(result)

    def _build_app(self) -> FastAPI:
        """Construct the FastAPI application."""
        app = FastAPI(title="relaytrace")

        if self._config.cors_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self._config.cors_origins,
                allow_methods=["GET"],
                allow_headers=["*"],
                expose_headers=[OUTCOME_HEADER],
            )

        # Request logging middleware
        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            try:
                response: Response = await call_next(request)
            except Exception as exc:  # HTTP request error boundary
                self._logger.error(
                    "unhandled_error",
                    error=str(exc),
                    path=request.url.path,
                )
                response = JSONResponse(
                    {"error": "Internal server error"},
                    status_code=500,
                )
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

        @app.get("/health")
        async def health() -> dict[str, str]:
            return {"status": "ok"}

        @app.get("/query.json")
        async def query(ip: str | None = None, timestamp: str | None = None) -> Response:
            return await self._query(ip, timestamp)

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
