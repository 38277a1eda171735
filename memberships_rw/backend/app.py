"""FastAPI application factory for the memberships-rw host."""

import logging
from contextlib import asynccontextmanager
from time import perf_counter
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette import status
from starlette.concurrency import run_in_threadpool

from memberships_rw import __version__
from memberships_rw.backend.api import build_service_router
from memberships_rw.backend.config import ServiceConfig, get_config
from memberships_rw.backend.health import health_report, make_check
from memberships_rw.backend.service import RWService
from memberships_rw.errors import MembershipsError

log = logging.getLogger("memberships_rw.backend.app")
access_log = logging.getLogger("memberships_rw.backend.access")


def _default_services() -> dict[str, RWService]:
    from memberships_rw.backend.services import get_membership_repository

    return {"memberships": get_membership_repository()}


def create_app(
    services: dict[str, RWService] | None = None,
    config: ServiceConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Repositories to mount, keyed by URL prefix
            (default: the membership repository under /memberships)
        config: Service configuration (default: from environment)

    Returns:
        Configured FastAPI application instance.
    """
    config = config or get_config()
    services = services if services is not None else _default_services()
    checks = [make_check(name, service, config.neo_url) for name, service in services.items()]

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        log.info(
            "Starting %s (env=%s, backend=%s, url=%s, batch_size=%d)",
            config.service_name, config.env, config.graph_backend, config.neo_url, config.batch_size,
        )
        for name, service in services.items():
            try:
                await run_in_threadpool(service.initialise)
                log.info("Initialised %s", name)
            except MembershipsError as e:
                log.error("Could not initialise %s: %s", name, e)

        yield

        from memberships_rw.backend.services import shutdown_services

        shutdown_services()

    app = FastAPI(
        title=config.service_name,
        description=config.description,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Report unhandled exceptions without crashing the process."""
        log.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )

    if config.enable_request_log:
        @app.middleware("http")
        async def request_log(request: Request, call_next):
            start = perf_counter()
            response = await call_next(request)
            access_log.info(
                "%s %s %d %.1fms",
                request.method, request.url.path, response.status_code, (perf_counter() - start) * 1000,
            )
            return response

    @app.get("/__health")
    def health() -> dict:
        """Run every service check and report the results."""
        return health_report(
            checks,
            system_code=config.service_name,
            name=config.service_name,
            description=config.description,
            timeout=config.health_timeout,
        )

    @app.get("/__gtg")
    def good_to_go() -> PlainTextResponse:
        """200 when every check passes, 503 otherwise."""
        report = health()
        if report["ok"]:
            return PlainTextResponse("OK")
        failed = ", ".join(c["id"] for c in report["checks"] if not c["ok"])
        return PlainTextResponse(f"Failing checks: {failed}", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.get("/__ping")
    def ping() -> PlainTextResponse:
        return PlainTextResponse("pong")

    for name, service in services.items():
        app.include_router(build_service_router(name, service), prefix=f"/{name}", tags=[name])

    return app
