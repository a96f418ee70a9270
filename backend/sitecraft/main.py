from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sitecraft.config import settings
from sitecraft.database import init_db
from sitecraft.errors import AppError, format_error_response
from sitecraft.logging_config import configure_logging
from sitecraft.routes import api_router
from sitecraft.services.task_service import TaskService

load_dotenv()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    task_service = TaskService()

    app.state.http_client = http_client
    app.state.task_service = task_service
    logger.info("app_started", platform_domain=settings.platform_domain)

    try:
        yield
    finally:
        await task_service.shutdown()
        await http_client.aclose()
        logger.info("app_stopped")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    body, status_code = format_error_response(exc)
    if status_code >= 500:
        logger.warning("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(body, status_code=status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    body, status_code = format_error_response(exc)
    return JSONResponse(body, status_code=status_code)


def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.json_logs)

    app = FastAPI(
        title="Sitecraft Publisher Backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
