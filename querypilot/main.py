import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from querypilot.api.main import api_router
from querypilot.core.config import settings
from querypilot.engines.sql.pooled import dispose_default_pools
from querypilot.errors import (
    ConnectivityError,
    ErrorKind,
    ExecutionError,
    PoolClosedError,
    ValidationError,
)

logging.basicConfig(level=settings.LOG_LEVEL)
_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    tag = route.tags[0] if route.tags else "root"
    return f"{tag}-{route.name}"


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    dispose_default_pools()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: standardized error response format
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, data: dict | None = None) -> JSONResponse:
    """Standard envelope { success: false, message, data }."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": data or {}},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 in the error envelope; message is "field: problem" pairs joined by "; "."""
    problems = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{path}: {err.get('msg')}" if path else str(err.get("msg")))
    return _error(422, "; ".join(problems), {"kind": ErrorKind.VALIDATION.value})


@app.exception_handler(ValidationError)
async def sql_validation_exception_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    return _error(400, str(exc), {"kind": exc.kind.value})


@app.exception_handler(ExecutionError)
async def sql_execution_exception_handler(
    request: Request, exc: ExecutionError
) -> JSONResponse:
    status_code = 502 if isinstance(exc, ConnectivityError) else 400
    return _error(status_code, exc.message, exc.to_dict())


@app.exception_handler(PoolClosedError)
async def pool_closed_exception_handler(
    request: Request, exc: PoolClosedError
) -> JSONResponse:
    return _error(503, exc.message, exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    _logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error"
    if settings.ENVIRONMENT == "local":
        message = f"{message}: {exc}"
    return _error(500, message)


# Browser frontends (FRONTEND_HOST, BACKEND_CORS_ORIGINS)
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


@app.get(
    "/", response_class=PlainTextResponse, include_in_schema=False, tags=["root"]
)
def root() -> str:
    return "SQL execution API is running."


app.include_router(api_router, prefix=settings.API_V1_STR)
