"""FastAPI application entry point.

Run with: uvicorn src.main:app --port 3001
or:       python -m src.main
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.me_common.context import AppContext, get_context
from src.me_common.database import build_engine, build_session_factory
from src.me_common.errors import AppError, BadRequestError, StoreError
from src.me_common.response import error_response
from src.me_events.api.router import router as webhook_router
from src.me_gateway.middleware.request_log import RequestLogMiddleware
from src.me_matching.api.router import router as match_router
from src.me_order.api.router import router as order_router
from src.me_signature.application.verifier import SignatureVerifier
from src.me_signature.infrastructure.account_client import AccountClient

logger = logging.getLogger(__name__)


def build_context() -> AppContext:
    engine = build_engine(settings)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        verifier=SignatureVerifier(AccountClient(settings.RPC_URL)),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build shared context, verify DB. Shutdown: dispose pool."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    context = build_context()
    async with context.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info(
        "Matching engine ready on chain %s (reservation ttl %ss)",
        settings.CHAIN_ID,
        settings.RESERVATION_TTL_SECS,
    )
    app.state.context = context
    yield
    await context.engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_json(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, _request_id(request))
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # 422 is reserved for signature / expiry rejection.
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        detail = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        detail = "Malformed request"
    return _error_json(request, BadRequestError(detail))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return _error_json(request, StoreError())


app.include_router(order_router)
app.include_router(match_router)
app.include_router(webhook_router)


@app.get("/health")
async def health(ctx: AppContext = Depends(get_context)) -> dict[str, object]:
    try:
        async with ctx.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_ok = True
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Health check: database unreachable: %s", exc)
        db_ok = False
    return {
        "ok": db_ok,
        "db": "connected" if db_ok else "unreachable",
        "version": ctx.settings.APP_VERSION,
    }


def run() -> None:
    uvicorn.run("src.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
