"""FastAPI application entrypoint. Wiring, middleware, startup checks and error rendering."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from partsauth.api.v1 import router as v1_router
from partsauth.core.config import settings
from partsauth.core.database import SessionLocal
from partsauth.core.errors import AuthCoreError, PersistenceError, ValidationError
from partsauth.services.permissions import load_module_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Resolve permission modules once; refuse to start if the table is out of sync."""
    app.state.module_registry = None
    if settings.VALIDATE_MODULES_ON_STARTUP:
        db = SessionLocal()
        try:
            app.state.module_registry = load_module_registry(db)
        finally:
            db.close()
        logger.info(
            "Module registry validated",
            extra={"module_count": len(app.state.module_registry.ids)},
        )
    yield


app = FastAPI(
    title="Parts Marketplace Auth API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def _error_response(error: AuthCoreError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None
    return JSONResponse(status_code=error.status_code, content=error.to_body(), headers=headers)


@app.exception_handler(AuthCoreError)
async def auth_core_error_handler(request: Request, exc: AuthCoreError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = sorted(
        {".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()}
    )
    return _error_response(
        ValidationError("Missing or invalid request fields.", fields=fields)
    )


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Database text stays in the log; the client gets a generic message.
    logger.exception(
        "Persistence failure",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return _error_response(PersistenceError())


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Parts Marketplace Auth API"}
