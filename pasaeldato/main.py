import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from pasaeldato.db import Database
from pasaeldato.errors import PasaElDatoError
from pasaeldato.indexes import ensure_indexes
from pasaeldato.models.utils import format_errors
from pasaeldato.routers import communities, health, map_pins, tips

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pasa el Dato API", version="0.1.0")


@app.exception_handler(PasaElDatoError)
async def domain_exception_handler(request: Request, exc: PasaElDatoError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": type(exc).__name__},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": format_errors(exc), "type": "ValidationError"},
    )


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "type": "ConflictError"})


@app.exception_handler(PyMongoError)
async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "InternalError"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them."""
    logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__},
    )


origins = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.on_event("startup")
async def on_startup():
    handle = Database()
    await ensure_indexes(await handle.connect())
    app.state.db = handle


@app.on_event("shutdown")
async def on_shutdown():
    handle = getattr(app.state, "db", None)
    if handle is not None:
        await handle.close()


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(communities.router, prefix="/communities", tags=["communities"])
app.include_router(tips.router, prefix="/tips", tags=["tips"])
app.include_router(map_pins.router, prefix="/map", tags=["map"])
