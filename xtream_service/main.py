from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from xtream_service import __version__
from xtream_service.config import settings, setup_logging
from xtream_service.services import get_session

from xtream_service.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Xtream Session Service...")
    get_session()
    logger.info("Xtream Session Service started successfully")

    yield

    logger.info("Shutting down Xtream Session Service...")

    try:
        await get_session().logout()
    except Exception as e:
        logger.error(f"Error during session shutdown: {e}", exc_info=True)

    logger.info("Xtream Session Service stopped")


app = FastAPI(
    title="Xtream Session Service",
    version=__version__,
    lifespan=lifespan
)

app.include_router(main_router)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    # Submitted input may contain the password; keep it out of logs and responses
    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
        }
        errors.append(error_dict)

    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {errors}")

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )


def run() -> None:
    """Console entry point: serve the facade with uvicorn"""
    uvicorn.run("xtream_service.main:app", host=settings.api_host, port=settings.api_port)
