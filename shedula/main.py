import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from shedula.api.v1.router import api_router
from shedula.core.config import settings
from shedula.core.exceptions import SchedulingError
from shedula.core.seed import seed_demo_data

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup: optional demo doctors
    await seed_demo_data()
    yield


app = FastAPI(
    title="Shedula API",
    description="Doctor appointment scheduling: slot calendar, booking and appointment lifecycle",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


class ErrorResponse(BaseModel):
    error: str
    detail: str
    code: str


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Turn domain errors into JSON responses with their own status code."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            code=exc.code,
        ).model_dump(),
    )


@app.get("/health")
async def health():
    return {"status": "ok", "service": "shedula-api", "version": "0.1.0"}
