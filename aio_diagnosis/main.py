import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from aio_diagnosis.config import settings
from aio_diagnosis.database import init_db
from aio_diagnosis.routers.admin import router as admin_router
from aio_diagnosis.routers.analyze import limiter, router as analyze_router
from aio_diagnosis.routers.diagnoses import router as diagnoses_router

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Crawls a website, scores it against AI-search-optimization signals, "
        "and cross-checks the score against live generative-search citations."
    ),
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(analyze_router)
app.include_router(diagnoses_router)
app.include_router(admin_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from AIO Diagnosis"}
