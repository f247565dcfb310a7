from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pika.api.routes import get_extraction_cache, router as api_router
from pika.config.settings import get_settings
from pika.storage.cache import ExtractionCache
from pika.storage.database import init_db
from pika.utils.logging_config import setup_logging


# Setup logging
logger = setup_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name}...")
    init_db()
    logger.info("Database initialized")
    logger.info(f"LLM endpoint: {settings.llm_endpoint or 'direct provider APIs'}")
    yield
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Student planning dashboard: assignments, weekly study planner, grade projection and syllabus import",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1", tags=["planner"])


@app.get("/health", tags=["health"])
def health_check(cache: Optional[ExtractionCache] = Depends(get_extraction_cache)):
    """
    Health check endpoint for monitoring and load balancers.

    An unreachable extraction cache only degrades the service: extraction
    falls back to calling the model directly.
    """
    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "ok" if cache.health_check() else "unavailable"
    return {
        "status": "degraded" if cache_status == "unavailable" else "ok",
        "app": settings.app_name,
        "version": "1.0.0",
        "cache": cache_status,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
