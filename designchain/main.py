"""
FastAPI main application for designchain
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from designchain import __version__
from designchain.core.config import settings
from designchain.core.logging import setup_logging
from designchain.middleware import RequestLoggingMiddleware
from designchain.routers import generation, images

setup_logging(settings)
logger = logging.getLogger(__name__)


def _key_preview(key: str) -> str:
    return f"{key[:7]}...{key[-4:]}" if len(key) > 11 else "***"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting designchain API...")

    if settings.gemini_api_key:
        logger.info(f"GEMINI_API_KEY is set: {_key_preview(settings.gemini_api_key)}")
    else:
        logger.error("GEMINI_API_KEY is NOT set - generation endpoints will return 503")

    if settings.search_api_key and settings.cx_key:
        logger.info("SEARCH_API_KEY and CX_KEY are set")
    else:
        logger.warning("SEARCH_API_KEY or CX_KEY is NOT set - image search will return 503")

    yield

    logger.info("Shutting down designchain API...")


app = FastAPI(
    title=settings.app_name,
    description="Interior design generation chain API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": __version__,
        "model_configured": bool(settings.gemini_api_key),
        "image_search_configured": bool(settings.search_api_key and settings.cx_key),
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "chain": "/api/generation/chain",
            "products": "/api/generation/products",
            "scene": "/api/generation/scene",
            "images": "/api/images",
        },
    }


app.include_router(generation.router, prefix="/api")
app.include_router(images.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "designchain.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )
