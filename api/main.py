"""
FastAPI main application for the catalog search service
"""
import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

# Add api directory to path for imports when run as a script
api_dir = os.path.dirname(os.path.abspath(__file__))
if api_dir not in sys.path:
    sys.path.insert(0, api_dir)

from core.config import Settings, settings
from core.exceptions import CatalogNotReadyError, DataLoadError, NotFoundError
from core.logging import setup_logging
from middleware import RequestLoggingMiddleware
from routers import admin, products, recommendations
from schemas.products import HealthResponse
from services.cache_service import CacheSweeper
from services.catalog_service import CatalogService
from utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None, catalog: Optional[CatalogService] = None) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to use; defaults to the environment-derived settings
        catalog: Pre-built catalog service; one is created from the settings otherwise

    Returns:
        Configured FastAPI app. The catalog is loaded on startup unless it is
        already ready.
    """
    cfg = app_settings or settings
    if catalog is None:
        catalog = CatalogService(cfg)
    monitor = PerformanceMonitor()
    sweeper = CacheSweeper(catalog.cache, interval=cfg.cache_cleanup_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        # Startup
        setup_logging(cfg)
        logger.info(f"Starting {cfg.app_name} {cfg.version} ({cfg.environment})...")

        if not catalog.is_ready:
            try:
                catalog.initialize()
            except DataLoadError as e:
                # Keep serving /health; catalog endpoints answer 503 until a reload succeeds
                logger.error(f"Catalog unavailable at startup: {e}")

        sweeper.start()
        logger.info("Application started")

        yield

        # Shutdown
        logger.info(f"Shutting down {cfg.app_name}...")
        await sweeper.stop()
        catalog.shutdown()
        logger.info("Application stopped")

    app = FastAPI(
        title=cfg.app_name,
        description="Local product index with faceted search and fallback recommendations",
        version=cfg.version,
        lifespan=lifespan,
        docs_url="/docs" if cfg.environment == "development" else None,
        redoc_url="/redoc" if cfg.environment == "development" else None,
    )
    app.state.settings = cfg
    app.state.catalog = catalog
    app.state.monitor = monitor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware, monitor=monitor)

    @app.exception_handler(CatalogNotReadyError)
    async def catalog_not_ready_handler(request: Request, exc: CatalogNotReadyError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint for load balancers"""
        return HealthResponse(
            status="healthy" if catalog.is_ready else "unavailable",
            timestamp=time.time(),
            version=cfg.version,
            catalog=catalog.stats(),
            performance=monitor.get_all_stats(),
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "name": cfg.app_name,
            "version": cfg.version,
            "docs": "/docs" if cfg.environment == "development" else None,
            "endpoints": {
                "search": "/api/search",
                "autocomplete": "/api/autocomplete",
                "products": "/api/products/{sku}",
                "recommendations": "/api/recommendations",
                "reload": "/api/admin/reload",
            },
        }

    app.include_router(products.router, prefix="/api", tags=["products"])
    app.include_router(recommendations.router, prefix="/api", tags=["recommendations"])
    app.include_router(admin.router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
