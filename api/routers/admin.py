"""
Admin endpoints for catalog maintenance.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from core.dependencies import get_catalog
from core.exceptions import DataLoadError
from schemas.products import ReloadResponse
from services.catalog_service import CatalogService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/reload", response_model=ReloadResponse)
async def reload_catalog(catalog: CatalogService = Depends(get_catalog)):
    """
    Reload the configured ingest sources and swap in a new catalog.

    On failure the previous catalog keeps serving and 503 is returned.
    """
    try:
        report = await run_in_threadpool(catalog.reload)
    except DataLoadError as e:
        raise HTTPException(status_code=503, detail=f"Catalog reload failed: {e}")

    logger.info(f"Catalog reloaded via admin endpoint: {report.products_loaded} products")
    return ReloadResponse(status="reloaded", version=catalog.snapshot().version, report=report)
