"""
Recommendation API routes
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.dependencies import get_catalog
from engines.recommendation.schemas import RecommendationBundle, RecommendationResult
from services.catalog_service import CatalogService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recommendations")


@router.get("", response_model=RecommendationBundle)
async def get_recommendations(
    sku: Optional[str] = Query(None),
    category: Optional[List[str]] = Query(None),
    limit: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Similar and complementary products for a SKU plus trending products"""
    return catalog.get_recommendations(sku=sku, categories=category, limit=limit)


@router.get("/similar", response_model=RecommendationResult)
async def get_similar_products(
    sku: str = Query(..., min_length=1),
    limit: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Products sharing category or brand with the SKU"""
    return catalog.get_similar_products(sku, limit)


@router.get("/trending", response_model=RecommendationResult)
async def get_trending_products(
    category: Optional[List[str]] = Query(None),
    limit: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Most ordered products last month"""
    return catalog.get_trending_products(category, limit)


@router.get("/complementary", response_model=RecommendationResult)
async def get_complementary_products(
    sku: str = Query(..., min_length=1),
    limit: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Products from other categories that go well with the SKU"""
    return catalog.get_complementary_products(sku, limit)
