"""
Search and product API routes
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.dependencies import get_catalog
from engines.catalog.params import normalize_price
from engines.catalog.schemas import SearchFilters, SearchResult
from schemas.products import AutocompleteResponse, ProductDetailResponse, StockResponse
from services.catalog_service import CatalogService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/search", response_model=SearchResult)
async def search_products(
    q: str = Query("", description="Free text; empty or * browses the catalog"),
    category: Optional[List[str]] = Query(None),
    brand: Optional[List[str]] = Query(None),
    warehouse: Optional[List[str]] = Query(None),
    accset: Optional[List[str]] = Query(None),
    availability: Optional[List[str]] = Query(None),
    price_bucket: Optional[List[str]] = Query(None),
    price_min: Optional[str] = Query(None),
    price_max: Optional[str] = Query(None),
    sf_preferred: Optional[bool] = Query(None),
    include_inactive: bool = Query(False),
    # Raw strings so malformed values fall back to defaults instead of a 422
    page: Optional[str] = Query(None),
    page_size: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Faceted product search"""
    filters = SearchFilters(
        category=category,
        brand=brand,
        warehouse=warehouse,
        accset=accset,
        availability=availability,
        price_bucket=price_bucket,
        price_min=normalize_price("price_min", price_min),
        price_max=normalize_price("price_max", price_max),
        sf_preferred=sf_preferred,
        include_inactive=include_inactive,
    )
    return catalog.search(q, filters, page=page, page_size=page_size, sort_by=sort_by)


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    q: str = Query(""),
    limit: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog)
):
    """Display name and brand suggestions for a partial query"""
    return AutocompleteResponse(query=q, suggestions=catalog.autocomplete(q, limit))


@router.get("/products/{sku}", response_model=ProductDetailResponse)
async def get_product(sku: str, catalog: CatalogService = Depends(get_catalog)):
    """Get a product by exact SKU"""
    product = catalog.get_product(sku)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product '{sku}' not found")

    return ProductDetailResponse(
        product=product,
        stock=catalog.get_stock(sku) or [],
        total_available=catalog.total_available(sku),
    )


@router.get("/products/{sku}/stock", response_model=StockResponse)
async def get_product_stock(sku: str, catalog: CatalogService = Depends(get_catalog)):
    """Stock records per warehouse for a product"""
    stock = catalog.get_stock(sku)
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Product '{sku}' not found")

    return StockResponse(sku=sku, stock=stock, total_available=catalog.total_available(sku))
