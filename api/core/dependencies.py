"""
FastAPI dependencies
"""
from fastapi import Request

from services.catalog_service import CatalogService


def get_catalog(request: Request) -> CatalogService:
    """Catalog service owned by the running application"""
    return request.app.state.catalog
