"""
Pydantic schemas for catalog API endpoints
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from engines.catalog.schemas import LoadReport, Product, Stock


class ProductDetailResponse(BaseModel):
    """Single product detail response"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    product: Product
    stock: List[Stock] = Field(default_factory=list)
    total_available: int = 0


class StockResponse(BaseModel):
    """Stock records for one product"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    sku: str
    stock: List[Stock] = Field(default_factory=list)
    total_available: int = 0


class AutocompleteResponse(BaseModel):
    query: str
    suggestions: List[str] = Field(default_factory=list)


class ReloadResponse(BaseModel):
    status: str
    version: Optional[int] = None
    report: LoadReport


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: float
    version: str
    catalog: Dict[str, Any] = Field(default_factory=dict)
    performance: Dict[str, Dict[str, float]] = Field(default_factory=dict)
