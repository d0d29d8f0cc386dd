"""
Pydantic schemas for Recommendation Engine
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from engines.catalog.schemas import Product


class RecommendationType(str, Enum):
    """Kinds of recommendation lists"""
    SIMILAR = "similar"
    TRENDING = "trending"
    COMPLEMENTARY = "complementary"


class ProductScore(BaseModel):
    """Scoring breakdown for a single recommended product"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    sku: str
    relevance: float = Field(ge=0.0, le=1.0)
    shared_keywords: int = Field(default=0, ge=0)
    attribute_match: int = Field(default=0, ge=0, description="Shared category and/or brand with the source")
    order_last_month: Optional[int] = None


class RecommendationResult(BaseModel):
    """Ranked recommendation list with a justification and confidence score"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    type: RecommendationType
    products: List[Product] = Field(default_factory=list)
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str = ""
    source_sku: Optional[str] = None
    scores: List[ProductScore] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.products


class RecommendationBundle(BaseModel):
    """Several recommendation lists for one page"""

    sku: Optional[str] = None
    results: List[RecommendationResult] = Field(default_factory=list)
