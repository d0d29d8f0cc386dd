"""
Recommendation Engine

Similar, trending and complementary product lists computed from the local
catalog index.
"""

from .core import RecommendationEngine, normalize_categories
from .schemas import (
    ProductScore,
    RecommendationBundle,
    RecommendationResult,
    RecommendationType
)
from .ranking_service import RankingService
from .strategies import (
    COMPLEMENTARY,
    SIMILAR,
    STRATEGIES,
    TRENDING,
    RankingContext,
    RecommendationStrategy
)

__all__ = [
    "RecommendationEngine",
    "normalize_categories",
    "ProductScore",
    "RecommendationBundle",
    "RecommendationResult",
    "RecommendationType",
    "RankingService",
    "COMPLEMENTARY",
    "SIMILAR",
    "STRATEGIES",
    "TRENDING",
    "RankingContext",
    "RecommendationStrategy"
]
