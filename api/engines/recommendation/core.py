"""
Recommendation Engine Core

Main orchestration class for similar, trending and complementary products.
"""
import logging
from typing import Iterable, List, Optional, Union

from core.exceptions import NotFoundError
from engines.catalog.index_builder import CatalogIndex
from engines.catalog.schemas import Product
from .ranking_service import RankingService
from .schemas import RecommendationBundle, RecommendationResult
from .strategies import COMPLEMENTARY, SIMILAR, TRENDING, RankingContext, RecommendationStrategy

logger = logging.getLogger(__name__)

CategoryFilter = Optional[Union[str, Iterable[str]]]


def normalize_categories(categories: CategoryFilter) -> frozenset:
    """Category filter as a set; a single string is one category, blanks are dropped"""
    if categories is None:
        return frozenset()
    if isinstance(categories, str):
        categories = [categories]
    return frozenset(category.strip() for category in categories if category and category.strip())


class RecommendationEngine:
    """
    Main Recommendation Engine

    Computes recommendation lists from one CatalogIndex. Every operation is
    read-only with respect to the index and the records behind it.
    """

    def __init__(self, index: CatalogIndex, include_inactive: bool = False):
        """
        Args:
            index: Catalog index to recommend from
            include_inactive: Whether inactive (but not deleted) products
                may appear in candidate pools
        """
        self.index = index
        self.include_inactive = include_inactive
        self.ranking_service = RankingService(index.keyword_tokens)

    def get_similar_products(self, sku: str, limit: int = 10) -> RecommendationResult:
        """Products sharing category or brand with the source, ranked by shared keywords"""
        return self._recommend(SIMILAR, sku=sku, limit=limit)

    def get_trending_products(self, categories: CategoryFilter = None, limit: int = 10) -> RecommendationResult:
        """Most ordered products last month, optionally within categories"""
        return self._recommend(TRENDING, categories=categories, limit=limit)

    def get_complementary_products(self, sku: str, limit: int = 10) -> RecommendationResult:
        """Products from other categories sharing keywords with the source"""
        return self._recommend(COMPLEMENTARY, sku=sku, limit=limit)

    def get_recommendations(
        self,
        sku: Optional[str] = None,
        categories: CategoryFilter = None,
        limit: int = 10
    ) -> RecommendationBundle:
        """
        Get the recommendation lists for a page

        Similar and complementary lists are included when a SKU is given;
        trending is always computed. Empty lists are dropped.
        """
        results: List[RecommendationResult] = []
        if sku:
            results.append(self.get_similar_products(sku, limit))
            results.append(self.get_complementary_products(sku, limit))
        results.append(self.get_trending_products(categories, limit))

        return RecommendationBundle(sku=sku, results=[result for result in results if not result.is_empty])

    def _recommend(
        self,
        strategy: RecommendationStrategy,
        sku: Optional[str] = None,
        categories: CategoryFilter = None,
        limit: int = 10
    ) -> RecommendationResult:
        try:
            source = self._source(sku) if strategy.requires_source else None
        except NotFoundError as e:
            logger.info(f"No {strategy.kind.value} recommendations: {e}")
            return RecommendationResult(type=strategy.kind, source_sku=sku, reason="Product not found")

        context = RankingContext(
            source=source,
            source_keywords=self.index.keyword_tokens.get(source.sku, frozenset()) if source else frozenset(),
            categories=normalize_categories(categories),
        )
        ranked = self.ranking_service.rank(strategy, context, self._candidate_pool(), limit)
        if not ranked:
            return RecommendationResult(
                type=strategy.kind,
                source_sku=sku,
                reason=f"No {strategy.kind.value} products found",
            )

        scores = [score for _, score in ranked]
        return RecommendationResult(
            type=strategy.kind,
            products=[product for product, _ in ranked],
            score=round(sum(score.relevance for score in scores) / len(scores), 4),
            reason=strategy.reason(context),
            source_sku=sku,
            scores=scores,
        )

    def _source(self, sku: Optional[str]) -> Product:
        product = self.index.store.get_by_sku(sku) if sku else None
        if product is None:
            raise NotFoundError(sku or "")
        return product

    def _candidate_pool(self) -> Iterable[Product]:
        """Active, non-deleted products; inactive ones too when the policy allows"""
        skus = self.index.listed_skus if self.include_inactive else self.index.visible_skus
        products = self.index.products
        return (products[sku] for sku in skus)
