"""
Ranking Service for Recommendation Lists

One ranking routine shared by every recommendation type; the strategy
decides which candidates qualify, their order and their relevance.
"""
import logging
from typing import Iterable, List, Mapping, Tuple

from engines.catalog.schemas import Product
from .schemas import ProductScore
from .strategies import RankingContext, RecommendationStrategy, Signals, collect_signals

logger = logging.getLogger(__name__)


class RankingService:
    """Service for scoring and ranking recommendation candidates"""

    def __init__(self, keyword_tokens: Mapping[str, frozenset]):
        self.keyword_tokens = keyword_tokens

    def rank(
        self,
        strategy: RecommendationStrategy,
        context: RankingContext,
        candidates: Iterable[Product],
        limit: int
    ) -> List[Tuple[Product, ProductScore]]:
        """
        Rank candidates for one recommendation type

        Args:
            strategy: Recommendation policy
            context: Source product, its keywords and category restriction
            candidates: Candidate pool (already restricted to eligible products)
            limit: Maximum number of products to return

        Returns:
            Top products in rank order, each with its score breakdown
        """
        if limit < 1:
            return []

        accepted: List[Tuple[Product, Signals]] = []
        for product in candidates:
            signals = collect_signals(context, product, self.keyword_tokens.get(product.sku, frozenset()))
            if strategy.accepts(context, product, signals):
                accepted.append((product, signals))

        max_orders = max((signals.orders or 0 for _, signals in accepted), default=0)
        accepted.sort(key=lambda item: strategy.rank_key(item[0], item[1]))

        ranked = []
        for product, signals in accepted[:limit]:
            relevance = max(0.0, min(strategy.relevance(context, signals, max_orders), 1.0))
            ranked.append((product, ProductScore(
                sku=product.sku,
                relevance=round(relevance, 4),
                shared_keywords=signals.shared_keywords,
                attribute_match=signals.attribute_match,
                order_last_month=signals.orders,
            )))

        logger.debug(
            f"Ranked {strategy.kind.value}: {len(accepted)} candidates accepted, returning {len(ranked)}"
        )
        return ranked
