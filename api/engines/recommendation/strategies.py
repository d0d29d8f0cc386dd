"""
Recommendation strategies

Each recommendation type is a policy object: a candidate predicate, a sort
key and a relevance function. The ranking routine in ranking_service.py is
shared by all of them.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from engines.catalog.schemas import Product
from .schemas import RecommendationType


@dataclass(frozen=True)
class RankingContext:
    """What a strategy knows about the request"""

    source: Optional[Product] = None
    source_keywords: FrozenSet[str] = frozenset()
    categories: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Signals:
    """Per-candidate inputs to ranking"""

    shared_keywords: int = 0
    attribute_match: int = 0
    orders: Optional[int] = None


def collect_signals(context: RankingContext, product: Product, keywords: FrozenSet[str]) -> Signals:
    """Compare a candidate with the request source"""
    source = context.source
    attribute_match = 0
    if source is not None:
        if source.category and product.category == source.category:
            attribute_match += 1
        if source.brand and product.brand == source.brand:
            attribute_match += 1
    return Signals(
        shared_keywords=len(context.source_keywords & keywords),
        attribute_match=attribute_match,
        orders=product.order_last_month,
    )


@dataclass(frozen=True)
class RecommendationStrategy:
    """
    Policy for one recommendation type.

    accepts: candidate predicate, called for every product in the pool
    rank_key: ascending sort key; must end with the SKU for a total order
    relevance: per-item score in [0, 1]; receives the largest order count
        among accepted candidates for popularity normalization
    """

    kind: RecommendationType
    accepts: Callable[[RankingContext, Product, Signals], bool]
    rank_key: Callable[[Product, Signals], Tuple]
    relevance: Callable[[RankingContext, Signals, int], float]
    requires_source: bool = True
    reason: Callable[[RankingContext], str] = field(default=lambda context: "")


def _label(product: Optional[Product]) -> str:
    if product is None:
        return ""
    return product.display_name or product.sku


def _keyword_overlap(context: RankingContext, signals: Signals) -> float:
    if not context.source_keywords:
        return 0.0
    return min(signals.shared_keywords / len(context.source_keywords), 1.0)


# ==================== Similar ====================


def _similar_accepts(context: RankingContext, product: Product, signals: Signals) -> bool:
    return product.sku != context.source.sku and signals.attribute_match > 0


def _similar_relevance(context: RankingContext, signals: Signals, max_orders: int) -> float:
    if not context.source_keywords:
        return signals.attribute_match / 2
    return 0.8 * _keyword_overlap(context, signals) + 0.2 * (signals.attribute_match / 2)


SIMILAR = RecommendationStrategy(
    kind=RecommendationType.SIMILAR,
    accepts=_similar_accepts,
    rank_key=lambda product, signals: (-signals.shared_keywords, -signals.attribute_match, product.sku),
    relevance=_similar_relevance,
    reason=lambda context: f"Same category or brand as {_label(context.source)}, ranked by shared keywords",
)


# ==================== Trending ====================


def _trending_accepts(context: RankingContext, product: Product, signals: Signals) -> bool:
    if not context.categories:
        return True
    return product.category in context.categories or product.web_category in context.categories


def _trending_relevance(context: RankingContext, signals: Signals, max_orders: int) -> float:
    if not signals.orders or max_orders <= 0:
        return 0.0
    return min(signals.orders / max_orders, 1.0)


def _trending_reason(context: RankingContext) -> str:
    if context.categories:
        return f"Most ordered last month in {', '.join(sorted(context.categories))}"
    return "Most ordered last month"


TRENDING = RecommendationStrategy(
    kind=RecommendationType.TRENDING,
    accepts=_trending_accepts,
    # Products without an order count rank last
    rank_key=lambda product, signals: (signals.orders is None, -(signals.orders or 0), product.sku),
    relevance=_trending_relevance,
    requires_source=False,
    reason=_trending_reason,
)


# ==================== Complementary ====================


def _complementary_accepts(context: RankingContext, product: Product, signals: Signals) -> bool:
    return (
        product.sku != context.source.sku
        and product.category != context.source.category
        and signals.shared_keywords > 0
    )


COMPLEMENTARY = RecommendationStrategy(
    kind=RecommendationType.COMPLEMENTARY,
    accepts=_complementary_accepts,
    rank_key=lambda product, signals: (-signals.shared_keywords, product.sku),
    relevance=lambda context, signals, max_orders: _keyword_overlap(context, signals),
    reason=lambda context: f"Goes well with {_label(context.source)}: other categories sharing its keywords",
)


STRATEGIES: Dict[RecommendationType, RecommendationStrategy] = {
    strategy.kind: strategy for strategy in (SIMILAR, TRENDING, COMPLEMENTARY)
}
