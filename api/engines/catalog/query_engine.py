"""
Query Engine

Free-text + faceted search over a CatalogIndex.

Matching:
    - empty query (or "*") selects every visible product (browse mode);
      include_inactive widens the pool to inactive products, never deleted ones
    - otherwise a product matches if it shares ANY token with the query, or
      if the query is a case-insensitive substring of its SKU

Ranking (relevance):
    SKU_EXACT > SKU_PREFIX > NAME_TOKEN > FIELD_TOKEN > SKU_SUBSTRING,
    ties broken by orderLastMonth descending, then SKU ascending.

Facets are always counted over the filtered, pre-pagination candidate set.
"""
import logging
import math
import time
from collections import Counter
from enum import IntEnum
from typing import Callable, Dict, Iterable, List, Optional, Set

from .index_builder import CatalogIndex, tokenize
from .params import normalize_pagination, normalize_sort
from .schemas import FacetName, FacetValue, Product, SearchFilters, SearchResult, SortOption

logger = logging.getLogger(__name__)

BROWSE_QUERIES = {"", "*"}


class MatchTier(IntEnum):
    """How a product matched the query, lowest to highest"""
    BROWSE = 0
    SKU_SUBSTRING = 1
    FIELD_TOKEN = 2
    NAME_TOKEN = 3
    SKU_PREFIX = 4
    SKU_EXACT = 5


def _orders(product: Product) -> int:
    # Products without an order count sort below a count of zero
    return product.order_last_month if product.order_last_month is not None else -1


def count_facets(index: CatalogIndex, skus: Iterable[str]) -> Dict[str, List[FacetValue]]:
    """
    Count facet values over a result set.

    Every facet name is present in the output; values are ordered by count
    descending, then value ascending.
    """
    counters = {facet: Counter() for facet in FacetName}
    for sku in skus:
        for facet, values in index.facet_values(sku).items():
            counters[facet].update(values)

    return {
        facet.value: [
            FacetValue(value=value, count=count)
            for value, count in sorted(counter.items(), key=lambda item: (-item[1], item[0]))
        ]
        for facet, counter in counters.items()
    }


class QueryEngine:
    """Search over one immutable CatalogIndex"""

    def __init__(self, index: CatalogIndex, default_page_size: int = 20, max_page_size: int = 100):
        self.index = index
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def search(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        page=1,
        page_size=None,
        sort_by=SortOption.RELEVANCE
    ) -> SearchResult:
        """
        Search the catalog.

        Args:
            query: Free text; empty or "*" browses the whole visible catalog
            filters: Structured filters (facets AND'd, values within a facet OR'd)
            page: 1-indexed page; malformed values become 1
            page_size: Results per page; malformed values become the default
            sort_by: SortOption or its string value; unknown values mean relevance

        Returns:
            SearchResult with the requested page, the full match count and
            facets for the filtered result set
        """
        start_time = time.perf_counter()
        filters = filters or SearchFilters()
        page, page_size = normalize_pagination(page, page_size, self.default_page_size, self.max_page_size)
        sort_option = normalize_sort(sort_by)

        tiers = self.match(query, include_inactive=filters.include_inactive)
        skus = self.apply_filters(set(tiers), filters)
        ranked = self.rank(skus, tiers, sort_option)

        total = len(ranked)
        offset = (page - 1) * page_size
        products = self.index.products
        page_products = [products[sku] for sku in ranked[offset:offset + page_size]]

        result = SearchResult(
            products=page_products,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
            facets=count_facets(self.index, skus),
            query_time_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )
        logger.debug(
            f"Search '{query}' matched {len(tiers)}, {total} after filters, "
            f"returning page {page} ({len(page_products)} products)"
        )
        return result

    def match(self, query: str, include_inactive: bool = False) -> Dict[str, MatchTier]:
        """Candidate SKUs for a query with the tier each one matched at"""
        pool = self.index.listed_skus if include_inactive else self.index.visible_skus
        text = (query or "").strip()
        if text in BROWSE_QUERIES:
            return {sku: MatchTier.BROWSE for sku in pool}

        lowered = text.lower()
        tokens = set(tokenize(text))

        candidates = self.index.lookup_tokens(tokens)
        # Partial SKU lookups ("ANCHW" -> "ANCHW200") match regardless of tokenization
        candidates.update(sku for sku in pool if lowered in sku.lower())

        products = self.index.products
        return {
            sku: self.classify(products[sku], lowered, tokens)
            for sku in candidates
            if sku in pool
        }

    def classify(self, product: Product, lowered_query: str, query_tokens: Set[str]) -> MatchTier:
        """Best tier at which a product matches the query"""
        sku = product.sku.lower()
        if sku == lowered_query:
            return MatchTier.SKU_EXACT
        if sku.startswith(lowered_query):
            return MatchTier.SKU_PREFIX
        if query_tokens & self.index.name_tokens.get(product.sku, frozenset()):
            return MatchTier.NAME_TOKEN
        token_index = self.index.token_index
        if any(product.sku in token_index.get(token, ()) for token in query_tokens):
            return MatchTier.FIELD_TOKEN
        return MatchTier.SKU_SUBSTRING

    def apply_filters(self, skus: Set[str], filters: SearchFilters) -> Set[str]:
        """Intersect candidates with every active filter"""
        for facet, values in filters.facet_selections().items():
            if values:
                skus &= self.index.skus_for(facet, values)
                if not skus:
                    return skus

        products = self.index.products
        if filters.has_price_range:
            low = filters.price_min if filters.price_min is not None else 0.0
            high = filters.price_max if filters.price_max is not None else math.inf
            skus = {
                sku for sku in skus
                if products[sku].price is not None and low <= products[sku].price <= high
            }

        if filters.sf_preferred is not None:
            skus = {sku for sku in skus if products[sku].is_sf_preferred == filters.sf_preferred}

        return skus

    def rank(self, skus: Iterable[str], tiers: Dict[str, MatchTier], sort_by: SortOption) -> List[str]:
        """Deterministic ordering of a result set; SKU ascending is always the final tie-break"""
        products = self.index.products

        if sort_by == SortOption.NAME_DESC:
            # Stable two-pass sort keeps SKU ascending among equal names
            by_sku = sorted(skus)
            return sorted(by_sku, key=lambda sku: products[sku].display_name.lower(), reverse=True)

        keys: Dict[SortOption, Callable[[str], tuple]] = {
            SortOption.RELEVANCE: lambda sku: (-tiers.get(sku, MatchTier.BROWSE), -_orders(products[sku]), sku),
            SortOption.POPULARITY: lambda sku: (-_orders(products[sku]), sku),
            SortOption.PRICE_ASC: lambda sku: (products[sku].price is None, products[sku].price or 0.0, sku),
            SortOption.PRICE_DESC: lambda sku: (products[sku].price is None, -(products[sku].price or 0.0), sku),
            SortOption.NAME_ASC: lambda sku: (products[sku].display_name.lower(), sku),
        }
        return sorted(skus, key=keys[sort_by])

    def autocomplete(self, prefix: str, limit: int = 8) -> List[str]:
        """Distinct display names and brands of matching products that contain the text"""
        text = (prefix or "").strip()
        if text in BROWSE_QUERIES or limit < 1:
            return []

        lowered = text.lower()
        tiers = self.match(text)
        products = self.index.products

        suggestions: List[str] = []
        seen: Set[str] = set()
        for sku in self.rank(tiers.keys(), tiers, SortOption.RELEVANCE):
            product = products[sku]
            for candidate in (product.display_name, product.brand):
                if candidate and lowered in candidate.lower() and candidate.lower() not in seen:
                    seen.add(candidate.lower())
                    suggestions.append(candidate)
                    if len(suggestions) >= limit:
                        return suggestions
        return suggestions
