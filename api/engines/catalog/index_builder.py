"""
Index Builder

Derives the lookup structures used by the query and recommendation engines
from a RecordStore:

- token index: lowercase word token -> SKUs containing it
  (from sku, displayName, description, brand and keywords)
- facet maps: facet -> value -> SKUs holding that value
  (category, brand, warehouse, accset, availability, price bucket)
- per-SKU token and facet lookups used for scoring and facet counting

The index is immutable. A rebuild produces a new CatalogIndex that is
swapped in by the caller.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .record_store import RecordStore
from .schemas import FacetName, Product

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")

# (inclusive lower bound, exclusive upper bound, label)
PRICE_BUCKETS: Tuple[Tuple[float, Optional[float], str], ...] = (
    (0, 10, "0-10"),
    (10, 50, "10-50"),
    (50, 100, "50-100"),
    (100, 500, "100-500"),
    (500, None, "500+"),
)


def tokenize(text: Optional[str]) -> List[str]:
    """Split text into lowercase alphanumeric tokens"""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text.lower())


def tokenize_all(values: Iterable[Optional[str]]) -> Set[str]:
    tokens: Set[str] = set()
    for value in values:
        tokens.update(tokenize(value))
    return tokens


def price_bucket(price: Optional[float]) -> Optional[str]:
    """Facet label for a price; unpriced products have no bucket"""
    if price is None:
        return None
    for lower, upper, label in PRICE_BUCKETS:
        if price >= lower and (upper is None or price < upper):
            return label
    return None


@dataclass(frozen=True)
class CatalogIndex:
    """Read-only search structures derived from one RecordStore"""

    store: RecordStore
    visible_skus: FrozenSet[str]
    listed_skus: FrozenSet[str]
    token_index: Mapping[str, FrozenSet[str]]
    name_tokens: Mapping[str, FrozenSet[str]]
    keyword_tokens: Mapping[str, FrozenSet[str]]
    facets: Mapping[FacetName, Mapping[str, FrozenSet[str]]]
    sku_facets: Mapping[str, Mapping[FacetName, FrozenSet[str]]]
    built_at: datetime = field(default_factory=datetime.now)

    @property
    def products(self) -> Mapping[str, Product]:
        return self.store.products

    def lookup_tokens(self, tokens: Iterable[str]) -> Set[str]:
        """SKUs containing any of the tokens"""
        matches: Set[str] = set()
        for token in tokens:
            matches.update(self.token_index.get(token, ()))
        return matches

    def skus_for(self, facet: FacetName, values: Iterable[str]) -> Set[str]:
        """SKUs holding any of the facet values"""
        value_map = self.facets.get(facet, {})
        matches: Set[str] = set()
        for value in values:
            matches.update(value_map.get(value, ()))
        return matches

    def facet_values(self, sku: str) -> Mapping[FacetName, FrozenSet[str]]:
        return self.sku_facets.get(sku, {})

    @property
    def token_count(self) -> int:
        return len(self.token_index)


class IndexBuilder:
    """Builds a CatalogIndex from a RecordStore without modifying it"""

    def __init__(self, store: RecordStore):
        self.store = store

    def build(self) -> CatalogIndex:
        """Build every index structure. Safe to call repeatedly; works for an empty store."""
        start_time = time.perf_counter()

        token_index: Dict[str, Set[str]] = {}
        name_tokens: Dict[str, FrozenSet[str]] = {}
        keyword_tokens: Dict[str, FrozenSet[str]] = {}
        facets: Dict[FacetName, Dict[str, Set[str]]] = {facet: {} for facet in FacetName}
        sku_facets: Dict[str, Mapping[FacetName, FrozenSet[str]]] = {}
        visible: Set[str] = set()
        listed: Set[str] = set()

        for product in self.store.all():
            sku = product.sku
            if not product.is_deleted:
                listed.add(sku)
            if product.is_visible:
                visible.add(sku)

            keywords = tokenize_all(product.keywords)
            searchable = tokenize_all(
                [product.sku, product.display_name, product.description, product.brand]
            ) | keywords
            for token in searchable:
                token_index.setdefault(token, set()).add(sku)

            name_tokens[sku] = frozenset(tokenize(product.display_name))
            keyword_tokens[sku] = frozenset(keywords)

            values = self._facet_values(product)
            sku_facets[sku] = MappingProxyType(values)
            for facet, facet_values in values.items():
                for value in facet_values:
                    facets[facet].setdefault(value, set()).add(sku)

        index = CatalogIndex(
            store=self.store,
            visible_skus=frozenset(visible),
            listed_skus=frozenset(listed),
            token_index=MappingProxyType({token: frozenset(skus) for token, skus in token_index.items()}),
            name_tokens=MappingProxyType(name_tokens),
            keyword_tokens=MappingProxyType(keyword_tokens),
            facets=MappingProxyType({
                facet: MappingProxyType({value: frozenset(skus) for value, skus in value_map.items()})
                for facet, value_map in facets.items()
            }),
            sku_facets=MappingProxyType(sku_facets),
        )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Built catalog index: {len(self.store)} products, {len(visible)} visible, "
            f"{index.token_count} tokens, "
            + ", ".join(f"{facet.value}={len(values)}" for facet, values in index.facets.items())
            + f" ({elapsed_ms:.1f}ms)"
        )
        return index

    def _facet_values(self, product: Product) -> Dict[FacetName, FrozenSet[str]]:
        """Facet values held by one product; empty attributes are left out"""
        warehouses = {record.warehouse for record in self.store.stock_for(product.sku) if record.warehouse}
        bucket = price_bucket(product.price)
        candidates = {
            FacetName.CATEGORY: {product.category},
            FacetName.BRAND: {product.brand},
            FacetName.WAREHOUSE: warehouses,
            FacetName.ACCSET: {product.accset},
            FacetName.AVAILABILITY: {product.availability.value},
            FacetName.PRICE_BUCKET: {bucket} if bucket else set(),
        }
        return {
            facet: frozenset(value for value in values if value)
            for facet, values in candidates.items()
        }
