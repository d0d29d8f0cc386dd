"""
Catalog Engine

Loads product and stock records, indexes them and answers search queries.
"""

from .index_builder import CatalogIndex, IndexBuilder, price_bucket, tokenize
from .query_engine import MatchTier, QueryEngine, count_facets
from .record_store import RecordStore
from .schemas import (
    Availability,
    FacetName,
    FacetValue,
    LoadReport,
    Product,
    SearchFilters,
    SearchResult,
    SortOption,
    Stock
)

__all__ = [
    "CatalogIndex",
    "IndexBuilder",
    "price_bucket",
    "tokenize",
    "MatchTier",
    "QueryEngine",
    "count_facets",
    "RecordStore",
    "Availability",
    "FacetName",
    "FacetValue",
    "LoadReport",
    "Product",
    "SearchFilters",
    "SearchResult",
    "SortOption",
    "Stock"
]
