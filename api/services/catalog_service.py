"""
Catalog Service

Facade over the catalog and recommendation engines with an explicit
lifecycle (initialize / reload / shutdown).

Every load builds a complete CatalogSnapshot (records, index and engines)
off to the side and publishes it with a single reference assignment, so a
request always sees one consistent snapshot. Rebuilds are serialized by a
lock that readers never take. A failed reload keeps serving the previous
snapshot.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from core.config import Settings, settings as default_settings
from core.exceptions import CatalogNotReadyError, DataLoadError
from engines.catalog import (
    IndexBuilder,
    LoadReport,
    Product,
    QueryEngine,
    RecordStore,
    SearchFilters,
    SearchResult,
    Stock,
)
from engines.catalog.params import normalize_limit, normalize_pagination, normalize_sort
from engines.catalog.index_builder import CatalogIndex
from engines.recommendation import RecommendationBundle, RecommendationEngine, RecommendationResult
from engines.recommendation.core import CategoryFilter, normalize_categories
from services.cache_service import ExpiringCache, make_cache_key

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CatalogState(str, Enum):
    NOT_LOADED = "not_loaded"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything derived from one load, swapped in as a unit"""

    version: int
    store: RecordStore
    index: CatalogIndex
    query_engine: QueryEngine
    recommendation_engine: RecommendationEngine

    @property
    def report(self) -> LoadReport:
        return self.store.report


class CatalogService:
    """Search, product lookup and recommendations over the current catalog snapshot"""

    def __init__(self, app_settings: Optional[Settings] = None, cache: Optional[ExpiringCache] = None):
        self.settings = app_settings or default_settings
        self.cache = cache if cache is not None else ExpiringCache(
            default_ttl=self.settings.cache_ttl,
            sweep_batch_size=self.settings.cache_sweep_batch_size,
        )
        self._snapshot: Optional[CatalogSnapshot] = None
        self._state = CatalogState.NOT_LOADED
        self._last_error: Optional[str] = None
        self._reload_lock = threading.Lock()
        self._version = 0

    # ==================== Lifecycle ====================

    def initialize(self) -> LoadReport:
        """
        Load the configured sources and build the first snapshot

        Raises:
            DataLoadError: if the sources cannot be loaded; the service is
                left in the FAILED state and serves nothing
        """
        return self.reload()

    def reload(
        self,
        product_source: Optional[PathLike] = None,
        stock_source: Optional[PathLike] = None
    ) -> LoadReport:
        """
        Reload records from ingest sources and swap in a new snapshot

        Args:
            product_source: Overrides the configured product source
            stock_source: Overrides the configured stock source

        Returns:
            LoadReport of the new snapshot

        Raises:
            DataLoadError: if loading fails; the previous snapshot (if any) stays live
        """
        product_source = product_source or self.settings.product_source_path
        stock_source = stock_source or self.settings.stock_source_path
        logger.info(f"Loading catalog from {product_source} (stock: {stock_source or 'none'})")

        with self._reload_lock:
            try:
                store = RecordStore.from_sources(product_source, stock_source)
            except DataLoadError as e:
                self._last_error = str(e)
                if self._snapshot is None:
                    self._state = CatalogState.FAILED
                    logger.error(f"Catalog load failed: {e}")
                else:
                    logger.error(f"Catalog reload failed, keeping version {self._snapshot.version}: {e}")
                raise
            return self._publish(store)

    def load_records(self, products: Iterable[Product], stock: Iterable[Stock] = ()) -> LoadReport:
        """Replace the catalog with already-parsed records; an empty catalog is allowed"""
        with self._reload_lock:
            return self._publish(RecordStore.from_records(products, stock))

    def shutdown(self) -> None:
        """Release the snapshot and cached results"""
        with self._reload_lock:
            self._snapshot = None
            self._state = CatalogState.NOT_LOADED
        cleared = self.cache.clear()
        logger.info(f"Catalog service shut down ({cleared} cache entries cleared)")

    def _publish(self, store: RecordStore) -> LoadReport:
        """Build a snapshot from a store and make it current. Caller holds the reload lock."""
        index = IndexBuilder(store).build()
        snapshot = CatalogSnapshot(
            version=self._version + 1,
            store=store,
            index=index,
            query_engine=QueryEngine(
                index,
                default_page_size=self.settings.default_page_size,
                max_page_size=self.settings.max_page_size,
            ),
            recommendation_engine=RecommendationEngine(
                index, include_inactive=self.settings.recommend_inactive_products
            ),
        )

        self._snapshot = snapshot
        self._version = snapshot.version
        self._state = CatalogState.READY
        self._last_error = None
        cleared = self.cache.clear()

        report = store.report
        logger.info(
            f"Catalog version {snapshot.version} is live: {report.products_loaded} products, "
            f"{len(index.visible_skus)} visible, {report.skipped_total} rows skipped "
            f"({cleared} cache entries invalidated)"
        )
        return report

    # ==================== State ====================

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == CatalogState.READY and self._snapshot is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot; raises CatalogNotReadyError if nothing has loaded"""
        snapshot = self._snapshot
        if snapshot is None:
            detail = f": {self._last_error}" if self._last_error else ""
            raise CatalogNotReadyError(f"Catalog is {self._state.value}{detail}")
        return snapshot

    # ==================== Search ====================

    def search(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        page: Any = 1,
        page_size: Any = None,
        sort_by: Any = None
    ) -> SearchResult:
        """Search the current snapshot; results are cached per snapshot version"""
        snapshot = self.snapshot()
        filters = filters or SearchFilters()
        page, page_size = normalize_pagination(
            page, page_size, self.settings.default_page_size, self.settings.max_page_size
        )
        sort_option = normalize_sort(sort_by)
        query = (query or "").strip()

        key = make_cache_key(
            "search",
            snapshot.version,
            query=query.lower(),
            filters=filters.model_dump(),
            page=page,
            page_size=page_size,
            sort=sort_option.value,
        )
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = snapshot.query_engine.search(query, filters, page, page_size, sort_option)
        self.cache.set(key, result, ttl=self.settings.search_cache_ttl)
        return result

    def autocomplete(self, prefix: str, limit: Any = None) -> List[str]:
        snapshot = self.snapshot()
        limit = normalize_limit(limit, self.settings.autocomplete_limit, self.settings.max_page_size)
        key = make_cache_key("autocomplete", snapshot.version, prefix=(prefix or "").strip().lower(), limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        suggestions = snapshot.query_engine.autocomplete(prefix, limit)
        self.cache.set(key, suggestions, ttl=self.settings.search_cache_ttl)
        return suggestions

    # ==================== Products ====================

    def get_product(self, sku: str) -> Optional[Product]:
        """Exact, case-sensitive lookup; inactive and deleted products are returned too"""
        return self.snapshot().store.get_by_sku(sku)

    def get_stock(self, sku: str) -> Optional[List[Stock]]:
        """Stock records for a known SKU, None for an unknown one"""
        store = self.snapshot().store
        if sku not in store:
            return None
        return list(store.stock_for(sku))

    def total_available(self, sku: str) -> int:
        return self.snapshot().store.total_available(sku)

    # ==================== Recommendations ====================

    def get_similar_products(self, sku: str, limit: Any = None) -> RecommendationResult:
        return self._recommend("similar", sku=sku, limit=limit)

    def get_trending_products(self, categories: CategoryFilter = None, limit: Any = None) -> RecommendationResult:
        return self._recommend("trending", categories=categories, limit=limit)

    def get_complementary_products(self, sku: str, limit: Any = None) -> RecommendationResult:
        return self._recommend("complementary", sku=sku, limit=limit)

    def get_recommendations(
        self,
        sku: Optional[str] = None,
        categories: CategoryFilter = None,
        limit: Any = None
    ) -> RecommendationBundle:
        return self._recommend("bundle", sku=sku, categories=categories, limit=limit)

    def _recommend(self, kind: str, sku: Optional[str] = None, categories: CategoryFilter = None, limit: Any = None):
        snapshot = self.snapshot()
        limit = normalize_limit(
            limit, self.settings.default_recommendation_limit, self.settings.max_recommendation_limit
        )
        category_list = sorted(normalize_categories(categories))
        key = make_cache_key(f"recommend:{kind}", snapshot.version, sku=sku, categories=category_list, limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        engine = snapshot.recommendation_engine
        if kind == "similar":
            result = engine.get_similar_products(sku, limit)
        elif kind == "complementary":
            result = engine.get_complementary_products(sku, limit)
        elif kind == "trending":
            result = engine.get_trending_products(category_list, limit)
        else:
            result = engine.get_recommendations(sku, category_list, limit)

        self.cache.set(key, result, ttl=self.settings.recommendation_cache_ttl)
        return result

    # ==================== Stats ====================

    def stats(self) -> Dict[str, Any]:
        """Catalog state summary for health checks"""
        snapshot = self._snapshot
        stats: Dict[str, Any] = {
            "state": self._state.value,
            "version": snapshot.version if snapshot else None,
            "cache_entries": self.cache.size,
            "last_error": self._last_error,
        }
        if snapshot is not None:
            report = snapshot.report
            stats.update({
                "products": len(snapshot.store),
                "visible_products": len(snapshot.index.visible_skus),
                "stock_records": snapshot.store.stock_count,
                "tokens": snapshot.index.token_count,
                "skipped_rows": report.skipped_total,
                "duplicate_skus": report.duplicate_skus,
                "loaded_at": report.loaded_at.isoformat(),
                "index_built_at": snapshot.index.built_at.isoformat(),
            })
        return stats
