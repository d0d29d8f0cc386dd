"""
Record Store

Holds the normalized Product and Stock records loaded from the ingest
sources. Immutable once built; a reload produces a new store.
"""
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union, ValuesView

from core.exceptions import DataLoadError, ValidationError
from .ingest import (
    PRODUCT_COLUMN_ALIASES,
    has_column,
    parse_product_row,
    parse_stock_row,
    read_source,
)
from .schemas import Availability, LoadReport, Product, Stock

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RecordStore:
    """Read-only product and stock records keyed by SKU"""

    def __init__(
        self,
        products: Mapping[str, Product],
        stock: Mapping[str, Tuple[Stock, ...]],
        report: Optional[LoadReport] = None
    ):
        self._products = MappingProxyType(dict(products))
        self._stock = MappingProxyType(dict(stock))
        self.report = report or LoadReport(products_loaded=len(self._products))

    # ---------- Construction ----------

    @classmethod
    def from_sources(
        cls,
        product_source: PathLike,
        stock_source: Optional[PathLike] = None
    ) -> "RecordStore":
        """
        Load a store from ingest files.

        Args:
            product_source: CSV or JSON file with product rows
            stock_source: Optional CSV or JSON file with stock rows; may be the
                same JSON document as the product source

        Returns:
            A populated RecordStore; its `report` describes skipped rows

        Raises:
            DataLoadError: if a source is missing, malformed or yields no products
        """
        product_path = Path(product_source)
        report = LoadReport(product_source=str(product_path))

        raw_products = read_source(product_path, "products")
        if not raw_products:
            raise DataLoadError(f"Ingest source contains no product rows: {product_path}")
        if not has_column(raw_products, PRODUCT_COLUMN_ALIASES["sku"]):
            raise DataLoadError(f"Ingest source has no SKU column: {product_path}")

        report.product_rows = len(raw_products)
        products = []
        for row_number, row in enumerate(raw_products, start=1):
            try:
                products.append(parse_product_row(row))
            except ValidationError as e:
                report.skipped_product_rows += 1
                logger.debug(f"Skipping product row {row_number}: {e}")

        if not products:
            raise DataLoadError(
                f"No valid product rows in {product_path} "
                f"({report.skipped_product_rows} malformed)"
            )

        stocks = []
        if stock_source:
            stock_path = Path(stock_source)
            report.stock_source = str(stock_path)
            raw_stock = read_source(stock_path, "stock")
            if not raw_stock:
                logger.warning(f"Stock source contains no rows: {stock_path}")
            report.stock_rows = len(raw_stock)
            for row_number, row in enumerate(raw_stock, start=1):
                try:
                    stocks.append(parse_stock_row(row))
                except ValidationError as e:
                    report.skipped_stock_rows += 1
                    logger.debug(f"Skipping stock row {row_number}: {e}")

        store = cls._assemble(products, stocks, report)
        logger.info(
            f"Loaded {report.products_loaded} products and {report.stock_loaded} stock records "
            f"(skipped {report.skipped_product_rows} product rows, {report.skipped_stock_rows} stock rows, "
            f"{report.duplicate_skus} duplicate SKUs)"
        )
        return store

    @classmethod
    def from_records(cls, products: Iterable[Product], stock: Iterable[Stock] = ()) -> "RecordStore":
        """Build a store from already-parsed records (same duplicate handling as ingest)"""
        products = list(products)
        stock = list(stock)
        report = LoadReport(product_rows=len(products), stock_rows=len(stock))
        return cls._assemble(products, stock, report)

    @classmethod
    def _assemble(cls, products: List[Product], stocks: List[Stock], report: LoadReport) -> "RecordStore":
        by_sku: Dict[str, Product] = {}
        for product in products:
            if product.sku in by_sku:
                # Last loaded record wins
                report.duplicate_skus += 1
                report.duplicate_sku_values.append(product.sku)
                logger.warning(f"Duplicate SKU '{product.sku}' in ingest source; keeping the later record")
            by_sku[product.sku] = product

        stock_by_sku: Dict[str, List[Stock]] = {}
        for record in stocks:
            stock_by_sku.setdefault(record.sku, []).append(record)

        report.orphan_stock_records = sum(
            len(records) for sku, records in stock_by_sku.items() if sku not in by_sku
        )
        if report.orphan_stock_records:
            logger.info(f"{report.orphan_stock_records} stock records reference unknown SKUs")

        # Derive availability from stock when the source did not state it
        for sku, product in by_sku.items():
            records = stock_by_sku.get(sku)
            if product.availability == Availability.UNKNOWN and records:
                total = sum(record.available_quantity for record in records)
                derived = Availability.IN_STOCK if total > 0 else Availability.OUT_OF_STOCK
                by_sku[sku] = product.model_copy(update={"availability": derived})

        report.products_loaded = len(by_sku)
        report.stock_loaded = len(stocks)
        return cls(
            products=by_sku,
            stock={sku: tuple(records) for sku, records in stock_by_sku.items()},
            report=report
        )

    # ---------- Lookups ----------

    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Exact, case-sensitive lookup. Inactive and deleted products are included."""
        return self._products.get(sku)

    def all(self) -> ValuesView[Product]:
        """Every product, in load order. Each iteration starts from the beginning."""
        return self._products.values()

    def stock_for(self, sku: str) -> Tuple[Stock, ...]:
        return self._stock.get(sku, ())

    def total_available(self, sku: str) -> int:
        """Sum of available quantity across the product's stock records"""
        return sum(record.available_quantity for record in self.stock_for(sku))

    @property
    def products(self) -> Mapping[str, Product]:
        return self._products

    @property
    def stock_count(self) -> int:
        return sum(len(records) for records in self._stock.values())

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, sku: object) -> bool:
        return sku in self._products
