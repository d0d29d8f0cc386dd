"""
Tests for ingest parsing and the RecordStore.

Run with: pytest api/tests/test_record_store.py -v
"""
import pytest

from core.exceptions import DataLoadError, ValidationError
from engines.catalog import Availability, Product, RecordStore, Stock
from engines.catalog.ingest import (
    parse_availability,
    parse_bool,
    parse_image_url,
    parse_keywords,
    parse_product_row,
    parse_stock_row,
)


class TestRowParsing:
    """Tests for single-row normalization"""

    @pytest.mark.unit
    def test_product_row_with_canonical_headers(self):
        product = parse_product_row({
            "sku": " ANCHW200 ",
            "displayName": "Anchovy Whole 200g",
            "isSFPreferred": "Yes",
            "price": "12.50",
            "keywords": "anchovy; salted | fish",
            "orderLastMonth": "120",
        })

        assert product.sku == "ANCHW200"
        assert product.display_name == "Anchovy Whole 200g"
        assert product.is_sf_preferred is True
        assert product.price == 12.5
        assert product.keywords == ("anchovy", "salted", "fish")
        assert product.order_last_month == 120
        assert product.is_active is True
        assert product.is_deleted is False

    @pytest.mark.unit
    def test_product_row_with_crm_headers(self):
        product = parse_product_row({
            "ITEM_NO__c": "CAPERS01",
            "BRAND__c": "Castillo",
            "Category__c": "Pantry",
            "IsActive": "false",
            "IsDeleted": "1",
        })

        assert product.sku == "CAPERS01"
        assert product.brand == "Castillo"
        assert product.category == "Pantry"
        assert product.is_active is False
        assert product.is_deleted is True

    @pytest.mark.unit
    def test_blank_price_means_unpriced(self):
        assert parse_product_row({"sku": "X1", "price": ""}).price is None

    @pytest.mark.unit
    @pytest.mark.parametrize("row", [
        {"sku": ""},
        {"displayName": "No SKU column"},
        {"sku": "X1", "price": "abc"},
        {"sku": "X1", "price": "-3"},
        {"sku": "X1", "orderLastMonth": "1.5"},
        {"sku": "X1", "orderLastMonth": "-1"},
        "not a dict",
    ])
    def test_malformed_product_rows_raise(self, row):
        with pytest.raises(ValidationError):
            parse_product_row(row)

    @pytest.mark.unit
    def test_stock_row(self):
        stock = parse_stock_row({"Product_Code__c": "ANCHW200", "Warehouse__c": "SYD", "Available_Quantity__c": "40.0"})
        assert stock == Stock(sku="ANCHW200", warehouse="SYD", available_quantity=40)

    @pytest.mark.unit
    @pytest.mark.parametrize("row", [
        {"sku": "A", "warehouse": ""},
        {"sku": "", "warehouse": "SYD"},
        {"sku": "A", "warehouse": "SYD", "availableQuantity": "-2"},
        {"sku": "A", "warehouse": "SYD", "availableQuantity": "lots"},
    ])
    def test_malformed_stock_rows_raise(self, row):
        with pytest.raises(ValidationError):
            parse_stock_row(row)

    @pytest.mark.unit
    def test_availability_synonyms(self):
        assert parse_availability("in stock") == Availability.IN_STOCK
        assert parse_availability("Not Available") == Availability.OUT_OF_STOCK
        assert parse_availability("OUT_OF_STOCK") == Availability.OUT_OF_STOCK
        assert parse_availability("maybe") == Availability.UNKNOWN
        assert parse_availability(None) == Availability.UNKNOWN

    @pytest.mark.unit
    def test_bool_parsing_defaults(self):
        assert parse_bool(None, default=True) is True
        assert parse_bool("", default=False) is False
        assert parse_bool("ON", default=False) is True
        assert parse_bool("0", default=True) is False

    @pytest.mark.unit
    def test_image_url_from_img_tag(self):
        html = '<img alt="x" src="https://cdn.example.com/a.jpg" width="10">'
        assert parse_image_url(html) == "https://cdn.example.com/a.jpg"
        assert parse_image_url("https://cdn.example.com/b.jpg") == "https://cdn.example.com/b.jpg"
        assert parse_image_url("<img alt='none'>") == ""

    @pytest.mark.unit
    def test_keywords_from_list(self):
        assert parse_keywords(["fish", " ", "oil"]) == ("fish", "oil")


class TestRecordStoreLoading:
    """Tests for loading a RecordStore from ingest files"""

    @pytest.mark.unit
    def test_load_csv_sources(self, store):
        report = store.report

        assert len(store) == 8
        assert report.product_rows == 10
        assert report.products_loaded == 8
        assert report.skipped_product_rows == 2
        assert report.stock_rows == 7
        assert report.stock_loaded == 6
        assert report.skipped_stock_rows == 1
        assert report.orphan_stock_records == 1
        assert report.duplicate_skus == 0

    @pytest.mark.unit
    def test_availability_derived_from_stock(self, store):
        assert store.get_by_sku("ANCHW200").availability == Availability.IN_STOCK
        assert store.get_by_sku("ANCHW150").availability == Availability.OUT_OF_STOCK
        assert store.get_by_sku("SARDN120").availability == Availability.IN_STOCK
        # Explicit availability is never overridden
        assert store.get_by_sku("CAPERS01").availability == Availability.OUT_OF_STOCK

    @pytest.mark.unit
    def test_combined_json_document(self, combined_json):
        store = RecordStore.from_sources(combined_json, combined_json)

        assert set(store.products) == {"ANCHW200", "ANCHW150"}
        assert store.report.skipped_product_rows == 2
        assert store.get_by_sku("ANCHW150").keywords == ("anchovy", "oil")
        assert store.total_available("ANCHW150") == 7
        assert store.get_by_sku("ANCHW150").availability == Availability.IN_STOCK

    @pytest.mark.unit
    def test_stock_source_is_optional(self, product_csv):
        store = RecordStore.from_sources(product_csv)
        assert store.stock_count == 0
        assert store.report.stock_source is None

    @pytest.mark.unit
    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(DataLoadError):
            RecordStore.from_sources(tmp_path / "missing.csv")

    @pytest.mark.unit
    def test_empty_source_raises(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(DataLoadError):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_header_only_source_raises(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("sku,displayName\n", encoding="utf-8")
        with pytest.raises(DataLoadError):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_source_without_sku_column_raises(self, tmp_path):
        path = tmp_path / "nosku.csv"
        path.write_text("name,price\nThing,1\n", encoding="utf-8")
        with pytest.raises(DataLoadError, match="SKU column"):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataLoadError):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_unsupported_format_raises(self, tmp_path):
        path = tmp_path / "products.xml"
        path.write_text("<products/>", encoding="utf-8")
        with pytest.raises(DataLoadError, match="Unsupported"):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_all_rows_malformed_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("sku,price\n,1\nX1,abc\n", encoding="utf-8")
        with pytest.raises(DataLoadError, match="No valid product rows"):
            RecordStore.from_sources(path)

    @pytest.mark.unit
    def test_duplicate_sku_keeps_later_record(self, tmp_path, caplog):
        path = tmp_path / "dupes.csv"
        path.write_text(
            "sku,displayName\nANCHW200,First\nANCHW150,Other\nANCHW200,Second\n",
            encoding="utf-8",
        )

        store = RecordStore.from_sources(path)

        assert len(store) == 2
        assert store.get_by_sku("ANCHW200").display_name == "Second"
        assert store.report.duplicate_skus == 1
        assert store.report.duplicate_sku_values == ["ANCHW200"]
        assert store.report.skipped_total > 0
        assert "Duplicate SKU 'ANCHW200'" in caplog.text

    @pytest.mark.unit
    def test_utf8_bom_header(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes(b"\xef\xbb\xbfsku,displayName\nX1,Thing\n")
        assert RecordStore.from_sources(path).get_by_sku("X1").display_name == "Thing"


class TestRecordStoreLookups:
    """Tests for RecordStore read operations"""

    @pytest.mark.unit
    def test_get_by_sku_returns_matching_product(self, store):
        for sku in store.products:
            assert store.get_by_sku(sku).sku == sku

    @pytest.mark.unit
    def test_get_by_sku_is_case_sensitive(self, store):
        assert store.get_by_sku("anchw200") is None
        assert store.get_by_sku(" ANCHW200") is None
        assert store.get_by_sku("nonexistent-sku") is None

    @pytest.mark.unit
    def test_inactive_and_deleted_kept_for_lookup(self, store):
        assert store.get_by_sku("SALMN500").is_active is False
        assert store.get_by_sku("TUNA0001").is_deleted is True

    @pytest.mark.unit
    def test_all_is_restartable(self, store):
        first = [product.sku for product in store.all()]
        second = [product.sku for product in store.all()]
        assert first == second
        assert len(first) == 8

    @pytest.mark.unit
    def test_stock_for_and_total_available(self, store):
        warehouses = [record.warehouse for record in store.stock_for("ANCHW200")]
        assert warehouses == ["SYD", "MEL"]
        assert store.total_available("ANCHW200") == 40
        assert store.stock_for("BREAD001") == ()
        assert store.total_available("BREAD001") == 0

    @pytest.mark.unit
    def test_orphan_stock_unreachable_from_products(self, store):
        assert "GHOST999" not in store
        assert store.get_by_sku("GHOST999") is None

    @pytest.mark.unit
    def test_from_records_allows_empty_catalog(self):
        store = RecordStore.from_records([])
        assert len(store) == 0
        assert list(store.all()) == []

    @pytest.mark.unit
    def test_from_records_duplicates(self):
        store = RecordStore.from_records([
            Product(sku="A", display_name="old"),
            Product(sku="A", display_name="new"),
        ])
        assert store.get_by_sku("A").display_name == "new"
        assert store.report.duplicate_skus == 1
