"""
Pytest configuration and fixtures for catalog API tests.
"""
import json

import pytest

from core.config import Settings
from engines.catalog import IndexBuilder, QueryEngine, RecordStore
from engines.recommendation import RecommendationEngine
from services.cache_service import ExpiringCache
from services.catalog_service import CatalogService


PRODUCTS_CSV = """\
sku,displayName,description,category,webCategory,brand,accset,isSFPreferred,availability,price,keywords,isActive,isDeleted,orderLastMonth
ANCHW200,Anchovy Whole 200g,Whole salted anchovies,Seafood,Fish,Ortiz,RETAIL,true,,12.50,anchovy;salted;fish,true,false,120
ANCHW150,Anchovy Whole 150g,Whole anchovies in oil,Seafood,Fish,Ortiz,RETAIL,false,,9.99,anchovy;oil;fish,true,false,500
OLIVOIL1,Extra Virgin Olive Oil 1L,Cold pressed olive oil,Pantry,Oils,Castillo,FOODSERVICE,true,IN_STOCK,24.00,oil;olive;mediterranean,true,false,300
CAPERS01,Capers in Brine,Small capers,Pantry,Condiments,Castillo,RETAIL,false,OUT_OF_STOCK,4.50,capers;mediterranean;fish,true,false,10
SARDN120,Sardines in Olive Oil,Tinned sardines,Seafood,Fish,Castillo,RETAIL,false,,,sardine;oil;fish,true,false,
SALMN500,Smoked Salmon 500g,Cold smoked salmon,Seafood,Fish,Nordic,FOODSERVICE,true,IN_STOCK,65.00,salmon;smoked;fish,false,false,900
TUNA0001,Tuna Steak,Yellowfin tuna,Seafood,Fish,Nordic,FOODSERVICE,false,IN_STOCK,550.00,tuna;fish,true,true,50
BREAD001,Sourdough Bread,Fresh baked,Bakery,Bread,,RETAIL,false,IN_STOCK,6.00,bread;mediterranean,true,false,40
,Nameless Row,No SKU,Pantry,,,,,,,,,,
BADPRICE1,Broken Price,Bad price value,Pantry,,,,,,abc,,,,
"""

STOCK_CSV = """\
sku,warehouse,availableQuantity,costUnit
ANCHW200,SYD,40,EA
ANCHW200,MEL,0,EA
ANCHW150,SYD,0,EA
OLIVOIL1,MEL,12,BTL
SARDN120,SYD,30,EA
GHOST999,SYD,5,EA
CAPERS01,,3,EA
"""

VISIBLE_SKUS = {"ANCHW200", "ANCHW150", "OLIVOIL1", "CAPERS01", "SARDN120", "BREAD001"}


@pytest.fixture
def product_csv(tmp_path):
    """Sample product source with two malformed rows."""
    path = tmp_path / "products.csv"
    path.write_text(PRODUCTS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def stock_csv(tmp_path):
    """Sample stock source with one orphan and one malformed row."""
    path = tmp_path / "stock.csv"
    path.write_text(STOCK_CSV, encoding="utf-8")
    return path


@pytest.fixture
def combined_json(tmp_path):
    """Single JSON document carrying both products and stock."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "products": [
            {"sku": "ANCHW200", "displayName": "Anchovy Whole 200g", "category": "Seafood",
             "keywords": ["anchovy", "fish"], "price": 12.5, "orderLastMonth": 120},
            {"ITEM_NO__c": "ANCHW150", "Name": "Anchovy Whole 150g", "Category__c": "Seafood",
             "Comment_1__c": "anchovy, oil", "IsActive": "1", "orderLastMonth": "500"},
            {"sku": "", "displayName": "Broken"},
            "not an object",
        ],
        "stock": [
            {"Product_Code__c": "ANCHW150", "Warehouse__c": "SYD", "Available_Quantity__c": "7"},
        ],
    }), encoding="utf-8")
    return path


@pytest.fixture
def store(product_csv, stock_csv):
    return RecordStore.from_sources(product_csv, stock_csv)


@pytest.fixture
def index(store):
    return IndexBuilder(store).build()


@pytest.fixture
def query_engine(index):
    return QueryEngine(index, default_page_size=20, max_page_size=100)


@pytest.fixture
def recommendation_engine(index):
    return RecommendationEngine(index)


@pytest.fixture
def test_settings(product_csv, stock_csv):
    """Settings pointing at the sample sources."""
    return Settings(
        product_source_path=str(product_csv),
        stock_source_path=str(stock_csv),
        environment="test",
        log_format="console",
    )


@pytest.fixture
def catalog(test_settings):
    """A ready CatalogService over the sample sources."""
    service = CatalogService(test_settings)
    service.initialize()
    yield service
    service.shutdown()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ExpiringCache(default_ttl=60, sweep_batch_size=2, clock=clock)
