"""
Pydantic schemas for the catalog engine
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Availability(str, Enum):
    """Stock availability of a product"""
    IN_STOCK = "IN_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    UNKNOWN = "UNKNOWN"


class FacetName(str, Enum):
    """Filterable attributes surfaced alongside search results"""
    CATEGORY = "category"
    BRAND = "brand"
    WAREHOUSE = "warehouse"
    ACCSET = "accset"
    AVAILABILITY = "availability"
    PRICE_BUCKET = "price_bucket"


class SortOption(str, Enum):
    """Available result orderings"""
    RELEVANCE = "relevance"
    POPULARITY = "popularity"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


class Product(BaseModel):
    """Normalized product record, one per SKU"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    sku: str = Field(min_length=1, description="Primary identity, case-sensitive")
    display_name: str = ""
    description: str = ""
    category: str = ""
    web_category: str = ""
    web_sub_category: str = ""
    brand: str = ""
    vendor: str = ""
    vendor_name: str = ""
    units: str = ""
    accset: str = ""
    is_sf_preferred: bool = Field(default=False, alias="isSFPreferred")
    image_url: str = Field(default="", alias="imageURL")
    availability: Availability = Availability.UNKNOWN
    price: Optional[float] = Field(default=None, ge=0, description="Absent means unpriced")
    keywords: Tuple[str, ...] = ()
    is_active: bool = True
    is_deleted: bool = False
    order_last_month: Optional[int] = Field(default=None, ge=0)

    @property
    def is_visible(self) -> bool:
        """Visible in default search results"""
        return self.is_active and not self.is_deleted


class Stock(BaseModel):
    """Stock record; zero or more per SKU"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    sku: str = Field(min_length=1)
    warehouse: str = Field(min_length=1)
    available_quantity: int = Field(default=0, ge=0)
    cost_unit: str = ""


class LoadReport(BaseModel):
    """Outcome of one ingest run"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    product_source: Optional[str] = None
    stock_source: Optional[str] = None
    product_rows: int = 0
    products_loaded: int = 0
    stock_rows: int = 0
    stock_loaded: int = 0
    skipped_product_rows: int = 0
    skipped_stock_rows: int = 0
    duplicate_skus: int = 0
    duplicate_sku_values: List[str] = Field(default_factory=list)
    orphan_stock_records: int = 0
    loaded_at: datetime = Field(default_factory=datetime.now)

    @property
    def skipped_total(self) -> int:
        """Rows that did not survive as-is: malformed plus overwritten duplicates"""
        return self.skipped_product_rows + self.skipped_stock_rows + self.duplicate_skus


class SearchFilters(BaseModel):
    """Structured search filters. Facets are AND'd; values within one facet are OR'd."""

    category: List[str] = Field(default_factory=list)
    brand: List[str] = Field(default_factory=list)
    warehouse: List[str] = Field(default_factory=list)
    accset: List[str] = Field(default_factory=list)
    availability: List[str] = Field(default_factory=list)
    price_bucket: List[str] = Field(default_factory=list)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    sf_preferred: Optional[bool] = None
    include_inactive: bool = False

    @field_validator("category", "brand", "warehouse", "accset", "availability", "price_bucket", mode="before")
    @classmethod
    def drop_blank_values(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(item).strip() for item in v if item is not None and str(item).strip()]

    @field_validator("availability")
    @classmethod
    def normalize_availability(cls, v):
        return [item.upper().replace(" ", "_") for item in v]

    @field_validator("price_min", "price_max")
    @classmethod
    def clamp_negative_price(cls, v):
        if v is not None and v < 0:
            return 0.0
        return v

    @model_validator(mode="after")
    def order_price_range(self):
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            self.price_min, self.price_max = self.price_max, self.price_min
        return self

    def facet_selections(self) -> Dict[FacetName, List[str]]:
        """Selected values per facet-backed filter"""
        return {
            FacetName.CATEGORY: self.category,
            FacetName.BRAND: self.brand,
            FacetName.WAREHOUSE: self.warehouse,
            FacetName.ACCSET: self.accset,
            FacetName.AVAILABILITY: self.availability,
            FacetName.PRICE_BUCKET: self.price_bucket,
        }

    @property
    def has_price_range(self) -> bool:
        return self.price_min is not None or self.price_max is not None


class FacetValue(BaseModel):
    """One facet value with its count in the current result set"""
    value: str
    count: int = Field(ge=0)


class SearchResult(BaseModel):
    """One page of search results plus facets for the whole filtered set"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    products: List[Product] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)
    total_pages: int = Field(default=0, ge=0)
    facets: Dict[str, List[FacetValue]] = Field(default_factory=dict)
    query_time_ms: float = Field(default=0.0, ge=0.0)
