"""
Ingest parsing for product and stock sources.

Reads CSV or JSON exports and turns raw rows into Product / Stock records.
Column names are matched case-insensitively against the canonical field
names plus the snake_case and CRM-export headers listed in the alias tables.
"""
import csv
import io
import json
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from core.exceptions import DataLoadError, ValidationError
from .schemas import Availability, Product, Stock


SUPPORTED_SUFFIXES = {".csv", ".json"}

TRUE_VALUES = {"true", "1", "yes", "y", "on"}

KEYWORD_SEPARATORS = re.compile(r"[,;|]")
IMAGE_SRC_PATTERN = re.compile(r'src="([^"]+)"')

# Canonical field -> accepted headers, highest priority first
PRODUCT_COLUMN_ALIASES: Dict[str, List[str]] = {
    "sku": ["sku", "item_no__c", "productcode", "product_code"],
    "display_name": ["displayname", "display_name", "name"],
    "description": ["description", "web_desc__c", "webdesc"],
    "category": ["category", "category__c"],
    "web_category": ["webcategory", "web_category", "webcategory__c"],
    "web_sub_category": ["websubcategory", "web_sub_category", "websubcateg__c"],
    "brand": ["brand", "brand__c"],
    "vendor": ["vendor", "vendor_id__c"],
    "vendor_name": ["vendorname", "vendor_name", "vend_name__c"],
    "units": ["units", "unit_of_measure__c"],
    "accset": ["accset", "account_set_code__c"],
    "is_sf_preferred": ["issfpreferred", "is_sf_preferred", "sfpref_sf_preferred_item__c"],
    "image_url": ["imageurl", "image_url", "image__c"],
    "availability": ["availability"],
    "price": ["price", "listpricopt_list_price_optimised__c"],
    "keywords": ["keywords", "comment_1__c"],
    "is_active": ["isactive", "is_active"],
    "is_deleted": ["isdeleted", "is_deleted"],
    "order_last_month": ["orderlastmonth", "order_last_month"],
}

STOCK_COLUMN_ALIASES: Dict[str, List[str]] = {
    "sku": ["sku", "product_code__c", "productcode", "product_code"],
    "warehouse": ["warehouse", "warehouse__c"],
    "available_quantity": ["availablequantity", "available_quantity", "available_quantity__c"],
    "cost_unit": ["costunit", "cost_unit", "cost_unit__c"],
}

AVAILABILITY_SYNONYMS: Dict[str, Availability] = {
    "in_stock": Availability.IN_STOCK,
    "instock": Availability.IN_STOCK,
    "in stock": Availability.IN_STOCK,
    "available": Availability.IN_STOCK,
    "out_of_stock": Availability.OUT_OF_STOCK,
    "outofstock": Availability.OUT_OF_STOCK,
    "out of stock": Availability.OUT_OF_STOCK,
    "not available": Availability.OUT_OF_STOCK,
    "unavailable": Availability.OUT_OF_STOCK,
}


# ==================== Source reading ====================


def read_source(path: Path, section: str) -> List[Any]:
    """
    Read raw rows from a CSV or JSON source.

    Args:
        path: Source file
        section: "products" or "stock"; selects the array when a JSON document
            is an object carrying both kinds of rows

    Returns:
        List of raw rows (dicts for CSV; whatever the JSON holds otherwise)

    Raises:
        DataLoadError: if the file is missing, unreadable or structurally invalid
    """
    if not path.exists():
        raise DataLoadError(f"Ingest source not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise DataLoadError(f"Unsupported ingest format '{suffix}' for {path}")

    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Unable to read ingest source {path}: {e}") from e

    if suffix == ".csv":
        return _read_csv(text, path)
    return _read_json(text, path, section)


def _read_csv(text: str, path: Path) -> List[Dict[str, Any]]:
    try:
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise DataLoadError(f"CSV source is empty or has no headers: {path}")
        return list(reader)
    except csv.Error as e:
        raise DataLoadError(f"Malformed CSV in {path}: {e}") from e


def _read_json(text: str, path: Path, section: str) -> List[Any]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Malformed JSON in {path}: {e}") from e

    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        rows = document.get(section)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise DataLoadError(f"JSON '{section}' in {path} must be an array")
        return rows
    raise DataLoadError(f"JSON source {path} must be an array or an object")


def has_column(rows: List[Any], aliases: List[str]) -> bool:
    """Whether any row carries one of the given headers"""
    for row in rows:
        if isinstance(row, dict) and any(_normalize_key(key) in aliases for key in row):
            return True
    return False


# ==================== Row parsing ====================


def _normalize_key(key: Any) -> str:
    return str(key).strip().lower() if key is not None else ""


def canonicalize(row: Dict[str, Any], aliases: Dict[str, List[str]]) -> Dict[str, Any]:
    """Map a raw row onto canonical field names; first non-blank alias wins"""
    normalized = {_normalize_key(key): value for key, value in row.items()}
    result = {}
    for field, names in aliases.items():
        for name in names:
            value = normalized.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            result[field] = value
            break
    return result


def parse_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in TRUE_VALUES


def parse_price(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("price", value, "not a number")
    if not math.isfinite(price) or price < 0:
        raise ValidationError("price", value, "must be a non-negative number")
    return price


def parse_count(field: str, value: Any, default: Optional[int]) -> Optional[int]:
    """Parse a non-negative whole number; "12.0" is accepted, "12.5" is not"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValidationError(field, value, "not a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, value, "not a number")
    if not math.isfinite(number) or number < 0 or not number.is_integer():
        raise ValidationError(field, value, "must be a non-negative integer")
    return int(number)


def parse_keywords(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        parts = [parse_text(item) for item in value]
    else:
        parts = [part.strip() for part in KEYWORD_SEPARATORS.split(str(value))]
    return tuple(part for part in parts if part)


def parse_availability(value: Any) -> Availability:
    text = parse_text(value)
    if not text:
        return Availability.UNKNOWN
    try:
        return Availability(text.upper())
    except ValueError:
        return AVAILABILITY_SYNONYMS.get(text.lower(), Availability.UNKNOWN)


def parse_image_url(value: Any) -> str:
    """Accept a plain URL or an <img src="..."> fragment"""
    text = parse_text(value)
    if "<img" in text.lower():
        match = IMAGE_SRC_PATTERN.search(text)
        return match.group(1) if match else ""
    return text


def parse_product_row(row: Any) -> Product:
    """
    Build a Product from one raw row.

    Raises:
        ValidationError: if the row is malformed (no SKU, bad price or order count)
    """
    if not isinstance(row, dict):
        raise ValidationError("row", row, "not an object")

    fields = canonicalize(row, PRODUCT_COLUMN_ALIASES)
    sku = parse_text(fields.get("sku"))
    if not sku:
        raise ValidationError("sku", fields.get("sku"), "SKU is required")

    try:
        return Product(
            sku=sku,
            display_name=parse_text(fields.get("display_name")),
            description=parse_text(fields.get("description")),
            category=parse_text(fields.get("category")),
            web_category=parse_text(fields.get("web_category")),
            web_sub_category=parse_text(fields.get("web_sub_category")),
            brand=parse_text(fields.get("brand")),
            vendor=parse_text(fields.get("vendor")),
            vendor_name=parse_text(fields.get("vendor_name")),
            units=parse_text(fields.get("units")),
            accset=parse_text(fields.get("accset")),
            is_sf_preferred=parse_bool(fields.get("is_sf_preferred"), default=False),
            image_url=parse_image_url(fields.get("image_url")),
            availability=parse_availability(fields.get("availability")),
            price=parse_price(fields.get("price")),
            keywords=parse_keywords(fields.get("keywords")),
            is_active=parse_bool(fields.get("is_active"), default=True),
            is_deleted=parse_bool(fields.get("is_deleted"), default=False),
            order_last_month=parse_count("orderLastMonth", fields.get("order_last_month"), default=None),
        )
    except SchemaValidationError as e:
        raise ValidationError("row", sku, str(e)) from e


def parse_stock_row(row: Any) -> Stock:
    """
    Build a Stock record from one raw row.

    Raises:
        ValidationError: if the row is malformed (no SKU or warehouse, bad quantity)
    """
    if not isinstance(row, dict):
        raise ValidationError("row", row, "not an object")

    fields = canonicalize(row, STOCK_COLUMN_ALIASES)
    sku = parse_text(fields.get("sku"))
    warehouse = parse_text(fields.get("warehouse"))
    if not sku:
        raise ValidationError("sku", fields.get("sku"), "SKU is required")
    if not warehouse:
        raise ValidationError("warehouse", fields.get("warehouse"), "warehouse is required")

    return Stock(
        sku=sku,
        warehouse=warehouse,
        available_quantity=parse_count("availableQuantity", fields.get("available_quantity"), default=0),
        cost_unit=parse_text(fields.get("cost_unit")),
    )
