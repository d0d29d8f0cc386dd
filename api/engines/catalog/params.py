"""
Normalization of request parameters.

Malformed pagination, limit, price and sort values never fail a request:
the parsers raise ValidationError and the normalizers replace the value
with a safe default.
"""
import logging
import math
from typing import Any, Optional, Tuple

from core.exceptions import ValidationError
from .schemas import SortOption

logger = logging.getLogger(__name__)


def parse_positive_int(field: str, value: Any) -> int:
    """Parse an integer >= 1"""
    if value is None or isinstance(value, bool):
        raise ValidationError(field, value, "missing")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(field, value, "not an integer")
    if number < 1:
        raise ValidationError(field, value, "must be >= 1")
    return number


def parse_price(field: str, value: Any) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(field, value, "not a number")
    if not math.isfinite(number):
        raise ValidationError(field, value, "not a finite number")
    return number


def normalize_page(value: Any) -> int:
    """1-indexed page; anything malformed becomes 1"""
    try:
        return parse_positive_int("page", value)
    except ValidationError as e:
        if value is not None:
            logger.debug(f"Normalizing page to 1: {e}")
        return 1


def normalize_page_size(value: Any, default: int, maximum: int) -> int:
    """Page size in [1, maximum]; anything malformed becomes the default"""
    try:
        size = parse_positive_int("page_size", value)
    except ValidationError as e:
        if value is not None:
            logger.debug(f"Normalizing page_size to {default}: {e}")
        return default
    return min(size, maximum)


def normalize_pagination(page: Any, page_size: Any, default: int, maximum: int) -> Tuple[int, int]:
    return normalize_page(page), normalize_page_size(page_size, default, maximum)


def normalize_limit(value: Any, default: int, maximum: int) -> int:
    """Recommendation / suggestion limit in [1, maximum]"""
    try:
        return min(parse_positive_int("limit", value), maximum)
    except ValidationError as e:
        if value is not None:
            logger.debug(f"Normalizing limit to {default}: {e}")
        return default


def normalize_price(field: str, value: Any) -> Optional[float]:
    """Optional price bound; blanks and garbage are dropped, negatives clamp to 0"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return max(parse_price(field, value), 0.0)
    except ValidationError as e:
        logger.debug(f"Ignoring {field}: {e}")
        return None


def normalize_sort(value: Any) -> SortOption:
    if isinstance(value, SortOption):
        return value
    if value is None or not str(value).strip():
        return SortOption.RELEVANCE
    try:
        return SortOption(str(value).strip().lower())
    except ValueError:
        logger.debug(f"Unknown sort option {value!r}; using relevance")
        return SortOption.RELEVANCE
