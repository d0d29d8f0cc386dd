"""
Custom errors for the catalog core.
Raised by ingest, query normalization and the recommendation engine.
"""


class CatalogError(Exception):
    """Base error for the catalog."""
    pass


# ---------------- Loading ----------------

class DataLoadError(CatalogError):
    """Ingest source missing, unreadable or without usable product rows."""
    pass


class CatalogNotReadyError(DataLoadError):
    """No catalog snapshot has been loaded successfully yet."""
    pass


# ---------------- Lookups / Requests ----------------

class NotFoundError(CatalogError):
    """Unknown SKU."""

    def __init__(self, sku: str):
        super().__init__(f"Product '{sku}' not found")
        self.sku = sku


class ValidationError(CatalogError):
    """Malformed pagination or filter parameter."""

    def __init__(self, field: str, value, message: str = "invalid value"):
        super().__init__(f"{field}: {message} ({value!r})")
        self.field = field
        self.value = value
