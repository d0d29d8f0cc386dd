"""
Catalog Search Engines Package

This package contains the core engines for the catalog service:
- catalog: Product ingest, indexing and faceted search
- recommendation: Similar, trending and complementary products
"""

__version__ = "1.0.0"
