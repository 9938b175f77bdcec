"""Catalog key sources used by key reconciliation."""

from .client import CatalogError, HttpCatalogClient, KeyFileCatalog, StaticCatalog, build_catalog

__all__ = [
    "CatalogError",
    "HttpCatalogClient",
    "KeyFileCatalog",
    "StaticCatalog",
    "build_catalog",
]
