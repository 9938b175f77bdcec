from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the ingestion pipeline.

Every value has a default so that ``IngestConfig()`` is a usable configuration
for ``analyze()`` without any file on disk. ``config/ingest.yml`` overrides
these through ``attr_ingest.config.loader.load_config``.
"""


@dataclass(frozen=True)
class SlotSettings:
    """Header labels and scan limits for numbered attribute slots."""
    name_label: str = "Nome do atributo"
    value_label: str = "Valores do atributo"
    visibility_label: str = "Visibilidade do atributo"
    global_label: str = "Atributo global"
    max_slot: int = 200  # highest N scanned
    early_stop: int = 5  # consecutive misses ending the scan once a pair was found
    min_slots: int = 3  # pairs needed to classify as platform export


@dataclass(frozen=True)
class KeySettings:
    """Key column guessing and key validity rules."""
    patterns: tuple[str, ...] = ("^sku$", "^cod", "^codigo", "^ref", "^part")
    max_length: int = 50
    invalid_markers: tuple[str, ...] = ("<", ">", "http", "class=", "div ")
    name_columns: tuple[str, ...] = ("nome", "name")


@dataclass(frozen=True)
class ProfileSettings:
    attribute_sample_limit: int = 30
    column_sample_limit: int = 5


@dataclass(frozen=True)
class ExportSettings:
    """Canonical export layout."""
    delimiter: str = ";"
    key_header: str = "SKU"
    exclude_attributes: frozenset[str] = field(default_factory=frozenset)
    exclude_columns: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class CatalogSettings:
    """Catalog lookup used by key reconciliation.

    ``base_url`` enables the HTTP catalog; ``key_file`` a local one-key-per-line
    file. With neither, reconciliation is skipped.
    """
    base_url: str | None = None
    keys_path: str = "/rest/v1/produtos"
    key_field: str = "sku"
    page_size: int = 1000
    timeout: float = 10.0
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    key_file: str | None = None
    strip_prefixes: tuple[str, ...] = ()
    strip_suffixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class DatabaseConfig:
    """Attribute record store (used only with ``--store``).

    Environment variables DATABASE_URL / PGDSN take precedence over ``dsn``.
    """
    dsn: str | None = None
    table: str = "sku_attributes"


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object."""
    source_directory: str = "./data"
    output_directory: str = "./out"
    slots: SlotSettings = field(default_factory=SlotSettings)
    keys: KeySettings = field(default_factory=KeySettings)
    profile: ProfileSettings = field(default_factory=ProfileSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
