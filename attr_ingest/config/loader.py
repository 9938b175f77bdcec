from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    CatalogSettings,
    DatabaseConfig,
    ExportSettings,
    IngestConfig,
    KeySettings,
    ProfileSettings,
    SlotSettings,
)

"""Config loader.

Responsibilities:
- Load YAML (default ``config/ingest.yml``)
- Validate against the packaged JSON schema (``ingest_schema.json``)
- Apply defaults for every omitted key
"""

SCHEMA_PATH = Path(__file__).with_name("ingest_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    return data.get(name) or {}


def _tuple(raw: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if key not in raw:
        return default
    return tuple(raw[key])


def build_config(data: dict[str, Any]) -> IngestConfig:
    """Build IngestConfig from already-validated raw data."""
    slots_raw = _section(data, "slots")
    slot_defaults = SlotSettings()
    slots = SlotSettings(
        name_label=slots_raw.get("name_label", slot_defaults.name_label),
        value_label=slots_raw.get("value_label", slot_defaults.value_label),
        visibility_label=slots_raw.get("visibility_label", slot_defaults.visibility_label),
        global_label=slots_raw.get("global_label", slot_defaults.global_label),
        max_slot=slots_raw.get("max_slot", slot_defaults.max_slot),
        early_stop=slots_raw.get("early_stop", slot_defaults.early_stop),
        min_slots=slots_raw.get("min_slots", slot_defaults.min_slots),
    )

    keys_raw = _section(data, "keys")
    key_defaults = KeySettings()
    keys = KeySettings(
        patterns=_tuple(keys_raw, "patterns", key_defaults.patterns),
        max_length=keys_raw.get("max_length", key_defaults.max_length),
        invalid_markers=_tuple(keys_raw, "invalid_markers", key_defaults.invalid_markers),
        name_columns=_tuple(keys_raw, "name_columns", key_defaults.name_columns),
    )

    profile_raw = _section(data, "profile")
    profile_defaults = ProfileSettings()
    profile = ProfileSettings(
        attribute_sample_limit=profile_raw.get(
            "attribute_sample_limit", profile_defaults.attribute_sample_limit
        ),
        column_sample_limit=profile_raw.get(
            "column_sample_limit", profile_defaults.column_sample_limit
        ),
    )

    export_raw = _section(data, "export")
    export_defaults = ExportSettings()
    export = ExportSettings(
        delimiter=export_raw.get("delimiter", export_defaults.delimiter),
        key_header=export_raw.get("key_header", export_defaults.key_header),
        exclude_attributes=frozenset(export_raw.get("exclude_attributes", [])),
        exclude_columns=frozenset(export_raw.get("exclude_columns", [])),
    )

    catalog_raw = _section(data, "catalog")
    catalog_defaults = CatalogSettings()
    catalog = CatalogSettings(
        base_url=catalog_raw.get("base_url", catalog_defaults.base_url),
        keys_path=catalog_raw.get("keys_path", catalog_defaults.keys_path),
        key_field=catalog_raw.get("key_field", catalog_defaults.key_field),
        page_size=catalog_raw.get("page_size", catalog_defaults.page_size),
        timeout=float(catalog_raw.get("timeout", catalog_defaults.timeout)),
        max_attempts=catalog_raw.get("max_attempts", catalog_defaults.max_attempts),
        backoff_seconds=float(catalog_raw.get("backoff_seconds", catalog_defaults.backoff_seconds)),
        key_file=catalog_raw.get("key_file", catalog_defaults.key_file),
        strip_prefixes=_tuple(catalog_raw, "strip_prefixes", catalog_defaults.strip_prefixes),
        strip_suffixes=_tuple(catalog_raw, "strip_suffixes", catalog_defaults.strip_suffixes),
    )

    db_raw = _section(data, "database")
    db_defaults = DatabaseConfig()
    database = DatabaseConfig(
        dsn=db_raw.get("dsn", db_defaults.dsn),
        table=db_raw.get("table", db_defaults.table),
    )

    return IngestConfig(
        source_directory=data["source_directory"],
        output_directory=data.get("output_directory", IngestConfig().output_directory),
        slots=slots,
        keys=keys,
        profile=profile,
        export=export,
        catalog=catalog,
        database=database,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)
    return build_config(data)
