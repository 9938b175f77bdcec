from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..catalog.client import build_catalog
from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..errors import IngestError
from ..excel.reader import read_upload
from ..logging.init import enable_debug, log_summary, setup_logging
from ..models.config_models import IngestConfig
from ..parsing.delimiter import delimiter_label
from ..services.analyzer import analyze
from ..services.orchestrator import ProcessingError, process_all, scan_source_files
from ..services.summary import render_summary_line

"""CLI entrypoint.

    python -m attr_ingest.cli [FILE ...] [--config PATH] [--debug] [--inspect-data] [--store]

Without FILE arguments every supported file in ``source_directory`` is
processed. Exit codes: 0 all files succeeded, 2 at least one file failed,
1 fatal startup error (config, directory, database connection).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _db_connection(cfg: IngestConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """psycopg2 cursor for the attribute store.

    DSN priority: DATABASE_URL / PGDSN (``.env`` loaded first) then
    ``database.dsn`` from the config file.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or cfg.database.dsn
    if not dsn:
        raise RuntimeError("no database DSN (set DATABASE_URL or database.dsn)")
    conn = psycopg2.connect(dsn)
    conn.autocommit = True  # orchestrator issues BEGIN/COMMIT per file
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet -> canonical product attribute importer")
    p.add_argument("files", nargs="*", type=Path, help="Files to process (default: source_directory)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print detected structure then exit")
    p.add_argument("--catalog-file", type=Path, help="Catalog keys file (one key per line)")
    p.add_argument("--store", action="store_true", help="Replace persisted attribute records")
    return p.parse_args(argv)


def _inspect_data(cfg: IngestConfig, files: list[Path]) -> int:
    for f in files:
        print(f"FILE: {f.name}")
        try:
            upload = read_upload(f)
            result = analyze(
                upload.text,
                f.name,
                cfg,
                source_format=upload.source_format,
                sheet_name=upload.sheet_name,
            )
        except IngestError as e:
            print(f"  error: {e}")
            continue
        kind = "platform-export" if result.is_platform_export else "generic"
        print(
            f"  format={result.source_format} delimiter={delimiter_label(result.delimiter)} "
            f"rows={result.total_rows} discarded={result.discarded_count} kind={kind}"
        )
        print(f"  key_column={result.headers[result.key_column]!r} keys={len(result.keys)}")
        if result.is_platform_export:
            print(f"  slots={len(result.slots)} attributes={[a.name for a in result.unique_attributes[:10]]}")
        else:
            print(f"  columns={[c.name for c in result.generic_columns]}")
        for note in result.notes:
            print(f"  note: {note}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで [] を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        enable_debug()

    if args.catalog_file is not None:
        cfg = dataclasses.replace(
            cfg, catalog=dataclasses.replace(cfg.catalog, key_file=str(args.catalog_file))
        )

    if args.files:
        files = list(args.files)
        missing = [f for f in files if not f.exists()]
        if missing:
            logger.error(f"file not found: {', '.join(str(m) for m in missing)}")
            return EXIT_FATAL
    else:
        directory = Path(cfg.source_directory)
        try:
            files = scan_source_files(directory)
        except ProcessingError:
            logger.error(f"directory not found: {directory}")
            return EXIT_FATAL
        logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg, files)

    catalog = build_catalog(cfg.catalog)
    if catalog is None:
        logger.info("no catalog configured, key reconciliation skipped")

    try:
        if args.store:
            try:
                with _db_connection(cfg) as cur:
                    result = process_all(cfg, files=files, catalog=catalog, cursor=cur)
            except (psycopg2.OperationalError, RuntimeError) as e:
                logger.error(f"database: {e}")
                return EXIT_FATAL
        else:
            result = process_all(cfg, files=files, catalog=catalog)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(len(files), result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
