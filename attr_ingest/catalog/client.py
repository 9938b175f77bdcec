from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from pathlib import Path

import requests

from ..errors import ReconciliationUnavailable
from ..models.config_models import CatalogSettings
from ..services.reconcile import CatalogKeys

"""Catalog key sources.

HttpCatalogClient reads the catalog's key column from a PostgREST-style
endpoint: the first page is requested with ``Prefer: count=exact`` and the
total comes back in ``Content-Range: 0-999/12345``; the remaining pages are
requested with ``Range`` headers.
"""

logger = logging.getLogger(__name__)

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+|\*)")


class CatalogError(ReconciliationUnavailable):
    """Catalog request failed (HTTP error, bad payload, missing file)."""


def build_session(api_key: str | None) -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "attr-ingest/1.0",
        }
    )
    if api_key:
        s.headers.update({"apikey": api_key, "Authorization": f"Bearer {api_key}"})
    return s


def parse_content_range_total(header: str | None) -> int | None:
    if not header:
        return None
    match = _CONTENT_RANGE_TOTAL.search(header)
    if match is None or match.group(1) == "*":
        return None
    return int(match.group(1))


class HttpCatalogClient:
    """Paginated catalog key fetch over HTTP."""

    def __init__(
        self,
        base_url: str,
        keys_path: str = "/rest/v1/produtos",
        key_field: str = "sku",
        page_size: int = 1000,
        timeout: float = 10.0,
        api_key: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.url = base_url.rstrip("/") + "/" + keys_path.lstrip("/")
        self.key_field = key_field
        self.page_size = page_size
        self.timeout = timeout
        self.session = session or build_session(api_key)

    def _get_page(self, offset: int, count: bool = False) -> requests.Response:
        headers = {"Range": f"{offset}-{offset + self.page_size - 1}"}
        if count:
            headers["Prefer"] = "count=exact"
        resp = self.session.get(
            self.url,
            params={"select": self.key_field, "order": f"{self.key_field}.asc"},
            headers=headers,
            timeout=self.timeout,
        )
        if not resp.ok:
            raise CatalogError(f"catalog request failed [{resp.status_code}] offset={offset}")
        return resp

    def _keys_from(self, resp: requests.Response) -> list[str]:
        try:
            payload = resp.json()
        except ValueError as e:
            raise CatalogError(f"catalog returned invalid JSON: {e}") from e
        if not isinstance(payload, list):
            raise CatalogError("catalog payload is not a list")
        keys = []
        for item in payload:
            value = item.get(self.key_field) if isinstance(item, dict) else None
            if value is not None:
                keys.append(str(value))
        return keys

    def fetch_keys(self) -> CatalogKeys:
        first = self._get_page(0, count=True)
        first_keys = self._keys_from(first)
        keys = set(first_keys)
        fetched = len(first_keys)
        total = parse_content_range_total(first.headers.get("Content-Range")) or fetched
        logger.debug("catalog: first page keys=%d total=%d", fetched, total)

        offset = self.page_size
        while offset < total:
            page = self._keys_from(self._get_page(offset))
            if not page:
                break
            keys.update(page)
            offset += self.page_size

        logger.debug("catalog: unique keys=%d total=%d", len(keys), total)
        return CatalogKeys(keys=frozenset(keys), total=max(total, len(keys)))


class StaticCatalog:
    """In-memory key set (tests, batch jobs with a preloaded catalog)."""

    def __init__(self, keys: Iterable[str]) -> None:
        self._keys = frozenset(k for k in keys if k)

    def fetch_keys(self) -> CatalogKeys:
        return CatalogKeys(keys=self._keys, total=len(self._keys))


class KeyFileCatalog:
    """One key per line; blank lines and ``#`` comments ignored."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def fetch_keys(self) -> CatalogKeys:
        try:
            text = self.path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise CatalogError(f"catalog key file unreadable: {e}") from e
        keys = frozenset(
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        )
        return CatalogKeys(keys=keys, total=len(keys))


def build_catalog(settings: CatalogSettings):
    """Catalog configured in settings, or None when reconciliation is disabled.

    CATALOG_API_KEY is read from the environment (``.env`` loaded by the CLI).
    """
    if settings.base_url:
        return HttpCatalogClient(
            base_url=settings.base_url,
            keys_path=settings.keys_path,
            key_field=settings.key_field,
            page_size=settings.page_size,
            timeout=settings.timeout,
            api_key=os.getenv("CATALOG_API_KEY"),
        )
    if settings.key_file:
        return KeyFileCatalog(Path(settings.key_file))
    return None
