# clearing_ui/util/osselot.py
"""
Lookups against OSSelot curated package data.

Two remote sources are used:

* the ``analysed-packages`` directory of the Open-Source-Compliance
  ``package-analysis`` GitHub repository, whose ``version-<x>`` sub-directories
  tell which versions of a package have been curated, and
* the OSSelot REST API, which serves the SPDX RDF/XML document of a
  package version.

Downloaded SPDX files are cached on disk for ``OSSELOT_CACHE_TTL`` seconds.
Remote failures never reach callers: ``get_versions`` answers ``[]`` and
``fetch_spdx_file`` answers ``None``. The private ``_list_versions`` and
``_download_spdx`` return a ``FetchResult`` that records what went wrong.
"""
from __future__ import annotations

import os
import re
import tempfile
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote, quote_plus

import requests
from loguru import logger

from ..core.config import Settings, get_settings

VERSION_DIR_PREFIX = "version-"
CACHE_SUFFIX = ".rdf"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
_DIGITS = re.compile(r"(\d+)")


class FetchError(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    BAD_STATUS = "bad_status"
    INVALID_PAYLOAD = "invalid_payload"
    INVALID_CONTENT = "invalid_content"
    WRITE_FAILED = "write_failed"


@dataclass
class FetchResult:
    value: Any = None
    error: Optional[FetchError] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def _now() -> float:
    return time.time()


def safe_cache_name(value: str) -> str:
    """
    Replace every character outside [A-Za-z0-9_.-] with "_".

    Distinct inputs can map to the same name ("a b" and "a/b" both give
    "a_b"), so two packages may share a cache file.
    """
    return _UNSAFE_CHARS.sub("_", value)


def natural_sort_key(value: str):
    # re.split with a group alternates text and digit runs, starting with text
    chunks = [int(c) if i % 2 else c for i, c in enumerate(_DIGITS.split(value))]
    return chunks, value


def is_valid_xml(content: bytes) -> bool:
    if not content or not content.strip():
        return False
    try:
        ET.fromstring(content)
    except ET.ParseError:
        return False
    return True


class OsselotLookupHelper:
    """
    Version listing and SPDX download helper with a file-based cache.

    ``session`` is any object with a ``requests``-compatible ``get``; a fresh
    ``requests.Session`` is used when omitted.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache_dir: Optional[os.PathLike | str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.OSSELOT_BASE_URL.rstrip("/") + "/"
        self.packages_url = self.settings.OSSELOT_PACKAGES_URL.rstrip("/")
        self.cache_ttl = self.settings.OSSELOT_CACHE_TTL
        self.timeout = (
            self.settings.HTTP_CONNECT_TIMEOUT,
            self.settings.HTTP_TIMEOUT,
        )
        self.session = session or requests.Session()

        if cache_dir is None:
            cache_dir = Path(self.settings.CACHE_DIR) / "util" / "osselot"
        self.cache_dir = Path(cache_dir)
        self._ensure_cache_dir()

    def _ensure_cache_dir(self) -> bool:
        try:
            self.cache_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create OSSelot cache dir {}: {}", self.cache_dir, e)
            return False
        return True

    def _get(self, url: str, accept: str) -> FetchResult:
        headers = {"Accept": accept, "User-Agent": self.settings.HTTP_USER_AGENT}
        if url.startswith("https://api.github.com/") and self.settings.GITHUB_TOKEN:
            headers["Authorization"] = f"Bearer {self.settings.GITHUB_TOKEN}"
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            return FetchResult(error=FetchError.TIMEOUT, detail=str(e))
        except requests.RequestException as e:
            return FetchResult(error=FetchError.TRANSPORT, detail=str(e))

        if resp.status_code != 200:
            return FetchResult(
                error=FetchError.BAD_STATUS, detail=f"HTTP {resp.status_code}"
            )
        return FetchResult(value=resp)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def _list_versions(self, pkg_name: str) -> FetchResult:
        url = f"{self.packages_url}/{quote(pkg_name, safe='')}"
        result = self._get(url, "application/vnd.github.v3+json")
        if not result.ok:
            return result

        try:
            data = result.value.json()
        except ValueError as e:
            return FetchResult(error=FetchError.INVALID_PAYLOAD, detail=str(e))
        if not isinstance(data, list):
            return FetchResult(
                error=FetchError.INVALID_PAYLOAD, detail="expected a JSON array"
            )

        versions: List[str] = []
        for entry in data:
            if not isinstance(entry, dict) or entry.get("type") != "dir":
                continue
            name = entry.get("name")
            if isinstance(name, str) and name.startswith(VERSION_DIR_PREFIX):
                version = name[len(VERSION_DIR_PREFIX):]
                if version:
                    versions.append(version)

        return FetchResult(
            value=sorted(dict.fromkeys(versions), key=natural_sort_key)
        )

    def get_versions(self, pkg_name: str) -> List[str]:
        """
        Curated versions of ``pkg_name`` in natural ascending order.
        Empty when none are found or the lookup fails.
        """
        result = self._list_versions(pkg_name)
        if not result.ok:
            logger.warning(
                "OSSelot version lookup for {} failed ({}): {}",
                pkg_name,
                result.error.value,
                result.detail,
            )
            return []
        return result.value

    # ------------------------------------------------------------------
    # SPDX descriptors
    # ------------------------------------------------------------------

    def cache_path(self, pkg_name: str, version: str) -> Path:
        return self.cache_dir / (
            f"{safe_cache_name(pkg_name)}_{safe_cache_name(version)}{CACHE_SUFFIX}"
        )

    def is_fresh(self, path: Path) -> bool:
        try:
            return path.is_file() and (_now() - path.stat().st_mtime) < self.cache_ttl
        except OSError:
            return False

    def _write_atomically(self, target: Path, content: bytes) -> FetchResult:
        if not self._ensure_cache_dir():
            return FetchResult(
                error=FetchError.WRITE_FAILED, detail="cache dir unavailable"
            )
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self.cache_dir, prefix=".", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return FetchResult(error=FetchError.WRITE_FAILED, detail=str(e))
        return FetchResult(value=target)

    def _download_spdx(self, pkg_name: str, version: str) -> FetchResult:
        url = f"{self.base_url}xml/{quote_plus(pkg_name)}/{quote_plus(version)}"
        result = self._get(url, "application/rdf+xml, application/xml, text/xml")
        if not result.ok:
            return result

        content = result.value.content
        if not is_valid_xml(content):
            return FetchResult(
                error=FetchError.INVALID_CONTENT, detail="response is not well-formed XML"
            )
        return self._write_atomically(self.cache_path(pkg_name, version), content)

    def fetch_spdx_file(self, pkg_name: str, version: str) -> Optional[Path]:
        """
        Path to the SPDX RDF/XML file of ``pkg_name`` at ``version``.

        A cached copy younger than the TTL is returned without a request;
        otherwise the file is downloaded and replaces the cached copy.
        Returns None when the download fails.
        """
        cached = self.cache_path(pkg_name, version)
        if self.is_fresh(cached):
            logger.debug("OSSelot cache hit for {} {}", pkg_name, version)
            return cached

        result = self._download_spdx(pkg_name, version)
        if not result.ok:
            logger.warning(
                "OSSelot SPDX fetch for {} {} failed ({}): {}",
                pkg_name,
                version,
                result.error.value,
                result.detail,
            )
            return None
        return result.value

    def clear_cache(self) -> bool:
        """
        Delete every cached SPDX file. Always True; a file that cannot be
        removed is logged and left in place.
        """
        if not self.cache_dir.is_dir():
            return True

        removed = 0
        for path in self.cache_dir.glob(f"*{CACHE_SUFFIX}"):
            if not path.is_file():
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove cached file {}: {}", path, e)
                continue
            removed += 1
        logger.info("Cleared {} OSSelot cache file(s) from {}", removed, self.cache_dir)
        return True
