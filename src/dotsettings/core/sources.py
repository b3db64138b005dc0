"""
Raw settings sources.

Reads the text of a settings document from a local path or an HTTP(S) URL.
Every other URI scheme is rejected before any I/O happens.
"""

import os
import re
import string
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import requests

from dotsettings.core.exceptions import (
    FetchError,
    InvalidSourceError,
    SourceError,
    SourceNotFoundError,
)
from dotsettings.core.logging import logger, masker

ALLOWED_URL_SCHEMES = ("http", "https")
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://")


def is_url(source: Any) -> bool:
    return isinstance(source, str) and _SCHEME_RE.match(source) is not None


def describe(source: Any) -> str:
    """Human-readable label for a source, safe to show in errors and logs."""
    if isinstance(source, Mapping):
        return "<mapping>"
    return masker.mask(str(source))


def expand_environment(text: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Template pre-processor: substitute ``$VAR`` / ``${VAR}`` from the environment.

    Unknown variables are left untouched; ``$$`` is an escaped ``$``.
    """
    return string.Template(text).safe_substitute(os.environ if environ is None else environ)


class SourceLoader:
    """
    Loader for raw settings text.

    Supported sources:
    1. Local path (str or Path), read whole as UTF-8
    2. http:// or https:// URL, single GET, redirects not followed

    No retry is attempted; ``timeout`` defaults to none.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout

    def read(self, source: Any) -> str:
        if source is None:
            raise InvalidSourceError("No file specified as settings source")

        if isinstance(source, Path):
            return self._read_file(source)

        if not isinstance(source, str):
            raise InvalidSourceError(
                f"Unsupported settings source type: {type(source).__name__}",
                context={"source_type": type(source).__name__},
            )

        match = _SCHEME_RE.match(source)
        if match is None:
            return self._read_file(Path(source))

        scheme = match.group(1).lower()
        if scheme not in ALLOWED_URL_SCHEMES:
            logger.warning("Rejected settings URL", source=describe(source), scheme=scheme)
            raise InvalidSourceError(
                f"Invalid URL protocol: {describe(source)}", context={"scheme": scheme}
            )
        return self._fetch(source)

    def _read_file(self, path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SourceNotFoundError(str(path)) from e
        except OSError as e:
            raise SourceError(
                f"Error reading settings file {path}: {e}", context={"path": str(path)}, cause=e
            ) from e

        logger.debug("Settings file read", path=str(path), size=len(text))
        return text

    def _fetch(self, url: str) -> str:
        label = describe(url)
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise InvalidSourceError(f"Invalid URL: {label}", cause=e) from e
        if not parts.hostname:
            raise InvalidSourceError(f"Invalid URL: {label}")

        try:
            response = requests.get(url, allow_redirects=False, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Settings fetch failed", url=label, error=str(e))
            raise FetchError(label, str(e), cause=e) from e

        if not 200 <= response.status_code < 300:
            logger.error("Settings fetch rejected", url=label, status=response.status_code)
            raise FetchError(
                label, f"{response.status_code} {response.reason}", status=response.status_code
            )

        logger.debug("Settings fetched", url=label, size=len(response.text))
        return response.text
