"""Fetch raw source documents over HTTP."""

from __future__ import annotations

import logging

import httpx

from src.config import settings
from src.errors import AcquisitionError

logger = logging.getLogger(__name__)

USER_AGENT = "HansardDigest/0.1"


def fetch_document(url: str, *, timeout: float | None = None) -> bytes:
    """Download a document and return its raw bytes.

    Args:
        url: Absolute URL of the XML/HTML document.
        timeout: Request timeout in seconds (defaults to ``settings.http_timeout_seconds``).

    Raises:
        AcquisitionError: Network failure or a non-2xx response.
    """
    logger.info("Fetching document %s", url)
    try:
        r = httpx.get(
            url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
    except httpx.HTTPError as exc:
        raise AcquisitionError(url, f"{type(exc).__name__}: {exc}") from exc

    if not r.is_success:
        raise AcquisitionError(url, f"HTTP {r.status_code}", status_code=r.status_code)
    return r.content
