"""
Fetching of data-root resources over HTTP or from the local filesystem.
"""

import logging
from pathlib import Path
from typing import Optional

import requests

logger = logging.getLogger(__name__)


def is_url(location: str) -> bool:
    """Check whether a location is an HTTP(S) URL."""
    return location.startswith(("http://", "https://"))


def join_location(root: str, *parts: str) -> str:
    """Join a data root (URL or directory) with relative path parts."""
    if is_url(root):
        return "/".join([root.rstrip("/")] + [p.strip("/") for p in parts])
    return str(Path(root).joinpath(*parts))


def fetch_bytes(
    location: str,
    timeout: float = 60,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Read a resource in full.

    Args:
        location: URL or filesystem path
        timeout: HTTP request timeout in seconds
        session: Session to reuse for HTTP requests

    Returns:
        Raw resource content

    Raises:
        requests.RequestException: If the HTTP request fails
        OSError: If the local file cannot be read
    """
    if not is_url(location):
        logger.debug("Reading %s", location)
        return Path(location).read_bytes()

    logger.debug("GET %s", location)
    response = (session or requests).get(location, timeout=timeout)
    logger.debug("Response status: %d", response.status_code)
    response.raise_for_status()
    return response.content
