"""URL handling for bookmark, video and file blocks.

Nothing here touches the network: bookmark titles come from the hostname and
favicons from a favicon service URL, exactly as the editor displays them
before any (out of scope) metadata fetch.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from ..errors import InvalidTransition

FAVICON_SERVICE = "https://www.google.com/s2/favicons?domain={host}&sz=32"

_YOUTUBE = re.compile(r"(?:youtube\.com/(?:watch\?v=|embed/)|youtu\.be/)([a-zA-Z0-9_-]{11})")
_VIMEO = re.compile(r"(?:vimeo\.com/)(\d+)")


def normalize_url(url: str) -> str:
    """Prefix https:// when the URL has no scheme."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def bookmark_fields(url: str) -> dict[str, str]:
    """Compute url/title/favicon for a committed bookmark URL.

    Raises:
        InvalidTransition: If the URL has no usable hostname.
    """
    if not url or not url.strip():
        raise InvalidTransition("Bookmark URL is empty")
    normalized = normalize_url(url)
    host = urlparse(normalized).hostname
    if not host:
        raise InvalidTransition("Invalid bookmark URL", url=url)
    return {
        "url": normalized,
        "title": host,
        "favicon": FAVICON_SERVICE.format(host=host),
    }


def video_embed_url(url: str | None) -> str | None:
    """Embeddable player URL for YouTube and Vimeo links, else None."""
    if not url:
        return None

    match = _YOUTUBE.search(url)
    if match:
        return f"https://www.youtube.com/embed/{match.group(1)}"

    match = _VIMEO.search(url)
    if match:
        return f"https://player.vimeo.com/video/{match.group(1)}"

    return None


def format_file_size(size: int) -> str:
    """Human-readable byte count (``1.5 KB``)."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"
