"""Canonical content identity.

Every counter and uniqueness constraint in the service is keyed by the value
returned from :func:`resolve_content_id`, so this module must stay pure and
its output must never change for a given input. Do not make the constants
below configurable: changing any of them re-keys all derived ids.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit

from mediagate.services.errors import ValidationError

CONTENT_ID_LENGTH = 22
BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
COMPOSITE_SEPARATOR = "\u0000"

# Query keys that CDNs and upload pipelines append to force a refresh.
CACHE_BUST_PARAMS = frozenset(
    {"_", "cache", "cachebust", "cb", "nocache", "t", "ts", "timestamp", "v", "ver", "version"}
)

_RAW_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:\-]{1,64}$")
# Full SHA-256 digest in base62 never exceeds this many characters.
_BASE62_DIGEST_WIDTH = 43


def base62_encode(data: bytes) -> str:
    """Encode bytes as a big-endian base62 string without padding."""
    number = int.from_bytes(data, "big")
    if number == 0:
        return BASE62_ALPHABET[0]
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))


def normalize_url(url: str | None) -> str:
    """Reduce a media URL to the part that identifies the asset.

    The host is dropped so that moving an asset between CDN hostnames keeps its
    identity. The path is percent-decoded and its empty segments collapsed.
    Cache-busting query keys are removed; the remaining query pairs are sorted.
    Fragments never identify an asset and are dropped.
    """
    if not url:
        return ""
    parts = urlsplit(url.strip())
    segments = [segment for segment in unquote(parts.path).split("/") if segment]
    path = "/" + "/".join(segments)

    kept = sorted(
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key.lower() not in CACHE_BUST_PARAMS
    )
    if kept:
        return f"{path}?{urlencode(kept)}"
    return path


def derive_content_id(owner_profile_id: str, url: str) -> str:
    """Hash the owner and normalized URL into a fixed-width base62 id."""
    composite = f"{owner_profile_id}{COMPOSITE_SEPARATOR}{normalize_url(url)}"
    digest = hashlib.sha256(composite.encode("utf-8")).digest()
    return base62_encode(digest).rjust(_BASE62_DIGEST_WIDTH, BASE62_ALPHABET[0])[
        :CONTENT_ID_LENGTH
    ]


def validate_raw_id(raw_id: str) -> str:
    """Return ``raw_id`` stripped, or raise if it is not a usable content id."""
    candidate = raw_id.strip()
    if not _RAW_ID_PATTERN.match(candidate):
        raise ValidationError(f"Malformed content id: {raw_id!r}")
    return candidate


def resolve_content_id(
    raw_id: str | None,
    owner_profile_id: str | None,
    url: str | None,
) -> str:
    """Return the canonical id for a media item.

    A non-empty ``raw_id`` wins: the caller already knows the canonical id.
    Otherwise the id is derived from ``owner_profile_id`` and ``url``.

    Raises:
        ValidationError: If neither a raw id nor both composite parts are given,
            or if the raw id is malformed.
    """
    if raw_id and raw_id.strip():
        return validate_raw_id(raw_id)
    owner = (owner_profile_id or "").strip()
    if not owner or not url or not url.strip():
        raise ValidationError("Either contentId or both ownerProfileId and url are required")
    return derive_content_id(owner, url)
