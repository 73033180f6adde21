"""Storage-key namespace rules and Content-Disposition building.

Every key starts with its owner's identity followed by ``/``; that prefix is
what the broker checks before signing anything.
"""

from __future__ import annotations

import unicodedata
import uuid
from urllib.parse import quote

# RFC 5987 attr-char minus the characters quote() always keeps
_ATTR_CHAR_EXTRA = "!#$&+^`|"
_FALLBACK_FILENAME = "download"


def _is_control(ch: str) -> bool:
    return unicodedata.category(ch).startswith("C")


def owns_key(caller: str, key: str) -> bool:
    """True when ``key`` lives in ``caller``'s namespace.

    The comparison is exact and case-sensitive and must end at a separator,
    so ``user1`` never matches ``user10/...``. Keys with empty, ``.`` or
    ``..`` segments, backslashes or control characters are rejected.
    """
    if not caller or "/" in caller or not key:
        return False
    prefix = caller + "/"
    if not key.startswith(prefix) or len(key) == len(prefix):
        return False
    if "\\" in key or any(_is_control(ch) for ch in key):
        return False
    return all(segment not in ("", ".", "..") for segment in key.split("/"))


def sanitize_object_name(name: str) -> str:
    cleaned = "".join("_" if ch in "/\\" or _is_control(ch) else ch for ch in name)
    return cleaned.strip()


def build_upload_key(caller: str, name: str, timestamp_ns: int) -> str:
    return f"{caller}/{timestamp_ns}-{name}"


def build_folder_key(owner_id: str) -> str:
    return f"{owner_id}/folders/{uuid.uuid4().hex}"


def content_disposition(filename: str) -> str:
    """``attachment`` header value for ``filename``.

    Produces a quoted ASCII fallback plus an RFC 5987 ``filename*`` carrying
    the UTF-8 name, with control characters (CR/LF included) stripped.
    """
    cleaned = "".join(ch for ch in filename if not _is_control(ch)).strip()
    if not cleaned:
        cleaned = _FALLBACK_FILENAME
    fallback = "".join(
        ch if ord(ch) < 128 else "_" for ch in cleaned if ch not in '"\\'
    ) or _FALLBACK_FILENAME
    encoded = quote(cleaned, safe=_ATTR_CHAR_EXTRA)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"
