"""Content digests used for change detection."""

from __future__ import annotations

import hashlib
from typing import Final

DIGEST_LENGTH: Final[int] = 64


def checksum(content: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``content``."""

    return hashlib.sha256(content).hexdigest()


def checksum_or_none(content: bytes | None) -> str | None:
    """Digest ``content`` unless it is absent.

    A missing file has no digest, which is not the same as an empty file.
    """

    if content is None:
        return None
    return checksum(content)
