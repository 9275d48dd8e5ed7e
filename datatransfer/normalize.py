## datatransfer/normalize.py

from __future__ import annotations
from typing import Optional

# Files are opened as latin-1 so every byte maps to one character; the
# equipment actually writes GBK.
BYTE_PRESERVING = "latin-1"
LEGACY_ENCODING = "gbk"


def normalize(raw: Optional[str], encoding: str = LEGACY_ENCODING) -> Optional[str]:
    """Re-decode a byte-preserving string under the legacy encoding.

    Returns ``raw`` unchanged when it cannot be re-encoded or re-decoded.
    """
    if raw is None:
        return None
    try:
        return raw.encode(BYTE_PRESERVING).decode(encoding)
    except (UnicodeError, LookupError):
        return raw


def normalize_row(row: list[str], encoding: str = LEGACY_ENCODING) -> list[str]:
    return [normalize(v, encoding) for v in row]
