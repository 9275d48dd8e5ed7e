## datatransfer/detector.py

from __future__ import annotations
import hashlib
from pathlib import Path
from typing import Optional
from .utils import logger

CHUNK_SIZE = 1024 * 1024


def fingerprint(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> Optional[str]:
    """sha256 of the whole file, streamed; ``None`` when the file cannot be read."""
    hasher = hashlib.sha256()
    try:
        with Path(path).open("rb") as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as e:
        logger.error(f"Failed hashing {path}: {e}")
        return None
    return hasher.hexdigest()


def differs(current: Optional[str], previous: Optional[str]) -> bool:
    # an unreadable file never counts as changed
    return current is not None and current != previous


def has_changed(path: str | Path, previous: Optional[str]) -> bool:
    return differs(fingerprint(path), previous)
