## datatransfer/utils.py

from __future__ import annotations
import os, time, logging
from functools import wraps
from pathlib import Path
from typing import Any, Callable

LOG_DIR = os.getenv("TRANSFER_LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[
        logging.FileHandler(os.path.join(LOG_DIR, "transfer.log"), encoding="utf-8"),
        logging.StreamHandler()
    ],
)
logger = logging.getLogger("transfer")

class Retryable(Exception):
    pass

def retry(times: int = 3, delay: float = 1.0):
    """Retry on ``Retryable``: ``times`` attempts in total, fixed ``delay`` between them."""
    def deco(fn: Callable[..., Any]):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            n = max(1, int(times))
            last = None
            for i in range(n):
                try:
                    return fn(*args, **kwargs)
                except Retryable as e:
                    last = e
                    logger.warning(f"Retry {i+1}/{n} for {fn.__name__}: {e}")
                    if i + 1 < n:
                        time.sleep(delay)
            raise last if last else Retryable("Retry failed")
        return wrapper
    return deco

def load_yaml(path: str | Path) -> dict:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def dump_yaml(data: dict, path: str | Path):
    import yaml
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)

def ensure_dirs(*extra: str | Path):
    for d in ("data", LOG_DIR, *extra):
        if d:
            os.makedirs(d, exist_ok=True)

def product_model_of(path: str | Path) -> str:
    """File stem: ``Model-X.CSV`` -> ``Model-X``."""
    return Path(path).stem
