"""
datatransfer package for the inspection CSV data transfer service:
- watcher: poll loop, status flush, operator commands
- pipeline: incremental ingestion (watermark per file, batch all-or-nothing)
- parser: append-aware CSV record parsing
- detector: content fingerprints
- store: status.json / config.yaml persistence
- sinks: HTTP delivery (equipment runtime data / serial code result)
- alerts: email/slack on terminal delivery failures
"""

__all__ = [
    "watcher",
    "pipeline",
    "parser",
    "normalize",
    "detector",
    "store",
    "state",
    "mapping",
    "sinks",
    "alerts",
    "schemas",
    "utils",
]

__version__ = "0.1.0"

# Optional: load environment variables early if python-dotenv is installed
try:
    from dotenv import load_dotenv  # type: ignore
    load_dotenv()
except ImportError:
    pass
