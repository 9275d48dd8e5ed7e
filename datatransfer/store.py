## datatransfer/store.py

from __future__ import annotations
import os, tempfile, threading
from pathlib import Path
from typing import Callable, Optional
from pydantic import ValidationError
import yaml
from .detector import fingerprint, has_changed
from .schemas import Config, TransferState
from .utils import logger, load_yaml, dump_yaml

DATA_DIR = "data"
CONFIG_FILE = "config.yaml"
STATUS_FILE = "status.json"


class ProgressStore:
    """Durable copies of the transfer state and the operator config."""

    def __init__(self, data_dir: str | Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed creating data directory {self.data_dir}: {e}")

    @property
    def status_path(self) -> Path:
        return self.data_dir / STATUS_FILE

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILE

    # -------- transfer state --------

    def load(self) -> TransferState:
        p = self.status_path
        if p.exists():
            try:
                state = TransferState.model_validate_json(p.read_text(encoding="utf-8"))
                state.refresh_totals()
                logger.info(f"Status loaded from {p.resolve()}")
                return state
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.error(f"Failed loading status from {p}: {e}")
        logger.info("Starting with a fresh transfer status")
        return TransferState()

    def save(self, state: TransferState) -> bool:
        with self._lock:
            return self._write_status(state)

    def save_snapshot(self, take: Callable[[], TransferState]) -> bool:
        """Call ``take()`` and write its result while holding the save lock."""
        with self._lock:
            return self._write_status(take())

    def _write_status(self, state: TransferState) -> bool:
        p = self.status_path
        tmp = None
        try:
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=self.data_dir,
                                             prefix=p.name + ".", suffix=".tmp", delete=False) as f:
                tmp = f.name
                f.write(state.model_dump_json(indent=2))
            os.replace(tmp, p)
        except OSError as e:
            logger.error(f"Failed saving status to {p}: {e}")
            if tmp is not None and os.path.exists(tmp):
                os.remove(tmp)
            return False
        logger.debug(f"Status saved to {p}")
        return True

    def fingerprint_of(self, path: str | Path) -> Optional[str]:
        return fingerprint(path)

    def has_changed(self, path: str | Path, previous: Optional[str]) -> bool:
        return has_changed(path, previous)

    # -------- config --------

    def load_config(self) -> Config:
        p = self.config_path
        if p.exists():
            try:
                cfg = Config.model_validate(load_yaml(p))
                logger.info(f"Config loaded from {p.resolve()}")
                return cfg
            except (OSError, UnicodeDecodeError, yaml.YAMLError, ValidationError) as e:
                logger.error(f"Failed loading config from {p}: {e}")
        logger.info("Using default config")
        return Config()

    def save_config(self, config: Config) -> bool:
        p = self.config_path
        try:
            dump_yaml(config.model_dump(mode="json"), p)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed saving config to {p}: {e}")
            return False
        logger.info(f"Config saved to {p.resolve()}")
        return True
