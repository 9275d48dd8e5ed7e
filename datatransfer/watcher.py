## datatransfer/watcher.py

from __future__ import annotations
import sys, time, threading, webbrowser
from pathlib import Path
from typing import List, Optional
from .alerts import Observers, notify_operator
from .pipeline import Delivery, IngestionCoordinator, ProcessResult
from .schemas import Config, TransferState
from .sinks import HttpDelivery
from .state import StateHandle
from .store import ProgressStore
from .utils import ensure_dirs, load_yaml, logger


def list_csv_files(directory: str | Path | None, extension: str = ".csv") -> List[Path]:
    if not directory:
        return []
    d = Path(directory)
    if not d.is_dir():
        return []
    ext = extension.lower()
    return sorted(p for p in d.iterdir() if p.is_file() and p.name.lower().endswith(ext))


def latest_modified(files: List[Path]) -> Optional[Path]:
    stamped = []
    for f in files:
        try:
            stamped.append((f.stat().st_mtime, f))
        except OSError:
            continue
    return max(stamped)[1] if stamped else None


class TransferService:
    """Poll loop + periodic status flush around one IngestionCoordinator.

    Operator commands: start, stop, reset_status, update_config, open_directory.
    """

    def __init__(self, config: Optional[Config] = None, store: Optional[ProgressStore] = None,
                 delivery: Optional[Delivery] = None, observers: Optional[Observers] = None):
        ensure_dirs()
        self.store = store or ProgressStore()
        self.config = config or self.store.load_config()

        state = self.store.load()
        if not self.config.continue_from_last_position:
            logger.info("continue_from_last_position is off; discarding saved progress")
            state = TransferState()
        state.running = False
        self.handle = StateHandle(state)

        if observers is None:
            observers = Observers()
            observers.on_delivery_failed(notify_operator)
        self.observers = observers
        self.delivery = delivery or HttpDelivery(self.config)
        self.coordinator = IngestionCoordinator(self.handle, self.store, self.delivery, self.observers)

        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    # -------- scheduling --------

    def initialize(self):
        if self._threads:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._poll_loop, name="transfer-poll", daemon=True),
            threading.Thread(target=self._flush_loop, name="transfer-flush", daemon=True),
        ]
        for t in self._threads:
            t.start()
        logger.info("Transfer service initialized")

    def _poll_loop(self):
        while not self._stop.wait(self.config.monitor_interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Poll cycle failed")

    def _flush_loop(self):
        while not self._stop.wait(self.config.flush_interval):
            self.coordinator.persist()

    def tick(self) -> List[ProcessResult]:
        """One poll cycle; does nothing while stopped."""
        if not self.handle.running:
            return []
        cfg = self.config
        files = list_csv_files(cfg.csv_dir, cfg.file_extension)
        self._forget_missing(files)
        if not files:
            return []
        if cfg.monitor_all_files:
            targets = files
        else:
            latest = latest_modified(files)
            targets = [latest] if latest else []
        return self.coordinator.check_files(targets, cfg)

    def _forget_missing(self, files: List[Path]):
        present = {str(f.resolve()) for f in files}
        tracked = list(self.handle.snapshot().file_status_map)
        for path in tracked:
            if path not in present and not Path(path).exists():
                self.coordinator.forget_file(path)

    # -------- operator commands --------

    def start(self):
        self.initialize()
        self.handle.update(lambda s: setattr(s, "running", True))
        self.coordinator.persist()
        self.observers.status_changed()
        logger.info("Transfer service started")

    def stop(self):
        self.handle.update(lambda s: setattr(s, "running", False))
        self.coordinator.persist()
        self.observers.status_changed()
        logger.info("Transfer service stopped")

    def shutdown(self, timeout: float = 5.0):
        self.stop()
        self._stop.set()
        for t in self._threads:
            t.join(timeout)
        self._threads = []
        close = getattr(self.delivery, "close", None)
        if callable(close):
            close()
        logger.info("Transfer service shut down")

    def update_config(self, config: Config):
        self.config = config
        update = getattr(self.delivery, "update_config", None)
        if callable(update):
            update(config)
        self.store.save_config(config)
        logger.info("Config updated")

    def reset_status(self):
        running = self.handle.running
        self.handle.replace(TransferState(running=running))
        self.coordinator.persist()
        self.observers.status_changed()
        logger.info("Transfer status reset")

    def status(self) -> TransferState:
        return self.handle.snapshot()

    def open_directory(self, browse: bool = True) -> Optional[Path]:
        if not self.config.csv_dir:
            logger.warning("No monitored directory configured")
            return None
        d = Path(self.config.csv_dir).resolve()
        d.mkdir(parents=True, exist_ok=True)
        if browse:
            webbrowser.open(d.as_uri())
        return d


def run(cfg_path: Optional[str] = None):
    config = Config.model_validate(load_yaml(cfg_path)) if cfg_path else None
    service = TransferService(config)
    if not service.config.csv_dir:
        logger.error(f"csv_dir is not configured (edit {service.store.config_path})")
        service.store.save_config(service.config)
        return
    service.start()
    logger.info(f"Watching {service.config.csv_dir} every {service.config.monitor_interval}s...")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.shutdown()


def main():
    args = sys.argv[1:]
    cmd = args[0] if args else "run"
    cfg_path = args[1] if len(args) > 1 else None
    if cmd == "run":
        run(cfg_path)
    elif cmd == "reset":
        ensure_dirs()
        ProgressStore().save(TransferState())
        logger.info("Transfer status reset")
    elif cmd == "status":
        print(ProgressStore().load().model_dump_json(indent=2))
    else:
        print("Usage: python -m datatransfer.watcher [run|reset|status] [config.yaml]")
        sys.exit(1)

if __name__ == "__main__":
    main()
