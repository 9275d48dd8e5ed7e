## datatransfer/pipeline.py

from __future__ import annotations
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Protocol
from .alerts import Observers
from .detector import differs
from .parser import count_rows, parse_range
from .schemas import Config, DetectionRecord
from .state import StateHandle
from .store import ProgressStore
from .utils import logger, product_model_of


class Delivery(Protocol):
    def deliver(self, record: DetectionRecord, config: Optional[Config] = None) -> bool: ...


class ProcessOutcome(str, Enum):
    UP_TO_DATE = "up_to_date"
    NO_RECORDS = "no_records"
    SYNCED = "synced"
    STALLED = "stalled"


@dataclass
class ProcessResult:
    path: str
    outcome: ProcessOutcome
    delivered: int = 0
    watermark: int = 0
    error: Optional[str] = None


class IngestionCoordinator:
    """Moves newly appended CSV rows to the delivery sink, one bounded batch at a time.

    The per-file watermark (``FileStatus.last_processed_line``) only moves
    after a whole batch was delivered. The first failed record ends the batch,
    leaves watermark and fingerprint untouched and marks the file stalled, so
    the same range is retried on the next cycle.
    """

    def __init__(self, handle: StateHandle, store: ProgressStore, delivery: Delivery,
                 observers: Optional[Observers] = None):
        self.handle = handle
        self.store = store
        self.delivery = delivery
        self.observers = observers or Observers()

    def persist(self) -> bool:
        return self.store.save_snapshot(self.handle.snapshot)

    def check_files(self, paths: Iterable[str | Path], config: Config) -> List[ProcessResult]:
        """Process every file whose fingerprint differs from the stored one, in order."""
        results: List[ProcessResult] = []
        latest, latest_mtime = None, None
        for p in paths:
            path = str(Path(p).resolve())
            try:
                mtime = os.path.getmtime(path)
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
                continue
            if latest_mtime is None or mtime > latest_mtime:
                latest, latest_mtime = path, mtime

            with self.handle.mutate() as state:
                fs = state.file_status(path)
                fs.last_modified_time = datetime.fromtimestamp(mtime)
                previous = fs.file_hash
            current_hash = self.store.fingerprint_of(path)
            if not differs(current_hash, previous):
                continue
            logger.info(f"Change detected: {path}")
            results.append(self.process_file(path, config, current_hash))

        if latest is not None:
            self.handle.update(lambda s: setattr(s, "last_modified_file_name", latest))
        return results

    def process_file(self, path: str | Path, config: Config,
                     current_hash: Optional[str] = None) -> ProcessResult:
        """Deliver the next batch of unread rows; ``current_hash`` may come from the caller."""
        path = str(Path(path).resolve())
        if current_hash is None:
            current_hash = self.store.fingerprint_of(path)
        watermark = self.handle.update(lambda s: s.file_status(path).last_processed_line)

        _, total = count_rows(path)
        if total <= watermark:
            if total < watermark:
                logger.warning(f"{path} has {total} data rows, fewer than watermark {watermark}")
            else:
                logger.debug(f"No new rows in {path} (watermark {watermark})")
            self._set_fingerprint(path, current_hash)
            return ProcessResult(path, ProcessOutcome.UP_TO_DATE, watermark=watermark)

        unread = total - watermark
        limit = min(unread, config.batch_size) if config.batch_size > 0 else unread
        logger.info(f"{path}: {unread} unread rows after {watermark}, batch limit {limit}")
        self.handle.update(lambda s: setattr(s, "file_name", path))

        records = parse_range(path, watermark, limit, config.source_encoding)
        if not records:
            logger.info(f"{path}: no valid records in rows {watermark + 1}..{total}")
            self._set_fingerprint(path, current_hash)
            return ProcessResult(path, ProcessOutcome.NO_RECORDS, watermark=watermark)

        model = product_model_of(path)
        delivered = 0
        for record in records:
            record.product_model = model
            if not self.delivery.deliver(record, config):
                return self._stall(path, record, delivered, watermark)
            delivered += 1
            with self.handle.mutate() as state:
                fs = state.file_status(path)
                fs.total_processed_lines += 1
                fs.last_processed_time = datetime.now()

        last_row = records[-1].row_index
        truncated = len(records) >= limit and limit < unread
        if truncated:
            new_watermark = last_row
        else:
            # trailing blank rows never move the watermark
            fresh_last_non_blank, _ = count_rows(path)
            new_watermark = max(last_row, min(fresh_last_non_blank, total))
        new_watermark = max(new_watermark, watermark)

        with self.handle.mutate() as state:
            fs = state.file_status(path)
            fs.last_processed_line = new_watermark
            fs.stalled = False
            if not truncated:
                fs.file_hash = current_hash
        self.persist()
        self.observers.status_changed()
        logger.info(f"{path}: delivered {delivered} records, watermark {watermark} -> {new_watermark}")
        return ProcessResult(path, ProcessOutcome.SYNCED, delivered=delivered, watermark=new_watermark)

    def forget_file(self, path: str | Path) -> bool:
        path = str(Path(path).resolve())
        dropped = self.handle.update(lambda s: s.drop_file(path))
        if dropped:
            logger.info(f"File removed, dropping its status: {path}")
            self.persist()
            self.observers.status_changed()
        return dropped

    def _set_fingerprint(self, path: str, current_hash: Optional[str]):
        with self.handle.mutate() as state:
            fs = state.file_status(path)
            fs.stalled = False
            if current_hash is not None:
                fs.file_hash = current_hash

    def _stall(self, path: str, record: DetectionRecord, delivered: int, watermark: int) -> ProcessResult:
        message = (f"delivery failed for {record.business_key()} (row {record.row_index}); "
                   f"{delivered} earlier records sent, watermark kept at {watermark}")
        with self.handle.mutate() as state:
            fs = state.file_status(path)
            fs.failed_lines += 1
            fs.stalled = True
            fs.last_processed_time = datetime.now()
        logger.error(f"{path}: {message}")
        self.persist()
        self.observers.delivery_failed(path, message)
        self.observers.status_changed()
        return ProcessResult(path, ProcessOutcome.STALLED, delivered=delivered, watermark=watermark, error=message)
