# tests/conftest.py
import os
import tempfile

# keep test logs out of the working tree; must run before datatransfer.utils is imported
os.environ.setdefault("TRANSFER_LOG_DIR", tempfile.mkdtemp(prefix="transfer-logs-"))

import pytest

from datatransfer.schemas import Config
from datatransfer.state import StateHandle
from datatransfer.store import ProgressStore
from datatransfer.pipeline import IngestionCoordinator

HEADER = ["二维码", "日期", "判定", "温度"]


def write_csv(path, rows, header=HEADER, mode="w", encoding="gbk"):
    """Write rows the way the equipment does: GBK, comma separated, no quoting."""
    lines = []
    if header is not None and mode == "w":
        lines.append(",".join(header))
    lines += [",".join(r) for r in rows]
    with open(path, mode, encoding=encoding, newline="") as f:
        f.write("\r\n".join(lines) + "\r\n")
    return path


def append_csv(path, rows, encoding="gbk"):
    return write_csv(path, rows, header=None, mode="a", encoding=encoding)


class FakeDelivery:
    """Records every attempt; fails on the listed barcodes."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.attempts = []
        self.sent = []

    def deliver(self, record, config=None):
        self.attempts.append(record)
        if record.barcode in self.fail_on:
            return False
        self.sent.append(record)
        return True


@pytest.fixture
def config(tmp_path):
    return Config(csv_dir=str(tmp_path / "incoming"), batch_size=100, max_retries=1, retry_delay=0)


@pytest.fixture
def store(tmp_path):
    return ProgressStore(tmp_path / "data")


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def handle():
    return StateHandle()


@pytest.fixture
def coordinator(handle, store, delivery):
    return IngestionCoordinator(handle, store, delivery)


@pytest.fixture
def incoming(config):
    os.makedirs(config.csv_dir, exist_ok=True)
    return config.csv_dir
