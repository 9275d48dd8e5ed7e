## datatransfer/parser.py

from __future__ import annotations
import csv
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from .normalize import BYTE_PRESERVING, LEGACY_ENCODING, normalize
from .schemas import DetectionRecord, Verdict
from .utils import logger

VERDICT_HEADER = "判定"
MIN_COLUMNS = 3


def is_blank(row: List[str]) -> bool:
    return all(not (v or "").strip() for v in row)


@contextmanager
def _rows(path: str | Path) -> Iterator[Tuple[Optional[List[str]], Iterator[Tuple[int, List[str]]]]]:
    """Yield ``(header, rows)``; rows are ``(index, raw_fields)`` with 1-based data-row indices."""
    with open(path, "r", encoding=BYTE_PRESERVING, newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        yield header, enumerate(reader, start=1)


def locate_verdict_column(header: List[str], encoding: str = LEGACY_ENCODING) -> Optional[int]:
    for i, name in enumerate(header):
        if (normalize(name, encoding) or "").strip() == VERDICT_HEADER:
            return i
    return None


def build_record(header: List[str], row: List[str], verdict_col: Optional[int],
                 row_index: int = 0, encoding: str = LEGACY_ENCODING) -> Optional[DetectionRecord]:
    if len(row) < MIN_COLUMNS:
        logger.warning(f"Row {row_index}: expected at least {MIN_COLUMNS} columns, got {len(row)}; skipped")
        return None

    if verdict_col is not None and verdict_col < len(row):
        result_idx = verdict_col
        columns = range(2, len(row))
    else:
        # no verdict header: second-to-last column is the verdict, last column is not a measurement
        result_idx = max(0, len(row) - 2)
        columns = range(2, len(row) - 1)

    record = DetectionRecord(
        barcode=normalize(row[0], encoding),
        date=normalize(row[1], encoding),
        result=normalize(row[result_idx], encoding),
        row_index=row_index,
    )
    for i in columns:
        if i == result_idx or i >= len(header):
            continue
        value = row[i]
        if not value or not value.strip():
            continue
        key = (normalize(header[i], encoding) or "").strip()
        if key and key not in record.measurements:
            record.measurements[key] = normalize(value, encoding)

    if record.verdict_class is Verdict.UNKNOWN:
        logger.warning(f"Row {row_index}: suspicious verdict {record.result!r} for barcode {record.barcode}")
    return record


def count_rows(path: str | Path) -> Tuple[int, int]:
    """Return ``(last_non_blank_row, total_rows)`` counting data rows only."""
    last_non_blank, total = 0, 0
    try:
        with _rows(path) as (header, rows):
            for idx, row in rows:
                total = idx
                if not is_blank(row):
                    last_non_blank = idx
    except (OSError, csv.Error) as e:
        logger.error(f"Failed counting rows in {path}: {e}")
    return last_non_blank, total


def parse_range(path: str | Path, start_row: int = 0, max_rows: int = -1,
                encoding: str = LEGACY_ENCODING) -> List[DetectionRecord]:
    """Parse records after the first ``start_row`` data rows.

    Blank rows are skipped, malformed rows are logged and skipped; both still
    advance the row index. At most ``max_rows`` records are returned
    (``-1`` = no limit). The file is reopened on every call.
    """
    records: List[DetectionRecord] = []
    if max_rows == 0:
        return records
    try:
        with _rows(path) as (header, rows):
            if header is None:
                logger.error(f"CSV file is empty or has no header: {path}")
                return records
            verdict_col = locate_verdict_column(header, encoding)
            for idx, row in rows:
                if idx <= start_row or is_blank(row):
                    continue
                record = build_record(header, row, verdict_col, idx, encoding)
                if record is None:
                    continue
                records.append(record)
                if max_rows != -1 and len(records) >= max_rows:
                    break
    except (OSError, csv.Error) as e:
        logger.error(f"Failed parsing {path}: {e}")
    return records


def parse_file(path: str | Path, encoding: str = LEGACY_ENCODING) -> List[DetectionRecord]:
    return parse_range(path, 0, -1, encoding)


def parse_last_record(path: str | Path, encoding: str = LEGACY_ENCODING) -> Optional[DetectionRecord]:
    last: Optional[Tuple[int, List[str]]] = None
    header: Optional[List[str]] = None
    try:
        with _rows(path) as (header, rows):
            for idx, row in rows:
                if not is_blank(row):
                    last = (idx, row)
    except (OSError, csv.Error) as e:
        logger.error(f"Failed parsing {path}: {e}")
        return None
    if header is None or last is None:
        return None
    return build_record(header, last[1], locate_verdict_column(header, encoding), last[0], encoding)
