## datatransfer/mapping.py

from __future__ import annotations
import base64
from typing import Optional
from .schemas import (
    DetectionRecord,
    EquipmentRuntimeDataRequest,
    ResultPoint,
    RuntimePoint,
    SerialCodeResultRequest,
)

"""
Shape DetectionRecords into the two outbound request bodies:
- variant A, equipment runtime data: equipment code + {pointName, pointValue}
- variant B, serial code result: line code, barcode, verdict, optional blob + {code, text}
Point order follows the measurement (column) order.
"""

BLOB_HEADER = "二维码,日期,结果"


def to_equipment_runtime_data(record: DetectionRecord, equipment_code: Optional[str]) -> EquipmentRuntimeDataRequest:
    return EquipmentRuntimeDataRequest(
        equipment_code=equipment_code,
        points=[RuntimePoint(point_name=k, point_value=v) for k, v in record.measurements.items()],
    )


def to_serial_code_result(record: DetectionRecord, line_code: Optional[str],
                          file_base64: Optional[str] = None) -> SerialCodeResultRequest:
    return SerialCodeResultRequest(
        line_code=line_code,
        sn_code=record.barcode,
        result=record.result,
        file_base64_data=file_base64,
        points=[ResultPoint(code=k, text=v) for k, v in record.measurements.items()],
    )


def file_base64(record: DetectionRecord) -> str:
    """Small CSV rendition of one record, base64 encoded (UTF-8)."""
    lines = [BLOB_HEADER, f"{record.barcode},{record.date},{record.result}"]
    lines += [f"{k},{v}" for k, v in record.measurements.items()]
    return base64.b64encode(("\n".join(lines) + "\n").encode("utf-8")).decode("ascii")
