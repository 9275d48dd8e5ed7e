## datatransfer/schemas.py

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt
from .utils import product_model_of

API_TYPE_EQUIPMENT = "equipment"
API_TYPE_SERIAL = "serial"


class Verdict(str, Enum):
    OK = "OK"
    NG = "NG"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def classify(cls, text: Optional[str]) -> "Verdict":
        value = (text or "").strip().upper()
        if value in (cls.OK.value, cls.NG.value):
            return cls(value)
        return cls.UNKNOWN


class DetectionRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    barcode: str
    date: str = ""
    result: str = ""
    measurements: Dict[str, str] = Field(default_factory=dict)
    product_model: Optional[str] = None
    row_index: int = 0

    @property
    def verdict_class(self) -> Verdict:
        return Verdict.classify(self.result)

    def business_key(self) -> str:
        return f"{self.barcode}_{self.date}"


# -------- persisted documents --------

class _Persisted(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Config(_Persisted):
    api_base_url: str = "http://aaabbb.com"
    equipment_code: Optional[str] = None
    line_code: Optional[str] = None
    csv_dir: Optional[str] = None
    monitor_interval: PositiveInt = 3
    max_retries: int = 3
    retry_delay: float = 5
    continue_from_last_position: bool = True
    api_type: Literal["equipment", "serial"] = API_TYPE_EQUIPMENT
    monitor_all_files: bool = True
    batch_size: int = 100
    file_extension: str = ".csv"
    source_encoding: str = "gbk"
    flush_interval: PositiveFloat = 2
    connect_timeout: float = 10
    read_timeout: float = 30
    attach_file_blob: bool = True

    @property
    def is_equipment_api(self) -> bool:
        return self.api_type == API_TYPE_EQUIPMENT

    @property
    def is_serial_api(self) -> bool:
        return self.api_type == API_TYPE_SERIAL


class FileStatus(_Persisted):
    file_path: Optional[str] = None
    file_hash: Optional[str] = None
    product_model: Optional[str] = None
    last_processed_line: int = 0
    total_processed_lines: int = 0
    failed_lines: int = 0
    last_modified_time: Optional[datetime] = None
    last_processed_time: Optional[datetime] = None
    stalled: bool = False


class TransferState(_Persisted):
    running: bool = False
    file_name: Optional[str] = None
    file_status_map: Dict[str, FileStatus] = Field(default_factory=dict)
    last_modified_file_name: Optional[str] = None
    total_processed_lines: int = 0
    failed_lines: int = 0
    last_processed_time: Optional[datetime] = None

    def file_status(self, path: str) -> FileStatus:
        """Existing entry for ``path`` or a new, registered one."""
        if path not in self.file_status_map:
            self.file_status_map[path] = FileStatus(file_path=path, product_model=product_model_of(path))
        return self.file_status_map[path]

    def refresh_totals(self):
        fs = list(self.file_status_map.values())
        self.total_processed_lines = sum(s.total_processed_lines for s in fs)
        self.failed_lines = sum(s.failed_lines for s in fs)
        times = [s.last_processed_time for s in fs if s.last_processed_time]
        self.last_processed_time = max(times) if times else None

    def drop_file(self, path: str) -> bool:
        if self.file_status_map.pop(path, None) is None:
            return False
        if self.file_name == path:
            self.file_name = None
        if self.last_modified_file_name == path:
            self.last_modified_file_name = None
        self.refresh_totals()
        return True


# -------- outbound requests --------

class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class RuntimePoint(_Request):
    point_name: str = Field(alias="pointName")
    point_value: Optional[str] = Field(default=None, alias="pointValue")


class EquipmentRuntimeDataRequest(_Request):
    equipment_code: Optional[str] = Field(default=None, alias="equipmentCode")
    points: List[RuntimePoint] = Field(default_factory=list)


class ResultPoint(_Request):
    code: str
    text: Optional[str] = None


class SerialCodeResultRequest(_Request):
    line_code: Optional[str] = Field(default=None, alias="lineCode")
    sn_code: str = Field(alias="snCode")
    result: Optional[str] = None
    file_base64_data: Optional[str] = Field(default=None, alias="fileBase64Data")
    points: List[ResultPoint] = Field(default_factory=list)
