## datatransfer/sinks.py

from __future__ import annotations
import json
from typing import Optional
import requests
from . import mapping
from .schemas import Config, DetectionRecord
from .utils import Retryable, logger, retry

EQUIPMENT_PATH = "/api/DC/SyncEquipmentRuntimeData"
SERIAL_PATH = "/api/UADM/UploadSerialCodeResult"
HEADERS = {
    "Content-Type": "application/json; charset=UTF-8",
    "Accept": "application/json; charset=UTF-8",
}


def endpoint(cfg: Config) -> Optional[str]:
    base = cfg.api_base_url.rstrip("/")
    if cfg.is_equipment_api:
        return base + EQUIPMENT_PATH
    if cfg.is_serial_api:
        return base + SERIAL_PATH
    return None


def build_payload(record: DetectionRecord, cfg: Config) -> Optional[dict]:
    if cfg.is_equipment_api:
        return mapping.to_equipment_runtime_data(record, cfg.equipment_code).to_json()
    if cfg.is_serial_api:
        blob = mapping.file_base64(record) if cfg.attach_file_blob else None
        return mapping.to_serial_code_result(record, cfg.line_code, blob).to_json()
    return None


class HttpDelivery:
    """Posts one record per call; ``deliver`` returns True only on a 2xx."""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update(HEADERS)
        logger.info(f"HTTP delivery ready: max_retries={config.max_retries}, retry_delay={config.retry_delay}s")

    def update_config(self, config: Config):
        self.config = config

    def close(self):
        self.session.close()

    def deliver(self, record: DetectionRecord, config: Optional[Config] = None) -> bool:
        cfg = config or self.config
        url, payload = endpoint(cfg), build_payload(record, cfg)
        if url is None or payload is None:
            logger.warning(f"Unknown api_type: {cfg.api_type!r}")
            return False
        post = retry(times=cfg.max_retries, delay=cfg.retry_delay)(self._post_once)
        try:
            post(url, payload, (cfg.connect_timeout, cfg.read_timeout))
        except Retryable as e:
            logger.error(f"Giving up on {record.barcode} after {cfg.max_retries} attempts: {e}")
            return False
        logger.info(f"Sent {record.barcode} ({record.result}) model={record.product_model} -> {url}")
        return True

    def _post_once(self, url: str, payload: dict, timeout: tuple) -> str:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        logger.debug(f"POST {url} body={body.decode('utf-8')}")
        try:
            r = self.session.post(url, data=body, headers=HEADERS, timeout=timeout)
        except requests.RequestException as e:
            raise Retryable(f"transport error: {e}") from e
        if not 200 <= r.status_code < 300:
            raise Retryable(f"HTTP {r.status_code}: {r.text[:200]}")
        return r.text
