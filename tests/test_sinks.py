import base64
import json

import requests

from datatransfer.mapping import file_base64, to_equipment_runtime_data, to_serial_code_result
from datatransfer.schemas import Config, DetectionRecord
from datatransfer.sinks import EQUIPMENT_PATH, SERIAL_PATH, HttpDelivery


class _Response:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


class _Session:
    """Stands in for requests.Session; replays ``responses`` in order."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        r = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(r, Exception):
            raise r
        return r

    def close(self):
        self.closed = True


def _record():
    return DetectionRecord(
        barcode="A1",
        date="2024-01-01",
        result="OK",
        measurements={"温度": "25.3", "湿度": "40"},
        product_model="ModelX",
    )


def _cfg(**kw):
    base = dict(api_base_url="http://mes.local/", equipment_code="EQ1", line_code="L1",
                max_retries=3, retry_delay=0)
    base.update(kw)
    return Config(**base)


def test_equipment_payload_shape():
    payload = to_equipment_runtime_data(_record(), "EQ1").to_json()
    assert payload == {
        "equipmentCode": "EQ1",
        "points": [
            {"pointName": "温度", "pointValue": "25.3"},
            {"pointName": "湿度", "pointValue": "40"},
        ],
    }


def test_serial_payload_shape_and_blob():
    blob = file_base64(_record())
    payload = to_serial_code_result(_record(), "L1", blob).to_json()
    assert payload["lineCode"] == "L1"
    assert payload["snCode"] == "A1"
    assert payload["result"] == "OK"
    assert payload["points"] == [{"code": "温度", "text": "25.3"}, {"code": "湿度", "text": "40"}]
    text = base64.b64decode(payload["fileBase64Data"]).decode("utf-8")
    assert text.splitlines() == ["二维码,日期,结果", "A1,2024-01-01,OK", "温度,25.3", "湿度,40"]


def test_equipment_delivery_posts_utf8_json():
    session = _Session(_Response(200, "{}"))
    delivery = HttpDelivery(_cfg(), session=session)

    assert delivery.deliver(_record()) is True
    (call,) = session.calls
    assert call["url"] == "http://mes.local" + EQUIPMENT_PATH
    assert call["headers"]["Content-Type"] == "application/json; charset=UTF-8"
    assert call["timeout"] == (10, 30)
    assert "温度".encode("utf-8") in call["data"]
    assert json.loads(call["data"].decode("utf-8"))["equipmentCode"] == "EQ1"


def test_serial_delivery_uses_passed_config_snapshot():
    session = _Session(_Response(201))
    delivery = HttpDelivery(_cfg(), session=session)

    assert delivery.deliver(_record(), _cfg(api_type="serial", attach_file_blob=False)) is True
    body = json.loads(session.calls[0]["data"])
    assert session.calls[0]["url"].endswith(SERIAL_PATH)
    assert body["snCode"] == "A1"
    assert body["fileBase64Data"] is None


def test_transient_failure_is_retried():
    session = _Session(_Response(503, "busy"), _Response(200))
    assert HttpDelivery(_cfg(), session=session).deliver(_record()) is True
    assert len(session.calls) == 2


def test_gives_up_after_max_retries():
    session = _Session(_Response(500, "boom"))
    assert HttpDelivery(_cfg(max_retries=3), session=session).deliver(_record()) is False
    assert len(session.calls) == 3


def test_transport_errors_are_retried_then_reported():
    session = _Session(requests.ConnectionError("refused"))
    assert HttpDelivery(_cfg(max_retries=2), session=session).deliver(_record()) is False
    assert len(session.calls) == 2


def test_unknown_api_type_is_not_sent():
    session = _Session(_Response(200))
    cfg = _cfg().model_copy(update={"api_type": "bogus"})
    assert HttpDelivery(cfg, session=session).deliver(_record()) is False
    assert session.calls == []


def test_close_closes_session():
    session = _Session(_Response(200))
    HttpDelivery(_cfg(), session=session).close()
    assert session.closed
