## datatransfer/alerts.py

from __future__ import annotations
import os, smtplib, requests
from email.mime.text import MIMEText
from typing import Callable, List
from .utils import logger

FailureListener = Callable[[str, str], None]
StatusListener = Callable[[], None]


def send_email(subject: str, body: str):
    host = os.getenv("SMTP_HOST"); user = os.getenv("SMTP_USER"); pwd = os.getenv("SMTP_PASS")
    to_addr = os.getenv("ALERT_EMAIL_TO")
    if not all([host, user, pwd, to_addr]):
        return
    msg = MIMEText(body, _charset="utf-8")
    msg["Subject"] = subject
    msg["From"] = user
    msg["To"] = to_addr
    with smtplib.SMTP(host) as s:
        s.starttls(); s.login(user, pwd); s.sendmail(user, [to_addr], msg.as_string())


def send_slack(text: str):
    url = os.getenv("SLACK_WEBHOOK_URL")
    if not url: return
    requests.post(url, json={"text": text}, timeout=5)


def notify_operator(path: str, message: str):
    """Default terminal-failure listener: email + slack when configured."""
    try:
        send_email("Data transfer failure", f"File: {path}\nError: {message}")
        send_slack(f":rotating_light: data transfer failure for {path}: {message}")
    except (OSError, smtplib.SMTPException, requests.RequestException) as e:
        logger.error(f"Failed sending alert for {path}: {e}")


class Observers:
    """Callback registry for the two events the core emits."""

    def __init__(self):
        self._failed: List[FailureListener] = []
        self._status: List[StatusListener] = []

    def on_delivery_failed(self, fn: FailureListener) -> FailureListener:
        self._failed.append(fn)
        return fn

    def on_status_changed(self, fn: StatusListener) -> StatusListener:
        self._status.append(fn)
        return fn

    def delivery_failed(self, path: str, message: str):
        for fn in list(self._failed):
            try:
                fn(path, message)
            except Exception:
                logger.exception(f"delivery_failed listener {fn!r} raised")

    def status_changed(self):
        for fn in list(self._status):
            try:
                fn()
            except Exception:
                logger.exception(f"status_changed listener {fn!r} raised")
