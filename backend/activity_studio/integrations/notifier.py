"""Notification channel: events are queued by the core and delivered best-effort."""
from __future__ import annotations
import logging
import queue
import threading
from abc import ABC, abstractmethod
from typing import Optional

import requests

from activity_studio.core import config

logger = logging.getLogger(__name__)


class Notifier(ABC):

    @abstractmethod
    def send(self, recipient: Optional[str], event: dict) -> None:
        """Deliver one event. May raise; the queue logs and drops failures."""
        ...


class LogNotifier(Notifier):
    def send(self, recipient: Optional[str], event: dict) -> None:
        logger.info("Notification to %s: %s", recipient or "<nobody>", event)


class WebhookNotifier(Notifier):
    """POSTs {"recipient": ..., "event": {...}} as JSON to a configured URL."""

    def __init__(self, url: str, timeout: float = 8.0):
        self._url = url
        self._timeout = timeout

    def send(self, recipient: Optional[str], event: dict) -> None:
        res = requests.post(
            self._url,
            json={"recipient": recipient, "event": event},
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        res.raise_for_status()


def default_notifier() -> Notifier:
    if config.NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(config.NOTIFY_WEBHOOK_URL, timeout=config.NOTIFY_TIMEOUT_SECONDS)
    return LogNotifier()


class EventQueue:
    """
    Output channel the core writes to. `publish` never blocks or raises;
    a daemon worker (or an explicit `drain`) hands events to the notifier.
    """

    def __init__(self, notifier: Notifier, maxsize: Optional[int] = None):
        self._notifier = notifier
        self._queue: "queue.Queue[tuple]" = queue.Queue(
            maxsize=config.NOTIFY_QUEUE_SIZE if maxsize is None else maxsize
        )
        self._worker: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    def publish(self, recipient: Optional[str], event: dict) -> None:
        try:
            self._queue.put_nowait((recipient, event))
        except queue.Full:
            logger.warning("Notification queue full, dropping %s", event.get("kind"))

    def drain(self) -> int:
        """Deliver everything queued so far on the calling thread. Returns the number handled."""
        handled = 0
        while True:
            try:
                recipient, event = self._queue.get_nowait()
            except queue.Empty:
                return handled
            self._deliver(recipient, event)
            self._queue.task_done()
            handled += 1

    def start(self) -> None:
        if self._worker and self._worker.is_alive():
            return
        self._stopping.clear()
        self._worker = threading.Thread(target=self._run, name="notification-worker", daemon=True)
        self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        if self._worker:
            self._worker.join(timeout)
            self._worker = None

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                recipient, event = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            self._deliver(recipient, event)
            self._queue.task_done()

    def _deliver(self, recipient: Optional[str], event: dict) -> None:
        try:
            self._notifier.send(recipient, event)
        except Exception as e:
            logger.warning("Notification %s to %s failed: %s", event.get("kind"), recipient, e)
