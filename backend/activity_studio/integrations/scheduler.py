"""Deferred single execution of background tasks."""
from __future__ import annotations
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class Scheduler(ABC):
    """
    Runs `task` once, no earlier than `delay_seconds` from now.
    Delivery is at-least-once: callers must tolerate a task running twice.
    """

    @abstractmethod
    def after(self, delay_seconds: float, task: Callable[[], None]) -> None:
        ...


class ThreadScheduler(Scheduler):
    def after(self, delay_seconds: float, task: Callable[[], None]) -> None:
        timer = threading.Timer(max(delay_seconds, 0.0), self._run, args=(task,))
        timer.daemon = True
        timer.start()

    @staticmethod
    def _run(task: Callable[[], None]) -> None:
        try:
            task()
        except Exception:
            logger.exception("Deferred task crashed")
