## datatransfer/state.py

from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar
from .schemas import TransferState

T = TypeVar("T")


class StateHandle:
    """Lock-guarded owner of the in-memory TransferState.

    The poll task mutates through ``mutate()``/``update()``; the flush task
    only ever sees ``snapshot()`` copies.
    """

    def __init__(self, state: TransferState | None = None):
        self._state = state or TransferState()
        self._lock = threading.RLock()

    @contextmanager
    def mutate(self) -> Iterator[TransferState]:
        with self._lock:
            yield self._state
            self._state.refresh_totals()

    def update(self, fn: Callable[[TransferState], T]) -> T:
        with self.mutate() as state:
            return fn(state)

    def snapshot(self) -> TransferState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def replace(self, state: TransferState):
        with self._lock:
            self._state = state
            self._state.refresh_totals()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._state.running
