from __future__ import annotations

import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_query_time_ms: ContextVar[float | None] = ContextVar("query_time_ms", default=None)


def start_query_timer() -> object:
    return _query_time_ms.set(0.0)


def stop_query_timer(token: object) -> None:
    _query_time_ms.reset(token)


def add_query_time(delta_ms: float) -> None:
    current = _query_time_ms.get()
    if current is None:
        return
    _query_time_ms.set(current + delta_ms)


def get_query_time_ms() -> float | None:
    return _query_time_ms.get()


class Stopwatch:
    def __init__(self) -> None:
        self.elapsed_ms = 0.0


@contextmanager
def stopwatch() -> Iterator[Stopwatch]:
    watch = Stopwatch()
    started = time.perf_counter()
    try:
        yield watch
    finally:
        watch.elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
