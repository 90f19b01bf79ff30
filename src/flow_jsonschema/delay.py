"""Cancellable wakeups used to bound how long we wait on flow."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any


class _Marker:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


ELAPSED = _Marker("ELAPSED")
ABANDON = _Marker("ABANDON")


class CancellableDelay:
    """Awaitable that resolves with ``value`` after ``seconds``.

    ``cancel`` stops the timer early. By default the delay then resolves with
    ``resolve_with``; passing ``ABANDON`` leaves it pending forever, which is
    only safe once nothing awaits it anymore (e.g. it already lost a race).
    """

    def __init__(self, seconds: float, value: Any = ELAPSED) -> None:
        loop = asyncio.get_running_loop()
        self.future: asyncio.Future[Any] = loop.create_future()
        self._timer: asyncio.TimerHandle | None = loop.call_later(
            max(0.0, seconds), self._fire, value
        )

    def _fire(self, value: Any) -> None:
        self._timer = None
        if not self.future.done():
            self.future.set_result(value)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def cancel(self, resolve_with: Any = None) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        if resolve_with is not ABANDON and not self.future.done():
            self.future.set_result(resolve_with)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.future.__await__()


def schedule(seconds: float, value: Any = ELAPSED) -> CancellableDelay:
    """Start a delay on the running loop."""
    return CancellableDelay(seconds, value)


__all__ = ["ABANDON", "ELAPSED", "CancellableDelay", "schedule"]
