"""Cooperative cancellation checked between entities.

A move of a single repository or worktree is never interrupted halfway: the
engine only consults the token before starting the next entity.
"""

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

from wt.core.errors import OperationCancelled


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()


@contextmanager
def cancel_on_sigint(token: CancellationToken) -> Iterator[CancellationToken]:
    """Turn the first Ctrl-C into a cancellation request.

    A second Ctrl-C falls through to the default handler and interrupts
    immediately. Outside the main thread signal handlers cannot be installed,
    so the token is yielded unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    previous = signal.getsignal(signal.SIGINT)

    def handler(signum: int, frame: FrameType | None) -> None:
        token.cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
