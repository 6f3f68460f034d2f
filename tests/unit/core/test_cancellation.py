"""Tests for cooperative cancellation."""

import signal

import pytest

from wt.core.cancellation import CancellationToken, cancel_on_sigint
from wt.core.errors import OperationCancelled


def test_token_starts_uncancelled() -> None:
    token = CancellationToken()

    assert not token.cancelled
    token.raise_if_cancelled()


def test_cancelled_token_raises() -> None:
    """raise_if_cancelled() raises once cancel() was called."""
    token = CancellationToken()
    token.cancel()

    assert token.cancelled
    with pytest.raises(OperationCancelled, match="Operation cancelled"):
        token.raise_if_cancelled()


def test_first_sigint_cancels_instead_of_interrupting() -> None:
    """Within cancel_on_sigint the first Ctrl-C only flips the token."""
    previous = signal.getsignal(signal.SIGINT)

    with cancel_on_sigint(CancellationToken()) as token:
        signal.raise_signal(signal.SIGINT)
        assert token.cancelled
        # A second Ctrl-C interrupts immediately
        with pytest.raises(KeyboardInterrupt):
            signal.raise_signal(signal.SIGINT)

    assert signal.getsignal(signal.SIGINT) is previous
