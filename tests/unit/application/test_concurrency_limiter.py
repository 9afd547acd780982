"""Unit tests for the non-blocking ConcurrencyLimiter."""

import pytest

from filebridge.application.concurrency_limiter import ConcurrencyLimiter
from filebridge.domain.errors import ServiceBusyError


def test_slot_is_released_after_block():
    limiter = ConcurrencyLimiter("upload", 1)

    with limiter.slot():
        pass

    with limiter.slot():
        pass


def test_full_limiter_raises_busy():
    limiter = ConcurrencyLimiter("transcode", 2)

    with limiter.slot(), limiter.slot():
        with pytest.raises(ServiceBusyError):
            with limiter.slot():
                pass


def test_slot_is_released_when_block_raises():
    limiter = ConcurrencyLimiter("upload", 1)

    with pytest.raises(RuntimeError):
        with limiter.slot():
            raise RuntimeError("boom")

    assert limiter.try_acquire() is True
    limiter.release()


@pytest.mark.parametrize("limit", [0, -1])
def test_limit_must_be_positive(limit):
    with pytest.raises(ValueError):
        ConcurrencyLimiter("upload", limit)
