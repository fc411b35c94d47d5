"""
Unit tests for Deadline.
"""

import threading

import pytest

from order_service.deadline import Deadline, check_deadline
from order_service.errors import CancelledError


def test_unbounded_deadline(clock):
    deadline = Deadline(clock=clock)
    clock.advance(10_000)

    assert deadline.remaining() is None
    deadline.check()


def test_remaining_counts_down(clock):
    deadline = Deadline(timeout=5, clock=clock)
    clock.advance(2)

    assert deadline.remaining() == pytest.approx(3)
    assert deadline.expired is False


def test_expired_deadline_raises(clock):
    deadline = Deadline(timeout=5, clock=clock)
    clock.advance(5)

    assert deadline.remaining() == 0.0
    with pytest.raises(CancelledError) as exc_info:
        deadline.check("get")
    assert "deadline" in str(exc_info.value)


def test_cancel_event_raises():
    event = threading.Event()
    deadline = Deadline(timeout=60, cancel_event=event)
    deadline.check()

    event.set()
    with pytest.raises(CancelledError) as exc_info:
        deadline.check("create")
    assert exc_info.value.code == "CANCELLED"


def test_check_deadline_accepts_none():
    check_deadline(None, "list")
