"""Tests for RingBuffer."""

import numpy as np
import pytest

from equigait.buffers import RingBuffer


# ── 1. Capacity bound ───────────────────────────────────────────────

def test_never_exceeds_capacity():
    buf = RingBuffer(256)
    for i in range(1000):
        buf.append(i)
        assert len(buf) <= 256
    assert buf.is_full


# ── 2. FIFO eviction ────────────────────────────────────────────────

def test_oldest_evicted_first():
    buf = RingBuffer(3)
    buf.extend([1, 2, 3, 4, 5])
    np.testing.assert_array_equal(buf.to_array(), [3.0, 4.0, 5.0])


def test_tail_returns_most_recent():
    buf = RingBuffer(10)
    buf.extend(range(10))
    np.testing.assert_array_equal(buf.tail(3), [7.0, 8.0, 9.0])
    assert buf.tail(0).size == 0
    assert buf.tail(50).size == 10


# ── 3. RMS ──────────────────────────────────────────────────────────

def test_rms_of_window_and_tail():
    buf = RingBuffer(4)
    buf.extend([3.0, -3.0, 1.0, -1.0])
    assert buf.rms() == pytest.approx(np.sqrt(5.0))
    assert buf.rms(2) == pytest.approx(1.0)


def test_rms_empty_is_zero():
    assert RingBuffer(5).rms() == 0.0


# ── 4. Clear and validation ─────────────────────────────────────────

def test_clear_empties_buffer():
    buf = RingBuffer(4)
    buf.extend([1, 2])
    buf.clear()
    assert len(buf) == 0
    assert not buf.is_full


def test_invalid_capacity_raises():
    with pytest.raises(ValueError, match="capacity"):
        RingBuffer(0)
