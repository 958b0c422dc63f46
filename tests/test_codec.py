"""Tests for register pair <-> binary32 conversion."""

import math

import numpy as np
import pytest

from pyabtag import RegisterPair, decode_f32, encode_f32


@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        (0x0000, 0x0000, 0.0),
        (0x3F80, 0x0000, 1.0),
        (0x4120, 0x0000, 10.0),
        (0xC000, 0x0000, -2.0),
        (0x3E20, 0x0000, 0.15625),
        (0x4049, 0x0FDB, np.float32(math.pi)),
    ],
)
def test_decode_known_values(first: int, second: int, expected: float) -> None:
    assert decode_f32(first, second) == expected


def test_decode_returns_binary32() -> None:
    assert isinstance(decode_f32(0x3F80, 0x0000), np.float32)


def test_decode_non_finite_passes_through() -> None:
    assert decode_f32(0x7F80, 0x0000) == math.inf
    assert decode_f32(0xFF80, 0x0000) == -math.inf
    assert math.isnan(decode_f32(0x7FC0, 0x0000))
    assert math.isnan(decode_f32(0xFFC0, 0x0000))
    assert math.isnan(decode_f32(0x7F80, 0x0001))


def test_decode_negative_zero() -> None:
    value = decode_f32(0x8000, 0x0000)
    assert value == 0.0
    assert math.copysign(1.0, value) == -1.0


@pytest.mark.parametrize(
    ("first", "second"),
    [
        (0x0000, 0x0000),
        (0x0000, 0x0001),  # smallest subnormal
        (0x007F, 0xFFFF),  # largest subnormal
        (0x3F80, 0x0000),
        (0x4049, 0x0FDB),
        (0x7F7F, 0xFFFF),  # largest finite
        (0xFF7F, 0xFFFF),
        (0x8000, 0x0000),
        (0x7F80, 0x0000),
        (0xFF80, 0x0000),
        (0x7FC0, 0x0000),
        (0xFFC0, 0x0000),
        (0x7FC0, 0x0001),  # quiet NaN with payload
        (0x7F80, 0x0001),  # signalling NaN
        (0xFF80, 0x0001),
        (0x7FBF, 0xFFFF),
    ],
)
def test_round_trip_preserves_words(first: int, second: int) -> None:
    assert encode_f32(decode_f32(first, second)) == (first, second)


def test_encode_python_float() -> None:
    assert encode_f32(10.0) == (0x4120, 0x0000)
    assert encode_f32(-2.0) == (0xC000, 0x0000)


@pytest.mark.parametrize(("first", "second"), [(-1, 0), (0, 0x10000), (0x10000, 0)])
def test_decode_rejects_out_of_range_words(first: int, second: int) -> None:
    with pytest.raises(ValueError, match="out of range"):
        decode_f32(first, second)


def test_register_pair_decode() -> None:
    value = RegisterPair(0x4120, 0x0000).decode()
    assert value == 10.0
    assert type(value) is float


def test_register_pair_validates_words() -> None:
    with pytest.raises(ValueError):
        RegisterPair(0x10000, 0)
