"""Convert pairs of 16-bit Modbus holding registers to and from IEEE 754 binary32 values."""

import numpy as np

# Field device and host are assumed to share byte order; words arrive high word first.


def _check_word(name: str, word: int) -> None:
    if not 0 <= word <= 0xFFFF:
        raise ValueError(f"{name} register word out of range 0–65535: {word}")


def decode_f32(first: int, second: int) -> np.float32:
    """
    Decode two consecutive register words into one 32-bit float.

    `first` supplies the high 16 bits and `second` the low 16 bits. Every bit
    pattern decodes, NaN and ±Inf included; callers guard against non-finite values.
    The result stays a binary32 scalar, so NaN payloads survive a re-encode.
    """
    _check_word("first", first)
    _check_word("second", second)
    bits = np.uint32((first << 16) | second)
    return bits.view(np.float32)


def encode_f32(value: float) -> tuple[int, int]:
    """Inverse of decode_f32: split a binary32 value into (high word, low word)."""
    f32 = value if isinstance(value, np.float32) else np.float32(value)
    bits = int(f32.view(np.uint32))
    return (bits >> 16) & 0xFFFF, bits & 0xFFFF
