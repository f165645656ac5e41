"""
Unsigned 128-bit checked arithmetic for pool math.

Every amount, reserve and share count in the engine is a ``uint128``.
Intermediate products are checked as well, so an input large enough to
overflow is rejected with ``ArithmeticOverflow`` instead of wrapping:

    >>> mul(2, 3)
    6
    >>> sub(1, 2)
    Traceback (most recent call last):
        ...
    relayswap_core.errors.ArithmeticOverflow: Underflow: 1 - 2
"""

from __future__ import annotations

from relayswap_core.errors import ArithmeticOverflow

U128_MAX: int = 2**128 - 1
UINT_WIDTH_BYTES: int = 16


def check_u128(value: int, name: str = "value") -> int:
    """Return *value* unchanged if it is a valid uint128, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticOverflow(f"{name} is negative: {value}")
    if value > U128_MAX:
        raise ArithmeticOverflow(f"{name} exceeds uint128: {value}")
    return value


def add(a: int, b: int) -> int:
    result = a + b
    if result > U128_MAX:
        raise ArithmeticOverflow(f"Overflow: {a} + {b}")
    return result


def sub(a: int, b: int) -> int:
    result = a - b
    if result < 0:
        raise ArithmeticOverflow(f"Underflow: {a} - {b}")
    return result


def mul(a: int, b: int) -> int:
    result = a * b
    if result > U128_MAX:
        raise ArithmeticOverflow(f"Overflow: {a} * {b}")
    return result


def div(a: int, b: int) -> int:
    """Floor division; division by zero is an arithmetic fault."""
    if b == 0:
        raise ArithmeticOverflow(f"Division by zero: {a} // 0")
    return a // b


def isqrt(n: int) -> int:
    """
    Approximate integer square root used for first-deposit share minting.

    Two Newton refinements starting from ``n // 2``; the result is NOT a
    converged root.  ``isqrt(4_000_000)`` walks 2_000_000 -> 1_000_001 ->
    500_002.  Inputs below 2 give a zero starting guess and return 0.
    """
    guess = n // 2
    if guess == 0:
        return 0
    for _ in range(2):
        guess = (guess + n // guess) // 2
    return guess


def encode_uint(value: int) -> bytes:
    """Fixed-width big-endian encoding of a uint128 (16 bytes)."""
    return check_u128(value).to_bytes(UINT_WIDTH_BYTES, "big")
