"""
Field elements of the Cairo prime field.

A `Felt` always holds its canonical representative in [0, PRIME). It compares
and hashes like the `int` with the same canonical value, so it can be used as
a drop-in key next to plain integers.
"""

from typing import Optional, Union

from starkware.cairo.lang.cairo_constants import DEFAULT_PRIME
from starkware.python.math_utils import div_mod
from sympy import sqrt_mod

from cairo_vm.vm.errors import FeltDivisionByZeroError, NonResidueError

PRIME = DEFAULT_PRIME
FELT_BYTES = 32
U64_MAX = 2**64 - 1

IntLike = Union[int, "Felt"]


class Felt:
    __slots__ = ("_value",)

    def __init__(self, value: IntLike = 0):
        self._value = int(value) % PRIME

    # Conversions

    @property
    def value(self) -> int:
        return self._value

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __repr__(self) -> str:
        return f"Felt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __format__(self, format_spec: str) -> str:
        return format(self._value, format_spec)

    def __hash__(self) -> int:
        return hash(self._value)

    @classmethod
    def from_bytes_be(cls, data: bytes) -> "Felt":
        return cls(int.from_bytes(data, "big"))

    @classmethod
    def from_bytes_le(cls, data: bytes) -> "Felt":
        return cls(int.from_bytes(data, "little"))

    def to_bytes_be(self) -> bytes:
        return self._value.to_bytes(FELT_BYTES, "big")

    def to_bytes_le(self) -> bytes:
        return self._value.to_bytes(FELT_BYTES, "little")

    def to_u64(self) -> Optional[int]:
        return self._value if self._value <= U64_MAX else None

    # Offsets and sizes share the u64 range.
    to_usize = to_u64

    def to_signed_int(self) -> int:
        """Maps the upper half of the field to negative integers."""
        return self._value - PRIME if self._value > PRIME // 2 else self._value

    def bits(self) -> int:
        return self._value.bit_length()

    def is_zero(self) -> bool:
        return self._value == 0

    # Comparisons

    def __eq__(self, other) -> bool:
        if isinstance(other, Felt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other) -> bool:
        if isinstance(other, (Felt, int)):
            return self._value < int(other)
        return NotImplemented

    def __le__(self, other) -> bool:
        if isinstance(other, (Felt, int)):
            return self._value <= int(other)
        return NotImplemented

    def __gt__(self, other) -> bool:
        if isinstance(other, (Felt, int)):
            return self._value > int(other)
        return NotImplemented

    def __ge__(self, other) -> bool:
        if isinstance(other, (Felt, int)):
            return self._value >= int(other)
        return NotImplemented

    # Arithmetic

    def __add__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value + int(other))
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, int):
            return Felt(other + self._value)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value - int(other))
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, int):
            return Felt(other - self._value)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value * int(other))
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, int):
            return Felt(other * self._value)
        return NotImplemented

    def __truediv__(self, other):
        if not isinstance(other, (Felt, int)):
            return NotImplemented
        divisor = int(other) % PRIME
        if divisor == 0:
            raise FeltDivisionByZeroError(self)
        return Felt(div_mod(self._value, divisor, PRIME))

    def __rtruediv__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return Felt(other) / self

    # Integer division in the field is multiplication by the inverse.
    __floordiv__ = __truediv__
    __rfloordiv__ = __rtruediv__

    def __pow__(self, exponent, modulo=None):
        if not isinstance(exponent, (Felt, int)):
            return NotImplemented
        if modulo is not None:
            return self.modpow(exponent, modulo)
        exponent = int(exponent)
        if exponent < 0:
            return Felt(1) / Felt(pow(self._value, -exponent, PRIME))
        return Felt(pow(self._value, exponent, PRIME))

    def modpow(self, exponent: IntLike, modulus: IntLike) -> "Felt":
        """Raises to `exponent` modulo an arbitrary `modulus`, then reduces."""
        return Felt(pow(self._value, int(exponent), int(modulus)))

    def __neg__(self) -> "Felt":
        return Felt(-self._value)

    def __pos__(self) -> "Felt":
        return self

    def __abs__(self) -> "Felt":
        return self

    def sqrt(self) -> "Felt":
        """
        Returns the smaller of the two square roots.

        Raises NonResidueError when the value has no square root in the field.
        """
        if self._value == 0:
            return Felt(0)
        root = sqrt_mod(self._value, PRIME)
        if root is None:
            raise NonResidueError(self)
        root = int(root)
        return Felt(min(root, PRIME - root))

    # Bitwise

    def __lshift__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value << int(other))
        return NotImplemented

    def __rshift__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value >> int(other))
        return NotImplemented

    def __and__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value & int(Felt(other)))
        return NotImplemented

    __rand__ = __and__

    def __or__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value | int(Felt(other)))
        return NotImplemented

    __ror__ = __or__

    def __xor__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value ^ int(Felt(other)))
        return NotImplemented

    __rxor__ = __xor__

    def __mod__(self, other):
        if isinstance(other, (Felt, int)):
            return Felt(self._value % int(other))
        return NotImplemented


def to_felt(value: IntLike) -> Felt:
    return value if isinstance(value, Felt) else Felt(value)
