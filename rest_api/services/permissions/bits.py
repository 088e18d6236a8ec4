"""
Bit permission evaluation.

Pure functions over an 8-bit permission mask. Every entry point validates its
inputs and raises ValidationError before evaluating.
"""

from collections.abc import Iterable

from shared.config.constants import Limits
from shared.utils.exceptions import InvalidBitError, InvalidMaskError
from .registry import FULL_MASK, PermissionBit, bit_row


def validate_mask(mask: object) -> int:
    """Return ``mask`` if it is an int in [0, 255], else raise InvalidMaskError."""
    # bool is an int subclass but never a mask
    if not isinstance(mask, int) or isinstance(mask, bool):
        raise InvalidMaskError(mask)
    if mask < Limits.MIN_MASK or mask > Limits.MAX_MASK:
        raise InvalidMaskError(mask)
    return mask


def validate_bit(bit: object) -> int:
    """Return ``bit`` as an int if it is in [0, 7], else raise InvalidBitError."""
    if not isinstance(bit, int) or isinstance(bit, bool):
        raise InvalidBitError(bit)
    if bit < Limits.MIN_BIT or bit > Limits.MAX_BIT:
        raise InvalidBitError(bit)
    return int(bit)


def has_bit(mask: int, bit: int) -> bool:
    """True iff bit ``bit`` is set in ``mask``."""
    mask = validate_mask(mask)
    bit = validate_bit(bit)
    return (mask >> bit) & 1 == 1


def is_admin_mask(mask: int) -> bool:
    """Full mask or Administrar bit: bypasses every other check."""
    mask = validate_mask(mask)
    return mask == FULL_MASK or has_bit(mask, PermissionBit.ADMINISTRAR)


def mask_from_bits(bits: Iterable[int]) -> int:
    mask = 0
    for bit in bits:
        mask |= 1 << validate_bit(bit)
    return mask


def bits_from_mask(mask: int) -> list[PermissionBit]:
    """Bits granted by ``mask``, ascending."""
    mask = validate_mask(mask)
    return [bit for bit in PermissionBit if (mask >> bit) & 1]


def describe_mask(mask: int) -> list[dict]:
    """Registry rows for the bits granted by ``mask``."""
    return [bit_row(bit) for bit in bits_from_mask(mask)]
