"""IPv4 subnet mask helpers for CIDR-style address notation."""

from __future__ import annotations

import ipaddress
import re

INVALID_MASKBITS = 255
"""Mask length reported when a CIDR suffix is missing or malformed."""

_UINT32 = 0xFFFFFFFF
_ULONG_WRAP = 1 << 64
_NUMBER = re.compile(r"\s*([+-]?)(\d+)\Z")


def get_mask(maskbits: int) -> int:
    """Return the 32-bit subnet mask with ``maskbits`` leading one-bits."""
    if not 0 <= maskbits <= 32:
        raise ValueError(f"mask length out of range: {maskbits}")
    if maskbits == 0:
        return 0
    return (_UINT32 << (32 - maskbits)) & _UINT32


def get_quad_mask(maskbits: int) -> str:
    """Return the subnet mask for ``maskbits`` in dotted-decimal notation."""
    return str(ipaddress.IPv4Address(get_mask(maskbits)))


def get_maskbits(mask: int) -> int:
    """Return the mask length of a 32-bit subnet mask.

    The length is counted from the most significant bit down to the lowest
    set bit, so bits below the lowest set bit are treated as the host part.
    """
    if not 0 <= mask <= _UINT32:
        raise ValueError(f"not a 32-bit mask: {mask:#x}")
    if mask == 0:
        return 0
    trailing_zeros = (mask & -mask).bit_length() - 1
    return 32 - trailing_zeros


def _parse_unsigned(text: str) -> int | None:
    match = _NUMBER.match(text)
    if match is None:
        return None
    sign, digits = match.groups()
    value = int(digits)
    if sign == "-" and value:
        value = _ULONG_WRAP - value if value < _ULONG_WRAP else _ULONG_WRAP - 1
    return min(value, _UINT32)


def split_address(cidr_addr: str) -> tuple[str, int]:
    """Split ``"address/bits"`` into the address and the mask length.

    When the suffix is absent, empty or not a number, the mask length is
    :data:`INVALID_MASKBITS`.
    """
    address, slash, suffix = cidr_addr.partition("/")
    if not slash or not suffix:
        return address, INVALID_MASKBITS
    value = _parse_unsigned(suffix)
    if value is None:
        return address, INVALID_MASKBITS
    return address, value