# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Record marking for RPC over byte streams (RFC 5531, section 11)."""

import logging
import struct
from collections.abc import Awaitable, Callable

from .constants import FRAGMENT_LENGTH_MASK, LAST_FRAGMENT
from .errors import FramingError

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">I")
HEADER_SIZE = _HEADER.size

ReadExactly = Callable[[int], Awaitable[bytes]]


def pack_fragment(data: bytes, last: bool) -> bytes:
    """Prefix ``data`` with a fragment header.

    Args:
        data: Fragment body
        last: Whether this fragment ends the record

    Returns:
        Header and body
    """
    if len(data) > FRAGMENT_LENGTH_MASK:
        raise FramingError(f"Fragment of {len(data)} bytes does not fit in a header")
    header = len(data)
    if last:
        header |= LAST_FRAGMENT
    return _HEADER.pack(header) + data


def pack_record(data: bytes) -> bytes:
    """Encode ``data`` as a record made of a single, final fragment."""
    return pack_fragment(data, last=True)


def parse_header(header: bytes) -> tuple[bool, int]:
    """Split a fragment header into (last, length)."""
    (value,) = _HEADER.unpack(header)
    return bool(value & LAST_FRAGMENT), value & FRAGMENT_LENGTH_MASK


async def read_record(read_exactly: ReadExactly, max_record_bytes: int | None = None) -> bytes:
    """Read one record, reassembling its fragments.

    Args:
        read_exactly: Coroutine function returning exactly ``n`` bytes or raising
        max_record_bytes: Largest accepted record size, ``None`` for no limit

    Returns:
        The concatenated fragment bodies

    Raises:
        FramingError: If a fragment would push the record past ``max_record_bytes``
        TransportError: Propagated from ``read_exactly``
    """
    record = bytearray()
    fragments = 0
    while True:
        last, length = parse_header(await read_exactly(HEADER_SIZE))
        if max_record_bytes is not None and len(record) + length > max_record_bytes:
            raise FramingError(
                f"Fragment of {length} bytes exceeds record limit of {max_record_bytes} bytes"
                f" ({len(record)} already received)"
            )
        if length:
            record += await read_exactly(length)
        fragments += 1
        if last:
            break
    if fragments > 1:
        logger.debug("Reassembled record of %d bytes from %d fragments", len(record), fragments)
    return bytes(record)
