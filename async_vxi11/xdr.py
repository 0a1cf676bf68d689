# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""XDR (RFC 4506) packing and unpacking.

Every item is big-endian and padded with zero bytes to a multiple of four.
"""

import struct
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from .errors import XdrError

T = TypeVar("T")

_UINT = struct.Struct(">I")
_INT = struct.Struct(">i")
_UHYPER = struct.Struct(">Q")


def _padding(n: int) -> int:
    return (4 - n % 4) % 4


class Packer:
    """Accumulates XDR encoded items into a buffer."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def reset(self) -> None:
        self._buf = bytearray()

    def get_buffer(self) -> bytes:
        return bytes(self._buf)

    def pack_uint(self, value: int) -> None:
        try:
            self._buf += _UINT.pack(value)
        except struct.error as e:
            raise XdrError(f"Cannot pack {value!r} as unsigned int: {e}") from e

    def pack_int(self, value: int) -> None:
        try:
            self._buf += _INT.pack(value)
        except struct.error as e:
            raise XdrError(f"Cannot pack {value!r} as int: {e}") from e

    def pack_uhyper(self, value: int) -> None:
        try:
            self._buf += _UHYPER.pack(value)
        except struct.error as e:
            raise XdrError(f"Cannot pack {value!r} as unsigned hyper: {e}") from e

    pack_enum = pack_int

    def pack_bool(self, value: bool) -> None:
        self._buf += _UINT.pack(1 if value else 0)

    def pack_fixed_opaque(self, data: bytes) -> None:
        self._buf += data
        self._buf += b"\x00" * _padding(len(data))

    def pack_opaque(self, data: bytes) -> None:
        """Pack variable-length opaque data with its length prefix."""
        self.pack_uint(len(data))
        self.pack_fixed_opaque(data)

    def pack_string(self, value: str) -> None:
        self.pack_opaque(value.encode("utf-8"))

    def pack_list(self, items: Iterable[T], pack_item: Callable[[T], None]) -> None:
        """Pack an optional-data linked list: (1, item)* followed by 0."""
        for item in items:
            self.pack_bool(True)
            pack_item(item)
        self.pack_bool(False)


class Unpacker:
    """Reads XDR encoded items from a buffer.

    Every failure raises :class:`XdrError` carrying the offset at which
    decoding stopped.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def get_buffer(self) -> bytes:
        return self._data

    def done(self) -> None:
        """Raise if unread data remains."""
        if self._pos < len(self._data):
            raise XdrError(f"{self.remaining} unextracted bytes", self._pos)

    def _take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise XdrError(f"Need {n} bytes, only {self.remaining} left", self._pos)
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def unpack_uint(self) -> int:
        return _UINT.unpack(self._take(4))[0]

    def unpack_int(self) -> int:
        return _INT.unpack(self._take(4))[0]

    def unpack_uhyper(self) -> int:
        return _UHYPER.unpack(self._take(8))[0]

    unpack_enum = unpack_int

    def unpack_bool(self) -> bool:
        offset = self._pos
        value = self.unpack_uint()
        if value not in (0, 1):
            raise XdrError(f"Invalid boolean {value}", offset)
        return bool(value)

    def unpack_fixed_opaque(self, n: int) -> bytes:
        data = self._take(n)
        self._take(_padding(n))
        return data

    def unpack_opaque(self) -> bytes:
        n = self.unpack_uint()
        return self.unpack_fixed_opaque(n)

    def unpack_string(self) -> str:
        offset = self._pos
        raw = self.unpack_opaque()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise XdrError(f"Invalid UTF-8 string: {e}", offset) from e

    def unpack_list(self, unpack_item: Callable[[], Any]) -> list[Any]:
        items = []
        while self.unpack_bool():
            items.append(unpack_item())
        return items
