# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Argument and result structures of the VXI-11 core channel procedures."""

from dataclasses import dataclass

from .xdr import Packer, Unpacker

# ----------------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------------


@dataclass
class CreateLinkParms:
    client_id: int
    lock_device: bool
    lock_timeout: int
    device: str

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.client_id)
        p.pack_bool(self.lock_device)
        p.pack_uint(self.lock_timeout)
        p.pack_string(self.device)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "CreateLinkParms":
        u = Unpacker(data)
        return cls(
            client_id=u.unpack_int(),
            lock_device=u.unpack_bool(),
            lock_timeout=u.unpack_uint(),
            device=u.unpack_string(),
        )


@dataclass
class DeviceWriteParms:
    link_id: int
    io_timeout: int
    lock_timeout: int
    flags: int
    data: bytes

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.link_id)
        p.pack_uint(self.io_timeout)
        p.pack_uint(self.lock_timeout)
        p.pack_int(self.flags)
        p.pack_opaque(self.data)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceWriteParms":
        u = Unpacker(data)
        return cls(
            link_id=u.unpack_int(),
            io_timeout=u.unpack_uint(),
            lock_timeout=u.unpack_uint(),
            flags=u.unpack_int(),
            data=u.unpack_opaque(),
        )


@dataclass
class DeviceReadParms:
    link_id: int
    request_size: int
    io_timeout: int
    lock_timeout: int
    flags: int
    term_char: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.link_id)
        p.pack_uint(self.request_size)
        p.pack_uint(self.io_timeout)
        p.pack_uint(self.lock_timeout)
        p.pack_int(self.flags)
        # termChar is declared as char, which XDR widens to a full word
        p.pack_int(self.term_char)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceReadParms":
        u = Unpacker(data)
        return cls(
            link_id=u.unpack_int(),
            request_size=u.unpack_uint(),
            io_timeout=u.unpack_uint(),
            lock_timeout=u.unpack_uint(),
            flags=u.unpack_int(),
            term_char=u.unpack_int(),
        )


@dataclass
class DeviceGenericParms:
    """Arguments of readstb, trigger, clear, remote and local."""

    link_id: int
    flags: int
    lock_timeout: int
    io_timeout: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.link_id)
        p.pack_int(self.flags)
        p.pack_uint(self.lock_timeout)
        p.pack_uint(self.io_timeout)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceGenericParms":
        u = Unpacker(data)
        return cls(
            link_id=u.unpack_int(),
            flags=u.unpack_int(),
            lock_timeout=u.unpack_uint(),
            io_timeout=u.unpack_uint(),
        )


@dataclass
class DeviceLockParms:
    link_id: int
    flags: int
    lock_timeout: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.link_id)
        p.pack_int(self.flags)
        p.pack_uint(self.lock_timeout)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceLockParms":
        u = Unpacker(data)
        return cls(link_id=u.unpack_int(), flags=u.unpack_int(), lock_timeout=u.unpack_uint())


@dataclass
class DeviceLink:
    """Bare link id, the argument of destroy_link and device_unlock."""

    link_id: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.link_id)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceLink":
        return cls(link_id=Unpacker(data).unpack_int())


# ----------------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------------


@dataclass
class CreateLinkResp:
    error: int
    link_id: int
    abort_port: int
    max_recv_size: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.error)
        p.pack_int(self.link_id)
        p.pack_uint(self.abort_port)
        p.pack_uint(self.max_recv_size)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "CreateLinkResp":
        u = Unpacker(data)
        return cls(
            error=u.unpack_int(),
            link_id=u.unpack_int(),
            abort_port=u.unpack_uint(),
            max_recv_size=u.unpack_uint(),
        )


@dataclass
class DeviceWriteResp:
    error: int
    size: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.error)
        p.pack_uint(self.size)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceWriteResp":
        u = Unpacker(data)
        return cls(error=u.unpack_int(), size=u.unpack_uint())


@dataclass
class DeviceReadResp:
    error: int
    reason: int
    data: bytes

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.error)
        p.pack_int(self.reason)
        p.pack_opaque(self.data)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceReadResp":
        u = Unpacker(data)
        return cls(error=u.unpack_int(), reason=u.unpack_int(), data=u.unpack_opaque())


@dataclass
class DeviceReadStbResp:
    error: int
    stb: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.error)
        p.pack_uint(self.stb)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceReadStbResp":
        u = Unpacker(data)
        return cls(error=u.unpack_int(), stb=u.unpack_uint() & 0xFF)


@dataclass
class DeviceError:
    """Result of calls that only report an error code."""

    error: int

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_int(self.error)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeviceError":
        return cls(error=Unpacker(data).unpack_int())
