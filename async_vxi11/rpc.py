# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""ONC-RPC v2 (RFC 5531) message envelopes."""

from dataclasses import dataclass, field

from .constants import (
    RPC_VERSION,
    AcceptStatus,
    AuthFlavor,
    MessageType,
    RejectStatus,
    ReplyStatus,
)
from .errors import RpcFormatError
from .xdr import Packer, Unpacker

# ----------------------------------------------------------------------------
# Message structures
# ----------------------------------------------------------------------------


@dataclass
class OpaqueAuth:
    """Authentication entry: flavor plus opaque body."""

    flavor: int = AuthFlavor.NONE
    body: bytes = b""

    def pack(self, packer: Packer) -> None:
        packer.pack_enum(self.flavor)
        packer.pack_opaque(self.body)

    @classmethod
    def unpack(cls, unpacker: Unpacker) -> "OpaqueAuth":
        flavor = unpacker.unpack_enum()
        body = unpacker.unpack_opaque()
        return cls(flavor=flavor, body=body)


@dataclass
class CallMessage:
    """RPC call header followed by the procedure arguments."""

    xid: int
    prog: int
    vers: int
    proc: int
    payload: bytes = b""
    cred: OpaqueAuth = field(default_factory=OpaqueAuth)
    verf: OpaqueAuth = field(default_factory=OpaqueAuth)
    rpcvers: int = RPC_VERSION

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_uint(self.xid)
        p.pack_enum(MessageType.CALL)
        p.pack_uint(self.rpcvers)
        p.pack_uint(self.prog)
        p.pack_uint(self.vers)
        p.pack_uint(self.proc)
        self.cred.pack(p)
        self.verf.pack(p)
        return p.get_buffer() + self.payload

    @classmethod
    def from_bytes(cls, data: bytes) -> "CallMessage":
        u = Unpacker(data)
        xid = u.unpack_uint()
        mtype = u.unpack_enum()
        if mtype != MessageType.CALL:
            raise RpcFormatError(f"Expected CALL message, got type {mtype}")
        return cls._unpack_body(xid, u)

    @classmethod
    def _unpack_body(cls, xid: int, u: Unpacker) -> "CallMessage":
        rpcvers = u.unpack_uint()
        prog = u.unpack_uint()
        vers = u.unpack_uint()
        proc = u.unpack_uint()
        cred = OpaqueAuth.unpack(u)
        verf = OpaqueAuth.unpack(u)
        payload = u.get_buffer()[u.position :]
        return cls(
            xid=xid,
            prog=prog,
            vers=vers,
            proc=proc,
            payload=payload,
            cred=cred,
            verf=verf,
            rpcvers=rpcvers,
        )


@dataclass
class ReplyMessage:
    """RPC reply.

    Only the fields relevant to ``reply_stat`` are meaningful: an accepted
    reply carries ``verf``, ``accept_stat`` and, on success, ``payload``; a
    denied reply carries ``reject_stat`` and either ``mismatch_info`` or
    ``auth_stat``.
    """

    xid: int
    reply_stat: int = ReplyStatus.ACCEPTED
    accept_stat: int = AcceptStatus.SUCCESS
    reject_stat: int = RejectStatus.RPC_MISMATCH
    verf: OpaqueAuth = field(default_factory=OpaqueAuth)
    payload: bytes = b""
    mismatch_info: tuple[int, int] | None = None
    auth_stat: int | None = None

    @property
    def accepted(self) -> bool:
        return self.reply_stat == ReplyStatus.ACCEPTED

    @property
    def success(self) -> bool:
        return self.accepted and self.accept_stat == AcceptStatus.SUCCESS

    @classmethod
    def success_reply(cls, xid: int, payload: bytes = b"") -> "ReplyMessage":
        return cls(xid=xid, payload=payload)

    def to_bytes(self) -> bytes:
        p = Packer()
        p.pack_uint(self.xid)
        p.pack_enum(MessageType.REPLY)
        p.pack_enum(self.reply_stat)
        if self.reply_stat == ReplyStatus.ACCEPTED:
            self.verf.pack(p)
            p.pack_enum(self.accept_stat)
            if self.accept_stat == AcceptStatus.SUCCESS:
                return p.get_buffer() + self.payload
            if self.accept_stat == AcceptStatus.PROG_MISMATCH:
                low, high = self.mismatch_info or (0, 0)
                p.pack_uint(low)
                p.pack_uint(high)
        else:
            p.pack_enum(self.reject_stat)
            if self.reject_stat == RejectStatus.RPC_MISMATCH:
                low, high = self.mismatch_info or (RPC_VERSION, RPC_VERSION)
                p.pack_uint(low)
                p.pack_uint(high)
            else:
                p.pack_enum(self.auth_stat or 0)
        return p.get_buffer()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReplyMessage":
        u = Unpacker(data)
        xid = u.unpack_uint()
        mtype = u.unpack_enum()
        if mtype != MessageType.REPLY:
            raise RpcFormatError(f"Expected REPLY message, got type {mtype}")
        return cls._unpack_body(xid, u)

    @classmethod
    def _unpack_body(cls, xid: int, u: Unpacker) -> "ReplyMessage":
        reply_stat = u.unpack_enum()
        if reply_stat == ReplyStatus.DENIED:
            reject_stat = u.unpack_enum()
            if reject_stat == RejectStatus.RPC_MISMATCH:
                mismatch = (u.unpack_uint(), u.unpack_uint())
                return cls(xid=xid, reply_stat=reply_stat, reject_stat=reject_stat, mismatch_info=mismatch)
            if reject_stat == RejectStatus.AUTH_ERROR:
                return cls(xid=xid, reply_stat=reply_stat, reject_stat=reject_stat, auth_stat=u.unpack_enum())
            raise RpcFormatError(f"Unknown reject status {reject_stat}")
        if reply_stat != ReplyStatus.ACCEPTED:
            raise RpcFormatError(f"Neither accepted nor denied: {reply_stat}")

        verf = OpaqueAuth.unpack(u)
        accept_stat = u.unpack_enum()
        if accept_stat == AcceptStatus.SUCCESS:
            payload = u.get_buffer()[u.position :]
            return cls(xid=xid, verf=verf, payload=payload)
        mismatch = None
        if accept_stat == AcceptStatus.PROG_MISMATCH:
            mismatch = (u.unpack_uint(), u.unpack_uint())
        return cls(xid=xid, accept_stat=accept_stat, verf=verf, mismatch_info=mismatch)


# ----------------------------------------------------------------------------
# Envelope parsing
# ----------------------------------------------------------------------------


def parse_message(data: bytes) -> CallMessage | ReplyMessage:
    """Parse a record into a call or reply envelope.

    Args:
        data: One complete record

    Returns:
        The decoded envelope

    Raises:
        XdrError: If the envelope is truncated
        RpcFormatError: If the message type is unknown
    """
    u = Unpacker(data)
    xid = u.unpack_uint()
    mtype = u.unpack_enum()
    if mtype == MessageType.CALL:
        return CallMessage._unpack_body(xid, u)
    if mtype == MessageType.REPLY:
        return ReplyMessage._unpack_body(xid, u)
    raise RpcFormatError(f"Unknown message type {mtype}")
