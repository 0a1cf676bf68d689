# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""ONC-RPC client over a record transport."""

import logging

from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_RECORD_BYTES,
    UINT32_MAX,
    IPProtocol,
    ReplyStatus,
)
from .errors import RpcDeniedError, RpcRejectedError, WrongMessageTypeError, XidMismatchError
from .rpc import CallMessage, ReplyMessage, parse_message
from .transports import DEFAULT_TRANSPORT, Transport, get_transport

logger = logging.getLogger(__name__)


class RpcClient:
    """Issues RPC calls one at a time over a single connection.

    Every call takes the next transaction id. Replies carrying an older id
    are leftovers of an earlier call and are dropped; a reply carrying a
    newer id means the stream is out of sync and fails the call.
    """

    def __init__(self, transport: Transport, prog: int | None = None, vers: int | None = None):
        """Initialize client.

        Args:
            transport: Connected record transport, owned by this client
            prog: Default program number used by :meth:`ping`
            vers: Default program version used by :meth:`ping`
        """
        self._transport = transport
        self.prog = prog
        self.vers = vers
        self._xid = 0

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        prog: int | None = None,
        vers: int | None = None,
        *,
        transport: str | type[Transport] = DEFAULT_TRANSPORT,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "RpcClient":
        """Connect to a known port.

        Args:
            host: Server hostname
            port: Server port
            prog: Program served on that port
            vers: Program version
            transport: Transport name or class
            connect_timeout: Seconds to wait for the connection
            max_record_bytes: Largest record accepted from the peer

        Returns:
            Connected client
        """
        transport_cls = get_transport(transport)
        conn = await transport_cls.connect(
            host, port, connect_timeout=connect_timeout, max_record_bytes=max_record_bytes
        )
        return cls(conn, prog, vers)

    @classmethod
    async def connect_with_mapper(
        cls,
        host: str,
        prog: int,
        vers: int,
        *,
        transport: str | type[Transport] = DEFAULT_TRANSPORT,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "RpcClient":
        """Look up the port of ``prog``/``vers`` through the port mapper, then connect to it."""
        # Import here to avoid circular imports
        from .portmapper import resolve

        port = await resolve(
            host, prog, vers, IPProtocol.TCP, transport=transport, connect_timeout=connect_timeout
        )
        logger.debug("Program %#x v%d on %s is served on port %d", prog, vers, host, port)
        return await cls.connect(
            host,
            port,
            prog,
            vers,
            transport=transport,
            connect_timeout=connect_timeout,
            max_record_bytes=max_record_bytes,
        )

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def closed(self) -> bool:
        return self._transport.closed

    async def call(self, prog: int, vers: int, proc: int, payload: bytes = b"") -> bytes:
        """Send a call and wait for its reply.

        Args:
            prog: Program number
            vers: Program version
            proc: Procedure number
            payload: XDR encoded procedure arguments

        Returns:
            XDR encoded procedure results

        Raises:
            TransportError: If the connection fails
            XidMismatchError: If a reply for a future transaction arrives
            WrongMessageTypeError: If the peer answers with a CALL message
            RpcDeniedError: If the server denies the call
            RpcRejectedError: If the server accepts but does not execute the call
        """
        self._xid = (self._xid + 1) & UINT32_MAX
        xid = self._xid

        msg = CallMessage(xid=xid, prog=prog, vers=vers, proc=proc, payload=payload)
        logger.debug("Initiating call prog=%#x vers=%d proc=%d xid=%d", prog, vers, proc, xid)
        await self._transport.send_record(msg.to_bytes())

        while True:
            reply = parse_message(await self._transport.recv_record())
            if reply.xid < xid:
                logger.debug("Discarding stale reply xid=%d (awaiting %d)", reply.xid, xid)
                continue
            if reply.xid > xid:
                raise XidMismatchError(expected=xid, actual=reply.xid)
            if not isinstance(reply, ReplyMessage):
                raise WrongMessageTypeError(f"Expected a reply to xid {xid}, got a call")
            return self._unwrap(reply)

    def _unwrap(self, reply: ReplyMessage) -> bytes:
        if reply.reply_stat == ReplyStatus.DENIED:
            raise RpcDeniedError(
                f"RPC denied: reject_stat={reply.reject_stat} "
                f"mismatch={reply.mismatch_info} auth_stat={reply.auth_stat}"
            )
        if not reply.success:
            raise RpcRejectedError(reply.accept_stat)
        logger.debug("Got response with length: %d", len(reply.payload))
        return reply.payload

    async def ping(self) -> None:
        """Call the null procedure of the bound program."""
        if self.prog is None or self.vers is None:
            raise ValueError("ping() needs a client bound to a program and version")
        await self.call(self.prog, self.vers, 0)

    async def close(self) -> None:
        """Close the connection."""
        await self._transport.close()

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
