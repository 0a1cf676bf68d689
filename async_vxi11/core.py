# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""VXI-11 core channel client."""

import logging
import random
from dataclasses import dataclass
from enum import Enum

from .calls import (
    CreateLinkParms,
    CreateLinkResp,
    DeviceError,
    DeviceGenericParms,
    DeviceLink,
    DeviceLockParms,
    DeviceReadParms,
    DeviceReadResp,
    DeviceReadStbResp,
    DeviceWriteParms,
    DeviceWriteResp,
)
from .client import RpcClient
from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_RECORD_BYTES,
    DEVICE_CORE_PROG,
    DEVICE_CORE_VERS,
    MAX_PORT,
    MAX_RECV_SIZE,
    READ_TERMINATORS,
    DeviceProc,
    OpFlag,
)
from .errors import InvalidPortError, LinkStateError, ReadOverflowError, VxiRemoteError
from .options import VxiOptions
from .transports import DEFAULT_TRANSPORT, Transport

logger = logging.getLogger(__name__)


class LinkState(Enum):
    UNLINKED = "unlinked"
    LINKED = "linked"
    CLOSED = "closed"


@dataclass(frozen=True)
class Link:
    """Link parameters returned by create_link."""

    link_id: int
    abort_port: int
    max_recv_size: int
    server_max_recv_size: int


def _clamp_recv_size(size: int) -> int:
    return max(1, min(size, MAX_RECV_SIZE))


class CoreClient:
    """A link to one instrument over the VXI-11 core channel.

    The client starts unlinked, holds a link after :meth:`create_link` and is
    closed for good by :meth:`destroy_link`. It owns its RPC connection.
    """

    def __init__(self, client: RpcClient, options: VxiOptions | None = None):
        """Initialize the session.

        Args:
            client: RPC client connected to the core channel port
            options: Session options, defaults apply when omitted
        """
        self._client = client
        self.options = options or VxiOptions()
        self.client_id = random.getrandbits(31)
        self._link: Link | None = None
        self._state = LinkState.UNLINKED

    @classmethod
    async def connect(
        cls,
        host: str,
        options: VxiOptions | None = None,
        *,
        lock: bool = False,
        transport: str | type[Transport] = DEFAULT_TRANSPORT,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "CoreClient":
        """Resolve the core channel port, connect and create a link.

        Args:
            host: Instrument hostname or address
            options: Session options
            lock: Whether to lock the device while creating the link
            transport: Transport name or class
            connect_timeout: Seconds to wait for each connection
            max_record_bytes: Largest record accepted from the instrument

        Returns:
            A linked client

        Raises:
            Vxi11Error: If resolution, connection or link creation fails. The
                connection is closed before the error propagates.
        """
        client = await RpcClient.connect_with_mapper(
            host,
            DEVICE_CORE_PROG,
            DEVICE_CORE_VERS,
            transport=transport,
            connect_timeout=connect_timeout,
            max_record_bytes=max_record_bytes,
        )
        core = cls(client, options)
        try:
            await core.create_link(lock=lock)
        except BaseException:
            await core._abandon()
            raise
        return core

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def link(self) -> Link | None:
        return self._link

    @property
    def rpc(self) -> RpcClient:
        return self._client

    def adjust_options(self, options: VxiOptions) -> None:
        self.options = options

    def _require_linked(self) -> Link:
        if self._state is not LinkState.LINKED or self._link is None:
            raise LinkStateError(f"Operation requires a link, client is {self._state.value}")
        return self._link

    async def _abandon(self) -> None:
        self._state = LinkState.CLOSED
        self._link = None
        await self._client.close()

    async def _call(self, proc: DeviceProc, request, response_cls):
        data = await self._client.call(DEVICE_CORE_PROG, DEVICE_CORE_VERS, proc, request.to_bytes())
        return response_cls.from_bytes(data)

    # ------------------------------------------------------------------
    # Link lifecycle
    # ------------------------------------------------------------------

    async def create_link(self, lock: bool = False, lock_timeout_ms: int | None = None) -> Link:
        """Create the link.

        Args:
            lock: Request an exclusive lock on the device
            lock_timeout_ms: Time to wait for the lock, defaults to the session option

        Returns:
            The new link

        Raises:
            LinkStateError: If the client is not unlinked
            InvalidPortError: If the abort port is not a valid port number
            VxiRemoteError: If the instrument reports an error. The link is
                still stored and available as ``error.link``.
        """
        if self._state is not LinkState.UNLINKED:
            raise LinkStateError(f"create_link requires an unlinked client, client is {self._state.value}")

        if lock_timeout_ms is None:
            lock_timeout_ms = self.options.lock_timeout_ms
        request = CreateLinkParms(
            client_id=self.client_id,
            lock_device=lock,
            lock_timeout=lock_timeout_ms,
            device=self.options.device,
        )
        resp: CreateLinkResp = await self._call(DeviceProc.CREATE_LINK, request, CreateLinkResp)

        if resp.abort_port >= MAX_PORT:
            raise InvalidPortError(resp.abort_port)

        link = Link(
            link_id=resp.link_id,
            abort_port=resp.abort_port,
            max_recv_size=_clamp_recv_size(resp.max_recv_size),
            server_max_recv_size=resp.max_recv_size,
        )
        self._link = link
        self._state = LinkState.LINKED
        logger.info(
            "Created link %d to %r (client_id=%d, max_recv_size=%d)",
            link.link_id,
            self.options.device,
            self.client_id,
            link.max_recv_size,
        )

        if resp.error != 0:
            raise VxiRemoteError(resp.error, link=link)
        return link

    async def destroy_link(self) -> None:
        """Destroy the link and close the connection.

        The client cannot be used afterwards, whether or not the call succeeds.

        Raises:
            VxiRemoteError: If the instrument reports an error
        """
        link = self._require_linked()
        try:
            resp: DeviceError = await self._call(DeviceProc.DESTROY_LINK, DeviceLink(link.link_id), DeviceError)
        finally:
            await self._abandon()
        logger.info("Destroyed link %d", link.link_id)
        if resp.error != 0:
            raise VxiRemoteError(resp.error)

    # ------------------------------------------------------------------
    # Data transfer
    # ------------------------------------------------------------------

    async def device_write(self, data: bytes) -> int:
        """Write ``data`` to the instrument.

        The data is sent in chunks of at most ``link.max_recv_size`` bytes and
        only the last chunk carries the END flag. Empty data sends nothing.

        Returns:
            Number of bytes the instrument reports as written
        """
        link = self._require_linked()
        data = bytes(data)
        chunk_size = link.max_recv_size
        written = 0
        offset = 0
        while offset < len(data):
            chunk = data[offset : offset + chunk_size]
            offset += len(chunk)
            flags = OpFlag.END if offset >= len(data) else 0
            request = DeviceWriteParms(
                link_id=link.link_id,
                io_timeout=self.options.io_timeout_ms,
                lock_timeout=self.options.lock_timeout_ms,
                flags=int(flags),
                data=chunk,
            )
            resp: DeviceWriteResp = await self._call(DeviceProc.DEVICE_WRITE, request, DeviceWriteResp)
            if resp.error != 0:
                raise VxiRemoteError(resp.error)
            written += resp.size
        logger.debug("Wrote %d bytes on link %d", written, link.link_id)
        return written

    async def device_read(self) -> bytes:
        """Read one response from the instrument.

        Reads repeat until the instrument reports END or, when a termination
        character is configured, that it saw the character.

        Raises:
            VxiRemoteError: If the instrument reports an error
            ReadOverflowError: If ``options.max_read_bytes`` is exceeded
        """
        link = self._require_linked()
        flags = 0
        term_char = 0
        if self.options.term_char is not None:
            flags |= OpFlag.TERMCHRSET
            term_char = self.options.term_char

        limit = self.options.max_read_bytes
        buf = bytearray()
        calls = 0
        while True:
            request = DeviceReadParms(
                link_id=link.link_id,
                request_size=link.max_recv_size,
                io_timeout=self.options.io_timeout_ms,
                lock_timeout=self.options.lock_timeout_ms,
                flags=int(flags),
                term_char=term_char,
            )
            resp: DeviceReadResp = await self._call(DeviceProc.DEVICE_READ, request, DeviceReadResp)
            calls += 1
            if resp.error != 0:
                raise VxiRemoteError(resp.error)
            buf += resp.data
            if limit is not None and len(buf) > limit:
                raise ReadOverflowError(limit, len(buf))
            if resp.reason & READ_TERMINATORS:
                break
        logger.debug("Read %d bytes on link %d in %d calls", len(buf), link.link_id, calls)
        return bytes(buf)

    # ------------------------------------------------------------------
    # Device control
    # ------------------------------------------------------------------

    def _lock_flags(self) -> int:
        return int(OpFlag.WAITLOCK) if self.options.lock_timeout_ms else 0

    async def _generic(self, proc: DeviceProc, response_cls=DeviceError):
        link = self._require_linked()
        request = DeviceGenericParms(
            link_id=link.link_id,
            flags=self._lock_flags(),
            lock_timeout=self.options.lock_timeout_ms,
            io_timeout=self.options.io_timeout_ms,
        )
        resp = await self._call(proc, request, response_cls)
        if resp.error != 0:
            raise VxiRemoteError(resp.error)
        return resp

    async def device_readstb(self) -> int:
        """Read the status byte."""
        resp: DeviceReadStbResp = await self._generic(DeviceProc.DEVICE_READSTB, DeviceReadStbResp)
        return resp.stb

    async def device_trigger(self) -> None:
        await self._generic(DeviceProc.DEVICE_TRIGGER)

    async def device_clear(self) -> None:
        await self._generic(DeviceProc.DEVICE_CLEAR)

    async def device_remote(self) -> None:
        await self._generic(DeviceProc.DEVICE_REMOTE)

    async def device_local(self) -> None:
        await self._generic(DeviceProc.DEVICE_LOCAL)

    async def device_lock(self) -> None:
        """Acquire an exclusive lock, waiting up to the lock timeout."""
        link = self._require_linked()
        request = DeviceLockParms(
            link_id=link.link_id, flags=self._lock_flags(), lock_timeout=self.options.lock_timeout_ms
        )
        resp: DeviceError = await self._call(DeviceProc.DEVICE_LOCK, request, DeviceError)
        if resp.error != 0:
            raise VxiRemoteError(resp.error)

    async def device_unlock(self) -> None:
        link = self._require_linked()
        resp: DeviceError = await self._call(DeviceProc.DEVICE_UNLOCK, DeviceLink(link.link_id), DeviceError)
        if resp.error != 0:
            raise VxiRemoteError(resp.error)

    # ------------------------------------------------------------------
    # Convenience API
    # ------------------------------------------------------------------

    async def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode()
        return await self.device_write(data)

    async def read(self) -> bytes:
        return await self.device_read()

    async def query(self, data: bytes | str) -> bytes:
        """Write ``data`` and read the response."""
        await self.write(data)
        return await self.read()

    async def close(self) -> None:
        await self.destroy_link()

    async def __aenter__(self) -> "CoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._state is LinkState.LINKED:
            await self.destroy_link()
        elif self._state is LinkState.UNLINKED:
            await self._abandon()


async def connect(
    host: str,
    options: VxiOptions | None = None,
    **kwargs,
) -> CoreClient:
    """Open a linked :class:`CoreClient` to ``host``.

    Keyword arguments are passed to :meth:`CoreClient.connect`.
    """
    return await CoreClient.connect(host, options, **kwargs)
