# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Transport built on asyncio streams."""

import asyncio

from ..constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_MAX_RECORD_BYTES
from ..errors import TransportError
from .base import Transport


class StreamTransport(Transport):
    """Record transport over an ``asyncio.StreamReader``/``StreamWriter`` pair."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        peer: tuple[str, int],
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ):
        super().__init__(peer, max_record_bytes)
        self._reader = reader
        self._writer = writer
        self._closed = False

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "StreamTransport":
        """Open a TCP connection.

        Args:
            host: Server hostname or address
            port: Server port
            connect_timeout: Seconds to wait for the connection, ``None`` to wait forever
            max_record_bytes: Largest record accepted from the peer

        Raises:
            TransportError: If the connection cannot be established
        """
        try:
            reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), connect_timeout)
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"Cannot connect to {host}:{port}: {str(e) or 'timed out'}") from e
        return cls(reader, writer, (host, port), max_record_bytes)

    @property
    def closed(self) -> bool:
        return self._closed

    async def _write(self, data: bytes) -> None:
        if self._closed or self._writer.is_closing():
            raise TransportError("Connection is closed")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    async def _read_exactly(self, n: int) -> bytes:
        if self._closed:
            raise TransportError("Connection is closed")
        try:
            return await self._reader.readexactly(n)
        except asyncio.IncompleteReadError as e:
            raise TransportError(f"Unexpected EOF from peer ({len(e.partial)} of {n} bytes)") from e
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            pass
