# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Transport built on a raw non-blocking socket driven by the event loop."""

import asyncio
import socket

from ..constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_MAX_RECORD_BYTES
from ..errors import TransportError
from .base import Transport


class SocketTransport(Transport):
    """Record transport using ``loop.sock_*`` calls on a plain socket."""

    def __init__(
        self,
        sock: socket.socket,
        peer: tuple[str, int],
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ):
        super().__init__(peer, max_record_bytes)
        self._sock = sock
        self._closed = False

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "SocketTransport":
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except OSError as e:
            raise TransportError(f"Cannot resolve {host}: {e}") from e

        last_exc: BaseException | None = None
        for family, type_, proto, _, addr in infos:
            sock = socket.socket(family, type_, proto)
            sock.setblocking(False)
            try:
                await asyncio.wait_for(loop.sock_connect(sock, addr), connect_timeout)
            except (OSError, asyncio.TimeoutError) as e:
                sock.close()
                last_exc = e
                continue
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            return cls(sock, (host, port), max_record_bytes)

        reason = (str(last_exc) or "timed out") if last_exc else "no address"
        raise TransportError(f"Cannot connect to {host}:{port}: {reason}") from last_exc

    @property
    def closed(self) -> bool:
        return self._closed

    async def _write(self, data: bytes) -> None:
        if self._closed:
            raise TransportError("Connection is closed")
        try:
            await asyncio.get_running_loop().sock_sendall(self._sock, data)
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    async def _read_exactly(self, n: int) -> bytes:
        if self._closed:
            raise TransportError("Connection is closed")
        loop = asyncio.get_running_loop()
        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = await loop.sock_recv(self._sock, n - len(buf))
            except OSError as e:
                raise TransportError(f"Read failed: {e}") from e
            if not chunk:
                raise TransportError(f"Unexpected EOF from peer ({len(buf)} of {n} bytes)")
            buf.extend(chunk)
        return bytes(buf)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            self._sock.close()
