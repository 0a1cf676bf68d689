# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Base transport interface."""

import logging
from abc import ABC, abstractmethod

from ..constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_MAX_RECORD_BYTES
from ..records import pack_record, read_record

logger = logging.getLogger(__name__)


class Transport(ABC):
    """A connected byte stream that exchanges whole RPC records.

    Subclasses provide connection setup and raw byte I/O; record marking is
    shared. A transport is owned by exactly one caller and is not safe for
    concurrent use.
    """

    def __init__(self, peer: tuple[str, int], max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES):
        self.peer = peer
        self.max_record_bytes = max_record_bytes

    @classmethod
    @abstractmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES,
    ) -> "Transport":
        """Open a connection to ``host:port``."""

    @abstractmethod
    async def _write(self, data: bytes) -> None:
        """Write all of ``data`` to the stream."""

    @abstractmethod
    async def _read_exactly(self, n: int) -> bytes:
        """Read exactly ``n`` bytes from the stream."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the connection has been closed locally."""

    async def send_record(self, data: bytes) -> None:
        """Send ``data`` as one record.

        Raises:
            TransportError: If the write fails or the connection is closed
        """
        logger.debug("Sending record of %d bytes to %s:%d", len(data), *self.peer)
        await self._write(pack_record(data))

    async def recv_record(self) -> bytes:
        """Receive one complete record.

        Raises:
            TransportError: On short reads or if the peer closes the connection
            FramingError: If a fragment exceeds ``max_record_bytes``
        """
        record = await read_record(self._read_exactly, self.max_record_bytes)
        logger.debug("Received record of %d bytes from %s:%d", len(record), *self.peer)
        return record

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        host, port = self.peer
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {host}:{port} {state}>"
