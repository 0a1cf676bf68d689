# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Port mapper (rpcbind version 2) client."""

import logging
from dataclasses import dataclass

from . import constants
from .client import RpcClient
from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    MAX_PORT,
    PMAP_PROG,
    PMAP_VERS,
    IPProtocol,
    PortMapperProc,
)
from .errors import InvalidPortError
from .transports import DEFAULT_TRANSPORT, Transport
from .xdr import Packer, Unpacker

logger = logging.getLogger(__name__)


@dataclass
class Mapping:
    """A (program, version, protocol, port) registration."""

    prog: int
    vers: int
    prot: int = IPProtocol.TCP
    port: int = 0

    def pack(self, packer: Packer) -> None:
        packer.pack_uint(self.prog)
        packer.pack_uint(self.vers)
        packer.pack_uint(self.prot)
        packer.pack_uint(self.port)

    def to_bytes(self) -> bytes:
        p = Packer()
        self.pack(p)
        return p.get_buffer()

    @classmethod
    def unpack(cls, unpacker: Unpacker) -> "Mapping":
        return cls(
            prog=unpacker.unpack_uint(),
            vers=unpacker.unpack_uint(),
            prot=unpacker.unpack_uint(),
            port=unpacker.unpack_uint(),
        )


class PortMapper:
    """Port mapper calls issued over an existing RPC client."""

    def __init__(self, client: RpcClient):
        self.client = client

    async def get_port(self, prog: int, vers: int, protocol: IPProtocol = IPProtocol.TCP) -> int:
        """Look up the port serving ``prog``/``vers`` over ``protocol``.

        Returns:
            The registered port; 0 if the program is not registered

        Raises:
            InvalidPortError: If the registry answers with a value of 65535 or more
        """
        request = Mapping(prog=prog, vers=vers, prot=int(protocol), port=0)
        data = await self.client.call(PMAP_PROG, PMAP_VERS, PortMapperProc.GETPORT, request.to_bytes())
        port = Unpacker(data).unpack_uint()
        if port >= MAX_PORT:
            raise InvalidPortError(port)
        return port

    async def dump(self) -> list[Mapping]:
        """List every mapping registered with the port mapper."""
        data = await self.client.call(PMAP_PROG, PMAP_VERS, PortMapperProc.DUMP)
        u = Unpacker(data)
        return u.unpack_list(lambda: Mapping.unpack(u))

    async def null(self) -> None:
        await self.client.call(PMAP_PROG, PMAP_VERS, PortMapperProc.NULL)


async def resolve(
    host: str,
    prog: int,
    vers: int,
    protocol: IPProtocol = IPProtocol.TCP,
    *,
    transport: str | type[Transport] = DEFAULT_TRANSPORT,
    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
) -> int:
    """Ask the port mapper on ``host`` which port serves ``prog``/``vers``.

    A dedicated connection to the port mapper is opened and closed again
    before returning.
    """
    client = await RpcClient.connect(
        host,
        constants.PMAP_PORT,
        PMAP_PROG,
        PMAP_VERS,
        transport=transport,
        connect_timeout=connect_timeout,
    )
    async with client:
        port = await PortMapper(client).get_port(prog, vers, protocol)
    logger.debug("Port mapper on %s resolved program %#x v%d to port %d", host, prog, vers, port)
    return port
