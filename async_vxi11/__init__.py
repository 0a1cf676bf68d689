# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
r"""async_vxi11 - An asyncio client for the VXI-11 instrument control protocol.

VXI-11 is a stack of older technologies:

- XDR (RFC 4506), a simple big-endian serialization format
- ONC-RPC (RFC 5531), carried over TCP with record marking
- The port mapper (RFC 1833), which tells a client on which port a program
  is served. The port mapper itself always listens on port 111.
- The VXI-11 core channel, which adds link creation and destruction plus
  write and read calls that make an instrument look like a byte stream.

The package provides:
- Record transports over asyncio streams or raw sockets, selectable by name
- An RPC client that matches replies to calls by transaction id
- A port mapper client
- :class:`CoreClient`, the link state machine (create, write, read, destroy)
"""

from .client import RpcClient
from .constants import (
    DEFAULT_MAX_RECORD_BYTES,
    DEVICE_CORE_PROG,
    DEVICE_CORE_VERS,
    MAX_RECV_SIZE,
    PMAP_PORT,
    DeviceProc,
    ErrorCode,
    IPProtocol,
    OpFlag,
    ReadReason,
)
from .core import CoreClient, Link, LinkState, connect
from .errors import (
    FramingError,
    InvalidPortError,
    LinkStateError,
    ReadOverflowError,
    RpcDeniedError,
    RpcError,
    RpcFormatError,
    RpcRejectedError,
    TransportError,
    Vxi11Error,
    VxiRemoteError,
    WrongMessageTypeError,
    XdrError,
    XidMismatchError,
)
from .options import VxiOptions
from .portmapper import Mapping, PortMapper, resolve
from .rpc import CallMessage, OpaqueAuth, ReplyMessage, parse_message
from .transports import (
    SocketTransport,
    StreamTransport,
    Transport,
    get_transport,
    list_transports,
    register_transport,
)

__version__ = "0.1.0"

# Public API exports
__all__ = [
    # Session
    "CoreClient",
    "Link",
    "LinkState",
    "VxiOptions",
    "connect",
    # RPC
    "RpcClient",
    "CallMessage",
    "ReplyMessage",
    "OpaqueAuth",
    "parse_message",
    # Port mapper
    "PortMapper",
    "Mapping",
    "resolve",
    # Transports
    "Transport",
    "StreamTransport",
    "SocketTransport",
    "get_transport",
    "list_transports",
    "register_transport",
    # Constants and enums
    "DEFAULT_MAX_RECORD_BYTES",
    "DEVICE_CORE_PROG",
    "DEVICE_CORE_VERS",
    "MAX_RECV_SIZE",
    "PMAP_PORT",
    "DeviceProc",
    "ErrorCode",
    "IPProtocol",
    "OpFlag",
    "ReadReason",
    # Errors
    "Vxi11Error",
    "TransportError",
    "FramingError",
    "XidMismatchError",
    "XdrError",
    "RpcError",
    "RpcDeniedError",
    "RpcRejectedError",
    "RpcFormatError",
    "WrongMessageTypeError",
    "InvalidPortError",
    "VxiRemoteError",
    "LinkStateError",
    "ReadOverflowError",
]
