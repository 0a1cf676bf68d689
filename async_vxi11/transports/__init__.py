# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Record transports for RPC over TCP."""

from .base import Transport
from .sockets import SocketTransport
from .streams import StreamTransport

__all__ = [
    "Transport",
    "StreamTransport",
    "SocketTransport",
    "register_transport",
    "get_transport",
    "list_transports",
    "DEFAULT_TRANSPORT",
]

DEFAULT_TRANSPORT = "streams"

# Transport registry
_TRANSPORTS: dict[str, type[Transport]] = {}


def register_transport(name: str, transport_class: type[Transport]) -> None:
    """Register a transport implementation."""
    _TRANSPORTS[name] = transport_class


def get_transport(name: str | type[Transport]) -> type[Transport]:
    """Get a transport class by name.

    A :class:`Transport` subclass is returned unchanged.
    """
    if isinstance(name, type) and issubclass(name, Transport):
        return name
    if name not in _TRANSPORTS:
        raise ValueError(f"Unsupported transport: {name!r}")
    return _TRANSPORTS[name]


def list_transports() -> list[str]:
    """List all registered transport names."""
    return list(_TRANSPORTS.keys())


# Register default transports
register_transport("streams", StreamTransport)
register_transport("socket", SocketTransport)
