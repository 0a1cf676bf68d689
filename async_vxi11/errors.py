# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by the VXI-11 client stack."""

from typing import Any

from .constants import ERROR_MESSAGES, ErrorCode


class Vxi11Error(Exception):
    """Base class for every error raised by this package."""


# ----------------------------------------------------------------------------
# Connection level
# ----------------------------------------------------------------------------


class TransportError(Vxi11Error, ConnectionError):
    """The byte stream failed: connect error, short read, peer closed.

    The connection must be considered unusable afterwards.
    """


class FramingError(TransportError):
    """A record-marking header was rejected."""


class XidMismatchError(Vxi11Error):
    """A reply arrived for a transaction that was never issued."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Unexpected xid {actual} (expected {expected})")
        self.expected = expected
        self.actual = actual


class XdrError(Vxi11Error, ValueError):
    """Malformed XDR data."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} at offset {offset}"
        super().__init__(message)
        self.offset = offset


# ----------------------------------------------------------------------------
# RPC level
# ----------------------------------------------------------------------------


class RpcError(Vxi11Error):
    """The RPC layer refused or could not process a call."""


class RpcDeniedError(RpcError):
    """The server denied the call (RPC version mismatch or authentication)."""


class RpcRejectedError(RpcError):
    """The call was accepted but did not succeed (bad program, procedure or arguments)."""

    def __init__(self, status: int):
        super().__init__(f"RPC call rejected with accept status {status}")
        self.status = status


class WrongMessageTypeError(RpcError):
    """A CALL message arrived where a REPLY was expected."""


class RpcFormatError(RpcError):
    """The RPC envelope is not a call or reply message."""


# ----------------------------------------------------------------------------
# Application level
# ----------------------------------------------------------------------------


class InvalidPortError(Vxi11Error):
    """A port number returned by a peer is outside the usable range."""

    def __init__(self, port: int):
        super().__init__(f"Invalid port number: {port}")
        self.port = port


class VxiRemoteError(Vxi11Error):
    """The instrument returned a nonzero Device_ErrorCode.

    The connection remains usable. ``link`` is set when the error came back
    from ``create_link`` together with otherwise valid link parameters.
    """

    def __init__(self, code: int, link: Any = None):
        try:
            text = ERROR_MESSAGES[ErrorCode(code)]
        except ValueError:
            text = "unknown error"
        super().__init__(f"VXI-11 remote error {code}: {text}")
        self.code = code
        self.link = link


class LinkStateError(Vxi11Error):
    """An operation was attempted in a link state that does not allow it."""


class ReadOverflowError(Vxi11Error):
    """A device read accumulated more data than the configured bound."""

    def __init__(self, limit: int, received: int):
        super().__init__(f"Device read exceeded {limit} bytes ({received} received)")
        self.limit = limit
        self.received = received
