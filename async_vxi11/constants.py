# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""VXI-11, ONC-RPC and port mapper constants and enums."""

from enum import IntEnum, IntFlag

# ----------------------------------------------------------------------------
# Record marking
# ----------------------------------------------------------------------------

LAST_FRAGMENT = 0x8000_0000
FRAGMENT_LENGTH_MASK = 0x7FFF_FFFF

# Largest record a transport accepts unless told otherwise
DEFAULT_MAX_RECORD_BYTES = 16 << 20  # 16 MiB

# ----------------------------------------------------------------------------
# ONC-RPC
# ----------------------------------------------------------------------------

RPC_VERSION = 2


class MessageType(IntEnum):
    """RPC message direction."""

    CALL = 0
    REPLY = 1


class AuthFlavor(IntEnum):
    """Authentication flavors. Only NONE is ever sent."""

    NONE = 0
    UNIX = 1
    SHORT = 2
    DES = 3


class ReplyStatus(IntEnum):
    ACCEPTED = 0
    DENIED = 1


class AcceptStatus(IntEnum):
    SUCCESS = 0  # RPC executed successfully
    PROG_UNAVAIL = 1  # remote hasn't exported program
    PROG_MISMATCH = 2  # remote can't support version
    PROC_UNAVAIL = 3  # program can't support procedure
    GARBAGE_ARGS = 4  # procedure can't decode params
    SYSTEM_ERR = 5  # memory allocation failure etc.


class RejectStatus(IntEnum):
    RPC_MISMATCH = 0  # RPC version number != 2
    AUTH_ERROR = 1  # remote can't authenticate caller


# ----------------------------------------------------------------------------
# Port mapper (RFC 1833, version 2)
# ----------------------------------------------------------------------------

PMAP_PROG = 100000
PMAP_VERS = 2
PMAP_PORT = 111

# Ports at or above this value are rejected
MAX_PORT = 65535


class PortMapperProc(IntEnum):
    NULL = 0
    SET = 1
    UNSET = 2
    GETPORT = 3
    DUMP = 4
    CALLIT = 5


class IPProtocol(IntEnum):
    """Transport protocol ids understood by the port mapper."""

    TCP = 6
    UDP = 17


# ----------------------------------------------------------------------------
# VXI-11 core channel
# ----------------------------------------------------------------------------

DEVICE_CORE_PROG = 0x0607AF
DEVICE_CORE_VERS = 1


class DeviceProc(IntEnum):
    CREATE_LINK = 10
    DEVICE_WRITE = 11
    DEVICE_READ = 12
    DEVICE_READSTB = 13
    DEVICE_TRIGGER = 14
    DEVICE_CLEAR = 15
    DEVICE_REMOTE = 16
    DEVICE_LOCAL = 17
    DEVICE_LOCK = 18
    DEVICE_UNLOCK = 19
    DESTROY_LINK = 23


class OpFlag(IntFlag):
    """Operation flags carried by device calls."""

    WAITLOCK = 0x01
    END = 0x08
    TERMCHRSET = 0x80


class ReadReason(IntFlag):
    """Reasons a device_read reply ended."""

    REQCNT = 0x01  # requested byte count reached
    CHR = 0x02  # termination character seen
    END = 0x04  # END indicator seen


# A read loop stops once any of these is reported
READ_TERMINATORS = ReadReason.CHR | ReadReason.END


class ErrorCode(IntEnum):
    """Device_ErrorCode values returned inside device replies."""

    NO_ERROR = 0
    SYNTAX_ERROR = 1
    DEVICE_NOT_ACCESSIBLE = 3
    INVALID_LINK_IDENTIFIER = 4
    PARAMETER_ERROR = 5
    CHANNEL_NOT_ESTABLISHED = 6
    OPERATION_NOT_SUPPORTED = 8
    OUT_OF_RESOURCES = 9
    DEVICE_LOCKED_BY_ANOTHER_LINK = 11
    NO_LOCK_HELD_BY_THIS_LINK = 12
    IO_TIMEOUT = 15
    IO_ERROR = 17
    INVALID_ADDRESS = 21
    ABORT = 23
    CHANNEL_ALREADY_ESTABLISHED = 29


ERROR_MESSAGES = {
    ErrorCode.NO_ERROR: "no error",
    ErrorCode.SYNTAX_ERROR: "syntax error",
    ErrorCode.DEVICE_NOT_ACCESSIBLE: "device not accessible",
    ErrorCode.INVALID_LINK_IDENTIFIER: "invalid link identifier",
    ErrorCode.PARAMETER_ERROR: "parameter error",
    ErrorCode.CHANNEL_NOT_ESTABLISHED: "channel not established",
    ErrorCode.OPERATION_NOT_SUPPORTED: "operation not supported",
    ErrorCode.OUT_OF_RESOURCES: "out of resources",
    ErrorCode.DEVICE_LOCKED_BY_ANOTHER_LINK: "device locked by another link",
    ErrorCode.NO_LOCK_HELD_BY_THIS_LINK: "no lock held by this link",
    ErrorCode.IO_TIMEOUT: "I/O timeout",
    ErrorCode.IO_ERROR: "I/O error",
    ErrorCode.INVALID_ADDRESS: "invalid address",
    ErrorCode.ABORT: "abort",
    ErrorCode.CHANNEL_ALREADY_ESTABLISHED: "channel already established",
}

# ----------------------------------------------------------------------------
# Session defaults
# ----------------------------------------------------------------------------

# Upper bound applied to the server's advertised maxRecvSize
MAX_RECV_SIZE = 1 << 20  # 1 MiB

DEFAULT_DEVICE = "inst0"
DEFAULT_TERM_CHAR = 10  # \n
DEFAULT_IO_TIMEOUT_MS = 1000
DEFAULT_LOCK_TIMEOUT_MS = 0
DEFAULT_CONNECT_TIMEOUT = 5.0  # seconds

UINT32_MAX = 0xFFFF_FFFF
