"""Shared fixtures: an in-memory transport, a fake instrument and a loopback server."""

import asyncio
from collections import deque
from collections.abc import Callable, Iterable

import pytest
import pytest_asyncio

from async_vxi11 import constants
from async_vxi11.calls import (
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
from async_vxi11.client import RpcClient
from async_vxi11.constants import (
    DEVICE_CORE_PROG,
    DEVICE_CORE_VERS,
    PMAP_PROG,
    AcceptStatus,
    DeviceProc,
    PortMapperProc,
    ReadReason,
)
from async_vxi11.core import CoreClient
from async_vxi11.errors import TransportError
from async_vxi11.portmapper import Mapping
from async_vxi11.records import pack_record, read_record
from async_vxi11.rpc import CallMessage, ReplyMessage
from async_vxi11.transports import Transport
from async_vxi11.xdr import Packer, Unpacker

Reply = ReplyMessage | bytes
Handler = Callable[[CallMessage], Reply | Iterable[Reply] | None]

# ----------------------------------------------------------------------------
# In-memory transport
# ----------------------------------------------------------------------------


class ScriptedTransport(Transport):
    """Transport that hands every sent call to ``handler`` and queues its replies.

    Replies go through real record marking so framing is exercised too.
    Reading past the queued data behaves like the peer closing the connection.
    """

    def __init__(self, handler: Handler | None = None):
        super().__init__(("scripted", 0))
        self.handler = handler
        self.calls: list[CallMessage] = []
        self._rx = bytearray()
        self._closed = False

    @classmethod
    async def connect(cls, host, port, **kwargs):
        raise NotImplementedError

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, reply: Reply) -> None:
        """Queue a reply as if the peer had sent it."""
        if isinstance(reply, ReplyMessage):
            reply = reply.to_bytes()
        self._rx += pack_record(reply)

    def push_raw(self, data: bytes) -> None:
        self._rx += data

    async def _write(self, data: bytes) -> None:
        if self._closed:
            raise TransportError("Connection is closed")
        call = CallMessage.from_bytes(await read_record(_reader_over(data)))
        self.calls.append(call)
        if self.handler is None:
            return
        replies = self.handler(call)
        if replies is None:
            return
        if isinstance(replies, (ReplyMessage, bytes)):
            replies = [replies]
        for reply in replies:
            self.push(reply)

    async def _read_exactly(self, n: int) -> bytes:
        if self._closed:
            raise TransportError("Connection is closed")
        if len(self._rx) < n:
            raise TransportError("Unexpected EOF from peer")
        chunk = bytes(self._rx[:n])
        del self._rx[:n]
        return chunk

    async def close(self) -> None:
        self._closed = True


def _reader_over(data: bytes):
    buf = bytearray(data)

    async def read_exactly(n: int) -> bytes:
        chunk = bytes(buf[:n])
        del buf[:n]
        return chunk

    return read_exactly


def stream_reader(data: bytes, eof: bool = True) -> asyncio.StreamReader:
    """StreamReader preloaded with ``data``. Must be called inside a running loop."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


def uint_payload(value: int) -> bytes:
    p = Packer()
    p.pack_uint(value)
    return p.get_buffer()


# ----------------------------------------------------------------------------
# Fake instrument
# ----------------------------------------------------------------------------


class FakeInstrument:
    """Answers VXI-11 core channel calls.

    ``reads`` holds (reason, data) or (reason, data, error) tuples consumed by
    successive device_read calls; when empty, the write buffer is echoed back
    with the END reason.
    """

    def __init__(
        self,
        link_id: int = 7,
        abort_port: int = 1025,
        max_recv_size: int = 4096,
        create_error: int = 0,
    ):
        self.link_id = link_id
        self.abort_port = abort_port
        self.max_recv_size = max_recv_size
        self.create_error = create_error
        self.write_error = 0
        self.destroy_error = 0
        self.stb = 0x40
        self.links: list[CreateLinkParms] = []
        self.writes: list[DeviceWriteParms] = []
        self.read_requests: list[DeviceReadParms] = []
        self.generic: list[tuple[DeviceProc, object]] = []
        self.destroyed: list[int] = []
        self.reads: deque = deque()
        self.echo = bytearray()

    def handle_payload(self, proc: int, payload: bytes) -> bytes:
        if proc == DeviceProc.CREATE_LINK:
            self.links.append(CreateLinkParms.from_bytes(payload))
            return CreateLinkResp(
                error=self.create_error,
                link_id=self.link_id,
                abort_port=self.abort_port,
                max_recv_size=self.max_recv_size,
            ).to_bytes()
        if proc == DeviceProc.DEVICE_WRITE:
            parms = DeviceWriteParms.from_bytes(payload)
            self.writes.append(parms)
            if self.write_error:
                return DeviceWriteResp(error=self.write_error, size=0).to_bytes()
            self.echo += parms.data
            return DeviceWriteResp(error=0, size=len(parms.data)).to_bytes()
        if proc == DeviceProc.DEVICE_READ:
            self.read_requests.append(DeviceReadParms.from_bytes(payload))
            if self.reads:
                reason, data, *rest = self.reads.popleft()
                error = rest[0] if rest else 0
            else:
                reason, data, error = ReadReason.END, bytes(self.echo), 0
                self.echo.clear()
            return DeviceReadResp(error=error, reason=int(reason), data=data).to_bytes()
        if proc == DeviceProc.DESTROY_LINK:
            self.destroyed.append(DeviceLink.from_bytes(payload).link_id)
            return DeviceError(self.destroy_error).to_bytes()
        if proc == DeviceProc.DEVICE_READSTB:
            self.generic.append((DeviceProc.DEVICE_READSTB, DeviceGenericParms.from_bytes(payload)))
            return DeviceReadStbResp(error=0, stb=self.stb).to_bytes()
        if proc in (DeviceProc.DEVICE_TRIGGER, DeviceProc.DEVICE_CLEAR, DeviceProc.DEVICE_REMOTE, DeviceProc.DEVICE_LOCAL):
            self.generic.append((DeviceProc(proc), DeviceGenericParms.from_bytes(payload)))
            return DeviceError(0).to_bytes()
        if proc == DeviceProc.DEVICE_LOCK:
            self.generic.append((DeviceProc.DEVICE_LOCK, DeviceLockParms.from_bytes(payload)))
            return DeviceError(0).to_bytes()
        if proc == DeviceProc.DEVICE_UNLOCK:
            self.generic.append((DeviceProc.DEVICE_UNLOCK, DeviceLink.from_bytes(payload)))
            return DeviceError(0).to_bytes()
        raise LookupError(proc)

    def __call__(self, call: CallMessage) -> ReplyMessage:
        if call.prog != DEVICE_CORE_PROG or call.vers != DEVICE_CORE_VERS:
            return ReplyMessage(xid=call.xid, accept_stat=AcceptStatus.PROG_UNAVAIL)
        try:
            payload = self.handle_payload(call.proc, call.payload)
        except LookupError:
            return ReplyMessage(xid=call.xid, accept_stat=AcceptStatus.PROC_UNAVAIL)
        return ReplyMessage.success_reply(call.xid, payload)

    @property
    def write_flags(self) -> list[int]:
        return [w.flags for w in self.writes]


class FakePortMapper:
    """Answers port mapper GETPORT and DUMP calls from a mapping list."""

    def __init__(self, mappings: list[Mapping] | None = None):
        self.mappings = mappings or []
        self.requests: list[Mapping] = []

    def __call__(self, call: CallMessage) -> ReplyMessage:
        if call.prog != PMAP_PROG:
            return ReplyMessage(xid=call.xid, accept_stat=AcceptStatus.PROG_UNAVAIL)
        if call.proc == PortMapperProc.GETPORT:
            u = Unpacker(call.payload)
            request = Mapping.unpack(u)
            self.requests.append(request)
            port = 0
            for m in self.mappings:
                if (m.prog, m.vers, m.prot) == (request.prog, request.vers, request.prot):
                    port = m.port
            return ReplyMessage.success_reply(call.xid, uint_payload(port))
        if call.proc == PortMapperProc.DUMP:
            p = Packer()
            p.pack_list(self.mappings, lambda m: m.pack(p))
            return ReplyMessage.success_reply(call.xid, p.get_buffer())
        if call.proc == PortMapperProc.NULL:
            return ReplyMessage.success_reply(call.xid)
        return ReplyMessage(xid=call.xid, accept_stat=AcceptStatus.PROC_UNAVAIL)


# ----------------------------------------------------------------------------
# Loopback server
# ----------------------------------------------------------------------------


class LoopbackServer:
    """Serves an RPC handler on 127.0.0.1, one record per call."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.connections = 0
        self._server: asyncio.AbstractServer | None = None
        self._writers: set[asyncio.StreamWriter] = set()

    @property
    def port(self) -> int:
        assert self._server is not None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> "LoopbackServer":
        self._server = await asyncio.start_server(self._serve, "127.0.0.1", 0)
        return self

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            for writer in list(self._writers):
                writer.close()
            await self._server.wait_closed()

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.add(writer)
        try:
            while True:
                record = await read_record(reader.readexactly)
                reply = self.handler(CallMessage.from_bytes(record))
                writer.write(pack_record(reply.to_bytes()))
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            self._writers.discard(writer)
            writer.close()


# ----------------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------------


@pytest.fixture
def instrument() -> FakeInstrument:
    return FakeInstrument()


@pytest.fixture
def transport(instrument: FakeInstrument) -> ScriptedTransport:
    return ScriptedTransport(instrument)


@pytest.fixture
def core(transport: ScriptedTransport) -> CoreClient:
    return CoreClient(RpcClient(transport))


@pytest_asyncio.fixture
async def linked_core(core: CoreClient) -> CoreClient:
    await core.create_link()
    return core


@pytest_asyncio.fixture
async def loopback(monkeypatch):
    """A fake instrument and port mapper on loopback; the registry port is redirected to it."""
    instrument = FakeInstrument()
    device_server = await LoopbackServer(instrument).start()
    mapper = FakePortMapper(
        [Mapping(prog=DEVICE_CORE_PROG, vers=DEVICE_CORE_VERS, prot=constants.IPProtocol.TCP, port=device_server.port)]
    )
    mapper_server = await LoopbackServer(mapper).start()
    monkeypatch.setattr(constants, "PMAP_PORT", mapper_server.port)
    try:
        yield instrument, mapper, device_server, mapper_server
    finally:
        await device_server.stop()
        await mapper_server.stop()
