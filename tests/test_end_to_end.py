"""End-to-end tests against a fake instrument served on loopback."""

import pytest

import async_vxi11
from async_vxi11 import demo
from async_vxi11.constants import ReadReason
from async_vxi11.core import CoreClient, LinkState
from async_vxi11.errors import RpcRejectedError, TransportError
from async_vxi11.options import VxiOptions
from async_vxi11.transports import (
    DEFAULT_TRANSPORT,
    SocketTransport,
    StreamTransport,
    Transport,
    get_transport,
    list_transports,
)

BACKENDS = ["streams", "socket"]


def test_transport_registry() -> None:
    assert DEFAULT_TRANSPORT == "streams"
    assert set(list_transports()) >= {"streams", "socket"}
    assert get_transport("streams") is StreamTransport
    assert get_transport("socket") is SocketTransport
    assert get_transport(SocketTransport) is SocketTransport
    with pytest.raises(ValueError):
        get_transport("carrier-pigeon")


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", BACKENDS)
async def test_connect_query_close(loopback, backend: str) -> None:
    """Test a full session: resolve, link, query, destroy."""
    instrument, mapper, device_server, mapper_server = loopback

    core = await CoreClient.connect("127.0.0.1", transport=backend)
    assert core.state is LinkState.LINKED
    assert isinstance(core.rpc.transport, get_transport(backend))

    assert await core.query("*IDN?\n") == b"*IDN?\n"
    assert await core.device_readstb() == 0x40

    await core.close()
    assert core.state is LinkState.CLOSED
    assert core.rpc.closed
    assert instrument.destroyed == [instrument.link_id]
    assert mapper_server.connections == 1
    assert device_server.connections == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", BACKENDS)
async def test_multi_call_read_over_tcp(loopback, backend: str) -> None:
    instrument = loopback[0]
    instrument.reads.extend([(ReadReason.REQCNT, b"+1.0"), (ReadReason.REQCNT, b"E+00"), (ReadReason.END, b"\n")])

    async with await async_vxi11.connect("127.0.0.1", VxiOptions(device="inst1"), transport=backend) as core:
        assert await core.read() == b"+1.0E+00\n"

    assert instrument.links[0].device == "inst1"
    assert len(instrument.read_requests) == 3


@pytest.mark.asyncio
async def test_large_write_is_chunked_over_tcp(loopback) -> None:
    instrument = loopback[0]
    instrument.max_recv_size = 1024
    payload = bytes(range(256)) * 10

    async with await CoreClient.connect("127.0.0.1") as core:
        assert await core.device_write(payload) == len(payload)

    assert [len(w.data) for w in instrument.writes] == [1024, 1024, 512]
    assert b"".join(w.data for w in instrument.writes) == payload


@pytest.mark.asyncio
async def test_connect_closes_connection_when_link_fails(loopback) -> None:
    """Test that a failed create_link does not leak the core channel connection."""
    instrument = loopback[0]
    instrument.abort_port = 65535

    with pytest.raises(async_vxi11.InvalidPortError):
        await CoreClient.connect("127.0.0.1")
    assert instrument.destroyed == []


@pytest.mark.asyncio
async def test_unregistered_core_channel(loopback) -> None:
    """Test that a registry answering port 0 leads to a connection failure."""
    mapper = loopback[1]
    mapper.mappings.clear()

    with pytest.raises(TransportError):
        await CoreClient.connect("127.0.0.1", connect_timeout=1.0)


@pytest.mark.asyncio
async def test_wrong_program_on_core_port(loopback) -> None:
    device_server = loopback[2]
    client = await async_vxi11.RpcClient.connect("127.0.0.1", device_server.port, 0x0607B0, 1)
    async with client:
        with pytest.raises(RpcRejectedError):
            await client.ping()


def test_custom_transport_class_is_accepted() -> None:
    class Dummy(StreamTransport):
        pass

    assert issubclass(get_transport(Dummy), Transport)


# ----------------------------------------------------------------------------
# Command line tool
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cli_query(loopback, capsys) -> None:
    args = demo.parse_args(["127.0.0.1", "*IDN?"])
    assert args.term_char == 10
    assert await demo.main_async(args) == 0
    assert "*IDN?" in capsys.readouterr().out
    assert loopback[0].writes[0].data == b"*IDN?\n"


@pytest.mark.asyncio
async def test_cli_mappings(loopback, capsys) -> None:
    args = demo.parse_args(["127.0.0.1", "--mappings", "--transport", "socket"])
    assert await demo.main_async(args) == 0
    out = capsys.readouterr().out
    assert "0x607af" in out
    assert "TCP" in out


@pytest.mark.asyncio
async def test_cli_reports_errors(loopback) -> None:
    loopback[1].mappings.clear()
    args = demo.parse_args(["127.0.0.1", "*RST", "--no-read"])
    assert await demo.main_async(args) == 1


def test_cli_needs_something_to_do() -> None:
    assert demo.main(["127.0.0.1"]) == 2
