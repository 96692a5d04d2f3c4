import io
import json

import pytest

from errors import INTERNAL_ERROR, METHOD_NOT_FOUND
from rpc.engine import InvocationEngine
from rpc.registry import ToolDescriptor, ToolRegistry
from stdio_server import StdioServer


def _lines(out: io.StringIO):
    return [json.loads(line) for line in out.getvalue().splitlines()]


def _server(engine, stdin=b""):
    out = io.StringIO()
    return StdioServer(engine, stdin=io.BytesIO(stdin), stdout=out, chunk_size=16), out


@pytest.mark.asyncio
async def test_responses_written_in_parse_order(toy_engine):
    data = b"".join(
        json.dumps(m).encode() + b"\n"
        for m in (
            {"method": "echo", "params": {"value": 1}, "id": 1},
            {"method": "missing", "id": 2},
            {"method": "echo", "params": {"value": 3}, "id": 3},
        )
    )
    server, out = _server(toy_engine, data)
    await server.serve()

    lines = _lines(out)
    assert [r["id"] for r in lines] == [1, 2, 3]
    assert lines[1]["error"]["code"] == METHOD_NOT_FOUND
    assert out.getvalue().endswith("\n")


@pytest.mark.asyncio
async def test_malformed_line_gets_no_response(toy_engine):
    server, out = _server(toy_engine, b'garbage\n{"method": "echo", "id": 1}\n')
    await server.serve()
    assert [r["id"] for r in _lines(out)] == [1]


@pytest.mark.asyncio
async def test_batch_line_answered_with_array(toy_engine):
    server, out = _server(toy_engine, b'[{"method": "echo", "id": 1}, {"method": "echo", "id": 2}]\n')
    await server.serve()
    lines = _lines(out)
    assert len(lines) == 1
    assert [r["id"] for r in lines[0]] == [1, 2]


@pytest.mark.asyncio
async def test_handler_exception_does_not_stop_loop(toy_engine):
    server, out = _server(toy_engine, b'{"method": "boom", "id": 1}\n{"method": "echo", "id": 2}\n')
    await server.serve()
    lines = _lines(out)
    assert lines[0]["error"]["data"] == "kaboom"
    assert lines[1]["result"] == {"value": None}


@pytest.mark.asyncio
async def test_unserializable_result_becomes_generic_error(server_info):
    reg = ToolRegistry()
    reg.register(ToolDescriptor("weird", "", {}, lambda params: {"value": object()}))
    reg.register(ToolDescriptor("fine", "", {}, lambda params: "ok"))
    engine = InvocationEngine(reg.freeze(), server_info)

    server, out = _server(engine, b'{"method": "weird", "id": 1}\n{"method": "fine", "id": 2}\n')
    await server.serve()

    lines = _lines(out)
    assert lines[0]["error"]["code"] == INTERNAL_ERROR
    assert lines[0]["id"] is None
    assert lines[1] == {"jsonrpc": "2.0", "result": "ok", "id": 2}


@pytest.mark.asyncio
async def test_engine_failure_becomes_generic_error(toy_engine):
    server, out = _server(toy_engine)

    async def broken(message):
        raise RuntimeError("engine down")

    server.engine.invoke = broken
    written = await server.handle_chunk(b'{"method": "echo", "id": 1}\n')
    assert written == _lines(out)
    assert written[0]["error"] == {"code": INTERNAL_ERROR, "message": "Internal error", "data": "engine down"}
    assert written[0]["id"] is None


@pytest.mark.asyncio
async def test_unterminated_tail_at_eof_is_not_executed(toy_engine):
    server, out = _server(toy_engine, b'{"method": "echo", "id": 1}\n{"method": "echo", "id": 2}')
    await server.serve()
    assert [r["id"] for r in _lines(out)] == [1]
    assert server.framer.pending == ""


@pytest.mark.asyncio
async def test_chunks_processed_in_arrival_order(toy_engine):
    server, out = _server(toy_engine)
    await server.handle_chunk(b'{"method": "echo", "id": 1}\n{"method": "ec')
    await server.handle_chunk(b'ho", "id": 2}\n')
    assert [r["id"] for r in _lines(out)] == [1, 2]
