import asyncio

import pytest

from errors import INTERNAL_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND
from rpc.engine import InvocationEngine
from rpc.registry import ToolDescriptor, ToolRegistry


def _assert_exclusive(envelope):
    assert envelope["jsonrpc"] == "2.0"
    assert ("result" in envelope) != ("error" in envelope)


@pytest.mark.asyncio
async def test_success_echoes_id(toy_engine):
    for request_id in (7, "abc-1", None):
        resp = await toy_engine.invoke({"method": "echo", "params": {"value": 42}, "id": request_id})
        _assert_exclusive(resp)
        assert resp == {"jsonrpc": "2.0", "result": {"value": 42}, "id": request_id}


@pytest.mark.asyncio
async def test_absent_params_default_to_empty(toy_engine):
    resp = await toy_engine.invoke({"method": "echo", "id": 1})
    assert resp["result"] == {"value": None}


@pytest.mark.asyncio
async def test_notification_still_answered_with_null_id(toy_engine):
    resp = await toy_engine.invoke({"method": "echo", "params": {"value": "x"}})
    assert resp["id"] is None
    assert resp["result"] == {"value": "x"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "request_obj, expected_id",
    [
        ({"id": 1}, 1),
        ({"method": 5, "id": 2}, 2),
        ({"method": None, "id": "x"}, "x"),
        ({"method": "echo", "params": [1, 2], "id": 3}, 3),
        ("not an object", None),
        (42, None),
    ],
)
async def test_invalid_request(toy_engine, request_obj, expected_id):
    resp = await toy_engine.invoke(request_obj)
    _assert_exclusive(resp)
    assert resp["error"]["code"] == INVALID_REQUEST
    assert resp["error"]["message"] == "Invalid Request"
    assert resp["id"] == expected_id


@pytest.mark.asyncio
async def test_unknown_method(toy_engine):
    resp = await toy_engine.invoke({"method": "no_such_tool", "id": 9})
    assert resp["error"]["code"] == METHOD_NOT_FOUND
    assert "no_such_tool" in resp["error"]["message"]
    assert resp["id"] == 9


@pytest.mark.asyncio
async def test_handler_exception_becomes_internal_error(toy_engine):
    resp = await toy_engine.invoke({"method": "boom", "id": 4})
    _assert_exclusive(resp)
    assert resp["error"] == {"code": INTERNAL_ERROR, "message": "Internal error", "data": "kaboom"}
    assert resp["id"] == 4


@pytest.mark.asyncio
async def test_empty_exception_message_uses_class_name(server_info):
    reg = ToolRegistry()

    def silent(params):
        raise KeyError()

    reg.register(ToolDescriptor("silent", "", {}, silent))
    resp = await InvocationEngine(reg.freeze(), server_info).invoke({"method": "silent", "id": 1})
    assert resp["error"]["data"] == "KeyError"


@pytest.mark.asyncio
async def test_unknown_params_are_ignored(toy_engine):
    resp = await toy_engine.invoke({"method": "echo", "params": {"bogus": 1}, "id": 5})
    assert resp == {"jsonrpc": "2.0", "result": {"value": None}, "id": 5}


@pytest.mark.asyncio
async def test_coroutine_handler_is_awaited(server_info):
    reg = ToolRegistry()

    async def slow(params):
        await asyncio.sleep(0)
        return {"slept": True}

    reg.register(ToolDescriptor("slow", "", {}, slow))
    resp = await InvocationEngine(reg.freeze(), server_info).invoke({"method": "slow", "id": 1})
    assert resp["result"] == {"slept": True}


@pytest.mark.asyncio
async def test_batch_preserves_input_order_when_completion_order_differs(server_info):
    reg = ToolRegistry()
    finished = []

    async def sleeper(params):
        await asyncio.sleep(params["delay"])
        finished.append(params["tag"])
        return params["tag"]

    reg.register(ToolDescriptor("sleeper", "", {}, sleeper))
    engine = InvocationEngine(reg.freeze(), server_info)

    resp = await engine.invoke(
        [
            {"method": "sleeper", "params": {"delay": 0.05, "tag": "first"}, "id": 1},
            {"method": "sleeper", "params": {"delay": 0.0, "tag": "second"}, "id": 2},
        ]
    )

    assert finished == ["second", "first"]
    assert [r["result"] for r in resp] == ["first", "second"]
    assert [r["id"] for r in resp] == [1, 2]


@pytest.mark.asyncio
async def test_batch_mixes_successes_and_failures(toy_engine):
    resp = await toy_engine.invoke(
        [
            {"method": "echo", "params": {"value": 1}, "id": "a"},
            {"method": "missing", "id": "b"},
            "junk",
            {"method": "boom", "id": "c"},
        ]
    )
    assert len(resp) == 4
    assert resp[0]["result"] == {"value": 1}
    assert resp[1]["error"]["code"] == METHOD_NOT_FOUND
    assert resp[2]["error"]["code"] == INVALID_REQUEST
    assert resp[3]["error"]["code"] == INTERNAL_ERROR
    for r in resp:
        _assert_exclusive(r)


@pytest.mark.asyncio
async def test_empty_batch(toy_engine):
    assert await toy_engine.invoke([]) == []


@pytest.mark.asyncio
async def test_list_tools_matches_registry(engine, registry):
    resp = await engine.invoke({"method": "system.listTools", "id": 1})
    tools = resp["result"]["tools"]
    assert len(tools) == 16
    assert len({t["name"] for t in tools}) == 16
    assert tools == registry.list_all()
    assert all(set(t) == {"name", "description", "parameters"} for t in tools)


@pytest.mark.asyncio
async def test_initialize(engine):
    resp = await engine.invoke({"method": "initialize", "params": {"clientInfo": {"name": "t"}}, "id": 0})
    result = resp["result"]
    assert result["serverInfo"] == {"name": "crypto-signal", "version": "0.1.0", "capabilities": {}}
    assert len(result["tools"]) == 16
    assert resp["id"] == 0


@pytest.mark.asyncio
async def test_get_server_info(engine, server_info):
    resp = await engine.invoke({"method": "system.getServerInfo", "id": "s"})
    assert resp["result"] == server_info


@pytest.mark.asyncio
async def test_metrics_are_recorded(toy_engine):
    await toy_engine.invoke([{"method": "echo", "id": 1}, {"method": "boom", "id": 2}, {"method": "nope", "id": 3}, {}])

    m = toy_engine.metrics
    assert m.get("rpc_batches_total") == 1
    assert m.get("rpc_requests_total") == 4
    assert m.get("tool_echo_ok_total") == 1
    assert m.get("tool_boom_error_total") == 1
    assert m.get("rpc_method_not_found_total") == 1
    assert m.get("rpc_invalid_request_total") == 1
    assert m.snapshot()["timers"]["tool_echo_latency_ms"]["count"] == 1
