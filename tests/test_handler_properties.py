"""Property-based tests for request handling.

Property: pass-through. For any request accepted by the router, a
successful pgmoneta response reaches the caller unchanged and a failed
one produces an error carrying the operation prefix and the detail.
"""

import asyncio

from hypothesis import given, strategies as st

from fakes import FakeClient, failing_client
from pgmoneta_mcp.errors import BackendFailure
from pgmoneta_mcp.handler import INFO_FAILURE_PREFIX, LIST_FAILURE_PREFIX, PgmonetaHandler
from pgmoneta_mcp.router import build_router


identifiers = st.text(min_size=1, max_size=40)
payloads = st.text(max_size=500)
details = st.text(min_size=1, max_size=80)
sort_tokens = st.sampled_from([None, "asc", "desc"])


@given(username=identifiers, server=identifiers, backup_id=identifiers, payload=payloads)
def test_info_payload_is_passed_through(username, server, backup_id, payload):
    client = FakeClient(payload=payload)
    router = build_router(PgmonetaHandler(client))

    result = asyncio.run(router.call_tool("get_backup_info", {
        "username": username,
        "server": server,
        "backup_id": backup_id,
    }))

    assert result.ok
    assert result.payload == payload
    assert client.calls == [("request_backup_info", (username, server, backup_id))]


@given(username=identifiers, server=identifiers, sort=sort_tokens, payload=payloads)
def test_list_payload_is_passed_through(username, server, sort, payload):
    client = FakeClient(payload=payload)
    router = build_router(PgmonetaHandler(client))

    params = {"username": username, "server": server}
    if sort is not None:
        params["sort"] = sort

    result = asyncio.run(router.call_tool("list_backups", params))

    assert result.payload == payload
    assert client.calls == [("request_list_backups", (username, server, sort or "asc"))]


@given(detail=details)
def test_info_failure_carries_prefix_and_detail(detail):
    handler = PgmonetaHandler(failing_client(detail))
    router = build_router(handler)

    result = asyncio.run(router.call_tool("get_backup_info", {
        "username": "admin",
        "server": "primary",
        "backup_id": "newest",
    }))

    assert isinstance(result.error, BackendFailure)
    assert result.payload is None
    assert result.error.message == f"{INFO_FAILURE_PREFIX}: {detail}"


@given(detail=details, sort=sort_tokens)
def test_list_failure_carries_prefix_and_detail(detail, sort):
    handler = PgmonetaHandler(failing_client(detail))
    router = build_router(handler)

    params = {"username": "admin", "server": "primary"}
    if sort is not None:
        params["sort"] = sort

    result = asyncio.run(router.call_tool("list_backups", params))

    assert isinstance(result.error, BackendFailure)
    assert result.error.message == f"{LIST_FAILURE_PREFIX}: {detail}"


@given(token=st.text(max_size=10).filter(lambda s: s not in ("asc", "desc")))
def test_unknown_sort_never_reaches_backend(token):
    client = FakeClient()
    router = build_router(PgmonetaHandler(client))

    result = asyncio.run(router.call_tool("list_backups", {
        "username": "admin",
        "server": "primary",
        "sort": token,
    }))

    assert not result.ok
    assert client.calls == []
