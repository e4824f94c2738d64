"""Unit tests for the backup request handlers."""

import asyncio
import json

import pytest

from fakes import FakeClient, failing_client
from pgmoneta_mcp.client import ClientError
from pgmoneta_mcp.errors import BackendFailure, InvalidParameters
from pgmoneta_mcp.handler import (
    INFO_FAILURE_PREFIX,
    LIST_FAILURE_PREFIX,
    PgmonetaHandler,
)
from pgmoneta_mcp.logger import ErrorCode
from pgmoneta_mcp.schema import InfoRequest, ListBackupsRequest


INFO_PAYLOAD = json.dumps({
    "Header": {"Command": "info"},
    "Outcome": {"Status": True},
    "Response": {"Backup": "20260101120000", "Valid": True, "BackupSize": 52428800},
})


class TestGetBackupInfo:
    """Tests for PgmonetaHandler.get_backup_info."""

    def test_returns_payload_unchanged(self):
        client = FakeClient(payload=INFO_PAYLOAD)
        handler = PgmonetaHandler(client)

        result = asyncio.run(handler.get_backup_info(
            InfoRequest(username="admin", server="primary", backup_id="newest")
        ))

        assert result.ok
        assert result.payload == INFO_PAYLOAD
        assert result.error is None

    def test_forwards_request_fields(self):
        client = FakeClient()
        handler = PgmonetaHandler(client)

        asyncio.run(handler.get_backup_info(
            InfoRequest(username="admin", server="primary", backup_id="20260101120000")
        ))

        assert client.calls == [
            ("request_backup_info", ("admin", "primary", "20260101120000")),
        ]

    def test_backend_failure_message(self):
        handler = PgmonetaHandler(failing_client("connection refused"))

        result = asyncio.run(handler.get_backup_info(
            InfoRequest(username="admin", server="primary", backup_id="newest")
        ))

        assert not result.ok
        assert result.payload is None
        assert isinstance(result.error, BackendFailure)
        assert "Failed to retrieve backup information" in result.error.message
        assert "connection refused" in result.error.message
        assert result.error.message == f"{INFO_FAILURE_PREFIX}: connection refused"

    def test_backend_failure_keeps_cause(self):
        cause = ClientError("no such backup", kind=ErrorCode.BACKEND_REQUEST_FAILED)
        handler = PgmonetaHandler(FakeClient(error=cause))

        result = asyncio.run(handler.get_backup_info(
            InfoRequest(username="admin", server="primary", backup_id="x")
        ))

        assert result.error.cause is cause

    def test_unexpected_exceptions_propagate(self):
        handler = PgmonetaHandler(FakeClient(error=RuntimeError("bug")))

        with pytest.raises(RuntimeError):
            asyncio.run(handler.get_backup_info(
                InfoRequest(username="admin", server="primary", backup_id="newest")
            ))

    def test_cancellation_propagates(self):
        handler = PgmonetaHandler(FakeClient(error=asyncio.CancelledError()))

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(handler.get_backup_info(
                InfoRequest(username="admin", server="primary", backup_id="newest")
            ))


class TestListBackups:
    """Tests for PgmonetaHandler.list_backups."""

    def test_sort_defaults_to_ascending(self):
        client = FakeClient()
        handler = PgmonetaHandler(client)

        asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="primary")
        ))

        assert client.calls == [("request_list_backups", ("admin", "primary", "asc"))]

    def test_descending_passed_through(self):
        client = FakeClient()
        handler = PgmonetaHandler(client)

        asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="primary", sort="desc")
        ))

        assert client.calls == [("request_list_backups", ("admin", "primary", "desc"))]

    def test_explicit_ascending_passed_through(self):
        client = FakeClient()
        handler = PgmonetaHandler(client)

        asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="primary", sort="asc")
        ))

        assert client.calls[0][1][2] == "asc"

    @pytest.mark.parametrize("token", ["DESC", "Asc", "descending", "", " asc"])
    def test_unknown_sort_rejected_without_backend_call(self, token):
        client = FakeClient()
        handler = PgmonetaHandler(client)

        result = asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="primary", sort=token)
        ))

        assert isinstance(result.error, InvalidParameters)
        assert "sort" in result.error.message
        assert client.calls == []

    def test_returns_payload_unchanged(self):
        payload = '{"Response": {"Backups": []}}\t '
        handler = PgmonetaHandler(FakeClient(payload=payload))

        result = asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="primary")
        ))

        assert result.payload == payload

    def test_backend_failure_message(self):
        handler = PgmonetaHandler(failing_client("server 'replica' not found"))

        result = asyncio.run(handler.list_backups(
            ListBackupsRequest(username="admin", server="replica", sort="desc")
        ))

        assert isinstance(result.error, BackendFailure)
        assert result.error.message.startswith(LIST_FAILURE_PREFIX)
        assert "Failed to list backups" in result.error.message
        assert "server 'replica' not found" in result.error.message

    def test_backend_failure_is_logged(self, caplog):
        handler = PgmonetaHandler(failing_client("connection refused"))

        with caplog.at_level("ERROR", logger="pgmoneta_mcp"):
            asyncio.run(handler.list_backups(
                ListBackupsRequest(username="admin", server="primary")
            ))

        assert any(ErrorCode.BACKEND_REQUEST_FAILED.value in r.getMessage() for r in caplog.records)
