"""Request handlers for the backup tools.

PgmonetaHandler turns decoded requests into pgmoneta client calls and
maps the outcome to a ToolResult. It holds only a reference to the
client, so one instance serves all concurrent calls.
"""

import logging
from typing import Optional, Protocol

from pgmoneta_mcp.client import ClientError
from pgmoneta_mcp.constant import SortOrder
from pgmoneta_mcp.errors import BackendFailure, InvalidParameters, ToolResult
from pgmoneta_mcp.logger import log_structured_error, map_exception_to_error_code
from pgmoneta_mcp.schema import InfoRequest, ListBackupsRequest


INFO_FAILURE_PREFIX = "Failed to retrieve backup information"
LIST_FAILURE_PREFIX = "Failed to list backups"


class BackupClient(Protocol):
    """The pgmoneta operations the handler depends on."""

    async def request_backup_info(self, username: str, server: str, backup_id: str) -> str:
        ...

    async def request_list_backups(self, username: str, server: str, sort: str) -> str:
        ...


class PgmonetaHandler:
    """Stateless handler for the get_backup_info and list_backups operations."""

    def __init__(self, client: BackupClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def _backend_failure(self, prefix: str, error: ClientError, context: dict) -> ToolResult:
        log_structured_error(
            self.logger,
            f"{prefix}: {error}",
            map_exception_to_error_code(error),
            context=context,
        )
        return ToolResult.failure(BackendFailure(prefix, error))

    async def get_backup_info(self, request: InfoRequest) -> ToolResult:
        """
        Return pgmoneta's description of one backup.

        The payload is passed through unchanged. Any client error becomes a
        BackendFailure prefixed with "Failed to retrieve backup information".
        """
        try:
            payload = await self.client.request_backup_info(
                request.username,
                request.server,
                request.backup_id,
            )
        except ClientError as e:
            return self._backend_failure(
                INFO_FAILURE_PREFIX,
                e,
                {"server": request.server, "backup_id": request.backup_id},
            )
        return ToolResult.success(payload)

    async def list_backups(self, request: ListBackupsRequest) -> ToolResult:
        """
        Return pgmoneta's listing of a server's backups.

        An absent sort means ascending; an unknown sort token is rejected
        before pgmoneta is contacted.
        """
        try:
            sort = SortOrder.parse(request.sort)
        except ValueError as e:
            return ToolResult.failure(InvalidParameters("list_backups", [str(e)]))

        try:
            payload = await self.client.request_list_backups(
                request.username,
                request.server,
                sort.value,
            )
        except ClientError as e:
            return self._backend_failure(
                LIST_FAILURE_PREFIX,
                e,
                {"server": request.server, "sort": sort.value},
            )
        return ToolResult.success(payload)
