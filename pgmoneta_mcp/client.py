"""Client for the pgmoneta management endpoint.

Each request opens a TCP connection, sends one JSON document terminated
by a newline, reads one newline-terminated response and closes the
connection. The client keeps no session state, so a single instance can
be shared by concurrent tool calls.

Request format:
    {"Header": {"Command": "info", "ClientVersion": "0.1.0",
                "Timestamp": "20260101120000"},
     "Request": {"Username": "admin", "Server": "primary",
                 "Backup": "newest"}}

A response whose Outcome reports Status false is a failure; any other
response is returned to the caller as received.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pgmoneta_mcp import __version__
from pgmoneta_mcp.logger import ErrorCode


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5002
DEFAULT_TIMEOUT = 10.0

# Longest response line accepted; backup listings grow with the number of backups
MAX_RESPONSE_BYTES = 16 * 1024 * 1024


class ManagementCommand(str, Enum):
    """Management commands used by this adapter."""
    INFO = "info"
    LIST_BACKUP = "list-backup"


class ClientError(Exception):
    """Raised when a pgmoneta request fails.

    Attributes:
        kind: ErrorCode classifying the failure for the log files
    """

    def __init__(self, message: str, kind: ErrorCode = ErrorCode.BACKEND_REQUEST_FAILED):
        super().__init__(message)
        self.kind = kind


@dataclass
class ManagementRequest:
    """A single management request.

    Attributes:
        command: The management command
        request: Command-specific fields
        timestamp: When the request was created (YYYYMMDDHHMMSS)
    """
    command: ManagementCommand
    request: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d%H%M%S"))

    def to_json(self) -> str:
        """Serialize request to JSON string."""
        return json.dumps({
            "Header": {
                "Command": self.command.value,
                "ClientVersion": __version__,
                "Timestamp": self.timestamp,
            },
            "Request": self.request,
        })

    def to_bytes(self) -> bytes:
        """Serialize request for socket transmission (JSON plus newline)."""
        return (self.to_json() + "\n").encode("utf-8")


def check_response(command: ManagementCommand, text: str) -> str:
    """Validate a response document and return it unchanged.

    Raises:
        ClientError: If the response is not JSON or reports a failure
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ClientError(
            f"Invalid response to '{command.value}': {e}",
            kind=ErrorCode.BACKEND_INVALID_RESPONSE,
        )

    outcome = document.get("Outcome") if isinstance(document, dict) else None
    if isinstance(outcome, dict) and outcome.get("Status") is False:
        detail = outcome.get("Error", "unknown error")
        raise ClientError(f"pgmoneta reported an error for '{command.value}': {detail}")

    return text


class PgmonetaClient:
    """Async client for the pgmoneta management endpoint."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Optional[logging.Logger] = None,
        max_response_bytes: int = MAX_RESPONSE_BYTES,
    ):
        """Initialize the client.

        Args:
            host: Management host
            port: Management port
            timeout: Connection and read timeout in seconds
            logger: Optional logger instance
            max_response_bytes: Longest response accepted, in bytes
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.max_response_bytes = max_response_bytes

    async def send_request(self, message: ManagementRequest) -> str:
        """Send a request and wait for the response.

        Args:
            message: Request to send

        Returns:
            The response document as text, without the trailing newline

        Raises:
            ClientError: If connection fails, times out, or pgmoneta reports an error
        """
        self.logger.debug(f"Sending '{message.command.value}' to {self.host}:{self.port}")
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.host, self.port, limit=self.max_response_bytes
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ClientError("Connection timed out", kind=ErrorCode.BACKEND_TIMEOUT)
        except ConnectionRefusedError:
            raise ClientError(
                f"Connection refused by {self.host}:{self.port} - is pgmoneta running?",
                kind=ErrorCode.BACKEND_CONNECTION_FAILED,
            )
        except OSError as e:
            raise ClientError(
                f"Connection failed: {e}",
                kind=ErrorCode.BACKEND_CONNECTION_FAILED,
            )

        try:
            writer.write(message.to_bytes())
            await writer.drain()

            try:
                data = await asyncio.wait_for(
                    reader.readline(),
                    timeout=self.timeout,
                )
            except ValueError:
                # StreamReader.readline reports an overrun of the limit this way
                raise ClientError(
                    f"Response exceeds {self.max_response_bytes} bytes",
                    kind=ErrorCode.BACKEND_INVALID_RESPONSE,
                )

            if not data:
                raise ClientError(
                    "Server closed connection without response",
                    kind=ErrorCode.BACKEND_INVALID_RESPONSE,
                )

            try:
                text = data.decode("utf-8").rstrip("\r\n")
            except UnicodeDecodeError as e:
                raise ClientError(
                    f"Invalid response encoding: {e}",
                    kind=ErrorCode.BACKEND_INVALID_RESPONSE,
                )

            return check_response(message.command, text)

        except asyncio.TimeoutError:
            raise ClientError("Response timed out", kind=ErrorCode.BACKEND_TIMEOUT)
        except (ConnectionError, OSError) as e:
            raise ClientError(
                f"Connection lost: {e}",
                kind=ErrorCode.BACKEND_CONNECTION_FAILED,
            )
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def request_backup_info(self, username: str, server: str, backup_id: str) -> str:
        """Request the details of one backup.

        Raises:
            ClientError: If the request fails
        """
        message = ManagementRequest(
            command=ManagementCommand.INFO,
            request={
                "Username": username,
                "Server": server,
                "Backup": backup_id,
            },
        )
        return await self.send_request(message)

    async def request_list_backups(self, username: str, server: str, sort: str) -> str:
        """Request the backups of a server in the given sort order.

        Raises:
            ClientError: If the request fails
        """
        message = ManagementRequest(
            command=ManagementCommand.LIST_BACKUP,
            request={
                "Username": username,
                "Server": server,
                "Sort": sort,
            },
        )
        return await self.send_request(message)
