"""pgmoneta-mcp - MCP server exposing pgmoneta backup information to AI agents."""

__version__ = "0.1.0"

from pgmoneta_mcp.config import (
    Configuration,
    ConfigNotFoundError,
    ConfigurationError,
    ValidationError,
    parse_config,
    format_config,
    create_default_config,
)
from pgmoneta_mcp.constant import SortOrder
from pgmoneta_mcp.errors import (
    RegistryError,
    ToolError,
    ToolNotFound,
    InvalidParameters,
    BackendFailure,
    ToolResult,
)
from pgmoneta_mcp.schema import (
    InfoRequest,
    ListBackupsRequest,
    decode,
    input_schema,
)
from pgmoneta_mcp.client import (
    ClientError,
    ManagementCommand,
    PgmonetaClient,
)
from pgmoneta_mcp.handler import PgmonetaHandler
from pgmoneta_mcp.router import (
    Capability,
    RegistryBuilder,
    Router,
    build_router,
)
from pgmoneta_mcp.logger import (
    LoggingError,
    setup_logging,
    get_logger,
)

__all__ = [
    "Configuration",
    "ConfigNotFoundError",
    "ConfigurationError",
    "ValidationError",
    "parse_config",
    "format_config",
    "create_default_config",
    "SortOrder",
    "RegistryError",
    "ToolError",
    "ToolNotFound",
    "InvalidParameters",
    "BackendFailure",
    "ToolResult",
    "InfoRequest",
    "ListBackupsRequest",
    "decode",
    "input_schema",
    "ClientError",
    "ManagementCommand",
    "PgmonetaClient",
    "PgmonetaHandler",
    "Capability",
    "RegistryBuilder",
    "Router",
    "build_router",
    "LoggingError",
    "setup_logging",
    "get_logger",
]
