"""MCP Server for pgmoneta-mcp.

This module provides the PgmonetaMCPServer class that exposes the
router's tools and prompts to AI agents via the Model Context Protocol
(MCP) over stdio.

Tools and prompts exposed:
- get_backup_info: Details of one backup of a server
- list_backups: Backups of a server, ascending or descending
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    ErrorData,
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    TextContent,
    Tool,
)

from pgmoneta_mcp.client import PgmonetaClient
from pgmoneta_mcp.config import Configuration, parse_config
from pgmoneta_mcp.handler import PgmonetaHandler
from pgmoneta_mcp.logger import setup_logging
from pgmoneta_mcp.router import Capability, Router, build_router


class PgmonetaMCPServer:
    """
    MCP Server exposing the pgmoneta backup tools to AI agents.

    Successful calls return pgmoneta's response text unchanged. Failed
    calls raise McpError carrying the error's JSON-RPC code and message.
    """

    def __init__(
        self,
        router: Router,
        name: str = "pgmoneta-mcp",
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the MCP server.

        Args:
            router: Router built at startup; shared read-only by all calls
            name: Server name announced to clients
            logger: Optional logger instance
        """
        self.router = router
        self.server = Server(name)
        self.logger = logger or logging.getLogger(__name__)
        self._register_handlers()

    def _register_handlers(self):
        """Register the MCP request handlers with the server."""

        @self.server.list_tools()
        async def list_tools() -> List[Tool]:
            return await self._list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
            return await self._call_tool(name, arguments)

        @self.server.list_prompts()
        async def list_prompts() -> List[Prompt]:
            return await self._list_prompts()

        @self.server.get_prompt()
        async def get_prompt(name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
            return await self._get_prompt(name, arguments)

    async def _list_tools(self) -> List[Tool]:
        """Return the tool catalog."""
        return [
            Tool(
                name=entry.name,
                description=entry.description,
                inputSchema=entry.input_schema,
            )
            for entry in self.router.entries(Capability.TOOL)
        ]

    async def _list_prompts(self) -> List[Prompt]:
        """Return the prompt catalog."""
        return [
            Prompt(
                name=entry.name,
                description=entry.description,
                arguments=[
                    PromptArgument(
                        name=arg.name,
                        description=arg.description,
                        required=arg.required,
                    )
                    for arg in entry.request_type.FIELDS
                ],
            )
            for entry in self.router.entries(Capability.PROMPT)
        ]

    async def _dispatch(
        self,
        capability: Capability,
        name: str,
        arguments: Optional[Dict[str, Any]],
    ) -> str:
        """
        Run a call through the router and return its payload.

        Raises:
            McpError: If the call fails, or the handler raises unexpectedly
        """
        try:
            result = await self.router.dispatch(capability, name, arguments)
        except Exception as e:
            self.logger.exception(f"Unexpected error in {capability.value} '{name}'")
            raise McpError(ErrorData(code=INTERNAL_ERROR, message=f"Internal error: {e}"))

        if not result.ok:
            raise McpError(result.error.to_error_data())
        return result.payload

    async def _call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        """Dispatch a tool call and wrap the payload as text content."""
        payload = await self._dispatch(Capability.TOOL, name, arguments)
        return [TextContent(type="text", text=payload)]

    async def _get_prompt(self, name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
        """Render a prompt as a single user message."""
        text = await self._dispatch(Capability.PROMPT, name, arguments)
        entry = self.router.get(Capability.PROMPT, name)
        return GetPromptResult(
            description=entry.description if entry else None,
            messages=[
                PromptMessage(
                    role="user",
                    content=TextContent(type="text", text=text),
                )
            ],
        )

    async def run(self):
        """Start the MCP server using stdio transport."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options()
            )


def build_server(config: Configuration, logger: Optional[logging.Logger] = None) -> PgmonetaMCPServer:
    """
    Wire configuration, client, handler and router into a server.

    Args:
        config: Parsed configuration
        logger: Optional logger instance

    Returns:
        PgmonetaMCPServer ready to run
    """
    client = PgmonetaClient(
        host=config.pgmoneta.host,
        port=config.pgmoneta.port,
        timeout=config.pgmoneta.timeout_seconds,
    )
    router = build_router(PgmonetaHandler(client))
    return PgmonetaMCPServer(router, name=config.mcp.name, logger=logger)


def run_server(config_path: Optional[Path] = None):
    """
    Entry point for MCP server.

    This function is called by the CLI `pgmoneta-mcp serve` command.

    Args:
        config_path: Optional path to configuration file

    Raises:
        ConfigurationError: If the config file is missing or malformed
        ValidationError: If config values have wrong types
        LoggingError: If logging cannot be set up
    """
    config = parse_config(config_path)
    logger = setup_logging(config=config.logging)
    logger.info(
        f"Starting MCP server '{config.mcp.name}' for pgmoneta at "
        f"{config.pgmoneta.host}:{config.pgmoneta.port}"
    )
    server = build_server(config)
    asyncio.run(server.run())
