"""Command-line interface for pgmoneta-mcp.

This module provides the CLI for pgmoneta-mcp, supporting commands for:
- serve: Run the MCP server on stdio
- init: Create default config
- tools: Show the tool and prompt catalog
- info: Call get_backup_info and print the result
- list: Call list_backups and print the result
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from pgmoneta_mcp import __version__
from pgmoneta_mcp.client import PgmonetaClient
from pgmoneta_mcp.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
    create_default_config,
    DEFAULT_CONFIG_PATH,
)
from pgmoneta_mcp.constant import SortOrder
from pgmoneta_mcp.errors import ToolResult
from pgmoneta_mcp.handler import PgmonetaHandler
from pgmoneta_mcp.logger import LoggingError
from pgmoneta_mcp.router import Capability, Router, build_router


EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_GENERAL_ERROR = 1
EXIT_TOOL_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog='pgmoneta-mcp',
        description='MCP server for pgmoneta backup information'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to config file (default: ~/.config/pgmoneta-mcp/config.toml)',
        metavar='PATH'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser(
        'serve',
        help='Run the MCP server on stdio'
    )

    init_parser = subparsers.add_parser(
        'init',
        help='Create default config file'
    )
    init_parser.add_argument(
        '--force',
        action='store_true',
        help='Overwrite existing config file'
    )

    tools_parser = subparsers.add_parser(
        'tools',
        help='Show available tools and prompts'
    )
    tools_parser.add_argument(
        '--json',
        action='store_true',
        help='Output as JSON'
    )

    info_parser = subparsers.add_parser(
        'info',
        help='Show information about a backup'
    )
    info_parser.add_argument('username', help='pgmoneta user')
    info_parser.add_argument('server', help='Server name')
    info_parser.add_argument('backup_id', help='Backup identifier')

    list_parser = subparsers.add_parser(
        'list',
        help='List backups of a server'
    )
    list_parser.add_argument('username', help='pgmoneta user')
    list_parser.add_argument('server', help='Server name')
    list_parser.add_argument(
        '--sort',
        choices=SortOrder.tokens(),
        help='Sort order (default: asc)'
    )

    return parser


def load_config(config_path: Optional[Path], verbose: bool = False) -> Optional[Configuration]:
    """
    Load configuration from file.

    Returns None and prints error on failure.
    """
    try:
        config = parse_config(config_path)
        if verbose:
            print(f"Loaded config from: {config_path or DEFAULT_CONFIG_PATH}", file=sys.stderr)
        return config
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return None
    except ValidationError as e:
        print(f"Validation error: {e}", file=sys.stderr)
        return None


def create_router(config: Configuration) -> Router:
    """Build the router backed by a client for the configured endpoint."""
    client = PgmonetaClient(
        host=config.pgmoneta.host,
        port=config.pgmoneta.port,
        timeout=config.pgmoneta.timeout_seconds,
    )
    return build_router(PgmonetaHandler(client))


def _print_result(result: ToolResult) -> int:
    """Print a call result; payload to stdout, error to stderr."""
    if result.ok:
        print(result.payload)
        return EXIT_SUCCESS
    print(f"Error: {result.error.message}", file=sys.stderr)
    return EXIT_TOOL_ERROR


def cmd_serve(args: argparse.Namespace) -> int:
    """Execute the 'serve' command - start MCP server."""
    from pgmoneta_mcp.mcp_server import run_server

    try:
        run_server(config_path=args.config)
        return EXIT_SUCCESS
    except KeyboardInterrupt:
        return EXIT_SUCCESS
    except (ConfigurationError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except LoggingError as e:
        print(f"Logging error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


def cmd_init(args: argparse.Namespace) -> int:
    """Execute the 'init' command - create default config."""
    config_path = args.config or DEFAULT_CONFIG_PATH

    if config_path.exists() and not args.force:
        print(f"Config file already exists: {config_path}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        return EXIT_GENERAL_ERROR

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(create_default_config())

    print(f"Created default config: {config_path}")
    print("Edit the [pgmoneta] section to point at your pgmoneta instance.")

    return EXIT_SUCCESS


def cmd_tools(args: argparse.Namespace) -> int:
    """Execute the 'tools' command - show the catalog.

    The catalog does not depend on configuration, so no config file is needed.
    """
    router = build_router(PgmonetaHandler(PgmonetaClient()))

    if args.json:
        catalog = {
            f"{capability.value}s": [
                {
                    "name": entry.name,
                    "description": entry.description,
                    "inputSchema": entry.input_schema,
                }
                for entry in router.entries(capability)
            ]
            for capability in Capability
        }
        print(json.dumps(catalog, indent=2))
        return EXIT_SUCCESS

    for capability in Capability:
        print(f"{capability.value.capitalize()}s:")
        for entry in router.entries(capability):
            required = entry.input_schema["required"]
            params = ", ".join(
                name if name in required else f"[{name}]"
                for name in entry.input_schema["properties"]
            )
            print(f"  {entry.name}({params})")
            print(f"      {entry.description}")
    return EXIT_SUCCESS


def cmd_info(args: argparse.Namespace) -> int:
    """Execute the 'info' command - call get_backup_info."""
    config = load_config(args.config, args.verbose)
    if config is None:
        return EXIT_CONFIG_ERROR

    router = create_router(config)
    result = asyncio.run(router.call_tool("get_backup_info", {
        "username": args.username,
        "server": args.server,
        "backup_id": args.backup_id,
    }))
    return _print_result(result)


def cmd_list(args: argparse.Namespace) -> int:
    """Execute the 'list' command - call list_backups."""
    config = load_config(args.config, args.verbose)
    if config is None:
        return EXIT_CONFIG_ERROR

    params = {"username": args.username, "server": args.server}
    if args.sort is not None:
        params["sort"] = args.sort

    router = create_router(config)
    result = asyncio.run(router.call_tool("list_backups", params))
    return _print_result(result)


def main(argv: list = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    try:
        if args.command == 'serve':
            return cmd_serve(args)
        elif args.command == 'init':
            return cmd_init(args)
        elif args.command == 'tools':
            return cmd_tools(args)
        elif args.command == 'info':
            return cmd_info(args)
        elif args.command == 'list':
            return cmd_list(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return EXIT_GENERAL_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_GENERAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
