"""Tool and prompt registry for pgmoneta-mcp.

The registry is built once at startup with RegistryBuilder and frozen
into a Router. The Router looks up the entry for a call, decodes the
arguments into the entry's request type and awaits the handler. It never
retries and never caches.

Tools and prompts live in separate tables but share the same dispatch
contract.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type

from pgmoneta_mcp.errors import RegistryError, ToolError, ToolNotFound, ToolResult
from pgmoneta_mcp.logger import log_structured_error, map_exception_to_error_code
from pgmoneta_mcp.prompts import backup_info_prompt, list_backups_prompt
from pgmoneta_mcp.schema import InfoRequest, ListBackupsRequest, decode, input_schema


logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[ToolResult]]


class Capability(str, Enum):
    """Kind of operation served by the router."""
    TOOL = "tool"
    PROMPT = "prompt"


@dataclass(frozen=True)
class RegistryEntry:
    """A registered tool or prompt."""
    name: str
    capability: Capability
    description: str
    request_type: Type[Any]
    handler: Handler

    @property
    def input_schema(self) -> Dict[str, Any]:
        return input_schema(self.request_type)


class Router:
    """Read-only routing tables and the dispatch entry point."""

    def __init__(self, tables: Mapping[Capability, Mapping[str, RegistryEntry]]):
        self._tables = MappingProxyType({
            capability: MappingProxyType(dict(tables.get(capability, {})))
            for capability in Capability
        })

    def entries(self, capability: Capability) -> List[RegistryEntry]:
        """Return the registered entries of a capability in registration order."""
        return list(self._tables[capability].values())

    def get(self, capability: Capability, name: str) -> Optional[RegistryEntry]:
        return self._tables[capability].get(name)

    async def dispatch(
        self,
        capability: Capability,
        name: str,
        raw_params: Optional[Mapping[str, Any]],
    ) -> ToolResult:
        """
        Decode the arguments of a call and run its handler.

        Args:
            capability: Whether a tool or a prompt is called
            name: Registered name
            raw_params: Caller-supplied arguments

        Returns:
            The handler's ToolResult verbatim, or a failure for an unknown
            name or undecodable arguments
        """
        entry = self._tables[capability].get(name)
        if entry is None:
            return self._reject(ToolNotFound(name, capability.value), capability, name)

        try:
            request = decode(name, entry.request_type, raw_params)
        except ToolError as e:
            return self._reject(e, capability, name)

        logger.debug(f"Dispatching {capability.value} '{name}'")
        return await entry.handler(request)

    async def call_tool(self, name: str, params: Optional[Mapping[str, Any]]) -> ToolResult:
        return await self.dispatch(Capability.TOOL, name, params)

    async def get_prompt(self, name: str, params: Optional[Mapping[str, Any]]) -> ToolResult:
        return await self.dispatch(Capability.PROMPT, name, params)

    def _reject(self, error: ToolError, capability: Capability, name: str) -> ToolResult:
        log_structured_error(
            logger,
            error.message,
            map_exception_to_error_code(error),
            context={"capability": capability.value, "name": name},
        )
        return ToolResult.failure(error)


class RegistryBuilder:
    """Collects registrations and freezes them into a Router."""

    def __init__(self):
        self._tables: Dict[Capability, Dict[str, RegistryEntry]] = {
            capability: {} for capability in Capability
        }
        self._built = False

    def register(
        self,
        capability: Capability,
        name: str,
        request_type: Type[Any],
        handler: Handler,
        description: str = "",
    ) -> "RegistryBuilder":
        """
        Add a tool or prompt.

        Raises:
            RegistryError: If the name is already registered for this
                capability, or the router was already built
        """
        if self._built:
            raise RegistryError("Cannot register after the router was built")

        table = self._tables[capability]
        if name in table:
            raise RegistryError(f"Duplicate {capability.value} name: {name}")

        table[name] = RegistryEntry(
            name=name,
            capability=capability,
            description=description or (handler.__doc__ or "").strip(),
            request_type=request_type,
            handler=handler,
        )
        logger.debug(f"Registered {capability.value}: {name}")
        return self

    def build(self) -> Router:
        """Freeze the registrations into a Router."""
        self._built = True
        return Router(self._tables)


def build_router(handler) -> Router:
    """
    Build the router serving the backup tools and prompts.

    Args:
        handler: A PgmonetaHandler (or anything with the same coroutines)

    Returns:
        Router with get_backup_info and list_backups as tools and prompts
    """
    builder = RegistryBuilder()
    builder.register(
        Capability.TOOL,
        "get_backup_info",
        InfoRequest,
        handler.get_backup_info,
        description=(
            "Get information about a backup of a server managed by pgmoneta. "
            "Returns pgmoneta's JSON response unchanged."
        ),
    )
    builder.register(
        Capability.TOOL,
        "list_backups",
        ListBackupsRequest,
        handler.list_backups,
        description=(
            "List the backups of a server managed by pgmoneta, sorted by "
            "backup identifier ('asc' by default, or 'desc'). Returns "
            "pgmoneta's JSON response unchanged."
        ),
    )
    builder.register(
        Capability.PROMPT,
        "get_backup_info",
        InfoRequest,
        backup_info_prompt,
        description="Inspect one backup and summarize its state.",
    )
    builder.register(
        Capability.PROMPT,
        "list_backups",
        ListBackupsRequest,
        list_backups_prompt,
        description="Review the backups of a server.",
    )
    return builder.build()
