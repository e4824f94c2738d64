"""Prompt templates for the backup tools.

Prompts render instruction text for the agent; they never contact
pgmoneta. Each prompt takes the same arguments as the tool it describes.
"""

from pgmoneta_mcp.constant import SortOrder
from pgmoneta_mcp.errors import InvalidParameters, ToolResult
from pgmoneta_mcp.schema import InfoRequest, ListBackupsRequest


BACKUP_INFO_TEMPLATE = (
    "Use the get_backup_info tool with username \"{username}\", server "
    "\"{server}\" and backup_id \"{backup_id}\" to fetch the details of that "
    "backup from pgmoneta.\n"
    "Then summarize the backup: its label, whether it is valid, its size on "
    "disk, the WAL range it covers and when it was taken. Mention anything "
    "that looks wrong."
)

LIST_BACKUPS_TEMPLATE = (
    "Use the list_backups tool with username \"{username}\", server "
    "\"{server}\" and sort \"{sort}\" to fetch the backups known to pgmoneta.\n"
    "Then present them as a table in {order} order with one row per backup "
    "showing its identifier, whether it is valid and its size, and point out "
    "invalid or unusually large backups."
)


async def backup_info_prompt(request: InfoRequest) -> ToolResult:
    """Render the prompt for inspecting a single backup."""
    return ToolResult.success(BACKUP_INFO_TEMPLATE.format(
        username=request.username,
        server=request.server,
        backup_id=request.backup_id,
    ))


async def list_backups_prompt(request: ListBackupsRequest) -> ToolResult:
    """Render the prompt for reviewing a server's backups."""
    try:
        sort = SortOrder.parse(request.sort)
    except ValueError as e:
        return ToolResult.failure(InvalidParameters("list_backups", [str(e)]))

    return ToolResult.success(LIST_BACKUPS_TEMPLATE.format(
        username=request.username,
        server=request.server,
        sort=sort.value,
        order="ascending" if sort is SortOrder.ASC else "descending",
    ))
