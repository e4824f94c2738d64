"""Typed tool requests and their parameter schemas.

Each request is a frozen dataclass declaring its fields with ArgumentField.
The same declaration produces the JSON schema advertised to MCP clients
and drives decode(), which turns a raw argument mapping into a request
or raises InvalidParameters listing every violated rule.

Unknown argument names are ignored. A null value for an optional field
counts as absent.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pgmoneta_mcp.constant import SortOrder
from pgmoneta_mcp.errors import InvalidParameters


@dataclass(frozen=True)
class ArgumentField:
    """Declaration of a single string request field."""
    name: str
    description: str
    required: bool = True
    enum: Optional[Tuple[str, ...]] = None

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {
            "type": "string",
            "description": self.description,
        }
        if self.required:
            schema["minLength"] = 1
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


USERNAME_FIELD = ArgumentField(
    name="username",
    description="pgmoneta user the request is made on behalf of",
)
SERVER_FIELD = ArgumentField(
    name="server",
    description="Name of the PostgreSQL server as configured in pgmoneta",
)


@dataclass(frozen=True)
class InfoRequest:
    """Request for the details of one backup."""
    username: str
    server: str
    backup_id: str

    FIELDS: ClassVar[Tuple[ArgumentField, ...]] = (
        USERNAME_FIELD,
        SERVER_FIELD,
        ArgumentField(
            name="backup_id",
            description="Backup identifier, e.g. 20260101120000, or 'oldest'/'newest'",
        ),
    )


@dataclass(frozen=True)
class ListBackupsRequest:
    """Request for the backups of one server."""
    username: str
    server: str
    sort: Optional[str] = None

    FIELDS: ClassVar[Tuple[ArgumentField, ...]] = (
        USERNAME_FIELD,
        SERVER_FIELD,
        ArgumentField(
            name="sort",
            description="Sort order of the listing, 'asc' (default) or 'desc'",
            required=False,
            enum=tuple(SortOrder.tokens()),
        ),
    )


R = TypeVar("R")


def input_schema(request_type: Type[Any]) -> Dict[str, Any]:
    """Build the JSON schema object for a request type."""
    return {
        "type": "object",
        "properties": {arg.name: arg.to_schema() for arg in request_type.FIELDS},
        "required": [arg.name for arg in request_type.FIELDS if arg.required],
    }


def _check_field(arg: ArgumentField, params: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Return (value, violation) for one field; at most one is set."""
    if arg.name not in params or params[arg.name] is None:
        if arg.required:
            return None, f"missing required field '{arg.name}'"
        return None, None

    value = params[arg.name]
    if not isinstance(value, str):
        return None, f"field '{arg.name}' must be a string, got {type(value).__name__}"
    if arg.required and not value:
        return None, f"field '{arg.name}' must not be empty"
    return value, None


def decode(name: str, request_type: Type[R], params: Optional[Mapping[str, Any]]) -> R:
    """Decode raw call arguments into a request record.

    Enum membership is not checked here; handlers decide how to treat
    unknown tokens.

    Args:
        name: Tool or prompt name, used in the error message
        request_type: Request dataclass with a FIELDS declaration
        params: Raw argument mapping from the caller (None means no arguments)

    Returns:
        An instance of request_type

    Raises:
        InvalidParameters: If any field rule is violated
    """
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise InvalidParameters(
            name, [f"arguments must be an object, got {type(params).__name__}"]
        )

    values: Dict[str, str] = {}
    violations: List[str] = []
    for arg in request_type.FIELDS:
        value, violation = _check_field(arg, params)
        if violation:
            violations.append(violation)
        elif value is not None:
            values[arg.name] = value

    if violations:
        raise InvalidParameters(name, violations)

    return request_type(**values)
