"""Error taxonomy and call results for the tool router.

Every tool or prompt call ends in a ToolResult holding either the
backend's text payload or one of three ToolError kinds:

- ToolNotFound: the name is not registered
- InvalidParameters: the arguments do not match the request schema
- BackendFailure: the pgmoneta client reported an error

Each kind maps to a JSON-RPC error code from mcp.types. The message is
the only other information exposed to callers.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND


class RegistryError(Exception):
    """Raised when the tool registry is misconfigured at startup."""
    pass


class ToolError(Exception):
    """Base class for errors reported to the caller of a tool or prompt."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_error_data(self) -> ErrorData:
        """Convert to the MCP error object sent to the caller."""
        return ErrorData(code=self.code, message=self.message)


class ToolNotFound(ToolError):
    """Raised when a call names an unregistered tool or prompt."""

    code = METHOD_NOT_FOUND

    def __init__(self, name: str, capability: str = "tool"):
        super().__init__(f"Unknown {capability}: {name}")
        self.name = name
        self.capability = capability


class InvalidParameters(ToolError):
    """Raised when caller arguments violate the request schema.

    Attributes:
        violations: One entry per violated field rule
    """

    code = INVALID_PARAMS

    def __init__(self, name: str, violations: Sequence[str]):
        self.name = name
        self.violations: List[str] = list(violations)
        super().__init__(
            f"Invalid parameters for '{name}': {'; '.join(self.violations)}"
        )


class BackendFailure(ToolError):
    """Raised when the pgmoneta client fails an operation.

    The message is the operation prefix followed by the client's error
    detail, e.g. "Failed to list backups: connection refused".
    """

    code = INTERNAL_ERROR

    def __init__(self, prefix: str, cause: Exception):
        super().__init__(f"{prefix}: {cause}")
        self.prefix = prefix
        self.cause = cause


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a single tool or prompt call.

    Exactly one of payload and error is set.
    """
    payload: Optional[str] = None
    error: Optional[ToolError] = None

    def __post_init__(self):
        if (self.payload is None) == (self.error is None):
            raise ValueError("ToolResult needs exactly one of payload or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: str) -> "ToolResult":
        return cls(payload=payload)

    @classmethod
    def failure(cls, error: ToolError) -> "ToolResult":
        return cls(error=error)
