"""Configuration management for pgmoneta-mcp.

Settings live in a TOML file (default ~/.config/pgmoneta-mcp/config.toml)
with three sections:

    [pgmoneta]   host, port (required), timeout_seconds
    [mcp]        name
    [logging]    level, log_file, error_log_file, log_max_size_mb, log_backup_count
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import tomllib


class ConfigurationError(Exception):
    """Raised when configuration file is missing or malformed."""
    pass


class ConfigNotFoundError(ConfigurationError):
    """Raised when the configuration file does not exist."""
    pass


class ValidationError(Exception):
    """Raised when configuration values have invalid types."""
    pass


DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SERVER_NAME = "pgmoneta-mcp"
DEFAULT_LOG_FILE = "~/.local/log/pgmoneta-mcp.log"
DEFAULT_ERROR_LOG_FILE = "~/.local/log/pgmoneta-mcp.err"

DEFAULT_CONFIG_PATH = Path.home() / ".config/pgmoneta-mcp/config.toml"

# Keys that must be present in [pgmoneta]
REQUIRED_KEYS = ["host", "port"]


@dataclass
class PgmonetaConfig:
    """Where the pgmoneta management endpoint listens."""
    host: str
    port: int
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass
class MCPConfig:
    name: str = DEFAULT_SERVER_NAME


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Path = field(default_factory=lambda: Path(DEFAULT_LOG_FILE).expanduser())
    error_log_file: Path = field(default_factory=lambda: Path(DEFAULT_ERROR_LOG_FILE).expanduser())
    log_max_size_mb: int = 10
    log_backup_count: int = 5

    @property
    def log_max_bytes(self) -> int:
        return self.log_max_size_mb * 1024 * 1024


@dataclass
class Configuration:
    pgmoneta: PgmonetaConfig
    mcp: MCPConfig = field(default_factory=MCPConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


ExpectedType = Union[type, Tuple[type, ...]]


def _type_name(expected: ExpectedType) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _validate_type(value: Any, expected: ExpectedType, key: str) -> None:
    """Raise ValidationError unless value is an instance of expected.

    TOML booleans are rejected for numeric keys even though bool is an int.
    """
    if isinstance(value, bool) and expected is not bool or not isinstance(value, expected):
        raise ValidationError(
            f"Key '{key}' has invalid type: expected {_type_name(expected)}, "
            f"got {type(value).__name__}"
        )


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    _validate_type(section, dict, name)
    return section


def _get(section: Dict[str, Any], prefix: str, key: str, expected: ExpectedType, default: Any) -> Any:
    value = section.get(key, default)
    _validate_type(value, expected, f"{prefix}.{key}")
    return value


def _parse_pgmoneta_config(data: Dict[str, Any]) -> PgmonetaConfig:
    if "pgmoneta" not in data:
        raise ConfigurationError("Missing required configuration section: '[pgmoneta]'")
    section = _section(data, "pgmoneta")

    for key in REQUIRED_KEYS:
        if key not in section:
            raise ConfigurationError(f"Missing required configuration key: 'pgmoneta.{key}'")

    port = _get(section, "pgmoneta", "port", int, None)
    if not 0 < port < 65536:
        raise ValidationError(f"Key 'pgmoneta.port' out of range: {port}")

    return PgmonetaConfig(
        host=_get(section, "pgmoneta", "host", str, None),
        port=port,
        timeout_seconds=float(
            _get(section, "pgmoneta", "timeout_seconds", (int, float), DEFAULT_TIMEOUT_SECONDS)
        ),
    )


def _parse_mcp_config(data: Dict[str, Any]) -> MCPConfig:
    section = _section(data, "mcp")
    return MCPConfig(name=_get(section, "mcp", "name", str, DEFAULT_SERVER_NAME))


def _parse_logging_config(data: Dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging")
    defaults = LoggingConfig()
    return LoggingConfig(
        level=_get(section, "logging", "level", str, defaults.level),
        log_file=Path(
            _get(section, "logging", "log_file", str, DEFAULT_LOG_FILE)
        ).expanduser(),
        error_log_file=Path(
            _get(section, "logging", "error_log_file", str, DEFAULT_ERROR_LOG_FILE)
        ).expanduser(),
        log_max_size_mb=_get(section, "logging", "log_max_size_mb", int, defaults.log_max_size_mb),
        log_backup_count=_get(section, "logging", "log_backup_count", int, defaults.log_backup_count),
    )


def parse_config_string(toml_content: str) -> Configuration:
    """
    Parse TOML text into a Configuration.

    Raises:
        ConfigurationError: If the TOML is malformed or a required key is missing
        ValidationError: If a value has the wrong type or is out of range
    """
    try:
        data = tomllib.loads(toml_content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML format: {e}")

    return Configuration(
        pgmoneta=_parse_pgmoneta_config(data),
        mcp=_parse_mcp_config(data),
        logging=_parse_logging_config(data),
    )


def parse_config(config_path: Optional[Path] = None) -> Configuration:
    """
    Read and parse the configuration file.

    Args:
        config_path: Path to config file. Defaults to DEFAULT_CONFIG_PATH

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigurationError: If the file cannot be read or a required key is missing
        ValidationError: If a value has the wrong type
    """
    config_path = config_path or DEFAULT_CONFIG_PATH

    try:
        content = config_path.read_text()
    except FileNotFoundError:
        raise ConfigNotFoundError(f"Configuration file not found: {config_path}")
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file {config_path}: {e}")

    return parse_config_string(content)


def _toml_string(s: str) -> str:
    escaped = s.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_config(config: Configuration) -> str:
    """Render a Configuration as TOML that parse_config_string reads back unchanged."""
    sections = {
        "pgmoneta": {
            "host": _toml_string(config.pgmoneta.host),
            "port": str(config.pgmoneta.port),
            "timeout_seconds": repr(float(config.pgmoneta.timeout_seconds)),
        },
        "mcp": {
            "name": _toml_string(config.mcp.name),
        },
        "logging": {
            "level": _toml_string(config.logging.level),
            "log_file": _toml_string(str(config.logging.log_file)),
            "error_log_file": _toml_string(str(config.logging.error_log_file)),
            "log_max_size_mb": str(config.logging.log_max_size_mb),
            "log_backup_count": str(config.logging.log_backup_count),
        },
    }

    blocks = []
    for name, values in sections.items():
        lines = [f"[{name}]"] + [f"{key} = {value}" for key, value in values.items()]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def create_default_config() -> str:
    """Default configuration written by `pgmoneta-mcp init`."""
    return f'''# pgmoneta-mcp configuration file

[pgmoneta]
# Host and port of the pgmoneta management endpoint
host = "localhost"
port = 5002
# Connect and response timeout for each request, in seconds
timeout_seconds = {DEFAULT_TIMEOUT_SECONDS}

[mcp]
# Server name announced to MCP clients
name = "{DEFAULT_SERVER_NAME}"

[logging]
# Log level: DEBUG, INFO, WARNING, ERROR
level = "INFO"
log_file = "{DEFAULT_LOG_FILE}"
error_log_file = "{DEFAULT_ERROR_LOG_FILE}"
# Rotate at this size, keeping this many compressed files
log_max_size_mb = 10
log_backup_count = 5
'''
