"""Parameter validation and configuration loading for rcmd."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

DEFAULT_TIMEOUT = 30
HOST_DELIMITER = ","

# Reads key material from a path, raising OSError when it can't
KeyReader = Callable[[str], bytes]


class ParamErrorKind(Enum):
    """Which required parameter was missing."""

    MISSING_USER = "user"
    MISSING_COMMAND = "command"
    MISSING_KEY = "key path"


class ParamError(Exception):
    """A required run parameter is missing or unusable."""

    def __init__(self, kind: ParamErrorKind):
        super().__init__(kind)
        self.kind = kind

    def __str__(self) -> str:
        return f"Argument error: {self.kind.value}"


class ConfigError(Exception):
    """The YAML defaults file could not be used."""


@dataclass(frozen=True)
class Params:
    """Validated run parameters, shared read-only by every session."""

    hosts: list[str]
    key: bytes
    user: str
    command: str
    timeout: int = DEFAULT_TIMEOUT
    show_host: bool = True


@dataclass
class Defaults:
    """Raw values from the YAML defaults file, before validation."""

    hosts: str | None = None
    key: str | None = None
    user: str | None = None
    command: str | None = None
    timeout: int | None = None
    show_ip: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def read_key_file(path: str) -> bytes:
    """Read private key bytes from disk."""
    return Path(path).expanduser().read_bytes()


def parse_params(
    hosts: str | None,
    key_path: str | None,
    user: str | None,
    command: str | None,
    timeout: int | None = None,
    show_host: bool = True,
    read_key: KeyReader = read_key_file,
) -> Params:
    """Validate raw inputs into a Params record.

    Checks run in a fixed order and stop at the first failure: user, then
    command, then key readability. The key reader is only called once user
    and command are known to be present.

    Raises:
        ParamError: If a required value is missing or the key can't be read
    """
    if not user:
        raise ParamError(ParamErrorKind.MISSING_USER)

    if not command:
        raise ParamError(ParamErrorKind.MISSING_COMMAND)

    try:
        key = read_key(key_path or "")
    except OSError as e:
        raise ParamError(ParamErrorKind.MISSING_KEY) from e

    return Params(
        hosts=(hosts or "").split(HOST_DELIMITER),
        key=key,
        user=user,
        command=command,
        timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
        show_host=show_host,
    )


def load_config(config_path: str | Path) -> Defaults:
    """Load run defaults from a YAML file."""
    config_path = Path(config_path).expanduser()

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read {config_path}: {e}") from e

    return _parse_defaults(raw or {})


def _parse_defaults(raw: Any) -> Defaults:
    """Parse raw YAML data into Defaults."""
    if not isinstance(raw, dict):
        raise ConfigError("Top level of the config file must be a mapping")

    known = {"hosts", "key", "user", "command", "timeout", "show_ip"}

    # hosts may be written as a YAML list or a comma-separated string
    hosts = raw.get("hosts")
    if isinstance(hosts, list):
        hosts = HOST_DELIMITER.join(str(h) for h in hosts)

    values = {
        "hosts": hosts,
        "key": raw.get("key"),
        "user": raw.get("user"),
        "command": raw.get("command"),
    }
    for name, value in values.items():
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"{name} must be a string, got {value!r}")

    # bool is an int subclass, so reject it explicitly
    timeout = raw.get("timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int)):
        raise ConfigError(f"timeout must be an integer, got {timeout!r}")

    show_ip = raw.get("show_ip")
    if show_ip is not None and not isinstance(show_ip, bool):
        raise ConfigError(f"show_ip must be true or false, got {show_ip!r}")

    return Defaults(
        **values,
        timeout=timeout,
        show_ip=show_ip,
        extra={k: v for k, v in raw.items() if k not in known},
    )
