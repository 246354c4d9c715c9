"""Store and provider configuration.

Settings may be given with snake_case names or with the camelCase names
used by existing session-state provider configurations (``useUDF``,
``operationTimeout`` ...).  A string value of the form ``$NAME`` or
``${NAME}`` is replaced by the environment variable ``NAME`` when it is
defined, so secrets can stay out of configuration files.

Classes
-------
- StoreConfig  — validated configuration model

Functions
---------
- load_config  — read a ``StoreConfig`` from a YAML file
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

_ENV_REFERENCE = re.compile(r"^\$\{?(?P<name>[A-Za-z_][A-Za-z0-9_]*)\}?$")


class StoreConfig(BaseModel):
    """Configuration for the store client and the lock engine.

    Parameters
    ----------
    host:
        Seed nodes, ``"host1:port1[,host2:port2]..."``.
    user, password:
        Credentials for secured clusters.
    namespace, set_name:
        Where session records live.
    application_name:
        Key prefix isolating this application's sessions.
    connection_timeout:
        Initial connection timeout (ms).
    operation_timeout:
        Default read/write timeout (ms).
    max_retries, sleep_between_retries:
        Retry policy for reads and writes (count, ms).
    max_conns_per_node, max_socket_idle, tend_interval:
        Connection pool tuning (count, seconds, ms).
    request_timeout:
        Timeout applied to session reads (seconds).
    session_timeout:
        Default session TTL (seconds).
    use_procedures:
        Select the server-procedure strategy instead of the direct one.
    """

    host: str = "127.0.0.1:3000"
    user: str | None = None
    password: str | None = None
    namespace: str = "test"
    set_name: str = Field(default="test", alias="set")
    application_name: str = Field(default="", alias="applicationName")
    connection_timeout: int = Field(default=1000, ge=0, alias="connectionTimeout")
    operation_timeout: int = Field(default=100, ge=0, alias="operationTimeout")
    max_retries: int = Field(default=1, ge=0, alias="maxRetries")
    sleep_between_retries: int = Field(default=10, ge=0, alias="sleepBetweenRetries")
    max_conns_per_node: int = Field(default=300, ge=1, alias="maxConnsPerNode")
    max_socket_idle: int = Field(default=55, ge=0, alias="maxSocketIdle")
    tend_interval: int = Field(default=1000, ge=1, alias="tendInterval")
    request_timeout: int = Field(default=110, ge=0, alias="requestTimeout")
    session_timeout: int = Field(default=1200, ge=1, alias="sessionTimeout")
    use_procedures: bool = Field(default=False, alias="useUDF")

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @field_validator("*", mode="before")
    @classmethod
    def _resolve_env_reference(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _ENV_REFERENCE.match(value.strip())
            if match and match.group("name") in os.environ:
                return os.environ[match.group("name")]
        return value

    @field_validator("host")
    @classmethod
    def _validate_host(cls, value: str) -> str:
        _parse_hosts(value)
        return value

    def host_list(self) -> list[tuple[str, int]]:
        """Return the seed nodes as ``(host, port)`` pairs."""
        return _parse_hosts(self.host)

    @property
    def request_timeout_ms(self) -> int:
        """``request_timeout`` converted to the milliseconds the store client expects."""
        return self.request_timeout * 1000

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> StoreConfig:
        """Build a config from a flat mapping of settings.

        Unknown keys are ignored.  Empty strings are treated as unset.
        """
        return cls.model_validate({k: v for k, v in values.items() if v != ""})


def _parse_hosts(value: str) -> list[tuple[str, int]]:
    hosts: list[tuple[str, int]] = []
    for seed in value.split(","):
        host, sep, port = seed.strip().rpartition(":")
        if not sep or not host.strip() or not port.strip().isdigit():
            raise ValueError(f"Invalid host {seed.strip()!r}; expected 'host:port'.")
        hosts.append((host.strip(), int(port)))
    return hosts


def load_config(path: str | Path) -> StoreConfig:
    """Read a ``StoreConfig`` from a YAML file.

    The file holds a mapping of settings, either at the top level or
    under a ``session_state_lock`` key.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If the document is not a mapping or fails validation.
    """
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {str(path)!r} must contain a mapping.")
    section = data.get("session_state_lock", data)
    if not isinstance(section, dict):
        raise ValueError("The 'session_state_lock' section must be a mapping.")
    return StoreConfig.from_mapping(section)
