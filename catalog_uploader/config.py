"""
Run configuration.

Values come from a YAML file, then environment variables, then CLI flags,
each layer overriding the previous one.

Example file::

    accepted_users:
      - Alice
      - Bob
    number_of_threads: 4
    snapshot_path: /var/lib/catalog-uploader/tree.json
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .services.integrity import DEFAULT_INTEGRITY_COMMAND

DEFAULT_INDEX_ENDPOINT = "/media/fingerprints"
DEFAULT_SNAPSHOT_FILE = Path("tree.json")

_ENV_FIELDS = {
    "ROOT_FOLDER": "root",
    "API_URL": "api_url",
    "DATASTORE_API_URL": "datastore_api_url",
}


@dataclass(frozen=True)
class UploaderConfig:
    """Immutable configuration for an upload run."""
    root: Optional[Path] = None
    accepted_users: Tuple[str, ...] = ()
    concurrency: int = 1
    api_url: Optional[str] = None
    datastore_api_url: Optional[str] = None
    index_endpoint: str = DEFAULT_INDEX_ENDPOINT
    snapshot_path: Path = DEFAULT_SNAPSHOT_FILE
    integrity_command: Tuple[str, ...] = field(default=DEFAULT_INTEGRITY_COMMAND)
    verify_tls: bool = True
    request_timeout: float = 600.0

    def with_overrides(self, **overrides: Any) -> "UploaderConfig":
        """Copy with every non-None override applied, then validated."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return _normalize(replace(self, **values))

    def validate_for_run(self, use_index: bool = True) -> None:
        """
        Check everything a run needs is present.

        Raises:
            ConfigurationError: naming the first missing setting
        """
        if self.root is None:
            raise ConfigurationError("root folder is not set (ROOT_FOLDER or --root)")
        if not self.root.is_dir() or not os.access(self.root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"root folder is not a readable directory: {self.root}")
        if not self.api_url:
            raise ConfigurationError("upload endpoint is not set (API_URL)")
        if use_index and not self.datastore_api_url:
            raise ConfigurationError("DATASTORE_API_URL is not set (use --no-index to run without it)")


def _normalize(config: UploaderConfig) -> UploaderConfig:
    if isinstance(config.concurrency, bool) or not isinstance(config.concurrency, int):
        raise ConfigurationError(f"number_of_threads must be an integer, got {config.concurrency!r}")
    if config.concurrency < 1:
        raise ConfigurationError(f"number_of_threads must be at least 1, got {config.concurrency}")
    if not config.integrity_command:
        raise ConfigurationError("integrity_command must not be empty")
    if not isinstance(config.verify_tls, bool):
        raise ConfigurationError(f"verify_tls must be true or false, got {config.verify_tls!r}")
    timeout = config.request_timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(f"request_timeout must be a positive number, got {timeout!r}")

    root = Path(config.root).expanduser().resolve() if config.root is not None else None
    return replace(
        config,
        root=root,
        accepted_users=tuple(str(user) for user in config.accepted_users),
        snapshot_path=Path(config.snapshot_path).expanduser(),
        integrity_command=tuple(str(part) for part in config.integrity_command),
        request_timeout=float(config.request_timeout),
    )


def config_from_mapping(data: Mapping[str, Any]) -> UploaderConfig:
    """Build a config from parsed YAML, accepting the historical key names."""
    known = {
        "root_folder": "root",
        "root": "root",
        "accepted_users": "accepted_users",
        "number_of_threads": "concurrency",
        "concurrency": "concurrency",
        "api_url": "api_url",
        "datastore_api_url": "datastore_api_url",
        "index_endpoint": "index_endpoint",
        "snapshot_path": "snapshot_path",
        "integrity_command": "integrity_command",
        "verify_tls": "verify_tls",
        "request_timeout": "request_timeout",
    }
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigurationError(f"unknown config key(s): {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if value is not None:
            values[known[key]] = value

    users = values.get("accepted_users", ())
    if isinstance(users, str) or not isinstance(users, (list, tuple)):
        raise ConfigurationError("accepted_users must be a list of names")
    command = values.get("integrity_command")
    if isinstance(command, str):
        values["integrity_command"] = tuple(command.split())
    elif command is not None:
        values["integrity_command"] = tuple(command)
    values["accepted_users"] = tuple(users)

    try:
        return _normalize(UploaderConfig(**values))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def load_config(path: Optional[Path], environ: Optional[Mapping[str, str]] = None) -> UploaderConfig:
    """
    Load configuration from a YAML file and the environment.

    Args:
        path: YAML file (None to use defaults and environment only)
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigurationError: if the file is missing, unreadable or invalid
    """
    environ = os.environ if environ is None else environ
    config = UploaderConfig()

    if path is not None:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"could not read config file {path}: {exc}") from exc
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {path} must contain a mapping")
        config = config_from_mapping(data)

    env_values = {
        attr: environ[key] for key, attr in _ENV_FIELDS.items() if environ.get(key)
    }
    return config.with_overrides(**env_values)
