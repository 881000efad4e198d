"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from swaprpc.config.schema import Config
from swaprpc.utils.helpers import ensure_dir


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".swaprpc" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            data = _migrate_config(data)
            return Config(**convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to regenerate defaults."
            ) from e

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    ensure_dir(path.parent)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def _migrate_config(data: dict) -> dict:
    """Migrate flat legacy keys into the ``messenger`` section."""
    messenger = data.setdefault("messenger", {})
    if not isinstance(messenger, dict):
        return data
    # serverUrl → messenger.serverHost
    server_url = data.pop("serverUrl", None)
    if isinstance(server_url, str) and server_url.strip() and "serverHost" not in messenger:
        host = server_url.strip()
        for prefix in ("wss:", "ws:"):
            if host.startswith(prefix) and not host.startswith(prefix + "//"):
                host = host[len(prefix):]
        host = host.strip("/")
        if host.endswith("websocket"):
            host = host[: -len("websocket")].rstrip("/")
        messenger["serverHost"] = host
    # indexerAddress at the root → messenger.indexerAddress
    indexer = data.pop("indexerAddress", None)
    if isinstance(indexer, str) and indexer.strip() and "indexerAddress" not in messenger:
        messenger["indexerAddress"] = indexer.strip()
    # timeout in milliseconds → messenger.callTimeout in seconds
    timeout_ms = messenger.pop("timeoutMs", None)
    if isinstance(timeout_ms, (int, float)) and "callTimeout" not in messenger:
        messenger["callTimeout"] = float(timeout_ms) / 1000.0
    return data


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
