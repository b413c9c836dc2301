"""RPC endpoint normalisation: defaults plus foundry `rpc_endpoints` aliases."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)

FALLBACK_RPC_URL = "http://localhost:8545"


def default_rpc_url() -> str:
    return os.environ.get("RPC_URL", "").strip() or FALLBACK_RPC_URL


def foundry_config_path() -> Path:
    override = os.environ.get("FOUNDRY_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".foundry" / "config.toml"


def _endpoint_tables(config: dict[str, Any]) -> list[dict[str, Any]]:
    tables: list[dict[str, Any]] = []
    top = config.get("rpc_endpoints")
    if isinstance(top, dict):
        tables.append(top)
    profile = config.get("profile", {})
    if isinstance(profile, dict):
        default = profile.get("default", {})
        if isinstance(default, dict) and isinstance(default.get("rpc_endpoints"), dict):
            tables.append(default["rpc_endpoints"])
    return tables


def load_rpc_aliases(config_path: Path) -> dict[str, str]:
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as handle:
            config = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as err:
        LOGGER.debug("could not read foundry config %s: %s", config_path, err)
        return {}
    aliases: dict[str, str] = {}
    for table in _endpoint_tables(config):
        for name, url in table.items():
            if isinstance(url, str) and name not in aliases:
                aliases[name] = url
    return aliases


def resolve_rpc_url(rpc_url: str | None, *, config_path: Path | None = None) -> str:
    """Map an empty value to the default and a named alias to its URL.

    Values that already look like URLs, and aliases that are not configured,
    are returned unchanged.
    """
    if not rpc_url or not rpc_url.strip():
        return default_rpc_url()
    value = rpc_url.strip()
    if value.startswith("http"):
        return value
    aliases = load_rpc_aliases(config_path or foundry_config_path())
    return aliases.get(value, value)
