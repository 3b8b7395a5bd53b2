"""
tekron.config - YAML Configuration Loader
==========================================

Reads ``config.yaml`` for **infrastructure and identity** settings
(event identity, venue directions, push gateway, token lifetime, logging).
Secrets such as ``DATABASE_URL`` and ``JWT_SECRET`` stay in the environment
(``.env``) and are never read from this file.

Usage::

    from tekron.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.event_name)        # "Tekron 2025"
    print(cfg.push_timeout_seconds)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_PUSH_GATEWAY_URL = "https://exp.host/--/api/v2/push/send"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TekronConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    event_name: str

    # Venue (shown to unapproved participants in map-only mode)
    venue_name: str
    venue_instructions: str
    map_embed_url: str

    # Auth
    token_ttl_hours: int = 12

    # Push gateway
    push_gateway_url: str = DEFAULT_PUSH_GATEWAY_URL
    push_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TekronConfig:
    """Read *path* and return a :class:`TekronConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example -> config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    venue = raw.get("venue") or {}
    push = raw.get("push") or {}

    return TekronConfig(
        event_name=raw["event_name"],
        venue_name=venue.get("name", ""),
        venue_instructions=venue.get("instructions", ""),
        map_embed_url=venue.get("map_embed_url", ""),
        token_ttl_hours=int(raw.get("token_ttl_hours", 12)),
        push_gateway_url=push.get("gateway_url") or DEFAULT_PUSH_GATEWAY_URL,
        push_timeout_seconds=float(push.get("timeout_seconds", 10.0)),
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )
