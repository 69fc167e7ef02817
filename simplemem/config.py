"""
Server Configuration

Configuration dataclasses for the store, the activity log and the MCP
transport.  load_config() reads a JSON file with silent fallback to
compiled defaults; apply_env() overlays the SIMPLE_MEMORY_* / MCP_USE_*
environment variables.

Precedence (invariant):
    CLI --flag  >  environment variable  >  config file  >  compiled default
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from simplemem.activity import DEFAULT_BACKUP_COUNT, DEFAULT_LOG_PATH, DEFAULT_MAX_BYTES

TransportMode = Literal["stdio", "sse", "streamable-http"]
VALID_TRANSPORTS = {"stdio", "sse", "streamable-http"}

DEFAULT_PORT = 3002
TRUE_STRING = "true"


def default_db_path() -> str:
    """$HOME/simple_memories.db"""
    return str(Path.home() / "simple_memories.db")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(ValueError):
    """Raised when config values are out of valid range."""

    pass


def _check_range(
    errors: List[str], name: str, value, lo, hi, typ=None,
) -> None:
    """Append an error message if value is out of [lo, hi] or wrong type."""
    if typ is not None and not isinstance(value, typ):
        errors.append(f"{name}: expected {typ.__name__}, got {type(value).__name__}")
        return
    if value < lo or value > hi:
        errors.append(f"{name}: {value} not in [{lo}, {hi}]")


@dataclass
class StoreConfig:
    """SQLite store configuration."""
    db_path: str = field(default_factory=default_db_path)
    wal_mode: bool = True

    def validate(self) -> List[str]:
        """Return list of validation error messages (empty = valid)."""
        if not self.db_path:
            return ["store.db_path: cannot be empty"]
        return []


@dataclass
class ActivityConfig:
    """Activity log (rotating file) configuration."""
    enabled: bool = True
    path: str = DEFAULT_LOG_PATH
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = DEFAULT_BACKUP_COUNT

    def validate(self) -> List[str]:
        """Return list of validation error messages (empty = valid)."""
        errors: List[str] = []
        _check_range(errors, "activity.max_bytes",
                     self.max_bytes, 1024, 1 << 31, int)
        _check_range(errors, "activity.backup_count",
                     self.backup_count, 0, 100, int)
        return errors


@dataclass
class TransportConfig:
    """MCP transport selection."""
    mode: TransportMode = "stdio"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    def validate(self) -> List[str]:
        """Return list of validation error messages (empty = valid)."""
        errors: List[str] = []
        if self.mode not in VALID_TRANSPORTS:
            errors.append(
                f"transport.mode: {self.mode!r} not in {sorted(VALID_TRANSPORTS)}"
            )
        _check_range(errors, "transport.port", self.port, 1, 65535, int)
        return errors


@dataclass
class ServerConfig:
    """Top-level simplemem configuration."""
    store: StoreConfig = field(default_factory=StoreConfig)
    activity: ActivityConfig = field(default_factory=ActivityConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> ServerConfig:
        """Build config from a nested dict (e.g. JSON)."""
        kwargs: Dict[str, Any] = {}
        if "store" in d:
            kwargs["store"] = StoreConfig(**d["store"])
        if "activity" in d:
            kwargs["activity"] = ActivityConfig(**d["activity"])
        if "transport" in d:
            kwargs["transport"] = TransportConfig(**d["transport"])
        return cls(**kwargs)

    def validate(self) -> List[str]:
        """Validate all config sections. Returns list of error messages."""
        errors: List[str] = []
        errors.extend(self.store.validate())
        errors.extend(self.activity.validate())
        errors.extend(self.transport.validate())
        return errors


# ---------------------------------------------------------------------------
# Environment overlay
# ---------------------------------------------------------------------------


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() == TRUE_STRING


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Read an integer from environment, with fallback."""
    val = env.get(name)
    if val:
        try:
            return int(val)
        except ValueError:
            pass
    return default


def resolve_transport(env: Mapping[str, str]) -> Optional[TransportMode]:
    """MCP_USE_SSE wins over MCP_USE_HTTP; None if neither is set."""
    if _env_flag(env, "MCP_USE_SSE"):
        return "sse"
    if _env_flag(env, "MCP_USE_HTTP"):
        return "streamable-http"
    return None


def apply_env(
    cfg: ServerConfig, environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """Overlay environment variables onto cfg (in place).  Returns cfg."""
    env = os.environ if environ is None else environ
    db_path = env.get("SIMPLE_MEMORY_DB_PATH")
    if db_path:
        cfg.store.db_path = db_path
    if _env_flag(env, "DISABLE_SIMPLE_MEMORY_LOGGING"):
        cfg.activity.enabled = False
    log_path = env.get("SIMPLE_MEMORY_LOG_PATH")
    if log_path:
        cfg.activity.path = log_path
    mode = resolve_transport(env)
    if mode is not None:
        cfg.transport.mode = mode
    cfg.transport.port = _env_int(env, "PORT", cfg.transport.port)
    return cfg


def load_config(
    path: Optional[str] = None, *, strict: bool = False,
) -> ServerConfig:
    """Load config from a JSON file. Returns defaults if file missing/invalid.

    Args:
        path: Path to config.json. If None, returns compiled defaults.
        strict: If True, raise ValidationError on invalid config values.

    Returns:
        ServerConfig with values from file or defaults.

    Raises:
        ValidationError: If strict=True and config values are out of range.
    """
    if path is None:
        cfg = ServerConfig()
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            cfg = ServerConfig.from_dict(data)
        except (FileNotFoundError, json.JSONDecodeError, TypeError, KeyError):
            cfg = ServerConfig()

    if strict:
        errors = cfg.validate()
        if errors:
            raise ValidationError(
                f"Config validation failed: {'; '.join(errors)}"
            )

    return cfg
