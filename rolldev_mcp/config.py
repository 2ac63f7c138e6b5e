"""RollDev MCP configuration loader - reads rolldev-mcp.toml with ENV overrides."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any, cast

LOG_LEVELS = ("debug", "info", "warning", "error")

_TRUTHY = ("1", "true", "yes")


@dataclass
class ServerConfig:
    """Server process settings."""

    log_level: str = "info"

    def validate(self) -> None:
        if self.log_level.lower() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")


@dataclass
class RollConfig:
    """External `roll` binary and per-family timeouts (seconds)."""

    binary: str = "roll"
    timeout: int = 300
    dependency_timeout: int = 600
    init_timeout: int = 900
    kill_grace: float = 5.0
    default_magento_version: str = "2.4.x"

    def validate(self) -> None:
        if not self.binary or not self.binary.strip():
            raise ValueError("roll.binary must not be empty")
        for name in ("timeout", "dependency_timeout", "init_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.kill_grace < 0:
            raise ValueError("kill_grace must not be negative")

    def timeout_for(self, family: str) -> int:
        """Timeout for a command family: general, dependency or init."""
        if family == "dependency":
            return self.dependency_timeout
        if family == "init":
            return self.init_timeout
        return self.timeout


@dataclass
class OutputConfig:
    """Output redirection to log files."""

    log_dir_name: str = "rolldev-mcp-logs"
    preview_chars: int = 500
    output_to_file: bool = False

    def validate(self) -> None:
        if self.preview_chars <= 0:
            raise ValueError("preview_chars must be positive")
        if not self.log_dir_name or "/" in self.log_dir_name:
            raise ValueError(f"Invalid log_dir_name: {self.log_dir_name!r}")


@dataclass
class ObservabilityConfig:
    """Structured logging settings."""

    enabled: bool = False
    log_format: str = "json"  # "json" | "text"
    log_level: str = "info"
    include_correlation_id: bool = True

    def validate(self) -> None:
        if self.log_format not in ("json", "text"):
            raise ValueError(f"Invalid log_format: {self.log_format}")
        if self.log_level.lower() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")


@dataclass
class RollDevMcpConfig:
    """Root configuration."""

    enabled: bool = True
    server: ServerConfig = field(default_factory=ServerConfig)
    roll: RollConfig = field(default_factory=RollConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def validate(self) -> None:
        self.server.validate()
        self.roll.validate()
        self.output.validate()
        self.observability.validate()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in _TRUTHY


def _apply_env_overrides(cfg: RollDevMcpConfig) -> RollDevMcpConfig:
    """Apply environment variable overrides. ENV beats TOML."""
    if os.getenv("ROLLDEV_MCP_ENABLED"):
        cfg.enabled = _env_flag("ROLLDEV_MCP_ENABLED")

    if os.getenv("ROLLDEV_MCP_LOG_LEVEL"):
        cfg.server.log_level = os.getenv("ROLLDEV_MCP_LOG_LEVEL", cfg.server.log_level)

    if os.getenv("ROLLDEV_BINARY"):
        cfg.roll.binary = os.getenv("ROLLDEV_BINARY", cfg.roll.binary)

    if os.getenv("ROLLDEV_MCP_TIMEOUT"):
        try:
            cfg.roll.timeout = int(os.getenv("ROLLDEV_MCP_TIMEOUT", ""))
        except ValueError:
            raise ValueError("ROLLDEV_MCP_TIMEOUT must be an integer") from None

    if os.getenv("ROLLDEV_MCP_OUTPUT_TO_FILE"):
        cfg.output.output_to_file = _env_flag("ROLLDEV_MCP_OUTPUT_TO_FILE")

    if os.getenv("ROLLDEV_MCP_OBS_ENABLED"):
        cfg.observability.enabled = _env_flag("ROLLDEV_MCP_OBS_ENABLED")
    if os.getenv("ROLLDEV_MCP_OBS_LOG_FORMAT"):
        cfg.observability.log_format = os.getenv(
            "ROLLDEV_MCP_OBS_LOG_FORMAT", cfg.observability.log_format
        )

    return cfg


def _apply_section(target: Any, data: dict[str, Any], section: str) -> None:
    """Copy known keys from a TOML table onto a config dataclass."""
    for key, value in data.items():
        if not hasattr(target, key) or isinstance(value, dict):
            continue
        expected = type(getattr(target, key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        # bool is an int subclass; reject it for numeric fields
        if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
            raise ValueError(
                f"{section}.{key} must be {expected.__name__}, got {type(value).__name__}"
            )
        setattr(target, key, value)


def load_config(config_path: str | Path | None = None) -> RollDevMcpConfig:
    """
    Load config from rolldev-mcp.toml with ENV overrides.

    Precedence: ENV → TOML → defaults

    Args:
        config_path: Path to rolldev-mcp.toml. If None, searches:
            1. ROLLDEV_MCP_CONFIG env var
            2. ./rolldev-mcp.toml

    Returns:
        RollDevMcpConfig with merged settings.
    """
    if config_path is None:
        if os.getenv("ROLLDEV_MCP_CONFIG"):
            config_path = Path(cast(str, os.getenv("ROLLDEV_MCP_CONFIG")))
        else:
            config_path = Path("rolldev-mcp.toml")
    else:
        config_path = Path(config_path)

    cfg = RollDevMcpConfig()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        section = data.get("rolldev_mcp", {})
        cfg.enabled = section.get("enabled", cfg.enabled)
        _apply_section(cfg.server, section.get("server", {}), "server")
        _apply_section(cfg.roll, section.get("roll", {}), "roll")
        _apply_section(cfg.output, section.get("output", {}), "output")
        _apply_section(cfg.observability, section.get("observability", {}), "observability")

    cfg = _apply_env_overrides(cfg)
    cfg.validate()

    return cfg
