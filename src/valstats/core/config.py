"""
Configuration Management for valstats

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables

Configuration precedence (highest to lowest):
1. Environment variables (VALSTATS_*)
2. Configuration file
3. Default values
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from valstats.core.constants import REGULATION_ROUNDS

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class StatsConfig:
    """Configuration for match statistics calculation."""

    # Rounds before overtime; halftime falls at half of this
    regulation_rounds: int = REGULATION_ROUNDS


@dataclass
class StorageConfig:
    """Configuration for the profile/match store."""

    # SQLite database file (None -> ~/.valstats/valstats.db)
    db_path: str | None = None

    # Optimistic-concurrency retries for a single profile update
    max_profile_retries: int = 3


@dataclass
class PipelineConfig:
    """Configuration for match ingestion."""

    # Worker threads used to apply one match's players
    max_workers: int = 4

    # Season used by the CLI when --season is not given
    current_season: str | None = None


@dataclass
class ExportConfig:
    """Configuration for data export."""

    default_format: str = "json"
    json_indent: int = 2
    csv_delimiter: str = ","


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class ValstatsConfig:
    """Main configuration container."""

    stats: StatsConfig = field(default_factory=StatsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "valstats.yaml")
    paths.append(Path.cwd() / "valstats.toml")
    paths.append(Path.cwd() / "valstats.json")

    # User home directory
    home = Path.home()
    paths.append(home / ".config" / "valstats" / "config.yaml")
    paths.append(home / ".config" / "valstats" / "config.toml")

    # XDG config directory
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "valstats" / "config.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    import yaml

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


ENV_MAPPINGS = {
    "VALSTATS_LOG_LEVEL": ("logging", "level"),
    "VALSTATS_LOG_FILE": ("logging", "file"),
    "VALSTATS_DB_PATH": ("storage", "db_path"),
    "VALSTATS_MAX_PROFILE_RETRIES": ("storage", "max_profile_retries"),
    "VALSTATS_MAX_WORKERS": ("pipeline", "max_workers"),
    "VALSTATS_CURRENT_SEASON": ("pipeline", "current_season"),
    "VALSTATS_REGULATION_ROUNDS": ("stats", "regulation_rounds"),
    "VALSTATS_EXPORT_FORMAT": ("export", "default_format"),
}

# Values that must stay strings even when they look numeric
_STRING_KEYS = {("pipeline", "current_season"), ("storage", "db_path"), ("logging", "file")}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    for env_var, (section, key) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if section not in config:
            config[section] = {}

        # Type conversion
        if (section, key) in _STRING_KEYS:
            pass
        elif value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)

        config[section][key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> ValstatsConfig:
    """Convert a dictionary to ValstatsConfig, ignoring unknown keys."""
    config = ValstatsConfig()

    for section_name in ("stats", "storage", "pipeline", "export", "logging"):
        section = getattr(config, section_name)
        for key, value in (data.get(section_name) or {}).items():
            if hasattr(section, key):
                setattr(section, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {section_name}.{key}")

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> ValstatsConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged ValstatsConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: ValstatsConfig) -> dict[str, Any]:
    """Convert ValstatsConfig to a dictionary."""
    return asdict(config)


def save_config(config: ValstatsConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (.yaml, .yml or .json)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        import yaml

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unknown config format: {suffix}")

    logger.info(f"Saved config to: {path}")


# ============================================================================
# Logging Setup
# ============================================================================


def configure_logging(config: LoggingConfig) -> None:
    """Install console (and optional rotating file) handlers on the root logger."""
    root = logging.getLogger()
    root.setLevel(config.level.upper())
    formatter = logging.Formatter(config.format)

    for handler in list(root.handlers):
        if getattr(handler, "_valstats", False):
            root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console._valstats = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        file_handler._valstats = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: ValstatsConfig | None = None


def get_config() -> ValstatsConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: ValstatsConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None


# ============================================================================
# Configuration Templates
# ============================================================================

DEFAULT_CONFIG_YAML = """# valstats configuration

# Match statistics
stats:
  regulation_rounds: 24

# Profile/match store
storage:
  # db_path: /path/to/valstats.db
  max_profile_retries: 3

# Match ingestion
pipeline:
  max_workers: 4
  # current_season: e9a1

# Export settings
export:
  default_format: json
  json_indent: 2
  csv_delimiter: ","

# Logging settings
logging:
  level: INFO
  # file: /path/to/valstats.log
"""


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML)
    else:
        save_config(ValstatsConfig(), path)

    logger.info(f"Generated default config at: {path}")
