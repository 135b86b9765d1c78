"""
Configuration for near-duplicate detection runs.

Parameters are validated on construction so a bad banding fails at setup
instead of silently lowering recall. Configurations persist as YAML and can
be overridden from ``NEARDUP_*`` environment variables.
"""

import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from .errors import ConfigError
from .lsh.probability import rows_per_band, threshold


@dataclass
class DedupConfig:
    """Parameters for signature generation, banding and scoring."""

    # Signature / banding
    num_hashes: int = 240  # Signature length h
    bands: int = 80  # Band count b, must divide num_hashes
    seed: int = 3552  # Hash family seed

    # Execution
    batch_size: int = 1000  # Documents per independently built index
    max_workers: Optional[int] = None  # None = cpu count, 1 = inline
    use_processes: bool = False

    # Input policy
    skip_empty: bool = True  # Skip documents without tokens instead of failing

    # Scoring
    min_similarity: float = 0.0  # Keep scored pairs at or above this value

    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate configuration parameters."""
        rows_per_band(self.num_hashes, self.bands)

        if self.batch_size <= 0:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}",
                              parameter="batch_size", value=self.batch_size)

        if self.max_workers is not None and self.max_workers <= 0:
            raise ConfigError(f"max_workers must be positive, got {self.max_workers}",
                              parameter="max_workers", value=self.max_workers)

        if not (0.0 <= self.min_similarity <= 1.0):
            raise ConfigError(
                f"min_similarity must be between 0 and 1, got {self.min_similarity}",
                parameter="min_similarity", value=self.min_similarity,
            )

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"unknown log_level {self.log_level!r}",
                              parameter="log_level", value=self.log_level)

    @property
    def rows_per_band(self) -> int:
        return self.num_hashes // self.bands

    @property
    def threshold(self) -> float:
        """Similarity at the knee of the candidate curve."""
        return threshold(self.num_hashes, self.bands)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DedupConfig":
        """Create from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}",
                              parameter="keys", value=unknown)
        return cls(**data)

    def replace(self, **kwargs) -> "DedupConfig":
        """Copy with some fields changed; the copy is validated again."""
        data = self.to_dict()
        data.update(kwargs)
        return DedupConfig.from_dict(data)

    def save_to_file(self, file_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load_from_file(cls, file_path: Union[str, Path]) -> "DedupConfig":
        """Load configuration from YAML file."""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"configuration file {file_path} must contain a mapping",
                              parameter="file", value=str(file_path))
        return cls.from_dict(data or {})


class ConfigManager:
    """Loads, overrides, saves and displays a :class:`DedupConfig`."""

    DEFAULT_CONFIG_FILE = ".neardup.yml"
    ENV_PREFIX = "NEARDUP_"
    ENV_FIELDS = {
        "NUM_HASHES": ("num_hashes", int),
        "BANDS": ("bands", int),
        "SEED": ("seed", int),
        "BATCH_SIZE": ("batch_size", int),
        "MAX_WORKERS": ("max_workers", int),
        "MIN_SIMILARITY": ("min_similarity", float),
        "LOG_LEVEL": ("log_level", str),
    }

    def __init__(self, config_path: Optional[Path] = None, console: Optional[Console] = None):
        """
        Initialize config manager.

        Args:
            config_path: Path to configuration file
            console: Console for status messages (stderr by default)
        """
        self.console = console or Console(stderr=True)
        self.config_path = Path(config_path) if config_path else Path(self.DEFAULT_CONFIG_FILE)
        self._config: Optional[DedupConfig] = None

    def load(self) -> DedupConfig:
        """
        Load configuration from file or fall back to defaults.

        Environment overrides are applied last; the merged result is
        validated as a whole.

        Raises:
            ConfigError: if the file or an override holds an invalid value
        """
        if self._config is not None:
            return self._config

        data: Dict[str, Any] = {}
        if self.config_path.exists():
            data = DedupConfig.load_from_file(self.config_path).to_dict()
            self.console.print(f"[green]Loaded config from {self.config_path}[/green]")
        else:
            data = DedupConfig().to_dict()

        data.update(self.get_environment_overrides())
        self._config = DedupConfig.from_dict(data)
        return self._config

    def save(self, config: Optional[DedupConfig] = None) -> None:
        """Save configuration to ``config_path``."""
        config = config or self._config or DedupConfig()
        config.save_to_file(self.config_path)
        self._config = config
        self.console.print(f"[green]Saved config to {self.config_path}[/green]")

    def update(self, **kwargs) -> DedupConfig:
        """
        Update configuration parameters.

        Returns:
            Updated, re-validated configuration
        """
        self._config = self.load().replace(**kwargs)
        return self._config

    def display(self, config: Optional[DedupConfig] = None):
        """Display configuration in a formatted panel."""
        config = config or self.load()

        yaml_str = yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False)
        syntax = Syntax(yaml_str, "yaml", theme="monokai", line_numbers=True)
        panel = Panel(
            syntax,
            title="[bold cyan]Near-Duplicate Detection Configuration[/bold cyan]",
            subtitle=f"r={config.rows_per_band}  threshold≈{config.threshold:.3f}",
            border_style="cyan"
        )
        self.console.print(panel)

    def get_environment_overrides(self) -> Dict[str, Any]:
        """Collect typed overrides from ``NEARDUP_*`` environment variables."""
        overrides: Dict[str, Any] = {}
        for suffix, (name, cast) in self.ENV_FIELDS.items():
            raw = os.getenv(f"{self.ENV_PREFIX}{suffix}")
            if raw is None:
                continue
            try:
                overrides[name] = cast(raw)
            except ValueError as e:
                raise ConfigError(
                    f"invalid value for {self.ENV_PREFIX}{suffix}: {raw!r}",
                    parameter=name, value=raw,
                ) from e
            self.console.print(f"[cyan]Applied env override: {name}={overrides[name]}[/cyan]")
        return overrides


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """Get global config manager instance."""
    global _config_manager

    if _config_manager is None or (config_path and Path(config_path) != _config_manager.config_path):
        _config_manager = ConfigManager(config_path)

    return _config_manager


def get_config(config_path: Optional[Path] = None) -> DedupConfig:
    """Get current configuration."""
    return get_config_manager(config_path).load()


def create_default_config_file(path: Optional[Path] = None) -> Path:
    """Write a default configuration file and return its path."""
    path = Path(path) if path else Path(ConfigManager.DEFAULT_CONFIG_FILE)
    DedupConfig().save_to_file(path)
    return path
