"""
Configuration system for craft-audit.

Supports YAML and JSON configuration files for customizing which
templates are scanned, which rules run, and how results are reported.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from craftaudit.core.findings import Pattern, Severity
from craftaudit.core.metadata import pattern_for_tag
from craftaudit.errors import ConfigError

logger = logging.getLogger(__name__)


# Configuration file names to search for, in order of preference
CONFIG_FILE_NAMES = [
    ".craft-audit.yaml",
    ".craft-audit.yml",
    ".craft-audit.json",
]

DEFAULT_EXTENSIONS = [".twig", ".html"]

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules/**",
    ".git/**",
    "vendor/**",
    "storage/**",
    "web/cpresources/**",
]


@dataclass
class OutputConfig:
    """Configuration for output formatting."""
    format: str = "text"  # text, json
    output_file: Optional[str] = None
    color: bool = True


@dataclass
class FixConfig:
    """Configuration for applying fixes."""
    dry_run: bool = False
    backup: bool = True
    allow_unsafe: bool = False


@dataclass
class ScanConfig:
    """
    Main configuration for craft-audit.

    Example YAML config:

    ```yaml
    scan:
      target: ./templates
      extensions: [".twig", ".html"]
      exclude:
        - "vendor/**"
        - "_dev/**"
      max_file_size: 1048576
      max_workers: 4

    rules:
      severity_threshold: low
      disabled:
        - include-tag
        - template/mixed-loading-strategy

    output:
      format: text
      color: true

    fix:
      backup: true
      allow_unsafe: false
    ```
    """
    target: str = "."
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_file_size: int = 1024 * 1024  # 1MB
    max_workers: int = 4

    severity_threshold: str = "info"  # high, medium, low, info
    disabled_rules: List[str] = field(default_factory=list)

    output: OutputConfig = field(default_factory=OutputConfig)
    fix: FixConfig = field(default_factory=FixConfig)

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigError when a setting has an unusable value."""
        try:
            Severity(self.severity_threshold)
        except ValueError:
            raise ConfigError(f"Unknown severity threshold: {self.severity_threshold!r}")

        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1")
        if self.max_file_size < 1:
            raise ConfigError("max_file_size must be positive")

        for rule in self.disabled_rules:
            if self._resolve_rule(rule) is None:
                raise ConfigError(f"Unknown rule in disabled list: {rule!r}")

    @staticmethod
    def _resolve_rule(rule: str) -> Optional[Pattern]:
        try:
            return Pattern(rule)
        except ValueError:
            return pattern_for_tag(rule)

    @property
    def threshold(self) -> Severity:
        return Severity(self.severity_threshold)

    def disabled_patterns(self) -> Set[Pattern]:
        """Resolve the disabled list (patterns, tags or rule ids) to patterns."""
        return {self._resolve_rule(rule) for rule in self.disabled_rules}

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to a dictionary."""
        return asdict(self)

    def to_engine_config(self) -> Dict[str, Any]:
        """Convert to engine configuration format."""
        return {
            "extensions": self.extensions,
            "exclude_patterns": self.exclude_patterns,
            "max_file_size": self.max_file_size,
            "max_workers": self.max_workers,
            "severity_threshold": self.severity_threshold,
            "disabled_patterns": sorted(p.value for p in self.disabled_patterns()),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanConfig":
        """Create config from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        data = dict(data)

        # Handle nested 'scan' section
        if isinstance(data.get("scan"), dict):
            data.update(data.pop("scan"))

        # Handle nested 'rules' section
        rules = data.pop("rules", None)
        if isinstance(rules, dict):
            if "disabled" in rules:
                data["disabled_rules"] = rules["disabled"] or []
            if "severity_threshold" in rules:
                data["severity_threshold"] = rules["severity_threshold"]

        try:
            if isinstance(data.get("output"), dict):
                data["output"] = OutputConfig(**data["output"])
            if isinstance(data.get("fix"), dict):
                data["fix"] = FixConfig(**data["fix"])
        except TypeError as e:
            raise ConfigError(str(e))

        # Map some common alternative names
        if "exclude" in data:
            data["exclude_patterns"] = data.pop("exclude")

        # Filter to only known fields
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        unknown = sorted(k for k in data if k not in known_fields)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        filtered_data = {k: v for k, v in data.items() if k in known_fields}

        return cls(**filtered_data)


def load_config(path: str) -> Dict[str, Any]:
    """
    Load raw configuration data from a file.

    Supports YAML and JSON formats.
    """
    path = Path(path)

    if not path.exists():
        raise ConfigError("Configuration file not found", str(path))

    content = path.read_text(encoding="utf-8")

    try:
        if path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse configuration: {e}", str(path))

    return data or {}


def find_config(start_path: str = ".") -> Optional[str]:
    """
    Find a configuration file by searching up the directory tree.

    Returns the path to the first config file found, or None.
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        for name in CONFIG_FILE_NAMES:
            config_path = current / name
            if config_path.exists():
                return str(config_path)
        if current == current.parent:
            return None
        current = current.parent


def load_scan_config(path: Optional[str] = None, start_dir: str = ".") -> ScanConfig:
    """
    Load a ScanConfig from a file or create a default one.

    If path is None, searches for a config file starting from start_dir.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        logger.debug("No configuration file found from %s, using defaults", start_dir)
        return ScanConfig()

    logger.debug("Loading configuration from %s", path)
    try:
        return ScanConfig.from_dict(load_config(path))
    except ConfigError as e:
        if e.path is None:
            raise ConfigError(str(e), path)
        raise


def create_default_config() -> str:
    """
    Create a default configuration file content.
    """
    config = {
        "scan": {
            "target": ".",
            "extensions": list(DEFAULT_EXTENSIONS),
            "exclude": list(DEFAULT_EXCLUDE_PATTERNS),
            "max_file_size": 1048576,
            "max_workers": 4,
        },
        "rules": {
            "severity_threshold": "info",
            "disabled": [],
        },
        "output": {
            "format": "text",
            "color": True,
        },
        "fix": {
            "backup": True,
            "allow_unsafe": False,
        },
    }

    return yaml.dump(config, default_flow_style=False, sort_keys=False)
