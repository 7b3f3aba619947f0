"""Configuration management for the restic exporter."""

import os
import yaml
from dataclasses import dataclass
from typing import Dict, Any, Mapping, Optional
from .config_validator import ConfigValidator


@dataclass(frozen=True)
class ExporterConfig:
    """Validated exporter settings, built once at startup."""
    restic_binary: str
    cache_dir: str
    address: str = '0.0.0.0'
    port: int = 9998
    probe_timeout_seconds: float = 60.0


class ConfigManager:
    """Manages configuration loading and validation for the exporter."""

    DEFAULT_CONFIG_LOCATIONS = [
        "config.yaml",
        "config.yml",
        os.path.expanduser("~/.restic-exporter/config.yaml"),
        os.path.expanduser("~/.restic-exporter/config.yml"),
        "/etc/restic-exporter/config.yaml",
        "/etc/restic-exporter/config.yml"
    ]

    # environment variable -> (section, key)
    ENV_OVERRIDES = {
        'RESTIC_EXPORTER_BIN': ('restic', 'binary'),
        'RESTIC_EXPORTER_CACHEDIR': ('restic', 'cache_dir'),
        'RESTIC_EXPORTER_ADDRESS': ('server', 'address'),
        'RESTIC_EXPORTER_PORT': ('server', 'port'),
        'RESTIC_EXPORTER_TIMEOUT': ('server', 'probe_timeout_seconds'),
    }

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional path to config file. If not provided,
                        will search in default locations.
            environ: Environment to read overrides from. Defaults to os.environ.
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config_data: Dict[str, Any] = {}
        self.validator = ConfigValidator()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from file and environment.

        Returns:
            Dictionary containing configuration data.

        Raises:
            FileNotFoundError: If an explicitly named config file is missing.
            ValueError: If configuration is invalid.
        """
        config_file = self._find_config_file()
        self.config_data = {}

        if config_file:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    self.config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in config file {config_file}: {e}")
            except OSError as e:
                raise ValueError(f"Error reading config file {config_file}: {e}")

            if not isinstance(self.config_data, dict):
                raise ValueError(f"Config file {config_file} must contain a mapping")

        self._set_defaults()
        self._apply_environment()

        self.validator.validate(self.config_data)

        return self.config_data

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in default locations.

        Returns:
            Path to configuration file, or None when no default file exists.

        Raises:
            FileNotFoundError: If the explicitly given config file is missing.
        """
        if self.config_path:
            if os.path.exists(self.config_path):
                return self.config_path
            else:
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

        for location in self.DEFAULT_CONFIG_LOCATIONS:
            if os.path.exists(location):
                return location

        return None

    def _set_defaults(self):
        """Set default values for optional configuration parameters."""
        defaults = {
            'restic': {
                'binary': 'restic',
                'cache_dir': '',
            },
            'server': {
                'address': '0.0.0.0',
                'port': 9998,
                'probe_timeout_seconds': 60,
            },
            'logging': {
                'level': 'INFO',
                'file': None,
            },
        }

        # Merge defaults with existing config
        for section, section_defaults in defaults.items():
            if self.config_data.get(section) is None:
                self.config_data[section] = {}
            if not isinstance(self.config_data[section], dict):
                continue
            for key, value in section_defaults.items():
                if key not in self.config_data[section]:
                    self.config_data[section][key] = value

    def _apply_environment(self):
        """Override file settings with RESTIC_EXPORTER_* variables."""
        for name, (section, key) in self.ENV_OVERRIDES.items():
            value = self.environ.get(name)
            if value and isinstance(self.config_data.get(section), dict):
                self.config_data[section][key] = value

    def get_exporter_config(self) -> ExporterConfig:
        """Build the immutable exporter settings.

        Returns:
            ExporterConfig for the loaded configuration.
        """
        if not self.config_data:
            self.load_config()

        restic_config = self.config_data['restic']
        server_config = self.config_data['server']
        return ExporterConfig(
            restic_binary=str(restic_config['binary']),
            cache_dir=str(restic_config['cache_dir']),
            address=str(server_config['address']),
            port=int(server_config['port']),
            probe_timeout_seconds=float(server_config['probe_timeout_seconds']),
        )

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration.

        Returns:
            Logging configuration dictionary.
        """
        return self.config_data.get('logging', {})
