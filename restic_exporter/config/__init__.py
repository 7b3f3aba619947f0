"""Configuration management for restic exporter."""

from .config_manager import ConfigManager, ExporterConfig
from .config_validator import ConfigValidator

__all__ = ["ConfigManager", "ConfigValidator", "ExporterConfig"]
