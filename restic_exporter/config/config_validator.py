"""Configuration validation for restic exporter."""

from typing import Dict, Any


class ConfigValidator:
    """Validates restic exporter configuration."""

    REQUIRED_RESTIC_FIELDS = ['binary', 'cache_dir']

    def validate(self, config: Dict[str, Any]) -> None:
        """Validate configuration data.

        Args:
            config: Configuration dictionary with defaults and environment
                overrides already applied.

        Raises:
            ValueError: If configuration is invalid.
        """
        for section in ('restic', 'server', 'logging'):
            if not isinstance(config.get(section), dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")

        self._validate_restic_config(config['restic'])
        self._validate_server_config(config['server'])

    def _validate_restic_config(self, restic_config: Dict[str, Any]) -> None:
        """Validate restic configuration.

        Args:
            restic_config: Restic configuration dictionary.

        Raises:
            ValueError: If the binary or cache directory is not set.
        """
        missing_fields = [field for field in self.REQUIRED_RESTIC_FIELDS
                          if not restic_config.get(field)]
        if missing_fields:
            raise ValueError(f"Restic configuration missing required fields: {missing_fields}")

    def _validate_server_config(self, server_config: Dict[str, Any]) -> None:
        """Validate server configuration.

        Args:
            server_config: Server configuration dictionary.

        Raises:
            ValueError: If the port or probe timeout is invalid.
        """
        try:
            port = int(server_config.get('port'))
            if not (1 <= port <= 65535):
                raise ValueError()
        except (ValueError, TypeError):
            raise ValueError(f"Server configuration has invalid port: {server_config.get('port')}")

        try:
            timeout = float(server_config.get('probe_timeout_seconds'))
            if timeout <= 0:
                raise ValueError()
        except (ValueError, TypeError):
            raise ValueError(
                f"Server configuration has invalid probe_timeout_seconds: "
                f"{server_config.get('probe_timeout_seconds')}"
            )

        if not server_config.get('address'):
            raise ValueError("Server address cannot be empty")
