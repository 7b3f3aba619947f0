"""Command-line interface for restic exporter."""

import logging
import sys
import click
from typing import Optional

from .config.config_manager import ConfigManager
from .core.errors import ProbeError
from .core.models import ProbeParameters
from .core.prober import ResticProber
from .core.renderer import MetricRenderer
from .server import serve as serve_forever


def setup_logging(level: str, log_file: Optional[str] = None):
    """Set up logging configuration."""
    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            click.echo(f"Warning: Could not set up file logging: {e}", err=True)


def _load_config_manager(ctx) -> ConfigManager:
    """Load configuration or exit with an error."""
    config_manager = ConfigManager(ctx.obj.get('config_path'))
    try:
        config_manager.load_config()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)
    return config_manager


@click.group()
@click.option('--config', '-c', 'config_path',
              help='Path to configuration file')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level (overrides the config file)')
@click.option('--log-file',
              help='Log file path (overrides the config file)')
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: Optional[str], log_file: Optional[str]):
    """Restic Exporter - Prometheus metrics for restic repositories."""

    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file


def _setup_logging_from(ctx, config_manager: ConfigManager):
    logging_config = config_manager.get_logging_config()
    setup_logging(ctx.obj.get('log_level') or logging_config.get('level', 'INFO'),
                  ctx.obj.get('log_file') or logging_config.get('file'))


@cli.command()
@click.option('--address', help='Address to listen on')
@click.option('--port', type=int, help='Port to listen on')
@click.pass_context
def serve(ctx, address: Optional[str], port: Optional[int]):
    """Run the exporter HTTP server."""
    config_manager = _load_config_manager(ctx)
    if address:
        config_manager.config_data['server']['address'] = address
    if port:
        config_manager.config_data['server']['port'] = port

    try:
        config_manager.validator.validate(config_manager.config_data)
    except ValueError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)

    _setup_logging_from(ctx, config_manager)
    serve_forever(config_manager.get_exporter_config())


@cli.command()
@click.option('--target', default='', help='Host name filter')
@click.option('--tags', default='', help='Comma-separated tag filter')
@click.option('--path', default='', help='Path filter')
@click.pass_context
def probe(ctx, target: str, tags: str, path: str):
    """Run a single probe and print its metrics."""
    config_manager = _load_config_manager(ctx)
    _setup_logging_from(ctx, config_manager)

    try:
        params = ProbeParameters(target=target, tags=tags, path=path)
        prober = ResticProber(config_manager.get_exporter_config())
        body = MetricRenderer().render(prober.probe(params))
    except ProbeError as e:
        click.echo(f"Probe failed: {e}", err=True)
        sys.exit(1)

    click.echo(body.decode('utf-8'), nl=False)


@cli.command()
@click.pass_context
def validate_config(ctx):
    """Validate configuration and show the effective settings."""
    config_manager = _load_config_manager(ctx)
    config = config_manager.get_exporter_config()

    click.echo("✅ Configuration loaded successfully")
    click.echo(f"\n📊 Configuration Summary:")
    click.echo(f"   Restic binary: {config.restic_binary}")
    click.echo(f"   Cache directory: {config.cache_dir}")
    click.echo(f"   Listen address: {config.address}:{config.port}")
    click.echo(f"   Probe timeout: {config.probe_timeout_seconds:g}s")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
