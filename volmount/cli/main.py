"""Main CLI entry point with configuration options"""

import sys

import click

from volmount.cli import commands
from volmount.config import VolumeEngineConfig
from volmount.drivers import BACKENDS
from volmount.utils.exceptions import ConfigurationException
from volmount.utils.logger import get_logger, setup_logging

LOG = get_logger(__name__)


@click.group()
@click.option('--config', help='Configuration file path')
@click.option('--db-url', help='Database URL')
@click.option('--mount-base-path', help='Base directory for volume mounts')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                case_sensitive=False),
              help='Log level')
@click.option('--json-logs', is_flag=True, help='Emit JSON log lines')
@click.pass_context
def cli(ctx, config, db_url, mount_base_path, log_level, json_logs):
    """Volume mount engine CLI"""
    ctx.ensure_object(dict)

    try:
        engine_config = VolumeEngineConfig.from_file(config)
        if db_url:
            engine_config.db_url = db_url
        if mount_base_path:
            engine_config.mount_base_path = mount_base_path
        if log_level:
            engine_config.log_level = log_level
        if json_logs:
            engine_config.log_json = True
        engine_config.validate()
    except ConfigurationException as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(engine_config.log_level, engine_config.log_format, engine_config.log_json)
    ctx.obj['config'] = engine_config


@cli.command()
@click.argument('name')
@click.option('--backend', '-b', required=True,
              type=click.Choice([kind.value for kind in BACKENDS], case_sensitive=False),
              help='Backend kind')
@click.option('--option', '-o', 'options', multiple=True,
              help='Backend field as key=value (repeatable)')
@click.option('--auto-remount', is_flag=True, help='Remount automatically when unhealthy')
@click.pass_context
def register(ctx, name, backend, options, auto_remount):
    """
    Register a new volume

    Examples:
      volmount-cli register media --backend nfs -o server=10.0.0.5 -o export_path=/exports/media
      volmount-cli register docs --backend smb -o server=nas -o share=docs \\
          -o username=backup -o password=env:SMB_PASSWORD --auto-remount
    """
    commands.register_volume(ctx.obj['config'], name, backend.lower(), options, auto_remount)


@cli.command()
@click.argument('name')
@click.confirmation_option(prompt='Are you sure you want to remove this volume?')
@click.pass_context
def remove(ctx, name):
    """Remove a registered volume"""
    commands.remove_volume(ctx.obj['config'], name)


@cli.command('list')
@click.option('--format', '-f',
              type=click.Choice(['table', 'json'], case_sensitive=False),
              default='table',
              help='Output format')
@click.pass_context
def list_cmd(ctx, format):
    """
    List all registered volumes

    Examples:
      volmount-cli list
      volmount-cli list --format json
    """
    commands.list_volumes(ctx.obj['config'], format.lower())


@cli.command()
@click.argument('name')
@click.pass_context
def mount(ctx, name):
    """Mount a volume"""
    commands.mount_volume(ctx.obj['config'], name)


@cli.command()
@click.argument('name')
@click.pass_context
def unmount(ctx, name):
    """Unmount a volume"""
    commands.unmount_volume(ctx.obj['config'], name)


@cli.command()
@click.argument('name')
@click.pass_context
def health(ctx, name):
    """Check the health of a volume"""
    commands.check_health(ctx.obj['config'], name)


@cli.command()
@click.option('--format', '-f',
              type=click.Choice(['table', 'json'], case_sensitive=False),
              default='table',
              help='Output format')
@click.option('--status', 'show_status', is_flag=True, help='Also show reconciliation status')
@click.pass_context
def reconcile(ctx, format, show_status):
    """Run one reconciliation pass over auto-remount volumes"""
    commands.reconcile(ctx.obj['config'], format.lower(), show_status)


if __name__ == '__main__':
    cli()
