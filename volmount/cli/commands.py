"""CLI command implementations"""

import asyncio
import json
import sys
from typing import Dict, Optional, Sequence, Tuple

import click
from tabulate import tabulate

from volmount.config import VolumeEngineConfig
from volmount.models import DatabaseManager, SqlVolumeRepository, VolumeStatus, parse_volume_config
from volmount.models.schemas import OperationOutcome
from volmount.services.mount_service import MountService
from volmount.services.reconciliation import ReconciliationService
from volmount.utils.exceptions import ConfigurationException, VolumeException
from volmount.utils.logger import get_logger
from volmount.utils.sanitize import to_message

LOG = get_logger(__name__)

STATUS_COLORS = {
    VolumeStatus.MOUNTED: 'green',
    VolumeStatus.UNMOUNTED: 'yellow',
    VolumeStatus.ERROR: 'red',
    VolumeStatus.UNKNOWN: 'white',
}


def _open_repository(config: VolumeEngineConfig) -> Tuple[DatabaseManager, SqlVolumeRepository]:
    db = DatabaseManager(config.db_url)
    db.initialize()
    return db, SqlVolumeRepository(db)


def _fail(error: Exception):
    click.secho(f"✗ Error: {to_message(error)}", fg='red', err=True)
    sys.exit(1)


def parse_options(options: Sequence[str]) -> Dict[str, str]:
    """Turn repeated key=value options into a mapping."""
    values = {}
    for option in options:
        if '=' not in option:
            raise ConfigurationException(f"Invalid option '{option}', expected key=value")
        key, value = option.split('=', 1)
        values[key.strip().replace('-', '_')] = value
    return values


def register_volume(config: VolumeEngineConfig, name: str, backend: str,
                    options: Sequence[str], auto_remount: bool = False):
    """Register a new volume"""
    db = None
    try:
        data = {'backend': backend}
        data.update(parse_options(options))
        volume_config = parse_volume_config(data)

        db, repository = _open_repository(config)
        record = repository.add_volume(name, volume_config, auto_remount)
        click.secho(f"✓ Volume {record.name} registered ({backend})", fg='green')
    except VolumeException as e:
        _fail(e)
    finally:
        if db:
            db.close()


def remove_volume(config: VolumeEngineConfig, name: str):
    """Remove a volume record (does not unmount it)"""
    db = None
    try:
        db, repository = _open_repository(config)
        repository.remove_volume(name)
        click.secho(f"✓ Volume {name} removed", fg='green')
    except VolumeException as e:
        _fail(e)
    finally:
        if db:
            db.close()


def list_volumes(config: VolumeEngineConfig, format: str = 'table'):
    """List all registered volumes"""
    db = None
    try:
        db, repository = _open_repository(config)
        volumes = repository.list_volumes()
    except VolumeException as e:
        _fail(e)
    finally:
        if db:
            db.close()

    if format == 'json':
        click.echo(json.dumps([v.to_dict() for v in volumes], indent=2))
        return

    if not volumes:
        click.echo("No volumes registered")
        return

    headers = ['Name', 'Backend', 'Status', 'Auto Remount', 'Last Check', 'Last Error']
    rows = [
        [
            v.name,
            v.config.backend.value,
            v.status.value,
            'yes' if v.auto_remount else 'no',
            v.last_health_check.strftime('%Y-%m-%d %H:%M:%S') if v.last_health_check else '-',
            v.last_error or '',
        ]
        for v in volumes
    ]
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))
    click.echo(f"\nTotal: {len(volumes)} volumes")


def _run_operation(config: VolumeEngineConfig, name: str, operation: str) -> OperationOutcome:
    db = None
    try:
        db, repository = _open_repository(config)
        service = MountService(config, repository)
        handler = getattr(service, operation)
        return asyncio.run(handler(name))
    except VolumeException as e:
        _fail(e)
    finally:
        if db:
            db.close()


def _report(name: str, outcome: OperationOutcome, expected: VolumeStatus):
    color = STATUS_COLORS.get(outcome.status, 'white')
    message = f"{name}: {outcome.status.value}"
    if outcome.error:
        message += f" ({outcome.error})"
    if outcome.status == expected:
        click.secho(f"✓ {message}", fg=color)
    else:
        click.secho(f"✗ {message}", fg=color, err=True)
        sys.exit(1)


def mount_volume(config: VolumeEngineConfig, name: str):
    outcome = _run_operation(config, name, 'mount_volume')
    _report(name, outcome, VolumeStatus.MOUNTED)


def unmount_volume(config: VolumeEngineConfig, name: str):
    outcome = _run_operation(config, name, 'unmount_volume')
    _report(name, outcome, VolumeStatus.UNMOUNTED)


def check_health(config: VolumeEngineConfig, name: str):
    outcome = _run_operation(config, name, 'check_volume_health')
    _report(name, outcome, VolumeStatus.MOUNTED)


def reconcile(config: VolumeEngineConfig, format: str = 'table', show_status: bool = False):
    """Run a single reconciliation pass"""
    db = None
    try:
        db, repository = _open_repository(config)
        service = ReconciliationService(MountService(config, repository))
        results = asyncio.run(service.run_pass())
        status: Optional[dict] = service.get_reconciliation_status() if show_status else None
    except VolumeException as e:
        _fail(e)
    finally:
        if db:
            db.close()

    if format == 'json':
        output = {'results': results}
        if status is not None:
            output['status'] = status
        click.echo(json.dumps(output, indent=2))
        return

    if not results:
        click.echo("No volumes needed reconciliation")
    else:
        rows = [[name, r['status'], r['error'] or ''] for name, r in sorted(results.items())]
        click.echo(tabulate(rows, headers=['Name', 'Status', 'Error'], tablefmt='grid'))

    if status is not None and status['unhealthy']:
        click.secho(f"\n{len(status['unhealthy'])} volume(s) still unhealthy", fg='red')
