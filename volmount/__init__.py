"""
volmount - volume backend lifecycle and health-reconciliation engine

Mounts, unmounts and health-checks local, NFS, SMB/CIFS, SFTP, WebDAV and
rclone volumes through one uniform contract. Every operation returns an
OperationOutcome instead of raising, is bounded by a timeout, and is
serialized per mount path.

Example:
    >>> from volmount import BackendDependencies, VolumeEngineConfig, create_backend
    >>> from volmount.models.schemas import NFSConfig
    >>>
    >>> config = VolumeEngineConfig.from_file()
    >>> deps = BackendDependencies.from_config(config)
    >>> backend = create_backend(NFSConfig(server='10.0.0.5', export_path='/exports/a'),
    ...                          '/var/lib/volmount/volumes/a/_data', deps)
    >>> outcome = await backend.mount()
    >>> outcome.status
    <VolumeStatus.MOUNTED: 'mounted'>
"""

from .config import VolumeEngineConfig

from .drivers import (
    BackendDependencies,
    BaseVolumeBackend,
    create_backend,
)

from .models import (
    OperationOutcome,
    VolumeConfig,
    VolumeStatus,
    parse_volume_config,
)

from .services.mount_service import MountService
from .services.reconciliation import ReconciliationService
from .version import version_string

__version__ = version_string()

__all__ = [
    'VolumeEngineConfig',
    'BackendDependencies',
    'BaseVolumeBackend',
    'create_backend',
    'OperationOutcome',
    'VolumeConfig',
    'VolumeStatus',
    'parse_volume_config',
    'MountService',
    'ReconciliationService',
    '__version__',
]
