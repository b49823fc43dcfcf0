"""Data model package"""

from volmount.models.schemas import (
    BackendKind,
    MountTableEntry,
    OperationOutcome,
    VolumeConfig,
    VolumeRecord,
    VolumeRepository,
    VolumeStatus,
    VOLUME_NOT_MOUNTED,
    parse_volume_config,
)
from volmount.models.database import (
    Base,
    DatabaseManager,
    SqlVolumeRepository,
    Volume,
)

__all__ = [
    'BackendKind',
    'MountTableEntry',
    'OperationOutcome',
    'VolumeConfig',
    'VolumeRecord',
    'VolumeRepository',
    'VolumeStatus',
    'VOLUME_NOT_MOUNTED',
    'parse_volume_config',
    'Base',
    'DatabaseManager',
    'SqlVolumeRepository',
    'Volume',
]
