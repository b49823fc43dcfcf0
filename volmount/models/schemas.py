"""Data schemas and validation"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Type

from volmount.utils.exceptions import ConfigurationException
from volmount.utils.validators import validate_host, validate_mount_path, validate_rclone_remote


class VolumeStatus(str, Enum):
    """Observed volume state"""
    MOUNTED = 'mounted'
    UNMOUNTED = 'unmounted'
    ERROR = 'error'
    UNKNOWN = 'unknown'


class BackendKind(str, Enum):
    """Supported volume backends"""
    LOCAL = 'local'
    NFS = 'nfs'
    SMB = 'smb'
    SFTP = 'sftp'
    WEBDAV = 'webdav'
    RCLONE = 'rclone'


VOLUME_NOT_MOUNTED = 'volume not mounted'


@dataclass(frozen=True)
class MountTableEntry:
    """Snapshot of one OS mount table row"""
    mount_point: str
    fstype: str
    device: str = ''
    options: str = ''


@dataclass(frozen=True)
class OperationOutcome:
    """Result of mount/unmount/check_health"""
    status: VolumeStatus
    error: Optional[str] = None

    @property
    def is_not_mounted(self) -> bool:
        """True for the 'volume not mounted' sentinel rather than a real fault"""
        return self.status == VolumeStatus.UNMOUNTED or self.error == VOLUME_NOT_MOUNTED

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status.value, 'error': self.error}

    @classmethod
    def mounted(cls) -> 'OperationOutcome':
        return cls(VolumeStatus.MOUNTED)

    @classmethod
    def unmounted(cls) -> 'OperationOutcome':
        return cls(VolumeStatus.UNMOUNTED)

    @classmethod
    def failed(cls, error: str) -> 'OperationOutcome':
        return cls(VolumeStatus.ERROR, error)


@dataclass(frozen=True)
class VolumeConfig:
    """Base for backend configurations. Instances are never mutated."""
    backend = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['backend'] = self.backend.value
        return data


@dataclass(frozen=True)
class LocalConfig(VolumeConfig):
    path: str
    read_only: bool = False

    backend = BackendKind.LOCAL


@dataclass(frozen=True)
class NFSConfig(VolumeConfig):
    server: str
    export_path: str
    port: int = 2049
    version: str = '4.1'
    read_only: bool = False

    backend = BackendKind.NFS


@dataclass(frozen=True)
class SMBConfig(VolumeConfig):
    server: str
    share: str
    username: str
    password: str
    vers: str = '3.0'
    domain: Optional[str] = None
    port: int = 445
    read_only: bool = False

    backend = BackendKind.SMB


@dataclass(frozen=True)
class SFTPConfig(VolumeConfig):
    host: str
    username: str
    port: int = 22
    password: Optional[str] = None
    private_key: Optional[str] = None
    path: str = '/'
    known_hosts: Optional[str] = None
    skip_host_key_check: bool = False
    read_only: bool = False

    backend = BackendKind.SFTP


@dataclass(frozen=True)
class WebDAVConfig(VolumeConfig):
    server: str
    path: str = '/'
    port: int = 80
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    read_only: bool = False

    backend = BackendKind.WEBDAV


@dataclass(frozen=True)
class RcloneConfig(VolumeConfig):
    remote: str
    path: str = '/'
    read_only: bool = False

    backend = BackendKind.RCLONE


CONFIG_TYPES: Dict[BackendKind, Type[VolumeConfig]] = {
    BackendKind.LOCAL: LocalConfig,
    BackendKind.NFS: NFSConfig,
    BackendKind.SMB: SMBConfig,
    BackendKind.SFTP: SFTPConfig,
    BackendKind.WEBDAV: WebDAVConfig,
    BackendKind.RCLONE: RcloneConfig,
}

NFS_VERSIONS = ('3', '4', '4.1')
SMB_VERSIONS = ('1.0', '2.0', '2.1', '3.0', 'auto')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _coerce(value: Any, annotation: Any) -> Any:
    """Coerce string values (from CLI or INI input) to the field type."""
    if not isinstance(value, str):
        return value
    if annotation is bool or annotation == 'bool':
        return value.strip().lower() in _TRUE_VALUES
    if annotation is int or annotation == 'int':
        try:
            return int(value)
        except ValueError:
            raise ConfigurationException(f"Invalid integer value: {value}")
    return value


def parse_volume_config(data: Dict[str, Any]) -> VolumeConfig:
    """
    Build a VolumeConfig from a plain mapping.

    Args:
        data: Mapping with a 'backend' discriminant and the variant's fields

    Returns:
        VolumeConfig instance of the matching variant

    Raises:
        ConfigurationException: Unknown backend, unknown or missing fields
    """
    if not isinstance(data, dict) or 'backend' not in data:
        raise ConfigurationException("Volume config requires a 'backend' field")

    try:
        kind = BackendKind(str(data['backend']).lower())
    except ValueError:
        raise ConfigurationException(f"Unsupported backend: {data['backend']}")

    config_type = CONFIG_TYPES[kind]
    known = {f.name: f for f in fields(config_type)}
    values = {k: v for k, v in data.items() if k != 'backend'}

    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigurationException(
            f"Unknown field(s) for {kind.value} backend: {', '.join(unknown)}"
        )

    values = {k: _coerce(v, known[k].type) for k, v in values.items()}

    try:
        config = config_type(**values)
    except TypeError as e:
        raise ConfigurationException(f"Invalid {kind.value} config: {e}")

    validate_volume_config(config)
    return config


def validate_volume_config(config: VolumeConfig):
    """Validate variant-specific constraints."""
    if isinstance(config, NFSConfig) and config.version not in NFS_VERSIONS:
        raise ConfigurationException(
            f"Unsupported NFS version: {config.version}. Must be one of {', '.join(NFS_VERSIONS)}"
        )
    if isinstance(config, SMBConfig) and config.vers not in SMB_VERSIONS:
        raise ConfigurationException(
            f"Unsupported SMB version: {config.vers}. Must be one of {', '.join(SMB_VERSIONS)}"
        )
    if isinstance(config, LocalConfig) and not validate_mount_path(config.path):
        raise ConfigurationException(f"Local volume path must be absolute: {config.path}")
    if isinstance(config, RcloneConfig) and not validate_rclone_remote(config.remote):
        raise ConfigurationException(f"Invalid rclone remote: {config.remote}")
    for attr in ('server', 'host'):
        if hasattr(config, attr) and not validate_host(getattr(config, attr)):
            raise ConfigurationException(f"Invalid {attr}: {getattr(config, attr)}")
    if isinstance(config, SFTPConfig) and not (config.password or config.private_key):
        raise ConfigurationException("SFTP volume requires a password or a private key")
    port = getattr(config, 'port', None)
    if port is not None and not 0 < int(port) < 65536:
        raise ConfigurationException(f"Invalid port: {port}")


@dataclass
class VolumeRecord:
    """Persisted volume as seen by the engine (owned by the volume store)"""
    name: str
    config: VolumeConfig
    auto_remount: bool = False
    status: VolumeStatus = VolumeStatus.UNKNOWN
    last_error: Optional[str] = None
    last_health_check: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'backend': self.config.backend.value,
            'auto_remount': self.auto_remount,
            'status': self.status.value,
            'last_error': self.last_error,
            'last_health_check': self.last_health_check.isoformat() if self.last_health_check else None,
        }


class VolumeRepository(Protocol):
    """Storage collaborator for volume records"""

    def list_volumes(self) -> List[VolumeRecord]:
        ...

    def get_volume(self, name: str) -> VolumeRecord:
        ...

    def record_outcome(self, name: str, outcome: OperationOutcome,
                       checked_at: Optional[datetime] = None) -> None:
        ...
