"""Backend factory"""

from typing import Dict, Type

from volmount.drivers.base import BackendDependencies, BaseVolumeBackend
from volmount.drivers.local import LocalBackend
from volmount.drivers.nfs import NFSBackend
from volmount.drivers.rclone import RcloneBackend
from volmount.drivers.sftp import SFTPBackend
from volmount.drivers.smb import SMBBackend
from volmount.drivers.webdav import WebDAVBackend
from volmount.models.schemas import BackendKind, VolumeConfig
from volmount.utils.exceptions import ConfigurationException

BACKENDS: Dict[BackendKind, Type[BaseVolumeBackend]] = {
    BackendKind.LOCAL: LocalBackend,
    BackendKind.NFS: NFSBackend,
    BackendKind.SMB: SMBBackend,
    BackendKind.SFTP: SFTPBackend,
    BackendKind.WEBDAV: WebDAVBackend,
    BackendKind.RCLONE: RcloneBackend,
}


def create_backend(config: VolumeConfig, path: str, deps: BackendDependencies) -> BaseVolumeBackend:
    """
    Create the driver for a volume config.

    Raises:
        ConfigurationException: If no driver handles the config's backend
    """
    backend_class = BACKENDS.get(config.backend)
    if backend_class is None:
        raise ConfigurationException(f"Unsupported backend: {config.backend}")
    return backend_class(config, path, deps)
