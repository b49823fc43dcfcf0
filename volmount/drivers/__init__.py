"""Volume backend drivers"""

from volmount.drivers.base import BackendDependencies, BaseVolumeBackend
from volmount.drivers.factory import BACKENDS, create_backend
from volmount.drivers.local import LocalBackend
from volmount.drivers.nfs import NFSBackend
from volmount.drivers.rclone import RcloneBackend
from volmount.drivers.sftp import SFTPBackend
from volmount.drivers.smb import SMBBackend
from volmount.drivers.webdav import WebDAVBackend

__all__ = [
    'BackendDependencies',
    'BaseVolumeBackend',
    'BACKENDS',
    'create_backend',
    'LocalBackend',
    'NFSBackend',
    'RcloneBackend',
    'SFTPBackend',
    'SMBBackend',
    'WebDAVBackend',
]
