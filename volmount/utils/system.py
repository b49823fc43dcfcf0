"""Host platform and mount path helpers"""

import os
import platform

LINUX = 'linux'
DARWIN = 'darwin'
WINDOWS = 'windows'

VOLUME_DATA_DIR = '_data'


def detect_platform() -> str:
    """Detect current platform. Returns: linux, darwin, windows or the raw system name."""
    return platform.system().lower() or 'unknown'


def normalize_path(path: str) -> str:
    """Normalize a mount path for exact comparison (no symlink resolution)."""
    normalized = os.path.normpath(path)
    if normalized.startswith('//'):
        normalized = '/' + normalized.lstrip('/')
    return normalized


def get_volume_path(mount_base: str, volume_name: str) -> str:
    """
    Get the mount path for a remote volume.

    Args:
        mount_base: Base directory holding all volume mounts
        volume_name: Volume name

    Returns:
        Full mount path
    """
    return os.path.join(mount_base, volume_name, VOLUME_DATA_DIR)
