"""Validation utilities"""

import re

_VOLUME_NAME = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.\-]{0,127}$')


def validate_volume_name(name: str) -> bool:
    """Validate volume name (used as a directory name under the mount base)"""
    return bool(name) and bool(_VOLUME_NAME.match(name)) and name not in ('.', '..')


def validate_mount_path(path: str) -> bool:
    """Validate mount path"""
    return path.startswith('/') and '..' not in path.split('/')


def validate_rclone_remote(remote: str) -> bool:
    """Validate rclone remote name (without the trailing colon)"""
    return bool(remote) and ':' not in remote and not remote.startswith('-')


def validate_host(host: str) -> bool:
    """Validate server/host value (hostname, IPv4 or bracketless IPv6)"""
    return bool(host) and not host.startswith('-') and not any(c.isspace() for c in host) and '/' not in host
