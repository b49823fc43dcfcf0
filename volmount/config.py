"""
volmount Configuration Module
Supports loading from:
1. INI config file (/etc/volmount/volmount.conf)
2. Environment variables (override config file)
3. Default values (fallback)
"""

import os
from configparser import ConfigParser, Error as ConfigParserError
from typing import Any, Dict, Optional

from volmount.utils.exceptions import ConfigurationException
from volmount.utils.logger import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


class VolumeEngineConfig:
    """Engine Configuration"""

    CONFIG_FILE = '/etc/volmount/volmount.conf'
    ENV_PREFIX = 'VOLMOUNT_'
    SECTION = 'volmount'

    # Default values
    DEFAULT_DB_URL = 'sqlite:////var/lib/volmount/volmount.db'
    DEFAULT_MOUNT_BASE_PATH = '/var/lib/volmount/volumes'
    DEFAULT_KEY_DIR = '/var/lib/volmount/ssh'
    DEFAULT_LOCK_DIR = '/var/lock/volmount'
    DEFAULT_OPERATION_TIMEOUT_MS = 5000
    DEFAULT_LOCK_TIMEOUT = 300
    DEFAULT_RECONCILE_INTERVAL = 60
    DEFAULT_KILL_ON_TIMEOUT = False
    DEFAULT_PROC_MOUNTS_PATH = '/proc/self/mounts'
    DEFAULT_LOG_LEVEL = 'INFO'
    DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DEFAULT_LOG_JSON = False
    DEFAULT_VERIFY_SSL = True
    DEFAULT_SECRET_AUTH_TOKEN = None
    DEFAULT_SECRET_REQUEST_TIMEOUT = 10

    # key -> (type, default attribute name)
    _KEYS = {
        'db_url': (str, 'DEFAULT_DB_URL'),
        'mount_base_path': (str, 'DEFAULT_MOUNT_BASE_PATH'),
        'key_dir': (str, 'DEFAULT_KEY_DIR'),
        'lock_dir': (str, 'DEFAULT_LOCK_DIR'),
        'operation_timeout_ms': (int, 'DEFAULT_OPERATION_TIMEOUT_MS'),
        'lock_timeout': (int, 'DEFAULT_LOCK_TIMEOUT'),
        'reconcile_interval': (int, 'DEFAULT_RECONCILE_INTERVAL'),
        'kill_on_timeout': (bool, 'DEFAULT_KILL_ON_TIMEOUT'),
        'proc_mounts_path': (str, 'DEFAULT_PROC_MOUNTS_PATH'),
        'log_level': (str, 'DEFAULT_LOG_LEVEL'),
        'log_format': (str, 'DEFAULT_LOG_FORMAT'),
        'log_json': (bool, 'DEFAULT_LOG_JSON'),
        'verify_ssl': (bool, 'DEFAULT_VERIFY_SSL'),
        'secret_auth_token': (str, 'DEFAULT_SECRET_AUTH_TOKEN'),
        'secret_request_timeout': (int, 'DEFAULT_SECRET_REQUEST_TIMEOUT'),
    }

    # Helper binary overrides; empty means resolve from PATH
    BINARY_KEYS = ('mount_bin', 'umount_bin', 'rclone_bin', 'sshfs_bin')

    def __init__(self, **overrides):
        for key, (_, default_attr) in self._KEYS.items():
            setattr(self, key, getattr(self, default_attr))
        for key in self.BINARY_KEYS:
            setattr(self, key, None)
        self.config_file = None
        for key, value in overrides.items():
            self.set(key, value)

    @classmethod
    def from_file(cls, config_file: Optional[str] = None) -> 'VolumeEngineConfig':
        """
        Load configuration from file and environment variables.

        Priority: env var > config file > default

        Args:
            config_file: Path to config file (default: /etc/volmount/volmount.conf)
        """
        config_file = config_file or cls.CONFIG_FILE
        config = cls()
        config.config_file = config_file

        config_data = cls._load_ini_file(config_file)
        for key in list(cls._KEYS) + list(cls.BINARY_KEYS):
            env_value = os.environ.get(f"{cls.ENV_PREFIX}{key.upper()}")
            if env_value is not None:
                config.set(key, env_value)
            elif key in config_data:
                config.set(key, config_data[key])

        logger.debug(f"Configuration loaded from: {config_file}")
        logger.debug(f"DB_URL: {cls._mask_password(config.db_url)}")
        logger.debug(f"MOUNT_BASE_PATH: {config.mount_base_path}")
        return config

    @classmethod
    def _load_ini_file(cls, config_file: str) -> Dict[str, Any]:
        """
        Load configuration from INI file.

        Expected format:
        [volmount]
        db_url = sqlite:////var/lib/volmount/volmount.db
        mount_base_path = /var/lib/volmount/volumes
        operation_timeout_ms = 5000
        log_level = INFO
        """
        config_data = {}

        if not os.path.exists(config_file):
            logger.debug(f"Config file not found: {config_file}, using defaults")
            return config_data

        parser = ConfigParser(interpolation=None)
        try:
            parser.read(config_file)
        except ConfigParserError as e:
            raise ConfigurationException(f"Failed to parse config file {config_file}: {e}")

        section = cls.SECTION if parser.has_section(cls.SECTION) else 'DEFAULT'
        for key, value in parser.items(section):
            config_data[key] = value

        logger.info(f"Loaded {len(config_data)} config parameters from {config_file}")
        return config_data

    def set(self, key: str, value: Any):
        """Set a configuration value, coercing strings to the key's type."""
        if key in self.BINARY_KEYS:
            setattr(self, key, value or None)
            return
        if key not in self._KEYS:
            raise ConfigurationException(f"Unknown configuration key: {key}")

        value_type = self._KEYS[key][0]
        if isinstance(value, str):
            if value_type is bool:
                value = value.strip().lower() in _TRUE_VALUES
            elif value_type is int:
                try:
                    value = int(value)
                except ValueError:
                    raise ConfigurationException(f"Invalid integer for {key}: {value}")
        setattr(self, key, value)

    @property
    def binaries(self) -> Dict[str, str]:
        """Helper overrides keyed by helper name (mount, umount, rclone, sshfs)"""
        return {
            key[:-len('_bin')]: getattr(self, key)
            for key in self.BINARY_KEYS if getattr(self, key)
        }

    def validate(self):
        """
        Validate configuration.

        Raises:
            ConfigurationException if configuration is invalid
        """
        if not self.db_url:
            raise ConfigurationException("DB_URL is required")
        if not self.mount_base_path or not self.mount_base_path.startswith('/'):
            raise ConfigurationException("MOUNT_BASE_PATH must be an absolute path")
        if self.operation_timeout_ms <= 0:
            raise ConfigurationException("OPERATION_TIMEOUT_MS must be positive")
        if self.lock_timeout <= 0:
            raise ConfigurationException("LOCK_TIMEOUT must be positive")
        if self.reconcile_interval <= 0:
            raise ConfigurationException("RECONCILE_INTERVAL must be positive")
        if self.secret_request_timeout <= 0:
            raise ConfigurationException("SECRET_REQUEST_TIMEOUT must be positive")

    def to_dict(self) -> Dict[str, Any]:
        data = {key: getattr(self, key) for key in self._KEYS}
        data.update({key: getattr(self, key) for key in self.BINARY_KEYS})
        data['db_url'] = self._mask_password(self.db_url)
        if self.secret_auth_token:
            data['secret_auth_token'] = '***'
        return data

    @classmethod
    def _mask_password(cls, url: str) -> str:
        """Mask password in URL for logging."""
        if url and '@' in url and '://' in url:
            protocol, rest = url.split('://', 1)
            if '@' in rest:
                auth, host = rest.rsplit('@', 1)
                if ':' in auth:
                    user, _ = auth.split(':', 1)
                    return f"{protocol}://{user}:***@{host}"
        return url
