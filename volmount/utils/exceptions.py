"""Custom exceptions for volmount"""


class VolumeException(Exception):
    """Base exception for volmount"""
    pass


class ConfigurationException(VolumeException):
    """Exception raised for configuration errors or misrouted backend configs"""
    pass


class PlatformUnsupportedException(VolumeException):
    """Exception raised when a protocol is not available on this OS"""
    pass


class VolumeNotMountedException(VolumeException):
    """Sentinel raised by health checks when nothing is mounted at the path"""
    pass


class FilesystemTypeMismatchException(VolumeException):
    """Exception raised when another filesystem occupies the mount point"""

    def __init__(self, path: str, expected: str, found: str):
        self.path = path
        self.expected = expected
        self.found = found
        super().__init__(
            f"Path {path} is not mounted as {expected} (found {found})."
        )


class OperationTimeoutException(VolumeException):
    """Exception raised when a bounded operation exceeds its deadline"""

    def __init__(self, label: str, timeout_ms: int):
        self.label = label
        self.timeout_ms = timeout_ms
        super().__init__(f"{label} timed out")


class HelperProcessException(VolumeException):
    """Exception raised when a mount/unmount helper exits non-zero"""

    def __init__(self, message: str, returncode: int = -1,
                 stdout: str = '', stderr: str = ''):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class SecretResolutionException(VolumeException):
    """Exception raised when a credential reference cannot be resolved"""
    pass


class LockTimeoutException(VolumeException):
    """Exception raised when a volume lock cannot be acquired in time"""
    pass


class VolumeNotFoundException(VolumeException):
    """Exception raised when a volume record is not found"""
    pass


class DatabaseException(VolumeException):
    """Exception raised for database errors"""
    pass
