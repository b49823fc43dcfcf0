"""Base volume backend driver"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import aiofiles.os

from volmount.lock_manager import VolumeLockManager
from volmount.models.schemas import (
    BackendKind, OperationOutcome, VolumeConfig, VolumeStatus, VOLUME_NOT_MOUNTED
)
from volmount.services.secret_manager import SecretResolver
from volmount.utils.exceptions import (
    ConfigurationException, FilesystemTypeMismatchException, HelperProcessException,
    LockTimeoutException, PlatformUnsupportedException, VolumeException, VolumeNotMountedException
)
from volmount.utils.logger import get_logger
from volmount.utils.mountinfo import MountTableInspector
from volmount.utils.process import ProcessInvoker, ProcessResult
from volmount.utils.sanitize import sanitize_sensitive_data, to_message
from volmount.utils.system import DARWIN, LINUX, detect_platform
from volmount.utils.timeout import OPERATION_TIMEOUT_MS, with_timeout

LOG = get_logger(__name__)

PLATFORM_NAMES = {LINUX: 'Linux', DARWIN: 'macOS'}


@dataclass
class BackendDependencies:
    """Infrastructure handed to every driver at construction"""
    inspector: MountTableInspector
    process_invoker: ProcessInvoker
    secret_resolver: SecretResolver
    lock_manager: VolumeLockManager
    operation_timeout_ms: int = OPERATION_TIMEOUT_MS
    platform_name: str = field(default_factory=detect_platform)
    key_dir: str = '/var/lib/volmount/ssh'

    @classmethod
    def from_config(cls, config) -> 'BackendDependencies':
        """Build the default dependency set from a VolumeEngineConfig."""
        platform_name = detect_platform()
        invoker = ProcessInvoker(binaries=config.binaries, kill_on_cancel=config.kill_on_timeout)
        return cls(
            inspector=MountTableInspector(
                process_invoker=invoker,
                platform_name=platform_name,
                proc_mounts_path=config.proc_mounts_path,
            ),
            process_invoker=invoker,
            secret_resolver=SecretResolver({
                'verify_ssl': config.verify_ssl,
                'auth_token': config.secret_auth_token or None,
                'request_timeout': config.secret_request_timeout,
            }),
            lock_manager=VolumeLockManager(lock_dir=config.lock_dir, timeout=config.lock_timeout),
            operation_timeout_ms=config.operation_timeout_ms,
            platform_name=platform_name,
            key_dir=config.key_dir,
        )


class BaseVolumeBackend(ABC):
    """
    Uniform mount/unmount/check_health contract.

    Public operations never raise: every failure is returned as
    OperationOutcome(status=error, error=<sanitized message>). Operations on
    the same path are serialized through the lock manager; the internal
    _mount/_unmount/_check_health variants assume the lock is already held.
    """

    kind: BackendKind = None
    display_name: str = None
    fstype_label: str = None
    # None means every platform
    supported_platforms: Optional[Sequence[str]] = (LINUX,)

    def __init__(self, config: VolumeConfig, path: str, deps: BackendDependencies):
        self.config = config
        self.path = path
        self.deps = deps

    def __repr__(self):
        return f"<{self.__class__.__name__}(path={self.path})>"

    # Public contract

    async def mount(self) -> OperationOutcome:
        try:
            async with self.deps.lock_manager.exclusive(self.path, 'mount'):
                return await self._mount()
        except LockTimeoutException as e:
            LOG.error(f"Cannot mount {self.path}: {e}")
            return OperationOutcome.failed(to_message(e))

    async def unmount(self) -> OperationOutcome:
        try:
            async with self.deps.lock_manager.exclusive(self.path, 'unmount'):
                return await self._unmount()
        except LockTimeoutException as e:
            LOG.error(f"Cannot unmount {self.path}: {e}")
            return OperationOutcome.failed(to_message(e))

    async def check_health(self) -> OperationOutcome:
        try:
            async with self.deps.lock_manager.shared(self.path, 'health check'):
                return await self._check_health()
        except LockTimeoutException as e:
            LOG.error(f"Cannot check health of {self.path}: {e}")
            return OperationOutcome.failed(to_message(e))

    async def remount(self) -> OperationOutcome:
        """Unmount then mount under a single exclusive hold of the path lock."""
        try:
            async with self.deps.lock_manager.exclusive(self.path, 'remount'):
                await self._unmount()
                return await self._mount()
        except LockTimeoutException as e:
            LOG.error(f"Cannot remount {self.path}: {e}")
            return OperationOutcome.failed(to_message(e))

    async def reconcile(self) -> OperationOutcome:
        """
        Health check and, only if the volume is in error, remount it.

        The exclusive lock is held from the health check through the
        remount, so a mount healed by another caller in between is never
        torn down.
        """
        try:
            async with self.deps.lock_manager.exclusive(self.path, 'reconcile'):
                health = await self._check_health()
                if health.status != VolumeStatus.ERROR:
                    return health
                LOG.warning(f"{self.display_name} volume at {self.path} is unhealthy "
                            f"({health.error}), remounting")
                await self._unmount()
                return await self._mount()
        except LockTimeoutException as e:
            LOG.error(f"Cannot reconcile {self.path}: {e}")
            return OperationOutcome.failed(to_message(e))

    # Shared algorithm

    async def _mount(self) -> OperationOutcome:
        LOG.debug(f"Mounting {self.display_name} volume {self.path}...")

        try:
            self._check_config()
            self._check_platform('mounting')
        except (ConfigurationException, PlatformUnsupportedException) as e:
            LOG.error(str(e))
            return OperationOutcome.failed(str(e))

        health = await self._check_health()
        if health.status == VolumeStatus.MOUNTED:
            return OperationOutcome.mounted()

        if health.status == VolumeStatus.ERROR:
            LOG.debug(f"Trying to unmount any existing mounts at {self.path} before mounting...")
            await self._unmount()

        secrets: List[str] = []
        try:
            await with_timeout(
                self._do_mount(secrets),
                self.deps.operation_timeout_ms,
                f"{self.display_name} mount"
            )
        except Exception as e:
            message = to_message(e, secrets)
            LOG.error(f"Error mounting {self.display_name} volume {self.path}: {message}")
            return OperationOutcome.failed(message)

        LOG.info(f"{self.display_name} volume at {self.path} mounted successfully.")
        return OperationOutcome.mounted()

    async def _unmount(self) -> OperationOutcome:
        try:
            self._check_platform('unmounting')
        except PlatformUnsupportedException as e:
            LOG.error(str(e))
            return OperationOutcome.failed(str(e))

        async def run() -> OperationOutcome:
            mount = await self.deps.inspector.get_mount_for_path(self.path)
            if mount is None:
                LOG.debug(f"Path {self.path} is not a mount point. Skipping unmount.")
                return OperationOutcome.unmounted()

            await self._do_unmount()
            await self._remove_mount_dir()

            LOG.info(f"{self.display_name} volume at {self.path} unmounted successfully.")
            return OperationOutcome.unmounted()

        try:
            return await with_timeout(run(), self.deps.operation_timeout_ms,
                                      f"{self.display_name} unmount")
        except Exception as e:
            message = to_message(e)
            LOG.error(f"Error unmounting {self.display_name} volume {self.path}: {message}")
            return OperationOutcome.failed(message)

    async def _check_health(self) -> OperationOutcome:
        async def run() -> OperationOutcome:
            await self._probe_access()

            mount = await self.deps.inspector.get_mount_for_path(self.path)
            if mount is None:
                raise VolumeNotMountedException(VOLUME_NOT_MOUNTED)

            if not self.fstype_matches(mount.fstype):
                raise FilesystemTypeMismatchException(self.path, self.fstype_label, mount.fstype)

            LOG.debug(f"{self.display_name} volume at {self.path} is healthy and mounted.")
            return OperationOutcome.mounted()

        try:
            return await with_timeout(run(), self.deps.operation_timeout_ms,
                                      f"{self.display_name} health check")
        except Exception as e:
            message = to_message(e)
            if message != VOLUME_NOT_MOUNTED:
                LOG.error(f"{self.display_name} volume health check failed: {message}")
            return OperationOutcome.failed(message)

    # Protocol hooks

    @abstractmethod
    async def _do_mount(self, secrets: List[str]):
        """
        Run the protocol-specific mount invocation.

        Args:
            secrets: Collects resolved plaintext values so that error
                     messages can be redacted

        Raises:
            VolumeException on failure
        """
        pass

    @abstractmethod
    def fstype_matches(self, fstype: str) -> bool:
        """Whether a mount table fstype is the one this protocol produces"""
        pass

    async def _do_unmount(self):
        await self._execute_unmount()

    # Helpers

    def platform_supported(self) -> bool:
        if self.supported_platforms is None:
            return True
        return self.deps.platform_name in self.supported_platforms

    def _check_config(self):
        if self.config.backend != self.kind:
            raise ConfigurationException(f"Provided config is not for {self.display_name} backend")

    def _check_platform(self, action: str):
        if self.platform_supported():
            return
        names = [PLATFORM_NAMES.get(p, p) for p in self.supported_platforms]
        raise PlatformUnsupportedException(
            f"{self.display_name} {action} is only supported on {' and '.join(names)} hosts."
        )

    async def _probe_access(self):
        """Raise VolumeNotMountedException if the path is absent, VolumeException on I/O errors."""
        try:
            await aiofiles.os.stat(self.path)
        except FileNotFoundError:
            raise VolumeNotMountedException(VOLUME_NOT_MOUNTED)
        except OSError as e:
            raise VolumeException(f"Cannot access {self.path}: {e.strerror or e}")

    async def _ensure_mount_dir(self):
        await aiofiles.os.makedirs(self.path, mode=0o755, exist_ok=True)

    async def _remove_mount_dir(self):
        try:
            await aiofiles.os.rmdir(self.path)
        except OSError as e:
            LOG.debug(f"Could not remove mount directory {self.path}: {e}")

    async def _resolve(self, ref: Optional[str], secrets: List[str]) -> Optional[str]:
        value = await self.deps.secret_resolver.resolve_secret(ref)
        if value:
            secrets.append(value)
        return value

    @staticmethod
    def _owner():
        return os.getuid(), os.getgid()

    async def _run_helper(self, cmd: List[str], action: str = 'mount',
                          input_text: Optional[str] = None,
                          secrets: Sequence[str] = ()) -> ProcessResult:
        LOG.info(f"Executing {cmd[0]}: {sanitize_sensitive_data(' '.join(cmd), secrets)}")
        result = await self.deps.process_invoker.run(cmd, input_text=input_text)
        if not result.ok:
            raise HelperProcessException(
                f"Failed to {action} {self.display_name} volume: {result.error_output()}",
                result.returncode, result.stdout, result.stderr
            )
        return result

    async def _execute_unmount(self):
        """umount the path, falling back to a lazy (Linux) or forced (other) unmount."""
        try:
            await self._run_helper(['umount', self.path], action='unmount')
        except HelperProcessException as e:
            fallback = '-l' if self.deps.platform_name == LINUX else '-f'
            LOG.warning(f"Normal unmount failed, retrying with umount {fallback}: {to_message(e)}")
            await self._run_helper(['umount', fallback, self.path], action='unmount')
