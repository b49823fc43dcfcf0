"""Local directory backend"""

from typing import List

import aiofiles.os

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind, OperationOutcome
from volmount.utils.exceptions import ConfigurationException, VolumeException
from volmount.utils.logger import get_logger
from volmount.utils.sanitize import to_message
from volmount.utils.timeout import with_timeout

LOG = get_logger(__name__)


class LocalBackend(BaseVolumeBackend):
    """
    A plain directory on the host.

    Nothing is attached to the mount table: mount only makes sure the
    directory exists, unmount never touches it, and the health check only
    verifies that it is an accessible directory.
    """

    kind = BackendKind.LOCAL
    display_name = 'Local'
    fstype_label = 'directory'
    supported_platforms = None

    async def _mount(self) -> OperationOutcome:
        try:
            self._check_config()
        except ConfigurationException as e:
            LOG.error(str(e))
            return OperationOutcome.failed(str(e))

        try:
            await with_timeout(self._ensure_mount_dir(), self.deps.operation_timeout_ms, "Local mount")
        except Exception as e:
            message = to_message(e)
            LOG.error(f"Error preparing local volume {self.path}: {message}")
            return OperationOutcome.failed(message)

        return await self._check_health()

    async def _unmount(self) -> OperationOutcome:
        LOG.debug(f"Local volume at {self.path} has nothing to unmount.")
        return OperationOutcome.unmounted()

    async def _check_health(self) -> OperationOutcome:
        async def run() -> OperationOutcome:
            try:
                is_dir = await aiofiles.os.path.isdir(self.path)
                await aiofiles.os.listdir(self.path)
            except OSError as e:
                raise VolumeException(f"Path {self.path} is not accessible: {e.strerror or e}")
            if not is_dir:
                raise VolumeException(f"Path {self.path} is not a directory.")
            return OperationOutcome.mounted()

        try:
            return await with_timeout(run(), self.deps.operation_timeout_ms, "Local health check")
        except Exception as e:
            message = to_message(e)
            LOG.error(f"Local volume health check failed: {message}")
            return OperationOutcome.failed(message)

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()

    def fstype_matches(self, fstype: str) -> bool:
        return True
