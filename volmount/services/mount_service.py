"""Mount service - name-based facade over the backend drivers"""

from datetime import datetime, timezone
from typing import Optional

from volmount.config import VolumeEngineConfig
from volmount.drivers import BackendDependencies, BaseVolumeBackend, create_backend
from volmount.models.schemas import (
    BackendKind, OperationOutcome, VolumeRecord, VolumeRepository, VolumeStatus
)
from volmount.utils.logger import get_logger
from volmount.utils.system import get_volume_path

LOG = get_logger(__name__)


class MountService:
    """
    Mount, unmount and health-check volumes by name.

    Looks the volume up in the repository, derives its mount path, builds a
    fresh backend driver and records the outcome on the volume's record.
    """

    def __init__(self, config: VolumeEngineConfig, repository: VolumeRepository,
                 deps: Optional[BackendDependencies] = None):
        self.config = config
        self.repository = repository
        self.deps = deps or BackendDependencies.from_config(config)

    def get_mount_path(self, volume: VolumeRecord) -> str:
        if volume.config.backend == BackendKind.LOCAL:
            return volume.config.path
        return get_volume_path(self.config.mount_base_path, volume.name)

    def get_backend(self, volume: VolumeRecord) -> BaseVolumeBackend:
        return create_backend(volume.config, self.get_mount_path(volume), self.deps)

    async def mount_volume(self, name: str) -> OperationOutcome:
        """Handle mount request"""
        volume = self.repository.get_volume(name)
        LOG.info(f"Mounting volume {name} ({volume.config.backend.value})")
        outcome = await self.get_backend(volume).mount()
        self.record_outcome(name, outcome)
        return outcome

    async def unmount_volume(self, name: str) -> OperationOutcome:
        """Handle unmount request"""
        volume = self.repository.get_volume(name)
        LOG.info(f"Unmounting volume {name} ({volume.config.backend.value})")
        outcome = await self.get_backend(volume).unmount()
        self.record_outcome(name, outcome)
        return outcome

    async def check_volume_health(self, name: str) -> OperationOutcome:
        volume = self.repository.get_volume(name)
        outcome = await self.get_backend(volume).check_health()
        if volume.status == VolumeStatus.UNMOUNTED and outcome.is_not_mounted:
            # Expected state of a volume that was unmounted on request
            self.record_outcome(name, OperationOutcome.unmounted())
        else:
            self.record_outcome(name, outcome)
        return outcome

    def record_outcome(self, name: str, outcome: OperationOutcome):
        if outcome.error:
            LOG.warning(f"Volume {name} is {outcome.status.value}: {outcome.error}")
        else:
            LOG.info(f"Volume {name} is {outcome.status.value}")
        self.repository.record_outcome(name, outcome, datetime.now(timezone.utc).replace(tzinfo=None))
