"""Rclone remote mount driver implementation"""

from typing import List

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind


class RcloneBackend(BaseVolumeBackend):
    """Driver for mounting a configured rclone remote through FUSE."""

    kind = BackendKind.RCLONE
    display_name = 'Rclone'
    fstype_label = 'Rclone'

    def build_mount_command(self) -> List[str]:
        remote_path = f"{self.config.remote}:{self.config.path}"
        args = ['rclone', 'mount', remote_path, self.path, '--daemon']

        if self.config.read_only:
            args.append('--read-only')

        args.extend(['--vfs-cache-mode', 'writes'])
        args.append('--allow-non-empty')
        args.append('--allow-other')
        return args

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()
        await self._run_helper(self.build_mount_command())

    def fstype_matches(self, fstype: str) -> bool:
        # fuse.rclone
        return 'rclone' in fstype
