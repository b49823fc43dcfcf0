"""NFS mount driver implementation"""

from typing import List

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind
from volmount.utils.system import DARWIN, LINUX


class NFSBackend(BaseVolumeBackend):
    """Driver for mounting NFS exports."""

    kind = BackendKind.NFS
    display_name = 'NFS'
    fstype_label = 'NFS'
    supported_platforms = (LINUX, DARWIN)

    def build_mount_command(self) -> List[str]:
        version = self.config.version
        options = [f"port={self.config.port}"]

        if self.deps.platform_name == DARWIN:
            # macOS only knows major versions and needs a privileged source port
            options.append(f"vers={version.split('.')[0]}")
            options.append("resvport")
        else:
            options.append(f"vers={version}")

        if self.config.read_only:
            options.append("ro")

        source = f"{self.config.server}:{self.config.export_path}"
        return ['mount', '-t', 'nfs', '-o', ','.join(options), source, self.path]

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()
        await self._run_helper(self.build_mount_command())

    def fstype_matches(self, fstype: str) -> bool:
        # nfs, nfs4
        return fstype.startswith('nfs')
