"""SMB/CIFS mount driver implementation"""

from typing import List

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind
from volmount.utils.exceptions import HelperProcessException
from volmount.utils.logger import get_logger
from volmount.utils.sanitize import to_message

LOG = get_logger(__name__)


class SMBBackend(BaseVolumeBackend):
    """Driver for mounting SMB/CIFS shares."""

    kind = BackendKind.SMB
    display_name = 'SMB'
    fstype_label = 'CIFS/SMB'

    def build_mount_args(self, password: str) -> List[str]:
        uid, gid = self._owner()
        options = [
            f"user={self.config.username}",
            f"pass={password}",
            f"port={self.config.port}",
            f"uid={uid}",
            f"gid={gid}",
        ]

        if self.config.vers and self.config.vers != 'auto':
            options.append(f"vers={self.config.vers}")

        if self.config.domain:
            options.append(f"domain={self.config.domain}")

        if self.config.read_only:
            options.append("ro")

        source = f"//{self.config.server}/{self.config.share}"
        return ['-t', 'cifs', '-o', ','.join(options), source, self.path]

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()

        password = await self._resolve(self.config.password, secrets)
        args = self.build_mount_args(password or '')

        try:
            await self._run_helper(['mount'] + args, secrets=secrets)
        except HelperProcessException as e:
            # Retry once without the mount.cifs helper
            LOG.warning(f"Initial SMB mount failed, retrying with -i flag: {to_message(e, secrets)}")
            await self._run_helper(['mount', '-i'] + args, secrets=secrets)

    def fstype_matches(self, fstype: str) -> bool:
        return fstype == 'cifs'
