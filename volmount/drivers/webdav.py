"""WebDAV mount driver implementation (davfs2)"""

from typing import List

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind

DAVFS_TYPES = ('davfs', 'fuse', 'fuse.davfs')


class WebDAVBackend(BaseVolumeBackend):
    """Driver for WebDAV shares mounted through mount.davfs."""

    kind = BackendKind.WEBDAV
    display_name = 'WebDAV'
    fstype_label = 'WebDAV'

    def source_url(self) -> str:
        scheme = 'https' if self.config.ssl else 'http'
        path = self.config.path if self.config.path.startswith('/') else f"/{self.config.path}"
        return f"{scheme}://{self.config.server}:{self.config.port}{path}"

    def build_mount_command(self) -> List[str]:
        uid, gid = self._owner()
        options = [f"uid={uid}", f"gid={gid}", "file_mode=0664", "dir_mode=0775"]
        if self.config.read_only:
            options.append("ro")
        return ['mount', '-t', 'davfs', self.source_url(), self.path, '-o', ','.join(options)]

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()

        username = self.config.username or ''
        password = await self._resolve(self.config.password, secrets)

        # mount.davfs prompts for username then password
        input_text = f"{username}\n{password or ''}\n"
        await self._run_helper(self.build_mount_command(), input_text=input_text, secrets=secrets)

    def fstype_matches(self, fstype: str) -> bool:
        return fstype in DAVFS_TYPES
