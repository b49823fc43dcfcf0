"""SFTP mount driver implementation (sshfs)"""

import hashlib
import os
from typing import List, Optional

import aiofiles
import aiofiles.os

from volmount.drivers.base import BaseVolumeBackend
from volmount.models.schemas import BackendKind
from volmount.utils.logger import get_logger

LOG = get_logger(__name__)


def _private_opener(path, flags):
    return os.open(path, flags, 0o600)


class SFTPBackend(BaseVolumeBackend):
    """
    Driver for SFTP volumes, delegated to the sshfs FUSE bridge.

    Key material is written to files readable only by the owner under the
    configured key directory. The private key file lives only for the
    duration of the mount call; the known_hosts file is kept since sshfs
    re-reads it on reconnect.
    """

    kind = BackendKind.SFTP
    display_name = 'SFTP'
    fstype_label = 'SFTP'

    def _key_basename(self) -> str:
        return hashlib.sha1(self.path.encode()).hexdigest()[:16]

    def key_file_path(self) -> str:
        return os.path.join(self.deps.key_dir, f"{self._key_basename()}.key")

    def known_hosts_path(self) -> str:
        return os.path.join(self.deps.key_dir, f"{self._key_basename()}.known_hosts")

    async def _write_private(self, path: str, content: str):
        await aiofiles.os.makedirs(self.deps.key_dir, mode=0o700, exist_ok=True)
        if not content.endswith('\n'):
            content += '\n'
        async with aiofiles.open(path, 'w', opener=_private_opener) as f:
            # An existing file keeps its old mode through O_CREAT
            os.chmod(path, 0o600)
            await f.write(content)

    def build_mount_command(self, key_file: Optional[str] = None,
                            known_hosts_file: Optional[str] = None,
                            use_password: bool = False) -> List[str]:
        uid, gid = self._owner()
        options = [
            'reconnect',
            'ServerAliveInterval=15',
            'ServerAliveCountMax=3',
            f'uid={uid}',
            f'gid={gid}',
            'allow_other',
        ]

        if self.config.skip_host_key_check:
            options.append('StrictHostKeyChecking=no')
            options.append('UserKnownHostsFile=/dev/null')
        elif known_hosts_file:
            options.append('StrictHostKeyChecking=yes')
            options.append(f'UserKnownHostsFile={known_hosts_file}')
        else:
            options.append('StrictHostKeyChecking=yes')

        if key_file:
            options.append(f'IdentityFile={key_file}')
        if use_password:
            options.append('password_stdin')
        if self.config.read_only:
            options.append('ro')

        source = f"{self.config.username}@{self.config.host}:{self.config.path}"
        return ['sshfs', source, self.path, '-p', str(self.config.port), '-o', ','.join(options)]

    async def _do_mount(self, secrets: List[str]):
        await self._ensure_mount_dir()

        password = await self._resolve(self.config.password, secrets)
        private_key = await self._resolve(self.config.private_key, secrets)

        key_file = None
        known_hosts_file = None
        if self.config.known_hosts and not self.config.skip_host_key_check:
            known_hosts_file = self.known_hosts_path()
            await self._write_private(known_hosts_file, self.config.known_hosts)

        try:
            if private_key:
                key_file = self.key_file_path()
                await self._write_private(key_file, private_key)

            cmd = self.build_mount_command(key_file, known_hosts_file, use_password=bool(password))
            input_text = f"{password}\n" if password else None
            await self._run_helper(cmd, input_text=input_text, secrets=secrets)
        finally:
            if key_file:
                try:
                    await aiofiles.os.remove(key_file)
                except OSError as e:
                    LOG.warning(f"Could not remove SFTP key file {key_file}: {e}")

    def fstype_matches(self, fstype: str) -> bool:
        return fstype == 'fuse.sshfs'
