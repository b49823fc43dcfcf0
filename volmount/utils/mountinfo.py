"""Mount-table inspector"""

import re
from typing import List, Optional

import aiofiles

from volmount.models.schemas import MountTableEntry
from volmount.utils.exceptions import HelperProcessException
from volmount.utils.logger import get_logger
from volmount.utils.process import ProcessInvoker
from volmount.utils.system import LINUX, detect_platform, normalize_path

LOG = get_logger(__name__)

DEFAULT_PROC_MOUNTS = '/proc/self/mounts'

_OCTAL_ESCAPE = re.compile(r'\\([0-7]{3})')

# "<device> on <mount point> type <fstype> (<options>)"  (util-linux mount)
_MOUNT_TYPE_LINE = re.compile(r'^(?P<device>.+?) on (?P<mount_point>.+?) type (?P<fstype>\S+) \((?P<options>.*)\)$')

# "<device> on <mount point> (<fstype>, <options>)"  (BSD / macOS mount)
_MOUNT_BSD_LINE = re.compile(r'^(?P<device>.+?) on (?P<mount_point>.+?) \((?P<fstype>[^,)]+)(?:, (?P<options>[^)]*))?\)$')


def _unescape(field: str) -> str:
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_proc_mounts(content: str) -> List[MountTableEntry]:
    """Parse /proc/mounts formatted content."""
    entries = []
    for line in content.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        entries.append(MountTableEntry(
            mount_point=_unescape(parts[1]),
            fstype=parts[2],
            device=_unescape(parts[0]),
            options=parts[3] if len(parts) > 3 else '',
        ))
    return entries


def parse_mount_output(output: str) -> List[MountTableEntry]:
    """Parse the output of the mount(8) utility (util-linux or BSD format)."""
    entries = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        match = _MOUNT_TYPE_LINE.match(line) or _MOUNT_BSD_LINE.match(line)
        if not match:
            LOG.debug(f"Skipping unparsable mount line: {line}")
            continue
        entries.append(MountTableEntry(
            mount_point=match.group('mount_point'),
            fstype=match.group('fstype').strip(),
            device=match.group('device'),
            options=(match.group('options') or '').strip(),
        ))
    return entries


class MountTableInspector:
    """Queries the live OS mount table. Nothing is cached between calls."""

    def __init__(self, process_invoker: Optional[ProcessInvoker] = None,
                 platform_name: Optional[str] = None,
                 proc_mounts_path: str = DEFAULT_PROC_MOUNTS):
        self.process_invoker = process_invoker or ProcessInvoker()
        self.platform_name = platform_name or detect_platform()
        self.proc_mounts_path = proc_mounts_path

    async def list_mounts(self) -> List[MountTableEntry]:
        """Return every entry of the current mount table."""
        if self.platform_name == LINUX:
            async with aiofiles.open(self.proc_mounts_path, 'r') as f:
                content = await f.read()
            return parse_proc_mounts(content)

        result = await self.process_invoker.run(['mount'])
        if not result.ok:
            raise HelperProcessException(
                f"Failed to read mount table: {result.error_output()}",
                result.returncode, result.stdout, result.stderr
            )
        return parse_mount_output(result.stdout)

    async def get_mount_for_path(self, path: str) -> Optional[MountTableEntry]:
        """
        Get the mount table entry whose mount point is exactly path.

        A path located underneath a mount point does not match. For stacked
        mounts the most recent (last listed) entry wins.

        Args:
            path: Path to look up

        Returns:
            MountTableEntry or None
        """
        target = normalize_path(path)
        found = None
        for entry in await self.list_mounts():
            if normalize_path(entry.mount_point) == target:
                found = entry
        return found
