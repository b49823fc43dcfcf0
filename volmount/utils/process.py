"""Process invoker for mount/unmount helper commands"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from typing import Dict, List, Optional

from volmount.utils.logger import get_logger

LOG = get_logger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit code and captured output of a helper process"""
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error_output(self, default: str = 'Unknown error') -> str:
        """Combined diagnostic output, stderr first."""
        return self.stderr.strip() or self.stdout.strip() or default


class ProcessInvoker:
    """Runs external helpers (mount, umount, rclone, sshfs) asynchronously."""

    def __init__(self, binaries: Optional[Dict[str, str]] = None,
                 kill_on_cancel: bool = False,
                 env: Optional[Dict[str, str]] = None):
        """
        Args:
            binaries: Overrides mapping helper name to absolute path
            kill_on_cancel: Kill the child when the awaiting task is cancelled
                            (for example by a timeout)
            env: Extra environment variables for every helper
        """
        self.binaries = {k: v for k, v in (binaries or {}).items() if v}
        self.kill_on_cancel = kill_on_cancel
        self.env = env or {}

    def resolve_binary(self, name: str) -> str:
        if name in self.binaries:
            return self.binaries[name]
        return shutil.which(name) or name

    async def run(self, cmd: List[str], input_text: Optional[str] = None,
                  env: Optional[Dict[str, str]] = None) -> ProcessResult:
        """
        Run a command and capture its output.

        Args:
            cmd: Command as list of strings; cmd[0] is resolved via resolve_binary
            input_text: Data written to the child's stdin
            env: Extra environment variables for this call

        Returns:
            ProcessResult. Spawn failures are reported as returncode -1.
        """
        argv = [self.resolve_binary(cmd[0])] + list(cmd[1:])

        child_env = None
        if self.env or env:
            child_env = dict(os.environ)
            child_env.update(self.env)
            child_env.update(env or {})

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=child_env,
            )
        except OSError as e:
            LOG.error(f"Failed to start {cmd[0]}: {e}")
            return ProcessResult(returncode=-1, stderr=str(e))

        try:
            stdout, stderr = await process.communicate(
                input_text.encode() if input_text is not None else None
            )
        except asyncio.CancelledError:
            if self.kill_on_cancel and process.returncode is None:
                LOG.warning(f"Killing {cmd[0]} (pid {process.pid}) after cancellation")
                process.kill()
                await process.wait()
            raise

        return ProcessResult(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors='replace') if stdout else '',
            stderr=stderr.decode(errors='replace') if stderr else '',
        )
