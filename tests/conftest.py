"""Shared fixtures: in-memory mount table and a recording process invoker"""

import asyncio
import os

import pytest

from volmount.drivers import BackendDependencies, create_backend
from volmount.lock_manager import VolumeLockManager
from volmount.models.schemas import MountTableEntry
from volmount.services.secret_manager import SecretResolver
from volmount.utils.process import ProcessResult
from volmount.utils.system import normalize_path

MOUNT_HELPERS = ('mount', 'sshfs', 'rclone')


class FakeMountTable:
    """Stand-in for the OS mount table"""

    def __init__(self):
        self.entries = []

    def add(self, mount_point, fstype, device='fake'):
        self.entries.append(MountTableEntry(mount_point=mount_point, fstype=fstype, device=device))

    def remove(self, mount_point):
        target = normalize_path(mount_point)
        for entry in reversed(self.entries):
            if normalize_path(entry.mount_point) == target:
                self.entries.remove(entry)
                return


class FakeInspector:
    """MountTableInspector over a FakeMountTable"""

    def __init__(self, table):
        self.table = table
        self.queries = 0

    async def list_mounts(self):
        return list(self.table.entries)

    async def get_mount_for_path(self, path):
        self.queries += 1
        target = normalize_path(path)
        found = None
        for entry in self.table.entries:
            if normalize_path(entry.mount_point) == target:
                found = entry
        return found


class FakeProcessInvoker:
    """
    Records every helper invocation.

    A successful mount helper adds an entry for every expected mount path
    named in its arguments; umount removes the entry for its last argument.
    Queued failures are returned first, in order.
    """

    def __init__(self, table):
        self.table = table
        self.calls = []
        self.failures = []
        self.hang = False
        self.targets = {}

    def expect_mount(self, path, fstype):
        self.targets[path] = fstype

    async def run(self, cmd, input_text=None, env=None):
        self.calls.append((list(cmd), input_text))
        if self.hang:
            await asyncio.sleep(3600)
        if self.failures:
            return self.failures.pop(0)
        if cmd[0] == 'umount':
            self.table.remove(cmd[-1])
        elif cmd[0] in MOUNT_HELPERS:
            for path, fstype in self.targets.items():
                if path in cmd:
                    self.table.add(path, fstype)
        return ProcessResult(returncode=0)

    def commands(self, name=None):
        return [cmd for cmd, _ in self.calls if name is None or cmd[0] == name]


@pytest.fixture
def mount_table():
    return FakeMountTable()


@pytest.fixture
def inspector(mount_table):
    return FakeInspector(mount_table)


@pytest.fixture
def invoker(mount_table):
    return FakeProcessInvoker(mount_table)


@pytest.fixture
def deps(tmp_path, inspector, invoker):
    return BackendDependencies(
        inspector=inspector,
        process_invoker=invoker,
        secret_resolver=SecretResolver(),
        lock_manager=VolumeLockManager(lock_dir=None, timeout=5),
        operation_timeout_ms=2000,
        platform_name='linux',
        key_dir=str(tmp_path / 'keys'),
    )


@pytest.fixture
def volume_path(tmp_path):
    return os.path.join(str(tmp_path), 'volumes', 'vol1', '_data')


@pytest.fixture
def make_backend(deps, invoker, volume_path):
    """Build a driver whose successful mounts show up with the given fstype."""

    def factory(config, fstype=None, path=None):
        path = path or volume_path
        if fstype:
            invoker.expect_mount(path, fstype)
        return create_backend(config, path, deps)

    return factory
