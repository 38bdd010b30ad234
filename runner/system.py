"""
Read-only access to the ambient state the readiness check inspects.

SystemProbe is the single seam between the checks and the machine: binaries
on PATH, version commands, disk, cgroup memory accounting, running processes
and directory permissions. Tests substitute a fake with the same methods.
"""

import math
import os
import shutil
from pathlib import Path

from config.defaults import (
    CGROUP_V1_LIMIT,
    CGROUP_V1_USAGE,
    CGROUP_V2_LIMIT,
    CGROUP_V2_USAGE,
)
from core.process import CommandResult, run_command, which

GIB = 1024 ** 3

# cgroup v1 reports "no limit" as a huge page-aligned number
_UNLIMITED_V1 = 2 ** 60


def _read_int(path: Path) -> int | None:
    try:
        text = path.read_text().strip()
    except OSError:
        return None
    if not text.isdigit():
        return None
    return int(text)


class SystemProbe:
    """Live probe of the local machine."""

    def __init__(
        self,
        cgroup_v1: tuple[str, str] = (CGROUP_V1_LIMIT, CGROUP_V1_USAGE),
        cgroup_v2: tuple[str, str] = (CGROUP_V2_LIMIT, CGROUP_V2_USAGE),
        proc_root: str = "/proc",
    ):
        self.cgroup_v1 = tuple(Path(p) for p in cgroup_v1)
        self.cgroup_v2 = tuple(Path(p) for p in cgroup_v2)
        self.proc_root = Path(proc_root)

    def which(self, name: str) -> str | None:
        return which(name)

    def run(self, args: list[str]) -> CommandResult:
        return run_command(args)

    def disk_free_gb(self, path: str = "/") -> int:
        """Free space in whole GiB, rounded up like `df -BG`."""
        usage = shutil.disk_usage(path)
        return math.ceil(usage.free / GIB)

    def memory_usage_percent(self) -> int | None:
        """
        Container memory usage as an integer percentage of its limit.

        Returns None when neither cgroup v1 nor v2 accounting is readable, or
        when the container has no memory limit.
        """
        for limit_path, usage_path in (self.cgroup_v1, self.cgroup_v2):
            if not (limit_path.is_file() and usage_path.is_file()):
                continue
            limit = _read_int(limit_path)
            usage = _read_int(usage_path)
            # "max" in cgroup v2 fails _read_int and means unlimited
            if limit is None or usage is None or limit <= 0 or limit >= _UNLIMITED_V1:
                return None
            return usage * 100 // limit
        return None

    def process_running(self, pattern: str) -> bool:
        """True if any process command line contains pattern, like `pgrep -f`."""
        own_pid = str(os.getpid())
        try:
            entries = list(self.proc_root.iterdir())
        except OSError:
            return False

        for entry in entries:
            if not entry.name.isdigit() or entry.name == own_pid:
                continue
            try:
                raw = (entry / "cmdline").read_bytes()
            except OSError:
                continue
            cmdline = raw.replace(b"\0", b" ").decode("utf-8", errors="replace")
            if pattern in cmdline:
                return True
        return False

    def is_writable_dir(self, path: Path) -> bool:
        return path.is_dir() and os.access(path, os.W_OK)

    def is_file(self, path: Path) -> bool:
        return path.is_file()
