"""
Tests for SystemProbe against fake cgroup and /proc trees.
"""
import shutil
from collections import namedtuple
from pathlib import Path

import pytest

from runner.system import GIB, SystemProbe

DiskUsage = namedtuple("DiskUsage", "total used free")


def make_probe(tmp_path: Path) -> SystemProbe:
    v1 = tmp_path / "v1"
    v2 = tmp_path / "v2"
    return SystemProbe(
        cgroup_v1=(str(v1 / "limit"), str(v1 / "usage")),
        cgroup_v2=(str(v2 / "max"), str(v2 / "current")),
        proc_root=str(tmp_path / "proc"),
    )


def write(path: Path, content) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)


class TestMemory:
    """Test cgroup memory accounting."""

    def test_cgroup_v1(self, tmp_path):
        write(tmp_path / "v1" / "limit", "1000\n")
        write(tmp_path / "v1" / "usage", "255\n")
        assert make_probe(tmp_path).memory_usage_percent() == 25

    def test_cgroup_v2_fallback(self, tmp_path):
        write(tmp_path / "v2" / "max", "2000\n")
        write(tmp_path / "v2" / "current", "1700\n")
        assert make_probe(tmp_path).memory_usage_percent() == 85

    def test_v1_takes_precedence(self, tmp_path):
        write(tmp_path / "v1" / "limit", "100")
        write(tmp_path / "v1" / "usage", "10")
        write(tmp_path / "v2" / "max", "100")
        write(tmp_path / "v2" / "current", "90")
        assert make_probe(tmp_path).memory_usage_percent() == 10

    def test_unlimited(self, tmp_path):
        write(tmp_path / "v2" / "max", "max\n")
        write(tmp_path / "v2" / "current", "1700\n")
        assert make_probe(tmp_path).memory_usage_percent() is None

        write(tmp_path / "v1" / "limit", str(9223372036854771712))
        write(tmp_path / "v1" / "usage", "1700")
        assert make_probe(tmp_path).memory_usage_percent() is None

    def test_unavailable(self, tmp_path):
        assert make_probe(tmp_path).memory_usage_percent() is None


class TestProcesses:
    """Test command-line matching over /proc."""

    def test_match_full_command_line(self, tmp_path):
        write(tmp_path / "proc" / "4242" / "cmdline", b"otelcol\0--config=/etc/otel/config.yaml\0")
        write(tmp_path / "proc" / "self" / "cmdline", b"nginx\0")
        probe = make_probe(tmp_path)

        assert probe.process_running("otelcol")
        assert probe.process_running("--config=/etc/otel")
        assert not probe.process_running("nginx")

    def test_missing_proc(self, tmp_path):
        assert not make_probe(tmp_path).process_running("otelcol")


class TestFilesystem:
    """Test disk and directory checks."""

    def test_disk_free_rounds_up(self, tmp_path, monkeypatch):
        monkeypatch.setattr(shutil, "disk_usage", lambda path: DiskUsage(10 * GIB, 8 * GIB, GIB + GIB // 2))
        assert make_probe(tmp_path).disk_free_gb("/") == 2

    def test_disk_free_exact(self, tmp_path, monkeypatch):
        monkeypatch.setattr(shutil, "disk_usage", lambda path: DiskUsage(10 * GIB, 9 * GIB, GIB))
        assert make_probe(tmp_path).disk_free_gb("/") == 1

    def test_writable_dir(self, tmp_path):
        probe = make_probe(tmp_path)
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        assert probe.is_writable_dir(tmp_path)
        assert not probe.is_writable_dir(file_path)
        assert not probe.is_writable_dir(tmp_path / "missing")

    @pytest.mark.parametrize("name", ["sh", "ls"])
    def test_which(self, tmp_path, name):
        assert make_probe(tmp_path).which(name)
