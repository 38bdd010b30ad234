"""
Tests for the container entrypoint.

Every external effect (commands, processes, HTTP, exec) goes through an
injected double, so the sequence runs against a temporary home directory.
"""
import json
import logging
import os
from pathlib import Path

import httpx
import pytest
from git import GitConfigParser

from conftest import FakeProbe, RecordingRunner
from core.exceptions import CommandExecError, ToolNotFoundError
from core.process import CommandResult
from runner import entrypoint as entrypoint_module
from runner.entrypoint import Entrypoint, main


class FakeProcess:
    def __init__(self, returncode=None, pid=4242):
        self.returncode = returncode
        self.pid = pid

    def poll(self):
        return self.returncode


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code


class Recorder:
    """Callable that remembers its calls and returns a fixed value."""

    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[tuple, dict]] = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.error:
            raise self.error
        return self.result


VERSION_RESULTS = {
    ("claude", "--version"): CommandResult(0, "1.0.30 (Claude Code)\n"),
    ("go", "version"): CommandResult(0, "go version go1.22.1 linux/amd64\n"),
    ("python3", "--version"): CommandResult(0, "Python 3.12.2\n"),
    ("node", "--version"): CommandResult(0, "v20.11.1\n"),
}


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner(VERSION_RESULTS)


@pytest.fixture
def make_entrypoint(settings, runner, tmp_path):
    """Build an Entrypoint with every collaborator replaced."""

    def factory(probe=None, **overrides) -> Entrypoint:
        kwargs = dict(
            probe=probe or FakeProbe(tools=dict.fromkeys(["claude", "go", "python3", "node"], "")),
            runner=runner,
            spawn=Recorder(FakeProcess()),
            http_get=Recorder(FakeResponse(200)),
            sleep=Recorder(),
            execvp=Recorder(),
            gitconfig_path=tmp_path / "gitconfig",
            health_report_path=tmp_path / "health-check.json",
            otel_log_path=tmp_path / "otelcol.log",
        )
        kwargs.update(overrides)
        return Entrypoint(kwargs.pop("settings", settings), **kwargs)

    return factory


class TestOtelCollector:
    """Test collector start-up."""

    def test_disabled(self, settings, make_entrypoint):
        ep = make_entrypoint(settings=settings.model_copy(update={"enable_otel": False}))

        assert ep.start_otel_collector() is False
        assert ep.spawn.calls == []

    def test_missing_config(self, settings, make_entrypoint, tmp_path):
        ep = make_entrypoint(settings=settings.model_copy(update={"otel_config_path": tmp_path / "none.yaml"}))

        assert ep.start_otel_collector() is False
        assert ep.spawn.calls == []

    def test_started(self, settings, make_entrypoint, tmp_path):
        config = tmp_path / "otel.yaml"
        config.write_text("receivers: {}\n")
        ep = make_entrypoint(settings=settings.model_copy(update={"otel_config_path": config}))

        assert ep.start_otel_collector() is True

        (argv,), kwargs = ep.spawn.calls[0]
        assert argv == ["otelcol", f"--config={config}"]
        assert kwargs["start_new_session"] is True
        assert ep.sleep.calls == [((2.0,), {})]
        (url,), _ = ep.http_get.calls[0]
        assert url == "http://localhost:8889/metrics"

    def test_exited_immediately(self, settings, make_entrypoint, tmp_path):
        config = tmp_path / "otel.yaml"
        config.write_text("receivers: {}\n")
        ep = make_entrypoint(
            settings=settings.model_copy(update={"otel_config_path": config}),
            spawn=Recorder(FakeProcess(returncode=1)),
        )

        assert ep.start_otel_collector() is False
        assert ep.http_get.calls == []

    def test_metrics_probe_errors_only_warn(self, make_entrypoint):
        ep = make_entrypoint(http_get=Recorder(error=httpx.ConnectError("refused")))
        assert ep.probe_metrics_endpoint() is False

        ep = make_entrypoint(http_get=Recorder(FakeResponse(503)))
        assert ep.probe_metrics_endpoint() is False


class TestVerifyTools:
    """Test the toolchain verification."""

    def test_versions_recorded(self, make_entrypoint):
        ep = make_entrypoint()

        versions = ep.verify_tools()

        assert versions["claude"] == "1.0.30 (Claude Code)"
        assert versions["go"] == "go1.22.1"
        assert versions["python3"] == "3.12.2"
        assert versions["node"] == "v20.11.1"
        assert "act" not in versions

    def test_missing_required_tool(self, make_entrypoint):
        ep = make_entrypoint(probe=FakeProbe(tools={"claude": "", "python3": ""}))

        with pytest.raises(ToolNotFoundError, match="Go not found!"):
            ep.verify_tools()


class TestWorkspaceAndIdentity:
    """Test workspace, git and MCP preparation."""

    def test_prepare_workspace_creates_and_enters(self, settings, make_entrypoint, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        workspace = tmp_path / "new-workspace"
        ep = make_entrypoint(settings=settings.model_copy(update={"workspace": workspace}))

        ep.prepare_workspace()

        assert workspace.is_dir()
        assert Path(os.getcwd()) == workspace.resolve()

    def test_git_identity_defaults(self, make_entrypoint, tmp_path):
        ep = make_entrypoint()

        ep.configure_git()

        reader = GitConfigParser(str(tmp_path / "gitconfig"), read_only=True)
        assert reader.get_value("user", "name") == "Claude Code Runner"
        assert reader.get_value("user", "email") == "claude@zeeke-ai.local"

    def test_git_identity_kept(self, make_entrypoint, tmp_path):
        (tmp_path / "gitconfig").write_text("[user]\n\tname = Existing Person\n")
        ep = make_entrypoint()

        ep.configure_git()

        reader = GitConfigParser(str(tmp_path / "gitconfig"), read_only=True)
        assert reader.get_value("user", "name") == "Existing Person"
        assert reader.get_value("user", "email") == "claude@zeeke-ai.local"

    def write_mcp(self, settings, servers: dict) -> Path:
        path = settings.mcp_config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"mcpServers": servers}, indent=2))
        return path

    def test_mcp_skill_seeker_rewritten(self, settings, make_entrypoint):
        path = self.write_mcp(settings, {
            "skill-seeker": {"command": "python3", "args": ["/old/mcp/server.py", "--stdio"], "cwd": "/old"},
            "terraform": {"command": "terraform-mcp-server"},
        })
        ep = make_entrypoint(settings=settings.model_copy(update={"skill_seekers_path": "/mnt/Skill_Seekers"}))

        assert ep.configure_mcp() is True

        data = json.loads(path.read_text())
        server = data["mcpServers"]["skill-seeker"]
        assert server["args"] == ["/mnt/Skill_Seekers/mcp/server.py", "--stdio"]
        assert server["cwd"] == "/mnt/Skill_Seekers"
        assert data["mcpServers"]["terraform"] == {"command": "terraform-mcp-server"}

    def test_mcp_missing_skill_seeker_entry(self, settings, make_entrypoint):
        path = self.write_mcp(settings, {"terraform": {"command": "terraform-mcp-server"}})
        before = path.read_text()
        ep = make_entrypoint(settings=settings.model_copy(update={"skill_seekers_path": "/mnt/Skill_Seekers"}))

        assert ep.configure_mcp() is False
        assert path.read_text() == before

    def test_mcp_untouched_without_path(self, settings, make_entrypoint):
        path = self.write_mcp(settings, {"skill-seeker": {"command": "python3", "args": ["/old"]}})
        before = path.read_text()

        assert make_entrypoint().configure_mcp() is False
        assert path.read_text() == before

    def test_mcp_missing_file(self, make_entrypoint):
        assert make_entrypoint().configure_mcp() is False


class TestCommands:
    """Test go modules, credentials and preflight."""

    def test_go_modules_only_with_go_mod(self, settings, make_entrypoint, runner):
        ep = make_entrypoint()
        ep.download_go_modules()
        assert not runner.called_with("go", "mod", "download")

        (settings.workspace / "go.mod").write_text("module example.com/x\n")
        ep.download_go_modules()
        assert runner.called_with("go", "mod", "download")

    def test_go_modules_failure_warns(self, settings, make_entrypoint, caplog):
        (settings.workspace / "go.mod").write_text("module example.com/x\n")
        failing = RecordingRunner({("go", "mod"): CommandResult(1, "", "network unreachable")})
        caplog.set_level(logging.WARNING)

        make_entrypoint(runner=failing).download_go_modules()

        assert "go mod download failed" in caplog.text

    def test_credentials(self, settings, make_entrypoint, runner, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "stale")
        ep = make_entrypoint(settings=settings.model_copy(update={
            "github_token": "ghp_token",
            "anthropic_api_key": "sk-ant-key",
        }))

        ep.configure_credentials()

        argv, kwargs = runner.calls[-1]
        assert argv == ["gh", "auth", "login", "--with-token"]
        assert kwargs["input"] == "ghp_token"
        assert os.environ["ANTHROPIC_API_KEY"] == "sk-ant-key"

    def test_no_credentials(self, make_entrypoint, runner):
        make_entrypoint().configure_credentials()
        assert runner.calls == []

    def test_preflight_gofmt_and_actionlint(self, settings, make_entrypoint, caplog):
        workspace = settings.workspace
        (workspace / "go.mod").write_text("module example.com/x\n")
        workflows = workspace / ".github" / "workflows"
        workflows.mkdir(parents=True)
        (workflows / "ci.yml").write_text("on: push\n")
        runner = RecordingRunner({
            ("gofmt",): CommandResult(0, "main.go\n"),
            ("actionlint",): CommandResult(1, "ci.yml:1:1: bad"),
        })
        probe = FakeProbe(tools={"actionlint": ""})
        caplog.set_level(logging.INFO)

        make_entrypoint(probe=probe, runner=runner).run_preflight()

        assert runner.commands[0] == ["gofmt", "-l", "."]
        assert runner.commands[1] == ["actionlint", str(workflows / "ci.yml")]
        assert "Some Go files need formatting" in caplog.text
        assert "Some workflows have validation warnings" in caplog.text

    def test_preflight_clean(self, settings, make_entrypoint, caplog):
        (settings.workspace / "go.mod").write_text("module example.com/x\n")
        caplog.set_level(logging.INFO)

        make_entrypoint(runner=RecordingRunner()).run_preflight()

        assert "Go code is properly formatted" in caplog.text

    def test_preflight_disabled(self, settings, make_entrypoint, runner):
        (settings.workspace / "go.mod").write_text("module example.com/x\n")
        make_entrypoint(settings=settings.model_copy(update={"run_preflight": False})).run_preflight()
        assert runner.calls == []


class TestInventoryAndHealth:
    """Test inventory counts and the start-up health report."""

    def test_inventory(self, settings, make_entrypoint):
        agents = settings.claude_home / ".claude" / "agents"
        (agents / "nested").mkdir(parents=True)
        (agents / "reviewer.md").write_text("x")
        (agents / "nested" / "planner.yml").write_text("x")
        (agents / "notes.txt").write_text("x")
        skills = settings.claude_home / ".claude" / "skills"
        (skills / "aws").mkdir(parents=True)
        (skills / "terraform").mkdir()
        (skills / "aws-docs.md").write_text("x")
        workflows = settings.workspace / ".github" / "workflows"
        workflows.mkdir(parents=True)
        (workflows / "ci.yml").write_text("x")
        (workflows / "release.yaml").write_text("x")

        counts = make_entrypoint().report_inventory()

        assert counts == {"agents": 2, "skills": 2, "workflows": 1}

    def test_checkpoint_settings_logged(self, settings, make_entrypoint, caplog):
        path = settings.assistant_config_path
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"checkpoint": {"auto": False, "threshold": 0.7}}))
        caplog.set_level(logging.INFO)

        make_entrypoint().report_inventory()

        assert "Checkpoints: auto=False threshold=0.7" in caplog.text

    def test_invalid_assistant_config_warns(self, settings, make_entrypoint, caplog):
        path = settings.assistant_config_path
        path.parent.mkdir(parents=True)
        path.write_text("{broken")
        caplog.set_level(logging.WARNING)

        assert make_entrypoint().report_inventory() == {}
        assert "Ignoring assistant config" in caplog.text

    def test_health_report_written(self, make_entrypoint, tmp_path):
        ep = make_entrypoint(probe=FakeProbe())

        report = ep.run_health_check()

        assert report.healthy
        data = json.loads((tmp_path / "health-check.json").read_text())
        assert data["status"] == "healthy"
        assert list(data["checks"])[0] == "claude_cli"


class TestRun:
    """Test the full sequence and the hand-off."""

    def test_exec_shell_by_default(self, make_entrypoint):
        ep = make_entrypoint()
        ep.exec_command([])
        assert ep.execvp.calls == [(("/bin/bash", ["/bin/bash"]), {})]

    def test_exec_command(self, make_entrypoint):
        ep = make_entrypoint()
        ep.exec_command(["act", "-l"])
        assert ep.execvp.calls == [(("act", ["act", "-l"]), {})]

    def test_exec_failure_is_wrapped(self, make_entrypoint):
        ep = make_entrypoint(execvp=Recorder(error=FileNotFoundError(2, "No such file or directory")))

        with pytest.raises(CommandExecError, match="Failed to execute command nope") as excinfo:
            ep.exec_command(["nope"])
        assert isinstance(excinfo.value.cause, FileNotFoundError)

    def test_full_sequence(self, settings, make_entrypoint, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        ep = make_entrypoint(settings=settings.model_copy(update={"enable_otel": False}), probe=FakeProbe())

        ep.run(["echo", "ready"])

        assert (tmp_path / "health-check.json").is_file()
        assert (tmp_path / "gitconfig").is_file()
        assert ep.execvp.calls == [(("echo", ["echo", "ready"]), {})]

    def test_missing_tool_stops_before_exec(self, settings, make_entrypoint, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        ep = make_entrypoint(
            settings=settings.model_copy(update={"enable_otel": False}),
            probe=FakeProbe(tools={}),
        )

        with pytest.raises(ToolNotFoundError):
            ep.run([])
        assert ep.execvp.calls == []


def failing_run(error: Exception):
    def run(self, command):
        raise error
    return run


class TestMain:
    """Test exit codes of the entrypoint command."""

    def test_tool_error_exits_one(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setattr(entrypoint_module.Entrypoint, "run", failing_run(ToolNotFoundError("claude", "Claude Code")))
        assert main([]) == 1

    def test_exec_failure_exits_127(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        error = CommandExecError("nope", FileNotFoundError("nope"))
        monkeypatch.setattr(entrypoint_module.Entrypoint, "run", failing_run(error))
        assert main(["nope"]) == 127

    def test_startup_os_error_exits_one(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setattr(entrypoint_module.Entrypoint, "run", failing_run(PermissionError(13, "Permission denied")))

        assert main([]) == 1
        out = capsys.readouterr().out
        assert "Start-up failed" in out
        assert "Permission denied" in out
