"""Shared fixtures: a ready config and a recording stand-in for subprocess.run"""

import subprocess

import pytest

from n8ndeploy.config.manager import ConfigManager
from n8ndeploy.installer import bootstrap


class FakeRunner:
    """Records commands and answers with canned results"""

    def __init__(self):
        self.calls = []
        self.inputs = []
        self.responses = []

    def respond(self, match, returncode=0, stdout="", stderr=""):
        """Return the given result for commands containing ``match``"""
        self.responses.append((match, returncode, stdout, stderr))

    def __call__(self, cmd, input=None, **kwargs):
        self.calls.append(list(cmd))
        self.inputs.append(input)
        line = " ".join(cmd)
        for match, returncode, stdout, stderr in self.responses:
            if match in line:
                return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def ran(self, fragment):
        return any(fragment in " ".join(cmd) for cmd in self.calls)

    def index(self, fragment):
        for i, cmd in enumerate(self.calls):
            if fragment in " ".join(cmd):
                return i
        raise AssertionError(f"command not run: {fragment}")


@pytest.fixture
def fake_run(monkeypatch):
    runner = FakeRunner()
    monkeypatch.setattr(bootstrap.subprocess, "run", runner)
    monkeypatch.setattr(bootstrap.os, "geteuid", lambda: 0)
    return runner


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Loaded config with secrets set and all paths inside tmp_path"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENV_NGROK_DOMAIN", "https://example-static.ngrok-free.app")
    monkeypatch.setenv("ENV_NGROK_TOKEN", "tok_123")
    monkeypatch.delenv("N8N_DATA_HOST_PATH", raising=False)

    cfg = ConfigManager(tmp_path / "missing.yaml").load()
    cfg["n8n"]["data_path"] = str(tmp_path / "n8n-data")
    cfg["files"]["env"] = str(tmp_path / ".env")
    cfg["files"]["compose"] = str(tmp_path / "docker-compose.yml")
    cfg["gdrive"]["url_file"] = str(tmp_path / "gdrive-cmds")
    cfg["gdrive"]["archive_name"] = str(tmp_path / "n8n-data.zip")
    return cfg


@pytest.fixture(autouse=True)
def quiet(monkeypatch):
    """Every test starts with verbose output off"""
    monkeypatch.setattr(bootstrap, "_verbose", False)
