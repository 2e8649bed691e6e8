"""Tests for the start/stop/logs/setup/status workflows"""

import zipfile
from pathlib import Path

import httpx
import pytest

from n8ndeploy import deploy, gdrive
from n8ndeploy.api.client import AgentClient
from n8ndeploy.errors import DeployError, DownloadError

FILE_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_-0123"
URL = f"https://drive.google.com/file/d/{FILE_ID}/view?usp=sharing"


@pytest.fixture
def fake_gdown(monkeypatch):
    """gdown.download stand-in that writes a nested n8n data zip"""
    calls = []

    def download(**kwargs):
        calls.append(kwargs)
        with zipfile.ZipFile(kwargs["output"], "w") as zf:
            zf.writestr("n8n-data/database.sqlite", "db")
        return kwargs["output"]

    monkeypatch.setattr(gdrive.gdown, "download", download)
    return calls


@pytest.fixture
def tunnels(monkeypatch):
    started = []
    monkeypatch.setattr(deploy, "start_tunnel", lambda domain, port: started.append((domain, port)))
    monkeypatch.setattr(deploy, "kill_agents", lambda grace=1.0: started.append("killed"))
    monkeypatch.setattr(deploy, "wait_for_tunnel", lambda proc, domain, agent: {"public_url": domain})
    return started


class TestDeploy:
    def test_full_sequence(self, config, fake_run, fake_gdown, tunnels, monkeypatch):
        monkeypatch.setattr(deploy, "install_dependencies", lambda token: fake_run.calls.append(["install", token]))

        deploy.deploy(config, url=URL)

        assert fake_gdown[0]["id"] == FILE_ID
        data = Path(config["n8n"]["data_path"])
        assert (data / "database.sqlite").read_text() == "db"
        assert not Path(config["gdrive"]["archive_name"]).exists()
        assert Path(config["files"]["env"]).exists()
        assert Path(config["files"]["compose"]).exists()

        order = [
            fake_run.index("install tok_123"),
            fake_run.index("chown -R 1000:1000"),
            fake_run.index("down --remove-orphans"),
            fake_run.index("pull"),
            fake_run.index("up -d --build"),
        ]
        assert order == sorted(order)
        assert tunnels == ["killed", ("https://example-static.ngrok-free.app", 5678)]

    def test_reads_url_file_in_auto_mode(self, config, fake_run, fake_gdown, tunnels):
        Path(config["gdrive"]["url_file"]).write_text(URL + "\n")

        deploy.deploy(config, skip_install=True, prompt=lambda text: pytest.fail("prompted"))

        assert fake_gdown[0]["id"] == FILE_ID

    def test_bad_url_stops_before_install(self, config, fake_run, tunnels, monkeypatch):
        monkeypatch.setattr(deploy, "install_dependencies", lambda token: pytest.fail("installed"))

        with pytest.raises(DownloadError):
            deploy.deploy(config, url="https://example.com/no-id-here")

        assert fake_run.calls == []
        assert tunnels == []

    def test_up_failure_skips_tunnel(self, config, fake_run, tunnels):
        fake_run.respond("up -d", returncode=1, stderr="port is already allocated")

        with pytest.raises(DeployError, match="Check Docker status"):
            deploy.deploy(config, skip_install=True, skip_download=True)

        assert tunnels == []

    def test_pull_failure_is_not_fatal(self, config, fake_run, tunnels):
        fake_run.respond(" pull", returncode=1)

        deploy.deploy(config, skip_install=True, skip_download=True)

        assert fake_run.ran("up -d --build")
        assert len(tunnels) == 2

    def test_skip_download_creates_data_dir(self, config, fake_run, tunnels):
        deploy.deploy(config, skip_install=True, skip_download=True)

        assert Path(config["n8n"]["data_path"]).is_dir()

    def test_agent_exit_fails_deploy(self, config, fake_run, monkeypatch):
        class ExitedProcess:
            def poll(self):
                return 1

        monkeypatch.setattr(deploy, "kill_agents", lambda grace=1.0: None)
        monkeypatch.setattr(deploy, "start_tunnel", lambda domain, port: ExitedProcess())

        with pytest.raises(DeployError, match="ngrok exited with code 1"):
            deploy.deploy(config, skip_install=True, skip_download=True, agent=FakeAgent())

        assert fake_run.ran("up -d --build")


class TestStop:
    def test_stops_tunnel_and_containers(self, config, fake_run):
        Path(config["files"]["compose"]).write_text("services: {}\n")
        fake_run.respond("pkill", returncode=1)

        deploy.stop_deployment(config)

        assert fake_run.calls[0] == ["pkill", "ngrok"]
        assert fake_run.ran("down --remove-orphans")

    def test_without_compose_file(self, config, fake_run):
        deploy.stop_deployment(config)

        assert fake_run.calls == [["pkill", "ngrok"]]


class TestLogs:
    def test_requires_compose_file(self, config, fake_run):
        with pytest.raises(DeployError, match="Run 'start' first"):
            deploy.show_logs(config)

    def test_follows_n8n_service(self, config, fake_run):
        Path(config["files"]["compose"]).write_text("services: {}\n")

        deploy.show_logs(config)

        assert fake_run.calls[-1][-2:] == ["-f", "n8n"]

    def test_ctrl_c_ends_cleanly(self, config, monkeypatch):
        Path(config["files"]["compose"]).write_text("services: {}\n")

        def interrupted(self, service, follow=True):
            raise KeyboardInterrupt

        monkeypatch.setattr(deploy.Compose, "logs", interrupted)

        deploy.show_logs(config)


class TestSetup:
    def test_regenerates_files(self, config):
        env = Path(config["files"]["env"])
        compose = Path(config["files"]["compose"])
        env.write_text("OLD=1\n")
        compose.write_text("old: true\n")

        deploy.regenerate_files(config)

        assert "OLD" not in env.read_text()
        assert "services" in compose.read_text()


class FakeAgent:
    base_url = "http://127.0.0.1:4040"

    def __init__(self, tunnel=None, error=None):
        self.tunnel = tunnel
        self.error = error

    def find_tunnel(self, domain):
        if self.error:
            raise self.error
        return self.tunnel


class TestStatus:
    def test_all_up(self, config, fake_run):
        Path(config["files"]["compose"]).write_text("services: {}\n")
        fake_run.respond("ps", stdout="n8n\n")
        agent = FakeAgent({"public_url": "https://example-static.ngrok-free.app"})

        state = deploy.collect_status(config, agent=agent, check_url=lambda url: True)

        assert state["compose_file"] and state["container_running"]
        assert state["tunnel"] == "https://example-static.ngrok-free.app"
        assert deploy.print_status(state) is True

    def test_agent_down(self, config, fake_run):
        from n8ndeploy.api.client import APIError

        agent = FakeAgent(error=APIError("ngrok agent not reachable"))

        state = deploy.collect_status(config, agent=agent, check_url=lambda url: False)

        assert state["compose_file"] is False
        assert state["tunnel"] is None
        assert "not reachable" in state["tunnel_error"]
        assert deploy.print_status(state) is False
        assert fake_run.calls == []

    def test_missing_compose_file_is_unhealthy(self, config, fake_run):
        agent = FakeAgent({"public_url": "https://example-static.ngrok-free.app"})

        state = deploy.collect_status(config, agent=agent, check_url=lambda url: True)

        assert state["tunnel"] and state["public_reachable"]
        assert state["healthy"] is False
        assert deploy.is_healthy(state) is deploy.print_status(state) is False

    def test_garbled_agent_reply_is_reported(self, config, fake_run):
        agent = AgentClient(
            "http://127.0.0.1:4040",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )

        state = deploy.collect_status(config, agent=agent, check_url=lambda url: False)

        assert state["tunnel"] is None
        assert "Invalid response" in state["tunnel_error"]
