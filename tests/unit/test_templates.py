"""Tests for .env and compose rendering"""

from pathlib import Path

import yaml

from n8ndeploy import templates

DOMAIN = "https://example-static.ngrok-free.app"


def parse_env(text):
    values = {}
    for line in text.splitlines():
        if line and not line.startswith("#"):
            key, value = line.split("=", 1)
            values[key] = value
    return values


class TestEnvFile:
    def test_exact_keys(self, config):
        values = parse_env(templates.render_env(config))

        assert list(values) == [
            "N8N_DATA_HOST_PATH",
            "N8N_PUBLIC_URL",
            "EDITOR_BASE_URL",
            "WEBHOOK_URL",
            "N8N_DEFAULT_BINARY_DATA_MODE",
            "N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE",
            "N8N_RUNNERS_ENABLED",
            "NGROK_AUTHTOKEN",
        ]

    def test_urls_and_flags(self, config):
        values = parse_env(templates.render_env(config))

        assert values["N8N_PUBLIC_URL"] == DOMAIN
        assert values["EDITOR_BASE_URL"] == DOMAIN + "/"
        assert values["WEBHOOK_URL"] == DOMAIN + "/"
        assert values["N8N_DEFAULT_BINARY_DATA_MODE"] == "filesystem"
        assert values["N8N_RUNNERS_ENABLED"] == "true"
        assert values["NGROK_AUTHTOKEN"] == "tok_123"
        assert values["N8N_DATA_HOST_PATH"] == config["n8n"]["data_path"]

    def test_trailing_slash_not_doubled(self, config):
        config["ngrok"]["domain"] = DOMAIN + "/"
        values = parse_env(templates.render_env(config))

        assert values["N8N_PUBLIC_URL"] == DOMAIN
        assert values["WEBHOOK_URL"] == DOMAIN + "/"

    def test_write_overwrites(self, config):
        path = Path(config["files"]["env"])
        path.write_text("STALE=1\n")

        templates.write_env_file(config)
        assert "STALE" not in path.read_text()
        assert "WEBHOOK_URL=" in path.read_text()


class TestComposeFile:
    def test_service_definition(self, config):
        manifest = yaml.safe_load(templates.render_compose(config))
        service = manifest["services"]["n8n"]

        assert manifest["version"] == "3.7"
        assert service["image"] == "n8nio/n8n:latest"
        assert service["container_name"] == "n8n"
        assert service["restart"] == "always"
        assert service["mem_limit"] == "2048m"
        assert service["mem_reservation"] == "1024m"
        assert service["ports"] == ["5678:5678"]
        assert service["volumes"] == ["${N8N_DATA_HOST_PATH}:/home/node/.n8n"]
        assert service["networks"] == ["default"]
        assert manifest["networks"] == {"default": {"driver": "bridge"}}

    def test_environment_interpolation(self, config):
        service = templates.build_compose(config)["services"]["n8n"]

        assert service["environment"][0] == "NODE_OPTIONS=--max_old_space_size=1500"
        assert "WEBHOOK_URL=${WEBHOOK_URL}" in service["environment"]
        assert "N8N_RUNNERS_ENABLED=${N8N_RUNNERS_ENABLED}" in service["environment"]
        assert len(service["environment"]) == 6

    def test_port_and_image_from_config(self, config):
        config["n8n"]["port"] = "8080"
        config["n8n"]["image"] = "n8nio/n8n:1.64.0"
        service = templates.build_compose(config)["services"]["n8n"]

        assert service["ports"] == ["8080:8080"]
        assert service["image"] == "n8nio/n8n:1.64.0"

    def test_write_compose_file(self, config):
        path = templates.write_compose_file(config)
        assert yaml.safe_load(path.read_text())["services"]["n8n"]["container_name"] == "n8n"
