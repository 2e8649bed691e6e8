"""Configuration management for n8n-deploy"""

import copy
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from n8ndeploy.errors import ConfigError

DEFAULT_CONFIG_FILE = "n8n-deploy.yaml"

DEFAULTS: Dict[str, Any] = {
    "ngrok": {
        "domain": "",
        "authtoken": "",
        "api_url": "http://127.0.0.1:4040",
    },
    "n8n": {
        "port": 5678,
        "image": "n8nio/n8n:latest",
        "container_name": "n8n",
        "data_path": "./n8n-data",
        "mem_limit": "2048m",
        "mem_reservation": "1024m",
        "node_heap_mb": 1500,
    },
    "files": {
        "env": ".env",
        "compose": "docker-compose.yml",
    },
    "gdrive": {
        "url_file": "gdrive-cmds",
        "archive_name": "n8n-data.zip",
    },
    "logging": {
        "level": "info",
    },
}


class ConfigManager:
    """Manage n8n-deploy configuration"""

    def __init__(self, config_path: Path):
        self.config_path = config_path

    def load(self) -> Dict[str, Any]:
        """Load configuration from defaults, file and environment"""
        config = self._load_defaults()

        if self.config_path.exists():
            with open(self.config_path) as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file must contain a mapping: {self.config_path}")
            config = self._merge(config, file_config)

        config = self._apply_env_overrides(config)

        return config

    def save(self, config: Dict[str, Any]) -> None:
        """Save configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False)

    def _load_defaults(self) -> Dict[str, Any]:
        return copy.deepcopy(DEFAULTS)

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        if domain := os.getenv("ENV_NGROK_DOMAIN"):
            config["ngrok"]["domain"] = domain

        if token := os.getenv("ENV_NGROK_TOKEN"):
            config["ngrok"]["authtoken"] = token

        if data_path := os.getenv("N8N_DATA_HOST_PATH"):
            config["n8n"]["data_path"] = data_path

        return config


def validate(config: Dict[str, Any]) -> None:
    """Fail when the tunnel secrets were not supplied.

    Neither value has a default: both must come from the environment
    (``ENV_NGROK_DOMAIN``, ``ENV_NGROK_TOKEN``) or the config file.
    """
    ngrok = config.get("ngrok", {})

    if not ngrok.get("domain"):
        raise ConfigError(
            "ENV_NGROK_DOMAIN is not set. "
            "Export it first: export ENV_NGROK_DOMAIN='https://your-domain...'"
        )
    if not ngrok.get("authtoken"):
        raise ConfigError(
            "ENV_NGROK_TOKEN is not set. "
            "Export it first: export ENV_NGROK_TOKEN='your_token'"
        )

    try:
        port = int(config["n8n"]["port"])
    except (KeyError, TypeError, ValueError):
        raise ConfigError(f"n8n.port must be an integer, got {config.get('n8n', {}).get('port')!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"n8n.port out of range: {port}")


def ngrok_hostname(domain: str) -> str:
    """Strip the scheme and trailing slash from a public URL"""
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
            break
    return domain.rstrip("/")


def public_url(config: Dict[str, Any]) -> str:
    """Public base URL without a trailing slash"""
    return config["ngrok"]["domain"].rstrip("/")
