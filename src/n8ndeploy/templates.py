"""Rendering of the .env file and the docker compose manifest"""

from pathlib import Path
from typing import Any, Dict

import yaml
from rich.console import Console

from n8ndeploy.config.manager import public_url

console = Console()

COMPOSE_VERSION = "3.7"
SERVICE_NAME = "n8n"
CONTAINER_DATA_PATH = "/home/node/.n8n"

# Keys passed through to the container by ${VAR} interpolation from .env
PASSTHROUGH_KEYS = [
    "EDITOR_BASE_URL",
    "WEBHOOK_URL",
    "N8N_DEFAULT_BINARY_DATA_MODE",
    "N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE",
    "N8N_RUNNERS_ENABLED",
]

RULE = "# " + "-" * 70


def env_values(config: Dict[str, Any]) -> Dict[str, str]:
    """Key/value pairs written to the environment file, in file order"""
    url = public_url(config)
    return {
        "N8N_DATA_HOST_PATH": str(config["n8n"]["data_path"]),
        "N8N_PUBLIC_URL": url,
        "EDITOR_BASE_URL": f"{url}/",
        "WEBHOOK_URL": f"{url}/",
        "N8N_DEFAULT_BINARY_DATA_MODE": "filesystem",
        "N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE": "true",
        "N8N_RUNNERS_ENABLED": "true",
        "NGROK_AUTHTOKEN": config["ngrok"]["authtoken"],
    }


def render_env(config: Dict[str, Any]) -> str:
    values = env_values(config)

    def line(key: str) -> str:
        return f"{key}={values[key]}"

    lines = [
        RULE,
        "# N8N CONFIGURATION (static ngrok domain)",
        RULE,
        line("N8N_DATA_HOST_PATH"),
        line("N8N_PUBLIC_URL"),
        "",
        "# n8n environment variables using the static public URL",
        *(line(key) for key in PASSTHROUGH_KEYS),
        "",
        RULE,
        "# NGROK CONFIGURATION (host install)",
        RULE,
        line("NGROK_AUTHTOKEN"),
    ]
    return "\n".join(lines) + "\n"


def build_compose(config: Dict[str, Any]) -> Dict[str, Any]:
    """Compose manifest for the single n8n service"""
    n8n = config["n8n"]
    port = int(n8n["port"])

    environment = [f"NODE_OPTIONS=--max_old_space_size={n8n['node_heap_mb']}"]
    environment += [f"{key}=${{{key}}}" for key in PASSTHROUGH_KEYS]

    service = {
        "image": n8n["image"],
        "container_name": n8n["container_name"],
        "restart": "always",
        # Node migrations get OOM-killed (exit 137) without headroom.
        "mem_limit": n8n["mem_limit"],
        "mem_reservation": n8n["mem_reservation"],
        "environment": environment,
        "volumes": [f"${{N8N_DATA_HOST_PATH}}:{CONTAINER_DATA_PATH}"],
        "ports": [f"{port}:{port}"],
        "networks": ["default"],
    }

    return {
        "version": COMPOSE_VERSION,
        "services": {SERVICE_NAME: service},
        "networks": {"default": {"driver": "bridge"}},
    }


def render_compose(config: Dict[str, Any]) -> str:
    return yaml.safe_dump(build_compose(config), default_flow_style=False, sort_keys=False)


def write_env_file(config: Dict[str, Any]) -> Path:
    """Write the environment file, replacing any previous one"""
    path = Path(config["files"]["env"])
    console.print(f"[cyan]Creating {path}[/cyan]")
    path.write_text(render_env(config))
    console.print(f"[green]✓[/green] {path} created")
    console.print(f"[yellow]⚠ n8n is configured for the static domain: {public_url(config)}[/yellow]")
    return path


def write_compose_file(config: Dict[str, Any]) -> Path:
    """Write the compose manifest, replacing any previous one"""
    path = Path(config["files"]["compose"])
    console.print(f"[cyan]Creating {path}[/cyan]")
    path.write_text(render_compose(config))
    console.print(f"[green]✓[/green] {path} created (with memory limits)")
    return path
