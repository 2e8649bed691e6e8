"""Configuration loading for n8n-deploy."""

from .manager import ConfigManager, ngrok_hostname, public_url, validate

__all__ = [
    "ConfigManager",
    "ngrok_hostname",
    "public_url",
    "validate",
]
