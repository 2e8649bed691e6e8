"""HTTP clients for the ngrok agent and the public endpoint."""

from .client import AgentClient, APIError, NotFoundError, check_public_url

__all__ = [
    "AgentClient",
    "APIError",
    "NotFoundError",
    "check_public_url",
]
