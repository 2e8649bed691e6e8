"""Container and tunnel runtime control."""

from .compose import Compose
from .tunnel import kill_agents, start_tunnel, wait_for_tunnel

__all__ = [
    "Compose",
    "kill_agents",
    "start_tunnel",
    "wait_for_tunnel",
]
