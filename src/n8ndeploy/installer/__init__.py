"""Host provisioning for n8n-deploy."""

from .bootstrap import install_dependencies, run_command, set_data_ownership, sudo

__all__ = [
    "install_dependencies",
    "run_command",
    "set_data_ownership",
    "sudo",
]
