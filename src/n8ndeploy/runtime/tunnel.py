"""ngrok agent process control"""

import subprocess
import time
from typing import Any, Dict

from rich.console import Console

from n8ndeploy.api.client import AgentClient, APIError
from n8ndeploy.config.manager import ngrok_hostname
from n8ndeploy.errors import CommandError, DeployError
from n8ndeploy.installer.bootstrap import run_command, sudo

console = Console()

# pkill returns before the old agent releases its session.
KILL_GRACE_SECONDS = 1.0

TUNNEL_TIMEOUT_SECONDS = 15.0
POLL_INTERVAL_SECONDS = 0.5


def tunnel_command(domain: str, port: int) -> list:
    # The detached agent has no terminal for a sudo password prompt.
    return sudo(["ngrok", "http", f"--domain={ngrok_hostname(domain)}", str(port)], non_interactive=True)


def kill_agents(grace: float = KILL_GRACE_SECONDS) -> None:
    """Terminate any running ngrok agent; no agent is not an error"""
    console.print("[dim]Terminating any existing ngrok process...[/dim]")
    run_command(sudo(["pkill", "ngrok"]), check=False)
    if grace:
        time.sleep(grace)


def start_tunnel(domain: str, port: int) -> subprocess.Popen:
    """Launch ngrok detached from this process.

    The agent gets its own session so it outlives the CLI and ignores
    the terminal's Ctrl+C. Use :func:`wait_for_tunnel` to confirm it came up.
    """
    cmd = tunnel_command(domain, port)
    console.print(f"[dim]Executing: {' '.join(cmd)} &[/dim]")

    try:
        return subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError:
        raise CommandError(cmd, 127, f"{cmd[0]}: command not found")


def wait_for_tunnel(
    proc: subprocess.Popen,
    domain: str,
    agent: AgentClient,
    timeout: float = TUNNEL_TIMEOUT_SECONDS,
    interval: float = POLL_INTERVAL_SECONDS,
) -> Dict[str, Any]:
    """Block until the agent reports a tunnel for ``domain``.

    Raises DeployError if the agent process exits or the tunnel does not
    appear within ``timeout`` seconds.
    """
    console.print(f"[dim]Waiting for the ngrok agent at {agent.base_url}...[/dim]")
    deadline = time.monotonic() + timeout
    last_error = ""

    while True:
        returncode = proc.poll()
        if returncode is not None:
            raise DeployError(
                f"ngrok exited with code {returncode}. "
                "Check the authtoken, the domain and that sudo does not need a password."
            )

        try:
            tunnel = agent.find_tunnel(domain)
        except APIError as e:
            tunnel = None
            last_error = str(e)

        if tunnel:
            return tunnel

        if time.monotonic() >= deadline:
            break
        time.sleep(interval)

    message = f"ngrok tunnel for {ngrok_hostname(domain)} did not come up within {timeout:g}s"
    if last_error:
        message += f" ({last_error})"
    raise DeployError(message)
