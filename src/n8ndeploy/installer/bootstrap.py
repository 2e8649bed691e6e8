"""Host provisioning: apt packages, Docker, ngrok"""

import getpass
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

import httpx
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from n8ndeploy.errors import CommandError, DeployError

console = Console()

BASE_PACKAGES = [
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
    "python3-pip",
    "python3-venv",
    "unzip",
    "git",
]

DOCKER_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]

DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_SOURCES = "/etc/apt/sources.list.d/docker.list"

NGROK_KEY_URL = "https://ngrok-agent.s3.amazonaws.com/ngrok.asc"
NGROK_KEYRING = "/etc/apt/trusted.gpg.d/ngrok.asc"
NGROK_SOURCES = "/etc/apt/sources.list.d/ngrok.list"
NGROK_REPO_LINE = "deb https://ngrok-agent.s3.amazonaws.com bookworm main"

CONTAINER_UID = 1000

_verbose = False


def set_verbose(flag: bool) -> None:
    """Echo captured command output as well as the command line"""
    global _verbose
    _verbose = flag


def sudo(cmd: List[str], non_interactive: bool = False) -> List[str]:
    """Prefix with sudo unless already running as root.

    ``non_interactive`` adds ``-n`` so sudo fails instead of prompting.
    """
    if os.geteuid() == 0:
        return list(cmd)
    if non_interactive:
        return ["sudo", "-n", *cmd]
    return ["sudo", *cmd]


def run_command(
    cmd: List[str],
    check: bool = True,
    capture: bool = True,
    input: Optional[str] = None,
    cwd: Optional[Path] = None,
    display: Optional[List[str]] = None,
) -> subprocess.CompletedProcess:
    """Run a command and return the result.

    ``display`` replaces the echoed command line, for commands carrying secrets.
    """
    console.print(f"[dim]Running: {' '.join(display or cmd)}[/dim]")

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            input=input,
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        message = f"{cmd[0]}: command not found"
        if check:
            raise CommandError(display or cmd, 127, message)
        return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=message)

    if capture and _verbose and result.stdout:
        console.print(f"[dim]{escape(result.stdout.rstrip())}[/dim]")

    if check and result.returncode != 0:
        console.print(f"[red]Command failed with code {result.returncode}[/red]")
        if result.stderr:
            console.print(f"[red]stderr: {escape(result.stderr.rstrip())}[/red]")
        raise CommandError(display or cmd, result.returncode, result.stderr)

    return result


def check_prerequisite(name: str) -> bool:
    """Check if a binary is on PATH."""
    return shutil.which(name) is not None


def fetch_key(url: str) -> str:
    """Download an ASCII-armored apt signing key"""
    console.print(f"[dim]Fetching {url}[/dim]")
    try:
        response = httpx.get(url, follow_redirects=True, timeout=30.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise DeployError(f"Could not fetch signing key from {url}: {e}") from e
    return response.text


def apt_update() -> None:
    run_command(sudo(["apt", "update"]))


def apt_install(packages: List[str]) -> None:
    run_command(sudo(["apt", "install", "-y", *packages]))


def install_docker() -> None:
    """Install Docker Engine and the compose plugin from Docker's apt repo"""
    console.print("Installing Docker...")

    run_command(sudo(["mkdir", "-p", str(Path(DOCKER_KEYRING).parent)]))
    run_command(
        sudo(["gpg", "--dearmor", "--yes", "-o", DOCKER_KEYRING]),
        input=fetch_key(DOCKER_GPG_URL),
    )

    arch = run_command(["dpkg", "--print-architecture"]).stdout.strip()
    codename = run_command(["lsb_release", "-cs"]).stdout.strip()
    repo_line = (
        f"deb [arch={arch} signed-by={DOCKER_KEYRING}] "
        f"https://download.docker.com/linux/ubuntu {codename} stable\n"
    )
    run_command(sudo(["tee", DOCKER_SOURCES]), input=repo_line)

    apt_update()
    apt_install(DOCKER_PACKAGES)

    if run_command(["getent", "group", "docker"], check=False).returncode != 0:
        run_command(sudo(["groupadd", "docker"]))
    user = os.environ.get("SUDO_USER") or getpass.getuser()
    run_command(sudo(["usermod", "-aG", "docker", user]))

    console.print("[green]✓[/green] Docker installed")


def install_ngrok() -> None:
    """Install the ngrok agent from its apt repo"""
    console.print("Installing ngrok...")

    run_command(sudo(["tee", NGROK_KEYRING]), input=fetch_key(NGROK_KEY_URL))
    run_command(sudo(["tee", NGROK_SOURCES]), input=NGROK_REPO_LINE + "\n")
    apt_update()
    apt_install(["ngrok"])

    console.print("[green]✓[/green] ngrok installed")


def configure_ngrok(authtoken: str) -> None:
    console.print("[cyan]Configuring ngrok authtoken[/cyan]")
    cmd = sudo(["ngrok", "config", "add-authtoken"])
    run_command(cmd + [authtoken], display=cmd + ["****"])
    console.print("[green]✓[/green] ngrok authtoken configured on host")


def install_dependencies(authtoken: str) -> None:
    """Install system packages, Docker and ngrok, then register the authtoken"""
    console.print("\n[bold cyan]Installing System Dependencies[/bold cyan]")
    console.print("[yellow]⚠ This requires sudo privileges to modify the system.[/yellow]")

    apt_update()
    console.print("[green]✓[/green] System package lists updated")

    apt_install(BASE_PACKAGES)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Checking docker and ngrok...", total=2)
        have_docker = check_prerequisite("docker")
        progress.update(task, advance=1)
        have_ngrok = check_prerequisite("ngrok")
        progress.update(task, advance=1)

    if have_docker:
        console.print("[green]✓[/green] Docker found. Skipping installation.")
    else:
        install_docker()

    if have_ngrok:
        console.print("[green]✓[/green] ngrok found. Skipping installation.")
    else:
        install_ngrok()

    configure_ngrok(authtoken)


def set_data_ownership(path: Path) -> bool:
    """chown the data directory to the container's node user.

    Returns False after a warning instead of raising; the container may
    still start with the existing ownership.
    """
    console.print("[cyan]Setting permissions on data directory[/cyan]")
    owner = f"{CONTAINER_UID}:{CONTAINER_UID}"

    try:
        run_command(sudo(["chown", "-R", owner, str(path)]))
    except CommandError:
        console.print(f"[yellow]⚠ Failed to set ownership (chown) on {path}. Check file system status.[/yellow]")
        return False

    console.print(f"[green]✓[/green] Set ownership ({owner}) for n8n persistence")
    return True
