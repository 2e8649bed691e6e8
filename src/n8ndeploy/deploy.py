"""Deployment workflows behind the CLI verbs"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from n8ndeploy.api.client import AgentClient, APIError, check_public_url
from n8ndeploy.archive import human_size, unpack_data
from n8ndeploy.config.manager import public_url
from n8ndeploy.errors import CommandError, DeployError
from n8ndeploy.gdrive import download_archive, prompt_url, resolve_file_id
from n8ndeploy.installer.bootstrap import install_dependencies, set_data_ownership
from n8ndeploy.runtime.compose import Compose
from n8ndeploy.runtime.tunnel import kill_agents, start_tunnel, wait_for_tunnel
from n8ndeploy.templates import SERVICE_NAME, write_compose_file, write_env_file

console = Console()


def write_config_files(config: Dict[str, Any]) -> None:
    write_env_file(config)
    write_compose_file(config)


def regenerate_files(config: Dict[str, Any]) -> None:
    """Delete and recreate the .env and compose files"""
    for key in ("env", "compose"):
        Path(config["files"][key]).unlink(missing_ok=True)
    write_config_files(config)


def prepare_data(config: Dict[str, Any], file_id: str) -> None:
    """Download the data archive and unpack it into the host data path"""
    console.print("\n[bold cyan]Preparing n8n Persistent Data[/bold cyan]")

    data_path = Path(config["n8n"]["data_path"])
    if not data_path.is_dir():
        data_path.mkdir(parents=True)
        console.print(f"[green]✓[/green] Created persistent data directory: {data_path}")

    archive = Path(config["gdrive"]["archive_name"])
    download_archive(file_id, archive)
    console.print(f"[green]✓[/green] Download complete (file size: {human_size(archive.stat().st_size)})")

    unpack_data(archive, data_path)


def start_containers(compose: Compose) -> None:
    console.print("\n[bold cyan]Starting n8n Deployment[/bold cyan]")

    compose.down(check=False)

    try:
        compose.pull()
    except CommandError as e:
        console.print(f"[yellow]⚠ Image pull failed, using cached images: {e}[/yellow]")

    try:
        compose.up()
    except CommandError as e:
        raise DeployError(f"Deployment failed. Check Docker status. ({e})") from e


def deploy(
    config: Dict[str, Any],
    url: Optional[str] = None,
    mode: str = "auto",
    skip_install: bool = False,
    skip_download: bool = False,
    prompt: Callable[[str], str] = prompt_url,
    agent: Optional[AgentClient] = None,
) -> None:
    """Full start sequence: data, dependencies, files, containers, tunnel"""
    file_id = None
    if not skip_download:
        file_id = resolve_file_id(
            url=url,
            mode=mode,
            url_file=Path(config["gdrive"]["url_file"]),
            prompt=prompt,
        )

    if skip_install:
        console.print("[dim]Skipping dependency installation[/dim]")
    else:
        install_dependencies(config["ngrok"]["authtoken"])

    console.print("\n[bold cyan]Writing Configuration Files[/bold cyan]")
    write_config_files(config)

    if file_id:
        prepare_data(config, file_id)
    else:
        Path(config["n8n"]["data_path"]).mkdir(parents=True, exist_ok=True)

    set_data_ownership(Path(config["n8n"]["data_path"]))

    start_containers(Compose(Path(config["files"]["compose"])))

    port = int(config["n8n"]["port"])
    console.print("\n[green]✓ Step 1/2: n8n container deployment completed[/green]")
    console.print(f"n8n is running on host port {port}.")

    console.print("\n[bold cyan]Starting ngrok Tunnel (detached)[/bold cyan]")
    kill_agents()
    domain = config["ngrok"]["domain"]
    proc = start_tunnel(domain, port)
    wait_for_tunnel(proc, domain, agent or AgentClient(config["ngrok"]["api_url"]))
    console.print("[green]✓[/green] ngrok tunnel started in the background")

    console.print()
    console.print(
        Panel(
            f"[bold]{public_url(config)}[/bold]",
            title="✓ Step 2/2: Access your n8n instance at",
            border_style="green",
        )
    )


def stop_deployment(config: Dict[str, Any]) -> None:
    """Kill the tunnel, then take the containers down"""
    console.print("[bold cyan]Stopping Deployment[/bold cyan]")

    console.print("Stopping background ngrok process...")
    kill_agents(grace=0)

    compose = Compose(Path(config["files"]["compose"]))
    if compose.exists():
        compose.down()
        console.print("[green]✓[/green] n8n container stopped and removed")
    else:
        console.print(f"[yellow]No {compose.compose_file} found. Skipping Docker stop.[/yellow]")


def show_logs(config: Dict[str, Any]) -> None:
    """Follow the n8n container logs until interrupted"""
    compose = Compose(Path(config["files"]["compose"]))
    if not compose.exists():
        raise DeployError(f"{compose.compose_file} not found. Run 'start' first.")

    console.print("[bold cyan]n8n Container Logs[/bold cyan] [dim](Ctrl+C to exit)[/dim]")
    try:
        compose.logs(SERVICE_NAME)
    except KeyboardInterrupt:
        console.print("\n[yellow]Log stream closed[/yellow]")


def collect_status(
    config: Dict[str, Any],
    agent: Optional[AgentClient] = None,
    check_url: Callable[[str], bool] = check_public_url,
) -> Dict[str, Any]:
    """Gather compose, container, tunnel and public endpoint state"""
    compose = Compose(Path(config["files"]["compose"]))
    agent = agent or AgentClient(config["ngrok"]["api_url"])
    domain = config["ngrok"]["domain"]

    status: Dict[str, Any] = {
        "compose_file": compose.exists(),
        "container_running": False,
        "tunnel": None,
        "tunnel_error": "",
        "public_url": public_url(config) if domain else "",
        "public_reachable": False,
        "healthy": False,
    }

    if status["compose_file"]:
        status["container_running"] = compose.is_running(SERVICE_NAME)

    if domain:
        try:
            tunnel = agent.find_tunnel(domain)
            status["tunnel"] = tunnel.get("public_url") if tunnel else None
        except APIError as e:
            status["tunnel_error"] = str(e)
        status["public_reachable"] = check_url(status["public_url"])

    status["healthy"] = is_healthy(status)
    return status


def is_healthy(status: Dict[str, Any]) -> bool:
    """Compose file, container, tunnel and public URL all up"""
    return all(
        [
            status["compose_file"],
            status["container_running"],
            status["tunnel"],
            status["public_reachable"],
        ]
    )


def print_status(status: Dict[str, Any]) -> bool:
    """Render a status table; True when everything is up"""

    def status_icon(value):
        return "[green]✓[/green]" if value else "[red]✗[/red]"

    table = Table(title="n8n Deployment Status")
    table.add_column("Check", style="cyan")
    table.add_column("Status")

    table.add_row("Compose file present", status_icon(status["compose_file"]))
    table.add_row("Container running", status_icon(status["container_running"]))
    table.add_row("Tunnel active", status_icon(status["tunnel"]))
    if status["tunnel_error"]:
        table.add_row("Tunnel error", status["tunnel_error"])
    table.add_row("Public URL reachable", status_icon(status["public_reachable"]))
    if status["public_url"]:
        table.add_row("Public URL", status["public_url"])

    console.print(table)

    return is_healthy(status)
