"""Deployment lifecycle commands"""

import click
from rich.console import Console

from n8ndeploy import deploy as workflows
from n8ndeploy.config.manager import validate
from n8ndeploy.errors import DeployError

console = Console()


@click.command()
@click.option("--url", help="Google Drive URL of the data archive (skips the prompt)")
@click.option(
    "--mode",
    type=click.Choice(["auto", "manual"]),
    default="auto",
    show_default=True,
    help="Read the URL from the URL file (auto) or prompt for it (manual)",
)
@click.option("--skip-install", is_flag=True, help="Skip apt/Docker/ngrok provisioning")
@click.option("--skip-download", is_flag=True, help="Keep the existing data directory")
@click.pass_context
def start(ctx, url, mode, skip_install, skip_download):
    """Install dependencies, download data, write files, start n8n and ngrok"""
    cfg = ctx.obj["config"]

    if url and skip_download:
        raise click.BadOptionUsage("url", "--url cannot be combined with --skip-download")

    try:
        validate(cfg)
        workflows.deploy(
            cfg,
            url=url,
            mode=mode,
            skip_install=skip_install,
            skip_download=skip_download,
        )
    except DeployError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@click.command()
@click.pass_context
def stop(ctx):
    """Stop the ngrok tunnel and remove the n8n container"""
    try:
        workflows.stop_deployment(ctx.obj["config"])
    except DeployError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@click.command()
@click.pass_context
def logs(ctx):
    """Follow n8n container logs (Ctrl+C to exit)"""
    try:
        workflows.show_logs(ctx.obj["config"])
    except DeployError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@click.command()
@click.pass_context
def setup(ctx):
    """Force recreation of the .env and docker-compose.yml files"""
    cfg = ctx.obj["config"]

    try:
        validate(cfg)
        workflows.regenerate_files(cfg)
    except DeployError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()
