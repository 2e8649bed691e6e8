#!/usr/bin/env python3
"""n8n-deploy CLI - Main entry point"""

from pathlib import Path

import click
import yaml
from rich.console import Console

from n8ndeploy.config.manager import DEFAULT_CONFIG_FILE, ConfigManager
from n8ndeploy.errors import ConfigError
from n8ndeploy.installer.bootstrap import set_verbose

console = Console()


@click.group()
@click.option("--config", type=click.Path(dir_okay=False), help="Config file path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config, verbose):
    """Deploy n8n with pre-populated data behind an ngrok static domain"""
    ctx.ensure_object(dict)

    config_path = Path(config) if config else Path(DEFAULT_CONFIG_FILE)
    try:
        cfg = ConfigManager(config_path).load()
    except (ConfigError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/red] Invalid config file {config_path}: {e}")
        raise click.Abort()

    verbose = verbose or str(cfg.get("logging", {}).get("level", "")).lower() == "debug"
    set_verbose(verbose)

    ctx.obj["config"] = cfg
    ctx.obj["verbose"] = verbose


@cli.command()
def version():
    """Show version information"""
    from n8ndeploy import __version__

    console.print(f"n8n-deploy version {__version__}")


# Import subcommands
from n8ndeploy.cli import deploy, status

cli.add_command(deploy.start)
cli.add_command(deploy.stop)
cli.add_command(deploy.logs)
cli.add_command(deploy.setup)
cli.add_command(status.status)


if __name__ == "__main__":
    cli()
