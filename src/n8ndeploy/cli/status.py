"""Deployment status command"""

import sys

import click
from rich.console import Console

from n8ndeploy import deploy as workflows

console = Console()


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw status as JSON")
@click.pass_context
def status(ctx, as_json):
    """Check container, tunnel and public URL health"""
    cfg = ctx.obj["config"]

    state = workflows.collect_status(cfg)

    if as_json:
        console.print_json(data=state)
        healthy = workflows.is_healthy(state)
    else:
        healthy = workflows.print_status(state)

    # Exit with error if unhealthy
    if not healthy:
        sys.exit(1)
