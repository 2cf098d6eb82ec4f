"""CLI error handling helpers."""

from pathlib import Path
from typing import Any

import click
import yaml

from bankrec.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def load_mapping_file(ctx: click.Context, path: str) -> dict[str, Any]:
    """Load a YAML (or JSON) file holding a mapping, or exit with a CLI error.

    JSON is a subset of YAML, so one loader serves both.
    """
    try:
        with open(Path(path), encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        click.echo(f"Error: Invalid YAML in {path}: {e}", err=True)
        ctx.exit(1)
    if data is None:
        return {}
    if not isinstance(data, dict):
        click.echo(f"Error: {path} must contain a mapping", err=True)
        ctx.exit(1)
    return data
