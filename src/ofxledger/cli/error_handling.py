"""CLI error handling helpers."""

import click

from ofxledger.domain.errors import CommitError, DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, CommitError) and error.retryable:
        click.echo("Nothing was imported. The same import can be retried safely.", err=True)
    ctx.exit(1)
