"""Turn domain errors into CLI output and exit codes."""

import logging

import click

from pocketledger.domain.errors import DomainError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: ValueError) -> None:
    """Print ``Error: <message>`` on stderr and exit with status 1.

    Every DomainError is a ValueError, so a plain ValueError raised outside
    the services is rendered the same way; it is also logged with its
    traceback at DEBUG.
    """
    if not isinstance(error, DomainError):
        logger.debug("Unexpected %s in command", type(error).__name__, exc_info=error)
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
