"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from pocketledger.domain.account import AccountService
from pocketledger.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, owner_id: str, account: str | int) -> int:
    """Resolve an account name or ID to an account ID.

    Raises:
        NotFoundError: If no account of the owner matches
    """
    try:
        account_id = int(account)
    except (ValueError, TypeError):
        # Not a number, treat as name
        account_id = None

    if account_id is not None:
        return account_service.require_account(owner_id, account_id).id

    for acc in account_service.list_accounts(owner_id):
        if acc.name == account:
            return acc.id
    raise NotFoundError(f"Account '{account}' not found")


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int | None
) -> int | None:
    """Resolve an optional account name or ID, or exit with a CLI error."""
    if account is None:
        return None
    try:
        return resolve_account(account_service, ctx.obj["owner"], account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
