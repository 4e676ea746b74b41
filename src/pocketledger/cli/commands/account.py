"""Account management commands."""

import click
from pocketledger.cli.account_resolution import resolve_account_or_exit
from pocketledger.cli.error_handling import handle_domain_error
from pocketledger.domain.account import AccountService
from pocketledger.domain.entities import AccountType


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType]),
    default=AccountType.BANK.value,
    show_default=True,
    help="Account type",
)
@click.option("--balance", default="0", help="Opening balance")
@click.option("--currency", default="USD", show_default=True, help="Currency label")
@click.pass_context
def create_account(ctx, name: str, account_type: str, balance: str, currency: str):
    """Create a new account.

    Examples:
        pocketledger account create "Checking" --balance 1000
        pocketledger account create "Wallet" --type cash
    """
    service = AccountService(ctx.obj["db"])
    try:
        account_id = service.create_account(
            ctx.obj["owner"], name, account_type=account_type, balance=balance, currency=currency
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    service = AccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["owner"])
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type.value:12s} | "
            f"{acc.balance:>12,.2f} {acc.currency}"
        )


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show one account.

    ACCOUNT can be an account name or ID.
    """
    service = AccountService(ctx.obj["db"])
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(ctx.obj["owner"], account_id)
    click.echo(f"Account {acc.id}: {acc.name}")
    click.echo(f"  Type: {acc.type.value}")
    click.echo(f"  Balance: {acc.balance:,.2f} {acc.currency}")
    click.echo(f"  Created: {acc.created_at}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
