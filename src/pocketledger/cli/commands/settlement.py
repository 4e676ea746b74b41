"""Settlement commands."""

import click
from pocketledger.cli.date_filters import parse_date_or_exit
from pocketledger.cli.error_handling import handle_domain_error
from pocketledger.domain.settlement import SettlementService


@click.group()
def settlement_group():
    """Settle reimbursable transactions."""
    pass


@settlement_group.command("create")
@click.option("--amount", required=True, help="Amount received")
@click.option("--date", "settlement_date", default="today", show_default=True, help="Settlement date")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.option("--counterparty", help="Counterparty name")
@click.option("--notes", help="Notes")
@click.pass_context
def create_settlement(
    ctx,
    amount: str,
    settlement_date: str,
    settlement_group_id: str | None,
    counterparty: str | None,
    notes: str | None,
):
    """Distribute received money over pending reimbursable transactions.

    Examples:
        pocketledger settlement create --amount 120 --counterparty Alice
        pocketledger settlement create --amount 300 --group "Lisbon trip"
    """
    service = SettlementService(ctx.obj["db"])
    try:
        result = service.create_settlement(
            ctx.obj["owner"],
            amount,
            parse_date_or_exit(ctx, settlement_date),
            settlement_group_id=settlement_group_id,
            counterparty_name=counterparty,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created settlement {result.settlement.id} of {result.settlement.amount:,.2f}")
    for allocation in result.allocations:
        click.echo(f"  Transaction {allocation.transaction_id}: {allocation.amount:,.2f}")


@settlement_group.command("list")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.option("--counterparty", help="Counterparty name")
@click.pass_context
def list_settlements(ctx, settlement_group_id: str | None, counterparty: str | None):
    """List settlements, newest first."""
    service = SettlementService(ctx.obj["db"])
    settlements = service.get_user_settlements(
        ctx.obj["owner"], settlement_group_id=settlement_group_id, counterparty_name=counterparty
    )
    if not settlements:
        click.echo("No settlements found.")
        return
    for settlement in settlements:
        label = settlement.counterparty_name or settlement.settlement_group_id or ""
        click.echo(
            f"ID: {settlement.id:3d} | {settlement.settlement_date} | "
            f"{settlement.amount:>10,.2f} | {label}"
        )


@settlement_group.command("show")
@click.argument("settlement_id", type=int)
@click.pass_context
def show_settlement(ctx, settlement_id: int):
    """Show one settlement."""
    service = SettlementService(ctx.obj["db"])
    try:
        settlement = service.get_settlement(ctx.obj["owner"], settlement_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Settlement {settlement.id}: {settlement.amount:,.2f} on {settlement.settlement_date}")
    if settlement.counterparty_name:
        click.echo(f"  Counterparty: {settlement.counterparty_name}")
    if settlement.settlement_group_id:
        click.echo(f"  Group: {settlement.settlement_group_id}")
    if settlement.notes:
        click.echo(f"  Notes: {settlement.notes}")


@settlement_group.command("delete")
@click.argument("settlement_id", type=int)
@click.pass_context
def delete_settlement(ctx, settlement_id: int):
    """Delete a settlement record (applied reimbursements are kept)."""
    service = SettlementService(ctx.obj["db"])
    try:
        service.delete_settlement(ctx.obj["owner"], settlement_id)
        click.echo(f"Deleted settlement {settlement_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@settlement_group.command("counterparties")
@click.pass_context
def list_counterparties(ctx):
    """List counterparties of reimbursable transactions."""
    service = SettlementService(ctx.obj["db"])
    for name in service.get_counterparties(ctx.obj["owner"]):
        click.echo(name)


@settlement_group.command("groups")
@click.pass_context
def list_groups(ctx):
    """List settlement groups of reimbursable transactions."""
    service = SettlementService(ctx.obj["db"])
    for group in service.get_settlement_groups(ctx.obj["owner"]):
        click.echo(group)


def register_commands(cli):
    """Register settlement commands with main CLI."""
    cli.add_command(settlement_group, name="settlement")
