"""Transaction management commands."""

import click
from pocketledger.cli.account_resolution import resolve_account_or_exit
from pocketledger.cli.date_filters import parse_date_or_exit, period_options, resolve_cli_date_range
from pocketledger.cli.error_handling import handle_domain_error
from pocketledger.domain.account import AccountService
from pocketledger.domain.entities import TransactionType
from pocketledger.domain.transaction import DEFAULT_PAGE_SIZE, TransactionService

TRANSACTION_TYPES = [t.value for t in TransactionType]


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.option("--amount", required=True, help="Transaction amount (always positive)")
@click.option("--date", "txn_date", default="today", show_default=True, help="Transaction date")
@click.option("--type", "transaction_type", type=click.Choice(TRANSACTION_TYPES), help="Transaction type")
@click.option("--account", help="Account name or ID")
@click.option("--to-account", help="Destination account for transfers and savings")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--description", help="Transaction description")
@click.option("--reimbursable", is_flag=True, help="Expect the amount to be paid back")
@click.option("--counterparty", help="Who owes the reimbursement")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.pass_context
def add_transaction(
    ctx,
    amount: str,
    txn_date: str,
    transaction_type: str | None,
    account: str | None,
    to_account: str | None,
    category_id: int | None,
    description: str | None,
    reimbursable: bool,
    counterparty: str | None,
    settlement_group_id: str | None,
):
    """Add a transaction and update account balances.

    The type defaults to the category's type when --type is omitted.

    Examples:
        pocketledger transaction add --amount 42.50 --type expense --account Checking
        pocketledger transaction add --amount 100 --type transfer --account Checking --to-account Wallet
        pocketledger transaction add --amount 60 --category 3 --reimbursable --counterparty Alice
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_account_or_exit(ctx, account_service, to_account)
    parsed_date = parse_date_or_exit(ctx, txn_date)

    try:
        txn = service.create_transaction(
            ctx.obj["owner"],
            amount=amount,
            transaction_date=parsed_date,
            transaction_type=transaction_type,
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            description=description,
            is_reimbursable=reimbursable,
            counterparty_name=counterparty,
            settlement_group_id=settlement_group_id,
        )
        click.echo(f"Created {txn.type.value} transaction {txn.id}: {txn.amount:,.2f}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--date", "txn_date", help="New transaction date")
@click.option("--type", "transaction_type", type=click.Choice(TRANSACTION_TYPES), help="New type")
@click.option("--account", help="Account name or ID, or empty string to detach")
@click.option("--to-account", help="Destination account name or ID")
@click.option("--category", help="Category ID, or empty string to clear")
@click.option("--description", help="New description")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    amount: str | None,
    txn_date: str | None,
    transaction_type: str | None,
    account: str | None,
    to_account: str | None,
    category: str | None,
    description: str | None,
) -> None:
    """Update a transaction.

    Updates only the fields that are provided; balances move from the old
    effect to the new one.

    Examples:
        pocketledger transaction update 1 --amount 75.00
        pocketledger transaction update 1 --category ""  # Clear category
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    clear_account = account == ""
    account_id = None if clear_account else resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_account_or_exit(ctx, account_service, to_account)

    clear_category = category == ""
    category_id = None
    if category and not clear_category:
        try:
            category_id = int(category)
        except ValueError:
            click.echo(f"Error: Invalid category ID '{category}'", err=True)
            ctx.exit(1)

    try:
        service.update_transaction(
            ctx.obj["owner"],
            transaction_id,
            amount=amount,
            transaction_type=transaction_type,
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            transaction_date=parse_date_or_exit(ctx, txn_date),
            description=description,
            clear_category=clear_category,
            clear_account=clear_account,
        )
        click.echo(f"Updated transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete a transaction and reverse its balance effect.

    Examples:
        pocketledger transaction delete 1
    """
    service = TransactionService(ctx.obj["db"])
    owner_id = ctx.obj["owner"]

    txn = service.get_transaction(owner_id, transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(
        f"Delete {txn.type.value} transaction {txn.id} of {txn.amount:,.2f} on {txn.transaction_date}?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(owner_id, transaction_id)
        click.echo(f"Deleted transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.option("--account", help="Account name or ID")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--type", "transaction_type", type=click.Choice(TRANSACTION_TYPES), help="Transaction type")
@click.option("--reimbursable", is_flag=True, default=None, help="Only reimbursable transactions")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.option("--counterparty", help="Counterparty name")
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    this_year: bool,
    last_month: bool,
    last_year: bool,
    account: str | None,
    category_id: int | None,
    transaction_type: str | None,
    reimbursable: bool | None,
    settlement_group_id: str | None,
    counterparty: str | None,
    offset: int,
    limit: int,
):
    """View transactions with optional filters, newest first."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
    )
    account_id = resolve_account_or_exit(ctx, account_service, account)

    try:
        page = service.list_transactions_page(
            ctx.obj["owner"],
            offset=offset,
            limit=limit,
            start_date=start,
            end_date=end,
            category_id=category_id,
            account_id=account_id,
            transaction_type=transaction_type,
            is_reimbursable=reimbursable or None,
            settlement_group_id=settlement_group_id,
            counterparty_name=counterparty,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not page.items:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in account_service.list_accounts(ctx.obj["owner"])}

    click.echo(f"\nShowing {len(page.items)} of {page.total} transaction(s):")
    click.echo("-" * 100)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Type':<9} {'Amount':>12}  {'Account':<20} {'Description':<30}"
    )
    click.echo("-" * 100)
    for txn in page.items:
        account_name = accounts.get(txn.account_id, "")
        description = (txn.description or "")[:30]
        marker = " *" if txn.is_reimbursable else ""
        click.echo(
            f"{txn.id:<6} {str(txn.transaction_date):<12} {txn.type.value:<9} "
            f"{txn.amount:>12,.2f}  {account_name:<20} {description:<30}{marker}"
        )


@transaction_group.command("reimbursable")
@click.argument("transaction_id", type=int)
@click.option("--counterparty", required=True, help="Who owes the reimbursement")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.pass_context
def mark_reimbursable(ctx, transaction_id: int, counterparty: str, settlement_group_id: str | None):
    """Flag a transaction as expected to be paid back.

    Examples:
        pocketledger transaction reimbursable 12 --counterparty Alice --group "Lisbon trip"
    """
    service = TransactionService(ctx.obj["db"])
    try:
        txn = service.mark_reimbursable(
            ctx.obj["owner"], transaction_id, counterparty, settlement_group_id
        )
        click.echo(f"Transaction {txn.id} is reimbursable by {txn.counterparty_name}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("summary")
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@period_options
@click.option("--account", help="Account name or ID")
@click.pass_context
def summary(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    this_year: bool,
    last_month: bool,
    last_year: bool,
    account: str | None,
):
    """Show totals per transaction type."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
    )
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    totals = service.get_summary(
        ctx.obj["owner"], start_date=start, end_date=end, account_id=account_id
    )
    if not totals:
        click.echo("No transactions found.")
        return
    for txn_type in TRANSACTION_TYPES:
        if txn_type in totals:
            click.echo(f"{txn_type.capitalize():<10} {totals[txn_type]:>14,.2f}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
