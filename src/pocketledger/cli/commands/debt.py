"""Debt management commands."""

import click
from pocketledger.cli.account_resolution import resolve_account_or_exit
from pocketledger.cli.date_filters import parse_date_or_exit
from pocketledger.cli.error_handling import handle_domain_error
from pocketledger.domain.account import AccountService
from pocketledger.domain.debt import DebtService
from pocketledger.domain.entities import DebtRole, DebtStatus, DebtView, Frequency


@click.group()
def debt_group():
    """Manage institutional and personal debts."""
    pass


def _echo_debt_row(view: DebtView) -> None:
    debt = view.debt
    party = debt.counterparty_name or ""
    click.echo(
        f"ID: {debt.id:3d} | {debt.name:20s} | {debt.role.value:13s} | {debt.status.value:8s} | "
        f"remaining {view.remaining:>10,.2f} | {view.progress:>6.2f}% | {party}"
    )


@debt_group.command("create")
@click.argument("name")
@click.option("--principal", required=True, help="Original amount")
@click.option(
    "--role",
    type=click.Choice([r.value for r in DebtRole]),
    default=DebtRole.INSTITUTIONAL.value,
    show_default=True,
)
@click.option("--account", help="Account name or ID the money moves through")
@click.option("--balance", "current_balance", help="Current balance (institutional, defaults to principal)")
@click.option("--installment", "installment_amount", help="Installment amount (institutional)")
@click.option("--frequency", type=click.Choice([f.value for f in Frequency]), help="Installment frequency")
@click.option("--start-date", help="First installment due date (institutional)")
@click.option("--term", type=int, help="Number of installments (institutional)")
@click.option("--counterparty", help="Who you lent to or borrowed from")
@click.option("--due-date", help="Date a personal debt should be settled by")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.option("--notes", help="Notes")
@click.option(
    "--transaction/--no-transaction",
    "create_transaction",
    default=None,
    help="Record the principal as a transaction (default: when --account is given)",
)
@click.option("--category", "category_id", type=int, help="Category ID for the linked transaction")
@click.pass_context
def create_debt(
    ctx,
    name: str,
    principal: str,
    role: str,
    account: str | None,
    current_balance: str | None,
    installment_amount: str | None,
    frequency: str | None,
    start_date: str | None,
    term: int | None,
    counterparty: str | None,
    due_date: str | None,
    settlement_group_id: str | None,
    notes: str | None,
    create_transaction: bool | None,
    category_id: int | None,
):
    """Create a debt.

    Examples:
        pocketledger debt create "Car loan" --principal 12000 --installment 300 --frequency monthly --start-date 2024-01-15 --account Checking
        pocketledger debt create "Dinner" --role lent --principal 40 --counterparty Bob --account Wallet
    """
    db = ctx.obj["db"]
    service = DebtService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        debt = service.create_debt(
            ctx.obj["owner"],
            name,
            principal,
            role=role,
            account_id=account_id,
            current_balance=current_balance,
            installment_amount=installment_amount,
            frequency=frequency,
            start_date=parse_date_or_exit(ctx, start_date, "start date"),
            term=term,
            counterparty_name=counterparty,
            due_date=parse_date_or_exit(ctx, due_date, "due date"),
            settlement_group_id=settlement_group_id,
            notes=notes,
            create_transaction=create_transaction,
            category_id=category_id,
        )
        click.echo(f"Created {debt.role.value} debt '{debt.name}' (ID: {debt.id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("list")
@click.option("--role", type=click.Choice([r.value for r in DebtRole]))
@click.option("--status", type=click.Choice([s.value for s in DebtStatus]))
@click.option("--counterparty", help="Counterparty name")
@click.option("--group", "settlement_group_id", help="Settlement group label")
@click.pass_context
def list_debts(ctx, role: str | None, status: str | None, counterparty: str | None, settlement_group_id: str | None):
    """List debts with remaining amount and progress."""
    service = DebtService(ctx.obj["db"])
    owner_id = ctx.obj["owner"]

    if settlement_group_id:
        views = service.get_debts_by_settlement_group(owner_id, settlement_group_id)
    else:
        views = service.get_debts(owner_id, role=role, status=status, counterparty_name=counterparty)
    if not views:
        click.echo("No debts found.")
        return
    for view in views:
        _echo_debt_row(view)


@debt_group.command("show")
@click.argument("debt_id", type=int)
@click.pass_context
def show_debt(ctx, debt_id: int):
    """Show one debt."""
    service = DebtService(ctx.obj["db"])
    try:
        view = service.get_debt(ctx.obj["owner"], debt_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    debt = view.debt
    click.echo(f"Debt {debt.id}: {debt.name} ({debt.role.value}, {debt.status.value})")
    click.echo(f"  Principal: {debt.principal:,.2f}")
    click.echo(f"  Current balance: {debt.current_balance:,.2f}")
    click.echo(f"  Remaining: {view.remaining:,.2f} ({view.progress:.2f}% paid)")
    if debt.is_institutional:
        click.echo(f"  Installment: {debt.installment_amount:,.2f} {debt.frequency.value}")
        click.echo(f"  Next due: {debt.next_due_date}")
        if debt.term:
            click.echo(f"  Term: {debt.term} installments")
    else:
        click.echo(f"  Paid: {debt.paid_amount:,.2f}  Adjustments: {debt.adjustment_total:,.2f}")
        if debt.counterparty_name:
            click.echo(f"  Counterparty: {debt.counterparty_name}")
        if debt.due_date:
            click.echo(f"  Due: {debt.due_date}")
        if debt.settlement_group_id:
            click.echo(f"  Group: {debt.settlement_group_id}")
    if debt.notes:
        click.echo(f"  Notes: {debt.notes}")


@debt_group.command("update")
@click.argument("debt_id", type=int)
@click.option("--name", help="New name")
@click.option("--account", help="Account name or ID")
@click.option("--notes", help="Notes")
@click.option("--due-date", help="New due date (personal debts)")
@click.option("--status", type=click.Choice([s.value for s in DebtStatus]), help="Override status")
@click.pass_context
def update_debt(
    ctx,
    debt_id: int,
    name: str | None,
    account: str | None,
    notes: str | None,
    due_date: str | None,
    status: str | None,
):
    """Update descriptive fields of a debt."""
    db = ctx.obj["db"]
    service = DebtService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    try:
        service.update_debt(
            ctx.obj["owner"],
            debt_id,
            name=name,
            account_id=account_id,
            notes=notes,
            due_date=parse_date_or_exit(ctx, due_date, "due date"),
            status=status,
        )
        click.echo(f"Updated debt {debt_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("delete")
@click.argument("debt_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_debt(ctx, debt_id: int, yes: bool):
    """Delete a debt with its installments and repayments.

    Transactions already recorded for the debt are kept.
    """
    service = DebtService(ctx.obj["db"])
    if not yes and not click.confirm(f"Are you sure you want to delete debt {debt_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        debt = service.delete_debt(ctx.obj["owner"], debt_id)
        click.echo(f"Deleted debt '{debt.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("catch-up")
@click.argument("debt_id", type=int)
@click.pass_context
def catch_up(ctx, debt_id: int):
    """Apply every installment of a debt that fell due before today."""
    service = DebtService(ctx.obj["db"])
    try:
        before = len(service.get_debt_updates(ctx.obj["owner"], debt_id))
        debt = service.catch_up_debt(ctx.obj["owner"], debt_id)
        applied = len(service.get_debt_updates(ctx.obj["owner"], debt_id)) - before
        click.echo(
            f"Applied {applied} installment(s) to '{debt.name}'; "
            f"balance {debt.current_balance:,.2f}, next due {debt.next_due_date}"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("catch-up-all")
@click.pass_context
def catch_up_all(ctx):
    """Apply missed installments of every institutional debt."""
    service = DebtService(ctx.obj["db"])
    try:
        debts = service.catch_up_all_debts(ctx.obj["owner"])
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not debts:
        click.echo("No institutional debts found.")
        return
    for debt in debts:
        click.echo(f"{debt.name}: balance {debt.current_balance:,.2f}, next due {debt.next_due_date}")


@debt_group.command("pay-early")
@click.argument("debt_id", type=int)
@click.pass_context
def pay_early(ctx, debt_id: int):
    """Pay the upcoming installment today."""
    service = DebtService(ctx.obj["db"])
    try:
        debt = service.pay_early(ctx.obj["owner"], debt_id)
        click.echo(
            f"Paid installment of '{debt.name}' early; "
            f"balance {debt.current_balance:,.2f}, next due {debt.next_due_date}"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("repay")
@click.argument("debt_id", type=int)
@click.option("--amount", default="0", show_default=True, help="Amount repaid")
@click.option("--adjustment", default="0", show_default=True, help="Increase (+) or decrease (-) of what is owed")
@click.option("--date", "repayment_date", help="Repayment date (defaults to today)")
@click.option("--account", help="Account the money moves through")
@click.option("--notes", help="Notes")
@click.pass_context
def repay(
    ctx,
    debt_id: int,
    amount: str,
    adjustment: str,
    repayment_date: str | None,
    account: str | None,
    notes: str | None,
):
    """Record a repayment of a personal debt.

    Examples:
        pocketledger debt repay 4 --amount 20 --account Wallet
        pocketledger debt repay 4 --adjustment -5 --notes "Forgave the tip"
    """
    db = ctx.obj["db"]
    service = DebtService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    try:
        repayment = service.add_repayment(
            ctx.obj["owner"],
            debt_id,
            amount,
            repayment_date=parse_date_or_exit(ctx, repayment_date),
            adjustment_amount=adjustment,
            notes=notes,
            account_id=account_id,
        )
        view = service.get_debt(ctx.obj["owner"], debt_id)
        click.echo(
            f"Recorded repayment {repayment.id}; remaining {view.remaining:,.2f} ({view.debt.status.value})"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("repayments")
@click.argument("debt_id", type=int)
@click.pass_context
def list_repayments(ctx, debt_id: int):
    """List repayments of a personal debt."""
    service = DebtService(ctx.obj["db"])
    try:
        repayments = service.get_repayments(ctx.obj["owner"], debt_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not repayments:
        click.echo("No repayments found.")
        return
    for repayment in repayments:
        linked = f" | txn {repayment.transaction_id}" if repayment.transaction_id else ""
        click.echo(
            f"ID: {repayment.id:3d} | {repayment.date} | {repayment.amount:>10,.2f} | "
            f"adj {repayment.adjustment_amount:>8,.2f}{linked}"
        )


@debt_group.command("delete-repayment")
@click.argument("debt_id", type=int)
@click.argument("repayment_id", type=int)
@click.pass_context
def delete_repayment(ctx, debt_id: int, repayment_id: int):
    """Undo a repayment, including its linked transaction."""
    service = DebtService(ctx.obj["db"])
    try:
        debt = service.delete_repayment(ctx.obj["owner"], debt_id, repayment_id)
        click.echo(f"Deleted repayment {repayment_id}; '{debt.name}' is {debt.status.value}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@debt_group.command("batch-repay")
@click.argument("debt_ids", type=int, nargs=-1, required=True)
@click.option("--amount", required=True, help="Total amount received or paid")
@click.option("--adjustment", default="0", show_default=True, help="Total adjustment")
@click.option("--date", "repayment_date", help="Repayment date (defaults to today)")
@click.option("--account", help="Account the money moves through")
@click.option("--notes", help="Notes")
@click.pass_context
def batch_repay(
    ctx,
    debt_ids: tuple[int, ...],
    amount: str,
    adjustment: str,
    repayment_date: str | None,
    account: str | None,
    notes: str | None,
):
    """Spread one payment over several personal debts by remaining amount.

    Examples:
        pocketledger debt batch-repay 4 5 6 --amount 50 --account Wallet
    """
    db = ctx.obj["db"]
    service = DebtService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    try:
        result = service.batch_repayment(
            ctx.obj["owner"],
            list(debt_ids),
            amount,
            repayment_date=parse_date_or_exit(ctx, repayment_date),
            adjustment_amount=adjustment,
            notes=notes,
            account_id=account_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    for outcome in result.outcomes:
        if outcome.outcome == "skipped":
            click.echo(f"Debt {outcome.debt_id}: skipped")
        else:
            click.echo(
                f"Debt {outcome.debt_id}: {outcome.amount:,.2f} "
                f"(adj {outcome.adjustment_amount:,.2f}) -> {outcome.debt.status.value}"
            )
    if result.transaction is not None:
        click.echo(f"Linked transaction {result.transaction.id}")


@debt_group.command("updates")
@click.argument("debt_id", type=int)
@click.pass_context
def list_updates(ctx, debt_id: int):
    """List applied installments of an institutional debt."""
    service = DebtService(ctx.obj["db"])
    try:
        updates = service.get_debt_updates(ctx.obj["owner"], debt_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not updates:
        click.echo("No installments applied.")
        return
    for update in updates:
        click.echo(f"{update.update_date} | {update.status.value:7s} | txn {update.transaction_id}")


@debt_group.command("groups")
@click.pass_context
def list_groups(ctx):
    """List settlement groups used by debts."""
    service = DebtService(ctx.obj["db"])
    groups = service.get_debt_settlement_groups(ctx.obj["owner"])
    if not groups:
        click.echo("No settlement groups found.")
        return
    for group in groups:
        click.echo(group)


def register_commands(cli):
    """Register debt commands with main CLI."""
    cli.add_command(debt_group, name="debt")
