"""Category management commands."""

import click
from pocketledger.cli.error_handling import handle_domain_error
from pocketledger.domain.category import CategoryService
from pocketledger.domain.entities import CategoryType

CATEGORY_TYPES = [t.value for t in CategoryType]


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.option(
    "--type",
    "category_type",
    type=click.Choice(CATEGORY_TYPES),
    default=CategoryType.EXPENSE.value,
    show_default=True,
    help="Transaction type implied by the category",
)
@click.pass_context
def create_category(ctx, name: str, category_type: str):
    """Create a new category.

    Examples:
        pocketledger category create "Groceries"
        pocketledger category create "Salary" --type income
    """
    service = CategoryService(ctx.obj["db"])
    try:
        category_id = service.create_category(ctx.obj["owner"], name, category_type)
        click.echo(f"Created category '{name}' ({category_type}, ID: {category_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@category_group.command("list")
@click.option("--type", "category_type", type=click.Choice(CATEGORY_TYPES), help="Filter by type")
@click.pass_context
def list_categories(ctx, category_type: str | None):
    """List categories."""
    service = CategoryService(ctx.obj["db"])

    categories = service.list_categories(ctx.obj["owner"], category_type=category_type)
    if not categories:
        click.echo("No categories found.")
        return

    for cat in categories:
        click.echo(f"ID: {cat.id:3d} | {cat.name:30s} | {cat.type.value}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
