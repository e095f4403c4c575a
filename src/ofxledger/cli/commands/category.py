"""Category management commands."""

import click
from ofxledger.cli.error_handling import handle_domain_error
from ofxledger.domain.category import CategoryService
from ofxledger.domain.entities import Category, CategoryType
from ofxledger.domain.errors import DomainError

TYPE_CHOICES = {
    "expense": CategoryType.EXPENSE,
    "income": CategoryType.INCOME,
    "transfer": CategoryType.TRANSFER,
}


def print_category_tree(categories: list[Category], parent_id: int | None = None, indent: int = 0) -> None:
    """Recursively print category tree."""
    for cat in categories:
        if cat.parent_id != parent_id:
            continue
        prefix = "  " * indent
        click.echo(f"{prefix}{cat.name} (ID: {cat.id}, {cat.category_type.name.lower()})")
        print_category_tree(categories, cat.id, indent + 1)


@click.group()
def category_group():
    """Manage categories and description mappings."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories in tree format."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    categories = service.list_categories()
    if not categories:
        click.echo("No categories found. Use 'category create' to add one.")
        return

    click.echo("\nCategories:")
    print_category_tree(categories)


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category path (e.g., 'Food & Dining')")
@click.option(
    "--type",
    "category_type",
    type=click.Choice(sorted(TYPE_CHOICES), case_sensitive=False),
    default=None,
    help="Category type (default: parent's type, or expense)",
)
@click.pass_context
def create_category(ctx, name: str, parent: str | None, category_type: str | None):
    """Create a new category."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    resolved_type = TYPE_CHOICES[category_type.lower()] if category_type else None

    try:
        category_id = service.create_category(
            name=name, parent_path=parent, category_type=resolved_type
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    parent_str = f" under '{parent}'" if parent else ""
    click.echo(f"Created category '{name}'{parent_str} (ID: {category_id})")


@category_group.command("map")
@click.argument("pattern")
@click.argument("category")
@click.pass_context
def map_category(ctx, pattern: str, category: str):
    """Suggest CATEGORY for statement entries whose description contains PATTERN.

    CATEGORY can be a category path or ID.

    Examples:
        ofxledger category map "NETFLIX" "Entertainment > Streaming"
        ofxledger category map "PAYROLL" 3
    """
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        mapping_id = service.add_mapping(pattern=pattern, category=category)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created mapping '{pattern}' -> '{category}' (ID: {mapping_id})")


@category_group.command("mappings")
@click.pass_context
def list_mappings(ctx):
    """List description mappings in the order they are applied."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    mappings = service.list_mappings()
    if not mappings:
        click.echo("No mappings found.")
        return

    click.echo("\nMappings:")
    for mapping in mappings:
        path = service.format_category_path(mapping.category_id)
        click.echo(f"ID: {mapping.id:3d} | {mapping.pattern:25s} -> {path}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
