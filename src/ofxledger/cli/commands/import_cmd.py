"""Statement review and import commands."""

import json

import click
from ofxledger.cli.account_resolution import resolve_account_or_exit
from ofxledger.cli.error_handling import handle_domain_error
from ofxledger.domain.account import AccountService
from ofxledger.domain.category import CategoryService
from ofxledger.domain.entities import ImportReceipt, StatementReview
from ofxledger.domain.errors import DomainError, ValidationError
from ofxledger.domain.payloads import (
    batch_from_request,
    commit_request_from_review,
    receipt_to_dict,
    review_to_dict,
)
from ofxledger.domain.statement_import import StatementImportService

_DESCRIPTION_WIDTH = 40


def print_review(review: StatementReview, category_service: CategoryService) -> None:
    """Print a review as a plain table."""
    statement = review.statement
    click.echo(f"\nStatement: bank {statement.bank_id or '-'} account {statement.bank_account_id or '-'}")
    if statement.period_start or statement.period_end:
        click.echo(f"Period: {statement.period_start or '?'} to {statement.period_end or '?'}")
    if statement.closing_balance is not None:
        click.echo(f"Closing balance: {statement.closing_balance} {statement.currency}".rstrip())

    click.echo("-" * 96)
    for candidate in review.transactions:
        if candidate.is_duplicate:
            marker = "dup"
        elif candidate.selected:
            marker = "[x]"
        else:
            marker = "[ ]"
        description = candidate.description[:_DESCRIPTION_WIDTH]
        category = ""
        if candidate.suggested_category_id is not None:
            category = category_service.format_category_path(candidate.suggested_category_id)
        click.echo(
            f"{marker} {candidate.date} {candidate.signed_amount:>12} "
            f"{description:{_DESCRIPTION_WIDTH}s} {candidate.external_id:20s} {category}"
        )

    summary = review.summary
    click.echo("-" * 96)
    click.echo(f"Total: {summary.total} | New: {summary.new} | Duplicates: {summary.duplicates}")


def print_receipt(receipt: ImportReceipt) -> None:
    """Print the outcome of a commit."""
    click.echo("\nImport complete:")
    click.echo(f"  Imported: {receipt.imported} transactions")
    click.echo(f"  Skipped: {receipt.duplicates_skipped} duplicates")
    click.echo(f"  Balance change: {receipt.balance_change}")


def _parse_category_overrides(
    ctx: click.Context, category_service: CategoryService, values: tuple[str, ...]
) -> dict[str, int | None]:
    overrides: dict[str, int | None] = {}
    for value in values:
        external_id, sep, category = value.partition("=")
        if not sep or not external_id.strip():
            click.echo(f"Error: --category expects EXTERNAL_ID=CATEGORY, got '{value}'", err=True)
            ctx.exit(1)
        category = category.strip()
        if category.lower() in ("", "none"):
            overrides[external_id.strip()] = None
            continue
        try:
            overrides[external_id.strip()] = category_service.resolve_category(category)
        except DomainError as e:
            handle_domain_error(ctx, e)
    return overrides


@click.command("review")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account name or ID")
@click.option("--json", "as_json", is_flag=True, help="Print the review as JSON")
@click.option(
    "--request-out",
    type=click.Path(dir_okay=False),
    help="Write a commit request for the selected entries to this file",
)
@click.option("--allow-empty", is_flag=True, help="Accept statements without transactions")
@click.pass_context
def review_statement(
    ctx, statement_file: str, account: str, as_json: bool, request_out: str | None, allow_empty: bool
):
    """Review an OFX statement against an account without importing.

    Entries already imported into the account are marked as duplicates.
    Use --request-out to save a commit request, edit it, and apply it with
    'ofxledger commit'.
    """
    db = ctx.obj["db"]
    service = StatementImportService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        review = service.review_file(statement_file, account_id, allow_empty=allow_empty)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if request_out:
        with open(request_out, "w", encoding="utf-8") as f:
            json.dump(commit_request_from_review(review), f, indent=2)

    if as_json:
        click.echo(json.dumps(review_to_dict(review), indent=2))
    else:
        print_review(review, CategoryService(db))
        if request_out:
            click.echo(f"Commit request written to {request_out}")


@click.command("commit")
@click.argument("request_file", type=click.File("r", encoding="utf-8"))
@click.option("--json", "as_json", is_flag=True, help="Print the receipt as JSON")
@click.pass_context
def commit_request(ctx, request_file, as_json: bool):
    """Commit a reviewed import from a JSON commit request ('-' for stdin)."""
    db = ctx.obj["db"]
    service = StatementImportService(db)

    try:
        payload = json.load(request_file)
    except json.JSONDecodeError as e:
        handle_domain_error(ctx, ValidationError(f"Invalid commit request: {e}"))
        return

    try:
        receipt = service.commit(batch_from_request(payload))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        click.echo(json.dumps(receipt_to_dict(receipt), indent=2))
    else:
        print_receipt(receipt)


@click.command("import")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account name or ID")
@click.option("--exclude", multiple=True, help="External ID to leave out (repeatable)")
@click.option(
    "--category",
    "categories",
    multiple=True,
    help="Set a category as EXTERNAL_ID=CATEGORY, CATEGORY being a path, ID or 'none' (repeatable)",
)
@click.option("--no-suggestions", is_flag=True, help="Do not keep suggested categories")
@click.option(
    "--adjust-balance/--no-adjust-balance",
    default=True,
    help="Update the account balance by the imported amounts (default: on)",
)
@click.option("--allow-empty", is_flag=True, help="Accept statements without transactions")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def import_statement(
    ctx,
    statement_file: str,
    account: str,
    exclude: tuple[str, ...],
    categories: tuple[str, ...],
    no_suggestions: bool,
    adjust_balance: bool,
    allow_empty: bool,
    yes: bool,
):
    """Review an OFX statement and import its new transactions."""
    db = ctx.obj["db"]
    service = StatementImportService(db)
    category_service = CategoryService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    overrides = _parse_category_overrides(ctx, category_service, categories)

    try:
        review = service.review_file(statement_file, account_id, allow_empty=allow_empty)
        batch = service.build_batch(
            review,
            adjust_balance=adjust_balance,
            exclude=exclude,
            category_overrides=overrides,
            use_suggestions=not no_suggestions,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    print_review(review, category_service)

    if not yes and not click.confirm(f"Import {len(batch.selected)} transactions?"):
        click.echo("Import cancelled.")
        return

    try:
        receipt = service.commit(batch)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    print_receipt(receipt)


@click.command("history")
@click.option("--account", help="Account name or ID")
@click.pass_context
def import_history(ctx, account: str | None):
    """Show previously committed statement imports."""
    db = ctx.obj["db"]
    service = StatementImportService(db)

    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    imports = service.list_imports(account_id=account_id)
    if not imports:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 88)
    for record in imports:
        period = ""
        if record.start_date or record.end_date:
            period = f" | {record.start_date or '?'} to {record.end_date or '?'}"
        click.echo(
            f"ID: {record.id:3d} | Account: {record.account_id:3d} | "
            f"{record.file_name or '-':20s} | Imported: {record.transaction_count:4d} | "
            f"Duplicates: {record.duplicate_count:4d} | Balance: {record.balance_change}{period}"
        )


def register_commands(cli):
    """Register statement import commands with main CLI."""
    cli.add_command(review_statement)
    cli.add_command(commit_request)
    cli.add_command(import_statement)
    cli.add_command(import_history)
