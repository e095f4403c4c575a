"""Account management commands."""

from decimal import Decimal

import click
from ofxledger.cli.error_handling import handle_domain_error
from ofxledger.domain.account import AccountService
from ofxledger.domain.errors import DomainError
from ofxledger.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--currency", default="", help="ISO currency code (e.g., USD)")
@click.option("--balance", default="0.00", help="Opening balance")
@click.pass_context
def create_account(ctx, name: str, bank: str | None, currency: str, balance: str):
    """Create a new account.

    If --bank is not provided, the bank name will be set to the account name.

    Examples:
        ofxledger account create "Checking"
        ofxledger account create "My Checking" --bank "Chase" --currency USD --balance 1200.50
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    # If bank not provided, use account name as bank name
    bank_name = bank if bank is not None else name

    try:
        opening_balance = parse_amount(balance)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            name=name, bank_name=bank_name, currency=currency, balance=opening_balance
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created account '{name}' (ID: {account_id})")
    if bank is None:
        click.echo(f"Bank name set to '{bank_name}'")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts with their balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        balance = acc.balance.quantize(Decimal("0.01"))
        currency = f" {acc.currency}" if acc.currency else ""
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | Bank: {acc.bank_name:15s} | Balance: {balance}{currency}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
