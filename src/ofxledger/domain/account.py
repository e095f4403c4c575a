"""Account domain service."""

from decimal import Decimal
from typing import Optional
from ofxledger.database.base import Database
from ofxledger.domain.entities import Account as AccountEntity
from ofxledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    duplicate_account_name,
)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        bank_name: str,
        currency: str = "",
        balance: Decimal = Decimal("0.00"),
    ) -> int:
        """Create a new account.

        Args:
            name: Account name
            bank_name: Bank name
            currency: Optional ISO currency code
            balance: Opening balance

        Returns:
            Account ID

        Raises:
            ConflictError: If account name already exists
            ValidationError: If the currency code is malformed
        """
        # Check if account with same name exists
        accounts = self.db.list_accounts()
        for acc in accounts:
            if acc.name == name:
                raise ConflictError(duplicate_account_name(name))

        currency = currency.strip().upper()
        if currency and (len(currency) != 3 or not currency.isalpha()):
            raise ValidationError(f"Invalid currency code '{currency}'")

        return self.db.create_account(
            name=name, bank_name=bank_name, currency=currency, balance=balance
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def resolve_account(self, account: str | int) -> int:
        """Resolve account name or ID to account ID.

        Args:
            account: Account name, or ID (int or string representation of int)

        Returns:
            Account ID

        Raises:
            NotFoundError: If account is not found
        """
        try:
            account_id = int(account)
        except (ValueError, TypeError):
            # Not a number, treat as name
            account_id = None

        if account_id is not None:
            if self.db.get_account(account_id) is None:
                raise NotFoundError(f"Account ID {account_id} not found")
            return account_id

        for acc in self.db.list_accounts():
            if acc.name == account:
                return acc.id

        raise NotFoundError(f"Account '{account}' not found")
