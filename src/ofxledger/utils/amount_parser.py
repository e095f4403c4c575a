"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into an exact Decimal.

    Handles various formats:
    - "123.45"
    - "+123.45"
    - "-123.45"
    - "-$123.45"
    - "1,234.56"
    - "123,45" (comma as decimal separator)
    - "1.234,56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not amount_str.strip():
        raise ValueError("Empty amount string")

    # Remove whitespace
    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and inner spaces
    amount_str = re.sub(r"[$€£¥R\s]", "", amount_str)

    # The right-most separator is the decimal point
    if "," in amount_str and "." in amount_str:
        if amount_str.rfind(",") > amount_str.rfind("."):
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            amount_str = amount_str.replace(",", "")
    elif "," in amount_str:
        amount_str = amount_str.replace(",", ".") if amount_str.count(",") == 1 else amount_str.replace(",", "")

    if not re.fullmatch(r"[+-]?(\d+\.?\d*|\.\d+)", amount_str):
        raise ValueError(f"Could not parse amount '{amount_str}'")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")

    if is_negative:
        amount = -amount
    return amount


CENT = Decimal("0.01")


def require_cents(amount: Decimal) -> Decimal:
    """Return an amount at cent precision, refusing anything finer.

    The ledger stores amounts and balances with two decimal places, so a
    sub-cent digit would be rounded away on write.

    Args:
        amount: Parsed amount

    Returns:
        Amount with exactly two decimal places

    Raises:
        ValueError: If the amount has non-zero digits past the second decimal place
    """
    try:
        cents = amount.quantize(CENT)
    except InvalidOperation:
        raise ValueError(f"Amount {amount} is too large") from None
    if cents != amount:
        raise ValueError(f"Amount {amount} has more than two decimal places")
    return cents
