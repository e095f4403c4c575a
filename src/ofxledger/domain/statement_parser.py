"""OFX statement parser.

Turns the bytes of an OFX 1.x (SGML) or OFX 2.x (XML) bank or credit-card
statement into a ParsedStatement. The parser is deliberately tolerant:
element tags may be left unclosed, line endings may be mixed, tags may use
any case, and the declared character set may not match the actual bytes.
Anything that would make a transaction ambiguous (an amount or posted date
that cannot be read) aborts the whole parse instead of returning a partial
list.
"""

import html
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from ofxledger.domain.entities import ParsedStatement, RawEntry
from ofxledger.domain.errors import ParseErrorKind, StatementParseError
from ofxledger.utils.amount_parser import parse_amount, require_cents
from ofxledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 255

# Headers are ASCII, so they are searched before decoding
_HEADER_SCAN_BYTES = 1024
_XML_ENCODING_RE = re.compile(rb"<\?xml[^>]*encoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']", re.I)
_SGML_ENCODING_RE = re.compile(r"^\s*ENCODING\s*:\s*(\S+)", re.I | re.M)
_SGML_CHARSET_RE = re.compile(r"^\s*CHARSET\s*:\s*(\S+)", re.I | re.M)

_ENVELOPE_RE = re.compile(r"<OFX>|<(?:BANK|CREDITCARD)MSGSRSV1>", re.I)
_CREDIT_CARD_RE = re.compile(r"<CCSTMTRS>|<CCACCTFROM>", re.I)
_WHITESPACE_RE = re.compile(r"\s+")

# Aggregates that end a transaction block whose closing tag is missing
_BLOCK_TERMINATORS = ("</BANKTRANLIST>", "</STMTRS>", "</CCSTMTRS>")


def decode_statement(data: bytes) -> str:
    """Decode statement bytes to text without ever failing.

    Strict UTF-8 is tried first because files that declare a legacy charset
    are frequently re-saved as UTF-8. The declared charset comes next, and
    cp1252 with replacement characters is the last resort.
    """
    codecs = ["utf-8-sig"]
    declared = _declared_codec(data[:_HEADER_SCAN_BYTES])
    if declared is not None:
        codecs.append(declared)

    for codec in codecs:
        try:
            return data.decode(codec).lstrip("\ufeff")
        except LookupError:
            logger.warning("Unknown statement encoding %r, ignoring declaration", codec)
        except UnicodeDecodeError:
            logger.debug("Statement bytes are not valid %s", codec)

    logger.warning("Statement encoding could not be determined, decoding as cp1252")
    return data.decode("cp1252", errors="replace")


def _declared_codec(head: bytes) -> Optional[str]:
    """Return the Python codec named by the OFX or XML header, if any."""
    match = _XML_ENCODING_RE.search(head)
    if match:
        return match.group(1).decode("ascii").lower()

    text = head.decode("ascii", errors="replace")
    encoding = _SGML_ENCODING_RE.search(text)
    if encoding and encoding.group(1).upper().replace("-", "") == "UTF8":
        return "utf-8"

    charset = _SGML_CHARSET_RE.search(text)
    if charset:
        value = charset.group(1).upper()
        if value.isdigit():
            return f"cp{value}"
        if value != "NONE":
            return value.lower()
    return None


def _tag_value(content: str, tag: str) -> str:
    """Value of the first <TAG>, closed (XML) or unclosed (SGML)."""
    match = re.search(rf"<{tag}>[ \t]*([^<\n]*)", content, re.I)
    if match is None:
        return ""
    return html.unescape(match.group(1)).strip()


def _block_pattern(tag: str) -> re.Pattern:
    stops = "|".join(re.escape(stop) for stop in (f"</{tag}>", f"<{tag}>") + _BLOCK_TERMINATORS)
    return re.compile(rf"<{tag}>(.*?)(?:</{tag}>|(?={stops}|\Z))", re.I | re.S)


def _blocks(content: str, tag: str) -> list[str]:
    """Bodies of every <TAG> aggregate, tolerating missing closing tags."""
    return [match.group(1) for match in _block_pattern(tag).finditer(content)]


def _strip_blocks(content: str, tag: str) -> str:
    return _block_pattern(tag).sub("", content)


def clean_description(value: str) -> str:
    """Collapse whitespace and bound the length of a description."""
    return _WHITESPACE_RE.sub(" ", value).strip()[:MAX_DESCRIPTION_LENGTH]


def _optional_date(value: str, field: str) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        logger.warning("Ignoring unreadable %s %r", field, value)
        return None


def _optional_amount(value: str, field: str) -> Optional[Decimal]:
    if not value:
        return None
    try:
        return parse_amount(value)
    except ValueError:
        logger.warning("Ignoring unreadable %s %r", field, value)
        return None


def _parse_entry(block: str, index: int) -> RawEntry:
    amount_text = _tag_value(block, "TRNAMT")
    try:
        amount = require_cents(parse_amount(amount_text))
    except ValueError:
        raise StatementParseError(
            ParseErrorKind.MALFORMED_AMOUNT,
            f"Transaction {index} has an invalid amount: {amount_text!r}",
        ) from None

    date_text = _tag_value(block, "DTPOSTED") or _tag_value(block, "DTUSER")
    try:
        posted = parse_date(date_text)
    except ValueError:
        raise StatementParseError(
            ParseErrorKind.MALFORMED_DATE,
            f"Transaction {index} has an invalid posted date: {date_text!r}",
        ) from None

    name = clean_description(_tag_value(block, "NAME"))
    memo = clean_description(_tag_value(block, "MEMO"))
    reference = _tag_value(block, "REFNUM") or _tag_value(block, "CHECKNUM")

    return RawEntry(
        external_id=_tag_value(block, "FITID"),
        posted_date=posted,
        signed_amount=amount,
        raw_description=name or memo,
        raw_memo=memo or None,
        transaction_type=_tag_value(block, "TRNTYPE").upper(),
        reference_number=reference or None,
    )


def parse_statement(data: bytes) -> ParsedStatement:
    """Parse an OFX statement file.

    Args:
        data: Raw file contents

    Returns:
        ParsedStatement with entries in file order. Entries are not sorted
        by posted date; callers that want newest first sort on posted_date.

    Raises:
        StatementParseError: NOT_A_STATEMENT_FILE, MALFORMED_AMOUNT,
            MALFORMED_DATE or EMPTY_STATEMENT (which carries the statement)
    """
    content = decode_statement(data).replace("\r\n", "\n").replace("\r", "\n")
    if not _ENVELOPE_RE.search(content):
        raise StatementParseError(
            ParseErrorKind.NOT_A_STATEMENT_FILE, "File does not look like an OFX statement"
        )

    entries = tuple(
        _parse_entry(block, index)
        for index, block in enumerate(_blocks(content, "STMTTRN"), start=1)
    )

    # Transfer records carry their own BANKID/ACCTID, keep them out of the header
    header = _strip_blocks(content, "STMTTRN")

    account_type = _tag_value(header, "ACCTTYPE").upper()
    if not account_type and _CREDIT_CARD_RE.search(header):
        account_type = "CREDITCARD"

    ledger_blocks = _blocks(header, "LEDGERBAL")
    balance_source = ledger_blocks[0] if ledger_blocks else header

    period_start = _optional_date(_tag_value(header, "DTSTART"), "statement start date")
    period_end = _optional_date(_tag_value(header, "DTEND"), "statement end date")
    if period_start and period_end and period_start > period_end:
        logger.warning("Statement period is reversed (%s > %s), swapping", period_start, period_end)
        period_start, period_end = period_end, period_start

    statement = ParsedStatement(
        bank_id=_tag_value(header, "BANKID") or _tag_value(header, "ORG"),
        bank_account_id=_tag_value(header, "ACCTID"),
        account_type=account_type,
        currency=_tag_value(header, "CURDEF").upper(),
        entries=entries,
        closing_balance=_optional_amount(_tag_value(balance_source, "BALAMT"), "closing balance"),
        balance_date=_optional_date(_tag_value(balance_source, "DTASOF"), "balance date"),
        period_start=period_start,
        period_end=period_end,
    )

    logger.debug(
        "Parsed statement for bank %r account %r with %d entries",
        statement.bank_id,
        statement.bank_account_id,
        len(entries),
    )

    if not entries:
        raise StatementParseError(
            ParseErrorKind.EMPTY_STATEMENT, "Statement contains no transactions", statement=statement
        )
    return statement
