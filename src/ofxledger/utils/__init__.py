"""Utility functions for ofxledger."""

from ofxledger.utils.date_parser import parse_date
from ofxledger.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_amount"]
