"""Tests for statement date parsing."""

import pytest
from datetime import date
from ofxledger.utils.date_parser import parse_date


def test_parse_ofx_date():
    """Test parsing a plain OFX date."""
    assert parse_date("20240115") == date(2024, 1, 15)


def test_parse_ofx_datetime():
    """Test parsing an OFX date with time of day."""
    assert parse_date("20240115235959") == date(2024, 1, 15)


def test_parse_ofx_datetime_with_timezone():
    """Test that the time zone suffix is ignored."""
    assert parse_date("20240115120000.000[-5:EST]") == date(2024, 1, 15)
    assert parse_date("20240115120000[+1]") == date(2024, 1, 15)


def test_parse_iso_date():
    """Test parsing ISO dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("2024-01-15T10:30:00") == date(2024, 1, 15)


def test_parse_other_formats():
    """Test formats handled by dateutil."""
    assert parse_date("01/15/2024") == date(2024, 1, 15)
    assert parse_date("Jan 15, 2024") == date(2024, 1, 15)


@pytest.mark.parametrize("value", ["", "   ", "20241301", "20240230", "not a date"])
def test_parse_invalid_date(value):
    """Test invalid dates raise ValueError."""
    with pytest.raises(ValueError):
        parse_date(value)
