"""Utility functions for backoffice."""

from backoffice.utils.money import to_money, round2
from backoffice.utils.date_parser import parse_date, coerce_date, parse_month_label
from backoffice.utils.amount_parser import parse_amount

__all__ = ["to_money", "round2", "parse_date", "coerce_date", "parse_month_label", "parse_amount"]
