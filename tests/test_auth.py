"""Tests for admin authorization."""

from backoffice.domain.auth import is_authorized


def test_allowlisted_email_case_insensitive():
    assert is_authorized(" Owner@Example.com ", ["owner@example.com"]) is True


def test_other_or_missing_email_rejected():
    assert is_authorized("someone@else.com", ["owner@example.com"]) is False
    assert is_authorized(None, ["owner@example.com"]) is False
    assert is_authorized("", ["owner@example.com"]) is False


def test_empty_allowlist_allows_everyone():
    assert is_authorized("anyone@example.com", []) is True
    assert is_authorized(None, ["", "  "]) is True
