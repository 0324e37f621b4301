"""
Tests for email normalization and display name splitting.
"""
import pytest

from chirotrack.auth.utils import normalize_email, split_display_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  Jane.Doe@Example.COM ", "jane.doe@example.com"),
        ("Foo.Bar@Gmail.com", "foobar@gmail.com"),
        ("f.o.o@googlemail.com", "foo@googlemail.com"),
        ("foo+clinic@gmail.com", "foo+clinic@gmail.com"),
    ],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


def test_normalize_email_is_idempotent():
    once = normalize_email(" A.B.C@GMail.com")
    assert normalize_email(once) == once


def test_normalize_email_passes_through_non_strings():
    assert normalize_email(None) is None
    assert normalize_email(42) == 42


def test_gmail_dot_variants_share_a_key():
    assert normalize_email("john.smith@gmail.com") == normalize_email("JohnSmith@gmail.com")
    assert normalize_email("john.smith@example.com") != normalize_email("johnsmith@example.com")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Ada Lovelace", ("Ada", "Lovelace")),
        ("Juan  Carlos   de la Cruz", ("Juan", "Carlos de la Cruz")),
        ("Prince", ("Prince", "")),
        (None, ("User", "")),
        ("   ", ("User", "")),
    ],
)
def test_split_display_name(name, expected):
    assert split_display_name(name) == expected
