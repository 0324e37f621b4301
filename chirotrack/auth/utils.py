"""
Email address helpers shared by registration, login and password reset.
"""
from typing import Any, Tuple

GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}


def normalize_email(email: Any) -> Any:
    """
    Normalize an email address for storage and lookup.

    Lowercases and trims the address. For Gmail domains the dots in the local
    part are removed, since Gmail delivers ``foo.bar@`` and ``foobar@`` to the
    same mailbox. Applying it twice gives the same result as applying it once.

    Args:
        email: The email address to normalize

    Returns:
        The normalized address; non-string input is returned unchanged
    """
    if not email or not isinstance(email, str):
        return email

    normalized = email.strip().lower()
    local_part, sep, domain = normalized.partition("@")
    if not sep or not local_part or not domain:
        return normalized

    if domain in GMAIL_DOMAINS:
        return f"{local_part.replace('.', '')}@{domain}"

    return normalized


def split_display_name(name: Any) -> Tuple[str, str]:
    """
    Split a provider display name into first and last name.

    The first whitespace-delimited token is the first name and the rest,
    joined by single spaces, is the last name. A missing name gives
    ``("User", "")``.
    """
    parts = name.split() if isinstance(name, str) else []
    if not parts:
        return "User", ""
    return parts[0], " ".join(parts[1:])
