"""
Admissions Shared Helpers

Pure functions used by the admissions and signups services.
"""

import re


def format_application_number(prefix: str, year: int, seq: int) -> str:
    """
    Format an application number, e.g. ``JJ20260001``.

    Args:
        prefix: Configured school prefix
        year: Year of submission
        seq: Sequence number within the year (1-based)

    Returns:
        Prefix, four-digit year and zero-padded sequence
    """
    return f"{prefix}{year}{seq:04d}"


def counter_key(year: int) -> str:
    """Key of the application counter row for a year."""
    return f"application_{year}"


def derive_username(first_name: str, last_name: str) -> str:
    """
    Derive the desired username for an applicant.

    Lower-cases both names, removes any whitespace inside them and joins
    them with a dot: ``"Ama", "Banda"`` -> ``"ama.banda"``.
    """
    first = re.sub(r"\s+", "", first_name).lower()
    last = re.sub(r"\s+", "", last_name).lower()
    return f"{first}.{last}"


def pick_available_username(base: str, taken: set[str]) -> str:
    """
    Return ``base`` if free, otherwise ``base`` with the smallest numeric
    suffix starting at 2 that is not in ``taken``.
    """
    if base not in taken:
        return base

    suffix = 2
    while f"{base}{suffix}" in taken:
        suffix += 1
    return f"{base}{suffix}"
