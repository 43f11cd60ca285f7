from __future__ import annotations

import re
from datetime import date

from .repository import CounterRepository

_NON_LETTERS = re.compile(r"[^A-Za-z]")


def normalize_part(value: str) -> str:
    """First two letters, uppercased, padded with 'X' (e.g. 'o' -> 'OX', '' -> 'XX')."""
    letters = _NON_LETTERS.sub("", value or "").upper()
    return letters[:2].ljust(2, "X")


class EmployeeCodeGenerator:
    """Builds codes like DFJODO20250001: company, first name, last name, join year, sequence.

    The sequence is unique per company and year.
    """

    def __init__(self, counters: CounterRepository):
        self._counters = counters

    def generate(self, *, company: str, first_name: str, last_name: str, join_date: date) -> str:
        company_code = normalize_part(company)
        year = join_date.year
        seq = self._counters.next_sequence(f"{company_code}_{year}")
        return f"{company_code}{normalize_part(first_name)}{normalize_part(last_name)}{year}{seq:04d}"
