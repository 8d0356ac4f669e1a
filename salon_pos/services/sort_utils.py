from __future__ import annotations

import re

_WS_RE = re.compile(r'\s+')

UNKNOWN_LABEL = 'Unknown'


def normalize_sort_text(value: str | None) -> str:
    return _WS_RE.sub(' ', (value or '').strip()).lower()


def clean_label(value: str | None) -> str | None:
    cleaned = _WS_RE.sub(' ', (value or '').strip())
    return cleaned or None


def person_label(full_name: str | None, email: str | None) -> str:
    return clean_label(full_name) or clean_label(email) or UNKNOWN_LABEL


def person_sort_key(*, full_name: str | None, email: str | None) -> tuple[str, str]:
    return (normalize_sort_text(person_label(full_name, email)), normalize_sort_text(email))
