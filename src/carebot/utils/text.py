from __future__ import annotations

import re

_CITATION_RE = re.compile(r"【\d+:\d+†source】")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_citations(text: str) -> str:
    return _CITATION_RE.sub(" ", text)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_reply_text(text: str) -> str:
    """Remove source markers like ``【3:1†source】`` and collapse whitespace."""
    return normalize_whitespace(strip_citations(text))
