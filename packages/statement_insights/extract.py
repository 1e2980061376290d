"""Merchant and keyword extraction from free-text narratives.

Rail-specific patterns are tried first (instant-transfer narratives such as
``UPI/DR/<ref>/<merchant>/<handle>``, then wire/immediate transfers such as
``NEFT-<merchant>-<ref>``). The first pattern that captures a field wins.
Without a structured match, the first few significant words are used.

A wrong merchant for an unusual narrative is an accepted outcome; nothing in
this module raises.
"""

from __future__ import annotations

import re

# Ordered; first match wins.
UPI_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"UPI/(?:DR|CR)/[^/]+/([^/]+)/[^/]+", re.IGNORECASE),
    re.compile(r"UPI-([^-]+)-\d+", re.IGNORECASE),
    re.compile(r"UPI/([^/]+)/[^/]+", re.IGNORECASE),
    re.compile(r"UPI\s+([A-Z][A-Z0-9\s]+?)\s+\d+", re.IGNORECASE),
)

TRANSFER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:NEFT|IMPS)-([^-]+)-[^-]+", re.IGNORECASE),
    re.compile(r"(?:NEFT|IMPS)/[^/]+/([^/]+)", re.IGNORECASE),
)

STOP_WORDS = frozenset(
    {
        "UPI",
        "NEFT",
        "IMPS",
        "ATM",
        "POS",
        "PAYMENT",
        "TRANSFER",
        "TO",
        "FROM",
        "REF",
        "REFERENCE",
        "NO",
        "NUMBER",
        "DR",
        "CR",
        "DEBIT",
        "CREDIT",
        "TRANSACTION",
        "TXN",
        "ID",
    }
)

_NAME_JUNK_RE = re.compile(r"[^a-zA-Z0-9\s\-]")
_WORD_JUNK_RE = re.compile(r"[^a-zA-Z0-9\s]")

FALLBACK_WORDS = 3
MERCHANT_KEY_FALLBACK_CHARS = 20


def _title(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def clean_merchant_name(raw: str) -> str:
    """Strip punctuation and stop words from a captured field, then title-case."""

    words = _NAME_JUNK_RE.sub(" ", raw).split()
    return " ".join(_title(w) for w in words if w.upper() not in STOP_WORDS)


def _first_capture(patterns: tuple[re.Pattern[str], ...], text: str) -> str | None:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1):
            name = clean_merchant_name(m.group(1))
            if name:
                return name
    return None


def _structured_merchant(narrative: str) -> str | None:
    upper = narrative.upper()
    if "UPI" in upper:
        name = _first_capture(UPI_PATTERNS, narrative)
        if name:
            return name
    if "NEFT" in upper or "IMPS" in upper:
        return _first_capture(TRANSFER_PATTERNS, narrative)
    return None


def _significant_words(narrative: str) -> list[str]:
    return [
        w
        for w in _WORD_JUNK_RE.sub(" ", narrative).split()
        if len(w) > 2 and w.upper() not in STOP_WORDS
    ]


def extract_merchant_name(narrative: str | None) -> str | None:
    """Best-effort merchant label for ``narrative`` (``None`` when nothing usable)."""

    if not narrative or not narrative.strip():
        return None
    name = _structured_merchant(narrative)
    if name:
        return name
    words = _significant_words(narrative)
    if words:
        return " ".join(_title(w) for w in words[:FALLBACK_WORDS])
    return None


def merchant_key(narrative: str) -> str:
    """Grouping key shared by the recurring and anomaly detectors.

    Falls back to the leading characters of the narrative so every
    transaction lands in some group.
    """

    return extract_merchant_name(narrative) or narrative.strip()[:MERCHANT_KEY_FALLBACK_CHARS]


def extract_merchant_keywords(narrative: str | None) -> list[str]:
    """Deduplicated keyword bag: merchant, its words, then general words.

    Order is stable (first occurrence wins) and every entry is title-cased.
    """

    if not narrative or not narrative.strip():
        return []

    keywords: list[str] = []
    merchant = _structured_merchant(narrative)
    if merchant:
        keywords.append(merchant)
        keywords.extend(w for w in merchant.split() if len(w) > 2)
    keywords.extend(_title(w) for w in _significant_words(narrative))
    return list(dict.fromkeys(keywords))


def contains_keyword(narrative: str | None, keyword: str | None) -> bool:
    if not narrative or not keyword:
        return False
    return keyword.lower() in narrative.lower()


def extract_all_words(narrative: str | None) -> list[str]:
    """Every alphanumeric token, lowercased, deduplicated in order."""

    if not narrative or not narrative.strip():
        return []
    return list(dict.fromkeys(w.lower() for w in _WORD_JUNK_RE.sub(" ", narrative).split()))


__all__ = [
    "UPI_PATTERNS",
    "TRANSFER_PATTERNS",
    "STOP_WORDS",
    "clean_merchant_name",
    "extract_merchant_name",
    "merchant_key",
    "extract_merchant_keywords",
    "contains_keyword",
    "extract_all_words",
]
