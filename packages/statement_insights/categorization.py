"""Deterministic keyword categorization.

A tag matches a transaction when any of its keywords occurs in the
lower-cased narrative. Each tag matches at most once per transaction and the
first matching keyword (in the tag's keyword order) is reported.

Transactions with ``manual_tag_override`` set are never modified here:
:func:`apply_categorization_results` and :func:`recategorize_transactions`
return them unchanged. Re-categorization always derives ``tag_ids`` from
scratch rather than patching previous assignments.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace

from .logging_setup import get_logger
from .models import CategorizationResult, Tag, TagMatch, Transaction

_log = get_logger("statement_insights.categorization")

_WORD_JUNK_RE = re.compile(r"[^a-z0-9\s]")


def match_keywords_to_tags(keywords: Sequence[str], tags: Iterable[Tag]) -> list[TagMatch]:
    """Match an extracted keyword bag against tags.

    Substring containment is checked in both directions so an abbreviation
    on either side still matches (``"swiggy"`` vs ``"Swiggy Instamart"``).
    ``match_position`` is the index of the matching entry in ``keywords``.
    """

    lowered = [k.lower() for k in keywords if k]
    matches: list[TagMatch] = []
    for tag in tags:
        for tag_keyword in tag.keywords:
            tk = tag_keyword.lower()
            hit = next(
                (i for i, k in enumerate(lowered) if tk in k or k in tk),
                None,
            )
            if hit is not None:
                matches.append(TagMatch(tag_id=tag.id, keyword=tag_keyword, match_position=hit))
                break
    return matches


def categorize_transaction(tx: Transaction, tags: Iterable[Tag]) -> CategorizationResult:
    """Match ``tx.narrative`` against every tag.

    ``match_position`` is the character offset of the keyword in the
    narrative.
    """

    narrative = tx.narrative.lower()
    matches: list[TagMatch] = []
    for tag in tags:
        for keyword in tag.keywords:
            pos = narrative.find(keyword.lower())
            if pos >= 0:
                matches.append(TagMatch(tag_id=tag.id, keyword=keyword, match_position=pos))
                break
    return CategorizationResult(
        transaction_id=tx.id,
        matched_tags=tuple(matches),
        is_manual_override=tx.manual_tag_override,
    )


def categorize_all(
    transactions: Iterable[Transaction], tags: Sequence[Tag]
) -> dict[str, CategorizationResult]:
    return {tx.id: categorize_transaction(tx, tags) for tx in transactions}


def apply_categorization_results(
    transactions: Sequence[Transaction],
    results: Mapping[str, CategorizationResult],
) -> list[Transaction]:
    """Replace ``tag_ids`` wholesale from ``results``.

    Overridden transactions and transactions without a result are returned
    as-is.
    """

    out: list[Transaction] = []
    for tx in transactions:
        result = results.get(tx.id)
        if result is None or tx.manual_tag_override:
            out.append(tx)
            continue
        out.append(replace(tx, tag_ids=result.tag_ids))
    return out


def recategorize_transactions(
    transactions: Sequence[Transaction], tags: Sequence[Tag]
) -> list[Transaction]:
    results = categorize_all(transactions, tags)
    updated = apply_categorization_results(transactions, results)
    tagged = sum(1 for tx in updated if tx.tag_ids)
    _log.debug("recategorized %d transactions (%d tagged)", len(updated), tagged)
    return updated


def set_manual_tags(tx: Transaction, tag_ids: Sequence[str]) -> Transaction:
    """User assignment: pins ``tag_ids`` and marks the override."""

    return replace(tx, tag_ids=tuple(dict.fromkeys(tag_ids)), manual_tag_override=True)


def clear_manual_override(tx: Transaction) -> Transaction:
    """Hand a transaction back to automatic categorization.

    ``tag_ids`` are kept until the next :func:`recategorize_transactions`.
    """

    return replace(tx, manual_tag_override=False)


# ---------------------------
# Queries
# ---------------------------


def find_transactions_by_tag(transactions: Iterable[Transaction], tag_id: str) -> list[Transaction]:
    return [tx for tx in transactions if tag_id in tx.tag_ids]


def find_transactions_by_tags(
    transactions: Iterable[Transaction], tag_ids: Iterable[str]
) -> list[Transaction]:
    wanted = set(tag_ids)
    return [tx for tx in transactions if wanted.intersection(tx.tag_ids)]


def find_untagged_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [tx for tx in transactions if not tx.manual_tag_override and not tx.tag_ids]


@dataclass(frozen=True, slots=True)
class TagStatistics:
    tag: Tag
    count: int
    total_amount: float


def get_tag_statistics(
    transactions: Iterable[Transaction], tags: Sequence[Tag]
) -> dict[str, TagStatistics]:
    """Per-tag transaction count and summed amount (every tag gets an entry)."""

    counts: Counter[str] = Counter()
    totals: dict[str, float] = {t.id: 0.0 for t in tags}
    for tx in transactions:
        for tag_id in tx.tag_ids:
            if tag_id in totals:
                counts[tag_id] += 1
                totals[tag_id] += tx.amount
    return {
        t.id: TagStatistics(tag=t, count=counts[t.id], total_amount=totals[t.id]) for t in tags
    }


def suggest_keywords_for_tag(
    transactions: Iterable[Transaction], tag_id: str, *, min_frequency: int = 2
) -> list[str]:
    """Frequent narrative words among transactions carrying ``tag_id``.

    Words of three or more characters that occur at least ``min_frequency``
    times, most frequent first (ties in first-seen order).
    """

    freq: Counter[str] = Counter()
    for tx in find_transactions_by_tag(transactions, tag_id):
        words = _WORD_JUNK_RE.sub(" ", tx.narrative.lower()).split()
        freq.update(w for w in words if len(w) > 2)
    return [w for w, n in freq.most_common() if n >= min_frequency]


__all__ = [
    "match_keywords_to_tags",
    "categorize_transaction",
    "categorize_all",
    "apply_categorization_results",
    "recategorize_transactions",
    "set_manual_tags",
    "clear_manual_override",
    "find_transactions_by_tag",
    "find_transactions_by_tags",
    "find_untagged_transactions",
    "TagStatistics",
    "get_tag_statistics",
    "suggest_keywords_for_tag",
]
