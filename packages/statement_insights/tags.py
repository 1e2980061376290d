"""Tag templates and tag helper operations.

Tags are immutable :class:`~statement_insights.models.Tag` values. Creation
and updates go through :func:`validate_tag_data` first so callers get a
readable reason instead of a pydantic error dump. Hierarchy is limited to two
levels: a parent tag must itself be top-level.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from .errors import TagValidationError
from .models import Tag

MAX_TAG_NAME_LENGTH = 50


@dataclass(frozen=True, slots=True)
class TagTemplate:
    name: str
    keywords: tuple[str, ...]
    color: str
    icon: str | None = None


DEFAULT_TAG_TEMPLATES: tuple[TagTemplate, ...] = (
    TagTemplate(
        "Food & Delivery",
        (
            "swiggy", "zomato", "uber eats", "dominos", "pizza", "mcdonald", "kfc",
            "burger", "restaurant", "food", "cafe", "coffee", "starbucks",
        ),
        "#ef4444",
        "🍔",
    ),
    TagTemplate(
        "Shopping",
        (
            "amazon", "flipkart", "myntra", "ajio", "meesho", "shopping", "retail",
            "store", "mall", "supermarket", "grocery", "bigbasket", "blinkit", "zepto",
        ),
        "#8b5cf6",
        "🛒",
    ),
    TagTemplate(
        "Utilities",
        (
            "electricity", "water", "gas", "internet", "broadband", "mobile",
            "recharge", "bill", "utility", "airtel", "jio", "vodafone", "bsnl",
        ),
        "#3b82f6",
        "💡",
    ),
    TagTemplate(
        "Investments",
        (
            "mutual fund", "sip", "stock", "zerodha", "groww", "upstox", "investment",
            "trading", "equity", "gold", "bond", "fd", "fixed deposit",
        ),
        "#10b981",
        "📈",
    ),
    TagTemplate(
        "EMI & Loans",
        (
            "emi", "loan", "credit card", "installment", "repayment", "hdfc", "icici",
            "sbi", "axis", "kotak", "mortgage", "personal loan", "home loan",
        ),
        "#f59e0b",
        "💳",
    ),
    TagTemplate(
        "ATM Withdrawals",
        ("atm", "cash withdrawal", "cwd", "withdrawal", "cash"),
        "#6366f1",
        "🏧",
    ),
    TagTemplate(
        "Refunds",
        ("refund", "reversal", "cashback", "return", "credit", "reimbursement"),
        "#14b8a6",
        "↩️",
    ),
    TagTemplate(
        "Insurance",
        (
            "insurance", "premium", "policy", "lic", "health insurance",
            "life insurance", "car insurance", "term insurance",
        ),
        "#ec4899",
        "🛡️",
    ),
    TagTemplate(
        "Entertainment",
        (
            "netflix", "prime video", "hotstar", "spotify", "youtube", "movie",
            "cinema", "pvr", "inox", "entertainment", "subscription", "gaming",
        ),
        "#f97316",
        "🎬",
    ),
    TagTemplate(
        "Transportation",
        (
            "uber", "ola", "rapido", "metro", "bus", "train", "taxi", "fuel",
            "petrol", "diesel", "parking", "toll",
        ),
        "#06b6d4",
        "🚗",
    ),
    TagTemplate(
        "Healthcare",
        (
            "hospital", "doctor", "pharmacy", "medicine", "medical", "health",
            "clinic", "apollo", "fortis", "max", "diagnostic", "lab",
        ),
        "#dc2626",
        "🏥",
    ),
)

# ---------------------------
# Validation
# ---------------------------


@dataclass(frozen=True, slots=True)
class TagValidation:
    ok: bool
    reason: str | None = None


def validate_tag_data(name: str | None, keywords: Sequence[str] | None) -> TagValidation:
    """Check name and keywords the way the UI reports them.

    Rules
    -----
    - Name is required and at most 50 characters.
    - At least one keyword; no keyword may be blank.
    """

    if not name or not name.strip():
        return TagValidation(False, "Tag name is required")
    if len(name) > MAX_TAG_NAME_LENGTH:
        return TagValidation(False, f"Tag name must be {MAX_TAG_NAME_LENGTH} characters or less")
    if not keywords:
        return TagValidation(False, "At least one keyword is required")
    if any(not k or not k.strip() for k in keywords):
        return TagValidation(False, "Keywords cannot be empty")
    return TagValidation(True, None)


def validate_hierarchy(tags: Iterable[Tag]) -> None:
    """Enforce two-level nesting across a whole tag set.

    Raises
    ------
    TagValidationError
        When a parent id is unknown, or a parent itself has a parent.
    """

    by_id = {t.id: t for t in tags}
    for tag in by_id.values():
        if tag.parent_tag_id is None:
            continue
        parent = by_id.get(tag.parent_tag_id)
        if parent is None:
            raise TagValidationError(
                f"Tag {tag.name!r} references unknown parent {tag.parent_tag_id!r}"
            )
        if parent.parent_tag_id is not None:
            raise TagValidationError(
                f"Tag {tag.name!r} cannot nest under {parent.name!r}: "
                "parent must be a top-level tag"
            )


def _build(**fields: Any) -> Tag:
    try:
        return Tag(**fields)
    except ValidationError as e:
        raise TagValidationError(str(e)) from e


# ---------------------------
# Construction
# ---------------------------


def create_tags_from_templates(
    templates: Sequence[TagTemplate],
    *,
    start_id: int = 1,
    now: datetime | None = None,
) -> list[Tag]:
    """Materialize templates as default tags with ids ``tag-<n>``."""

    ts = now or datetime.now(UTC)
    return [
        Tag(
            id=f"tag-{start_id + i}",
            name=t.name,
            keywords=t.keywords,
            color=t.color,
            icon=t.icon,
            is_default=True,
            created_at=ts,
            updated_at=ts,
        )
        for i, t in enumerate(templates)
    ]


def get_default_tags(*, now: datetime | None = None) -> list[Tag]:
    return create_tags_from_templates(DEFAULT_TAG_TEMPLATES, now=now)


def create_custom_tag(
    name: str,
    keywords: Sequence[str],
    color: str,
    icon: str | None = None,
    *,
    parent_tag_id: str | None = None,
    tag_id: str | None = None,
    existing: Iterable[Tag] = (),
    now: datetime | None = None,
) -> Tag:
    """Create a user tag.

    A ``parent_tag_id`` must name a top-level tag in ``existing``.

    Raises
    ------
    TagValidationError
        When :func:`validate_tag_data` rejects the input, the color is not a
        ``#RRGGBB`` string, or the parent breaks :func:`validate_hierarchy`.
    """

    check = validate_tag_data(name, keywords)
    if not check.ok:
        raise TagValidationError(check.reason)
    ts = now or datetime.now(UTC)
    tag = _build(
        id=tag_id or f"tag-{uuid.uuid4().hex[:12]}",
        name=name,
        keywords=tuple(keywords),
        color=color,
        icon=icon,
        is_default=False,
        parent_tag_id=parent_tag_id,
        created_at=ts,
        updated_at=ts,
    )
    if tag.parent_tag_id is not None:
        validate_hierarchy([*existing, tag])
    return tag


_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "is_default"})


def update_tag(
    tag: Tag,
    updates: Mapping[str, Any],
    *,
    existing: Iterable[Tag] = (),
    now: datetime | None = None,
) -> Tag:
    """Return a copy of ``tag`` with ``updates`` applied and ``updated_at`` bumped.

    ``id``, ``created_at`` and ``is_default`` cannot be changed. A new parent
    is checked against ``existing`` with :func:`validate_hierarchy`.
    """

    blocked = _IMMUTABLE_FIELDS.intersection(updates)
    if blocked:
        raise TagValidationError(f"Cannot update fields: {', '.join(sorted(blocked))}")
    data = tag.model_dump()
    data.update(updates)
    if "name" in updates or "keywords" in updates:
        check = validate_tag_data(data["name"], data["keywords"])
        if not check.ok:
            raise TagValidationError(check.reason)
    data["updated_at"] = now or datetime.now(UTC)
    updated = _build(**data)
    if "parent_tag_id" in updates:
        validate_hierarchy([*existing, updated])
    return updated


def merge_with_default_tags(user_tags: Sequence[Tag], *, now: datetime | None = None) -> list[Tag]:
    """Defaults not shadowed by a same-named user tag (case-insensitive), then user tags."""

    taken = {t.name.lower() for t in user_tags}
    defaults = [t for t in get_default_tags(now=now) if t.name.lower() not in taken]
    return [*defaults, *user_tags]


__all__ = [
    "MAX_TAG_NAME_LENGTH",
    "TagTemplate",
    "DEFAULT_TAG_TEMPLATES",
    "TagValidation",
    "validate_tag_data",
    "validate_hierarchy",
    "create_tags_from_templates",
    "get_default_tags",
    "create_custom_tag",
    "update_tag",
    "merge_with_default_tags",
]
