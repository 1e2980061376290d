from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    CHAR,
    JSON,
    Boolean,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Bookkeeping: si_schema_version
# ---------------------------


class SiSchemaVersion(Base):
    __tablename__ = "si_schema_version"

    version: Mapped[int] = mapped_column(Integer, primary_key=True)
    applied_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------
# Core: si_transactions
# ---------------------------


class SiTransaction(Base):
    __tablename__ = "si_transactions"

    # SHA-256 over (date, reference, amount); see ingest.normalize.transaction_id
    id: Mapped[str] = mapped_column(CHAR(64), primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    narrative: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    reference: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    debit: Mapped[float | None] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=True)
    credit: Mapped[float | None] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=True)
    balance: Mapped[float] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=False)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    channel: Mapped[str] = mapped_column(String(32), nullable=False)

    # Ordered tag ids; written by the matcher unless manual_tag_override is set.
    tag_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    manual_tag_override: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("0")
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("0"))

    source_file: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    imported_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------
# Reference: si_tags, si_budgets
# ---------------------------


class SiTag(Base):
    __tablename__ = "si_tags"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    icon: Mapped[str | None] = mapped_column(String, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("0"))
    # Two-level hierarchy is enforced in tags.validate_hierarchy, not here.
    parent_tag_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SiBudget(Base):
    __tablename__ = "si_budgets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tag_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    monthly_limit: Mapped[float] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=False)
    period: Mapped[str] = mapped_column(CHAR(7), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------
# Audit: si_uploaded_files
# ---------------------------


class SiUploadedFile(Base):
    __tablename__ = "si_uploaded_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    uploaded_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False)
    range_start: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    range_end: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    checksum: Mapped[str] = mapped_column(CHAR(64), nullable=False, index=True)


__all__ = [
    "Base",
    "SiSchemaVersion",
    "SiTransaction",
    "SiTag",
    "SiBudget",
    "SiUploadedFile",
]
