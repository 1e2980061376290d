"""Persistent ledger store (SQLAlchemy).

``LedgerStore`` is an explicit handle: construct it once with
:meth:`LedgerStore.open` and pass it to whatever needs persistence. Opening
applies pending schema migrations; there is no module-level engine.

The store speaks plain domain values (``Transaction``, ``Tag``, ``Budget``,
``UploadedFileRecord``) and offers load-all / save-all (upsert by id) /
delete-by-id per collection.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Connection, create_engine, delete, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .db_models import (
    Base,
    SiBudget,
    SiSchemaVersion,
    SiTag,
    SiTransaction,
    SiUploadedFile,
)
from .errors import StoreError
from .logging_setup import get_logger
from .models import (
    Budget,
    DateRange,
    PaymentChannel,
    Tag,
    Transaction,
    TransactionType,
    UploadedFileRecord,
)
from .settings import load_settings

_log = get_logger("statement_insights.store")


# ---------------------------
# Migrations
# ---------------------------


def _v1_core_tables(conn: Connection) -> None:
    Base.metadata.create_all(
        conn,
        tables=[
            SiTransaction.__table__,
            SiTag.__table__,
            SiBudget.__table__,
            SiUploadedFile.__table__,
        ],
    )


@dataclass(frozen=True, slots=True)
class Migration:
    version: int
    description: str
    apply: Callable[[Connection], None]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "core tables", _v1_core_tables),
)


def current_version(conn: Connection) -> int:
    if not inspect(conn).has_table(SiSchemaVersion.__tablename__):
        return 0
    return conn.execute(select(func.max(SiSchemaVersion.version))).scalar() or 0


def migrate(engine: Engine) -> int:
    """Apply pending migrations in order and return the resulting version.

    Each migration runs in its own transaction together with its version row.
    """

    with engine.begin() as conn:
        Base.metadata.create_all(conn, tables=[SiSchemaVersion.__table__])
        version = current_version(conn)

    for m in MIGRATIONS:
        if m.version <= version:
            continue
        with engine.begin() as conn:
            m.apply(conn)
            conn.execute(
                SiSchemaVersion.__table__.insert().values(
                    version=m.version, applied_at=datetime.now(UTC)
                )
            )
        _log.info("applied schema migration %d (%s)", m.version, m.description)
        version = m.version
    return version


# ---------------------------
# Row <-> value mapping
# ---------------------------


def _tx_to_row(tx: Transaction) -> SiTransaction:
    return SiTransaction(
        id=tx.id,
        date=tx.date,
        narrative=tx.narrative,
        reference=tx.reference,
        debit=tx.debit,
        credit=tx.credit,
        balance=tx.balance,
        amount=tx.amount,
        type=tx.type.value,
        channel=tx.channel.value,
        tag_ids=list(tx.tag_ids),
        manual_tag_override=tx.manual_tag_override,
        note=tx.note,
        custom_tags=list(tx.custom_tags),
        is_reviewed=tx.is_reviewed,
        source_file=tx.source_file,
        imported_at=tx.imported_at,
    )


def _row_to_tx(row: SiTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        date=row.date,
        narrative=row.narrative,
        reference=row.reference,
        debit=row.debit,
        credit=row.credit,
        balance=row.balance,
        amount=row.amount,
        type=TransactionType(row.type),
        channel=PaymentChannel(row.channel),
        tag_ids=tuple(row.tag_ids or ()),
        manual_tag_override=bool(row.manual_tag_override),
        note=row.note,
        custom_tags=tuple(row.custom_tags or ()),
        is_reviewed=bool(row.is_reviewed),
        source_file=row.source_file,
        imported_at=row.imported_at,
    )


def _tag_to_row(tag: Tag) -> SiTag:
    return SiTag(
        id=tag.id,
        name=tag.name,
        keywords=list(tag.keywords),
        color=tag.color,
        icon=tag.icon,
        is_default=tag.is_default,
        parent_tag_id=tag.parent_tag_id,
        created_at=tag.created_at,
        updated_at=tag.updated_at,
    )


def _row_to_tag(row: SiTag) -> Tag:
    return Tag(
        id=row.id,
        name=row.name,
        keywords=tuple(row.keywords),
        color=row.color,
        icon=row.icon,
        is_default=bool(row.is_default),
        parent_tag_id=row.parent_tag_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _budget_to_row(b: Budget) -> SiBudget:
    return SiBudget(
        id=b.id,
        tag_id=b.tag_id,
        monthly_limit=b.monthly_limit,
        period=b.period,
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


def _row_to_budget(row: SiBudget) -> Budget:
    return Budget(
        id=row.id,
        tag_id=row.tag_id,
        monthly_limit=row.monthly_limit,
        period=row.period,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def compute_checksum(buffer: bytes) -> str:
    """SHA-256 hex digest of an uploaded file's bytes."""

    return hashlib.sha256(buffer).hexdigest()


# ---------------------------
# Store handle
# ---------------------------


class LedgerStore:
    """Handle over one database; see module docstring."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False, class_=Session
        )

    @classmethod
    def open(cls, database_url: str | None = None) -> LedgerStore:
        """Connect, migrate, and return a ready handle.

        ``database_url`` falls back to ``STATEMENT_INSIGHTS_DATABASE_URL``.

        Raises
        ------
        StoreError
            When the engine cannot be created or migrations fail.
        """

        url = database_url or load_settings().database_url
        try:
            engine = create_engine(url, pool_pre_ping=True)
            version = migrate(engine)
        except SQLAlchemyError as e:
            raise StoreError(f"failed to open store at {url!r}: {e}") from e
        _log.debug("store open at schema version %d", version)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> LedgerStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self._session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def schema_version(self) -> int:
        with self._engine.connect() as conn:
            return current_version(conn)

    # -- transactions -------------------------------------------------------

    def load_transactions(self) -> list[Transaction]:
        with self.session_scope() as s:
            rows = s.scalars(select(SiTransaction).order_by(SiTransaction.date, SiTransaction.id))
            return [_row_to_tx(r) for r in rows]

    def save_transactions(self, transactions: Iterable[Transaction]) -> int:
        """Upsert by id; returns the number of records written."""

        n = 0
        with self.session_scope() as s:
            for tx in transactions:
                s.merge(_tx_to_row(tx))
                n += 1
        _log.debug("saved %d transactions", n)
        return n

    def delete_transaction(self, transaction_id: str) -> bool:
        with self.session_scope() as s:
            result = s.execute(delete(SiTransaction).where(SiTransaction.id == transaction_id))
            return bool(result.rowcount)

    # -- tags ---------------------------------------------------------------

    def load_tags(self) -> list[Tag]:
        with self.session_scope() as s:
            return [_row_to_tag(r) for r in s.scalars(select(SiTag).order_by(SiTag.created_at, SiTag.id))]

    def save_tags(self, tags: Iterable[Tag]) -> int:
        n = 0
        with self.session_scope() as s:
            for tag in tags:
                s.merge(_tag_to_row(tag))
                n += 1
        return n

    def delete_tag(self, tag_id: str) -> bool:
        with self.session_scope() as s:
            result = s.execute(delete(SiTag).where(SiTag.id == tag_id))
            return bool(result.rowcount)

    # -- budgets ------------------------------------------------------------

    def load_budgets(self) -> list[Budget]:
        with self.session_scope() as s:
            return [_row_to_budget(r) for r in s.scalars(select(SiBudget).order_by(SiBudget.period, SiBudget.id))]

    def save_budgets(self, budgets: Iterable[Budget]) -> int:
        n = 0
        with self.session_scope() as s:
            for b in budgets:
                s.merge(_budget_to_row(b))
                n += 1
        return n

    def delete_budget(self, budget_id: str) -> bool:
        with self.session_scope() as s:
            result = s.execute(delete(SiBudget).where(SiBudget.id == budget_id))
            return bool(result.rowcount)

    # -- uploads ------------------------------------------------------------

    def record_upload(self, record: UploadedFileRecord) -> None:
        rng = record.date_range
        with self.session_scope() as s:
            s.add(
                SiUploadedFile(
                    file_name=record.file_name,
                    uploaded_at=record.uploaded_at,
                    transaction_count=record.transaction_count,
                    range_start=rng.start if rng else None,
                    range_end=rng.end if rng else None,
                    checksum=record.checksum,
                )
            )

    def load_uploads(self) -> list[UploadedFileRecord]:
        with self.session_scope() as s:
            rows = s.scalars(select(SiUploadedFile).order_by(SiUploadedFile.id))
            return [
                UploadedFileRecord(
                    file_name=r.file_name,
                    uploaded_at=r.uploaded_at,
                    transaction_count=r.transaction_count,
                    date_range=(
                        DateRange(start=r.range_start, end=r.range_end)
                        if r.range_start is not None and r.range_end is not None
                        else None
                    ),
                    checksum=r.checksum,
                )
                for r in rows
            ]

    def find_upload_by_checksum(self, checksum: str) -> UploadedFileRecord | None:
        for rec in self.load_uploads():
            if rec.checksum == checksum:
                return rec
        return None

    # -- maintenance --------------------------------------------------------

    def clear_all(self) -> None:
        """Delete every domain row; the schema version is kept."""

        with self.session_scope() as s:
            for model in (SiTransaction, SiTag, SiBudget, SiUploadedFile):
                s.execute(delete(model))
        _log.info("cleared all stored data")


__all__ = [
    "Migration",
    "MIGRATIONS",
    "current_version",
    "migrate",
    "compute_checksum",
    "LedgerStore",
]
