from dataclasses import replace
from datetime import UTC, date, datetime

import pytest
from sqlalchemy import func, select

from statement_insights.db_models import SiSchemaVersion
from statement_insights.errors import StoreError
from statement_insights.models import Budget, DateRange, UploadedFileRecord
from statement_insights.store import MIGRATIONS, LedgerStore, _tx_to_row, compute_checksum, migrate
from statement_insights.tags import create_custom_tag, get_default_tags

from tests.helpers.factories import make_tx

NOW = datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
def store(database_url):
    with LedgerStore.open(database_url) as s:
        yield s


def test_open_applies_migrations_once(database_url):
    with LedgerStore.open(database_url) as first:
        assert first.schema_version() == MIGRATIONS[-1].version
        assert migrate(first.engine) == MIGRATIONS[-1].version
    with LedgerStore.open(database_url) as again, again.session_scope() as s:
        rows = s.scalar(select(func.count()).select_from(SiSchemaVersion))
    assert rows == len(MIGRATIONS)


def test_open_falls_back_to_environment(database_url, monkeypatch):
    monkeypatch.setenv("STATEMENT_INSIGHTS_DATABASE_URL", database_url)
    with LedgerStore.open() as s:
        assert s.schema_version() == 1


def test_open_reports_bad_url():
    with pytest.raises(StoreError):
        LedgerStore.open("nosuchdialect://nowhere")


def test_transactions_round_trip_and_upsert(store):
    a = make_tx(date(2024, 1, 2), "UPI/DR/1/ACME/ok", debit=200, balance=1300, tag_ids=("tag-1",))
    b = make_tx(date(2024, 1, 1), "UPI/CR/1/ACME/ok", credit=500, balance=1500)
    assert store.save_transactions([a, b]) == 2

    loaded = store.load_transactions()
    assert loaded == [b, a]  # ordered by date
    assert loaded[1].tag_ids == ("tag-1",)
    assert loaded[0].debit is None

    edited = replace(a, note="groceries", is_reviewed=True, custom_tags=("weekly",))
    store.save_transactions([edited])
    again = store.load_transactions()
    assert len(again) == 2
    assert again[1] == edited

    assert store.delete_transaction(a.id)
    assert not store.delete_transaction(a.id)
    assert store.load_transactions() == [b]


def test_tags_and_budgets(store):
    defaults = get_default_tags(now=NOW)
    child = create_custom_tag(
        "Coffee", ["starbucks"], "#aa5500", parent_tag_id="tag-1", tag_id="coffee", existing=defaults, now=NOW
    )
    store.save_tags([*defaults, child])

    loaded = {t.id: t for t in store.load_tags()}
    assert len(loaded) == 12
    assert loaded["coffee"].parent_tag_id == "tag-1"
    assert loaded["tag-1"].keywords == defaults[0].keywords
    assert loaded["tag-1"].is_default

    assert store.delete_tag("coffee")
    assert "coffee" not in {t.id for t in store.load_tags()}

    budget = Budget(id="b1", tag_id="tag-1", monthly_limit=4000, period="2024-01", created_at=NOW, updated_at=NOW)
    store.save_budgets([budget])
    store.save_budgets([budget.model_copy(update={"monthly_limit": 4500.0})])
    (stored,) = store.load_budgets()
    assert stored.monthly_limit == 4500
    assert store.delete_budget("b1")
    assert store.load_budgets() == []


def test_uploads_and_clear_all(store):
    checksum = compute_checksum(b"statement bytes")
    assert len(checksum) == 64
    store.record_upload(
        UploadedFileRecord(
            file_name="jan.xlsx",
            uploaded_at=NOW,
            transaction_count=2,
            date_range=DateRange(date(2024, 1, 1), date(2024, 1, 2)),
            checksum=checksum,
        )
    )
    store.record_upload(
        UploadedFileRecord(file_name="empty.xlsx", uploaded_at=NOW, transaction_count=0, date_range=None, checksum="0" * 64)
    )

    jan, empty = store.load_uploads()
    assert jan.date_range == DateRange(date(2024, 1, 1), date(2024, 1, 2))
    assert empty.date_range is None
    found = store.find_upload_by_checksum(checksum)
    assert found is not None and found.file_name == "jan.xlsx"
    assert store.find_upload_by_checksum("f" * 64) is None

    store.save_transactions([make_tx(date(2024, 1, 1), "x", debit=1)])
    store.clear_all()
    assert store.load_transactions() == []
    assert store.load_uploads() == []
    assert store.schema_version() == 1


def test_session_scope_rolls_back_on_error(store):
    tx = make_tx(date(2024, 1, 1), "x", debit=1)
    with pytest.raises(RuntimeError), store.session_scope() as s:
        s.add(_tx_to_row(tx))
        s.flush()
        raise RuntimeError("abort")
    assert store.load_transactions() == []
