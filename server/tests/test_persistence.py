"""
Tests for the migration and the record repository, against a temporary SQLite DB.
"""
from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from server.config import Settings, set_settings
from server.persistence.db import dispose_engine, get_connection, get_engine, init_db
from server.persistence.repositories import RecordRepository
from server.persistence.schema import SEED_ROWS, TABLE_NAME


@pytest.fixture(autouse=True)
def isolated_db(tmp_path):
    """Point the pool at a fresh SQLite file for each test."""
    db_path = tmp_path / "records.db"
    set_settings(Settings(database_url_override=f"sqlite:///{db_path}"))
    yield db_path
    dispose_engine()
    set_settings(None)


@pytest.fixture
def repo():
    return RecordRepository()


def test_init_db_creates_and_seeds(repo):
    assert init_db() is True
    assert inspect(get_engine()).has_table(TABLE_NAME)
    with get_connection() as conn:
        records = repo.list_all(conn)
    assert [r.data for r in records] == list(SEED_ROWS)


def test_seed_ids_increase(repo):
    init_db()
    with get_connection() as conn:
        ids = [r.id for r in repo.list_all(conn)]
    assert len(ids) == 3
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_init_db_twice_does_not_reseed(repo):
    """Second run (server restart) finds the table and leaves it alone."""
    assert init_db() is True
    assert init_db() is False
    with get_connection() as conn:
        assert repo.count(conn) == len(SEED_ROWS)


def test_init_db_survives_pool_restart(repo):
    """A fresh pool against an already-migrated database does not reseed."""
    init_db()
    dispose_engine()
    assert init_db() is False
    with get_connection() as conn:
        assert repo.count(conn) == 3


def test_init_db_with_explicit_engine(isolated_db, repo):
    engine = get_engine()
    assert init_db(engine) is True
    with engine.connect() as conn:
        assert repo.count(conn) == 3


def test_list_all_empty_table(repo):
    """Existing but empty table: nothing is seeded, list is empty."""
    from server.persistence.schema import tbl_test
    with get_engine().begin() as conn:
        tbl_test.create(conn)
    assert init_db() is False
    with get_connection() as conn:
        assert repo.list_all(conn) == []
        assert repo.count(conn) == 0


def test_get_engine_is_shared():
    assert get_engine() is get_engine()


def test_dispose_engine_builds_new_pool():
    first = get_engine()
    dispose_engine()
    assert get_engine() is not first


def test_record_to_dict(repo):
    init_db()
    with get_connection() as conn:
        first = repo.list_all(conn)[0]
    assert first.to_dict() == {"id": first.id, "data": SEED_ROWS[0]}


def test_concurrent_init_db_seeds_once(repo):
    """Several callers racing on a fresh database create and seed the table exactly once."""
    get_engine()
    start = threading.Barrier(4)
    results, errors = [], []

    def run():
        start.wait()
        try:
            results.append(init_db())
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert errors == []
    assert sorted(results) == [False, False, False, True]
    with get_connection() as conn:
        assert repo.count(conn) == len(SEED_ROWS)


def test_lost_create_race_does_not_reseed(repo):
    """Table created elsewhere after the existence check: CREATE fails, no second seed."""
    init_db()
    stale = Mock()
    stale.has_table.return_value = False
    with patch("server.persistence.db.inspect", return_value=stale):
        with pytest.raises(OperationalError):
            init_db()
    with get_connection() as conn:
        assert repo.count(conn) == len(SEED_ROWS)


def test_nullable_data_column(repo):
    from server.persistence.schema import tbl_test
    init_db()
    with get_engine().begin() as conn:
        conn.execute(tbl_test.insert(), [{"data": None}])
    with get_connection() as conn:
        last = repo.list_all(conn)[-1]
    assert last.data is None
    assert last.to_dict() == {"id": last.id, "data": None}
