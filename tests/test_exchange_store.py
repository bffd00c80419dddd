import sqlite3
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from klefki.app.core.db import get_connection, init_db
from klefki.app.core.errors import ExchangeNotFound, ExchangeNotReady, KeyAlreadySet


def _row(db_path, exchange_id):
    conn = get_connection(db_path)
    try:
        return conn.execute("SELECT * FROM exchange WHERE id = ?", (exchange_id,)).fetchone()
    finally:
        conn.close()


def test_create_inserts_row_awaiting_key_b(store, db_path):
    exchange_id = store.create("aaa")
    assert uuid.UUID(exchange_id).version == 4
    row = _row(db_path, exchange_id)
    assert row["keyA"] == "aaa"
    assert row["keyB"] is None


def test_create_issues_fresh_ids(store):
    ids = {store.create("aaa") for _ in range(50)}
    assert len(ids) == 50
    assert store.count() == 50


def test_set_key_b_returns_key_a_and_stores_key_b(store, db_path):
    exchange_id = store.create("aaa")
    assert store.set_key_b(exchange_id, "bbb") == "aaa"
    assert _row(db_path, exchange_id)["keyB"] == "bbb"


def test_set_key_b_unknown_id(store):
    with pytest.raises(ExchangeNotFound):
        store.set_key_b(str(uuid.uuid4()), "bbb")


def test_set_key_b_twice_keeps_first_key(store, db_path):
    exchange_id = store.create("aaa")
    store.set_key_b(exchange_id, "bbb")
    with pytest.raises(KeyAlreadySet):
        store.set_key_b(exchange_id, "ccc")
    # same value again is not silently accepted either
    with pytest.raises(KeyAlreadySet):
        store.set_key_b(exchange_id, "bbb")
    assert _row(db_path, exchange_id)["keyB"] == "bbb"


def test_take_key_b_before_join_is_not_ready(store, db_path):
    exchange_id = store.create("aaa")
    with pytest.raises(ExchangeNotReady):
        store.take_key_b(exchange_id)
    assert _row(db_path, exchange_id) is not None


def test_take_key_b_deletes_row(store, db_path):
    exchange_id = store.create("aaa")
    store.set_key_b(exchange_id, "bbb")
    assert store.take_key_b(exchange_id) == "bbb"
    assert _row(db_path, exchange_id) is None
    with pytest.raises(ExchangeNotFound):
        store.take_key_b(exchange_id)


def test_concurrent_set_key_b_has_one_winner(store, db_path):
    exchange_id = store.create("aaa")
    candidates = [f"key{i}" for i in range(8)]
    barrier = threading.Barrier(len(candidates))

    def attempt(key_b):
        barrier.wait()
        try:
            return key_b, store.set_key_b(exchange_id, key_b)
        except KeyAlreadySet:
            return key_b, None

    with ThreadPoolExecutor(max_workers=len(candidates)) as pool:
        results = list(pool.map(attempt, candidates))

    winners = [key_b for key_b, key_a in results if key_a is not None]
    assert len(winners) == 1
    assert all(key_a in (None, "aaa") for _, key_a in results)
    assert _row(db_path, exchange_id)["keyB"] == winners[0]


def test_concurrent_take_key_b_served_once(store):
    exchange_id = store.create("aaa")
    store.set_key_b(exchange_id, "bbb")
    barrier = threading.Barrier(6)

    def attempt(_):
        barrier.wait()
        try:
            return store.take_key_b(exchange_id)
        except ExchangeNotFound:
            return None

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(attempt, range(6)))

    assert results.count("bbb") == 1
    assert results.count(None) == 5


def test_reap_expired_removes_only_old_rows(store):
    old = store.create("old", now=1_000.0)
    fresh = store.create("fresh", now=5_000.0)
    assert store.reap_expired(3_600, now=5_000.0) == 1
    with pytest.raises(ExchangeNotFound):
        store.set_key_b(old, "bbb")
    assert store.set_key_b(fresh, "bbb") == "fresh"


def test_init_db_is_idempotent(db_path):
    init_db(db_path)
    conn = get_connection(db_path)
    try:
        versions = [r["version"] for r in conn.execute("SELECT version FROM migrations ORDER BY version")]
    finally:
        conn.close()
    assert versions == [1, 2]


def test_missing_table_raises_sqlite_error(tmp_path):
    from klefki.app.services.exchange_store import ExchangeStore

    bare = ExchangeStore(str(tmp_path / "unmigrated.db"))
    with pytest.raises(sqlite3.OperationalError):
        bare.create("aaa")
