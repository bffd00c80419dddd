import asyncio
import sqlite3
import sys
import time

import pytest

from klefki.app.core.errors import ExchangeNotFound
from klefki.app.services.exchange_service import ExchangeService
from klefki.app.services.exchange_store import ExchangeStore
from klefki.app.services.reaper import reap_forever, reap_once


def test_reap_once_deletes_expired(service, store):
    expired = store.create("aaa", now=time.time() - 7200)
    live = service.initiate("bbb")
    assert asyncio.run(reap_once(service, 3600)) == 1
    with pytest.raises(ExchangeNotFound):
        service.join(expired, "ccc")
    assert service.join(live, "ccc") == "bbb"


def test_reap_once_survives_storage_failure(tmp_path, caplog):
    broken = ExchangeService(ExchangeStore(str(tmp_path / "broken.db")))
    assert asyncio.run(reap_once(broken, 60)) == 0
    assert "Reaping pass failed" in caplog.text


def test_reap_forever_runs_until_cancelled(service, store):
    store.create("aaa", now=0.0)

    async def run():
        task = asyncio.create_task(reap_forever(lambda: service, 60, 0.01))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert store.count() == 0


def test_reap_script(store, db_path, monkeypatch, capsys):
    import reap_exchanges

    store.create("old", now=0.0)
    store.create("new")
    monkeypatch.setattr(sys, "argv", ["reap_exchanges.py", "--db", db_path, "--max-age", "3600"])
    reap_exchanges.main()
    out = capsys.readouterr().out
    assert "Deleted 1 expired exchange(s); 1 remaining" in out


def test_reap_script_missing_db(tmp_path, monkeypatch):
    import reap_exchanges

    monkeypatch.setattr(
        sys, "argv", ["reap_exchanges.py", "--db", str(tmp_path / "nope.db"), "--max-age", "1"]
    )
    with pytest.raises(SystemExit) as exc:
        reap_exchanges.main()
    assert exc.value.code == 1


def test_reap_script_unmigrated_db(tmp_path, monkeypatch):
    import reap_exchanges

    path = tmp_path / "empty.db"
    sqlite3.connect(path).close()
    monkeypatch.setattr(sys, "argv", ["reap_exchanges.py", "--db", str(path), "--max-age", "1"])
    with pytest.raises(SystemExit) as exc:
        reap_exchanges.main()
    assert exc.value.code == 2


class _CrashingService:
    def __init__(self):
        self.calls = 0

    def reap_expired(self, ttl_seconds):
        self.calls += 1
        raise RuntimeError("boom")


def test_reap_forever_keeps_running_after_unexpected_error(caplog):
    crashing = _CrashingService()

    async def run():
        task = asyncio.create_task(reap_forever(lambda: crashing, 60, 0.01))
        await asyncio.sleep(0.1)
        assert not task.done()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    asyncio.run(run())
    assert crashing.calls > 1
    assert "Reaping pass crashed" in caplog.text


def test_reap_forever_survives_failing_provider(caplog):
    def provider():
        raise RuntimeError("no service")

    async def run():
        task = asyncio.create_task(reap_forever(provider, 60, 0.01))
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    asyncio.run(run())
    assert "Reaping pass crashed" in caplog.text
    assert "no service" in caplog.text
