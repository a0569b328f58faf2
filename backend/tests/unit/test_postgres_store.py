import json

import pytest

from watchme.infra import postgres
from watchme.infra.docstore import Filter, TransactionConflict
from watchme.infra.docstore.core import WriteOp
from watchme.infra.docstore.postgres_store import PostgresDocumentStore


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeConnection:
    def __init__(self, rows=(), statuses=()):
        self.rows = list(rows)
        self.statuses = list(statuses)
        self.fetched = []
        self.executed = []

    def transaction(self):
        return FakeTransaction()

    async def fetch(self, sql, *args):
        self.fetched.append((" ".join(sql.split()), args))
        return self.rows

    async def execute(self, sql, *args):
        self.executed.append((" ".join(sql.split()), args))
        return self.statuses.pop(0) if self.statuses else "UPDATE 1"


class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc):
        return False


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    def acquire(self):
        return FakeAcquire(self.conn)


@pytest.fixture
def pg(monkeypatch):
    def _install(conn):
        async def fake_get_pool():
            return FakePool(conn)

        monkeypatch.setattr(postgres, "get_pool", fake_get_pool)
        return PostgresDocumentStore()

    return _install


def _row(path, data, version):
    return {"path": path, "data": json.dumps(data), "version": version}


@pytest.mark.asyncio
async def test_stale_expected_version_is_a_conflict(pg):
    conn = FakeConnection(rows=[_row("users/u1", {"n": 1}, 2)])
    store = pg(conn)

    with pytest.raises(TransactionConflict) as excinfo:
        await store.commit([WriteOp("update", "users/u1", {"n": 2})], expected={"users/u1": 1})
    assert excinfo.value.reason == "version_mismatch:users/u1"
    assert conn.executed == []
    assert conn.fetched[0][0].endswith("FOR UPDATE")
    assert conn.fetched[0][1] == (["users/u1"],)


@pytest.mark.asyncio
async def test_update_is_guarded_by_the_read_version(pg):
    conn = FakeConnection(rows=[_row("users/u1", {"n": 1, "bio": "x"}, 3)], statuses=["UPDATE 1"])
    store = pg(conn)

    await store.update("users/u1", {"n": 2})

    sql, args = conn.executed[0]
    assert sql.startswith("UPDATE documents SET data = $2::jsonb, version = version + 1")
    assert sql.endswith("WHERE path = $1 AND version = $3")
    assert args[0] == "users/u1" and args[2] == 3
    assert json.loads(args[1]) == {"n": 2, "bio": "x"}


@pytest.mark.asyncio
async def test_insert_race_inside_transaction_is_a_conflict(pg):
    conn = FakeConnection(rows=[], statuses=["INSERT 0 0"])
    store = pg(conn)

    with pytest.raises(TransactionConflict) as excinfo:
        await store.commit([WriteOp("set", "users/u1", {"n": 1})], expected={"users/u1": 0})
    assert excinfo.value.reason == "write_conflict:users/u1"
    sql, args = conn.executed[0]
    assert "ON CONFLICT (path) DO NOTHING" in sql
    assert args[:3] == ("users/u1", "users", "u1")
    assert len(conn.executed) == 1


@pytest.mark.asyncio
async def test_blind_insert_retries_then_reports_contention(pg):
    conn = FakeConnection(rows=[], statuses=["INSERT 0 0"] * 20)
    store = pg(conn)

    with pytest.raises(TransactionConflict) as excinfo:
        await store.set("users/u1", {"n": 1})
    assert excinfo.value.reason == "write_contention"
    assert len(conn.executed) == 10


@pytest.mark.asyncio
async def test_blind_insert_succeeds_on_retry(pg):
    conn = FakeConnection(rows=[], statuses=["INSERT 0 0", "INSERT 0 1"])
    store = pg(conn)
    seen = []

    async def _listener(path, data):
        seen.append((path, data))

    store.add_listener(_listener)
    await store.set("users/u1", {"n": 1})
    assert len(conn.executed) == 2
    assert seen == [("users/u1", {"n": 1})]


@pytest.mark.asyncio
async def test_delete_removes_existing_row_only(pg):
    conn = FakeConnection(rows=[_row("users/u1", {"n": 1}, 4)], statuses=["DELETE 1"])
    store = pg(conn)

    await store.delete("users/u1")
    assert conn.executed == [("DELETE FROM documents WHERE path = $1 AND version = $2", ("users/u1", 4))]

    missing = FakeConnection(rows=[])
    await pg(missing).delete("users/u2")
    assert missing.executed == []


@pytest.mark.asyncio
async def test_delete_of_row_changed_underneath_is_a_conflict(pg):
    conn = FakeConnection(rows=[_row("users/u1", {"n": 1}, 4)], statuses=["DELETE 0"])
    store = pg(conn)

    with pytest.raises(TransactionConflict):
        await store.commit([WriteOp("delete", "users/u1")], expected={"users/u1": 4})


@pytest.mark.asyncio
async def test_query_pushes_equality_and_membership_into_sql(pg):
    conn = FakeConnection(
        rows=[
            _row("friendRequests/r1", {"to_user_id": "u1", "meta": {"tags": ["x"]}, "n": 1}, 1),
            _row("friendRequests/r2", {"to_user_id": "u1", "meta": {"tags": ["x"]}, "n": 2}, 1),
        ]
    )
    store = pg(conn)

    found = await store.query(
        "friendRequests",
        [Filter("to_user_id", "==", "u1"), Filter("meta.tags", "array-contains", "x"), Filter("n", "!=", 2)],
    )

    sql, args = conn.fetched[0]
    assert sql == (
        "SELECT path, data, version FROM documents "
        "WHERE collection = $1 AND data @> $2::jsonb AND data @> $3::jsonb ORDER BY path"
    )
    assert args[0] == "friendRequests"
    assert json.loads(args[1]) == {"to_user_id": "u1"}
    assert json.loads(args[2]) == {"meta": {"tags": ["x"]}}
    # != is not pushed down and is applied after the fetch
    assert [snap.id for snap in found] == ["r1"]


@pytest.mark.asyncio
async def test_query_pushes_string_ranges_into_sql(pg):
    conn = FakeConnection(rows=[_row("users/u1", {"username": "ada"}, 1)])
    store = pg(conn)

    found = await store.query("users", [Filter("username", ">=", "ad"), Filter("username", "<", "ad\uf8ff")])

    sql, args = conn.fetched[0]
    assert '(data #>> $2::text[]) COLLATE "C" >= $3' in sql
    assert '(data #>> $4::text[]) COLLATE "C" < $5' in sql
    assert args == ("users", ["username"], "ad", ["username"], "ad\uf8ff")
    assert [snap.id for snap in found] == ["u1"]
