"""Integration tests: compile → execute against a real SQLite in-memory DB.

Runs the ConnectionManager over SQLAlchemy (``EngineConnection`` +
``SQLAlchemyExecutor``) and checks inserts with identity read-back, queries,
updates, deletes, composite keys and transaction commit / rollback.
"""
from __future__ import annotations

import pytest

pytest.importorskip("sqlalchemy", reason="sqlalchemy required for SQLite integration tests")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from brickorm import ConnectionManager, Options, SQLiteDialect, member  # noqa: E402
from brickorm.connection.engine import EngineConnection, SQLAlchemyExecutor, split_statements  # noqa: E402
from brickorm.errors import MultipleResultsError  # noqa: E402
from tests.fixtures import AuditEntry, Citizen, Order, Person, load_ddl  # noqa: E402

READ_BACK = Options(SelectAfterMutation=True)


@pytest.fixture()
def engine():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    with engine.begin() as conn:
        for statement in split_statements(load_ddl("sqlite")):
            conn.exec_driver_sql(statement)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine) -> ConnectionManager:
    manager = ConnectionManager(EngineConnection(engine), SQLiteDialect())
    yield manager
    manager.dispose()


def _count(db: ConnectionManager) -> int:
    return len(db.query(Person))


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def test_insert_reads_back_identity(db):
    joe = db.insert(Person(FirstName="Joe", LastName="Smith", Age=25), READ_BACK)
    ann = db.insert(Person(FirstName="Ann", LastName="Lee", Age=31), READ_BACK)
    assert isinstance(joe, Person)
    assert joe.Id == 1
    assert ann.Id == 2
    assert ann.FirstName == "Ann"
    assert joe.CreateDateUTC is not None


def test_insert_without_readback_returns_none(db):
    assert db.insert(Person(FirstName="Joe", LastName="Smith", Age=25)) is None
    assert _count(db) == 1


def test_query_filters_orders_and_pages(db):
    for first, age in [("A", 10), ("B", 20), ("C", 30), ("D", 40)]:
        db.insert(Person(FirstName=first, LastName="X", Age=age))

    adults = db.query(Person, member("Age") >= 20)
    assert sorted(p.FirstName for p in adults) == ["B", "C", "D"]

    page = db.select(Person).order_by_descending("Age").skip(1).take(2)
    assert [p.FirstName for p in db.query(page)] == ["C", "B"]

    tail = db.select(Person).order_by("Age").skip(3)
    assert [p.FirstName for p in db.query(tail)] == ["D"]

    assert db.query(db.select(Person).skip(0).take(0)) == []
    assert [p.FirstName for p in db.query(Person, member("FirstName").in_(["A", "D"]))] == ["A", "D"]
    assert db.query(Person, member("FirstName").in_([])) == []


def test_get_by_id_and_update(db):
    joe = db.insert(Person(FirstName="Joe", LastName="Smith", Age=25), READ_BACK)
    joe.Age = 26
    updated = db.update(joe, options=READ_BACK)
    assert updated.Age == 26
    assert db.get_by_id(Person, joe.Id).Age == 26
    assert db.get_by_id(Person, 999) is None


def test_update_by_condition(db):
    db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
    db.insert(Person(FirstName="Ann", LastName="Lee", Age=31))
    db.update(Person(FirstName="Anonymous", LastName="-", Age=0), member("Age") > 30)
    names = sorted(p.FirstName for p in db.query(Person))
    assert names == ["Anonymous", "Joe"]


def test_composite_keys(db):
    db.insert(Citizen(Id=1, SSN="abc", Name="Joe"))
    db.insert(Citizen(Id=1, SSN="def", Name="Ann"))
    assert db.get_by_keys(Citizen, {"Id": 1, "SSN": "def"}).Name == "Ann"
    assert db.delete(Citizen, keys={"SSN": "abc", "Id": 1}) == 1
    assert [c.Name for c in db.query(Citizen)] == ["Ann"]


def test_delete_instance_and_predicate(db):
    joe = db.insert(Person(FirstName="Joe", LastName="Smith", Age=25), READ_BACK)
    db.insert(Person(FirstName="Ann", LastName="Lee", Age=31))
    db.insert(Person(FirstName="Bo", LastName="Lee", Age=12))
    assert db.delete(joe) == 1
    assert db.delete(Person, member("Age") < 18) == 1
    assert [p.FirstName for p in db.query(Person)] == ["Ann"]


def test_join(db):
    joe = db.insert(Person(FirstName="Joe", LastName="Smith", Age=25), READ_BACK)
    db.insert(Person(FirstName="Ann", LastName="Lee", Age=31))
    db.insert(Order(PersonId=joe.Id, Total=9.5))
    buyers = db.query(db.select(Person).join(Order, "Id", "PersonId"))
    assert [p.FirstName for p in buyers] == ["Joe"]


def test_keyless_entity_and_unconditional_delete(db):
    db.insert(AuditEntry(Message="started", Level=1))
    db.insert(AuditEntry(Message="stopped", Level=2))
    assert len(db.query(AuditEntry)) == 2
    assert db.delete(AuditEntry) == 2


def test_multiple_rows_for_single_lookup(db, engine):
    db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
    db.insert(Person(FirstName="Ann", LastName="Smith", Age=31))
    connection = EngineConnection(engine)
    connection.open()
    try:
        executor = SQLAlchemyExecutor(connection)
        with pytest.raises(MultipleResultsError) as exc_info:
            executor.query_single_or_default(Person, 'SELECT * FROM "Person"', {})
        assert exc_info.value.count == 2
    finally:
        connection.close()


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def test_commit_persists(db):
    with db.begin_transaction():
        db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
        db.commit()
    assert _count(db) == 1


def test_rollback_discards(db):
    db.begin_transaction()
    db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
    assert _count(db) == 1
    db.rollback()
    assert _count(db) == 0


def test_nested_commit_defers_to_outermost(db):
    db.begin_transaction()
    db.begin_transaction()
    db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
    db.commit()
    assert db.transaction_depth == 1
    db.rollback()
    assert _count(db) == 0


def test_abandoned_transaction_is_discarded(db):
    with db.begin_transaction():
        db.insert(Person(FirstName="Joe", LastName="Smith", Age=25))
    assert db.transaction_depth == 0
    assert _count(db) == 0
