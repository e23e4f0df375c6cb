import os
import uuid
from types import SimpleNamespace

import pytest
import sqlalchemy as sa
from sqlalchemy.dialects.oracle.base import OracleDialect


class FakeResult:
    def __init__(self, rows=(), returns_rows=True):
        self._rows = list(rows)
        self.returns_rows = returns_rows

    def fetchall(self):
        return list(self._rows)


class FakeConnection:
    """Records statements and answers catalog queries from canned rows.

    Catalog rows are keyed by the view name the query reads from, e.g.
    ``conn.rows['dba_sys_privs'] = [('CREATE SESSION', 'NO')]``. Statements
    containing a key of ``fail_on`` raise the mapped exception instead of running.
    """

    def __init__(self):
        self.dialect = OracleDialect()
        self.engine = SimpleNamespace(dialect=self.dialect)
        self.rows = {}
        self.fail_on = {}
        self.queries = []
        self.statements = []

    def execute(self, clause, parameters=None):
        query = str(clause)
        self.queries.append((query, dict(parameters or {})))
        for view, rows in self.rows.items():
            if view in query:
                return FakeResult(rows)
        return FakeResult([])

    def exec_driver_sql(self, statement):
        for fragment, exc in self.fail_on.items():
            if fragment in statement:
                raise exc
        self.statements.append(statement)
        return FakeResult(self.rows.get(statement, []), returns_rows=statement in self.rows)


def database_error(message):
    return sa.exc.DatabaseError('statement', None, Exception(message))


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def test_sqlite_engine():
    engine = sa.create_engine('sqlite:///:memory:')
    yield engine
    engine.dispose()


# ===== Live database fixtures =====
#
# Only used by tests marked `integration`. They need ORACLE_HOST, ORACLE_PORT,
# ORACLE_SERVICE, ORACLE_USERNAME and ORACLE_PASSWORD for a user able to create
# users, roles and directories and to grant any privilege.


@pytest.fixture
def root_engine():
    if not os.environ.get('ORACLE_HOST'):
        pytest.skip('ORACLE_HOST is not set')
    pytest.importorskip('oracledb')

    from sync_grants.connect import create_engine

    engine = create_engine(poolclass=sa.pool.NullPool)
    yield engine
    engine.dispose()


@pytest.fixture
def test_conn(root_engine):
    with root_engine.connect() as conn:
        yield conn


@pytest.fixture
def create_test_user(test_conn):
    usernames = []

    def _create_test_user():
        username = f'test_user_{uuid.uuid4().hex[:12]}'
        usernames.append(username)
        test_conn.exec_driver_sql(f'CREATE USER {username} IDENTIFIED BY "Password_123"')
        return username

    yield _create_test_user

    for username in usernames:
        try:
            test_conn.exec_driver_sql(f'DROP USER {username} CASCADE')
        except sa.exc.DatabaseError:
            pass


@pytest.fixture
def test_user(create_test_user):
    return create_test_user()


@pytest.fixture
def test_role(test_conn):
    role_name = f'test_role_{uuid.uuid4().hex[:12]}'
    test_conn.exec_driver_sql(f'CREATE ROLE {role_name}')

    yield role_name

    try:
        test_conn.exec_driver_sql(f'DROP ROLE {role_name}')
    except sa.exc.DatabaseError:
        pass


@pytest.fixture
def test_table(create_test_user, test_conn):
    owner = create_test_user()
    table_name = f'test_table_{uuid.uuid4().hex[:12]}'
    test_conn.exec_driver_sql(f'CREATE TABLE {owner}.{table_name} (id NUMBER)')

    # Dropped along with its owner
    return owner, table_name


@pytest.fixture
def test_directory(test_conn):
    directory_name = f'test_dir_{uuid.uuid4().hex[:12]}'
    test_conn.exec_driver_sql(f"CREATE OR REPLACE DIRECTORY {directory_name} AS '/tmp'")

    yield directory_name

    try:
        test_conn.exec_driver_sql(f'DROP DIRECTORY {directory_name}')
    except sa.exc.DatabaseError:
        pass
