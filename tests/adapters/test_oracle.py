import re

import pytest

from sync_grants import AccountState
from sync_grants import AuthenticationType
from sync_grants import Directory
from sync_grants import NotFoundError
from sync_grants import Role
from sync_grants import User
from sync_grants.adapters.oracle import OracleAdapter
from sync_grants.models import GrantOperation
from sync_grants.models import GrantOperationType
from sync_grants.models import PrivilegeDomain


@pytest.mark.parametrize(
    ('name', 'quoted'),
    [
        ('app_user', '"APP_USER"'),
        ('App_User', '"APP_USER"'),
        (' spaced ', '"SPACED"'),
        ('connect', '"CONNECT"'),
        ('we"ird', '"WE""IRD"'),
    ],
)
def test_identifier(fake_conn, name: str, quoted: str) -> None:
    assert OracleAdapter(fake_conn).identifier(name) == quoted


@pytest.mark.parametrize('name', ['', '   '])
def test_identifier_raises_when_empty(fake_conn, name: str) -> None:
    with pytest.raises(ValueError, match='Identifier must not be empty'):
        OracleAdapter(fake_conn).identifier(name)


def test_privilege_keyword_is_normalised(fake_conn) -> None:
    assert OracleAdapter(fake_conn).privilege_keyword('  select   any table ') == 'SELECT ANY TABLE'


@pytest.mark.parametrize(
    'privilege',
    ['SELECT, DELETE', '1SELECT', "READ'", 'UPDATE (id)', 'SELECT\tANY TABLE', 'DROP\nUSER', ''],
)
def test_privilege_keyword_raises(fake_conn, privilege: str) -> None:
    with pytest.raises(ValueError, match=re.escape(f'Invalid privilege name: {privilege!r}')):
        OracleAdapter(fake_conn).privilege_keyword(privilege)


def test_build_statement_raises_for_unrecognised_type(fake_conn) -> None:
    operation = GrantOperation('MERGE', PrivilegeDomain.SYSTEM, 'tun', (), ('CREATE SESSION',))
    msg = f"Unrecognised privilege type 'MERGE' for grant: {operation!r}"
    with pytest.raises(ValueError, match=re.escape(msg)):
        OracleAdapter(fake_conn).build_statement(operation)


def test_build_statement_raises_without_privileges(fake_conn) -> None:
    operation = GrantOperation(GrantOperationType.GRANT, PrivilegeDomain.SYSTEM, 'tun', (), ())
    with pytest.raises(ValueError, match='No privileges to render'):
        OracleAdapter(fake_conn).build_statement(operation)


def test_revoke_statement_has_no_option_clause(fake_conn) -> None:
    operation = GrantOperation(
        GrantOperationType.REVOKE,
        PrivilegeDomain.OBJECT,
        'tun',
        ('hr', 'employees'),
        ('SELECT',),
        with_option=True,
    )
    assert OracleAdapter(fake_conn).build_statement(operation) == 'REVOKE SELECT ON "HR"."EMPLOYEES" FROM "TUN"'


def test_current_system_privileges_fold_admin_option(fake_conn) -> None:
    fake_conn.rows['dba_sys_privs'] = [('CREATE SESSION', 'NO'), ('CREATE TABLE', 'YES')]

    assert OracleAdapter(fake_conn).get_current_system_privileges('tun') == (
        'CREATE SESSION',
        'CREATE TABLE WITH ADMIN OPTION',
    )
    assert fake_conn.queries[0][1] == {'grantee': 'tun'}


def test_current_object_privileges_fold_grant_option(fake_conn) -> None:
    fake_conn.rows['dba_tab_privs'] = [('SELECT', 'YES')]

    assert OracleAdapter(fake_conn).get_current_object_privileges('tun', 'hr', 'employees') == (
        'SELECT WITH GRANT OPTION',
    )


def test_current_directory_privileges(fake_conn) -> None:
    fake_conn.rows['all_tab_privs'] = [('READ', 'NO'), ('WRITE', 'YES')]

    assert OracleAdapter(fake_conn).get_current_directory_privileges('tun', 'data_dir') == (
        'READ',
        'WRITE WITH GRANT OPTION',
    )
    query, params = fake_conn.queries[0]
    assert "type = 'DIRECTORY'" in query
    assert params == {'grantee': 'tun', 'directory_name': 'data_dir'}


def test_current_roles_are_lower_cased(fake_conn) -> None:
    fake_conn.rows['dba_role_privs'] = [('CONNECT', 'NO'), ('DBA', 'YES')]

    assert OracleAdapter(fake_conn).get_current_roles('tun') == ('connect', 'dba WITH ADMIN OPTION')


def test_no_privileges_for_unknown_principal(fake_conn) -> None:
    assert OracleAdapter(fake_conn).get_current_system_privileges('nobody') == ()


@pytest.mark.parametrize(
    ('user', 'statement'),
    [
        (
            User('tun', password='s3cret'),
            'CREATE USER "TUN" IDENTIFIED BY "s3cret"',
        ),
        (
            User('tun', authentication_type=AuthenticationType.EXTERNAL),
            'CREATE USER "TUN" IDENTIFIED EXTERNALLY',
        ),
        (
            User('tun', authentication_type=AuthenticationType.GLOBAL),
            'CREATE USER "TUN" IDENTIFIED GLOBALLY',
        ),
        (
            User(
                'tun',
                password='s3cret',
                default_tablespace='users',
                temporary_tablespace='temp',
                profile='default',
                state=AccountState.LOCKED,
            ),
            'CREATE USER "TUN" IDENTIFIED BY "s3cret" DEFAULT TABLESPACE "USERS" TEMPORARY TABLESPACE "TEMP" '
            'PROFILE "DEFAULT" ACCOUNT LOCK',
        ),
        (
            User('tun', password='s3cret', state=AccountState.UNLOCKED),
            'CREATE USER "TUN" IDENTIFIED BY "s3cret"',
        ),
    ],
)
def test_create_user(fake_conn, user: User, statement: str) -> None:
    OracleAdapter(fake_conn).create_user(user)
    assert fake_conn.statements == [statement]


def test_create_user_requires_password(fake_conn) -> None:
    with pytest.raises(ValueError, match='A password is required'):
        OracleAdapter(fake_conn).create_user(User('tun'))
    assert fake_conn.statements == []


@pytest.mark.parametrize(
    ('user', 'statements'),
    [
        (User('tun', password='n3w'), ['ALTER USER "TUN" IDENTIFIED BY "n3w"']),
        (User('tun', profile='app_profile'), ['ALTER USER "TUN" PROFILE "APP_PROFILE"']),
        (User('tun', state=AccountState.UNLOCKED), ['ALTER USER "TUN" ACCOUNT UNLOCK']),
        (
            User('tun', default_tablespace='data', state=AccountState.LOCKED),
            ['ALTER USER "TUN" DEFAULT TABLESPACE "DATA" ACCOUNT LOCK'],
        ),
        (User('tun'), []),
    ],
)
def test_modify_user_only_touches_supplied_fields(fake_conn, user: User, statements: list) -> None:
    OracleAdapter(fake_conn).modify_user(user)
    assert fake_conn.statements == statements


def test_drop_user_cascades(fake_conn) -> None:
    OracleAdapter(fake_conn).drop_user('tun')
    assert fake_conn.statements == ['DROP USER "TUN" CASCADE']


@pytest.mark.parametrize(('count', 'exists'), [(0, False), (1, True)])
def test_get_user_exists(fake_conn, count: int, exists: bool) -> None:
    fake_conn.rows['dba_users'] = [(count,)]
    assert OracleAdapter(fake_conn).get_user_exists('tun') is exists


@pytest.mark.parametrize(
    ('authentication_type', 'account_status', 'expected_authentication', 'expected_state'),
    [
        ('PASSWORD', 'OPEN', AuthenticationType.PASSWORD, AccountState.UNLOCKED),
        ('EXTERNAL', 'LOCKED', AuthenticationType.EXTERNAL, AccountState.LOCKED),
        ('GLOBAL', 'EXPIRED & LOCKED', AuthenticationType.GLOBAL, AccountState.LOCKED),
        ('NONE', 'EXPIRED', None, AccountState.UNLOCKED),
    ],
)
def test_read_user(fake_conn, authentication_type, account_status, expected_authentication, expected_state) -> None:
    fake_conn.rows['dba_users'] = [('TUN', 'USERS', 'TEMP', 'DEFAULT', authentication_type, account_status)]

    assert OracleAdapter(fake_conn).read_user('tun') == User(
        username='TUN',
        default_tablespace='USERS',
        temporary_tablespace='TEMP',
        profile='DEFAULT',
        authentication_type=expected_authentication,
        state=expected_state,
    )


def test_read_user_raises_when_missing(fake_conn) -> None:
    with pytest.raises(NotFoundError, match='User tun does not exist'):
        OracleAdapter(fake_conn).read_user('tun')


def test_roles(fake_conn) -> None:
    adapter = OracleAdapter(fake_conn)
    adapter.create_role(Role('reporting'))
    adapter.drop_role('reporting')
    adapter.revoke_roles('tun', ('reporting', 'connect'))

    assert fake_conn.statements == [
        'CREATE ROLE "REPORTING"',
        'DROP ROLE "REPORTING"',
        'REVOKE "REPORTING", "CONNECT" FROM "TUN"',
    ]


def test_read_role_is_lower_cased(fake_conn) -> None:
    fake_conn.rows['dba_roles'] = [('REPORTING',)]
    assert OracleAdapter(fake_conn).read_role('Reporting') == Role('reporting')


def test_read_role_raises_when_missing(fake_conn) -> None:
    with pytest.raises(NotFoundError):
        OracleAdapter(fake_conn).read_role('reporting')


def test_create_directory_quotes_path(fake_conn) -> None:
    OracleAdapter(fake_conn).create_directory(Directory('data_dir', "/u01/app's data"))
    assert fake_conn.statements == ['CREATE OR REPLACE DIRECTORY "DATA_DIR" AS \'/u01/app\'\'s data\'']


def test_drop_directory(fake_conn) -> None:
    OracleAdapter(fake_conn).drop_directory('data_dir')
    assert fake_conn.statements == ['DROP DIRECTORY "DATA_DIR"']


def test_read_directory_is_lower_cased(fake_conn) -> None:
    fake_conn.rows['dba_directories'] = [('DATA_DIR', '/u01/data')]
    assert OracleAdapter(fake_conn).read_directory('data_dir') == Directory('data_dir', '/u01/data')


@pytest.mark.parametrize(('count', 'exists'), [(0, False), (2, True)])
def test_get_directory_exists(fake_conn, count: int, exists: bool) -> None:
    fake_conn.rows['dba_directories'] = [(count,)]
    assert OracleAdapter(fake_conn).get_directory_exists('data_dir') is exists


def test_execute_sql(fake_conn) -> None:
    fake_conn.rows['SELECT 1 FROM DUAL'] = [(1,)]
    adapter = OracleAdapter(fake_conn)

    assert adapter.execute_sql('SELECT 1 FROM DUAL') == [(1,)]
    assert adapter.execute_sql('ALTER SESSION SET NLS_DATE_FORMAT = \'YYYY-MM-DD\'') == []
