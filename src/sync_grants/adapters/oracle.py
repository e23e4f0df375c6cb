"""Oracle adapter for sync_grants.

Implements Oracle-specific catalog reads and DDL/DCL statements.
"""

import logging
import re

import sqlalchemy as sa

from sync_grants.adapters.base import DatabaseAdapter
from sync_grants.exceptions import NotFoundError
from sync_grants.models import AccountState
from sync_grants.models import AuthenticationType
from sync_grants.models import Directory
from sync_grants.models import GrantOperation
from sync_grants.models import GrantOperationType
from sync_grants.models import PrivilegeDomain
from sync_grants.models import Role
from sync_grants.models import User
from sync_grants.models import fold_option

logger = logging.getLogger(__name__)


# Catalog queries. Identifiers are compared upper-cased, the way Oracle stores unquoted names.
_SYSTEM_PRIVILEGES_SQL = """
SELECT privilege, admin_option
FROM dba_sys_privs
WHERE grantee = UPPER(:grantee)
"""

_OBJECT_PRIVILEGES_SQL = """
SELECT privilege, grantable
FROM dba_tab_privs
WHERE grantee = UPPER(:grantee)
  AND owner = UPPER(:owner_name)
  AND table_name = UPPER(:object_name)
"""

# Without an owner the object name is assumed to resolve on its own
_UNQUALIFIED_OBJECT_PRIVILEGES_SQL = """
SELECT privilege, grantable
FROM dba_tab_privs
WHERE grantee = UPPER(:grantee)
  AND table_name = UPPER(:object_name)
"""

_DIRECTORY_PRIVILEGES_SQL = """
SELECT privilege, grantable
FROM all_tab_privs
WHERE grantee = UPPER(:grantee)
  AND table_name = UPPER(:directory_name)
  AND type = 'DIRECTORY'
"""

_ROLE_PRIVILEGES_SQL = """
SELECT granted_role, admin_option
FROM dba_role_privs
WHERE grantee = UPPER(:grantee)
"""

_USER_EXISTS_SQL = 'SELECT COUNT(*) FROM dba_users WHERE username = UPPER(:username)'

_READ_USER_SQL = """
SELECT username, default_tablespace, temporary_tablespace, profile, authentication_type, account_status
FROM dba_users
WHERE username = UPPER(:username)
"""

_ROLE_EXISTS_SQL = 'SELECT COUNT(*) FROM dba_roles WHERE role = UPPER(:role_name)'

_READ_ROLE_SQL = 'SELECT role FROM dba_roles WHERE role = UPPER(:role_name)'

_DIRECTORY_EXISTS_SQL = 'SELECT COUNT(*) FROM dba_directories WHERE directory_name = UPPER(:directory_name)'

_READ_DIRECTORY_SQL = """
SELECT directory_name, directory_path
FROM dba_directories
WHERE directory_name = UPPER(:directory_name)
"""

# System, object and directory privileges are keywords, never quoted
_PRIVILEGE_KEYWORD = re.compile(r'^[A-Za-z][A-Za-z0-9_$# ]*$')


class OracleAdapter(DatabaseAdapter):
    """Oracle-specific implementation of DatabaseAdapter."""

    def __init__(self, conn):
        """Initialize the Oracle adapter.

        Args:
            conn: SQLAlchemy connection object
        """
        super().__init__(conn)

        # All identifier quoting goes through the dialect's preparer
        self.preparer = conn.dialect.identifier_preparer
        self._string_literal = sa.String().literal_processor(dialect=conn.dialect)

    def _execute_sql(self, statement: str):
        """Execute a DDL/DCL statement exactly as rendered.

        Bypasses SQLAlchemy's bind parameter parsing so that colons inside
        quoted passwords or paths are sent untouched.
        """
        return self.conn.exec_driver_sql(statement)

    def _query(self, query: str, **params) -> list:
        """Run a catalog query with bound parameters."""
        return self.conn.execute(sa.text(query), params).fetchall()

    # ===== Quoting =====

    def identifier(self, name: str) -> str:
        """Quote an identifier so that it behaves like an unquoted Oracle name.

        Oracle folds unquoted names to upper case, so the name is upper-cased
        and then quoted, which also escapes any embedded double quotes.
        """
        if not name or not name.strip():
            raise ValueError('Identifier must not be empty')
        return self.preparer.quote_identifier(name.strip().upper())

    def qualified_identifier(self, *parts: str) -> str:
        return '.'.join(self.identifier(part) for part in parts)

    def privilege_keyword(self, privilege: str) -> str:
        """Validate and normalise a privilege keyword such as ``create session``."""
        if not _PRIVILEGE_KEYWORD.match(privilege.strip()):
            raise ValueError(f'Invalid privilege name: {privilege!r}')
        return ' '.join(privilege.upper().split())

    def string_literal(self, value: str) -> str:
        return self._string_literal(value)

    # ===== Privilege Catalog Methods =====

    def _read_privileges(self, option_clause: str, query: str, **params) -> tuple:
        rows = self._query(query, **params)
        privileges = tuple(fold_option(privilege, option == 'YES', option_clause) for privilege, option in rows)
        logger.debug('Current privileges for %s: %s', params, privileges)
        return privileges

    def get_current_system_privileges(self, principal: str) -> tuple:
        """Get system privileges held by a user or role."""
        return self._read_privileges(
            PrivilegeDomain.SYSTEM.syntax.option_clause,
            _SYSTEM_PRIVILEGES_SQL,
            grantee=principal,
        )

    def get_current_object_privileges(self, principal: str, owner: str | None, object_name: str) -> tuple:
        """Get privileges held on one object, optionally qualified by owner."""
        option_clause = PrivilegeDomain.OBJECT.syntax.option_clause
        if not owner:
            return self._read_privileges(
                option_clause,
                _UNQUALIFIED_OBJECT_PRIVILEGES_SQL,
                grantee=principal,
                object_name=object_name,
            )
        return self._read_privileges(
            option_clause,
            _OBJECT_PRIVILEGES_SQL,
            grantee=principal,
            owner_name=owner,
            object_name=object_name,
        )

    def get_current_directory_privileges(self, principal: str, directory_name: str) -> tuple:
        """Get privileges held on one directory."""
        return self._read_privileges(
            PrivilegeDomain.DIRECTORY.syntax.option_clause,
            _DIRECTORY_PRIVILEGES_SQL,
            grantee=principal,
            directory_name=directory_name,
        )

    def get_current_roles(self, principal: str) -> tuple:
        """Get the roles granted to a user or role.

        Oracle reports role names upper-cased; they are returned lower-cased.
        """
        rows = self._query(_ROLE_PRIVILEGES_SQL, grantee=principal)
        roles = tuple(
            fold_option(role.lower(), admin_option == 'YES', PrivilegeDomain.ROLE.syntax.option_clause)
            for role, admin_option in rows
        )
        logger.debug('Current roles of %s: %s', principal, roles)
        return roles

    # ===== Permission Manipulation Methods =====

    def build_statement(self, grant_operation: GrantOperation) -> str:
        """Render the GRANT or REVOKE statement for an operation."""
        syntax = grant_operation.domain.syntax
        if not grant_operation.privileges:
            raise ValueError(f'No privileges to render for {grant_operation}')

        names = ', '.join(
            self.identifier(name) if syntax.identifiers else self.privilege_keyword(name)
            for name in grant_operation.privileges
        )
        on_target = (
            f' {syntax.verb} {self.qualified_identifier(*grant_operation.target)}' if grant_operation.target else ''
        )
        principal = self.identifier(grant_operation.principal)

        if grant_operation.type_ == GrantOperationType.GRANT:
            option = f' {syntax.option_clause}' if grant_operation.with_option else ''
            return f'GRANT {names}{on_target} TO {principal}{option}'
        if grant_operation.type_ == GrantOperationType.REVOKE:
            # REVOKE takes no option clause, revoking the privilege removes the option too
            return f'REVOKE {names}{on_target} FROM {principal}'
        raise ValueError(f'Unrecognised privilege type {grant_operation.type_!r} for grant: {grant_operation!r}')

    def grant(self, grant_operation: GrantOperation):
        """Grant or revoke privileges as described by the operation."""
        statement = self.build_statement(grant_operation)
        if grant_operation.type_ == GrantOperationType.GRANT:
            logger.info(
                'Granting %s %s%s to %s',
                grant_operation.domain.syntax.name,
                grant_operation.privileges,
                f' on {".".join(grant_operation.target)}' if grant_operation.target else '',
                grant_operation.principal,
            )
        else:
            logger.info(
                'Revoking %s %s%s from %s',
                grant_operation.domain.syntax.name,
                grant_operation.privileges,
                f' on {".".join(grant_operation.target)}' if grant_operation.target else '',
                grant_operation.principal,
            )
        self._execute_sql(statement)

    def revoke_roles(self, principal: str, roles: tuple):
        """Revoke the given roles from a user or role in one statement."""
        if not roles:
            logger.info('No roles revoked from %s', principal)
            return
        logger.info('Revoking roles %s from %s', roles, principal)
        self._execute_sql(
            f'REVOKE {", ".join(self.identifier(role) for role in roles)} FROM {self.identifier(principal)}',
        )

    # ===== Principal Methods =====

    def _user_attributes(self, user: User) -> str:
        """Render the optional attribute clauses shared by CREATE and ALTER USER."""
        clauses = []
        if user.default_tablespace:
            clauses.append(f'DEFAULT TABLESPACE {self.identifier(user.default_tablespace)}')
        if user.temporary_tablespace:
            clauses.append(f'TEMPORARY TABLESPACE {self.identifier(user.temporary_tablespace)}')
        if user.profile:
            clauses.append(f'PROFILE {self.identifier(user.profile)}')
        return ''.join(f' {clause}' for clause in clauses)

    def create_user(self, user: User):
        """Create a new user."""
        statement = f'CREATE USER {self.identifier(user.username)}'

        if user.authentication_type == AuthenticationType.PASSWORD:
            if not user.password:
                raise ValueError(f'A password is required to create user {user.username} with password authentication')
            statement += f' IDENTIFIED BY {self.preparer.quote_identifier(user.password)}'
        elif user.authentication_type == AuthenticationType.EXTERNAL:
            statement += ' IDENTIFIED EXTERNALLY'
        elif user.authentication_type == AuthenticationType.GLOBAL:
            statement += ' IDENTIFIED GLOBALLY'

        statement += self._user_attributes(user)

        if user.state == AccountState.LOCKED:
            statement += ' ACCOUNT LOCK'

        logger.info('Creating USER %s', user.username)
        self._execute_sql(statement)

    def modify_user(self, user: User):
        """Alter the supplied (non-empty) attributes of an existing user."""
        changes = ''
        if user.password:
            changes += f' IDENTIFIED BY {self.preparer.quote_identifier(user.password)}'
        changes += self._user_attributes(user)
        if user.state == AccountState.LOCKED:
            changes += ' ACCOUNT LOCK'
        elif user.state == AccountState.UNLOCKED:
            changes += ' ACCOUNT UNLOCK'

        if not changes:
            logger.info('No changes to USER %s', user.username)
            return
        logger.info('Altering USER %s', user.username)
        self._execute_sql(f'ALTER USER {self.identifier(user.username)}{changes}')

    def drop_user(self, username: str):
        """Drop a user and everything it owns."""
        logger.info('Dropping USER %s', username)
        self._execute_sql(f'DROP USER {self.identifier(username)} CASCADE')

    def get_user_exists(self, username: str) -> bool:
        """Check if a user exists."""
        return self._query(_USER_EXISTS_SQL, username=username)[0][0] > 0

    def read_user(self, username: str) -> User:
        """Read a user's attributes back from dba_users.

        The username is returned as stored. The password is never readable, and
        the authentication type is Oracle's classification of the user.
        """
        rows = self._query(_READ_USER_SQL, username=username)
        if not rows:
            raise NotFoundError(f'User {username} does not exist')
        name, default_tablespace, temporary_tablespace, profile, authentication_type, account_status = rows[0]

        try:
            authentication = AuthenticationType((authentication_type or '').lower())
        except ValueError:
            authentication = None

        return User(
            username=name,
            default_tablespace=default_tablespace,
            temporary_tablespace=temporary_tablespace,
            profile=profile,
            authentication_type=authentication,
            state=AccountState.LOCKED if 'LOCKED' in (account_status or '') else AccountState.UNLOCKED,
        )

    def create_role(self, role: Role):
        """Create a new role."""
        logger.info('Creating ROLE %s', role.role_name)
        self._execute_sql(f'CREATE ROLE {self.identifier(role.role_name)}')

    def drop_role(self, role_name: str):
        """Drop a role."""
        logger.info('Dropping ROLE %s', role_name)
        self._execute_sql(f'DROP ROLE {self.identifier(role_name)}')

    def get_role_exists(self, role_name: str) -> bool:
        """Check if a role exists."""
        return self._query(_ROLE_EXISTS_SQL, role_name=role_name)[0][0] > 0

    def read_role(self, role_name: str) -> Role:
        """Read a role back from dba_roles, lower-cased."""
        rows = self._query(_READ_ROLE_SQL, role_name=role_name)
        if not rows:
            raise NotFoundError(f'Role {role_name} does not exist')
        return Role(role_name=rows[0][0].lower())

    # ===== Directory Methods =====

    def create_directory(self, directory: Directory):
        """Create a directory, or replace the path of an existing one."""
        logger.info('Creating or replacing DIRECTORY %s as %s', directory.directory_name, directory.path)
        self._execute_sql(
            f'CREATE OR REPLACE DIRECTORY {self.identifier(directory.directory_name)} '
            f'AS {self.string_literal(directory.path)}',
        )

    def drop_directory(self, directory_name: str):
        """Drop a directory."""
        logger.info('Dropping DIRECTORY %s', directory_name)
        self._execute_sql(f'DROP DIRECTORY {self.identifier(directory_name)}')

    def get_directory_exists(self, directory_name: str) -> bool:
        """Check if a directory exists."""
        return self._query(_DIRECTORY_EXISTS_SQL, directory_name=directory_name)[0][0] > 0

    def read_directory(self, directory_name: str) -> Directory:
        """Read a directory back from dba_directories, with its name lower-cased."""
        rows = self._query(_READ_DIRECTORY_SQL, directory_name=directory_name)
        if not rows:
            raise NotFoundError(f'Directory {directory_name} does not exist')
        name, path = rows[0]
        return Directory(directory_name=name.lower(), path=path)

    # ===== Utility Methods =====

    def execute_sql(self, statement: str) -> list:
        """Execute a statement verbatim, returning any rows."""
        logger.info('Executing SQL statement')
        result = self._execute_sql(statement)
        return result.fetchall() if result.returns_rows else []
