"""Core reconciliation logic for privilege synchronization.

This module contains the database-agnostic logic for converging the privileges
held by a user or role with a desired set. It uses the adapter pattern to
delegate database-specific operations.
"""

import logging
from dataclasses import replace

import sqlalchemy as sa

from sync_grants.adapters.base import DatabaseAdapter
from sync_grants.adapters.oracle import OracleAdapter
from sync_grants.exceptions import ReconciliationError
from sync_grants.models import Directory
from sync_grants.models import DirectoryPrivileges
from sync_grants.models import Grant
from sync_grants.models import GrantOperation
from sync_grants.models import GrantOperationType
from sync_grants.models import GrantsMode
from sync_grants.models import ObjectPrivileges
from sync_grants.models import PrivilegeDomain
from sync_grants.models import ReconcileResult
from sync_grants.models import Role
from sync_grants.models import RoleGrants
from sync_grants.models import SystemPrivileges
from sync_grants.models import User
from sync_grants.models import split_option

log = logging.getLogger(__name__)


def _get_adapter(conn) -> DatabaseAdapter:
    """Factory function to get the appropriate adapter."""
    dialect = conn.engine.dialect.name

    adapters: dict[str, type[DatabaseAdapter]] = {
        'oracle': OracleAdapter,
    }

    adapter_class = adapters.get(dialect)
    if not adapter_class:
        raise ValueError(f'Unsupported database dialect: {dialect}')

    return adapter_class(conn)


# ===== Reconciliation =====


def reconcile(conn, grant: Grant) -> ReconcileResult:
    """Converge the privileges held by a user or role with `grant`.

    Under the ``enforce`` mode anything currently held in the grant's domain (and
    on its target) whose name, ignoring any option clause, is not in the desired
    set is revoked first. Then every desired privilege is granted, held or not,
    which the database treats as a no-op for privileges already held. Under the
    ``append`` mode, or any unrecognised mode, nothing is read or revoked.

    Statements run one at a time with no surrounding transaction. The first
    failure stops the reconciliation, leaving earlier statements applied.

    Parameters
    ----------
    conn : SQLAlchemy Connection
        A SQLAlchemy connection with an engine of dialect `oracle`.
    grant : SystemPrivileges | ObjectPrivileges | DirectoryPrivileges | RoleGrants
        The desired privileges, the grantee, the target and the mode.

    Returns:
    -------
    ReconcileResult
        The planned operations, all of them applied.

    Raises:
    ------
    ValueError
        If the grantee, the target or any privilege name is invalid. Nothing is applied.
    ReconciliationError
        If a statement fails. Its `result` records what was applied before the failure.
    """
    adapter = _get_adapter(conn)
    return _reconcile(
        adapter,
        grant.domain,
        grant.principal,
        grant.target,
        tuple(grant.privileges),
        GrantsMode.parse(grant.grants_mode),
    )


def grant_system_privileges(conn, grant: SystemPrivileges) -> ReconcileResult:
    """Reconcile the system privileges of a user or role. See `reconcile`."""
    return reconcile(conn, grant)


def grant_object_privileges(conn, grant: ObjectPrivileges) -> ReconcileResult:
    """Reconcile the privileges a user or role holds on one object. See `reconcile`."""
    return reconcile(conn, grant)


def grant_directory_privileges(conn, grant: DirectoryPrivileges) -> ReconcileResult:
    """Reconcile the privileges a user or role holds on one directory. See `reconcile`."""
    return reconcile(conn, grant)


def grant_roles(conn, grant: RoleGrants) -> ReconcileResult:
    """Reconcile the roles granted to a user or role. See `reconcile`."""
    return reconcile(conn, grant)


def revoke_privileges(conn, grant: Grant) -> ReconcileResult:
    """Revoke everything held in the grant's domain and target.

    Equivalent to reconciling an empty desired set under the ``enforce`` mode.
    """
    empty = replace(grant, roles=()) if isinstance(grant, RoleGrants) else replace(grant, privileges=())
    return reconcile(conn, replace(empty, grants_mode=GrantsMode.ENFORCE))


def revoke_roles(conn, grant: RoleGrants):
    """Revoke exactly the roles listed in `grant`, without reading current state."""
    adapter = _get_adapter(conn)
    roles = tuple(split_option(role, PrivilegeDomain.ROLE.syntax.option_clause)[0] for role in grant.roles)
    adapter.revoke_roles(grant.principal, _without_duplicates_preserve_order(roles))


def _reconcile(
    adapter: DatabaseAdapter,
    domain: PrivilegeDomain,
    principal: str,
    target: tuple[str, ...],
    desired: tuple[str, ...],
    grants_mode: GrantsMode,
) -> ReconcileResult:
    _validate(principal, target)

    # Phase 1: Read the current state, only needed if revoking
    current = adapter.get_current_privileges(domain, principal, target) if grants_mode == GrantsMode.ENFORCE else ()

    # Phase 2: Plan, revokes before grants
    operations = _plan_revokes(domain, principal, target, desired, current) + _plan_grants(
        domain,
        principal,
        target,
        desired,
    )
    log.debug('Planned operations for %s in %s domain: %s', principal, domain.syntax.name, operations)

    # Phase 3: Render every statement so invalid names fail before anything is applied
    for operation in operations:
        adapter.build_statement(operation)

    # Phase 4: Apply
    return _apply(adapter, operations)


def _validate(principal: str, target: tuple[str, ...]):
    if not principal or not principal.strip():
        raise ValueError('A principal is required')
    if any(not part or not part.strip() for part in target):
        raise ValueError(f'Invalid target {target!r} for principal {principal}')


def _plan_revokes(
    domain: PrivilegeDomain,
    principal: str,
    target: tuple[str, ...],
    desired: tuple[str, ...],
    current: tuple[str, ...],
) -> tuple[GrantOperation, ...]:
    """Revoke every held privilege whose base name is not desired, in catalog order."""
    option_clause = domain.syntax.option_clause
    desired_names = {split_option(privilege, option_clause)[0].upper() for privilege in desired}

    revokes = []
    for held in current:
        name, with_option = split_option(held, option_clause)
        if name.upper() not in desired_names:
            revokes.append(
                GrantOperation(
                    type_=GrantOperationType.REVOKE,
                    domain=domain,
                    principal=principal,
                    target=target,
                    privileges=(name,),
                    with_option=with_option,
                ),
            )
    return tuple(revokes)


def _plan_grants(
    domain: PrivilegeDomain,
    principal: str,
    target: tuple[str, ...],
    desired: tuple[str, ...],
) -> tuple[GrantOperation, ...]:
    """Grant every desired privilege, in input order.

    Batched domains get one statement for plain privileges and one for those
    with the option clause. Other domains get one statement per privilege.
    """
    option_clause = domain.syntax.option_clause
    split = tuple(split_option(privilege, option_clause) for privilege in desired)

    def operation(privileges, with_option):
        return GrantOperation(
            type_=GrantOperationType.GRANT,
            domain=domain,
            principal=principal,
            target=target,
            privileges=privileges,
            with_option=with_option,
        )

    if not domain.syntax.batched:
        return tuple(operation((name,), with_option) for name, with_option in split)

    merged = _merge_options(split)
    plain = tuple(name for name, with_option in merged if not with_option)
    with_options = tuple(name for name, with_option in merged if with_option)
    return ((operation(plain, False),) if plain else ()) + (
        (operation(with_options, True),) if with_options else ()
    )


def _apply(adapter: DatabaseAdapter, operations: tuple[GrantOperation, ...]) -> ReconcileResult:
    """Run each operation in order, stopping at the first failure."""
    result = ReconcileResult(operations=operations)
    for operation in operations:
        try:
            adapter.grant(operation)
        except sa.exc.SQLAlchemyError as exc:
            result.failed = operation
            if result.applied:
                log.warning(
                    'Stopped after %d of %d operations, already applied operations are kept: %s',
                    len(result.applied),
                    len(operations),
                    result.applied,
                )
            raise ReconciliationError(result, exc) from exc
        result.applied.append(operation)
    return result


def _without_duplicates_preserve_order(seq):
    """Remove case-insensitive duplicates from sequence while preserving order."""
    # https://stackoverflow.com/a/480227/1319998
    seen = set()
    seen_add = seen.add
    return tuple(x for x in seq if not (x.upper() in seen or seen_add(x.upper())))


def _merge_options(split):
    """Collapse case-insensitive duplicates of (name, with_option) pairs.

    The first spelling and position are kept. The option is kept if any of the
    duplicates asks for it, since a batched GRANT cannot list a name twice.
    """
    merged = {}
    for name, with_option in split:
        first, held = merged.get(name.upper(), (name, False))
        merged[name.upper()] = (first, held or with_option)
    return tuple(merged.values())


# ===== Principals =====


def create_user(conn, user: User):
    """Create a user. Attributes left empty take the database's defaults."""
    _get_adapter(conn).create_user(user)


def modify_user(conn, user: User):
    """Change only the non-empty attributes of `user`. A None state leaves locking alone."""
    _get_adapter(conn).modify_user(user)


def drop_user(conn, username: str):
    """Drop a user together with every object it owns."""
    _get_adapter(conn).drop_user(username)


def user_exists(conn, username: str) -> bool:
    return _get_adapter(conn).get_user_exists(username)


def read_user(conn, username: str) -> User:
    return _get_adapter(conn).read_user(username)


def create_role(conn, role: Role):
    _get_adapter(conn).create_role(role)


def drop_role(conn, role_name: str):
    _get_adapter(conn).drop_role(role_name)


def role_exists(conn, role_name: str) -> bool:
    return _get_adapter(conn).get_role_exists(role_name)


def read_role(conn, role_name: str) -> Role:
    return _get_adapter(conn).read_role(role_name)


# ===== Directories =====


def create_directory(conn, directory: Directory):
    """Create a directory, or point an existing one with the same name at a new path."""
    _get_adapter(conn).create_directory(directory)


def drop_directory(conn, directory_name: str):
    _get_adapter(conn).drop_directory(directory_name)


def directory_exists(conn, directory_name: str) -> bool:
    return _get_adapter(conn).get_directory_exists(directory_name)


def read_directory(conn, directory_name: str) -> Directory:
    return _get_adapter(conn).read_directory(directory_name)


# ===== Raw SQL =====


def execute_sql(conn, statement: str) -> list:
    """Execute any statement as-is. Nothing is reconciled or read back afterwards."""
    return _get_adapter(conn).execute_sql(statement)
