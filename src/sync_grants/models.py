"""Database-agnostic grant, principal and directory models."""

import re
from dataclasses import dataclass
from dataclasses import field
from enum import Enum

WITH_ADMIN_OPTION = 'WITH ADMIN OPTION'
WITH_GRANT_OPTION = 'WITH GRANT OPTION'


class GrantsMode(Enum):
    """How a desired set of privileges is reconciled with what is currently held."""

    ENFORCE = 'enforce'
    """Revoke anything held that is not desired, then grant what is desired."""
    APPEND = 'append'
    """Only grant. Nothing is ever revoked."""

    @classmethod
    def parse(cls, value: 'GrantsMode | str | None') -> 'GrantsMode':
        """Return the mode for `value`, falling back to APPEND for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.ENFORCE.value:
            return cls.ENFORCE
        return cls.APPEND


@dataclass(frozen=True)
class DomainSyntax:
    """The parts of the GRANT/REVOKE grammar that differ between privilege domains.

    Attributes:
        name (str): Short name of the domain, also keeps enum values distinct.
        option_clause (str): Clause appended to a GRANT to let the grantee re-grant.
        verb (str): Keyword(s) between the privilege list and the target, empty when
            the domain has no target.
        batched (bool): Whether all privileges go in one comma separated statement.
        identifiers (bool): Whether the granted names are identifiers (roles) rather
            than privilege keywords.
    """

    name: str
    option_clause: str
    verb: str
    batched: bool
    identifiers: bool = False


class PrivilegeDomain(Enum):
    """The four kinds of grant that can be reconciled."""

    SYSTEM = DomainSyntax('system', WITH_ADMIN_OPTION, '', batched=True)
    OBJECT = DomainSyntax('object', WITH_GRANT_OPTION, 'ON', batched=False)
    DIRECTORY = DomainSyntax('directory', WITH_GRANT_OPTION, 'ON DIRECTORY', batched=False)
    ROLE = DomainSyntax('role', WITH_ADMIN_OPTION, '', batched=True, identifiers=True)

    @property
    def syntax(self) -> DomainSyntax:
        return self.value


def _option_pattern(option_clause: str) -> re.Pattern:
    return re.compile(r'\s+'.join(option_clause.split()), re.IGNORECASE)


def split_option(privilege: str, option_clause: str) -> tuple[str, bool]:
    """Strip an option clause from a privilege string.

    The clause is found by case-insensitive substring match, so both
    ``'select with grant option'`` and ``'SELECT WITH GRANT OPTION'`` give
    ``('select', True)`` / ``('SELECT', True)``.

    Returns:
        tuple[str, bool]: The privilege without the clause and whether it was present.
    """
    match = _option_pattern(option_clause).search(privilege)
    if match is None:
        return ' '.join(privilege.split()), False
    return ' '.join((privilege[: match.start()] + ' ' + privilege[match.end() :]).split()), True


def fold_option(privilege: str, option_granted: bool, option_clause: str) -> str:
    """Fold a separately reported option flag into the privilege string."""
    return f'{privilege} {option_clause}' if option_granted else privilege


@dataclass(frozen=True)
class SystemPrivileges:
    """System privileges (e.g. ``CREATE SESSION``) that a user or role should hold.

    Attributes:
        principal (str): The user or role that holds the privileges.
        privileges (tuple[str, ...]): Privilege names, optionally suffixed
            with ``WITH ADMIN OPTION``.
        grants_mode (GrantsMode | str): ``enforce`` or ``append``.
    """

    principal: str
    privileges: tuple[str, ...] = ()
    grants_mode: GrantsMode | str = GrantsMode.APPEND

    domain = PrivilegeDomain.SYSTEM

    @property
    def target(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class ObjectPrivileges:
    """Privileges on a single database object such as a table or a view.

    Attributes:
        principal (str): The user or role that holds the privileges.
        object_name (str): Name of the object.
        owner (str | None): Schema owning the object. When empty the object
            name must resolve without an owner.
        privileges (tuple[str, ...]): Privilege names, optionally suffixed
            with ``WITH GRANT OPTION``.
        grants_mode (GrantsMode | str): ``enforce`` or ``append``.
    """

    principal: str
    object_name: str
    owner: str | None = None
    privileges: tuple[str, ...] = ()
    grants_mode: GrantsMode | str = GrantsMode.APPEND

    domain = PrivilegeDomain.OBJECT

    @property
    def target(self) -> tuple[str, ...]:
        return (self.owner, self.object_name) if self.owner else (self.object_name,)


@dataclass(frozen=True)
class DirectoryPrivileges:
    """Privileges (``READ``, ``WRITE``, ``EXECUTE``) on a directory object.

    Attributes:
        principal (str): The user or role that holds the privileges.
        directory_name (str): Name of the directory object.
        privileges (tuple[str, ...]): Privilege names, optionally suffixed
            with ``WITH GRANT OPTION``.
        grants_mode (GrantsMode | str): ``enforce`` or ``append``.
    """

    principal: str
    directory_name: str
    privileges: tuple[str, ...] = ()
    grants_mode: GrantsMode | str = GrantsMode.APPEND

    domain = PrivilegeDomain.DIRECTORY

    @property
    def target(self) -> tuple[str, ...]:
        return (self.directory_name,)


@dataclass(frozen=True)
class RoleGrants:
    """Roles that a user or role should be a member of.

    Attributes:
        principal (str): The grantee.
        roles (tuple[str, ...]): Role names, optionally suffixed with
            ``WITH ADMIN OPTION``.
        grants_mode (GrantsMode | str): ``enforce`` or ``append``.
    """

    principal: str
    roles: tuple[str, ...] = ()
    grants_mode: GrantsMode | str = GrantsMode.APPEND

    domain = PrivilegeDomain.ROLE

    @property
    def privileges(self) -> tuple[str, ...]:
        return self.roles

    @property
    def target(self) -> tuple[str, ...]:
        return ()


Grant = SystemPrivileges | ObjectPrivileges | DirectoryPrivileges | RoleGrants


class GrantOperationType(Enum):
    GRANT = 1
    REVOKE = 2


@dataclass(frozen=True)
class GrantOperation:
    """A single GRANT or REVOKE statement in a reconciliation plan.

    Attributes:
        type_ (GrantOperationType): GRANT or REVOKE.
        domain (PrivilegeDomain): Which grammar the statement uses.
        principal (str): The grantee.
        target (tuple[str, ...]): ``()`` for system and role grants, ``(object,)``
            or ``(owner, object)`` for objects, ``(directory,)`` for directories.
        privileges (tuple[str, ...]): Privilege or role names without option clause.
        with_option (bool): For grants, whether the option clause is appended. For
            revokes, whether the held privilege carried the option.
    """

    type_: GrantOperationType
    domain: PrivilegeDomain
    principal: str
    target: tuple[str, ...]
    privileges: tuple[str, ...]
    with_option: bool = False


@dataclass
class ReconcileResult:
    """What a reconciliation planned and how far it got.

    Attributes:
        operations (tuple[GrantOperation, ...]): Every planned operation, revokes first.
        applied (list[GrantOperation]): Operations whose statement succeeded, in order.
        failed (GrantOperation | None): The operation whose statement raised, if any.
    """

    operations: tuple[GrantOperation, ...]
    applied: list[GrantOperation] = field(default_factory=list)
    failed: GrantOperation | None = None

    @property
    def revoked(self) -> tuple[GrantOperation, ...]:
        return tuple(op for op in self.applied if op.type_ == GrantOperationType.REVOKE)

    @property
    def granted(self) -> tuple[GrantOperation, ...]:
        return tuple(op for op in self.applied if op.type_ == GrantOperationType.GRANT)

    @property
    def pending(self) -> tuple[GrantOperation, ...]:
        """Planned operations that were never attempted."""
        attempted = len(self.applied) + (1 if self.failed is not None else 0)
        return self.operations[attempted:]


class AuthenticationType(Enum):
    PASSWORD = 'password'
    EXTERNAL = 'external'
    GLOBAL = 'global'


class AccountState(Enum):
    LOCKED = 'locked'
    UNLOCKED = 'unlocked'


@dataclass(frozen=True)
class User:
    """A database user.

    Empty/None attributes are left out of CREATE and ALTER statements, so the
    database applies its own defaults (or leaves the attribute unchanged).

    Attributes:
        username (str): Name of the user.
        password (str | None): Password, used with PASSWORD authentication.
        default_tablespace (str | None): Default tablespace.
        temporary_tablespace (str | None): Default temporary tablespace.
        profile (str | None): Profile name.
        authentication_type (AuthenticationType | None): How the user authenticates.
            When read back this is the database's classification, never the credential.
        state (AccountState | None): Locked or unlocked. None means unspecified.
    """

    username: str
    password: str | None = None
    default_tablespace: str | None = None
    temporary_tablespace: str | None = None
    profile: str | None = None
    authentication_type: AuthenticationType | None = AuthenticationType.PASSWORD
    state: AccountState | None = None


@dataclass(frozen=True)
class Role:
    role_name: str


@dataclass(frozen=True)
class Directory:
    """A named filesystem directory known to the database.

    Attributes:
        directory_name (str): Name of the directory object.
        path (str): Filesystem path on the database server.
    """

    directory_name: str
    path: str
