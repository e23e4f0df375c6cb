"""Abstract base class for database adapters.

Defines the interface that all database adapters must implement.
"""

from abc import ABC
from abc import abstractmethod

from sync_grants.models import Directory
from sync_grants.models import GrantOperation
from sync_grants.models import PrivilegeDomain
from sync_grants.models import Role
from sync_grants.models import User


class DatabaseAdapter(ABC):
    """Abstract base class for database-specific operations.

    Each database adapter must implement methods for:
    - Reading the privileges currently held by a principal
    - Rendering and executing GRANT/REVOKE statements
    - Managing users, roles and directories
    - Executing arbitrary SQL
    """

    def __init__(self, conn):
        """Initialize the adapter with a database connection.

        Args:
            conn: Database connection object (e.g., SQLAlchemy connection)
        """
        self.conn = conn

    # ===== Privilege Catalog Methods =====

    def get_current_privileges(self, domain: PrivilegeDomain, principal: str, target: tuple[str, ...]) -> tuple:
        """Get the privileges `principal` currently holds in `domain`.

        Each returned string has the domain's option clause appended when the
        database reports the option as granted.

        Args:
            domain: The privilege domain to read
            principal: Name of the user or role
            target: ``()``, ``(object,)``, ``(owner, object)`` or ``(directory,)``

        Returns:
            Tuple of privilege strings in catalog order
        """
        if domain == PrivilegeDomain.SYSTEM:
            return self.get_current_system_privileges(principal)
        if domain == PrivilegeDomain.ROLE:
            return self.get_current_roles(principal)
        if domain == PrivilegeDomain.DIRECTORY:
            (directory_name,) = target
            return self.get_current_directory_privileges(principal, directory_name)
        if domain == PrivilegeDomain.OBJECT:
            owner, object_name = target if len(target) == 2 else (None, *target)
            return self.get_current_object_privileges(principal, owner, object_name)
        raise ValueError(f'Unrecognised privilege domain {domain!r}')

    @abstractmethod
    def get_current_system_privileges(self, principal: str) -> tuple:
        """Get system privileges held by a user or role."""

    @abstractmethod
    def get_current_object_privileges(self, principal: str, owner: str | None, object_name: str) -> tuple:
        """Get privileges held on one object.

        Args:
            principal: Name of the user or role
            owner: Owner of the object, or None to match the object name alone
            object_name: Name of the object
        """

    @abstractmethod
    def get_current_directory_privileges(self, principal: str, directory_name: str) -> tuple:
        """Get privileges held on one directory."""

    @abstractmethod
    def get_current_roles(self, principal: str) -> tuple:
        """Get the roles granted to a user or role, as lower-case names."""

    # ===== Permission Manipulation Methods =====

    @abstractmethod
    def build_statement(self, grant_operation: GrantOperation) -> str:
        """Render the GRANT or REVOKE statement for an operation.

        Raises:
            ValueError: If the operation holds names that cannot be rendered safely
        """

    @abstractmethod
    def grant(self, grant_operation: GrantOperation):
        """Grant or revoke privileges as described by the operation.

        Args:
            grant_operation: GrantOperation object containing all necessary information
        """

    @abstractmethod
    def revoke_roles(self, principal: str, roles: tuple):
        """Revoke the given roles from a user or role in one statement."""

    # ===== Principal Methods =====

    @abstractmethod
    def create_user(self, user: User):
        """Create a new user."""

    @abstractmethod
    def modify_user(self, user: User):
        """Alter the supplied (non-empty) attributes of an existing user."""

    @abstractmethod
    def drop_user(self, username: str):
        """Drop a user and everything it owns."""

    @abstractmethod
    def get_user_exists(self, username: str) -> bool:
        """Check if a user exists in the database."""

    @abstractmethod
    def read_user(self, username: str) -> User:
        """Read a user's attributes back from the catalog."""

    @abstractmethod
    def create_role(self, role: Role):
        """Create a new role."""

    @abstractmethod
    def drop_role(self, role_name: str):
        """Drop a role."""

    @abstractmethod
    def get_role_exists(self, role_name: str) -> bool:
        """Check if a role exists in the database."""

    @abstractmethod
    def read_role(self, role_name: str) -> Role:
        """Read a role back from the catalog."""

    # ===== Directory Methods =====

    @abstractmethod
    def create_directory(self, directory: Directory):
        """Create a directory, or replace the path of an existing one."""

    @abstractmethod
    def drop_directory(self, directory_name: str):
        """Drop a directory."""

    @abstractmethod
    def get_directory_exists(self, directory_name: str) -> bool:
        """Check if a directory exists in the database."""

    @abstractmethod
    def read_directory(self, directory_name: str) -> Directory:
        """Read a directory back from the catalog."""

    # ===== Utility Methods =====

    @abstractmethod
    def execute_sql(self, statement: str) -> list:
        """Execute a statement verbatim.

        Returns:
            The rows returned by the statement, or an empty list
        """
