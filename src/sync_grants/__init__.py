"""Sync Grants package."""

from sync_grants.connect import ConnectionSettings
from sync_grants.connect import create_engine
from sync_grants.core import create_directory
from sync_grants.core import create_role
from sync_grants.core import create_user
from sync_grants.core import directory_exists
from sync_grants.core import drop_directory
from sync_grants.core import drop_role
from sync_grants.core import drop_user
from sync_grants.core import execute_sql
from sync_grants.core import grant_directory_privileges
from sync_grants.core import grant_object_privileges
from sync_grants.core import grant_roles
from sync_grants.core import grant_system_privileges
from sync_grants.core import modify_user
from sync_grants.core import read_directory
from sync_grants.core import read_role
from sync_grants.core import read_user
from sync_grants.core import reconcile
from sync_grants.core import revoke_privileges
from sync_grants.core import revoke_roles
from sync_grants.core import role_exists
from sync_grants.core import user_exists
from sync_grants.exceptions import NotFoundError
from sync_grants.exceptions import ReconciliationError
from sync_grants.models import AccountState
from sync_grants.models import AuthenticationType
from sync_grants.models import Directory
from sync_grants.models import DirectoryPrivileges
from sync_grants.models import GrantsMode
from sync_grants.models import ObjectPrivileges
from sync_grants.models import ReconcileResult
from sync_grants.models import Role
from sync_grants.models import RoleGrants
from sync_grants.models import SystemPrivileges
from sync_grants.models import User

ENFORCE = GrantsMode.ENFORCE
APPEND = GrantsMode.APPEND
