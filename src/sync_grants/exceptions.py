"""Exceptions raised by sync_grants."""

from sync_grants.models import GrantOperation
from sync_grants.models import ReconcileResult


class NotFoundError(LookupError):
    """The catalog has no row for the requested user, role or directory."""


class ReconciliationError(Exception):
    """A GRANT or REVOKE statement failed part-way through a reconciliation.

    Statements applied before the failure are not rolled back. The underlying
    database exception is available as ``__cause__`` and its message is used
    unchanged as this exception's message.

    Attributes:
        result (ReconcileResult): The plan, the applied operations and the failed one.
    """

    def __init__(self, result: ReconcileResult, cause: BaseException):
        super().__init__(str(cause))
        self.result = result

    @property
    def operation(self) -> GrantOperation | None:
        return self.result.failed
