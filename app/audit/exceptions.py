"""
Audit trail exceptions.

Exception Hierarchy:
    BaseApplicationError
    ├── AuditWriteFailure - the audit store rejected an insert
    └── PermissionDeniedError
        └── ImmutableAuditEntry - attempt to change or remove an entry
"""

from core.exceptions import BaseApplicationError, PermissionDeniedError


class AuditWriteFailure(BaseApplicationError):
    """
    Raised when an audit entry cannot be persisted.

    The mutation that triggered the audit write must roll back with it;
    services let this propagate out of their atomic block and then report
    AUDIT_WRITE_FAILURE.
    """

    default_error_code: str = "AUDIT_WRITE_FAILURE"


class ImmutableAuditEntry(PermissionDeniedError):
    """Raised on any attempt to update or delete an audit log entry."""

    default_error_code: str = "AUDIT_ENTRY_IMMUTABLE"
