"""Failures of the role-update rule."""

from ...errors import AppError, ConflictError, ErrorKind, PermissionDeniedError


class Unauthorized(PermissionDeniedError):
    code = "unauthorized"

    def __init__(self, user_message: str = "Unauthorized: Only admins can update roles"):
        super().__init__(user_message)


class SelfDemotion(PermissionDeniedError):
    code = "self-demotion"

    def __init__(self, user_message: str = "You cannot demote yourself from admin"):
        super().__init__(user_message)


class LastAdmin(ConflictError):
    code = "last-admin"

    def __init__(
        self,
        user_message: str = "Cannot remove the last admin. Promote another user to admin first.",
    ):
        super().__init__(user_message)


class ClaimsSyncError(AppError):
    """The role was written but the auth provider's claims could not be updated."""

    kind = ErrorKind.UNKNOWN
    code = "claims-sync-failed"
    http_status = 502

    def __init__(self, user_id: str, role: str, rolled_back: bool):
        self.user_id = user_id
        self.role = role
        self.rolled_back = rolled_back
        if rolled_back:
            message = "Failed to sync user permissions. The role change was reverted, please try again."
        else:
            message = (
                f"User role was saved as {role} but permissions could not be synced. "
                "The user keeps their previous access until the sync is retried."
            )
        super().__init__(message)
