"""Exceptions raised by the matching and auto-apply services.

Missing profile data, disabled auto-apply and an exhausted daily quota are
normal outcomes and never raise.
"""


class AutoApplyError(Exception):
    """Base exception for service layer errors."""
    pass


class JobsNotFoundError(AutoApplyError):
    """Raised when none of the requested job postings exist."""
    pass


class UpstreamError(AutoApplyError):
    """Raised when a collaborator the whole call depends on is unavailable."""
    pass


class ApplicationWriteError(AutoApplyError):
    """Raised when an application row could not be written."""
    pass


class DuplicateApplicationError(ApplicationWriteError):
    """Raised when the user already has an application for the job."""
    pass


class QuotaExhaustedError(ApplicationWriteError):
    """Raised when no daily auto-apply slot is left to reserve."""
    pass
