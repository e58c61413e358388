from typing import Optional

from domain_registration_client.models import (
    Cancelled,
    Failed,
    OperationOutcome,
    TimedOut,
)


class DomainRegistrationError(Exception):
    pass


class InvalidArgumentError(DomainRegistrationError, ValueError):
    """A required argument was blank or out of range; nothing was sent"""

    def __init__(self, argument: str, message: str):
        super().__init__(message)
        self.argument = argument


class Route53DomainsApiError(DomainRegistrationError):
    """The Route 53 Domains API rejected a request"""

    def __init__(
        self,
        action: str,
        status: Optional[int],
        code: Optional[str],
        message: Optional[str],
    ):
        super().__init__(f"{action} failed ({status} {code}): {message}")
        self.action = action
        self.status = status
        self.code = code
        self.message = message


class OperationError(DomainRegistrationError):
    def __init__(self, outcome: OperationOutcome, message: str):
        super().__init__(message)
        self.outcome = outcome

    @property
    def operation_id(self) -> str:
        return self.outcome.operation_id


class OperationFailedError(OperationError):
    def __init__(self, outcome: Failed):
        super().__init__(outcome, f"AWS operation failed: {outcome.message}")


class OperationTimedOutError(OperationError):
    def __init__(self, outcome: TimedOut):
        super().__init__(
            outcome,
            f"Operation {outcome.operation_id} timed out after {outcome.attempts} retries",
        )


class OperationCancelledError(OperationError):
    def __init__(self, outcome: Cancelled):
        super().__init__(
            outcome,
            f"Operation {outcome.operation_id or '<not submitted>'} was cancelled",
        )


def raise_for_outcome(outcome: OperationOutcome) -> None:
    """Turns every non-completed outcome into its matching exception"""
    if isinstance(outcome, Failed):
        raise OperationFailedError(outcome)
    if isinstance(outcome, TimedOut):
        raise OperationTimedOutError(outcome)
    if isinstance(outcome, Cancelled):
        raise OperationCancelledError(outcome)
