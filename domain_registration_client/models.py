from enum import Enum
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

OperationHandle = str

UNKNOWN_FAILURE_MESSAGE = "Unknown AWS error"


class OperationStatus(str, Enum):
    submitted = "SUBMITTED"
    in_progress = "IN_PROGRESS"
    successful = "SUCCESSFUL"
    failed = "FAILED"
    error = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (
            OperationStatus.successful,
            OperationStatus.failed,
            OperationStatus.error,
        )


class StatusResponse(BaseModel):
    operation_id: OperationHandle
    status: OperationStatus
    message: Optional[str] = None
    raw_response: dict
    elapsed_time: float


class PollPolicy(BaseModel):
    """Backoff settings for polling a submitted operation.

    The first wait is ``initial_interval_ms``; each following wait doubles,
    capped at ``max_interval_ms``. At most ``max_retries`` status queries are
    issued before the operation is reported as timed out.
    """

    model_config = ConfigDict(frozen=True)

    initial_interval_ms: int = Field(default=1000, gt=0)
    max_interval_ms: int = Field(default=30000, gt=0)
    max_retries: int = Field(default=60, ge=1)

    @model_validator(mode="after")
    def _check_interval_bounds(self) -> "PollPolicy":
        if self.initial_interval_ms > self.max_interval_ms:
            raise ValueError(
                f"initial_interval_ms ({self.initial_interval_ms}) must not exceed "
                f"max_interval_ms ({self.max_interval_ms})"
            )
        return self

    def next_interval(self, interval_ms: int) -> int:
        return min(interval_ms * 2, self.max_interval_ms)

    def intervals(self) -> Iterator[int]:
        """Yields the wait before each retry, one per allowed attempt"""
        interval = self.initial_interval_ms
        for _ in range(self.max_retries):
            yield interval
            interval = self.next_interval(interval)

    @property
    def worst_case_wait_ms(self) -> int:
        return sum(self.intervals())


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    operation_id: OperationHandle
    attempts: int

    @property
    def succeeded(self) -> bool:
        return False


class Completed(_Outcome):
    kind: Literal["completed"] = "completed"

    @property
    def succeeded(self) -> bool:
        return True


class Failed(_Outcome):
    kind: Literal["failed"] = "failed"
    message: str = UNKNOWN_FAILURE_MESSAGE


class TimedOut(_Outcome):
    kind: Literal["timed_out"] = "timed_out"


class Cancelled(_Outcome):
    kind: Literal["cancelled"] = "cancelled"


OperationOutcome = Annotated[
    Union[Completed, Failed, TimedOut, Cancelled], Field(discriminator="kind")
]


class Page(BaseModel):
    items: list[dict] = Field(default_factory=list)
    next_marker: Optional[str] = None
