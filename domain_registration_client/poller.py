from typing import Any, Callable, Optional

from loguru import logger as default_logger

from domain_registration_client.adapter import OperationClientAdapter
from domain_registration_client.cancellation import CancelSignal
from domain_registration_client.errors import InvalidArgumentError
from domain_registration_client.models import (
    UNKNOWN_FAILURE_MESSAGE,
    Cancelled,
    Completed,
    Failed,
    OperationHandle,
    OperationOutcome,
    OperationStatus,
    PollPolicy,
    StatusResponse,
    TimedOut,
)


class OperationPoller:
    def __init__(
        self,
        adapter: OperationClientAdapter,
        policy: Optional[PollPolicy] = None,
        on_status_change: Optional[Callable[[StatusResponse], Any]] = None,
        logger=None,
    ):
        self.adapter = adapter
        self.policy = policy or PollPolicy()
        self.on_status_change = on_status_change
        self.logger = logger or default_logger

    async def _handle_status_change(
        self, status_response: StatusResponse, last_status: Optional[OperationStatus]
    ) -> None:
        """Invoke the status change callback if the status has changed"""
        if last_status != status_response.status and self.on_status_change is not None:
            self.logger.debug(
                f"Operation {status_response.operation_id} status changed to {status_response.status.value}"
            )
            await self.on_status_change(status_response)

    async def _wait_before_retry(
        self, handle: OperationHandle, interval_ms: int, cancel: CancelSignal
    ) -> None:
        """Waits out the backoff interval, waking early if cancelled"""
        self.logger.debug(
            f"[Wait] Operation {handle} still pending, waiting {interval_ms}ms before next attempt"
        )
        await cancel.sleep(interval_ms / 1000)

    async def await_completion(
        self,
        handle: OperationHandle,
        policy: Optional[PollPolicy] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationOutcome:
        """Poll the operation until it reaches a terminal status, using exponential backoff"""
        if not handle or not handle.strip():
            raise InvalidArgumentError("handle", "OperationId must be provided.")

        policy = policy or self.policy
        cancel = cancel or CancelSignal()
        attempt = 0
        interval = policy.initial_interval_ms
        last_status = None

        self.logger.debug(f"[Wait] Beginning to poll for operation {handle}")

        while True:
            if cancel.cancelled:
                self.logger.info(f"[Wait] Polling for operation {handle} cancelled")
                return Cancelled(operation_id=handle, attempts=attempt)

            if attempt >= policy.max_retries:
                self.logger.error(
                    f"[Wait] Operation {handle} timed out after {policy.max_retries} retries"
                )
                return TimedOut(operation_id=handle, attempts=attempt)

            try:
                status_response = await self.adapter.query_operation_status(handle)
            except Exception as e:
                self.logger.error(f"[Wait] Status query for operation {handle} failed: {e}")
                raise
            self.logger.debug(
                f"[Wait] Operation {handle} status: {status_response.status.value} "
                f"(Attempt {attempt + 1} of {policy.max_retries})"
            )

            await self._handle_status_change(status_response, last_status)
            last_status = status_response.status

            if status_response.status == OperationStatus.successful:
                self.logger.info(f"[Wait] Operation {handle} completed successfully")
                return Completed(operation_id=handle, attempts=attempt + 1)

            if status_response.status in (OperationStatus.failed, OperationStatus.error):
                message = status_response.message or UNKNOWN_FAILURE_MESSAGE
                self.logger.error(f"[Wait] Operation {handle} failed: {message}")
                return Failed(operation_id=handle, attempts=attempt + 1, message=message)

            await self._wait_before_retry(handle, interval, cancel)
            interval = policy.next_interval(interval)
            attempt += 1
