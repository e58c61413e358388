from typing import Optional

import pytest

from domain_registration_client.cancellation import CancelSignal
from domain_registration_client.models import OperationStatus, Page, StatusResponse


class ScriptedAdapter:
    """In-memory adapter that replays a scripted status sequence per operation"""

    def __init__(self, statuses=(), message: Optional[str] = None):
        self.scripts = {}
        self.default_script = list(statuses)
        self.message = message
        self.pages = {}
        self.sync_results = {}
        self.status_queries = []
        self.submitted = []
        self.sync_calls = []
        self.page_requests = []
        self.query_error = None
        self._next_id = 0

    @property
    def calls(self) -> int:
        return (
            len(self.status_queries)
            + len(self.submitted)
            + len(self.sync_calls)
            + len(self.page_requests)
        )

    async def submit_async_action(self, action: str, params: dict) -> str:
        self._next_id += 1
        self.submitted.append((action, params))
        return f"op-{self._next_id}"

    async def query_sync_action(self, action: str, params: dict) -> dict:
        self.sync_calls.append((action, params))
        return self.sync_results.get(action, {})

    async def query_operation_status(self, handle: str) -> StatusResponse:
        self.status_queries.append(handle)
        if self.query_error is not None:
            raise self.query_error

        script = self.scripts.get(handle, self.default_script)
        count = self.status_queries.count(handle)
        status = script[min(count, len(script)) - 1]
        message = self.message if status in (OperationStatus.failed, OperationStatus.error) else None
        return StatusResponse(
            operation_id=handle,
            status=status,
            message=message,
            raw_response={"OperationId": handle, "Status": status.value},
            elapsed_time=0.0,
        )

    async def list_page(self, action: str, params: dict, marker: Optional[str]) -> Page:
        self.page_requests.append((action, marker))
        return self.pages[action][marker]


class RecordingCancelSignal(CancelSignal):
    """Records each backoff wait instead of sleeping through it"""

    def __init__(self, cancel_after_waits: Optional[int] = None):
        super().__init__()
        self.waits = []
        self.cancel_after_waits = cancel_after_waits

    async def sleep(self, seconds: float) -> bool:
        self.waits.append(round(seconds * 1000))
        if self.cancel_after_waits is not None and len(self.waits) >= self.cancel_after_waits:
            self.cancel()
        return self.cancelled


@pytest.fixture
def adapter_factory():
    return ScriptedAdapter


@pytest.fixture
def signal_factory():
    return RecordingCancelSignal
