from typing import Optional, Protocol

from domain_registration_client.models import OperationHandle, Page, StatusResponse


class OperationClientAdapter(Protocol):
    """One request, one response, against the domain registration API.

    Every method issues a single round trip and raises whatever the
    transport or the API raised; retries and polling live above this layer.
    """

    async def submit_async_action(self, action: str, params: dict) -> OperationHandle:
        """Sends an action the registrar processes in the background"""
        ...

    async def query_sync_action(self, action: str, params: dict) -> dict:
        ...

    async def query_operation_status(self, handle: OperationHandle) -> StatusResponse:
        ...

    async def list_page(self, action: str, params: dict, marker: Optional[str]) -> Page:
        ...
