import asyncio
import json
from typing import Optional

import aiohttp
import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from loguru import logger

from domain_registration_client.errors import Route53DomainsApiError
from domain_registration_client.models import (
    OperationHandle,
    OperationStatus,
    Page,
    StatusResponse,
)
from domain_registration_client.settings import Settings, create_settings_from_env

SERVICE_NAME = "route53domains"
TARGET_PREFIX = "Route53Domains_v20140515"
CONTENT_TYPE = "application/x-amz-json-1.1"

# Paginated actions and the response key holding each page's items
PAGE_ITEMS_KEYS = {
    "ListDomains": "Domains",
    "ListOperations": "Operations",
}


class Route53DomainsApi:
    """Talks to the Route 53 Domains JSON API over aiohttp.

    Requests are signed with SigV4 when credentials are available; with no
    credentials they go out unsigned, which is only useful against a local
    stand-in endpoint.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials=None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings or create_settings_from_env()
        self.credentials = (
            credentials if credentials is not None else self._resolve_credentials()
        )
        self._session = session
        self._owns_session = session is None
        self.logger = logger

    def _resolve_credentials(self):
        boto_session = boto3.Session(
            profile_name=self.settings.profile, region_name=self.settings.region
        )
        credentials = boto_session.get_credentials()
        if credentials is None:
            self.logger.warning("No AWS credentials found, requests will be unsigned")
        return credentials

    async def __aenter__(self) -> "Route53DomainsApi":
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def _signed_headers(self, url: str, action: str, body: bytes) -> dict:
        headers = {
            "Content-Type": CONTENT_TYPE,
            "X-Amz-Target": f"{TARGET_PREFIX}.{action}",
        }
        if self.credentials is None:
            return headers

        request = AWSRequest(method="POST", url=url, data=body, headers=headers)
        SigV4Auth(
            self.credentials.get_frozen_credentials(), SERVICE_NAME, self.settings.region
        ).add_auth(request)
        return dict(request.headers.items())

    @staticmethod
    def _api_error(action: str, status: int, data: dict) -> Route53DomainsApiError:
        code = data.get("__type") or data.get("code")
        if code and "#" in code:
            code = code.rsplit("#", 1)[1]
        message = data.get("message") or data.get("Message")
        return Route53DomainsApiError(action, status, code, message)

    async def _call(self, action: str, payload: dict) -> dict:
        """Sends one signed request and returns the decoded JSON body"""
        url = f"{self.settings.resolved_endpoint_url}/"
        body = json.dumps(payload).encode("utf-8")
        headers = self._signed_headers(url, action, body)
        session = self._get_session()

        self.logger.debug(f"Calling {action} at {url}")
        async with session.post(url, data=body, headers=headers) as response:
            text = await response.text()
            try:
                data = json.loads(text) if text else {}
            except json.JSONDecodeError as e:
                self.logger.error(f"Malformed response from {action} ({response.status}): {text[:200]}")
                raise Route53DomainsApiError(
                    action, response.status, "MalformedResponse", str(e)
                ) from e

            if response.status >= 400:
                error = self._api_error(action, response.status, data)
                self.logger.error(f"HTTP error {response.status} calling {action}: {error.message}")
                raise error

            return data

    async def submit_async_action(self, action: str, params: dict) -> OperationHandle:
        data = await self._call(action, params)
        operation_id = data.get("OperationId")
        if not operation_id:
            raise Route53DomainsApiError(
                action, None, "MissingOperationId", "Response did not include an OperationId"
            )
        return operation_id

    async def query_sync_action(self, action: str, params: dict) -> dict:
        return await self._call(action, params)

    async def query_operation_status(self, handle: OperationHandle) -> StatusResponse:
        """Fetches the status of an operation from GetOperationDetail"""
        start_time = asyncio.get_running_loop().time()
        data = await self._call("GetOperationDetail", {"OperationId": handle})
        elapsed_time = asyncio.get_running_loop().time() - start_time

        try:
            status = OperationStatus(data["Status"])
        except (KeyError, ValueError) as e:
            self.logger.error(f"Malformed GetOperationDetail response for operation {handle}: {data}")
            raise Route53DomainsApiError(
                "GetOperationDetail",
                None,
                "MalformedResponse",
                f"Unrecognised operation status {data.get('Status')!r}",
            ) from e

        return StatusResponse(
            operation_id=handle,
            status=status,
            message=data.get("Message"),
            raw_response=data,
            elapsed_time=elapsed_time,
        )

    async def list_page(self, action: str, params: dict, marker: Optional[str]) -> Page:
        items_key = PAGE_ITEMS_KEYS.get(action)
        if items_key is None:
            raise ValueError(f"{action} is not a paginated action")

        payload = dict(params)
        if marker:
            payload["Marker"] = marker

        data = await self._call(action, payload)
        return Page(
            items=data.get(items_key) or [],
            next_marker=data.get("NextPageMarker") or None,
        )
