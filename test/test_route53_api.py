from typing import AsyncGenerator

import aiohttp
import pytest
import pytest_asyncio
from botocore.credentials import Credentials

from domain_registration_client.errors import Route53DomainsApiError
from domain_registration_client.models import OperationStatus
from domain_registration_client.route53_api import Route53DomainsApi
from domain_registration_client.settings import Settings
from registrar_server import RegistrarServer

BASE_URL_TEMPLATE = "http://localhost:{}"
CREDENTIALS = Credentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY")


@pytest_asyncio.fixture
async def server(unused_tcp_port_factory) -> AsyncGenerator[tuple, None]:
    """Start and yield a fake registrar on a random port."""
    port = unused_tcp_port_factory()
    server_instance = RegistrarServer(polls_until_done=1)
    await server_instance.start(port=port)
    try:
        yield server_instance, port
    finally:
        await server_instance.stop()


@pytest_asyncio.fixture
async def api(server) -> AsyncGenerator[Route53DomainsApi, None]:
    _, port = server
    settings = Settings(endpoint_url=BASE_URL_TEMPLATE.format(port))
    async with Route53DomainsApi(settings, credentials=CREDENTIALS) as api_instance:
        yield api_instance


@pytest.mark.asyncio
async def test_requests_are_signed(server, api):
    server_instance, _ = server

    await api.query_sync_action("CheckDomainAvailability", {"DomainName": "example.com"})

    headers = server_instance.requests[-1]["headers"]
    assert headers["X-Amz-Target"] == "Route53Domains_v20140515.CheckDomainAvailability"
    assert headers["Content-Type"] == "application/x-amz-json-1.1"
    assert headers["Authorization"].startswith(
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/"
    )
    assert "/us-east-1/route53domains/aws4_request" in headers["Authorization"]
    assert "X-Amz-Date" in headers


@pytest.mark.asyncio
async def test_submit_and_poll_status(server, api):
    operation_id = await api.submit_async_action(
        "RegisterDomain", {"DomainName": "example.com", "DurationInYears": 1}
    )

    first = await api.query_operation_status(operation_id)
    second = await api.query_operation_status(operation_id)

    assert operation_id == "op-0001"
    assert first.status == OperationStatus.in_progress
    assert second.status == OperationStatus.successful
    assert second.raw_response["Type"] == "REGISTER_DOMAIN"
    assert second.elapsed_time >= 0


@pytest.mark.asyncio
async def test_api_error_is_decoded(server, api):
    server_instance, _ = server
    server_instance.reject_next = (
        400,
        "com.amazonaws.route53domains#InvalidInput",
        "Domain name is not valid",
    )

    with pytest.raises(Route53DomainsApiError) as excinfo:
        await api.submit_async_action("RegisterDomain", {"DomainName": "bad..name"})

    assert excinfo.value.action == "RegisterDomain"
    assert excinfo.value.status == 400
    assert excinfo.value.code == "InvalidInput"
    assert excinfo.value.message == "Domain name is not valid"


@pytest.mark.asyncio
async def test_missing_operation_id_is_an_error(server, api):
    server_instance, _ = server
    server_instance.domains["x.com"] = {"DomainName": "x.com", "AutoRenew": True}

    with pytest.raises(Route53DomainsApiError, match="MissingOperationId"):
        await api.submit_async_action("EnableDomainAutoRenew", {"DomainName": "x.com"})


@pytest.mark.asyncio
async def test_list_page_follows_markers(server, api):
    server_instance, _ = server
    for name in ("a.com", "b.com", "c.com"):
        server_instance.domains[name] = {"DomainName": name, "AutoRenew": True}

    first = await api.list_page("ListDomains", {}, None)
    second = await api.list_page("ListDomains", {}, first.next_marker)

    assert [d["DomainName"] for d in first.items] == ["a.com", "b.com"]
    assert first.next_marker == "2"
    assert [d["DomainName"] for d in second.items] == ["c.com"]
    assert second.next_marker is None
    assert server_instance.requests[-1]["body"] == {"Marker": "2"}


@pytest.mark.asyncio
async def test_list_page_rejects_unpaginated_action(api):
    with pytest.raises(ValueError):
        await api.list_page("GetDomainDetail", {}, None)


@pytest.mark.asyncio
async def test_credentials_resolved_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDFROMENV")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.delenv("AWS_PROFILE", raising=False)

    api_instance = Route53DomainsApi(Settings())

    assert api_instance.credentials.get_frozen_credentials().access_key == "AKIDFROMENV"
    await api_instance.close()


@pytest.mark.asyncio
async def test_server_unavailable(unused_tcp_port_factory):
    """Transport errors reach the caller untouched."""
    settings = Settings(endpoint_url=BASE_URL_TEMPLATE.format(unused_tcp_port_factory()))

    async with Route53DomainsApi(settings, credentials=CREDENTIALS) as api_instance:
        with pytest.raises(aiohttp.ClientConnectionError):
            await api_instance.query_operation_status("op-1")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, reported",
    [
        ({"OperationId": "op-1"}, "None"),
        ({"OperationId": "op-1", "Status": "PAUSED"}, "'PAUSED'"),
    ],
)
async def test_unrecognised_operation_status(monkeypatch, api, body, reported):
    async def fake_call(action, payload):
        return body

    monkeypatch.setattr(api, "_call", fake_call)

    with pytest.raises(Route53DomainsApiError) as excinfo:
        await api.query_operation_status("op-1")

    assert excinfo.value.action == "GetOperationDetail"
    assert excinfo.value.code == "MalformedResponse"
    assert reported in excinfo.value.message
