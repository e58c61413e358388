from typing import Any, Callable, Optional

from loguru import logger

from domain_registration_client.adapter import OperationClientAdapter
from domain_registration_client.cancellation import CancelSignal
from domain_registration_client.errors import (
    InvalidArgumentError,
    OperationCancelledError,
    raise_for_outcome,
)
from domain_registration_client.models import (
    Cancelled,
    OperationHandle,
    PollPolicy,
    StatusResponse,
)
from domain_registration_client.poller import OperationPoller

AVAILABLE = "AVAILABLE"


def _require_text(value: Optional[str], argument: str, message: str) -> None:
    if value is None or not value.strip():
        raise InvalidArgumentError(argument, message)


class DomainRegistrationClient:
    """Domain lifecycle operations on top of an operation client adapter.

    Mutating calls return the OperationId the registrar assigned. Passing
    ``wait=True`` polls that operation to completion and raises an
    ``OperationError`` subclass when it fails, times out or is cancelled.
    """

    def __init__(
        self,
        adapter: OperationClientAdapter,
        policy: Optional[PollPolicy] = None,
        on_status_change: Optional[Callable[[StatusResponse], Any]] = None,
    ):
        self.adapter = adapter
        self.policy = policy or PollPolicy()
        self.logger = logger
        self.poller = OperationPoller(
            adapter, self.policy, on_status_change=on_status_change, logger=self.logger
        )

    def _check_cancelled(self, cancel: Optional[CancelSignal]) -> None:
        if cancel is not None and cancel.cancelled:
            raise OperationCancelledError(Cancelled(operation_id="", attempts=0))

    async def _submit(
        self,
        tag: str,
        action: str,
        request: dict,
        subject: str,
        wait: bool,
        cancel: Optional[CancelSignal],
    ) -> OperationHandle:
        """Submits an asynchronous action and optionally waits for it to finish"""
        self._check_cancelled(cancel)
        operation_id = await self.adapter.submit_async_action(action, request)
        self.logger.info(f"[{tag}] Operation submitted for {subject}. OperationId: {operation_id}")

        if wait:
            self.logger.debug(f"[{tag}] Waiting for operation completion for {subject}")
            outcome = await self.poller.await_completion(operation_id, self.policy, cancel)
            raise_for_outcome(outcome)
            self.logger.info(f"[{tag}] Operation {operation_id} for {subject} completed successfully")

        return operation_id

    async def _collect_pages(
        self, action: str, params: dict, cancel: Optional[CancelSignal]
    ) -> list:
        items = []
        marker = None
        while True:
            self._check_cancelled(cancel)
            page = await self.adapter.list_page(action, params, marker)
            items.extend(page.items)
            marker = page.next_marker
            if not marker:
                return items

    async def register(
        self,
        domain_name: str,
        duration_in_years: int,
        contact: dict,
        wait: bool = False,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationHandle:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")
        if duration_in_years < 1:
            raise InvalidArgumentError("duration_in_years", "Duration must be at least 1 year.")
        if not contact:
            raise InvalidArgumentError("contact", "Contact details must be provided.")

        request = {
            "DomainName": domain_name,
            "DurationInYears": duration_in_years,
            "AdminContact": contact,
            "RegistrantContact": contact,
            "TechContact": contact,
            "PrivacyProtectAdminContact": True,
            "PrivacyProtectRegistrantContact": True,
            "PrivacyProtectTechContact": True,
        }

        try:
            self.logger.info(
                f"[Register] Initiating registration for domain {domain_name} "
                f"with {duration_in_years} year(s) duration"
            )
            return await self._submit("Register", "RegisterDomain", request, domain_name, wait, cancel)
        except Exception as e:
            self.logger.error(f"[Register] Failed to register domain {domain_name}: {e}")
            raise

    async def update_nameservers(
        self,
        domain_name: str,
        nameservers: list,
        wait: bool = False,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationHandle:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")
        if not nameservers:
            raise InvalidArgumentError("nameservers", "At least one nameserver must be provided.")

        parsed_nameservers = [{"Name": ns} for ns in nameservers if ns and ns.strip()]
        if not parsed_nameservers:
            raise InvalidArgumentError("nameservers", "At least one nameserver must be provided.")

        request = {"DomainName": domain_name, "Nameservers": parsed_nameservers}

        try:
            self.logger.info(f"[Nameservers] Updating nameservers for {domain_name}")
            return await self._submit(
                "Nameservers", "UpdateDomainNameservers", request, domain_name, wait, cancel
            )
        except Exception as e:
            self.logger.error(f"[Nameservers] Failed to update nameservers for {domain_name}: {e}")
            raise

    async def _set_auto_renew(
        self, domain_name: str, enabled: bool, cancel: Optional[CancelSignal]
    ) -> None:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")
        verb = "Enabling" if enabled else "Disabling"
        action = "EnableDomainAutoRenew" if enabled else "DisableDomainAutoRenew"

        try:
            self.logger.info(f"[AutoRenew] {verb} auto-renew for {domain_name}")
            self._check_cancelled(cancel)
            await self.adapter.query_sync_action(action, {"DomainName": domain_name})
        except Exception as e:
            self.logger.error(f"[AutoRenew] Failed {verb.lower()} auto-renew for {domain_name}: {e}")
            raise

    async def enable_auto_renew(
        self, domain_name: str, cancel: Optional[CancelSignal] = None
    ) -> None:
        await self._set_auto_renew(domain_name, True, cancel)

    async def disable_auto_renew(
        self, domain_name: str, cancel: Optional[CancelSignal] = None
    ) -> None:
        await self._set_auto_renew(domain_name, False, cancel)

    async def get(self, domain_name: str, cancel: Optional[CancelSignal] = None) -> dict:
        """Fetches contacts, nameservers, expiry and the rest of a domain's detail"""
        _require_text(domain_name, "domain_name", "Domain name must be provided.")

        try:
            self.logger.info(f"[GetDetail] Retrieving detailed information for domain {domain_name}")
            self._check_cancelled(cancel)
            response = await self.adapter.query_sync_action(
                "GetDomainDetail", {"DomainName": domain_name}
            )
            self.logger.info(f"[GetDetail] Retrieved details for domain {domain_name}")
            return response
        except Exception as e:
            self.logger.error(f"[GetDetail] Failed to get details for domain {domain_name}: {e}")
            raise

    async def update_contact(
        self,
        domain_name: str,
        admin_contact: Optional[dict] = None,
        registrant_contact: Optional[dict] = None,
        tech_contact: Optional[dict] = None,
        wait: bool = False,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationHandle:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")

        request = {"DomainName": domain_name}
        for key, contact in (
            ("AdminContact", admin_contact),
            ("RegistrantContact", registrant_contact),
            ("TechContact", tech_contact),
        ):
            if contact is not None:
                request[key] = contact

        try:
            self.logger.info(f"[UpdateContact] Updating contact info for {domain_name}")
            return await self._submit(
                "UpdateContact", "UpdateDomainContact", request, domain_name, wait, cancel
            )
        except Exception as e:
            self.logger.error(f"[UpdateContact] Failed to update contact for {domain_name}: {e}")
            raise

    async def get_all(self, cancel: Optional[CancelSignal] = None) -> list:
        """Lists every domain in the account, following page markers in order"""
        try:
            self.logger.info("[GetAll] Retrieving list of domains")
            domains = await self._collect_pages("ListDomains", {}, cancel)
            self.logger.info(f"[GetAll] Retrieved {len(domains)} domains")
            return domains
        except Exception as e:
            self.logger.error(f"[GetAll] Failed to retrieve domains: {e}")
            raise

    async def is_available(
        self, domain_name: str, cancel: Optional[CancelSignal] = None
    ) -> bool:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")

        try:
            self.logger.info(f"[Availability] Checking availability for domain {domain_name}")
            self._check_cancelled(cancel)
            response = await self.adapter.query_sync_action(
                "CheckDomainAvailability", {"DomainName": domain_name}
            )
            availability = response.get("Availability")
            self.logger.info(f"[Availability] Domain {domain_name} availability: {availability}")
            return availability == AVAILABLE
        except Exception as e:
            self.logger.error(
                f"[Availability] Failed to check availability for domain {domain_name}: {e}"
            )
            raise

    async def list_operations(self, cancel: Optional[CancelSignal] = None) -> list:
        try:
            self.logger.info("[ListOperations] Retrieving list of operations")
            operations = await self._collect_pages("ListOperations", {}, cancel)
            self.logger.info(f"[ListOperations] Retrieved {len(operations)} operations")
            return operations
        except Exception as e:
            self.logger.error(f"[ListOperations] Failed to retrieve operations: {e}")
            raise

    async def get_operation_detail(
        self, operation_id: OperationHandle, cancel: Optional[CancelSignal] = None
    ) -> dict:
        _require_text(operation_id, "operation_id", "OperationId must be provided.")

        try:
            self.logger.info(f"[OperationDetail] Retrieving details for operation {operation_id}")
            self._check_cancelled(cancel)
            response = await self.adapter.query_sync_action(
                "GetOperationDetail", {"OperationId": operation_id}
            )
            self.logger.info(
                f"[OperationDetail] Retrieved details for operation {operation_id}. "
                f"Status: {response.get('Status')}"
            )
            return response
        except Exception as e:
            self.logger.error(
                f"[OperationDetail] Failed to get details for operation {operation_id}: {e}"
            )
            raise

    async def add_ds_record(
        self,
        domain_name: str,
        flags: int,
        algorithm: int,
        public_key: str,
        wait: bool = False,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationHandle:
        """Associates a DNSSEC delegation signer with the domain.

        ``flags`` is 257 for a key-signing key or 256 for a zone-signing key,
        ``algorithm`` the DNSSEC algorithm number (13 = ECDSAP256SHA256) and
        ``public_key`` the base64 DNSKEY public key.
        """
        _require_text(domain_name, "domain_name", "Domain name must be provided.")
        _require_text(public_key, "public_key", "PublicKey must be provided.")

        request = {
            "DomainName": domain_name,
            "SigningAttributes": {
                "Flags": flags,
                "Algorithm": algorithm,
                "PublicKey": public_key,
            },
        }

        try:
            self.logger.info(f"[DSRecord] Adding DS record for domain {domain_name}")
            return await self._submit(
                "DSRecord", "AssociateDelegationSignerToDomain", request, domain_name, wait, cancel
            )
        except Exception as e:
            self.logger.error(f"[DSRecord] Failed to add DS record for domain {domain_name}: {e}")
            raise

    async def remove_ds_record(
        self,
        domain_name: str,
        record_id: Optional[str] = None,
        wait: bool = False,
        cancel: Optional[CancelSignal] = None,
    ) -> OperationHandle:
        _require_text(domain_name, "domain_name", "Domain name must be provided.")

        request = {"DomainName": domain_name}
        if record_id:
            request["Id"] = record_id

        try:
            self.logger.info(f"[DSRecord] Removing DS record for domain {domain_name}")
            return await self._submit(
                "DSRecord",
                "DisassociateDelegationSignerFromDomain",
                request,
                domain_name,
                wait,
                cancel,
            )
        except Exception as e:
            self.logger.error(f"[DSRecord] Failed to remove DS record for domain {domain_name}: {e}")
            raise
