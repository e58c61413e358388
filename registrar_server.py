import itertools
from datetime import datetime, timezone

from aiohttp import web
from loguru import logger

TARGET_PREFIX = "Route53Domains_v20140515."

ASYNC_ACTIONS = {
    "RegisterDomain": "REGISTER_DOMAIN",
    "UpdateDomainNameservers": "UPDATE_NAMESERVER",
    "UpdateDomainContact": "UPDATE_DOMAIN_CONTACT",
    "AssociateDelegationSignerToDomain": "ADD_DNSSEC",
    "DisassociateDelegationSignerFromDomain": "REMOVE_DNSSEC",
}


class RegistrarServer:
    """Local stand-in for the Route 53 Domains JSON API.

    Each submitted operation reports IN_PROGRESS for ``polls_until_done``
    GetOperationDetail calls and then settles on SUCCESSFUL, or on FAILED
    when ``fail_operations`` is set.
    """

    def __init__(
        self,
        polls_until_done: int = 2,
        fail_operations: bool = False,
        failure_message: str = "Registrant contact is invalid",
        page_size: int = 2,
    ):
        self.polls_until_done = polls_until_done
        self.fail_operations = fail_operations
        self.failure_message = failure_message
        self.page_size = page_size
        self.domains = {}
        self.operations = {}
        self.requests = []
        self.taken_domains = set()
        self.reject_next = None
        self._ids = itertools.count(1)
        self._runner = None
        self.app = web.Application()
        self.app.router.add_post("/", self.handle_request)
        self.logger = logger

    def _new_operation(self, action: str, domain_name: str) -> str:
        operation_id = f"op-{next(self._ids):04d}"
        self.operations[operation_id] = {
            "OperationId": operation_id,
            "DomainName": domain_name,
            "Type": ASYNC_ACTIONS[action],
            "Status": "SUBMITTED",
            "SubmittedDate": datetime.now(timezone.utc).timestamp(),
            "polls": 0,
        }
        return operation_id

    def _public(self, operation: dict) -> dict:
        return {key: value for key, value in operation.items() if key != "polls"}

    def _page(self, items: list, marker, key: str) -> dict:
        start = int(marker) if marker else 0
        end = start + self.page_size
        body = {key: items[start:end]}
        if end < len(items):
            body["NextPageMarker"] = str(end)
        return body

    def _operation_detail(self, operation_id: str):
        operation = self.operations.get(operation_id)
        if operation is None:
            return None

        operation["polls"] += 1
        if operation["polls"] > self.polls_until_done:
            if self.fail_operations:
                operation["Status"] = "FAILED"
                operation["Message"] = self.failure_message
            else:
                operation["Status"] = "SUCCESSFUL"
                self._apply(operation)
        else:
            operation["Status"] = "IN_PROGRESS"
        return self._public(operation)

    def _apply(self, operation: dict) -> None:
        if operation["Type"] == "REGISTER_DOMAIN":
            self.domains.setdefault(
                operation["DomainName"],
                {"DomainName": operation["DomainName"], "AutoRenew": True},
            )

    async def handle_request(self, request):
        target = request.headers.get("X-Amz-Target", "")
        action = target[len(TARGET_PREFIX):] if target.startswith(TARGET_PREFIX) else target
        body = await request.json()
        self.requests.append(
            {"action": action, "body": body, "headers": dict(request.headers)}
        )

        if self.reject_next is not None:
            status, code, message = self.reject_next
            self.reject_next = None
            self.logger.info(f"Rejecting {action} with {code}")
            return web.json_response({"__type": code, "message": message}, status=status)

        if action in ASYNC_ACTIONS:
            operation_id = self._new_operation(action, body.get("DomainName"))
            self.logger.info(f"Accepted {action}, operation {operation_id}")
            return web.json_response({"OperationId": operation_id})

        if action == "GetOperationDetail":
            detail = self._operation_detail(body.get("OperationId"))
            if detail is None:
                return web.json_response(
                    {"__type": "InvalidInput", "message": "Operation not found"}, status=400
                )
            self.logger.info(f"Returning {detail['Status']} for {detail['OperationId']}")
            return web.json_response(detail)

        if action in ("EnableDomainAutoRenew", "DisableDomainAutoRenew"):
            domain = self.domains.get(body.get("DomainName"))
            if domain is None:
                return web.json_response(
                    {"__type": "InvalidInput", "message": "Domain not found"}, status=400
                )
            domain["AutoRenew"] = action == "EnableDomainAutoRenew"
            return web.json_response({})

        if action == "GetDomainDetail":
            domain = self.domains.get(body.get("DomainName"))
            if domain is None:
                return web.json_response(
                    {"__type": "InvalidInput", "message": "Domain not found"}, status=400
                )
            return web.json_response(domain)

        if action == "CheckDomainAvailability":
            name = body.get("DomainName")
            taken = name in self.domains or name in self.taken_domains
            return web.json_response({"Availability": "UNAVAILABLE" if taken else "AVAILABLE"})

        if action == "ListDomains":
            items = [{"DomainName": name, "AutoRenew": d["AutoRenew"]} for name, d in self.domains.items()]
            return web.json_response(self._page(items, body.get("Marker"), "Domains"))

        if action == "ListOperations":
            items = [self._public(operation) for operation in self.operations.values()]
            return web.json_response(self._page(items, body.get("Marker"), "Operations"))

        return web.json_response(
            {"__type": "InvalidInput", "message": f"Unknown action {action}"}, status=400
        )

    async def start(self, port: int = 8080):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "localhost", port)
        await site.start()
        self.logger.info(f"Registrar server started on port {port}")
        return site

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
