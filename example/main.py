import asyncio

from botocore.credentials import Credentials

from domain_registration_client.domain_registration_client import DomainRegistrationClient
from domain_registration_client.errors import OperationError
from domain_registration_client.models import PollPolicy
from domain_registration_client.route53_api import Route53DomainsApi
from domain_registration_client.settings import Settings
from registrar_server import RegistrarServer


async def status_changed(status_response):
    print(f"Operation {status_response.operation_id} status: {status_response.status.value}")
    print(f"Round trip: {status_response.elapsed_time:.6f}s")


async def main():
    PORT = 8000
    server = RegistrarServer(polls_until_done=3)
    await server.start(port=PORT)
    print(f"Registrar started on http://localhost:{PORT}")

    settings = Settings(endpoint_url=f"http://localhost:{PORT}")
    policy = PollPolicy(initial_interval_ms=200, max_interval_ms=1000, max_retries=10)

    async with Route53DomainsApi(settings, credentials=Credentials("AKIDEXAMPLE", "secret")) as api:
        client = DomainRegistrationClient(api, policy, on_status_change=status_changed)
        contact = {"FirstName": "Ada", "LastName": "Lovelace", "Email": "ada@example.com"}

        try:
            if await client.is_available("example.com"):
                operation_id = await client.register("example.com", 1, contact, wait=True)
                print(f"Registered example.com (operation {operation_id})")
            for domain in await client.get_all():
                print(f"Domain: {domain['DomainName']} auto-renew={domain['AutoRenew']}")
        except OperationError as e:
            print(f"Operation did not complete: {e}")
        except Exception as e:
            print(f"Error occurred: {e}")

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
