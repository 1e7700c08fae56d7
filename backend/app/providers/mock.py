"""In-memory provider with a fixed demo subscription."""

from datetime import datetime

from app.providers.base import ResourceData, ResourceGroupData, ResourceProviderBase

MOCK_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
DEMO_DATA_WARNING = (
    "Azure is not configured (AZURE_SUBSCRIPTION_ID is empty); "
    "figures come from the built-in demo estate"
)
MOCK_LOCATION = "westeurope"


def _resource(group: str, provider_type: str, name: str, kind: str | None = None) -> ResourceData:
    return ResourceData(
        id=(
            f"/subscriptions/{MOCK_SUBSCRIPTION_ID}/resourceGroups/{group}"
            f"/providers/{provider_type}/{name}"
        ),
        name=name,
        type=provider_type,
        resource_group_name=group,
        location=MOCK_LOCATION,
        tags={"environment": "dev"},
        kind=kind,
    )


def build_mock_resource_groups() -> list[ResourceGroupData]:
    """Two microservices (payment, sessions) plus a shared infrastructure group."""
    payment = "rg-payment-dev"
    sessions = "rg-sessions-dev"
    shared = "rg-shared-dev"

    return [
        ResourceGroupData(
            name=payment,
            location=MOCK_LOCATION,
            resources=[
                _resource(payment, "Microsoft.Web/sites", "payment-api", kind="app"),
                _resource(payment, "Microsoft.Web/sites", "payment-functions", kind="functionapp"),
                _resource(payment, "Microsoft.ServiceBus/namespaces", "payment-bus"),
                _resource(payment, "Microsoft.Sql/servers", "payment-db"),
            ],
        ),
        ResourceGroupData(
            name=sessions,
            location=MOCK_LOCATION,
            resources=[
                _resource(sessions, "Microsoft.Web/sites", "sessions-api", kind="app"),
                _resource(sessions, "Microsoft.Web/sites", "sessions-functions", kind="functionapp"),
                _resource(sessions, "Microsoft.ServiceBus/namespaces", "sessions-bus"),
                _resource(sessions, "Microsoft.DocumentDB/databaseAccounts", "sessions-cosmos"),
            ],
        ),
        ResourceGroupData(
            name=shared,
            location=MOCK_LOCATION,
            resources=[
                _resource(shared, "Microsoft.ServiceBus/namespaces", "shared-bus"),
                _resource(shared, "Microsoft.KeyVault/vaults", "shared-keyvault"),
                _resource(shared, "Microsoft.Storage/storageAccounts", "sharedstorage"),
            ],
        ),
    ]


class MockResourceProvider(ResourceProviderBase):
    """
    Offline provider for demos and fallback listings.

    Single-resource lookups always answer "unknown", so classification falls
    back to name patterns and defaults.
    """

    serves_demo_data = True

    def __init__(self, resource_groups: list[ResourceGroupData] | None = None) -> None:
        self.subscription_id = MOCK_SUBSCRIPTION_ID
        self._resource_groups = (
            resource_groups if resource_groups is not None else build_mock_resource_groups()
        )

    async def test_connection(self) -> bool:
        return False

    async def list_resources(self) -> list[ResourceData]:
        return [r for group in self._resource_groups for r in group.resources]

    async def list_resource_groups(self) -> list[ResourceGroupData]:
        return list(self._resource_groups)

    async def get_app_service_plan_sku(self, resource_id: str) -> str | None:
        return None

    async def get_database_sku_tier(self, resource_id: str) -> str | None:
        return None

    async def get_creation_date(self, resource_id: str) -> datetime | None:
        return None
