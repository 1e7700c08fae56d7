"""Tests for the Azure resource-manager provider with a mocked SDK client."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import ClientAuthenticationError, HttpResponseError, ResourceNotFoundError

from app.providers.azure import AzureResourceProvider
from app.providers.base import DiscoveryError, ResourceLookupError

SUB = "abcdef12-3456-7890-abcd-ef1234567890"
SITE_ID = f"/subscriptions/{SUB}/resourceGroups/rg-orders/providers/Microsoft.Web/sites/orders-api"
PLAN_ID = f"/subscriptions/{SUB}/resourceGroups/rg-orders/providers/Microsoft.Web/serverfarms/orders-plan"
DB_ID = f"/subscriptions/{SUB}/resourceGroups/rg-orders/providers/Microsoft.Sql/servers/orders/databases/main"


def sdk_resource(resource_id: str, resource_type: str, **fields) -> SimpleNamespace:
    defaults = {
        "id": resource_id,
        "name": resource_id.split("/")[-1],
        "type": resource_type,
        "location": "westeurope",
        "tags": None,
        "kind": None,
        "sku": None,
        "properties": {},
        "system_data": None,
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


@pytest.fixture
def sdk_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provider(sdk_client: MagicMock) -> AzureResourceProvider:
    provider = AzureResourceProvider(subscription_id=SUB)
    provider._resource_client = sdk_client
    return provider


class TestAzureLookups:
    """Test single-resource lookups."""

    @pytest.mark.asyncio
    async def test_plan_sku_follows_server_farm(self, provider, sdk_client):
        """Test the plan SKU is read from the site's server farm."""
        sdk_client.resources.get_by_id.side_effect = [
            sdk_resource(SITE_ID, "Microsoft.Web/sites", properties={"serverFarmId": PLAN_ID}),
            sdk_resource(PLAN_ID, "Microsoft.Web/serverfarms", sku=SimpleNamespace(name="P1v3")),
        ]

        assert await provider.get_app_service_plan_sku(SITE_ID) == "P1v3"
        assert sdk_client.resources.get_by_id.call_args_list[1].args[0] == PLAN_ID

    @pytest.mark.asyncio
    async def test_plan_sku_missing_plan(self, provider, sdk_client):
        """Test a site without a plan has no SKU."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(SITE_ID, "Microsoft.Web/sites")

        assert await provider.get_app_service_plan_sku(SITE_ID) is None

    @pytest.mark.asyncio
    async def test_not_found_is_unknown(self, provider, sdk_client):
        """Test a missing resource returns None."""
        sdk_client.resources.get_by_id.side_effect = ResourceNotFoundError("gone")

        assert await provider.get_app_service_plan_sku(SITE_ID) is None
        assert await provider.get_database_sku_tier(DB_ID) is None
        assert await provider.get_creation_date(DB_ID) is None

    @pytest.mark.asyncio
    async def test_api_failure_raises_lookup_error(self, provider, sdk_client):
        """Test Azure API failures raise ResourceLookupError."""
        sdk_client.resources.get_by_id.side_effect = HttpResponseError("throttled")

        with pytest.raises(ResourceLookupError):
            await provider.get_app_service_plan_sku(SITE_ID)
        with pytest.raises(ResourceLookupError):
            await provider.get_database_sku_tier(DB_ID)

    @pytest.mark.asyncio
    async def test_database_tier(self, provider, sdk_client):
        """Test reading the database SKU tier."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(
            DB_ID, "Microsoft.Sql/servers/databases", sku=SimpleNamespace(name="S0", tier="Standard")
        )

        assert await provider.get_database_sku_tier(DB_ID) == "Standard"

    @pytest.mark.asyncio
    async def test_database_tier_from_current_sku(self, provider, sdk_client):
        """Test the tier is read from currentSku when sku is absent."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(
            DB_ID, "Microsoft.Sql/servers/databases", properties={"currentSku": {"tier": "Premium"}}
        )

        assert await provider.get_database_sku_tier(DB_ID) == "Premium"

    @pytest.mark.asyncio
    async def test_creation_date_from_properties(self, provider, sdk_client):
        """Test the creation date from resource properties."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(
            DB_ID, "Microsoft.Sql/servers/databases", properties={"creationDate": None, "createdTime": "2025-01-05T10:00:00Z"}
        )

        created = await provider.get_creation_date(DB_ID)

        assert created == datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_creation_date_from_system_data(self, provider, sdk_client):
        """Test the creation date from systemData."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(
            SITE_ID,
            "Microsoft.Web/sites",
            system_data=SimpleNamespace(created_at=datetime(2024, 12, 1, 8, 0)),
        )

        created = await provider.get_creation_date(SITE_ID)

        assert created == datetime(2024, 12, 1, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_creation_date_from_expanded_listing(self, provider, sdk_client):
        """Test the creation date from the expanded resource listing."""
        sdk_client.resources.get_by_id.return_value = sdk_resource(SITE_ID, "Microsoft.Web/sites")
        sdk_client.resources.list_by_resource_group.return_value = [
            SimpleNamespace(id=SITE_ID.upper(), created_time=datetime(2024, 6, 1, tzinfo=timezone.utc))
        ]

        created = await provider.get_creation_date(SITE_ID)

        assert created == datetime(2024, 6, 1, tzinfo=timezone.utc)
        args, kwargs = sdk_client.resources.list_by_resource_group.call_args
        assert args[0] == "rg-orders"
        assert kwargs["filter"] == "name eq 'orders-api'"


class TestAzureDiscovery:
    """Test listings and connectivity."""

    @pytest.mark.asyncio
    async def test_list_resources(self, provider, sdk_client):
        """Test listing subscription resources."""
        sdk_client.resources.list.return_value = [
            sdk_resource(SITE_ID, "Microsoft.Web/sites", tags={"team": "orders"}, kind="app")
        ]

        resources = await provider.list_resources()

        assert len(resources) == 1
        assert resources[0].resource_group_name == "rg-orders"
        assert resources[0].tags == {"team": "orders"}
        assert resources[0].kind == "app"

    @pytest.mark.asyncio
    async def test_list_resources_failure(self, provider, sdk_client):
        """Test listing failures raise DiscoveryError."""
        sdk_client.resources.list.side_effect = HttpResponseError("forbidden")

        with pytest.raises(DiscoveryError):
            await provider.list_resources()

    @pytest.mark.asyncio
    async def test_list_resource_groups(self, provider, sdk_client):
        """Test listing resource groups."""
        group = SimpleNamespace(name="rg-orders", location="westeurope", tags={"env": "dev"})
        sdk_client.resource_groups.list.return_value = [group]
        sdk_client.resources.list_by_resource_group.return_value = [
            sdk_resource(SITE_ID, "Microsoft.Web/sites")
        ]

        groups = await provider.list_resource_groups()

        assert [g.name for g in groups] == ["rg-orders"]
        assert groups[0].resources[0].name == "orders-api"

    @pytest.mark.asyncio
    async def test_connection(self, provider, sdk_client):
        """Test the connection check succeeds or fails with authentication."""
        sdk_client.resource_groups.list.return_value = []
        assert await provider.test_connection() is True

        sdk_client.resource_groups.list.side_effect = ClientAuthenticationError("bad secret")
        assert await provider.test_connection() is False

    def test_api_version_prefers_newest_stable(self, provider, sdk_client):
        """Test the newest non-preview API version is chosen."""
        sdk_client.providers.get.return_value = SimpleNamespace(
            resource_types=[
                SimpleNamespace(
                    resource_type="sites",
                    api_versions=["2023-01-01", "2024-04-01-preview", "2023-12-01"],
                )
            ]
        )

        assert provider._resolve_api_version(SITE_ID) == "2023-12-01"
        provider._resolve_api_version(SITE_ID)
        assert sdk_client.providers.get.call_count == 1
