"""Tests for resource group based discovery."""

import pytest

from app.providers.base import (
    ResourceData,
    ResourceGroupData,
    extract_microservice_name,
    extract_resource_group,
    is_function_app,
    is_shared_infrastructure_group,
)
from app.providers.mock import MOCK_SUBSCRIPTION_ID, MockResourceProvider
from tests.conftest import SUBSCRIPTION


def site(group: str, name: str, kind: str | None = None, tags: dict | None = None) -> ResourceData:
    return ResourceData(
        id=f"{SUBSCRIPTION}/resourceGroups/{group}/providers/Microsoft.Web/sites/{name}",
        name=name,
        type="Microsoft.Web/sites",
        kind=kind,
        tags=tags,
    )


class TestHelpers:
    """Test naming helpers."""

    @pytest.mark.parametrize(
        "group,name",
        [
            ("rg-payments-dev", "payments"),
            ("myapp-dev-payments", "payments"),
            ("payments-resourcegroup", "payments"),
            ("RG_Orders_Prod", "orders"),
            ("dev", "dev"),
        ],
    )
    def test_extract_microservice_name(self, group, name):
        """Test deriving a microservice name from a resource group."""
        assert extract_microservice_name(group) == name

    def test_extract_resource_group(self):
        """Test extracting the resource group from an ARM ID."""
        assert extract_resource_group(f"{SUBSCRIPTION}/resourceGroups/rg-a/providers/X/y/z") == "rg-a"
        assert extract_resource_group("/subscriptions/abc") == "Unknown"

    @pytest.mark.parametrize(
        "group,shared",
        [("rg-shared-dev", True), ("platform-infra", True), ("rg-payments-dev", False)],
    )
    def test_is_shared_infrastructure_group(self, group, shared):
        """Test recognising shared infrastructure groups."""
        assert is_shared_infrastructure_group(group) is shared

    def test_is_function_app(self):
        """Test recognising function apps."""
        assert is_function_app(site("rg", "orders", kind="functionapp,linux"))
        assert is_function_app(site("rg", "orders-processor"))
        assert is_function_app(site("rg", "orders", tags={"component": "function-host"}))
        assert not is_function_app(site("rg", "orders-api", kind="app"))

    def test_non_site_is_never_function_app(self):
        """Test non-site resources are never function apps."""
        resource = ResourceData(
            id=f"{SUBSCRIPTION}/resourceGroups/rg/providers/Microsoft.Sql/servers/func-db",
            name="func-db",
            type="Microsoft.Sql/servers",
        )
        assert not is_function_app(resource)


class TestProviderDiscovery:
    """Test discovery derived from resource groups."""

    @pytest.mark.asyncio
    async def test_mock_microservices(self):
        """Test discovering microservices from the demo estate."""
        provider = MockResourceProvider()

        microservices = await provider.discover_microservices()

        assert [ms.name for ms in microservices] == ["payment", "sessions"]
        payment = microservices[0]
        assert [r.name for r in payment.app_services] == ["payment-api"]
        assert [r.name for r in payment.function_apps] == ["payment-functions"]
        assert [r.name for r in payment.service_bus] == ["payment-bus"]
        assert [r.name for r in payment.databases] == ["payment-db"]
        assert payment.total_resource_count == 4

    @pytest.mark.asyncio
    async def test_groups_without_app_service_are_skipped(self):
        """Test groups without an App Service are skipped."""
        provider = MockResourceProvider(
            resource_groups=[
                ResourceGroupData(name="rg-jobs-dev", resources=[site("rg-jobs-dev", "jobs-func")]),
                ResourceGroupData(name="rg-orders-dev", resources=[site("rg-orders-dev", "orders-api")]),
            ]
        )

        microservices = await provider.discover_microservices()

        assert [ms.name for ms in microservices] == ["orders"]

    @pytest.mark.asyncio
    async def test_shared_resources(self):
        """Test collecting shared infrastructure resources."""
        provider = MockResourceProvider()

        shared = await provider.discover_shared_resources()

        assert {r.name for r in shared} == {"shared-bus", "shared-keyvault", "sharedstorage"}

    @pytest.mark.asyncio
    async def test_discovery_summary(self):
        """Test summary counts over the demo estate."""
        provider = MockResourceProvider()

        summary = await provider.discovery_summary()

        assert summary["subscription"]["totalResourceGroups"] == 3
        assert summary["subscription"]["totalResources"] == 11
        assert summary["microservices"]["count"] == 2
        assert summary["sharedInfrastructure"]["count"] == 3
        assert {"type": "Microsoft.Web/sites", "count": 4} in summary["resourceTypes"]

    @pytest.mark.asyncio
    async def test_mock_lookups_are_unknown(self):
        """Test the demo provider answers every lookup with unknown."""
        provider = MockResourceProvider()

        assert provider.subscription_id == MOCK_SUBSCRIPTION_ID
        assert await provider.test_connection() is False
        assert await provider.get_app_service_plan_sku("x") is None
        assert await provider.get_database_sku_tier("x") is None
        assert await provider.get_creation_date("x") is None
