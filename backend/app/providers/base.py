"""Base abstract class for cloud resource-manager collaborators."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import structlog

logger = structlog.get_logger()

# Name fragments that mark a web site as a function app
FUNCTION_APP_KEYWORDS = ("func", "function", "worker", "processor", "handler", "trigger")

# Background-processing fragments that usually mean a function app too
PROCESSING_KEYWORDS = ("temp", "process", "batch", "job", "queue", "event")

# Resource group name fragments that mark shared infrastructure
SHARED_GROUP_INDICATORS = (
    "shared",
    "common",
    "infrastructure",
    "infra",
    "network",
    "networking",
    "security",
    "monitoring",
    "logs",
    "insights",
    "management",
    "ops",
)

ENVIRONMENT_SUFFIXES = ("dev", "test", "staging", "prod", "production", "qa", "uat")

# Resource types that belong to a microservice's own resource group
MICROSERVICE_RESOURCE_TYPES = frozenset(
    {
        "microsoft.web/sites",
        "microsoft.web/serverfarms",
        "microsoft.servicebus/namespaces",
        "microsoft.sql/servers",
        "microsoft.documentdb/databaseaccounts",
        "microsoft.storage/storageaccounts",
        "microsoft.cache/redis",
        "microsoft.keyvault/vaults",
    }
)

# Resource types that are shared infrastructure wherever they live
SHARED_RESOURCE_TYPES = frozenset(
    {
        "microsoft.network/virtualnetworks",
        "microsoft.network/networksecuritygroups",
        "microsoft.network/publicipaddresses",
        "microsoft.network/loadbalancers",
        "microsoft.insights/components",
        "microsoft.appconfiguration/configurationstores",
        "microsoft.containerregistry/registries",
        "microsoft.operationalinsights/workspaces",
    }
)

DATABASE_RESOURCE_TYPES = frozenset(
    {
        "microsoft.sql/servers",
        "microsoft.documentdb/databaseaccounts",
    }
)


class ResourceLookupError(Exception):
    """A single-resource query (SKU, creation date) against the cloud API failed."""

    pass


class DiscoveryError(Exception):
    """Listing resources or resource groups from the cloud API failed."""

    pass


class ResourceData:
    """Data class for a discovered cloud resource."""

    def __init__(
        self,
        id: str,
        name: str,
        type: str,
        resource_group_name: str = "",
        location: str = "",
        tags: dict[str, str] | None = None,
        kind: str | None = None,
    ) -> None:
        """
        Initialize resource data.

        Args:
            id: Full resource identifier (/subscriptions/{sub}/resourceGroups/{rg}/providers/...)
            name: Resource name (last identifier segment)
            type: Resource type (e.g., 'Microsoft.Web/sites')
            resource_group_name: Owning resource group
            location: Region display name
            tags: Resource tags
            kind: Resource kind when the provider reports one (e.g., 'functionapp')
        """
        self.id = id
        self.name = name
        self.type = type
        self.resource_group_name = resource_group_name or extract_resource_group(id)
        self.location = location
        self.tags = tags or {}
        self.kind = kind

    def __repr__(self) -> str:
        return f"<ResourceData {self.type}:{self.name}>"


class ResourceGroupData:
    """A resource group together with the resources it holds."""

    def __init__(
        self,
        name: str,
        location: str = "",
        tags: dict[str, str] | None = None,
        resources: list[ResourceData] | None = None,
    ) -> None:
        self.name = name
        self.location = location
        self.tags = tags or {}
        self.resources = resources or []


class MicroserviceData:
    """Resources of one discovered microservice, bucketed by role."""

    def __init__(self, name: str, resource_group_name: str) -> None:
        self.name = name
        self.resource_group_name = resource_group_name
        self.app_services: list[ResourceData] = []
        self.function_apps: list[ResourceData] = []
        self.service_bus: list[ResourceData] = []
        self.databases: list[ResourceData] = []
        self.storage_accounts: list[ResourceData] = []
        self.other: list[ResourceData] = []

    @property
    def total_resource_count(self) -> int:
        return (
            len(self.app_services)
            + len(self.function_apps)
            + len(self.service_bus)
            + len(self.databases)
            + len(self.storage_accounts)
            + len(self.other)
        )

    def add(self, resource: ResourceData) -> None:
        """Put a resource into the bucket matching its type."""
        resource_type = resource.type.lower()
        if resource_type == "microsoft.web/sites":
            if is_function_app(resource):
                self.function_apps.append(resource)
            else:
                self.app_services.append(resource)
        elif resource_type == "microsoft.servicebus/namespaces":
            self.service_bus.append(resource)
        elif resource_type in DATABASE_RESOURCE_TYPES:
            self.databases.append(resource)
        elif resource_type == "microsoft.storage/storageaccounts":
            self.storage_accounts.append(resource)
        else:
            self.other.append(resource)


def extract_resource_group(resource_id: str) -> str:
    """Return the resource group segment of a resource ID ('Unknown' if absent)."""
    parts = resource_id.split("/")
    lowered = [part.lower() for part in parts]
    try:
        rg_index = lowered.index("resourcegroups")
    except ValueError:
        return "Unknown"
    if rg_index + 1 < len(parts) and parts[rg_index + 1]:
        return parts[rg_index + 1]
    return "Unknown"


def name_suggests_function_app(name: str) -> bool:
    """Check a site name against the function app and background-processing keywords."""
    lowered = name.lower()
    return any(keyword in lowered for keyword in FUNCTION_APP_KEYWORDS + PROCESSING_KEYWORDS)


def is_function_app(resource: ResourceData) -> bool:
    """
    Decide whether a Microsoft.Web/sites resource is a function app.

    Checks, in order: the reported kind, naming keywords, then tags whose key
    or value mentions function or worker.
    """
    if resource.type.lower() != "microsoft.web/sites":
        return False

    if resource.kind and "functionapp" in resource.kind.lower():
        return True

    if name_suggests_function_app(resource.name):
        return True

    for key, value in resource.tags.items():
        key, value = key.lower(), (value or "").lower()
        if "function" in key or "worker" in key or "function" in value or "worker" in value:
            return True

    return False


def is_shared_infrastructure_group(resource_group_name: str) -> bool:
    name = resource_group_name.lower()
    return any(indicator in name for indicator in SHARED_GROUP_INDICATORS)


def extract_microservice_name(resource_group_name: str) -> str:
    """
    Extract a microservice name from its resource group name.

    Handles patterns like 'myapp-dev-payments', 'rg-payments-dev' and
    'payments-resourcegroup'.
    """
    clean_name = (
        resource_group_name.lower()
        .replace("rg-", "")
        .replace("-rg", "")
        .replace("resourcegroup", "")
        .replace("resource-group", "")
    )

    parts = [part for part in clean_name.replace("_", "-").split("-") if part]
    service_parts = [part for part in parts if part not in ENVIRONMENT_SUFFIXES]

    return service_parts[-1] if service_parts else resource_group_name


class ResourceProviderBase(ABC):
    """
    Abstract base class for resource-manager collaborators.

    Subclasses answer single-resource questions (plan SKU, database tier,
    creation date) and list the subscription's resources. Microservice and
    shared-resource discovery are derived here from those listings so every
    provider groups resources the same way.
    """

    subscription_id: str = ""
    # True for providers that serve a built-in sample estate instead of a real subscription
    serves_demo_data: bool = False

    @abstractmethod
    async def test_connection(self) -> bool:
        """Return True when the subscription can be reached."""

    @abstractmethod
    async def list_resources(self) -> list[ResourceData]:
        """
        List every resource in the subscription.

        Raises:
            DiscoveryError: If the listing fails
        """

    @abstractmethod
    async def list_resource_groups(self) -> list[ResourceGroupData]:
        """
        List resource groups with their resources.

        Raises:
            DiscoveryError: If the listing fails
        """

    @abstractmethod
    async def get_app_service_plan_sku(self, resource_id: str) -> str | None:
        """
        Get the SKU name (e.g. 'B1', 'P1v3') of the plan hosting a web site.

        Returns:
            SKU name, or None when the plan or its SKU cannot be found

        Raises:
            ResourceLookupError: If the query itself fails
        """

    @abstractmethod
    async def get_database_sku_tier(self, resource_id: str) -> str | None:
        """
        Get the SKU tier ('Basic', 'Standard', 'Premium', ...) of a database.

        Raises:
            ResourceLookupError: If the query itself fails
        """

    @abstractmethod
    async def get_creation_date(self, resource_id: str) -> datetime | None:
        """
        Get the creation timestamp (UTC) of a resource.

        Raises:
            ResourceLookupError: If the query itself fails
        """

    async def discover_microservices(self) -> list[MicroserviceData]:
        """
        Derive microservices from resource groups.

        A resource group qualifies when it is not shared infrastructure and
        holds at least one web site that is not a function app.

        Returns:
            Microservices with their resources bucketed by role
        """
        microservices: list[MicroserviceData] = []

        for resource_group in await self.list_resource_groups():
            if is_shared_infrastructure_group(resource_group.name):
                continue

            has_app_service = any(
                r.type.lower() == "microsoft.web/sites" and not is_function_app(r)
                for r in resource_group.resources
            )
            if not has_app_service:
                logger.debug("discovery.group_skipped", resource_group=resource_group.name)
                continue

            microservice = MicroserviceData(
                name=extract_microservice_name(resource_group.name),
                resource_group_name=resource_group.name,
            )
            for resource in resource_group.resources:
                if resource.type.lower() in MICROSERVICE_RESOURCE_TYPES:
                    microservice.add(resource)

            microservices.append(microservice)
            logger.info(
                "discovery.microservice_qualified",
                microservice=microservice.name,
                resource_group=resource_group.name,
                app_services=len(microservice.app_services),
            )

        return microservices

    async def discover_shared_resources(self) -> list[ResourceData]:
        """List resources of shared types or living in shared resource groups."""
        resources = await self.list_resources()
        shared = [
            r
            for r in resources
            if r.type.lower() in SHARED_RESOURCE_TYPES
            or is_shared_infrastructure_group(r.resource_group_name)
        ]
        logger.info("discovery.shared_resources", count=len(shared))
        return shared

    async def discovery_summary(self) -> dict[str, Any]:
        """Summarize the subscription by microservice, shared infra and resource type."""
        microservices = await self.discover_microservices()
        shared_resources = await self.discover_shared_resources()
        resource_groups = await self.list_resource_groups()

        all_resources = [r for rg in resource_groups for r in rg.resources]

        shared_by_type: dict[str, int] = {}
        for resource in shared_resources:
            shared_by_type[resource.type] = shared_by_type.get(resource.type, 0) + 1

        type_counts: dict[str, int] = {}
        for resource in all_resources:
            type_counts[resource.type] = type_counts.get(resource.type, 0) + 1

        services = sorted(
            (
                {
                    "name": ms.name,
                    "resourceGroup": ms.resource_group_name,
                    "resourceCount": ms.total_resource_count,
                    "breakdown": {
                        "appServices": len(ms.app_services),
                        "functionApps": len(ms.function_apps),
                        "databases": len(ms.databases),
                        "serviceBus": len(ms.service_bus),
                        "storage": len(ms.storage_accounts),
                        "other": len(ms.other),
                    },
                }
                for ms in microservices
            ),
            key=lambda s: s["resourceCount"],
            reverse=True,
        )

        return {
            "subscription": {
                "totalResourceGroups": len(resource_groups),
                "totalResources": len(all_resources),
                "locations": sorted({rg.location for rg in resource_groups if rg.location}),
            },
            "microservices": {
                "count": len(microservices),
                "totalResources": sum(ms.total_resource_count for ms in microservices),
                "services": services,
            },
            "sharedInfrastructure": {
                "count": len(shared_resources),
                "byType": [
                    {"type": t, "count": c}
                    for t, c in sorted(shared_by_type.items(), key=lambda kv: kv[1], reverse=True)
                ],
            },
            "resourceTypes": [
                {"type": t, "count": c}
                for t, c in sorted(type_counts.items(), key=lambda kv: kv[1], reverse=True)[:10]
            ],
        }
