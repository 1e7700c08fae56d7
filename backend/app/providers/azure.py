"""Azure resource-manager provider implementation."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

import structlog
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceNotFoundError,
)
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.resource import ResourceManagementClient

from app.providers.base import (
    DiscoveryError,
    ResourceData,
    ResourceGroupData,
    ResourceLookupError,
    ResourceProviderBase,
    extract_resource_group,
)

logger = structlog.get_logger()

T = TypeVar("T")

# Property names that hold a creation timestamp, checked in order
CREATION_DATE_PROPERTIES = (
    "createdTime",
    "creationTime",
    "created",
    "timeCreated",
    "provisioningTime",
)

FALLBACK_API_VERSIONS = {
    "microsoft.web": "2022-03-01",
    "microsoft.sql": "2021-11-01",
    "microsoft.documentdb": "2023-04-15",
}
DEFAULT_API_VERSION = "2021-04-01"


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_resource_data(resource: Any) -> ResourceData:
    return ResourceData(
        id=resource.id,
        name=resource.name,
        type=resource.type,
        resource_group_name=extract_resource_group(resource.id),
        location=resource.location or "",
        tags=dict(resource.tags or {}),
        kind=getattr(resource, "kind", None),
    )


class AzureResourceProvider(ResourceProviderBase):
    """
    Azure resource-manager collaborator.

    Authenticates with a service principal when tenant, client ID and secret
    are configured and ``auth_type`` is 'ServicePrincipal'; otherwise uses the
    DefaultAzureCredential chain (environment, managed identity, CLI).
    The management SDK is synchronous, so calls run in the default executor.
    """

    def __init__(
        self,
        subscription_id: str,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        auth_type: str = "DefaultAzureCredential",
    ) -> None:
        """
        Initialize Azure provider client.

        Args:
            subscription_id: Azure Subscription ID
            tenant_id: Azure AD Tenant ID (service principal auth)
            client_id: Service Principal Application/Client ID
            client_secret: Service Principal Client Secret
            auth_type: 'ServicePrincipal' or 'DefaultAzureCredential'
        """
        self.subscription_id = subscription_id
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_type = auth_type
        self._credential = None
        self._resource_client: ResourceManagementClient | None = None
        self._api_versions: dict[str, str] = {}

    def _build_credential(self):
        if (
            self.auth_type == "ServicePrincipal"
            and self.tenant_id
            and self.client_id
            and self.client_secret
        ):
            logger.info("azure.credential", type="ServicePrincipal", tenant_id=self.tenant_id)
            return ClientSecretCredential(
                tenant_id=self.tenant_id,
                client_id=self.client_id,
                client_secret=self.client_secret,
            )

        logger.info("azure.credential", type="DefaultAzureCredential")
        return DefaultAzureCredential()

    @property
    def resource_client(self) -> ResourceManagementClient:
        if self._resource_client is None:
            self._credential = self._build_credential()
            self._resource_client = ResourceManagementClient(
                credential=self._credential,
                subscription_id=self.subscription_id,
            )
        return self._resource_client

    async def _run(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def test_connection(self) -> bool:
        try:
            await self._run(lambda: next(iter(self.resource_client.resource_groups.list()), None))
            logger.info("azure.connection_ok", subscription_id=self.subscription_id)
            return True
        except ClientAuthenticationError as e:
            logger.warning("azure.connection_auth_failed", error=str(e))
            return False
        except AzureError as e:
            logger.warning("azure.connection_failed", error=str(e))
            return False

    async def list_resources(self) -> list[ResourceData]:
        try:
            resources = await self._run(
                lambda: list(self.resource_client.resources.list(expand="createdTime"))
            )
        except AzureError as e:
            logger.warning("azure.list_resources_failed", error=str(e))
            raise DiscoveryError(f"Failed to list resources: {e}") from e

        logger.info("azure.resources_listed", count=len(resources))
        return [_to_resource_data(r) for r in resources]

    async def list_resource_groups(self) -> list[ResourceGroupData]:
        def _collect() -> list[ResourceGroupData]:
            groups = []
            for group in self.resource_client.resource_groups.list():
                resources = self.resource_client.resources.list_by_resource_group(
                    group.name, expand="createdTime"
                )
                groups.append(
                    ResourceGroupData(
                        name=group.name,
                        location=group.location or "",
                        tags=dict(group.tags or {}),
                        resources=[_to_resource_data(r) for r in resources],
                    )
                )
            return groups

        try:
            groups = await self._run(_collect)
        except AzureError as e:
            logger.warning("azure.list_resource_groups_failed", error=str(e))
            raise DiscoveryError(f"Failed to list resource groups: {e}") from e

        logger.info("azure.resource_groups_listed", count=len(groups))
        return groups

    def _resolve_api_version(self, resource_id: str) -> str:
        """Pick the newest stable api-version for the identifier's resource type."""
        parts = [p for p in resource_id.split("/") if p]
        lowered = [p.lower() for p in parts]
        if "providers" not in lowered:
            return DEFAULT_API_VERSION

        index = len(lowered) - 1 - lowered[::-1].index("providers")
        namespace = parts[index + 1] if index + 1 < len(parts) else ""
        type_segments = parts[index + 2 :: 2]
        resource_type = "/".join(type_segments)
        cache_key = f"{namespace}/{resource_type}".lower()

        if cache_key in self._api_versions:
            return self._api_versions[cache_key]

        version = FALLBACK_API_VERSIONS.get(namespace.lower(), DEFAULT_API_VERSION)
        try:
            provider = self.resource_client.providers.get(namespace)
            for provider_type in provider.resource_types or []:
                if (provider_type.resource_type or "").lower() == resource_type.lower():
                    stable = [
                        v for v in provider_type.api_versions or [] if "preview" not in v.lower()
                    ]
                    if stable:
                        version = sorted(stable)[-1]
                    break
        except AzureError as e:
            logger.debug("azure.api_version_lookup_failed", namespace=namespace, error=str(e))

        self._api_versions[cache_key] = version
        return version

    def _get_by_id(self, resource_id: str):
        return self.resource_client.resources.get_by_id(
            resource_id, self._resolve_api_version(resource_id)
        )

    async def get_app_service_plan_sku(self, resource_id: str) -> str | None:
        def _lookup() -> str | None:
            resource = self._get_by_id(resource_id)
            if (resource.type or "").lower() != "microsoft.web/serverfarms":
                plan_id = (resource.properties or {}).get("serverFarmId")
                if not plan_id:
                    return None
                resource = self._get_by_id(plan_id)
            return resource.sku.name if resource.sku else None

        try:
            sku = await self._run(_lookup)
        except ResourceNotFoundError:
            logger.info("azure.plan_not_found", resource_id=resource_id)
            return None
        except AzureError as e:
            raise ResourceLookupError(f"SKU lookup failed for {resource_id}: {e}") from e

        logger.debug("azure.plan_sku", resource_id=resource_id, sku=sku)
        return sku

    async def get_database_sku_tier(self, resource_id: str) -> str | None:
        def _lookup() -> str | None:
            resource = self._get_by_id(resource_id)
            if resource.sku and resource.sku.tier:
                return resource.sku.tier
            current_sku = (resource.properties or {}).get("currentSku") or {}
            return current_sku.get("tier")

        try:
            return await self._run(_lookup)
        except ResourceNotFoundError:
            logger.info("azure.database_not_found", resource_id=resource_id)
            return None
        except AzureError as e:
            raise ResourceLookupError(f"Database tier lookup failed for {resource_id}: {e}") from e

    async def get_creation_date(self, resource_id: str) -> datetime | None:
        def _lookup() -> datetime | None:
            resource = self._get_by_id(resource_id)
            properties = resource.properties or {}
            for name in CREATION_DATE_PROPERTIES:
                created = _parse_timestamp(properties.get(name))
                if created:
                    return created

            system_data = getattr(resource, "system_data", None)
            if system_data is not None and system_data.created_at:
                return _parse_timestamp(system_data.created_at)

            # The expanded listing reports createdTime for every resource type
            resource_group = extract_resource_group(resource_id)
            name = resource_id.rstrip("/").split("/")[-1]
            matches = self.resource_client.resources.list_by_resource_group(
                resource_group, filter=f"name eq '{name}'", expand="createdTime"
            )
            for match in matches:
                if match.id.lower() == resource_id.lower():
                    return _parse_timestamp(getattr(match, "created_time", None))
            return None

        try:
            created = await self._run(_lookup)
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            raise ResourceLookupError(f"Creation date lookup failed for {resource_id}: {e}") from e

        logger.debug("azure.creation_date", resource_id=resource_id, created=created)
        return created
