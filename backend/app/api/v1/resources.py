"""Resource discovery API endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_fallback_provider, get_resource_provider
from app.providers.base import DiscoveryError, ResourceProviderBase
from app.providers.mock import DEMO_DATA_WARNING
from app.schemas.resource import (
    ConnectionTestResponse,
    DiscoverySummaryResponse,
    MicroserviceInfo,
    MicroservicesResponse,
    ResourceGroupInfo,
    ResourceGroupsResponse,
    ResourceInfo,
    ResourcesByTypeResponse,
    SharedResourcesResponse,
)

logger = structlog.get_logger()

router = APIRouter()

Provider = Annotated[ResourceProviderBase, Depends(get_resource_provider)]
FallbackProvider = Annotated[ResourceProviderBase, Depends(get_fallback_provider)]


def _source_flags(provider: ResourceProviderBase) -> dict:
    """usedMockData/warning for listings served straight from a provider."""
    if provider.serves_demo_data:
        return {"used_mock_data": True, "warning": DEMO_DATA_WARNING}
    return {"used_mock_data": False, "warning": None}


def _discovery_unavailable(e: DiscoveryError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Resource discovery unavailable: {e}",
    )


@router.get("/test-connection", response_model=ConnectionTestResponse)
async def test_connection(provider: Provider) -> ConnectionTestResponse:
    """Check that the configured subscription can be reached."""
    connected = await provider.test_connection()
    return ConnectionTestResponse(
        connected=connected,
        subscription_id=provider.subscription_id or None,
        message="Connected to Azure subscription" if connected else "Azure subscription not reachable",
    )


@router.get("", response_model=ResourcesByTypeResponse)
async def list_resources(provider: Provider) -> ResourcesByTypeResponse:
    """List every resource of the subscription grouped by resource type."""
    try:
        resources = await provider.list_resources()
    except DiscoveryError as e:
        raise _discovery_unavailable(e)

    by_type: dict[str, list[ResourceInfo]] = {}
    for resource in resources:
        by_type.setdefault(resource.type, []).append(ResourceInfo.model_validate(resource))

    return ResourcesByTypeResponse(
        total_resources=len(resources),
        resource_types=len(by_type),
        resources_by_type=by_type,
        **_source_flags(provider),
    )


@router.get("/resource-groups", response_model=ResourceGroupsResponse)
async def list_resource_groups(provider: Provider) -> ResourceGroupsResponse:
    """List resource groups with their resources."""
    try:
        groups = await provider.list_resource_groups()
    except DiscoveryError as e:
        raise _discovery_unavailable(e)

    return ResourceGroupsResponse(
        count=len(groups),
        resource_groups=[ResourceGroupInfo.model_validate(g) for g in groups],
        **_source_flags(provider),
    )


@router.get("/microservices", response_model=MicroservicesResponse)
async def discover_microservices(
    provider: Provider,
    fallback: FallbackProvider,
) -> MicroservicesResponse:
    """
    Discover microservices from resource groups.

    Falls back to demo data (flagged with usedMockData) when discovery fails.
    """
    flags = _source_flags(provider)
    try:
        microservices = await provider.discover_microservices()
    except DiscoveryError as e:
        logger.warning("resources.microservices_fallback", error=str(e))
        microservices = await fallback.discover_microservices()
        flags = {"used_mock_data": True, "warning": f"Azure discovery failed, showing demo data: {e}"}

    return MicroservicesResponse(
        count=len(microservices),
        microservices=[MicroserviceInfo.model_validate(ms) for ms in microservices],
        **flags,
    )


@router.get("/shared", response_model=SharedResourcesResponse)
async def discover_shared_resources(
    provider: Provider,
    fallback: FallbackProvider,
) -> SharedResourcesResponse:
    """
    Discover shared infrastructure resources.

    Falls back to demo data (flagged with usedMockData) when discovery fails.
    """
    flags = _source_flags(provider)
    try:
        resources = await provider.discover_shared_resources()
    except DiscoveryError as e:
        logger.warning("resources.shared_fallback", error=str(e))
        resources = await fallback.discover_shared_resources()
        flags = {"used_mock_data": True, "warning": f"Azure discovery failed, showing demo data: {e}"}

    return SharedResourcesResponse(
        count=len(resources),
        resources=[ResourceInfo.model_validate(r) for r in resources],
        **flags,
    )


@router.get("/summary", response_model=DiscoverySummaryResponse)
async def discovery_summary(provider: Provider) -> DiscoverySummaryResponse:
    """Summarize microservices, shared infrastructure and resource types."""
    try:
        summary = await provider.discovery_summary()
    except DiscoveryError as e:
        raise _discovery_unavailable(e)

    return DiscoverySummaryResponse.model_validate({**summary, **_source_flags(provider)})
