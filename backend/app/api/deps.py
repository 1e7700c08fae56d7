"""Shared API dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.core.config import settings
from app.core.database import async_session_maker, get_db
from app.providers.azure import AzureResourceProvider
from app.providers.base import ResourceProviderBase
from app.providers.mock import MockResourceProvider
from app.services.energy_analysis import EnergyAnalysisService
from app.services.lookup_cache import ResourceLookupCache
from app.services.report_storage import DatabaseReportSink, ReportSink
from app.services.resource_classifier import ResourceClassifier
from app.services.utilization import HeuristicUtilizationEstimator, UtilizationEstimator

__all__ = [
    "get_analysis_service",
    "get_classifier",
    "get_db",
    "get_fallback_provider",
    "get_lookup_cache",
    "get_report_sink",
    "get_resource_provider",
    "get_utilization_estimator",
]


@lru_cache
def get_resource_provider() -> ResourceProviderBase:
    """
    Get the process-wide resource provider.

    Azure when a subscription is configured, otherwise the offline mock.
    """
    if settings.azure_enabled:
        return AzureResourceProvider(
            subscription_id=settings.AZURE_SUBSCRIPTION_ID,
            tenant_id=settings.AZURE_TENANT_ID or None,
            client_id=settings.AZURE_CLIENT_ID or None,
            client_secret=settings.AZURE_CLIENT_SECRET or None,
            auth_type=settings.AZURE_AUTH_TYPE,
        )
    return MockResourceProvider()


@lru_cache
def get_fallback_provider() -> ResourceProviderBase:
    """Provider whose data backs discovery listings when the real one fails."""
    return MockResourceProvider()


@lru_cache
def get_lookup_cache() -> ResourceLookupCache:
    return ResourceLookupCache()


def get_classifier(
    provider: Annotated[ResourceProviderBase, Depends(get_resource_provider)],
    cache: Annotated[ResourceLookupCache, Depends(get_lookup_cache)],
) -> ResourceClassifier:
    return ResourceClassifier(provider, cache)


def get_utilization_estimator() -> UtilizationEstimator:
    return HeuristicUtilizationEstimator()


def get_analysis_service(
    provider: Annotated[ResourceProviderBase, Depends(get_resource_provider)],
    classifier: Annotated[ResourceClassifier, Depends(get_classifier)],
    estimator: Annotated[UtilizationEstimator, Depends(get_utilization_estimator)],
) -> EnergyAnalysisService:
    return EnergyAnalysisService(
        provider=provider,
        classifier=classifier,
        utilization_estimator=estimator,
    )


def get_report_sink() -> ReportSink:
    return DatabaseReportSink(async_session_maker)
