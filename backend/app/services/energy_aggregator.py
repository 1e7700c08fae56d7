"""Aggregation of per-resource energy into microservice and platform totals."""

import asyncio
from typing import NamedTuple, Sequence

import structlog

from app.providers.base import ResourceData
from app.schemas.energy import MicroserviceResources
from app.services.energy_calculator import (
    AnalysisWindow,
    compute_energy_kwh,
    compute_shared_energy_kwh,
    effective_days,
    shared_profile,
)
from app.services.energy_profiles import KEY_VAULT_KWH_PER_DAY, SUBSCRIPTION_KWH_PER_DAY
from app.services.resource_classifier import (
    ResourceCategory,
    ResourceClassifier,
    friendly_name,
    match_category,
)

logger = structlog.get_logger()


class LabelledEnergy(NamedTuple):
    label: str
    kwh: float


class MicroserviceEnergy(NamedTuple):
    """Independent partial result for one microservice."""

    name: str
    entries: list[LabelledEnergy]
    resource_count: int

    @property
    def subtotal(self) -> float:
        return sum(entry.kwh for entry in self.entries)


class EnergyBreakdown:
    """
    Folded result of an aggregation.

    ``details`` values are rounded to 2 decimals on insertion; ``total_kwh``
    keeps the unrounded sum so rounding errors do not compound.
    """

    def __init__(self) -> None:
        self.details: dict[str, float] = {}
        self.subtotals: dict[str, float] = {}
        self.total_kwh = 0.0
        self.resources_analyzed = 0

    @property
    def rounded_total(self) -> float:
        return round(self.total_kwh, 2)

    def add(self, label: str, kwh: float) -> str:
        """Insert a labelled value (suffixing duplicate labels) and add it to the total."""
        unique = label
        suffix = 2
        while unique in self.details:
            unique = f"{label}_{suffix}"
            suffix += 1

        self.details[unique] = round(kwh, 2)
        self.total_kwh += kwh
        return unique

    def merge(self, partial: MicroserviceEnergy) -> None:
        for entry in partial.entries:
            self.add(entry.label, entry.kwh)
        self.subtotals[partial.name] = self.subtotals.get(partial.name, 0.0) + partial.subtotal
        self.resources_analyzed += partial.resource_count


class EnergyAggregator:
    """Computes per-resource energy through the classifier and folds the results."""

    def __init__(self, classifier: ResourceClassifier):
        self.classifier = classifier

    async def _resource_kwh(
        self,
        resource_id: str,
        category: ResourceCategory,
        window: AnalysisWindow,
        utilization_factor: float,
    ) -> float:
        tier = None
        if category in (ResourceCategory.APP_SERVICE, ResourceCategory.DATABASE):
            tier = await self.classifier.resolve_tier(resource_id, category)

        created = await self.classifier.resolve_creation_date(resource_id)
        days = effective_days(window, created)

        kwh = compute_energy_kwh(category, tier, days, utilization_factor)
        logger.info(
            "energy.resource_calculated",
            resource_id=resource_id,
            category=category.value,
            tier=tier,
            effective_days=round(days, 3),
            kwh=round(kwh, 4),
        )
        return kwh

    async def microservice_energy(
        self,
        microservice: MicroserviceResources,
        window: AnalysisWindow,
        utilization_factor: float,
    ) -> MicroserviceEnergy:
        """
        Compute one microservice's labelled contributions.

        Each role list becomes one ``{name}_{Category}`` entry summing its
        resources; empty lists contribute no entry.
        """
        roles: list[tuple[ResourceCategory, list[str]]] = [
            (
                ResourceCategory.APP_SERVICE,
                [microservice.app_service_resource_id] if microservice.app_service_resource_id else [],
            ),
            (ResourceCategory.FUNCTION_APP, microservice.function_app_resource_ids),
            (ResourceCategory.SERVICE_BUS, microservice.service_bus_resource_ids),
            (ResourceCategory.DATABASE, microservice.database_resource_ids),
        ]

        entries: list[LabelledEnergy] = []
        resource_count = 0
        for category, resource_ids in roles:
            if not resource_ids:
                continue
            values = await asyncio.gather(
                *(
                    self._resource_kwh(resource_id, category, window, utilization_factor)
                    for resource_id in resource_ids
                )
            )
            entries.append(LabelledEnergy(f"{microservice.name}_{category.value}", sum(values)))
            resource_count += len(resource_ids)

        return MicroserviceEnergy(microservice.name, entries, resource_count)

    async def shared_resource_energy(
        self,
        resource_id: str,
        window: AnalysisWindow,
        utilization_factor: float,
    ) -> LabelledEnergy:
        """Energy of a shared resource, labelled ``Shared_{profile}_{friendly name}``."""
        category, tier = match_category(resource_id)
        profile = shared_profile(category, tier)

        created = await self.classifier.resolve_creation_date(resource_id)
        kwh = compute_shared_energy_kwh(
            category, tier, effective_days(window, created), utilization_factor
        )
        logger.info(
            "energy.shared_resource_calculated",
            resource_id=resource_id,
            profile=profile,
            kwh=round(kwh, 4),
        )
        return LabelledEnergy(f"Shared_{profile}_{friendly_name(resource_id)}", kwh)

    async def aggregate(
        self,
        microservices: Sequence[MicroserviceResources],
        shared_resource_ids: Sequence[str],
        window: AnalysisWindow,
        utilization_percentage: float,
    ) -> EnergyBreakdown:
        """
        Aggregate microservices and shared resources into one breakdown.

        Microservices are computed concurrently as independent partial results
        and folded sequentially afterwards.

        Args:
            microservices: Microservices with an App Service reference
            shared_resource_ids: Shared resource identifiers
            window: Analysis window
            utilization_percentage: Utilization in percent

        Returns:
            EnergyBreakdown (zero-valued for empty input)
        """
        utilization_factor = utilization_percentage / 100.0

        partials = await asyncio.gather(
            *(self.microservice_energy(ms, window, utilization_factor) for ms in microservices)
        )
        shared = await asyncio.gather(
            *(
                self.shared_resource_energy(resource_id, window, utilization_factor)
                for resource_id in shared_resource_ids
            )
        )

        breakdown = EnergyBreakdown()
        for partial in partials:
            breakdown.merge(partial)
            logger.info(
                "energy.microservice_calculated",
                microservice=partial.name,
                subtotal_kwh=round(partial.subtotal, 4),
            )
        for entry in shared:
            breakdown.add(entry.label, entry.kwh)
        breakdown.resources_analyzed += len(shared)

        return breakdown


def analyze_subscription(
    resources: Sequence[ResourceData],
    window: AnalysisWindow,
    utilization_percentage: float,
) -> EnergyBreakdown:
    """
    Coarse subscription-wide estimate over every discovered resource.

    Uses per-type kWh-per-day constants instead of tier resolution: web
    sites, storage accounts and Service Bus namespaces each get an entry;
    key vaults are summed under ``KeyVaults_Total``; other types are ignored.
    """
    utilization_factor = utilization_percentage / 100.0
    days = window.elapsed_days
    breakdown = EnergyBreakdown()
    key_vaults = 0

    for resource in resources:
        category = match_category(resource.id, type_hint=resource.type).category
        resource_type = resource.type.lower()

        if resource_type == "microsoft.web/sites":
            label = "AppService"
        elif category == ResourceCategory.STORAGE:
            label = "Storage"
        elif category == ResourceCategory.SERVICE_BUS:
            label = "ServiceBus"
        elif category == ResourceCategory.KEY_VAULT:
            key_vaults += 1
            continue
        else:
            continue

        kwh = SUBSCRIPTION_KWH_PER_DAY[label] * days * utilization_factor
        breakdown.add(f"{label}_{resource.name}", kwh)
        breakdown.resources_analyzed += 1

    if key_vaults:
        breakdown.add("KeyVaults_Total", key_vaults * KEY_VAULT_KWH_PER_DAY * days)
        breakdown.resources_analyzed += key_vaults

    logger.info(
        "energy.subscription_calculated",
        resources=len(resources),
        analyzed=breakdown.resources_analyzed,
        total_kwh=round(breakdown.total_kwh, 4),
    )
    return breakdown
