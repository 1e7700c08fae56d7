"""Energy analysis orchestration: request -> classified, aggregated, projected report."""

import time
from datetime import datetime

import structlog

from app.core.config import settings
from app.providers.base import DiscoveryError, ResourceProviderBase
from app.providers.mock import DEMO_DATA_WARNING
from app.schemas.energy import (
    EnergyReportCreate,
    EnergyReportData,
    PerformanceMetrics,
    InfrastructureAnalysisRequest,
    InfrastructureAnalysisResponse,
    PlatformAnalysisRequest,
    PlatformAnalysisResponse,
    VirtualMachineEstimate,
)
from app.services.energy_aggregator import EnergyAggregator, EnergyBreakdown, analyze_subscription
from app.services.energy_calculator import AnalysisWindow
from app.services.energy_profiles import get_grid_intensity
from app.services.report_assembler import (
    assemble_report,
    build_recommendations,
    build_subscription_recommendations,
)
from app.services.report_storage import build_report_record, new_report_keys
from app.services.resource_classifier import ResourceClassifier
from app.services.terraform_analyzer import estimate_vm_energy, extract_virtual_machines
from app.services.trend_projector import project_trends
from app.services.utilization import HeuristicUtilizationEstimator, UtilizationEstimator

logger = structlog.get_logger()

PLATFORM_NOTE = "Estimated from nominal power draw per resource tier; not a metered value."
SUBSCRIPTION_NOTE = (
    "Direct subscription analysis with coarse per-type constants; "
    "all discoverable resources included."
)
INFRASTRUCTURE_WINDOW_DAYS = 1


class EnergyAnalysisService:
    """
    Runs a platform analysis.

    Classification lookups go through the provider; everything after them
    is pure computation. Persistence is left to the caller, which receives
    the row to store next to the response.
    """

    def __init__(
        self,
        provider: ResourceProviderBase | None,
        classifier: ResourceClassifier,
        utilization_estimator: UtilizationEstimator | None = None,
        region: str | None = None,
        default_days: int | None = None,
        subscription_utilization: float | None = None,
    ):
        self.provider = provider
        self.classifier = classifier
        self.aggregator = EnergyAggregator(classifier)
        self.utilization_estimator = utilization_estimator or HeuristicUtilizationEstimator()
        self.region = region or settings.CARBON_REGION
        self.default_days = default_days or settings.DEFAULT_ANALYSIS_DAYS
        self.subscription_utilization = (
            subscription_utilization
            if subscription_utilization is not None
            else settings.SUBSCRIPTION_ANALYSIS_UTILIZATION
        )

    async def analyze_platform(
        self, request: PlatformAnalysisRequest, now: datetime | None = None
    ) -> tuple[PlatformAnalysisResponse, EnergyReportCreate]:
        """
        Analyze the microservices and shared resources of a request.

        When ``analyze_all_resources`` is set and no microservice has an App
        Service, the whole subscription is analyzed with coarse constants
        instead. If discovery fails in that mode, the report is built from
        the request lists and carries a warning.

        Args:
            request: Analysis request
            now: Reference time for defaulted window bounds and report keys

        Returns:
            Tuple of (response payload, row to persist)
        """
        started = time.perf_counter()
        window = AnalysisWindow.from_bounds(
            request.start_time, request.end_time, self.default_days, now=now
        )
        region = request.region or self.region

        microservices = [ms for ms in request.microservices if ms.app_service_resource_id]
        skipped = len(request.microservices) - len(microservices)
        if skipped:
            logger.info("analysis.microservices_skipped", count=skipped, reason="no_app_service")

        logger.info(
            "analysis.started",
            elapsed_days=round(window.elapsed_days, 3),
            microservices=len(microservices),
            shared_resources=len(request.shared_resource_ids),
            analyze_all=request.analyze_all_resources,
            region=region,
        )

        warning = None
        if request.analyze_all_resources and not microservices:
            try:
                return await self._analyze_subscription(window, region, started, now)
            except DiscoveryError as e:
                logger.warning("analysis.discovery_failed", error=str(e))
                warning = (
                    "Subscription discovery failed; the report covers only the resources "
                    f"supplied in the request ({e})"
                )

        if request.utilization_percentage is not None:
            utilization = request.utilization_percentage
        else:
            utilization = self.utilization_estimator.estimate(microservices)

        breakdown = await self.aggregator.aggregate(
            microservices, request.shared_resource_ids, window, utilization
        )
        names = [ms.name for ms in microservices]
        # Trend lines cover every requested microservice, resolved or not
        trend_names = [ms.name for ms in request.microservices]

        energy_report = self._energy_report(
            breakdown,
            window,
            region,
            utilization,
            resource_type="Platform",
            resource_name=", ".join(dict.fromkeys(names)) or "Platform",
        )

        report_id, row_key, created_at = new_report_keys(now)
        response = assemble_report(
            report_id=report_id,
            energy_report=energy_report,
            trends=project_trends(
                window.start, window.elapsed_days, breakdown.total_kwh, trend_names
            ),
            recommendations=build_recommendations(breakdown.total_kwh, utilization, region),
            performance=PerformanceMetrics(
                processing_time_ms=_elapsed_ms(started),
                microservices_processed=len(microservices),
                total_resources_analyzed=breakdown.resources_analyzed,
            ),
            warning=warning,
            note=PLATFORM_NOTE,
        )

        logger.info(
            "analysis.completed",
            report_id=report_id,
            total_kwh=energy_report.kilowatt_hours,
            carbon_kg=energy_report.carbon_kg,
            utilization=utilization,
        )
        return response, build_report_record(response, row_key, created_at)

    async def _analyze_subscription(
        self,
        window: AnalysisWindow,
        region: str,
        started: float,
        now: datetime | None,
    ) -> tuple[PlatformAnalysisResponse, EnergyReportCreate]:
        if self.provider is None:
            raise DiscoveryError("No resource provider configured")

        resources = await self.provider.list_resources()
        demo = self.provider.serves_demo_data
        if demo:
            logger.warning(
                "analysis.demo_subscription", subscription_id=self.provider.subscription_id
            )
        utilization = self.subscription_utilization
        breakdown = analyze_subscription(resources, window, utilization)

        energy_report = self._energy_report(
            breakdown,
            window,
            region,
            utilization,
            resource_type="Azure Subscription",
            resource_name=self.provider.subscription_id or "subscription",
        )

        report_id, row_key, created_at = new_report_keys(now, prefix="subscription_analysis")
        response = assemble_report(
            report_id=report_id,
            energy_report=energy_report,
            trends=project_trends(
                window.start, window.elapsed_days, breakdown.total_kwh, ["Subscription"]
            ),
            recommendations=build_subscription_recommendations(
                breakdown.total_kwh, utilization, region
            ),
            performance=PerformanceMetrics(
                processing_time_ms=_elapsed_ms(started),
                microservices_processed=0,
                total_resources_analyzed=len(resources),
            ),
            used_mock_data=demo,
            warning=DEMO_DATA_WARNING if demo else None,
            note=SUBSCRIPTION_NOTE,
        )

        logger.info(
            "analysis.subscription_completed",
            report_id=report_id,
            resources=len(resources),
            total_kwh=energy_report.kilowatt_hours,
        )
        return response, build_report_record(response, row_key, created_at)

    def analyze_infrastructure(
        self, request: InfrastructureAnalysisRequest, now: datetime | None = None
    ) -> tuple[InfrastructureAnalysisResponse, EnergyReportCreate]:
        """
        Estimate the virtual machines declared in a Terraform document.

        Each VM draws its size's nominal TDP scaled by the requested
        utilization for every instance over the window (one day by default).

        Raises:
            TerraformDocumentError: If the document is not Terraform JSON
        """
        window = AnalysisWindow.from_bounds(
            request.start_time, request.end_time, INFRASTRUCTURE_WINDOW_DAYS, now=now
        )
        region = request.region or self.region
        utilization = request.utilization_percentage

        vms, skipped = extract_virtual_machines(request.terraform)
        breakdown = EnergyBreakdown()
        estimates = []
        for vm in vms:
            energy = estimate_vm_energy(vm, window.elapsed_days, utilization / 100.0)
            breakdown.add(f"VM_{vm.address}", energy.kwh)
            breakdown.resources_analyzed += vm.instances
            estimates.append(
                VirtualMachineEstimate(
                    address=vm.address,
                    vm_size=vm.vm_size,
                    instances=vm.instances,
                    watts_per_instance=energy.watts_per_instance,
                    kilowatt_hours=round(energy.kwh, 2),
                )
            )

        warning = None
        if not vms:
            warning = "No Azure virtual machines with a size were found in the Terraform document"
        elif skipped:
            warning = f"{skipped} virtual machine resource(s) without a size were skipped"

        energy_report = self._energy_report(
            breakdown,
            window,
            region,
            utilization,
            resource_type="Infrastructure",
            resource_name=", ".join(vm.address for vm in vms) or "Infrastructure",
        )

        report_id, row_key, created_at = new_report_keys(now, prefix="infrastructure_analysis")
        response = InfrastructureAnalysisResponse(
            report_id=report_id,
            energy_report=energy_report,
            virtual_machines=estimates,
            skipped_resources=skipped,
            warning=warning,
        )

        logger.info(
            "analysis.infrastructure_completed",
            report_id=report_id,
            virtual_machines=len(vms),
            skipped=skipped,
            total_kwh=energy_report.kilowatt_hours,
        )
        return response, build_report_record(response, row_key, created_at)

    @staticmethod
    def _energy_report(
        breakdown: EnergyBreakdown,
        window: AnalysisWindow,
        region: str,
        utilization: float,
        resource_type: str,
        resource_name: str,
    ) -> EnergyReportData:
        intensity = get_grid_intensity(region)
        return EnergyReportData(
            kilowatt_hours=breakdown.rounded_total,
            carbon_kg=round(breakdown.total_kwh * intensity, 2),
            resource_type=resource_type,
            resource_name=resource_name,
            utilization_percentage=utilization,
            details=breakdown.details,
            total_energy_consumption=breakdown.rounded_total,
            region=region,
            grid_intensity=intensity,
            start_time=window.start,
            end_time=window.end,
            elapsed_days=round(window.elapsed_days, 4),
        )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
