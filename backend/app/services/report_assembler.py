"""Report assembly: totals, breakdown, trends and recommendations -> response payload."""

from app.schemas.energy import (
    CurrentSituation,
    EnergyReportData,
    OptimizationRecommendations,
    PerformanceMetrics,
    PlatformAnalysisResponse,
    Recommendation,
    RecommendationSummary,
    TrendSeries,
)
from app.services.energy_profiles import LOW_CARBON_REGION, get_grid_intensity

DISCLAIMER = (
    "Savings figures are illustrative estimates computed as fixed proportions of the "
    "estimated total. They are not measured outcomes."
)

SCALE_DOWN_SAVINGS = 0.30
RIGHT_SIZING_SAVINGS = 0.20
AUTO_SCALING_SAVINGS = 0.25
SERVERLESS_SAVINGS = 0.15
MAX_PLATFORM_SAVINGS = 0.50

CONSOLIDATION_SAVINGS = 0.15
CLEANUP_SAVINGS = 0.20
SUBSCRIPTION_RIGHT_SIZING_SAVINGS = 0.25
MAX_SUBSCRIPTION_SAVINGS = 0.60


def utilization_status(utilization: float) -> str:
    if utilization > 80:
        return "Highly Utilized"
    if utilization > 50:
        return "Moderately Utilized"
    return "Under-utilized"


def _saving(
    action: str,
    description: str,
    total_energy: float,
    share: float,
    intensity: float,
    recommendation: str | None = None,
) -> Recommendation:
    savings = total_energy * share
    return Recommendation(
        action=action,
        description=description,
        potential_savings_kwh=round(savings, 2),
        savings_percentage=round(share * 100, 1),
        carbon_reduction_kg=round(savings * intensity, 2),
        recommendation=recommendation,
    )


def build_recommendations(
    total_energy: float, utilization: float, region: str
) -> OptimizationRecommendations:
    """
    Canned optimization suggestions for a platform report.

    A scale-down suggestion is added only when utilization is below 50%.
    Every figure is a fixed proportion of ``total_energy``.
    """
    intensity = get_grid_intensity(region)
    target_intensity = get_grid_intensity(LOW_CARBON_REGION)
    migration_reduction = max(0.0, total_energy * (intensity - target_intensity))
    migration_percentage = (
        (1 - target_intensity / intensity) * 100 if intensity > target_intensity else 0.0
    )

    recommendations = [
        Recommendation(
            action="Region Migration to Low-Carbon Areas",
            description=(
                f"Move workloads from {region} ({intensity} kg CO2/kWh) to "
                f"{LOW_CARBON_REGION} ({target_intensity} kg CO2/kWh)"
            ),
            potential_savings_kwh=0.0,
            savings_percentage=round(migration_percentage, 1),
            carbon_reduction_kg=round(migration_reduction, 2),
            recommendation="Energy use is unchanged; only the grid carbon intensity drops",
        ),
        _saving(
            "Right-size App Service Plans",
            "Optimize App Service Plan tiers based on actual CPU and memory usage patterns",
            total_energy,
            RIGHT_SIZING_SAVINGS,
            intensity,
            "Consider downgrading from Premium to Standard tiers if utilization is below 60%",
        ),
        _saving(
            "Optimize Function Apps & App Service Scaling",
            "Use consumption-based scaling for Function Apps and auto-scaling for App Services",
            total_energy,
            AUTO_SCALING_SAVINGS,
            intensity,
            "Use Function Apps for event-driven workloads and enable App Service auto-scaling",
        ),
        _saving(
            "Maximize Serverless Architecture",
            "Replace always-on App Services with Function Apps for sporadic workloads",
            total_energy,
            SERVERLESS_SAVINGS,
            intensity,
            "Migrate low-frequency APIs to consumption-based Function Apps",
        ),
    ]

    if utilization < 50:
        recommendations.append(
            _saving(
                "Scale Down Resources",
                f"Current utilization is {utilization}%. Consider scaling down to save energy.",
                total_energy,
                SCALE_DOWN_SAVINGS,
                intensity,
            )
        )

    max_savings = total_energy * MAX_PLATFORM_SAVINGS
    return OptimizationRecommendations(
        current_situation=CurrentSituation(
            total_energy_kwh=round(total_energy, 2),
            carbon_footprint_kg=round(total_energy * intensity, 2),
            utilization_percentage=utilization,
            status=utilization_status(utilization),
        ),
        recommendations=recommendations,
        summary=RecommendationSummary(
            max_potential_savings_kwh=round(max_savings, 2),
            max_carbon_reduction_kg=round(max_savings * intensity, 2),
            recommended_actions=3 if utilization < 50 else 2,
        ),
        disclaimer=DISCLAIMER,
    )


def build_subscription_recommendations(
    total_energy: float, utilization: float, region: str
) -> OptimizationRecommendations:
    """Suggestions for the subscription-wide analysis."""
    intensity = get_grid_intensity(region)
    max_savings = total_energy * MAX_SUBSCRIPTION_SAVINGS

    return OptimizationRecommendations(
        current_situation=CurrentSituation(
            total_energy_kwh=round(total_energy, 2),
            carbon_footprint_kg=round(total_energy * intensity, 2),
            utilization_percentage=utilization,
            status="Subscription-level Analysis",
        ),
        recommendations=[
            _saving(
                "Resource Consolidation",
                "Consolidate similar resources to reduce overhead and improve efficiency",
                total_energy,
                CONSOLIDATION_SAVINGS,
                intensity,
                "Review resource groups for consolidation opportunities",
            ),
            _saving(
                "Unused Resource Cleanup",
                "Identify and remove unused or underutilized resources",
                total_energy,
                CLEANUP_SAVINGS,
                intensity,
                "Implement automated resource tagging and cleanup policies",
            ),
            _saving(
                "Right-sizing Analysis",
                "Optimize resource sizes based on actual usage patterns",
                total_energy,
                SUBSCRIPTION_RIGHT_SIZING_SAVINGS,
                intensity,
                "Use Azure Advisor recommendations for resource optimization",
            ),
        ],
        summary=RecommendationSummary(
            max_potential_savings_kwh=round(max_savings, 2),
            max_carbon_reduction_kg=round(max_savings * intensity, 2),
            recommended_actions=3,
        ),
        disclaimer=DISCLAIMER,
    )


def assemble_report(
    report_id: str,
    energy_report: EnergyReportData,
    trends: TrendSeries,
    recommendations: OptimizationRecommendations,
    performance: PerformanceMetrics,
    used_mock_data: bool = False,
    warning: str | None = None,
    note: str | None = None,
) -> PlatformAnalysisResponse:
    """Package already-computed parts into the response payload (no I/O)."""
    return PlatformAnalysisResponse(
        report_id=report_id,
        energy_report=energy_report,
        trends=trends,
        optimization_recommendations=recommendations,
        performance_metrics=performance,
        used_mock_data=used_mock_data,
        warning=warning,
        note=note,
    )
