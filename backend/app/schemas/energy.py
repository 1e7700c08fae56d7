"""Energy analysis Pydantic schemas for request/response validation."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request schemas
class MicroserviceResources(CamelModel):
    """Resource identifiers of one microservice."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("name", "microserviceName"),
        serialization_alias="name",
    )
    app_service_resource_id: str | None = Field(
        default=None,
        description="App Service resource ID (a microservice without one is skipped)",
    )
    function_app_resource_ids: list[str] = Field(default_factory=list)
    service_bus_resource_ids: list[str] = Field(default_factory=list)
    database_resource_ids: list[str] = Field(default_factory=list)


class PlatformAnalysisRequest(CamelModel):
    """Schema for a platform energy analysis."""

    microservices: list[MicroserviceResources] = Field(default_factory=list)
    shared_resource_ids: list[str] = Field(default_factory=list)
    start_time: datetime | None = Field(
        default=None, description="Window start (defaults to DEFAULT_ANALYSIS_DAYS before end)"
    )
    end_time: datetime | None = Field(default=None, description="Window end (defaults to now)")
    analyze_all_resources: bool = Field(
        default=False,
        description="Analyze every resource of the subscription when no microservice qualifies",
    )
    utilization_percentage: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Utilization to apply; derived heuristically when omitted",
    )
    region: str | None = Field(
        default=None, description="Region whose grid intensity is applied (overrides CARBON_REGION)"
    )


class InfrastructureAnalysisRequest(CamelModel):
    """Schema for estimating the virtual machines of a Terraform document."""

    terraform: dict[str, Any] = Field(
        ...,
        description="Output of `terraform show -json` (state or plan) or a raw state file",
    )
    start_time: datetime | None = Field(
        default=None, description="Window start (defaults to one day before end)"
    )
    end_time: datetime | None = Field(default=None, description="Window end (defaults to now)")
    utilization_percentage: float = Field(default=50.0, ge=0, le=100)
    region: str | None = None


class ForecastInputPoint(CamelModel):
    day: date = Field(..., alias="date")
    total_energy: float = Field(..., ge=0)


class ForecastRequest(CamelModel):
    """Schema for the two-point growth forecast helper."""

    points: list[ForecastInputPoint] = Field(..., min_length=1)
    timeframe: Literal["daily", "weekly", "monthly"] = "daily"
    periods: int = Field(default=3, ge=1, le=24)


# Response schemas
class EnergyReportData(CamelModel):
    """Aggregate totals and the labelled kWh breakdown."""

    kilowatt_hours: float
    carbon_kg: float
    resource_type: str
    resource_name: str
    utilization_percentage: float
    details: dict[str, float]
    total_energy_consumption: float
    region: str
    grid_intensity: float
    start_time: datetime
    end_time: datetime
    elapsed_days: float


class TrendPoint(CamelModel):
    date: str
    total_energy: float
    microservices: dict[str, float] = Field(default_factory=dict)


class ForecastPoint(CamelModel):
    date: str
    total_energy: float
    forecast: bool = True


class TrendForecast(CamelModel):
    daily: list[ForecastPoint] = Field(default_factory=list)
    weekly: list[ForecastPoint] = Field(default_factory=list)
    monthly: list[ForecastPoint] = Field(default_factory=list)


class TrendSeries(CamelModel):
    """Synthetic time series consistent with the report total."""

    daily: list[TrendPoint]
    weekly: list[TrendPoint]
    monthly: list[TrendPoint]
    forecast: TrendForecast = Field(default_factory=TrendForecast)


class Recommendation(CamelModel):
    action: str
    description: str
    potential_savings_kwh: float
    savings_percentage: float
    carbon_reduction_kg: float
    recommendation: str | None = None


class CurrentSituation(CamelModel):
    total_energy_kwh: float
    carbon_footprint_kg: float
    utilization_percentage: float
    status: str


class RecommendationSummary(CamelModel):
    max_potential_savings_kwh: float
    max_carbon_reduction_kg: float
    recommended_actions: int


class OptimizationRecommendations(CamelModel):
    """Illustrative savings suggestions derived from totals and utilization."""

    current_situation: CurrentSituation
    recommendations: list[Recommendation]
    summary: RecommendationSummary
    disclaimer: str


class PerformanceMetrics(CamelModel):
    processing_time_ms: float
    microservices_processed: int
    total_resources_analyzed: int


class PlatformAnalysisResponse(CamelModel):
    """Schema for a platform analysis result."""

    report_id: str
    energy_report: EnergyReportData
    trends: TrendSeries
    optimization_recommendations: OptimizationRecommendations
    performance_metrics: PerformanceMetrics
    used_mock_data: bool = False
    warning: str | None = None
    note: str | None = None


class VirtualMachineEstimate(CamelModel):
    address: str
    vm_size: str
    instances: int
    watts_per_instance: float
    kilowatt_hours: float


class InfrastructureAnalysisResponse(CamelModel):
    """Schema for a Terraform infrastructure analysis result."""

    report_id: str
    energy_report: EnergyReportData
    virtual_machines: list[VirtualMachineEstimate]
    skipped_resources: int = 0
    warning: str | None = None


class EnergyReportCreate(BaseModel):
    """Schema for persisting a report row."""

    row_key: str = Field(..., min_length=1, max_length=36)
    partition_key: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    report_id: str = Field(..., min_length=1, max_length=100)
    kilowatt_hours: float
    carbon_kg: float
    resource_type: str
    resource_name: str
    utilization_percentage: float
    details: dict[str, float] = Field(default_factory=dict)
    created_at: datetime


class StoredReport(CamelModel):
    """Schema for a persisted report row."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    report_id: str
    partition_key: str
    row_key: str
    kilowatt_hours: float
    carbon_kg: float
    resource_type: str
    resource_name: str
    utilization_percentage: float
    details: dict[str, float]
    created_at: datetime


class ReportHistoryResponse(CamelModel):
    reports: list[StoredReport]
    count: int
    start_date: date
    end_date: date


class GridIntensityResponse(CamelModel):
    regions: dict[str, float]
    default_intensity: float
    configured_region: str
