"""Energy formula engine: (category, tier, time, utilization) -> kWh -> kg CO2."""

from datetime import datetime, timedelta, timezone

import structlog

from app.services.energy_profiles import (
    FUNCTION_APP_BASELINE_WATTS,
    FUNCTION_APP_EXECUTION_WATTS,
    SERVICE_BUS_BASELINE_WATTS,
    SERVICE_BUS_PROCESSING_WATTS,
    get_app_service_watts,
    get_database_watts,
    get_grid_intensity,
    get_shared_watts,
)
from app.services.resource_classifier import ResourceCategory

logger = structlog.get_logger()

SECONDS_PER_DAY = 86400.0
HOURS_PER_DAY = 24


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AnalysisWindow:
    """
    Time window of one analysis.

    ``elapsed_days`` is never below 1, so an empty or inverted window still
    yields a well-defined energy figure.
    """

    def __init__(self, start: datetime, end: datetime):
        self.start = _as_utc(start)
        self.end = _as_utc(end)

    @classmethod
    def from_bounds(
        cls,
        start: datetime | None,
        end: datetime | None,
        default_days: int,
        now: datetime | None = None,
    ) -> "AnalysisWindow":
        """
        Build a window, defaulting missing bounds to a trailing window.

        Args:
            start: Window start, or None
            end: Window end, or None (defaults to now)
            default_days: Window length used when start is missing
            now: Reference time (defaults to current UTC time)

        Returns:
            AnalysisWindow
        """
        end = _as_utc(end) if end else (now or datetime.now(timezone.utc))
        start = _as_utc(start) if start else end - timedelta(days=default_days)
        return cls(start, end)

    @property
    def elapsed_days(self) -> float:
        return max(1.0, (self.end - self.start).total_seconds() / SECONDS_PER_DAY)

    @property
    def elapsed_hours(self) -> float:
        return self.elapsed_days * HOURS_PER_DAY

    def __repr__(self) -> str:
        return f"<AnalysisWindow {self.start.isoformat()} -> {self.end.isoformat()}>"


def effective_days(window: AnalysisWindow, creation_date: datetime | None) -> float:
    """
    Days a resource actually existed within the window.

    A resource created inside the window is billed from its creation date to
    the window end (0 if created after the end); otherwise the full window.
    """
    if creation_date is None:
        return window.elapsed_days

    created = _as_utc(creation_date)
    if created <= window.start:
        return window.elapsed_days

    return max(0.0, (window.end - created).total_seconds() / SECONDS_PER_DAY)


def watts_for(category: ResourceCategory, tier: str | None, utilization_factor: float) -> float:
    """
    Effective power draw of a microservice resource.

    Function apps and Service Bus have a fixed baseline plus a
    utilization-scaled part; App Service and databases use nominal wattage.
    """
    if category == ResourceCategory.FUNCTION_APP:
        return FUNCTION_APP_BASELINE_WATTS + FUNCTION_APP_EXECUTION_WATTS * utilization_factor
    if category == ResourceCategory.SERVICE_BUS:
        return SERVICE_BUS_BASELINE_WATTS + SERVICE_BUS_PROCESSING_WATTS * utilization_factor
    if category == ResourceCategory.DATABASE:
        return get_database_watts(tier)
    if category == ResourceCategory.APP_SERVICE:
        return get_app_service_watts(tier)
    return get_shared_watts(shared_profile(category, tier))


def compute_energy_kwh(
    category: ResourceCategory,
    tier: str | None,
    elapsed_days: float,
    utilization_factor: float,
) -> float:
    """
    Compute unrounded kWh for one microservice resource.

    Args:
        category: Resource category
        tier: Tier label (AppService / Database)
        elapsed_days: Effective days the resource ran
        utilization_factor: Utilization as a fraction (0.5 for 50%)

    Returns:
        Energy in kWh (0 for non-positive durations)
    """
    hours = max(0.0, elapsed_days) * HOURS_PER_DAY
    watts = watts_for(category, tier, utilization_factor)

    if category in (ResourceCategory.FUNCTION_APP, ResourceCategory.SERVICE_BUS):
        # Utilization is already inside the wattage
        energy = watts * hours / 1000.0
    else:
        energy = watts * hours * utilization_factor / 1000.0

    logger.debug(
        "energy.resource_calculated",
        category=category.value,
        tier=tier,
        watts=watts,
        hours=hours,
        utilization=utilization_factor,
        kwh=energy,
    )
    return energy


def shared_profile(category: ResourceCategory, tier: str | None = None) -> str:
    """Wattage profile / label of a shared resource: network sub-kind, else category."""
    if category == ResourceCategory.NETWORK and tier:
        return tier
    return category.value


def compute_shared_energy_kwh(
    category: ResourceCategory,
    tier: str | None,
    elapsed_days: float,
    utilization_factor: float,
) -> float:
    """Unrounded kWh of a shared resource from the fixed shared wattage table."""
    watts = get_shared_watts(shared_profile(category, tier))
    return watts * max(0.0, elapsed_days) * HOURS_PER_DAY * utilization_factor / 1000.0


def carbon_kg(kwh: float, region: str | None) -> float:
    """Convert kWh to kg CO2 with the region's grid intensity."""
    return kwh * get_grid_intensity(region)
