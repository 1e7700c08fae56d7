"""Utilization estimation strategies."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Sequence

import structlog

from app.schemas.energy import MicroserviceResources

logger = structlog.get_logger()

MIN_DERIVED_UTILIZATION = 20.0
MAX_DERIVED_UTILIZATION = 85.0
BASELINE_UTILIZATION = 50.0

APP_SERVICE_WEIGHT = 15
FUNCTION_APP_WEIGHT = 5
SERVICE_BUS_WEIGHT = 8
DATABASE_WEIGHT = 12

BUSINESS_HOURS = range(9, 18)
BUSINESS_HOURS_MULTIPLIER = 1.1
OFF_HOURS_MULTIPLIER = 0.9


class UtilizationEstimator(ABC):
    """Strategy producing the utilization percentage (0-100) of an analysis."""

    @abstractmethod
    def estimate(self, microservices: Sequence[MicroserviceResources]) -> float:
        """Return a utilization percentage for the given microservices."""


class FixedUtilization(UtilizationEstimator):
    """Always returns the configured percentage."""

    def __init__(self, percentage: float):
        self.percentage = percentage

    def estimate(self, microservices: Sequence[MicroserviceResources]) -> float:
        return self.percentage


class HeuristicUtilizationEstimator(UtilizationEstimator):
    """
    Resource-count weighted score with an hour-of-day multiplier.

    This is a placeholder policy that produces plausible figures, not a
    measured value. Result is clamped to [20, 85] and rounded to 1 decimal.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self.clock = clock or datetime.now

    def estimate(self, microservices: Sequence[MicroserviceResources]) -> float:
        if not microservices:
            return BASELINE_UTILIZATION

        app_services = sum(1 for ms in microservices if ms.app_service_resource_id)
        functions = sum(len(ms.function_app_resource_ids) for ms in microservices)
        buses = sum(len(ms.service_bus_resource_ids) for ms in microservices)
        databases = sum(len(ms.database_resource_ids) for ms in microservices)

        total_resources = len(microservices) + functions + buses + databases
        weighted = (
            APP_SERVICE_WEIGHT * app_services
            + FUNCTION_APP_WEIGHT * functions
            + SERVICE_BUS_WEIGHT * buses
            + DATABASE_WEIGHT * databases
        )
        score = BASELINE_UTILIZATION + weighted / max(total_resources, 1)

        hour = self.clock().hour
        multiplier = BUSINESS_HOURS_MULTIPLIER if hour in BUSINESS_HOURS else OFF_HOURS_MULTIPLIER

        utilization = min(max(score * multiplier, MIN_DERIVED_UTILIZATION), MAX_DERIVED_UTILIZATION)
        utilization = round(utilization, 1)

        logger.debug(
            "utilization.estimated",
            microservices=len(microservices),
            score=score,
            hour=hour,
            utilization=utilization,
        )
        return utilization
