"""Fire-and-forget persistence of analysis reports."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.crud.energy_report import create_energy_report
from app.schemas.energy import (
    EnergyReportCreate,
    InfrastructureAnalysisResponse,
    PlatformAnalysisResponse,
)

logger = structlog.get_logger()

PARTITION_KEY_FORMAT = "%Y-%m-%d"


class ReportSink(Protocol):
    """Destination for assembled reports."""

    async def save(self, report: EnergyReportCreate) -> None:
        ...


def new_report_keys(
    now: datetime | None = None, prefix: str = "platform_analysis"
) -> tuple[str, str, datetime]:
    """
    Generate (report_id, row_key, created_at) for a new report.

    report_id looks like ``platform_analysis_20250101_120000_1a2b3c4d``.
    """
    created_at = now or datetime.now(timezone.utc)
    row_key = str(uuid.uuid4())
    report_id = f"{prefix}_{created_at:%Y%m%d_%H%M%S}_{row_key[:8]}"
    return report_id, row_key, created_at


def build_report_record(
    response: PlatformAnalysisResponse | InfrastructureAnalysisResponse,
    row_key: str,
    created_at: datetime,
) -> EnergyReportCreate:
    """Flatten a response into the stored row shape."""
    energy = response.energy_report
    return EnergyReportCreate(
        row_key=row_key,
        partition_key=created_at.strftime(PARTITION_KEY_FORMAT),
        report_id=response.report_id,
        kilowatt_hours=energy.kilowatt_hours,
        carbon_kg=energy.carbon_kg,
        resource_type=energy.resource_type,
        resource_name=energy.resource_name,
        utilization_percentage=energy.utilization_percentage,
        details=energy.details,
        created_at=created_at,
    )


class DatabaseReportSink:
    """Writes reports through SQLAlchemy, each save in its own session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, report: EnergyReportCreate) -> None:
        async with self.session_factory() as session:
            await create_energy_report(session, report)
        logger.info(
            "report.persisted",
            report_id=report.report_id,
            partition_key=report.partition_key,
            kwh=report.kilowatt_hours,
        )


async def persist_report(sink: ReportSink, report: EnergyReportCreate) -> None:
    """
    Save a report, logging instead of raising on failure.

    Runs as a background task after the response has been sent; failures
    are never retried.
    """
    try:
        await sink.save(report)
    except SQLAlchemyError as e:
        logger.warning("report.persist_failed", report_id=report.report_id, error=str(e))
    except Exception as e:
        logger.error(
            "report.persist_unexpected_error",
            report_id=report.report_id,
            error=str(e),
            exc_info=True,
        )
