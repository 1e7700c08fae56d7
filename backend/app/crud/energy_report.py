"""CRUD operations for energy reports."""

import json
from datetime import date

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.energy_report import EnergyReport
from app.schemas.energy import EnergyReportCreate


async def create_energy_report(db: AsyncSession, report_in: EnergyReportCreate) -> EnergyReport:
    """
    Persist a report row.

    Args:
        db: Database session
        report_in: Report data (details are serialized to a JSON string)

    Returns:
        Created report object
    """
    report = EnergyReport(
        row_key=report_in.row_key,
        partition_key=report_in.partition_key,
        report_id=report_in.report_id,
        kilowatt_hours=report_in.kilowatt_hours,
        carbon_kg=report_in.carbon_kg,
        resource_type=report_in.resource_type,
        resource_name=report_in.resource_name,
        utilization_percentage=report_in.utilization_percentage,
        details_json=json.dumps(report_in.details),
        created_at=report_in.created_at,
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)
    return report


async def get_energy_report_by_id(db: AsyncSession, report_id: str) -> EnergyReport | None:
    """
    Get a report by its report ID.

    Args:
        db: Database session
        report_id: Report identifier

    Returns:
        Report object or None if not found
    """
    result = await db.execute(select(EnergyReport).where(EnergyReport.report_id == report_id))
    return result.scalar_one_or_none()


async def get_energy_reports_in_range(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    limit: int = 500,
) -> list[EnergyReport]:
    """
    Get reports whose partition date falls within [start_date, end_date].

    Partition keys are ISO dates, so string comparison orders them correctly.

    Args:
        db: Database session
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
        limit: Maximum number of records to return

    Returns:
        Reports, newest first
    """
    result = await db.execute(
        select(EnergyReport)
        .where(
            EnergyReport.partition_key >= start_date.isoformat(),
            EnergyReport.partition_key <= end_date.isoformat(),
        )
        .order_by(desc(EnergyReport.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())
