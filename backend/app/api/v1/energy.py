"""Energy analysis API endpoints."""

from datetime import date, datetime, timedelta, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_analysis_service, get_db, get_report_sink
from app.core.config import settings
from app.core.rate_limit import limiter
from app.crud import energy_report as energy_report_crud
from app.schemas.energy import (
    ForecastPoint,
    ForecastRequest,
    GridIntensityResponse,
    InfrastructureAnalysisRequest,
    InfrastructureAnalysisResponse,
    PlatformAnalysisRequest,
    PlatformAnalysisResponse,
    ReportHistoryResponse,
    StoredReport,
)
from app.services.energy_analysis import EnergyAnalysisService
from app.services.energy_profiles import DEFAULT_GRID_INTENSITY, GRID_INTENSITY_KG_PER_KWH
from app.services.report_storage import ReportSink, persist_report
from app.services.terraform_analyzer import TerraformDocumentError
from app.services.trend_projector import forecast_series

logger = structlog.get_logger()

router = APIRouter()


@router.post("/analyze/platform", response_model=PlatformAnalysisResponse)
@limiter.limit(settings.RATE_LIMIT_ANALYSIS)
async def analyze_platform(
    request: Request,
    analysis_in: PlatformAnalysisRequest,
    background_tasks: BackgroundTasks,
    service: Annotated[EnergyAnalysisService, Depends(get_analysis_service)],
    sink: Annotated[ReportSink, Depends(get_report_sink)],
) -> PlatformAnalysisResponse:
    """
    Estimate energy and carbon for a set of microservices and shared resources.

    The report is persisted in the background after the response is sent;
    storage failures never affect the response.
    """
    try:
        response, record = await service.analyze_platform(analysis_in)
    except Exception as e:
        logger.error("energy.analysis_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error analyzing platform energy consumption",
        )

    background_tasks.add_task(persist_report, sink, record)
    return response


@router.post("/analyze/infrastructure", response_model=InfrastructureAnalysisResponse)
@limiter.limit(settings.RATE_LIMIT_ANALYSIS)
async def analyze_infrastructure(
    request: Request,
    analysis_in: InfrastructureAnalysisRequest,
    background_tasks: BackgroundTasks,
    service: Annotated[EnergyAnalysisService, Depends(get_analysis_service)],
    sink: Annotated[ReportSink, Depends(get_report_sink)],
) -> InfrastructureAnalysisResponse:
    """Estimate the virtual machines declared in `terraform show -json` output."""
    try:
        response, record = service.analyze_infrastructure(analysis_in)
    except TerraformDocumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("energy.infrastructure_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error analyzing infrastructure",
        )

    background_tasks.add_task(persist_report, sink, record)
    return response


@router.get("/reports/history", response_model=ReportHistoryResponse)
async def get_report_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    limit: int = Query(500, ge=1, le=1000),
) -> ReportHistoryResponse:
    """
    List persisted reports whose creation date falls in [startDate, endDate].

    Defaults to the trailing DEFAULT_ANALYSIS_DAYS days.
    """
    end = end_date or datetime.now(timezone.utc).date()
    start = start_date or end - timedelta(days=settings.DEFAULT_ANALYSIS_DAYS)

    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="startDate must not be after endDate",
        )

    try:
        reports = await energy_report_crud.get_energy_reports_in_range(db, start, end, limit)
    except SQLAlchemyError as e:
        logger.error("energy.history_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load report history",
        )

    return ReportHistoryResponse(
        reports=[StoredReport.model_validate(r) for r in reports],
        count=len(reports),
        start_date=start,
        end_date=end,
    )


@router.get("/reports/{report_id}", response_model=StoredReport)
async def get_report(
    report_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StoredReport:
    """Get one persisted report."""
    report = await energy_report_crud.get_energy_report_by_id(db, report_id)
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found",
        )
    return StoredReport.model_validate(report)


@router.get("/grid-intensity", response_model=GridIntensityResponse)
async def get_grid_intensity_table() -> GridIntensityResponse:
    """Static grid carbon intensity table (kg CO2 per kWh)."""
    return GridIntensityResponse(
        regions=dict(GRID_INTENSITY_KG_PER_KWH),
        default_intensity=DEFAULT_GRID_INTENSITY,
        configured_region=settings.CARBON_REGION,
    )


@router.post("/trends/forecast", response_model=list[ForecastPoint])
async def forecast_trend(forecast_in: ForecastRequest) -> list[ForecastPoint]:
    """Extrapolate a series with the growth rate of its last two points."""
    points = [(p.day, p.total_energy) for p in forecast_in.points]
    return forecast_series(points, forecast_in.timeframe, forecast_in.periods)
