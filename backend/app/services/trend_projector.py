"""
Trend projection.

Dashboards need a time series, but an analysis only yields one aggregate
figure. The series built here are fabricated so that they look plausible and
stay consistent with the total; they are not measurements. Output is
deterministic for identical inputs (a smooth sine variation, no randomness).
"""

import calendar
import math
from datetime import date, datetime, timedelta
from typing import Literal, Sequence

from app.schemas.energy import ForecastPoint, TrendForecast, TrendPoint, TrendSeries

Timeframe = Literal["daily", "weekly", "monthly"]

MAX_DAILY_POINTS = 90
MIN_DAILY_POINTS = 7
MAX_WEEKLY_POINTS = 52
MAX_MONTHLY_POINTS = 24
FORECAST_PERIODS = 3

DATE_FORMAT = "%Y-%m-%d"


def add_months(day: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping to the month's last day."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _split(value: float, names: Sequence[str]) -> dict[str, float]:
    share = round(value / max(len(names), 1), 2)
    return {name: share for name in names}


def daily_trend(
    start: datetime, total_days: float, total_energy: float, names: Sequence[str]
) -> list[TrendPoint]:
    """
    Daily points: at least 7, at most 90.

    Windows longer than 90 days are sampled every ``total_days / 90`` days.
    """
    if total_days > MAX_DAILY_POINTS:
        points = MAX_DAILY_POINTS
        interval = total_days / MAX_DAILY_POINTS
    else:
        points = int(max(MIN_DAILY_POINTS, total_days))
        interval = 1.0

    base = total_energy / max(total_days, points)

    trend = []
    for i in range(points):
        point_date = start + timedelta(days=i * interval)
        value = round(base * (0.8 + 0.4 * math.sin(i * 0.1)), 2)
        trend.append(
            TrendPoint(
                date=point_date.strftime(DATE_FORMAT),
                total_energy=value,
                microservices=_split(value, names),
            )
        )
    return trend


def weekly_trend(
    start: datetime, total_days: float, total_energy: float, names: Sequence[str]
) -> list[TrendPoint]:
    points = min(math.ceil(total_days / 7), MAX_WEEKLY_POINTS)
    base = total_energy / max(total_days, 1) * 7

    trend = []
    for week in range(points):
        value = round(base * (0.85 + 0.3 * math.sin(week * 0.2)), 2)
        trend.append(
            TrendPoint(
                date=(start + timedelta(days=week * 7)).strftime(DATE_FORMAT),
                total_energy=value,
                microservices=_split(value, names),
            )
        )
    return trend


def monthly_trend(
    start: datetime, total_days: float, total_energy: float, names: Sequence[str]
) -> list[TrendPoint]:
    """Monthly points anchored to the first day of the starting month."""
    points = min(math.ceil(total_days / 30), MAX_MONTHLY_POINTS)
    base = total_energy / max(total_days, 1) * 30
    anchor = date(start.year, start.month, 1)

    trend = []
    for month in range(points):
        value = round(base * (0.9 + 0.2 * math.sin(month * 0.3)), 2)
        trend.append(
            TrendPoint(
                date=add_months(anchor, month).strftime(DATE_FORMAT),
                total_energy=value,
                microservices=_split(value, names),
            )
        )
    return trend


def forecast_series(
    points: Sequence[tuple[date, float]],
    timeframe: Timeframe,
    periods: int = FORECAST_PERIODS,
) -> list[ForecastPoint]:
    """
    Extrapolate with the growth rate of the last two points.

    growth = (last - previous) / previous (0 when previous is 0);
    value_i = max(0, last * (1 + growth) ** i).

    Args:
        points: Historical (date, value) points, oldest first
        timeframe: Step between forecast points (1 day, 7 days, 1 month)
        periods: Number of points to produce

    Returns:
        Forecast points, empty when fewer than two points are given
    """
    if len(points) < 2:
        return []

    (_, previous), (last_date, last_value) = points[-2], points[-1]
    growth = (last_value - previous) / previous if previous else 0.0

    forecast = []
    for i in range(1, periods + 1):
        if timeframe == "monthly":
            forecast_date = add_months(last_date, i)
        elif timeframe == "weekly":
            forecast_date = last_date + timedelta(days=7 * i)
        else:
            forecast_date = last_date + timedelta(days=i)

        value = max(0.0, last_value * (1 + growth) ** i)
        forecast.append(
            ForecastPoint(date=forecast_date.strftime(DATE_FORMAT), total_energy=round(value, 2))
        )
    return forecast


def _trend_to_points(trend: list[TrendPoint]) -> list[tuple[date, float]]:
    return [(datetime.strptime(p.date, DATE_FORMAT).date(), p.total_energy) for p in trend]


def project_trends(
    start: datetime,
    total_days: float,
    total_energy: float,
    microservice_names: Sequence[str],
) -> TrendSeries:
    """
    Build daily, weekly and monthly series plus their 3-period forecasts.

    Args:
        start: Window start
        total_days: Elapsed window days (already floored at 1)
        total_energy: Report total in kWh
        microservice_names: Names the per-point value is split across evenly

    Returns:
        TrendSeries
    """
    names = list(dict.fromkeys(microservice_names))

    daily = daily_trend(start, total_days, total_energy, names)
    weekly = weekly_trend(start, total_days, total_energy, names)
    monthly = monthly_trend(start, total_days, total_energy, names)

    return TrendSeries(
        daily=daily,
        weekly=weekly,
        monthly=monthly,
        forecast=TrendForecast(
            daily=forecast_series(_trend_to_points(daily), "daily"),
            weekly=forecast_series(_trend_to_points(weekly), "weekly"),
            monthly=forecast_series(_trend_to_points(monthly), "monthly"),
        ),
    )
