"""Tests for trend projection and forecasting."""

from datetime import date, datetime, timezone

import pytest

from app.services.trend_projector import (
    add_months,
    daily_trend,
    forecast_series,
    monthly_trend,
    project_trends,
    weekly_trend,
)

START = datetime(2025, 1, 15, tzinfo=timezone.utc)


class TestDailyTrend:
    """Test daily series sizing."""

    @pytest.mark.parametrize(
        "total_days,points",
        [(1, 7), (3.5, 7), (7, 7), (30, 30), (45.9, 45), (90, 90), (91, 90), (365, 90)],
    )
    def test_point_count_bounds(self, total_days, points):
        """Test the daily point count stays within bounds."""
        assert len(daily_trend(START, total_days, 10.0, ["a"])) == points

    def test_long_windows_are_sampled(self):
        """Test long windows are sampled at a stride."""
        trend = daily_trend(START, 180, 50.0, ["a"])

        assert trend[0].date == "2025-01-15"
        assert trend[1].date == "2025-01-17"

    def test_values_split_across_names(self):
        """Test daily values are split across names."""
        trend = daily_trend(START, 10, 20.0, ["orders", "billing"])

        for point in trend:
            assert set(point.microservices) == {"orders", "billing"}
            assert point.microservices["orders"] == round(point.total_energy / 2, 2)

    def test_deterministic(self):
        """Test identical inputs give identical points."""
        first = daily_trend(START, 30, 12.3, ["a"])
        second = daily_trend(START, 30, 12.3, ["a"])
        assert first == second

    def test_values_stay_near_average(self):
        """Test values stay near the daily average."""
        trend = daily_trend(START, 30, 30.0, ["a"])
        # base of 1 kWh/day scaled by 0.8 + 0.4 * sin(...)
        assert all(0.4 <= p.total_energy <= 1.2 for p in trend)


class TestWeeklyAndMonthly:
    """Test weekly and monthly series."""

    def test_weekly_point_count(self):
        """Test the weekly point count."""
        assert len(weekly_trend(START, 30, 10.0, ["a"])) == 5
        assert len(weekly_trend(START, 1000, 10.0, ["a"])) == 52

    def test_weekly_dates(self):
        """Test weekly dates are seven days apart."""
        trend = weekly_trend(START, 21, 10.0, ["a"])
        assert [p.date for p in trend] == ["2025-01-15", "2025-01-22", "2025-01-29"]

    def test_monthly_anchored_to_first_of_month(self):
        """Test monthly points fall on the first of the month."""
        trend = monthly_trend(START, 75, 10.0, ["a"])
        assert [p.date for p in trend] == ["2025-01-01", "2025-02-01", "2025-03-01"]

    def test_monthly_point_cap(self):
        """Test the monthly point cap."""
        assert len(monthly_trend(START, 5000, 10.0, ["a"])) == 24

    def test_add_months_clamps_day(self):
        """Test adding months clamps the day."""
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
        assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)


class TestForecast:
    """Test growth extrapolation."""

    def test_needs_two_points(self):
        """Test forecasting needs two points."""
        assert forecast_series([], "daily") == []
        assert forecast_series([(date(2025, 1, 1), 10.0)], "daily") == []

    def test_growth_from_last_two_points(self):
        """Test growth comes from the last two points."""
        forecast = forecast_series(
            [(date(2025, 1, 1), 5.0), (date(2025, 1, 2), 10.0), (date(2025, 1, 3), 11.0)],
            "daily",
        )

        assert [p.date for p in forecast] == ["2025-01-04", "2025-01-05", "2025-01-06"]
        assert [p.total_energy for p in forecast] == [12.1, 13.31, 14.64]
        assert all(p.forecast for p in forecast)

    def test_zero_previous_means_flat(self):
        """Test a zero previous point means a flat forecast."""
        forecast = forecast_series([(date(2025, 1, 1), 0.0), (date(2025, 1, 2), 4.0)], "weekly")

        assert [p.total_energy for p in forecast] == [4.0, 4.0, 4.0]
        assert forecast[0].date == "2025-01-09"

    def test_never_negative(self):
        """Test forecasts are never negative."""
        forecast = forecast_series(
            [(date(2025, 1, 1), 10.0), (date(2025, 1, 2), 0.0)], "daily", periods=2
        )
        assert [p.total_energy for p in forecast] == [0.0, 0.0]

    def test_monthly_steps(self):
        """Test monthly forecast dates keep the day of month."""
        forecast = forecast_series(
            [(date(2025, 1, 31), 2.0), (date(2025, 2, 28), 2.0)], "monthly"
        )
        assert [p.date for p in forecast] == ["2025-03-28", "2025-04-28", "2025-05-28"]


class TestProjectTrends:
    """Test the combined series."""

    def test_project_trends(self):
        """Test projecting all three series."""
        series = project_trends(START, 30, 60.0, ["orders", "orders", "billing"])

        assert len(series.daily) == 30
        assert len(series.weekly) == 5
        assert len(series.monthly) == 1
        assert set(series.daily[0].microservices) == {"orders", "billing"}
        assert len(series.forecast.daily) == 3
        assert len(series.forecast.weekly) == 3
        assert series.forecast.monthly == []

    def test_zero_energy(self):
        """Test projecting zero energy."""
        series = project_trends(START, 1, 0.0, [])

        assert len(series.daily) == 7
        assert all(p.total_energy == 0.0 for p in series.daily)
        assert all(p.microservices == {} for p in series.daily)

    def test_long_window_bounds(self):
        """Test every series stays capped on a long window."""
        series = project_trends(START, 400, 800.0, ["a"])

        assert len(series.daily) <= 90
        assert len(series.weekly) <= 52
        assert len(series.monthly) <= 24

    def test_identical_inputs_identical_output(self):
        """Test identical inputs give identical series."""
        first = project_trends(START, 45, 21.5, ["a", "b"])
        second = project_trends(START, 45, 21.5, ["a", "b"])

        assert first.model_dump_json() == second.model_dump_json()
