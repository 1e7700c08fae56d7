"""Energy report database model."""

import json
from datetime import datetime

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class EnergyReport(Base):
    """
    One persisted analysis.

    Rows are partitioned by creation date (YYYY-MM-DD) and keyed by a unique
    row key. The labelled breakdown is stored as a JSON string.
    """

    __tablename__ = "energy_reports"

    row_key: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
    )
    partition_key: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
    )
    report_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )
    kilowatt_hours: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    carbon_kg: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    resource_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    # Comma-joined microservice names, unbounded
    resource_name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    utilization_percentage: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    details_json: Mapped[str] = mapped_column(
        Text,
        default="{}",
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    @property
    def details(self) -> dict[str, float]:
        """Breakdown decoded from ``details_json``."""
        if not self.details_json:
            return {}
        return json.loads(self.details_json)

    def __repr__(self) -> str:
        return f"<EnergyReport {self.report_id} ({self.kilowatt_hours} kWh)>"
