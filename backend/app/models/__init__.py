"""SQLAlchemy database models."""

from app.models.energy_report import EnergyReport

__all__ = [
    "EnergyReport",
]
