"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from app.core.config import Settings


class TestCORSOriginValidation:
    """Test suite for CORS origin validation in Settings."""

    def test_valid_origins_development(self):
        """Test development accepts http and https origins."""
        settings = Settings(
            APP_ENV="development",
            ALLOWED_ORIGINS=["http://localhost:3000", "https://energy.example.com"],
        )

        assert settings.ALLOWED_ORIGINS == ["http://localhost:3000", "https://energy.example.com"]

    def test_production_accepts_https_and_localhost(self):
        """Test production accepts https and localhost origins."""
        settings = Settings(
            APP_ENV="production",
            ALLOWED_ORIGINS=[
                "https://energy.example.com",
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ],
        )

        assert len(settings.ALLOWED_ORIGINS) == 3

    @pytest.mark.parametrize(
        "origins,env,message",
        [
            (["*"], "development", "wildcard"),
            (["http://*.example.com"], "development", "wildcard"),
            (["energy.example.com"], "development", "scheme"),
            (["http://"], "development", "hostname"),
            ([""], "development", "empty"),
            ([], "development", "empty"),
            (["http://energy.example.com"], "production", "https"),
        ],
    )
    def test_rejected_origins(self, origins, env, message):
        """Test malformed origins are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(APP_ENV=env, ALLOWED_ORIGINS=origins)

        assert message in str(exc_info.value).lower()

    def test_comma_separated_origins(self):
        """Test parsing a comma-separated origins string."""
        settings = Settings(
            APP_ENV="development",
            ALLOWED_ORIGINS=" http://localhost:3000 ,https://energy.example.com:8443",
        )

        assert settings.ALLOWED_ORIGINS == [
            "http://localhost:3000",
            "https://energy.example.com:8443",
        ]


class TestEnergySettings:
    """Test energy model and Azure settings."""

    def test_defaults(self):
        """Test default settings values."""
        settings = Settings(AZURE_SUBSCRIPTION_ID="")

        assert settings.DEFAULT_ANALYSIS_DAYS == 30
        assert settings.SUBSCRIPTION_ANALYSIS_UTILIZATION == 45.0
        assert settings.azure_enabled is False

    def test_azure_enabled_with_subscription(self):
        """Test Azure is enabled once a subscription ID is set."""
        settings = Settings(AZURE_SUBSCRIPTION_ID="abcdef12-3456-7890-abcd-ef1234567890")

        assert settings.azure_enabled is True

    def test_carbon_region_trimmed(self):
        """Test the carbon region is trimmed."""
        assert Settings(CARBON_REGION="  North Europe ").CARBON_REGION == "North Europe"

    def test_blank_carbon_region_rejected(self):
        """Test a blank carbon region is rejected."""
        with pytest.raises(ValidationError):
            Settings(CARBON_REGION="   ")
