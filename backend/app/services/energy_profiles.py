"""Static power-draw and grid-intensity tables used by the energy model."""

from types import MappingProxyType
from typing import Mapping

# App Service plan SKU -> equivalent VM size
SKU_TO_VM_SIZE: Mapping[str, str] = MappingProxyType(
    {
        # Basic
        "B1": "Standard_B1ms",
        "B2": "Standard_B2ms",
        "B3": "Standard_B4ms",
        # Standard
        "S1": "Standard_B2ms",
        "S2": "Standard_D2_v3",
        "S3": "Standard_D4_v3",
        # Premium V1
        "P1": "Standard_D2_v3",
        "P2": "Standard_D4_v3",
        "P3": "Standard_D8_v3",
        # Premium V2
        "P1V2": "Standard_D2_v3",
        "P2V2": "Standard_D4_v3",
        "P3V2": "Standard_D8_v3",
        # Premium V3
        "P1V3": "Standard_D2_v3",
        "P2V3": "Standard_D4_v3",
        "P3V3": "Standard_D8_v3",
        # Isolated
        "I1": "Standard_D4_v3",
        "I2": "Standard_D8_v3",
        "I3": "Standard_D16_v3",
        # Generic tier names (pattern-matched plans)
        "PREMIUM": "Standard_D4_v3",
        "STANDARD": "Standard_D2_v3",
        "BASIC": "Standard_B2ms",
    }
)

# VM size -> nominal TDP in watts
VM_SIZE_TDP_WATTS: Mapping[str, float] = MappingProxyType(
    {
        # B-series (burstable)
        "Standard_B1s": 25.0,
        "Standard_B1ms": 35.0,
        "Standard_B2s": 50.0,
        "Standard_B2ms": 65.0,
        "Standard_B4ms": 130.0,
        "Standard_B8ms": 260.0,
        # D-series (general purpose)
        "Standard_D2_v3": 85.0,
        "Standard_D4_v3": 170.0,
        "Standard_D8_v3": 340.0,
        "Standard_D16_v3": 680.0,
        # F-series (compute optimized)
        "Standard_F2s_v2": 95.0,
        "Standard_F4s_v2": 190.0,
        "Standard_F8s_v2": 380.0,
        # E-series (memory optimized)
        "Standard_E2_v3": 100.0,
        "Standard_E4_v3": 200.0,
        "Standard_E8_v3": 400.0,
        # Legacy A-series
        "Standard_A1": 40.0,
        "Standard_A2": 80.0,
        "Standard_A4": 160.0,
    }
)

DEFAULT_TDP_WATTS = 85.0

# Size digit -> watts, checked in order for VM sizes missing from the table
SIZE_DIGIT_WATTS: tuple[tuple[str, float], ...] = (
    ("8", 340.0),
    ("4", 170.0),
    ("2", 85.0),
    ("1", 35.0),
)

# Function apps: baseline host + utilization-scaled execution
FUNCTION_APP_BASELINE_WATTS = 20.0
FUNCTION_APP_EXECUTION_WATTS = 50.0

# Service Bus namespaces: baseline + utilization-scaled message processing
SERVICE_BUS_BASELINE_WATTS = 15.0
SERVICE_BUS_PROCESSING_WATTS = 25.0

DATABASE_TIER_WATTS: Mapping[str, float] = MappingProxyType(
    {
        "Basic": 30.0,
        "Standard": 75.0,
        "Premium": 150.0,
        "Hyperscale": 200.0,
    }
)

DEFAULT_DATABASE_WATTS = 75.0

# Shared infrastructure, keyed by profile name (category or network sub-kind)
SHARED_RESOURCE_WATTS: Mapping[str, float] = MappingProxyType(
    {
        "Storage": 25.0,
        "Redis": 45.0,
        "KeyVault": 5.0,
        "Monitoring": 15.0,
        "ServiceBus": 30.0,
        "Database": 120.0,  # Cosmos DB class throughput
        "CDN": 20.0,
        "LoadBalancer": 35.0,
        "Network": 10.0,
        "VirtualNetwork": 10.0,
        "NSG": 8.0,
        "PublicIP": 3.0,
        "TrafficManager": 12.0,
    }
)

DEFAULT_SHARED_WATTS = 40.0

# Grid carbon intensity (kg CO2 per kWh) by Azure region display name
GRID_INTENSITY_KG_PER_KWH: Mapping[str, float] = MappingProxyType(
    {
        "West Europe": 0.24,
        "North Europe": 0.18,
        "East US": 0.45,
        "West US": 0.35,
        "Southeast Asia": 0.65,
        "Australia East": 0.85,
        "UK South": 0.22,
        "Germany West Central": 0.38,
        "France Central": 0.06,
        "Japan East": 0.52,
        "Brazil South": 0.12,
        "Canada Central": 0.15,
        "Norway East": 0.02,
    }
)

DEFAULT_GRID_INTENSITY = 0.30  # Global average

# Region suggested by the migration recommendation
LOW_CARBON_REGION = "France Central"

# Coarse per-day constants for subscription-wide analysis (kWh per resource-day)
SUBSCRIPTION_KWH_PER_DAY: Mapping[str, float] = MappingProxyType(
    {
        "AppService": 0.1,
        "Storage": 0.02,
        "ServiceBus": 0.05,
    }
)

KEY_VAULT_KWH_PER_DAY = 0.01


def normalize_region(region: str) -> str:
    """Map 'westeurope' / 'west-europe' style names onto table keys."""
    compact = region.replace(" ", "").replace("-", "").replace("_", "").lower()
    for known in GRID_INTENSITY_KG_PER_KWH:
        if known.replace(" ", "").lower() == compact:
            return known
    return region


def get_grid_intensity(region: str | None) -> float:
    """
    Get grid carbon intensity for a region.

    Args:
        region: Region display name ("West Europe") or ARM name ("westeurope")

    Returns:
        kg CO2 per kWh, the global average for unknown regions
    """
    if not region:
        return DEFAULT_GRID_INTENSITY
    return GRID_INTENSITY_KG_PER_KWH.get(normalize_region(region), DEFAULT_GRID_INTENSITY)


def get_vm_size_for_sku(sku: str) -> str | None:
    """Map an App Service plan SKU (e.g. 'P1v3') onto an equivalent VM size."""
    return SKU_TO_VM_SIZE.get(sku.strip().upper())


def get_nominal_tdp(vm_size: str) -> float:
    """
    Get nominal TDP for a VM size.

    Unknown sizes are estimated from the core-count digit in the name before
    falling back to the generic mid-size default.
    """
    if vm_size in VM_SIZE_TDP_WATTS:
        return VM_SIZE_TDP_WATTS[vm_size]

    for digit, watts in SIZE_DIGIT_WATTS:
        if digit in vm_size:
            return watts

    return DEFAULT_TDP_WATTS


def get_app_service_watts(tier: str | None) -> float:
    """
    Get nominal watts for an App Service plan tier.

    Known tiers go through their VM-equivalent size; unknown tier tokens are
    sized by the digit heuristic of get_nominal_tdp.
    """
    if not tier:
        return DEFAULT_TDP_WATTS

    vm_size = get_vm_size_for_sku(tier)
    if vm_size is None:
        return get_nominal_tdp(tier.strip().upper())
    return get_nominal_tdp(vm_size)


def get_database_watts(tier: str | None) -> float:
    """Get equivalent wattage for a database tier label."""
    if not tier:
        return DEFAULT_DATABASE_WATTS
    return DATABASE_TIER_WATTS.get(tier.strip().capitalize(), DEFAULT_DATABASE_WATTS)


def get_shared_watts(profile: str) -> float:
    """Get fixed wattage for a shared infrastructure profile."""
    return SHARED_RESOURCE_WATTS.get(profile, DEFAULT_SHARED_WATTS)
