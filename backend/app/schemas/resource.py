"""Resource discovery Pydantic schemas."""

from typing import Any

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.energy import CamelModel


class ResourceInfo(CamelModel):
    """A discovered resource."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    type: str
    resource_group_name: str
    location: str = ""
    tags: dict[str, str] = Field(default_factory=dict)
    kind: str | None = None


class ResourceGroupInfo(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    name: str
    location: str = ""
    tags: dict[str, str] = Field(default_factory=dict)
    resources: list[ResourceInfo] = Field(default_factory=list)


class MicroserviceInfo(CamelModel):
    """A discovered microservice and its resources by role."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    name: str
    resource_group_name: str
    app_services: list[ResourceInfo] = Field(default_factory=list)
    function_apps: list[ResourceInfo] = Field(default_factory=list)
    service_bus: list[ResourceInfo] = Field(default_factory=list)
    databases: list[ResourceInfo] = Field(default_factory=list)
    storage_accounts: list[ResourceInfo] = Field(default_factory=list)
    other: list[ResourceInfo] = Field(default_factory=list)
    total_resource_count: int = 0


class ConnectionTestResponse(CamelModel):
    connected: bool
    subscription_id: str | None = None
    message: str


class DataSourceFlags(CamelModel):
    """Marks listings built from the built-in demo estate."""

    used_mock_data: bool = False
    warning: str | None = None


class ResourcesByTypeResponse(DataSourceFlags):
    """All resources grouped by resource type."""

    total_resources: int
    resource_types: int
    resources_by_type: dict[str, list[ResourceInfo]]


class ResourceGroupsResponse(DataSourceFlags):
    count: int
    resource_groups: list[ResourceGroupInfo]


class MicroservicesResponse(DataSourceFlags):
    count: int
    microservices: list[MicroserviceInfo]


class SharedResourcesResponse(DataSourceFlags):
    count: int
    resources: list[ResourceInfo]


class DiscoverySummaryResponse(DataSourceFlags):
    subscription: dict[str, Any]
    microservices: dict[str, Any]
    shared_infrastructure: dict[str, Any]
    resource_types: list[dict[str, Any]]
