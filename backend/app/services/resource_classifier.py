"""Resource classification: identifier -> (category, tier) via ordered rule tables."""

import asyncio
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, NamedTuple, TypeVar

import structlog

from app.core.config import settings
from app.providers.base import (
    ResourceLookupError,
    ResourceProviderBase,
    name_suggests_function_app,
)
from app.services.lookup_cache import ResourceLookupCache

logger = structlog.get_logger()

T = TypeVar("T")


class ResourceCategory(str, Enum):
    """Semantic category of a resource for energy estimation."""

    APP_SERVICE = "AppService"
    FUNCTION_APP = "FunctionApp"
    SERVICE_BUS = "ServiceBus"
    DATABASE = "Database"
    STORAGE = "Storage"
    REDIS = "Redis"
    KEY_VAULT = "KeyVault"
    MONITORING = "Monitoring"
    CDN = "CDN"
    LOAD_BALANCER = "LoadBalancer"
    NETWORK = "Network"
    OTHER = "Other"


class ClassificationResult(NamedTuple):
    category: ResourceCategory
    tier: str | None = None


class TierRule(NamedTuple):
    tokens: tuple[str, ...]
    tier: str


# (resource type, category, tier) - exact match on the lowercased type
RESOURCE_TYPE_RULES: tuple[tuple[str, ResourceCategory, str | None], ...] = (
    ("microsoft.web/sites", ResourceCategory.APP_SERVICE, None),
    ("microsoft.web/serverfarms", ResourceCategory.APP_SERVICE, None),
    ("microsoft.servicebus/namespaces", ResourceCategory.SERVICE_BUS, None),
    ("microsoft.sql/servers", ResourceCategory.DATABASE, None),
    ("microsoft.sql/servers/databases", ResourceCategory.DATABASE, None),
    ("microsoft.documentdb/databaseaccounts", ResourceCategory.DATABASE, None),
    ("microsoft.storage/storageaccounts", ResourceCategory.STORAGE, None),
    ("microsoft.cache/redis", ResourceCategory.REDIS, None),
    ("microsoft.keyvault/vaults", ResourceCategory.KEY_VAULT, None),
    ("microsoft.insights/components", ResourceCategory.MONITORING, None),
    ("microsoft.operationalinsights/workspaces", ResourceCategory.MONITORING, None),
    ("microsoft.cdn/profiles", ResourceCategory.CDN, None),
    ("microsoft.network/loadbalancers", ResourceCategory.LOAD_BALANCER, None),
    ("microsoft.network/virtualnetworks", ResourceCategory.NETWORK, "VirtualNetwork"),
    ("microsoft.network/networksecuritygroups", ResourceCategory.NETWORK, "NSG"),
    ("microsoft.network/publicipaddresses", ResourceCategory.NETWORK, "PublicIP"),
    ("microsoft.network/trafficmanagerprofiles", ResourceCategory.NETWORK, "TrafficManager"),
)

# (substring, category, tier) - matched against the provider part of the identifier.
# Specific network kinds come before the generic namespace.
PROVIDER_SUBSTRING_RULES: tuple[tuple[str, ResourceCategory, str | None], ...] = (
    ("microsoft.storage", ResourceCategory.STORAGE, None),
    ("storageaccounts", ResourceCategory.STORAGE, None),
    ("microsoft.cache", ResourceCategory.REDIS, None),
    ("redis", ResourceCategory.REDIS, None),
    ("microsoft.keyvault", ResourceCategory.KEY_VAULT, None),
    ("microsoft.operationalinsights", ResourceCategory.MONITORING, None),
    ("microsoft.insights", ResourceCategory.MONITORING, None),
    ("microsoft.servicebus", ResourceCategory.SERVICE_BUS, None),
    ("microsoft.documentdb", ResourceCategory.DATABASE, None),
    ("cosmos", ResourceCategory.DATABASE, None),
    ("microsoft.sql", ResourceCategory.DATABASE, None),
    ("microsoft.cdn", ResourceCategory.CDN, None),
    ("loadbalancers", ResourceCategory.LOAD_BALANCER, None),
    ("networksecuritygroups", ResourceCategory.NETWORK, "NSG"),
    ("publicipaddresses", ResourceCategory.NETWORK, "PublicIP"),
    ("trafficmanager", ResourceCategory.NETWORK, "TrafficManager"),
    ("virtualnetworks", ResourceCategory.NETWORK, "VirtualNetwork"),
    ("microsoft.network", ResourceCategory.NETWORK, None),
    ("microsoft.web", ResourceCategory.APP_SERVICE, None),
)

# First match wins
APP_SERVICE_TIER_RULES: tuple[TierRule, ...] = (
    TierRule(("p3v3", "p3-v3", "p3_v3", "premium-v3-large"), "P3V3"),
    TierRule(("p2v3", "p2-v3", "p2_v3"), "P2V3"),
    TierRule(("p1v3", "p1-v3", "p1_v3"), "P1V3"),
    TierRule(("p3v2", "p3-v2", "p3_v2"), "P3V2"),
    TierRule(("p2v2", "p2-v2", "p2_v2", "premium-v2-medium"), "P2V2"),
    TierRule(("p1v2", "p1-v2", "p1_v2", "premium-v1-small"), "P1V2"),
    TierRule(("s3", "standard-large", "standard_s3"), "S3"),
    TierRule(("s2", "standard-medium", "standard_s2"), "S2"),
    TierRule(("s1", "standard-small", "standard_s1"), "S1"),
    TierRule(("b3", "basic-large", "basic_b3"), "B3"),
    TierRule(("b2", "basic-medium", "basic_b2"), "B2"),
    TierRule(("b1", "basic-small", "basic_b1"), "B1"),
    TierRule(("premium",), "Premium"),
    TierRule(("standard",), "Standard"),
    TierRule(("basic",), "Basic"),
)

DATABASE_TIER_RULES: tuple[TierRule, ...] = (
    TierRule(("hyperscale",), "Hyperscale"),
    TierRule(("premium",), "Premium"),
    TierRule(("standard",), "Standard"),
    TierRule(("basic",), "Basic"),
)

DEFAULT_APP_SERVICE_TIER = "S1"
DEFAULT_DATABASE_TIER = "Standard"

_SUBSCRIPTION_PREFIX = re.compile(r"^/?subscriptions/[^/]+", re.IGNORECASE)


def strip_subscription(resource_id: str) -> str:
    """Drop the '/subscriptions/{id}' prefix so GUID hex never matches tier tokens."""
    return _SUBSCRIPTION_PREFIX.sub("", resource_id.strip())


def resource_type_from_id(resource_id: str) -> str | None:
    """
    Read 'Namespace/type[/subtype]' from an identifier.

    '/subscriptions/x/resourceGroups/rg/providers/Microsoft.Web/sites/app'
    gives 'Microsoft.Web/sites'.
    """
    parts = [p for p in resource_id.split("/") if p]
    lowered = [p.lower() for p in parts]
    if "providers" not in lowered:
        return None

    index = len(lowered) - 1 - lowered[::-1].index("providers")
    tail = parts[index + 1 :]
    if len(tail) < 2:
        return None

    namespace, segments = tail[0], tail[1:]
    # Segments alternate type/name: take every type segment
    types = segments[0::2]
    return "/".join([namespace, *types])


def friendly_name(resource_id: str) -> str:
    """Last path segment of an identifier with '-' and '_' replaced by spaces."""
    segments = [s for s in resource_id.strip().split("/") if s]
    last = segments[-1] if segments else resource_id
    return last.replace("-", " ").replace("_", " ")


def match_tier(text: str, rules: tuple[TierRule, ...]) -> str | None:
    """Return the tier of the first rule with a token found in ``text``."""
    lowered = text.lower()
    for rule in rules:
        if any(token in lowered for token in rule.tokens):
            return rule.tier
    return None


def match_category(
    resource_id: str,
    type_hint: str | None = None,
    name: str | None = None,
    tags: dict[str, str] | None = None,
    kind: str | None = None,
) -> ClassificationResult:
    """
    Resolve a category without external calls.

    Order: exact type match (from the hint or the identifier), then provider
    substring rules, then Other. Web sites become function apps when their
    kind, name or tags say so.
    """
    resource_type = (type_hint or resource_type_from_id(resource_id) or "").lower()

    for rule_type, category, tier in RESOURCE_TYPE_RULES:
        if resource_type == rule_type:
            if resource_type == "microsoft.web/sites" and _looks_like_function_app(
                resource_id, name, tags, kind
            ):
                return ClassificationResult(ResourceCategory.FUNCTION_APP)
            return ClassificationResult(category, tier)

    haystack = strip_subscription(resource_id).lower()
    provider_index = haystack.rfind("/providers/")
    if provider_index >= 0:
        haystack = haystack[provider_index:]
    if resource_type:
        haystack = f"{resource_type} {haystack}"

    for substring, category, tier in PROVIDER_SUBSTRING_RULES:
        if substring in haystack:
            return ClassificationResult(category, tier)

    return ClassificationResult(ResourceCategory.OTHER)


def _looks_like_function_app(
    resource_id: str,
    name: str | None,
    tags: dict[str, str] | None,
    kind: str | None,
) -> bool:
    if kind and "functionapp" in kind.lower():
        return True

    site_name = name or (resource_id.rstrip("/").split("/")[-1] if resource_id else "")
    if name_suggests_function_app(site_name):
        return True

    for key, value in (tags or {}).items():
        text = f"{key} {value or ''}".lower()
        if "function" in text or "worker" in text:
            return True
    return False


def sku_cache_key(category: ResourceCategory, resource_id: str) -> str:
    """App Service plan SKUs and database tiers are cached separately per identifier."""
    return f"{category.value}:{resource_id}"


class ResourceClassifier:
    """
    Classify resources and resolve their tiers and creation dates.

    Tier and creation-date lookups go to the injected resource provider once
    per identifier (results, including failures, are cached). Every failure
    degrades to pattern matching or defaults; nothing is raised to callers.
    """

    def __init__(
        self,
        provider: ResourceProviderBase | None,
        cache: ResourceLookupCache | None = None,
        lookup_timeout: float | None = None,
    ):
        self.provider = provider
        self.cache = cache or ResourceLookupCache()
        self.lookup_timeout = (
            lookup_timeout if lookup_timeout is not None else settings.AZURE_LOOKUP_TIMEOUT_SECONDS
        )

    async def classify(
        self,
        resource_id: str,
        type_hint: str | None = None,
        name: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> ClassificationResult:
        """
        Classify one resource.

        Args:
            resource_id: Resource identifier (any string is accepted)
            type_hint: Resource type when known from discovery
            name: Resource name when known from discovery
            tags: Resource tags when known from discovery

        Returns:
            Category and tier label (tier only for AppService, Database and
            network sub-kinds)
        """
        result = match_category(resource_id, type_hint=type_hint, name=name, tags=tags)

        if result.category in (ResourceCategory.APP_SERVICE, ResourceCategory.DATABASE):
            tier = await self.resolve_tier(resource_id, result.category)
            return ClassificationResult(result.category, tier)

        return result

    async def resolve_tier(self, resource_id: str, category: ResourceCategory) -> str:
        """
        Resolve the effective tier of an App Service or database.

        The actual SKU from the provider wins; otherwise the identifier is
        pattern-matched, then the conservative default applies.
        """
        if category == ResourceCategory.DATABASE:
            lookup = self.provider.get_database_sku_tier if self.provider else None
            rules, default = DATABASE_TIER_RULES, DEFAULT_DATABASE_TIER
        else:
            lookup = self.provider.get_app_service_plan_sku if self.provider else None
            rules, default = APP_SERVICE_TIER_RULES, DEFAULT_APP_SERVICE_TIER

        actual = None
        if lookup is not None:
            actual = await self.cache.skus.get_or_compute(
                sku_cache_key(category, resource_id),
                lambda: self._safe_lookup("sku", lookup, resource_id),
            )

        if actual:
            if category == ResourceCategory.DATABASE:
                tier = actual.strip().capitalize()
            else:
                tier = actual.strip().upper()
            logger.debug(
                "classifier.tier_resolved", resource_id=resource_id, tier=tier, source="provider"
            )
            return tier

        tier = match_tier(strip_subscription(resource_id), rules)
        if tier:
            logger.debug(
                "classifier.tier_resolved", resource_id=resource_id, tier=tier, source="pattern"
            )
            return tier

        logger.debug("classifier.tier_defaulted", resource_id=resource_id, tier=default)
        return default

    async def resolve_creation_date(self, resource_id: str) -> datetime | None:
        """Get a resource's creation date (UTC) or None when it cannot be determined."""
        if self.provider is None:
            return None

        created = await self.cache.creation_dates.get_or_compute(
            resource_id,
            lambda: self._safe_lookup("creation_date", self.provider.get_creation_date, resource_id),
        )
        if created is not None and created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return created

    async def _safe_lookup(
        self,
        what: str,
        lookup: Callable[[str], Awaitable[T | None]],
        resource_id: str,
    ) -> T | None:
        try:
            return await asyncio.wait_for(lookup(resource_id), timeout=self.lookup_timeout)
        except (ResourceLookupError, asyncio.TimeoutError) as e:
            logger.warning(
                "classifier.lookup_failed",
                lookup=what,
                resource_id=resource_id,
                error=str(e) or type(e).__name__,
            )
        except Exception as e:
            logger.warning(
                "classifier.lookup_unexpected_error",
                lookup=what,
                resource_id=resource_id,
                error=str(e),
                exc_info=True,
            )
        return None
