"""
WorkForce - Feature Flags Service

Service for checking feature access based on subscription tier.
Implements the tier gate for both client routes and API endpoints.

Tier mapping:
- FREE: no premium features
- SOLO: scheduling, financial tracking, personal vault, standard analytics
- BUSINESS: everything in SOLO plus branding studio, employee management,
  AI coaching, org-wide vault and white-label communication
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Set
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import Organization
from app.models.tier_enums import Feature, Tier

logger = logging.getLogger(__name__)


# =============================================================================
# FEATURE TIER MAPPING
# =============================================================================

SOLO_FEATURES: FrozenSet[Feature] = frozenset({
    Feature.ADVANCED_SCHEDULING,
    Feature.FINANCIAL_TRACKING,
    Feature.PERSONAL_VAULT,
    Feature.STANDARD_ANALYTICS,
})

BUSINESS_FEATURES: FrozenSet[Feature] = SOLO_FEATURES | frozenset({
    Feature.BRANDING_STUDIO,
    Feature.EMPLOYEE_MANAGEMENT,
    Feature.AI_COACHING,
    Feature.ORG_VAULT,
    Feature.WHITE_LABEL_COMMUNICATION,
})

# Which features are available at each tier
TIER_FEATURES: Dict[Tier, FrozenSet[Feature]] = {
    Tier.FREE: frozenset(),
    Tier.SOLO: SOLO_FEATURES,
    Tier.BUSINESS: BUSINESS_FEATURES,
}

# Lowest to highest
TIER_ORDER: List[Tier] = [Tier.FREE, Tier.SOLO, Tier.BUSINESS]


# =============================================================================
# PLAN CATALOGUE (shown on the upgrade prompt)
# =============================================================================

@dataclass(frozen=True)
class PlanInfo:
    """A purchasable plan."""
    tier: Tier
    name: str
    monthly_price_usd: int
    highlights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "name": self.name,
            "monthly_price_usd": self.monthly_price_usd,
            "highlights": list(self.highlights),
        }


PLAN_CATALOG: List[PlanInfo] = [
    PlanInfo(
        tier=Tier.SOLO,
        name="Solo",
        monthly_price_usd=40,
        highlights=[
            "Advanced Scheduling",
            "Financial Tracking",
            "Personal Digital Vault",
            "Standard Analytics",
        ],
    ),
    PlanInfo(
        tier=Tier.BUSINESS,
        name="Business",
        monthly_price_usd=70,
        highlights=[
            "Full Branding Studio",
            "Employee Management",
            "Aegis AI Coaching",
            "Org-wide Digital Vault",
            "White-label Communication",
        ],
    ),
]


# =============================================================================
# ROUTE GATING CONFIGURATION
# =============================================================================

UPGRADE_ROUTE = "/upgrade-required"
DEFAULT_RETURN_TO = "/dashboard"


@dataclass(frozen=True)
class RouteGate:
    """Feature required to open a client route (and everything below it)."""
    path_prefix: str
    feature: Feature
    description: str = ""


# Longest prefix wins, so nested routes may demand a higher tier than their parent
ROUTE_GATES: List[RouteGate] = [
    RouteGate("/schedule", Feature.ADVANCED_SCHEDULING, "Scheduling requires the Solo plan"),
    RouteGate("/clients", Feature.ADVANCED_SCHEDULING, "Client management requires the Solo plan"),
    RouteGate("/services", Feature.ADVANCED_SCHEDULING, "Service catalogue requires the Solo plan"),
    RouteGate("/financials", Feature.FINANCIAL_TRACKING, "Financial tracking requires the Solo plan"),
    RouteGate("/analytics", Feature.STANDARD_ANALYTICS, "Analytics requires the Solo plan"),
    RouteGate("/vault", Feature.PERSONAL_VAULT, "The digital vault requires the Solo plan"),
    RouteGate("/vault/organization", Feature.ORG_VAULT, "The org-wide vault requires the Business plan"),
    RouteGate("/employees", Feature.EMPLOYEE_MANAGEMENT, "Employee management requires the Business plan"),
    RouteGate("/aegis-ai", Feature.AI_COACHING, "Aegis AI coaching requires the Business plan"),
    RouteGate("/branding", Feature.BRANDING_STUDIO, "The branding studio requires the Business plan"),
    RouteGate("/white-label", Feature.WHITE_LABEL_COMMUNICATION, "White-label communication requires the Business plan"),
]

# Routes every signed-in tier may open
OPEN_ROUTES: List[str] = [
    "/dashboard",
    "/profile",
    "/my-bookings",
    "/settings",
    UPGRADE_ROUTE,
]


# =============================================================================
# EXCEPTIONS AND RESULTS
# =============================================================================

class FeatureAccessDenied(Exception):
    """Raised when a feature is not available for the organization's tier."""

    def __init__(
        self,
        feature: Feature,
        current_tier: Tier,
        required_tier: Optional[Tier] = None,
    ):
        self.feature = feature
        self.current_tier = current_tier
        self.required_tier = required_tier

        if required_tier:
            message = (
                f"Feature '{feature.value}' requires the {required_tier.value.title()} plan. "
                f"Current plan: {current_tier.value.title()}. Upgrade to access this feature."
            )
        else:
            message = f"Feature '{feature.value}' is not available on your current plan."

        super().__init__(message)


@dataclass
class AccessDecision:
    """Outcome of a navigation attempt."""
    allowed: bool
    path: str
    tier: Tier
    feature: Optional[Feature] = None
    required_tier: Optional[Tier] = None
    redirect_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "allowed": self.allowed,
            "path": self.path,
            "tier": self.tier.value,
        }
        if not self.allowed:
            result.update({
                "feature": self.feature.value if self.feature else None,
                "required_tier": self.required_tier.value if self.required_tier else None,
                "redirect_to": self.redirect_to,
                "state": {"from": self.path},
            })
        return result


# =============================================================================
# PURE HELPERS
# =============================================================================

def get_tier_features(tier: Tier) -> FrozenSet[Feature]:
    """Get all features for a tier."""
    return TIER_FEATURES.get(tier, frozenset())


def tier_allows(tier: Tier, feature: Feature) -> bool:
    """Access is granted iff the feature is in the tier's feature set."""
    return feature in get_tier_features(tier)


def feature_requires_tier(feature: Feature) -> Optional[Tier]:
    """Get the minimum tier required for a feature."""
    for tier in TIER_ORDER:
        if feature in TIER_FEATURES[tier]:
            return tier
    return None


def tier_rank(tier: Tier) -> int:
    """Numeric rank of a tier for comparison."""
    return TIER_ORDER.index(tier)


def _normalize_path(path: str) -> str:
    path = "/" + path.strip().lstrip("/")
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def find_route_gate(path: str) -> Optional[RouteGate]:
    """Most specific gate covering ``path``, or None for ungated routes."""
    path = _normalize_path(path)
    matches = [gate for gate in ROUTE_GATES if _matches(path, gate.path_prefix)]
    if not matches:
        return None
    return max(matches, key=lambda gate: len(gate.path_prefix))


def build_upgrade_redirect(requested_path: str) -> str:
    """Upgrade-prompt URL carrying the originally requested destination."""
    return f"{UPGRADE_ROUTE}?{urlencode({'from': requested_path})}"


def resolve_return_to(from_path: Optional[str]) -> str:
    """
    Where to resume after an upgrade.

    Only in-app absolute paths are honoured, anything else falls back to
    the dashboard.
    """
    if not from_path or not from_path.startswith("/") or from_path.startswith("//"):
        return DEFAULT_RETURN_TO
    if _matches(_normalize_path(from_path.split("?")[0]), UPGRADE_ROUTE):
        return DEFAULT_RETURN_TO
    return from_path


def decide_access(tier: Tier, path: str) -> AccessDecision:
    """Allow or deny navigation to ``path`` for an organization on ``tier``."""
    gate = find_route_gate(path)
    if gate is None or tier_allows(tier, gate.feature):
        return AccessDecision(allowed=True, path=path, tier=tier, feature=gate.feature if gate else None)

    return AccessDecision(
        allowed=False,
        path=path,
        tier=tier,
        feature=gate.feature,
        required_tier=feature_requires_tier(gate.feature),
        redirect_to=build_upgrade_redirect(path),
    )


def get_upgrade_recommendation(current_tier: Tier, denied_feature: Feature) -> Dict[str, Any]:
    """
    Get upgrade recommendation when a feature is denied.
    Useful for showing users what they need to upgrade to.
    """
    required_tier = feature_requires_tier(denied_feature)
    recommendation: Dict[str, Any] = {
        "current_tier": current_tier.value,
        "denied_feature": denied_feature.value,
        "recommendation": None,
        "monthly_price_usd": None,
    }

    if required_tier and tier_rank(required_tier) > tier_rank(current_tier):
        plan = next(p for p in PLAN_CATALOG if p.tier == required_tier)
        recommendation["recommendation"] = f"Upgrade to {plan.name}"
        recommendation["required_tier"] = required_tier.value
        recommendation["monthly_price_usd"] = plan.monthly_price_usd

    return recommendation


# =============================================================================
# SERVICE
# =============================================================================

class FeatureFlagService:
    """
    Service for checking feature availability for an organization.

    Usage:
        service = FeatureFlagService(db)

        if await service.has_feature(org_id, Feature.ADVANCED_SCHEDULING):
            ...

        await service.require_feature(org_id, Feature.EMPLOYEE_MANAGEMENT)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_organization(self, organization_id: UUID) -> Optional[Organization]:
        result = await self.db.execute(
            select(Organization).where(Organization.id == organization_id)
        )
        return result.scalar_one_or_none()

    async def get_effective_tier(self, organization_id: Optional[UUID]) -> Tier:
        """
        The organization's tier, FREE when there is no organization yet.

        The tier column is the only input; subscription status is synced into
        it by the billing webhook.
        """
        if organization_id is None:
            return Tier.FREE
        organization = await self.get_organization(organization_id)
        if organization is None:
            return Tier.FREE
        return organization.tier

    async def get_enabled_features(self, organization_id: Optional[UUID]) -> Set[Feature]:
        tier = await self.get_effective_tier(organization_id)
        return set(get_tier_features(tier))

    async def has_feature(self, organization_id: Optional[UUID], feature: Feature) -> bool:
        tier = await self.get_effective_tier(organization_id)
        return tier_allows(tier, feature)

    async def require_feature(self, organization_id: Optional[UUID], feature: Feature) -> None:
        """
        Require a feature, raising FeatureAccessDenied if not available.
        """
        tier = await self.get_effective_tier(organization_id)
        if not tier_allows(tier, feature):
            logger.info(
                f"Feature {feature.value} denied for organization {organization_id} (tier={tier.value})"
            )
            raise FeatureAccessDenied(
                feature=feature,
                current_tier=tier,
                required_tier=feature_requires_tier(feature),
            )

    async def resolve_navigation(self, organization_id: Optional[UUID], path: str) -> AccessDecision:
        tier = await self.get_effective_tier(organization_id)
        decision = decide_access(tier, path)
        if not decision.allowed:
            logger.debug(f"Navigation to {path} redirected for tier {tier.value}")
        return decision
