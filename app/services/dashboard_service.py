"""
WorkForce - Dashboard Service

Provides dashboard data for the four role-scoped views:
1. Associate - personal commission earnings
2. Department Head - team efficiency leaderboard
3. Store Manager - daily sales, labor and P&L estimate
4. Executive - multi-store comparison and forecast

Every view returns cards, one chart and one table/list.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus, OPEN_BOOKING_STATUSES
from app.models.tier_enums import ProfileRole
from app.models.user import Profile

logger = logging.getLogger(__name__)


# ===========================================
# VIEW CONSTANTS
# ===========================================

COMMISSION_RATE = Decimal("0.15")
ESTIMATED_LABOR_PERCENT = Decimal("28.5")
COGS_RATE = Decimal("0.15")
CUSTOMER_SATISFACTION = 5.0
RECENT_COMMISSIONS_LIMIT = 3
CHART_DAYS = 7
UNASSIGNED_DEPARTMENT = "Unassigned"

STORE_COMPARISON = [
    {"name": "North Store", "revenue": 45000, "profit": 12000, "labor": 28},
    {"name": "South Store", "revenue": 38000, "profit": 8500, "labor": 32},
    {"name": "East Store", "revenue": 52000, "profit": 15400, "labor": 25},
    {"name": "West Store", "revenue": 31000, "profit": 4200, "labor": 38},
]

REVENUE_FORECAST = [
    {"month": "Jan", "actual": 120000, "forecast": 115000},
    {"month": "Feb", "actual": 132000, "forecast": 128000},
    {"month": "Mar", "actual": 145000, "forecast": 140000},
    {"month": "Apr", "actual": 138000, "forecast": 142000},
    {"month": "May", "actual": 155000, "forecast": 150000},
    {"month": "Jun", "actual": 166000, "forecast": 162000},
    {"month": "Jul", "actual": None, "forecast": 175000},
    {"month": "Aug", "actual": None, "forecast": 182000},
    {"month": "Sep", "actual": None, "forecast": 178000},
]


class DashboardRole(str, Enum):
    """The four dashboard variants."""
    ASSOCIATE = "associate"
    DEPARTMENT_HEAD = "department_head"
    STORE_MANAGER = "store_manager"
    EXECUTIVE = "executive"


# Client profiles have no dashboard
PROFILE_DASHBOARD_ROLES: Dict[ProfileRole, DashboardRole] = {
    ProfileRole.SUPER_ADMIN: DashboardRole.EXECUTIVE,
    ProfileRole.DISTRICT_MANAGER: DashboardRole.EXECUTIVE,
    ProfileRole.STORE_MANAGER: DashboardRole.STORE_MANAGER,
    ProfileRole.DEPARTMENT_MANAGER: DashboardRole.DEPARTMENT_HEAD,
    ProfileRole.ASSOCIATE: DashboardRole.ASSOCIATE,
}


# Every variant must have a builder
VIEW_BUILDERS: Dict[DashboardRole, str] = {
    DashboardRole.ASSOCIATE: "get_associate_dashboard",
    DashboardRole.DEPARTMENT_HEAD: "get_department_head_dashboard",
    DashboardRole.STORE_MANAGER: "get_store_manager_dashboard",
    DashboardRole.EXECUTIVE: "get_executive_dashboard",
}

_unbuilt = set(DashboardRole) - set(VIEW_BUILDERS)
if _unbuilt:
    raise RuntimeError(f"No dashboard builder for: {sorted(r.value for r in _unbuilt)}")


def dashboard_role_for(role: ProfileRole) -> DashboardRole:
    """
    Map a profile role to its dashboard variant.

    Raises:
        PermissionError: If the role has no dashboard
    """
    try:
        return PROFILE_DASHBOARD_ROLES[role]
    except KeyError:
        raise PermissionError(f"No dashboard is available for the {role.value} role")


def classify_efficiency(score: float) -> str:
    """Leaderboard label for an efficiency score."""
    if score > 90:
        return "Excellent"
    if score > 80:
        return "Good"
    return "Review"


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_week(today: date) -> date:
    """Most recent Sunday (weeks start on Sunday)."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


class DashboardService:
    """Service for generating role-scoped dashboard data."""

    def __init__(self, db: AsyncSession, now: Optional[datetime] = None):
        self.db = db
        self.now = _as_utc(now) if now else datetime.now(timezone.utc)

    # ===========================================
    # UNIFIED DASHBOARD ENTRY POINT
    # ===========================================

    async def get_dashboard(self, profile: Profile) -> Dict[str, Any]:
        """
        Get the dashboard variant for the profile's role.
        """
        view = dashboard_role_for(profile.role)
        builder: Callable[[Profile], Awaitable[Dict[str, Any]]] = getattr(self, VIEW_BUILDERS[view])
        dashboard = await builder(profile)
        return {"view": view.value, **dashboard}

    # ===========================================
    # VARIANTS
    # ===========================================

    async def get_associate_dashboard(self, profile: Profile) -> Dict[str, Any]:
        """Commission earnings for the signed-in associate."""
        bookings = await self._get_bookings(employee_ids=[profile.id])
        week_start = start_of_week(self.now.date())

        this_week = [
            b for b in bookings
            if _as_utc(b.booking_datetime).date() >= week_start
        ]
        service_revenue = sum((b.price for b in this_week), Decimal("0"))
        commission = service_revenue * COMMISSION_RATE

        recent = sorted(bookings, key=lambda b: _as_utc(b.booking_datetime), reverse=True)
        recent_commissions = [
            {
                "id": str(b.id),
                "title": b.service.name if b.service else "Service",
                "date": _as_utc(b.booking_datetime).date().isoformat(),
                "amount": _money(b.price * COMMISSION_RATE),
            }
            for b in recent[:RECENT_COMMISSIONS_LIMIT]
        ]

        return {
            "cards": {
                "hourly_earnings": 0.0,
                "commission_earnings": _money(commission),
                "total_earnings": _money(commission),
            },
            "chart": {
                "title": "Service revenue this week",
                "week_start": week_start.isoformat(),
                "service_revenue": _money(service_revenue),
            },
            "recent_commissions": recent_commissions,
        }

    async def get_department_head_dashboard(self, profile: Profile) -> Dict[str, Any]:
        """Efficiency leaderboard for the manager's department."""
        department = profile.department or UNASSIGNED_DEPARTMENT
        team = await self._get_department_team(profile)

        team_stats: List[Dict[str, Any]] = []
        open_tickets = 0
        if team:
            bookings = await self._get_bookings(employee_ids=[m.id for m in team])
            open_tickets = sum(1 for b in bookings if b.status in OPEN_BOOKING_STATUSES)
            for member in team:
                member_bookings = [b for b in bookings if b.employee_id == member.id]
                efficiency = self._member_efficiency(member_bookings)
                durations = [b.service.duration_minutes for b in member_bookings if b.service]
                avg_time = round(sum(durations) / len(durations)) if durations else 0
                team_stats.append({
                    "id": str(member.id),
                    "name": member.full_name or member.email or "Team member",
                    "efficiency": efficiency,
                    "avg_time": avg_time,
                    "status": classify_efficiency(efficiency),
                })
            team_stats.sort(key=lambda row: row["efficiency"], reverse=True)

        team_efficiency = (
            round(sum(row["efficiency"] for row in team_stats) / len(team_stats))
            if team_stats else 0
        )
        avg_service_time = (
            round(sum(row["avg_time"] for row in team_stats) / len(team_stats))
            if team_stats else 0
        )

        return {
            "department": department,
            "cards": {
                "team_efficiency": team_efficiency,
                "avg_service_time": avg_service_time,
                "open_tickets": open_tickets,
            },
            "chart": {
                "title": "Team efficiency",
                "series": [{"name": row["name"], "efficiency": row["efficiency"]} for row in team_stats],
            },
            "leaderboard": team_stats,
        }

    async def get_store_manager_dashboard(self, profile: Profile) -> Dict[str, Any]:
        """Daily sales, estimated labor and a P&L for the manager's organization."""
        bookings = await self._get_bookings(organization_id=profile.organization_id)
        today = self.now.date()

        if not bookings:
            return {
                "cards": {
                    "todays_sales": 0.0,
                    "labor_percent": 0.0,
                    "avg_ticket": 0.0,
                    "customer_satisfaction": CUSTOMER_SATISFACTION,
                },
                "chart": {"title": "Labor vs revenue (last 7 days)", "series": []},
                "profit_and_loss": self._profit_and_loss(Decimal("0"), Decimal("0")),
            }

        todays_sales = sum(
            (b.price for b in bookings if _as_utc(b.booking_datetime).date() == today),
            Decimal("0"),
        )
        total_revenue = sum((b.price for b in bookings), Decimal("0"))
        avg_ticket = total_revenue / len(bookings)

        series = []
        for offset in range(CHART_DAYS - 1, -1, -1):
            day = today - timedelta(days=offset)
            revenue = sum(
                (b.price for b in bookings if _as_utc(b.booking_datetime).date() == day),
                Decimal("0"),
            )
            series.append({
                "day": day.strftime("%a"),
                "date": day.isoformat(),
                "revenue": _money(revenue),
                "labor_percent": float(ESTIMATED_LABOR_PERCENT) if revenue > 0 else 0.0,
            })

        return {
            "cards": {
                "todays_sales": _money(todays_sales),
                "labor_percent": float(ESTIMATED_LABOR_PERCENT),
                "avg_ticket": _money(avg_ticket),
                "customer_satisfaction": CUSTOMER_SATISFACTION,
            },
            "chart": {"title": "Labor vs revenue (last 7 days)", "series": series},
            "profit_and_loss": self._profit_and_loss(todays_sales, ESTIMATED_LABOR_PERCENT),
        }

    async def get_executive_dashboard(self, profile: Profile) -> Dict[str, Any]:
        """District-level comparison across stores."""
        stores = []
        for store in STORE_COMPARISON:
            margin = round(store["profit"] / store["revenue"] * 100, 1)
            stores.append({**store, "profit_margin": margin})

        total_revenue = sum(s["revenue"] for s in STORE_COMPARISON)
        total_profit = sum(s["profit"] for s in STORE_COMPARISON)
        avg_labor = round(sum(s["labor"] for s in STORE_COMPARISON) / len(STORE_COMPARISON), 1)

        return {
            "cards": {
                "total_revenue": total_revenue,
                "total_profit": total_profit,
                "avg_labor_percent": avg_labor,
                "store_count": len(STORE_COMPARISON),
            },
            "chart": {"title": "Revenue forecast", "series": REVENUE_FORECAST},
            "stores": stores,
        }

    # ===========================================
    # HELPER METHODS
    # ===========================================

    async def _get_bookings(
        self,
        organization_id=None,
        employee_ids: Optional[List] = None,
    ) -> List[Booking]:
        """Non-cancelled bookings for an organization or a set of employees."""
        query = select(Booking).where(Booking.status != BookingStatus.CANCELLED)
        if organization_id is not None:
            query = query.where(Booking.organization_id == organization_id)
        if employee_ids is not None:
            query = query.where(Booking.employee_id.in_(employee_ids))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _get_department_team(self, profile: Profile) -> List[Profile]:
        if profile.organization_id is None:
            return []
        query = select(Profile).where(Profile.organization_id == profile.organization_id)
        if profile.department:
            query = query.where(Profile.department == profile.department)
        else:
            query = query.where(Profile.department.is_(None))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _member_efficiency(bookings: List[Booking]) -> int:
        if not bookings:
            return 0
        completed = sum(1 for b in bookings if b.status == BookingStatus.COMPLETED)
        return round(completed / len(bookings) * 100)

    @staticmethod
    def _profit_and_loss(revenue: Decimal, labor_percent: Decimal) -> Dict[str, float]:
        labor_cost = revenue * labor_percent / Decimal("100")
        cogs = revenue * COGS_RATE
        return {
            "gross_revenue": _money(revenue),
            "labor_cost": _money(labor_cost),
            "cogs": _money(cogs),
            "net_profit": _money(revenue - labor_cost - cogs),
        }
