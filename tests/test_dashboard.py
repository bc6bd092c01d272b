"""
Tests for the role-scoped dashboards
"""

from datetime import date, datetime, timezone

import pytest

from app.models.booking import BookingStatus
from app.models.tier_enums import ProfileRole
from app.services.dashboard_service import (
    DashboardRole,
    DashboardService,
    classify_efficiency,
    dashboard_role_for,
    start_of_week,
)
from tests.fixtures.auth import auth_headers_for


# Wednesday
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


def at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


class TestHelpers:

    @pytest.mark.parametrize("score,label", [
        (100, "Excellent"),
        (91, "Excellent"),
        (90, "Good"),
        (85, "Good"),
        (81, "Good"),
        (80, "Review"),
        (0, "Review"),
    ])
    def test_classify_efficiency(self, score, label):
        assert classify_efficiency(score) == label

    @pytest.mark.parametrize("today,expected", [
        (date(2026, 10, 21), date(2026, 10, 18)),
        (date(2026, 10, 18), date(2026, 10, 18)),
        (date(2026, 10, 24), date(2026, 10, 18)),
        (date(2026, 10, 19), date(2026, 10, 18)),
    ])
    def test_week_starts_on_sunday(self, today, expected):
        assert start_of_week(today) == expected

    def test_role_mapping(self):
        assert dashboard_role_for(ProfileRole.SUPER_ADMIN) == DashboardRole.EXECUTIVE
        assert dashboard_role_for(ProfileRole.DISTRICT_MANAGER) == DashboardRole.EXECUTIVE
        assert dashboard_role_for(ProfileRole.STORE_MANAGER) == DashboardRole.STORE_MANAGER
        assert dashboard_role_for(ProfileRole.DEPARTMENT_MANAGER) == DashboardRole.DEPARTMENT_HEAD
        assert dashboard_role_for(ProfileRole.ASSOCIATE) == DashboardRole.ASSOCIATE

    def test_client_role_has_no_dashboard(self):
        with pytest.raises(PermissionError):
            dashboard_role_for(ProfileRole.CLIENT)


class TestAssociateDashboard:

    @pytest.mark.asyncio
    async def test_commission_counts_current_week_only(
        self, db_session, solo_org, test_service, make_member, make_booking
    ):
        associate = await make_member(solo_org, role=ProfileRole.ASSOCIATE)
        await make_booking(solo_org, at(19), service=test_service, employee=associate)
        await make_booking(solo_org, at(10), service=test_service, employee=associate)

        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(associate)

        assert dashboard["view"] == "associate"
        assert dashboard["cards"]["commission_earnings"] == 15.0
        assert dashboard["cards"]["total_earnings"] == 15.0
        assert dashboard["chart"]["week_start"] == "2026-10-18"
        assert dashboard["chart"]["service_revenue"] == 100.0

        recent = dashboard["recent_commissions"]
        assert [row["date"] for row in recent] == ["2026-10-19", "2026-10-10"]
        assert recent[0]["title"] == "Haircut"
        assert recent[0]["amount"] == 15.0

    @pytest.mark.asyncio
    async def test_recent_commissions_limited_to_three(
        self, db_session, solo_org, test_service, make_member, make_booking
    ):
        associate = await make_member(solo_org)
        for day in (12, 13, 14, 15, 16):
            await make_booking(solo_org, at(day), service=test_service, employee=associate)

        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(associate)
        assert [row["date"] for row in dashboard["recent_commissions"]] == [
            "2026-10-16", "2026-10-15", "2026-10-14",
        ]

    @pytest.mark.asyncio
    async def test_other_staff_bookings_excluded(
        self, db_session, solo_org, test_service, make_member, make_booking
    ):
        associate = await make_member(solo_org)
        colleague = await make_member(solo_org)
        await make_booking(solo_org, at(20), service=test_service, employee=colleague)

        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(associate)
        assert dashboard["cards"]["commission_earnings"] == 0.0
        assert dashboard["recent_commissions"] == []


class TestDepartmentHeadDashboard:

    @pytest.mark.asyncio
    async def test_leaderboard(self, db_session, solo_org, test_service, make_member, make_booking):
        manager = await make_member(
            solo_org, role=ProfileRole.DEPARTMENT_MANAGER, department="Color",
            first_name="Dana", last_name="Lead",
        )
        star = await make_member(solo_org, department="Color", first_name="Ava", last_name="Star")
        steady = await make_member(solo_org, department="Color", first_name="Ben", last_name="Steady")
        await make_member(solo_org, department="Cuts", first_name="Other", last_name="Team")

        for _ in range(2):
            await make_booking(solo_org, at(15), service=test_service, employee=star,
                               status=BookingStatus.COMPLETED)
        for _ in range(3):
            await make_booking(solo_org, at(16), service=test_service, employee=steady,
                               status=BookingStatus.COMPLETED)
        await make_booking(solo_org, at(17), service=test_service, employee=steady)

        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(manager)

        assert dashboard["view"] == "department_head"
        assert dashboard["department"] == "Color"

        board = dashboard["leaderboard"]
        assert [row["name"] for row in board] == ["Ava Star", "Ben Steady", "Dana Lead"]
        assert [row["efficiency"] for row in board] == [100, 75, 0]
        assert [row["status"] for row in board] == ["Excellent", "Review", "Review"]
        assert board[0]["avg_time"] == 45

        assert dashboard["cards"]["open_tickets"] == 1
        assert dashboard["cards"]["team_efficiency"] == 58
        assert dashboard["cards"]["avg_service_time"] == 30

    @pytest.mark.asyncio
    async def test_empty_department(self, db_session, solo_org, make_member):
        manager = await make_member(solo_org, role=ProfileRole.DEPARTMENT_MANAGER, department="Nails")
        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(manager)

        assert len(dashboard["leaderboard"]) == 1
        assert dashboard["cards"]["team_efficiency"] == 0
        assert dashboard["cards"]["open_tickets"] == 0


class TestStoreManagerDashboard:

    @pytest.mark.asyncio
    async def test_sales_and_profit_and_loss(
        self, db_session, solo_org, test_service, make_member, make_booking
    ):
        manager = await make_member(solo_org, role=ProfileRole.STORE_MANAGER)
        await make_booking(solo_org, at(21, 9), service=test_service)
        await make_booking(solo_org, at(21, 11), service=test_service)
        await make_booking(solo_org, at(20), service=test_service)
        await make_booking(solo_org, at(21, 15), service=test_service, status=BookingStatus.CANCELLED)

        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(manager)

        assert dashboard["view"] == "store_manager"
        assert dashboard["cards"]["todays_sales"] == 200.0
        assert dashboard["cards"]["avg_ticket"] == 100.0
        assert dashboard["cards"]["labor_percent"] == 28.5
        assert dashboard["cards"]["customer_satisfaction"] == 5.0
        assert dashboard["profit_and_loss"] == {
            "gross_revenue": 200.0,
            "labor_cost": 57.0,
            "cogs": 30.0,
            "net_profit": 113.0,
        }

        series = dashboard["chart"]["series"]
        assert len(series) == 7
        assert series[-1]["date"] == "2026-10-21"
        assert series[-1]["revenue"] == 200.0
        assert series[-2]["revenue"] == 100.0
        assert series[0]["labor_percent"] == 0.0

    @pytest.mark.asyncio
    async def test_no_bookings(self, db_session, solo_org, make_member):
        manager = await make_member(solo_org, role=ProfileRole.STORE_MANAGER)
        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(manager)

        assert dashboard["cards"]["todays_sales"] == 0.0
        assert dashboard["cards"]["customer_satisfaction"] == 5.0
        assert dashboard["chart"]["series"] == []
        assert dashboard["profit_and_loss"]["net_profit"] == 0.0


class TestExecutiveDashboard:

    @pytest.mark.asyncio
    async def test_store_comparison(self, db_session, solo_admin):
        dashboard = await DashboardService(db_session, now=NOW).get_dashboard(solo_admin)

        assert dashboard["view"] == "executive"
        assert dashboard["cards"]["total_revenue"] == 166000
        assert dashboard["cards"]["total_profit"] == 40100
        assert dashboard["cards"]["store_count"] == 4

        margins = {store["name"]: store["profit_margin"] for store in dashboard["stores"]}
        assert margins["West Store"] == 13.5
        assert margins["East Store"] == 29.6


class TestDashboardEndpoint:

    @pytest.mark.asyncio
    async def test_returns_variant_for_role(self, client, auth_headers):
        response = await client.get("/api/v1/dashboard", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["view"] == "executive"

    @pytest.mark.asyncio
    async def test_client_role_forbidden(self, client, make_member, solo_org):
        profile = await make_member(solo_org, role=ProfileRole.CLIENT)
        response = await client.get("/api/v1/dashboard", headers=auth_headers_for(profile))

        assert response.status_code == 403
        assert "client" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_requires_organization(self, client, make_member):
        profile = await make_member()
        response = await client.get("/api/v1/dashboard", headers=auth_headers_for(profile))
        assert response.status_code == 403
