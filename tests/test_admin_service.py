"""Tests for the operator session listing and revenue stats (SQLite-backed)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from app.models.parking_session import SessionStatus
from app.models.vehicle import Vehicle
from app.services.admin_service import get_stats, list_sessions
from app.services.session_service import confirm_payment, create_session, terminate_session

T = datetime(2026, 6, 1, 10, 0)


async def build_history(db, make_user, user, vehicle, zone, gateway):
    """Yesterday's still-active session, today's terminated one, and a fresh pending one."""
    other = make_user(email="other@example.com")
    car = Vehicle(user_id=other.id, license_plate="XYZ987", state="CT", created_at=T)
    db.add(car)
    db.commit()

    yesterday = T - timedelta(days=1)
    older = await create_session(db, other.id, car.id, zone.id, 2, now=yesterday)
    await confirm_payment(db, older.id, "pi_yesterday", now=yesterday)

    finished = await create_session(db, user.id, vehicle.id, zone.id, 1, now=T)
    await confirm_payment(db, finished.id, "pi_today", now=T)
    await terminate_session(db, gateway, finished.id, user.id, now=T + timedelta(minutes=10))

    pending = await create_session(db, user.id, vehicle.id, zone.id, 1, now=T + timedelta(minutes=20))
    return older, finished, pending


class TestListSessions:
    @pytest.mark.asyncio
    async def test_newest_first_across_users(self, db, make_user, user, vehicle, zone, gateway):
        older, finished, pending = await build_history(db, make_user, user, vehicle, zone, gateway)
        assert [s.id for s in list_sessions(db)] == [pending.id, finished.id, older.id]

    @pytest.mark.asyncio
    async def test_status_filter_is_case_insensitive(self, db, make_user, user, vehicle, zone, gateway):
        older, finished, pending = await build_history(db, make_user, user, vehicle, zone, gateway)
        assert [s.id for s in list_sessions(db, status="pending")] == [pending.id]

    @pytest.mark.asyncio
    async def test_pagination(self, db, make_user, user, vehicle, zone, gateway):
        older, finished, pending = await build_history(db, make_user, user, vehicle, zone, gateway)
        assert [s.id for s in list_sessions(db, limit=1, page=2)] == [finished.id]


class TestStats:
    @pytest.mark.asyncio
    async def test_revenue_is_net_of_refunds(self, db, make_user, user, vehicle, zone, gateway):
        await build_history(db, make_user, user, vehicle, zone, gateway)
        stats = get_stats(db, now=T + timedelta(minutes=30))
        # 3.04 yesterday; 1.67 today less a 0.66 refund
        assert stats["total_revenue"] == Decimal("4.05")
        assert stats["todays_revenue"] == Decimal("1.01")

    @pytest.mark.asyncio
    async def test_session_counts_and_recent(self, db, make_user, user, vehicle, zone, gateway):
        older, finished, pending = await build_history(db, make_user, user, vehicle, zone, gateway)
        stats = get_stats(db, now=T + timedelta(minutes=30))
        assert stats["active_sessions"] == 2
        assert stats["total_sessions"] == 3
        assert [s.id for s in stats["recent_sessions"]] == [pending.id, finished.id, older.id]
        assert finished.status == SessionStatus.COMPLETED

    def test_empty_database(self, db):
        stats = get_stats(db, now=T)
        assert stats["total_revenue"] == Decimal("0.00")
        assert stats["active_sessions"] == 0
        assert stats["recent_sessions"] == []
