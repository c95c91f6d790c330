"""
Shared fixtures: a throwaway SQLite database per test and a small two-department plant.

Plant layout:
    Lamination (LAM) -> work center WC-LAM -> stations LAM-01 (active), LAM-02 (inactive)
    Rigging    (RIG) -> work center WC-RIG -> station  RIG-01
    Routing "LX24/Sport" v1 (DRAFT):
        seq 10 LAM  enabled
        seq 15 RIG  disabled
        seq 20 RIG  enabled
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from hull_mes.core.authorization import Actor
from hull_mes.core.enums import Role, RoutingStatus
from hull_mes.db.base import Base, utcnow
from hull_mes.db.models.production import WorkOrder
from hull_mes.db.models.reference import Department, Station, WorkCenter
from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from hull_mes.db.models.security import User
from hull_mes.db.session import make_session_maker
from hull_mes.schemas.work_orders import WorkOrderCreate
from hull_mes.services.lifecycle import LifecycleService


@dataclass
class Plant:
    lam_id: UUID
    rig_id: UUID
    wc_lam_id: UUID
    wc_rig_id: UUID
    lam_station_id: UUID
    lam_inactive_station_id: UUID
    rig_station_id: UUID
    routing_id: UUID
    admin: Actor
    supervisor: Actor
    lam_operator: Actor
    rig_operator: Actor
    homeless_operator: Actor


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hull_mes.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


def _actor(user: User) -> Actor:
    return Actor(id=user.id, role=user.role, department_id=user.department_id, email=user.email)


@pytest.fixture
async def plant(session_maker) -> Plant:
    async with session_maker() as s:
        lam = Department(code="LAM", name="Lamination")
        rig = Department(code="RIG", name="Rigging")
        s.add_all([lam, rig])
        await s.flush()

        wc_lam = WorkCenter(code="WC-LAM", name="Lamination Hall", department_id=lam.id)
        wc_rig = WorkCenter(code="WC-RIG", name="Rigging Line", department_id=rig.id)
        s.add_all([wc_lam, wc_rig])
        await s.flush()

        lam_01 = Station(code="LAM-01", name="Mold 1", work_center_id=wc_lam.id)
        lam_02 = Station(code="LAM-02", name="Mold 2", work_center_id=wc_lam.id, is_active=False)
        rig_01 = Station(code="RIG-01", name="Rigging Bay 1", work_center_id=wc_rig.id)
        s.add_all([lam_01, lam_02, rig_01])

        routing = RoutingDefinition(
            model="LX24",
            trim="Sport",
            features={"engine": "twin outboard"},
            version=1,
            status=RoutingStatus.DRAFT,
            stages=[
                RoutingStage(sequence=10, code="LAM", name="Lamination", work_center_id=wc_lam.id,
                             standard_stage_seconds=3600),
                RoutingStage(sequence=15, code="RIG-PRE", name="Pre-rig", enabled=False,
                             work_center_id=wc_rig.id, standard_stage_seconds=600),
                RoutingStage(sequence=20, code="RIG", name="Rigging", work_center_id=wc_rig.id,
                             standard_stage_seconds=1800),
            ],
        )
        s.add(routing)

        users = {
            "admin": User(email="admin@example.com", role=Role.ADMIN),
            "supervisor": User(email="supervisor@example.com", role=Role.SUPERVISOR),
            "lam": User(email="lam@example.com", role=Role.OPERATOR, department_id=lam.id),
            "rig": User(email="rig@example.com", role=Role.OPERATOR, department_id=rig.id),
            "homeless": User(email="nodept@example.com", role=Role.OPERATOR),
        }
        s.add_all(users.values())
        await s.commit()

        return Plant(
            lam_id=lam.id,
            rig_id=rig.id,
            wc_lam_id=wc_lam.id,
            wc_rig_id=wc_rig.id,
            lam_station_id=lam_01.id,
            lam_inactive_station_id=lam_02.id,
            rig_station_id=rig_01.id,
            routing_id=routing.id,
            admin=_actor(users["admin"]),
            supervisor=_actor(users["supervisor"]),
            lam_operator=_actor(users["lam"]),
            rig_operator=_actor(users["rig"]),
            homeless_operator=_actor(users["homeless"]),
        )


def planned_payload(plant: Plant, **overrides) -> WorkOrderCreate:
    now = utcnow()
    data = dict(
        hull_id="HULL-0001",
        product_sku="LX24-SPORT-WHT",
        qty=1,
        planned_start_date=now + timedelta(hours=1),
        planned_finish_date=now + timedelta(days=10),
        routing_definition_id=plant.routing_id,
    )
    data.update(overrides)
    return WorkOrderCreate(**data)


@pytest.fixture
def create_work_order(session_maker, plant):
    """Factory: create a work order and optionally drive it to RELEASED."""

    async def _create(release: bool = True, **overrides) -> UUID:
        async with session_maker() as s:
            result = await LifecycleService(s).create_work_order(plant.supervisor, planned_payload(plant, **overrides))
        wo_id = result.work_order.id
        if release:
            async with session_maker() as s:
                await LifecycleService(s).release(plant.supervisor, wo_id)
        return wo_id

    return _create


@pytest.fixture
def load_work_order(session_maker):
    async def _load(wo_id: UUID) -> WorkOrder:
        async with session_maker() as s:
            return await s.get(WorkOrder, wo_id)

    return _load


@pytest.fixture
def set_fields(session_maker):
    """Write fields straight to the row, bypassing lifecycle rules (test setup only)."""

    async def _set(wo_id: UUID, **fields) -> None:
        async with session_maker() as s:
            wo = await s.get(WorkOrder, wo_id)
            for key, value in fields.items():
                setattr(wo, key, value)
            await s.commit()

    return _set


def fixed_clock(moment: datetime):
    return lambda: moment


@pytest.fixture
def lifecycle(session_maker):
    """Call one LifecycleService action in its own session, like one request would."""

    async def _call(action: str, *args, clock=None, **kwargs):
        async with session_maker() as s:
            svc = LifecycleService(s, clock=clock) if clock else LifecycleService(s)
            return await getattr(svc, action)(*args, **kwargs)

    return _call
