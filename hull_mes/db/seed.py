"""
Database seeding utilities for a boat-production demo.

Seeds:
- Departments: Kitting, Lamination, Rigging, Quality, Shipping
- One work center per department with two stations each
- A released routing definition for the LX24 Sport hull
- Users: admin, supervisor and a lamination operator

Usage:
  python -m hull_mes.db.run_migrations upgrade head
  python -m hull_mes.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.enums import Role, RoutingStatus
from hull_mes.db.base import utcnow
from hull_mes.db.models.reference import Department, Station, WorkCenter
from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from hull_mes.db.models.security import User
from hull_mes.db.session import get_async_session

logger = logging.getLogger(__name__)

# (department code, department name, work center code, work center name, standard stage seconds)
DEPARTMENTS: List[Tuple[str, str, str, str, int]] = [
    ("KIT", "Kitting", "WC-KIT", "Kitting Bay", 2 * 3600),
    ("LAM", "Lamination", "WC-LAM", "Lamination Hall", 16 * 3600),
    ("RIG", "Rigging", "WC-RIG", "Rigging Line", 8 * 3600),
    ("QA", "Quality", "WC-QA", "Final Inspection", 3 * 3600),
    ("SHIP", "Shipping", "WC-SHIP", "Shipping Dock", 2 * 3600),
]

DEMO_MODEL = "LX24"
DEMO_TRIM = "Sport"


# PUBLIC_INTERFACE
async def seed_all(session: Optional[AsyncSession] = None) -> None:
    """
    Seed the database with the demo plant. Safe to run repeatedly: existing
    rows are looked up by their business codes and left alone.
    """
    if session is not None:
        await _seed(session)
        return
    async for own_session in get_async_session():
        await _seed(own_session)


async def _seed(session: AsyncSession) -> None:
    work_centers = await _seed_plant(session)
    await _seed_routing(session, work_centers)
    await _seed_users(session)
    await session.commit()
    logger.info("Seeded demo plant with %d departments", len(DEPARTMENTS))


async def _seed_plant(session: AsyncSession) -> Dict[str, WorkCenter]:
    """Departments, work centers and stations, keyed by department code."""
    result: Dict[str, WorkCenter] = {}
    for dept_code, dept_name, wc_code, wc_name, _ in DEPARTMENTS:
        dept = (await session.execute(select(Department).where(Department.code == dept_code))).scalar_one_or_none()
        if not dept:
            dept = Department(code=dept_code, name=dept_name)
            session.add(dept)
            await session.flush()

        wc = (await session.execute(select(WorkCenter).where(WorkCenter.code == wc_code))).scalar_one_or_none()
        if not wc:
            wc = WorkCenter(code=wc_code, name=wc_name, department_id=dept.id)
            session.add(wc)
            await session.flush()

        for n in (1, 2):
            st_code = f"{dept_code}-{n:02d}"
            existing = (await session.execute(select(Station).where(Station.code == st_code))).scalar_one_or_none()
            if not existing:
                session.add(Station(code=st_code, name=f"{dept_name} Station {n}", work_center_id=wc.id))
        result[dept_code] = wc
    await session.flush()
    return result


async def _seed_routing(session: AsyncSession, work_centers: Dict[str, WorkCenter]) -> None:
    """A released five-stage routing for the demo hull."""
    existing = (
        await session.execute(
            select(RoutingDefinition).where(
                RoutingDefinition.model == DEMO_MODEL, RoutingDefinition.trim == DEMO_TRIM
            )
        )
    ).scalars().first()
    if existing:
        return
    stages = [
        RoutingStage(
            sequence=idx * 10,
            code=dept_code,
            name=dept_name,
            enabled=True,
            work_center_id=work_centers[dept_code].id,
            standard_stage_seconds=seconds,
        )
        for idx, (dept_code, dept_name, _, _, seconds) in enumerate(DEPARTMENTS, start=1)
    ]
    session.add(
        RoutingDefinition(
            model=DEMO_MODEL,
            trim=DEMO_TRIM,
            features={"hull_color": "white", "engine": "twin outboard"},
            version=1,
            status=RoutingStatus.RELEASED,
            released_at=utcnow(),
            stages=stages,
        )
    )
    await session.flush()


async def _seed_users(session: AsyncSession) -> None:
    lamination = (await session.execute(select(Department).where(Department.code == "LAM"))).scalar_one()
    users = [
        ("admin@hull-mes.local", "Plant Admin", Role.ADMIN, None),
        ("supervisor@hull-mes.local", "Shift Supervisor", Role.SUPERVISOR, None),
        ("laminator@hull-mes.local", "Lamination Operator", Role.OPERATOR, lamination.id),
    ]
    for email, full_name, role, department_id in users:
        found = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if not found:
            session.add(User(email=email, full_name=full_name, role=role, department_id=department_id))
    await session.flush()


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
