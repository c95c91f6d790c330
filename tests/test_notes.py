import uuid

import pytest

from hull_mes.core.enums import NoteScope
from hull_mes.core.errors import (
    DepartmentMismatchError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from hull_mes.schemas.work_orders import StageCompleteRequest, WorkOrderNoteCreate, WorkOrderNoteUpdate
from hull_mes.services.notes import WorkOrderNoteService


@pytest.fixture
def notes(session_maker):
    """Call one WorkOrderNoteService method in its own session."""

    async def _call(method: str, *args, **kwargs):
        async with session_maker() as s:
            return await getattr(WorkOrderNoteService(s), method)(*args, **kwargs)

    return _call


def _general(content="Check gelcoat thickness"):
    return WorkOrderNoteCreate(content=content)


def _department(department_id, content="Use the slow hardener"):
    return WorkOrderNoteCreate(content=content, scope=NoteScope.DEPARTMENT, department_id=department_id)


async def test_add_and_list_notes(plant, create_work_order, notes):
    wo_id = await create_work_order()

    note = await notes("add_note", plant.lam_operator, wo_id, _general("  Mold released early  "))

    assert note.content == "Mold released early"
    assert note.scope == NoteScope.GENERAL
    assert note.user_email == "lam@example.com"
    assert note.department_id is None

    listed = await notes("list_notes", plant.supervisor, wo_id)
    assert [n.id for n in listed] == [note.id]


async def test_operators_only_see_their_department_notes(plant, create_work_order, notes):
    wo_id = await create_work_order()
    general = await notes("add_note", plant.supervisor, wo_id, _general())
    lam_note = await notes("add_note", plant.supervisor, wo_id, _department(plant.lam_id))
    rig_note = await notes("add_note", plant.supervisor, wo_id, _department(plant.rig_id))
    assert rig_note.department_name == "Rigging"

    seen_by_lam = await notes("list_notes", plant.lam_operator, wo_id)
    assert {n.id for n in seen_by_lam} == {general.id, lam_note.id}

    seen_by_admin = await notes("list_notes", plant.admin, wo_id)
    assert {n.id for n in seen_by_admin} == {general.id, lam_note.id, rig_note.id}

    seen_by_rig_acting_for_lam = await notes("list_notes", plant.rig_operator, wo_id, plant.lam_id)
    assert {n.id for n in seen_by_rig_acting_for_lam} == {general.id, lam_note.id}


async def test_notes_follow_the_department_rule(plant, create_work_order, notes):
    wo_id = await create_work_order()

    with pytest.raises(DepartmentMismatchError):
        await notes("list_notes", plant.rig_operator, wo_id)
    with pytest.raises(DepartmentMismatchError):
        await notes("add_note", plant.rig_operator, wo_id, _general())
    with pytest.raises(ValidationFailedError):
        await notes("list_notes", plant.homeless_operator, wo_id)
    with pytest.raises(NotFoundError):
        await notes("list_notes", plant.supervisor, uuid.uuid4())


async def test_add_note_validation(plant, create_work_order, notes):
    wo_id = await create_work_order()

    with pytest.raises(ValidationFailedError, match="content is required"):
        await notes("add_note", plant.lam_operator, wo_id, _general("   "))
    with pytest.raises(ValidationFailedError, match="Department ID is required"):
        missing_department = WorkOrderNoteCreate(content="x", scope=NoteScope.DEPARTMENT)
        await notes("add_note", plant.lam_operator, wo_id, missing_department)
    with pytest.raises(PermissionDeniedError, match="your own department"):
        await notes("add_note", plant.lam_operator, wo_id, _department(plant.rig_id))

    supervisor_note = await notes("add_note", plant.supervisor, wo_id, _department(plant.rig_id))
    assert supervisor_note.department_id == plant.rig_id


async def test_operators_edit_only_their_own_notes(plant, create_work_order, notes):
    wo_id = await create_work_order()
    own = await notes("add_note", plant.lam_operator, wo_id, _general())
    foreign = await notes("add_note", plant.supervisor, wo_id, _general("Supervisor remark"))

    edited = await notes("update_note", plant.lam_operator, own.id, WorkOrderNoteUpdate(content="Gelcoat OK"))
    assert edited.content == "Gelcoat OK"
    assert edited.user_email == "lam@example.com"

    with pytest.raises(PermissionDeniedError, match="your own notes"):
        await notes("update_note", plant.lam_operator, foreign.id, WorkOrderNoteUpdate(content="Overwritten"))
    with pytest.raises(ValidationFailedError):
        await notes("update_note", plant.lam_operator, own.id, WorkOrderNoteUpdate(content=""))
    with pytest.raises(NotFoundError):
        await notes("update_note", plant.lam_operator, uuid.uuid4(), WorkOrderNoteUpdate(content="x"))

    by_supervisor = await notes("update_note", plant.supervisor, own.id, WorkOrderNoteUpdate(content="Reviewed"))
    assert by_supervisor.content == "Reviewed"


async def test_delete_rules(plant, create_work_order, notes):
    wo_id = await create_work_order()
    own = await notes("add_note", plant.lam_operator, wo_id, _general())
    foreign = await notes("add_note", plant.admin, wo_id, _general("Admin remark"))
    rig_note = await notes("add_note", plant.admin, wo_id, _department(plant.rig_id))

    with pytest.raises(PermissionDeniedError, match="your own notes"):
        await notes("delete_note", plant.lam_operator, foreign.id)
    await notes("delete_note", plant.lam_operator, own.id)

    with pytest.raises(PermissionDeniedError, match="your own department"):
        await notes("delete_note", plant.supervisor, rig_note.id)
    await notes("delete_note", plant.supervisor, foreign.id)
    await notes("delete_note", plant.admin, rig_note.id)

    assert await notes("list_notes", plant.admin, wo_id) == []
    with pytest.raises(NotFoundError):
        await notes("delete_note", plant.admin, own.id)


async def test_note_access_moves_with_the_current_stage(plant, create_work_order, lifecycle, notes):
    wo_id = await create_work_order()
    note = await notes("add_note", plant.lam_operator, wo_id, _general())
    await lifecycle(
        "complete",
        plant.lam_operator,
        StageCompleteRequest(work_order_id=wo_id, station_id=plant.lam_station_id, good_qty=1),
    )

    with pytest.raises(DepartmentMismatchError):
        await notes("update_note", plant.lam_operator, note.id, WorkOrderNoteUpdate(content="Too late"))
    assert [n.id for n in await notes("list_notes", plant.rig_operator, wo_id)] == [note.id]
