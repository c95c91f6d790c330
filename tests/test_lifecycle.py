import re
from datetime import timedelta

import pytest

from conftest import fixed_clock, planned_payload
from hull_mes.core.enums import RoutingStatus, StageEventKind, WOPriority, WOStatus
from hull_mes.core.errors import (
    ConcurrencyConflictError,
    DepartmentMismatchError,
    DuplicateError,
    InvalidStationError,
    InvalidTransitionError,
    NoCurrentStageError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
    WorkOrderOnHoldError,
)
from hull_mes.db.base import utcnow
from hull_mes.db.models.production import WorkOrder
from hull_mes.db.models.routing import RoutingDefinition
from hull_mes.repositories.history import AuditRepository, VersionRepository
from hull_mes.repositories.production import StageEventRepository
from hull_mes.schemas.work_orders import StageActionRequest, StageCompleteRequest, WorkOrderUpdate
from hull_mes.services.audit import WORK_ORDER_MODEL
from hull_mes.services.lifecycle import LifecycleService
from hull_mes.services.versioning import VersionStore


def stage_req(wo_id, station_id, note=None):
    return StageActionRequest(work_order_id=wo_id, station_id=station_id, note=note)


def complete_req(wo_id, station_id, good_qty=1, scrap_qty=0, note=None):
    return StageCompleteRequest(
        work_order_id=wo_id, station_id=station_id, good_qty=good_qty, scrap_qty=scrap_qty, note=note
    )


async def audit_entries(session_maker, wo_id, action=None):
    async with session_maker() as s:
        entries = await AuditRepository(s).list_for(WORK_ORDER_MODEL, wo_id)
    return [e for e in entries if action is None or e.action == action]


async def version_numbers(session_maker, wo_id):
    async with session_maker() as s:
        versions = await VersionRepository(s).list_versions(wo_id)
    return sorted(v.version_number for v in versions)


# ---------------------------------------------------------------- creation


async def test_create_work_order_starts_planned_with_first_version(plant, lifecycle, session_maker, load_work_order):
    result = await lifecycle("create_work_order", plant.supervisor, planned_payload(plant))

    assert result.success
    assert result.work_order.status == WOStatus.PLANNED
    assert result.work_order.current_stage_index == 0
    assert re.fullmatch(r"WO-\d+-[0-9A-F]{6}", result.work_order.number)

    wo = await load_work_order(result.work_order.id)
    assert wo.spec_snapshot["model"] == "LX24"
    assert wo.spec_snapshot["features"] == {"engine": "twin outboard"}
    assert [s["code"] for s in wo.spec_snapshot["stages"]] == ["LAM", "RIG"]

    async with session_maker() as s:
        versions = await VersionRepository(s).list_versions(wo.id)
    assert [(v.version_number, v.reason) for v in versions] == [(1, "Initial creation")]
    assert versions[0].snapshot_data["schema_hash"]
    assert [e.action for e in await audit_entries(session_maker, wo.id)] == ["CREATE"]


async def test_create_rejects_duplicate_number(plant, lifecycle):
    await lifecycle("create_work_order", plant.supervisor, planned_payload(plant, number="WO-42"))
    with pytest.raises(DuplicateError):
        await lifecycle("create_work_order", plant.supervisor, planned_payload(plant, number="WO-42"))


async def test_create_validates_dates_routing_and_role(plant, lifecycle):
    now = utcnow()
    with pytest.raises(ValidationFailedError, match="before planned finish"):
        await lifecycle(
            "create_work_order",
            plant.supervisor,
            planned_payload(plant, planned_start_date=now + timedelta(days=3), planned_finish_date=now + timedelta(days=2)),
        )
    with pytest.raises(ValidationFailedError, match="in the past"):
        await lifecycle(
            "create_work_order", plant.supervisor, planned_payload(plant, planned_start_date=now - timedelta(days=2))
        )
    with pytest.raises(NotFoundError):
        await lifecycle(
            "create_work_order", plant.supervisor, planned_payload(plant, routing_definition_id=plant.lam_id)
        )
    with pytest.raises(PermissionDeniedError):
        await lifecycle("create_work_order", plant.lam_operator, planned_payload(plant))


# ----------------------------------------------------------------- release


async def test_release_releases_draft_routing_and_refreshes_snapshot(plant, create_work_order, session_maker, load_work_order):
    wo_id = await create_work_order()

    wo = await load_work_order(wo_id)
    assert wo.status == WOStatus.RELEASED
    assert wo.current_stage_index == 0
    assert [s["code"] for s in wo.spec_snapshot["stages"]] == ["LAM", "RIG"]

    async with session_maker() as s:
        routing = await s.get(RoutingDefinition, plant.routing_id)
    assert routing.status == RoutingStatus.RELEASED
    assert routing.released_at is not None

    release_entries = await audit_entries(session_maker, wo_id, "RELEASE")
    assert release_entries[0].before == {"status": "PLANNED"}
    assert release_entries[0].after["status"] == "RELEASED"


async def test_release_only_from_planned(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    with pytest.raises(InvalidTransitionError, match="PLANNED"):
        await lifecycle("release", plant.supervisor, wo_id)


async def test_release_start_date_grace_boundary(plant, create_work_order, set_fields, lifecycle):
    """Start exactly one day before now is accepted; one second earlier is rejected."""
    now = utcnow()
    too_old = await create_work_order(release=False)
    await set_fields(too_old, planned_start_date=now - timedelta(days=1, seconds=1))
    with pytest.raises(ValidationFailedError, match="in the past"):
        await lifecycle("release", plant.supervisor, too_old, clock=fixed_clock(now))

    boundary = await create_work_order(release=False, hull_id="HULL-0002")
    await set_fields(boundary, planned_start_date=now - timedelta(days=1))
    result = await lifecycle("release", plant.supervisor, boundary, clock=fixed_clock(now))
    assert result.work_order.status == WOStatus.RELEASED


async def test_release_requires_planned_dates(plant, create_work_order, set_fields, lifecycle, load_work_order):
    wo_id = await create_work_order(release=False)
    await set_fields(wo_id, planned_finish_date=None)
    with pytest.raises(ValidationFailedError, match="required"):
        await lifecycle("release", plant.supervisor, wo_id)
    assert (await load_work_order(wo_id)).status == WOStatus.PLANNED


# -------------------------------------------------------------- stage work


async def test_scenario_complete_non_final_then_final_stage(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()

    first = await lifecycle(
        "complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id, good_qty=5, scrap_qty=1)
    )
    assert first.work_order.status == WOStatus.RELEASED
    assert first.work_order.current_stage_index == 1
    assert first.is_complete is False

    last = await lifecycle("complete", plant.rig_operator, complete_req(wo_id, plant.rig_station_id, good_qty=10))
    assert last.work_order.status == WOStatus.COMPLETED
    assert last.work_order.current_stage_index == 1
    assert last.is_complete is True


async def test_start_then_redundant_start_logs_event_without_state_change(plant, create_work_order, lifecycle, session_maker):
    wo_id = await create_work_order()

    started = await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))
    assert started.work_order.status == WOStatus.IN_PROGRESS
    again = await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id, note="shift 2"))
    assert again.work_order.status == WOStatus.IN_PROGRESS
    assert again.work_order.current_stage_index == started.work_order.current_stage_index

    async with session_maker() as s:
        events = await StageEventRepository(s).list_for_work_order(wo_id)
    assert [e.event for e in events] == [StageEventKind.START, StageEventKind.START]


async def test_complete_from_in_progress_returns_to_released_for_next_stage(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))
    result = await lifecycle("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id))
    assert result.work_order.status == WOStatus.RELEASED
    assert result.work_order.current_stage_index == 1


@pytest.mark.parametrize("action", ["start", "pause", "complete"])
async def test_operator_from_other_department_is_rejected(plant, create_work_order, lifecycle, load_work_order, action):
    wo_id = await create_work_order()
    await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))
    payload = complete_req(wo_id, plant.lam_station_id) if action == "complete" else stage_req(wo_id, plant.lam_station_id)

    with pytest.raises(DepartmentMismatchError):
        await lifecycle(action, plant.rig_operator, payload)
    wo = await load_work_order(wo_id)
    assert wo.status == WOStatus.IN_PROGRESS
    assert wo.current_stage_index == 0


async def test_selected_department_override_and_cross_department_roles(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    result = await lifecycle(
        "start", plant.rig_operator, stage_req(wo_id, plant.lam_station_id), selected_department_id=plant.lam_id
    )
    assert result.work_order.status == WOStatus.IN_PROGRESS

    other = await create_work_order(hull_id="HULL-0002")
    for actor in (plant.supervisor, plant.admin):
        assert (await lifecycle("start", actor, stage_req(other, plant.lam_station_id))).success


async def test_operator_without_department_cannot_act(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    with pytest.raises(ValidationFailedError, match="No department specified"):
        await lifecycle("start", plant.homeless_operator, stage_req(wo_id, plant.lam_station_id))


async def test_station_must_be_active_and_in_current_work_center(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    with pytest.raises(InvalidStationError):
        await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_inactive_station_id))
    with pytest.raises(InvalidStationError):
        await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.rig_station_id))


async def test_no_current_stage_is_reported_distinctly(plant, create_work_order, set_fields, lifecycle):
    wo_id = await create_work_order()
    await set_fields(wo_id, current_stage_index=5)
    with pytest.raises(NoCurrentStageError):
        await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))
    with pytest.raises(NoCurrentStageError):
        await lifecycle("complete", plant.supervisor, complete_req(wo_id, plant.lam_station_id))


async def test_stage_work_on_hold_is_a_conflict(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    await lifecycle("hold", plant.supervisor, wo_id, "Resin delivery late")

    with pytest.raises(WorkOrderOnHoldError, match="on hold") as exc:
        await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))
    assert exc.value.status_code == 409
    with pytest.raises(WorkOrderOnHoldError):
        await lifecycle("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id))
    with pytest.raises(WorkOrderOnHoldError, match="already on hold"):
        await lifecycle("pause", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))


async def test_stage_work_requires_released_or_in_progress(plant, create_work_order, lifecycle):
    planned = await create_work_order(release=False)
    with pytest.raises(InvalidTransitionError):
        await lifecycle("start", plant.supervisor, stage_req(planned, plant.lam_station_id))


async def test_pause_holds_and_unhold_returns_to_interrupted_status(plant, create_work_order, lifecycle, session_maker, load_work_order):
    wo_id = await create_work_order()
    await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))

    paused = await lifecycle("pause", plant.lam_operator, stage_req(wo_id, plant.lam_station_id, note="Break"))
    assert paused.work_order.status == WOStatus.HOLD
    assert paused.work_order.previous_status == WOStatus.IN_PROGRESS
    assert (await load_work_order(wo_id)).held_from_status == WOStatus.IN_PROGRESS
    pause_entry = (await audit_entries(session_maker, wo_id, "PAUSE"))[0]
    assert pause_entry.after["previousStatus"] == "IN_PROGRESS"

    resumed = await lifecycle("unhold", plant.supervisor, wo_id)
    assert resumed.work_order.status == WOStatus.IN_PROGRESS
    assert (await load_work_order(wo_id)).held_from_status is None


async def test_complete_rejects_negative_quantities(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    payload = complete_req(wo_id, plant.lam_station_id).model_copy(update={"good_qty": -1})
    with pytest.raises(ValidationFailedError):
        await lifecycle("complete", plant.lam_operator, payload)


# ---------------------------------------------------------- hold / unhold


async def test_hold_unhold_round_trip_records_previous_status(plant, create_work_order, lifecycle, session_maker):
    wo_id = await create_work_order()
    await lifecycle("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id))

    held = await lifecycle("hold", plant.supervisor, wo_id, "Material shortage")
    assert held.work_order.status == WOStatus.HOLD
    assert held.work_order.previous_status == WOStatus.IN_PROGRESS

    entry = (await audit_entries(session_maker, wo_id, "HOLD"))[0]
    assert entry.before == {"status": "IN_PROGRESS"}
    assert entry.after == {"status": "HOLD", "reason": "Material shortage", "previousStatus": "IN_PROGRESS"}

    released = await lifecycle("unhold", plant.supervisor, wo_id)
    assert released.work_order.status == WOStatus.IN_PROGRESS


@pytest.mark.parametrize("start_status", [WOStatus.PLANNED, WOStatus.RELEASED])
async def test_hold_round_trip_from_other_statuses(plant, create_work_order, lifecycle, start_status):
    wo_id = await create_work_order(release=start_status == WOStatus.RELEASED)
    await lifecycle("hold", plant.supervisor, wo_id, "Mold repair")
    result = await lifecycle("unhold", plant.supervisor, wo_id)
    assert result.work_order.status == start_status


async def test_unhold_falls_back_to_audit_trail_then_released(plant, create_work_order, lifecycle, set_fields):
    from_audit = await create_work_order(release=False)
    await lifecycle("hold", plant.supervisor, from_audit, "Spec question")
    await set_fields(from_audit, held_from_status=None)
    assert (await lifecycle("unhold", plant.supervisor, from_audit)).work_order.status == WOStatus.PLANNED

    unknown = await create_work_order(release=False, hull_id="HULL-0002")
    await set_fields(unknown, status=WOStatus.HOLD, held_from_status=None)
    assert (await lifecycle("unhold", plant.supervisor, unknown)).work_order.status == WOStatus.RELEASED


async def test_hold_preconditions(plant, create_work_order, lifecycle, set_fields):
    wo_id = await create_work_order()
    with pytest.raises(ValidationFailedError, match="Reason is required"):
        await lifecycle("hold", plant.supervisor, wo_id, "   ")
    with pytest.raises(PermissionDeniedError):
        await lifecycle("hold", plant.lam_operator, wo_id, "No")

    await lifecycle("hold", plant.supervisor, wo_id, "QA check")
    with pytest.raises(InvalidTransitionError, match="already on hold"):
        await lifecycle("hold", plant.supervisor, wo_id, "Again")

    for status in (WOStatus.COMPLETED, WOStatus.CLOSED, WOStatus.CANCELLED):
        await set_fields(wo_id, status=status)
        with pytest.raises(InvalidTransitionError):
            await lifecycle("hold", plant.supervisor, wo_id, "Late")


async def test_unhold_requires_hold(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    with pytest.raises(InvalidTransitionError, match="not on hold"):
        await lifecycle("unhold", plant.supervisor, wo_id)


# ------------------------------------------------- cancel / uncancel / close


@pytest.mark.parametrize("terminal", [WOStatus.COMPLETED, WOStatus.CLOSED])
async def test_cancel_rejected_for_completed_or_closed(plant, create_work_order, lifecycle, set_fields, terminal):
    wo_id = await create_work_order()
    await set_fields(wo_id, status=terminal)
    with pytest.raises(InvalidTransitionError, match="Cannot cancel completed or closed work orders"):
        await lifecycle("cancel", plant.supervisor, wo_id)


async def test_cancel_and_uncancel(plant, create_work_order, lifecycle, session_maker):
    wo_id = await create_work_order()
    cancelled = await lifecycle("cancel", plant.supervisor, wo_id, "Customer withdrew")
    assert cancelled.work_order.status == WOStatus.CANCELLED
    with pytest.raises(InvalidTransitionError, match="already cancelled"):
        await lifecycle("cancel", plant.supervisor, wo_id)

    restored = await lifecycle("uncancel", plant.supervisor, wo_id)
    assert restored.work_order.status == WOStatus.PLANNED
    with pytest.raises(InvalidTransitionError, match="Only cancelled"):
        await lifecycle("uncancel", plant.supervisor, wo_id)

    actions = [e.action for e in await audit_entries(session_maker, wo_id)]
    assert "CANCEL" in actions and "UNCANCEL" in actions


async def test_release_after_uncancel_restarts_at_first_stage(plant, create_work_order, lifecycle, load_work_order):
    wo_id = await create_work_order()
    await lifecycle("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id))
    assert (await load_work_order(wo_id)).current_stage_index == 1

    await lifecycle("cancel", plant.supervisor, wo_id)
    await lifecycle("uncancel", plant.supervisor, wo_id)
    assert (await load_work_order(wo_id)).current_stage_index == 1

    released = await lifecycle("release", plant.supervisor, wo_id)
    assert released.work_order.status == WOStatus.RELEASED
    assert released.work_order.current_stage_index == 0


async def test_close_only_after_completion(plant, create_work_order, lifecycle):
    wo_id = await create_work_order()
    with pytest.raises(InvalidTransitionError):
        await lifecycle("close", plant.supervisor, wo_id)

    await lifecycle("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id))
    await lifecycle("complete", plant.rig_operator, complete_req(wo_id, plant.rig_station_id))
    closed = await lifecycle("close", plant.admin, wo_id)
    assert closed.work_order.status == WOStatus.CLOSED


# ------------------------------------------------------------------ update


async def test_update_planned_order_writes_one_audit_entry_per_field(plant, create_work_order, lifecycle, session_maker, load_work_order):
    wo_id = await create_work_order(release=False)
    result = await lifecycle(
        "update", plant.supervisor, wo_id, WorkOrderUpdate(qty=2, priority=WOPriority.HIGH, hull_id="HULL-9")
    )
    assert result.success

    wo = await load_work_order(wo_id)
    assert (wo.qty, wo.priority, wo.hull_id) == (2, WOPriority.HIGH, "HULL-9")

    updates = await audit_entries(session_maker, wo_id, "UPDATE")
    assert sorted(next(iter(e.after)) for e in updates) == ["hull_id", "priority", "qty"]
    assert await version_numbers(session_maker, wo_id) == [1, 2]


async def test_update_active_order_freezes_identity_fields(plant, create_work_order, lifecycle, load_work_order):
    wo_id = await create_work_order()
    with pytest.raises(ValidationFailedError, match="Hull cannot be changed"):
        await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(hull_id="OTHER"))
    with pytest.raises(ValidationFailedError, match="Quantity cannot be changed"):
        await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(qty=3))

    await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(priority=WOPriority.CRITICAL))
    assert (await load_work_order(wo_id)).priority == WOPriority.CRITICAL


async def test_update_rules(plant, create_work_order, lifecycle, set_fields, session_maker):
    wo_id = await create_work_order(release=False)
    now = utcnow()
    with pytest.raises(ValidationFailedError, match="before planned finish"):
        await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(planned_finish_date=now - timedelta(days=1)))

    unchanged = await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(product_sku="LX24-SPORT-WHT"))
    assert unchanged.message == "No changes detected"
    assert await version_numbers(session_maker, wo_id) == [1]

    await set_fields(wo_id, status=WOStatus.COMPLETED)
    with pytest.raises(ValidationFailedError, match="only be edited while active"):
        await lifecycle("update", plant.supervisor, wo_id, WorkOrderUpdate(priority=WOPriority.LOW))


# ------------------------------------------------------ versions / restore


async def test_restore_overwrites_state_and_appends_version(plant, create_work_order, lifecycle, session_maker):
    wo_id = await create_work_order()
    await lifecycle("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id))

    async with session_maker() as s:
        versions = await VersionRepository(s).list_versions(wo_id)
    released_version = next(v for v in versions if v.reason == "Work order released")

    result = await lifecycle("restore_version", plant.supervisor, wo_id, released_version.id)
    assert result.work_order.status == WOStatus.RELEASED
    assert result.work_order.current_stage_index == 0

    async with session_maker() as s:
        latest = (await VersionRepository(s).list_versions(wo_id))[0]
    assert latest.reason == f"Restored from Version {released_version.version_number}"
    assert [e.action for e in await audit_entries(session_maker, wo_id, "RESTORE")] == ["RESTORE"]


async def test_restore_rejects_foreign_or_missing_version(plant, create_work_order, lifecycle, session_maker):
    first = await create_work_order()
    second = await create_work_order(hull_id="HULL-0002")
    async with session_maker() as s:
        foreign = (await VersionRepository(s).list_versions(second))[0]

    with pytest.raises(ValidationFailedError, match="does not belong"):
        await lifecycle("restore_version", plant.supervisor, first, foreign.id)
    with pytest.raises(NotFoundError):
        await lifecycle("restore_version", plant.supervisor, first, plant.lam_id)


async def test_manual_version_and_numbering_is_gapless(plant, create_work_order, lifecycle, session_maker):
    wo_id = await create_work_order()
    await lifecycle("hold", plant.supervisor, wo_id, "Inspection")
    await lifecycle("unhold", plant.supervisor, wo_id)
    version = await lifecycle("create_manual_version", plant.supervisor, wo_id, "Before rigging")
    assert version.version_number == 5
    assert await version_numbers(session_maker, wo_id) == [1, 2, 3, 4, 5]

    with pytest.raises(ValidationFailedError):
        await lifecycle("create_manual_version", plant.supervisor, wo_id, "")


async def test_stage_index_stays_in_bounds_across_lifecycle(plant, create_work_order, lifecycle, load_work_order):
    wo_id = await create_work_order()
    steps = [
        ("start", plant.lam_operator, stage_req(wo_id, plant.lam_station_id)),
        ("complete", plant.lam_operator, complete_req(wo_id, plant.lam_station_id)),
        ("start", plant.rig_operator, stage_req(wo_id, plant.rig_station_id)),
        ("complete", plant.rig_operator, complete_req(wo_id, plant.rig_station_id)),
    ]
    for action, actor, payload in steps:
        await lifecycle(action, actor, payload)
        wo = await load_work_order(wo_id)
        assert 0 <= wo.current_stage_index < 2
    assert (await load_work_order(wo_id)).status == WOStatus.COMPLETED


# ------------------------------------------------------------ atomicity


async def test_stale_row_version_is_reported_as_conflict(plant, create_work_order, lifecycle, session_maker, load_work_order):
    wo_id = await create_work_order()

    async with session_maker() as stale_session:
        stale = await stale_session.get(WorkOrder, wo_id)
        await lifecycle("hold", plant.supervisor, wo_id, "Gelcoat defect")

        with pytest.raises(ConcurrencyConflictError):
            async with LifecycleService(stale_session).transaction():
                stale.priority = WOPriority.HIGH

    wo = await load_work_order(wo_id)
    assert wo.status == WOStatus.HOLD
    assert wo.priority == WOPriority.NORMAL


async def test_failure_mid_action_rolls_back_everything(plant, create_work_order, lifecycle, session_maker, load_work_order, monkeypatch):
    wo_id = await create_work_order()
    versions_before = await version_numbers(session_maker, wo_id)

    async def broken_create_version(self, work_order, reason, actor_id):
        raise RuntimeError("disk full")

    monkeypatch.setattr(VersionStore, "create_version", broken_create_version)
    with pytest.raises(RuntimeError):
        await lifecycle("hold", plant.supervisor, wo_id, "Inspection")

    wo = await load_work_order(wo_id)
    assert wo.status == WOStatus.RELEASED
    assert wo.held_from_status is None
    assert await audit_entries(session_maker, wo_id, "HOLD") == []
    assert await version_numbers(session_maker, wo_id) == versions_before
