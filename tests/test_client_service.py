from datetime import date, datetime

import pytest

from models_orm import ClientORM
import service_modules.client_service as client_service_module
from service_modules.client_service import ClientService
from service_modules.errors import (
    AssignmentConflict, ConcurrentUpdate, DuplicateDateEntry, Forbidden, NotFound, UnknownUser, ValidationError
)


@pytest.fixture
def service(session_factory):
    return ClientService(session_factory, clock=lambda: datetime(2024, 1, 1, 10, 0))


def test_create_client_defaults(service, admin):
    created = service.create_client(admin, "  Ana  ")
    assert created.name == "Ana"
    assert created.active is True
    assert created.routine == ""
    assert created.goal_weight == ""
    assert created.assigned_user_id is None
    assert created.nutrition.adherence == []
    assert created.progress == []


def test_create_client_requires_name(service, admin):
    with pytest.raises(ValidationError):
        service.create_client(admin, "   ")


def test_member_cannot_create_or_delete(service, admin, member):
    with pytest.raises(Forbidden):
        service.create_client(member, "Ana")
    created = service.create_client(admin, "Ana")
    with pytest.raises(Forbidden):
        service.delete_client(member, created.id)


def test_admin_sees_all_newest_first(service, admin):
    for name in ("A", "B", "C"):
        service.create_client(admin, name)
    assert [c.name for c in service.list_visible(admin)] == ["C", "B", "A"]


def test_member_without_client_sees_nothing(service, admin, member):
    service.create_client(admin, "A")
    assert service.list_visible(member) == []


def test_member_sees_only_assigned_client(service, admin, member, other_member):
    a = service.create_client(admin, "A")
    b = service.create_client(admin, "B")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})
    service.update_client(admin, b.id, {"assigned_user_id": other_member.id})

    assert [c.id for c in service.list_visible(member)] == [a.id]
    with pytest.raises(NotFound):
        service.get_visible(member, b.id)


def test_admin_patch_with_assignment(service, admin, member):
    a = service.create_client(admin, "A")
    updated = service.update_client(admin, a.id, {
        "name": "Ana",
        "active": 0,
        "assigned_user_id": f"  {member.id}",
    })
    assert updated.name == "Ana"
    assert updated.active is False
    assert updated.assigned_user_id == member.id


def test_empty_string_unassigns(service, admin, member):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})
    assert service.update_client(admin, a.id, {"assigned_user_id": ""}).assigned_user_id is None


def test_conflict_rolls_back_whole_patch(service, admin, member):
    a = service.create_client(admin, "Client A")
    b = service.create_client(admin, "Client B")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})

    with pytest.raises(AssignmentConflict) as exc:
        service.update_client(admin, b.id, {"name": "Renamed", "assigned_user_id": member.id})

    assert exc.value.client_name == "Client A"
    unchanged = service.get_visible(admin, b.id)
    assert unchanged.name == "Client B"
    assert unchanged.assigned_user_id is None


def test_unknown_user_rolls_back_whole_patch(service, admin):
    a = service.create_client(admin, "A")
    with pytest.raises(UnknownUser):
        service.update_client(admin, a.id, {"routine": "Legs", "assigned_user_id": "ghost"})
    assert service.get_visible(admin, a.id).routine == ""


def test_member_logs_progress(service, admin, member):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})

    updated = service.update_client(member, a.id, {"progress": [{"date": "2024-01-01", "weight": 79.96, "reps": 10}]})
    assert updated.progress[0].date == date(2024, 1, 1)
    assert updated.progress[0].weight == 80.0
    assert service.get_visible(member, a.id).progress == updated.progress


def test_member_duplicate_date_leaves_history(service, admin, member):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})
    service.update_client(member, a.id, {"progress": [{"date": "2024-01-01", "weight": 80}]})

    with pytest.raises(DuplicateDateEntry):
        service.update_client(member, a.id, {"progress": [{"date": "2024-01-01", "weight": 79}]})

    progress = service.get_visible(member, a.id).progress
    assert [(p.date, p.weight) for p in progress] == [(date(2024, 1, 1), 80.0)]


def test_member_forbidden_field_applies_nothing(service, admin, member):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})

    with pytest.raises(Forbidden):
        service.update_client(member, a.id, {
            "progress": [{"date": "2024-01-01", "weight": 80}],
            "active": False,
        })

    stored = service.get_visible(admin, a.id)
    assert stored.progress == []
    assert stored.active is True


def test_member_cannot_patch_someone_elses_client(service, admin, member):
    a = service.create_client(admin, "A")
    with pytest.raises(NotFound):
        service.update_client(member, a.id, {"progress": [{"date": "2024-01-01", "weight": 80}]})


def test_member_adherence_log(service, admin, member):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id, "nutrition": {"calories": 2100}})
    updated = service.update_client(member, a.id, {"nutrition": {"adherence": [{"date": "2024-01-01", "note": "On plan"}]}})
    assert updated.nutrition.calories == 2100
    assert updated.nutrition.adherence[0].completed is True

    with pytest.raises(DuplicateDateEntry):
        service.update_client(member, a.id, {"nutrition": {"adherence": [{"date": "2024-01-01"}]}})


def test_admin_clears_progress(service, admin):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"progress": [
        {"date": "2023-12-01", "weight": 85},
        {"date": "2023-12-15", "weight": 83},
    ]})
    service.update_client(admin, a.id, {"progress": []})
    assert service.get_visible(admin, a.id).progress == []


def test_update_missing_client(service, admin):
    with pytest.raises(NotFound):
        service.update_client(admin, 999, {"name": "x"})


def test_delete_is_final(service, admin):
    a = service.create_client(admin, "A")
    assert service.delete_client(admin, a.id)["status"] == "success"
    with pytest.raises(NotFound):
        service.get_visible(admin, a.id)
    with pytest.raises(NotFound):
        service.delete_client(admin, a.id)


def test_interleaved_write_is_rejected_not_lost(service, session_factory, admin, member, monkeypatch):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"assigned_user_id": member.id})

    other = ClientService(session_factory, clock=lambda: datetime(2024, 1, 1, 10, 0))
    real_merge = client_service_module.merge
    interleaved = []

    def merge_after_other_writer(*args, **kwargs):
        # Another request commits between this one's read and its write
        if not interleaved:
            interleaved.append(True)
            other.update_client(member, a.id, {"nutrition": {"adherence": [{"date": "2024-01-01"}]}})
        return real_merge(*args, **kwargs)

    monkeypatch.setattr(client_service_module, "merge", merge_after_other_writer)

    with pytest.raises(ConcurrentUpdate) as exc:
        service.update_client(member, a.id, {"nutrition": {"adherence": [{"date": "2024-01-02"}]}})
    assert exc.value.status_code == 409

    stored = service.get_visible(member, a.id)
    assert [e.date for e in stored.nutrition.adherence] == [date(2024, 1, 1)]

    # A retry on the fresh row goes through and keeps both entries
    retried = service.update_client(member, a.id, {"nutrition": {"adherence": [{"date": "2024-01-02"}]}})
    assert [e.date for e in retried.nutrition.adherence] == [date(2024, 1, 1), date(2024, 1, 2)]


def test_version_bumps_on_every_write(service, session_factory, admin):
    a = service.create_client(admin, "A")
    service.update_client(admin, a.id, {"name": "B"})
    service.update_client(admin, a.id, {"routine": "Legs"})

    db = session_factory()
    try:
        assert db.get(ClientORM, a.id).version == 3
    finally:
        db.close()
