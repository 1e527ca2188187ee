from __future__ import annotations

import pytest

from absensi.core.enums import DocumentType
from absensi.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError

from conftest import ADMIN, KABID


def payload(**overrides):
    data = {
        "name": "Persetujuan Izin Seksi Aplikasi",
        "document_type": "permission",
        "department_id": 3,
        "min_days": 0,
        "steps": [{"role_required": "Kepala Bidang"}, {"role_required": "Sekretaris Dinas", "required": False}],
    }
    data.update(overrides)
    return data


def test_admin_creates_a_workflow(container, world):
    created = container.workflow_admin_service.create_workflow(world.actor(ADMIN), payload())

    assert created.document_type == DocumentType.PERMISSION
    assert [s.step for s in created.steps] == [1, 2]
    assert created.steps[1].required is False
    assert world.audit.actions() == ["CREATE"]


def test_non_admin_cannot_manage_workflows(container, world):
    with pytest.raises(AuthorizationError):
        container.workflow_admin_service.create_workflow(world.actor(KABID), payload())


@pytest.mark.parametrize(
    "overrides",
    [
        {"steps": []},
        {"steps": [{"role_required": "Tidak Ada"}]},
        {"steps": ["Kepala Bidang"]},
        {"document_type": "MEMO"},
        {"department_id": 99},
        {"department_id": "abc"},
        {"min_days": -1},
        {"name": ""},
    ],
)
def test_invalid_workflow_definitions(container, world, overrides):
    with pytest.raises(ValidationError):
        container.workflow_admin_service.create_workflow(world.actor(ADMIN), payload(**overrides))


def test_workflow_names_are_unique(container, world):
    with pytest.raises(ConflictError):
        container.workflow_admin_service.create_workflow(world.actor(ADMIN), payload(name="Persetujuan Cuti Panjang"))


def test_update_and_delete(container, world):
    service = container.workflow_admin_service

    updated = service.update_workflow(world.actor(ADMIN), 3, {"min_days": 2, "is_active": False})
    assert updated.min_days == 2
    assert not updated.is_active

    service.delete_workflow(world.actor(ADMIN), 3)
    with pytest.raises(NotFoundError):
        service.get_workflow(3)
    assert world.audit.actions() == ["UPDATE", "DELETE"]


def test_list_filters_by_document_type(container):
    workflows = container.workflow_admin_service.list_workflows(document_type="leave")

    assert {w.workflow_id for w in workflows} == {1, 2}
