from __future__ import annotations

import pytest

from absensi.audit.service import AuditService
from absensi.common.geo import haversine_distance
from absensi.core.exceptions import ConflictError, ValidationError
from absensi.locations.service import LocationValidationService, OfficeLocationService, round_meters

from conftest import ADMIN, OFFICE, InMemoryLocations


def office_service(world):
    return OfficeLocationService(world.locations, AuditService(world.audit))


def test_one_degree_of_longitude_on_the_equator():
    assert haversine_distance(0, 0, 0, 1) == pytest.approx(111194.9, abs=1)


def test_same_point_has_zero_distance():
    assert haversine_distance(*OFFICE, *OFFICE) == 0


def test_round_meters_is_half_up():
    assert round_meters(10.5) == 11
    assert round_meters(10.49) == 10


def test_point_inside_radius_is_valid(world):
    svc = LocationValidationService(world.locations)

    check = svc.validate_user_location(0.5075, 101.4478)

    assert check.is_valid
    assert check.location.code == "KOMINFO-PKU"
    assert check.distance_meters == pytest.approx(44.5, abs=1)


def test_point_outside_every_radius_names_the_nearest_location(world):
    svc = LocationValidationService(world.locations)

    check = svc.validate_user_location(0.4971, 101.4478)

    assert not check.is_valid
    assert check.location.code == "KOMINFO-PKU"
    assert "Kantor Dinas Kominfo" in check.error
    assert "1112m" in check.error


def test_tolerance_extends_the_radius(world):
    svc = LocationValidationService(world.locations)

    assert not svc.validate_user_location(0.5081, 101.4478).is_valid
    assert svc.validate_user_location(0.5081, 101.4478, tolerance_meters=20).is_valid


def test_invalid_coordinates_are_reported_not_raised(world):
    svc = LocationValidationService(world.locations)

    check = svc.validate_user_location(91, 101.4478)

    assert not check.is_valid
    assert check.error == "Format koordinat tidak valid"


def test_no_active_location():
    svc = LocationValidationService(InMemoryLocations())

    check = svc.validate_user_location(*OFFICE)

    assert not check.is_valid
    assert check.error == "Tidak ada lokasi kantor yang aktif"


def test_validate_against_specific_location(world):
    svc = LocationValidationService(world.locations)

    check = svc.validate_against_office_location(*OFFICE, location_id=2)

    assert not check.is_valid
    assert check.location.code == "DC-PKU"
    assert "Radius maksimal: 50m" in check.error


def test_inactive_location_is_rejected(world):
    world.locations.update(2, is_active=False)
    svc = LocationValidationService(world.locations)

    check = svc.validate_against_office_location(0.5074, 101.4468, location_id=2)

    assert not check.is_valid
    assert check.error == "Lokasi kantor tidak aktif"


def test_find_nearest(world):
    svc = LocationValidationService(world.locations)

    check = svc.find_nearest_office_location(0.5074, 101.4467)

    assert check.location.code == "DC-PKU"
    assert check.is_valid


def test_create_location_uppercases_code_and_audits(world):
    svc = office_service(world)

    created = svc.create_location(
        actor_id=ADMIN, name="Kantor Pelayanan", code="kpt-pku", latitude=0.5083, longitude=101.4512
    )

    assert created.code == "KPT-PKU"
    assert created.radius_meters == 100
    assert world.audit.actions() == ["CREATE"]


@pytest.mark.parametrize("radius", [5, 1001, "100"])
def test_radius_out_of_range(world, radius):
    svc = office_service(world)

    with pytest.raises(ValidationError):
        svc.create_location(
            actor_id=ADMIN, name="X", code="X", latitude=0.5, longitude=101.4, radius_meters=radius
        )


def test_duplicate_code_conflicts(world):
    svc = office_service(world)

    with pytest.raises(ConflictError):
        svc.create_location(actor_id=ADMIN, name="Lain", code="DC-PKU", latitude=0.5, longitude=101.4)


def test_deactivation_is_audited_as_such(world):
    svc = office_service(world)

    svc.update_location(2, actor_id=ADMIN, changes={"is_active": False})

    assert world.audit.actions() == ["DEACTIVATE"]


def test_last_active_location_cannot_be_deleted(world):
    svc = office_service(world)
    svc.update_location(2, actor_id=ADMIN, changes={"is_active": False})

    with pytest.raises(ValidationError):
        svc.delete_location(1, actor_id=ADMIN)


def test_referenced_location_cannot_be_deleted(world):
    world.locations.references[2] = 3
    svc = office_service(world)

    with pytest.raises(ConflictError):
        svc.delete_location(2, actor_id=ADMIN)


def test_unreferenced_location_is_deleted_and_audited(world):
    svc = office_service(world)

    svc.delete_location(2, actor_id=ADMIN)

    assert world.locations.get_by_id(2) is None
    (log,) = world.audit.rows
    assert (log.action, log.table_name, log.record_id) == ("DELETE", "office_locations", "2")
