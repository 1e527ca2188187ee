from __future__ import annotations

from datetime import date, time

import pytest

from absensi.core.enums import DayOfWeek
from absensi.core.exceptions import NotFoundError, ValidationError

from conftest import STAFF

TUESDAY = date(2026, 3, 10)
WEDNESDAY = date(2026, 3, 11)


def test_default_start_without_schedule(container):
    assert container.schedule_service.effective_start(user_id=STAFF, work_date=TUESDAY) == time(8, 0)
    assert container.schedule_service.default_location_id(user_id=STAFF, work_date=TUESDAY) is None


def test_schedule_overrides_start_and_location_for_its_weekday(container):
    schedules = container.schedule_service
    schedules.assign(user_id=STAFF, day_of_week="tuesday", start_time="07:30", end_time="16:00", office_location_id=2)

    assert schedules.effective_start(user_id=STAFF, work_date=TUESDAY) == time(7, 30)
    assert schedules.default_location_id(user_id=STAFF, work_date=TUESDAY) == 2
    assert schedules.effective_start(user_id=STAFF, work_date=WEDNESDAY) == time(8, 0)


def test_assign_is_an_upsert_per_weekday(container):
    schedules = container.schedule_service
    first = schedules.assign(user_id=STAFF, day_of_week="MONDAY", start_time="07:30", end_time="16:00")
    second = schedules.assign(user_id=STAFF, day_of_week="MONDAY", start_time="08:00", end_time="16:30", is_active=False)

    assert first == second
    (only,) = schedules.list_for_user(user_id=STAFF)
    assert only.day_of_week == DayOfWeek.MONDAY
    assert only.to_dict()["start_time"] == "08:00"
    assert schedules.get_for_date(user_id=STAFF, work_date=date(2026, 3, 9)) is None


@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({"day_of_week": "MINGGU"}, ValidationError),
        ({"start_time": "16:00", "end_time": "08:00"}, ValidationError),
        ({"start_time": "jam 8"}, ValidationError),
        ({"office_location_id": 99}, NotFoundError),
        ({"user_id": 404}, NotFoundError),
        ({"user_id": 0}, ValidationError),
    ],
)
def test_assign_validation(container, kwargs, error):
    args = {"user_id": STAFF, "day_of_week": "FRIDAY", "start_time": "07:30", "end_time": "16:00"}
    args.update(kwargs)

    with pytest.raises(error):
        container.schedule_service.assign(**args)


def test_delete(container):
    schedule_id = container.schedule_service.assign(
        user_id=STAFF, day_of_week="FRIDAY", start_time="07:30", end_time="16:00"
    )

    container.schedule_service.delete(schedule_id=schedule_id)

    with pytest.raises(NotFoundError):
        container.schedule_service.delete(schedule_id=schedule_id)
