from __future__ import annotations

from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from absensi.main import create_app

from conftest import ADMIN, KABID, KADIS, KASUBAG, OFFICE, PASSWORD, SEKDIS, STAFF, World


def future_leave(days_ahead=30, length=3):
    start = date.today() + timedelta(days=days_ahead)
    return {
        "leave_type": "ANNUAL",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=length - 1)).isoformat(),
        "reason": "Mengurus keperluan keluarga",
    }


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "data": {"status": "ok"}}


def test_unknown_endpoint_is_json(client):
    resp = client.get("/api/tidak-ada")

    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


class TestAuth:
    def test_login_and_me(self, client):
        resp = client.post("/api/auth/login", json={"identifier": "user6@pekanbarukota.go.id", "password": PASSWORD})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["data"]["role"] == "Staff/Pelaksana"

        me = client.get("/api/auth/me").get_json()["data"]
        assert me["user_id"] == STAFF
        assert me["last_login"] is not None
        assert "password_hash" not in me

    def test_wrong_password(self, client):
        resp = client.post("/api/auth/login", json={"email": "user6@pekanbarukota.go.id", "password": "salah"})

        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "error": "Email/NIP atau kata sandi salah"}

    def test_logout_clears_the_session(self, client, login):
        login(STAFF)

        assert client.post("/api/auth/logout").status_code == 200
        assert client.get("/api/auth/me").status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/attendance/today"),
            ("post", "/api/attendance/check-in"),
            ("get", "/api/notifications"),
            ("get", "/api/admin/users"),
            ("get", "/api/dashboard"),
        ],
    )
    def test_guests_get_401(self, client, method, path):
        resp = getattr(client, method)(path)

        assert resp.status_code == 401
        assert resp.get_json()["success"] is False

    @pytest.mark.parametrize(
        "path",
        ["/api/admin/users", "/api/approvals/pending", "/api/admin/reports/attendance", "/api/admin/office-locations"],
    )
    def test_staff_gets_403_on_privileged_endpoints(self, login, path):
        resp = login(STAFF).get(path)

        assert resp.status_code == 403


class TestAttendance:
    def test_check_in_then_duplicate(self, login, world):
        client = login(STAFF)

        resp = client.post("/api/attendance/check-in", json={"latitude": OFFICE[0], "longitude": OFFICE[1]})

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["attendance"]["status"] in ("PRESENT", "LATE")
        assert data["attendance"]["is_valid_location"] is True
        assert data["location_validation"]["location"]["code"] == "KOMINFO-PKU"
        assert date.fromisoformat(data["attendance"]["attendance_date"]) == date.today()

        again = client.post("/api/attendance/check-in", json={"latitude": OFFICE[0], "longitude": OFFICE[1]})
        assert again.status_code == 409

        today = client.get("/api/attendance/today").get_json()["data"]
        assert today["check_out_time"] is None

    def test_check_in_outside_is_recorded_but_flagged(self, login):
        resp = login(STAFF).post("/api/attendance/check-in", json={"latitude": 0.5171, "longitude": 101.4478})

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Check-in tercatat di luar area kantor"
        assert body["data"]["attendance"]["is_valid_location"] is False

    @pytest.mark.parametrize("payload", [{}, {"latitude": "abc", "longitude": 101.4}, {"latitude": 91, "longitude": 0}])
    def test_check_in_with_bad_coordinates(self, login, payload):
        resp = login(STAFF).post("/api/attendance/check-in", json=payload)

        assert resp.status_code == 400

    def test_check_out_without_check_in(self, login):
        resp = login(STAFF).post("/api/attendance/check-out", json={"latitude": OFFICE[0], "longitude": OFFICE[1]})

        assert resp.get_json()["error"] == "Anda belum melakukan check-in hari ini"

    def test_validate_location(self, login):
        resp = login(STAFF).post("/api/locations/validate", json={"latitude": OFFICE[0], "longitude": OFFICE[1]})

        assert resp.get_json()["data"]["is_valid"] is True


class TestLeaveFlow:
    def test_submit_approve_three_levels(self, login, world):
        client = login(STAFF)
        resp = client.post("/api/requests/leave", json=future_leave())
        assert resp.status_code == 201
        leave_id = resp.get_json()["data"]["leave_id"]

        for approver in (KASUBAG, KABID, SEKDIS):
            client = login(approver)
            pending = client.get("/api/approvals/pending").get_json()
            assert pending["count"] == 1
            approval_id = pending["data"][0]["approval"]["approval_id"]
            assert client.post(f"/api/approvals/{approval_id}/approve", json={"comments": "Setuju"}).status_code == 200

        client = login(STAFF)
        detail = client.get(f"/api/requests/leave/{leave_id}").get_json()["data"]
        assert detail["status"] == "APPROVED"
        assert detail["workflow"]["final_status"] == "APPROVED"

        titles = [n["title"] for n in client.get("/api/notifications").get_json()["data"]["notifications"]]
        assert titles[0] == "Pengajuan cuti disetujui"

    def test_reject_needs_a_reason(self, login, world):
        login(STAFF).post("/api/requests/leave", json=future_leave())

        resp = login(KASUBAG).post("/api/approvals/1/reject", json={})

        assert resp.status_code == 400

    def test_out_of_order_approval(self, login):
        login(STAFF).post("/api/requests/leave", json=future_leave())

        resp = login(KABID).post("/api/approvals/2/approve", json={})

        assert resp.status_code == 400

    def test_cancel_by_owner(self, login, world):
        leave_id = login(STAFF).post("/api/requests/leave", json=future_leave()).get_json()["data"]["leave_id"]

        resp = login(STAFF).post(f"/api/requests/leave/{leave_id}/cancel")

        assert resp.get_json()["data"]["status"] == "CANCELLED"
        assert login(KASUBAG).get("/api/approvals/pending").get_json()["count"] == 0

    def test_unknown_document_type(self, login):
        resp = login(STAFF).get("/api/requests/memo/1")

        assert resp.status_code == 400

    def test_list_and_balance(self, login):
        client = login(STAFF)
        client.post("/api/requests/leave", json=future_leave())

        listing = client.get("/api/requests?type=leave").get_json()["data"]
        balance = client.get("/api/requests/leave/balance").get_json()["data"]

        assert list(listing) == ["leaves"]
        assert any(b["leave_type"] == "ANNUAL" for b in balance)


class TestNotifications:
    def test_mark_all_read(self, login, container):
        container.notification_service.notify(STAFF, title="Apel", message="Apel pagi")
        client = login(STAFF)

        resp = client.post("/api/notifications/mark-read", json={"all": True})

        assert resp.get_json()["data"] == {"updated": 1, "unread_count": 0}

    def test_admin_broadcast(self, login, world):
        resp = login(ADMIN).post(
            "/api/admin/notifications", json={"user_ids": [STAFF, KABID], "title": "Info", "message": "Libur nasional"}
        )

        assert resp.status_code == 201
        assert len(world.notifications.for_user(KABID)) == 1

    def test_stream_sends_connection_and_reconnect(self):
        world = World()
        settings = SimpleNamespace(NOTIFICATION_POLL_SECONDS=0, SSE_HEARTBEAT_SECONDS=30, SSE_MAX_DURATION_SECONDS=0)
        app = create_app(container=world.container(settings=settings), settings_module="config.testing")
        client = app.test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = STAFF
            sess["role"] = "Staff/Pelaksana"

        resp = client.get("/api/notifications/stream")

        assert resp.mimetype == "text/event-stream"
        body = resp.get_data(as_text=True)
        assert '"type": "connection"' in body
        assert '"type": "reconnect"' in body


class TestAdminAndReports:
    def test_admin_creates_a_user(self, login):
        resp = login(ADMIN).post(
            "/api/admin/users",
            json={
                "name": "Dewi Kartika",
                "email": "dewi@pekanbarukota.go.id",
                "nip": "199505052020122001",
                "role_id": 6,
                "department_id": 3,
            },
        )

        assert resp.status_code == 201
        assert len(resp.get_json()["data"]["temporary_password"]) == 12

    def test_admin_location_conflict(self, login):
        resp = login(ADMIN).post(
            "/api/admin/office-locations",
            json={"name": "Duplikat", "code": "kominfo-pku", "latitude": 0.5, "longitude": 101.4, "radius_meters": 100},
        )

        assert resp.status_code == 409

    def test_xlsx_download(self, login):
        resp = login(KADIS).get("/api/admin/reports/attendance.xlsx")

        assert resp.status_code == 200
        assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert resp.data[:2] == b"PK"
        assert "laporan_kehadiran_" in resp.headers["Content-Disposition"]

    def test_report_json_with_bad_range(self, login):
        resp = login(KADIS).get("/api/admin/reports/attendance?start_date=2026-03-10&end_date=2026-03-01")

        assert resp.status_code == 400

    def test_dashboard_for_admin(self, login):
        data = login(ADMIN).get("/api/dashboard").get_json()["data"]

        assert data["company"]["total_users"] == 7


class TestMistypedJson:
    USER = {"name": "Rina Wati", "email": "rina@pekanbarukota.go.id", "nip": "199601012021012001", "role_id": 6}

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"start_date": 20991001}, "Format tanggal tidak valid (YYYY-MM-DD)"),
            ({"end_date": ["2099-10-01"]}, "Format tanggal tidak valid (YYYY-MM-DD)"),
        ],
    )
    def test_leave_dates(self, login, overrides, error):
        resp = login(STAFF).post("/api/requests/leave", json={**future_leave(), **overrides})

        assert resp.status_code == 400
        assert resp.get_json()["error"] == error

    def test_permission_times(self, login):
        start = (date.today() + timedelta(days=7)).isoformat()
        resp = login(STAFF).post(
            "/api/requests/permission",
            json={"permission_type": "PERSONAL", "permission_date": start, "start_time": 800, "end_time": 1000, "reason": "Bank"},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Format jam tidak valid (HH:MM)"

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"role_id": "abc"}, "Peran tidak valid"),
            ({"role_id": True}, "Peran tidak valid"),
            ({"department_id": "x"}, "Unit kerja tidak valid"),
            ({"password": 12345678}, "Kata sandi minimal 8 karakter"),
            ({"hire_date": 20200101}, "Format tanggal tidak valid (YYYY-MM-DD)"),
        ],
    )
    def test_admin_user_fields(self, login, overrides, error):
        resp = login(ADMIN).post("/api/admin/users", json={**self.USER, **overrides})

        assert resp.status_code == 400
        assert resp.get_json()["error"] == error

    def test_department_parent(self, login):
        resp = login(ADMIN).post(
            "/api/admin/departments", json={"code": "UJI", "name": "Unit Uji Coba", "parent_department_id": "abc"}
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Unit induk tidak valid"

    def test_schedule_day(self, login):
        resp = login(ADMIN).post(
            f"/api/admin/users/{STAFF}/schedules", json={"day_of_week": 1, "start_time": "07:30", "end_time": "16:00"}
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Hari kerja tidak valid"

    def test_numeric_password_on_login(self, client):
        resp = client.post("/api/auth/login", json={"email": "user6@pekanbarukota.go.id", "password": 12345678})

        assert resp.status_code == 401
