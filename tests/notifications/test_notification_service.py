from __future__ import annotations

import json

import pytest

from absensi.core.enums import NotificationStatus, NotificationType
from absensi.core.exceptions import ValidationError
from absensi.notifications.service import NotificationService, format_sse

from conftest import NOW, STAFF, STAFF2, InMemoryNotifications


def frames(chunks):
    """Decode SSE frames into (event_id, payload) pairs."""
    decoded = []
    for chunk in chunks:
        event_id = None
        payload = None
        for line in chunk.strip().split("\n"):
            if line.startswith("id: "):
                event_id = int(line[4:])
            elif line.startswith("data: "):
                payload = json.loads(line[6:])
        decoded.append((event_id, payload))
    return decoded


class FakeClock:
    def __init__(self, on_tick=None):
        self.now = 0.0
        self.on_tick = on_tick or {}

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds
        action = self.on_tick.pop(self.now, None)
        if action:
            action()


@pytest.fixture
def repo():
    return InMemoryNotifications()


@pytest.fixture
def service(repo):
    return NotificationService(repo, poll_seconds=1, heartbeat_seconds=2, max_duration_seconds=4)


def test_notify_and_list_with_unread_count(service):
    for i in range(3):
        service.notify(STAFF, title=f"Info {i}", message="Pesan", type=NotificationType.INFO)
    service.notify(STAFF2, title="Lain", message="Pesan")

    page = service.list_for_user(STAFF, page=1, limit=2)

    assert [n["title"] for n in page["notifications"]] == ["Info 2", "Info 1"]
    assert page["unread_count"] == 3
    assert page["has_more"] is True
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    last = service.list_for_user(STAFF, page=2, limit=2)
    assert [n["title"] for n in last["notifications"]] == ["Info 0"]
    assert last["has_more"] is False


def test_notify_requires_title_and_message(service):
    with pytest.raises(ValidationError):
        service.notify(STAFF, title="", message="Pesan")
    with pytest.raises(ValidationError):
        service.notify(STAFF, title="Judul", message=" ")
    with pytest.raises(ValidationError):
        service.notify(STAFF, title="x" * 201, message="Pesan")


def test_mark_read_only_touches_own_notifications(service, repo):
    mine = service.notify(STAFF, title="A", message="Pesan")
    theirs = service.notify(STAFF2, title="B", message="Pesan")

    updated = service.mark_read(STAFF, [mine, theirs], now=NOW)

    assert updated == 1
    assert repo.rows[mine].status == NotificationStatus.READ
    assert repo.rows[mine].read_at == NOW
    assert repo.rows[theirs].status == NotificationStatus.UNREAD
    assert service.mark_read(STAFF, [mine], now=NOW) == 0


@pytest.mark.parametrize("ids", [[], None, ["abc"]])
def test_mark_read_validates_ids(service, ids):
    with pytest.raises(ValidationError):
        service.mark_read(STAFF, ids)


def test_mark_all_read(service):
    service.notify(STAFF, title="A", message="Pesan")
    service.notify(STAFF, title="B", message="Pesan")

    assert service.mark_all_read(STAFF, now=NOW) == 2
    assert service.unread_count(STAFF) == 0


def test_admin_broadcast_deduplicates_recipients(service, repo):
    created = service.create_from_admin(
        {"user_ids": [STAFF, str(STAFF2), STAFF], "title": "Apel pagi", "message": "Apel Senin pukul 07.30", "type": "warning"}
    )

    assert len(created) == 2
    assert {n.user_id for n in repo.rows.values()} == {STAFF, STAFF2}
    assert all(n.type == NotificationType.WARNING for n in repo.rows.values())


def test_admin_broadcast_to_a_single_user(service, repo):
    service.create_from_admin({"user_id": STAFF, "title": "Hai", "message": "Pesan", "data": {"link": "/absensi"}})

    assert repo.for_user(STAFF)[0].data == {"link": "/absensi"}


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "A", "message": "B"},
        {"user_ids": "7", "title": "A", "message": "B"},
        {"user_ids": ["x"], "title": "A", "message": "B"},
        {"user_ids": [STAFF], "title": "A", "message": "B", "type": "URGENT"},
        {"user_ids": [STAFF], "title": "A", "message": "B", "data": ["bukan", "objek"]},
        {"user_ids": [STAFF], "message": "B"},
    ],
)
def test_admin_broadcast_validation(service, payload):
    with pytest.raises(ValidationError):
        service.create_from_admin(payload)


def test_format_sse_frame():
    frame = format_sse({"type": "notification", "title": "Cuti disetujui"}, event_id=12, retry_ms=5000)

    assert frame == 'retry: 5000\nid: 12\ndata: {"type": "notification", "title": "Cuti disetujui"}\n\n'


def test_stream_pushes_new_notifications_and_heartbeats(service):
    service.notify(STAFF, title="Lama", message="Sudah ada sebelum terhubung")
    clock = FakeClock({1.0: lambda: service.notify(STAFF, title="Baru", message="Pengajuan disetujui")})

    decoded = frames(service.stream(STAFF, clock=clock, sleep=clock.sleep))

    assert [p["type"] for _, p in decoded] == ["connection", "notification", "heartbeat", "reconnect"]
    event_id, payload = decoded[1]
    assert event_id == 2
    assert payload["data"]["title"] == "Baru"
    assert clock.now == 4.0


def test_stream_resumes_after_last_event_id(service):
    for title in ("Satu", "Dua", "Tiga"):
        service.notify(STAFF, title=title, message="Pesan")
    clock = FakeClock()

    decoded = frames(service.stream(STAFF, last_event_id=1, clock=clock, sleep=clock.sleep))

    pushed = [(event_id, p["data"]["title"]) for event_id, p in decoded if p["type"] == "notification"]
    assert pushed == [(2, "Dua"), (3, "Tiga")]


def test_stream_ignores_other_users(service):
    clock = FakeClock({1.0: lambda: service.notify(STAFF2, title="Bukan untukmu", message="Pesan")})

    decoded = frames(service.stream(STAFF, clock=clock, sleep=clock.sleep))

    assert "notification" not in [p["type"] for _, p in decoded]
