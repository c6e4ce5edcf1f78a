from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from rfidclock.main import create_app
from rfidclock.settings import Settings

from .conftest import FakeMailbox

SEEDED = ["3513B5B1", "40C86F61", "85DB6DB1", "BA910FB1", "FD5FC801"]


@pytest.fixture
def mailbox():
    return FakeMailbox()


@pytest.fixture
def client(engine, session_factory, mailbox, clock):
    settings = Settings(poller_enabled=False, work_start="08:00", work_end="17:00", late_tolerance_minutes=15,
                        early_entry_minutes=60, log_file="")
    app = create_app(settings, session_factory, bind=engine, mailbox=mailbox, clock=clock)
    with TestClient(app) as c:
        yield c


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "running"
    assert body["poller_running"] is False
    assert body["channels"]["logs/asistencia"] == {"kind": "attendance", "dedup_keys": 0}
    assert "X-Process-Time" in res.headers


def test_system_badges_are_seeded(client):
    assert client.get("/badges/unclaimed").json() == {"badges": SEEDED}


def test_claim_and_release(client, make_worker):
    ana = make_worker("Ana")
    luis = make_worker("Luis")

    res = client.post("/badges/35 13 b5 b1/claim", json={"worker_id": ana})
    assert res.status_code == 200
    assert res.json()["uid"] == "3513B5B1"
    assert res.json()["owner_id"] == ana

    res = client.post("/badges/3513B5B1/claim", json={"worker_id": luis})
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "already-claimed"

    res = client.post("/badges/3513B5B1/release", json={"worker_id": luis})
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "not-owned"

    assert client.get(f"/badges/owner/{ana}").json() == {"worker_id": ana, "badges": ["3513B5B1"]}
    res = client.post("/badges/3513B5B1/release", json={"worker_id": ana})
    assert res.status_code == 200
    assert res.json()["claimed"] is False


def test_claim_for_unknown_worker(client):
    res = client.post("/badges/3513B5B1/claim", json={"worker_id": 999})
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "worker-not-found"


def test_claim_invalid_badge_id(client, make_worker):
    res = client.post("/badges/---/claim", json={"worker_id": make_worker()})
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "invalid-badge-id"


def test_resolve_flow(client, make_worker):
    worker_id = make_worker("Rosa", "Huaman")
    client.post("/badges/3513B5B1/claim", json={"worker_id": worker_id})

    res = client.post("/attendance/resolve", json={"badge_id": "40C86F61"})
    assert res.json() == {"action": "ignored", "reason": "unowned-badge"}

    res = client.post("/attendance/resolve", json={"badge_id": "3513B5B1", "timestamp": "2024-03-04T08:20:00"})
    body = res.json()
    assert body["action"] == "checked_in"
    assert body["record"]["is_late"] is True
    assert body["record"]["lateness_duration"] == "20m 0s"
    assert body["record"]["worker_full_name"] == "Rosa Huaman"

    assert client.get(f"/attendance/active/{worker_id}").json()["status"] == "CHECKED_IN"

    res = client.post("/attendance/resolve", json={"badge_id": "3513B5B1", "timestamp": "2024-03-04T17:00:00"})
    body = res.json()
    assert body["action"] == "checked_out"
    assert body["record"]["worked_duration"] == "8h 40m 0s"
    assert client.get(f"/attendance/active/{worker_id}").status_code == 404


def test_resolve_outside_window_is_ignored(client, make_worker):
    worker_id = make_worker()
    client.post("/badges/3513B5B1/claim", json={"worker_id": worker_id})
    res = client.post("/attendance/resolve", json={"badge_id": "3513B5B1", "timestamp": "2024-03-04T02:00:00"})
    assert res.json() == {"action": "ignored", "reason": "outside-allowed-window"}


def test_explicit_check_in_and_out_errors(client, make_worker):
    worker_id = make_worker()

    res = client.post("/attendance/check-out", json={"worker_id": worker_id})
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "no-active-session"

    res = client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1",
                                                    "timestamp": "2024-03-04T03:00:00"})
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "outside-allowed-window"

    assert client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1"}).status_code == 200
    res = client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1"})
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "already-checked-in"


def test_attendance_by_date(client, make_worker):
    ana = make_worker("Ana")
    luis = make_worker("Luis")
    client.post("/attendance/check-in", json={"worker_id": ana, "badge_id": "3513B5B1",
                                              "timestamp": "2024-03-04T08:30:00"})
    client.post("/attendance/check-in", json={"worker_id": luis, "badge_id": "85DB6DB1",
                                              "timestamp": "2024-03-04T07:50:00"})

    day = client.get("/attendance/date/2024-03-04").json()
    assert [r["worker_id"] for r in day] == [luis, ana]
    late = client.get("/attendance/late/2024-03-04").json()
    assert [r["worker_id"] for r in late] == [ana]
    assert client.get("/attendance/date/04-03-2024").status_code == 400
    assert client.get("/attendance/date/2024-13-45").status_code == 400


def test_metrics(client, make_worker, ledger):
    ana = make_worker("Ana", "Quispe")
    luis = make_worker("Luis", "Rojas")
    ledger.check_in(ana, "3513B5B1", datetime(2024, 3, 1, 8, 30))
    ledger.check_out(ana, datetime(2024, 3, 1, 17, 0))
    ledger.check_in(ana, "3513B5B1", datetime(2024, 3, 4, 8, 0))
    ledger.check_in(luis, "85DB6DB1", datetime(2024, 3, 4, 8, 45))

    week = client.get("/api/metrics/daily_checkins_last_week").json()
    assert week["labels"][0] == "2024-02-27"
    assert week["labels"][-1] == "2024-03-04"
    assert week["data"] == [0, 0, 0, 1, 0, 0, 2]
    assert week["late"] == [0, 0, 0, 1, 0, 0, 1]

    month = client.get("/api/metrics/monthly_summary/2024-03").json()
    assert month["total_checkins"] == 3
    assert month["total_late"] == 2
    assert month["late_breakdown"] == {"Ana Quispe": "1 (33.3%)", "Luis Rojas": "1 (33.3%)"}
    assert client.get("/api/metrics/monthly_summary/2024-13").status_code == 400


def test_manual_poll(client, mailbox, make_worker):
    worker_id = make_worker()
    client.post("/badges/3513B5B1/claim", json={"worker_id": worker_id})
    mailbox.push("logs/asistencia", "-N1", "Marcaje RFID: 35 13 B5 B1")

    res = client.post("/admin/poll/logs/asistencia")
    assert res.status_code == 200
    assert res.json()["processed"] == 1
    assert client.get(f"/attendance/active/{worker_id}").status_code == 200
    assert client.get("/health").json()["channels"]["logs/asistencia"]["dedup_keys"] == 1

    assert client.post("/admin/poll/logs/asistencia").json()["skipped"] == 1
    assert client.post("/admin/poll/logs/temperatura").status_code == 404


def test_deprovision_worker(client, make_worker):
    worker_id = make_worker("Rosa", "Huaman")
    client.post("/badges/3513B5B1/claim", json={"worker_id": worker_id})
    client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1"})

    res = client.delete(f"/workers/{worker_id}")
    assert res.json() == {"ok": True, "worker_id": worker_id, "badges_released": 1}
    assert "3513B5B1" in client.get("/badges/unclaimed").json()["badges"]

    record = client.get("/attendance/date/2024-03-04").json()[0]
    assert record["worker_id"] is None
    assert record["worker_full_name"] == "Rosa Huaman (deleted)"
    assert client.delete(f"/workers/{worker_id}").status_code == 404


def test_enroll_fingerprint_timeout(client, make_worker, mailbox):
    worker_id = make_worker()
    mailbox.wait_for_state_change = lambda previous, timeout, interval=1.0: None
    mailbox.send_command = lambda command, state, target_id=None: mailbox.write("admin/comando", command)
    mailbox.clear_command = lambda: mailbox.write("admin/comando", "NADA")

    res = client.post(f"/workers/{worker_id}/enroll-fingerprint")

    assert res.status_code == 504
    assert res.json()["detail"]["code"] == "enrollment-failed"
    assert mailbox.values["admin/comando"] == "NADA"


def test_access_audit_routes(client, make_worker):
    rosa = make_worker("Rosa", "Huaman", sensor_id=3)
    audit = client.app.state.services.audit
    # clock is at 2024-03-04 08:00
    audit.record(True, 3, datetime(2024, 3, 2, 9, 0))
    audit.record(False, 3, datetime(2024, 3, 4, 6, 0))
    audit.record(False, None, datetime(2024, 3, 4, 7, 0))
    audit.record(True, 3, datetime(2024, 3, 4, 7, 30))

    by_worker = client.get(f"/access-audit/worker/{rosa}").json()
    assert [e["status"] for e in by_worker] == ["GRANTED", "DENIED", "GRANTED"]
    assert by_worker[0]["worker_full_name"] == "Rosa Huaman"

    params = {"start_time": "2024-03-04T00:00:00", "end_time": "2024-03-04T23:59:59"}
    assert len(client.get("/access-audit/time-range", params=params).json()) == 3
    denied = client.get("/access-audit/time-range", params={**params, "status": "DENIED"}).json()
    assert [e["sensor_id"] for e in denied] == [None, 3]
    assert client.get("/access-audit/time-range", params={**params, "status": "maybe"}).status_code == 400
    reversed_range = {"start_time": params["end_time"], "end_time": params["start_time"]}
    assert client.get("/access-audit/time-range", params=reversed_range).status_code == 400

    assert len(client.get("/access-audit/denied").json()) == 2
    assert len(client.get("/access-audit/granted").json()) == 1
    assert len(client.get("/access-audit/granted", params={"hours": 72}).json()) == 2
    assert client.get("/access-audit/denied", params={"hours": 0}).status_code == 422

    res = client.get(f"/access-audit/worker/{rosa}/denied-count", params=params)
    assert res.json() == {"worker_id": rosa, "denied": 1}


def test_system_config_read_and_update(client, make_worker):
    config = client.get("/system/config").json()
    assert config["work_start"] == "08:00:00"
    assert config["late_tolerance_minutes"] == 15
    assert config["simulation_mode"] is False

    res = client.put("/system/config", json={"work_start": "09:00", "late_tolerance_minutes": 5})
    assert res.status_code == 200
    assert res.json()["work_start"] == "09:00:00"
    assert res.json()["work_end"] == "17:00:00"

    # 09:04 is inside the new tolerance, 08:20 would have been late before
    worker_id = make_worker()
    res = client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1",
                                                    "timestamp": "2024-03-04T09:04:00"})
    assert res.json()["is_late"] is False

    res = client.put("/system/config", json={"late_tolerance_minutes": -1})
    assert res.status_code == 422
    res = client.put("/system/config", json={"work_end": None})
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "invalid-configuration"
    assert client.get("/system/config").json()["late_tolerance_minutes"] == 5


def test_system_config_simulation(client, make_worker):
    res = client.post("/system/config/simulation/enable", json={"simulated_date": "2024-01-15"})
    assert res.json()["simulation_mode"] is True
    assert res.json()["simulated_date"] == "2024-01-15"

    worker_id = make_worker()
    client.post("/attendance/check-in", json={"worker_id": worker_id, "badge_id": "3513B5B1"})
    assert client.get("/attendance/date/2024-01-15").json()[0]["worker_id"] == worker_id
    client.post("/attendance/check-out", json={"worker_id": worker_id})

    res = client.post("/system/config/simulation/disable")
    assert res.json()["simulation_mode"] is False
    assert res.json()["simulated_date"] is None

    assert client.post("/system/config/simulation/enable").json()["simulation_mode"] is True
