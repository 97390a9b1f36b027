"""
Route tests through Flask's test client, backed by in-memory SQLite and fake
user/communication services.
"""

from datetime import date

import pytest

from medical_service.api.app import create_app
from medical_service.api.auth import generate_token
from medical_service.database import create_db_engine
from medical_service.errors import NotFoundError
from medical_service.models import ResourceKind
from medical_service.store import ResourceStore
from medical_service.tables import injuries


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeResolver:
    """Stands in for the user service: players 42/43 on team 5, player 50 on team 9."""
    USERS = {"42": "5", "43": "5", "50": "9"}
    TEAMS = {"5": {"coach_id": "17", "players": ["42", "43"]},
             "9": {"coach_id": "18", "players": ["50"]}}

    def __init__(self):
        self.calls = []

    def get_user(self, user_id):
        self.calls.append(("user", user_id))
        if user_id not in self.USERS:
            raise NotFoundError(f"User {user_id} not found")
        return {"id": user_id, "team_id": self.USERS[user_id]}

    def get_team(self, team_id):
        if team_id not in self.TEAMS:
            raise NotFoundError(f"Team {team_id} not found")
        return {"id": team_id, "coach_id": self.TEAMS[team_id]["coach_id"]}

    def get_team_members(self, team_id):
        self.calls.append(("members", team_id))
        if team_id not in self.TEAMS:
            raise NotFoundError(f"Team {team_id} not found")
        return list(self.TEAMS[team_id]["players"])


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send(self, recipients, notification):
        self.sent.append((list(recipients), notification))
        return True


@pytest.fixture
def env():
    engine = create_db_engine("sqlite://")
    resolver = FakeResolver()
    notifier = FakeNotifier()
    app = create_app(
        engine=engine,
        identity_factory=lambda token: resolver,
        notifier_factory=lambda token, sender: notifier,
    )
    app.config["TESTING"] = True
    return {
        "client": app.test_client(),
        "store": ResourceStore(engine),
        "engine": engine,
        "resolver": resolver,
        "notifier": notifier,
    }


def auth(user_id, role, team_id=None):
    return {"Authorization": f"Bearer {generate_token(user_id, role, team_id)}"}


ADMIN = ("1", "admin")
MEDICAL = ("90", "medical")
PLAYER_42 = ("42", "player", "5")
COACH_5 = ("17", "coach", "5")
COACH_9 = ("18", "coach", "9")


def insert_injury(engine, injury_id, player_id, team_id):
    with engine.begin() as conn:
        conn.execute(injuries.insert().values(
            id=injury_id, player_id=player_id, team_id=team_id,
            injury_date=date(2024, 3, injury_id), injury_type="Hamstring strain",
            is_active=True, reported_by="90",
        ))


def add_plan(store, injury_id):
    return store.create(ResourceKind.REHAB_PLAN, {
        "injury_id": injury_id, "title": "Return to play", "start_date": date(2024, 3, 10),
        "status": "planned", "created_by": "90",
    })


def add_treatment(store, injury_id):
    return store.create(ResourceKind.TREATMENT, {
        "injury_id": injury_id, "treatment_date": date(2024, 3, 12),
        "treatment_type": "Physiotherapy", "treated_by": "90",
    })


def add_report(store, user_id, created_by="90"):
    return store.create(ResourceKind.MEDICAL_REPORT, {
        "user_id": user_id, "title": "Screening", "report_date": date(2024, 2, 1),
        "content": "Fit", "report_type": "Screening", "confidentiality_level": "standard",
        "created_by": created_by,
    })


# ── Tests: health / auth ─────────────────────────────────────────────

def test_health_needs_no_token(env):
    resp = env["client"].get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_index_lists_endpoints(env):
    resp = env["client"].get("/")
    assert resp.get_json()["service"] == "medical-service"


def test_missing_token_is_401(env):
    resp = env["client"].get("/api/injuries")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Authentication token is missing"


def test_malformed_header_is_401(env):
    resp = env["client"].get("/api/injuries", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid authorization header format"


def test_garbage_token_is_401(env):
    resp = env["client"].get("/api/injuries", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token"


def test_unknown_route_is_json_404(env):
    resp = env["client"].get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Not Found"


# ── Tests: injuries ──────────────────────────────────────────────────

def test_player_reads_own_injury_but_not_anothers(env):
    insert_injury(env["engine"], 7, "42", "5")
    insert_injury(env["engine"], 8, "43", "5")
    client = env["client"]

    own = client.get("/api/injuries/7", headers=auth(*PLAYER_42))
    assert own.status_code == 200
    assert own.get_json()["treatments"] == []

    other = client.get("/api/injuries/8", headers=auth(*PLAYER_42))
    assert other.status_code == 403
    assert other.get_json()["error"] == "Forbidden"


def test_missing_injury_is_404_for_every_role(env):
    for who in (PLAYER_42, COACH_5, ADMIN):
        resp = env["client"].get("/api/injuries/999", headers=auth(*who))
        assert resp.status_code == 404


def test_player_list_only_shows_own_injuries(env):
    insert_injury(env["engine"], 1, "42", "5")
    insert_injury(env["engine"], 2, "43", "5")
    resp = env["client"].get("/api/injuries?player_id=43", headers=auth(*PLAYER_42))
    assert [r["id"] for r in resp.get_json()] == [1]


def test_player_route_denies_other_player(env):
    resp = env["client"].get("/api/injuries/player/43", headers=auth(*PLAYER_42))
    assert resp.status_code == 403


def test_coach_player_route_checks_player_team(env):
    insert_injury(env["engine"], 1, "50", "9")
    client = env["client"]
    assert client.get("/api/injuries/player/50", headers=auth(*COACH_5)).status_code == 403
    resp = client.get("/api/injuries/player/50", headers=auth(*COACH_9))
    assert resp.status_code == 200
    assert len(resp.get_json()) == 1


def test_active_injuries_filter(env):
    insert_injury(env["engine"], 1, "42", "5")
    insert_injury(env["engine"], 2, "43", "5")
    env["store"].set_injury_status(2, False)
    resp = env["client"].get("/api/injuries/active", headers=auth(*ADMIN))
    assert [r["id"] for r in resp.get_json()] == [1]


def test_medical_creates_injury_and_notifies(env):
    resp = env["client"].post("/api/injuries", headers=auth(*MEDICAL), json={
        "player_id": 42, "team_id": 5, "injury_date": "2024-03-01",
        "injury_type": "Ankle sprain",
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["reported_by"] == "90"
    assert body["is_active"] is True
    recipients, message = env["notifier"].sent[0]
    assert recipients == ["42", "17"]
    assert message["title"] == "Injury created"


def test_create_injury_validation_error(env):
    resp = env["client"].post("/api/injuries", headers=auth(*MEDICAL), json={"team_id": 5})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Validation Error"
    assert "Player ID is required" in body["details"]


def test_create_injury_requires_json(env):
    resp = env["client"].post("/api/injuries", headers=auth(*MEDICAL), data="player_id=42")
    assert resp.status_code == 400


def test_player_cannot_create_injury(env):
    resp = env["client"].post("/api/injuries", headers=auth(*PLAYER_42), json={
        "player_id": "42", "injury_date": "2024-03-01", "injury_type": "Ankle sprain",
    })
    assert resp.status_code == 403
    assert env["notifier"].sent == []


def test_injury_status_patch(env):
    insert_injury(env["engine"], 3, "42", "5")
    client = env["client"]

    resp = client.patch("/api/injuries/3/status", headers=auth(*MEDICAL),
                        json={"is_active": False, "return_date": "2024-04-20"})
    assert resp.status_code == 200
    assert resp.get_json()["is_active"] is False
    assert resp.get_json()["return_date"] == "2024-04-20"
    assert env["notifier"].sent[-1][1]["title"] == "Injury marked as healed"

    missing = client.patch("/api/injuries/3/status", headers=auth(*MEDICAL), json={})
    assert missing.status_code == 400


def test_only_admin_deletes_injury(env):
    insert_injury(env["engine"], 4, "42", "5")
    client = env["client"]
    assert client.delete("/api/injuries/4", headers=auth(*MEDICAL)).status_code == 403
    resp = client.delete("/api/injuries/4", headers=auth(*ADMIN))
    assert resp.status_code == 204
    assert resp.data == b""


def test_coach_teamless_injury_uses_player_team(env):
    insert_injury(env["engine"], 1, "50", None)
    insert_injury(env["engine"], 2, "42", None)
    treatment = add_treatment(env["store"], 1)
    client = env["client"]

    assert client.get("/api/injuries/1", headers=auth(*COACH_5)).status_code == 403
    assert client.get(f"/api/treatments/{treatment['id']}", headers=auth(*COACH_5)).status_code == 403
    body = {"injury_id": 1, "treatment_date": "2024-03-12", "treatment_type": "Massage"}
    assert client.post("/api/treatments", headers=auth(*COACH_5), json=body).status_code == 403

    assert client.get("/api/injuries/2", headers=auth(*COACH_5)).status_code == 200
    assert client.get(f"/api/treatments/{treatment['id']}", headers=auth(*COACH_9)).status_code == 200
    assert ("user", "50") in env["resolver"].calls


# ── Tests: treatments ────────────────────────────────────────────────

def test_coach_lists_only_team_treatments(env):
    insert_injury(env["engine"], 1, "42", "5")
    insert_injury(env["engine"], 2, "50", "9")
    add_treatment(env["store"], 1)
    add_treatment(env["store"], 2)

    resp = env["client"].get("/api/treatments", headers=auth(*COACH_5))
    rows = resp.get_json()
    assert resp.status_code == 200
    assert [r["team_id"] for r in rows] == ["5"]


def test_coach_writes_treatment_only_in_own_team(env):
    insert_injury(env["engine"], 1, "50", "9")
    body = {"injury_id": 1, "treatment_date": "2024-03-12", "treatment_type": "Massage"}
    client = env["client"]

    assert client.post("/api/treatments", headers=auth(*COACH_5), json=body).status_code == 403
    resp = client.post("/api/treatments", headers=auth(*COACH_9), json=body)
    assert resp.status_code == 201
    assert resp.get_json()["treated_by"] == "18"
    assert env["notifier"].sent[-1][0] == ["50"]


def test_treatment_for_missing_injury_is_404(env):
    body = {"injury_id": 77, "treatment_date": "2024-03-12", "treatment_type": "Massage"}
    resp = env["client"].post("/api/treatments", headers=auth(*ADMIN), json=body)
    assert resp.status_code == 404


def test_player_cannot_update_treatment(env):
    insert_injury(env["engine"], 1, "42", "5")
    treatment = add_treatment(env["store"], 1)
    resp = env["client"].put(f"/api/treatments/{treatment['id']}", headers=auth(*PLAYER_42),
                             json={"treatment_date": "2024-03-13", "treatment_type": "Rest"})
    assert resp.status_code == 403


# ── Tests: rehab plans / progress ────────────────────────────────────

def test_admin_deletes_plan_and_its_notes(env):
    insert_injury(env["engine"], 1, "42", "5")
    plan = add_plan(env["store"], 1)
    client = env["client"]
    note = client.post(f"/api/rehab/plans/{plan['id']}/progress", headers=auth(*MEDICAL), json={
        "note_date": "2024-03-15", "content": "Jogging", "progress_status": "improved",
    })
    assert note.status_code == 201

    resp = client.delete(f"/api/rehab/plans/{plan['id']}", headers=auth(*ADMIN))
    assert resp.status_code == 204

    assert client.get(f"/api/progress/{note.get_json()['id']}", headers=auth(*ADMIN)).status_code == 404
    assert client.get("/api/progress", headers=auth(*ADMIN)).get_json() == []


def test_create_plan_defaults_to_planned(env):
    insert_injury(env["engine"], 1, "42", "5")
    resp = env["client"].post("/api/rehab/plans", headers=auth(*COACH_5), json={
        "injury_id": 1, "title": "Strength block", "start_date": "2024-03-10",
    })
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "planned"
    assert resp.get_json()["created_by"] == "17"


def test_plan_status_change_notifies_player(env):
    insert_injury(env["engine"], 1, "42", "5")
    plan = add_plan(env["store"], 1)
    resp = env["client"].put(f"/api/rehab/plans/{plan['id']}", headers=auth(*MEDICAL),
                             json={"status": "in-progress"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "in-progress"
    assert env["notifier"].sent[-1][0] == ["42"]


def test_plan_update_rejects_end_before_start(env):
    insert_injury(env["engine"], 1, "42", "5")
    plan = add_plan(env["store"], 1)
    resp = env["client"].put(f"/api/rehab/plans/{plan['id']}", headers=auth(*MEDICAL),
                             json={"end_date": "2024-03-01"})
    assert resp.status_code == 400


def test_player_progress_note_notifies_coach(env):
    insert_injury(env["engine"], 1, "42", "5")
    plan = add_plan(env["store"], 1)
    resp = env["client"].post(f"/api/rehab/plans/{plan['id']}/progress", headers=auth(*PLAYER_42),
                              json={"note_date": "2024-03-15", "content": "Less pain",
                                    "progress_status": "improved", "pain_level": 3})
    assert resp.status_code == 201
    assert resp.get_json()["created_by"] == "42"
    assert [r for r, _ in env["notifier"].sent] == [["17"]]


def test_player_cannot_add_progress_to_anothers_plan(env):
    insert_injury(env["engine"], 1, "43", "5")
    plan = add_plan(env["store"], 1)
    resp = env["client"].post(f"/api/rehab/plans/{plan['id']}/progress", headers=auth(*PLAYER_42),
                              json={"note_date": "2024-03-15", "content": "x",
                                    "progress_status": "stable"})
    assert resp.status_code == 403


def test_progress_by_user_route(env):
    insert_injury(env["engine"], 1, "42", "5")
    plan = add_plan(env["store"], 1)
    env["client"].post(f"/api/rehab/plans/{plan['id']}/progress", headers=auth(*MEDICAL), json={
        "note_date": "2024-03-15", "content": "Jogging", "progress_status": "improved",
    })
    resp = env["client"].get("/api/progress/user/42", headers=auth(*COACH_5))
    assert resp.status_code == 200
    assert len(resp.get_json()) == 1
    assert env["client"].get("/api/progress/user/42", headers=auth(*COACH_9)).status_code == 403


# ── Tests: medical reports ───────────────────────────────────────────

def test_team_admin_without_team_gets_empty_report_list(env):
    add_report(env["store"], "42")
    resp = env["client"].get("/api/reports", headers=auth("30", "team-admin"))
    assert resp.status_code == 200
    assert resp.get_json() == []
    assert env["resolver"].calls == []


def test_coach_report_list_is_limited_to_team_members(env):
    add_report(env["store"], "42")
    add_report(env["store"], "50")
    resp = env["client"].get("/api/reports", headers=auth(*COACH_5))
    assert [r["user_id"] for r in resp.get_json()] == ["42"]
    assert ("members", "5") in env["resolver"].calls


def test_coach_reads_report_of_own_team_player(env):
    report = add_report(env["store"], "42")
    other = add_report(env["store"], "50")
    client = env["client"]
    assert client.get(f"/api/reports/{report['id']}", headers=auth(*COACH_5)).status_code == 200
    assert client.get(f"/api/reports/{other['id']}", headers=auth(*COACH_5)).status_code == 403


def test_coach_edits_only_reports_they_created(env):
    by_medical = add_report(env["store"], "42", created_by="90")
    by_coach = add_report(env["store"], "42", created_by="17")
    client = env["client"]

    denied = client.put(f"/api/reports/{by_medical['id']}", headers=auth(*COACH_5),
                        json={"title": "Changed"})
    assert denied.status_code == 403

    allowed = client.put(f"/api/reports/{by_coach['id']}", headers=auth(*COACH_5),
                         json={"title": "Changed"})
    assert allowed.status_code == 200
    assert allowed.get_json()["title"] == "Changed"


def test_create_report_defaults_and_notifies(env):
    resp = env["client"].post("/api/reports", headers=auth(*MEDICAL), json={
        "user_id": "42", "title": "MRI", "report_date": "2024-03-20", "content": "Grade 1 tear",
        "report_type": "Imaging", "attachments": '[{"name": "mri.pdf"}]',
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["confidentiality_level"] == "standard"
    assert body["attachments"] == [{"name": "mri.pdf"}]
    assert env["notifier"].sent[-1][0] == ["42"]


def test_player_cannot_create_report(env):
    resp = env["client"].post("/api/reports", headers=auth(*PLAYER_42), json={
        "user_id": "42", "title": "Self", "report_date": "2024-03-20", "content": "x",
        "report_type": "Note",
    })
    assert resp.status_code == 403
