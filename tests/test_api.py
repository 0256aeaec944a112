"""Tests for the HTTP API."""

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from attune.dashboard.renderer import DashboardRenderer
from attune.intentions.client import HTTPStatusError
from attune.intentions.models import CheckInExtraction, CheckInUpdate, ParsedIntention
from attune.intentions.parser import InvalidPayload
from attune.main import app, get_database, get_extractor, get_parser, get_renderer
from attune.progress.models import INCREMENT, Intention, ProgressEntry
from attune.storage.database import ProgressDatabase

TODAY = date.today()
TODAY_KEY = TODAY.isoformat()


class FakeParser:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.transcripts = []

    def parse_transcript(self, transcript):
        self.transcripts.append(transcript)
        if self.error:
            raise self.error
        return self.result


class FakeExtractor:
    def __init__(self, result=None):
        self.result = result or CheckInExtraction()

    def extract(self, transcript, intentions, todays_totals, check_in_id):
        return self.result


@pytest.fixture()
def db(tmp_path):
    database = ProgressDatabase(str(tmp_path / "attune.db"))
    database.save_intention(Intention(id="read", title="Read", target_value=10, unit="pages"))
    database.save_intention(Intention(id="walk", title="Walk", target_value=14, unit="minutes", timeframe="weekly"))
    started = datetime.now().astimezone() - timedelta(days=10)
    intention_set = database.start_new_intention_set(["read", "walk"], now=started)
    database.add_progress_entry(
        ProgressEntry(
            id="e1",
            intention_id="read",
            intention_set_id=intention_set.id,
            date_key=TODAY_KEY,
            amount=5,
            unit="pages",
            update_type=INCREMENT,
            created_at=datetime.now().astimezone(),
        )
    )
    return database


@pytest.fixture()
def parser():
    return FakeParser()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def client(db, parser, extractor, tmp_path):
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_parser] = lambda: parser
    app.dependency_overrides[get_extractor] = lambda: extractor
    app.dependency_overrides[get_renderer] = lambda: DashboardRenderer(str(tmp_path / "images"))
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_and_status(client):
    assert client.get("/").status_code == 200
    body = client.get("/status").json()
    assert body["status"] == "running"


def test_days(client):
    resp = client.get("/api/progress/days")
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 7
    assert rows[0]["date_key"] == TODAY_KEY
    assert rows[0]["overall_percent"] == pytest.approx(0.25)


def test_day_detail(client):
    resp = client.get(f"/api/progress/days/{TODAY_KEY}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["overall_percent"] == pytest.approx(0.25)
    read = next(i for i in body["intentions"] if i["intention"]["id"] == "read")
    assert read["total"] == 5
    assert read["entries"][0]["running_total"] == 5


def test_day_detail_before_tracking_is_empty(client):
    resp = client.get("/api/progress/days/2000-01-01")
    assert resp.status_code == 200
    body = resp.json()
    assert body["intention_set_id"] is None
    assert body["intentions"] == []
    assert body["overall_percent"] == 0


def test_day_detail_rejects_bad_key(client):
    assert client.get("/api/progress/days/not-a-date").status_code == 400


def test_override_set_and_clear(client):
    resp = client.put(f"/api/overrides/{TODAY_KEY}/read", json={"amount": 10})
    assert resp.status_code == 200
    assert resp.json()["unit"] == "pages"

    body = client.get(f"/api/progress/days/{TODAY_KEY}").json()
    read = next(i for i in body["intentions"] if i["intention"]["id"] == "read")
    assert read["total"] == 10
    assert read["override_amount"] == 10

    resp = client.delete(f"/api/overrides/{TODAY_KEY}/read")
    assert resp.json()["removed"] is True
    body = client.get(f"/api/progress/days/{TODAY_KEY}").json()
    read = next(i for i in body["intentions"] if i["intention"]["id"] == "read")
    assert read["total"] == 5


def test_override_unknown_intention(client):
    resp = client.put(f"/api/overrides/{TODAY_KEY}/missing", json={"amount": 1})
    assert resp.status_code == 404


def test_intention_history(client):
    resp = client.get("/api/intentions/read/history")
    assert resp.status_code == 200
    days = resp.json()["days"]
    assert len(days) == 7
    assert days[0]["total"] == 5
    assert days[0]["percent"] == pytest.approx(0.5)


def test_intention_history_unknown(client):
    assert client.get("/api/intentions/missing/history").status_code == 404


def test_streak(client):
    assert client.get("/api/streak").json() == {"streak": 0}


def test_parse(client, parser):
    parser.result = [ParsedIntention(title="Walk", target=20, unit="minutes", category="fitness_health")]

    resp = client.post("/api/intentions/parse", json={"transcript": "walk 20 min"})

    assert resp.status_code == 200
    assert resp.json()["intentions"] == [
        {"title": "Walk", "target": 20, "unit": "minutes", "category": "fitness_health", "notes": None}
    ]
    assert parser.transcripts == ["walk 20 min"]


def test_parse_invalid_payload(client, parser):
    parser.error = InvalidPayload(InvalidPayload.MISSING_INTENTIONS)
    resp = client.post("/api/intentions/parse", json={"transcript": "hmm"})
    assert resp.status_code == 422
    assert "try again" in resp.json()["detail"]


def test_parse_upstream_failure(client, parser):
    parser.error = HTTPStatusError(500, "boom")
    resp = client.post("/api/intentions/parse", json={"transcript": "hmm"})
    assert resp.status_code == 502


def test_parse_requires_transcript(client):
    assert client.post("/api/intentions/parse", json={"transcript": ""}).status_code == 422


def test_dashboard_png(client):
    resp = client.get("/api/dashboard")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(b"\x89PNG")


def test_current_intentions(client):
    resp = client.get("/api/intentions/current")
    assert resp.status_code == 200
    assert [i["id"] for i in resp.json()] == ["read", "walk"]


def test_create_intention_set(client, db):
    resp = client.post(
        "/api/intention-sets",
        json={
            "intentions": [
                {"title": " Stretch ", "target": 2, "unit": "session", "category": None, "notes": None},
                {"title": "Water", "target": None, "unit": None},
            ]
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [(i["title"], i["target_value"], i["unit"]) for i in body["intentions"]] == [
        ("Stretch", 2, "sessions"),
        ("Water", 1, "times"),
    ]
    assert db.load_current_intention_set().id == body["intention_set_id"]

    current = client.get("/api/intentions/current").json()
    assert [i["title"] for i in current] == ["Stretch", "Water"]


def test_create_intention_set_rejects_blank_title(client, db):
    before = db.load_current_intention_set().id

    resp = client.post("/api/intention-sets", json={"intentions": [{"title": "   "}]})

    assert resp.status_code == 422
    assert db.load_current_intention_set().id == before


def test_check_in_records_progress(client, extractor):
    extractor.result = CheckInExtraction(
        updates=[
            CheckInUpdate(
                intention_id="read", update_type="INCREMENT", amount=5, unit="pages", confidence=0.8
            )
        ],
        mood_label="Calm",
        mood_score=7,
    )

    resp = client.post("/api/check-ins", json={"transcript": "read 5 more pages, feeling calm"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["date_key"] == TODAY_KEY
    assert body["used_fallback"] is False
    assert [(e["amount"], e["confidence"]) for e in body["entries"]] == [(5, 0.8)]
    assert body["mood"]["mood_label"] == "Calm"

    detail = client.get(f"/api/progress/days/{TODAY_KEY}").json()
    read = next(i for i in detail["intentions"] if i["intention"]["id"] == "read")
    assert read["total"] == 10
    assert [c["id"] for c in detail["check_ins"]] == [body["check_in"]["id"]]
    assert detail["mood"]["mood_label"] == "Calm"


def test_check_in_uses_fallback(client):
    resp = client.post("/api/check-ins", json={"transcript": "read 4 pages on the train"})

    body = resp.json()
    assert body["used_fallback"] is True
    assert [e["amount"] for e in body["entries"]] == [4]
    assert body["mood"] is None


def test_check_in_requires_transcript(client):
    assert client.post("/api/check-ins", json={"transcript": ""}).status_code == 422
