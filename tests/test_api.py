import pytest
from fastapi.testclient import TestClient

from autoconnect.app import app
from autoconnect.database import get_db
from autoconnect.routers.workflow import get_worker
from autoconnect.services.record_store import RecordRequest, SqlRecordStore
from autoconnect.workflow.errors import WorkflowConflict
from autoconnect.workflow.state import Outcome, WorkflowStep
from tests.fakes import make_profile

CSV = (
    "Name,Profile_URL,Title,Company\n"
    "Ada Lovelace,https://www.linkedin.com/in/ada-lovelace,Engineer,Analytical\n"
    "Grace Hopper,https://www.linkedin.com/in/grace-hopper,Admiral,Navy\n"
    "Nobody,https://www.linkedin.com/company/acme,,\n"
)


class StubSession:
    def has_auth_cookie(self):
        return True

    def exists(self):
        return True


class StubWorker:
    """Just enough of LinkedInWorker for the routers; browser work is recorded, not run."""

    def __init__(self, engine, notifier):
        self.engine = engine
        self.notifier = notifier
        self.session = StubSession()
        self.is_browser_ready = True
        self.is_collecting = False
        self.status = "idle"
        self.active_job = None
        self.collections = []
        self.resumes = 0

    async def start_collection(self, start_url=None, max_pages=None):
        self.engine.start_collection(start_url)
        self.collections.append((start_url, max_pages))
        return "job-collect"

    def stop_collection(self):
        self.engine.stop_collection()

    async def resume_pending(self):
        self.resumes += 1
        return "job-run" if self.engine.has_work() else None


@pytest.fixture
def worker(make_engine, notifier):
    return StubWorker(make_engine(), notifier)


@pytest.fixture
def client(worker, session_factory):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_worker] = lambda: worker
    app.dependency_overrides[get_db] = override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_status_of_empty_workflow(client):
    body = client.get("/api/workflow/status").json()
    assert body["step"] == "idle"
    assert body["queue"] == []
    assert body["counters"]["sent_count"] == 0
    assert body["browser_connected"] is True


def test_collection_start_and_stop(client, worker):
    resp = client.post("/api/workflow/collection/start", json={"max_pages": 3})
    assert resp.json() == {
        "job_id": "job-collect", "task_type": None, "status": "queued",
        "progress": 0, "total": 0, "error": None,
    }
    assert worker.collections == [(None, 3)]
    assert client.get("/api/workflow/status").json()["step"] == "collecting"

    assert client.post("/api/workflow/collection/stop").json() == {
        "step": "ready_to_process", "queued": 0,
    }


def test_collection_needs_browser(client, worker):
    worker.is_browser_ready = False
    assert client.post("/api/workflow/collection/start", json={}).status_code == 409


def test_collection_rejects_bad_page_count(client):
    assert client.post("/api/workflow/collection/start", json={"max_pages": 0}).status_code == 422


def test_queue_import_export_and_remove(client):
    resp = client.post("/api/workflow/queue/import", json={"content": CSV})
    assert resp.json() == {"added": 2, "skipped": 1, "queued": 2}

    # Importing again adds nothing
    assert client.post("/api/workflow/queue/import", json={"content": CSV}).json()["added"] == 0

    queue = client.get("/api/workflow/queue").json()
    assert [p["name"] for p in queue] == ["Ada Lovelace", "Grace Hopper"]

    export = client.get("/api/workflow/queue/export")
    assert export.headers["content-type"].startswith("text/csv")
    assert "https://www.linkedin.com/in/grace-hopper" in export.text

    assert client.delete("/api/workflow/queue/0").json() == {"queued": 1}
    assert client.delete("/api/workflow/queue/5").status_code == 404


def test_start_processing_schedules_the_run(client, worker):
    client.post("/api/workflow/queue/import", json={"content": CSV})

    resp = client.post("/api/workflow/start", json={"prompt": "Mention their work on compilers."})
    assert resp.json()["job_id"] == "job-run"
    assert worker.resumes == 1

    status = client.get("/api/workflow/status").json()
    assert status["step"] == "processing"
    assert status["prompt_text"] == "Mention their work on compilers."
    assert status["total"] == 2

    # The queue is frozen now
    assert client.delete("/api/workflow/queue/0").status_code == 409
    assert client.post("/api/workflow/queue/import", json={"content": CSV}).status_code == 409


def test_start_processing_validation(client):
    assert client.post("/api/workflow/start", json={"prompt": "hi"}).status_code == 409

    client.post("/api/workflow/queue/import", json={"content": CSV})
    assert client.post("/api/workflow/start", json={"prompt": "   "}).status_code == 400


def test_pause_and_resume(client, worker):
    client.post("/api/workflow/queue/import", json={"content": CSV})
    client.post("/api/workflow/start", json={"prompt": "hello"})

    assert client.post("/api/workflow/pause").json() == {"paused": True}
    status = client.get("/api/workflow/status").json()
    assert status["paused"] is True
    assert status["status_text"] == "Paused: Paused by user"

    resp = client.post("/api/workflow/resume")
    assert resp.json()["status"] == "queued"
    assert client.get("/api/workflow/status").json()["paused"] is False


def test_resume_without_work_is_not_scheduled(client):
    assert client.post("/api/workflow/resume").json()["status"] == "not_scheduled"


def test_clear_workflow(client, worker):
    client.post("/api/workflow/queue/import", json={"content": CSV})
    assert client.delete("/api/workflow/queue").json() == {"cleared": True}
    assert worker.engine.current_state().step == WorkflowStep.IDLE


def test_clear_refused_during_a_pass(client, worker, monkeypatch):
    def refuse():
        raise WorkflowConflict("Pause the workflow before clearing it.")

    monkeypatch.setattr(worker.engine, "clear_all", refuse)
    assert client.delete("/api/workflow/queue").status_code == 409


def test_events_feed(client, worker):
    client.post("/api/workflow/queue/import", json={"content": CSV})
    client.post("/api/workflow/start", json={"prompt": "hello"})

    events = client.get("/api/workflow/events").json()
    assert events[-1]["kind"] == "status"
    last = events[-1]["id"]
    assert client.get("/api/workflow/events", params={"after": last}).json() == []


def test_linkedin_status(client):
    body = client.get("/api/linkedin/status").json()
    assert body["browser_connected"] is True
    assert body["session_saved"] is True


def test_unknown_job(client):
    assert client.get("/api/linkedin/job/nope").json()["status"] == "not_found"


def test_leads_and_messages(client, session_factory):
    store = SqlRecordStore(session_factory)
    store.record(RecordRequest(
        profile=make_profile("ada-lovelace", company="Analytical"),
        prompt="hello",
        message="Hi Ada",
        canonical_url="https://www.linkedin.com/in/ada-lovelace",
        outcome=Outcome.SENT,
    ))
    store.record(RecordRequest(
        profile=make_profile("grace-hopper"),
        prompt="hello",
        message=None,
        canonical_url=None,
        outcome=Outcome.FAILED,
        outcome_note="action menu not found",
    ))

    leads = client.get("/api/leads").json()
    assert {lead["full_name"] for lead in leads} == {"Ada Lovelace", "Grace Hopper"}

    failed = client.get("/api/leads", params={"outcome": "failed"}).json()
    assert [lead["full_name"] for lead in failed] == ["Grace Hopper"]

    assert client.get("/api/leads/stats").json() == {
        "total": 2, "by_outcome": {"sent": 1, "failed": 1},
    }

    detail = client.get(f"/api/leads/{failed[0]['id']}").json()
    assert detail["connection_requests"][0]["outcome_note"] == "action menu not found"
    assert client.get("/api/leads/999").status_code == 404

    messages = client.get("/api/messages").json()
    assert [m["content"] for m in messages] == ["Hi Ada"]
    assert client.get(f"/api/messages/{messages[0]['id']}").json()["status"] == "sent"
    assert client.get("/api/messages/999").status_code == 404
