import pytest

from calm.errors import UpstreamError
from main import create_app


CONFIG = {
    "NOTION_API_KEY": "secret_test",
    "NOTION_DATABASE_ID": "db-123",
    "CHART_CACHE_MAX_AGE": 60,
}


def _task(day, category, start, end):
    return {
        "properties": {
            "Date": {"date": {"start": day}},
            "Category": {"select": {"name": category}},
            "Status": {"select": {"name": "Completed"}},
            "Start Time": {"select": {"name": start}},
            "End Time": {"select": {"name": end}},
        }
    }


class FakeRepository:
    def __init__(self, tasks=None, duration=0, error=None):
        self.tasks = tasks or []
        self.duration = duration
        self.error = error
        self.queries = []
        self.updates = []

    def query_tasks(self, start_date, end_date, include_all=False):
        if self.error:
            raise self.error
        self.queries.append((start_date.isoformat(), end_date.isoformat(), include_all))
        return self.tasks

    def fetch_actual_duration(self, page_id):
        if self.error:
            raise self.error
        return self.duration

    def update_actual_duration(self, page_id, hours):
        self.updates.append((page_id, hours))


@pytest.fixture
def repository():
    return FakeRepository(tasks=[_task("2024-01-01", "Priority", "09:00", "10:30")], duration=2.0)


@pytest.fixture
def client(repository):
    app = create_app(config=CONFIG, repository=repository)
    return app.test_client()


def test_chart_endpoint_returns_week_chart(client, repository):
    response = client.get("/api/notion-data?date=2024-01-03&period=week")

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"
    assert response.headers["Cache-Control"] == "public, max-age=60"
    data = response.get_json()
    assert data["period"] == "week"
    assert data["dateRange"] == {"start": "2024-01-01", "end": "2024-01-07"}
    assert data["selectedDate"] == "2024-01-03"
    assert data["tasksProcessed"] == 1
    assert data["totals"]["Priority"] == 1.5
    assert repository.queries == [("2024-01-01", "2024-01-07", False)]


def test_chart_endpoint_defaults_to_week(client):
    data = client.get("/api/notion-data?date=2024-01-03").get_json()
    assert data["period"] == "week"
    assert len(data["chartData"]) == 7


def test_all_flag_disables_status_filter(client, repository):
    client.get("/api/notion-data?date=2024-01-03&period=month&all=true")
    assert repository.queries == [("2024-01-01", "2024-01-31", True)]


def test_options_returns_empty_cors_response(client):
    response = client.options("/api/notion-data")
    assert response.status_code == 204
    assert response.data == b""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"

    response = client.options("/api/save-time")
    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


def test_missing_configuration_is_a_500(repository):
    app = create_app(config={"NOTION_API_KEY": "secret_test", "NOTION_DATABASE_ID": None}, repository=repository)
    response = app.test_client().get("/api/notion-data")

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Missing configuration. Set NOTION_API_KEY and NOTION_DATABASE_ID."
    }
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert repository.queries == []


def test_save_time_needs_only_the_api_key(repository):
    app = create_app(config={"NOTION_API_KEY": "secret_test", "NOTION_DATABASE_ID": None}, repository=repository)
    response = app.test_client().post("/api/save-time", json={"taskId": "page-1", "seconds": 3600})
    assert response.status_code == 200
    assert response.get_json()["totalHours"] == 3.0


def test_upstream_error_is_forwarded():
    error = UpstreamError(401, '{"code": "unauthorized"}')
    app = create_app(config=CONFIG, repository=FakeRepository(error=error))
    response = app.test_client().get("/api/notion-data?date=2024-01-03")

    assert response.status_code == 401
    assert response.get_json() == {"error": "Notion API error", "details": '{"code": "unauthorized"}'}


def test_unexpected_error_is_a_generic_500():
    app = create_app(config=CONFIG, repository=FakeRepository(error=RuntimeError("boom")))
    response = app.test_client().get("/api/notion-data?date=2024-01-03")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal error", "message": "boom"}


def test_invalid_date_is_a_400(client):
    response = client.get("/api/notion-data?date=03/01/2024")
    assert response.status_code == 400
    assert "Invalid date" in response.get_json()["error"]


def test_save_time_adds_hours(client, repository):
    response = client.post("/api/save-time", json={"taskId": "page-1", "seconds": 3600})

    assert response.status_code == 200
    assert response.get_json() == {
        "success": True,
        "taskId": "page-1",
        "addedHours": 1.0,
        "totalHours": 3.0,
    }
    assert repository.updates == [("page-1", 3.0)]


def test_save_time_validates_body(client, repository):
    response = client.post("/api/save-time", json={"taskId": "page-1"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Missing taskId or seconds"}

    response = client.post("/api/save-time", data="not json", content_type="text/plain")
    assert response.status_code == 400
    assert repository.updates == []


def test_save_time_rejects_get(client):
    response = client.get("/api/save-time")
    assert response.status_code == 405
    assert response.get_json() == {"error": "Method not allowed"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}


def test_chart_endpoint_rejects_post(client):
    response = client.post("/api/notion-data", json={})
    assert response.status_code == 405
    assert response.get_json() == {"error": "Method not allowed"}
    assert response.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"


def test_save_time_without_api_key_is_a_500(repository):
    app = create_app(config={"NOTION_API_KEY": None, "NOTION_DATABASE_ID": "db-123"}, repository=repository)
    response = app.test_client().post("/api/save-time", json={"taskId": "page-1", "seconds": 60})

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Missing configuration. Set NOTION_API_KEY and NOTION_DATABASE_ID."
    }
    assert repository.updates == []


def test_save_time_rejects_infinite_seconds(client, repository):
    response = client.post(
        "/api/save-time",
        data='{"taskId": "page-1", "seconds": Infinity}',
        content_type="application/json",
    )
    assert response.status_code == 400
    assert repository.updates == []
