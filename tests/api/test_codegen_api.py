"""Tests for the code generation API endpoints."""

import pytest
from fastapi.testclient import TestClient

from recordforge.api.codegen import get_code_generator
from recordforge.api.recording import get_recorder_service
from recordforge.codegen import CodeGenerator
from recordforge.main import create_app
from recordforge.recording.events import NavigationEvent
from recordforge.recording.service import RecorderService


@pytest.fixture
def service(settings):
    return RecorderService(settings)


@pytest.fixture
def client(settings, service):
    """Test client with an isolated generator and session registry."""
    app = create_app(settings)
    app.dependency_overrides[get_code_generator] = lambda: CodeGenerator(cache_size=8)
    app.dependency_overrides[get_recorder_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def login_request(login_steps):
    return {
        "steps": [step.to_dict() for step in login_steps],
        "variables": [{"name": "retries", "type": "NUMBER", "value": 3}],
        "options": {"language": "python", "framework": "playwright", "testName": "Login Flow"},
    }


class TestGenerateEndpoint:
    """Tests for POST /api/codegen/generate."""

    def test_generate_python_playwright(self, client, login_request):
        """Test a full generation response."""
        response = client.post("/api/codegen/generate", json=login_request)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["language"] == "python"
        assert body["framework"] == "playwright"
        assert body["fileExtension"] == ".py"
        assert "pytest-playwright" in body["dependencies"]
        assert "def test_login_flow(page: Page):" in body["code"]
        assert '    page.goto("https://example.com/login")' in body["code"]
        assert "retries = 3" in body["code"]
        assert body["metadata"]["stepsCount"] == 4

    def test_generate_is_deterministic(self, client, login_request):
        """Test identical requests give identical code."""
        first = client.post("/api/codegen/generate", json=login_request).json()
        second = client.post("/api/codegen/generate", json=login_request).json()
        assert first["code"] == second["code"]

    def test_unknown_language_is_400(self, client, login_request):
        """Test an unsupported language is rejected."""
        login_request["options"]["language"] = "ruby"
        response = client.post("/api/codegen/generate", json=login_request)
        assert response.status_code == 400
        assert "Invalid generation request" in response.json()["detail"]

    def test_unknown_step_kind_is_400(self, client):
        """Test undecodable steps are rejected."""
        response = client.post("/api/codegen/generate", json={"steps": [{"type": "HOVER"}]})
        assert response.status_code == 400

    def test_variable_without_name_is_400(self, client):
        """Test malformed variables are rejected."""
        response = client.post("/api/codegen/generate", json={"variables": [{"type": "STRING"}]})
        assert response.status_code == 400

    def test_blank_test_name_is_400(self, client, login_request):
        """Test a failed generation surfaces its error."""
        login_request["options"]["testName"] = "  "
        response = client.post("/api/codegen/generate", json=login_request)
        assert response.status_code == 400
        assert response.json()["detail"] == "Test name must not be empty"

    def test_unknown_framework_yields_skeleton(self, client, login_request):
        """Test other framework names still produce a skeleton."""
        login_request["options"]["framework"] = "webdriverio"
        body = client.post("/api/codegen/generate", json=login_request).json()

        assert body["success"] is True
        assert body["framework"] == "webdriverio"
        assert "# Unsupported step:" in body["code"]


class TestPreviewEndpoint:
    """Tests for POST /api/codegen/preview."""

    def test_preview_truncates(self, client, login_request):
        """Test long output is cut at max_lines."""
        body = client.post("/api/codegen/preview", params={"max_lines": 3}, json=login_request).json()

        assert body["language"] == "python"
        assert body["framework"] == "playwright"
        assert body["preview"].startswith("from playwright.sync_api import Page\n")
        assert "more lines)" in body["preview"]

    def test_preview_reports_errors_inline(self, client, login_request):
        """Test generation failures come back as a comment, not an error status."""
        login_request["options"]["testName"] = ""
        body = client.post("/api/codegen/preview", json=login_request).json()
        assert body["preview"] == "# Error: Test name must not be empty"


class TestSessionGeneration:
    """Tests for POST /api/codegen/sessions/{session_id}."""

    def test_generates_from_live_session(self, client, service):
        """Test the session's tree and name feed the generator."""
        session = service.start_session("Checkout")
        service.ingest_event(session.id, NavigationEvent(id="n1", timestamp=1000, target_url="https://shop.test/"))

        response = client.post(
            f"/api/codegen/sessions/{session.id}",
            json={"options": {"language": "python", "framework": "playwright"}},
        )

        assert response.status_code == 200
        code = response.json()["code"]
        assert "def test_checkout(page: Page):" in code
        assert 'page.goto("https://shop.test/")' in code

    def test_defaults_without_body(self, client, service):
        """Test an empty body uses the default language."""
        session = service.start_session("Checkout")
        body = client.post(f"/api/codegen/sessions/{session.id}").json()
        assert body["language"] == "java"
        assert body["framework"] == "selenium"

    def test_unknown_session_is_404(self, client):
        """Test generating for an unknown session fails with 404."""
        assert client.post("/api/codegen/sessions/nope", json={}).status_code == 404


class TestLanguagesEndpoint:
    """Tests for GET /api/codegen/languages."""

    def test_lists_languages(self, client):
        """Test every language is listed with its default and frameworks."""
        body = client.get("/api/codegen/languages").json()

        by_language = {item["language"]: item for item in body}
        assert set(by_language) == {"java", "javascript", "python", "csharp"}
        assert by_language["python"]["default_framework"] == "playwright"
        assert [f["framework"] for f in by_language["javascript"]["frameworks"]] == ["playwright", "cypress"]
