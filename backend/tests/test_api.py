import json
from datetime import datetime

import asyncpg
import pytest
from fastapi.testclient import TestClient

from llm_mail.main import app
from llm_mail.models.campaign import CampaignResult, ClientProfile, ImageGenerationResult, ProgressEvent
from llm_mail.models.library import WebsiteScanResult
from llm_mail.services.dependencies import (
    get_database,
    get_image_generator,
    get_orchestrator,
    get_website_scanner,
    require_database,
)


class FakeOrchestrator:
    def __init__(self):
        self.calls = []

    async def generate_campaign(self, user_prompt, brand_defaults=None, brand_profile=None,
                                on_progress=None, recommendation_seed=None, logo_url=None):
        self.calls.append({
            "prompt": user_prompt,
            "defaults": brand_defaults,
            "profile": brand_profile,
            "seed": recommendation_seed,
            "logo": logo_url,
        })
        if brand_profile is None:
            result = CampaignResult(success=False, status="requires_settings", requiresSettings=True)
            stage = "requires_settings"
        else:
            result = CampaignResult(success=True, status="complete", html="<html><body>Hi</body></html>")
            stage = "complete"
        if on_progress:
            await on_progress(ProgressEvent(stage="analyzing_brief"))
            await on_progress(ProgressEvent(stage=stage, result=result))
        return result

    async def refine_campaign(self, original_brief, answers, brand_defaults=None, on_progress=None,
                              recommendation_seed=None, logo_url=None):
        self.calls.append({"brief": original_brief, "answers": answers})
        return CampaignResult(success=True, status="complete", html="<html></html>")


class FakeImageGenerator:
    async def generate(self, prompt, width=1024, height=1024, style="professional"):
        if "forbidden" in prompt:
            return ImageGenerationResult(success=False, originalPrompt=prompt, error="Blocked by safety filter")
        return ImageGenerationResult(
            success=True, imageUrl="/generated-images/x.png", revisedPrompt=prompt, originalPrompt=prompt
        )


class FakeDatabase:
    is_healthy = True

    def __init__(self):
        self.templates = {}
        self.profile = None

    async def create_template(self, data):
        if any(row["name"] == data.name for row in self.templates.values()):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        template_id = len(self.templates) + 1
        now = datetime(2026, 1, 1)
        self.templates[template_id] = {
            "id": template_id, "name": data.name, "description": data.description,
            "subject": data.subject, "html_content": data.html, "created_at": now, "updated_at": now,
        }
        return template_id

    async def get_template(self, template_id):
        return self.templates.get(template_id)

    async def list_templates(self, limit=50, offset=0):
        return [
            {key: row[key] for key in ("id", "name", "description", "subject", "created_at", "updated_at")}
            for row in list(self.templates.values())[offset:offset + limit]
        ]

    async def update_template(self, template_id, data):
        if template_id not in self.templates:
            return False
        if data.html is not None:
            self.templates[template_id]["html_content"] = data.html
        return True

    async def delete_template(self, template_id):
        return self.templates.pop(template_id, None) is not None

    async def get_client_profile(self):
        return self.profile

    async def upsert_client_profile(self, profile):
        self.profile = profile
        return profile


@pytest.fixture
def orchestrator():
    return FakeOrchestrator()


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_image_generator] = lambda: FakeImageGenerator()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def database(client):
    fake = FakeDatabase()
    app.dependency_overrides[get_database] = lambda: fake
    app.dependency_overrides[require_database] = lambda: fake
    return fake


def sse_events(body):
    events = []
    for block in body.replace("\r\n", "\n").split("\n\n"):
        fields = dict(line.split(": ", 1) for line in block.splitlines() if ": " in line)
        if "event" in fields:
            events.append((fields["event"], json.loads(fields["data"])))
    return events


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["database"] is False


@pytest.mark.parametrize("method,path", [
    ("get", "/api/templates"),
    ("get", "/api/templates/1"),
    ("get", "/api/look-feel"),
    ("get", "/api/settings/profile"),
])
def test_persistence_endpoints_without_database(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 503
    assert response.json()["detail"] == "Database is not available"


def test_generate_campaign_with_inline_profile(client, orchestrator):
    response = client.post("/api/generate-campaign", json={
        "prompt": "Summer sale on hats",
        "lookAndFeel": {"brandColor": "#112233", "logoUrl": "https://cdn.example.com/logo.png"},
        "brandProfile": {"full_scan_markdown": "# Acme"},
        "recommendationSeed": {"itemId": "42", "customerName": "acme"},
    })

    assert response.status_code == 200
    assert response.json()["status"] == "complete"
    call = orchestrator.calls[0]
    assert call["profile"].full_scan_markdown == "# Acme"
    assert call["defaults"].primaryColor == "#112233"
    assert call["logo"] == "https://cdn.example.com/logo.png"
    assert call["seed"].itemId == "42"


def test_generate_campaign_without_profile_requires_settings(client):
    response = client.post("/api/generate-campaign", json={"prompt": "Summer sale"})

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "requires_settings"
    assert body["requiresSettings"] is True


def test_generate_campaign_uses_saved_profile(client, orchestrator, database):
    database.profile = ClientProfile(full_scan_markdown="# Saved")

    client.post("/api/generate-campaign", json={"prompt": "Summer sale"})
    client.post("/api/generate-campaign", json={"prompt": "Summer sale", "useSavedProfile": False})

    assert orchestrator.calls[0]["profile"].full_scan_markdown == "# Saved"
    assert orchestrator.calls[1]["profile"] is None


def test_generate_campaign_validates_prompt(client):
    assert client.post("/api/generate-campaign", json={"prompt": ""}).status_code == 422


def test_stream_ends_with_terminal_event(client):
    response = client.post("/api/generate-campaign/stream", json={
        "prompt": "Summer sale",
        "brandProfile": {"full_scan_markdown": "# Acme"},
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = sse_events(response.text)
    assert [name for name, _ in events] == ["analyzing_brief", "complete"]
    assert events[-1][1]["result"]["html"] == "<html><body>Hi</body></html>"


def test_refine_campaign(client, orchestrator):
    response = client.post("/api/refine-campaign", json={"originalBrief": "brief", "answers": {"q1": "Hats"}})

    assert response.json()["success"] is True
    assert orchestrator.calls[0] == {"brief": "brief", "answers": {"q1": "Hats"}}


def test_generate_image(client):
    ok = client.post("/api/generate-image", json={"prompt": "beach"}).json()
    rejected = client.post("/api/generate-image", json={"prompt": "forbidden"})

    assert ok["imageUrl"] == "/generated-images/x.png"
    assert rejected.status_code == 200
    assert rejected.json() == {
        "success": False,
        "imageUrl": None,
        "revisedPrompt": None,
        "originalPrompt": "forbidden",
        "error": "Blocked by safety filter",
    }


def test_dressipi_proxy_validates_query(client):
    missing_item = client.get("/api/dressipi/related")
    missing_host = client.get("/api/dressipi/related", params={"itemId": "42"})

    assert missing_item.status_code == 400
    assert missing_item.json()["detail"] == "itemId query parameter is required"
    assert missing_host.status_code == 400
    assert missing_host.json()["detail"] == "Provide either customerName or domain to call the Dressipi API"


def test_template_crud(client, database):
    created = client.post("/api/templates", json={"name": "Summer", "html": "<html></html>", "subject": "Hi"})
    duplicate = client.post("/api/templates", json={"name": "Summer", "html": "<html></html>"})

    assert created.json()["templateId"] == 1
    assert duplicate.status_code == 409

    listed = client.get("/api/templates").json()["templates"]
    assert [row["name"] for row in listed] == ["Summer"]

    assert client.put("/api/templates/1", json={"html": "<html>v2</html>"}).status_code == 200
    assert client.get("/api/templates/1").json()["template"]["html_content"] == "<html>v2</html>"
    assert client.put("/api/templates/9", json={"html": "x"}).status_code == 404

    assert client.delete("/api/templates/1").json()["success"] is True
    assert client.get("/api/templates/1").status_code == 404


def test_settings_profile_round_trip(client, database):
    empty = client.get("/api/settings/profile").json()
    assert empty["configured"] is False

    saved = client.put("/api/settings/profile", json={"website_url": "https://acme.test",
                                                      "full_scan_markdown": "# Acme"}).json()
    assert saved["configured"] is True
    assert saved["profile"]["website_url"] == "https://acme.test"


class FakeScanner:
    async def scan(self, url):
        if "unreachable" in url:
            return WebsiteScanResult(success=False, error="Website returned 503 for https://unreachable.test")
        profile = ClientProfile(website_url=url, full_scan_markdown="# Acme Hats")
        return WebsiteScanResult(success=True, profile=profile, data={}, logoCandidates=["https://acme.test/logo.png"])


@pytest.fixture
def scanner(client):
    app.dependency_overrides[get_website_scanner] = lambda: FakeScanner()


def test_scan_website_saves_profile(client, scanner, database):
    response = client.post("/api/settings/scan", json={"url": "https://acme.test"})

    body = response.json()
    assert response.status_code == 200
    assert body["saved"] is True
    assert body["profile"]["full_scan_markdown"] == "# Acme Hats"
    assert database.profile.website_url == "https://acme.test"


def test_scan_website_without_database_returns_unsaved_profile(client, scanner):
    body = client.post("/api/settings/scan", json={"url": "https://acme.test"}).json()

    assert body["success"] is True
    assert body["saved"] is False
    assert body["logoCandidates"] == ["https://acme.test/logo.png"]


def test_scan_website_failure_is_bad_gateway(client, scanner):
    response = client.post("/api/settings/scan", json={"url": "https://unreachable.test"})

    assert response.status_code == 502
    assert response.json() == {"success": False, "error": "Website returned 503 for https://unreachable.test"}
