"""End-to-end tests for the HTTP surface with a fake generator."""

import inspect
import json

import pytest
from fastapi.testclient import TestClient

import storyboard_studio.api.app as app_module
from conftest import FakeGenerator, make_png
from storyboard_studio.editor import StoryboardEditor
from storyboard_studio.orchestrator import GenerationStatus
from storyboard_studio.storage import KeyValueStore


@pytest.fixture
def fake():
    return FakeGenerator()


@pytest.fixture
def editor(temp_dir, fake, monkeypatch):
    ed = StoryboardEditor(KeyValueStore(temp_dir / "api_state.json"), generator_factory=lambda key: fake)
    ed.set_api_key("test-key")
    monkeypatch.setattr(app_module, "editor", ed)
    return ed


@pytest.fixture
def client(editor):
    return TestClient(app_module.app)


def upload(client, path, color=(255, 0, 0)):
    resp = client.post(path, files={"file": ("x.png", make_png(color), "image/png")})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_state_starts_idle(client):
    state = client.get("/state").json()
    assert state["assets"] == [] and state["results"] == []
    assert state["mode"]["value"] == "IDLE"
    assert state["status"] == {"busy": False, "label": ""}
    assert state["api_configured"] is True


def test_upload_and_select_to_product_ad(client):
    asset = upload(client, "/assets/upload")
    product = upload(client, "/products/upload", (0, 0, 255))
    assert asset["type"] == "upload"
    assert asset["src"].startswith("data:image/png;base64,")

    client.post(f"/selection/assets/{asset['id']}")
    selection = client.post(f"/selection/products/{product['id']}").json()
    assert selection == {"asset_ids": [asset["id"]], "product_id": product["id"], "result_id": None}
    assert client.get("/state").json()["mode"]["value"] == "PRODUCT_AD"


def test_upload_rejects_non_image(client):
    resp = client.post("/assets/upload", files={"file": ("x.txt", b"hello", "text/plain")})
    assert resp.status_code == 400


def test_generate_scene_flow(client, fake):
    asset = upload(client, "/assets/upload")
    client.post(f"/selection/assets/{asset['id']}")

    resp = client.post("/scenes/generate", data={"prompt": "in the rain"})
    assert resp.status_code == 200, resp.text

    state = client.get("/state").json()
    assert [r["id"] for r in state["results"]] == [resp.json()["id"]]
    assert state["selection"] == {"asset_ids": [], "product_id": None, "result_id": None}
    assert len(fake.part_calls) == 1


def test_generate_scene_failure_is_502(client, fake):
    fake.responses = [None]
    asset = upload(client, "/assets/upload")
    client.post(f"/selection/assets/{asset['id']}")

    resp = client.post("/scenes/generate", data={"prompt": "x"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "GenerationFailed"
    state = client.get("/state").json()
    assert state["results"] == []
    assert state["selection"]["asset_ids"] == [asset["id"]]
    assert state["status"]["busy"] is False


def test_generate_scene_without_selection(client):
    assert client.post("/scenes/generate", data={"prompt": "x"}).status_code == 400


def test_generation_requires_api_key(client, editor):
    editor.set_api_key("")
    resp = client.post("/assets/generate", data={"category": "Animal", "description": "a fox"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "ApiNotConfigured"


def test_create_and_regenerate_asset(client):
    created = client.post(
        "/assets/generate",
        data={"category": "Human", "description": "a baker", "race": "White", "gender": "Male"},
    ).json()
    assert created["type"] == "ai"
    assert "Gender: Male. Race: White." in created["prompt"]

    regenerated = client.post(f"/assets/{created['id']}/regenerate", data={"prompt": "smiling"}).json()
    assert regenerated["id"] == created["id"]
    assert regenerated["prompt"] == created["prompt"]
    assert client.get("/state").json()["assets"][0]["regenerable"] is True


def test_unknown_category(client):
    resp = client.post("/assets/generate", data={"category": "Robot", "description": "x"})
    assert resp.status_code == 400


def test_continue_and_reorder_results(client):
    asset = upload(client, "/assets/upload")
    client.post(f"/selection/assets/{asset['id']}")
    first = client.post("/scenes/generate", data={"prompt": "start"}).json()
    second = client.post(f"/results/{first['id']}/continue", data={"prompt": "then"}).json()

    resp = client.post("/results/reorder", data={"from_index": 1, "to_index": 0})
    assert resp.json() == {"results": [second["id"], first["id"]]}
    assert client.post("/results/reorder", data={"from_index": 5, "to_index": 0}).status_code == 400


def test_delete_prunes_selection(client):
    asset = upload(client, "/assets/upload")
    client.post(f"/selection/assets/{asset['id']}")
    assert client.post(f"/assets/{asset['id']}/delete").json() == {"deleted": True}
    state = client.get("/state").json()
    assert state["assets"] == []
    assert state["selection"]["asset_ids"] == []
    assert state["mode"]["value"] == "IDLE"


def test_select_unknown_entity(client):
    assert client.post("/selection/results/nope").status_code == 404


def test_download_image(client):
    product = upload(client, "/products/upload")
    resp = client.get(f"/products/{product['id']}/image")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content == make_png()
    assert client.get("/products/missing/image").status_code == 404


def test_export_import_new_project(client):
    upload(client, "/assets/upload")
    upload(client, "/products/upload")
    exported = client.get("/project/export")
    assert "ai-storyboard-project.json" in exported.headers["content-disposition"]
    doc = json.loads(exported.content)

    assert client.post("/project/new").status_code == 400
    assert len(client.get("/state").json()["assets"]) == 1
    assert client.post("/project/new", data={"confirm": "true"}).status_code == 200
    assert client.get("/state").json()["assets"] == []

    resp = client.post("/project/import", files={"file": ("p.json", json.dumps(doc).encode(), "application/json")})
    assert resp.json() == {"assets": 1, "products": 1, "results": 0}

    bad = dict(doc, version=2)
    resp = client.post("/project/import", files={"file": ("p.json", json.dumps(bad).encode(), "application/json")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "ImportRejected"
    assert len(client.get("/state").json()["assets"]) == 1


def test_options(client):
    options = client.get("/options").json()
    assert "Human" in options["categories"]
    assert options["genders"] == ["Female", "Male"]


def test_endpoints_run_on_the_event_loop():
    from fastapi.routing import APIRoute

    routes = [r for r in app_module.app.routes if isinstance(r, APIRoute)]
    assert routes
    for route in routes:
        assert inspect.iscoroutinefunction(route.endpoint), route.path


def test_import_rejected_while_generating(client, editor):
    exported = client.get("/project/export").content
    editor.orchestrator.status = GenerationStatus(busy=True, label="Composing your scene...")
    resp = client.post("/project/import", files={"file": ("p.json", exported, "application/json")})
    assert resp.status_code == 409
    assert resp.json()["error"] == "GenerationInProgress"
