import pytest
from fastapi.testclient import TestClient

from docgen.app.api.generate import get_composer
from docgen.app.coordinator.composer import DocumentComposer
from docgen.app.coordinator.flattener import RequestFlattener
from docgen.app.coordinator.orchestrator import GenerationOrchestrator
from docgen.app.coordinator.reconciler import ResultReconciler
from docgen.app.errors import DownloadFailed, StructuralMismatch
from docgen.app.main import app
from docgen.app.schemas.generation import DocumentFormat
from docgen.tests.helpers import RecordingEngine, StubResolver, static_item, template_item


@pytest.fixture
def client(tmp_path):
    resolver = StubResolver({"missing.txt": DownloadFailed("missing.txt", "HTTP error 404")})
    orchestrator = GenerationOrchestrator(
        resolver,
        {DocumentFormat.TXT: RecordingEngine()},
        tmp_path / "artifacts",
        default_format=DocumentFormat.TXT,
    )
    composer = DocumentComposer(RequestFlattener(), orchestrator, ResultReconciler())

    app.dependency_overrides[get_composer] = lambda: composer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _payload(*groups):
    return {
        "request_id": "r-1",
        "outputs": [
            {"type": f"group-{index}", "composition": items}
            for index, items in enumerate(groups)
        ],
    }


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_returns_reconciled_tree_with_same_shape(client):
    payload = _payload([template_item("a.txt"), static_item()], [template_item("b.txt")])

    response = client.post("/generate", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["request_id"] == "r-1"
    first, second = body["outputs"]
    assert first["composition"][0]["result"]["location"].startswith("file@")
    assert first["composition"][1]["result"]["location"] is None
    assert second["composition"][0]["result"]["location"].startswith("file@")
    assert first["composition"][0]["resource"]["data"] == {"name": "Ada"}


def test_shape_error_is_400(client):
    response = client.post("/generate", json=_payload([template_item("a.txt")], []))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "EMPTY_COMPOSITION_LIST"
    assert body["stage"] == "flatten"
    assert body["failures"] == []


def test_failed_job_is_422_with_details(client):
    payload = _payload([template_item("a.txt"), template_item("missing.txt")])

    response = client.post("/generate", json=payload)

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "GENERATION_FAILED"
    assert body["stage"] == "generation"
    assert body["failures"] == [
        {
            "index": 1,
            "address": "missing.txt",
            "error": "DOWNLOAD_FAILED",
            "message": "Failed to download template 'missing.txt': HTTP error 404",
        }
    ]


def test_reconcile_mismatch_is_500(client, monkeypatch):
    def mismatch(self, tree, outcomes):
        raise StructuralMismatch(expected=2, supplied=1)

    monkeypatch.setattr(ResultReconciler, "reconcile", mismatch)

    response = client.post("/generate", json=_payload([template_item("a.txt")]))

    assert response.status_code == 500
    assert response.json()["error"] == "STRUCTURAL_MISMATCH"


def test_invalid_body_is_rejected_by_validation(client):
    response = client.post("/generate", json={"outputs": [{"composition": [{}]}]})

    assert response.status_code == 422
