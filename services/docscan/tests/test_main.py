"""Tests for the HTTP surface."""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from capture import CaptureController
from conftest import FakeDeviceFactory
from workflow import WorkflowController


@pytest.fixture
def api(monkeypatch, mock_client: MagicMock, device_factory: FakeDeviceFactory):
    with TestClient(main.app) as client:
        monkeypatch.setattr(main, "_session", WorkflowController(mock_client))
        monkeypatch.setattr(
            main,
            "CaptureController",
            lambda on_capture: CaptureController(on_capture=on_capture, device_factory=device_factory),
        )
        yield client


class TestDocumentEndpoints:
    def test_upload_runs_quality(self, api: TestClient, mock_client: MagicMock,
                                 sample_image_bytes: bytes, quality_response: str):
        mock_client.generate.return_value = quality_response

        resp = api.post(
            "/api/v1/document",
            files={"file": ("invoice.png", sample_image_bytes, "image/png")},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["state"] == "idle"
        assert body["document_name"] == "invoice.png"
        assert body["has_preview"] is True
        assert body["quality"]["score"] == 92
        assert body["quality"]["severity"] == "good"

    def test_empty_upload_rejected(self, api: TestClient, mock_client: MagicMock):
        resp = api.post("/api/v1/document", files={"file": ("empty.png", b"", "image/png")})
        assert resp.status_code == 400
        mock_client.generate.assert_not_called()

    def test_preview(self, api: TestClient, mock_client: MagicMock,
                     sample_image_bytes: bytes, quality_response: str):
        assert api.get("/api/v1/document/preview").status_code == 404

        mock_client.generate.return_value = quality_response
        api.post("/api/v1/document", files={"file": ("invoice.png", sample_image_bytes, "image/png")})

        resp = api.get("/api/v1/document/preview")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content == sample_image_bytes

    def test_pdf_has_no_preview(self, api: TestClient, mock_client: MagicMock, quality_response: str):
        mock_client.generate.return_value = quality_response
        api.post("/api/v1/document", files={"file": ("a.pdf", b"%PDF-1.7", "application/pdf")})
        assert api.get("/api/v1/document/preview").status_code == 404

    def test_unknown_document_type_rejected(self, api: TestClient):
        resp = api.put("/api/v1/document-type", data={"document_type": "passport"})
        assert resp.status_code == 422

    def test_invoice_flow(self, api: TestClient, mock_client: MagicMock, sample_image_bytes: bytes,
                          quality_response: str, invoice_extraction_response: str,
                          invoice_verification_response: str):
        mock_client.generate.side_effect = [
            quality_response, invoice_extraction_response, invoice_verification_response,
        ]
        api.post("/api/v1/document", files={"file": ("invoice.png", sample_image_bytes, "image/png")})

        resp = api.put("/api/v1/document-type", data={"document_type": "invoice"})
        assert resp.json()["document_type"] == "invoice"

        resp = api.post("/api/v1/extract")
        assert resp.json()["state"] == "editing"
        assert resp.json()["fields"]["Invoice Number"] == "INV-100"

        resp = api.patch("/api/v1/fields", json={"label": "Total Amount", "value": "$45.00"})
        assert resp.json()["fields"]["Total Amount"] == "$45.00"

        resp = api.post("/api/v1/verify")
        body = resp.json()
        assert body["state"] == "verified"
        assert body["verification"]["Total Amount"] == {"match": False, "reason": "Document shows $42.00"}
        assert body["summary"] == {"total": 2, "matched": 1, "accuracy": 50}

    def test_extract_without_document(self, api: TestClient):
        body = api.post("/api/v1/extract").json()
        assert body["state"] == "idle"
        assert body["error"] == "Please select a file first."


class TestCameraEndpoints:
    def test_capture_and_confirm(self, api: TestClient, mock_client: MagicMock,
                                 device_factory: FakeDeviceFactory, quality_response: str):
        mock_client.generate.return_value = quality_response

        assert api.post("/api/v1/camera/open").json()["state"] == "live"

        frame = api.get("/api/v1/camera/frame")
        assert frame.status_code == 200
        assert frame.headers["content-type"] == "image/jpeg"

        assert api.post("/api/v1/camera/capture").json()["state"] == "captured"
        assert device_factory.devices[0].released

        body = api.post("/api/v1/camera/confirm").json()
        assert body["media_type"] == "image/jpeg"
        assert body["document_name"].startswith("scan-")
        assert body["quality"]["score"] == 92
        assert main._camera is None

    def test_wrong_state_is_conflict(self, api: TestClient):
        assert api.post("/api/v1/camera/capture").status_code == 409

        api.post("/api/v1/camera/open")
        assert api.post("/api/v1/camera/confirm").status_code == 409

    def test_retake(self, api: TestClient, device_factory: FakeDeviceFactory):
        api.post("/api/v1/camera/open")
        api.post("/api/v1/camera/capture")

        assert api.post("/api/v1/camera/retake").json()["state"] == "live"
        assert len(device_factory.devices) == 2

    def test_close_releases(self, api: TestClient, device_factory: FakeDeviceFactory):
        api.post("/api/v1/camera/open")

        assert api.delete("/api/v1/camera").json()["state"] == "closed"
        assert device_factory.devices[0].released

    def test_reopen_replaces_session(self, api: TestClient, device_factory: FakeDeviceFactory):
        api.post("/api/v1/camera/open")
        api.post("/api/v1/camera/open")
        assert device_factory.devices[0].released
        assert not device_factory.devices[1].released


class TestHealth:
    def test_health(self, api: TestClient):
        with patch.object(main._model_client, "health", return_value={"status": "reachable"}):
            body = api.get("/health").json()
        assert body["status"] == "healthy"
        assert body["model"] == {"status": "reachable"}
        assert "credential_configured" in body
