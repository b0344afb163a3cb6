"""Shared test fixtures for DocScan tests."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import Document


class FakeVideoCapture:
    """Stand-in for cv2.VideoCapture that never touches real hardware."""

    def __init__(self, opened: bool = True, delivers_frames: bool = True):
        self.opened = opened
        self.delivers_frames = delivers_frames
        self.released = False
        self.props: dict[int, float] = {}
        self.reads = 0

    def isOpened(self) -> bool:
        return self.opened and not self.released

    def set(self, prop: int, value: float) -> bool:
        self.props[prop] = value
        return True

    def get(self, prop: int) -> float:
        return self.props.get(prop, 0.0)

    def read(self):
        if self.released or not self.delivers_frames:
            return False, None
        self.reads += 1
        frame = np.full((120, 160, 3), 200, dtype=np.uint8)
        frame[10:30, 10:150] = 30
        return True, frame

    def release(self) -> None:
        self.released = True


class FakeDeviceFactory:
    """Records every device it hands out."""

    def __init__(self, **device_kwargs):
        self.device_kwargs = device_kwargs
        self.devices: list[FakeVideoCapture] = []

    def __call__(self, index: int) -> FakeVideoCapture:
        device = FakeVideoCapture(**self.device_kwargs)
        self.devices.append(device)
        return device


@pytest.fixture
def device_factory() -> FakeDeviceFactory:
    return FakeDeviceFactory()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate a minimal valid PNG image for testing."""
    import cv2

    img = np.zeros((300, 200, 3), dtype=np.uint8)
    img[:] = (240, 240, 240)
    cv2.rectangle(img, (20, 30), (180, 50), (30, 30, 30), -1)
    _, buf = cv2.imencode(".png", img)
    return buf.tobytes()


@pytest.fixture
def invoice_document(sample_image_bytes: bytes) -> Document:
    return Document(name="invoice.png", content=sample_image_bytes, media_type="image/png")


@pytest.fixture
def pdf_document() -> Document:
    return Document(name="contract.pdf", content=b"%PDF-1.7\n%fake\n", media_type="application/pdf")


@pytest.fixture
def quality_response() -> str:
    return json.dumps({
        "isGoodQuality": True,
        "score": 92,
        "feedback": ["Excellent image quality."],
    })


@pytest.fixture
def invoice_extraction_response() -> str:
    return json.dumps({"Invoice Number": "INV-100", "Total Amount": "$42.00"})


@pytest.fixture
def invoice_verification_response() -> str:
    return json.dumps({
        "Invoice Number": {"match": True, "reason": ""},
        "Total Amount": {"match": False, "reason": "Document shows $42.00"},
    })


@pytest.fixture
def mock_client() -> MagicMock:
    """Model client whose generate() results are set per test."""
    client = MagicMock()
    client.api_key = "test-key"
    return client


def gemini_body(text: str) -> dict:
    """Wrap text the way the generateContent endpoint returns it."""
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
