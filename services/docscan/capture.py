"""Camera capture controller.

Responsibility: device acquisition, live preview, still capture, retake.
The device stream is released on every path that leaves the live state.
"""

import functools
import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

import cv2
import numpy as np

from config import settings
from models import Document

logger = logging.getLogger(__name__)

CAMERA_ACCESS_MESSAGE = (
    "Could not access the camera. Please ensure permissions are granted "
    "and that the camera is not in use by another application."
)

PREVIEW_SIZE = (960, 540)


class CaptureState(str, Enum):
    INITIALIZING = "initializing"
    LIVE = "live"
    CAPTURED = "captured"
    CLOSED = "closed"
    ERROR = "error"


class CaptureStateError(Exception):
    """Operation is not valid in the controller's current state."""

    def __init__(self, operation: str, state: CaptureState):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while camera is {state.value}")


class FrameCaptureError(Exception):
    """The device did not deliver a frame."""


def _open_device(index: int) -> cv2.VideoCapture:
    return cv2.VideoCapture(index)


def _serialized(method):
    """Run the method holding the controller lock so device reads never race a release."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class CaptureController:
    """Drives one camera session from open() to confirm() or close()."""

    def __init__(
        self,
        on_capture: Callable[[Document], None] | None = None,
        camera_index: int | None = None,
        width: int | None = None,
        height: int | None = None,
        jpeg_quality: int | None = None,
        device_factory: Callable[[int], cv2.VideoCapture] = _open_device,
    ):
        self._on_capture = on_capture
        self._camera_index = camera_index if camera_index is not None else settings.CAMERA_INDEX
        self._width = width or settings.CAPTURE_WIDTH
        self._height = height or settings.CAPTURE_HEIGHT
        self._jpeg_quality = jpeg_quality or settings.CAPTURE_JPEG_QUALITY
        self._device_factory = device_factory

        self._device: cv2.VideoCapture | None = None
        self._frame: np.ndarray | None = None
        self._state = CaptureState.INITIALIZING
        self._error: str | None = None
        self._lock = threading.RLock()

    def __enter__(self) -> "CaptureController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def has_stream(self) -> bool:
        return self._device is not None

    @_serialized
    def open(self) -> None:
        """Acquire the camera. Failure is terminal for this controller."""
        self._require("open", CaptureState.INITIALIZING)
        logger.info("Opening camera %d at %dx%d", self._camera_index, self._width, self._height)

        try:
            device = self._device_factory(self._camera_index)
        except (cv2.error, OSError) as e:
            self._enter_error(f"device factory raised: {e}")
            return

        self._device = device
        if not device.isOpened():
            self._enter_error("device did not open")
            return

        device.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        device.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)

        # The stream counts as playable once it has delivered a frame
        ok, frame = device.read()
        if not ok or frame is None:
            self._enter_error("no frame delivered")
            return

        logger.info(
            "Camera live: %dx%d",
            int(device.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(device.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        self._state = CaptureState.LIVE

    @_serialized
    def capture(self) -> None:
        """Freeze the current frame and release the device."""
        self._require("capture", CaptureState.LIVE)
        frame = self._read_frame()
        self._frame = frame.copy()
        self._release_stream()
        self._state = CaptureState.CAPTURED
        logger.info("Frame captured: %dx%d", frame.shape[1], frame.shape[0])

    @_serialized
    def retake(self) -> None:
        self._require("retake", CaptureState.CAPTURED)
        self._frame = None
        self._release_stream()
        self._state = CaptureState.INITIALIZING
        self.open()

    def confirm(self) -> Document:
        """Encode the frozen frame as JPEG and hand it over as a new document."""
        document = self._frozen_document()
        # The callback may run a remote call; it must not hold the device lock
        if self._on_capture is not None:
            self._on_capture(document)
        return document

    @_serialized
    def _frozen_document(self) -> Document:
        self._require("confirm", CaptureState.CAPTURED)
        return Document(
            name=f"scan-{int(time.time() * 1000)}.jpeg",
            content=self._encode_jpeg(self._frame, self._jpeg_quality),
            media_type="image/jpeg",
        )

    @_serialized
    def close(self) -> None:
        """Release the device whatever the state. Safe to call repeatedly."""
        self._release_stream()
        self._frame = None
        if self._state is not CaptureState.CLOSED:
            logger.info("Camera session closed (was %s)", self._state.value)
        self._state = CaptureState.CLOSED

    @_serialized
    def preview_frame(self) -> bytes:
        """JPEG of the live frame (downscaled) or of the frozen capture."""
        if self._state is CaptureState.CAPTURED:
            return self._encode_jpeg(self._frame, self._jpeg_quality)
        self._require("preview", CaptureState.LIVE)
        frame = cv2.resize(self._read_frame(), PREVIEW_SIZE)
        return self._encode_jpeg(frame, 80)

    def _read_frame(self) -> np.ndarray:
        ok, frame = self._device.read()
        if not ok or frame is None:
            logger.warning("Failed to read frame from camera")
            raise FrameCaptureError("Failed to capture frame from camera")
        return frame

    def _release_stream(self) -> None:
        if self._device is not None:
            self._device.release()
            self._device = None
            logger.info("Camera stream released")

    def _enter_error(self, reason: str) -> None:
        logger.error("Camera %d unavailable: %s", self._camera_index, reason)
        self._release_stream()
        self._error = CAMERA_ACCESS_MESSAGE
        self._state = CaptureState.ERROR

    def _require(self, operation: str, state: CaptureState) -> None:
        if self._state is not state:
            raise CaptureStateError(operation, self._state)

    @staticmethod
    def _encode_jpeg(frame: np.ndarray, quality: int) -> bytes:
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            raise FrameCaptureError("Failed to encode frame as JPEG")
        return buf.tobytes()
