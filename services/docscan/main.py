"""FastAPI document capture service: upload or photograph, extract, edit, verify.

Holds a single in-process session. Documents live in memory only; image
content is never logged or written to disk.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Body, FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response

from capture import CaptureController, CaptureStateError, FrameCaptureError
from config import settings
from model_client import ModelClient
from models import Document, DocumentType, SessionView
from view import session_view
from workflow import WorkflowController

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_model_client: ModelClient | None = None
_session: WorkflowController | None = None
_camera: CaptureController | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the model client and the session on startup."""
    global _model_client, _session

    if not settings.API_KEY:
        logger.warning("API_KEY is not set; quality, extraction and verification will fail")
    _model_client = ModelClient()
    _session = WorkflowController(_model_client)

    yield

    _close_camera()
    _model_client.close()


app = FastAPI(title="DocScan", version="1.0.0", lifespan=lifespan)


def _close_camera() -> None:
    global _camera
    if _camera is not None:
        _camera.close()
        _camera = None


def _view() -> SessionView:
    return session_view(_session)


@app.get("/api/v1/session", response_model=SessionView)
async def get_session():
    return _view()


@app.post("/api/v1/document", response_model=SessionView)
def upload_document(file: UploadFile = File(...)):
    """Select a new document and run the quality analysis on it."""
    content = file.file.read()

    if not content:
        return JSONResponse(
            status_code=400,
            content={"detail": "Empty file uploaded"},
        )

    document = Document(
        name=file.filename or "upload",
        content=content,
        media_type=file.content_type or "",
    )
    _session.select_document(document)
    return _view()


@app.get("/api/v1/document/preview")
async def document_preview():
    document = _session.document
    if document is None or not document.is_image:
        return JSONResponse(status_code=404, content={"detail": "No image preview available"})
    return Response(content=document.content, media_type=document.media_type)


@app.put("/api/v1/document-type", response_model=SessionView)
async def set_document_type(document_type: DocumentType = Form(...)):
    _session.set_document_type(document_type)
    return _view()


@app.post("/api/v1/extract", response_model=SessionView)
def extract():
    _session.request_extraction()
    return _view()


@app.patch("/api/v1/fields", response_model=SessionView)
async def edit_field(label: str = Body(...), value: str = Body(...)):
    _session.edit_field(label, value)
    return _view()


@app.post("/api/v1/verify", response_model=SessionView)
def verify():
    _session.request_verification()
    return _view()


# -- camera -------------------------------------------------------------


def _camera_conflict(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(e)})


def _camera_status() -> dict:
    if _camera is None:
        return {"state": "closed", "error": None}
    return {"state": _camera.state.value, "error": _camera.error}


@app.post("/api/v1/camera/open")
def open_camera():
    """Start a fresh camera session, replacing any previous one."""
    global _camera
    _close_camera()
    _camera = CaptureController(on_capture=_session.select_document)
    _camera.open()
    return _camera_status()


@app.get("/api/v1/camera/frame")
def camera_frame():
    if _camera is None:
        return JSONResponse(status_code=409, content={"detail": "Camera is not open"})
    try:
        jpeg = _camera.preview_frame()
    except (CaptureStateError, FrameCaptureError) as e:
        return _camera_conflict(e)
    return Response(content=jpeg, media_type="image/jpeg")


@app.post("/api/v1/camera/capture")
def capture_frame():
    if _camera is None:
        return JSONResponse(status_code=409, content={"detail": "Camera is not open"})
    try:
        _camera.capture()
    except (CaptureStateError, FrameCaptureError) as e:
        return _camera_conflict(e)
    return _camera_status()


@app.post("/api/v1/camera/retake")
def retake_frame():
    if _camera is None:
        return JSONResponse(status_code=409, content={"detail": "Camera is not open"})
    try:
        _camera.retake()
    except CaptureStateError as e:
        return _camera_conflict(e)
    return _camera_status()


@app.post("/api/v1/camera/confirm", response_model=SessionView)
def confirm_frame():
    """Use the captured photo as the session's document, then close the camera."""
    if _camera is None:
        return JSONResponse(status_code=409, content={"detail": "Camera is not open"})
    try:
        _camera.confirm()
    except (CaptureStateError, FrameCaptureError) as e:
        return _camera_conflict(e)
    _close_camera()
    return _view()


@app.delete("/api/v1/camera")
def close_camera():
    _close_camera()
    return _camera_status()


@app.get("/health")
async def health():
    """Return service status and model reachability."""
    return {
        "status": "healthy",
        "credential_configured": bool(_model_client.api_key),
        "model": _model_client.health(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
