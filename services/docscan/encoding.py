"""Transport encoding for selected documents."""

import base64

from models import Document, EncodedPayload


def encode_document(document: Document) -> EncodedPayload:
    """Base64-encode a document's bytes alongside its media type."""
    data = base64.b64encode(document.content).decode()
    return EncodedPayload(data=data, mime_type=document.media_type)


def preview_url(document: Document) -> str | None:
    """Return a data: URL for image documents, None for PDFs and other types."""
    if not document.is_image:
        return None
    payload = encode_document(document)
    return f"data:{payload.mime_type};base64,{payload.data}"
