"""Extraction client: document + type hint -> flat label/value field map."""

import json
import logging

from model_client import ModelClient, ModelServiceError
from models import DocumentType, EncodedPayload, FieldMap
from parsing import MalformedResponseError, parse_json_object
from prompts import extraction_prompt

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Field extraction failed (call error or unparseable response)."""


def extract_fields(
    client: ModelClient,
    payload: EncodedPayload,
    document_type: DocumentType = DocumentType.GENERIC,
) -> FieldMap:
    """Ask the model for every readable field on the document.

    An empty response is a valid "nothing found" and yields an empty map.
    """
    prompt = extraction_prompt(document_type)

    try:
        raw = client.generate(payload, prompt)
    except ModelServiceError as e:
        logger.error("Extraction call failed: %s", e)
        raise ExtractionError(
            "Failed to extract data from image. The model API call failed."
        ) from e

    try:
        parsed = parse_json_object(raw)
    except MalformedResponseError as e:
        raise ExtractionError(
            "Failed to extract data from image. The model returned an unreadable response."
        ) from e

    if parsed is None:
        logger.warning("Model returned an empty extraction response")
        return {}

    fields = to_field_map(parsed)
    logger.info("Extracted %d fields (type=%s)", len(fields), document_type.value)
    return fields


def to_field_map(parsed: dict) -> FieldMap:
    """Coerce model output into label -> string. Nulls are dropped."""
    fields: FieldMap = {}
    for label, value in parsed.items():
        if value is None:
            continue
        if isinstance(value, str):
            fields[str(label)] = value
        elif isinstance(value, (list, dict)):
            # Line items and similar nested values stay editable as JSON text
            fields[str(label)] = json.dumps(value, ensure_ascii=False)
        elif isinstance(value, bool):
            fields[str(label)] = "true" if value else "false"
        else:
            fields[str(label)] = str(value)
    return fields
