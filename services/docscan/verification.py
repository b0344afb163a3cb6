"""Verification client: compares user-edited fields against the document."""

import logging

from pydantic import ValidationError

from model_client import ModelClient, ModelServiceError
from models import EncodedPayload, FieldMap, FieldVerdict, VerificationMap
from parsing import MalformedResponseError, parse_json_object
from prompts import verification_prompt

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Verification failed (call error, empty or unparseable response)."""


def verify_fields(
    client: ModelClient,
    payload: EncodedPayload,
    fields: FieldMap,
) -> VerificationMap:
    """Return a match verdict per submitted label."""
    try:
        raw = client.generate(payload, verification_prompt(fields))
    except ModelServiceError as e:
        logger.error("Verification call failed: %s", e)
        raise VerificationError("Failed to verify data with AI. The model API call failed.") from e

    try:
        parsed = parse_json_object(raw)
    except MalformedResponseError as e:
        raise VerificationError(
            "Failed to verify data with AI. The model returned an unreadable response."
        ) from e

    if parsed is None:
        raise VerificationError("AI verifier returned an empty response.")

    results: VerificationMap = {}
    for label, verdict in parsed.items():
        if label not in fields:
            logger.warning("Dropping verdict for unknown field %r", label)
            continue
        try:
            results[label] = FieldVerdict.model_validate(verdict)
        except ValidationError as e:
            raise VerificationError(
                f"Failed to verify data with AI. Invalid verdict for field '{label}'."
            ) from e

    matched = sum(1 for v in results.values() if v.match)
    logger.info("Verified %d fields, %d matched", len(results), matched)
    return results
