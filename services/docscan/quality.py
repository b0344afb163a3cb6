"""Quality assessor: asks the model whether an image is good enough for OCR."""

import logging

from pydantic import ValidationError

from model_client import ModelClient, ModelServiceError
from models import EncodedPayload, QualityReport
from parsing import MalformedResponseError, parse_json_object
from prompts import QUALITY_PROMPT, QUALITY_SCHEMA

logger = logging.getLogger(__name__)


class QualityAnalysisError(Exception):
    pass


def assess_quality(client: ModelClient, payload: EncodedPayload) -> QualityReport:
    try:
        raw = client.generate(payload, QUALITY_PROMPT, response_schema=QUALITY_SCHEMA)
    except ModelServiceError as e:
        logger.error("Quality analysis call failed: %s", e)
        raise QualityAnalysisError(
            "Failed to analyze image quality. The model API call failed."
        ) from e

    try:
        parsed = parse_json_object(raw)
    except MalformedResponseError as e:
        raise QualityAnalysisError(
            "Failed to analyze image quality. The model returned an unreadable response."
        ) from e

    if parsed is None:
        raise QualityAnalysisError("AI quality analyst returned an empty response.")

    try:
        report = QualityReport.model_validate(parsed)
    except ValidationError as e:
        raise QualityAnalysisError(
            "Failed to analyze image quality. The quality report was incomplete."
        ) from e

    logger.info("Quality score %d (good=%s)", report.score, report.is_good_quality)
    return report
