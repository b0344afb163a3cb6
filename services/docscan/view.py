"""Presentation helpers: severity colouring, accuracy summary, session snapshot."""

from models import QualityView, SessionView, VerificationMap, VerificationSummary
from workflow import WorkflowController, WorkflowState

# Client-side colouring, independent of the model's own isGoodQuality verdict
GOOD_SCORE = 85
WARN_SCORE = 60


def quality_severity(score: int) -> str:
    if score >= GOOD_SCORE:
        return "good"
    if score >= WARN_SCORE:
        return "warn"
    return "poor"


def verification_summary(results: VerificationMap) -> VerificationSummary:
    """Share of verdicts that matched, as a whole percentage rounded half up."""
    total = len(results)
    matched = sum(1 for verdict in results.values() if verdict.match)
    accuracy = (matched * 200 + total) // (total * 2) if total else 0
    return VerificationSummary(total=total, matched=matched, accuracy=accuracy)


def session_view(controller: WorkflowController) -> SessionView:
    document = controller.document
    report = controller.quality_report

    quality = None
    if report is not None:
        quality = QualityView(
            is_good_quality=report.is_good_quality,
            score=report.score,
            severity=quality_severity(report.score),
            feedback=list(report.feedback),
        )

    verification = controller.verification
    summary = None
    if controller.state is WorkflowState.VERIFIED:
        summary = verification_summary(verification)

    return SessionView(
        state=controller.state.value,
        document_name=document.name if document else None,
        media_type=document.media_type if document else None,
        has_preview=controller.preview_url is not None,
        document_type=controller.document_type,
        quality=quality,
        fields=controller.fields,
        verification=verification,
        summary=summary,
        error=controller.error,
    )
