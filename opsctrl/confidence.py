from opsctrl.model import LocalDiagnosisResult, PreliminaryCheckOutcome

LOCK_THRESHOLD = 0.92
LOW_CONFIDENCE = "low-confidence"


def classify(result: LocalDiagnosisResult) -> PreliminaryCheckOutcome:
    """
    Mark a local match as locked or as needing confirmation.

    Advisory only: escalation happens either way.
    """
    if result.confidence_score >= LOCK_THRESHOLD:
        return PreliminaryCheckOutcome(handled=True, result=result)
    return PreliminaryCheckOutcome(handled=False, result=result, reason=LOW_CONFIDENCE)
