"""Risk evaluation, handoff summary and review outputs."""

from priznanie.review.handoff import HandoffSummary, build_handoff_summary
from priznanie.review.risk_rules import RiskWarning, Severity, evaluate_risk

__all__ = [
    "HandoffSummary",
    "RiskWarning",
    "Severity",
    "build_handoff_summary",
    "evaluate_risk",
]
