"""Computation and compliance-risk engine for the Slovak DPFO typ B return."""

from priznanie.engine.calculator import compute_tax
from priznanie.review.handoff import build_handoff_summary
from priznanie.review.risk_rules import evaluate_risk

__all__ = ["build_handoff_summary", "compute_tax", "evaluate_risk"]
