"""Tax computation engine."""

from priznanie.engine.calculator import compute_tax
from priznanie.engine.result import ROW_CODES, TaxCalculationResult

__all__ = ["ROW_CODES", "TaxCalculationResult", "compute_tax"]
