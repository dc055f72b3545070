"""Importers turning broker exports into declaration entries."""

from priznanie.importers.form_1042s import parse_1042s_pdf, parse_1042s_text
from priznanie.importers.ibkr_csv import parse_ibkr_dividend_csv

__all__ = ["parse_1042s_pdf", "parse_1042s_text", "parse_ibkr_dividend_csv"]
