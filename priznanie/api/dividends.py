"""Dividend import endpoints for broker exports and US tax forms."""

from fastapi import APIRouter, HTTPException, Request, status

from priznanie.api.tax import YearConfig
from priznanie.core.logging import get_logger
from priznanie.errors import DocumentImportError
from priznanie.importers.form_1042s import parse_1042s_pdf, parse_1042s_text
from priznanie.importers.ibkr_csv import parse_ibkr_dividend_csv

logger = get_logger(__name__)

router = APIRouter(prefix="/api/dividends", tags=["dividends"])

PDF_MAGIC = b"%PDF"
MAX_DOCUMENT_BYTES = 1024 * 1024


@router.post("/import")
async def import_dividends(request: Request) -> dict[str, object]:
    """Parse an IBKR dividend CSV posted as the raw request body.

    Oversized or unrecognised input yields an empty entry list rather than
    an error, so the wizard can tell the user nothing was found.
    """
    body = await request.body()
    text = body.decode("utf-8-sig", errors="replace")
    entries = parse_ibkr_dividend_csv(text)
    logger.info("dividends_imported", source="ibkr", entry_count=len(entries))
    return {"entries": [entry.model_dump(by_alias=True) for entry in entries]}


@router.post("/import-1042s")
async def import_1042s(request: Request, config: YearConfig) -> dict[str, object]:
    """Parse a Form 1042-S posted as a PDF or as its extracted text.

    A form that is not for dividends yields an empty entry list; a body
    that claims to be a PDF but cannot be read is rejected with 422.
    """
    body = await request.body()
    if len(body) > MAX_DOCUMENT_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large (max 1 MB)",
        )
    try:
        if body.startswith(PDF_MAGIC):
            entry = parse_1042s_pdf(body, config)
        else:
            entry = parse_1042s_text(body.decode("utf-8-sig", errors="replace"), config)
    except DocumentImportError as exc:
        logger.warning("form_1042s_unreadable", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    entries = [entry] if entry else []
    logger.info("dividends_imported", source="1042-S", entry_count=len(entries))
    return {"entries": [e.model_dump(by_alias=True) for e in entries]}
