"""Tax computation, review and filing endpoints.

Every endpoint takes the declaration in the wizard's JSON shape and runs
the pure engine over it; nothing is stored.
"""

import uuid
from pathlib import Path
from typing import Annotated, Any

import orjson
from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, Response

from priznanie.core.config import settings
from priznanie.core.logging import declaration_fingerprint, declaration_id_ctx, get_logger
from priznanie.declaration.models import Declaration, coerce_declaration
from priznanie.engine.calculator import compute_tax
from priznanie.errors import DeclarationShapeError, XmlImportError
from priznanie.filing.xml_export import render_dpfo_xml
from priznanie.filing.xml_import import parse_dpfo_xml
from priznanie.review.checklist import get_document_checklist
from priznanie.review.handoff import build_handoff_summary, serialize_handoff_summary
from priznanie.review.output import generate_review_workbook
from priznanie.review.risk_rules import evaluate_risk
from priznanie.tax.year_config import TaxYearConfig, get_tax_year_config

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tax", tags=["tax"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DeclarationBody = Annotated[dict[str, Any], Body()]


def get_year_config() -> TaxYearConfig:
    return get_tax_year_config(settings.tax_year)


YearConfig = Annotated[TaxYearConfig, Depends(get_year_config)]


def _declaration(payload: dict[str, Any]) -> Declaration:
    """Validate the payload; shape errors become HTTP 422."""
    try:
        declaration = coerce_declaration(payload)
    except DeclarationShapeError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "errors": exc.errors},
        ) from exc
    declaration_id_ctx.set(declaration_fingerprint(declaration.personal_info.dic))
    return declaration


@router.post("/calculate")
def calculate(payload: DeclarationBody, config: YearConfig) -> dict[str, Any]:
    """Compute every row of the return."""
    result = compute_tax(_declaration(payload), config)
    return result.model_dump(by_alias=True)


@router.post("/risk")
def risk(payload: DeclarationBody, config: YearConfig) -> dict[str, Any]:
    """Evaluate the compliance-risk rules."""
    warnings = evaluate_risk(_declaration(payload), config=config)
    logger.info("risk_requested", warning_count=len(warnings))
    return {"warnings": [warning.to_dict() for warning in warnings]}


@router.post("/checklist")
def checklist(payload: DeclarationBody) -> dict[str, Any]:
    """List the supporting documents expected for the enabled sections."""
    items = get_document_checklist(_declaration(payload))
    return {"items": [item.to_dict() for item in items]}


@router.post("/handoff")
def handoff(payload: DeclarationBody, config: YearConfig) -> Response:
    """Build the accountant handoff summary."""
    declaration = _declaration(payload)
    result = compute_tax(declaration, config)
    summary = build_handoff_summary(
        declaration, result, evaluate_risk(declaration, result, config)
    )
    logger.info("handoff_built", readiness_score=summary.readiness_score)
    return Response(
        content=serialize_handoff_summary(summary),
        media_type="application/json",
    )


@router.post("/workbook")
def workbook(
    payload: DeclarationBody, config: YearConfig, background_tasks: BackgroundTasks
) -> FileResponse:
    """Generate the review workbook and return it as a download.

    The file is removed once the response has been sent.
    """
    declaration = _declaration(payload)
    result = compute_tax(declaration, config)
    summary = build_handoff_summary(
        declaration, result, evaluate_risk(declaration, result, config)
    )
    output_path = Path(settings.output_dir) / f"priznanie-{uuid.uuid4().hex}.xlsx"
    generate_review_workbook(declaration, result, summary, output_path)
    logger.info("review_workbook_generated", path=str(output_path))
    background_tasks.add_task(output_path.unlink, missing_ok=True)
    return FileResponse(output_path, media_type=XLSX_MEDIA_TYPE, filename="priznanie.xlsx")


@router.post("/xml/export")
def export_xml(payload: DeclarationBody, config: YearConfig) -> Response:
    """Render the filing XML."""
    declaration = _declaration(payload)
    result = compute_tax(declaration, config)
    xml_text = render_dpfo_xml(declaration, result, tax_year=config.tax_year)
    return Response(content=xml_text, media_type="application/xml")


@router.post("/xml/import")
async def import_xml(request: Request, config: YearConfig) -> Response:
    """Read a filing XML back into the declaration JSON."""
    body = await request.body()
    if len(body) > settings.max_xml_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"XML exceeds {settings.max_xml_bytes} bytes",
        )
    try:
        declaration = parse_dpfo_xml(body, config)
    except XmlImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(
        content=orjson.dumps(declaration.to_json_dict()),
        media_type="application/json",
    )
